"""In-memory grid store."""
import logging
from typing import Dict, List, Optional

from gridagent.models.grid import Grid, GridSummary
from gridagent.services.grid.store import StaleGridError

logger = logging.getLogger(__name__)


class MemoryGridStore:
    """Keeps serialized grids in a dict, so callers never share mutable state with the store."""

    def __init__(self):
        self._grids: Dict[str, str] = {}

    def load_grid(self, grid_id: str) -> Optional[Grid]:
        raw = self._grids.get(grid_id)
        return Grid.model_validate_json(raw) if raw is not None else None

    def save_grid(self, grid: Grid) -> None:
        raw = self._grids.get(grid.id)
        stored = Grid.model_validate_json(raw).version if raw is not None else 0
        if stored != grid.version:
            raise StaleGridError(grid.id, grid.version, stored)
        grid.version = stored + 1
        self._grids[grid.id] = grid.model_dump_json()

    def list_grids(self) -> List[GridSummary]:
        grids = [Grid.model_validate_json(raw) for raw in self._grids.values()]
        summaries = [GridSummary.from_grid(g) for g in grids]
        return sorted(summaries, key=lambda s: s.created_at, reverse=True)

    def delete_grid(self, grid_id: str) -> None:
        if self._grids.pop(grid_id, None) is not None:
            logger.debug(f"Deleted grid {grid_id}")
