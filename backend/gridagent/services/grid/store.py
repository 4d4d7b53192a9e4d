"""Grid store abstraction: versioned persistence of whole grids."""
from typing import List, Optional, Protocol

from gridagent.models.grid import Grid, GridSummary


class StaleGridError(Exception):
    """A grid was saved from a snapshot older than the stored version."""

    def __init__(self, grid_id: str, expected: int, found: int):
        super().__init__(f"Grid {grid_id} changed concurrently (saving from version {expected}, stored {found})")
        self.grid_id = grid_id
        self.expected = expected
        self.found = found


class GridStore(Protocol):
    """Protocol for grid storage.

    `save_grid` is an optimistic-concurrency write: it succeeds only when the
    stored version equals `grid.version` (0 for a new grid), then bumps the
    version on both the stored record and the passed grid.
    """

    def load_grid(self, grid_id: str) -> Optional[Grid]:
        """Get a grid by id, or None."""
        ...

    def save_grid(self, grid: Grid) -> None:
        """Store a grid under its id.

        Raises:
            StaleGridError: If the stored version moved on since `grid` was loaded
        """
        ...

    def list_grids(self) -> List[GridSummary]:
        """Summaries of every stored grid, newest first."""
        ...

    def delete_grid(self, grid_id: str) -> None:
        """Remove a grid; missing ids are ignored."""
        ...
