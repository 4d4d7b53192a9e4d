"""Grid orchestration: grid lifecycle and per-cell hydration fan-out."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from gridagent.models.grid import Cell, CellState, Column, FilterBy, Grid, GridSummary, NewColumn, PrimaryRow
from gridagent.services.bootstrap import BootstrapResult, PrimaryColumnBootstrap
from gridagent.services.columns import COLUMN_TYPES
from gridagent.services.grid.export import generate_markdown_table
from gridagent.services.grid.store import GridStore, StaleGridError
from gridagent.services.hydration import HydrationEngine

logger = logging.getLogger(__name__)

SlotKey = Tuple[str, str, int]  # (grid id, column title, row index)

# Reload-and-retry budget when another process saved the grid first
REPLACE_ATTEMPTS = 3


class GridNotFoundError(LookupError):
    pass


class ColumnNotFoundError(LookupError):
    pass


class DuplicateColumnError(ValueError):
    pass


class UnsupportedColumnError(ValueError):
    pass


@dataclass
class CellHandle:
    task: "asyncio.Task[None]"
    cancel_event: asyncio.Event


def static_value(row: PrimaryRow, column_title: str) -> Any:
    """Value already present in the row context under the column's title, if any."""
    if isinstance(row.context, dict):
        return row.context.get(column_title)
    return None


class GridOrchestrator:
    """Owns grids in the store and runs one independent hydration task per cell.

    Cell results are written back with `_replace_cell`, which reloads the
    latest stored grid and replaces a single slot with no suspension point in
    between, so concurrently finishing cells never overwrite each other. Stores
    also reject saves from stale versions, which covers writers in other
    processes sharing a Redis store.
    """

    def __init__(
        self,
        store: GridStore,
        engine: HydrationEngine,
        bootstrap: PrimaryColumnBootstrap
    ):
        self.store = store
        self.engine = engine
        self.bootstrap = bootstrap
        self._handles: Dict[SlotKey, CellHandle] = {}

    # Grids

    async def create_grid(self, query: str) -> BootstrapResult:
        result = await self.bootstrap.create_primary_column(query)
        if result.success:
            self.store.save_grid(result.grid)
            logger.info(f"Created grid {result.grid.id} with {len(result.grid.rows)} rows for '{query}'")
        return result

    def get_grid(self, grid_id: str) -> Grid:
        grid = self.store.load_grid(grid_id)
        if grid is None:
            raise GridNotFoundError(f"Grid not found: {grid_id}")
        return grid

    def list_grids(self) -> List[GridSummary]:
        return self.store.list_grids()

    def delete_grid(self, grid_id: str) -> None:
        self._cancel(lambda key: key[0] == grid_id)
        self.store.delete_grid(grid_id)
        logger.info(f"Deleted grid {grid_id}")

    def set_group_by(self, grid_id: str, column_title: Optional[str]) -> Grid:
        grid = self.get_grid(grid_id)
        if column_title is not None and grid.get_column(column_title) is None:
            raise ColumnNotFoundError(f"Column not found: {column_title}")
        grid.group_by = column_title
        self.store.save_grid(grid)
        return grid

    def set_filter_by(self, grid_id: str, column_title: Optional[str], value: Optional[str]) -> Grid:
        grid = self.get_grid(grid_id)
        if column_title is not None and grid.get_column(column_title) is None:
            raise ColumnNotFoundError(f"Column not found: {column_title}")
        grid.filter_by = FilterBy(column_title=column_title, value=value) if column_title else None
        self.store.save_grid(grid)
        return grid

    def export_markdown(self, grid_id: str) -> str:
        return generate_markdown_table(self.get_grid(grid_id))

    # Columns

    def add_column(self, grid_id: str, new_column: NewColumn) -> Column:
        """Commit a column of placeholder cells and start hydrating every empty one.

        Cells whose row context already holds a value under the column title
        are stored as `done` and never reach the model. Such prefilled
        responses keep the raw context value rather than the column type's
        response shape; `render_text` accepts both.
        """
        if new_column.multiple and not COLUMN_TYPES[new_column.type].supports_multiple:
            raise UnsupportedColumnError(f"Column type {new_column.type.value} does not take multiple values")
        grid = self.get_grid(grid_id)
        if grid.get_column(new_column.title) is not None:
            raise DuplicateColumnError(f"Column already exists: {new_column.title}")

        cells = [self._initial_cell(new_column, row) for row in grid.rows]
        column = Column(
            title=new_column.title,
            instructions=new_column.instructions,
            type=new_column.type,
            options=new_column.options,
            multiple=new_column.multiple,
            cells=cells,
        )
        grid.columns.append(column)
        self.store.save_grid(grid)

        pending = 0
        for index, cell in enumerate(cells):
            if cell.state == CellState.EMPTY:
                self._schedule(grid_id, column.title, index, cell)
                pending += 1
        logger.info(
            f"Added column '{column.title}' ({column.type.value}) to grid {grid_id}: "
            f"{pending} cells hydrating, {len(cells) - pending} prefilled"
        )
        return column

    def delete_column(self, grid_id: str, column_index: int) -> Column:
        grid = self.get_grid(grid_id)
        if not 0 <= column_index < len(grid.columns):
            raise ColumnNotFoundError(f"Column index out of range: {column_index}")
        column = grid.columns.pop(column_index)
        self._cancel(lambda key: key[0] == grid_id and key[1] == column.title)
        if grid.group_by == column.title:
            grid.group_by = None
        if grid.filter_by and grid.filter_by.column_title == column.title:
            grid.filter_by = None
        self.store.save_grid(grid)
        logger.info(f"Deleted column '{column.title}' from grid {grid_id}")
        return column

    def rehydrate_cell(self, grid_id: str, column_index: int, row_index: int) -> Cell:
        """User-triggered re-run of one cell: reset it to empty and hydrate again."""
        grid = self.get_grid(grid_id)
        if not 0 <= column_index < len(grid.columns):
            raise ColumnNotFoundError(f"Column index out of range: {column_index}")
        column = grid.columns[column_index]
        if not 0 <= row_index < len(column.cells):
            raise ColumnNotFoundError(f"Row index out of range: {row_index}")

        key = (grid_id, column.title, row_index)
        self._cancel(lambda k: k == key)
        cell = column.cells[row_index].reset()
        self._replace_cell(grid_id, column.title, row_index, cell)
        self._schedule(grid_id, column.title, row_index, cell)
        return cell

    async def wait_for_column(self, grid_id: str, column_title: str) -> Column:
        """Wait until every scheduled hydration for the column has finished."""
        tasks = [h.task for key, h in list(self._handles.items()) if key[0] == grid_id and key[1] == column_title]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        grid = self.get_grid(grid_id)
        column = grid.get_column(column_title)
        if column is None:
            raise ColumnNotFoundError(f"Column not found: {column_title}")
        return column

    async def shutdown(self) -> None:
        tasks = [h.task for h in self._handles.values()]
        self._cancel(lambda key: True)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Internals

    @staticmethod
    def _initial_cell(column: NewColumn, row: PrimaryRow) -> Cell:
        value = static_value(row, column.title)
        return Cell(
            state=CellState.DONE if value else CellState.EMPTY,
            column_title=column.title,
            column_instructions=column.instructions,
            column_type=column.type,
            options=column.options,
            multiple=column.multiple,
            context=row.context,
            response=value if value else None,
        )

    def _schedule(self, grid_id: str, column_title: str, index: int, cell: Cell) -> None:
        key = (grid_id, column_title, index)
        cancel_event = asyncio.Event()
        task = asyncio.create_task(self._hydrate_slot(key, cell, cancel_event))
        handle = CellHandle(task=task, cancel_event=cancel_event)
        self._handles[key] = handle

        def _forget(_task):
            if self._handles.get(key) is handle:
                del self._handles[key]

        task.add_done_callback(_forget)

    async def _hydrate_slot(self, key: SlotKey, cell: Cell, cancel_event: asyncio.Event) -> None:
        grid_id, column_title, index = key
        try:
            self._replace_cell(grid_id, column_title, index, cell.model_copy(update={"state": CellState.GENERATING}))
            result = await self.engine.hydrate(cell, cancel_event)
            if cancel_event.is_set():
                # Slot was deleted or re-hydrated; this result is stale
                return
            self._replace_cell(grid_id, column_title, index, result)
        except Exception as e:
            # Nothing awaits these tasks, so failures end here
            logger.error(f"Hydrating {column_title}[{index}] of grid {grid_id} failed: {e}", exc_info=True)
            if not cancel_event.is_set():
                self._mark_failed(key, cell, f"Could not save the result: {e}")
            return
        logger.debug(f"Cell {column_title}[{index}] of grid {grid_id} -> {result.state.value}")

    def _mark_failed(self, key: SlotKey, cell: Cell, message: str) -> None:
        grid_id, column_title, index = key
        try:
            self._replace_cell(grid_id, column_title, index, cell.model_copy(update={"state": CellState.ERROR, "error": message}))
        except Exception as e:
            logger.error(f"Could not mark {column_title}[{index}] of grid {grid_id} as failed: {e}")

    def _replace_cell(self, grid_id: str, column_title: str, index: int, cell: Cell) -> bool:
        for _ in range(REPLACE_ATTEMPTS):
            # Read-modify-write against the latest snapshot; no await in between
            grid = self.store.load_grid(grid_id)
            if grid is None:
                return False
            column = grid.get_column(column_title)
            if column is None or index >= len(column.cells):
                return False
            column.cells[index] = cell
            try:
                self.store.save_grid(grid)
                return True
            except StaleGridError as e:
                logger.warning(f"{e}; retrying {column_title}[{index}]")
        logger.error(f"Gave up writing {column_title}[{index}] of grid {grid_id} after {REPLACE_ATTEMPTS} attempts")
        return False

    def _cancel(self, predicate) -> None:
        for key, handle in list(self._handles.items()):
            if predicate(key):
                handle.cancel_event.set()
                handle.task.cancel()
                del self._handles[key]
