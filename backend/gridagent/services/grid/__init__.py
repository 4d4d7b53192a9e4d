"""Grid persistence, orchestration and export."""
from gridagent.services.grid.export import generate_markdown_table
from gridagent.services.grid.memory_store import MemoryGridStore
from gridagent.services.grid.orchestrator import (
    ColumnNotFoundError,
    DuplicateColumnError,
    GridNotFoundError,
    GridOrchestrator,
    UnsupportedColumnError,
)
from gridagent.services.grid.store import GridStore, StaleGridError
from gridagent.services.grid.store_factory import create_grid_store

__all__ = [
    "ColumnNotFoundError",
    "DuplicateColumnError",
    "GridNotFoundError",
    "GridOrchestrator",
    "GridStore",
    "MemoryGridStore",
    "StaleGridError",
    "UnsupportedColumnError",
    "create_grid_store",
    "generate_markdown_table",
]
