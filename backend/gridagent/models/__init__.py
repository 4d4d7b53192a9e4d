"""Domain models."""
from gridagent.models.grid import (
    COLUMN_TYPE_ALIASES,
    Cell,
    CellState,
    Column,
    ColumnType,
    FilterBy,
    Grid,
    GridSummary,
    NewColumn,
    Option,
    PrimaryRow,
)

__all__ = [
    "COLUMN_TYPE_ALIASES",
    "Cell",
    "CellState",
    "Column",
    "ColumnType",
    "FilterBy",
    "Grid",
    "GridSummary",
    "NewColumn",
    "Option",
    "PrimaryRow",
]
