"""Grid, column and cell models."""
import enum
import json
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field, model_validator


class ColumnType(str, enum.Enum):
    """Closed set of column kinds."""
    TEXT = "text"
    SELECT = "select"
    SELECT_USER = "select-user"
    FILE = "file"
    ISSUE_PR = "issue-pr"
    COMMIT = "commit"
    BOOLEAN = "boolean"


# Legacy identifiers that fold the multiplicity flag into the type name
COLUMN_TYPE_ALIASES = {
    "single-select": (ColumnType.SELECT, False),
    "multi-select": (ColumnType.SELECT, True),
}


class CellState(str, enum.Enum):
    EMPTY = "empty"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


class Option(BaseModel):
    """User-authored choice for select-like columns."""
    title: str
    description: str = ""


def _normalize_column_type(data: Any, type_key: str) -> Any:
    if isinstance(data, dict):
        alias = COLUMN_TYPE_ALIASES.get(data.get(type_key))
        if alias is not None:
            data = {**data, type_key: alias[0].value}
            if data.get("multiple") is None:
                data["multiple"] = alias[1]
    return data


class Cell(BaseModel):
    """One (row, column) value together with its resolution state and provenance."""
    state: CellState = CellState.EMPTY
    column_title: str
    column_instructions: str = ""
    column_type: ColumnType
    options: List[Option] = Field(default_factory=list)
    multiple: bool = False
    context: Any = None
    response: Any = None
    hydration_sources: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    prompt: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_type(cls, data: Any) -> Any:
        return _normalize_column_type(data, "column_type")

    @property
    def is_terminal(self) -> bool:
        return self.state in (CellState.DONE, CellState.ERROR)

    def reset(self) -> "Cell":
        """Copy of this cell back in the empty state, ready to be hydrated again."""
        return self.model_copy(update={
            "state": CellState.EMPTY,
            "response": None,
            "hydration_sources": [],
            "error": None,
            "prompt": None,
        })


class Column(BaseModel):
    title: str
    instructions: str = ""
    type: ColumnType
    options: List[Option] = Field(default_factory=list)
    multiple: bool = False
    cells: List[Cell] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_type(cls, data: Any) -> Any:
        return _normalize_column_type(data, "type")

    @property
    def is_complete(self) -> bool:
        """True once every cell has left the empty and generating states."""
        return all(cell.is_terminal for cell in self.cells)


class PrimaryRow(BaseModel):
    """Row context produced by the bootstrap tool call."""
    context: Any
    display_value: str
    type: str = "item"

    model_config = {"frozen": True}

    @classmethod
    def from_tool_result(cls, result: Any) -> "PrimaryRow":
        if isinstance(result, dict):
            display = result.get("value") or json.dumps(result)
            row_type = result.get("type") or "item"
        else:
            display = result if isinstance(result, str) else json.dumps(result)
            row_type = "item"
        return cls(context=result, display_value=str(display), type=str(row_type))


class FilterBy(BaseModel):
    column_title: Optional[str] = None
    value: Optional[str] = None


class Grid(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    primary_column_type: str = "item"
    rows: List[PrimaryRow] = Field(default_factory=list)
    columns: List[Column] = Field(default_factory=list)
    group_by: Optional[str] = None
    filter_by: Optional[FilterBy] = None
    # Bumped by the store on every save; writes from an older version are rejected
    version: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def column_index(self, title: str) -> Optional[int]:
        for index, column in enumerate(self.columns):
            if column.title == title:
                return index
        return None

    def get_column(self, title: str) -> Optional[Column]:
        index = self.column_index(title)
        return self.columns[index] if index is not None else None


class GridSummary(BaseModel):
    id: str
    title: str
    row_count: int
    column_count: int
    created_at: datetime

    @classmethod
    def from_grid(cls, grid: Grid) -> "GridSummary":
        return cls(
            id=grid.id,
            title=grid.title,
            row_count=len(grid.rows),
            # Primary column counts as a column
            column_count=len(grid.columns) + 1,
            created_at=grid.created_at,
        )


class NewColumn(BaseModel):
    """Column definition submitted by the user."""
    title: str = Field(..., min_length=1)
    instructions: str = ""
    type: ColumnType = ColumnType.TEXT
    options: List[Option] = Field(default_factory=list)
    multiple: bool = False

    @model_validator(mode="before")
    @classmethod
    def normalize_type(cls, data: Any) -> Any:
        return _normalize_column_type(data, "type")
