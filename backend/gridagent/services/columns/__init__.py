"""Column type descriptors."""
from gridagent.services.columns.base import ColumnTypeDescriptor, ParseError
from gridagent.services.columns.registry import COLUMN_TYPES, get_column_type

__all__ = [
    "COLUMN_TYPES",
    "ColumnTypeDescriptor",
    "ParseError",
    "get_column_type",
]
