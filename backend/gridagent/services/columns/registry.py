"""Column type registry: one descriptor per ColumnType member."""
from typing import Dict, Union

from gridagent.models.grid import COLUMN_TYPE_ALIASES, ColumnType
from gridagent.services.columns.base import ColumnTypeDescriptor
from gridagent.services.columns.boolean import BooleanColumnType
from gridagent.services.columns.commit import CommitColumnType
from gridagent.services.columns.file import FileColumnType
from gridagent.services.columns.issue_pr import IssuePRColumnType
from gridagent.services.columns.select import SelectColumnType
from gridagent.services.columns.select_user import SelectUserColumnType
from gridagent.services.columns.text import TextColumnType

COLUMN_TYPES: Dict[ColumnType, ColumnTypeDescriptor] = {
    ColumnType.TEXT: TextColumnType(),
    ColumnType.SELECT: SelectColumnType(),
    ColumnType.SELECT_USER: SelectUserColumnType(),
    ColumnType.FILE: FileColumnType(),
    ColumnType.ISSUE_PR: IssuePRColumnType(),
    ColumnType.COMMIT: CommitColumnType(),
    ColumnType.BOOLEAN: BooleanColumnType(),
}

# Import-time exhaustiveness check: adding a ColumnType member requires registering it here
_missing = set(ColumnType) - set(COLUMN_TYPES)
if _missing:
    raise RuntimeError(f"Column types without a descriptor: {sorted(t.value for t in _missing)}")


def get_column_type(column_type: Union[ColumnType, str]) -> ColumnTypeDescriptor:
    """Look up the descriptor for a column type or one of its legacy aliases.

    Raises:
        ValueError: If the identifier is not a known column type
    """
    if isinstance(column_type, str) and column_type in COLUMN_TYPE_ALIASES:
        column_type = COLUMN_TYPE_ALIASES[column_type][0]
    return COLUMN_TYPES[ColumnType(column_type)]
