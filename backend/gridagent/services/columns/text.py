"""Free-text column type."""
from typing import Any, Optional, Sequence

from gridagent.models.grid import ColumnType, Option
from gridagent.services.columns.base import ColumnTypeDescriptor


class TextColumnType(ColumnTypeDescriptor):
    type = ColumnType.TEXT
    supports_multiple = False

    def generate_output_schema(self, options: Optional[Sequence[Option]] = None, multiple: bool = False):
        return None

    def build_format_instructions(self, options: Optional[Sequence[Option]] = None, multiple: bool = False) -> str:
        return (
            "Text: reply with a concise markdown string containing the answer. "
            "Use lists, bold, italics and links sparingly. Never use headings."
        )

    def parse_response(self, raw: str, multiple: bool = False, options: Optional[Sequence[Option]] = None) -> str:
        return raw

    def render_text(self, response: Any) -> str:
        return "" if response is None else str(response)
