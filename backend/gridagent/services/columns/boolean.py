"""Boolean column type."""
from typing import Any, Optional, Sequence

from gridagent.models.grid import ColumnType, Option
from gridagent.services.columns.base import (
    ColumnTypeDescriptor,
    ParseError,
    json_schema_format,
    load_json_object,
    require_key,
)


class BooleanColumnType(ColumnTypeDescriptor):
    type = ColumnType.BOOLEAN
    supports_multiple = False

    def generate_output_schema(self, options: Optional[Sequence[Option]] = None, multiple: bool = False):
        return json_schema_format("boolean_response", {
            "value": {
                "type": "boolean",
                "description": "The boolean value (true or false) for this cell",
            },
        })

    def build_format_instructions(self, options: Optional[Sequence[Option]] = None, multiple: bool = False) -> str:
        return (
            "Boolean: determine whether the statement is true or false. "
            'Reply with a JSON object containing a single "value" boolean.'
        )

    def parse_response(self, raw: str, multiple: bool = False, options: Optional[Sequence[Option]] = None):
        value = require_key(load_json_object(raw), "value")
        if not isinstance(value, bool):
            raise ParseError("'value' must be a boolean")
        return {"value": value}

    def render_text(self, response: Any) -> str:
        if response is None:
            return ""
        if isinstance(response, dict) and "value" in response:
            return "Yes" if response["value"] else "No"
        return str(response)
