"""Single and multi select column type."""
from typing import Any, Dict, Optional, Sequence

from gridagent.models.grid import ColumnType, Option
from gridagent.services.columns.base import (
    ColumnTypeDescriptor,
    ParseError,
    format_options,
    json_schema_format,
    load_json_object,
    require_key,
    require_string_list,
)

# Escape value for "none of the options apply"; never stored as an option
NOT_APPLICABLE = "N/A"


def select_schema(options: Optional[Sequence[Option]], multiple: bool) -> Dict[str, Any]:
    titles = [o.title for o in options or []]
    if titles:
        enum = [NOT_APPLICABLE, *titles]
        if multiple:
            prop = {
                "type": "array",
                "description": f'Select the options that apply. If no options are relevant, select "{NOT_APPLICABLE}"',
                "items": {"type": "string", "enum": enum},
            }
        else:
            prop = {
                "type": "string",
                "description": f'Select a single option that best fits the response, or "{NOT_APPLICABLE}" if none apply',
                "enum": enum,
            }
    elif multiple:
        prop = {
            "type": "array",
            "description": "Define a list of options that you would like to include in the response",
            "items": {"type": "string"},
        }
    else:
        prop = {
            "type": "string",
            "description": "Define a single option that best fits the response",
        }
    return json_schema_format("select_response", {"options" if multiple else "option": prop})


class SelectColumnType(ColumnTypeDescriptor):
    type = ColumnType.SELECT

    def generate_output_schema(self, options: Optional[Sequence[Option]] = None, multiple: bool = False):
        return select_schema(options, multiple)

    def build_format_instructions(self, options: Optional[Sequence[Option]] = None, multiple: bool = False) -> str:
        kind = "Multi" if multiple else "Single"
        shape = (
            'Reply with a JSON object containing an "options" array of strings.'
            if multiple else
            'Reply with a JSON object containing a single "option" string.'
        )
        if options:
            lines = [
                f"{kind} select: select {'one or more options' if multiple else 'a single option'} "
                f"from the user-provided options below. Your selection should satisfy the cell data description. "
                f'If no option applies, answer "{NOT_APPLICABLE}".',
                shape,
                "Available options:",
            ]
            lines.extend(f"- {line}" for line in format_options(options))
            return "\n".join(lines)
        return (
            f"{kind} select: the user provided no options to choose from, so you must define your own. "
            f"Define {'one or more options' if multiple else 'an option'} that are not overly specific but "
            f"satisfy the cell data description. Your selection will be used to group cells thematically.\n"
            f"{shape}"
        )

    def parse_response(self, raw: str, multiple: bool = False, options: Optional[Sequence[Option]] = None):
        parsed = load_json_object(raw)
        allowed = {o.title for o in options or []}

        if multiple:
            values = require_string_list(require_key(parsed, "options"), "options")
            values = [v for v in values if v != NOT_APPLICABLE]
            if allowed:
                unknown = [v for v in values if v not in allowed]
                if unknown:
                    raise ParseError(f"Options not in the allowed set: {', '.join(unknown)}")
            return {"options": values}

        value = require_key(parsed, "option")
        if value is None or value == NOT_APPLICABLE:
            return {"option": None}
        if not isinstance(value, str):
            raise ParseError("'option' must be a string")
        if allowed and value not in allowed:
            raise ParseError(f"Option '{value}' is not in the allowed set")
        return {"option": value}

    def render_text(self, response: Any) -> str:
        if response is None:
            return ""
        if isinstance(response, dict):
            if "options" in response:
                return "; ".join(response["options"] or [])
            if "option" in response:
                return response["option"] or ""
        return str(response)
