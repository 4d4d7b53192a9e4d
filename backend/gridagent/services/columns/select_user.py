"""User reference column type (GitHub handles)."""
from typing import Any, Optional, Sequence

from gridagent.models.grid import ColumnType, Option
from gridagent.services.columns.base import (
    ColumnTypeDescriptor,
    ParseError,
    json_schema_format,
    load_json_object,
    require_key,
    require_string_list,
)

NO_USER = "no-user"


class SelectUserColumnType(ColumnTypeDescriptor):
    type = ColumnType.SELECT_USER

    def generate_output_schema(self, options: Optional[Sequence[Option]] = None, multiple: bool = False):
        if multiple:
            prop = {
                "type": "array",
                "description": "The handles of the users that you have selected. If there are no clear users to select, use an empty array",
                "items": {"type": "string"},
            }
        else:
            prop = {
                "type": "string",
                "description": f'The handle of the user that you have selected. If there is no clear user to select, use the string "{NO_USER}"',
            }
        return json_schema_format("select_user_response", {"users" if multiple else "user": prop})

    def build_format_instructions(self, options: Optional[Sequence[Option]] = None, multiple: bool = False) -> str:
        if multiple:
            return (
                "Select users: select the users that fit the description and reply only with their GitHub handles. "
                'Reply with a JSON object containing a "users" array of handle strings; use an empty array if no user fits.'
            )
        return (
            "Select a user: select the user that fits the description and reply only with their GitHub handle. "
            f'Reply with a JSON object containing a single "user" string; use "{NO_USER}" if no user fits.'
        )

    def parse_response(self, raw: str, multiple: bool = False, options: Optional[Sequence[Option]] = None):
        parsed = load_json_object(raw)
        if multiple:
            users = require_string_list(require_key(parsed, "users"), "users")
            return {"users": [u.lstrip("@") for u in users if u != NO_USER]}

        user = require_key(parsed, "user")
        if user is None or user == NO_USER:
            return {"user": None}
        if not isinstance(user, str):
            raise ParseError("'user' must be a string")
        return {"user": user.lstrip("@")}

    def render_text(self, response: Any) -> str:
        if response is None:
            return ""
        if isinstance(response, dict):
            if "users" in response:
                return "; ".join(f"@{u}" for u in response["users"] or [])
            if "user" in response:
                return f"@{response['user']}" if response["user"] else ""
        return str(response)
