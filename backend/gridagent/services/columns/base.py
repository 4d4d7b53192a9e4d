"""Column type descriptor contract and shared schema/parse helpers."""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from gridagent.models.grid import ColumnType, Option

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Model output did not match the column type's response shape."""
    pass


def json_schema_format(name: str, properties: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap object properties in a strict structured-output response format."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "strict": True,
            "schema": {
                "type": "object",
                "properties": properties,
                "required": list(properties.keys()),
                "additionalProperties": False,
            },
        },
    }


def load_json_object(raw: str) -> Dict[str, Any]:
    """Decode model output that must be a JSON object."""
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Response is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ParseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def require_key(parsed: Dict[str, Any], key: str) -> Any:
    if key not in parsed:
        raise ParseError(f"Response is missing required key '{key}'")
    return parsed[key]


def require_string_list(value: Any, key: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ParseError(f"'{key}' must be an array of strings")
    return value


def format_options(options: Optional[Sequence[Option]]) -> List[str]:
    """Render options as `title: description` lines."""
    lines = []
    for option in options or []:
        if option.description:
            lines.append(f"{option.title}: {option.description}")
        else:
            lines.append(option.title)
    return lines


class ColumnTypeDescriptor(ABC):
    """Schema, prompt, parse and render strategy for one column kind.

    Whatever shape `generate_output_schema` requires, `parse_response` accepts.
    """

    type: ColumnType
    supports_multiple: bool = True

    @abstractmethod
    def generate_output_schema(
        self,
        options: Optional[Sequence[Option]] = None,
        multiple: bool = False
    ) -> Optional[Dict[str, Any]]:
        """Structured-output response format, or None for unconstrained text."""

    @abstractmethod
    def build_format_instructions(
        self,
        options: Optional[Sequence[Option]] = None,
        multiple: bool = False
    ) -> str:
        """Natural-language answer format appended to the hydration prompt."""

    @abstractmethod
    def parse_response(
        self,
        raw: str,
        multiple: bool = False,
        options: Optional[Sequence[Option]] = None
    ) -> Any:
        """Turn raw model output into the stored response value.

        Raises:
            ParseError: If the output does not match the schema
        """

    @abstractmethod
    def render_text(self, response: Any) -> str:
        """Plain-text rendering of a stored response (used by export)."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.type.value}>"
