"""Shared behaviour for columns that point at GitHub objects (files, issues/PRs, commits)."""
from typing import Any, Dict, List, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError

from gridagent.models.grid import Option
from gridagent.services.columns.base import (
    ColumnTypeDescriptor,
    ParseError,
    json_schema_format,
    load_json_object,
    require_key,
)


def _nullable(prop: Dict[str, Any]) -> Dict[str, Any]:
    return {**prop, "type": [prop["type"], "null"]}


class ReferenceColumnType(ColumnTypeDescriptor):
    """Column whose response is one reference object (or null) or a list of them.

    Subclasses name the singular/plural response keys, the reference model and
    the JSON schema for one item. Optional item fields are emitted as nullable
    required properties so the schema stays valid in strict mode.
    """

    singular_key: str
    plural_key: str
    schema_name: str
    noun: str
    noun_plural: str
    item_model: Type[BaseModel]
    required_fields: Dict[str, Dict[str, Any]]
    optional_fields: Dict[str, Dict[str, Any]] = {}

    def item_schema(self) -> Dict[str, Any]:
        properties = dict(self.required_fields)
        properties.update({name: _nullable(prop) for name, prop in self.optional_fields.items()})
        return {
            "type": "object",
            "properties": properties,
            "required": list(properties.keys()),
            "additionalProperties": False,
        }

    def generate_output_schema(self, options: Optional[Sequence[Option]] = None, multiple: bool = False):
        item = self.item_schema()
        if multiple:
            prop = {
                "type": "array",
                "description": f"The {self.noun_plural} that you have selected. If there are no clear {self.noun_plural} to select, use an empty array",
                "items": item,
            }
            return json_schema_format(self.schema_name, {self.plural_key: prop})
        prop = {
            "anyOf": [item, {"type": "null"}],
            "description": f"The {self.noun} that you have selected. If there is no clear {self.noun} to select, use null",
        }
        return json_schema_format(self.schema_name, {self.singular_key: prop})

    def describe_fields(self) -> str:
        fields = list(self.required_fields)
        if self.optional_fields:
            fields.append(f"optionally {' and '.join(self.optional_fields)}")
        return ", ".join(fields)

    def build_format_instructions(self, options: Optional[Sequence[Option]] = None, multiple: bool = False) -> str:
        if multiple:
            return (
                f"Select {self.noun_plural}: select the {self.noun_plural} that fit the description. "
                f'Reply with a JSON object containing a "{self.plural_key}" array where each element has '
                f"{self.describe_fields()}. Use an empty array if none fit."
            )
        return (
            f"Select a {self.noun}: select the {self.noun} that best fits the description. "
            f'Reply with a JSON object containing a single "{self.singular_key}" object with '
            f"{self.describe_fields()}, or null if none fits."
        )

    def _parse_item(self, value: Any) -> Dict[str, Any]:
        if not isinstance(value, dict):
            raise ParseError(f"Each {self.noun} must be a JSON object")
        try:
            return self.item_model.model_validate(value).model_dump(exclude_none=True)
        except ValidationError as e:
            raise ParseError(f"Invalid {self.noun}: {e.errors()[0].get('msg', str(e))}") from e

    def parse_response(self, raw: str, multiple: bool = False, options: Optional[Sequence[Option]] = None):
        parsed = load_json_object(raw)
        if multiple:
            values = require_key(parsed, self.plural_key)
            if not isinstance(values, list):
                raise ParseError(f"'{self.plural_key}' must be an array")
            return {self.plural_key: [self._parse_item(v) for v in values]}

        value = require_key(parsed, self.singular_key)
        if value is None:
            return {self.singular_key: None}
        return {self.singular_key: self._parse_item(value)}

    def format_item(self, item: Dict[str, Any]) -> str:
        raise NotImplementedError

    def render_text(self, response: Any) -> str:
        if response is None:
            return ""
        if isinstance(response, dict):
            if self.plural_key in response:
                items: List[Dict[str, Any]] = response[self.plural_key] or []
                return "; ".join(self.format_item(item) for item in items)
            if self.singular_key in response:
                item = response[self.singular_key]
                return self.format_item(item) if item else ""
        return str(response)
