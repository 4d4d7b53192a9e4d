"""Commit reference column type."""
from typing import Optional

from pydantic import BaseModel

from gridagent.models.grid import ColumnType
from gridagent.services.columns.references import ReferenceColumnType


class CommitReference(BaseModel):
    sha: str
    repository: str
    message: Optional[str] = None


class CommitColumnType(ReferenceColumnType):
    type = ColumnType.COMMIT
    singular_key = "commit"
    plural_key = "commits"
    schema_name = "commit_response"
    noun = "commit"
    noun_plural = "commits"
    item_model = CommitReference
    required_fields = {
        "sha": {"type": "string"},
        "repository": {"type": "string", "description": "Repository as :owner/:name"},
    }
    optional_fields = {
        "message": {"type": "string"},
    }

    def format_item(self, item: dict) -> str:
        url = f"https://github.com/{item['repository']}/commit/{item['sha']}"
        label = f"{item['repository']}@{item['sha'][:7]}"
        if item.get("message"):
            # First line only
            label = f"{label} {item['message'].splitlines()[0]}"
        return f"[{label}]({url})"
