"""Issue or pull request reference column type."""
from typing import Literal, Optional

from pydantic import BaseModel

from gridagent.models.grid import ColumnType
from gridagent.services.columns.references import ReferenceColumnType


class IssueReference(BaseModel):
    number: int
    repository: str
    type: Literal["issue", "pull-request"]
    title: Optional[str] = None


def issue_url(reference: dict) -> str:
    segment = "issues" if reference["type"] == "issue" else "pull"
    return f"https://github.com/{reference['repository']}/{segment}/{reference['number']}"


class IssuePRColumnType(ReferenceColumnType):
    type = ColumnType.ISSUE_PR
    singular_key = "reference"
    plural_key = "references"
    schema_name = "issue_pr_response"
    noun = "issue or pull request"
    noun_plural = "issues or pull requests"
    item_model = IssueReference
    required_fields = {
        "number": {"type": "integer"},
        "repository": {"type": "string", "description": "Repository as :owner/:name"},
        "type": {"type": "string", "enum": ["issue", "pull-request"]},
    }
    optional_fields = {
        "title": {"type": "string"},
    }

    def format_item(self, item: dict) -> str:
        label = f"{item['repository']}#{item['number']}"
        if item.get("title"):
            label = f"{label} {item['title']}"
        return f"[{label}]({issue_url(item)})"
