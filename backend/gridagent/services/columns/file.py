"""File reference column type."""
from pydantic import BaseModel

from gridagent.models.grid import ColumnType
from gridagent.services.columns.references import ReferenceColumnType


class FileReference(BaseModel):
    path: str
    repository: str


def file_url(file: dict) -> str:
    return f"https://github.com/{file['repository']}/blob/HEAD/{file['path']}"


class FileColumnType(ReferenceColumnType):
    type = ColumnType.FILE
    singular_key = "file"
    plural_key = "files"
    schema_name = "select_file_response"
    noun = "file"
    noun_plural = "files"
    item_model = FileReference
    required_fields = {
        "path": {"type": "string", "description": "Path of the file within the repository"},
        "repository": {"type": "string", "description": "Repository as :owner/:name"},
    }

    def format_item(self, item: dict) -> str:
        return f"[{item['path']}]({file_url(item)})"
