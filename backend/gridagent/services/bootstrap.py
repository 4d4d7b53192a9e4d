"""Primary-column bootstrap: one model call that picks the tool producing the grid's rows."""
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from gridagent.core.config import settings
from gridagent.models.grid import Grid, PrimaryRow
from gridagent.prompts import PromptRegistry, prompt_registry
from gridagent.services.ai.client import ModelClient
from gridagent.services.tools.registry import ToolRegistry, signature

logger = logging.getLogger(__name__)

DEFAULT_DECLINE_MESSAGE = "Something went wrong"


class BootstrapDeclineError(Exception):
    """The model answered the query without selecting a tool, or the tool produced no rows."""
    pass


@dataclass
class BootstrapResult:
    """Discriminated outcome: `grid` when success is True, `message` otherwise."""
    success: bool
    grid: Optional[Grid] = None
    message: Optional[str] = None


class PrimaryColumnBootstrap:
    def __init__(
        self,
        model_client: ModelClient,
        tools: ToolRegistry,
        max_rows: Optional[int] = None,
        prompts: Optional[PromptRegistry] = None
    ):
        self.model_client = model_client
        self.tools = tools
        self.max_rows = max_rows or settings.MAX_PRIMARY_ROWS
        self.prompts = prompts or prompt_registry

    async def create_primary_column(self, query: str) -> BootstrapResult:
        """Turn a free-text query into a new grid with its primary rows.

        Declines are reported as a failed result. Model transport errors
        (AIClientError) propagate to the caller.
        """
        try:
            grid = await self._bootstrap(query)
        except BootstrapDeclineError as e:
            logger.info(f"Bootstrap declined for query '{query}': {e}")
            return BootstrapResult(success=False, message=str(e))
        return BootstrapResult(success=True, grid=grid)

    async def _bootstrap(self, query: str) -> Grid:
        response = await self.model_client.complete(
            system_prompt=self.prompts.get_prompt("bootstrap/system.txt"),
            transcript=[{"role": "user", "content": query}],
            tools=self.tools.catalog(),
            tool_choice="auto",
        )

        tool_call = response.tool_call
        if tool_call is None:
            raise BootstrapDeclineError(response.content or DEFAULT_DECLINE_MESSAGE)

        try:
            arguments = json.loads(tool_call.arguments or "{}")
        except ValueError as e:
            raise BootstrapDeclineError(f"The model produced invalid arguments for {tool_call.name}: {e}")

        logger.info(f"Bootstrap for '{query}' calling {signature(tool_call.name, arguments)}")
        tool_result = await self.tools.invoke(tool_call.name, arguments)
        if tool_result["status"] != "success":
            raise BootstrapDeclineError(tool_result.get("message", DEFAULT_DECLINE_MESSAGE))

        rows = self._rows_from_result(tool_result["data"])
        if not rows:
            raise BootstrapDeclineError("The query returned no results")

        return Grid(
            title=query,
            primary_column_type=rows[0].type,
            rows=rows,
        )

    def _rows_from_result(self, data: Any) -> List[PrimaryRow]:
        items = data if isinstance(data, list) else [data]
        return [PrimaryRow.from_tool_result(item) for item in items[:self.max_rows] if item is not None]
