"""Cell hydration: the bounded model + tool loop that resolves one cell."""
import asyncio
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from gridagent.core.config import settings
from gridagent.models.grid import Cell, CellState, ColumnType
from gridagent.prompts import PromptRegistry, prompt_registry
from gridagent.services.ai.client import AIClientError, ModelClient
from gridagent.services.columns import COLUMN_TYPES, ColumnTypeDescriptor, ParseError
from gridagent.services.columns.base import format_options
from gridagent.services.tools.registry import ToolRegistry, format_tool_result, signature

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "The model returned an empty response"


class HydrationError(Exception):
    """Base exception for hydration failures that end in an error cell."""
    pass


class EmptyResponseError(HydrationError):
    """Terminal model turn produced no content."""

    def __init__(self):
        super().__init__(EMPTY_RESPONSE_MESSAGE)


class IterationLimitExceeded(HydrationError):
    """Model kept calling tools past the iteration cap."""

    def __init__(self, max_iterations: int):
        super().__init__(f"No answer after {max_iterations} model turns (tool-call limit reached)")
        self.max_iterations = max_iterations


class HydrationCancelled(HydrationError):
    def __init__(self):
        super().__init__("Hydration was cancelled")


class HydrationEngine:
    """Resolves cells from `empty` to `done` or `error`.

    Each call to `hydrate` owns its transcript and sources list, so any number
    of cells can be hydrated concurrently on one engine.
    """

    def __init__(
        self,
        model_client: ModelClient,
        tools: ToolRegistry,
        column_types: Optional[Mapping[ColumnType, ColumnTypeDescriptor]] = None,
        max_iterations: Optional[int] = None,
        initial_delay: Optional[float] = None,
        prompts: Optional[PromptRegistry] = None
    ):
        """Initialize hydration engine.

        Args:
            model_client: Model call capability
            tools: Tool registry advertised to the model
            column_types: Descriptor per column type (defaults to COLUMN_TYPES)
            max_iterations: Hard cap on model turns per cell (defaults to settings)
            initial_delay: Fixed pause before the first model call (defaults to settings)
            prompts: Prompt registry holding the hydration templates
        """
        self.model_client = model_client
        self.tools = tools
        self.column_types = column_types or COLUMN_TYPES
        self.max_iterations = settings.HYDRATION_MAX_ITERATIONS if max_iterations is None else max_iterations
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.initial_delay = settings.hydration_delay if initial_delay is None else initial_delay
        self.prompts = prompts or prompt_registry

    def system_prompt(self) -> str:
        return self.prompts.get_prompt("hydration/system.txt", {"max_iterations": self.max_iterations})

    def build_prompt(self, cell: Cell) -> str:
        """User message for one cell: row context, answer format, column description and options."""
        descriptor = self.column_types[cell.column_type]
        return self.prompts.get_prompt("hydration/user.txt", {
            "context": json.dumps(cell.context, default=str),
            "format_instructions": descriptor.build_format_instructions(cell.options, cell.multiple),
            "column_title": cell.column_title,
            "column_instructions": cell.column_instructions,
            "options": format_options(cell.options),
        })

    async def hydrate(self, cell: Cell, cancel_event: Optional[asyncio.Event] = None) -> Cell:
        """Run the hydration loop for one cell.

        Never raises for model, tool or parse failures: the returned cell is
        always terminal, either `done` with a response or `error` with a message.
        """
        sources: List[str] = []
        prompt: Optional[str] = None
        try:
            prompt = self.build_prompt(cell)
            if self.initial_delay > 0:
                await asyncio.sleep(self.initial_delay)
            response = await self._run(cell, prompt, sources, cancel_event)
        except (HydrationError, ParseError) as e:
            logger.info(f"Cell '{cell.column_title}' ended in error: {e}")
            return self._error_cell(cell, str(e), sources, prompt)
        except AIClientError as e:
            logger.warning(f"Model call failed for cell '{cell.column_title}': {e}")
            return self._error_cell(cell, f"Model call failed: {e}", sources, prompt)
        except Exception as e:
            logger.error(f"Unexpected error hydrating cell '{cell.column_title}': {e}", exc_info=True)
            return self._error_cell(cell, f"Unexpected error: {e}", sources, prompt)

        return cell.model_copy(update={
            "state": CellState.DONE,
            "response": response,
            "hydration_sources": sources,
            "error": None,
            "prompt": prompt,
        })

    async def _run(
        self,
        cell: Cell,
        prompt: str,
        sources: List[str],
        cancel_event: Optional[asyncio.Event]
    ) -> Any:
        descriptor = self.column_types[cell.column_type]
        output_schema = descriptor.generate_output_schema(cell.options, cell.multiple)
        system_prompt = self.system_prompt()
        catalog = self.tools.catalog()
        transcript: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]

        for iteration in range(1, self.max_iterations + 1):
            self._check_cancelled(cancel_event)
            response = await self.model_client.complete(
                system_prompt=system_prompt,
                transcript=transcript,
                tools=catalog,
                output_schema=output_schema,
            )
            self._check_cancelled(cancel_event)

            tool_call = response.tool_call
            if tool_call is None:
                if not response.content:
                    raise EmptyResponseError()
                return descriptor.parse_response(response.content, cell.multiple, cell.options)

            if len(response.tool_calls) > 1:
                # One tool per turn: the rest are dropped and never answered
                dropped = [tc.name for tc in response.tool_calls[1:]]
                logger.info(f"Turn {iteration}: executing {tool_call.name}, ignoring extra tool calls {dropped}")

            if iteration == self.max_iterations:
                # No turn left to read the result
                logger.info(f"Turn {iteration}: skipping {tool_call.name}, iteration limit reached")
                break

            call_id = tool_call.id or f"call_{iteration}"
            transcript.append({
                "role": "assistant",
                "content": response.content,
                "tool_calls": [{
                    "id": call_id,
                    "type": "function",
                    "function": {"name": tool_call.name, "arguments": tool_call.arguments},
                }],
            })

            try:
                arguments = json.loads(tool_call.arguments or "{}")
                if not isinstance(arguments, dict):
                    raise ValueError("arguments must be a JSON object")
            except ValueError as e:
                logger.warning(f"Turn {iteration}: unparseable arguments for {tool_call.name}: {e}")
                transcript.append({
                    "role": "tool",
                    "tool_call_id": call_id,
                    "content": json.dumps({"error": f"Invalid tool arguments: {e}"}),
                })
                continue

            logger.debug(f"Turn {iteration}: calling {signature(tool_call.name, arguments)}")
            tool_result = await self.tools.invoke(tool_call.name, arguments)
            sources.append(signature(tool_call.name, arguments))
            transcript.append({
                "role": "tool",
                "tool_call_id": call_id,
                "content": format_tool_result(tool_result),
            })

        raise IterationLimitExceeded(self.max_iterations)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise HydrationCancelled()

    @staticmethod
    def _error_cell(cell: Cell, message: str, sources: List[str], prompt: Optional[str]) -> Cell:
        return cell.model_copy(update={
            "state": CellState.ERROR,
            "response": None,
            "hydration_sources": list(sources),
            "error": message,
            "prompt": prompt,
        })
