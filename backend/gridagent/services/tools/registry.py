"""Tool registry: named, schema-described async functions offered to the model."""
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class ToolInvocationError(Exception):
    """A tool implementation failed (network, auth, not found, bad arguments)."""
    pass


@dataclass(frozen=True)
class Tool:
    """One tool: OpenAI function definition plus its async implementation."""
    name: str
    description: str
    parameters: Dict[str, Any]
    run: Callable[..., Awaitable[Any]]

    def definition(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def signature(tool_name: str, arguments: Dict[str, Any]) -> str:
    """Human-readable record of one invocation, e.g. `getIssue(repository=a/b, issue_number=3)`."""
    args = ", ".join(f"{key}={value}" for key, value in arguments.items())
    return f"{tool_name}({args})"


def format_tool_result(tool_result: Dict[str, Any]) -> str:
    """Serialize a tool result for the transcript."""
    if tool_result["status"] == "error":
        return json.dumps({"error": tool_result.get("message", "Unknown error")})
    data = tool_result.get("data")
    if isinstance(data, str):
        return data
    return json.dumps(data, default=str)


class ToolRegistry:
    """Process-wide catalog of tools, shared by hydration and bootstrap."""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> List[str]:
        return list(self._tools.keys())

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def catalog(self) -> List[Dict[str, Any]]:
        """Tool definitions in OpenAI "tools" format."""
        return [tool.definition() for tool in self._tools.values()]

    async def invoke(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute a tool by name with given arguments.

        Never raises for tool failures: unknown tools and implementation errors
        come back as {"status": "error", "message": ...} so the model can re-plan.

        Returns:
            Dictionary with status and result data
        """
        tool = self._tools.get(tool_name)
        if tool is None:
            logger.error(f"Model requested unknown tool: {tool_name}")
            return {
                "status": "error",
                "message": f"Unknown tool: {tool_name}",
                "available_tools": self.names,
                "tool": tool_name,
            }

        try:
            result = await tool.run(**arguments)
            logger.debug(f"Tool {tool_name} succeeded")
            return {
                "status": "success",
                "data": result,
                "tool": tool_name,
            }
        except ToolInvocationError as e:
            logger.warning(f"Tool {tool_name} failed: {e}")
            return {
                "status": "error",
                "message": str(e),
                "tool": tool_name,
            }
        except TypeError as e:
            # Arguments that do not match the implementation's signature
            logger.warning(f"Bad arguments for {tool_name}: {e}")
            return {
                "status": "error",
                "message": f"Invalid arguments for {tool_name}: {e}",
                "tool": tool_name,
            }
        except Exception as e:
            logger.error(f"Error executing {tool_name}: {e}", exc_info=True)
            return {
                "status": "error",
                "message": f"Error executing tool: {e}",
                "tool": tool_name,
            }
