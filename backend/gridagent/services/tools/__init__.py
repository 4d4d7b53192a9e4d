"""Tools offered to the model and the registry that invokes them."""
import httpx

from gridagent.services.ai.client import ModelClient
from gridagent.services.tools.github_client import GitHubClient
from gridagent.services.tools.github_tools import build_github_tools
from gridagent.services.tools.registry import (
    Tool,
    ToolInvocationError,
    ToolRegistry,
    format_tool_result,
    signature,
)
from gridagent.services.tools.web_tools import build_web_tools


def build_default_registry(
    github: GitHubClient,
    model_client: ModelClient,
    http: httpx.AsyncClient
) -> ToolRegistry:
    """Registry holding every GitHub and web tool.

    `http` is used for web search; the caller owns it and closes it.
    """
    return ToolRegistry([*build_github_tools(github), *build_web_tools(http, model_client)])


__all__ = [
    "Tool",
    "ToolInvocationError",
    "ToolRegistry",
    "build_default_registry",
    "format_tool_result",
    "signature",
]
