"""FastAPI dependencies resolving the services built at startup."""
from fastapi import HTTPException, Request, status

from gridagent.services.grid.orchestrator import GridOrchestrator
from gridagent.services.tools.github_client import GitHubClient
from gridagent.services.tools.registry import ToolRegistry


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service not initialized: {name}"
        )
    return service


def get_orchestrator(request: Request) -> GridOrchestrator:
    return _state(request, "orchestrator")


def get_tool_registry(request: Request) -> ToolRegistry:
    return _state(request, "tool_registry")


def get_github_client(request: Request) -> GitHubClient:
    return _state(request, "github")
