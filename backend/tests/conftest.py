"""Pytest configuration and fixtures."""
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import pytest

from gridagent.models.grid import Grid, PrimaryRow
from gridagent.services.ai.models import ChatResponse, ToolCall
from gridagent.services.bootstrap import PrimaryColumnBootstrap
from gridagent.services.grid.memory_store import MemoryGridStore
from gridagent.services.grid.orchestrator import GridOrchestrator
from gridagent.services.hydration import HydrationEngine
from gridagent.services.tools.registry import Tool, ToolInvocationError, ToolRegistry


def text_response(content: Optional[str]) -> ChatResponse:
    """Terminal model turn."""
    return ChatResponse(content=content, model="gpt-4o")


def tool_response(*calls: tuple) -> ChatResponse:
    """Model turn requesting one or more tool calls given as (name, arguments) pairs."""
    return ChatResponse(
        content=None,
        model="gpt-4o",
        finish_reason="tool_calls",
        tool_calls=[
            ToolCall(name=name, arguments=json.dumps(args), id=f"call_{name}_{i}")
            for i, (name, args) in enumerate(calls)
        ],
    )


class ScriptedModelClient:
    """Stands in for ModelClient.complete.

    Replies come from `responses` in order, or from `responder(transcript)`
    when one is given. Exceptions in either are raised instead of returned.
    """

    def __init__(
        self,
        responses: Optional[List[Any]] = None,
        responder: Optional[Callable[[List[Dict[str, Any]]], Awaitable[Any]]] = None
    ):
        self.responses = list(responses or [])
        self.responder = responder
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, system_prompt, transcript, tools=None, output_schema=None, tool_choice="auto"):
        self.calls.append({
            "system_prompt": system_prompt,
            "transcript": [dict(message) for message in transcript],
            "tools": tools,
            "output_schema": output_schema,
            "tool_choice": tool_choice,
        })
        if self.responder is not None:
            result = await self.responder(transcript)
        else:
            result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def chat(self, messages, **kwargs):
        return await self.complete(system_prompt="", transcript=messages)

    async def close(self):
        pass


ISSUES = [
    {
        "type": "issue",
        "repository": "acme/widgets",
        "number": 1,
        "title": "Crash on save",
        "state": "open",
        "assignee_handle": "octocat",
        "value": "Crash on save (#1)",
    },
    {
        "type": "issue",
        "repository": "acme/widgets",
        "number": 2,
        "title": "Add dark mode",
        "state": "open",
        "assignee_handle": None,
        "value": "Add dark mode (#2)",
    },
]


async def fake_list_issues(repository: str, state: str = "open", **kwargs) -> List[Dict[str, Any]]:
    if repository != "acme/widgets":
        raise ToolInvocationError(f"GitHub error: Not found: {repository}")
    return [dict(issue) for issue in ISSUES]


async def fake_get_issue(repository: str, issue_number: int) -> Dict[str, Any]:
    for issue in ISSUES:
        if issue["number"] == int(issue_number):
            return dict(issue, body="Steps to reproduce...")
    raise ToolInvocationError(f"GitHub error: Not found: issue {issue_number}")


async def fake_list_issue_comments(repository: str, issue_number: int) -> List[Dict[str, Any]]:
    return [{"type": "comment", "author_handle": "hubot", "body": "Confirmed on main", "value": "Confirmed on main"}]


REPOSITORY_ONLY = {
    "type": "object",
    "properties": {"repository": {"type": "string"}},
    "required": ["repository"],
}

ISSUE_PARAMS = {
    "type": "object",
    "properties": {"repository": {"type": "string"}, "issue_number": {"type": "number"}},
    "required": ["repository", "issue_number"],
}


@pytest.fixture
def tool_registry():
    """Registry with GitHub-shaped fake tools."""
    return ToolRegistry([
        Tool(name="listIssues", description="List issues", parameters=REPOSITORY_ONLY, run=fake_list_issues),
        Tool(name="getIssue", description="Get an issue", parameters=ISSUE_PARAMS, run=fake_get_issue),
        Tool(
            name="listIssueComments",
            description="List comments",
            parameters=ISSUE_PARAMS,
            run=fake_list_issue_comments,
        ),
    ])


@pytest.fixture
def model_client():
    return ScriptedModelClient()


@pytest.fixture
def engine(model_client, tool_registry):
    return HydrationEngine(model_client, tool_registry, max_iterations=4, initial_delay=0)


@pytest.fixture
def bootstrap(model_client, tool_registry):
    return PrimaryColumnBootstrap(model_client, tool_registry, max_rows=25)


@pytest.fixture
def grid_store():
    return MemoryGridStore()


@pytest.fixture
def orchestrator(grid_store, engine, bootstrap):
    return GridOrchestrator(grid_store, engine, bootstrap)


@pytest.fixture
def issue_grid(grid_store):
    """Stored grid with the two fake issues as primary rows."""
    grid = Grid(
        title="open issues in acme/widgets",
        primary_column_type="issue",
        rows=[PrimaryRow.from_tool_result(issue) for issue in ISSUES],
    )
    grid_store.save_grid(grid)
    return grid


@pytest.fixture
def client(orchestrator, tool_registry):
    """Create a test client with service dependencies overridden."""
    from fastapi.testclient import TestClient
    from gridagent.api.dependencies import get_orchestrator, get_tool_registry
    from gridagent.main import app

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_tool_registry] = lambda: tool_registry

    test_client = TestClient(app)

    try:
        yield test_client
    finally:
        # Clean up override
        app.dependency_overrides.clear()
