"""Tests for primary-column bootstrap."""
import pytest

from conftest import ScriptedModelClient, text_response, tool_response
from gridagent.services.ai.client import AINetworkError
from gridagent.services.bootstrap import PrimaryColumnBootstrap
from gridagent.services.tools.registry import Tool, ToolRegistry


@pytest.mark.asyncio
async def test_query_becomes_issue_grid(bootstrap, model_client):
    model_client.responses = [tool_response(("listIssues", {"repository": "acme/widgets", "state": "open"}))]

    result = await bootstrap.create_primary_column("open issues in acme/widgets")

    assert result.success is True
    grid = result.grid
    assert grid.title == "open issues in acme/widgets"
    assert grid.primary_column_type == "issue"
    assert len(grid.rows) == 2
    assert [row.display_value for row in grid.rows] == ["Crash on save (#1)", "Add dark mode (#2)"]
    assert all(row.type == "issue" for row in grid.rows)
    assert grid.rows[0].context["assignee_handle"] == "octocat"
    assert grid.columns == []

    call = model_client.calls[0]
    assert call["transcript"] == [{"role": "user", "content": "open issues in acme/widgets"}]
    assert {t["function"]["name"] for t in call["tools"]} == {"listIssues", "getIssue", "listIssueComments"}


@pytest.mark.asyncio
async def test_model_declines_with_message(bootstrap, model_client):
    model_client.responses = [text_response("I can only list things that live on GitHub.")]

    result = await bootstrap.create_primary_column("best pizza in town")

    assert result.success is False
    assert result.grid is None
    assert result.message == "I can only list things that live on GitHub."


@pytest.mark.asyncio
async def test_model_declines_without_message(bootstrap, model_client):
    model_client.responses = [text_response(None)]

    result = await bootstrap.create_primary_column("???")

    assert result.success is False
    assert result.message == "Something went wrong"


@pytest.mark.asyncio
async def test_tool_error_is_a_decline(bootstrap, model_client):
    model_client.responses = [tool_response(("listIssues", {"repository": "acme/missing"}))]

    result = await bootstrap.create_primary_column("issues in acme/missing")

    assert result.success is False
    assert "acme/missing" in result.message


@pytest.mark.asyncio
async def test_empty_result_is_a_decline(model_client):
    async def no_rows(**kwargs):
        return []

    tools = ToolRegistry([Tool(name="listIssues", description="", parameters={}, run=no_rows)])
    bootstrap = PrimaryColumnBootstrap(model_client, tools)
    model_client.responses = [tool_response(("listIssues", {"repository": "acme/widgets"}))]

    result = await bootstrap.create_primary_column("closed issues in acme/widgets")

    assert result.success is False
    assert result.message == "The query returned no results"


@pytest.mark.asyncio
async def test_rows_are_capped():
    async def many_rows(**kwargs):
        return [{"type": "commit", "sha": f"{i:040d}", "value": f"commit {i}"} for i in range(10)]

    client = ScriptedModelClient([tool_response(("listCommits", {"repository": "acme/widgets"}))])
    tools = ToolRegistry([Tool(name="listCommits", description="", parameters={}, run=many_rows)])
    bootstrap = PrimaryColumnBootstrap(client, tools, max_rows=3)

    result = await bootstrap.create_primary_column("recent commits")

    assert result.success is True
    assert [row.display_value for row in result.grid.rows] == ["commit 0", "commit 1", "commit 2"]
    assert result.grid.primary_column_type == "commit"


@pytest.mark.asyncio
async def test_single_object_result_becomes_one_row():
    async def one_file(**kwargs):
        return {"type": "file", "path": "README.md", "value": "README.md"}

    client = ScriptedModelClient([tool_response(("readFile", {"repository": "acme/widgets", "path": "README.md"}))])
    tools = ToolRegistry([Tool(name="readFile", description="", parameters={}, run=one_file)])

    result = await PrimaryColumnBootstrap(client, tools).create_primary_column("the readme")

    assert result.success is True
    assert len(result.grid.rows) == 1
    assert result.grid.primary_column_type == "file"


@pytest.mark.asyncio
async def test_model_transport_error_propagates(bootstrap, model_client):
    model_client.responses = [AINetworkError("timeout")]

    with pytest.raises(AINetworkError):
        await bootstrap.create_primary_column("open issues in acme/widgets")
