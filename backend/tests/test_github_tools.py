"""Tests for the GitHub and web tools offered to the model."""
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from conftest import ScriptedModelClient, text_response
from gridagent.services.tools import build_default_registry
from gridagent.services.tools.github_client import GitHubAPIError
from gridagent.services.tools.github_tools import MAX_DIFF_CHARS, build_github_tools
from gridagent.services.tools.registry import ToolInvocationError, ToolRegistry
from gridagent.services.tools.web_tools import analyze_image, build_web_tools, search_with_bing

SEARCH_ITEM = {
    "number": 12,
    "title": "Crash on save",
    "state": "open",
    "body": "It crashes",
    "html_url": "https://github.com/acme/widgets/issues/12",
    "labels": [{"name": "bug"}],
    "assignee": {"login": "octocat"},
    "user": {"login": "hubot"},
}


@pytest.fixture
def github():
    return AsyncMock()


@pytest.fixture
def registry(github):
    return ToolRegistry(build_github_tools(github))


def test_github_tool_names(registry):
    assert registry.names == [
        "listIssues",
        "listPullRequests",
        "getIssue",
        "listIssueComments",
        "listCommits",
        "getCommit",
        "listPullRequestsForCommit",
        "retrieveDiffFromSHA",
        "retrieveDiffFromPullRequest",
        "readFile",
        "semanticCodeSearch",
        "listDiscussions",
        "getDiscussion",
    ]
    for definition in registry.catalog():
        assert "repository" in definition["function"]["parameters"]["required"]


@pytest.mark.asyncio
async def test_list_issues_rows(registry, github):
    github.search_issues.return_value = [SEARCH_ITEM]

    result = await registry.invoke("listIssues", {"repository": "acme/widgets", "label": "bug"})

    assert result["status"] == "success"
    row = result["data"][0]
    assert row["type"] == "issue"
    assert row["value"] == "Crash on save (#12)"
    assert row["labels"] == ["bug"]
    assert row["assignee_handle"] == "octocat"
    assert row["opener_handle"] == "hubot"
    query = github.search_issues.call_args.args[0]
    assert query == "is:issue repo:acme/widgets state:open label:bug"


@pytest.mark.asyncio
async def test_list_pull_requests_query(registry, github):
    github.search_issues.return_value = []

    await registry.invoke("listPullRequests", {"repository": "acme/widgets", "state": "all", "page": 2.0})

    assert github.search_issues.call_args.args[0] == "is:pr repo:acme/widgets"
    assert github.search_issues.call_args.kwargs["page"] == 2


@pytest.mark.asyncio
async def test_numbers_from_the_model_are_coerced(registry, github):
    github.get_issue.return_value = dict(SEARCH_ITEM, pull_request={"url": "..."})

    result = await registry.invoke("getIssue", {"repository": "acme/widgets", "issue_number": 12.0})

    github.get_issue.assert_awaited_once_with("acme/widgets", 12)
    assert result["data"]["type"] == "pull-request"


@pytest.mark.asyncio
async def test_github_errors_become_tool_errors(registry, github):
    github.get_issue.side_effect = GitHubAPIError("Not found: /repos/acme/widgets/issues/9", status_code=404)

    result = await registry.invoke("getIssue", {"repository": "acme/widgets", "issue_number": 9})

    assert result["status"] == "error"
    assert result["message"].startswith("GitHub error: Not found")


@pytest.mark.asyncio
async def test_commit_rows(registry, github):
    github.list_commits.return_value = [{
        "sha": "abcdef1234567",
        "html_url": "https://github.com/acme/widgets/commit/abcdef1234567",
        "author": {"login": "octocat"},
        "commit": {"message": "Fix save\n\nLonger text", "author": {"name": "Octo Cat", "date": "2024-01-01"}},
    }]

    result = await registry.invoke("listCommits", {"repository": "acme/widgets"})

    row = result["data"][0]
    assert row["type"] == "commit"
    assert row["value"] == "Fix save (abcdef1)"
    assert row["author_handle"] == "octocat"


@pytest.mark.asyncio
async def test_diff_is_truncated(registry, github):
    github.get_commit_diff.return_value = "x" * (MAX_DIFF_CHARS + 10)

    result = await registry.invoke("retrieveDiffFromSHA", {"repository": "acme/widgets", "sha": "abc"})

    assert result["data"].startswith("x" * MAX_DIFF_CHARS)
    assert result["data"].endswith("[truncated 10 characters]")


@pytest.mark.asyncio
async def test_read_file_row(registry, github):
    github.get_file_contents.return_value = {"path": "README.md", "content": "# Widgets", "sha": "a", "size": 9, "url": None}

    result = await registry.invoke("readFile", {"repository": "acme/widgets", "path": "README.md"})

    assert result["data"]["type"] == "file"
    assert result["data"]["value"] == "README.md"


@pytest.mark.asyncio
async def test_discussions(registry, github):
    github.graphql.return_value = {"repository": {"discussions": {"nodes": [
        {"number": 3, "title": "Roadmap", "url": "u", "author": {"login": "octocat"}, "category": {"name": "Ideas"}},
    ]}}}

    result = await registry.invoke("listDiscussions", {"repository": "acme/widgets"})

    assert result["data"][0]["value"] == "Roadmap (#3)"
    assert github.graphql.call_args.args[1] == {"owner": "acme", "name": "widgets"}


@pytest.mark.asyncio
async def test_missing_discussion(registry, github):
    github.graphql.return_value = {"repository": {"discussion": None}}

    result = await registry.invoke("getDiscussion", {"repository": "acme/widgets", "number": 5})

    assert result["status"] == "error"
    assert "#5" in result["message"]


@pytest.mark.asyncio
async def test_malformed_repository(registry, github):
    result = await registry.invoke("listDiscussions", {"repository": "widgets"})
    assert result["status"] == "error"
    assert "owner/name" in result["message"]


@pytest.mark.asyncio
async def test_search_with_bing():
    http = AsyncMock()
    response = Mock()
    response.status_code = 200
    response.json.return_value = {"webPages": {"value": [
        {"name": "Widgets docs", "url": "https://widgets.dev", "snippet": "All about widgets"},
    ]}}
    http.get.return_value = response

    results = await search_with_bing(http, "key", "https://api.bing.microsoft.com/v7.0/search", "widgets")

    assert results == [{
        "type": "item",
        "title": "Widgets docs",
        "url": "https://widgets.dev",
        "snippet": "All about widgets",
        "value": "Widgets docs",
    }]
    assert http.get.call_args.kwargs["headers"] == {"Ocp-Apim-Subscription-Key": "key"}


@pytest.mark.asyncio
async def test_search_with_bing_failure():
    http = AsyncMock()
    http.get.side_effect = httpx.ConnectError("down")
    with pytest.raises(ToolInvocationError):
        await search_with_bing(http, "key", "https://example.invalid", "widgets")


@pytest.mark.asyncio
async def test_analyze_image_sends_image_url():
    client = ScriptedModelClient([text_response("A bar chart")])

    answer = await analyze_image(client, "https://example.com/chart.png", "What is this?")

    assert answer == "A bar chart"
    content = client.calls[0]["transcript"][0]["content"]
    assert content[1] == {"type": "image_url", "image_url": {"url": "https://example.com/chart.png"}}


def test_bing_is_only_offered_with_a_key():
    with patch("gridagent.services.tools.web_tools.settings") as mock_settings:
        mock_settings.BING_API_KEY = ""
        assert [t.name for t in build_web_tools(AsyncMock(), AsyncMock())] == ["analyzeImage"]

        mock_settings.BING_API_KEY = "key"
        mock_settings.BING_ENDPOINT = "https://api.bing.microsoft.com/v7.0/search"
        assert [t.name for t in build_web_tools(AsyncMock(), AsyncMock())] == ["analyzeImage", "searchWithBing"]


def test_default_registry_combines_github_and_web_tools():
    registry = build_default_registry(AsyncMock(), AsyncMock(), http=AsyncMock())
    assert "listIssues" in registry
    assert "analyzeImage" in registry
