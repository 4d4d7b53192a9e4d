"""Tests for the GitHub REST client."""
import base64
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from gridagent.services.tools.github_client import (
    PER_PAGE,
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubClient,
    GitHubClientError,
    split_repository,
)


@pytest.fixture
def mock_httpx_client():
    """Mock httpx.AsyncClient."""
    with patch("gridagent.services.tools.github_client.httpx.AsyncClient") as mock_client_class:
        client_instance = AsyncMock()
        mock_client_class.return_value = client_instance
        yield client_instance


@pytest.fixture
def github(mock_httpx_client):
    return GitHubClient(token="ghp_test", api_url="https://api.github.com")


def json_response(data, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = data
    response.text = str(data)
    return response


def test_split_repository():
    assert split_repository("acme/widgets") == ("acme", "widgets")
    for bad in ("acme", "acme/widgets/extra", "/widgets", ""):
        with pytest.raises(GitHubClientError):
            split_repository(bad)


@pytest.mark.asyncio
async def test_headers(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({"number": 1})

    await github.get_issue("acme/widgets", 1)

    call_args = mock_httpx_client.request.call_args
    assert call_args.kwargs["method"] == "GET"
    assert call_args.kwargs["url"] == "https://api.github.com/repos/acme/widgets/issues/1"
    headers = call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer ghp_test"
    assert headers["X-GitHub-Api-Version"] == "2022-11-28"


@pytest.mark.asyncio
async def test_missing_token(mock_httpx_client):
    github = GitHubClient(token="")
    with pytest.raises(GitHubAuthenticationError):
        await github.get_issue("acme/widgets", 1)
    mock_httpx_client.request.assert_not_called()


@pytest.mark.asyncio
async def test_search_issues_autopaginates(github, mock_httpx_client):
    full_page = {"items": [{"number": i} for i in range(PER_PAGE)]}
    last_page = {"items": [{"number": 1000}, {"number": 1001}]}
    mock_httpx_client.request.side_effect = [json_response(full_page), json_response(last_page)]

    items = await github.search_issues("is:issue repo:acme/widgets")

    assert len(items) == PER_PAGE + 2
    pages = [call.kwargs["params"]["page"] for call in mock_httpx_client.request.call_args_list]
    assert pages == [1, 2]


@pytest.mark.asyncio
async def test_search_issues_single_page(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({"items": [{"number": i} for i in range(PER_PAGE)]})

    items = await github.search_issues("is:issue repo:acme/widgets", page=3)

    assert len(items) == PER_PAGE
    assert mock_httpx_client.request.call_count == 1
    assert mock_httpx_client.request.call_args.kwargs["params"]["page"] == 3


@pytest.mark.asyncio
async def test_none_params_are_dropped(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response([])

    await github.list_commits("acme/widgets", author="octocat")

    params = mock_httpx_client.request.call_args.kwargs["params"]
    assert params == {"author": "octocat", "per_page": PER_PAGE}


@pytest.mark.asyncio
async def test_get_file_contents_decodes_base64(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({
        "path": "README.md",
        "sha": "abc",
        "size": 11,
        "html_url": "https://github.com/acme/widgets/blob/main/README.md",
        "encoding": "base64",
        "content": base64.b64encode(b"# Widgets\n").decode(),
    })

    data = await github.get_file_contents("acme/widgets", "/README.md")

    assert data["content"] == "# Widgets\n"
    assert data["path"] == "README.md"
    assert mock_httpx_client.request.call_args.kwargs["url"].endswith("/contents/README.md")


@pytest.mark.asyncio
async def test_directory_is_not_a_file(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response([{"path": "src/a.py"}])
    with pytest.raises(GitHubAPIError):
        await github.get_file_contents("acme/widgets", "src")


@pytest.mark.asyncio
async def test_diff_uses_diff_media_type(github, mock_httpx_client):
    response = json_response(None)
    response.text = "diff --git a/x b/x"
    mock_httpx_client.request.return_value = response

    diff = await github.get_pull_request_diff("acme/widgets", 7)

    assert diff == "diff --git a/x b/x"
    assert mock_httpx_client.request.call_args.kwargs["headers"]["Accept"] == "application/vnd.github.v3.diff"


@pytest.mark.asyncio
async def test_not_found(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({"message": "Not Found"}, status_code=404)
    with pytest.raises(GitHubAPIError) as exc_info:
        await github.get_issue("acme/widgets", 404)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_rejected_token(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({"message": "Bad credentials"}, status_code=401)
    with pytest.raises(GitHubAuthenticationError):
        await github.get_issue("acme/widgets", 1)


@pytest.mark.asyncio
async def test_server_error_message(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({"message": "Validation Failed"}, status_code=422)
    with pytest.raises(GitHubAPIError, match="Validation Failed"):
        await github.search_issues("bad query", page=1)


@pytest.mark.asyncio
async def test_network_error(github, mock_httpx_client):
    mock_httpx_client.request.side_effect = httpx.ConnectError("Connection failed")
    with pytest.raises(GitHubAPIError, match="Network error"):
        await github.get_issue("acme/widgets", 1)


@pytest.mark.asyncio
async def test_graphql_errors(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({"errors": [{"message": "Field 'x' doesn't exist"}]})
    with pytest.raises(GitHubAPIError, match="GraphQL error"):
        await github.graphql("query { x }")


@pytest.mark.asyncio
async def test_create_gist(github, mock_httpx_client):
    mock_httpx_client.request.return_value = json_response({"html_url": "https://gist.github.com/abc"}, status_code=201)

    url = await github.create_gist("grid.md", "| a |", description="My grid")

    assert url == "https://gist.github.com/abc"
    payload = mock_httpx_client.request.call_args.kwargs["json"]
    assert payload["files"] == {"grid.md": {"content": "| a |"}}
    assert payload["public"] is False
