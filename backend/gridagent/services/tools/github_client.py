"""GitHub REST and GraphQL client."""
import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from gridagent.core.config import settings

logger = logging.getLogger(__name__)

PER_PAGE = 100  # Maximum allowed by GitHub API
MAX_AUTOPAGINATE_PAGES = 5
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""
    pass


class GitHubAuthenticationError(GitHubClientError):
    """Missing or rejected token."""
    pass


class GitHubAPIError(GitHubClientError):
    """API request errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def split_repository(repository: str) -> tuple:
    """Split `:owner/:name` into its parts."""
    parts = (repository or "").strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise GitHubClientError(f"Repository must be in the form owner/name, got '{repository}'")
    return parts[0], parts[1]


class GitHubClient:
    """Client for the GitHub API authenticated with a personal access token."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: int = 30
    ):
        """
        Initialize GitHub client.

        Args:
            token: Personal access token (defaults to settings.GITHUB_PAT)
            api_url: REST API base URL (defaults to settings.GITHUB_API_URL)
            api_version: Value for the X-GitHub-Api-Version header
            timeout: Request timeout in seconds
        """
        self.token = token if token is not None else settings.GITHUB_PAT
        self.api_url = (api_url or settings.GITHUB_API_URL).rstrip('/')
        self.api_version = api_version or settings.GITHUB_API_VERSION
        self._client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    def _headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        if not self.token:
            raise GitHubAuthenticationError("GitHub PAT not set")
        return {
            "Accept": accept,
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": self.api_version,
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        accept: str = "application/vnd.github+json"
    ) -> httpx.Response:
        url = path if path.startswith("http") else f"{self.api_url}{path}"
        headers = self._headers(accept)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                headers=headers
            )
        except httpx.RequestError as e:
            raise GitHubAPIError(f"Network error calling GitHub: {e}") from e

        if response.status_code in (401, 403):
            raise GitHubAuthenticationError(
                f"GitHub rejected the request ({response.status_code}): {response.text[:200]}"
            )
        if response.status_code == 404:
            raise GitHubAPIError(f"Not found: {path}", status_code=404)
        if response.status_code >= 400:
            message = response.text[:200]
            try:
                message = response.json().get("message", message)
            except (ValueError, AttributeError):
                pass
            raise GitHubAPIError(f"GitHub API error {response.status_code}: {message}", status_code=response.status_code)

        return response

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._request("GET", path, params=params)
        return response.json()

    async def search_issues(self, query: str, page: Optional[int] = None) -> List[Dict[str, Any]]:
        """Search issues and pull requests.

        Without a page number, follows pagination up to MAX_AUTOPAGINATE_PAGES.
        """
        autopaginate = page is None
        current = page or 1
        items: List[Dict[str, Any]] = []
        while True:
            data = await self._get_json("/search/issues", {"q": query, "page": current, "per_page": PER_PAGE})
            batch = data.get("items", [])
            items.extend(batch)
            if not autopaginate or len(batch) < PER_PAGE or current >= MAX_AUTOPAGINATE_PAGES:
                break
            current += 1
        logger.debug(f"search_issues '{query}' returned {len(items)} items")
        return items

    async def get_issue(self, repository: str, number: int) -> Dict[str, Any]:
        owner, repo = split_repository(repository)
        return await self._get_json(f"/repos/{owner}/{repo}/issues/{number}")

    async def list_issue_comments(self, repository: str, number: int) -> List[Dict[str, Any]]:
        owner, repo = split_repository(repository)
        return await self._get_json(f"/repos/{owner}/{repo}/issues/{number}/comments", {"per_page": PER_PAGE})

    async def list_commits(
        self,
        repository: str,
        path: Optional[str] = None,
        author: Optional[str] = None,
        sha: Optional[str] = None,
        page: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        owner, repo = split_repository(repository)
        params = {"path": path, "author": author, "sha": sha, "page": page, "per_page": PER_PAGE}
        return await self._get_json(f"/repos/{owner}/{repo}/commits", params)

    async def get_commit(self, repository: str, ref: str) -> Dict[str, Any]:
        owner, repo = split_repository(repository)
        return await self._get_json(f"/repos/{owner}/{repo}/commits/{ref}")

    async def list_pull_requests_for_commit(self, repository: str, sha: str) -> List[Dict[str, Any]]:
        owner, repo = split_repository(repository)
        return await self._get_json(f"/repos/{owner}/{repo}/commits/{sha}/pulls")

    async def get_commit_diff(self, repository: str, sha: str) -> str:
        owner, repo = split_repository(repository)
        response = await self._request("GET", f"/repos/{owner}/{repo}/commits/{sha}", accept=DIFF_MEDIA_TYPE)
        return response.text

    async def get_pull_request_diff(self, repository: str, number: int) -> str:
        owner, repo = split_repository(repository)
        response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}", accept=DIFF_MEDIA_TYPE)
        return response.text

    async def get_file_contents(self, repository: str, path: str, ref: Optional[str] = None) -> Dict[str, Any]:
        """Read a file, decoding base64 content."""
        owner, repo = split_repository(repository)
        data = await self._get_json(f"/repos/{owner}/{repo}/contents/{path.lstrip('/')}", {"ref": ref})
        if isinstance(data, list):
            raise GitHubAPIError(f"'{path}' is a directory, not a file")
        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            content = base64.b64decode(content).decode("utf-8", errors="replace")
        return {
            "path": data.get("path", path),
            "sha": data.get("sha"),
            "size": data.get("size"),
            "url": data.get("html_url"),
            "content": content,
        }

    async def search_code(self, repository: str, query: str) -> List[Dict[str, Any]]:
        split_repository(repository)
        data = await self._get_json("/search/code", {"q": f"{query} repo:{repository}", "per_page": 30})
        return data.get("items", [])

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self._request("POST", "/graphql", json_data={"query": query, "variables": variables or {}})
        payload = response.json()
        if payload.get("errors"):
            raise GitHubAPIError(f"GraphQL error: {payload['errors'][0].get('message')}")
        return payload.get("data", {})

    async def create_gist(self, filename: str, content: str, description: str = "", public: bool = False) -> str:
        """Create a gist and return its HTML URL."""
        response = await self._request("POST", "/gists", json_data={
            "description": description,
            "public": public,
            "files": {filename: {"content": content}},
        })
        return response.json()["html_url"]

    async def close(self):
        """Close HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
