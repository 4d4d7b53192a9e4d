"""GitHub retrieval tools offered to the model."""
import functools
import logging
from typing import Any, Dict, List, Optional

from gridagent.services.tools.github_client import GitHubClient, GitHubClientError, split_repository
from gridagent.services.tools.registry import Tool, ToolInvocationError

logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 20000
MAX_FILE_CHARS = 20000

REPOSITORY_PARAM = {
    "type": "string",
    "description": "Required. The owner and name of a repository represented as :owner/:name. Do not guess. Confirm with the user if you are unsure.",
}


def github_errors(func):
    """Convert GitHub client failures into tool errors the model can read."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except GitHubClientError as e:
            raise ToolInvocationError(f"GitHub error: {e}") from e
    return wrapper


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}\n... [truncated {len(text) - limit} characters]"


def _issue_row(data: Dict[str, Any], kind: str, repository: str) -> Dict[str, Any]:
    assignee = data.get("assignee") or {}
    user = data.get("user") or {}
    return {
        "type": kind,
        "repository": repository,
        "number": data.get("number"),
        "title": data.get("title"),
        "state": data.get("state"),
        "body": data.get("body"),
        "url": data.get("html_url"),
        "labels": [label.get("name") for label in data.get("labels") or [] if isinstance(label, dict)],
        "assignee_handle": assignee.get("login"),
        "opener_handle": user.get("login"),
        "created_at": data.get("created_at"),
        "closed_at": data.get("closed_at"),
        "value": f"{data.get('title')} (#{data.get('number')})",
    }


def _commit_row(data: Dict[str, Any], repository: str) -> Dict[str, Any]:
    commit = data.get("commit") or {}
    author = data.get("author") or {}
    message = commit.get("message") or ""
    return {
        "type": "commit",
        "repository": repository,
        "sha": data.get("sha"),
        "message": message,
        "author_handle": author.get("login"),
        "author_name": (commit.get("author") or {}).get("name"),
        "date": (commit.get("author") or {}).get("date"),
        "url": data.get("html_url"),
        "value": f"{message.splitlines()[0] if message else ''} ({(data.get('sha') or '')[:7]})",
    }


def _search_filters(kind: str, repository: str, state: Optional[str], assignee: Optional[str], label: Optional[str]) -> str:
    filters = [f"is:{'pr' if kind == 'pull-request' else 'issue'}", f"repo:{repository}"]
    if state and state != "all":
        filters.append(f"state:{state}")
    if assignee:
        filters.append(f"assignee:{assignee}")
    if label:
        filters.append(f"label:{label}")
    return " ".join(filters)


@github_errors
async def list_issues(
    github: GitHubClient,
    repository: str,
    assignee: Optional[str] = None,
    state: str = "open",
    page: Optional[int] = None,
    label: Optional[str] = None
) -> List[Dict[str, Any]]:
    items = await github.search_issues(_search_filters("issue", repository, state, assignee, label), page=int(page) if page else None)
    return [_issue_row(item, "issue", repository) for item in items]


@github_errors
async def list_pull_requests(
    github: GitHubClient,
    repository: str,
    assignee: Optional[str] = None,
    state: str = "open",
    page: Optional[int] = None,
    label: Optional[str] = None
) -> List[Dict[str, Any]]:
    items = await github.search_issues(_search_filters("pull-request", repository, state, assignee, label), page=int(page) if page else None)
    return [_issue_row(item, "pull-request", repository) for item in items]


@github_errors
async def get_issue(github: GitHubClient, repository: str, issue_number: int) -> Dict[str, Any]:
    data = await github.get_issue(repository, int(issue_number))
    kind = "pull-request" if data.get("pull_request") else "issue"
    return _issue_row(data, kind, repository)


@github_errors
async def list_issue_comments(github: GitHubClient, repository: str, issue_number: int) -> List[Dict[str, Any]]:
    comments = await github.list_issue_comments(repository, int(issue_number))
    return [
        {
            "type": "comment",
            "author_handle": (c.get("user") or {}).get("login"),
            "body": c.get("body"),
            "created_at": c.get("created_at"),
            "url": c.get("html_url"),
            "value": (c.get("body") or "")[:80],
        }
        for c in comments
    ]


@github_errors
async def list_commits(
    github: GitHubClient,
    repository: str,
    path: Optional[str] = None,
    author: Optional[str] = None,
    sha: Optional[str] = None,
    page: Optional[int] = None
) -> List[Dict[str, Any]]:
    commits = await github.list_commits(repository, path=path, author=author, sha=sha, page=int(page) if page else None)
    return [_commit_row(c, repository) for c in commits]


@github_errors
async def get_commit(github: GitHubClient, repository: str, ref: str) -> Dict[str, Any]:
    data = await github.get_commit(repository, ref)
    row = _commit_row(data, repository)
    row["files"] = [
        {"filename": f.get("filename"), "status": f.get("status"), "additions": f.get("additions"), "deletions": f.get("deletions")}
        for f in data.get("files") or []
    ]
    return row


@github_errors
async def list_pull_requests_for_commit(github: GitHubClient, repository: str, commit_sha: str) -> List[Dict[str, Any]]:
    pulls = await github.list_pull_requests_for_commit(repository, commit_sha)
    return [_issue_row(p, "pull-request", repository) for p in pulls]


@github_errors
async def retrieve_diff_from_sha(github: GitHubClient, repository: str, sha: str) -> str:
    return _truncate(await github.get_commit_diff(repository, sha), MAX_DIFF_CHARS)


@github_errors
async def retrieve_diff_from_pull_request(github: GitHubClient, repository: str, pullRequestId: int) -> str:
    return _truncate(await github.get_pull_request_diff(repository, int(pullRequestId)), MAX_DIFF_CHARS)


@github_errors
async def read_file(github: GitHubClient, repository: str, path: str, ref: Optional[str] = None) -> Dict[str, Any]:
    data = await github.get_file_contents(repository, path, ref=ref)
    data["content"] = _truncate(data["content"], MAX_FILE_CHARS)
    data.update({"type": "file", "repository": repository, "value": data["path"]})
    return data


@github_errors
async def semantic_code_search(github: GitHubClient, repository: str, query: str) -> List[Dict[str, Any]]:
    items = await github.search_code(repository, query)
    return [
        {
            "type": "snippet",
            "repository": repository,
            "path": item.get("path"),
            "url": item.get("html_url"),
            "value": item.get("path"),
        }
        for item in items
    ]


LIST_DISCUSSIONS_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    discussions(first: 50, orderBy: {field: UPDATED_AT, direction: DESC}) {
      nodes { number title url author { login } category { name } createdAt answer { id } }
    }
  }
}
"""

GET_DISCUSSION_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    discussion(number: $number) {
      number title body url author { login } category { name } createdAt
      comments(first: 50) { nodes { body author { login } createdAt } }
    }
  }
}
"""


def _discussion_row(node: Dict[str, Any], repository: str) -> Dict[str, Any]:
    return {
        "type": "discussion",
        "repository": repository,
        "number": node.get("number"),
        "title": node.get("title"),
        "url": node.get("url"),
        "author_handle": (node.get("author") or {}).get("login"),
        "category": (node.get("category") or {}).get("name"),
        "created_at": node.get("createdAt"),
        "value": f"{node.get('title')} (#{node.get('number')})",
    }


@github_errors
async def list_discussions(github: GitHubClient, repository: str) -> List[Dict[str, Any]]:
    owner, name = split_repository(repository)
    data = await github.graphql(LIST_DISCUSSIONS_QUERY, {"owner": owner, "name": name})
    nodes = (((data.get("repository") or {}).get("discussions") or {}).get("nodes")) or []
    return [_discussion_row(node, repository) for node in nodes]


@github_errors
async def get_discussion(github: GitHubClient, repository: str, number: int) -> Dict[str, Any]:
    owner, name = split_repository(repository)
    data = await github.graphql(GET_DISCUSSION_QUERY, {"owner": owner, "name": name, "number": int(number)})
    node = (data.get("repository") or {}).get("discussion")
    if not node:
        raise ToolInvocationError(f"Discussion #{number} not found in {repository}")
    row = _discussion_row(node, repository)
    row["body"] = node.get("body")
    row["comments"] = [
        {"author_handle": (c.get("author") or {}).get("login"), "body": c.get("body"), "created_at": c.get("createdAt")}
        for c in ((node.get("comments") or {}).get("nodes") or [])
    ]
    return row


ISSUE_FILTER_PARAMS = {
    "repository": REPOSITORY_PARAM,
    "page": {"type": "number", "description": "The page of results to return. Omit to fetch all pages."},
    "assignee": {
        "type": "string",
        "description": "The login of a user to filter by, e.g. mamuso. Pass 'none' for no assignee and '*' for any assignee.",
    },
    "label": {"type": "string", "description": "A label name to filter by."},
    "state": {
        "type": "string",
        "enum": ["open", "closed", "all"],
        "description": "The state of the results to return. Defaults to open.",
    },
}


def _params(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


def build_github_tools(github: GitHubClient) -> List[Tool]:
    """Bind the GitHub tool implementations to one client."""
    bind = functools.partial
    return [
        Tool(
            name="listIssues",
            description="Retrieves a list of issues for a given repository. Do NOT use this for listing pull requests.",
            parameters=_params(ISSUE_FILTER_PARAMS, ["repository"]),
            run=bind(list_issues, github),
        ),
        Tool(
            name="listPullRequests",
            description="Retrieves a list of pull requests for a given repository.",
            parameters=_params(ISSUE_FILTER_PARAMS, ["repository"]),
            run=bind(list_pull_requests, github),
        ),
        Tool(
            name="getIssue",
            description="Retrieves a single issue or pull request by number.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "issue_number": {"type": "number", "description": "The issue or pull request number."},
            }, ["repository", "issue_number"]),
            run=bind(get_issue, github),
        ),
        Tool(
            name="listIssueComments",
            description="Retrieves the comments on an issue or pull request.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "issue_number": {"type": "number", "description": "The issue or pull request number."},
            }, ["repository", "issue_number"]),
            run=bind(list_issue_comments, github),
        ),
        Tool(
            name="listCommits",
            description="Retrieves a list of commits for a repository, optionally filtered by path, author or starting SHA/branch.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "path": {"type": "string", "description": "Only commits touching this file path."},
                "author": {"type": "string", "description": "GitHub login or email of the commit author."},
                "sha": {"type": "string", "description": "SHA or branch to start listing commits from."},
                "page": {"type": "number", "description": "The page of commits to return, defaults to 1."},
            }, ["repository"]),
            run=bind(list_commits, github),
        ),
        Tool(
            name="getCommit",
            description="Retrieves a single commit, including the files it changed.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "ref": {"type": "string", "description": "The commit SHA, branch or tag."},
            }, ["repository", "ref"]),
            run=bind(get_commit, github),
        ),
        Tool(
            name="listPullRequestsForCommit",
            description="Lists the pull requests associated with a commit.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "commit_sha": {"type": "string", "description": "The commit SHA."},
            }, ["repository", "commit_sha"]),
            run=bind(list_pull_requests_for_commit, github),
        ),
        Tool(
            name="retrieveDiffFromSHA",
            description="Retrieves the diff introduced by a commit.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "sha": {"type": "string", "description": "The commit SHA."},
            }, ["repository", "sha"]),
            run=bind(retrieve_diff_from_sha, github),
        ),
        Tool(
            name="retrieveDiffFromPullRequest",
            description="Retrieves the diff of a pull request.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "pullRequestId": {"type": "number", "description": "The pull request number."},
            }, ["repository", "pullRequestId"]),
            run=bind(retrieve_diff_from_pull_request, github),
        ),
        Tool(
            name="readFile",
            description="Reads the contents of a file in a repository.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "path": {"type": "string", "description": "Path of the file within the repository."},
                "ref": {"type": "string", "description": "Branch, tag or SHA. Defaults to the default branch."},
            }, ["repository", "path"]),
            run=bind(read_file, github),
        ),
        Tool(
            name="semanticCodeSearch",
            description="Searches the code of a repository and returns matching files.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "query": {"type": "string", "description": "What to search for."},
            }, ["repository", "query"]),
            run=bind(semantic_code_search, github),
        ),
        Tool(
            name="listDiscussions",
            description="Lists the most recently updated discussions of a repository.",
            parameters=_params({"repository": REPOSITORY_PARAM}, ["repository"]),
            run=bind(list_discussions, github),
        ),
        Tool(
            name="getDiscussion",
            description="Retrieves a discussion and its comments by number.",
            parameters=_params({
                "repository": REPOSITORY_PARAM,
                "number": {"type": "number", "description": "The discussion number."},
            }, ["repository", "number"]),
            run=bind(get_discussion, github),
        ),
    ]
