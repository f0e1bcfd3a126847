from typing import Any, Dict, List, Optional

import pytest

from prherald.config import Settings
from prherald.github.model import ProjectAssociation


class FakeGitHubAPI:
    def __init__(
        self,
        graphql_response: Any = None,
        graphql_error: Optional[Exception] = None,
        post_error: Optional[Exception] = None,
        items: Optional[Dict[str, Any]] = None,
    ):
        self.graphql_response = graphql_response
        self.graphql_error = graphql_error
        self.post_error = post_error
        self.items = items or {}
        self.graphql_calls: List[Dict[str, Any]] = []
        self.post_calls: List[Dict[str, Any]] = []

    async def graphql(self, query, **variables):
        self.graphql_calls.append({"query": query, "variables": variables})
        if self.graphql_error is not None:
            raise self.graphql_error
        return self.graphql_response

    async def post(self, url, *, data, extra_headers=None):
        self.post_calls.append({"url": url, "data": data, "headers": extra_headers})
        if self.post_error is not None:
            raise self.post_error
        return {"id": 1, "body": data["body"]}

    async def getitem(self, url):
        return self.items[url]


class FakeResponse:
    def __init__(
        self,
        status: int,
        body: str,
        error: Optional[Exception] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status = status
        self.body = body
        self.error = error
        self.headers = headers or {}

    async def text(self):
        return self.body

    async def read(self):
        return self.body.encode()

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    def __init__(
        self, status: int = 200, body: str = "1", error: Optional[Exception] = None
    ):
        self.status = status
        self.body = body
        self.error = error
        self.posts: List[Dict[str, Any]] = []
        self.requests: List[Dict[str, Any]] = []

    def post(self, url, json):
        self.posts.append({"url": url, "json": json})
        return FakeResponse(self.status, self.body, self.error)

    def request(self, method, url, headers=None, data=None):
        # GitHub answering a request without a token
        self.requests.append({"method": method, "url": url, "headers": headers})
        return FakeResponse(
            401,
            '{"message": "Requires authentication"}',
            headers={"content-type": "application/json; charset=utf-8"},
        )


class StaticResolver:
    name = "static"

    def __init__(self, projects: List[ProjectAssociation]):
        self.projects = projects
        self.calls = []

    async def resolve(self, pr):
        self.calls.append(pr)
        return list(self.projects)


class RecordingNotifier:
    def __init__(self, result: bool = True):
        self.result = result
        self.cards = []

    async def notify(self, card):
        self.cards.append(card)
        return self.result


def make_pull_request(
    state: str = "open",
    merged: bool = False,
    labels: Optional[List[str]] = None,
    reviewers: Optional[List[str]] = None,
    repo_name: str = "ORA_Billing",
    node_id: str = "PR_kwDOABCD1234",
) -> Dict[str, Any]:
    repo = {"name": repo_name, "full_name": f"acme/{repo_name}", "owner": {"login": "acme"}}
    return {
        "node_id": node_id,
        "number": 42,
        "title": "Add invoice export",
        "user": {
            "login": "octocat",
            "avatar_url": "https://avatars.githubusercontent.com/u/1",
        },
        "state": state,
        "merged": merged,
        "merged_at": "2025-10-15T10:00:00Z" if merged else None,
        "created_at": "2025-10-14T15:05:07Z",
        "head": {"ref": "feature/export", "repo": repo},
        "base": {"ref": "main", "repo": repo},
        "labels": [{"name": n} for n in (labels or [])],
        "requested_reviewers": [{"login": r} for r in (reviewers or [])],
        "html_url": f"https://github.com/acme/{repo_name}/pull/42",
    }


def make_pull_request_payload(action: str = "opened", **kwargs) -> Dict[str, Any]:
    pr = make_pull_request(**kwargs)
    return {
        "action": action,
        "installation": {"id": 77},
        "repository": pr["base"]["repo"],
        "pull_request": pr,
    }


@pytest.fixture
def settings():
    return Settings(
        app_id=1234,
        private_key="not-a-key",
        webhook_secret="secret",
        teams_webhook_url="https://teams.example.com/webhook",
    )
