import aiohttp
import gidgethub
import pytest

from prherald.github.api import API
from prherald.github.model import PullRequest

from conftest import FakeGitHubAPI, make_pull_request


@pytest.mark.asyncio
async def test_create_comment():
    gh = FakeGitHubAPI()
    api = API(gh)

    assert await api.create_comment("acme", "ORA_Billing", 42, "hello")
    assert gh.post_calls == [
        {
            "url": "/repos/acme/ORA_Billing/issues/42/comments",
            "data": {"body": "hello"},
            "headers": {"X-GitHub-Api-Version": "2022-11-28"},
        }
    ]
    assert api.call_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        gidgethub.BadRequest(404, "Not Found"),
        gidgethub.GitHubBroken(502, "Bad Gateway"),
        aiohttp.ClientConnectionError("refused"),
    ],
)
async def test_create_comment_failure(error):
    gh = FakeGitHubAPI(post_error=error)

    assert not await API(gh).create_comment("acme", "ORA_Billing", 42, "hello")
    assert len(gh.post_calls) == 1


@pytest.mark.asyncio
async def test_create_comment_dry_run():
    gh = FakeGitHubAPI()
    api = API(gh, dry_run=True)

    assert await api.create_comment("acme", "ORA_Billing", 42, "hello")
    assert gh.post_calls == []
    assert api.call_count == 0


@pytest.mark.asyncio
async def test_get_pull():
    data = make_pull_request()
    gh = FakeGitHubAPI(items={"/repos/acme/ORA_Billing/pulls/42": data})

    pr = await API(gh).get_pull("acme", "ORA_Billing", 42)

    assert isinstance(pr, PullRequest)
    assert pr.node_id == "PR_kwDOABCD1234"
    assert str(pr) == "PR(acme/ORA_Billing#42)"
