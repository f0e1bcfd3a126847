import asyncio
from typing import Any

import aiohttp
import gidgethub
from gidgethub.abc import GitHubAPI
from sanic.log import logger

from prherald.github.model import PullRequest, Repository
from prherald.metric import comment_counter, record_api_call

API_VERSION = "2022-11-28"


class API:
    gh: GitHubAPI
    dry_run: bool

    call_count: int

    def __init__(self, gh: GitHubAPI, dry_run: bool = False):
        self.gh = gh
        self.dry_run = dry_run
        self.call_count = 0

    def _count(self, endpoint: str) -> None:
        self.call_count += 1
        record_api_call(endpoint)

    async def create_comment(
        self, owner: str, repo: str, issue_number: int, body: str
    ) -> bool:
        url = f"/repos/{owner}/{repo}/issues/{issue_number}/comments"

        if self.dry_run:
            logger.info("Dry run, not posting comment on %s: %s", url, body)
            comment_counter.labels(result="dry_run").inc()
            return True

        self._count(url)
        logger.debug("Creating comment %s", url)
        try:
            await self.gh.post(
                url,
                data={"body": body},
                extra_headers={"X-GitHub-Api-Version": API_VERSION},
            )
        except gidgethub.BadRequest as e:
            logger.error(
                "Error creating comment! Status: %d. Message: %s",
                e.status_code,
                e,
            )
            comment_counter.labels(result="failure").inc()
            return False
        except (
            gidgethub.GitHubException,
            aiohttp.ClientError,
            asyncio.TimeoutError,
        ) as e:
            logger.error("Error creating comment on %s: %s", url, e)
            comment_counter.labels(result="failure").inc()
            return False

        logger.info("Comment created on %s/%s#%d", owner, repo, issue_number)
        comment_counter.labels(result="success").inc()
        return True

    async def graphql(self, query: str, **variables: Any) -> Any:
        self._count("graphql")
        return await self.gh.graphql(query, **variables)

    async def get_pull(self, owner: str, repo: str, number: int) -> PullRequest:
        url = f"/repos/{owner}/{repo}/pulls/{number}"
        self._count(url)
        logger.debug("Get pull %s", url)
        return PullRequest.model_validate(await self.gh.getitem(url))

    async def get_repository(self, owner: str, repo: str) -> Repository:
        url = f"/repos/{owner}/{repo}"
        self._count(url)
        return Repository.model_validate(await self.gh.getitem(url))
