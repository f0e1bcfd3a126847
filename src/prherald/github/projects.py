"""Lookup of the GitHub Projects a pull request is linked to.

Two strategies exist. The direct one reads ``projectItems`` on the pull
request node and needs an installation token with pull request project
access. The issue strategy reads the same pull request through its issue
alias, which a personal access token can see under grants where the pull
request connection is not readable, and also returns the ``Status`` field of
each item.
"""

import asyncio
import base64
import binascii
import re
from abc import ABC, abstractmethod
from typing import List

import aiohttp
import gidgethub
import pydantic
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.abc import GitHubAPI
from sanic.log import logger

from prherald.config import Settings
from prherald.github.api import API
from prherald.github.model import (
    ProjectAssociation,
    ProjectItemConnection,
    PullRequest,
)
from prherald.metric import resolver_error_counter

REQUESTER = "prherald"

_LEGACY_PR_ID = re.compile(r"\d+:PullRequest(\d+)")


def alias_issue_node_id(node_id: str) -> str:
    if node_id.startswith("PR_"):
        return "I_" + node_id[len("PR_") :]

    try:
        decoded = base64.b64decode(node_id, validate=True).decode()
    except (binascii.Error, UnicodeDecodeError):
        raise ValueError(f"Not a pull request node id: {node_id}")

    m = _LEGACY_PR_ID.fullmatch(decoded)
    if m is None:
        raise ValueError(f"Not a pull request node id: {node_id}")
    return base64.b64encode(f"05:Issue{m.group(1)}".encode()).decode()


def unique(associations: List[ProjectAssociation]) -> List[ProjectAssociation]:
    seen = set()
    result = []
    for association in associations:
        key = str(association)
        if key in seen:
            continue
        seen.add(key)
        result.append(association)
    return result


class ProjectResolver(ABC):
    name: str
    QUERY: str

    api: API

    def __init__(self, api: API):
        self.api = api

    @abstractmethod
    def _node_id(self, pr: PullRequest) -> str:
        ...

    async def resolve(self, pr: PullRequest) -> List[ProjectAssociation]:
        logger.debug("Resolving projects for %s (node %s)", pr, pr.node_id)
        try:
            node_id = self._node_id(pr)
            data = await self.api.graphql(self.QUERY, id=node_id)
            node = (data or {}).get("node")
            if node is None:
                logger.warning("Node %s not found, assuming no projects", node_id)
                return []
            items = ProjectItemConnection.model_validate(
                node.get("projectItems") or {}
            )
        except (
            gidgethub.GitHubException,
            aiohttp.ClientError,
            asyncio.TimeoutError,
            pydantic.ValidationError,
            AttributeError,
            ValueError,
        ) as e:
            logger.error("Error querying projectItems for %s: %s", pr, e)
            resolver_error_counter.labels(strategy=self.name).inc()
            return []

        associations = [
            a
            for a in (item.to_association() for item in items.nodes if item)
            if a is not None
        ]
        projects = unique(associations)
        logger.debug("%s has projects: %s", pr, [str(p) for p in projects])
        return projects


class DirectProjectResolver(ProjectResolver):
    name = "direct"
    QUERY = """
query($id: ID!) {
  node(id: $id) {
    ... on PullRequest {
      projectItems(first: 10) {
        nodes { project { title } }
      }
    }
  }
}
"""

    def _node_id(self, pr: PullRequest) -> str:
        return pr.node_id


class IssueProjectResolver(ProjectResolver):
    name = "issue"
    QUERY = """
query($id: ID!) {
  node(id: $id) {
    ... on Issue {
      projectItems(first: 20) {
        nodes {
          project { title }
          fieldValueByName(name: "Status") {
            ... on ProjectV2ItemFieldSingleSelectValue { name }
          }
        }
      }
    }
  }
}
"""

    def _node_id(self, pr: PullRequest) -> str:
        return alias_issue_node_id(pr.node_id)


def create_resolver(
    settings: Settings,
    installation_gh: GitHubAPI,
    session: aiohttp.ClientSession,
) -> ProjectResolver:
    if settings.project_strategy == "issue":
        gh = gh_aiohttp.GitHubAPI(
            session, REQUESTER, oauth_token=settings.github_token
        )
        return IssueProjectResolver(API(gh))
    return DirectProjectResolver(API(installation_gh))
