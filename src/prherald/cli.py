import asyncio
from contextlib import asynccontextmanager
import json
import logging
from typing import Optional

import aiohttp
import cachetools
from gidgethub import aiohttp as gh_aiohttp
import typer

from prherald.config import Settings, load_settings
from prherald.github.api import API
from prherald.github.model import PullRequestEvent
from prherald.github.projects import REQUESTER, create_resolver
from prherald.logger import get_log_handlers
from prherald.router import process_pull_request
from prherald.teams import build_card
from prherald.web import client_for_installation, create_app, make_delivery


logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)
logger = logging.getLogger("prherald")

app = typer.Typer()
httpcache = cachetools.LRUCache(maxsize=500)


def settings_from_context(ctx: typer.Context) -> Settings:
    return ctx.obj


@app.callback()
def init(ctx: typer.Context):
    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)
    logger.setLevel(settings.log_level)
    get_log_handlers(logger, settings)
    ctx.obj = settings


@app.command()
def serve(ctx: typer.Context):
    settings = settings_from_context(ctx)
    server = create_app(settings)
    server.run(host=settings.host, port=settings.port, single_process=True)


@asynccontextmanager
async def github_client(settings: Settings, installation: Optional[int]):
    async with aiohttp.ClientSession() as session:
        installation = installation or settings.installation_id
        if installation is not None:
            gh = await client_for_installation(
                session, settings, installation, httpcache
            )
        elif settings.github_token is not None:
            gh = gh_aiohttp.GitHubAPI(
                session, REQUESTER, oauth_token=settings.github_token, cache=httpcache
            )
        else:
            raise typer.BadParameter(
                "Provide --installation, INSTALLATION_ID or GITHUB_TOKEN"
            )
        yield session, gh


async def load_event(api: API, repo: str, number: int, action: Optional[str]):
    owner, name = repo.split("/", 1)
    pr = await api.get_pull(owner, name, number)
    repository = await api.get_repository(owner, name)
    if action is None:
        action = "opened" if pr.state == "open" else "closed"
    return PullRequestEvent(action=action, repository=repository, pull_request=pr)


@app.command()
def pr(
    ctx: typer.Context,
    repo: str,
    number: int,
    installation: Optional[int] = None,
    action: Optional[str] = None,
):
    """Run the pipeline for an existing pull request, e.g. ``org/repo 42``."""
    settings = settings_from_context(ctx)

    async def handle():
        async with github_client(settings, installation) as (session, gh):
            delivery = make_delivery(settings, session, gh)
            event = await load_event(delivery.api, repo, number, action)
            await process_pull_request(event, delivery)

    asyncio.run(handle())


@app.command()
def card(
    ctx: typer.Context, repo: str, number: int, installation: Optional[int] = None
):
    """Print the Teams card for a pull request without sending it."""
    settings = settings_from_context(ctx)

    async def handle():
        async with github_client(settings, installation) as (session, gh):
            api = API(gh)
            event = await load_event(api, repo, number, None)
            resolver = create_resolver(settings, gh, session)
            projects = await resolver.resolve(event.pull_request)
            notification = build_card(
                event.pull_request,
                projects,
                placeholder=settings.project_placeholder,
                timezone=settings.display_timezone,
            )
            typer.echo(
                json.dumps(notification.to_message_card(), indent=2, ensure_ascii=False)
            )

    asyncio.run(handle())
