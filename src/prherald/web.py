import logging
from typing import Optional

import aiohttp
import cachetools
import gidgethub
from gidgethub import aiohttp as gh_aiohttp
from gidgethub import sansio
from gidgethub.abc import GitHubAPI
from gidgethub.apps import get_jwt
from prometheus_client import core
from prometheus_client.exposition import generate_latest
from sanic import Request, Sanic, response
from sanic.log import logger
import sanic.log

from prherald.config import Settings, load_settings
from prherald.github import get_access_token
from prherald.github.api import API
from prherald.github.projects import REQUESTER, create_resolver
from prherald.logger import get_log_handlers
from prherald.metric import (
    error_counter,
    request_counter,
    webhook_counter,
    webhook_skipped_counter,
)
from prherald.router import Delivery, create_router
from prherald.teams import TeamsNotifier

logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)

WEBHOOK_PATH = "/api/webhook"

HEALTH_MESSAGE = "Webhook used by SCM team engineering Backoffice 🚀"


async def client_for_installation(
    session: aiohttp.ClientSession,
    settings: Settings,
    installation_id: int,
    cache: Optional[cachetools.LRUCache] = None,
) -> GitHubAPI:
    gh_pre = gh_aiohttp.GitHubAPI(session, REQUESTER)
    token = await get_access_token(gh_pre, installation_id, settings)

    return gh_aiohttp.GitHubAPI(
        session,
        REQUESTER,
        oauth_token=token,
        cache=cache,
    )


def make_delivery(
    settings: Settings, session: aiohttp.ClientSession, gh: GitHubAPI
) -> Delivery:
    return Delivery(
        settings=settings,
        api=API(gh, dry_run=settings.dry_run),
        resolver=create_resolver(settings, gh, session),
        notifier=TeamsNotifier(
            session, settings.teams_webhook_url, dry_run=settings.dry_run
        ),
    )


async def process_github_event(app, event: sansio.Event) -> None:
    settings: Settings = app.ctx.settings

    installation_id = (event.data.get("installation") or {}).get("id")
    if installation_id is None:
        installation_id = settings.installation_id
    logger.debug("Installation id: %s", installation_id)

    gh = None
    if installation_id is None:
        logger.error("No installation id on event %s", event.delivery_id)
        error_counter.labels(context="installation").inc()
    else:
        try:
            gh = await client_for_installation(
                app.ctx.aiohttp_session, settings, installation_id, app.ctx.cache
            )
        except Exception:
            error_counter.labels(context="installation").inc()
            logger.error(
                "Could not authenticate as installation %s", installation_id, exc_info=True
            )

    if gh is None:
        # unauthenticated calls fail at their own boundaries, the card is still sent
        logger.warning("Continuing %s without installation token", event.delivery_id)
        gh = gh_aiohttp.GitHubAPI(app.ctx.aiohttp_session, REQUESTER)

    try:
        delivery = make_delivery(settings, app.ctx.aiohttp_session, gh)

        logger.debug("Dispatching event %s", event.event)
        await app.ctx.github_router.dispatch(event, delivery)
    except Exception:
        error_counter.labels(context="event_dispatch").inc()
        logger.error("Exception raised when dispatching event", exc_info=True)


def create_app(settings: Optional[Settings] = None):
    if settings is None:
        settings = load_settings()

    app = Sanic("prherald")

    logging.getLogger().setLevel(settings.log_level)
    sanic.log.logger.setLevel(settings.log_level)
    prherald_logger = logging.getLogger("prherald")
    prherald_logger.setLevel(settings.log_level)

    for logger_ in (sanic.log.logger, prherald_logger):
        for handler in get_log_handlers(logger_, settings):
            handler.setFormatter(
                logging.Formatter("%(asctime)s %(name)s %(levelname)s - %(message)s")
            )

    app.ctx.settings = settings
    app.ctx.cache = cachetools.LRUCache(maxsize=500)
    app.ctx.github_router = create_router()

    @app.listener("before_server_start")
    async def init(app, loop):
        logger.debug("Creating aiohttp session")
        app.ctx.aiohttp_session = aiohttp.ClientSession()

        gh = gh_aiohttp.GitHubAPI(app.ctx.aiohttp_session, REQUESTER)

        jwt = get_jwt(app_id=settings.app_id, private_key=settings.private_key)
        app_info = await gh.getitem("/app", jwt=jwt)
        app.ctx.app_info = app_info
        logger.info("Running as GitHub App %s", app_info.get("slug"))

    @app.listener("after_server_stop")
    async def close(app, loop):
        await app.ctx.aiohttp_session.close()

    @app.on_request
    async def on_request(request: Request):
        if request.path == "/metrics":
            return
        request_counter.labels(path=request.path).inc()

    @app.get("/")
    async def index(request):
        return response.text(HEALTH_MESSAGE)

    @app.get("/status")
    async def status(request):
        logger.debug("status check")
        return response.text("ok")

    @app.post(WEBHOOK_PATH)
    async def github(request):
        logger.debug("Webhook received")

        try:
            event = sansio.Event.from_http(
                request.headers, request.body, secret=settings.webhook_secret
            )
        except gidgethub.ValidationFailure as e:
            logger.warning("Rejecting webhook: %s", e)
            return response.text("invalid signature", status=401)
        except gidgethub.BadRequest as e:
            logger.warning("Rejecting webhook: %s", e)
            return response.text(str(e), status=int(e.status_code))

        webhook_counter.labels(
            event=event.event, action=event.data.get("action", "")
        ).inc()

        if event.event != "pull_request":
            webhook_skipped_counter.labels(event=event.event, reason="event").inc()
            return response.empty(200)

        await process_github_event(app, event)

        return response.empty(200)

    @app.get("/metrics")
    async def metrics(request):
        return response.raw(generate_latest(core.REGISTRY))

    return app
