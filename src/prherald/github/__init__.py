import aiocache
from gidgethub.abc import GitHubAPI
from gidgethub.apps import get_installation_access_token
from sanic.log import logger

from prherald.config import Settings

ACCESS_TOKEN_TTL = 300


@aiocache.cached(
    ttl=ACCESS_TOKEN_TTL,
    key_builder=lambda fn, gh, installation_id, settings: installation_id,
)
async def get_access_token(
    gh: GitHubAPI, installation_id: int, settings: Settings
) -> str:
    logger.debug("Getting NEW installation access token for %d", installation_id)
    access_token_response = await get_installation_access_token(
        gh,
        installation_id=installation_id,
        app_id=settings.app_id,
        private_key=settings.private_key,
    )

    token = access_token_response["token"]
    return token
