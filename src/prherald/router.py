from dataclasses import dataclass

from gidgethub.routing import Router
from gidgethub.sansio import Event
from sanic.log import logger

from prherald import policy
from prherald.config import Settings
from prherald.github.api import API
from prherald.github.model import PullRequestEvent
from prherald.github.projects import ProjectResolver
from prherald.metric import webhook_skipped_counter
from prherald.teams import TeamsNotifier, build_card


@dataclass
class Delivery:
    settings: Settings
    api: API
    resolver: ProjectResolver
    notifier: TeamsNotifier


async def process_pull_request(event: PullRequestEvent, delivery: Delivery) -> None:
    settings = delivery.settings
    pr = event.pull_request
    repo = event.repository

    logger.info("Begin handling %s %s on %s", event.action, pr, repo.name)

    matches = settings.matches_repository(repo.name)
    if not matches:
        if settings.filter_notifications:
            logger.info("Repository %s does not match prefixes, skipping", repo.name)
            webhook_skipped_counter.labels(
                event="pull_request", reason="prefix"
            ).inc()
            return
        logger.debug("Repository %s does not match prefixes, notify only", repo.name)

    projects = await delivery.resolver.resolve(pr)

    if matches and event.action in ("opened", "reopened"):
        message = policy.decide(pr.label_names, projects)
        if message is not None:
            logger.debug("Labels/projects missing on %s, commenting", pr)
            await delivery.api.create_comment(
                repo.owner.login, repo.name, pr.number, message
            )
    elif matches and event.action == "closed" and settings.thanks_comment:
        await delivery.api.create_comment(
            repo.owner.login, repo.name, pr.number, policy.THANKS_MESSAGE
        )

    card = build_card(
        pr,
        projects,
        placeholder=settings.project_placeholder,
        timezone=settings.display_timezone,
    )
    await delivery.notifier.notify(card)

    logger.info("Finished handling %s, API calls: %d", pr, delivery.api.call_count)


def create_router():
    router = Router()

    @router.register("pull_request", action="opened")
    @router.register("pull_request", action="reopened")
    @router.register("pull_request", action="closed")
    async def on_pr(event: Event, delivery: Delivery):
        pr_event = PullRequestEvent.model_validate(event.data)
        logger.debug(
            "Received pull_request %s on PR #%d",
            pr_event.action,
            pr_event.pull_request.number,
        )
        await process_pull_request(pr_event, delivery)

    return router
