import asyncio
from datetime import datetime
from enum import Enum
import logging
from typing import Any, Dict, List, Sequence

import aiohttp
import pydantic
import pytz

from prherald.github.model import ProjectAssociation, PullRequest
from prherald.metric import notification_counter

logger = logging.getLogger("prherald")

DEFAULT_AVATAR = (
    "https://github.githubassets.com/images/modules/logos_page/GitHub-Mark.png"
)
NOT_AVAILABLE = "N/A"


class CardTheme(Enum):
    opened = ("0078D7", "🚀 **Nuevo Pull Request Creado**")
    merged = ("28A745", "🎉 **Pull Request mergeado**")
    closed = ("D83B01", "❌ **Pull Request cerrado sin mergear**")

    @property
    def color(self) -> str:
        return self.value[0]

    @property
    def title(self) -> str:
        return self.value[1]


def select_theme(pr: PullRequest) -> CardTheme:
    if pr.state == "closed" and pr.is_merged:
        return CardTheme.merged
    elif pr.state == "closed":
        return CardTheme.closed
    return CardTheme.opened


def format_timestamp(dt: datetime, timezone: str) -> str:
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    local = dt.astimezone(pytz.timezone(timezone))
    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {local.year}, {hour}:{local:%M:%S} {local:%p}"


def join_or(values: Sequence[Any], placeholder: str) -> str:
    if len(values) == 0:
        return placeholder
    return ", ".join(str(v) for v in values)


class Fact(pydantic.BaseModel):
    name: str
    value: str


class Action(pydantic.BaseModel):
    name: str
    uri: str


class NotificationCard(pydantic.BaseModel):
    theme: CardTheme
    title: str
    subtitle: str
    summary: str
    image: str
    facts: List[Fact]
    actions: List[Action]

    @property
    def theme_color(self) -> str:
        return self.theme.color

    def to_message_card(self) -> Dict[str, Any]:
        return {
            "@type": "MessageCard",
            "@context": "https://schema.org/extensions",
            "themeColor": self.theme_color,
            "summary": self.summary,
            "sections": [
                {
                    "activityTitle": self.title,
                    "activitySubtitle": self.subtitle,
                    "activityImage": self.image,
                    "facts": [f.model_dump() for f in self.facts],
                    "markdown": True,
                }
            ],
            "potentialAction": [
                {
                    "@type": "OpenUri",
                    "name": a.name,
                    "targets": [{"os": "default", "uri": a.uri}],
                }
                for a in self.actions
            ],
        }


def build_card(
    pr: PullRequest,
    projects: Sequence[ProjectAssociation],
    *,
    placeholder: str = "PR sin Proyecto",
    timezone: str = "America/Mexico_City",
) -> NotificationCard:
    theme = select_theme(pr)
    repo_name = pr.base.repo.name if pr.base.repo is not None else pr.base.ref

    facts = [
        Fact(name="Título:", value=pr.title),
        Fact(name="Autor:", value=pr.user.login),
        Fact(name="Branch:", value=f"{pr.head.ref} → {pr.base.ref}"),
        Fact(name="Revisores:", value=join_or(pr.reviewer_logins, NOT_AVAILABLE)),
        Fact(name="Creado:", value=format_timestamp(pr.created_at, timezone)),
        Fact(name="Labels:", value=join_or(pr.label_names, NOT_AVAILABLE)),
        Fact(name="Proyectos:", value=join_or(projects, placeholder)),
    ]

    actions = [
        Action(name="🔗 Ver Pull Request", uri=pr.html_url),
        Action(name="📄 Ver Archivos", uri=f"{pr.html_url}/files"),
        Action(name="📜 Ver Commits", uri=f"{pr.html_url}/commits"),
    ]

    return NotificationCard(
        theme=theme,
        title=theme.title,
        subtitle=f"Repositorio: **{repo_name}**",
        summary=f"Pull Request en {repo_name}",
        image=pr.user.avatar_url or DEFAULT_AVATAR,
        facts=facts,
        actions=actions,
    )


class TeamsNotifier:
    session: aiohttp.ClientSession
    webhook_url: str
    dry_run: bool

    def __init__(
        self, session: aiohttp.ClientSession, webhook_url: str, dry_run: bool = False
    ):
        self.session = session
        self.webhook_url = webhook_url
        self.dry_run = dry_run

    async def notify(self, card: NotificationCard) -> bool:
        payload = card.to_message_card()

        if self.dry_run:
            logger.info("Dry run, not sending Teams card: %s", payload)
            notification_counter.labels(result="dry_run").inc()
            return True

        try:
            async with self.session.post(self.webhook_url, json=payload) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.error(
                        "Error sending to Teams! Status: %d. Body: %s",
                        resp.status,
                        body,
                    )
                    notification_counter.labels(result="failure").inc()
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Error sending to Teams: %s", e)
            notification_counter.labels(result="failure").inc()
            return False

        logger.info("Teams card sent: %s", card.summary)
        notification_counter.labels(result="success").inc()
        return True
