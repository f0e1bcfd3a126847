import os
import logging
from typing import Literal, Mapping, Optional, Tuple

import dotenv
import pydantic
import pytz


class ConfigError(Exception):
    pass


class Settings(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True, extra="forbid")

    app_id: int
    private_key: str
    webhook_secret: str
    teams_webhook_url: str

    github_token: Optional[str] = None
    installation_id: Optional[int] = None

    project_strategy: Literal["direct", "issue"] = "direct"
    repo_prefixes: Tuple[str, ...] = ("ORA_", "WF_")
    filter_notifications: bool = False
    thanks_comment: bool = False
    project_placeholder: str = "PR sin Proyecto"
    display_timezone: str = "America/Mexico_City"

    dry_run: bool = False
    log_level: int = logging.INFO

    telegram_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    host: str = "0.0.0.0"
    port: int = 3000

    @pydantic.field_validator("private_key")
    @classmethod
    def expand_newlines(cls, value: str) -> str:
        # PEM keys stored in a single env line carry literal \n
        return value.replace("\\n", "\n")

    @pydantic.field_validator("display_timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone {value}")
        return value

    @pydantic.model_validator(mode="after")
    def token_for_issue_strategy(self) -> "Settings":
        if self.project_strategy == "issue" and not self.github_token:
            raise ValueError("PROJECT_STRATEGY=issue requires GITHUB_TOKEN")
        return self

    def matches_repository(self, name: str) -> bool:
        if len(self.repo_prefixes) == 0:
            return True
        return name.startswith(self.repo_prefixes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "Settings":
        data = {}

        for key, field in (
            ("APP_ID", "app_id"),
            ("PRIVATE_KEY_PEM", "private_key"),
            ("WEBHOOK_SECRET", "webhook_secret"),
            ("TEAMS_WEBHOOK_URL", "teams_webhook_url"),
            ("GITHUB_TOKEN", "github_token"),
            ("INSTALLATION_ID", "installation_id"),
            ("PROJECT_STRATEGY", "project_strategy"),
            ("PROJECT_PLACEHOLDER", "project_placeholder"),
            ("DISPLAY_TIMEZONE", "display_timezone"),
            ("TELEGRAM_TOKEN", "telegram_token"),
            ("TELEGRAM_CHAT_ID", "telegram_chat_id"),
            ("HOST", "host"),
            ("PORT", "port"),
        ):
            value = environ.get(key)
            if value:
                data[field] = value

        for key, field in (
            ("FILTER_NOTIFICATIONS", "filter_notifications"),
            ("THANKS_COMMENT", "thanks_comment"),
            ("DRY_RUN", "dry_run"),
        ):
            if key in environ:
                data[field] = environ[key].lower() == "true"

        if "REPO_PREFIXES" in environ:
            data["repo_prefixes"] = tuple(
                p.strip() for p in environ["REPO_PREFIXES"].split(",") if p.strip()
            )

        if "LOG_LEVEL" in environ:
            level = logging.getLevelName(environ["LOG_LEVEL"].upper())
            if not isinstance(level, int):
                raise ConfigError(f"Invalid LOG_LEVEL {environ['LOG_LEVEL']}")
            data["log_level"] = level

        try:
            return cls(**data)
        except pydantic.ValidationError as e:
            raise ConfigError(str(e)) from e


def load_settings() -> Settings:
    dotenv.load_dotenv()
    return Settings.from_env(os.environ)
