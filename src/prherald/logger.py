import logging

import notifiers.logging

from prherald.config import Settings


def get_log_handlers(logger, settings: Settings):
    if settings.telegram_token is None:
        return []
    if any(
        isinstance(h, notifiers.logging.NotificationHandler) for h in logger.handlers
    ):
        return []
    handler = notifiers.logging.NotificationHandler(
        "telegram",
        defaults={
            "token": settings.telegram_token,
            "chat_id": settings.telegram_chat_id,
        },
    )
    handler.setLevel(logging.WARNING)
    logger.addHandler(handler)
    return [handler]
