import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send_private_message(self, user_id: str, message: str) -> None: ...


class LoggingNotifier:
    """Delivers private messages to the application log."""

    async def send_private_message(self, user_id: str, message: str) -> None:
        if not user_id:
            logger.warning("Attempted to send message to empty user id")
            return
        logger.info(f"Message for user {user_id}: {message}")


notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    return notifier
