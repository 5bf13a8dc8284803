"""Outbound email interface. Delivery itself is handled outside the vault."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

from common.logging_config import get_logger

logger = get_logger(__name__)

SHARE_TEMPLATE = "file-share"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    template: str
    data: Dict[str, Any] = field(default_factory=dict)


class EmailSender(ABC):
    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        """
        Hand a message to the delivery system.

        Raises:
            Exception: Any delivery failure; callers decide whether it matters
        """


class LoggingEmailSender(EmailSender):
    """
    Records outgoing messages in the log instead of delivering them.
    """

    def send(self, message: EmailMessage) -> None:
        logger.info(f"Email queued to {message.to}: {message.subject!r} [template={message.template}]")
