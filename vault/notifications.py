"""Fire-and-forget change notifications scoped to per-user channels."""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Dict, List

from common.constants import USER_CHANNEL_PREFIX
from common.logging_config import get_logger

logger = get_logger(__name__)

FILE_UPLOADED = "file:uploaded"
FILE_DELETED = "file:deleted"

Subscriber = Callable[[str, Dict[str, Any]], None]


def user_channel(user_id: str) -> str:
    return f"{USER_CHANNEL_PREFIX}{user_id}"


class NotificationPublisher(ABC):
    """
    Best-effort, at-most-once event delivery. publish never raises: a failed
    delivery is logged and dropped.
    """

    @abstractmethod
    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        pass


class InProcessPublisher(NotificationPublisher):
    """
    Delivers events to callbacks subscribed in this process (e.g. websocket
    sessions), logging every publish.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)

    def subscribe(self, channel: str, callback: Subscriber) -> None:
        self._subscribers[channel].append(callback)

    def unsubscribe(self, channel: str, callback: Subscriber) -> None:
        callbacks = self._subscribers.get(channel, [])
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            self._subscribers.pop(channel, None)

    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        logger.info(f"Publishing {event} on {channel}")
        for callback in list(self._subscribers.get(channel, [])):
            try:
                callback(event, payload)
            except Exception as e:
                logger.warning(f"Subscriber failed for {event} on {channel}: {e}")
