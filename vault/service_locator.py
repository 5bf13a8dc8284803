"""Service locator for process-wide collaborators configured at startup."""

from typing import Optional

from vault.crypto import CryptoEnvelope
from vault.exceptions import ConfigurationError
from vault.mailer import EmailSender, LoggingEmailSender
from vault.notifications import InProcessPublisher, NotificationPublisher
from vault.object_store import ObjectStore

_crypto_envelope: Optional[CryptoEnvelope] = None
_object_store: Optional[ObjectStore] = None
_publisher: NotificationPublisher = InProcessPublisher()
_email_sender: EmailSender = LoggingEmailSender()


def set_crypto_envelope(envelope: Optional[CryptoEnvelope]):
    """Set global crypto envelope instance"""
    global _crypto_envelope
    _crypto_envelope = envelope


def get_crypto_envelope() -> CryptoEnvelope:
    """Get global crypto envelope instance"""
    if _crypto_envelope is None:
        raise ConfigurationError("Encryption is not configured")
    return _crypto_envelope


def set_object_store(store: Optional[ObjectStore]):
    """Set global object store instance"""
    global _object_store
    _object_store = store


def get_object_store() -> ObjectStore:
    """Get global object store instance"""
    if _object_store is None:
        raise ConfigurationError("Object store is not configured")
    return _object_store


def set_publisher(publisher: NotificationPublisher):
    """Set global notification publisher"""
    global _publisher
    _publisher = publisher


def get_publisher() -> NotificationPublisher:
    """Get global notification publisher"""
    return _publisher


def set_email_sender(sender: EmailSender):
    """Set global email sender"""
    global _email_sender
    _email_sender = sender


def get_email_sender() -> EmailSender:
    """Get global email sender"""
    return _email_sender
