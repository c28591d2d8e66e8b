"""Infrastructure layer - mail providers, storage, and configuration."""

from qumail.infrastructure.settings import Settings, get_settings
from qumail.infrastructure.sqlite import SQLiteUserStore, get_user_store


def get_mail_factory():
    """Get a MailFactory bound to the shared user store (lazy import)."""
    from qumail.infrastructure.email.factory import MailFactory
    return MailFactory(store=get_user_store(), settings=get_settings())


__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # User store
    "SQLiteUserStore",
    "get_user_store",
    # Mail wiring
    "get_mail_factory",
]
