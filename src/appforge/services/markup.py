"""Placeholder handling for generated markup."""

from appforge.config import settings


def substitute_placeholder(markup: str, app_id: str, placeholder: str | None = None) -> str:
    """Replace every occurrence of the application-id placeholder."""
    return markup.replace(placeholder or settings.app_id_placeholder, app_id)
