"""Invite message rendering using Jinja2.

This module renders the text an author sends to a participant along with
their invite link. Templates are rendered with StrictUndefined to catch
missing variables early.
"""

from datetime import datetime, timezone
from typing import Optional

from jinja2 import Environment, BaseLoader, StrictUndefined, TemplateError

from survey_studio.config import get_settings
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


class TemplateRenderError(Exception):
    """Raised when template rendering fails."""
    pass


def _format_expiry(expires_at: Optional[datetime]) -> Optional[str]:
    if expires_at is None:
        return None
    if expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc)
    return expires_at.strftime("%Y-%m-%d %H:%M UTC")


class InviteRenderer:
    """Service for rendering invite messages."""

    def __init__(self, template_text: Optional[str] = None):
        """Initialize Jinja2 environment with strict settings.

        Args:
            template_text: Template to render (defaults to INVITE_MESSAGE_TEMPLATE)
        """
        self.env = Environment(
            loader=BaseLoader(),
            autoescape=False,  # Plain-text messages, not HTML
            undefined=StrictUndefined,
        )
        self.template_text = template_text or get_settings().invite_message_template

    def render(self, title: str, link: str, expires_at: Optional[datetime] = None) -> str:
        """Render the invite message.

        Args:
            title: Survey title
            link: Participant link
            expires_at: Optional invite expiry

        Returns:
            Rendered text

        Raises:
            TemplateRenderError: If the template is invalid or uses unknown variables

        Example:
            >>> renderer = InviteRenderer("Take {{ title }} at {{ link }}")
            >>> renderer.render("Onboarding", "https://surveys.example.org/participant/abc")
            'Take Onboarding at https://surveys.example.org/participant/abc'
        """
        context = {
            "title": title,
            "link": link,
            "expires_at": _format_expiry(expires_at),
        }
        try:
            template = self.env.from_string(self.template_text)
            rendered = template.render(context)
            logger.debug("Rendered invite message")
            return rendered
        except TemplateError as e:
            logger.error(f"Invite template rendering error: {e}")
            raise TemplateRenderError(f"Failed to render invite message: {e}")


# Global singleton instance
_renderer_instance: Optional[InviteRenderer] = None


def get_invite_renderer() -> InviteRenderer:
    """Get global InviteRenderer instance.

    Returns:
        Global InviteRenderer instance
    """
    global _renderer_instance
    if _renderer_instance is None:
        _renderer_instance = InviteRenderer()
    return _renderer_instance
