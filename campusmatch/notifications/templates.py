"""Jinja2 rendering for alert message text.

Templates live in the campusmatch.notifications/message_templates package
directory. StrictUndefined makes a missing variable a render error instead
of an empty string in a message sent to a candidate.
"""

import logging
from typing import Any, Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "job_match.txt.j2"


class TemplateRenderer:
    """Renders plain-text message templates.

    Args:
        template_dir: Directory inside the campusmatch.notifications package
        message_template: Template file for the personalized job-match message
    """

    def __init__(
        self,
        template_dir: str = "message_templates",
        message_template: str = DEFAULT_TEMPLATE,
    ):
        self.message_template_name = message_template
        # Plain text for a messaging app: no HTML escaping.
        self.env = Environment(
            loader=PackageLoader("campusmatch.notifications", template_dir),
            autoescape=False,
            undefined=StrictUndefined,
        )

    def render_message(self, context: Dict[str, Any]) -> str:
        """Render the personalized message.

        Raises:
            NotificationTemplateError: If the template is missing or fails to render
        """
        try:
            template = self.env.get_template(self.message_template_name)
            return template.render(context).strip()
        except TemplateError as e:
            logger.error(
                f"Template rendering failed: {e}",
                extra={"event": "notification.template_error", "template": self.message_template_name},
            )
            raise NotificationTemplateError(f"Template rendering failed: {e}") from e
