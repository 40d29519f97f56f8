"""Job-match alerts for candidates.

- NotificationGate: threshold check, at-most-once suppression and delivery
- SqlNotificationMarkerStore: durable claim/confirm markers
- WebhookChannel / MockChannel: message delivery
- TemplateRenderer and payload builders for the alert body
"""

from .channel import MessageChannel, MockChannel, WebhookChannel
from .gate import NotificationGate
from .markers import NotificationMarkerStore, SqlNotificationMarkerStore
from .models import (
    ChannelError,
    ChannelResult,
    NotificationError,
    NotificationReason,
    NotificationResult,
    NotificationTemplateError,
)
from .payloads import build_alert_payload, build_message_context, format_location, format_salary
from .templates import TemplateRenderer

__all__ = [
    "NotificationGate",
    "NotificationMarkerStore",
    "SqlNotificationMarkerStore",
    "MessageChannel",
    "WebhookChannel",
    "MockChannel",
    "ChannelResult",
    "NotificationResult",
    "NotificationReason",
    "NotificationError",
    "NotificationTemplateError",
    "ChannelError",
    "TemplateRenderer",
    "build_alert_payload",
    "build_message_context",
    "format_location",
    "format_salary",
]
