"""Outbound notification adapters."""

from app.adapters.notifications.base import AbstractNotifier, NotificationResult
from app.adapters.notifications.discord import DiscordWebhookNotifier

__all__ = ["AbstractNotifier", "DiscordWebhookNotifier", "NotificationResult"]
