"""Notifications for sqlite-to-s3."""

from .webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
