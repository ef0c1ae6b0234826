"""Notification system for kubechronicle.

Forwards recorded change events to one or more channels (Slack, Telegram,
Email, Webhook) without blocking the event processor.

Exports:
    NotificationChannel          -- Abstract base for all channel implementations.
    NotificationRouter           -- Operation filter plus per-channel fan-out.
    SlackNotificationChannel     -- Slack incoming webhook.
    TelegramNotificationChannel  -- Telegram Bot API.
    EmailNotificationChannel     -- SMTP email via stdlib smtplib.
    WebhookNotificationChannel   -- Generic JSON webhook.
    build_notification_router    -- Factory used by the application bootstrap.
"""

from __future__ import annotations

import structlog

from kubechronicle.models.alerting import AlertConfig
from kubechronicle.notifications.email import EmailNotificationChannel, SMTPConfig
from kubechronicle.notifications.manager import NotificationChannel, NotificationRouter
from kubechronicle.notifications.slack import SlackNotificationChannel
from kubechronicle.notifications.telegram import TelegramNotificationChannel
from kubechronicle.notifications.webhook import WebhookNotificationChannel

_log = structlog.get_logger(component="notifications")

__all__ = [
    "EmailNotificationChannel",
    "NotificationChannel",
    "NotificationRouter",
    "SMTPConfig",
    "SlackNotificationChannel",
    "TelegramNotificationChannel",
    "WebhookNotificationChannel",
    "build_notification_router",
]


def build_notification_router(config: AlertConfig | None) -> NotificationRouter | None:
    """Build a NotificationRouter from the alert configuration.

    A channel is enabled only when its required settings are present.
    Returns None when no channel ends up enabled.
    """
    if config is None:
        return None

    channels: list[NotificationChannel] = []

    if config.slack is not None and config.slack.webhook_url:
        channels.append(
            SlackNotificationChannel(
                webhook_url=config.slack.webhook_url,
                channel=config.slack.channel,
                username=config.slack.username,
            )
        )
        _log.info("slack_channel_enabled")

    if config.telegram is not None and config.telegram.bot_token and config.telegram.chat_ids:
        channels.append(
            TelegramNotificationChannel(
                bot_token=config.telegram.bot_token,
                chat_ids=list(config.telegram.chat_ids),
            )
        )
        _log.info("telegram_channel_enabled", chats=len(config.telegram.chat_ids))

    email = config.email
    if email is not None and email.smtp_host and email.to:
        try:
            smtp = SMTPConfig(
                host=email.smtp_host,
                port=email.smtp_port,
                username=email.smtp_username,
                password=email.smtp_password,
                from_addr=email.from_addr,
            )
            channels.append(EmailNotificationChannel(smtp_config=smtp, to_addrs=list(email.to), subject=email.subject))
            _log.info("email_channel_enabled", recipients=len(email.to))
        except ValueError as exc:
            _log.warning("email_channel_disabled", reason=str(exc))

    if config.webhook is not None and config.webhook.url:
        channels.append(
            WebhookNotificationChannel(
                url=config.webhook.url,
                headers=dict(config.webhook.headers),
                method=config.webhook.method,
            )
        )
        _log.info("webhook_channel_enabled", url=config.webhook.url)

    if not channels:
        _log.info("no_notification_channels_configured")
        return None

    return NotificationRouter(channels=channels, operations=config.operations)
