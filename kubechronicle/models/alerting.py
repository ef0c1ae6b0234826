"""Alert routing configuration, parsed from the ``ALERT_CONFIG`` JSON document."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _AlertModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class SlackConfig(_AlertModel):
    webhook_url: str = ""
    channel: str = ""
    username: str = ""


class TelegramConfig(_AlertModel):
    bot_token: str = ""
    chat_ids: tuple[str, ...] = ()


class EmailConfig(_AlertModel):
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    from_addr: str = Field(default="", alias="from")
    to: tuple[str, ...] = ()
    subject: str = ""


class WebhookChannelConfig(_AlertModel):
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    method: str = "POST"


class AlertConfig(_AlertModel):
    """Enabled channels plus the operation filter.

    An empty ``operations`` list alerts on every operation.
    """

    slack: SlackConfig | None = None
    telegram: TelegramConfig | None = None
    email: EmailConfig | None = None
    webhook: WebhookChannelConfig | None = None
    operations: tuple[str, ...] = ()
