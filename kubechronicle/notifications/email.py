"""Email notification channel.

Sends change events as multipart (plain text + HTML) mail through the
standard-library ``smtplib``, run in a thread-pool executor so the event
loop is never blocked.
"""

from __future__ import annotations

import asyncio
import html
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

from kubechronicle.models.events import ChangeEvent, Operation
from kubechronicle.notifications.manager import NotificationChannel, summarize

_log = structlog.get_logger(component="notifications.email")

_DEFAULT_SUBJECT = "[kubechronicle] {operation} {kind}/{name}"

_OPERATION_COLOR: dict[Operation, str] = {
    Operation.CREATE: "#2e7d32",
    Operation.UPDATE: "#1565c0",
    Operation.DELETE: "#e65100",
    Operation.EXEC: "#6a1b9a",
}
_BLOCKED_COLOR = "#b71c1c"


class SMTPConfig:
    """SMTP connection parameters.

    Args:
        host:       SMTP server hostname.
        port:       SMTP server port (587 for STARTTLS, 465 for SSL).
        username:   SMTP authentication username; empty skips login.
        password:   SMTP authentication password.
        from_addr:  Sender email address.
        use_tls:    If True, use SMTP_SSL. Defaults to True only for port 465.
        timeout:    Socket timeout in seconds. Defaults to 10.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_addr: str,
        use_tls: bool | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not host:
            raise ValueError("SMTP host must not be empty")
        if not from_addr:
            raise ValueError("SMTP from_addr must not be empty")
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_addr = from_addr
        self.use_tls = port == 465 if use_tls is None else use_tls
        self.timeout = timeout


class EmailNotificationChannel(NotificationChannel):
    """Delivers events as email.

    Args:
        smtp_config: Connection and authentication parameters.
        to_addrs:    Recipient addresses.
        subject:     Subject template; ``{operation}``, ``{kind}``,
                     ``{name}`` and ``{namespace}`` are substituted.
    """

    def __init__(self, smtp_config: SMTPConfig, to_addrs: list[str], subject: str = "") -> None:
        if not to_addrs:
            raise ValueError("Email to_addrs must not be empty")
        self._smtp = smtp_config
        self._to_addrs = list(to_addrs)
        self._subject = subject or _DEFAULT_SUBJECT

    @property
    def channel_name(self) -> str:
        return "email"

    async def send(self, event: ChangeEvent) -> bool:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, event)
            return True
        except smtplib.SMTPException as exc:
            _log.warning("email_smtp_error", error=str(exc), event_id=event.event_id)
            return False
        except OSError as exc:
            _log.warning("email_connection_error", error=str(exc), event_id=event.event_id)
            return False

    def _send_sync(self, event: ChangeEvent) -> None:
        """Blocking SMTP delivery; runs inside a thread executor."""
        msg = self.build_message(event)
        context = ssl.create_default_context()

        if self._smtp.use_tls:
            with smtplib.SMTP_SSL(
                self._smtp.host,
                self._smtp.port,
                context=context,
                timeout=self._smtp.timeout,
            ) as server:
                if self._smtp.username:
                    server.login(self._smtp.username, self._smtp.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self._smtp.host, self._smtp.port, timeout=self._smtp.timeout) as server:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=context)
                    server.ehlo()
                if self._smtp.username:
                    server.login(self._smtp.username, self._smtp.password)
                server.send_message(msg)

    def build_message(self, event: ChangeEvent) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = self._render_subject(event)
        msg["From"] = self._smtp.from_addr
        msg["To"] = ", ".join(self._to_addrs)
        msg.attach(MIMEText(self._build_plain(event), "plain", "utf-8"))
        msg.attach(MIMEText(self._build_html(event), "html", "utf-8"))
        return msg

    def _render_subject(self, event: ChangeEvent) -> str:
        values = {
            "operation": event.operation.value,
            "kind": event.resource_kind,
            "name": event.name,
            "namespace": event.namespace,
        }
        try:
            return self._subject.format_map(values)
        except (KeyError, ValueError, IndexError):
            return self._subject

    def _rows(self, event: ChangeEvent) -> list[tuple[str, str]]:
        timestamp = event.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC") if event.timestamp else "-"
        rows = [
            ("Operation", event.operation.value),
            ("Resource", f"{event.resource_kind}/{event.name}"),
            ("Namespace", event.namespace or "-"),
            ("User", event.actor.username or "-"),
            ("Source", event.source_tool.value),
            ("Time", timestamp),
            ("Event ID", event.event_id),
        ]
        if not event.allowed:
            rows.append(("Blocked by", event.block_pattern))
        return rows

    def _build_plain(self, event: ChangeEvent) -> str:
        lines = [summarize(event), "=" * 60, ""]
        lines.extend(f"{label + ':':<12}{value}" for label, value in self._rows(event))
        if event.diff:
            lines.extend(["", "Changes", "-" * 60])
            lines.extend(f"{patch.op.value:<8}{patch.path}" for patch in event.diff)
        return "\n".join(lines) + "\n"

    def _build_html(self, event: ChangeEvent) -> str:
        color = _OPERATION_COLOR.get(event.operation, "#333333") if event.allowed else _BLOCKED_COLOR
        rows = "\n".join(
            f'<tr><td style="color: #757575; width: 120px;"><strong>{html.escape(label)}</strong></td>'
            f'<td style="font-family: monospace;">{html.escape(value)}</td></tr>'
            for label, value in self._rows(event)
        )
        changes = ""
        if event.diff:
            items = "\n".join(
                f"<li><code>{html.escape(patch.op.value)} {html.escape(patch.path)}</code></li>" for patch in event.diff
            )
            changes = f'<h2 style="font-size: 15px; color: #424242;">Changes</h2><ul>{items}</ul>'
        return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8" /><title>kubechronicle</title></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
             background: #f5f5f5; margin: 0; padding: 24px;">
  <table width="600" cellpadding="0" cellspacing="0"
         style="background: #ffffff; border-radius: 8px; margin: 0 auto;">
    <tr>
      <td style="background: {color}; padding: 20px 28px; border-radius: 8px 8px 0 0;">
        <h1 style="color: #ffffff; margin: 0; font-size: 18px;">{html.escape(summarize(event))}</h1>
      </td>
    </tr>
    <tr>
      <td style="padding: 24px 28px;">
        <table width="100%" cellpadding="6" cellspacing="0" style="border-collapse: collapse;">
{rows}
        </table>
        {changes}
      </td>
    </tr>
  </table>
</body>
</html>"""
