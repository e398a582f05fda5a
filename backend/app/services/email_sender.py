# backend/app/services/email_sender.py
import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from backend.app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

BREACH_ALERT = "breach_alert"
BREACH_DIGEST = "breach_digest"

SEVERITY_COLORS = {
    "critical": "#8b0000",
    "high": "#ff4444",
    "medium": "#ff9900",
    "low": "#2e7d32",
}


def _render_actions(actions: list) -> str:
    items = "".join(
        f'<li class="action-item"><b>[{escape(str(a.get("priority", "")).upper())}]</b> '
        f'{escape(str(a.get("action", "")))}</li>'
        for a in actions
    )
    return f'<div class="actions"><h3>Recommended actions</h3><ol>{items}</ol></div>'


def render_breach_alert(data: dict, app_url: str) -> tuple[str, str]:
    severity = str(data.get("severity", "medium"))
    color = SEVERITY_COLORS.get(severity, SEVERITY_COLORS["medium"])
    subject = "Password Breach Alert - Immediate Action Required"
    html_body = f"""
<html>
  <body style="font-family: Arial, sans-serif;">
    <div style="background-color: #ff4444; color: white; padding: 15px;">
      <b>One of your passwords appeared in a known data breach.</b>
    </div>
    <div style="border-left: 5px solid {color}; padding-left: 15px;">
      <p>Found <b>{int(data.get("count", 0)):,}</b> times in {escape(str(data.get("source", "")))}.</p>
      <p>Severity: <b>{escape(severity)}</b> &middot; Risk level: <b>{escape(str(data.get("risk_level", "")))}</b></p>
    </div>
    {_render_actions(data.get("recommended_actions", []))}
    <p><a href="{escape(app_url)}/breaches/{int(data.get("breach_id", 0))}">Review this alert</a></p>
    <p style="color: #666; font-size: 12px;">We never store or transmit your password.</p>
  </body>
</html>
"""
    return subject, html_body


def render_breach_digest(data: dict, app_url: str) -> tuple[str, str]:
    entries = data.get("breaches", [])
    subject = f"{len(entries)} unacknowledged password breach alert(s)"
    rows = "".join(
        f"<tr><td>#{int(e.get('breach_id', 0))}</td>"
        f"<td>{escape(str(e.get('risk_level', '')))}</td>"
        f"<td>{escape(', '.join(e.get('sources', [])))}</td>"
        f"<td>{int(e.get('times_found', 0))}</td></tr>"
        for e in entries
    )
    html_body = f"""
<html>
  <body style="font-family: Arial, sans-serif;">
    <p>Hi {escape(str(data.get("username", "")))},</p>
    <p>These password breaches are still waiting for your review:</p>
    <table border="1" cellpadding="6">
      <tr><th>Alert</th><th>Risk</th><th>Sources</th><th>Times found</th></tr>
      {rows}
    </table>
    <p><a href="{escape(app_url)}/breaches">Open your dashboard</a></p>
  </body>
</html>
"""
    return subject, html_body


TEMPLATES = {
    BREACH_ALERT: render_breach_alert,
    BREACH_DIGEST: render_breach_digest,
}


class EmailSender:
    """
    Send an HTML email over SMTP (STARTTLS).

    send() MUST NOT crash the caller: every failure is logged and
    reported as False. smtplib is blocking, so it runs in a worker thread.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    async def send(self, address: str, template_kind: str, data: dict) -> bool:
        renderer = TEMPLATES.get(template_kind)
        if renderer is None:
            logger.error("Unknown email template %s", template_kind)
            return False

        if not self.config.smtp_configured:
            logger.error("SMTP configuration incomplete. Email not sent.")
            return False

        subject, html_body = renderer(data, self.config.APP_URL.rstrip("/"))

        try:
            await asyncio.to_thread(self._send_sync, address, subject, html_body)
        except Exception as e:
            logger.error("Email send failed to %s: %s", address, e)
            return False

        logger.info("Email (%s) sent to %s", template_kind, address)
        return True

    def _send_sync(self, to_email: str, subject: str, html_body: str) -> None:
        cfg = self.config

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{cfg.EMAIL_FROM_NAME} <{cfg.EMAIL_FROM_ADDRESS}>"
        msg["To"] = to_email

        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=cfg.SMTP_TIMEOUT_SECONDS) as server:
            server.starttls()
            server.login(cfg.SMTP_USERNAME, cfg.SMTP_PASSWORD)
            server.sendmail(cfg.EMAIL_FROM_ADDRESS, to_email, msg.as_string())
