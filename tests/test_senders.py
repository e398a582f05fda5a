import logging
from unittest.mock import MagicMock, patch

import httpx
import pytest

from backend.app.core.config import Settings
from backend.app.services.email_sender import (
    BREACH_ALERT,
    BREACH_DIGEST,
    EmailSender,
    render_breach_alert,
    render_breach_digest,
)
from backend.app.services.sms_sender import (
    SmsSender,
    breach_alert_message,
    format_phone_number,
    is_valid_phone_number,
)

SMTP_SETTINGS = dict(
    SMTP_HOST="smtp.test",
    SMTP_PORT=2525,
    SMTP_USERNAME="mailer",
    SMTP_PASSWORD="secret",
    EMAIL_FROM_ADDRESS="alerts@breachwatch.test",
)

TWILIO_SETTINGS = dict(
    TWILIO_ACCOUNT_SID="AC123",
    TWILIO_AUTH_TOKEN="token",
    TWILIO_PHONE_NUMBER="+15550000000",
    TWILIO_API_URL="https://twilio.test/2010-04-01",
    USE_MOCK_SMS=False,
)

ALERT_DATA = {
    "breach_id": 7,
    "count": 1489,
    "severity": "medium",
    "source": "HaveIBeenPwned",
    "risk_level": "medium",
    "recommended_actions": [{"action": "Change password immediately", "priority": "high"}],
}


class TestEmailTemplates:

    def test_breach_alert(self):
        subject, body = render_breach_alert(ALERT_DATA, "https://app.test")

        assert "Password Breach Alert" in subject
        assert "1,489" in body
        assert "Change password immediately" in body
        assert "https://app.test/breaches/7" in body

    def test_digest_escapes_html(self):
        data = {
            "username": "<script>",
            "breaches": [
                {"breach_id": 1, "risk_level": "high", "sources": ["A&B"], "times_found": 3}
            ],
        }

        subject, body = render_breach_digest(data, "https://app.test")

        assert subject.startswith("1 ")
        assert "<script>" not in body
        assert "A&amp;B" in body


class TestEmailSender:

    async def test_incomplete_configuration_returns_false(self):
        sender = EmailSender(Settings(SMTP_HOST=None))

        assert await sender.send("user@example.com", BREACH_ALERT, ALERT_DATA) is False

    async def test_unknown_template_returns_false(self):
        sender = EmailSender(Settings(**SMTP_SETTINGS))

        assert await sender.send("user@example.com", "welcome", {}) is False

    async def test_sends_over_smtp(self):
        sender = EmailSender(Settings(**SMTP_SETTINGS))

        with patch("backend.app.services.email_sender.smtplib.SMTP") as mock_smtp:
            server = MagicMock()
            mock_smtp.return_value.__enter__.return_value = server

            assert await sender.send("user@example.com", BREACH_DIGEST, {"breaches": []}) is True

        mock_smtp.assert_called_once_with("smtp.test", 2525, timeout=15.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        from_addr, to_addr, _ = server.sendmail.call_args.args
        assert from_addr == "alerts@breachwatch.test"
        assert to_addr == "user@example.com"

    async def test_smtp_error_returns_false(self):
        sender = EmailSender(Settings(**SMTP_SETTINGS))

        with patch(
            "backend.app.services.email_sender.smtplib.SMTP",
            side_effect=OSError("connection refused"),
        ):
            assert await sender.send("user@example.com", BREACH_ALERT, ALERT_DATA) is False


class TestPhoneFormatting:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+1 (555) 123-4567", "+15551234567"),
            ("555.123.4567", "+15551234567"),
            ("+447911123456", "+447911123456"),
        ],
    )
    def test_format(self, raw, expected):
        assert format_phone_number(raw) == expected

    def test_custom_country_code(self):
        assert format_phone_number("912345678", "+351") == "+351912345678"

    def test_validation(self):
        assert is_valid_phone_number("+15551234567")
        assert not is_valid_phone_number("+0123")
        assert not is_valid_phone_number("")

    def test_alert_message_never_mentions_password_value(self):
        message = breach_alert_message(100000)
        assert "100,000" in message


class TestSmsSender:

    async def test_mock_mode_reports_success(self):
        sender = SmsSender(Settings(USE_MOCK_SMS=True))

        assert await sender.send("+15551234567", "hello") is True

    async def test_mock_mode_does_not_log_message_body(self, caplog):
        caplog.set_level(logging.INFO, logger="backend.app.services.sms_sender")
        sender = SmsSender(Settings(USE_MOCK_SMS=True))

        await sender.send("+15551234567", "secret-body-text")

        assert "MOCK SMS" in caplog.text
        assert "secret-body-text" not in caplog.text
        assert "length=16" in caplog.text

    async def test_missing_credentials_in_production_fails(self):
        sender = SmsSender(Settings(ENVIRONMENT="production", USE_MOCK_SMS=False))

        assert await sender.send("+15551234567", "hello") is False

    async def test_malformed_number_fails(self):
        sender = SmsSender(Settings(USE_MOCK_SMS=True))

        assert await sender.send("abc", "hello") is False

    async def test_twilio_success(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(201, json={"sid": "SM123"})

        sender = SmsSender(Settings(**TWILIO_SETTINGS), transport=httpx.MockTransport(handler))

        assert await sender.send("+15551234567", "hello") is True
        request = calls[0]
        assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
        body = request.content.decode()
        assert "To=%2B15551234567" in body
        assert "Body=hello" in body
        assert request.headers["authorization"].startswith("Basic ")

    async def test_twilio_http_error_fails(self):
        sender = SmsSender(
            Settings(**TWILIO_SETTINGS),
            transport=httpx.MockTransport(lambda request: httpx.Response(400, json={})),
        )

        assert await sender.send("+15551234567", "hello") is False

    async def test_twilio_network_error_fails(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        sender = SmsSender(Settings(**TWILIO_SETTINGS), transport=httpx.MockTransport(handler))

        assert await sender.send("+15551234567", "hello") is False
