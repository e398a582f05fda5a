# backend/app/services/notifier.py
"""
Fan a breach finding out to the channels a user has enabled.

Rules:
- Each channel is a single attempt; no retry
- A failed channel is logged and reported in the outcome map, never raised
- The only error raised is UserNotFound (caller-side precondition)
- notifications_sent is bumped with an atomic SQL increment after a
  successful email only
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.errors import NotificationChannelFailure, ValidationFailure
from backend.app.models.breach import BreachRecord
from backend.app.models.user import User
from backend.app.schemas.notification import BreachFinding, ChannelOutcome, DigestEntry
from backend.app.services import breach_records
from backend.app.services.email_sender import BREACH_ALERT, BREACH_DIGEST, EmailSender
from backend.app.services.preferences import get_user
from backend.app.services.sms_sender import SmsSender, breach_alert_message, breach_digest_message

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"
CHANNELS = (EMAIL, SMS)

# Sample alert for test sends; no record is touched
TEST_ALERT = BreachFinding(
    breach_id=0,
    count=12345,
    severity="high",
    source="Test Source",
    risk_level="high",
)


async def _skipped() -> ChannelOutcome:
    return ChannelOutcome.SKIPPED


class NotificationDispatcher:

    def __init__(
        self,
        email_sender: Optional[EmailSender] = None,
        sms_sender: Optional[SmsSender] = None,
    ):
        self.email_sender = email_sender or EmailSender()
        self.sms_sender = sms_sender or SmsSender()

    async def _attempt(
        self, channel: str, user_id: int, send: Callable[[], Awaitable[bool]]
    ) -> ChannelOutcome:
        try:
            if not await send():
                raise NotificationChannelFailure(channel, "sender reported failure")
        except NotificationChannelFailure as e:
            logger.warning("User %s: %s", user_id, e)
            return ChannelOutcome.FAILED
        except Exception as e:
            logger.error(
                "User %s: %s", user_id, NotificationChannelFailure(channel, repr(e))
            )
            return ChannelOutcome.FAILED
        return ChannelOutcome.SENT

    async def _fan_out(
        self,
        user: User,
        email_send: Callable[[], Awaitable[bool]],
        sms_send: Callable[[], Awaitable[bool]],
    ) -> Dict[str, ChannelOutcome]:
        email_task = (
            self._attempt(EMAIL, user.id, email_send) if user.notify_email else _skipped()
        )
        sms_task = (
            self._attempt(SMS, user.id, sms_send)
            if user.notify_sms and user.phone
            else _skipped()
        )
        email_outcome, sms_outcome = await asyncio.gather(email_task, sms_task)
        return {EMAIL: email_outcome, SMS: sms_outcome}

    async def notify(
        self, db: AsyncSession, user_id: int, finding: BreachFinding
    ) -> Dict[str, ChannelOutcome]:
        user = await get_user(db, user_id)
        payload = finding.model_dump(mode="json")

        outcomes = await self._fan_out(
            user,
            lambda: self.email_sender.send(user.email, BREACH_ALERT, payload),
            lambda: self.sms_sender.send(user.phone, breach_alert_message(finding.count)),
        )

        if outcomes[EMAIL] == ChannelOutcome.SENT:
            await breach_records.increment_notifications_sent(db, [finding.breach_id])

        logger.info(
            "Breach record %s notifications: %s",
            finding.breach_id,
            {k: v.value for k, v in outcomes.items()},
        )
        return outcomes

    async def notify_digest(
        self, db: AsyncSession, user: User, records: List[BreachRecord]
    ) -> Dict[str, ChannelOutcome]:
        """One message per enabled channel summarizing several records."""
        if not records:
            return {EMAIL: ChannelOutcome.SKIPPED, SMS: ChannelOutcome.SKIPPED}

        entries = [
            DigestEntry(
                breach_id=r.id,
                risk_level=r.risk_level,
                sources=[s.name for s in r.breach_sources],
                times_found=r.times_found,
                first_detected=r.first_detected.isoformat() if r.first_detected else None,
            ).model_dump(mode="json")
            for r in records
        ]
        data = {"username": user.username, "breaches": entries}

        outcomes = await self._fan_out(
            user,
            lambda: self.email_sender.send(user.email, BREACH_DIGEST, data),
            lambda: self.sms_sender.send(user.phone, breach_digest_message(len(records))),
        )

        if ChannelOutcome.SENT in outcomes.values():
            await breach_records.increment_notifications_sent(db, [r.id for r in records])

        return outcomes

    async def send_test(self, db: AsyncSession, user_id: int, channel: str) -> ChannelOutcome:
        """
        Send a sample alert over one channel so a user can verify delivery.

        Honors the user's channel preference (disabled -> skipped) and never
        bumps notifications_sent.
        """
        if channel not in CHANNELS:
            raise ValidationFailure(f"Invalid notification channel {channel!r}, use 'email' or 'sms'")

        user = await get_user(db, user_id)

        if channel == EMAIL:
            if not user.notify_email:
                return ChannelOutcome.SKIPPED
            payload = TEST_ALERT.model_dump(mode="json")
            outcome = await self._attempt(
                EMAIL, user.id, lambda: self.email_sender.send(user.email, BREACH_ALERT, payload)
            )
        else:
            if not (user.notify_sms and user.phone):
                return ChannelOutcome.SKIPPED
            outcome = await self._attempt(
                SMS,
                user.id,
                lambda: self.sms_sender.send(user.phone, breach_alert_message(TEST_ALERT.count)),
            )

        logger.info("Test %s notification for user %s: %s", channel, user_id, outcome.value)
        return outcome
