# backend/app/jobs/send_alerts.py
"""
Digest alerts for unacknowledged breach records that were never notified.

Runs outside the request path (cron / scheduler):
    python -m backend.app.jobs.send_alerts --frequency daily

Only records with notifications_sent == 0 are included, so running the
job twice does not re-send the same records once an email went out.
"""
import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import setup_logging
from backend.app.models.user import User
from backend.app.schemas.notification import ChannelOutcome
from backend.app.schemas.user import DeliveryFrequency
from backend.app.services import breach_records
from backend.app.services.notifier import EMAIL, SMS, NotificationDispatcher

logger = logging.getLogger(__name__)


@dataclass
class AlertRunSummary:
    users_checked: int = 0
    alerts_sent: int = 0
    emails_sent: int = 0
    sms_sent: int = 0
    errors: int = 0


async def send_alerts(
    db: AsyncSession,
    frequencies: Iterable[DeliveryFrequency],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> AlertRunSummary:
    dispatcher = dispatcher or NotificationDispatcher()
    summary = AlertRunSummary()

    result = await db.execute(
        select(User)
        .where(
            User.is_active.is_(True),
            User.notify_frequency.in_([f.value for f in frequencies]),
            or_(User.notify_email.is_(True), User.notify_sms.is_(True)),
        )
        .order_by(User.id)
    )
    users = list(result.scalars().all())
    summary.users_checked = len(users)

    for user in users:
        pending = await breach_records.list_pending_alerts(db, user.id)
        if not pending:
            continue

        logger.info("User %s: %s pending breach alert(s)", user.id, len(pending))
        outcomes = await dispatcher.notify_digest(db, user, pending)

        if outcomes[EMAIL] == ChannelOutcome.SENT:
            summary.emails_sent += 1
        if outcomes[SMS] == ChannelOutcome.SENT:
            summary.sms_sent += 1
        summary.errors += sum(1 for o in outcomes.values() if o == ChannelOutcome.FAILED)
        if ChannelOutcome.SENT in outcomes.values():
            summary.alerts_sent += 1

    logger.info(
        "Alert run: users=%s alerts=%s emails=%s sms=%s errors=%s",
        summary.users_checked,
        summary.alerts_sent,
        summary.emails_sent,
        summary.sms_sent,
        summary.errors,
    )
    return summary


async def main(frequency: str) -> AlertRunSummary:
    from backend.app.db.session import AsyncSessionLocal, engine

    if frequency == "all":
        frequencies = list(DeliveryFrequency)
    else:
        frequencies = [DeliveryFrequency(frequency)]

    try:
        async with AsyncSessionLocal() as db:
            return await send_alerts(db, frequencies)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send breach digest alerts")
    parser.add_argument(
        "--frequency",
        choices=[f.value for f in DeliveryFrequency] + ["all"],
        default="all",
        help="Which delivery-frequency group to alert",
    )
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(args.frequency))
