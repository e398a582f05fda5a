# backend/app/services/statistics.py
"""Read-only breach statistics. No writes, no commits."""
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.breach import BreachRecord
from backend.app.schemas.stats import GlobalBreachStats, NotificationStats, UserBreachStats
from backend.app.services.severity import Severity


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


async def user_breach_stats(db: AsyncSession, user_id: int) -> UserBreachStats:
    query = select(
        func.count(BreachRecord.id),
        _count_where(BreachRecord.is_active.is_(True)),
        _count_where(BreachRecord.user_acknowledged.is_(True)),
        _count_where(BreachRecord.risk_level == Severity.CRITICAL.value),
        _count_where(BreachRecord.risk_level == Severity.HIGH.value),
        _count_where(BreachRecord.risk_level == Severity.MEDIUM.value),
        _count_where(BreachRecord.risk_level == Severity.LOW.value),
        func.coalesce(func.sum(BreachRecord.notifications_sent), 0),
    ).where(BreachRecord.user_id == user_id)

    total, active, acknowledged, critical, high, medium, low, sent = (
        await db.execute(query)
    ).one()

    return UserBreachStats(
        total_breaches=total,
        active_breaches=active,
        acknowledged_breaches=acknowledged,
        unacknowledged_breaches=total - acknowledged,
        critical_breaches=critical,
        high_breaches=high,
        medium_breaches=medium,
        low_breaches=low,
        total_notifications_sent=sent,
    )


async def global_breach_stats(db: AsyncSession) -> GlobalBreachStats:
    query = select(
        func.count(BreachRecord.id),
        _count_where(BreachRecord.is_active.is_(True)),
        func.count(func.distinct(BreachRecord.user_id)),
        func.avg(BreachRecord.times_found),
        func.coalesce(func.sum(BreachRecord.notifications_sent), 0),
    )

    total, active, unique_users, average_times_found, sent = (
        await db.execute(query)
    ).one()

    return GlobalBreachStats(
        total_breaches=total,
        active_breaches=active,
        unique_users=unique_users,
        average_times_found=round(float(average_times_found or 0), 2),
        total_notifications_sent=sent,
    )


async def notification_stats(db: AsyncSession, user_id: int) -> NotificationStats:
    query = select(
        func.count(BreachRecord.id),
        _count_where(BreachRecord.user_acknowledged.is_(False)),
        _count_where(BreachRecord.risk_level == Severity.CRITICAL.value),
        _count_where(BreachRecord.risk_level == Severity.HIGH.value),
        func.coalesce(func.sum(BreachRecord.notifications_sent), 0),
    ).where(BreachRecord.user_id == user_id)

    total, unread, critical, high, sent = (await db.execute(query)).one()

    return NotificationStats(
        total_notifications=total,
        unread_notifications=unread,
        critical_notifications=critical,
        high_notifications=high,
        total_notifications_sent=sent,
    )
