# backend/app/services/breach_records.py
"""
Breach record lifecycle: find-or-create-and-merge, acknowledgment,
recommended action completion, logical retirement.

Per-key serialization comes from the database:
- the record row is upserted with INSERT ... ON CONFLICT (user_id, password_hash)
- sources are inserted with ON CONFLICT (breach_record_id, name) DO NOTHING
- risk level / actions are recomputed in the same transaction, only when
  a source was actually appended

Cross-owner access always raises RecordNotFound so record existence never
leaks between users.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.errors import ActionIndexOutOfRange, RecordNotFound, ValidationFailure
from backend.app.db.session import dialect_insert
from backend.app.models.breach import BreachRecord, BreachSource, RecommendedAction
from backend.app.schemas.breach import BreachSearchFilters, BreachSourceCreate
from backend.app.services.risk import calculate_risk_level, generate_recommended_actions
from backend.app.services.severity import Severity

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _load_record(db: AsyncSession, record_id: int) -> BreachRecord:
    result = await db.execute(
        select(BreachRecord)
        .where(BreachRecord.id == record_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().one()


async def _recompute_derived(db: AsyncSession, record_id: int) -> Severity:
    """Rewrite risk_level and recommended_actions from the current sources."""
    result = await db.execute(
        select(BreachSource.severity).where(BreachSource.breach_record_id == record_id)
    )
    risk_level = calculate_risk_level(result.scalars().all())

    await db.execute(
        update(BreachRecord)
        .where(BreachRecord.id == record_id)
        .values(risk_level=risk_level.value)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(RecommendedAction)
        .where(RecommendedAction.breach_record_id == record_id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        insert(RecommendedAction),
        [
            {
                "breach_record_id": record_id,
                "position": position,
                "action": template.action,
                "priority": template.priority,
                "completed": False,
            }
            for position, template in enumerate(generate_recommended_actions(risk_level))
        ],
    )
    return risk_level


async def record_finding(
    db: AsyncSession,
    user_id: int,
    password_hash: str,
    source: BreachSourceCreate,
) -> BreachRecord:
    """
    Merge one detection into the (user_id, password_hash) record.

    - new key: record created with times_found=1 and the single source
    - existing key: times_found += 1, last_checked=now, is_active=True,
      source appended only if no source with the same name exists
    Acknowledgment is left untouched on merge.
    """
    now = _utcnow()
    upsert = dialect_insert(db)

    try:
        record_stmt = upsert(BreachRecord).values(
            user_id=user_id,
            password_hash=password_hash,
            is_active=True,
            first_detected=now,
            last_checked=now,
            times_found=1,
            notifications_sent=0,
            user_acknowledged=False,
            risk_level=Severity.LOW.value,
            created_at=now,
            updated_at=now,
        )
        record_stmt = record_stmt.on_conflict_do_update(
            index_elements=["user_id", "password_hash"],
            set_={
                "times_found": BreachRecord.times_found + 1,
                "last_checked": now,
                "is_active": True,
                "updated_at": now,
            },
        )
        await db.execute(record_stmt)

        row = (
            await db.execute(
                select(BreachRecord.id, BreachRecord.times_found).where(
                    BreachRecord.user_id == user_id,
                    BreachRecord.password_hash == password_hash,
                )
            )
        ).one()
        record_id, times_found = row

        source_stmt = upsert(BreachSource).values(
            breach_record_id=record_id,
            name=source.name,
            date_found=source.date_found,
            severity=source.severity.value,
            description=source.description,
            affected_accounts=source.affected_accounts,
        ).on_conflict_do_nothing(index_elements=["breach_record_id", "name"])
        appended = (await db.execute(source_stmt)).rowcount == 1

        if appended:
            risk_level = await _recompute_derived(db, record_id)
            logger.info(
                "Breach record %s: source %s appended, risk level %s",
                record_id,
                source.name,
                risk_level.value,
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Breach record %s for user %s %s (times_found=%s)",
        record_id,
        user_id,
        "created" if times_found == 1 else "merged",
        times_found,
    )
    return await _load_record(db, record_id)


async def get_record(db: AsyncSession, user_id: int, record_id: int) -> BreachRecord:
    result = await db.execute(
        select(BreachRecord)
        .where(BreachRecord.id == record_id, BreachRecord.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    record = result.scalars().first()
    if not record:
        raise RecordNotFound(record_id)
    return record


async def acknowledge(db: AsyncSession, user_id: int, record_id: int) -> BreachRecord:
    record = await get_record(db, user_id, record_id)

    record.user_acknowledged = True
    record.acknowledged_at = _utcnow()

    db.add(record)
    await db.commit()
    logger.info("Breach record %s acknowledged by user %s", record_id, user_id)
    return await _load_record(db, record_id)


async def acknowledge_all(db: AsyncSession, user_id: int) -> int:
    """Acknowledge every unacknowledged record of a user; returns how many changed."""
    result = await db.execute(
        update(BreachRecord)
        .where(BreachRecord.user_id == user_id, BreachRecord.user_acknowledged.is_(False))
        .values(user_acknowledged=True, acknowledged_at=_utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def complete_action(
    db: AsyncSession, user_id: int, record_id: int, action_index: int
) -> BreachRecord:
    """Mark one recommended action completed. Idempotent."""
    if isinstance(action_index, bool) or not isinstance(action_index, int):
        raise ValidationFailure("Action index must be an integer")

    record = await get_record(db, user_id, record_id)

    if action_index < 0 or action_index >= len(record.recommended_actions):
        raise ActionIndexOutOfRange(record_id, action_index)

    action = record.recommended_actions[action_index]
    if not action.completed:
        action.completed = True
        db.add(action)
        await db.commit()

    return await _load_record(db, record_id)


async def deactivate(db: AsyncSession, user_id: int, record_id: int) -> BreachRecord:
    """Logically retire a record. Records are never physically deleted here."""
    record = await get_record(db, user_id, record_id)
    record.is_active = False
    db.add(record)
    await db.commit()
    return await _load_record(db, record_id)


async def increment_notifications_sent(db: AsyncSession, record_ids: Sequence[int]) -> None:
    """Atomic SQL increment; never a read-modify-write in Python."""
    if not record_ids:
        return
    await db.execute(
        update(BreachRecord)
        .where(BreachRecord.id.in_(list(record_ids)))
        .values(notifications_sent=BreachRecord.notifications_sent + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def _list_page(db: AsyncSession, conditions, offset: int, limit: int) -> List[BreachRecord]:
    result = await db.execute(
        select(BreachRecord)
        .where(*conditions)
        .order_by(BreachRecord.created_at.desc(), BreachRecord.id.desc())
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _count(db: AsyncSession, conditions) -> int:
    result = await db.execute(select(func.count(BreachRecord.id)).where(*conditions))
    return result.scalar_one()


def _active(user_id: int):
    return (BreachRecord.user_id == user_id, BreachRecord.is_active.is_(True))


def _notified(user_id: int):
    return (BreachRecord.user_id == user_id, BreachRecord.notifications_sent > 0)


async def list_records(
    db: AsyncSession, user_id: int, offset: int = 0, limit: int = 10
) -> List[BreachRecord]:
    return await _list_page(db, (BreachRecord.user_id == user_id,), offset, limit)


async def count_records(db: AsyncSession, user_id: int) -> int:
    return await _count(db, (BreachRecord.user_id == user_id,))


async def list_active_records(
    db: AsyncSession, user_id: int, offset: int = 0, limit: int = 10
) -> List[BreachRecord]:
    """Active records, newest first. Backs the in-app notification feed."""
    return await _list_page(db, _active(user_id), offset, limit)


async def count_active_records(db: AsyncSession, user_id: int) -> int:
    return await _count(db, _active(user_id))


async def list_notified_records(
    db: AsyncSession, user_id: int, offset: int = 0, limit: int = 20
) -> List[BreachRecord]:
    """Records at least one notification went out for (delivery history)."""
    return await _list_page(db, _notified(user_id), offset, limit)


async def count_notified_records(db: AsyncSession, user_id: int) -> int:
    return await _count(db, _notified(user_id))


async def search_records(
    db: AsyncSession, user_id: int, filters: BreachSearchFilters
) -> List[BreachRecord]:
    query = select(BreachRecord).where(BreachRecord.user_id == user_id)

    if filters.severity is not None:
        query = query.where(
            BreachRecord.breach_sources.any(BreachSource.severity == filters.severity.value)
        )
    if filters.risk_level is not None:
        query = query.where(BreachRecord.risk_level == filters.risk_level.value)
    if filters.acknowledged is not None:
        query = query.where(BreachRecord.user_acknowledged.is_(filters.acknowledged))
    if filters.active is not None:
        query = query.where(BreachRecord.is_active.is_(filters.active))
    if filters.source:
        query = query.where(BreachRecord.breach_sources.any(BreachSource.name == filters.source))
    if filters.date_from is not None:
        query = query.where(BreachRecord.first_detected >= filters.date_from)
    if filters.date_to is not None:
        query = query.where(BreachRecord.first_detected <= filters.date_to)

    query = (
        query.order_by(BreachRecord.created_at.desc(), BreachRecord.id.desc())
        .limit(SEARCH_RESULT_LIMIT)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_recent(db: AsyncSession, limit: int = 20) -> List[BreachRecord]:
    """Most recently created records across all users (admin dashboard)."""
    result = await db.execute(
        select(BreachRecord)
        .order_by(BreachRecord.created_at.desc(), BreachRecord.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_pending_alerts(
    db: AsyncSession, user_id: int, limit: Optional[int] = None
) -> List[BreachRecord]:
    """Active, unacknowledged records that no notification has gone out for yet."""
    query = (
        select(BreachRecord)
        .where(
            BreachRecord.user_id == user_id,
            BreachRecord.is_active.is_(True),
            BreachRecord.user_acknowledged.is_(False),
            BreachRecord.notifications_sent == 0,
        )
        .order_by(BreachRecord.first_detected.desc(), BreachRecord.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
