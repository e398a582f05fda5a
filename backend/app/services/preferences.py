# backend/app/services/preferences.py
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.errors import UserNotFound
from backend.app.models.user import User
from backend.app.schemas.user import (
    DeliveryFrequency,
    NotificationPreferences,
    NotificationPreferencesUpdate,
)


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()
    if not user:
        raise UserNotFound(user_id)
    return user


def preferences_of(user: User) -> NotificationPreferences:
    return NotificationPreferences(
        email=user.notify_email,
        sms=user.notify_sms,
        push=user.notify_push,
        frequency=DeliveryFrequency(user.notify_frequency),
    )


async def get_preferences(db: AsyncSession, user_id: int) -> NotificationPreferences:
    return preferences_of(await get_user(db, user_id))


async def update_preferences(
    db: AsyncSession, user_id: int, update: NotificationPreferencesUpdate
) -> NotificationPreferences:
    user = await get_user(db, user_id)

    update_data = update.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in update_data:
        user.notify_email = update_data["email"]
    if "sms" in update_data:
        user.notify_sms = update_data["sms"]
    if "push" in update_data:
        user.notify_push = update_data["push"]
    if "frequency" in update_data:
        user.notify_frequency = DeliveryFrequency(update_data["frequency"]).value

    db.add(user)
    await db.commit()
    await db.refresh(user)
    return preferences_of(user)
