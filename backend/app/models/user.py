# backend/app/models/user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from backend.app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # E.164 preferred; normalized again before every SMS send
    phone = Column(String(32), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    # --- NOTIFICATION PREFERENCES (mutated only by the user) ---
    notify_email = Column(Boolean, nullable=False, default=True)
    notify_sms = Column(Boolean, nullable=False, default=False)
    notify_push = Column(Boolean, nullable=False, default=True)
    # "immediate" | "daily" | "weekly"
    notify_frequency = Column(String(16), nullable=False, default="immediate")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
