# backend/app/db/base.py
"""
Declarative base shared by every BreachWatch model.

No engine or session imports here: tests build their own engine from
Base.metadata without touching the application engine.
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """users, breach_records, breach_sources, recommended_actions"""
    pass


__all__ = ["Base"]
