# backend/app/models/__init__.py
# Import every model so Base.metadata knows all tables
from backend.app.models.user import User
from backend.app.models.breach import BreachRecord, BreachSource, RecommendedAction

__all__ = ["User", "BreachRecord", "BreachSource", "RecommendedAction"]
