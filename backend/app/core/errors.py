# backend/app/core/errors.py
"""
Typed errors for the breach detection pipeline.

Callers distinguish "status unknown" (LookupUnavailable) from "safe",
"not yours / doesn't exist" (NotFound) from bad input (ValidationFailure).
"""


class BreachWatchError(Exception):
    """Base class for all breach pipeline errors."""


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class LookupUnavailable(BreachWatchError):
    """The breach corpus could not be queried (timeout, network, non-2xx).

    The password's status is unknown. Never present this as "not breached".
    """

    retryable = True

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# Ownership / existence
# ---------------------------------------------------------------------------


class NotFound(BreachWatchError):
    """Requested entity is absent or not owned by the caller."""


class RecordNotFound(NotFound):
    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"Breach record {record_id} not found")


class UserNotFound(NotFound):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class ValidationFailure(BreachWatchError):
    """Malformed input, rejected before any side effect."""


class ActionIndexOutOfRange(ValidationFailure):
    def __init__(self, record_id: int, action_index: int) -> None:
        self.record_id = record_id
        self.action_index = action_index
        super().__init__(
            f"Invalid action index {action_index} for breach record {record_id}"
        )


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------


class NotificationChannelFailure(BreachWatchError):
    """A single channel send failed. Swallowed at the dispatcher boundary."""

    def __init__(self, channel: str, reason: str) -> None:
        self.channel = channel
        self.reason = reason
        super().__init__(f"{channel} notification failed: {reason}")
