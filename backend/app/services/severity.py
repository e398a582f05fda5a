# backend/app/services/severity.py
from enum import Enum


class Severity(str, Enum):
    """Bounded severity scale shared by breach sources and record risk levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}

# Checked top-down; first threshold reached wins
SEVERITY_THRESHOLDS = (
    (100_000, Severity.CRITICAL),
    (10_000, Severity.HIGH),
    (1_000, Severity.MEDIUM),
)


def classify_severity(count: int) -> Severity:
    """Map a corpus occurrence count to a severity. Total and monotonic."""
    for threshold, severity in SEVERITY_THRESHOLDS:
        if count >= threshold:
            return severity
    return Severity.LOW
