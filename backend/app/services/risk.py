# backend/app/services/risk.py
"""
Pure derivation of a breach record's risk level and recommended actions.

Both are functions of the record's breach source severities only, and are
called by the record manager inside the same transaction that appends a
source. Nothing else writes risk_level or recommended_actions.
"""
from dataclasses import dataclass
from typing import Iterable, List

from backend.app.services.severity import Severity

CHANGE_PASSWORD = "Change password immediately"
ENABLE_MFA = "Enable Two-Factor Authentication"
REVIEW_SECURITY_QUESTIONS = "Review and update security questions"
CHECK_UNAUTHORIZED_ACCESS = "Check for unauthorized account access"
MONITOR_ACTIVITY = "Monitor account for suspicious activity"


@dataclass(frozen=True)
class ActionTemplate:
    action: str
    priority: str


def calculate_risk_level(severities: Iterable[str]) -> Severity:
    """
    critical - any critical or high source
    high     - more than two medium sources
    medium   - at least one medium source
    low      - otherwise (including no sources)
    """
    severities = [Severity(s) for s in severities]

    if any(s in (Severity.CRITICAL, Severity.HIGH) for s in severities):
        return Severity.CRITICAL

    medium_count = sum(1 for s in severities if s == Severity.MEDIUM)
    if medium_count > 2:
        return Severity.HIGH
    if medium_count > 0:
        return Severity.MEDIUM
    return Severity.LOW


def generate_recommended_actions(risk_level: Severity) -> List[ActionTemplate]:
    actions = [ActionTemplate(CHANGE_PASSWORD, "high")]

    if risk_level in (Severity.CRITICAL, Severity.HIGH):
        actions.extend([
            ActionTemplate(ENABLE_MFA, "high"),
            ActionTemplate(REVIEW_SECURITY_QUESTIONS, "medium"),
            ActionTemplate(CHECK_UNAUTHORIZED_ACCESS, "high"),
        ])

    actions.append(ActionTemplate(MONITOR_ACTIVITY, "medium"))
    return actions


def should_suggest_mfa(risk_level: Severity) -> bool:
    return risk_level in (Severity.CRITICAL, Severity.HIGH)
