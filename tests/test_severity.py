import pytest

from backend.app.services.severity import Severity, classify_severity


@pytest.mark.parametrize(
    "count,expected",
    [
        (0, Severity.LOW),
        (1, Severity.LOW),
        (999, Severity.LOW),
        (1_000, Severity.MEDIUM),
        (1_489, Severity.MEDIUM),
        (9_999, Severity.MEDIUM),
        (10_000, Severity.HIGH),
        (99_999, Severity.HIGH),
        (100_000, Severity.CRITICAL),
        (10**9, Severity.CRITICAL),
    ],
)
def test_thresholds(count, expected):
    assert classify_severity(count) == expected


def test_classification_is_monotonic():
    counts = sorted({0, 1, 5, 999, 1_000, 1_001, 5_000, 9_999, 10_000, 50_000, 99_999, 100_000, 3_000_000})
    ranks = [classify_severity(c).rank for c in counts]
    assert ranks == sorted(ranks)


def test_negative_count_is_low():
    assert classify_severity(-5) == Severity.LOW


def test_severity_values_are_strings():
    assert Severity("critical") is Severity.CRITICAL
    assert Severity.MEDIUM.value == "medium"
