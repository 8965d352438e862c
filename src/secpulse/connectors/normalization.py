"""Vocabulary normalization shared by all connectors.

Every function here is total: any input, including None, maps to exactly one
member of the target enum.
"""

import re

from secpulse.models.enums import IncidentStatus, Severity

_SEVERITY_TIERS: dict[str, Severity] = {
    **dict.fromkeys(("critical", "urgent", "sev1", "p1", "very high"), Severity.CRITICAL),
    **dict.fromkeys(("high", "important", "sev2", "p2"), Severity.HIGH),
    **dict.fromkeys(("medium", "moderate", "sev3", "p3"), Severity.MEDIUM),
}

_STATUS_TERMS: dict[str, IncidentStatus] = {
    **dict.fromkeys(("new", "open", "created", "detected", "reopened"), IncidentStatus.NEW),
    **dict.fromkeys(
        (
            "in-progress",
            "in progress",
            "in_progress",
            "investigating",
            "assigned",
            "working",
            "on hold",
        ),
        IncidentStatus.IN_PROGRESS,
    ),
    **dict.fromkeys(
        ("resolved", "fixed", "completed", "true_positive", "false_positive"),
        IncidentStatus.RESOLVED,
    ),
    **dict.fromkeys(("closed", "archived", "ignored", "canceled", "cancelled"), IncidentStatus.CLOSED),
}

_CRITICALITY_TERMS: dict[str, Severity] = {
    **dict.fromkeys(("critical", "1", "tier 1", "tier1"), Severity.CRITICAL),
    **dict.fromkeys(("high", "2", "tier 2", "tier2"), Severity.HIGH),
    **dict.fromkeys(("medium", "3", "tier 3", "tier3"), Severity.MEDIUM),
    **dict.fromkeys(("low", "4", "tier 4", "tier4"), Severity.LOW),
}

# 1-100 scores (CrowdStrike max_severity): >=70 critical, >=50 high, >=30 medium.
DEFAULT_SCORE_THRESHOLDS = (70.0, 50.0, 30.0)

_LEADING_INT = re.compile(r"^\s*(\d+)")


def _clean(value) -> str:
    return str(value).strip().lower() if value is not None else ""


def _leading_int(value) -> int | None:
    """Extract the leading integer of codes like ``"1"``, ``2`` or ``"3 - Moderate"``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def normalize_severity(value) -> Severity:
    """Map a named severity tier to the four-level taxonomy; unknown -> low."""
    return _SEVERITY_TIERS.get(_clean(value), Severity.LOW)


def severity_from_score(
    score,
    thresholds: tuple[float, float, float] = DEFAULT_SCORE_THRESHOLDS,
) -> Severity:
    """Bucket a numeric score by (critical, high, medium) lower bounds; unparseable -> low."""
    try:
        value = float(score)
    except (TypeError, ValueError):
        return Severity.LOW
    critical, high, medium = thresholds
    if value >= critical:
        return Severity.CRITICAL
    if value >= high:
        return Severity.HIGH
    if value >= medium:
        return Severity.MEDIUM
    return Severity.LOW


def severity_from_priority(code) -> Severity:
    """Incident priority code 1-5: 1 critical, 2 high, 3 medium, anything else low."""
    return {
        1: Severity.CRITICAL,
        2: Severity.HIGH,
        3: Severity.MEDIUM,
    }.get(_leading_int(code), Severity.LOW)


def normalize_status(value) -> IncidentStatus:
    """Map a lifecycle term to the closed status set; unknown -> new."""
    return _STATUS_TERMS.get(_clean(value), IncidentStatus.NEW)


def status_from_state_code(code) -> IncidentStatus:
    """ServiceNow incident state: 1 new, 2-5 in progress, 6 resolved, anything else closed."""
    state = _leading_int(code)
    if state == 1:
        return IncidentStatus.NEW
    if state is not None and 2 <= state <= 5:
        return IncidentStatus.IN_PROGRESS
    if state == 6:
        return IncidentStatus.RESOLVED
    return IncidentStatus.CLOSED


def normalize_criticality(value, default: Severity = Severity.MEDIUM) -> Severity:
    """Business criticality of an asset (names, tier labels or 1-4 codes)."""
    if value is None or _clean(value) == "":
        return default
    return _CRITICALITY_TERMS.get(_clean(value), default)
