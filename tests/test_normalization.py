"""Vocabulary normalization tests."""

import pytest

from secpulse.connectors.normalization import (
    normalize_criticality,
    normalize_severity,
    normalize_status,
    severity_from_priority,
    severity_from_score,
    status_from_state_code,
)
from secpulse.models.enums import IncidentStatus, Severity


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("critical", Severity.CRITICAL),
        ("CRITICAL", Severity.CRITICAL),
        (" High ", Severity.HIGH),
        ("moderate", Severity.MEDIUM),
        ("low", Severity.LOW),
        ("informational", Severity.LOW),
        ("", Severity.LOW),
        (None, Severity.LOW),
        (42, Severity.LOW),
    ],
)
def test_normalize_severity(raw, expected):
    assert normalize_severity(raw) is expected


@pytest.mark.parametrize(
    "score, expected",
    [
        (100, Severity.CRITICAL),
        (75, Severity.CRITICAL),
        (70, Severity.CRITICAL),
        (69, Severity.HIGH),
        (50, Severity.HIGH),
        (45, Severity.MEDIUM),
        (30, Severity.MEDIUM),
        (29, Severity.LOW),
        ("80", Severity.CRITICAL),
        (None, Severity.LOW),
        ("n/a", Severity.LOW),
    ],
)
def test_severity_from_score(score, expected):
    assert severity_from_score(score) is expected


def test_severity_from_score_custom_thresholds():
    assert severity_from_score(9.1, thresholds=(9.0, 7.0, 4.0)) is Severity.CRITICAL
    assert severity_from_score(5.0, thresholds=(9.0, 7.0, 4.0)) is Severity.MEDIUM


@pytest.mark.parametrize(
    "code, expected",
    [
        ("1", Severity.CRITICAL),
        (1, Severity.CRITICAL),
        ("2 - High", Severity.HIGH),
        ("3", Severity.MEDIUM),
        ("4", Severity.LOW),
        ("5", Severity.LOW),
        ("", Severity.LOW),
        (None, Severity.LOW),
        (True, Severity.LOW),
    ],
)
def test_severity_from_priority(code, expected):
    assert severity_from_priority(code) is expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("new", IncidentStatus.NEW),
        ("open", IncidentStatus.NEW),
        ("in_progress", IncidentStatus.IN_PROGRESS),
        ("In Progress", IncidentStatus.IN_PROGRESS),
        ("investigating", IncidentStatus.IN_PROGRESS),
        ("true_positive", IncidentStatus.RESOLVED),
        ("false_positive", IncidentStatus.RESOLVED),
        ("closed", IncidentStatus.CLOSED),
        ("ignored", IncidentStatus.CLOSED),
        ("reopened", IncidentStatus.NEW),
        ("something-else", IncidentStatus.NEW),
        (None, IncidentStatus.NEW),
    ],
)
def test_normalize_status(raw, expected):
    assert normalize_status(raw) is expected


@pytest.mark.parametrize(
    "code, expected",
    [
        ("1", IncidentStatus.NEW),
        ("2", IncidentStatus.IN_PROGRESS),
        ("5", IncidentStatus.IN_PROGRESS),
        ("6", IncidentStatus.RESOLVED),
        ("7", IncidentStatus.CLOSED),
        ("8", IncidentStatus.CLOSED),
        (None, IncidentStatus.CLOSED),
    ],
)
def test_status_from_state_code(code, expected):
    assert status_from_state_code(code) is expected


def test_normalize_criticality():
    assert normalize_criticality("Tier 1") is Severity.CRITICAL
    assert normalize_criticality("2") is Severity.HIGH
    assert normalize_criticality("low") is Severity.LOW
    assert normalize_criticality(None) is Severity.MEDIUM
    assert normalize_criticality("gold") is Severity.MEDIUM
    assert normalize_criticality("", default=Severity.LOW) is Severity.LOW
