"""Security score engine.

Turns a :class:`~auditscore.models.Findings` set into a
:class:`~auditscore.models.ScoreReport`. The engine is pure: the same
finding set always produces the same report.
"""

import math
from typing import Any

from auditscore.config import DEFAULT_SCORING, ScoringConfig
from auditscore.errors import AnalyzerReportedError, MalformedFindings
from auditscore.models import (
    Findings,
    PenaltyBreakdown,
    ScoreReport,
    empty_severity_counts,
)
from auditscore.utils import round_half_up


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _as_float(value: int | float) -> float:
    """Convert a metric to float; integers beyond float range become infinity."""
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def _require_metric(value: Any, field_name: str) -> float:
    """Return *value* as a float, or raise if it is not a usable metric.

    Integers too large for a float are accepted; every capped penalty
    then reaches its cap.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedFindings(
            f"{field_name} must be a number, got {value!r}",
            context={"field": field_name, "value": value},
        )
    if (isinstance(value, float) and not math.isfinite(value)) or value < 0:
        raise MalformedFindings(
            f"{field_name} must be a non-negative finite number, got {value!r}",
            context={"field": field_name, "value": value},
        )
    return _as_float(value)


def validate_findings(findings: Findings) -> None:
    """Check the numeric invariants the score depends on.

    Raises:
        AnalyzerReportedError: If the analyzer reported an error.
        MalformedFindings: If a complexity or gas figure is not a
            non-negative finite number.
    """
    if findings.error is not None:
        raise AnalyzerReportedError(
            f"Analyzer reported an error: {findings.error}",
            context={"error": findings.error},
        )

    _require_metric(findings.complexity_score, "complexity_score")
    _require_metric(
        findings.gas_usage.estimated_deployment_cost,
        "gas_usage.estimated_deployment_cost",
    )
    for name, cost in findings.gas_usage.function_costs.items():
        _require_metric(cost, f"gas_usage.estimated_function_costs[{name}]")
    for name, complexity in findings.function_complexities.items():
        _require_metric(complexity, f"function_complexities[{name}]")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def count_severities(findings: Findings) -> dict[str, int]:
    """Count vulnerabilities per recognized severity.

    Unknown severities are left out of every bucket.
    """
    counts = empty_severity_counts()
    for vuln in findings.vulnerabilities:
        severity = vuln.normalized_severity
        if severity is not None:
            counts[severity] += 1
    return counts


def grade_for(score: int, config: ScoringConfig = DEFAULT_SCORING) -> str:
    """Return the letter grade for a rounded *score*."""
    for minimum, grade in config.grade_thresholds:
        if score >= minimum:
            return grade
    return config.fallback_grade


def compute_penalties(
    findings: Findings,
    config: ScoringConfig = DEFAULT_SCORING,
) -> PenaltyBreakdown:
    """Compute the deductions for an already validated finding set."""
    vulnerability_penalty = 0
    for vuln in findings.vulnerabilities:
        severity = vuln.normalized_severity
        if severity is not None:
            vulnerability_penalty += config.severity_penalties.get(severity.lower(), 0)

    complexity = _as_float(findings.complexity_score)
    deployment_cost = _as_float(findings.gas_usage.estimated_deployment_cost)

    return PenaltyBreakdown(
        vulnerabilities=float(vulnerability_penalty),
        complexity=min(config.complexity_cap, complexity * config.complexity_factor),
        gas=min(config.gas_cap, (deployment_cost / config.gas_unit) * config.gas_factor),
    )


def compute_score(
    findings: Findings,
    config: ScoringConfig = DEFAULT_SCORING,
) -> ScoreReport:
    """Score a finding set.

    Starts from ``config.base_score`` and deducts a fixed penalty per
    vulnerability by severity, a capped complexity penalty and a capped
    deployment gas penalty. The result is clamped to ``[0, 100]`` and
    rounded half up before grading.

    Args:
        findings: Parsed analyzer output.
        config: Penalty weights and grade thresholds.

    Returns:
        The derived :class:`ScoreReport`.

    Raises:
        MalformedFindings: If the finding set is failed or violates its
            numeric invariants.
    """
    validate_findings(findings)

    penalties = compute_penalties(findings, config)
    raw_score = max(0.0, config.base_score - penalties.total)
    score = min(100, round_half_up(raw_score))

    return ScoreReport(
        security_score=score,
        grade=grade_for(score, config),
        severity_counts=count_severities(findings),
        penalties=penalties,
    )
