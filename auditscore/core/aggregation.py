"""Groupings of a finding set for charts and tables."""

from collections import Counter
from dataclasses import dataclass, field

from auditscore.core.scoring import count_severities, validate_findings
from auditscore.models import Findings, empty_severity_counts


@dataclass(frozen=True)
class Aggregates:
    """Chart-ready views of one finding set.

    Attributes:
        severity_counts: Vulnerabilities per severity, Critical first.
        vulnerability_categories: Vulnerabilities per category.
        warning_categories: Warnings per category.
        function_complexities: ``(function, complexity)``, most complex first.
        function_gas_costs: ``(function, cost)``, most expensive first.
    """

    severity_counts: dict[str, int] = field(default_factory=empty_severity_counts)
    vulnerability_categories: dict[str, int] = field(default_factory=dict)
    warning_categories: dict[str, int] = field(default_factory=dict)
    function_complexities: list[tuple[str, float]] = field(default_factory=list)
    function_gas_costs: list[tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "severity_counts": dict(self.severity_counts),
            "vulnerability_categories": dict(self.vulnerability_categories),
            "warning_categories": dict(self.warning_categories),
            "function_complexities": [
                {"function": name, "complexity": value}
                for name, value in self.function_complexities
            ],
            "function_gas_costs": [
                {"function": name, "cost": value}
                for name, value in self.function_gas_costs
            ],
        }


def _ranked(values: dict[str, float]) -> list[tuple[str, float]]:
    # Highest value first, ties broken by name.
    return sorted(values.items(), key=lambda item: (-item[1], item[0]))


def _count_categories(categories: list[str]) -> dict[str, int]:
    counter = Counter(category or "Uncategorized" for category in categories)
    return dict(sorted(counter.items(), key=lambda item: (-item[1], item[0])))


def build_aggregates(findings: Findings) -> Aggregates:
    """Reshape *findings* into the groupings used by the presentation layer.

    Raises:
        MalformedFindings: Under the same conditions as
            :func:`~auditscore.core.scoring.compute_score`.
    """
    validate_findings(findings)

    return Aggregates(
        severity_counts=count_severities(findings),
        vulnerability_categories=_count_categories(
            [v.category for v in findings.vulnerabilities]
        ),
        warning_categories=_count_categories([w.category for w in findings.warnings]),
        function_complexities=_ranked(findings.function_complexities),
        function_gas_costs=_ranked(findings.gas_usage.function_costs),
    )
