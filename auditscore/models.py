"""auditscore data models for analyzer findings, score reports and history."""

from dataclasses import dataclass, field
from typing import Any

from auditscore.errors import MalformedFindings


# ---------------------------------------------------------------------------
# Severity constants & ordering
# ---------------------------------------------------------------------------

CRITICAL: str = "Critical"
HIGH: str = "High"
MEDIUM: str = "Medium"
LOW: str = "Low"

# Chart order, most severe first.
SEVERITIES: tuple[str, ...] = (CRITICAL, HIGH, MEDIUM, LOW)

SEVERITY_ORDER: dict[str, int] = {
    CRITICAL: 4,
    HIGH: 3,
    MEDIUM: 2,
    LOW: 1,
}

_SEVERITY_LOOKUP: dict[str, str] = {s.lower(): s for s in SEVERITIES}


def normalize_severity(raw: object) -> str | None:
    """Map a raw severity to its canonical spelling.

    Matching is case-insensitive. Returns ``None`` for anything outside
    the four recognized severities.
    """
    if not isinstance(raw, str):
        return None
    return _SEVERITY_LOOKUP.get(raw.lower())


def empty_severity_counts() -> dict[str, int]:
    """Return a zero-filled count for every recognized severity."""
    return {severity: 0 for severity in SEVERITIES}


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _as_mapping(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise MalformedFindings(
            f"{what} must be a JSON object, got {type(value).__name__}",
            context={"field": what},
        )
    return value


def _as_list(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedFindings(
            f"{what} must be a JSON array, got {type(value).__name__}",
            context={"field": what},
        )
    return value


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


# ---------------------------------------------------------------------------
# Finding models
# ---------------------------------------------------------------------------


@dataclass
class SourceLocation:
    """Character offsets of a vulnerability in the contract source."""

    start: int = 0
    end: int = 0

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass
class Vulnerability:
    """A single vulnerability reported by the analyzer.

    Attributes:
        severity: Severity exactly as reported (``Critical``, ``High``,
            ``Medium``, ``Low``; anything else is kept but never scored).
        description: Human-readable description of the finding.
        location: Source offsets of the affected code.
        category: Vulnerability class (e.g. "Reentrancy").
        code_snippet: Offending source, when the analyzer includes it.
        recommendation: Suggested fix, when the analyzer includes it.
    """

    severity: str
    description: str
    location: SourceLocation = field(default_factory=SourceLocation)
    category: str = ""
    code_snippet: str | None = None
    recommendation: str | None = None

    @property
    def normalized_severity(self) -> str | None:
        return normalize_severity(self.severity)

    def __str__(self) -> str:
        return (
            f"[{self.severity}] {self.category or 'Uncategorized'} "
            f"at {self.location.start}-{self.location.end}: {self.description}"
        )

    @classmethod
    def from_dict(cls, data: Any) -> "Vulnerability":
        data = _as_mapping(data, "vulnerability")
        location = data.get("location") or {}
        location = _as_mapping(location, "vulnerability.location")
        return cls(
            severity=str(data.get("severity", "")),
            description=str(data.get("description", "")),
            location=SourceLocation(
                start=location.get("start", 0),
                end=location.get("end", 0),
            ),
            category=str(data.get("category", "")),
            code_snippet=_optional_str(data.get("code_snippet")),
            recommendation=_optional_str(data.get("recommendation")),
        )

    def to_dict(self) -> dict:
        """Return a JSON-serializable dictionary representation."""
        return {
            "severity": self.severity,
            "description": self.description,
            "location": self.location.to_dict(),
            "category": self.category,
            "code_snippet": self.code_snippet,
            "recommendation": self.recommendation,
        }


@dataclass
class AnalyzerWarning:
    """A non-vulnerability warning reported by the analyzer."""

    category: str
    message: str
    line_number: int = 0
    code_snippet: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "AnalyzerWarning":
        data = _as_mapping(data, "warning")
        return cls(
            category=str(data.get("category", "")),
            message=str(data.get("message", "")),
            line_number=data.get("line_number", 0),
            code_snippet=_optional_str(data.get("code_snippet")),
        )

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "message": self.message,
            "line_number": self.line_number,
            "code_snippet": self.code_snippet,
        }


@dataclass
class GasUsage:
    """Gas estimates for deployment and for each function.

    ``function_costs`` accepts both an object (``{"name": cost}``) and the
    ``[[name, cost], ...]`` pair list some analyzer versions emit.
    """

    estimated_deployment_cost: Any = 0
    function_costs: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "GasUsage":
        data = _as_mapping(data, "gas_usage")
        raw_costs = data.get("estimated_function_costs") or {}
        costs: dict[str, Any] = {}

        if isinstance(raw_costs, dict):
            costs = dict(raw_costs)
        elif isinstance(raw_costs, list):
            for pair in raw_costs:
                if (
                    not isinstance(pair, (list, tuple))
                    or len(pair) != 2
                    or not isinstance(pair[0], str)
                ):
                    raise MalformedFindings(
                        "gas_usage.estimated_function_costs entries must be [name, cost] pairs",
                        context={"entry": pair},
                    )
                name, cost = pair
                if name in costs:
                    raise MalformedFindings(
                        f"Duplicate gas estimate for function '{name}'",
                        context={"function": name},
                    )
                costs[name] = cost
        else:
            raise MalformedFindings(
                "gas_usage.estimated_function_costs must be an object or an array of pairs"
            )

        return cls(
            estimated_deployment_cost=data.get("estimated_deployment_cost"),
            function_costs=costs,
        )

    def to_dict(self) -> dict:
        return {
            "estimated_deployment_cost": self.estimated_deployment_cost,
            "estimated_function_costs": dict(self.function_costs),
        }


@dataclass
class Findings:
    """The finding set returned by the analyzer for one contract.

    Numeric fields are kept exactly as delivered; the score engine checks
    them before use.

    Attributes:
        vulnerabilities: Reported vulnerabilities, in analyzer order.
        warnings: Reported warnings, in analyzer order.
        gas_usage: Deployment and per-function gas estimates.
        complexity_score: Overall complexity, expected in ``[0, 100]``.
        function_complexities: Per-function complexity.
        error: Analyzer failure message. When set nothing else is meaningful.
        summary: Analyzer-supplied summary, passed through untouched.
        analysis_time: Analyzer-supplied timing, passed through untouched.
        raw: The original document, as received.
    """

    vulnerabilities: list[Vulnerability] = field(default_factory=list)
    warnings: list[AnalyzerWarning] = field(default_factory=list)
    gas_usage: GasUsage = field(default_factory=GasUsage)
    complexity_score: Any = 0
    function_complexities: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    summary: dict | None = None
    analysis_time: dict | None = None
    raw: dict = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def from_dict(cls, payload: Any) -> "Findings":
        """Parse an analyzer document.

        Raises:
            MalformedFindings: If the document does not have the expected shape.
        """
        payload = _as_mapping(payload, "findings document")

        if payload.get("error") is not None:
            return cls(error=str(payload["error"]), raw=payload)

        function_complexities = payload.get("function_complexities") or {}
        _as_mapping(function_complexities, "function_complexities")

        summary = payload.get("summary")
        if summary is not None:
            _as_mapping(summary, "summary")
        analysis_time = payload.get("analysis_time")
        if analysis_time is not None:
            _as_mapping(analysis_time, "analysis_time")

        return cls(
            vulnerabilities=[
                Vulnerability.from_dict(item)
                for item in _as_list(payload.get("vulnerabilities"), "vulnerabilities")
            ],
            warnings=[
                AnalyzerWarning.from_dict(item)
                for item in _as_list(payload.get("warnings"), "warnings")
            ],
            gas_usage=GasUsage.from_dict(payload.get("gas_usage")),
            complexity_score=payload.get("complexity_score"),
            function_complexities=dict(function_complexities),
            summary=summary,
            analysis_time=analysis_time,
            raw=payload,
        )

    def to_dict(self) -> dict:
        """Return the original document, or a rebuilt one if none was kept."""
        if self.raw:
            return self.raw
        if self.error is not None:
            return {"error": self.error}
        data: dict[str, Any] = {
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "warnings": [w.to_dict() for w in self.warnings],
            "gas_usage": self.gas_usage.to_dict(),
            "complexity_score": self.complexity_score,
            "function_complexities": dict(self.function_complexities),
        }
        if self.summary is not None:
            data["summary"] = self.summary
        if self.analysis_time is not None:
            data["analysis_time"] = self.analysis_time
        return data


# ---------------------------------------------------------------------------
# ScoreReport model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PenaltyBreakdown:
    """Points deducted from the base score, by source."""

    vulnerabilities: float = 0.0
    complexity: float = 0.0
    gas: float = 0.0

    @property
    def total(self) -> float:
        return self.vulnerabilities + self.complexity + self.gas

    def to_dict(self) -> dict:
        return {
            "vulnerabilities": self.vulnerabilities,
            "complexity": self.complexity,
            "gas": self.gas,
            "total": self.total,
        }


@dataclass(frozen=True)
class ScoreReport:
    """Security score derived from a finding set.

    Attributes:
        security_score: Integer score in ``[0, 100]``.
        grade: Letter grade (``A+``, ``A``, ``B``, ``C`` or ``D``).
        severity_counts: Vulnerability count for each recognized severity.
        penalties: Deductions that produced the score.
    """

    security_score: int
    grade: str
    severity_counts: dict[str, int] = field(default_factory=empty_severity_counts)
    penalties: PenaltyBreakdown = field(default_factory=PenaltyBreakdown)

    def to_dict(self) -> dict:
        return {
            "security_score": self.security_score,
            "grade": self.grade,
            "severity_counts": dict(self.severity_counts),
            "penalties": self.penalties.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreReport":
        penalties = data.get("penalties") or {}
        counts = empty_severity_counts()
        counts.update(
            {k: int(v) for k, v in data.get("severity_counts", {}).items() if k in counts}
        )
        return cls(
            security_score=int(data["security_score"]),
            grade=str(data["grade"]),
            severity_counts=counts,
            penalties=PenaltyBreakdown(
                vulnerabilities=float(penalties.get("vulnerabilities", 0.0)),
                complexity=float(penalties.get("complexity", 0.0)),
                gas=float(penalties.get("gas", 0.0)),
            ),
        )


# ---------------------------------------------------------------------------
# History model
# ---------------------------------------------------------------------------


@dataclass
class HistoryEntry:
    """One past analysis kept in the history log.

    Attributes:
        timestamp: Creation instant in milliseconds since the epoch.
        contract_label: Display name of the analyzed contract.
        findings: The analyzer document, as received.
        score: The report derived from ``findings``.
    """

    timestamp: int
    contract_label: str
    findings: dict
    score: ScoreReport

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "contract_label": self.contract_label,
            "report": {
                "findings": self.findings,
                "score": self.score.to_dict(),
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryEntry":
        """Rebuild an entry from its persisted form.

        Raises:
            ValueError: If *data* is not a well-formed entry.
        """
        if not isinstance(data, dict):
            raise ValueError("history entry must be an object")
        report = data.get("report")
        if not isinstance(report, dict) or not isinstance(report.get("findings"), dict):
            raise ValueError("history entry has no report")
        timestamp = data.get("timestamp")
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            raise ValueError("history entry timestamp must be an integer")
        try:
            score = ScoreReport.from_dict(report["score"])
        except (KeyError, TypeError, AttributeError, OverflowError) as exc:
            raise ValueError(f"history entry has an invalid score: {exc}") from exc
        return cls(
            timestamp=timestamp,
            contract_label=str(data.get("contract_label", "")),
            findings=report["findings"],
            score=score,
        )
