"""Analysis pipeline.

Takes one analyzer document through parsing, scoring and aggregation,
then records the outcome in the history log. Failed analyses (the
analyzer reported an ``error``) are short-circuited and never recorded.
"""

import logging
from dataclasses import dataclass
from typing import Any

from auditscore.config import DEFAULT_SCORING, ScoringConfig
from auditscore.core.aggregation import Aggregates, build_aggregates
from auditscore.core.scoring import compute_score
from auditscore.history.store import HistoryLog, HistoryStore
from auditscore.models import Findings, HistoryEntry, ScoreReport

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything the presentation layer needs for one analysis.

    Attributes:
        findings: The parsed analyzer document.
        report: Derived score, or ``None`` when the analysis failed.
        aggregates: Chart groupings, or ``None`` when the analysis failed.
        entry: History entry created for this analysis, if it was recorded.
        history: The history log after recording, newest first.
    """

    findings: Findings
    report: ScoreReport | None = None
    aggregates: Aggregates | None = None
    entry: HistoryEntry | None = None
    history: HistoryLog | None = None

    @property
    def failed(self) -> bool:
        return self.findings.failed

    def to_dict(self) -> dict:
        """Return a JSON-serializable dictionary of the analysis."""
        if self.failed:
            return {"error": self.findings.error}
        data: dict[str, Any] = {
            "report": self.report.to_dict() if self.report else None,
            "aggregates": self.aggregates.to_dict() if self.aggregates else None,
            "summary": self.findings.summary,
            "analysis_time": self.findings.analysis_time,
        }
        if self.entry is not None:
            data["contract_label"] = self.entry.contract_label
            data["timestamp"] = self.entry.timestamp
        return data


def run_analysis(
    payload: Any,
    *,
    label: str | None = None,
    store: HistoryStore | None = None,
    config: ScoringConfig = DEFAULT_SCORING,
) -> AnalysisResult:
    """Score an analyzer document and record it in the history.

    Args:
        payload: Decoded analyzer JSON document.
        label: Contract label for the history entry.
        store: History store to record into; ``None`` skips recording.
        config: Penalty weights and grade thresholds.

    Returns:
        An :class:`AnalysisResult`. When the analyzer reported an error the
        result carries only the parsed findings.

    Raises:
        MalformedFindings: If the document is not a usable finding set.
    """
    findings = Findings.from_dict(payload)

    if findings.failed:
        logger.info("Analyzer reported an error, skipping scoring: %s", findings.error)
        return AnalysisResult(findings=findings)

    report = compute_score(findings, config)
    aggregates = build_aggregates(findings)
    logger.debug(
        "Scored %d vulnerabilities: %d (%s)",
        len(findings.vulnerabilities),
        report.security_score,
        report.grade,
    )

    result = AnalysisResult(findings=findings, report=report, aggregates=aggregates)
    if store is not None:
        entry = store.new_entry(findings.to_dict(), report, label)
        result.entry = entry
        result.history = store.add(entry)

    return result
