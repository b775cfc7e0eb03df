"""auditscore configuration constants."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from auditscore import __app_name__, __version__

APP_NAME: str = __app_name__
VERSION: str = __version__

# ---------------------------------------------------------------------------
# Scoring weights
# ---------------------------------------------------------------------------

BASE_SCORE: int = 100

# Keys are lower-cased severities.
SEVERITY_PENALTIES: dict[str, int] = {
    "critical": 25,
    "high": 15,
    "medium": 10,
    "low": 5,
}

COMPLEXITY_PENALTY_CAP: float = 20.0
COMPLEXITY_PENALTY_FACTOR: float = 2.0

GAS_PENALTY_CAP: float = 10.0
GAS_PENALTY_FACTOR: float = 2.0
GAS_UNIT: int = 1_000_000

# Checked top-down, lower bound inclusive.
GRADE_THRESHOLDS: list[tuple[int, str]] = [
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
]
FALLBACK_GRADE: str = "D"

# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

HISTORY_CAPACITY: int = 10
HISTORY_FILE_ENV: str = "AUDITSCORE_HISTORY_FILE"
DEFAULT_HISTORY_PATH: Path = Path.home() / f".{APP_NAME}" / "history.json"


@dataclass(frozen=True)
class ScoringConfig:
    """Penalty weights and grade thresholds used by the score engine.

    Attributes:
        base_score: Starting score before any deduction.
        severity_penalties: Lower-cased severity -> points deducted per finding.
        complexity_cap: Maximum deduction for overall complexity.
        complexity_factor: Points deducted per unit of complexity score.
        gas_cap: Maximum deduction for deployment cost.
        gas_factor: Points deducted per ``gas_unit`` of deployment cost.
        gas_unit: Gas amount the ``gas_factor`` applies to.
        grade_thresholds: ``(minimum_score, grade)`` pairs in descending order.
        fallback_grade: Grade given when no threshold matches.
    """

    base_score: int = BASE_SCORE
    severity_penalties: dict[str, int] = field(
        default_factory=lambda: dict(SEVERITY_PENALTIES)
    )
    complexity_cap: float = COMPLEXITY_PENALTY_CAP
    complexity_factor: float = COMPLEXITY_PENALTY_FACTOR
    gas_cap: float = GAS_PENALTY_CAP
    gas_factor: float = GAS_PENALTY_FACTOR
    gas_unit: int = GAS_UNIT
    grade_thresholds: list[tuple[int, str]] = field(
        default_factory=lambda: list(GRADE_THRESHOLDS)
    )
    fallback_grade: str = FALLBACK_GRADE


DEFAULT_SCORING: ScoringConfig = ScoringConfig()


def resolve_history_path(override: str | None = None) -> Path:
    """Return the history file location.

    Lookup order: explicit *override*, the ``AUDITSCORE_HISTORY_FILE``
    environment variable, then ``~/.auditscore/history.json``.
    """
    if override:
        return Path(override).expanduser()
    from_env = os.environ.get(HISTORY_FILE_ENV)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_HISTORY_PATH
