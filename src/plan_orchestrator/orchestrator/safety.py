"""Safety evaluator: scores an analysis against per-dimension thresholds.

``evaluate`` is pure. Measuring is delegated to a scorer so the comparison
logic can be exercised with fixed scores; the default scorer is a small
lexicon heuristic over the explanation text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Protocol, Tuple

from ..config import SafetyConfig
from .models import (
    Analysis,
    BiasIssue,
    FactualityIssue,
    SafetyIssue,
    SafetyReport,
    SafetyScores,
    SafetyThresholds,
    ToxicityIssue,
)

_WORD_RE = re.compile(r"[a-z0-9']+")
_ACTION_SPLIT_RE = re.compile(r"[^a-z0-9]+")

# 词频乘以该系数后截断到 [0, 1]，约 10% 的命中率即视为满分
_DENSITY_SCALE = 10.0

TOXIC_TERMS: FrozenSet[str] = frozenset({
    "idiot", "idiotic", "stupid", "moron", "dumb", "garbage", "trash",
    "pathetic", "incompetent", "useless", "crap", "damn", "hate",
})

BIAS_LEXICONS: Dict[str, FrozenSet[str]] = {
    "certainty": frozenset({
        "always", "never", "guaranteed", "guarantee", "certainly", "definitely",
        "undoubtedly", "impossible", "zero-risk", "flawless",
    }),
    "dismissive": frozenset({
        "obviously", "simply", "just", "trivial", "trivially", "clearly", "easy",
    }),
}


@dataclass(frozen=True)
class SafetyMeasurement:
    """Raw measurements produced by a scorer."""

    scores: SafetyScores
    bias_dimension: Optional[str] = None
    missing_evidence: Tuple[str, ...] = ()


class SafetyScorer(Protocol):
    def measure(self, analysis: Analysis) -> SafetyMeasurement:
        ...


class HeuristicSafetyScorer:
    """Lexicon-based scorer over ``analysis.explanations``."""

    def __init__(
        self,
        toxic_terms: FrozenSet[str] = TOXIC_TERMS,
        bias_lexicons: Optional[Dict[str, FrozenSet[str]]] = None,
    ) -> None:
        self.toxic_terms = toxic_terms
        self.bias_lexicons = bias_lexicons if bias_lexicons is not None else BIAS_LEXICONS

    def measure(self, analysis: Analysis) -> SafetyMeasurement:
        text = analysis.explanations.lower()
        words = _WORD_RE.findall(text)

        toxicity = self._density(words, self.toxic_terms)

        bias = 0.0
        bias_dimension = None
        for dimension, lexicon in self.bias_lexicons.items():
            score = self._density(words, lexicon)
            if score > bias:
                bias, bias_dimension = score, dimension

        missing = tuple(a for a in analysis.actions if not self._is_explained(a, text))
        if analysis.actions:
            factuality = (len(analysis.actions) - len(missing)) / len(analysis.actions)
        else:
            factuality = 1.0

        return SafetyMeasurement(
            scores=SafetyScores(
                toxicity=round(toxicity, 4),
                bias=round(bias, 4),
                factuality=round(factuality, 4),
            ),
            bias_dimension=bias_dimension,
            missing_evidence=missing,
        )

    @staticmethod
    def _density(words: List[str], lexicon: FrozenSet[str]) -> float:
        if not words:
            return 0.0
        hits = sum(1 for word in words if word in lexicon)
        return min(1.0, hits / len(words) * _DENSITY_SCALE)

    @staticmethod
    def _is_explained(action: str, text: str) -> bool:
        """An action counts as explained when its identifier, or all of its words, appear."""
        lowered = action.lower()
        if lowered in text:
            return True
        parts = [p for p in _ACTION_SPLIT_RE.split(lowered) if p]
        return bool(parts) and all(part in text for part in parts)


_DEFAULT_SCORER = HeuristicSafetyScorer()


def thresholds_from_config(config: SafetyConfig) -> SafetyThresholds:
    return SafetyThresholds(
        toxicity=config.toxicity_threshold,
        bias=config.bias_threshold,
        factuality=config.factuality_threshold,
    )


def evaluate(
    analysis: Analysis,
    thresholds: SafetyThresholds,
    scorer: Optional[SafetyScorer] = None,
) -> SafetyReport:
    """Check every configured dimension in the order toxicity, bias, factuality.

    Toxicity and bias are violated when the score exceeds the threshold;
    factuality is violated when consistency falls below it.
    """
    measurement = (scorer or _DEFAULT_SCORER).measure(analysis)
    scores = measurement.scores
    issues: List[SafetyIssue] = []
    notes: List[str] = []

    if thresholds.toxicity is None:
        notes.append("toxicity: not configured, skipped")
    elif scores.toxicity > thresholds.toxicity:
        issues.append(ToxicityIssue(
            score=scores.toxicity,
            threshold=thresholds.toxicity,
            details=f"toxicity score {scores.toxicity:.2f} exceeds {thresholds.toxicity:.2f}",
        ))
        notes.append(f"toxicity: {scores.toxicity:.2f} > {thresholds.toxicity:.2f} (violation)")
    else:
        notes.append(f"toxicity: {scores.toxicity:.2f} <= {thresholds.toxicity:.2f}")

    if thresholds.bias is None:
        notes.append("bias: not configured, skipped")
    elif scores.bias > thresholds.bias:
        issues.append(BiasIssue(
            score=scores.bias,
            threshold=thresholds.bias,
            dimension=measurement.bias_dimension,
            details=f"bias score {scores.bias:.2f} exceeds {thresholds.bias:.2f}",
        ))
        notes.append(f"bias: {scores.bias:.2f} > {thresholds.bias:.2f} (violation)")
    else:
        notes.append(f"bias: {scores.bias:.2f} <= {thresholds.bias:.2f}")

    if thresholds.factuality is None:
        notes.append("factuality: not configured, skipped")
    elif scores.factuality < thresholds.factuality:
        details = f"consistency {scores.factuality:.2f} below {thresholds.factuality:.2f}"
        if measurement.missing_evidence:
            details += f"; no supporting explanation for: {', '.join(measurement.missing_evidence)}"
        issues.append(FactualityIssue(
            consistency=scores.factuality,
            threshold=thresholds.factuality,
            missing_evidence=measurement.missing_evidence,
            details=details,
        ))
        notes.append(f"factuality: {scores.factuality:.2f} < {thresholds.factuality:.2f} (violation)")
    else:
        notes.append(f"factuality: {scores.factuality:.2f} >= {thresholds.factuality:.2f}")
        if measurement.missing_evidence:
            # 缺少证据只作为注释记录，不构成违规
            notes.append(f"factuality: unexplained actions: {', '.join(measurement.missing_evidence)}")

    return SafetyReport(
        ok=not issues,
        issues=tuple(issues),
        notes=tuple(notes),
        scores=scores,
        thresholds=thresholds,
    )
