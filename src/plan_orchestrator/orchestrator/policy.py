"""Policy gate: decides whether a plan needs human approval."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Iterable, List, Optional, Tuple

from ..config import PolicyConfig
from .models import Analysis, PolicyResult, SafetyReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyDecision:
    requires_approval: bool
    notes: Tuple[str, ...] = ()


class PolicyGate:
    """
    策略门

    按固定顺序评估三条规则，每触发一条规则追加一条说明：
    1. 安全报告未通过
    2. 置信度低于自动审批下限
    3. 动作列表中包含高风险（破坏性/不可逆）动作
    """

    def __init__(
        self,
        confidence_floor: float = 0.8,
        high_risk_actions: Optional[Iterable[str]] = None,
    ) -> None:
        self.confidence_floor = confidence_floor
        self.high_risk_actions = tuple(high_risk_actions or ())

    @classmethod
    def from_config(cls, config: PolicyConfig) -> "PolicyGate":
        return cls(
            confidence_floor=config.confidence_floor,
            high_risk_actions=config.high_risk_actions,
        )

    def high_risk_matches(self, actions: Iterable[str]) -> List[str]:
        """Return the actions matching any high-risk pattern, in input order."""
        return [
            action for action in actions
            if any(fnmatchcase(action.lower(), pattern.lower()) for pattern in self.high_risk_actions)
        ]

    def decide(self, analysis: Analysis, safety_report: SafetyReport) -> PolicyDecision:
        notes: List[str] = []

        if not safety_report.ok:
            kinds = ", ".join(issue.kind for issue in safety_report.issues)
            notes.append(f"Safety check failed ({kinds}); human review required.")

        if analysis.confidence < self.confidence_floor:
            notes.append(
                f"Confidence {analysis.confidence:.2f} is below the auto-approval "
                f"floor of {self.confidence_floor:.2f}."
            )

        risky = self.high_risk_matches(analysis.actions)
        if risky:
            notes.append(f"High-risk actions present: {', '.join(risky)}.")

        if notes:
            logger.debug("Policy gate requires approval: %s", notes)
        return PolicyDecision(requires_approval=bool(notes), notes=tuple(notes))

    def evaluate(self, analysis: Analysis, safety_report: SafetyReport) -> PolicyResult:
        """Run :meth:`decide` and bundle the verdict with the safety report."""
        decision = self.decide(analysis, safety_report)
        return PolicyResult(
            requires_approval=decision.requires_approval,
            notes=decision.notes,
            safety_report=safety_report,
        )
