"""Tests for the policy gate."""

import unittest

from plan_orchestrator.config import PolicyConfig
from plan_orchestrator.orchestrator import (
    Analysis,
    PolicyGate,
    SafetyReport,
    ToxicityIssue,
)

CLEAN = SafetyReport(ok=True)
DIRTY = SafetyReport(ok=False, issues=(ToxicityIssue(score=0.9, threshold=0.3),))


def _analysis(actions=("deploy_service",), confidence=0.95) -> Analysis:
    return Analysis(model="m", actions=actions, explanations="", confidence=confidence)


class PolicyGateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.gate = PolicyGate.from_config(PolicyConfig())

    def test_clean_plan_needs_no_approval(self) -> None:
        decision = self.gate.decide(_analysis(), CLEAN)
        self.assertFalse(decision.requires_approval)
        self.assertEqual(decision.notes, ())

    def test_failed_safety_report_requires_approval(self) -> None:
        decision = self.gate.decide(_analysis(), DIRTY)
        self.assertTrue(decision.requires_approval)
        self.assertEqual(decision.notes, ("Safety check failed (toxicity); human review required.",))

    def test_low_confidence_requires_approval(self) -> None:
        decision = self.gate.decide(_analysis(confidence=0.5), CLEAN)
        self.assertTrue(decision.requires_approval)
        self.assertEqual(
            decision.notes,
            ("Confidence 0.50 is below the auto-approval floor of 0.80.",),
        )

    def test_confidence_at_floor_passes(self) -> None:
        self.assertFalse(self.gate.decide(_analysis(confidence=0.8), CLEAN).requires_approval)

    def test_high_risk_actions_are_matched_case_insensitively(self) -> None:
        analysis = _analysis(actions=("deploy_service", "DROP_users", "soft_delete_cleanup", "force_push"))
        self.assertEqual(
            self.gate.high_risk_matches(analysis.actions),
            ["DROP_users", "soft_delete_cleanup", "force_push"],
        )

    def test_one_note_per_rule_in_order(self) -> None:
        decision = self.gate.decide(_analysis(actions=("drop_table",), confidence=0.1), DIRTY)
        self.assertEqual(len(decision.notes), 3)
        self.assertTrue(decision.notes[0].startswith("Safety check failed"))
        self.assertTrue(decision.notes[1].startswith("Confidence 0.10"))
        self.assertEqual(decision.notes[2], "High-risk actions present: drop_table.")

    def test_evaluate_bundles_report(self) -> None:
        result = self.gate.evaluate(_analysis(), DIRTY)
        self.assertTrue(result.requires_approval)
        self.assertIs(result.safety_report, DIRTY)

    def test_no_patterns_configured(self) -> None:
        gate = PolicyGate(confidence_floor=0.0)
        self.assertFalse(gate.decide(_analysis(actions=("drop_everything",), confidence=0.0), CLEAN).requires_approval)


if __name__ == "__main__":
    unittest.main()
