"""Usage: rule-based field extraction helpers."""

from app.services.rules.rule_engine import RuleEngine, RuleOutcome

__all__ = ["RuleEngine", "RuleOutcome"]
