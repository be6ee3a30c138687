from app.services.rules.rule_engine import RuleEngine


class AppState:
    rule_engine: RuleEngine | None = None


global_state = AppState()
