import json

import pytest
from pydantic import ValidationError

from blackjack.rules_schema import RULES_ENV_VAR, TableRules, load_rules


def test_defaults():
    rules = TableRules()
    assert rules.blackjack == 21
    assert rules.dealer_stands_on == 17
    assert rules.payout_multiplier == 2
    assert rules.orchestration.max_retries == 5
    assert rules.orchestration.initial_delay == 2.0


def test_dealer_threshold_cannot_exceed_limit():
    with pytest.raises(ValidationError):
        TableRules(dealer_stands_on=22)
    with pytest.raises(ValidationError):
        TableRules(blackjack=0)


def test_load_rules_from_path_and_env(tmp_path, monkeypatch):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"dealer_stands_on": 16, "orchestration": {"max_retries": 2}}))

    rules = load_rules(path)
    assert rules.dealer_stands_on == 16
    assert rules.orchestration.max_retries == 2

    monkeypatch.setenv(RULES_ENV_VAR, str(path))
    assert load_rules().dealer_stands_on == 16

    monkeypatch.delenv(RULES_ENV_VAR)
    assert load_rules() == TableRules()
