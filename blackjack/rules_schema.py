"""Validation schema for table rules configuration."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

RULES_ENV_VAR = "BLACKJACK_RULES"


class OrchestrationConfig(BaseModel):
    max_retries: int = Field(5, ge=1, description="Oracle polls before a read is abandoned.")
    initial_delay: float = Field(2.0, ge=0, description="Seconds before the first retry; doubles each attempt.")
    dealer_max_iterations: int = Field(10, ge=1, description="Safety limit on dealer draws per hand.")


class TableRules(BaseModel):
    blackjack: int = Field(21, description="Highest total that does not bust.")
    dealer_stands_on: int = Field(17, description="Dealer keeps drawing while below this total.")
    payout_multiplier: int = Field(2, ge=1, description="Chips credited per chip wagered on a win.")
    chips_per_eth: int = Field(10_000, gt=0, description="Exchange rate used by the chip exchange.")
    starting_chips: int = Field(1_000, ge=0, description="Opening balance granted to new accounts by the play service.")
    verify_payout_claims: bool = Field(
        False,
        description="Require a signed public decryption of the outcome flag when claiming a payout.",
    )
    oracle_latency: int = Field(0, ge=0, description="Polls a fresh handle stays unavailable at the oracle.")
    orchestration: OrchestrationConfig = Field(default_factory=OrchestrationConfig)

    @field_validator("blackjack", "dealer_stands_on")
    @classmethod
    def ensure_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Totals must be positive.")
        return value

    @model_validator(mode="after")
    def dealer_threshold_within_limit(self) -> "TableRules":
        if self.dealer_stands_on > self.blackjack:
            raise ValueError("Dealer stand threshold cannot exceed the bust limit.")
        return self


def load_rules(path: Optional[Union[str, Path]] = None) -> TableRules:
    """Load rules from ``path`` or ``$BLACKJACK_RULES``; defaults when neither is set."""
    if path is None:
        path = os.getenv(RULES_ENV_VAR)
    if not path:
        return TableRules()
    with Path(path).open("r", encoding="utf-8") as handle:
        return TableRules.model_validate(json.load(handle))
