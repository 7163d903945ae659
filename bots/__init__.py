"""Player strategies and the hand orchestrator for confidential Blackjack."""

from .basic_strategy import BasicStrategyBot
from .orchestrator import HandOrchestrator, HandSummary
from .threshold_bot import ThresholdBot

__all__ = ["BasicStrategyBot", "ThresholdBot", "HandOrchestrator", "HandSummary"]
