"""Conversation orchestration engine."""

from tidebot.engine.assistant import Assistant, extract_sensitivity

__all__ = ["Assistant", "extract_sensitivity"]
