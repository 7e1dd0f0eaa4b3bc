"""Prompt construction over inference providers."""

from onboardpack.prompts.assistant import ARCHITECTURE_PATTERNS, ModelAssistant

__all__ = ["ModelAssistant", "ARCHITECTURE_PATTERNS"]
