"""Prompt templates."""
from gridagent.prompts.registry import PromptRegistry, prompt_registry

__all__ = ["PromptRegistry", "prompt_registry"]
