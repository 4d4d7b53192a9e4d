"""Prompt registry for loading and rendering agent prompts."""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

logger = logging.getLogger(__name__)


class PromptRegistry:
    """Jinja2-backed prompt templates kept next to this module."""

    def __init__(self, prompts_dir: Optional[Path] = None):
        """Initialize prompt registry.

        Args:
            prompts_dir: Path to prompts directory. Defaults to the directory of this file.
        """
        if prompts_dir is None:
            prompts_dir = Path(__file__).parent

        self.prompts_dir = Path(prompts_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.prompts_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            undefined=StrictUndefined,
        )
        # Static prompts (no variables) are rendered once
        self._cache: Dict[str, str] = {}

    def get_prompt(
        self,
        prompt_path: str,
        variables: Optional[Dict[str, Any]] = None
    ) -> str:
        """Get a prompt with optional variable substitution.

        Args:
            prompt_path: Path relative to prompts dir (e.g., "hydration/system.txt")
            variables: Dictionary of variables for template rendering

        Raises:
            FileNotFoundError: If prompt file doesn't exist
        """
        if not variables and prompt_path in self._cache:
            return self._cache[prompt_path]

        try:
            template = self.env.get_template(prompt_path)
        except TemplateNotFound:
            logger.error(f"Prompt template not found: {prompt_path}")
            raise FileNotFoundError(f"Prompt template not found: {prompt_path}")

        try:
            rendered = template.render(**(variables or {})).strip()
        except Exception as e:
            logger.error(f"Error rendering prompt {prompt_path}: {e}")
            raise

        if not variables:
            self._cache[prompt_path] = rendered
        return rendered

    def clear_cache(self):
        """Clear the prompt cache."""
        self._cache.clear()
        logger.info("Prompt cache cleared")

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "cache_size": len(self._cache),
            "cached_prompts": list(self._cache.keys())
        }


# Global registry instance
prompt_registry = PromptRegistry()
