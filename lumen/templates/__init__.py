"""Prompt templating package."""

from lumen.templates.prompt import PromptTemplate

__all__ = ["PromptTemplate"]
