"""Prompt templates for the question generator."""

from .lld_question_prompt import LLD_QUESTION_SYSTEM_PROMPT, build_system_prompt, build_user_prompt

__all__ = ["LLD_QUESTION_SYSTEM_PROMPT", "build_system_prompt", "build_user_prompt"]
