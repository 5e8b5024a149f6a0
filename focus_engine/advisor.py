"""Bridge to an external generative-text service.

The engine only builds prompts and passes the service's reply through as an
opaque string; it never parses generated text.
"""

from __future__ import annotations

from typing import Protocol

from focus_engine.logging_config import get_logger

logger = get_logger(__name__)

STRATEGIC_PIVOT_PROMPT = (
    "As a senior study and productivity advisor, analyze this problem and "
    'propose a root-cause solution: "{problem}"'
)


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


def build_strategic_prompt(problem: str) -> str:
    return STRATEGIC_PIVOT_PROMPT.format(problem=problem.strip())


def strategic_pivot(generator: TextGenerator, problem: str) -> str:
    """Ask the generator for a strategic pivot on ``problem``."""

    prompt = build_strategic_prompt(problem)
    logger.debug("strategic_pivot_requested", prompt_chars=len(prompt))
    reply = generator.generate(prompt)
    return (reply or "").strip()
