"""Ambient message generation: prompt, LLM call, and length trimming."""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel

from ambient_bot.llm import LLM, EmptyResponseError
from ambient_bot.prompts import (
    SYSTEM_PROMPT,
    USER_PROMPT_TEMPLATE,
    build_context,
    pick_tone,
    render_prompt,
    time_of_day,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEN = 220
MIN_CUT = 80  # never cut earlier than this index
ELLIPSIS = "…"

_WHITESPACE = re.compile(r"\s+")


class AmbientContext(BaseModel):
    """What the generator needs to know about one channel."""

    location_name: str | None = None
    lore: str | None = None
    criteria: str | None = None
    channel_name: str | None = None
    danger_level: str | None = None


def trim_nicely(text: str | None, max_len: int = DEFAULT_MAX_LEN) -> str:
    """Collapse whitespace and fit text into max_len characters.

    Prefers ending on sentence punctuation, then on a word boundary with an
    ellipsis, then a hard cut with an ellipsis.
    """
    if not text:
        return ""

    clean = _WHITESPACE.sub(" ", text).strip()
    if len(clean) <= max_len:
        return clean

    truncated = clean[:max_len]
    last_punct = max(truncated.rfind("."), truncated.rfind("!"), truncated.rfind("?"))
    if last_punct >= MIN_CUT:
        return truncated[: last_punct + 1]

    last_space = truncated.rfind(" ")
    if last_space >= MIN_CUT:
        return truncated[:last_space].rstrip() + ELLIPSIS

    return clean[: max_len - 1].rstrip() + ELLIPSIS


class AmbientGenerator:
    """Turns a channel's context into one short ambient message.

    Args:
        llm:     Backend callable (HttpLLM in production).
        max_len: Character budget for the returned text.
        clock:   Returns local "now"; only the hour is used.
        rng:     Source for the tone draw.
    """

    def __init__(
        self,
        llm: LLM,
        *,
        max_len: int = DEFAULT_MAX_LEN,
        clock: Callable[[], datetime] = datetime.now,
        rng: random.Random | None = None,
    ) -> None:
        self._llm = llm
        self._max_len = max_len
        self._clock = clock
        self._rng = rng

    def build_prompt(self, ctx: AmbientContext) -> str:
        tone = pick_tone(ctx.danger_level, self._rng)
        variables = build_context(
            channel_name=ctx.channel_name,
            location=ctx.location_name,
            lore=ctx.lore,
            criteria=ctx.criteria,
            danger=ctx.danger_level,
            tone=tone,
            time_of_day=time_of_day(self._clock().hour),
        )
        logger.info("generating: %s | tone: %s", variables["location"], tone)
        return render_prompt(USER_PROMPT_TEMPLATE, variables)

    async def generate(self, ctx: AmbientContext) -> str:
        prompt = self.build_prompt(ctx)
        text = trim_nicely(await self._llm(SYSTEM_PROMPT, prompt), self._max_len)
        if not text:
            raise EmptyResponseError()
        return text
