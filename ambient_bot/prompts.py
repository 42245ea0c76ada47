"""Prompt building for ambient events: situational parameters and Handlebars rendering."""

from __future__ import annotations

import random
from collections.abc import Callable
from typing import Any, Literal

import pybars

TimeOfDay = Literal["dawn", "daylight", "dusk", "night"]
Tone = Literal["ominous", "subtle"]

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


SYSTEM_PROMPT = " ".join([
    "You generate ONE short ambient in-world event message for a Lord of the Rings style setting.",
    "Try not to reference the same animals or situations repeatedly. Ensure variety.",
    "When describing the time of day, use different phrases to add more variety.",
    "If the lore or criteria mention living people then ensure you talk more about people "
    "and what they are doing than the natural events.",
    "Write subtle Tolkien-like prose mixed with world simulation.",
    "Never use second-person language. Never say 'you'.",
    "Write in the present tense.",
    "No modern references. No emojis. No hashtags. No quotes.",
    "Avoid named canon characters.",
    "Length: 1-2 sentences, ideally under 150 characters, never exceed 200 characters.",
    "Return ONLY the message text.",
])

# Triple-stash: lore and location are plain text, not HTML.
USER_PROMPT_TEMPLATE = "\n".join([
    "Channel: #{{{channel_name}}}",
    "Location: {{{location}}}",
    "Lore: {{{lore}}}",
    "Criteria: {{{criteria}}}",
    "Danger level: {{{danger}}}",
    "Tone: {{{tone}}}",
    "Time of day: {{{time_of_day}}}",
    "",
    "Describe a small ambient event happening now in this place.",
    "Include at least two of: time-of-day, weather, sounds, small wildlife, "
    "subtle supernatural hint (rare).",
    "No dialogue. No direct instructions.",
])


# ── Situational parameters ───────────────────────────────


def time_of_day(hour: int) -> TimeOfDay:
    """Bucket a wall-clock hour (0-23)."""
    if 5 <= hour <= 8:
        return "dawn"
    if 9 <= hour <= 16:
        return "daylight"
    if 17 <= hour <= 20:
        return "dusk"
    return "night"


def ominous_chance(danger: str | None) -> float:
    if danger == "high":
        return 0.4
    if danger == "medium":
        return 0.2
    return 0.08


def pick_tone(danger: str | None, rng: random.Random | None = None) -> Tone:
    """Draw a tone; never seeded, never persisted."""
    draw = (rng or random).random()
    return "ominous" if draw < ominous_chance(danger) else "subtle"


# ── Rendering ────────────────────────────────────────────


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return compiled(context)
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_context(
    *,
    channel_name: str | None,
    location: str | None,
    lore: str | None,
    criteria: str | None,
    danger: str | None,
    tone: Tone,
    time_of_day: TimeOfDay,
) -> dict[str, Any]:
    """Template variables with blanks replaced by their defaults."""
    return {
        "channel_name": channel_name or "unknown",
        "location": location or "Unknown",
        "lore": lore or "",
        "criteria": criteria or "",
        "danger": danger or "low",
        "tone": tone,
        "time_of_day": time_of_day,
    }
