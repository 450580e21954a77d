"""Support reply prompt builder.

Flattens store policy, the prior transcript and the new user turn into the
single text blob the generation provider receives.
"""
from __future__ import annotations

from typing import Mapping, Sequence

SYSTEM_PROMPT = (
    "You are a helpful customer support agent for a small e-commerce store.\n"
    "\n"
    "Store policies:\n"
    "- Shipping: Ships in 3-5 business days. We ship to India and USA.\n"
    "- Returns: 7-day return policy. Items must be unused.\n"
    "- Support hours: Monday to Friday, 10am-6pm IST.\n"
    "\n"
    "Answer clearly, concisely, and politely.\n"
    "If you are unsure, say you don't know."
)


def format_history(history: Sequence[Mapping[str, str]]) -> str:
    return "\n".join(f"{m['sender']}: {m['text']}" for m in history)


def build_support_prompt(
    *, history: Sequence[Mapping[str, str]], user_text: str
) -> str:
    """Build the prompt for the next AI turn.

    ``history`` must not contain ``user_text`` yet; it is added here as the
    final turn, followed by the cue for the AI's answer.
    """
    return (
        f"{SYSTEM_PROMPT}\n\n"
        "Conversation so far:\n"
        f"{format_history(history)}\n\n"
        f"User: {user_text}\n"
        "AI:"
    )
