"""Follow-up question extraction for auto-analyzed uploads."""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5

# (pattern, replacements): a header block is removed once, numbered runs everywhere
_PATTERNS = [
    (
        re.compile(
            r"(?:Suggested questions?|Questions? you can ask|You might ask|Try asking):?\s*\n?([\s\S]*?)(?:\n\n|$)",
            re.IGNORECASE,
        ),
        1,
    ),
    (re.compile(r"(\d+[.)]\s*[^\n]+(?:\n\d+[.)]\s*[^\n]+)*)"), 0),
]
_ITEM = re.compile(r"^(\d+[.)]|-|\*)\s*.+$")
_MARKER = re.compile(r"^(\d+[.)]|-|\*)\s*")
_NOISE = re.compile(r"^(question|suggestion|you can|try)", re.IGNORECASE)


def extract_suggestions(reply: str) -> Tuple[str, List[str]]:
    """Pull a list of follow-up questions out of a model reply.

    Returns the reply with the matched block removed, and the questions.
    """
    suggestions: List[str] = []
    for pattern, count in _PATTERNS:
        match = pattern.search(reply)
        if not match:
            continue
        lines = [ln for ln in match.group(0).split("\n") if _ITEM.match(ln.strip())]
        if not lines:
            continue
        found = [_MARKER.sub("", ln.strip()).strip() for ln in lines[:MAX_SUGGESTIONS]]
        found = [q for q in found if q]
        if found:
            suggestions = found
            reply = pattern.sub("", reply, count=count).strip()
    return reply, suggestions


def suggestion_prompt(reply: str, language: str) -> str:
    lang = f" in {language} language" if language != "English" else ""
    return (
        f'Based on this image analysis: "{reply[:500]}", generate exactly 3-5 short, specific '
        f"questions a user might ask about this image. Return only the questions{lang}, "
        "one per line, without numbering or bullets."
    )


def parse_generated(text: str) -> List[str]:
    lines = [ln.strip() for ln in text.split("\n")]
    return [ln for ln in lines if ln and not _NOISE.match(ln)][:MAX_SUGGESTIONS]


def suggest(reply: str, language: str, generate: Callable[[str], str]) -> Tuple[str, List[str]]:
    """Extract suggestions, falling back to asking the model for some."""
    reply, suggestions = extract_suggestions(reply)
    if suggestions:
        return reply, suggestions
    try:
        return reply, parse_generated(generate(suggestion_prompt(reply, language)))
    except Exception as exc:
        logger.error("Error generating suggestions: %s", exc)
        return reply, []
