"""
Answer judging shared by both game modes.

Both sides of a comparison are normalized the same way: surrounding
whitespace trimmed, lowercased, and everything outside [a-z0-9가-힣]
removed. After that the match must be exact.
"""

import re
from enum import Enum

from wordarena.apps.rooms.models import Prompt

_NOT_ALLOWED = re.compile(r"[^a-z0-9가-힣]")


class Verdict(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PASSED = "passed"
    STALE = "stale"  # answered a prompt that is no longer current


def normalize(text: str) -> str:
    return _NOT_ALLOWED.sub("", (text or "").strip().lower())


def judge(prompt: Prompt, raw_input: str) -> Verdict:
    expected = normalize(prompt.answer)
    if expected and normalize(raw_input) == expected:
        return Verdict.CORRECT
    return Verdict.INCORRECT
