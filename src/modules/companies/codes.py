"""Company short codes.

A short code is a 3-letter mnemonic derived from the company name, used
in order numbers (``CC/ON/<code>/<NN>``).  Codes are unique across
companies; collisions fall back to the first word's letters, then to a
numbered variant of the base code.
"""

from __future__ import annotations

import re
from typing import Collection

SHORT_CODE_LENGTH = 3
MAX_SHORT_CODE_LENGTH = 5
FALLBACK_CODE = "XXX"


def _words(name: str) -> list[str]:
    cleaned = re.sub(r"[^a-zA-Z0-9\s]", "", name).strip().upper()
    return cleaned.split()


def _base_code(words: list[str]) -> str:
    if len(words) >= 3:
        code = words[0][0] + words[1][0] + words[2][0]
    elif len(words) == 2:
        code = words[0][:2] + words[1][0]
    elif words:
        code = words[0][:3]
    else:
        code = ""
    return code[:SHORT_CODE_LENGTH].ljust(SHORT_CODE_LENGTH, "X")


def generate_short_code(name: str, existing: Collection[str] = ()) -> str:
    """Return a short code for *name* not present in *existing*."""
    if not name:
        return FALLBACK_CODE

    words = _words(name)
    code = _base_code(words)
    if code not in existing:
        return code

    if words:
        first_word = words[0][:SHORT_CODE_LENGTH].ljust(SHORT_CODE_LENGTH, "X")
        if first_word != code and first_word not in existing:
            return first_word

    for counter in range(1, 1000):
        candidate = f"{code}{counter}"[:MAX_SHORT_CODE_LENGTH]
        if candidate not in existing:
            return candidate

    raise ValueError(f"No free short code left for {name!r}.")
