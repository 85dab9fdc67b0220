"""Keyword matching on word boundaries.

``mentions`` anchors only the start of each keyword, so stems such as
``"secur"`` or ``"optimi"`` still match ``security`` and ``optimize``.
``has_keyword`` anchors both ends and accepts a plural suffix, which
keeps short keywords like ``"ui"`` from matching inside ``build``.
"""

from __future__ import annotations

import re
from typing import Iterable


def mentions(text: str, words: Iterable[str]) -> bool:
    """Return True if any word starts a word in ``text``."""
    return any(re.search(rf"\b{re.escape(word)}", text) for word in words)


def has_keyword(text: str, keyword: str) -> bool:
    """Return True if ``keyword`` (or its plural) appears as a whole word."""
    return re.search(rf"\b{re.escape(keyword)}(?:s|es)?\b", text) is not None


def count_keywords(text: str, keywords: Iterable[str]) -> int:
    """Count the distinct keywords present in ``text`` as whole words."""
    return sum(1 for keyword in set(keywords) if has_keyword(text, keyword))
