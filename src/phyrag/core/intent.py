"""Keyword-driven intent tagging."""

from typing import Optional, Set

from .lexicon import Intent, Lexicon, compile_pattern, get_default_lexicon


def classify_query(q: str, lexicon: Optional[Lexicon] = None) -> Set[Intent]:
    """Return every intent whose rule matches; GENERAL when none does."""
    if lexicon is None:
        lexicon = get_default_lexicon()

    tags = set()
    for rule in lexicon.intents:
        if compile_pattern(rule.pattern).search(q):
            tags.add(rule.tag)

    if not tags:
        tags.add(Intent.GENERAL)

    return tags
