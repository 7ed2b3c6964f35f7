"""Product-model extraction: full codes (YT8522A) and bare numerals in the known range (8522)."""

import logging
from typing import List, Optional

from .lexicon import Lexicon, compile_pattern, get_default_lexicon

logger = logging.getLogger(__name__)


def extract_entities(text: str, lexicon: Optional[Lexicon] = None) -> List[str]:
    """
    Extract normalized product-model codes from free text.

    Full codes are matched case-insensitively and uppercased. Bare 4-digit
    numerals are accepted only inside the lexicon's numeric range and are
    rewritten by prepending the entity prefix.

    Args:
        text: Arbitrary text (question or history message)
        lexicon: Lookup tables (defaults to the built-in lexicon)

    Returns:
        Deduplicated codes in first-appearance order
    """
    if not text:
        return []

    if lexicon is None:
        lexicon = get_default_lexicon()

    found = []

    for match in compile_pattern(lexicon.entity_pattern).finditer(text):
        found.append(match.group(0).upper())

    for match in compile_pattern(lexicon.short_code_pattern).finditer(text):
        numeral = match.group(0)
        if lexicon.short_code_min <= int(numeral) <= lexicon.short_code_max:
            found.append(f"{lexicon.entity_prefix}{numeral}".upper())

    return list(dict.fromkeys(found))


def extract_from_history(messages: List[str], lexicon: Optional[Lexicon] = None) -> List[str]:
    """Extract codes from several texts, deduplicated across all of them."""
    found = []
    for content in messages:
        found.extend(extract_entities(content, lexicon))
    return list(dict.fromkeys(found))
