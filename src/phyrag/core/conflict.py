"""Category conflict resolution for entities back-filled from conversation history."""

import logging
from typing import List, Optional

from .lexicon import EntityCategory, Lexicon, compile_pattern, get_default_lexicon

logger = logging.getLogger(__name__)


def requested_category(question: str, lexicon: Optional[Lexicon] = None) -> Optional[EntityCategory]:
    """
    Return the single category the question asks about.

    A question naming both categories (or neither) is ambiguous and yields
    None.
    """
    if lexicon is None:
        lexicon = get_default_lexicon()

    hits = [c for c in lexicon.categories if compile_pattern(c.trigger).search(question)]
    if len(hits) != 1:
        return None
    return hits[0]


def resolve_conflicts(
    question: str,
    entities: List[str],
    lexicon: Optional[Lexicon] = None
) -> List[str]:
    """
    Drop back-filled entities that contradict the category asked for.

    Args:
        question: The current question
        entities: Entities collected from history
        lexicon: Lookup tables (defaults to the built-in lexicon)

    Returns:
        Entities of the requested category only, or the unfiltered list when
        none of them belongs to it
    """
    if lexicon is None:
        lexicon = get_default_lexicon()

    category = requested_category(question, lexicon)
    if category is None or not entities:
        return list(entities)

    kept = []
    for entity in entities:
        owner = lexicon.category_of(entity)
        if owner is not None and owner.name == category.name:
            kept.append(entity)

    if not kept:
        logger.warning(
            f"No history entity belongs to category '{category.name}', keeping unfiltered: {entities}"
        )
        return list(entities)

    if len(kept) < len(entities):
        logger.info(
            f"Category '{category.name}' requested, filtered entities: "
            f"{','.join(entities)} -> {','.join(kept)}"
        )

    return kept
