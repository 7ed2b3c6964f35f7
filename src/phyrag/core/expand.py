"""Deterministic term expansion: user vocabulary -> corpus vocabulary (商规 -> 消费级, 千兆 -> GE, TX -> SGMII/RGMII)."""

import logging
from typing import List, Optional

from .lexicon import ExpansionRule, Lexicon, compile_pattern, get_default_lexicon, matches

logger = logging.getLogger(__name__)


def rule_fires(rule: ExpansionRule, text: str) -> bool:
    """True when the rule's trigger matches and its exclusion does not."""
    if not compile_pattern(rule.trigger).search(text):
        return False
    return not matches(rule.unless, text)


def expand_query_terms(question: str, lexicon: Optional[Lexicon] = None) -> str:
    """
    Append domain synonyms for every trigger found in the question.

    Rules are checked independently against the question as given, so
    several expansions may apply. A token already present in the text is not
    appended again, which makes the expansion idempotent.

    Args:
        question: Query text, possibly already prefixed with entity codes
        lexicon: Lookup tables (defaults to the built-in lexicon)

    Returns:
        The question followed by the appended tokens
    """
    if lexicon is None:
        lexicon = get_default_lexicon()

    present = {token.lower() for token in question.split()}
    appended: List[str] = []

    for rule in lexicon.expansions:
        if not rule_fires(rule, question):
            continue
        for token in rule.tokens:
            if token.lower() in present:
                continue
            present.add(token.lower())
            appended.append(token)

    if not appended:
        return question

    expanded = f"{question} {' '.join(appended)}"
    logger.debug(f"Expanded query: '{question}' -> '{expanded}'")
    return expanded


def fired_rules(question: str, lexicon: Optional[Lexicon] = None) -> List[str]:
    """Names of the expansion rules that apply to the question."""
    if lexicon is None:
        lexicon = get_default_lexicon()
    return [rule.name for rule in lexicon.expansions if rule_fires(rule, question)]
