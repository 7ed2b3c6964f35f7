"""Per-request query model: entity detection, history back-fill, intent tags, expansion."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Literal, Optional, Sequence, Set

from pydantic import BaseModel

from .conflict import resolve_conflicts
from .entities import extract_entities, extract_from_history
from .expand import expand_query_terms
from .intent import classify_query
from .lexicon import Intent, Lexicon, get_default_lexicon

logger = logging.getLogger(__name__)


class HistoryMessage(BaseModel):
    """One prior conversation turn."""
    role: Literal["user", "assistant"]
    content: str


@dataclass
class Query:
    """A question as understood by the retrieval engine."""
    text: str
    working_text: str
    expanded_text: str
    entities: List[str] = field(default_factory=list)
    intents: Set[Intent] = field(default_factory=set)
    from_history: bool = False

    @property
    def is_selection(self) -> bool:
        return Intent.SELECTION in self.intents

    @property
    def is_troubleshooting(self) -> bool:
        return Intent.TROUBLESHOOTING in self.intents

    @property
    def is_automotive(self) -> bool:
        return Intent.AUTOMOTIVE in self.intents


def coerce_history(history: Optional[Sequence[Any]]) -> List[HistoryMessage]:
    """Accept HistoryMessage objects or plain {role, content} mappings."""
    messages = []
    for item in history or []:
        if isinstance(item, HistoryMessage):
            messages.append(item)
        else:
            messages.append(HistoryMessage.model_validate(item))
    return messages


def build_query(
    question: str,
    history: Optional[Sequence[Any]] = None,
    lexicon: Optional[Lexicon] = None,
    history_window: int = 6
) -> Query:
    """
    Understand a question before retrieval.

    1) extract entities + classify intent
    2) no entity and not a selection question -> back-fill entities from the
       last ``history_window`` messages, resolve category conflicts, fold
       them into the working text
    3) expand terms on the working text
    """
    if lexicon is None:
        lexicon = get_default_lexicon()

    messages = coerce_history(history)
    intents = classify_query(question, lexicon)
    entities = extract_entities(question, lexicon)
    working_text = question
    from_history = False

    if not entities and messages and Intent.SELECTION not in intents:
        recent = messages[-history_window:] if history_window > 0 else []
        candidates = extract_from_history([m.content for m in recent], lexicon)
        entities = resolve_conflicts(question, candidates, lexicon)

        if entities:
            from_history = True
            working_text = f"{lexicon.entity_joiner.join(entities)} {question}"
            logger.info(f"Entities from history: {entities}; working query: '{working_text}'")
    elif Intent.SELECTION in intents and not entities:
        logger.info("Selection question, history entities not used")

    expanded_text = expand_query_terms(working_text, lexicon)

    return Query(
        text=question,
        working_text=working_text,
        expanded_text=expanded_text,
        entities=entities,
        intents=intents,
        from_history=from_history,
    )
