import os
from typing import List, Sequence

import pytest

from phyrag.core.lexicon import (
    EntityCategory,
    ExpansionRule,
    Intent,
    IntentRule,
    Lexicon,
    get_default_lexicon,
)
from phyrag.core.retrieve import HybridRetriever, RetrievalConfig
from phyrag.core.vector_store import DocumentChunk

# Rich consoles are created at import time and wrap at 80 columns when not on a
# terminal; widen them so CLI output assertions are not split by line wrapping.
os.environ["COLUMNS"] = "200"


class RecordingEmbed:
    """Fake embedder remembering every text it was asked to embed."""

    def __init__(self):
        self.texts: List[str] = []

    def __call__(self, text: str) -> List[float]:
        self.texts.append(text)
        return [float(len(self.texts)), 0.0, 1.0]


class ScriptedSearch:
    """Fake similarity search returning one scripted result list per call."""

    def __init__(self, *responses: Sequence[DocumentChunk]):
        self.responses = [list(r) for r in responses]
        self.calls = []

    def __call__(self, vector, similarity_threshold, max_count):
        self.calls.append((list(vector), similarity_threshold, max_count))
        if len(self.calls) <= len(self.responses):
            rows = self.responses[len(self.calls) - 1]
        else:
            rows = []
        return rows[:max_count]


def chunk(source: str, page: int = 1, content: str = None, similarity: float = 0.5) -> DocumentChunk:
    if content is None:
        content = f"{source} page {page}"
    return DocumentChunk(content=content, source=source, page=page, similarity=similarity)


@pytest.fixture
def make_chunk():
    return chunk


@pytest.fixture
def abc_lexicon() -> Lexicon:
    """A small lexicon with its own prefix and numeric range."""
    return Lexicon(
        name="abc_test",
        entity_prefix="ABC",
        entity_pattern=r"ABC\d{3,4}[A-Z]*",
        short_code_min=1200,
        short_code_max=1299,
        categories=[
            EntityCategory(name="iface", trigger=r"\bTX\b", default=True),
            EntityCategory(name="bus", trigger=r"\bT1\b", members=["ABC1010A", "ABC1011A"]),
        ],
        expansions=[
            ExpansionRule(name="gigabit", trigger=r"千兆", tokens=["GE", "1GE"]),
            ExpansionRule(name="interface", trigger=r"\bTX\b", unless=r"\bT1\b", tokens=["SGMII", "RGMII"]),
            ExpansionRule(name="bus", trigger=r"\bT1\b", unless=r"\bTX\b", tokens=["100BASE-T1", "ethernet"]),
        ],
        intents=[
            IntentRule(tag=Intent.SELECTION, pattern=r"有哪些|推荐|which models?"),
            IntentRule(tag=Intent.AUTOMOTIVE, pattern=r"车规|automotive"),
            IntentRule(tag=Intent.TROUBLESHOOTING, pattern=r"不通|debug|fail"),
        ],
    )


@pytest.fixture
def lexicon() -> Lexicon:
    return get_default_lexicon()


@pytest.fixture
def embed() -> RecordingEmbed:
    return RecordingEmbed()


@pytest.fixture
def make_retriever(embed, lexicon):
    """Build a retriever around scripted search responses."""

    def _make(*responses, lexicon_override=None, **config):
        search = ScriptedSearch(*responses)
        retriever = HybridRetriever(
            embed=embed,
            search=search,
            lexicon=lexicon_override or lexicon,
            config=RetrievalConfig(**config),
        )
        return retriever, search

    return _make
