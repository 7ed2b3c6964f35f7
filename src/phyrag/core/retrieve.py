"""Hybrid retrieval: quota-balanced similarity search across detected entities and document categories."""

import math
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .embed import OpenAIEmbedder
from .lexicon import Lexicon, get_default_lexicon, load_lexicon
from .query import Query, build_query
from .settings import Settings, get_settings
from .vector_store import DocumentChunk, VectorStore

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], List[float]]
SearchFn = Callable[[List[float], float, int], List[DocumentChunk]]


@dataclass
class RetrievalConfig:
    """Thresholds and quotas for the balancer."""
    limit: int = 6
    similarity_threshold: float = 0.2
    comparison_threshold: float = 0.15
    candidate_multiplier: int = 3
    catalog_share: float = 0.6
    single_general_share: float = 0.5
    comparison_general_share: float = 0.3
    augmentation_count: int = 8
    augmentation_position: int = 2
    augmentation_max: int = 1
    history_window: int = 6


def unique_chunks(chunks: Sequence[DocumentChunk]) -> List[DocumentChunk]:
    """Drop repeated (source, page, content) triples, keeping the first."""
    seen = set()
    result = []
    for chunk in chunks:
        if chunk.key in seen:
            continue
        seen.add(chunk.key)
        result.append(chunk)
    return result


def source_mentions(chunk: DocumentChunk, entity: str) -> bool:
    return entity.upper() in chunk.source.upper()


def _distribution(groups: Dict[str, List[DocumentChunk]]) -> str:
    return ", ".join(f"{name}: {len(docs)}" for name, docs in groups.items())


class HybridRetriever:
    """
    Turns a question into a balanced, de-duplicated set of document chunks.

    The embedding function and the similarity search are injected; both are
    called synchronously and their failures propagate to the caller.
    """

    def __init__(
        self,
        embed: EmbedFn,
        search: SearchFn,
        lexicon: Optional[Lexicon] = None,
        config: Optional[RetrievalConfig] = None
    ):
        self.embed = embed
        self.search = search
        self.lexicon = lexicon or get_default_lexicon()
        self.config = config or RetrievalConfig()

    def retrieve(
        self,
        question: str,
        history: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None
    ) -> List[DocumentChunk]:
        """Main entry point: question + history -> ordered chunks."""
        _, chunks = self.retrieve_with_query(question, history, limit)
        return chunks

    def retrieve_with_query(
        self,
        question: str,
        history: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None
    ) -> Tuple[Query, List[DocumentChunk]]:
        """
        Retrieve and also return the understood query.

        1) entities + intent -> history back-fill -> expansion
        2) primary search, balanced by entity count and intent
        3) regulatory augmentation
        """
        if limit is None:
            limit = self.config.limit
        if limit < 1:
            raise ValueError("limit must be a positive integer")

        query = build_query(question, history, self.lexicon, self.config.history_window)
        logger.info(
            f"Retrieving for '{query.expanded_text}' entities={query.entities} "
            f"intents={sorted(i.value for i in query.intents)}"
        )

        raw_count, results = self.balance(query, limit)
        if raw_count:
            results = self.augment_regulatory(query, results)

        logger.info(f"Final retrieval results: {len(results)} chunks")
        return query, results

    def _search(self, text: str, threshold: float, count: int) -> List[DocumentChunk]:
        vector = self.embed(text)
        return list(self.search(vector, threshold, count))

    def balance(self, query: Query, limit: int) -> Tuple[int, List[DocumentChunk]]:
        """
        Pick the search strategy by entity count and intent.

        Returns the number of rows the primary search produced along with the
        balanced chunks, which may be empty even when rows came back.
        """
        if len(query.entities) > 1:
            return self._balance_comparison(query, limit)
        if len(query.entities) == 1:
            return self._balance_single(query, limit)
        if query.is_selection:
            return self._balance_selection(query, limit)
        return self._balance_general(query, limit)

    def _balance_general(self, query: Query, limit: int) -> Tuple[int, List[DocumentChunk]]:
        data = self._search(query.expanded_text, self.config.similarity_threshold, limit)
        logger.info(f"Vector search found {len(data)} chunks")
        return len(data), unique_chunks(data)[:limit]

    def _balance_selection(self, query: Query, limit: int) -> Tuple[int, List[DocumentChunk]]:
        data = self._search(
            query.expanded_text,
            self.config.similarity_threshold,
            limit * self.config.candidate_multiplier,
        )
        if not data:
            return 0, []

        catalog = [d for d in data if self.lexicon.is_catalog_source(d.source)]
        others = [d for d in data if not self.lexicon.is_catalog_source(d.source)]

        catalog_quota = math.ceil(limit * self.config.catalog_share)
        other_quota = math.ceil(limit * (1 - self.config.catalog_share))

        results = unique_chunks(catalog[:catalog_quota] + others[:other_quota])[:limit]
        logger.info(
            f"Selection split: catalog {len(catalog)}, other {len(others)}, returning {len(results)}"
        )
        return len(data), results

    def _balance_single(self, query: Query, limit: int) -> Tuple[int, List[DocumentChunk]]:
        data = self._search(
            query.expanded_text,
            self.config.similarity_threshold,
            limit * self.config.candidate_multiplier,
        )
        if not data:
            return 0, []

        target = query.entities[0]
        matched = []
        general = []
        remainder = []
        for doc in data:
            if source_mentions(doc, target):
                matched.append(doc)
            elif self.lexicon.is_general_source(doc.source):
                general.append(doc)
            else:
                remainder.append(doc)

        if query.is_troubleshooting and general:
            general_quota = math.ceil(limit * self.config.single_general_share)
            target_quota = limit - general_quota
            chosen = unique_chunks(general[:general_quota] + matched[:target_quota])
            chosen = unique_chunks(chosen + remainder[:max(0, limit - len(chosen))])
        else:
            chosen = unique_chunks(matched + general + remainder)

        results = chosen[:limit]
        logger.info(
            f"Single-entity split: {target} {len(matched)}, general {len(general)}, "
            f"other {len(remainder)}, returning {len(results)}"
        )
        return len(data), results

    def _balance_comparison(self, query: Query, limit: int) -> Tuple[int, List[DocumentChunk]]:
        data = self._search(
            query.expanded_text,
            self.config.comparison_threshold,
            limit * self.config.candidate_multiplier,
        )
        if not data:
            return 0, []

        general = [d for d in data if self.lexicon.is_general_source(d.source)]
        grouped: Dict[str, List[DocumentChunk]] = {}
        for entity in query.entities:
            grouped[entity] = [
                d for d in data
                if not self.lexicon.is_general_source(d.source) and source_mentions(d, entity)
            ]

        n = len(query.entities)
        if query.is_troubleshooting and general:
            general_quota = math.ceil(limit * self.config.comparison_general_share)
            per_entity = math.ceil((limit - general_quota) / n)
            chosen = list(general[:general_quota])
        else:
            per_entity = math.ceil(limit / n)
            chosen = []

        for entity in query.entities:
            chosen.extend(grouped[entity][:per_entity])

        results = unique_chunks(chosen)[:limit]
        logger.info(
            f"Comparison split ({per_entity} per entity): general {len(general)}, "
            f"{_distribution(grouped)}, returning {len(results)}"
        )
        return len(data), results

    def augment_regulatory(self, query: Query, results: List[DocumentChunk]) -> List[DocumentChunk]:
        """
        Splice a regulatory catalog chunk into results that lack catalog coverage.

        The returned list may exceed the requested limit by at most
        ``augmentation_max`` chunks.
        """
        if not query.is_automotive:
            return results
        if any(self.lexicon.is_catalog_source(r.source) for r in results):
            return results

        if query.entities:
            text = f"{' '.join(query.entities)} {self.lexicon.regulatory_query}"
        else:
            text = self.lexicon.regulatory_query

        logger.info("Regulatory query without catalog coverage, searching catalog")
        extra = self._search(text, self.config.similarity_threshold, self.config.augmentation_count)

        candidates = [
            d for d in extra
            if self.lexicon.is_catalog_source(d.source)
            and any(marker in d.content for marker in self.lexicon.regulatory_markers)
        ]
        if not candidates:
            return results

        picked = candidates[:self.config.augmentation_max]
        position = self.config.augmentation_position
        logger.info(f"Added {len(picked)} regulatory catalog chunk(s) at position {position}")
        return results[:position] + picked + results[position:]


def build_default_retriever(
    settings: Optional[Settings] = None,
    lexicon: Optional[Lexicon] = None
) -> HybridRetriever:
    """Wire the OpenAI embedder and pgvector store from settings."""
    if settings is None:
        settings = get_settings()
    if lexicon is None:
        lexicon = load_lexicon(settings.lexicon_path)

    config = RetrievalConfig(limit=settings.retrieval_limit, history_window=settings.history_window)
    return HybridRetriever(
        embed=OpenAIEmbedder(settings),
        search=VectorStore.from_settings(settings).search,
        lexicon=lexicon,
        config=config,
    )


def retrieve(
    question: str,
    history: Optional[Sequence[Any]] = None,
    limit: int = 6
) -> List[DocumentChunk]:
    """Retrieve chunks for a question using the environment-configured stack."""
    return build_default_retriever().retrieve(question, history, limit)
