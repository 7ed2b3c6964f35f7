"""pgvector similarity search over the ingested document chunks."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import psycopg

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


class VectorSearchError(RuntimeError):
    """The similarity search backend failed."""


@dataclass(frozen=True)
class DocumentChunk:
    """A passage produced by ingestion, as returned by similarity search."""
    content: str
    source: str
    page: int
    similarity: float

    @property
    def key(self) -> Tuple[str, int, str]:
        return (self.source, self.page, self.content)


def to_vector_literal(vector: Sequence[float]) -> str:
    """Render a vector in pgvector's text input format."""
    values = np.asarray(vector, dtype=np.float32)
    return "[" + ",".join(repr(float(v)) for v in values.tolist()) + "]"


class VectorStore:
    """Calls the ``match_documents`` SQL function."""

    QUERY = """
        SELECT content, source, page, similarity
        FROM match_documents(%s::vector, %s, %s)
    """

    def __init__(self, db_url: Optional[str] = None):
        if db_url is None:
            db_url = get_settings().database_url
        if not db_url:
            raise ValueError("DATABASE_URL not found in environment variables")
        self.db_url = db_url

    @classmethod
    def from_settings(cls, settings: Settings) -> "VectorStore":
        return cls(settings.database_url)

    def search(
        self,
        vector: Sequence[float],
        similarity_threshold: float,
        max_count: int
    ) -> List[DocumentChunk]:
        """
        Return up to ``max_count`` chunks above the threshold, best first.

        Args:
            vector: Query embedding
            similarity_threshold: Minimum cosine similarity
            max_count: Maximum rows returned

        Returns:
            Chunks ordered by descending similarity
        """
        try:
            with psycopg.connect(self.db_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(self.QUERY, (to_vector_literal(vector), similarity_threshold, max_count))
                    rows = cur.fetchall()
        except psycopg.Error as e:
            logger.error(f"Vector search failed: {e}")
            raise VectorSearchError(str(e)) from e

        chunks = []
        for content, source, page, similarity in rows:
            chunks.append(DocumentChunk(
                content=content or "",
                source=source or "unknown",
                page=int(page or 1),
                similarity=min(max(float(similarity), 0.0), 1.0),
            ))

        logger.debug(f"Vector search returned {len(chunks)} rows (threshold={similarity_threshold}, count={max_count})")
        return chunks

    __call__ = search
