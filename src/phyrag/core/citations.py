"""Citation aggregation: one reference per source with its sorted pages."""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .vector_store import DocumentChunk


@dataclass
class Citation:
    """A source document and the distinct pages cited from it."""
    source: str
    pages: List[int] = field(default_factory=list)

    def format(self) -> str:
        return f"{self.source} ({format_pages(self.pages)})"


def format_pages(pages: Sequence[int]) -> str:
    """
    Render a page set compactly.

    {3} -> "page 3"; {3, 5} -> "page 3,5";
    {1, 2, 3, 4, 5} -> "page 1,2,...,5 (5 occurrences)"
    """
    ordered = sorted(set(pages))
    if not ordered:
        return "page ?"
    if len(ordered) == 1:
        return f"page {ordered[0]}"
    if len(ordered) <= 3:
        return f"page {','.join(str(p) for p in ordered)}"
    return f"page {ordered[0]},{ordered[1]},...,{ordered[-1]} ({len(ordered)} occurrences)"


def aggregate_citations(chunks: Sequence[DocumentChunk]) -> List[Citation]:
    """Group chunks by source in first-appearance order."""
    pages_by_source: Dict[str, set] = {}
    for chunk in chunks:
        pages_by_source.setdefault(chunk.source, set()).add(chunk.page)

    return [Citation(source=source, pages=sorted(pages)) for source, pages in pages_by_source.items()]


def build_citations(chunks: Sequence[DocumentChunk]) -> List[str]:
    """Formatted reference strings for the final result set."""
    return [citation.format() for citation in aggregate_citations(chunks)]
