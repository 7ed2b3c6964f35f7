"""Answer synthesis strictly from retrieved chunks, as a full response or a fragment stream."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional, Sequence

import openai

from .citations import build_citations
from .embed import get_openai_client
from .query import Query, coerce_history
from .retrieve import HybridRetriever, build_default_retriever
from .settings import Settings, get_settings
from .vector_store import DocumentChunk

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "抱歉，我在知识库中没有找到相关信息。请尝试换一个问题或联系技术支持人员。"
EMPTY_ANSWER_MESSAGE = "无法生成回答"

SYSTEM_PROMPT = """You are a senior technical-support engineer for Ethernet PHY and switch chips. Answer ONLY from the document excerpts provided. If the excerpts do not cover the question, say "根据现有资料无法确认" and do not invent anything.

TERMINOLOGY:
- 商规 = 消费级 (the C suffix, e.g. YT8531C); 工业级 is the H suffix (e.g. YT8531H)
- 千兆 = GE / 1GE; 百兆 = FE / 100M
- 车规 = AEC-Q100 = Automotive. Grade 2: -40°C to +105°C, Grade 1: -40°C to +125°C
- TX PHY = MAC-interface PHY (SGMII/RGMII/MII/RMII), e.g. YT8522A, YT8531
- T1 PHY = 100BASE-T1 single-pair automotive Ethernet, e.g. YT8010A, YT8011A. Never confuse TX and T1.

ANSWER RULES:
1. Reply in concise Chinese bullet points; quote register addresses/bit fields when relevant.
2. Name the document you rely on (e.g. "根据YT8522 Datasheet..."), never "[文档1]" style numbers.
3. Comparisons: hardware first (ports, package, MDIO address, clock, power, pinout), then configuration (interface modes, registers), then a clear pin-compatibility conclusion.
4. Selection questions: list every matching model with speed, grade, package and certification. For automotive requests only recommend parts marked AEC-Q100/Automotive."""


@dataclass
class ChatResponse:
    """A complete answer with its formatted references."""
    response: str
    sources: List[str] = field(default_factory=list)


@dataclass
class StreamChunk:
    """One event of a streamed answer."""
    type: Literal["content", "sources", "done"]
    content: Optional[str] = None
    sources: Optional[List[str]] = None


def format_context(chunks: Sequence[DocumentChunk]) -> str:
    """Number the chunks with their source and page for the prompt."""
    return "\n\n---\n\n".join(
        f"[Excerpt {idx}] Source: {chunk.source} (page {chunk.page})\n{chunk.content}"
        for idx, chunk in enumerate(chunks, 1)
    )


class AnswerSynthesizer:
    """Retrieves context for a question and asks the chat model to answer from it."""

    def __init__(
        self,
        retriever: Optional[HybridRetriever] = None,
        client: Optional[openai.OpenAI] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.retriever = retriever or build_default_retriever(self.settings)
        self.client = client or get_openai_client(self.settings)

    def build_messages(
        self,
        query: Query,
        history: Optional[Sequence[Any]],
        chunks: Sequence[DocumentChunk]
    ) -> List[Dict[str, str]]:
        """System prompt, recent history, then excerpts + the working question."""
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]

        window = self.settings.history_window
        recent = coerce_history(history)[-window:] if window > 0 else []
        for msg in recent:
            messages.append({"role": msg.role, "content": msg.content})

        messages.append({
            "role": "user",
            "content": f"[Document excerpts]\n{format_context(chunks)}\n\n[Question]\n{query.working_text}",
        })
        return messages

    def _completion_kwargs(self) -> Dict[str, Any]:
        return {
            "model": self.settings.chat_model,
            "temperature": self.settings.chat_temperature,
            "max_tokens": self.settings.chat_max_tokens,
            "top_p": self.settings.chat_top_p,
        }

    def answer(self, question: str, history: Optional[Sequence[Any]] = None) -> ChatResponse:
        """Answer a question in one completion call."""
        query, chunks = self.retriever.retrieve_with_query(question, history, self.settings.retrieval_limit)

        if not chunks:
            return ChatResponse(response=NOT_FOUND_MESSAGE, sources=[])

        response = self.client.chat.completions.create(
            messages=self.build_messages(query, history, chunks),
            **self._completion_kwargs()
        )
        answer = response.choices[0].message.content or EMPTY_ANSWER_MESSAGE
        logger.info(f"Generated answer from {len(chunks)} chunks")

        return ChatResponse(response=answer, sources=build_citations(chunks))

    def stream(self, question: str, history: Optional[Sequence[Any]] = None) -> Iterator[StreamChunk]:
        """
        Answer a question as a lazy stream.

        Yields content fragments as the model produces them, then one
        ``sources`` event, then ``done``.
        """
        query, chunks = self.retriever.retrieve_with_query(question, history, self.settings.retrieval_limit)

        if not chunks:
            yield StreamChunk(type="content", content=NOT_FOUND_MESSAGE)
            yield StreamChunk(type="sources", sources=[])
            yield StreamChunk(type="done")
            return

        with self.client.chat.completions.create(
            messages=self.build_messages(query, history, chunks),
            stream=True,
            **self._completion_kwargs()
        ) as stream:
            for event in stream:
                if not event.choices:
                    continue
                content = event.choices[0].delta.content
                if content:
                    yield StreamChunk(type="content", content=content)

        yield StreamChunk(type="sources", sources=build_citations(chunks))
        yield StreamChunk(type="done")


def answer_question(question: str, history: Optional[Sequence[Any]] = None) -> ChatResponse:
    """Answer with the environment-configured stack."""
    return AnswerSynthesizer().answer(question, history)


def answer_question_stream(question: str, history: Optional[Sequence[Any]] = None) -> Iterator[StreamChunk]:
    """Stream an answer with the environment-configured stack."""
    return AnswerSynthesizer().stream(question, history)
