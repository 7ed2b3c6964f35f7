"""Query embeddings through an OpenAI-compatible endpoint, retrying transient network errors."""

import logging
from typing import List, Optional

import openai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

EMBED_MAX_ATTEMPTS = 3
EMBED_BACKOFF_SECONDS = 1


def get_openai_client(settings: Optional[Settings] = None) -> openai.OpenAI:
    """Build an OpenAI client for the configured endpoint."""
    if settings is None:
        settings = get_settings()

    if not settings.openai_api_key:
        raise ValueError("OpenAI API key not found in environment variables")

    return openai.OpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)


# APIConnectionError covers APITimeoutError; anything else is not transient.
@retry(
    stop=stop_after_attempt(EMBED_MAX_ATTEMPTS),
    wait=wait_incrementing(start=EMBED_BACKOFF_SECONDS, increment=EMBED_BACKOFF_SECONDS),
    retry=retry_if_exception_type(openai.APIConnectionError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def generate_embedding(text: str, model: str, client: openai.OpenAI) -> List[float]:
    """
    Generate the embedding vector for a single text.

    Args:
        text: Text to embed
        model: Embedding model name
        client: OpenAI client instance

    Returns:
        Embedding vector
    """
    response = client.embeddings.create(model=model, input=text)
    return list(response.data[0].embedding)


class OpenAIEmbedder:
    """Callable ``embed(text) -> vector`` bound to a client and model."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[openai.OpenAI] = None):
        self.settings = settings or get_settings()
        self.client = client or get_openai_client(self.settings)
        self.model = self.settings.embed_model

    def __call__(self, text: str) -> List[float]:
        try:
            return generate_embedding(text, self.model, self.client)
        except Exception as e:
            logger.error(f"Failed to generate embedding with {self.model}: {e}")
            raise
