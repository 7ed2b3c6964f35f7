"""Environment-driven settings."""

import os
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.siliconflow.cn/v1"


@dataclass
class Settings:
    """Runtime configuration for the engine and its collaborators."""
    database_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_base_url: str = DEFAULT_BASE_URL
    embed_model: str = "BAAI/bge-m3"
    chat_model: str = "Qwen/Qwen3-30B-A3B-Instruct-2507"
    chat_temperature: float = 0.3
    chat_max_tokens: int = 800
    chat_top_p: float = 0.9
    retrieval_limit: int = 6
    history_window: int = 6
    lexicon_path: Optional[str] = None
    log_level: str = "INFO"
    json_logs: bool = False

    def redacted(self) -> Dict[str, Any]:
        """Settings for display, with secrets masked."""
        return {
            "Database": self.database_url or "Not set",
            "API Key": "***" if self.openai_api_key else "Not set",
            "API Base URL": self.openai_base_url,
            "Embedding Model": self.embed_model,
            "Chat Model": self.chat_model,
            "Retrieval Limit": self.retrieval_limit,
            "History Window": self.history_window,
            "Lexicon": self.lexicon_path or "built-in",
            "Log Level": self.log_level,
            "JSON Logs": self.json_logs,
        }

    def validate(self) -> Dict[str, Any]:
        """Report missing or invalid settings."""
        validation = {
            "valid": True,
            "issues": [],
            "warnings": []
        }

        if not self.database_url:
            validation["issues"].append("DATABASE_URL not set")
            validation["valid"] = False

        if not self.openai_api_key:
            validation["issues"].append("OPENAI_API_KEY not set")
            validation["valid"] = False

        if self.retrieval_limit < 1:
            validation["issues"].append("RETRIEVAL_LIMIT must be a positive integer")
            validation["valid"] = False

        if self.history_window < 0:
            validation["issues"].append("HISTORY_WINDOW must not be negative")
            validation["valid"] = False

        if self.lexicon_path and not os.path.exists(self.lexicon_path):
            validation["warnings"].append(f"Lexicon file not found: {self.lexicon_path}")

        return validation


def get_settings() -> Settings:
    """Get settings from environment."""
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL),
        embed_model=os.getenv("EMBED_MODEL", "BAAI/bge-m3"),
        chat_model=os.getenv("CHAT_MODEL", "Qwen/Qwen3-30B-A3B-Instruct-2507"),
        chat_temperature=float(os.getenv("CHAT_TEMPERATURE", "0.3")),
        chat_max_tokens=int(os.getenv("CHAT_MAX_TOKENS", "800")),
        chat_top_p=float(os.getenv("CHAT_TOP_P", "0.9")),
        retrieval_limit=int(os.getenv("RETRIEVAL_LIMIT", "6")),
        history_window=int(os.getenv("HISTORY_WINDOW", "6")),
        lexicon_path=os.getenv("PHYRAG_LEXICON_PATH"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        json_logs=os.getenv("JSON_LOGS", "false").lower() == "true",
    )
