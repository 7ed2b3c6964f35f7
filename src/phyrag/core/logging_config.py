"""Structured logging configuration for phyrag."""

import logging
from typing import Any, Dict, List, Optional

import structlog
from structlog.stdlib import LoggerFactory


def configure_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structured logging with audit capabilities."""

    # Set log level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if json_logs:
        # JSON output for production/audit
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Human-readable for development
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_audit_logger(component: str) -> structlog.BoundLogger:
    """Get a logger with audit context for a specific component."""
    logger = structlog.get_logger(component)
    return logger.bind(component=component, audit=True)


def log_retrieval(
    logger: structlog.BoundLogger,
    question: str,
    expanded_query: str,
    entities: List[str],
    intents: List[str],
    result_count: int,
    sources_used: List[str],
    execution_time_ms: float,
    from_history: bool = False,
    extra: Optional[Dict[str, Any]] = None
) -> None:
    """Log a retrieval call with its understood query and outcome."""
    logger.info(
        "retrieval_completed",
        question=question,
        expanded_query=expanded_query,
        entities=entities,
        intents=intents,
        from_history=from_history,
        result_count=result_count,
        sources_used=sources_used,
        execution_time_ms=execution_time_ms,
        **(extra or {}),
        event_type="retrieval"
    )


def log_answer(
    logger: structlog.BoundLogger,
    question: str,
    streamed: bool,
    source_count: int,
    generation_time_ms: float
) -> None:
    """Log answer generation."""
    logger.info(
        "answer_completed",
        question=question,
        streamed=streamed,
        source_count=source_count,
        generation_time_ms=generation_time_ms,
        event_type="answer"
    )
