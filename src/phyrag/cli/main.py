import json
import time
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console

from phyrag.core.answer import AnswerSynthesizer
from phyrag.core.citations import build_citations
from phyrag.core.logging_config import configure_logging, get_audit_logger, log_answer, log_retrieval
from phyrag.core.retrieve import build_default_retriever
from phyrag.core.settings import get_settings
from phyrag.core.speech import describe_corrections, normalize_transcript

app = typer.Typer(help="phyrag — PHY technical-support retrieval")
console = Console()

_settings = get_settings()

# Initialize structured logging
configure_logging(log_level=_settings.log_level, json_logs=_settings.json_logs)


def _load_history(path: Optional[Path]) -> List[Any]:
    """Read a JSON list of {role, content} messages."""
    if path is None:
        return []
    if not path.exists():
        console.print(f"[red]Error:[/] History file {path} does not exist")
        raise typer.Exit(1)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/] History file {path} is not valid JSON: {e}")
        raise typer.Exit(1)
    if not isinstance(data, list):
        console.print("[red]Error:[/] History file must contain a JSON list")
        raise typer.Exit(1)
    return data


@app.command()
def search(
    query: str,
    limit: int = typer.Option(6, help="Maximum number of results"),
    history: Optional[Path] = typer.Option(None, help="JSON file with prior {role, content} messages"),
):
    """Retrieve document chunks for a question."""
    audit_logger = get_audit_logger("search")
    messages = _load_history(history)
    start_time = time.time()

    try:
        retriever = build_default_retriever(get_settings())
        with console.status("[bold green]Searching..."):
            understood, results = retriever.retrieve_with_query(query, messages, limit)
    except Exception as e:
        console.print(f"[red]Error during search:[/] {e}")
        raise typer.Exit(1)

    execution_time_ms = (time.time() - start_time) * 1000
    log_retrieval(
        audit_logger,
        question=query,
        expanded_query=understood.expanded_text,
        entities=understood.entities,
        intents=sorted(i.value for i in understood.intents),
        result_count=len(results),
        sources_used=sorted({r.source for r in results}),
        execution_time_ms=execution_time_ms,
        from_history=understood.from_history,
    )

    console.print(f"[bold]Query:[/] {understood.expanded_text}")
    if understood.entities:
        origin = " (from history)" if understood.from_history else ""
        console.print(f"[bold]Entities:[/] {', '.join(understood.entities)}{origin}")
    console.print(f"[bold]Intents:[/] {', '.join(sorted(i.value for i in understood.intents))}")
    console.print()

    if not results:
        console.print("[yellow]No results found.[/]")
        return

    console.print(f"[green]Found {len(results)} results:[/]")
    console.print()
    for i, chunk in enumerate(results, 1):
        console.print(f"[bold]{i}. {chunk.source} (page {chunk.page})[/]")
        console.print(f"   [blue]Similarity:[/] {chunk.similarity:.3f}")
        snippet = chunk.content[:200] + "..." if len(chunk.content) > 200 else chunk.content
        console.print(f"   [green]Snippet:[/] {snippet}")
        console.print()

    console.print("[bold]References:[/]")
    for reference in build_citations(results):
        console.print(f"  • {reference}")


@app.command()
def cite(
    query: str,
    limit: int = typer.Option(6, help="Maximum number of results"),
):
    """Print only the aggregated references for a question."""
    try:
        results = build_default_retriever(get_settings()).retrieve(query, [], limit)
    except Exception as e:
        console.print(f"[red]Error during search:[/] {e}")
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No results found.[/]")
        return

    for reference in build_citations(results):
        console.print(reference)


@app.command()
def ask(
    question: str,
    history: Optional[Path] = typer.Option(None, help="JSON file with prior {role, content} messages"),
    stream: bool = typer.Option(False, "--stream", help="Print the answer as it is generated"),
):
    """Answer a question from the document corpus."""
    audit_logger = get_audit_logger("ask")
    messages = _load_history(history)
    start_time = time.time()

    try:
        synthesizer = AnswerSynthesizer(settings=get_settings())
        sources: List[str] = []
        if stream:
            for event in synthesizer.stream(question, messages):
                if event.type == "content":
                    console.print(event.content, end="")
                elif event.type == "sources":
                    sources = event.sources or []
            console.print()
        else:
            with console.status("[bold green]Thinking..."):
                response = synthesizer.answer(question, messages)
            console.print(response.response)
            sources = response.sources
    except Exception as e:
        console.print(f"[red]Error while answering:[/] {e}")
        raise typer.Exit(1)

    log_answer(
        audit_logger,
        question=question,
        streamed=stream,
        source_count=len(sources),
        generation_time_ms=(time.time() - start_time) * 1000,
    )

    if sources:
        console.print()
        console.print("[bold]References:[/]")
        for reference in sources:
            console.print(f"  • {reference}")


@app.command()
def normalize(text: str):
    """Correct a voice transcript before asking."""
    corrected = normalize_transcript(text)
    console.print(corrected)
    for change in describe_corrections(text, corrected):
        console.print(f"[dim]{change}[/]")


@app.command()
def config(
    action: str = typer.Argument("show", help="Action: show, validate"),
):
    """Show or validate the environment configuration."""
    settings = get_settings()

    if action == "show":
        console.print("\n[bold]Current Configuration:[/]")
        for key, value in settings.redacted().items():
            console.print(f"  [blue]{key}:[/] {value}")
    elif action == "validate":
        validation = settings.validate()
        for warning in validation["warnings"]:
            console.print(f"[yellow]Warning:[/] {warning}")
        if not validation["valid"]:
            console.print("[red]❌ Configuration issues found:[/]")
            for issue in validation["issues"]:
                console.print(f"  • {issue}")
            raise typer.Exit(1)
        console.print("[green]✅ Configuration validation passed![/]")
    else:
        console.print(f"[red]Error:[/] Unknown action: {action}")
        console.print("Available actions: show, validate")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
