"""
Structured logging configuration for the web search orchestrator.
"""

import structlog
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..models import SearchResult


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    json_logs: bool = False
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file
        json_logs: If True, output JSON formatted logs (for production)
    """
    # Shared processors for all outputs
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handlers = []

    if json_logs:
        console_handler = logging.StreamHandler(sys.stderr)
    else:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,  # structlog handles this
            show_path=False,
            rich_tracebacks=True
        )

    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Silence noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


class ProgressLogger:
    """
    Console reporting for CLI searches.

    Human-readable output goes through Rich, the matching
    structured event goes through structlog.
    """

    def __init__(self, console: Optional[Console] = None):
        self.logger = structlog.get_logger()
        self.console = console or Console()

    def search_start(self, query: str, max_results: int) -> None:
        """Log start of a search."""
        self.console.rule(f"[bold blue]Web search: {query}")
        self.logger.info("cli_search_started", query=query, max_results=max_results)

    def results(self, results: List[SearchResult], duration_seconds: float) -> None:
        """Render a result list as a table."""
        if not results:
            self.console.print("  No results found.", style="yellow")
            self.logger.info("cli_search_empty", duration_seconds=round(duration_seconds, 2))
            return

        table = Table(show_lines=True)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Title", style="bold")
        table.add_column("URL", style="cyan")
        table.add_column("Snippet")

        for index, result in enumerate(results, start=1):
            snippet = result.snippet
            if len(snippet) > 200:
                snippet = snippet[:200] + "..."
            table.add_row(str(index), result.title, result.url, snippet)

        self.console.print(table)
        self.console.print(
            f"  {len(results)} results in {duration_seconds:.2f}s", style="green"
        )
        self.logger.info(
            "cli_search_completed",
            result_count=len(results),
            duration_seconds=round(duration_seconds, 2)
        )

    def status(self, status: Dict[str, Any]) -> None:
        """Render the orchestrator status dictionary."""
        self.console.rule("[bold blue]Web search status")
        table = Table(show_header=False)
        table.add_column("Setting", style="bold")
        table.add_column("Value")
        for key, value in status.items():
            if isinstance(value, list):
                value = "\n".join(str(v) for v in value) or "-"
            table.add_row(key, str(value))
        self.console.print(table)
