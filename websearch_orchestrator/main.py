"""
CLI entry point for the web search orchestrator.
"""

import click
import json
import sys
import time

from .config import Settings
from .core import SearchOrchestrator, should_auto_search
from .models import SearchOptions, TimeRange
from .output import export_to_json, format_for_context, format_sources_footer, results_to_dict
from .utils import configure_logging, ProgressLogger, SearchError


@click.group()
@click.version_option(version='1.0.0')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), default=None,
              help='Logging level (defaults to LOG_LEVEL)')
@click.option('--log-file', type=click.Path(), help='Optional log file path')
@click.option('--json-logs', is_flag=True, help='Output logs as JSON (for production)')
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_file: str, json_logs: bool):
    """
    Web Search Orchestrator

    Quota-aware web search with Brave Search and self-hosted SearXNG fallback.
    """
    try:
        settings = Settings()
    except ValueError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)

    configure_logging(
        log_level=log_level or settings.log_level,
        log_file=log_file or settings.log_file,
        json_logs=json_logs or settings.json_logs
    )

    ctx.obj = settings


def _open_orchestrator(settings: Settings) -> SearchOrchestrator:
    try:
        return SearchOrchestrator(settings)
    except SearchError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('query')
@click.option('--max-results', '-n', default=7, type=click.IntRange(1, 50), help='Number of results')
@click.option('--domain', '-d', 'include_domains', multiple=True, help='Only results from this domain (repeatable)')
@click.option('--exclude-domain', '-x', 'exclude_domains', multiple=True, help='Drop results from this domain (repeatable)')
@click.option('--time-range', '-t', type=click.Choice([t.value for t in TimeRange]), default=TimeRange.NONE.value)
@click.option('--optimize/--no-optimize', default=True, help='Rewrite the query with the LLM first')
@click.option('--full-content', is_flag=True, help='Replace snippets with fetched page text')
@click.option('--multi-query', is_flag=True, help='Search optimized and original query in parallel')
@click.option('--rerank/--no-rerank', default=True, help='Re-rank results by relevance')
@click.option('--max-content-length', default=1000, type=click.IntRange(min=1), help='Characters per fetched page')
@click.option('--expert', help='Field of expertise to bias the query towards (e.g. "tax advisor")')
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON')
@click.option('--context', 'as_context', is_flag=True, help='Print the LLM context rendering')
@click.option('--output', '-o', type=click.Path(), help='Also write results to this JSON file')
@click.pass_obj
def search(
    settings: Settings,
    query: str,
    max_results: int,
    include_domains: tuple,
    exclude_domains: tuple,
    time_range: str,
    optimize: bool,
    full_content: bool,
    multi_query: bool,
    rerank: bool,
    max_content_length: int,
    expert: str,
    as_json: bool,
    as_context: bool,
    output: str
):
    """
    Search the web.

    \b
    Examples:
        websearch search "Wetter Berlin morgen"
        websearch search "python asyncio tutorial" -d docs.python.org -n 5
        websearch search "Steuererklärung Fristen" --expert "Steuerberater" --full-content
        websearch search "Rust release notes" -t week --json
    """
    options = SearchOptions(
        max_results=max_results,
        include_domains=list(include_domains),
        exclude_domains=list(exclude_domains),
        time_range=TimeRange(time_range),
        optimize_query=optimize,
        fetch_full_content=full_content,
        multi_query=multi_query,
        rerank=rerank,
        max_content_length=max_content_length,
        expert_context=expert
    )

    progress = ProgressLogger()

    try:
        with _open_orchestrator(settings) as orchestrator:
            if not (as_json or as_context):
                progress.search_start(query, max_results)

            start_time = time.time()
            results = orchestrator.search(query, options)
            duration = time.time() - start_time

            if as_json:
                click.echo(json.dumps(results_to_dict(query, results), indent=2, ensure_ascii=False))
            elif as_context:
                click.echo(format_for_context(results, include_source_urls=True), nl=False)
                click.echo(format_sources_footer(results), nl=False)
            else:
                progress.results(results, duration)

            if output:
                path = export_to_json(query, results, output)
                click.echo(f"📄 JSON exported: {path}", err=True)

    except KeyboardInterrupt:
        click.echo("\n⚠️  Interrupted by user.", err=True)
        sys.exit(130)


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print status as JSON')
@click.pass_obj
def status(settings: Settings, as_json: bool):
    """Show quota usage and search configuration."""
    with _open_orchestrator(settings) as orchestrator:
        info = orchestrator.get_status()

    if as_json:
        click.echo(json.dumps(info, indent=2, ensure_ascii=False))
    else:
        ProgressLogger().status(info)


@cli.command()
@click.option('--brave-api-key', help='Brave Search API key (empty string removes it)')
@click.option('--custom-instance', help='Own SearXNG instance, tried first (empty string removes it)')
@click.option('--instance', 'instances', multiple=True, help='SearXNG instance (repeatable, replaces the list)')
@click.option('--query-optimization/--no-query-optimization', default=None)
@click.option('--content-scraping/--no-content-scraping', default=None)
@click.option('--multi-query/--no-multi-query', default=None)
@click.option('--reranking/--no-reranking', default=None)
@click.option('--model', help='Preferred optimization model')
@click.pass_obj
def configure(
    settings: Settings,
    brave_api_key: str,
    custom_instance: str,
    instances: tuple,
    query_optimization: bool,
    content_scraping: bool,
    multi_query: bool,
    reranking: bool,
    model: str
):
    """
    Change and persist search settings.

    \b
    Examples:
        websearch configure --brave-api-key BSA123...
        websearch configure --custom-instance https://search.example.org
        websearch configure --no-multi-query --model claude-3-5-haiku-latest
    """
    with _open_orchestrator(settings) as orchestrator:
        config = orchestrator.config
        changed = []

        try:
            if brave_api_key is not None:
                config.set_brave_api_key(brave_api_key)
                changed.append("brave api key")
            if custom_instance is not None:
                config.set_custom_instance(custom_instance)
                changed.append("custom instance")
            if instances:
                config.set_instances(list(instances))
                changed.append("instances")
        except SearchError as e:
            click.echo(f"❌ {e}", err=True)
            sys.exit(1)

        flag_setters = [
            (query_optimization, config.set_query_optimization_enabled, "query optimization"),
            (content_scraping, config.set_content_scraping_enabled, "content scraping"),
            (multi_query, config.set_multi_query_enabled, "multi query"),
            (reranking, config.set_reranking_enabled, "re-ranking"),
        ]
        for value, setter, label in flag_setters:
            if value is not None:
                setter(value)
                changed.append(f"{label}={'on' if value else 'off'}")

        if model is not None:
            config.set_optimization_model(model)
            changed.append(f"model={config.current.optimization_model}")

    if changed:
        click.echo(f"✅ Saved: {', '.join(changed)}")
    else:
        click.echo("Nothing to change. See 'websearch configure --help'.")


@cli.command(name='should-search')
@click.argument('message')
def should_search(message: str):
    """Tell whether MESSAGE explicitly asks for a web search."""
    if should_auto_search(message):
        click.echo("yes")
    else:
        click.echo("no")
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
