"""
codekg CLI

Commands:
    codekg query QUESTION   answer a question against the FalkorDB code graph
    codekg config           print the effective settings
    codekg health           check FalkorDB connectivity
"""

import asyncio
import json
import sys
from typing import Optional

import click
import yaml

from codekg import __version__
from codekg.config import load_settings
from codekg.logging_config import configure_logging
from codekg.query.entities import PatternEntityExtractor
from codekg.query.models import QueryResult
from codekg.query.orchestrator import QueryOrchestrator
from codekg.retrieval.hybrid import HybridRetriever
from codekg.services.embeddings import EmbeddingConfig, OpenRouterEmbedder
from codekg.services.llm import LLMConfig, OpenRouterAnswerer


def run_async(coro):
    """Run an async coroutine to completion."""
    return asyncio.run(coro)


def _print_result(result: QueryResult) -> None:
    click.echo(click.style(result.summary, bold=True))
    click.echo()
    if result.components:
        click.echo("Components:")
        for component in result.components:
            line = f"  [{component.type}] {component.name} ({component.relevance_score:.2f})"
            if component.signature:
                line += f"  {component.signature}"
            click.echo(line)
    if result.relationships:
        click.echo("Relationships:")
        for claim in result.relationships:
            mark = click.style("ok", fg="green") if claim.verified else click.style("unverified", fg="red")
            click.echo(f"  {claim.describe()}  {mark}")
    click.echo()
    click.echo(
        f"confidence={result.confidence:.2f} "
        f"verified={result.metadata.get('verified')} "
        f"refinements={result.metadata.get('refinement_count', 0)} "
        f"time={result.processing_time_ms:.0f}ms"
    )


async def _answer(question: str, config_path: Optional[str], max_refinements: Optional[int]) -> QueryResult:
    from codekg.storage.graph.client import FalkorDBClient
    from codekg.storage.graph.falkordb_store import FalkorGraphStore

    settings = load_settings(config_path)
    client = FalkorDBClient()
    store = FalkorGraphStore(client)

    llm_config = LLMConfig()
    answerer = OpenRouterAnswerer(llm_config) if llm_config.api_key else None
    embedding_config = EmbeddingConfig()
    embedder = OpenRouterEmbedder(embedding_config) if embedding_config.api_key else None
    if answerer is None:
        click.echo(
            "OPENROUTER_API_KEY not set, answers will list components only "
            "and retrieval is lexical only.",
            err=True,
        )

    try:
        await client.connect()
        retriever = HybridRetriever(
            store,
            settings.retrieval,
            entity_extractor=PatternEntityExtractor(),
            embedding_model=embedder,
        )
        orchestrator = QueryOrchestrator(
            retriever,
            store,
            answerer=answerer,
            settings=settings,
            relevance_answerer=answerer,
        )
        return await orchestrator.process_query(question, max_refinements=max_refinements)
    finally:
        if embedder is not None:
            await embedder.close()
        if answerer is not None:
            await answerer.close()
        await store.close()


@click.group()
@click.version_option(version=__version__, prog_name='codekg')
@click.option('--log-level', default='WARNING', show_default=True, help='Log level')
@click.option('--log-json', is_flag=True, help='Emit JSON log lines')
def cli(log_level, log_json):
    """codekg - question answering over a code knowledge graph."""
    configure_logging(log_level, json_output=log_json)


@cli.command('query')
@click.argument('question')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='Settings YAML')
@click.option('--max-refinements', type=click.IntRange(0, 10), help='Override pipeline.max_refinements')
@click.option('--json', 'as_json', is_flag=True, help='Print the QueryResult as JSON')
def query_command(question, config_path, max_refinements, as_json):
    """Answer QUESTION about the indexed codebase.

    Example:
        codekg query "How does login validate credentials?"
    """
    result = run_async(_answer(question, config_path, max_refinements))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        _print_result(result)

    if result.error:
        sys.exit(1)


@cli.command('config')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Settings YAML')
def config_command(config_path):
    """Print the effective settings as YAML."""
    settings = load_settings(config_path)
    click.echo(yaml.safe_dump(settings.model_dump(), sort_keys=False))


@cli.command('health')
def health_command():
    """Check that FalkorDB is reachable."""
    from codekg.storage.graph.client import FalkorDBClient

    async def check() -> bool:
        client = FalkorDBClient()
        try:
            return await client.health_check()
        finally:
            await client.close()

    if run_async(check()):
        click.echo(click.style("FalkorDB: healthy", fg="green"))
    else:
        click.echo(click.style("FalkorDB: unreachable", fg="red"))
        sys.exit(1)


if __name__ == '__main__':
    cli()
