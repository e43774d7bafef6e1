"""Command-line interface for the research engine."""

import asyncio
import json
from typing import Annotated

import typer

from .config.loader import ProfileConfig, list_profiles, load_config
from .config.factory import create_research_loop
from .errors import EngineFailureError, InvalidInputError
from .research import Navigator, Planner, Session

app = typer.Typer(
    name="looper",
    help="Recursive web research: plan, search, read, evaluate, repeat.",
    add_completion=False,
)


@app.command()
def research(
    query: Annotated[str, typer.Argument(help="Research question")],
    depth: Annotated[
        str,
        typer.Option("--depth", "-d", help="Research depth: fast or deep"),
    ] = "fast",
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile (default: $LOOPER_PROFILE or dev)"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Do not print progress milestones"),
    ] = False,
):
    """
    Research a question on the web.

    Examples:

        # Quick research (2 iterations at most)
        looper research "what is a heat pump"

        # Deep research (4 iterations at most)
        looper research "compare solar and wind power" --depth deep

        # Offline run with mock providers, JSON output
        looper research "history of rome" --profile test --format json
    """
    if output_format not in ("text", "json"):
        typer.echo("Error: Format must be one of: text, json", err=True)
        raise typer.Exit(1)

    try:
        session = Session(query=query, depth=depth)
    except InvalidInputError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    try:
        config = load_config(profile=profile)
    except KeyError as e:
        typer.echo(f"Error: {e.args[0]}", err=True)
        raise typer.Exit(1)

    try:
        result = asyncio.run(_research_async(session, config, quiet))
    except InvalidInputError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except EngineFailureError as e:
        typer.echo(f"Research failed: {e}", err=True)
        raise typer.Exit(2)

    if output_format == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    typer.echo(result.answer)
    typer.echo()
    typer.echo(f"Confidence: {result.confidence:.2f}")

    if result.sources:
        typer.echo(f"\nSources ({len(result.sources)}):")
        for i, source in enumerate(result.sources, 1):
            typer.echo(f"  {i}. {source.title or source.url}")
            typer.echo(f"     {source.url}")

    if result.alternatives:
        typer.echo(f"\nAlternative viewpoints ({len(result.alternatives)}):")
        for alt in result.alternatives:
            typer.echo(f"  - {alt.label} ({alt.source_url})")
            if alt.description:
                typer.echo(f"    {alt.description}")


async def _research_async(session: Session, config: ProfileConfig, quiet: bool):
    """Async implementation of research; milestones go to stderr."""
    async with create_research_loop(config) as loop:
        async for event in loop.stream(session):
            if event.type == "progress":
                if not quiet:
                    typer.echo(f"> {event.step}", err=True)
            elif event.type == "error":
                raise EngineFailureError(event.message or "research failed")
            elif event.type == "complete":
                return event.result

    raise EngineFailureError("research ended without a result")


@app.command()
def classify(
    query: Annotated[str, typer.Argument(help="Query to classify")],
):
    """Show the intent and initial plan the planner would use for a query."""
    planner = Planner(config=load_config().planner)

    try:
        plan = planner.plan(query)
    except InvalidInputError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(plan.to_dict(), indent=2))


@app.command()
def suggest(
    partial_query: Annotated[str, typer.Argument(help="Partially typed query")] = "",
):
    """Suggest refinement bubbles for a partially typed query."""
    suggestions = Navigator().suggest(partial_query)
    typer.echo(json.dumps(suggestions.to_dict(), indent=2))


@app.command()
def profiles():
    """List available configuration profiles."""
    typer.echo("Available profiles:\n")
    for name, profile in list_profiles().items():
        typer.echo(f"  {name}")
        typer.echo(f"    Search: {profile.search.backend}")
        typer.echo(f"    Reader: {profile.reader.backend}")
        typer.echo(
            f"    Iterations: fast={profile.loop.fast_iterations}, "
            f"deep={profile.loop.deep_iterations}"
        )
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
