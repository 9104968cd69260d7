"""CLI entrypoint for docvault."""

import logging
import sys
from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(__version__, prog_name="docvault")
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Repository directory (defaults to the nearest parent holding docvault.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, root: Path | None, verbose: bool) -> None:
    """docvault - Markdown documents with YAML frontmatter, governed by collection schemas.

    List, search, validate, and repair a repository of documents.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    ctx.ensure_object(dict)
    if root is not None and not root.is_dir() and ctx.invoked_subcommand != "init":
        raise click.BadParameter(f"Directory '{root}' does not exist.", param_hint="--root / -r")
    ctx.obj["root"] = root.resolve() if root is not None else None


@cli.command()
@click.argument(
    "path",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    required=False,
)
@click.pass_context
def init(ctx: click.Context, path: Path | None) -> None:
    """Initialize a repository (default: --root or the current directory)."""
    from .commands.init_cmd import run_init

    target = path or ctx.obj["root"] or Path.cwd()
    sys.exit(run_init(target))


@cli.command("list")
@click.option("--collection", "-c", default=None, help="Collection name or alias")
@click.option("--query", "-q", default=None, help="Field query, e.g. 'status=active amount>100'")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "csv", "json"]),
    default="table",
    show_default=True,
)
@click.pass_context
def list_documents(ctx: click.Context, collection: str | None, query: str | None, fmt: str) -> None:
    """List documents, sorted by path."""
    from .commands.documents_cmd import run_list

    sys.exit(run_list(ctx.obj["root"], collection=collection, query=query, fmt=fmt))


@cli.command()
@click.argument("doc_id")
@click.pass_context
def show(ctx: click.Context, doc_id: str) -> None:
    """Print the stored text of a document (full id, prefix, or short id)."""
    from .commands.documents_cmd import run_show

    sys.exit(run_show(ctx.obj["root"], doc_id))


@cli.command()
@click.argument("query")
@click.option("--top", is_flag=True, help="Print only the single best match (exit 1 when ambiguous)")
@click.option("--limit", type=int, default=20, show_default=True, help="Max results to display")
@click.pass_context
def search(ctx: click.Context, query: str, top: bool, limit: int) -> None:
    """Search documents.

    Plain words run a ranked full-text search. Terms like `field=value`,
    `field>10`, or `collection:notes` run a structured query.
    """
    from .commands.search_cmd import run_search

    sys.exit(run_search(ctx.obj["root"], query, top=top, limit=limit))


@cli.command()
@click.option("--collection", "-c", default=None, help="Only check this collection")
@click.option("--fix", is_flag=True, help="Apply automatic repairs")
@click.option(
    "--prune-attachments",
    is_flag=True,
    help="With --fix, delete attachments no document references",
)
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def check(
    ctx: click.Context,
    collection: str | None,
    fix: bool,
    prune_attachments: bool,
    output_json: bool,
) -> None:
    """Validate documents against their schemas.

    Exits with status 1 when any error remains.
    """
    from .commands.check import run_check

    if prune_attachments and not fix:
        raise click.UsageError("--prune-attachments requires --fix")
    sys.exit(
        run_check(
            ctx.obj["root"],
            collection=collection,
            fix=fix,
            prune_attachments=prune_attachments,
            output_json=output_json,
        )
    )


@cli.command()
@click.option("--scope", "-s", default=None, help="Collection name/alias or document id")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["dot", "mermaid"]),
    default="dot",
    show_default=True,
)
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write output to a file instead of stdout",
)
@click.pass_context
def graph(ctx: click.Context, scope: str | None, fmt: str, out: Path | None) -> None:
    """Export the relationship graph (wiki links and references)."""
    from .commands.graph_cmd import run_graph

    sys.exit(run_graph(ctx.obj["root"], scope=scope, fmt=fmt, out=out))


@cli.command()
@click.argument("doc_id")
@click.pass_context
def relationships(ctx: click.Context, doc_id: str) -> None:
    """Show outgoing and incoming relationships of one document."""
    from .commands.graph_cmd import run_relationships

    sys.exit(run_relationships(ctx.obj["root"], doc_id))


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Count documents per collection."""
    from .commands.graph_cmd import run_stats

    sys.exit(run_stats(ctx.obj["root"]))


@cli.command()
@click.argument("collection")
@click.argument("args", nargs=-1)
@click.option("--field", "-f", "field_options", multiple=True, metavar="KEY=VALUE", help="Set a field (repeatable)")
@click.option("--content", default="", help="Markdown body")
@click.option("--template", "-t", default=None, help="Name of a template for this collection")
@click.pass_context
def create(
    ctx: click.Context,
    collection: str,
    args: tuple[str, ...],
    field_options: tuple[str, ...],
    content: str,
    template: str | None,
) -> None:
    """Create a document in COLLECTION.

    Positional ARGS fill the collection's slug placeholders in order.

    Examples:

        docvault create companies "Acme Corp"

        docvault create invoices --field amount=120 --field currency=eur
    """
    from .commands.documents_cmd import run_create

    sys.exit(
        run_create(
            ctx.obj["root"],
            collection,
            args,
            field_options=field_options,
            content=content,
            template=template,
        )
    )


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Watch for external edits and keep the document cache current."""
    from .commands.watch_cmd import run_watch

    sys.exit(run_watch(ctx.obj["root"]))


if __name__ == "__main__":
    cli()
