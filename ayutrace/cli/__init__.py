"""
AyuTrace CLI Tool

This module provides a command-line interface for operating an AyuTrace
provenance ledger. It can serve the REST API, report ledger health, print the
history of a batch or the provenance of a product, and export the sealed
ledger as Parquet for audit.

Every command works against the durable store given with ``--database``; the
ledger is replayed from it on each invocation.
"""

import json

import click
import pyarrow.parquet as pq
import uvicorn

from ayutrace.api.server import create_app
from ayutrace.config.settings import get_settings
from ayutrace.core.exceptions import AyuTraceError
from ayutrace.core.provenance import ProvenanceResolver
from ayutrace.core.utils import format_timestamp
from ayutrace.storage.sql_backend import SqlStorageBackend


def _load(ctx):
    """Open the store and replay its ledger"""
    try:
        storage = SqlStorageBackend(ctx.obj['database'])
        ctx.call_on_close(storage.close)
        return storage, storage.load_ledger(difficulty=ctx.obj['settings'].DIFFICULTY)
    except AyuTraceError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option('--database', default=None, help='SQLAlchemy database URL (defaults to DATABASE_URL)')
@click.pass_context
def ayt(ctx, database):
    """AyuTrace CLI - Herbal supply-chain provenance ledger"""
    ctx.ensure_object(dict)
    settings = get_settings()
    ctx.obj['settings'] = settings
    ctx.obj['database'] = database or settings.DATABASE_URL


@ayt.command()
@click.option('--host', default=None, help='Bind address')
@click.option('--port', default=None, type=int, help='Bind port')
@click.pass_context
def serve(ctx, host, port):
    """Run the REST API server"""
    settings = ctx.obj['settings']
    try:
        storage = SqlStorageBackend(ctx.obj['database'])
        app = create_app(storage=storage, settings=settings)
    except AyuTraceError as e:
        raise click.ClickException(str(e))
    uvicorn.run(app, host=host or settings.API_HOST, port=port or settings.API_PORT,
                log_level=settings.LOG_LEVEL.lower())


@ayt.command()
@click.pass_context
def health(ctx):
    """Show ledger integrity and size"""
    _storage, ledger = _load(ctx)
    stats = ledger.get_chain_stats()

    click.echo(f"Ledger: {stats['name']}")
    click.echo(f"  Blocks: {stats['chain_length']}")
    click.echo(f"  Sealed transactions: {stats['total_transactions']}")
    click.echo(f"  Pending transactions: {stats['pending_transactions']}")
    click.echo(f"  Difficulty: {stats['difficulty']}")
    click.echo(f"  Valid: {'yes' if stats['is_valid'] else 'NO'}")
    for violation in stats['violations']:
        click.echo(f"  - {violation}")

    if not stats['is_valid']:
        ctx.exit(1)


@ayt.command()
@click.argument('batch_id')
@click.pass_context
def batch(ctx, batch_id):
    """Show the time-ordered history of a batch"""
    _storage, ledger = _load(ctx)
    history = ProvenanceResolver(ledger).batch_history(batch_id)

    if not history.history:
        click.echo(f"No transactions found for batch {batch_id}")
        ctx.exit(1)

    click.echo(f"Batch {batch_id} (chain of custody: {'ok' if history.chain_of_custody else 'BROKEN'}):")
    for transaction in history.history:
        click.echo(f"  - {transaction.type} | {transaction.id} | {format_timestamp(transaction.timestamp)}")


@ayt.command()
@click.argument('product_id')
@click.option('--json', 'as_json', is_flag=True, help='Print the full report as JSON')
@click.pass_context
def provenance(ctx, product_id, as_json):
    """Trace a product back to its source batches"""
    _storage, ledger = _load(ctx)
    report = ProvenanceResolver(ledger).resolve(product_id)

    if report is None:
        click.echo(f"Product not found: {product_id}")
        ctx.exit(1)

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json", by_alias=True), indent=2))
        return

    click.echo(f"{report.product.name} ({report.product.id})")
    for trace in report.ingredients:
        click.echo(f"  {trace.ingredient.name} <- {trace.ingredient.source_batch_id}")
        for transaction in trace.history:
            click.echo(f"    - {transaction.type} | {transaction.id}")


@ayt.command()
@click.argument('output', type=click.Path(dir_okay=False, writable=True))
@click.option('--blocks', is_flag=True, help='Export block headers instead of transactions')
@click.pass_context
def export(ctx, output, blocks):
    """Export the sealed ledger to a Parquet file"""
    _storage, ledger = _load(ctx)
    table = ledger.headers_table() if blocks else ledger.to_table()
    pq.write_table(table, output)
    click.echo(f"Exported {table.num_rows} rows to {output}")


if __name__ == '__main__':
    ayt()
