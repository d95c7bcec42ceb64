"""InkSeal CLI — drive signature requests from the command line.

Usage:
    inkseal create "Service Agreement" --expires-in-days 14
    inkseal send <document-id> --signer "Ada Lovelace <ada@example.com>"
    inkseal show <token>
    inkseal sign <token> strokes.json
    inkseal decline <token>
    inkseal status <document-id>
    inkseal list [--status sent]
    inkseal render <token> -o signature.svg
    inkseal audit <document-id>
"""

import json
import logging
import sys
from datetime import timedelta
from email.utils import parseaddr
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import Settings
from .engine import SignatureEngine
from .errors import InkSealError
from .models import (
    AuditAction,
    AuditEntry,
    Document,
    DocumentStatus,
    Recipient,
    SignatureStatus,
    utcnow,
)
from .store import SignatureStore
from .svgpath import render_svg

console = Console()
logger = logging.getLogger("inkseal.cli")

_STATUS_COLORS = {
    DocumentStatus.DRAFT: "dim",
    DocumentStatus.SENT: "yellow",
    DocumentStatus.COMPLETED: "green",
    DocumentStatus.CANCELLED: "red",
    SignatureStatus.PENDING: "yellow",
    SignatureStatus.SIGNED: "green",
    SignatureStatus.DECLINED: "red",
    SignatureStatus.EXPIRED: "red",
}


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/]")
    sys.exit(1)


def _colored(status) -> str:
    return f"[{_STATUS_COLORS.get(status, 'white')}]{status.value}[/]"


def _parse_signer(value: str) -> Recipient:
    name, email = parseaddr(value)
    if not email or "@" not in email:
        raise click.BadParameter(f"Expected 'Name <email>', got {value!r}")
    return Recipient(name=name or email, email=email)


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(),
    default=None,
    help="InkSeal data directory (default: $INKSEAL_HOME or ~/.inkseal)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log at INFO level")
@click.pass_context
def main(ctx: click.Context, data_dir: Optional[str], verbose: bool) -> None:
    """InkSeal — signature capture and contract completion."""
    settings = Settings()
    if data_dir:
        settings.home = Path(data_dir)

    logging.basicConfig(
        level="INFO" if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    store = SignatureStore(settings.home)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["store"] = store
    ctx.obj["engine"] = SignatureEngine(store, tolerance=settings.tolerance)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

@main.command()
@click.argument("title")
@click.option("--description", default="", help="Document description")
@click.option("--expires-in-days", type=int, default=None, help="Signing deadline")
@click.pass_context
def create(
    ctx: click.Context,
    title: str,
    description: str,
    expires_in_days: Optional[int],
) -> None:
    """Create a draft document."""
    store: SignatureStore = ctx.obj["store"]
    now = utcnow()
    doc = Document(
        title=title,
        description=description,
        expires_at=now + timedelta(days=expires_in_days) if expires_in_days else None,
    )
    store.save_document(doc)
    store.append_audit(
        AuditEntry(
            document_id=doc.document_id,
            action=AuditAction.CREATED,
            timestamp=now,
            details=f"Document created: {title}",
        )
    )
    logger.info("Created document %s (%s)", title, doc.document_id[:8])
    click.echo(doc.document_id)


@main.command()
@click.argument("document_id")
@click.option(
    "--signer",
    "signers",
    multiple=True,
    required=True,
    help='Recipient as "Name <email>" (repeatable)',
)
@click.pass_context
def send(ctx: click.Context, document_id: str, signers: tuple[str, ...]) -> None:
    """Send a draft document and print one signing token per signer."""
    engine: SignatureEngine = ctx.obj["engine"]
    recipients = [_parse_signer(s) for s in signers]

    try:
        signatures = engine.send_document(document_id, recipients)
    except InkSealError as exc:
        _fail(str(exc))

    table = Table(title="Signing tokens")
    table.add_column("Signer", style="cyan")
    table.add_column("Email")
    table.add_column("Token", style="bold", no_wrap=True, min_width=43)
    for sig in signatures:
        table.add_row(sig.signer_name, sig.signer_email, sig.token)
    console.print(table)


@main.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in DocumentStatus]),
    default=None,
    help="Filter by status",
)
@click.pass_context
def list_docs(ctx: click.Context, status: Optional[str]) -> None:
    """List all documents."""
    store: SignatureStore = ctx.obj["store"]
    status_filter = DocumentStatus(status) if status else None
    docs = store.list_documents(status=status_filter)

    if not docs:
        console.print("[dim]No documents found.[/]")
        return

    table = Table(title="InkSeal Documents")
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Title", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Signed", justify="right")
    table.add_column("Expires")

    for doc in docs:
        signatures = store.list_signatures(doc.document_id)
        signed = sum(1 for s in signatures if s.status == SignatureStatus.SIGNED)
        table.add_row(
            doc.document_id[:12],
            doc.title,
            _colored(doc.status),
            f"{signed}/{len(signatures)}",
            doc.expires_at.strftime("%Y-%m-%d %H:%M") if doc.expires_at else "—",
        )

    console.print(table)


@main.command()
@click.argument("document_id")
@click.pass_context
def status(ctx: click.Context, document_id: str) -> None:
    """Show every signature of a document, applying pending expiries."""
    store: SignatureStore = ctx.obj["store"]
    engine: SignatureEngine = ctx.obj["engine"]

    try:
        store.load_document(document_id)
        signatures = [engine.lookup(s.token) for s in store.list_signatures(document_id)]
        result = engine.aggregator.recompute(document_id)
    except InkSealError as exc:
        _fail(str(exc))

    doc = store.load_document(document_id)
    table = Table(title=f"{doc.title} — {doc.status.value}")
    table.add_column("Signer", style="cyan")
    table.add_column("Email")
    table.add_column("Status", justify="center")
    table.add_column("Signed at")

    for sig in signatures:
        table.add_row(
            sig.signer_name,
            sig.signer_email,
            _colored(sig.status),
            sig.signed_at.strftime("%Y-%m-%d %H:%M:%S") if sig.signed_at else "—",
        )

    console.print(table)
    if result.transitioned:
        console.print("[bold green]Document completed.[/]")


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

@main.command()
@click.argument("token")
@click.pass_context
def show(ctx: click.Context, token: str) -> None:
    """Show the signature request behind a token."""
    engine: SignatureEngine = ctx.obj["engine"]

    try:
        signature, doc = engine.open_for_signing(token)
    except InkSealError as exc:
        _fail(str(exc))

    expires = doc.expires_at.strftime("%Y-%m-%d %H:%M") if doc.expires_at else "never"
    console.print(
        Panel(
            f"[bold]{doc.title}[/]\n"
            f"{doc.description}\n\n"
            f"  Signer:   {signature.signer_name} <{signature.signer_email}>\n"
            f"  Status:   {signature.status.value}\n"
            f"  Expires:  {expires}",
            title="Signature Request",
            border_style="cyan",
        )
    )


@main.command()
@click.argument("token")
@click.argument("strokes", type=click.Path(exists=True, dir_okay=False))
@click.option("--ip", "ip_address", default=None, help="Origin address to record")
@click.option("--user-agent", default=None, help="Client user agent to record")
@click.pass_context
def sign(
    ctx: click.Context,
    token: str,
    strokes: str,
    ip_address: Optional[str],
    user_agent: Optional[str],
) -> None:
    """Sign with normalized strokes read from a JSON file."""
    engine: SignatureEngine = ctx.obj["engine"]

    try:
        data = json.loads(Path(strokes).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        _fail(f"Cannot parse {strokes}: {exc}")

    try:
        outcome = engine.sign(token, data, ip_address=ip_address, user_agent=user_agent)
    except InkSealError as exc:
        _fail(str(exc))

    sig = outcome.signature
    console.print(
        Panel(
            f"[bold green]Signed![/]\n\n"
            f"  Signer:     {sig.signer_name}\n"
            f"  Document:   {sig.document_id[:16]}...\n"
            f"  Path:       {len(sig.svg_path or '')} chars\n"
            f"  All signed: {'yes' if outcome.all_signed else 'no'}",
            title="InkSeal",
            border_style="green",
        )
    )


@main.command()
@click.argument("token")
@click.pass_context
def decline(ctx: click.Context, token: str) -> None:
    """Decline a signature request."""
    engine: SignatureEngine = ctx.obj["engine"]

    try:
        outcome = engine.decline(token)
    except InkSealError as exc:
        _fail(str(exc))

    console.print(
        f"[yellow]Declined[/] on behalf of {outcome.signature.signer_name}."
    )


@main.command()
@click.argument("token")
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None, help="Write SVG here")
@click.pass_context
def render(ctx: click.Context, token: str, output: Optional[str]) -> None:
    """Render a completed signature as SVG."""
    store: SignatureStore = ctx.obj["store"]

    try:
        signature = store.load_signature(token)
    except InkSealError as exc:
        _fail(str(exc))

    if signature.svg_path is None:
        _fail(f"Signature is {signature.status.value}, nothing to render")

    svg = render_svg(signature.svg_path, signature.signer_name)
    if output:
        Path(output).write_text(svg, encoding="utf-8")
        console.print(f"Wrote {output}")
    else:
        click.echo(svg)


@main.command()
@click.argument("document_id")
@click.pass_context
def audit(ctx: click.Context, document_id: str) -> None:
    """Show the audit trail for a document."""
    store: SignatureStore = ctx.obj["store"]
    entries = store.get_audit_trail(document_id)

    if not entries:
        console.print("[dim]No audit entries found.[/]")
        return

    table = Table(title="Audit Trail")
    table.add_column("Time", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("Actor")
    table.add_column("Details")

    for e in entries:
        table.add_row(
            e.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            e.action.value,
            e.actor_name or "—",
            e.details,
        )

    console.print(table)


if __name__ == "__main__":
    main()
