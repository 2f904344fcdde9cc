"""docledger CLI application with Typer."""

import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from docledger import __version__
from docledger.bootstrap import ApplicationContainer, bootstrap_application, create_journal
from docledger.config import get_settings, set_settings
from docledger.registry import DocumentRecord, RegistryError
from docledger.utils.cli_output import json_response
from docledger.utils.hashing import compute_document_hash_file

app = typer.Typer(
    name="docledger",
    help="Append-only document registry: register, verify and list signed document hashes",
    add_completion=True,
    no_args_is_help=True,
)
journal_app = typer.Typer(help="Registration journal management")
app.add_typer(journal_app, name="journal")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"docledger version {__version__}")
        raise typer.Exit()


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _bootstrap() -> ApplicationContainer:
    try:
        return bootstrap_application()
    except RegistryError as exc:
        _fail(f"Registry could not be loaded: {exc}")


def _parse_signature(signature_hex: str | None, signature_file: Path | None) -> bytes:
    if signature_hex is not None and signature_file is not None:
        _fail("Pass either --signature or --signature-file, not both")
    if signature_file is not None:
        return signature_file.read_bytes()
    if signature_hex is None:
        return b""
    text = signature_hex.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError:
        _fail(f"Signature is not valid hexadecimal: {signature_hex!r}")


def _record_line(record: DocumentRecord) -> str:
    return (
        f"{record.timestamp.isoformat()} | {record.hash_hex} | "
        f"{record.signing_account} | {len(record.signature)} signature bytes"
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Override data directory"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """docledger - append-only document registry."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if data_dir:
        # Scope the override to this invocation; the shared settings stay untouched.
        previous = get_settings()
        set_settings(previous.model_copy(update={"data_dir": data_dir}))
        ctx.call_on_close(lambda: set_settings(previous))


@app.command("hash")
def hash_file(
    path: Annotated[
        Path,
        typer.Argument(help="File to hash", exists=True, dir_okay=False, resolve_path=True),
    ],
) -> None:
    """Print the SHA-256 document hash of a file."""
    typer.echo(compute_document_hash_file(path).hex())


@app.command("register")
def register(
    signer: Annotated[str, typer.Argument(help="Signing account identifier")],
    document_hash: Annotated[
        str | None,
        typer.Option("--hash", help="Document hash as 64 hex characters"),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Hash this file instead of passing --hash", exists=True, dir_okay=False),
    ] = None,
    signature: Annotated[
        str | None,
        typer.Option("--signature", "-s", help="Signature bytes as hex"),
    ] = None,
    signature_file: Annotated[
        Path | None,
        typer.Option("--signature-file", help="Read raw signature bytes from a file", exists=True, dir_okay=False),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Register a document hash as signed by SIGNER."""
    if (document_hash is None) == (file is None):
        _fail("Pass exactly one of --hash or --file")

    key: bytes | str = compute_document_hash_file(file) if file is not None else document_hash
    blob = _parse_signature(signature, signature_file)

    container = _bootstrap()
    try:
        record = container.registry.register(key, signer, blob)
    except RegistryError as exc:
        _fail(str(exc))

    if json_output:
        typer.echo(json_response("document_record", 1, record=record.model_dump(mode="json")))
        return

    typer.secho(f"Registered {record.hash_hex}", fg=typer.colors.GREEN)
    typer.echo(f"   Signer: {record.signing_account}")
    typer.echo(f"   Timestamp: {record.timestamp.isoformat()}")


@app.command("verify")
def verify(
    document_hash: Annotated[str, typer.Argument(help="Document hash as 64 hex characters")],
    signer: Annotated[str, typer.Argument(help="Signing account to check")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Check whether a document hash was registered by SIGNER.

    Exits with code 1 unless the document is correct.
    """
    container = _bootstrap()
    result = container.registry.verify(document_hash, signer)

    if json_output:
        typer.echo(
            json_response(
                "verification_result",
                1,
                outcome=result.outcome.value,
                message=result.message,
            )
        )
    else:
        color = typer.colors.GREEN if result.is_valid else typer.colors.YELLOW
        typer.secho(result.message, fg=color)

    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command("get")
def get(
    document_hash: Annotated[str, typer.Argument(help="Document hash as 64 hex characters")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show the stored record for a document hash."""
    container = _bootstrap()
    try:
        record = container.registry.get(document_hash)
    except RegistryError as exc:
        _fail(str(exc))

    if json_output:
        typer.echo(json_response("document_record", 1, record=record.model_dump(mode="json")))
    else:
        typer.echo(_record_line(record))


@app.command("list")
def list_documents(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    page_size: Annotated[
        int | None,
        typer.Option("--page-size", min=1, help="Records fetched per page (defaults to settings)"),
    ] = None,
) -> None:
    """List every registered document in registration order."""
    container = _bootstrap()
    records = container.registry.iter_documents(page_size)

    if json_output:
        payload = [record.model_dump(mode="json") for record in records]
        typer.echo(json_response("document_list", 1, total_records=len(payload), records=payload))
        return

    empty = True
    for record in records:
        empty = False
        typer.echo(_record_line(record))

    if empty:
        typer.secho("No documents registered", fg=typer.colors.YELLOW)


@app.command("count")
def count(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Print the number of registered documents."""
    container = _bootstrap()
    total = container.registry.count()

    if json_output:
        typer.echo(json_response("document_count", 1, count=total))
    else:
        typer.echo(str(total))


@journal_app.command("verify")
def journal_verify() -> None:
    """Verify registration journal integrity."""
    try:
        journal = create_journal(get_settings())
    except RegistryError as exc:
        _fail(f"Journal could not be loaded: {exc}")

    if journal is None:
        typer.secho("Journal is disabled", fg=typer.colors.YELLOW)
        return

    valid, error = journal.verify()

    if valid:
        typer.secho("Journal is valid", fg=typer.colors.GREEN)
        return

    _fail(error or "Journal integrity check failed")


if __name__ == "__main__":
    app()
