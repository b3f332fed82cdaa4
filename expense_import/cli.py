"""CLI for the ``expense_import`` package.

This module exposes callable command handlers (``cmd_parse``,
``cmd_import``, ``cmd_formats``) and a Typer-based console interface.
Environment variables (notably ``OPENAI_API_KEY``) are loaded from a local
``.env`` using ``python-dotenv`` before delegating to command logic. Business
logic lives in ``expense_import.api`` and related modules.

Results are written to stdout as JSON; failures are reported on stderr as
``Error: ...`` with a non-zero exit status.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .api import import_statement_file
from .categorize import BATCH_SIZE, CategoryBatchClassifier
from .exceptions import UnknownFormatError
from .formats import FORMATS, get_format
from .ingest import parse_file
from .logging_setup import configure_logging
from .models import CategorizedTransaction, ParsedTransaction, ParseError
from .openai_client import OpenAIClassificationPort

MAX_WORKERS_ENV_VAR = "EXPENSE_IMPORT_MAX_WORKERS"
_DEFAULT_MAX_WORKERS = 4
_MAX_WORKERS_CAP = 32


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_max_workers() -> int:
    """Resolve the worker count for chunk classification.

    Honors the optional ``EXPENSE_IMPORT_MAX_WORKERS`` env var, caps it at 32,
    and ensures a minimum of 1. Unparseable values fall back to the default.
    """

    raw = os.getenv(MAX_WORKERS_ENV_VAR)
    try:
        max_workers = int(raw) if raw else None
    except ValueError:
        max_workers = None

    if max_workers is None:
        return _DEFAULT_MAX_WORKERS
    return max(1, min(max_workers, _MAX_WORKERS_CAP))


def _build_classifier(batch_size: int) -> CategoryBatchClassifier:
    return CategoryBatchClassifier(
        OpenAIClassificationPort(),
        batch_size=batch_size,
        concurrency=_resolve_max_workers(),
    )


def _transaction_json(tx: ParsedTransaction) -> dict[str, Any]:
    return tx.model_dump(mode="json")


def _categorized_json(item: CategorizedTransaction) -> dict[str, Any]:
    return {**_transaction_json(item.transaction), "category": item.category.value}


def _error_json(err: ParseError) -> dict[str, Any]:
    return asdict(err)


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _report_read_failure(csv_path: str, exc: Exception) -> int:
    if isinstance(exc, UnknownFormatError):
        supported = ", ".join(exc.details.get("supported", []))
        print(f"Error: {exc.message} (supported: {supported})", file=sys.stderr)
    elif isinstance(exc, FileNotFoundError):
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
    elif isinstance(exc, PermissionError):
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
    else:
        print(f"Error: Failed to read '{csv_path}': {exc}", file=sys.stderr)
    return 1


# ---- Command handlers ----------------------------------------------------------


def cmd_parse(csv_path: str, format_key: str) -> int:
    """Parse a statement export and print valid rows and row errors as JSON.

    Row errors do not change the exit status; an unsupported format or an
    unreadable file returns ``1``.
    """

    try:
        result = parse_file(csv_path, format_key)
    except (UnknownFormatError, OSError) as e:
        return _report_read_failure(csv_path, e)

    _emit(
        {
            "format": get_format(format_key).key.value,
            "success_count": result.success_count,
            "error_count": result.error_count,
            "transactions": [_transaction_json(t) for t in result.valid_transactions],
            "errors": [_error_json(e) for e in result.errors],
        }
    )
    return 0


def cmd_import(csv_path: str, format_key: str, *, batch_size: int = BATCH_SIZE) -> int:
    """Parse, classify (with the ``Other`` fallback) and print the result as JSON."""

    # Validate inputs early so failures are clear
    try:
        fmt = get_format(format_key)
    except UnknownFormatError as e:
        return _report_read_failure(csv_path, e)

    if not os.getenv("OPENAI_API_KEY"):
        print("Error: OPENAI_API_KEY is not set in the environment.", file=sys.stderr)
        return 1

    try:
        classifier = _build_classifier(batch_size)
    except Exception as e:
        print(f"Error: failed to create classification client: {e}", file=sys.stderr)
        return 1

    try:
        result = import_statement_file(csv_path, fmt.key, classifier=classifier)
    except OSError as e:
        return _report_read_failure(csv_path, e)

    _emit(
        {
            "format": fmt.key.value,
            "success_count": result.success_count,
            "error_count": result.error_count,
            "classification_fallback": result.classification_fallback,
            "transactions": [_categorized_json(t) for t in result.transactions],
            "errors": [_error_json(e) for e in result.errors],
        }
    )
    return 0


def cmd_formats() -> int:
    """Print the supported format keys, one per line as ``<key>\\t<label>``."""

    for descriptor in FORMATS.values():
        print(f"{descriptor.key.value}\t{descriptor.label}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import card statement CSV exports and categorize expenses using OpenAI. "
        "Loads OPENAI_API_KEY from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
FORMAT_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--format",
    "-f",
    help="CSV layout key (see the 'formats' command).",
)
BATCH_SIZE_OPTION: OptionInfo = typer.Option(
    ...,
    "--batch-size",
    min=1,
    help="Maximum descriptions per classification request.",
)


@app.command("parse")
def parse_cmd(
    csv_path: Annotated[Path, typer.Argument(dir_okay=False, help="Statement CSV export.")],
    format_key: Annotated[str, FORMAT_OPTION],
) -> None:
    """Parse a CSV export and print valid rows and row errors as JSON."""

    code = cmd_parse(str(csv_path), format_key)
    if code:
        raise typer.Exit(code)


@app.command("import")
def import_cmd(
    csv_path: Annotated[Path, typer.Argument(dir_okay=False, help="Statement CSV export.")],
    format_key: Annotated[str, FORMAT_OPTION],
    batch_size: Annotated[int, BATCH_SIZE_OPTION] = BATCH_SIZE,
) -> None:
    """Parse a CSV export, categorize its rows, and print the result as JSON."""

    code = cmd_import(str(csv_path), format_key, batch_size=batch_size)
    if code:
        raise typer.Exit(code)


@app.command("formats")
def formats_cmd() -> None:
    """List the supported CSV layouts."""

    cmd_formats()


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m expense_import.cli`
    app()
