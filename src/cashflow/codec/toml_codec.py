"""
TOML codec for ledger documents.

parse -> normalize_temporal -> typed Document on the way in, and the inverse
serialize on the way out. Grammar handling is delegated to tomlkit; this
module owns error translation, date normalization and entity counting.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Optional

import tomlkit
from tomlkit.exceptions import TOMLKitError

from cashflow.codec.mapping import (
    document_from_tree,
    document_to_tree,
    replace_last_modified,
)
from cashflow.core.exceptions import (
    AppError,
    EmptyInputError,
    ErrorDetail,
    MalformedDocumentError,
    TomlSyntaxError,
)
from cashflow.core.timezone import ISO_TEMPORAL_PATTERN, now_utc, parse_iso_temporal
from cashflow.domain.models import Document, LoadStats

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("version", "metadata", "currency")
TOML_REFERENCE = "https://toml.io/en/v1.0.0"

_LINE_RE = re.compile(r"line (\d+)", re.IGNORECASE)
_COLUMN_RE = re.compile(r"col(?:umn)? (\d+)", re.IGNORECASE)


@dataclass
class LoadResult:
    """Outcome of ``load``: either a document with stats, or an error."""

    success: bool
    document: Optional[Document] = None
    stats: Optional[LoadStats] = None
    load_time_ms: int = 0
    message: str = ""
    error: Optional[ErrorDetail] = None
    cause: Optional[Exception] = None


def parse(text: Optional[str]) -> dict[str, Any]:
    """
    Parse TOML text into a plain tree.

    Raises:
        EmptyInputError: the input is empty once trimmed
        TomlSyntaxError: the text is not valid TOML (line/column when known)
        MalformedDocumentError: a required top-level key is missing
    """
    if text is None or not text.strip():
        raise EmptyInputError()

    try:
        tree = tomlkit.parse(text).unwrap()
    except TOMLKitError as exc:
        raise _syntax_error(exc) from exc

    missing = [key for key in REQUIRED_KEYS if key not in tree]
    if missing:
        raise MalformedDocumentError(
            f"Sections obligatoires manquantes : {', '.join(missing)}",
            path=missing[0],
        )
    return tree


def _syntax_error(exc: Exception) -> TomlSyntaxError:
    raw = str(exc) or "Erreur inconnue"
    line = getattr(exc, "line", None)
    column = getattr(exc, "col", None)
    if line is None:
        match = _LINE_RE.search(raw)
        line = int(match.group(1)) if match else None
    if column is None:
        match = _COLUMN_RE.search(raw)
        column = int(match.group(1)) if match else None

    message = "Erreur de parsing TOML\n\n"
    if line is not None and column is not None:
        message += f"Ligne {line}, colonne {column} :\n"
    message += f"Erreur : {raw}\n\n"
    message += "Suggestion : Vérifiez la syntaxe TOML autour de cette ligne.\n"
    message += f"Référence : {TOML_REFERENCE}"
    return TomlSyntaxError(message, line=line, column=column)


def normalize_temporal(node: Any) -> Any:
    """
    Convert ISO-8601 date and date-time strings into date/datetime values.

    Walks tables and arrays to any depth and returns a new tree. Values that
    are already dates, and strings naming impossible dates, are left as-is,
    so applying it twice gives the same tree.
    """
    if isinstance(node, dict):
        return {key: normalize_temporal(value) for key, value in node.items()}
    if isinstance(node, list):
        return [normalize_temporal(item) for item in node]
    if isinstance(node, str) and ISO_TEMPORAL_PATTERN.match(node):
        try:
            return parse_iso_temporal(node)
        except (ValueError, OverflowError):
            return node
    return node


def count_entities(tree: dict[str, Any]) -> LoadStats:
    """Count each entity section, 0 when absent or not an array."""

    def _count(key: str) -> int:
        value = tree.get(key)
        return len(value) if isinstance(value, list) else 0

    return LoadStats(
        currencies=_count("currency"),
        accounts=_count("account"),
        transactions=_count("transaction"),
        budgets=_count("budget"),
        recurring=_count("recurring"),
    )


def format_load_message(stats: LoadStats, load_time_ms: int) -> str:
    """Human summary of a successful load."""
    return (
        "Fichier chargé avec succès\n"
        f"  - {stats.currencies} devise(s)\n"
        f"  - {stats.accounts} compte(s)\n"
        f"  - {stats.transactions} transaction(s)\n"
        f"  - {stats.budgets} budget(s)\n"
        f"  - {stats.recurring} récurrence(s)\n"
        f"\nTemps de chargement : {load_time_ms}ms"
    )


def load(text: Optional[str]) -> LoadResult:
    """Parse, normalize and type a document. Never raises."""
    started = time.perf_counter()
    try:
        tree = normalize_temporal(parse(text))
        document = document_from_tree(tree)
    except AppError as exc:
        logger.warning("Failed to load ledger document: %s", exc.code)
        return LoadResult(success=False, error=exc.to_detail(), cause=exc)
    except Exception as exc:
        logger.exception("Unexpected error while loading ledger document")
        return LoadResult(
            success=False,
            error=ErrorDetail(kind="LOAD_ERROR", message=f"Erreur de chargement : {exc}"),
            cause=exc,
        )

    load_time_ms = round((time.perf_counter() - started) * 1000)
    stats = count_entities(tree)
    logger.info(
        "Loaded ledger: %d currencies, %d accounts, %d transactions in %dms",
        stats.currencies,
        stats.accounts,
        stats.transactions,
        load_time_ms,
    )
    return LoadResult(
        success=True,
        document=document,
        stats=stats,
        load_time_ms=load_time_ms,
        message=format_load_message(stats, load_time_ms),
    )


def serialize(document: Document, saved_at: Optional[Any] = None) -> str:
    """
    Serialize a document to TOML with a refreshed ``metadata.lastModified``.

    The given document is not modified.
    """
    stamped = replace_last_modified(document, saved_at or now_utc())
    return tomlkit.dumps(document_to_tree(stamped))
