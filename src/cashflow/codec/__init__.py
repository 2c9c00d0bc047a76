"""Document codec: TOML text <-> typed ledger document."""

from cashflow.codec.toml_codec import (
    LoadResult,
    parse,
    normalize_temporal,
    count_entities,
    format_load_message,
    load,
    serialize,
)
from cashflow.codec.mapping import document_from_tree, document_to_tree

__all__ = [
    "LoadResult",
    "parse",
    "normalize_temporal",
    "count_entities",
    "format_load_message",
    "load",
    "serialize",
    "document_from_tree",
    "document_to_tree",
]
