"""
Prefix filter and rewrite -- decides where each exported key lands.

    --from-prefix selects keys and is stripped from them.
    --to-prefix is prepended to whatever remains.

Both are literal strings. The result never starts with ``/`` and is
never empty; a record that would become the empty key is skipped so
that an import cannot overwrite a store's root.
"""

from __future__ import annotations

from typing import Iterable

from .models import Record, RewriteDecision, Selected, Skipped

SEPARATOR = "/"


def in_scope(key: str, from_prefix: str) -> bool:
    """True if ``key`` is selected by ``from_prefix`` (empty selects all)."""
    return from_prefix == "" or key.startswith(from_prefix)


def select(records: Iterable[Record], from_prefix: str) -> list[Record]:
    """Keep only the records selected by ``from_prefix``, in order."""
    return [r for r in records if in_scope(r.key, from_prefix)]


def rewrite(record: Record, from_prefix: str, to_prefix: str) -> RewriteDecision:
    """Compute the destination key for a single record.

    Args:
        record: Record from the export snapshot.
        from_prefix: Prefix to strip. Empty strips nothing.
        to_prefix: Prefix to prepend. Empty prepends nothing.

    Returns:
        Selected with the destination key, or Skipped with a reason.
    """
    original = record.key
    if not in_scope(original, from_prefix):
        return Skipped(source_key=original, reason=f"outside from-prefix '{from_prefix}'")

    key = original
    if from_prefix:
        key = key[len(from_prefix):]

    if to_prefix:
        key = to_prefix.lstrip(SEPARATOR) + key

    if key == "":
        return Skipped(source_key=original, reason="rewrites to an empty key")

    key = key.lstrip(SEPARATOR)
    # "/" alone survives the check above but is still the root
    if key == "":
        return Skipped(source_key=original, reason="rewrites to an empty key")

    return Selected(source_key=original, destination_key=key)


def plan_import(
    records: Iterable[Record], from_prefix: str, to_prefix: str
) -> list[tuple[Record, RewriteDecision]]:
    """Select, then rewrite, every record. Order is preserved."""
    return [
        (record, rewrite(record, from_prefix, to_prefix))
        for record in select(records, from_prefix)
    ]
