"""
Typed models for command payloads, query options and engine results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from twenty_cli import config
from twenty_cli._utils import type_name
from twenty_cli.exceptions import InputError


@dataclass(frozen=True)
class Runtime:
    """Global flags resolved once per CLI invocation."""

    format: str = "json"
    query: str | None = None
    no_resolve: bool = False
    dry_run: bool = False
    quiet: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class ObjectPayload:
    """Typed wrapper for raw JSON object payloads."""

    data: dict

    @classmethod
    def from_value(cls, value, context):
        if isinstance(value, dict):
            return cls(data=value)
        raise InputError(f"[INPUT_ERROR] {context} must be a JSON object, got {type_name(value)}.")


@dataclass(frozen=True)
class ArrayPayload:
    """Typed wrapper for raw JSON array payloads (batch and import input)."""

    items: list

    @classmethod
    def from_value(cls, value, context):
        if isinstance(value, list):
            return cls(items=value)
        raise InputError(f"[INPUT_ERROR] {context} must be a JSON array, got {type_name(value)}.")


@dataclass(frozen=True)
class QueryOptions:
    """Inputs of the query parameter assembler.

    ``params`` keeps the user's raw ``key=value`` strings in the order given.
    """

    limit: int = 0
    cursor: str = ""
    filter: str = ""
    filter_file: str = ""
    sort: str = ""
    order: str = ""
    fields: str = ""
    include: str = ""
    params: tuple[str, ...] = ()

    @classmethod
    def from_namespace(cls, ns, *, limit=None, cursor=None):
        """Build options from an argparse namespace; missing attributes are unset."""
        return cls(
            limit=limit if limit is not None else (getattr(ns, "limit", 0) or 0),
            cursor=cursor if cursor is not None else (getattr(ns, "cursor", "") or ""),
            filter=getattr(ns, "filter", "") or "",
            filter_file=getattr(ns, "filter_file", "") or "",
            sort=getattr(ns, "sort", "") or "",
            order=getattr(ns, "order", "") or "",
            fields=getattr(ns, "fields", "") or "",
            include=getattr(ns, "include", "") or "",
            params=tuple(getattr(ns, "param", None) or ()),
        )


@dataclass(frozen=True)
class PageInfo:
    """Cursor state taken from a list response's ``pageInfo`` object."""

    end_cursor: str = ""
    has_next_page: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"hasNextPage": self.has_next_page, "endCursor": self.end_cursor}


@dataclass
class PageResult:
    """Items accumulated by the pagination driver."""

    items: list = field(default_factory=list)
    page_info: PageInfo | None = None
    pages: int = 0


@dataclass(frozen=True)
class Resolution:
    """Outcome of object-name resolution.

    ``resolved`` is False when the input was returned unchanged (skipped,
    unknown name, or the metadata lookup failed); ``reason`` says which.
    """

    name: str
    resolved: bool
    reason: str | None = None

    @classmethod
    def fallback(cls, name, reason):
        return cls(name=name, resolved=False, reason=reason)


@dataclass
class BatchResult:
    """Summary of a chunked batch run."""

    total: int
    succeeded: int = 0
    errors: list[str] = field(default_factory=list)
    responses: list = field(default_factory=list)
    chunks_attempted: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self, count_key="succeeded") -> dict[str, Any]:
        return {
            "ok": self.ok,
            count_key: self.succeeded,
            "total": self.total,
            "errors": list(self.errors),
        }


def clamp_batch_size(size):
    """Clamp a chunk size to 1..MAX_BATCH_SIZE; non-positive or unset means the max."""
    if not size or size <= 0:
        return config.MAX_BATCH_SIZE
    return min(size, config.MAX_BATCH_SIZE)
