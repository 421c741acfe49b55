"""
RecordsClient: public Python API over the generic records engine.

Single entry point for the CLI commands and the MCP server. Every method
works on any object type: names are resolved to their plural REST resource
once per call, and results are returned as plain JSON-serializable values.
"""

from __future__ import annotations

from typing import Any

from twenty_cli import api, config
from twenty_cli.api import _check_token, decode_json
from twenty_cli.batch import run_batches
from twenty_cli.exceptions import BatchError, InputError
from twenty_cli.models import ObjectPayload, QueryOptions
from twenty_cli.pagination import extract_list, fetch_all
from twenty_cli.params import (
    build_batch_path,
    build_path,
    build_query_params,
    normalize_rest_path,
    with_cursor,
    with_query,
)
from twenty_cli.resolver import resolve_object


def _batch_failure(result, action):
    """Build the BatchError raised when a chunk fails under the stop policy."""
    return BatchError(
        f"[BATCH_ERROR] {action} stopped at {result.errors[0]} "
        f"({result.succeeded} of {result.total} records succeeded before the failure)",
        succeeded=result.succeeded,
        errors=result.errors,
    )


def _query_options(
    *,
    limit=0,
    cursor="",
    filter=None,
    filter_file=None,
    sort="",
    order="",
    fields="",
    include="",
    params=None,
):
    return QueryOptions(
        limit=limit or 0,
        cursor=cursor or "",
        filter=filter or "",
        filter_file=filter_file or "",
        sort=sort or "",
        order=order or "",
        fields=fields or "",
        include=include or "",
        params=tuple(params or ()),
    )


class RecordsClient:
    """Public API surface for Twenty records.

    All methods take the object name first, use keyword-only options, and
    return decoded JSON (dicts or lists). Raises CliError/SetupError on
    failure.
    """

    def __init__(self, *, validate_token=True, no_resolve=False, request=None, on_resolve=None):
        """Initialize the client.

        Args:
            validate_token: If True, check that an API key and base URL are
                configured before any API call.
            no_resolve: Use object names verbatim (skip the metadata lookup).
            request: Transport ``(method, path, body) -> bytes``; defaults
                to ``api.rest_request``.
            on_resolve: Optional callback receiving every Resolution.
        """
        if validate_token:
            _check_token()
        self.no_resolve = no_resolve
        self._request = request or api.rest_request
        self._on_resolve = on_resolve

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------

    def _send(self, method, path, body=None):
        return decode_json(self._request(method, path, body))

    def _list_object_metadata(self):
        return api.parse_objects(self._request("GET", api.METADATA_OBJECTS_PATH, None))

    def resolve(self, object_name: str) -> str:
        """Resolve an object name to its plural resource name."""
        resolution = resolve_object(
            object_name, skip=self.no_resolve, list_objects=self._list_object_metadata
        )
        if self._on_resolve is not None:
            self._on_resolve(resolution)
        if not resolution.name:
            raise InputError("[INPUT_ERROR] object name is required")
        return resolution.name

    def _run_batch(self, records, submit, *, action, batch_size, continue_on_error):
        result = run_batches(
            records, submit, batch_size=batch_size, continue_on_error=continue_on_error
        )
        if result.errors and not continue_on_error:
            raise _batch_failure(result, action)
        return result

    def _batch_summary(self, result, count_key):
        summary = result.to_dict(count_key)
        summary["responses"] = result.responses
        return summary

    # -------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------

    def list_objects(self) -> list[dict[str, Any]]:
        """List object metadata (names and labels) for the workspace."""
        objects = self._list_object_metadata()
        return [
            {
                "nameSingular": o.get("nameSingular"),
                "namePlural": o.get("namePlural"),
                "labelSingular": o.get("labelSingular"),
                "labelPlural": o.get("labelPlural"),
                "isCustom": o.get("isCustom"),
                "isActive": o.get("isActive"),
            }
            for o in objects
        ]

    # -------------------------------------------------------------------
    # Read commands
    # -------------------------------------------------------------------

    def list_records(
        self,
        object_name: str,
        *,
        limit: int = config.DEFAULT_LIST_LIMIT,
        cursor: str = "",
        filter: str | None = None,
        filter_file: str | None = None,
        sort: str = "",
        order: str = "",
        fields: str = "",
        include: str = "",
        params: list[str] | None = None,
        fetch_all_pages: bool = False,
    ) -> Any:
        """List records of any object.

        Args:
            object_name: Object name, singular or plural, any case.
            limit: Page size (0 lets the API decide).
            cursor: Start after this cursor.
            filter: Inline JSON filter.
            filter_file: File holding the JSON filter (``-`` for stdin).
            sort: Field to order by.
            order: Sort direction.
            fields: Comma-separated field selection.
            include: Relations to include (sets depth=1).
            params: Extra ``key=value`` query parameters.
            fetch_all_pages: Follow cursors and return every record.

        Returns:
            The API list response. With fetch_all_pages, a synthesized
            ``{"data": {plural: [...]}, "totalCount": n, "pageInfo": ...}``.
        """
        opts = _query_options(
            limit=limit,
            cursor=cursor,
            filter=filter,
            filter_file=filter_file,
            sort=sort,
            order=order,
            fields=fields,
            include=include,
            params=params,
        )
        pairs = build_query_params(opts)
        plural = self.resolve(object_name)
        path = build_path(plural)

        if not fetch_all_pages:
            return self._send("GET", with_query(path, pairs))

        page = fetch_all(
            lambda c: self._request("GET", with_query(path, with_cursor(pairs, c)), None),
            plural,
            cursor=opts.cursor,
        )
        payload: dict[str, Any] = {"data": {plural: page.items}, "totalCount": len(page.items)}
        if page.page_info is not None:
            payload["pageInfo"] = page.page_info.to_dict()
        return payload

    def get_record(
        self,
        object_name: str,
        record_id: str,
        *,
        fields: str = "",
        include: str = "",
        params: list[str] | None = None,
    ) -> Any:
        """Get a single record by ID."""
        pairs = build_query_params(_query_options(fields=fields, include=include, params=params))
        plural = self.resolve(object_name)
        return self._send("GET", with_query(build_path(plural, record_id), pairs))

    def export_records(
        self,
        object_name: str,
        *,
        page_size: int = config.DEFAULT_EXPORT_PAGE_SIZE,
        all_pages: bool = True,
        filter: str | None = None,
        filter_file: str | None = None,
        sort: str = "",
        order: str = "",
        fields: str = "",
        include: str = "",
        params: list[str] | None = None,
    ) -> list[Any]:
        """Return the records of an object as a flat list.

        Follows every cursor unless *all_pages* is False, in which case
        only the first page is returned.
        """
        opts = _query_options(
            limit=page_size,
            filter=filter,
            filter_file=filter_file,
            sort=sort,
            order=order,
            fields=fields,
            include=include,
            params=params,
        )
        pairs = build_query_params(opts)
        plural = self.resolve(object_name)
        path = build_path(plural)

        if not all_pages:
            raw = self._request("GET", with_query(path, pairs), None)
            items, _page_info = extract_list(raw, plural)
            return items
        page = fetch_all(
            lambda c: self._request("GET", with_query(path, with_cursor(pairs, c)), None),
            plural,
        )
        return page.items

    def group_by(
        self,
        object_name: str,
        *,
        payload: Any = None,
        filter: str | None = None,
        filter_file: str | None = None,
        params: list[str] | None = None,
    ) -> Any:
        """Group records. A payload is POSTed; otherwise filter/params go in a GET."""
        if payload is not None:
            plural = self.resolve(object_name)
            return self._send("POST", build_path(plural, "group-by"), payload)
        pairs = build_query_params(
            _query_options(filter=filter, filter_file=filter_file, params=params)
        )
        plural = self.resolve(object_name)
        return self._send("GET", with_query(build_path(plural, "group-by"), pairs))

    def find_duplicates(self, object_name: str, *, payload: Any) -> Any:
        """Ask the API for duplicates of the given record data or IDs."""
        if payload is None:
            raise InputError("[INPUT_ERROR] missing JSON payload; use --data or --file")
        plural = self.resolve(object_name)
        return self._send("POST", build_path(plural, "find-duplicates"), payload)

    # -------------------------------------------------------------------
    # Mutation commands
    # -------------------------------------------------------------------

    def create_record(self, object_name: str, body: dict[str, Any]) -> Any:
        """Create one record from a mutation body."""
        body = ObjectPayload.from_value(body, "payload").data
        plural = self.resolve(object_name)
        return self._send("POST", build_path(plural), body)

    def update_record(self, object_name: str, record_id: str, body: dict[str, Any]) -> Any:
        """Patch one record with a mutation body."""
        body = ObjectPayload.from_value(body, "payload").data
        plural = self.resolve(object_name)
        return self._send("PATCH", build_path(plural, record_id), body)

    def delete_record(self, object_name: str, record_id: str) -> Any:
        """Soft-delete a record. Returns None when the API sends no body."""
        plural = self.resolve(object_name)
        return self._send("DELETE", build_path(plural, record_id))

    def destroy_record(self, object_name: str, record_id: str) -> Any:
        """Permanently delete a record."""
        plural = self.resolve(object_name)
        return self._send("DELETE", build_path(plural, f"{record_id}/destroy"))

    def restore_record(self, object_name: str, record_id: str) -> Any:
        """Restore a soft-deleted record."""
        plural = self.resolve(object_name)
        return self._send("POST", build_path(plural, f"{record_id}/restore"))

    def merge_records(
        self,
        object_name: str,
        *,
        ids: list[str] | None = None,
        priority: int = 0,
        preview: bool = False,
        payload: Any = None,
    ) -> Any:
        """Merge records into one.

        Args:
            ids: Record IDs to merge; the record at *priority* wins conflicts.
            priority: 0-based index into *ids* used for conflict resolution.
            preview: Ask the API for a dry-run merge.
            payload: Raw merge payload, used when *ids* is not given.
        """
        if ids:
            if priority < 0 or priority >= len(ids):
                raise InputError(
                    f"[INPUT_ERROR] --priority {priority} is out of range for {len(ids)} IDs"
                )
            body: Any = {"ids": list(ids), "conflictPriorityIndex": priority}
            if preview:
                body["dryRun"] = True
        elif payload is not None:
            body = payload
        else:
            raise InputError("[INPUT_ERROR] missing payload; use --ids or --data/--file")
        plural = self.resolve(object_name)
        return self._send("PATCH", build_path(plural, "merge"), body)

    # -------------------------------------------------------------------
    # Batch commands
    # -------------------------------------------------------------------

    def batch_create(
        self,
        object_name: str,
        records: list[Any],
        *,
        batch_size: int | None = None,
        continue_on_error: bool = False,
    ) -> dict[str, Any]:
        """Create records in chunks of at most MAX_BATCH_SIZE.

        Returns:
            dict with ok, succeeded, total, errors and the per-chunk
            API responses. Under the default stop-on-first-error policy a
            failing chunk raises BatchError instead.
        """
        plural = self.resolve(object_name)
        path = build_batch_path(plural)
        result = self._run_batch(
            records,
            lambda chunk: self._send("POST", path, chunk),
            action="batch create",
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
        return self._batch_summary(result, "succeeded")

    def batch_update(
        self,
        object_name: str,
        records: list[Any],
        *,
        batch_size: int | None = None,
        continue_on_error: bool = False,
    ) -> dict[str, Any]:
        """Update records in chunks; each record carries its own ``id``."""
        plural = self.resolve(object_name)
        path = build_batch_path(plural)
        result = self._run_batch(
            records,
            lambda chunk: self._send("PATCH", path, chunk),
            action="batch update",
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
        return self._batch_summary(result, "succeeded")

    def batch_delete(
        self,
        object_name: str,
        ids: list[str],
        *,
        batch_size: int | None = None,
        continue_on_error: bool = False,
    ) -> dict[str, Any]:
        """Soft-delete records by ID, one filtered DELETE per chunk."""
        plural = self.resolve(object_name)
        path = build_batch_path(plural)

        def submit(chunk):
            id_filter = "id[in]:[" + ",".join(chunk) + "]"
            return self._send("DELETE", with_query(path, [("filter", id_filter)]))

        result = self._run_batch(
            ids,
            submit,
            action="batch delete",
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
        return self._batch_summary(result, "succeeded")

    def batch_destroy(
        self,
        object_name: str,
        ids: list[str],
        *,
        batch_size: int | None = None,
        continue_on_error: bool = False,
    ) -> dict[str, Any]:
        """Permanently delete records by ID."""
        plural = self.resolve(object_name)
        path = build_batch_path(plural, "destroy")
        result = self._run_batch(
            ids,
            lambda chunk: self._send("DELETE", path, chunk),
            action="batch destroy",
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
        return self._batch_summary(result, "succeeded")

    def batch_restore(
        self,
        object_name: str,
        ids: list[str],
        *,
        batch_size: int | None = None,
        continue_on_error: bool = False,
    ) -> dict[str, Any]:
        """Restore soft-deleted records by ID."""
        plural = self.resolve(object_name)
        path = build_batch_path(plural, "restore")
        result = self._run_batch(
            ids,
            lambda chunk: self._send("POST", path, chunk),
            action="batch restore",
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
        return self._batch_summary(result, "succeeded")

    def import_records(
        self,
        object_name: str,
        records: list[Any],
        *,
        batch_size: int | None = None,
        continue_on_error: bool = False,
    ) -> dict[str, Any]:
        """Import records through the batch create endpoint.

        Returns:
            dict with ok, imported, total and errors.
        """
        plural = self.resolve(object_name)
        path = build_batch_path(plural)
        result = self._run_batch(
            records,
            lambda chunk: self._send("POST", path, chunk),
            action="import",
            batch_size=batch_size,
            continue_on_error=continue_on_error,
        )
        return result.to_dict("imported")

    # -------------------------------------------------------------------
    # Raw access
    # -------------------------------------------------------------------

    def raw_request(self, method: str, path: str, body: Any = None) -> Any:
        """Send an arbitrary request. Bare paths get a /rest prefix."""
        method = method.upper()
        if method not in config.REST_METHODS:
            raise InputError(
                f"[INPUT_ERROR] unsupported method {method!r}; "
                f"use one of {', '.join(config.REST_METHODS)}"
            )
        if body is not None and method == "GET":
            raise InputError("[INPUT_ERROR] GET requests cannot carry a body")
        return self._send(method, normalize_rest_path(path), body)
