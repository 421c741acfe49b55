"""
Command implementations for twenty-cli.
Each cmd_*() function receives an argparse.Namespace and handles one CLI command.

Business logic lives in client.py (RecordsClient). These thin wrappers
handle argparse → keyword args, previews, and formatter dispatch. The
per-invocation global flags arrive as ``ns.runtime`` (models.Runtime).
"""

import sys

from twenty_cli import config
from twenty_cli.api import _mask_token
from twenty_cli.body import build_body, read_batch_ids, read_json_array, read_json_input
from twenty_cli.client import RecordsClient
from twenty_cli.exceptions import CliError, InputError
from twenty_cli.formatters import mutation_response, output, render
from twenty_cli.models import QueryOptions, Runtime
from twenty_cli.params import normalize_rest_path

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _runtime(ns):
    return getattr(ns, "runtime", None) or Runtime()


def _warn(rt, message):
    if not rt.quiet:
        print(message, file=sys.stderr)


def _client(ns):
    rt = _runtime(ns)

    def on_resolve(resolution):
        if rt.verbose and not resolution.resolved and resolution.reason != "skipped":
            _warn(
                rt,
                f"[WARN] Using object name '{resolution.name}' as given "
                f"({resolution.reason}).",
            )

    return RecordsClient(no_resolve=rt.no_resolve, on_resolve=on_resolve)


def _out(ns, data):
    rt = _runtime(ns)
    output(data, rt.format, rt.query)


def _would(message):
    """Print a dry-run / confirmation preview. Previews always exit 0."""
    print(message)


def _print_batch_summary(ns, action, summary, count_key="succeeded"):
    rt = _runtime(ns)
    if rt.format in ("json", "yaml"):
        output(summary, rt.format, rt.query)
        return
    line = f"{action} complete: {summary[count_key]} of {summary['total']} records"
    errors = summary.get("errors") or []
    if errors:
        line += f", {len(errors)} errors"
    print(line)
    for e in errors:
        print(f"  - {e}")


def _query_kwargs(ns):
    opts = QueryOptions.from_namespace(ns)
    return {
        "filter": opts.filter or None,
        "filter_file": opts.filter_file or None,
        "sort": opts.sort,
        "order": opts.order,
        "fields": opts.fields,
        "include": opts.include,
        "params": list(opts.params),
    }


# ---------------------------------------------------------------------------
# Read commands
# ---------------------------------------------------------------------------


def cmd_objects_list(ns):
    _out(ns, _client(ns).list_objects())


def cmd_list(ns):
    result = _client(ns).list_records(
        ns.object,
        limit=ns.limit,
        cursor=ns.cursor or "",
        fetch_all_pages=ns.all,
        **_query_kwargs(ns),
    )
    _out(ns, result)


def cmd_get(ns):
    result = _client(ns).get_record(
        ns.object,
        ns.id,
        fields=ns.fields or "",
        include=ns.include or "",
        params=ns.param,
    )
    _out(ns, result)


def cmd_group_by(ns):
    payload = read_json_input(ns.data, ns.file, "payload")
    result = _client(ns).group_by(
        ns.object,
        payload=payload,
        filter=ns.filter,
        filter_file=ns.filter_file,
        params=ns.param,
    )
    _out(ns, result)


def cmd_find_duplicates(ns):
    payload = read_json_input(ns.data, ns.file, "payload")
    if payload is None:
        raise InputError("[INPUT_ERROR] missing JSON payload; use --data or --file")
    _out(ns, _client(ns).find_duplicates(ns.object, payload=payload))


def cmd_export(ns):
    rt = _runtime(ns)
    items = _client(ns).export_records(
        ns.object,
        page_size=ns.limit,
        all_pages=not ns.no_all,
        **_query_kwargs(ns),
    )
    text = render(items, rt.format, rt.query)
    if not ns.output:
        if text:
            print(text)
        return
    try:
        with open(ns.output, "w", encoding="utf-8", newline="") as f:
            f.write(text + "\n" if text else "")
    except OSError as e:
        raise CliError(f"[ERROR] write export file: {e}") from e
    _warn(rt, f"Exported {len(items)} records to {ns.output}")


# ---------------------------------------------------------------------------
# Mutation commands
# ---------------------------------------------------------------------------


def cmd_create(ns):
    rt = _runtime(ns)
    body = build_body(ns.data, ns.file, ns.set)
    if rt.dry_run:
        _would(f"Would create {ns.object} record:")
        output(body, "json")
        return
    _out(ns, _client(ns).create_record(ns.object, body))


def cmd_update(ns):
    rt = _runtime(ns)
    body = build_body(ns.data, ns.file, ns.set)
    if rt.dry_run:
        _would(f"Would update {ns.object} {ns.id}:")
        output(body, "json")
        return
    _out(ns, _client(ns).update_record(ns.object, ns.id, body))


def cmd_delete(ns):
    rt = _runtime(ns)
    if not ns.force:
        _would(f"About to delete {ns.object} {ns.id}. Use --force to confirm.")
        return
    if rt.dry_run:
        _would(f"Would delete {ns.object} {ns.id}")
        return
    result = _client(ns).delete_record(ns.object, ns.id)
    mutation_response("Deleted", ns.object, ns.id, data=result, fmt=rt.format, query=rt.query)


def cmd_destroy(ns):
    rt = _runtime(ns)
    if not ns.force:
        _would(f"About to destroy {ns.object} {ns.id}. Use --force to confirm.")
        return
    if rt.dry_run:
        _would(f"Would destroy {ns.object} {ns.id}")
        return
    result = _client(ns).destroy_record(ns.object, ns.id)
    mutation_response("Destroyed", ns.object, ns.id, data=result, fmt=rt.format, query=rt.query)


def cmd_restore(ns):
    rt = _runtime(ns)
    if rt.dry_run:
        _would(f"Would restore {ns.object} {ns.id}")
        return
    result = _client(ns).restore_record(ns.object, ns.id)
    mutation_response("Restored", ns.object, ns.id, data=result, fmt=rt.format, query=rt.query)


def cmd_merge(ns):
    rt = _runtime(ns)
    ids = None
    payload = None
    if ns.ids:
        ids = [p.strip() for p in ns.ids.split(",")]
        if any(not p for p in ids):
            raise InputError("[INPUT_ERROR] --ids contains an empty ID")
    else:
        payload = read_json_input(ns.data, ns.file, "payload")
    if rt.dry_run:
        if ids is None:
            ids = payload.get("ids") if isinstance(payload, dict) else None
        _would(f"Would merge {len(ids or [])} {ns.object} records")
        return
    result = _client(ns).merge_records(
        ns.object, ids=ids, priority=ns.priority, preview=ns.preview, payload=payload
    )
    _out(ns, result)


# ---------------------------------------------------------------------------
# Batch commands
# ---------------------------------------------------------------------------


def _batch_records(ns):
    return read_json_array(ns.data, ns.file)


def cmd_batch_create(ns):
    rt = _runtime(ns)
    records = _batch_records(ns)
    if rt.dry_run:
        _would(f"Would batch create {len(records)} {ns.object} records")
        return
    summary = _client(ns).batch_create(
        ns.object,
        records,
        batch_size=ns.batch_size,
        continue_on_error=ns.continue_on_error,
    )
    _print_batch_summary(ns, "Batch create", summary)


def cmd_batch_update(ns):
    rt = _runtime(ns)
    records = _batch_records(ns)
    if rt.dry_run:
        _would(f"Would batch update {len(records)} {ns.object} records")
        return
    summary = _client(ns).batch_update(
        ns.object,
        records,
        batch_size=ns.batch_size,
        continue_on_error=ns.continue_on_error,
    )
    _print_batch_summary(ns, "Batch update", summary)


def cmd_batch_delete(ns):
    rt = _runtime(ns)
    ids = read_batch_ids(ns.data, ns.file, ns.ids)
    if not ns.force:
        _would(f"About to batch delete {len(ids)} {ns.object} records. Use --force to confirm.")
        return
    if rt.dry_run:
        _would(f"Would batch delete {len(ids)} {ns.object} records")
        return
    summary = _client(ns).batch_delete(
        ns.object, ids, batch_size=ns.batch_size, continue_on_error=ns.continue_on_error
    )
    _print_batch_summary(ns, "Batch delete", summary)


def cmd_batch_destroy(ns):
    rt = _runtime(ns)
    ids = read_batch_ids(ns.data, ns.file, ns.ids)
    if not ns.force:
        _would(f"About to batch destroy {len(ids)} {ns.object} records. Use --force to confirm.")
        return
    if rt.dry_run:
        _would(f"Would batch destroy {len(ids)} {ns.object} records")
        return
    summary = _client(ns).batch_destroy(
        ns.object, ids, batch_size=ns.batch_size, continue_on_error=ns.continue_on_error
    )
    _print_batch_summary(ns, "Batch destroy", summary)


def cmd_batch_restore(ns):
    rt = _runtime(ns)
    ids = read_batch_ids(ns.data, ns.file, ns.ids)
    if rt.dry_run:
        _would(f"Would batch restore {len(ids)} {ns.object} records")
        return
    summary = _client(ns).batch_restore(
        ns.object, ids, batch_size=ns.batch_size, continue_on_error=ns.continue_on_error
    )
    _print_batch_summary(ns, "Batch restore", summary)


def cmd_import(ns):
    rt = _runtime(ns)
    records = read_json_array(
        ns.data, ns.path, context="import payload", hint="--data or a file"
    )
    if rt.dry_run:
        _would(f"Would import {len(records)} records into {ns.object}")
        return
    summary = _client(ns).import_records(
        ns.object,
        records,
        batch_size=ns.batch_size,
        continue_on_error=ns.continue_on_error,
    )
    _print_batch_summary(ns, "Import", summary, count_key="imported")


# ---------------------------------------------------------------------------
# Raw API command
# ---------------------------------------------------------------------------


def cmd_rest(ns):
    rt = _runtime(ns)
    method = ns.method.upper()
    body = read_json_input(ns.data, ns.file, "request body")
    if rt.dry_run and method != "GET":
        _would(f"Would send {method} {normalize_rest_path(ns.path)}")
        if body is not None:
            output(body, "json")
        return
    result = _client(ns).raw_request(method, ns.path, body)
    if result is None:
        mutation_response(method, normalize_rest_path(ns.path))
        return
    _out(ns, result)


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


def cmd_config_show(ns):
    settings = {
        "env_file": config.ENV_PATH,
        "base_url": config.BASE_URL,
        "api_key": _mask_token(config.API_KEY) if config.API_KEY else "",
        "http_timeout_seconds": config.HTTP_TIMEOUT_SECONDS,
        "http_max_retries": config.HTTP_MAX_RETRIES,
        "http_log": config.HTTP_LOG_ENABLED,
        "http_log_sample_rate": config.HTTP_LOG_SAMPLE_RATE,
        "mcp_response_mode": config.MCP_RESPONSE_MODE,
    }
    rt = _runtime(ns)
    if rt.format == "table":
        width = max(len(k) for k in settings)
        for key, value in settings.items():
            print(f"{key:<{width}}  {value}")
        return
    output(settings, rt.format, rt.query)


_INT_SETTINGS = {"http_timeout_seconds", "http_max_retries"}


def cmd_config_set(ns):
    key = ns.key.lower().replace("-", "_")
    env_key = config.SETTABLE_KEYS.get(key)
    if env_key is None:
        raise InputError(
            f"[INPUT_ERROR] unknown config key '{ns.key}'. "
            f"Use one of: {', '.join(sorted(config.SETTABLE_KEYS))}"
        )
    value = ns.value.strip()
    if key in _INT_SETTINGS:
        try:
            if int(value) < 0:
                raise ValueError(value)
        except ValueError:
            raise InputError(f"[INPUT_ERROR] {key} must be a non-negative integer") from None
    if key == "base_url":
        if not value.startswith(("http://", "https://")):
            raise InputError("[INPUT_ERROR] base_url must start with http:// or https://")
        value = value.rstrip("/")
    config.save_env_value(env_key, value)
    shown = _mask_token(value) if key == "api_key" else value
    if not _runtime(ns).quiet:
        print(f"OK: saved {key}={shown} to {config.ENV_PATH}")


# ---------------------------------------------------------------------------
# Shell completion
# ---------------------------------------------------------------------------

_TOP_COMMANDS = ("records", "objects", "rest", "config", "completion", "version")
_RECORDS_COMMANDS = (
    "list",
    "get",
    "create",
    "update",
    "delete",
    "destroy",
    "restore",
    "batch-create",
    "batch-update",
    "batch-delete",
    "batch-destroy",
    "batch-restore",
    "merge",
    "find-duplicates",
    "group-by",
    "export",
    "import",
)


def completion_script(shell):
    """Return a static completion script for *shell*."""
    top = " ".join(_TOP_COMMANDS)
    records = " ".join(_RECORDS_COMMANDS)
    if shell == "bash":
        return (
            "_twenty_cli() {\n"
            '    local cur="${COMP_WORDS[COMP_CWORD]}"\n'
            "    if [ $COMP_CWORD -eq 1 ]; then\n"
            f'        COMPREPLY=($(compgen -W "{top}" -- "$cur"))\n'
            '    elif [ "${COMP_WORDS[1]}" = "records" ] && [ $COMP_CWORD -eq 2 ]; then\n'
            f'        COMPREPLY=($(compgen -W "{records}" -- "$cur"))\n'
            "    fi\n"
            "}\n"
            "complete -F _twenty_cli twenty-cli"
        )
    if shell == "zsh":
        return (
            "#compdef twenty-cli\n"
            "_twenty_cli() {\n"
            "    if (( CURRENT == 2 )); then\n"
            f"        compadd {top}\n"
            "    elif [[ $words[2] == records ]] && (( CURRENT == 3 )); then\n"
            f"        compadd {records}\n"
            "    fi\n"
            "}\n"
            "compdef _twenty_cli twenty-cli"
        )
    return "\n".join(
        [f"complete -c twenty-cli -n __fish_use_subcommand -a '{top}'"]
        + [
            "complete -c twenty-cli -n '__fish_seen_subcommand_from records' "
            f"-a '{records}'"
        ]
    )


def cmd_completion(ns):
    print(completion_script(ns.shell))
