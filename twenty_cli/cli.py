"""
twenty-cli: CLI tool for generic CRUD and batch operations on Twenty CRM records
"""

import argparse
import json
import sys

from twenty_cli import config
from twenty_cli.commands import (
    cmd_batch_create,
    cmd_batch_delete,
    cmd_batch_destroy,
    cmd_batch_restore,
    cmd_batch_update,
    cmd_completion,
    cmd_config_set,
    cmd_config_show,
    cmd_create,
    cmd_delete,
    cmd_destroy,
    cmd_export,
    cmd_find_duplicates,
    cmd_get,
    cmd_group_by,
    cmd_import,
    cmd_list,
    cmd_merge,
    cmd_objects_list,
    cmd_rest,
    cmd_restore,
    cmd_update,
)
from twenty_cli.exceptions import CliError
from twenty_cli.models import Runtime

HELP_TEXT = """\
Usage: twenty-cli <command> [args...]

Global flags:
  --format <fmt>          Output format: json (default), yaml, csv, table
  --query <expr>          JMESPath projection applied before formatting
  --no-resolve            Use object names verbatim (skip metadata lookup)
  --dry-run               Preview mutations without executing them
  --quiet, -q             Suppress confirmations and warnings
  --verbose, -v           Enable HTTP request logging and resolver warnings
  --version               Show version number

Records (work with any standard or custom object):
  records list <object>               - List records
    -l, --limit <n>         Page size (default: 20)
    --cursor <c>            Start after this cursor
    --all                   Follow cursors and return every record
    --filter <json>         JSON filter (--filter-file <path>, - for stdin)
    --sort <field>          Order by field
    --order <dir>           asc, desc, AscNullsFirst, ...
    --fields <a,b>          Fields to select
    --include <rel>         Include relations (depth=1)
    --param key=value       Extra query parameter (repeatable)
  records get <object> <id>           - Get one record
  records create <object>             - Create a record
    -d, --data <json>       JSON object payload (-f, --file <path>, - for stdin)
    --set path=value        Set a field, e.g. name.firstName=Ada (repeatable)
  records update <object> <id>        - Update a record (same body flags)
  records delete <object> <id>        - Soft delete (requires --force/--yes)
  records destroy <object> <id>       - Hard delete (requires --force/--yes)
  records restore <object> <id>       - Restore a soft-deleted record
  records batch-create <object>       - Create records from a JSON array
  records batch-update <object>       - Update records from a JSON array
    --batch-size <n>        Records per request (max 60)
    --continue-on-error     Keep going after a failed chunk
  records batch-delete <object>       - Soft delete by --ids a,b,c or JSON array
  records batch-destroy <object>      - Hard delete by ID (requires --force/--yes)
  records batch-restore <object>      - Restore by ID
  records merge <object>              - Merge records
    --ids <a,b>             Records to merge
    --priority <n>          Index of the record that wins conflicts (default: 0)
    --preview               Ask the API for a dry-run merge
  records find-duplicates <object>    - Find duplicates (--data/--file)
  records group-by <object>           - Group records (--data, or --filter/--param)
  records export <object>             - Export all records
    -o, --output <file>     Write to file instead of stdout
    --limit <n>             Page size (default: 200)
    --no-all                Export only the first page
  records import <object> [file]      - Import a JSON array via batch create
    -d, --data <json>       Inline JSON array instead of a file

Other commands:
  objects list                        - List object metadata
  rest <method> <path>                - Raw API request (-d/--data, -f/--file)
  config show                         - Show effective settings
  config set <key> <value>            - Persist a setting to .env
                                        (base_url, api_key, http_timeout_seconds,
                                        http_max_retries, http_log)
  completion --shell <s>              - Print shell completion (bash, zsh, fish)
  version                             - Show version

Exit codes: 0 success or preview, 1 error, 2 setup needed / rejected API key."""


# ---------------------------------------------------------------------------
# Global flag extraction (before argparse, so flags work after subcommands)
# ---------------------------------------------------------------------------


def _extract_global_flags(argv):
    """Extract global flags from argv regardless of position.

    Returns (Runtime, remaining_argv). Handles --version directly.
    """
    fmt = "json"
    query = None
    no_resolve = False
    dry_run = False
    quiet = False
    verbose = False
    remaining = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            remaining.extend(argv[i:])
            break
        if arg == "--version":
            print(f"twenty-cli {config.VERSION}")
            sys.exit(0)
        elif arg == "--no-resolve":
            no_resolve = True
        elif arg == "--dry-run":
            dry_run = True
        elif arg in ("--quiet", "-q"):
            quiet = True
        elif arg in ("--verbose", "-v"):
            verbose = True
        elif arg == "--format" or arg.startswith("--format="):
            if "=" in arg:
                fmt = arg.split("=", 1)[1]
            elif i + 1 < len(argv):
                i += 1
                fmt = argv[i]
            else:
                raise CliError("[ERROR] --format requires a value.")
            if fmt not in config.VALID_FORMATS:
                raise CliError(
                    f"[ERROR] Invalid format '{fmt}'. Use: {', '.join(config.VALID_FORMATS)}"
                )
        elif arg == "--query" or arg.startswith("--query="):
            if "=" in arg:
                query = arg.split("=", 1)[1]
            elif i + 1 < len(argv):
                i += 1
                query = argv[i]
            else:
                raise CliError("[ERROR] --query requires a value.")
        else:
            remaining.append(arg)
        i += 1
    if quiet and verbose:
        raise CliError("[ERROR] --quiet and --verbose are mutually exclusive.")
    runtime = Runtime(
        format=fmt,
        query=query or None,
        no_resolve=no_resolve,
        dry_run=dry_run,
        quiet=quiet,
        verbose=verbose,
    )
    return runtime, remaining


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _SubcommandParser(argparse.ArgumentParser):
    """Subparser that raises CliError instead of printing full help text."""

    def error(self, message):
        raise CliError(f"[ERROR] {message}")


def _positive_int(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a positive integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return parsed


def _non_negative_int(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a non-negative integer") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("must be a non-negative integer")
    return parsed


def _add_payload_flags(p, data_help="JSON payload"):
    p.add_argument("--data", "-d", help=data_help)
    p.add_argument("--file", "-f", help="JSON file payload (use - for stdin)")


def _add_filter_flags(p):
    p.add_argument("--filter")
    p.add_argument("--filter-file", dest="filter_file")
    p.add_argument("--param", action="append", default=[])


def _add_query_flags(p):
    _add_filter_flags(p)
    p.add_argument("--sort")
    p.add_argument("--order", choices=config.VALID_SORT_ORDERS)
    p.add_argument("--fields")
    p.add_argument("--include")


def _add_batch_flags(p):
    p.add_argument("--batch-size", dest="batch_size", type=_positive_int, default=None)
    p.add_argument("--continue-on-error", dest="continue_on_error", action="store_true")


def _add_force_flag(p):
    p.add_argument("--force", "--yes", dest="force", action="store_true")


def _build_records_parser(sub):
    records = sub.add_parser("records")
    rsub = records.add_subparsers(dest="records_command", parser_class=_SubcommandParser)

    p = rsub.add_parser("list")
    p.add_argument("object")
    p.add_argument("--limit", "-l", type=_non_negative_int, default=config.DEFAULT_LIST_LIMIT)
    p.add_argument("--cursor")
    p.add_argument("--all", action="store_true")
    _add_query_flags(p)
    p.set_defaults(func=cmd_list)

    p = rsub.add_parser("get")
    p.add_argument("object")
    p.add_argument("id")
    p.add_argument("--fields")
    p.add_argument("--include")
    p.add_argument("--param", action="append", default=[])
    p.set_defaults(func=cmd_get)

    p = rsub.add_parser("create")
    p.add_argument("object")
    _add_payload_flags(p, "JSON object payload")
    p.add_argument("--set", action="append", default=[])
    p.set_defaults(func=cmd_create)

    p = rsub.add_parser("update")
    p.add_argument("object")
    p.add_argument("id")
    _add_payload_flags(p, "JSON object payload")
    p.add_argument("--set", action="append", default=[])
    p.set_defaults(func=cmd_update)

    for name, func in (("delete", cmd_delete), ("destroy", cmd_destroy)):
        p = rsub.add_parser(name)
        p.add_argument("object")
        p.add_argument("id")
        _add_force_flag(p)
        p.set_defaults(func=func)

    p = rsub.add_parser("restore")
    p.add_argument("object")
    p.add_argument("id")
    p.set_defaults(func=cmd_restore)

    for name, func in (("batch-create", cmd_batch_create), ("batch-update", cmd_batch_update)):
        p = rsub.add_parser(name)
        p.add_argument("object")
        _add_payload_flags(p, "JSON array payload")
        _add_batch_flags(p)
        p.set_defaults(func=func)

    for name, func in (
        ("batch-delete", cmd_batch_delete),
        ("batch-destroy", cmd_batch_destroy),
        ("batch-restore", cmd_batch_restore),
    ):
        p = rsub.add_parser(name)
        p.add_argument("object")
        _add_payload_flags(p, "JSON array of IDs")
        p.add_argument("--ids")
        _add_batch_flags(p)
        if name != "batch-restore":
            _add_force_flag(p)
        p.set_defaults(func=func)

    p = rsub.add_parser("merge")
    p.add_argument("object")
    p.add_argument("--ids")
    p.add_argument("--priority", type=_non_negative_int, default=0)
    p.add_argument("--preview", action="store_true")
    _add_payload_flags(p, "JSON merge payload")
    p.set_defaults(func=cmd_merge)

    p = rsub.add_parser("find-duplicates")
    p.add_argument("object")
    _add_payload_flags(p)
    p.set_defaults(func=cmd_find_duplicates)

    p = rsub.add_parser("group-by")
    p.add_argument("object")
    _add_payload_flags(p)
    _add_filter_flags(p)
    p.set_defaults(func=cmd_group_by)

    p = rsub.add_parser("export")
    p.add_argument("object")
    p.add_argument("--output", "-o")
    p.add_argument("--limit", type=_positive_int, default=config.DEFAULT_EXPORT_PAGE_SIZE)
    p.add_argument("--no-all", dest="no_all", action="store_true")
    _add_query_flags(p)
    p.set_defaults(func=cmd_export)

    p = rsub.add_parser("import")
    p.add_argument("object")
    p.add_argument("path", nargs="?")
    p.add_argument("--data", "-d")
    _add_batch_flags(p)
    p.set_defaults(func=cmd_import)


def build_parser():
    parser = _SubcommandParser(
        prog="twenty-cli",
        description="CLI tool for generic CRUD and batch operations on Twenty CRM records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", dest="show_help")
    sub = parser.add_subparsers(dest="command", parser_class=_SubcommandParser)

    # --- records ---
    _build_records_parser(sub)

    # --- objects ---
    p = sub.add_parser("objects")
    osub = p.add_subparsers(dest="objects_command", parser_class=_SubcommandParser)
    osub.add_parser("list").set_defaults(func=cmd_objects_list)

    # --- rest ---
    p = sub.add_parser("rest")
    p.add_argument("method", type=str.upper, choices=config.REST_METHODS)
    p.add_argument("path")
    _add_payload_flags(p, "JSON request body")
    p.set_defaults(func=cmd_rest)

    # --- config ---
    p = sub.add_parser("config")
    csub = p.add_subparsers(dest="config_command", parser_class=_SubcommandParser)
    csub.add_parser("show").set_defaults(func=cmd_config_show)
    cp = csub.add_parser("set")
    cp.add_argument("key")
    cp.add_argument("value")
    cp.set_defaults(func=cmd_config_set)

    # --- completion ---
    p = sub.add_parser("completion")
    p.add_argument("--shell", choices=["bash", "zsh", "fish"], required=True)
    p.set_defaults(func=cmd_completion)

    # --- version (bare word) ---
    sub.add_parser("version").set_defaults(func=None)

    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------


def _error_type_from_message(message):
    if message.startswith("[TOKEN_EXPIRED]"):
        return "token_expired"
    if message.startswith("[SETUP_NEEDED]"):
        return "setup_needed"
    if message.startswith("[INPUT_ERROR]"):
        return "input_error"
    if message.startswith("[BATCH_ERROR]"):
        return "batch_error"
    if message.startswith("[ERROR]"):
        return "error"
    return "cli_error"


def _emit_cli_error(err, fmt):
    msg = str(err)
    if fmt == "json":
        error = {
            "type": _error_type_from_message(msg),
            "message": msg,
            "exit_code": getattr(err, "exit_code", 1),
        }
        if hasattr(err, "succeeded"):
            error["succeeded"] = err.succeeded
            error["errors"] = err.errors
        payload = {
            "ok": False,
            "schema_version": config.CONTRACT_SCHEMA_VERSION,
            "error": error,
        }
        print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)
        return
    print(msg, file=sys.stderr)


def main(argv=None):
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv:
        print(HELP_TEXT)
        sys.exit(0)

    fmt = "json"
    try:
        # Extract global flags from anywhere in argv
        runtime, remaining_argv = _extract_global_flags(argv)
        fmt = runtime.format
        if runtime.verbose:
            config.HTTP_LOG_ENABLED = True

        if not remaining_argv:
            print(HELP_TEXT)
            sys.exit(0)

        parser = build_parser()
        ns = parser.parse_args(remaining_argv)
        ns.runtime = runtime

        if ns.show_help or not ns.command:
            print(HELP_TEXT)
            sys.exit(0)

        if ns.command == "version":
            print(f"twenty-cli {config.VERSION}")
            sys.exit(0)

        handler = getattr(ns, "func", None)
        if handler:
            handler(ns)
        else:
            raise CliError(f"[ERROR] Missing subcommand for '{ns.command}'. See --help.")

    except CliError as e:
        _emit_cli_error(e, fmt)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
