"""
Query parameter assembly and REST path helpers.
"""

import urllib.parse

from twenty_cli._utils import compact_json
from twenty_cli.body import read_json_input
from twenty_cli.exceptions import InputError


def build_path(plural, suffix=""):
    """Return ``/rest/<plural>`` with an optional ``/<suffix>``."""
    if suffix and not suffix.startswith("/"):
        suffix = "/" + suffix
    return "/rest/" + plural + suffix


def build_batch_path(plural, suffix=""):
    """Return ``/rest/batch/<plural>`` with an optional ``/<suffix>``."""
    return build_path("batch/" + plural, suffix)


def normalize_rest_path(path):
    """Prefix bare paths with /rest unless they already target a known API root."""
    if not path:
        return "/rest"
    if not path.startswith("/"):
        path = "/" + path
    if not path.startswith(("/rest", "/graphql", "/metadata")):
        path = "/rest" + path
    return path


def _set(pairs, key, value):
    """Replace every existing *key* entry, or append one."""
    pairs[:] = [(k, v) for k, v in pairs if k != key]
    pairs.append((key, value))


def build_query_params(opts):
    """Assemble the ordered query multi-map for a list/get request.

    Returns a list of (key, value) tuples. User ``--param`` pairs are
    appended after the fixed keys and may repeat.
    """
    pairs = []
    if opts.limit and opts.limit > 0:
        _set(pairs, "limit", str(opts.limit))
    if opts.cursor:
        _set(pairs, "starting_after", opts.cursor)
    if opts.sort:
        _set(pairs, "order_by", opts.sort)
    if opts.order:
        _set(pairs, "order_by_direction", opts.order)
    if opts.fields:
        _set(pairs, "fields", opts.fields)
    # The API only understands depth 0/1; any --include value asks for relations.
    if opts.include:
        _set(pairs, "depth", "1")

    if opts.filter or opts.filter_file:
        raw = read_json_input(opts.filter, opts.filter_file, "filter")
        if raw is not None:
            _set(pairs, "filter", compact_json(raw))

    for p in opts.params:
        key, sep, val = p.partition("=")
        if not sep:
            raise InputError(f'[INPUT_ERROR] invalid param "{p}" (expected key=value)')
        pairs.append((key, val))

    return pairs


def with_cursor(pairs, cursor):
    """Return a copy of *pairs* with starting_after set to *cursor*."""
    out = list(pairs)
    if cursor:
        _set(out, "starting_after", cursor)
    return out


def encode_query(pairs):
    """URL-encode the multi-map, keeping order; empty input gives ''."""
    return urllib.parse.urlencode(pairs)


def with_query(path, pairs):
    """Append an encoded query string to *path* when there are parameters."""
    if not pairs:
        return path
    return path + "?" + encode_query(pairs)
