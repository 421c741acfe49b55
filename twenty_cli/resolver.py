"""
Object name resolution.

Users may type ``person``, ``People`` or ``PEOPLE``; REST paths need the
canonical plural (``people``). Resolution is best effort: it never raises
for lookup failures and falls back to the trimmed input.
"""

from twenty_cli import api
from twenty_cli.models import Resolution


def _match(name, objects):
    wanted = name.casefold()
    for obj in objects:
        if not isinstance(obj, dict):
            continue
        plural = obj.get("namePlural") or ""
        singular = obj.get("nameSingular") or ""
        if wanted in (str(plural).casefold(), str(singular).casefold()):
            if plural:
                return plural
    return None


def resolve_object(name, *, skip=False, list_objects=None):
    """Resolve *name* to a canonical plural resource name.

    Args:
        name: Object name as typed by the user.
        skip: When True (``--no-resolve``) no lookup is made.
        list_objects: Metadata fetcher returning a list of object dicts;
            defaults to ``api.list_objects``.

    Returns:
        Resolution with the plural name, or the trimmed input and a reason.
    """
    name = (name or "").strip()
    if not name:
        return Resolution.fallback(name, "empty")
    if skip:
        return Resolution.fallback(name, "skipped")

    fetch = list_objects or api.list_objects
    try:
        objects = fetch()
    except Exception as e:
        return Resolution.fallback(name, f"metadata lookup failed: {e}")

    plural = _match(name, objects or [])
    if plural is None:
        return Resolution.fallback(name, "no matching object")
    return Resolution(name=plural, resolved=True)
