"""URL construction for endpoint templates.

:func:`build_url` is a pure function: the same inputs always produce the same
URL, which the executor relies on for stable cache keys.

Template syntax::

    /users/:id            required placeholder
    /users/:id?           optional placeholder, dropped with its slash when unset
    https://other/api/:x  absolute templates ignore the base URL
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlencode

_LEFTOVER_OPTIONAL = re.compile(r"/:[^/?#]+\?")


def build_url(
    base: str,
    template: str,
    path_params: Optional[Mapping[str, Any]] = None,
    query_params: Optional[Mapping[str, Any]] = None,
) -> str:
    """Resolve *template* against *base* with path and query parameters.

    Args:
        base: Base URL prepended to relative templates.
        template: URL template with ``:name`` / ``:name?`` placeholders.
        path_params: Values substituted into placeholders (URL-encoded).
            ``None`` values count as not supplied.
        query_params: Query parameters.  ``None`` values are dropped,
            booleans are rendered ``true``/``false``, and lists or tuples
            repeat the key.

    Returns:
        The absolute (or base-relative) URL.

    Example::

        >>> build_url("https://api.test/", "/users/:id/:tab?", {"id": 7}, {"q": "a b"})
        'https://api.test/users/7?q=a+b'
    """
    url = template

    for key, value in (path_params or {}).items():
        if value is None:
            continue
        url = _substitute(url, key, quote(_stringify(value), safe=""))

    url = _LEFTOVER_OPTIONAL.sub("", url)

    if not url.startswith("http"):
        url = f"{base.rstrip('/')}/{url.lstrip('/')}"

    query = _encode_query(query_params)
    if query:
        url += ("&" if "?" in url else "?") + query

    return url


def _substitute(url: str, key: str, encoded: str) -> str:
    optional = f":{key}?"
    if optional in url:
        return url.replace(optional, encoded, 1)
    # ":id" must not match the start of ":idType"
    return re.sub(rf":{re.escape(key)}(?!\w)", lambda _m: encoded, url, count=1)


def _encode_query(query_params: Optional[Mapping[str, Any]]) -> str:
    if not query_params:
        return ""
    pairs: list[tuple[str, str]] = []
    for key, value in query_params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _stringify(item)) for item in value if item is not None)
        else:
            pairs.append((key, _stringify(value)))
    return urlencode(pairs)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
