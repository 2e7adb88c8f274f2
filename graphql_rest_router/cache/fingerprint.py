"""Request fingerprinting for response caching."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable, Mapping


def _encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def fingerprint(
    path: str,
    variables: Mapping[str, Any],
    headers: Mapping[str, Any],
    cache_key_headers: Iterable[str],
) -> str:
    """
    Hash a route path, its assembled variables and selected header values.

    Variables and headers are visited in name order so that mapping order
    never changes the result. Only headers named in ``cache_key_headers``
    and present in ``headers`` contribute.

    Returns:
        Hex encoded SHA-256 digest
    """
    digest = hashlib.sha256()
    digest.update(path.encode())

    for name in sorted(variables):
        digest.update(f"\x00{name}-{_encode(variables[name])}".encode())

    digest.update(b"\x01")

    for name in sorted(set(cache_key_headers)):
        if name in headers:
            digest.update(f"\x00{name}-{_encode(headers[name])}".encode())

    return digest.hexdigest()
