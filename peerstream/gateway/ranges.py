"""HTTP ``Range`` header parsing."""

from __future__ import annotations

import re

from peerstream.models import RangeRequest

_DIGITS = re.compile(r"[0-9]+")


def parse_range(header: str | None, size: int) -> RangeRequest | None:
    """Parse a ``Range`` header against a resource of ``size`` bytes.

    Supports ``bytes=start-end``, ``bytes=start-`` and ``bytes=-suffix``.
    ``end`` is clamped to the last byte. When several ranges are listed the
    first satisfiable one is returned.

    Returns:
        The range to serve, or None when the header is absent, malformed,
        not in bytes, or unsatisfiable (the caller then serves the whole file)

    """
    if not header:
        return None

    unit, sep, spec = header.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return None

    for part in spec.split(","):
        start_text, dash, end_text = part.strip().partition("-")
        if not dash:
            continue
        start_text = start_text.strip()
        end_text = end_text.strip()

        if not start_text:
            # Suffix form: last N bytes
            if not _DIGITS.fullmatch(end_text):
                continue
            suffix = int(end_text)
            if suffix == 0:
                continue
            start = max(size - suffix, 0)
            end = size - 1
        else:
            if not _DIGITS.fullmatch(start_text):
                continue
            start = int(start_text)
            if not end_text:
                end = size - 1
            elif _DIGITS.fullmatch(end_text):
                end = min(int(end_text), size - 1)
            else:
                continue

        if start > end or start >= size:
            continue
        return RangeRequest(start=start, end=end)

    return None
