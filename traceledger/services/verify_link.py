"""Verification links printed on product labels.

A batch is referenced externally as ``{base_url}/verify/{batch_id}``;
scanners resolve the link back to a bare batch id for ``get``.
"""

from __future__ import annotations

from urllib.parse import urlparse

from traceledger.core.errors import ValidationError


def verification_url(base_url: str, batch_id: int) -> str:
    if batch_id < 1:
        raise ValidationError("batch_id must be positive")
    return f"{base_url.rstrip('/')}/verify/{batch_id}"


def parse_verification_url(url: str) -> int:
    parts = [p for p in urlparse(url).path.split("/") if p]
    if len(parts) < 2 or parts[-2] != "verify" or not parts[-1].isdigit():
        raise ValidationError(f"not a batch verification link: {url!r}")
    batch_id = int(parts[-1])
    if batch_id < 1:
        raise ValidationError(f"not a batch verification link: {url!r}")
    return batch_id
