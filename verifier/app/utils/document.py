"""
Identity document helpers.

The signed document is an exact byte sequence. It is parsed here only to
read the claimed region; the parsed object is discarded and the bytes are
never re-serialized.
"""

from __future__ import annotations

import json
from typing import Union

from verifier.app.errors import SignatureRejected


def document_bytes(document: Union[bytes, bytearray, str]) -> bytes:
    """
    Return the signed byte sequence for ``document``.

    A ``str`` is encoded as UTF-8 exactly once. Bytes pass through
    untouched, including whitespace and line endings.
    """
    if isinstance(document, str):
        return document.encode("utf-8")
    return bytes(document)


def extract_region(document: bytes) -> str:
    """
    Read the ``region`` field of an identity document.

    Raises:
        SignatureRejected: if the document is not a JSON object or does
            not carry a non-empty string region.
    """
    try:
        parsed = json.loads(document)
    except (ValueError, RecursionError) as exc:
        # ValueError covers JSONDecodeError, UnicodeDecodeError and the
        # integer digit limit; RecursionError covers deep nesting.
        raise SignatureRejected(
            f"Identity document is not valid JSON: {exc}"
        ) from exc

    if not isinstance(parsed, dict):
        raise SignatureRejected("Identity document is not a JSON object")

    region = parsed.get("region")

    if not isinstance(region, str) or not region:
        raise SignatureRejected(
            "Identity document does not declare a region"
        )

    return region
