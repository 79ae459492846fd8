"""
Certificate stores.

A certificate store maps (scheme, region) to trust-anchor certificate
bytes. Backing storage is the store's concern; the verification core only
calls ``get`` and never performs I/O itself.

Implementations MUST be safe for concurrent reads.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Tuple

from verifier.app.schemas.scheme import Scheme

logger = logging.getLogger(__name__)


# Regions are single path segments; anything else is treated as absent.
_SAFE_REGION = re.compile(r"[A-Za-z0-9_-]+")

_CERT_SUFFIXES = (".pem", ".crt", ".der")


class CertificateStore(Protocol):
    """Interface of the certificate-store collaborator."""

    def get(self, scheme: Scheme, region: str) -> Optional[bytes]:
        ...


class InMemoryCertificateStore:
    """
    Store backed by a mapping of (scheme, region) to certificate bytes.

    The mapping is copied at construction and never mutated afterwards.
    """

    def __init__(self, certificates: Mapping[Tuple[Scheme, str], bytes]) -> None:
        self._certificates: Dict[Tuple[Scheme, str], bytes] = {
            (Scheme.parse(scheme), region): bytes(data)
            for (scheme, region), data in certificates.items()
        }

    def get(self, scheme: Scheme, region: str) -> Optional[bytes]:
        return self._certificates.get((scheme, region))


class DirectoryCertificateStore:
    """
    Store reading ``<root>/<namespace>/<region>.pem`` from the filesystem.

    ``.crt`` and ``.der`` files are consulted when no ``.pem`` exists.
    With ``cache=True`` file contents are read once and kept for the
    lifetime of the store; the cache is lock-guarded.
    """

    def __init__(self, root: Path, cache: bool = True) -> None:
        self._root = Path(root)
        self._cache_enabled = cache
        self._cache: Dict[Tuple[Scheme, str], bytes] = {}
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def get(self, scheme: Scheme, region: str) -> Optional[bytes]:
        if not region or not _SAFE_REGION.fullmatch(region):
            logger.debug("Rejected unsafe region key: %r", region)
            return None

        key = (scheme, region)

        if self._cache_enabled:
            with self._lock:
                cached = self._cache.get(key)
            if cached is not None:
                return cached

        data = self._read(scheme, region)

        if data is not None and self._cache_enabled:
            with self._lock:
                self._cache.setdefault(key, data)

        return data

    def _read(self, scheme: Scheme, region: str) -> Optional[bytes]:
        directory = self._root / scheme.namespace

        for suffix in _CERT_SUFFIXES:
            path = directory / f"{region}{suffix}"
            if path.is_file():
                logger.debug("Loading anchor certificate from %s", path)
                return path.read_bytes()

        return None
