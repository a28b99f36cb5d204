"""Cache key generation — content-addressed, namespaced per variant."""

from __future__ import annotations

import hashlib
import json
from enum import StrEnum
from typing import Any, NamedTuple


class Namespace(StrEnum):
    BUFFER = "buffer"
    META = "meta"


class VariantKey(NamedTuple):
    """Base fingerprint of a variant plus its two namespaced storage keys."""

    base: str

    @property
    def payload(self) -> str:
        return namespaced_key(Namespace.BUFFER, self.base)

    @property
    def meta(self) -> str:
        return namespaced_key(Namespace.META, self.base)


def generate_cache_key(source_id: str, options: dict[str, Any]) -> VariantKey:
    """Generate a SHA256 variant key from the source identity and its options.

    Key order inside ``options`` does not affect the result.
    """
    combined = "|".join([source_id, hash_options(options)])
    return VariantKey(hashlib.sha256(combined.encode("utf-8")).hexdigest())


def namespaced_key(namespace: Namespace | str, base: str) -> str:
    return f"{namespace}:{base}"


def hash_options(options: dict[str, Any]) -> str:
    """Deterministic hash of an option record via sorted JSON."""
    serialized = json.dumps(options, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def hash_source(source_bytes: bytes) -> str:
    """Hash source image bytes for use as a content-based source identity."""
    return hashlib.sha256(source_bytes).hexdigest()
