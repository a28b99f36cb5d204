"""Cache subsystem — content-addressed, paired payload/metadata variant store."""

from imgvariants.cache.keys import (
    Namespace,
    VariantKey,
    generate_cache_key,
    hash_options,
    hash_source,
)
from imgvariants.cache.manager import VariantCache
from imgvariants.cache.stats import CacheStats

__all__ = [
    "VariantCache",
    "CacheStats",
    "Namespace",
    "VariantKey",
    "generate_cache_key",
    "hash_options",
    "hash_source",
]
