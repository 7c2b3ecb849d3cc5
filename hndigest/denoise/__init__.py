"""Denoising: title filters, domain blacklist and URL deduplication."""

from hndigest.denoise.dedup import deduplicate
from hndigest.denoise.filters import (
    DomainBlacklist,
    ItemFilter,
    TitleFilter,
    compile_filters,
    is_missing_url,
)

__all__ = [
    "deduplicate",
    "DomainBlacklist",
    "ItemFilter",
    "TitleFilter",
    "compile_filters",
    "is_missing_url",
]
