"""HackerNews / RSS digest: fetch new items, filter, dedupe, remember what was seen."""

__version__ = "3.1.0"
