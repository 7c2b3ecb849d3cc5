"""Render a digest as plain text, HTML or Telegram MarkdownV2."""

from __future__ import annotations

import html
import re
from datetime import datetime
from email.utils import format_datetime
from typing import Iterable, Optional

from hndigest.storage.models import DigestItem

_MARKDOWN_V2_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")
_MARKDOWN_V2_URL_SPECIAL = re.compile(r"([)\\])")


def formatted_now(now: Optional[datetime] = None) -> str:
    """RFC 2822 local time, e.g. ``Mon, 19 Oct 2026 10:00:00 +0200``."""
    return format_datetime(now or datetime.now().astimezone())


def digest_to_text(digest: Iterable[DigestItem], now: Optional[datetime] = None) -> str:
    lines = ["Hi!", ""]
    lines.extend(f"* {item.title} - {item.url}" for item in digest)
    lines.append("")
    lines.append(f"Generated: {formatted_now(now)}")
    return "\n".join(lines)


def digest_to_html(
    digest: Iterable[DigestItem],
    title: str = "HackerNews Digest",
    now: Optional[datetime] = None,
) -> str:
    rows = "".join(
        f'<li><a href="{html.escape(item.url, quote=True)}">{html.escape(item.title)}</a></li>'
        for item in digest
    )
    return (
        f"<html><head><title>{html.escape(title)}</title></head>"
        f"<body><p>Hi!</p><div><ul>{rows}</ul></div>"
        f"<p>Generated: {html.escape(formatted_now(now))}</p></body></html>"
    )


def escape_markdown_v2(text: str) -> str:
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", text)


def escape_markdown_v2_url(url: str) -> str:
    return _MARKDOWN_V2_URL_SPECIAL.sub(r"\\\1", url)


def item_to_markdown_v2(item: DigestItem) -> str:
    """Bold link to the item, escaped for Telegram's MarkdownV2 parser."""
    return f"*[{escape_markdown_v2(item.title)}]({escape_markdown_v2_url(item.url)})*"
