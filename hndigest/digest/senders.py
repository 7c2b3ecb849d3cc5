"""Digest delivery: console, SMTP e-mail, or Telegram.

Every sender exposes ``await send_digest(label, items)`` and raises SendError
when delivery fails. Senders never touch the ledger.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

import aiohttp
from rich.console import Console

from hndigest.digest.formatting import digest_to_html, digest_to_text, item_to_markdown_v2
from hndigest.errors import SendError
from hndigest.storage.models import DigestItem

if TYPE_CHECKING:
    from hndigest.pipeline.config import AppConfig, SmtpConfig, TelegramConfig

logger = logging.getLogger(__name__)


class Sender(Protocol):
    async def send_digest(self, label: str, items: Sequence[DigestItem]) -> None:
        ...


class ConsoleSender:
    """Print the plain-text digest to stdout."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    async def send_digest(self, label: str, items: Sequence[DigestItem]) -> None:
        self.console.print(
            digest_to_text(items), markup=False, highlight=False, soft_wrap=True
        )


class SmtpSender:
    """Send a multipart (text + HTML) e-mail via smtplib, off the event loop."""

    def __init__(self, config: "SmtpConfig", timeout: float = 30.0) -> None:
        self.config = config
        self.timeout = timeout

    def build_message(self, label: str, items: Sequence[DigestItem]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"{label} {self.config.subject}".strip()
        msg["From"] = self.config.from_addr
        msg["To"] = ", ".join(self.config.to)
        msg.attach(MIMEText(digest_to_text(items), "plain", "utf-8"))
        msg.attach(MIMEText(digest_to_html(items, title=f"{label} Digest"), "html", "utf-8"))
        return msg

    def _send(self, msg: MIMEMultipart) -> None:
        cfg = self.config
        if cfg.use_ssl:
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                cfg.host, cfg.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        else:
            server = smtplib.SMTP(cfg.host, cfg.port, timeout=self.timeout)
        with server:
            if cfg.use_tls and not cfg.use_ssl:
                server.starttls(context=ssl.create_default_context())
            if cfg.username:
                server.login(cfg.username, cfg.password)
            server.sendmail(cfg.from_addr, cfg.to, msg.as_string())

    async def send_digest(self, label: str, items: Sequence[DigestItem]) -> None:
        msg = self.build_message(label, items)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise SendError(f"Could not send e-mail via {self.config.host}: {e}") from e
        logger.info("Digest %s (%d items) e-mailed to %s", label, len(items), ", ".join(self.config.to))


class TelegramSender:
    """Post one MarkdownV2 message per item through the Bot API."""

    def __init__(self, config: "TelegramConfig", timeout: float = 30.0) -> None:
        self.config = config
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.config.api_base_url}/bot{self.config.token}/sendMessage"

    async def send_digest(self, label: str, items: Sequence[DigestItem]) -> None:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            for item in items:
                payload = {
                    "chat_id": self.config.chat_id,
                    "text": item_to_markdown_v2(item),
                    "parse_mode": "MarkdownV2",
                }
                try:
                    async with session.post(self.endpoint, json=payload) as resp:
                        body = await resp.json(content_type=None)
                except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                    raise SendError(f"Could not send Telegram message: {e!r}") from e
                if resp.status != 200 or not (isinstance(body, dict) and body.get("ok")):
                    description = body.get("description") if isinstance(body, dict) else body
                    raise SendError(f"Telegram API returned {resp.status}: {description}")
        logger.info("Digest %s (%d items) sent to Telegram chat %s", label, len(items), self.config.chat_id)


def build_sender(config: "AppConfig", console: Optional[Console] = None) -> Sender:
    """SMTP if configured, else Telegram, else the console."""
    timeout = config.performance.request_timeout_seconds
    if config.smtp is not None:
        return SmtpSender(config.smtp, timeout=timeout)
    if config.telegram is not None:
        return TelegramSender(config.telegram, timeout=timeout)
    return ConsoleSender(console)
