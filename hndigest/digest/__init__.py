"""Digest rendering and delivery."""

from hndigest.digest.formatting import digest_to_html, digest_to_text
from hndigest.digest.senders import ConsoleSender, SmtpSender, TelegramSender, build_sender

__all__ = [
    "digest_to_html",
    "digest_to_text",
    "ConsoleSender",
    "SmtpSender",
    "TelegramSender",
    "build_sender",
]
