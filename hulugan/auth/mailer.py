"""Delivery of magic links to email addresses."""

import logging
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class LinkSender(Protocol):
    """Anything that can deliver a sign-in link to an email address."""

    async def send(self, email: str, link: str) -> None: ...


class LoggingLinkSender:
    """Writes sign-in links to the log instead of sending email.

    Suitable for local development where an operator copies the link.
    """

    async def send(self, email: str, link: str) -> None:
        LOGGER.info("Magic link for %s: %s", email, link)
