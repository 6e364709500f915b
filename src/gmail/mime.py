"""Header rewriting for forwarded messages — the body is never touched."""

import email
import logging
from email.header import Header, decode_header, make_header
from email.utils import formataddr

logger = logging.getLogger(__name__)


def original_subject(raw: bytes) -> str:
    """Return the decoded Subject header of a raw message ('' if absent)."""
    message = email.message_from_bytes(raw)
    value = message.get("Subject")
    if value is None:
        return ""
    return str(make_header(decode_header(value)))


def rewrite_headers(
    raw: bytes,
    sender: tuple[str, str],
    to: tuple[str, str],
    bcc: list[str],
    subject: str | None = None,
) -> bytes:
    """Clone `raw` with From/To/Bcc replaced and Cc dropped.

    Args:
        raw:     RFC 822 bytes of the message being forwarded.
        sender:  (display name, address) for the From header.
        to:      (display name, address) for the To header.
        bcc:     addresses for the Bcc header; Gmail strips it on send.
        subject: replacement Subject, or None to keep the original.
    """
    message = email.message_from_bytes(raw)

    del message["From"]
    del message["To"]
    del message["Cc"]
    del message["Bcc"]
    message["From"] = formataddr(sender, charset="utf-8")
    message["To"] = formataddr(to, charset="utf-8")
    if bcc:
        message["Bcc"] = ", ".join(bcc)

    if subject is not None:
        del message["Subject"]
        message["Subject"] = subject if subject.isascii() else Header(subject, "utf-8")

    logger.debug("Rewrote headers: From=%s To=%s Bcc=%d address(es)", sender[1], to[1], len(bcc))
    return message.as_bytes()
