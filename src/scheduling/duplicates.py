"""Duplicate detection between a candidate email and the last one sent."""

import re
from enum import Enum

# Gmail/Outlook forwarded-message separator between the header block and body.
HEADER_SEPARATOR = "_" * 32

_MESSAGE_ID_LINE = re.compile(r"^Message-ID:.*(?:\r?\n[ \t].*)*\r?\n?", re.IGNORECASE | re.MULTILINE)


class DuplicateCheck(str, Enum):
    """How email text is normalised before two emails are compared.

    SEPARATOR is the default: recipient and BCC headers are rewritten on every
    send, so comparing anything before the separator would make every email
    look new.
    """

    SEPARATOR = "separator"
    MESSAGE_ID = "message-id"
    EXACT = "exact"


def normalize(text: str, mode: DuplicateCheck = DuplicateCheck.SEPARATOR) -> str:
    """Strip the volatile parts of an email so logically equal sends compare equal."""
    if mode is DuplicateCheck.SEPARATOR:
        _, found, after = text.partition(HEADER_SEPARATOR)
        return after if found else text
    if mode is DuplicateCheck.MESSAGE_ID:
        return _MESSAGE_ID_LINE.sub("", text)
    return text


def is_duplicate(
    candidate: str,
    stored: str,
    mode: DuplicateCheck = DuplicateCheck.SEPARATOR,
) -> bool:
    """True if both texts are identical once normalised the same way."""
    return normalize(candidate, mode) == normalize(stored, mode)
