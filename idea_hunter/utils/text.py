"""
Text helpers shared by collectors and the storage boundary
"""
import re
import warnings
from typing import Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

CONTENT_LIMIT = 1000
ELLIPSIS = "..."

_COUNT_SUFFIXES = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


def truncate(text: Optional[str], limit: int) -> str:
    """Cut text to at most `limit` characters"""
    if not text:
        return ""
    return text[:limit]


def shorten(text: Optional[str], limit: int) -> str:
    """Cut text to `limit` characters and mark the cut with an ellipsis"""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def clean_content(content: Optional[str], limit: int = CONTENT_LIMIT) -> str:
    """
    Strip HTML tags and entities from feed content and truncate it

    Args:
        content: Raw HTML or plain text
        limit: Maximum length of the returned text, ellipsis included

    Returns:
        Plain text of at most `limit` characters
    """
    if not content:
        return ""

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        text = BeautifulSoup(content, "lxml").get_text()

    text = re.sub(r'\s+', ' ', text).strip()

    if len(text) > limit:
        text = text[:max(limit - len(ELLIPSIS), 0)] + ELLIPSIS
    return text


def parse_count(text: Optional[str]) -> int:
    """
    Parse a displayed count such as "1.2k", "3.4M" or "1,234"

    Returns:
        Integer count, 0 when nothing numeric is found
    """
    if not text:
        return 0

    text = text.strip().lower().replace(",", "")
    # A suffix letter must stand alone: "12 messages" is 12, not 12 million
    match = re.search(r'(\d+(?:\.\d+)?)(?![\d.])\s*([kmb])?(?![a-z])', text)
    if not match:
        return 0

    number = float(match.group(1))
    suffix = match.group(2)
    if suffix:
        number *= _COUNT_SUFFIXES[suffix]
    return int(round(number))
