"""HTML decoding and text normalization helpers.

Deterministic and site-agnostic. Roster pages come back in assorted
encodings and occasionally with mojibake in player names; everything that
reads cell text goes through :func:`cell_text`.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Mapping, Optional

import ftfy
from bs4 import BeautifulSoup
from bs4.element import Tag
from charset_normalizer import from_bytes

__all__ = [
    "decode_bytes_auto",
    "minimal_text_fix",
    "parse_html",
    "cell_text",
]

_ZERO_WIDTH = {0x200B, 0x200C, 0x200D, 0x2060, 0xFEFF}
_REMOVE = {0x00, 0x0B, 0x0C}
_C1_TO_SPACE = {cp: " " for cp in range(0x80, 0xA0)}
_TRANSLATE = {**{cp: None for cp in _ZERO_WIDTH | _REMOVE}, **_C1_TO_SPACE}

HTML_PARSER = "lxml"


def decode_bytes_auto(body: bytes, headers: Optional[Mapping[str, str]] = None) -> str:
    """Decode HTTP bytes using charset header hints with charset-normalizer fallback."""

    enc = None
    if headers:
        ct = headers.get("content-type", "") or headers.get("Content-Type", "")
        match = re.search(r"charset=([^\s;]+)", ct, re.I)
        if match:
            enc = match.group(1).strip(' "\'').lower()
    if enc:
        try:
            return body.decode(enc, errors="replace")
        except LookupError:
            pass
    result = from_bytes(body).best()
    if result is None:
        return body.decode("utf-8", errors="replace")
    return str(result)


def minimal_text_fix(text: str) -> str:
    """Fix mojibake and strip zero-width/control noise without collapsing structure."""

    if not text:
        return ""
    normalized = unicodedata.normalize("NFC", text)
    fixed = ftfy.fix_text(normalized, normalization="NFC")
    return fixed.translate(_TRANSLATE)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", HTML_PARSER)


def cell_text(cell: Optional[Tag]) -> str:
    """Trimmed, whitespace-collapsed text of a table cell ("" for None)."""

    if cell is None:
        return ""
    raw = cell.get_text(" ", strip=True)
    return " ".join(minimal_text_fix(raw).split())
