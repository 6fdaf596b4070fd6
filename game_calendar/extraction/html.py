"""
HTML helpers shared by the extractors and the pipelines.

Announcement bodies arrive as HTML, sometimes entity-escaped a second time
(``&lt;p&gt;…``). Everything here goes through BeautifulSoup's
``html.parser`` so entity decoding and tag handling stay consistent.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup, NavigableString

_WS_RE = re.compile(r"\s+")
_QUOTES_RE = re.compile(r"[「」『』“”\"'’‘]")
_ESCAPED_NEWLINE_RE = re.compile(r"\\[rnt]")

IMG_MARKER = "@@IMG@@"

_BLOCK_TAGS = ["p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "tr"]


def _soup(text: str) -> BeautifulSoup:
    # Double-escaped bodies become real markup after one decode.
    if "<" not in text and "&lt;" in text:
        text = BeautifulSoup(text, "html.parser").get_text()
    return BeautifulSoup(text, "html.parser")


def strip_html(text: Optional[str]) -> str:
    """Reduce an HTML fragment to single-spaced plain text.

    Tags become spaces (so adjacent cells never glue together), entities are
    decoded, and whitespace runs collapse to one space.
    """
    if not text:
        return ""
    plain = _soup(text).get_text(" ")
    return _WS_RE.sub(" ", plain.replace("\xa0", " ")).strip()


def normalize_title(text: Optional[str]) -> str:
    """Collapse whitespace (including literal ``\\n`` escapes) in a title."""
    return _WS_RE.sub(" ", _ESCAPED_NEWLINE_RE.sub(" ", text or "")).strip()


def normalize_title_key(text: Optional[str]) -> str:
    """Matching key for fuzzy title comparison.

    Lowercased, HTML-free, with all whitespace and quote characters of any
    style removed: ``"<p>「Foo Bar」</p>"`` → ``"foobar"``.
    """
    key = strip_html(text).lower()
    key = _WS_RE.sub("", key)
    return _QUOTES_RE.sub("", key)


def first_img_src(html: Optional[str]) -> Optional[str]:
    """Return the ``src`` of the first ``<img>`` in ``html``, if any."""
    if not html:
        return None
    img = _soup(html).find("img", src=True)
    if img is None:
        return None
    src = str(img["src"]).strip()
    return src or None


def tokenize_lines(html: str) -> list[str]:
    """Split an announcement body into non-empty text lines.

    Line breaks are introduced at ``<br>`` and after block elements;
    ``<script>``/``<style>`` are dropped; each ``<img>`` becomes its own line
    of the form ``@@IMG@@<src>`` so callers can attach images to the heading
    that follows.
    """
    soup = _soup(html)

    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    for img in soup.find_all("img"):
        src = str(img.get("src") or "").strip()
        img.replace_with(NavigableString(f"\n{IMG_MARKER}{src}\n" if src else "\n"))
    for br in soup.find_all("br"):
        br.replace_with(NavigableString("\n"))
    for block in soup.find_all(_BLOCK_TAGS):
        block.append(NavigableString("\n"))

    text = soup.get_text().replace("\r", "").replace("\xa0", " ")
    lines = (_WS_RE.sub(" ", line).strip() for line in text.split("\n"))
    return [line for line in lines if line]
