"""HTML sanitizer for untrusted message bodies.

Output is safe to inject as HTML. Anything outside the allow-list is
removed rather than escaped, so fidelity to the original markup is not
guaranteed.
"""

from __future__ import annotations

import html
import re
import threading

import bleach
from bleach.css_sanitizer import CSSSanitizer
from bs4 import BeautifulSoup
from loguru import logger

from qumail.domain.errors import SanitizationFailure

SNIPPET_MAX_CHARS = 200

ALLOWED_TAGS = frozenset({
    "a", "abbr", "address", "b", "blockquote", "br", "caption", "center", "code",
    "col", "colgroup", "dd", "del", "div", "dl", "dt", "em", "font", "h1", "h2",
    "h3", "h4", "h5", "h6", "hr", "i", "img", "ins", "li", "ol", "p", "pre", "q",
    "s", "small", "span", "strike", "strong", "sub", "sup", "table", "tbody", "td",
    "tfoot", "th", "thead", "tr", "u", "ul",
})

ALLOWED_ATTRIBUTES = {
    "*": ["style", "class", "title", "dir", "lang", "align"],
    "a": ["href", "target", "name", "rel"],
    "img": ["src", "alt", "width", "height", "border"],
    "font": ["color", "face", "size"],
    "table": ["width", "height", "border", "cellpadding", "cellspacing", "bgcolor"],
    "td": ["width", "height", "colspan", "rowspan", "valign", "bgcolor", "nowrap"],
    "th": ["width", "height", "colspan", "rowspan", "valign", "bgcolor", "nowrap"],
    "tr": ["valign", "bgcolor"],
    "col": ["width", "span"],
    "colgroup": ["width", "span"],
    "ol": ["start", "type"],
    "ul": ["type"],
}

# cid: is how multipart/related bodies reference their inline images.
ALLOWED_PROTOCOLS = frozenset({"http", "https", "data", "cid"})

# Removed together with their content before allow-list filtering.
DROPPED_WITH_CONTENT = ["script", "style", "noscript", "head", "title", "iframe", "object", "embed", "template"]

_TAG_RE = re.compile(r"<\s*(?:[a-zA-Z][a-zA-Z0-9-]*|/\s*[a-zA-Z]|!)[^>]*>")
_WS_RE = re.compile(r"\s+")


def looks_like_html(value: str) -> bool:
    return bool(_TAG_RE.search(value))


def text_to_html(text: str) -> str:
    escaped = html.escape(text, quote=False)
    return escaped.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "<br>")


class HtmlSanitizer:
    def __init__(self) -> None:
        # bleach.Cleaner is not thread-safe and IMAP parsing runs in worker threads.
        self._local = threading.local()

    @property
    def _cleaner(self) -> bleach.Cleaner:
        cleaner = getattr(self._local, "cleaner", None)
        if cleaner is None:
            cleaner = bleach.Cleaner(
                tags=ALLOWED_TAGS,
                attributes=ALLOWED_ATTRIBUTES,
                protocols=ALLOWED_PROTOCOLS,
                strip=True,
                strip_comments=True,
                css_sanitizer=CSSSanitizer(),
            )
            self._local.cleaner = cleaner
        return cleaner

    def sanitize(self, raw: str | None, is_html: bool | None = None) -> str:
        """
        Return allow-listed HTML for an HTML or plain-text body.

        `is_html` is the caller's knowledge of the content type; when None the
        input is sniffed. Raises SanitizationFailure instead of returning
        partially cleaned output.
        """
        if not raw:
            return ""
        if is_html is None:
            is_html = looks_like_html(raw)

        try:
            if is_html:
                soup = BeautifulSoup(raw, "html.parser")
                for tag in soup(DROPPED_WITH_CONTENT):
                    tag.decompose()
                markup = str(soup)
            else:
                markup = text_to_html(raw)
            return self._cleaner.clean(markup).strip()
        except Exception as e:
            raise SanitizationFailure(details=f"{type(e).__name__}: {e}") from e

    @staticmethod
    def snippet(safe_html: str, max_chars: int = SNIPPET_MAX_CHARS) -> str:
        """Plain-text preview of an already sanitized body."""
        if not safe_html:
            return ""
        text = BeautifulSoup(safe_html, "html.parser").get_text(" ")
        text = _WS_RE.sub(" ", text).strip()
        if len(text) > max_chars:
            text = text[: max_chars - 3].rstrip() + "..."
        return text

    def render(self, raw: str | None, is_html: bool | None = None, message_ref: str = "") -> tuple[str, str]:
        """(body, snippet) for a message; an unsanitizable body becomes empty."""
        try:
            body = self.sanitize(raw, is_html)
        except SanitizationFailure as e:
            logger.error(f"Dropping body of message {message_ref}: {e.details}")
            return "", ""
        return body, self.snippet(body)


_sanitizer: HtmlSanitizer | None = None


def get_sanitizer() -> HtmlSanitizer:
    """Get or create the shared sanitizer (the bleach Cleaner is reusable)."""
    global _sanitizer
    if _sanitizer is None:
        _sanitizer = HtmlSanitizer()
    return _sanitizer
