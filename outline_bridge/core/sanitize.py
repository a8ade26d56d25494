"""
Allow-list HTML sanitizer for rendered chat messages.

The rendered document is re-parsed with html.parser and re-serialized: only
allowed tags and attributes survive, text is escaped, unsafe URIs and style
values are dropped, and the tag tree comes out balanced.
"""

import html
import re
from html.parser import HTMLParser
from typing import FrozenSet, List, Optional, Tuple

ALLOWED_TAGS = frozenset({
    "h2", "h3", "h4", "h5", "h6",
    "p", "br", "hr",
    "ul", "ol", "li",
    "table", "thead", "tbody", "tr", "th", "td",
    "blockquote", "code", "pre",
    "del", "mark", "strong", "em", "span",
    "img", "a",
})

ALLOWED_ATTRIBUTES = frozenset({
    "href", "target", "rel", "class", "style", "src", "alt", "title",
    "data-block-uid", "data-page-title", "data-page-uid",
})

# Removed together with everything inside them
DROP_CONTENT_TAGS = frozenset({
    "script", "style", "iframe", "object", "embed", "noscript", "template", "textarea", "title",
})

VOID_TAGS = frozenset({"br", "hr", "img"})
URI_ATTRIBUTES = frozenset({"href", "src"})
SAFE_SCHEMES = frozenset({"http", "https", "mailto"})
SAFE_TARGETS = frozenset({"_blank", "_self", "_parent", "_top"})

UNSAFE_STYLE_PATTERN = re.compile(r"expression\s*\(|url\s*\(|javascript:", re.IGNORECASE)
SCHEME_PATTERN = re.compile(r"^([a-z][a-z0-9+.-]*):")
_CONTROL_AND_SPACE = re.compile(r"[\x00-\x20]+")


def is_safe_uri(value: str, schemes: FrozenSet[str] = SAFE_SCHEMES) -> bool:
    """True for scheme-less (relative) URIs and URIs with an allowed scheme."""
    compact = _CONTROL_AND_SPACE.sub("", value).lower()
    match = SCHEME_PATTERN.match(compact)
    return match is None or match.group(1) in schemes


class _AllowListParser(HTMLParser):
    def __init__(self, sanitizer: "Sanitizer"):
        super().__init__(convert_charrefs=True)
        self.sanitizer = sanitizer
        self.parts: List[str] = []
        self.open_tags: List[str] = []
        self._dropped_tag: Optional[str] = None
        self._dropped_depth = 0

    def handle_starttag(self, tag, attrs):
        if self._dropped_depth:
            if tag == self._dropped_tag:
                self._dropped_depth += 1
            return
        if tag in DROP_CONTENT_TAGS:
            self._dropped_tag = tag
            self._dropped_depth = 1
            return
        if tag not in self.sanitizer.allowed_tags:
            return

        self.parts.append(f"<{tag}{self.sanitizer.clean_attributes(attrs)}>")
        if tag not in VOID_TAGS:
            self.open_tags.append(tag)

    def handle_endtag(self, tag):
        if self._dropped_depth:
            if tag == self._dropped_tag:
                self._dropped_depth -= 1
            return
        if tag not in self.open_tags:
            return
        while self.open_tags:
            current = self.open_tags.pop()
            self.parts.append(f"</{current}>")
            if current == tag:
                break

    def handle_data(self, data):
        if not self._dropped_depth:
            self.parts.append(html.escape(data, quote=False))

    def close(self):
        super().close()
        while self.open_tags:
            self.parts.append(f"</{self.open_tags.pop()}>")


class Sanitizer:
    """
    Allow-list sanitizer.

    Args:
        allowed_tags: Tags kept in the output; others are unwrapped
        allowed_attributes: Attributes kept on allowed tags
        safe_schemes: URI schemes accepted in href and src
    """

    def __init__(
        self,
        allowed_tags: FrozenSet[str] = ALLOWED_TAGS,
        allowed_attributes: FrozenSet[str] = ALLOWED_ATTRIBUTES,
        safe_schemes: FrozenSet[str] = SAFE_SCHEMES,
    ):
        self.allowed_tags = allowed_tags
        self.allowed_attributes = allowed_attributes
        self.safe_schemes = safe_schemes

    def sanitize(self, markup: str) -> str:
        parser = _AllowListParser(self)
        parser.feed(markup)
        parser.close()
        return "".join(parser.parts)

    def clean_attributes(self, attrs: List[Tuple[str, Optional[str]]]) -> str:
        cleaned = []
        for name, value in attrs:
            value = value or ""
            if name not in self.allowed_attributes:
                continue
            if name in URI_ATTRIBUTES and not is_safe_uri(value, self.safe_schemes):
                continue
            if name == "style" and UNSAFE_STYLE_PATTERN.search(value):
                continue
            if name == "target" and value not in SAFE_TARGETS:
                continue
            cleaned.append((name, value))

        names = {name for name, _ in cleaned}
        if "target" in names and "rel" not in names:
            cleaned.append(("rel", "noopener"))
        return "".join(f' {name}="{html.escape(value, quote=True)}"' for name, value in cleaned)


def sanitize_html(markup: str) -> str:
    """Sanitize markup with the default allow-lists."""
    return Sanitizer().sanitize(markup)
