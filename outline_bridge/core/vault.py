"""
Placeholder vault for fragile spans.

Code, embeds, callouts, links and images must come out of the formatting
passes exactly as they went in (or exactly as their dedicated renderer made
them), so they are swapped for indexed sentinel tokens up front and swapped
back at the very end. Sentinels are framed by private-use code points that the
bridge strips from every input, so user text can never forge one.
"""

import re
from typing import Callable, Dict, List, Optional, Tuple

from .types import SENTINEL_CLOSE, SENTINEL_OPEN, ProtectedSpan, SpanKind

Renderer = Callable[[re.Match], Optional[str]]

SENTINEL_PATTERN = re.compile(f"{SENTINEL_OPEN}(?P<kind>[A-Z]+)-(?P<index>\\d+){SENTINEL_CLOSE}")

# Fenced code; the fence may be indented under a list item
CODE_FENCE_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)```(?P<lang>[\w+#.-]*)[^\n]*\n(?P<code>.*?)^[ \t]*```[ \t]*$",
    re.MULTILINE | re.DOTALL,
)

# {{[[audio]]: url}}, {{video: url}}, {{[[youtube]]: url}}, {{[[pdf]]: url}}
MEDIA_EMBED_PATTERN = re.compile(
    r"\{\{\[?\[?(?P<kind>audio|video|youtube|pdf)\]?\]?:\s*(?P<url>[^\s{}]+)\s*\}\}",
    re.IGNORECASE,
)

# {{[[embed]]: ((uid))}} and {{[[embed-path]]: [[Page]]}}
NAMED_EMBED_PATTERN = re.compile(
    r"\{\{\[\[(?P<name>[\w-]+)\]\]:\s*(?P<target>\(\((?P<uid>[^()\s`]{9,10})\)\)|\[\[(?P<page>[^\[\]]+)\]\])\s*\}\}"
)

# > [!NOTE] Title, followed by "> body" lines
MARKDOWN_CALLOUT_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)>[ \t]?\[!(?P<keyword>[A-Za-z]+)\][ \t]*(?P<title>[^\n]*)(?P<body>(?:\n[ \t]*>[^\n]*)*)",
    re.MULTILINE,
)

# [[>]] [[!NOTE]] Title, followed by plain body lines up to a blank line or a bullet
OUTLINE_CALLOUT_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)(?:- )?\[\[>\]\][ \t]*\[\[!(?P<keyword>[A-Za-z]+)\]\][ \t]*(?P<title>[^\n]*)"
    r"(?P<body>(?:\n(?![ \t]*-(?: |$))[ \t]*\S[^\n]*)*)",
    re.MULTILINE,
)

DOUBLE_BACKTICK_PATTERN = re.compile(r"``(?P<code>[^\n]+?)``")
INLINE_CODE_PATTERN = re.compile(r"`(?P<code>[^`\n]+)`")
FORMULA_PATTERN = re.compile(r"\$\$(?P<formula>.+?)\$\$", re.DOTALL)

IMAGE_PATTERN = re.compile(r"!\[(?P<alt>[^\]\n]*)\]\((?P<url>(?:https?://|www\.)[^\s)]+)\)")
LINK_PATTERN = re.compile(r"\[(?P<label>[^\[\]\n]+?)\]\((?P<url>(?:https?://|www\.)[^\s)]+)\)")


def strip_sentinel_marks(text: str) -> str:
    """Remove the sentinel framing characters so input cannot forge placeholders."""
    return text.replace(SENTINEL_OPEN, "").replace(SENTINEL_CLOSE, "")


def protect(
    text: str,
    kind: SpanKind,
    pattern: re.Pattern,
    render: Optional[Renderer] = None,
    counters: Optional[Dict[SpanKind, int]] = None,
) -> Tuple[str, List[ProtectedSpan]]:
    """
    Replace every match of pattern with a sentinel.

    Args:
        text: Working text
        kind: Span kind recorded for each match
        pattern: Compiled pattern; a named group "indent" stays outside the sentinel
        render: Produces the text written back on restore. Defaults to the
            matched text. Returning None leaves that match unprotected.
        counters: Per-kind index counters, shared between nested vaults

    Returns:
        Tuple of (protected text, spans in protection order)
    """
    counters = counters if counters is not None else {}
    spans: List[ProtectedSpan] = []

    def _replace(match: re.Match) -> str:
        indent = match.groupdict().get("indent") or ""
        original = match.group(0)[len(indent):]
        rendered = render(match) if render else original
        if rendered is None:
            return match.group(0)

        index = counters.get(kind, 0)
        counters[kind] = index + 1
        span = ProtectedSpan(kind=kind, index=index, original_text=original, rendered_text=rendered)
        spans.append(span)
        return indent + span.sentinel

    return pattern.sub(_replace, text), spans


def restore(text: str, spans: List[ProtectedSpan]) -> str:
    """
    Write every span back in place of its sentinel.

    Spans are walked newest first: a span protected later (a link) may carry
    the sentinel of an earlier one (an image inside its label), which must be
    back in the text before the earlier span is restored. The framing
    characters make every match a whole token. Sentinels without a span are
    left untouched.
    """
    for span in reversed(spans):
        text = text.replace(span.sentinel, span.rendered_text, 1)
    return text


class PlaceholderVault:
    """Accumulates protected spans for one conversion."""

    def __init__(self, counters: Optional[Dict[SpanKind, int]] = None, originals: Optional[Dict[str, str]] = None):
        self.spans: List[ProtectedSpan] = []
        self._counters: Dict[SpanKind, int] = counters if counters is not None else {}
        # Sentinel -> matched input text, shared with child vaults
        self._originals: Dict[str, str] = originals if originals is not None else {}

    def protect(self, text: str, kind: SpanKind, pattern: re.Pattern, render: Optional[Renderer] = None) -> str:
        protected, spans = protect(text, kind, pattern, render, self._counters)
        self.spans.extend(spans)
        self._originals.update((span.sentinel, span.original_text) for span in spans)
        return protected

    def restore(self, text: str) -> str:
        """Restore every span and empty the vault."""
        restored = restore(text, self.spans)
        self.spans = []
        return restored

    def resolve(self, text: str) -> str:
        """
        Replace sentinels with the input text they stand for.

        For fragments printed into attributes or more than once, which must
        not carry sentinels into the output. Nested sentinels are resolved
        too; unknown ones are left as-is.
        """
        previous = None
        while previous != text:
            previous = text
            text = SENTINEL_PATTERN.sub(lambda match: self._originals.get(match.group(0), match.group(0)), text)
        return text

    def child(self) -> "PlaceholderVault":
        """Vault for a nested fragment; shares index counters and originals so sentinels never collide."""
        return PlaceholderVault(self._counters, self._originals)

    def counts_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for span in self.spans:
            counts[span.kind.value] = counts.get(span.kind.value, 0) + 1
        return counts
