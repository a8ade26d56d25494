"""
Format bridge: the three public conversions.

Every conversion runs the same pipeline: normalize the input, protect
fragile spans in the vault, parse blocks, print them (inline content is
parsed and printed per block), restore the protected spans and, on the HTML
path only, sanitize. All state lives in the call; the optional debug logger
only records what each stage produced.
"""

import re
from typing import Callable, List, Optional

from .blocks import BlockStructureParser
from .debug_log import DebugLogger
from .inline import HtmlPrinter, InlineEntityParser, InlinePrinter, printer_for
from .render import HtmlRenderer, MarkdownRenderer, OutlineRenderer
from .sanitize import Sanitizer
from .tables import TableTranspiler
from .timing import timer
from .types import ConversionOptions, Dialect, SpanKind
from .vault import (
    CODE_FENCE_PATTERN,
    DOUBLE_BACKTICK_PATTERN,
    FORMULA_PATTERN,
    IMAGE_PATTERN,
    INLINE_CODE_PATTERN,
    LINK_PATTERN,
    MARKDOWN_CALLOUT_PATTERN,
    MEDIA_EMBED_PATTERN,
    NAMED_EMBED_PATTERN,
    OUTLINE_CALLOUT_PATTERN,
    PlaceholderVault,
    strip_sentinel_marks,
)

_QUOTE_PREFIX = re.compile(r"^[ \t]*>[ \t]?")


def normalize_input(text: Optional[str]) -> str:
    """Unify line endings and strip sentinel framing characters."""
    if not text:
        return ""
    return strip_sentinel_marks(text.replace("\r\n", "\n").replace("\r", "\n"))


def _dedent_code(code: str, indent: str) -> str:
    lines = [line[len(indent):] if indent and line.startswith(indent) else line for line in code.split("\n")]
    return "\n".join(lines).strip("\n")


def _callout_parts(match: re.Match, dialect: Dialect):
    """Keyword, title and body lines of a matched callout."""
    body = [line for line in match.group("body").split("\n") if line.strip()]
    if dialect == Dialect.MARKDOWN:
        body = [_QUOTE_PREFIX.sub("", line) for line in body]
    else:
        body = [line.strip() for line in body]
    return match.group("keyword").upper(), match.group("title").strip(), [line for line in body if line.strip()]


class FormatBridge:
    """
    Converts chat markdown to HTML and outline text, and outline text back.

    Args:
        options: Conversion settings; defaults apply when omitted
        debug_logger: Receives the text produced by each stage when enabled
    """

    def __init__(self, options: Optional[ConversionOptions] = None, debug_logger: Optional[DebugLogger] = None):
        self.options = options or ConversionOptions()
        self.debug_logger = debug_logger
        self.transpiler = TableTranspiler()
        self.sanitizer = Sanitizer()

    @timer
    def render_to_html(self, markdown: str) -> str:
        """
        Render chat markdown as sanitized, clickable HTML.

        Args:
            markdown: Chat message in extended markdown

        Returns:
            Sanitized HTML fragment
        """
        operation = "render_to_html"
        text = normalize_input(markdown)
        vault = PlaceholderVault()
        printer = HtmlPrinter(self.options, resolve=vault.resolve)

        protected = self._protect_html_blocks(text, vault, printer)
        protected = self._protect_inline(protected, vault, Dialect.MARKDOWN, printer)
        self._trace(operation, "protected", protected)

        blocks = BlockStructureParser(Dialect.MARKDOWN, self.options, self.transpiler).parse(protected)
        renderer = HtmlRenderer(InlineEntityParser(Dialect.MARKDOWN), printer, self.transpiler)
        rendered = renderer.render(blocks)
        self._trace(operation, "rendered", rendered)

        span_counts = vault.counts_by_kind()
        restored = vault.restore(rendered)
        result = self.sanitizer.sanitize(restored)
        self._summarize(operation, text, result, span_counts, len(blocks))
        return result

    @timer
    def to_outline_format(self, markdown: str) -> str:
        """
        Convert chat markdown to the outliner's nested bullet format.

        Code, links, images, embeds and formulas pass through unchanged;
        callouts switch to the outliner's callout syntax.
        """
        return self._convert("to_outline_format", markdown, Dialect.MARKDOWN, Dialect.OUTLINE)

    @timer
    def from_outline_format(self, outline_text: str) -> str:
        """Convert outliner text back to chat markdown."""
        return self._convert("from_outline_format", outline_text, Dialect.OUTLINE, Dialect.MARKDOWN)

    def _convert(self, operation: str, source_text: str, source: Dialect, target: Dialect) -> str:
        text = normalize_input(source_text)
        printer = printer_for(target, self.options)
        vault = PlaceholderVault()

        protected = vault.protect(text, SpanKind.CODE_BLOCK, CODE_FENCE_PATTERN)
        protected = vault.protect(protected, SpanKind.MEDIA_EMBED, MEDIA_EMBED_PATTERN)
        protected = vault.protect(protected, SpanKind.MEDIA_EMBED, NAMED_EMBED_PATTERN)
        callout_pattern = MARKDOWN_CALLOUT_PATTERN if source == Dialect.MARKDOWN else OUTLINE_CALLOUT_PATTERN
        protected = vault.protect(
            protected,
            SpanKind.CALLOUT,
            callout_pattern,
            lambda match: self._convert_callout(match, source, target, vault, printer),
        )
        protected = self._protect_inline(protected, vault, source, printer)
        self._trace(operation, "protected", protected)

        blocks = BlockStructureParser(source, self.options, self.transpiler).parse(protected)
        renderer_class = OutlineRenderer if target == Dialect.OUTLINE else MarkdownRenderer
        rendered = renderer_class(InlineEntityParser(source), printer, self.transpiler).render(blocks)
        self._trace(operation, "rendered", rendered)

        span_counts = vault.counts_by_kind()
        result = vault.restore(rendered)
        self._summarize(operation, text, result, span_counts, len(blocks))
        return result

    def _protect_html_blocks(self, text: str, vault: PlaceholderVault, printer: HtmlPrinter) -> str:
        text = vault.protect(
            text,
            SpanKind.CODE_BLOCK,
            CODE_FENCE_PATTERN,
            lambda match: printer.code_block(match.group("lang"), _dedent_code(match.group("code"), match.group("indent"))),
        )
        text = vault.protect(
            text,
            SpanKind.MEDIA_EMBED,
            MEDIA_EMBED_PATTERN,
            lambda match: printer.media_embed(match.group("kind"), match.group("url")),
        )
        text = vault.protect(
            text,
            SpanKind.MEDIA_EMBED,
            NAMED_EMBED_PATTERN,
            lambda match: printer.named_embed(match.group("name"), match.group("uid"), match.group("page")),
        )
        for pattern, dialect in ((MARKDOWN_CALLOUT_PATTERN, Dialect.MARKDOWN), (OUTLINE_CALLOUT_PATTERN, Dialect.OUTLINE)):
            text = vault.protect(
                text,
                SpanKind.CALLOUT,
                pattern,
                lambda match, dialect=dialect: self._html_callout(match, dialect, vault, printer),
            )
        return text

    def _protect_inline(self, text: str, vault: PlaceholderVault, source: Dialect, printer: InlinePrinter) -> str:
        """Protect inline code, formulas, images and links; on the HTML path they are rendered now."""
        if isinstance(printer, HtmlPrinter):
            render_code: Optional[Callable] = lambda match: printer.inline_code(match.group("code"))
            render_formula: Optional[Callable] = lambda match: printer.formula(match.group(0))
            render_image: Optional[Callable] = lambda match: printer.image(match.group("alt"), match.group("url"))
            render_link: Callable = lambda match: printer.link(
                self._fragment(match.group("label"), source, vault, printer), match.group("url")
            )
        else:
            render_code = render_formula = render_image = None
            render_link = lambda match: f"[{self._fragment(match.group('label'), source, vault, printer)}]({match.group('url')})"

        text = vault.protect(text, SpanKind.INLINE_CODE, DOUBLE_BACKTICK_PATTERN, render_code)
        text = vault.protect(text, SpanKind.INLINE_CODE, INLINE_CODE_PATTERN, render_code)
        text = vault.protect(text, SpanKind.INLINE_CODE, FORMULA_PATTERN, render_formula)
        text = vault.protect(text, SpanKind.LINK_OR_IMAGE, IMAGE_PATTERN, render_image)
        text = vault.protect(text, SpanKind.LINK_OR_IMAGE, LINK_PATTERN, render_link)
        return text

    def _fragment(self, text: str, source: Dialect, vault: PlaceholderVault, printer: InlinePrinter) -> str:
        """Convert a nested inline fragment (link label, callout line) with its own child vault."""
        child = vault.child()
        protected = self._protect_inline(text, child, source, printer)
        return child.restore(printer.render(InlineEntityParser(source).parse(protected)))

    def _html_callout(self, match: re.Match, dialect: Dialect, vault: PlaceholderVault, printer: HtmlPrinter) -> str:
        keyword, title, body = _callout_parts(match, dialect)
        heading = f"<strong>{keyword}</strong>"
        if title:
            heading += f" {self._fragment(title, dialect, vault, printer)}"
        content = [f'<span class="callout-title">{heading}</span>']
        content.extend(self._fragment(line, dialect, vault, printer) for line in body)
        return f'<blockquote class="callout callout-{keyword.lower()}">' + "<br>".join(content) + "</blockquote>"

    def _convert_callout(
        self, match: re.Match, source: Dialect, target: Dialect, vault: PlaceholderVault, printer: InlinePrinter
    ) -> str:
        keyword, title, body = _callout_parts(match, source)
        title = self._fragment(title, source, vault, printer) if title else ""
        lines: List[str] = [self._fragment(line, source, vault, printer) for line in body]
        if target == Dialect.OUTLINE:
            head = f"[[>]] [[!{keyword}]] {title}".rstrip()
            return "\n".join([head] + lines)
        head = f"> [!{keyword}] {title}".rstrip()
        return "\n".join([head] + [f"> {line}" for line in lines])

    def _trace(self, operation: str, stage: str, text: str):
        if self.debug_logger and self.debug_logger.is_enabled():
            self.debug_logger.log_stage(operation, stage, text)

    def _summarize(self, operation: str, source: str, result: str, span_counts, block_count: int):
        if self.debug_logger and self.debug_logger.is_enabled():
            self.debug_logger.log_conversion_summary(operation, source, result, span_counts, block_count)


def render_to_html(markdown: str, options: Optional[ConversionOptions] = None) -> str:
    """Render chat markdown as sanitized HTML."""
    return FormatBridge(options).render_to_html(markdown)


def to_outline_format(markdown: str, options: Optional[ConversionOptions] = None) -> str:
    """Convert chat markdown to outline text."""
    return FormatBridge(options).to_outline_format(markdown)


def from_outline_format(outline_text: str, options: Optional[ConversionOptions] = None) -> str:
    """Convert outline text to chat markdown."""
    return FormatBridge(options).from_outline_format(outline_text)
