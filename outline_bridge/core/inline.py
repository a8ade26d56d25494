"""
Inline entity parsing and printing.

Inline text is tokenized once into a flat stream (sentinels, entity
references, URLs, task markers, emphasis delimiters and plain text) and then
parsed into a small node tree: delimiter runs are paired by a recursive
matcher, so no substitution ever runs over another one's output. The same
tree is printed by three independent printers, one per target dialect.
"""

import html
import re
from typing import Callable, Dict, List, Optional, Tuple

from .types import SENTINEL_CLOSE, SENTINEL_OPEN, ConversionOptions, Dialect

BOLD = "bold"
ITALIC = "italic"
STRIKE = "strike"
HIGHLIGHT = "highlight"

PAGE_HINT = "Click: Filter by this page. Shift+click: Open in sidebar. Alt+click: Open in main window"
TAG_HINT = "Click: Filter by this tag. Shift+click: Open in sidebar"
BLOCK_HINT = "Click: Open block. Shift+click: Open in sidebar"

MEDIA_ICONS = {"audio": "🔊", "video": "🎬", "youtube": "▶️", "pdf": "📄"}
MEDIA_LABELS = {"audio": "Audio", "video": "Video", "youtube": "YouTube video", "pdf": "PDF document"}

URL_TRAILING_PUNCTUATION = ".,;:!?'\"*_~^="

_TOKEN_PATTERN = re.compile(
    "(?P<sentinel>" + SENTINEL_OPEN + r"[A-Z]+-\d+" + SENTINEL_CLOSE + ")"
    r"|(?P<task>\{\{\[\[(?P<state>TODO|DONE)\]\]\}\})"
    r"|(?P<named>\[(?P<label>[^\[\]\n]+?)\]\(\(\(\s*(?P<named_uid>[^()\s`]{9,10})\s*\)\)\))"
    r"|(?P<block>\(\((?P<uid>[^()\s`]{9,10})\)\))"
    r"|(?P<page>(?:(?<![\w/&])#)?\[\[)"
    r"|(?P<url>https?://[^\s<>\"" + SENTINEL_OPEN + SENTINEL_CLOSE + r"]+)"
    r"|(?P<www>(?<![\w.])www\.[^\s<>\"" + SENTINEL_OPEN + SENTINEL_CLOSE + r"]+)"
    r"|(?P<tag>(?<![\w/&])#[\w/-]+)"
    r"|(?P<delim>\*+|_+|~~|==|\^\^)"
)

# Delimiter run -> emphasis styles, outermost first
MARKDOWN_DELIMITERS: Dict[str, Tuple[str, ...]] = {
    "***": (BOLD, ITALIC),
    "**": (BOLD,),
    "*": (ITALIC,),
    "_": (ITALIC,),
    "~~": (STRIKE,),
    "==": (HIGHLIGHT,),
    "^^": (HIGHLIGHT,),
}

OUTLINE_DELIMITERS: Dict[str, Tuple[str, ...]] = {
    "**": (BOLD,),
    "__": (ITALIC,),
    "^^": (HIGHLIGHT,),
    "~~": (STRIKE,),
}


class Text:
    __slots__ = ("value",)

    def __init__(self, value: str):
        self.value = value

    def __repr__(self) -> str:
        return f"Text({self.value!r})"


class Raw:
    """A sentinel; every printer passes it through untouched."""

    __slots__ = ("value",)

    def __init__(self, value: str):
        self.value = value

    def __repr__(self) -> str:
        return f"Raw({self.value!r})"


class Emphasis:
    __slots__ = ("style", "children")

    def __init__(self, style: str, children: List):
        self.style = style
        self.children = children

    def __repr__(self) -> str:
        return f"Emphasis({self.style!r}, {self.children!r})"


class PageRef:
    """[[Title]], #tag or #[[Long Tag]]."""

    __slots__ = ("title", "tag", "bracketed")

    def __init__(self, title: str, tag: bool = False, bracketed: bool = True):
        self.title = title
        self.tag = tag
        self.bracketed = bracketed

    def __repr__(self) -> str:
        return f"PageRef({self.title!r}, tag={self.tag})"


class BlockRef:
    """((uid)), or [label](((uid))) when label is set."""

    __slots__ = ("uid", "label")

    def __init__(self, uid: str, label: Optional[List] = None):
        self.uid = uid
        self.label = label

    def __repr__(self) -> str:
        return f"BlockRef({self.uid!r})"


class Url:
    __slots__ = ("url",)

    def __init__(self, url: str):
        self.url = url

    def __repr__(self) -> str:
        return f"Url({self.url!r})"


class Task:
    __slots__ = ("done",)

    def __init__(self, done: bool):
        self.done = done

    def __repr__(self) -> str:
        return f"Task(done={self.done})"


class _Token:
    __slots__ = ("text", "node", "can_open", "can_close")

    def __init__(self, text: str, node=None, can_open: bool = False, can_close: bool = False):
        self.text = text
        self.node = node
        self.can_open = can_open
        self.can_close = can_close

    @property
    def is_delimiter(self) -> bool:
        return self.node is None and (self.can_open or self.can_close)


def _find_bracket_close(text: str, start: int) -> int:
    """Index of the "]]" balancing a "[[" that ends at start, or -1."""
    depth = 1
    position = start
    while position < len(text) - 1:
        if text.startswith("[[", position):
            depth += 1
            position += 2
        elif text.startswith("]]", position):
            depth -= 1
            if depth == 0:
                return position
            position += 2
        else:
            position += 1
    return -1


def _trim_url(url: str) -> str:
    while url and (
        url[-1] in URL_TRAILING_PUNCTUATION or (url[-1] == ")" and url.count("(") < url.count(")"))
    ):
        url = url[:-1]
    return url


class InlineEntityParser:
    """
    Parses inline text of one source dialect into a node tree.

    Markdown source recognizes ***, **, *, _, ~~, == and ^^ delimiters;
    outline source recognizes **, __, ^^ and ~~. Entity references, URLs
    and task markers are recognized in both.
    """

    def __init__(self, dialect: Dialect = Dialect.MARKDOWN):
        self.dialect = dialect
        self.delimiters = OUTLINE_DELIMITERS if dialect == Dialect.OUTLINE else MARKDOWN_DELIMITERS

    def parse(self, text: str) -> List:
        tokens = self.tokenize(text)
        return _merge_text(self._parse_range(tokens, 0, len(tokens)))

    def tokenize(self, text: str) -> List[_Token]:
        tokens: List[_Token] = []
        position = 0
        while position < len(text):
            match = _TOKEN_PATTERN.search(text, position)
            if not match:
                break
            if match.start() > position:
                tokens.append(_Token(text[position:match.start()]))
            position = self._consume(match, text, tokens)
        if position < len(text):
            tokens.append(_Token(text[position:]))
        return tokens

    def _consume(self, match: re.Match, text: str, tokens: List[_Token]) -> int:
        """Append the token(s) for match and return the position to resume from."""
        group = match.lastgroup
        value = match.group(0)

        if group == "sentinel":
            tokens.append(_Token(value, Raw(value)))
        elif group == "task":
            tokens.append(_Token(value, Task(match.group("state") == "DONE")))
        elif group == "named":
            tokens.append(_Token(value, BlockRef(match.group("named_uid"), self.parse(match.group("label")))))
        elif group == "block":
            tokens.append(_Token(value, BlockRef(match.group("uid"))))
        elif group == "page":
            close = _find_bracket_close(text, match.end())
            title = text[match.end():close] if close >= 0 else ""
            if not title.strip():
                tokens.append(_Token(value))
                return match.end()
            tokens.append(_Token(text[match.start():close + 2], PageRef(title, tag=value.startswith("#"))))
            return close + 2
        elif group in ("url", "www"):
            url = _trim_url(value)
            if group == "www" and len(url) <= len("www."):
                tokens.append(_Token(value))
                return match.end()
            tokens.append(_Token(url, Url(url)))
            return match.start() + len(url)
        elif group == "tag":
            tokens.append(_Token(value, PageRef(value[1:], tag=True, bracketed=False)))
        else:
            tokens.append(self._delimiter_token(value, text, match.start(), match.end()))
        return match.end()

    def _delimiter_token(self, run: str, text: str, start: int, end: int) -> _Token:
        if run not in self.delimiters:
            return _Token(run)

        before = text[start - 1] if start > 0 else ""
        after = text[end] if end < len(text) else ""
        can_open = bool(after) and not after.isspace()
        can_close = bool(before) and not before.isspace()
        if run[0] == "_":
            # snake_case_name stays intact
            can_open = can_open and not before.isalnum()
            can_close = can_close and not after.isalnum()
        return _Token(run, can_open=can_open, can_close=can_close)

    def _parse_range(self, tokens: List[_Token], start: int, end: int) -> List:
        nodes: List = []
        index = start
        while index < end:
            token = tokens[index]
            if token.node is not None:
                nodes.append(token.node)
            elif token.is_delimiter and token.can_open:
                closer = self._find_closer(tokens, index, end)
                if closer is None:
                    nodes.append(Text(token.text))
                else:
                    children = self._parse_range(tokens, index + 1, closer)
                    for style in reversed(self.delimiters[token.text]):
                        children = [Emphasis(style, _merge_text(children))]
                    nodes.extend(children)
                    index = closer + 1
                    continue
            else:
                nodes.append(Text(token.text))
            index += 1
        return nodes

    @staticmethod
    def _find_closer(tokens: List[_Token], opener: int, end: int) -> Optional[int]:
        run = tokens[opener].text
        for index in range(opener + 2, end):
            token = tokens[index]
            if token.is_delimiter and token.text == run and token.can_close:
                return index
        return None


def _merge_text(nodes: List) -> List:
    merged: List = []
    for node in nodes:
        if isinstance(node, Text) and merged and isinstance(merged[-1], Text):
            merged[-1] = Text(merged[-1].value + node.value)
        else:
            merged.append(node)
    return merged


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


class InlinePrinter:
    """Base printer: dispatches on node type."""

    def __init__(self, options: Optional[ConversionOptions] = None):
        self.options = options or ConversionOptions()
        self._handlers: Dict[type, Callable] = {
            Text: self._text,
            Raw: self._raw,
            Emphasis: self._emphasis,
            PageRef: self._page_ref,
            BlockRef: self._block_ref,
            Url: self._url,
            Task: self._task,
        }

    def render(self, nodes: List) -> str:
        return "".join(self._handlers[type(node)](node) for node in nodes)

    def _text(self, node: Text) -> str:
        return node.value

    def _raw(self, node: Raw) -> str:
        return node.value

    def _emphasis(self, node: Emphasis) -> str:
        raise NotImplementedError

    def _page_ref(self, node: PageRef) -> str:
        if not node.tag:
            return f"[[{node.title}]]"
        return f"#[[{node.title}]]" if node.bracketed else f"#{node.title}"

    def _block_ref(self, node: BlockRef) -> str:
        if node.label is not None:
            return f"[{self.render(node.label)}]((({node.uid})))"
        return f"(({node.uid}))"

    def _url(self, node: Url) -> str:
        return node.url

    def _task(self, node: Task) -> str:
        return "{{[[DONE]]}}" if node.done else "{{[[TODO]]}}"


class MarkdownPrinter(InlinePrinter):
    DELIMITERS = {BOLD: "**", ITALIC: "*", STRIKE: "~~", HIGHLIGHT: "=="}

    def _emphasis(self, node: Emphasis) -> str:
        children = node.children
        if node.style == BOLD and len(children) == 1 and isinstance(children[0], Emphasis) and children[0].style == ITALIC:
            return f"***{self.render(children[0].children)}***"
        mark = self.DELIMITERS[node.style]
        return f"{mark}{self.render(children)}{mark}"


class OutlinePrinter(InlinePrinter):
    DELIMITERS = {BOLD: "**", ITALIC: "__", STRIKE: "~~", HIGHLIGHT: "^^"}

    def _emphasis(self, node: Emphasis) -> str:
        mark = self.DELIMITERS[node.style]
        return f"{mark}{self.render(node.children)}{mark}"


class HtmlPrinter(InlinePrinter):
    """
    Prints inline nodes as HTML, and renders the protected constructs the
    vault hands over on the HTML path (code, images, links, embeds).

    Plain text is emitted as-is: the sanitizer parses the finished document
    and escapes whatever is not allowed markup.
    """

    TAGS = {BOLD: "strong", ITALIC: "em", STRIKE: "del", HIGHLIGHT: "mark"}

    def __init__(self, options: Optional[ConversionOptions] = None, resolve: Optional[Callable[[str], str]] = None):
        super().__init__(options)
        # Maps sentinels inside page titles back to the text they replaced
        self.resolve = resolve or (lambda text: text)

    def _emphasis(self, node: Emphasis) -> str:
        tag = self.TAGS[node.style]
        return f"<{tag}>{self.render(node.children)}</{tag}>"

    def _page_ref(self, node: PageRef) -> str:
        title = self.resolve(node.title)
        if node.tag:
            return (
                f'<a href="#" data-page-title="{_attr(title)}" class="rm-page-ref rm-page-ref--tag" '
                f'title="{TAG_HINT}">#{html.escape(title)}</a>'
            )
        uid = self.options.page_uids.get(title, title)
        anchor = (
            f'<a href="#" data-page-title="{_attr(title)}" data-page-uid="{_attr(uid)}" '
            f'class="rm-page-ref rm-page-ref--link" title="{PAGE_HINT}">{html.escape(title)}</a>'
        )
        return f'<span class="rm-page-ref__brackets">[[</span>{anchor}<span class="rm-page-ref__brackets">]]</span>'

    def _block_ref(self, node: BlockRef) -> str:
        if node.label is not None:
            label = self.render(node.label)
        elif node.uid in self.options.block_previews:
            label = html.escape(self.options.block_previews[node.uid])
        else:
            label = '<span class="bp3-icon bp3-icon-flow-end"></span>'
        return (
            f'<a href="#" data-block-uid="{_attr(node.uid)}" class="roam-block-ref-chat" '
            f'title="{BLOCK_HINT}">{label}</a>'
        )

    def _url(self, node: Url) -> str:
        return self.link(html.escape(node.url), node.url)

    def _task(self, node: Task) -> str:
        if node.done:
            return '<span class="task-checkbox task-done">☑</span>'
        return '<span class="task-checkbox">☐</span>'

    def link(self, label_html: str, url: str) -> str:
        href = f"https://{url}" if url.startswith("www.") else url
        return (
            f'<a href="{_attr(href)}" target="{_attr(self.options.link_target)}" '
            f'rel="noopener" class="external-link">{label_html}</a>'
        )

    def image(self, alt: str, url: str) -> str:
        src = f"https://{url}" if url.startswith("www.") else url
        return (
            f'<img src="{_attr(src)}" alt="{_attr(alt)}" '
            f'style="max-width: 100%; height: auto; border-radius: 4px; margin: 8px 0;">'
        )

    def inline_code(self, code: str) -> str:
        return f"<code>{html.escape(code.strip(), quote=False)}</code>"

    def formula(self, source: str) -> str:
        return html.escape(source, quote=False)

    def code_block(self, language: str, code: str) -> str:
        css = f' class="language-{_attr(language)}"' if language else ""
        return f"<pre><code{css}>{html.escape(code, quote=False)}</code></pre>"

    def media_embed(self, kind: str, url: str) -> str:
        kind = kind.lower()
        label = f"{MEDIA_ICONS[kind]} {MEDIA_LABELS[kind]}: {html.escape(url)}"
        return (
            f'<a href="{_attr(url)}" target="{_attr(self.options.link_target)}" '
            f'rel="noopener" class="external-link roam-media-embed roam-{kind}-embed">{label}</a>'
        )

    def named_embed(self, name: str, uid: Optional[str], page: Optional[str]) -> str:
        if uid:
            preview = self.options.block_previews.get(uid)
            label = html.escape(preview) if preview else f"{{{{[[{html.escape(name)}]]: (({html.escape(uid)}))}}}}"
            return (
                f'<a href="#" data-block-uid="{_attr(uid)}" class="roam-block-ref-chat roam-embed-link" '
                f'title="{BLOCK_HINT}">📄 {label}</a>'
            )
        return (
            f'<a href="#" data-page-title="{_attr(page)}" data-page-uid="{_attr(self.options.page_uids.get(page, page))}" '
            f'class="rm-page-ref rm-page-ref--link roam-embed-link" title="{PAGE_HINT}">📄 {html.escape(page)}</a>'
        )


def printer_for(dialect: Dialect, options: Optional[ConversionOptions] = None) -> InlinePrinter:
    printers = {Dialect.HTML: HtmlPrinter, Dialect.MARKDOWN: MarkdownPrinter, Dialect.OUTLINE: OutlinePrinter}
    return printers[dialect](options)


def convert_inline(
    text: str,
    source: Dialect = Dialect.MARKDOWN,
    target: Dialect = Dialect.HTML,
    options: Optional[ConversionOptions] = None,
) -> str:
    """Parse one line of inline text in the source dialect and print it in the target dialect."""
    return printer_for(target, options).render(InlineEntityParser(source).parse(text))
