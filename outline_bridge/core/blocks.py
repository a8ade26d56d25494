"""
Block structure parsing.

A line-oriented pass that turns protected text into block nodes: headings,
rules, quotes, paragraphs, placeholder lines for protected blocks, tables and
nested lists. List nesting is driven by an explicit stack of ListFrame
entries; every frame is closed, innermost first, when a non-list line or the
end of input is reached.
"""

import re
from typing import List, Optional, Tuple

from .tables import TABLE_MARKER_PATTERN, TableTranspiler
from .types import SENTINEL_CLOSE, SENTINEL_OPEN, ConversionOptions, Dialect, ListFrame, ListType, TableModel

MARKDOWN_ITEM_PATTERN = re.compile(r"^(?P<indent>[ \t]*)(?P<marker>[-*•]|\d+[.)])[ \t]+(?P<content>.*\S.*)$")
OUTLINE_ITEM_PATTERN = re.compile(r"^(?P<indent>[ \t]*)-(?:[ \t]+(?P<content>.*))?$")
NUMBER_PREFIX_PATTERN = re.compile(r"^(?P<marker>\d+[.)])[ \t]+(?P<content>.*)$")
MARKDOWN_TASK_PATTERN = re.compile(r"^\[(?P<state>[ xX])\][ \t]+")
OUTLINE_TASK_PATTERN = re.compile(r"^\{\{\[\[(?P<state>TODO|DONE)\]\]\}\}[ \t]*")
HEADING_PATTERN = re.compile(r"^(?P<marks>#{1,6})[ \t]+(?P<content>\S.*)$")
RULE_PATTERN = re.compile(r"^([-*_])\1{2,}$")
QUOTE_PATTERN = re.compile(r"^>[ \t]?(?P<content>.*)$")
PLACEHOLDER_LINE_PATTERN = re.compile(SENTINEL_OPEN + r"(?:CODEBLOCK|CALLOUT)-\d+" + SENTINEL_CLOSE)
_LEADING_WHITESPACE = re.compile(r"^[ \t]*")


class Heading:
    def __init__(self, marks: int, content: str):
        self.marks = marks
        self.content = content

    @property
    def level(self) -> int:
        """HTML heading level; "#" and "##" both render as h2."""
        return max(2, self.marks)


class Rule:
    pass


class Quote:
    def __init__(self, lines: List[str]):
        self.lines = lines


class Paragraph:
    def __init__(self, lines: List[str]):
        self.lines = lines


class Verbatim:
    """Lines that looked like a table but did not parse; printed unchanged."""

    def __init__(self, lines: List[str]):
        self.lines = lines


class Placeholder:
    """A line holding only a protected code block or callout sentinel."""

    def __init__(self, sentinel: str):
        self.sentinel = sentinel


class Table:
    def __init__(self, model: TableModel):
        self.model = model


class ListItem:
    def __init__(self, marker: str, content: str, task: Optional[bool] = None, blank_before: bool = False):
        self.marker = marker
        self.lines = [content]
        self.task = task
        self.blank_before = blank_before
        self.children: List = []


class ListBlock:
    def __init__(self, list_type: ListType):
        self.list_type = list_type
        self.items: List[ListItem] = []


class _OpenList:
    __slots__ = ("frame", "block")

    def __init__(self, frame: ListFrame, block: ListBlock):
        self.frame = frame
        self.block = block


class _BlockBuilder:
    """Mutable state of one parse: finished blocks, the list stack and open buffers."""

    def __init__(self):
        self.blocks: List = []
        self.stack: List[_OpenList] = []
        self.paragraph: List[str] = []
        self.quote: List[str] = []
        self.pending_blank = False

    def flush_text(self):
        if self.paragraph:
            self.blocks.append(Paragraph(self.paragraph))
            self.paragraph = []
        lines = [line for line in self.quote if line.strip()]
        if lines:
            self.blocks.append(Quote(lines))
        self.quote = []

    def close_lists(self):
        while self.stack:
            self.stack.pop()
        self.pending_blank = False

    def emit(self, block):
        self.close_lists()
        self.flush_text()
        self.blocks.append(block)

    def add_paragraph_line(self, line: str):
        self.close_lists()
        if self.quote:
            self.flush_text()
        self.paragraph.append(line)

    def add_quote_line(self, line: str):
        self.close_lists()
        if self.paragraph:
            self.flush_text()
        self.quote.append(line)

    def blank_line(self):
        if self.stack:
            self.pending_blank = True
        else:
            self.flush_text()

    def add_item(self, level: int, list_type: ListType, marker: str, content: str, task: Optional[bool]):
        self.flush_text()
        while self.stack and self.stack[-1].frame.indent_level > level:
            self.stack.pop()

        top = self.stack[-1] if self.stack else None
        if top is None or top.frame.indent_level < level:
            self._open(level, list_type)
        elif top.frame.list_type != list_type:
            self.stack.pop()
            self._open(level, list_type)

        item = ListItem(marker, content, task, blank_before=self.pending_blank)
        self.pending_blank = False
        self.stack[-1].block.items.append(item)

    def _open(self, level: int, list_type: ListType):
        block = ListBlock(list_type)
        if self.stack:
            self.stack[-1].block.items[-1].children.append(block)
        else:
            self.blocks.append(block)
        self.stack.append(_OpenList(ListFrame(indent_level=level, list_type=list_type), block))

    def attach_child(self, level: int, block) -> bool:
        """
        Hang a block under the last list item of a frame shallower than level.

        Frames at or below the block's level are closed first, so later items
        at that level open a new list after the block.
        """
        while self.stack and self.stack[-1].frame.indent_level >= level:
            self.stack.pop()
        if not self.stack:
            return False
        self.stack[-1].block.items[-1].children.append(block)
        self.pending_blank = False
        return True

    def continue_item(self, line: str) -> bool:
        if not self.stack:
            return False
        self.stack[-1].block.items[-1].lines.append(line)
        return True

    def finish(self) -> List:
        self.close_lists()
        self.flush_text()
        return self.blocks


class BlockStructureParser:
    """
    Parses text of one source dialect into block nodes.

    Markdown lists use "-", "*", "•" bullets and "1." / "1)" numbers; the
    outline dialect uses "- " bullets for every block and keeps numbers and
    task markers inside the bullet text.
    """

    def __init__(
        self,
        dialect: Dialect = Dialect.MARKDOWN,
        options: Optional[ConversionOptions] = None,
        transpiler: Optional[TableTranspiler] = None,
    ):
        self.dialect = dialect
        self.options = options or ConversionOptions()
        self.transpiler = transpiler or TableTranspiler()

    def indent_level(self, indent: str) -> int:
        """Tabs expand to tab_width spaces; levels round down to whole indent units."""
        width = len(indent.replace("\t", " " * self.options.tab_width))
        return width // self.options.indent_unit

    def parse(self, text: str) -> List:
        if self.dialect == Dialect.OUTLINE:
            return self._parse_outline(text.split("\n"))
        return self._parse_markdown(text.split("\n"))

    def _parse_markdown(self, lines: List[str]) -> List:
        builder = _BlockBuilder()
        index = 0
        while index < len(lines):
            line = lines[index]
            stripped = line.strip()
            index += 1

            if not stripped:
                builder.blank_line()
                continue

            if stripped.startswith("|"):
                end = index
                while end < len(lines) and lines[end].strip().startswith("|"):
                    end += 1
                run = [stripped] + [candidate.strip() for candidate in lines[index:end]]
                model = self.transpiler.parse_markdown(run)
                level = self.indent_level(_LEADING_WHITESPACE.match(line).group(0))
                if not model:
                    builder.emit(Verbatim(run))
                elif not builder.attach_child(level, Table(model)):
                    builder.emit(Table(model))
                index = end
                continue

            item = MARKDOWN_ITEM_PATTERN.match(line)
            if RULE_PATTERN.match(stripped.replace(" ", "")):
                builder.emit(Rule())
            elif item:
                marker = item.group("marker")
                content = item.group("content").strip()
                task = None
                task_match = MARKDOWN_TASK_PATTERN.match(content)
                if task_match:
                    task = task_match.group("state") != " "
                    content = content[task_match.end():]
                list_type = ListType.NUMBERED if marker[0].isdigit() else ListType.BULLET
                builder.add_item(self.indent_level(item.group("indent")), list_type, marker, content, task)
            elif PLACEHOLDER_LINE_PATTERN.fullmatch(stripped):
                self._placeholder(builder, line, stripped)
            else:
                self._plain_line(builder, stripped)
        return builder.finish()

    def _parse_outline(self, lines: List[str]) -> List:
        builder = _BlockBuilder()
        index = 0
        while index < len(lines):
            line = lines[index]
            stripped = line.strip()
            index += 1

            if not stripped:
                builder.blank_line()
                continue

            level = self.indent_level(_LEADING_WHITESPACE.match(line).group(0))
            item = OUTLINE_ITEM_PATTERN.match(line)

            if TABLE_MARKER_PATTERN.search(stripped):
                end, descendants = self._outline_descendants(lines, index, level)
                model = self.transpiler.parse_outline(descendants, base_level=level)
                if not model:
                    builder.emit(Verbatim(lines[index - 1:end]))
                elif not builder.attach_child(level, Table(model)):
                    builder.emit(Table(model))
                index = end
            elif item:
                content = (item.group("content") or "").strip()
                marker = "-"
                list_type = ListType.BULLET
                number = NUMBER_PREFIX_PATTERN.match(content)
                if number:
                    marker = number.group("marker")
                    content = number.group("content")
                    list_type = ListType.NUMBERED
                task = None
                task_match = OUTLINE_TASK_PATTERN.match(content)
                if task_match:
                    task = task_match.group("state") == "DONE"
                    content = content[task_match.end():]
                builder.add_item(level, list_type, marker, content, task)
            elif PLACEHOLDER_LINE_PATTERN.fullmatch(stripped):
                self._placeholder(builder, line, stripped)
            elif level > 0 and builder.continue_item(stripped):
                continue
            elif RULE_PATTERN.match(stripped):
                builder.emit(Rule())
            else:
                heading = HEADING_PATTERN.match(stripped)
                quote = QUOTE_PATTERN.match(stripped)
                if heading:
                    builder.emit(Heading(len(heading.group("marks")), heading.group("content").strip()))
                elif quote:
                    builder.add_quote_line(quote.group("content"))
                else:
                    # Each top-level outline line is a block of its own
                    builder.emit(Paragraph([stripped]))
        return builder.finish()

    def _outline_descendants(self, lines: List[str], start: int, level: int) -> Tuple[int, List[Tuple[int, str]]]:
        """Collect the lines nested under the table marker at the given level."""
        descendants: List[Tuple[int, str]] = []
        end = start
        while end < len(lines):
            line = lines[end]
            if not line.strip():
                end += 1
                continue
            depth = self.indent_level(_LEADING_WHITESPACE.match(line).group(0))
            if depth <= level:
                break
            item = OUTLINE_ITEM_PATTERN.match(line)
            descendants.append((depth, (item.group("content") or "") if item else line.strip()))
            end += 1
        return end, descendants

    def _placeholder(self, builder: _BlockBuilder, line: str, sentinel: str):
        level = self.indent_level(_LEADING_WHITESPACE.match(line).group(0))
        if not builder.attach_child(level, Placeholder(sentinel)):
            builder.emit(Placeholder(sentinel))

    def _plain_line(self, builder: _BlockBuilder, stripped: str):
        heading = HEADING_PATTERN.match(stripped)
        quote = QUOTE_PATTERN.match(stripped)
        if heading:
            builder.emit(Heading(len(heading.group("marks")), heading.group("content").strip()))
        elif quote:
            builder.add_quote_line(quote.group("content"))
        else:
            builder.add_paragraph_line(stripped)
