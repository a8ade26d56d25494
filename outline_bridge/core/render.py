"""
Block rendering for the outline bridge.

Walks the block tree produced by the block parser and prints it as HTML,
markdown or outline text. Inline content of every block goes through the
inline parser of the source dialect and the inline printer of the target
dialect, so the block and inline layers never see each other's syntax.
"""

import re
from typing import Callable, Dict, List

from .blocks import Heading, ListBlock, ListItem, Paragraph, Placeholder, Quote, Rule, Table, Verbatim
from .inline import InlineEntityParser, InlinePrinter
from .tables import TableTranspiler
from .types import SENTINEL_CLOSE, SENTINEL_OPEN, ListType, SpanKind

BLOCK_TAG_PATTERN = re.compile(r"^<(?:h[1-6]|ul|ol|pre|blockquote|hr|table|div)\b")
CALLOUT_SENTINEL_PATTERN = re.compile(SENTINEL_OPEN + SpanKind.CALLOUT.value + r"-\d+" + SENTINEL_CLOSE)


def wrap_paragraph(content: str) -> str:
    """Wrap content in <p> unless it already starts with a block-level tag."""
    if not content or BLOCK_TAG_PATTERN.match(content):
        return content
    return f"<p>{content}</p>"


class BlockRenderer:
    """
    Base renderer: dispatches on block type and joins the rendered sections.

    Args:
        parser: Inline parser for the source dialect
        printer: Inline printer for the target dialect
        transpiler: Table transpiler used for table blocks
    """

    separator = "\n"

    def __init__(self, parser: InlineEntityParser, printer: InlinePrinter, transpiler: TableTranspiler):
        self.parser = parser
        self.printer = printer
        self.transpiler = transpiler
        self.handlers: Dict[type, Callable] = {
            Heading: self._render_heading,
            Rule: self._render_rule,
            Quote: self._render_quote,
            Paragraph: self._render_paragraph,
            Verbatim: self._render_verbatim,
            Placeholder: self._render_placeholder,
            Table: self._render_table,
            ListBlock: self._render_list,
        }

    def render(self, blocks: List) -> str:
        output = ""
        previous = None
        for block in blocks:
            section = self.handlers[type(block)](block)
            if not section:
                continue
            if previous is not None:
                output += self._separator_after(previous)
            output += section
            previous = block
        return output

    def _separator_after(self, block) -> str:
        return self.separator

    def inline(self, text: str) -> str:
        return self.printer.render(self.parser.parse(text))

    def _render_heading(self, block: Heading) -> str:
        return f"{'#' * block.marks} {self.inline(block.content)}"

    def _render_rule(self, block: Rule) -> str:
        return "---"

    def _render_quote(self, block: Quote) -> str:
        return "\n".join(f"> {self.inline(line)}" for line in block.lines)

    def _render_paragraph(self, block: Paragraph) -> str:
        return "\n".join(self.inline(line) for line in block.lines)

    def _render_verbatim(self, block: Verbatim) -> str:
        return "\n".join(block.lines)

    def _render_placeholder(self, block: Placeholder) -> str:
        return block.sentinel

    def _render_table(self, block: Table) -> str:
        raise NotImplementedError

    def _render_list(self, block: ListBlock) -> str:
        return "\n".join(self._list_lines(block, 0))

    def _list_lines(self, block: ListBlock, depth: int) -> List[str]:
        lines: List[str] = []
        for item in block.items:
            if item.blank_before and lines:
                lines.extend(self._blank_lines())
            lines.append(f"{'  ' * depth}{self._item_prefix(block, item)}{self.inline(item.lines[0])}".rstrip())
            lines.extend(f"{'  ' * (depth + 1)}{self.inline(line)}" for line in item.lines[1:])
            for child in item.children:
                if isinstance(child, ListBlock):
                    lines.extend(self._list_lines(child, depth + 1))
                elif isinstance(child, Table):
                    lines.extend(self._nested_table_lines(child, depth + 1))
                else:
                    lines.append(f"{'  ' * (depth + 1)}{child.sentinel}")
        return lines

    def _nested_table_lines(self, block: Table, depth: int) -> List[str]:
        return [f"{'  ' * depth}{line}" for line in self._render_table(block).split("\n")]

    def _item_prefix(self, block: ListBlock, item: ListItem) -> str:
        raise NotImplementedError

    def _blank_lines(self) -> List[str]:
        return []


class MarkdownRenderer(BlockRenderer):
    """Markdown output: blocks separated by blank lines, "-" bullets, "[ ]" tasks."""

    separator = "\n\n"

    def _render_table(self, block: Table) -> str:
        return "\n".join(self.transpiler.to_markdown(block.model, self.inline))

    def _item_prefix(self, block: ListBlock, item: ListItem) -> str:
        marker = item.marker if block.list_type == ListType.NUMBERED else "-"
        task = "" if item.task is None else ("[x] " if item.task else "[ ] ")
        return f"{marker} {task}"

    def _blank_lines(self) -> List[str]:
        return [""]


class OutlineRenderer(BlockRenderer):
    """Outline output: one line per block, numbers and task markers inside the bullet."""

    def _render_table(self, block: Table) -> str:
        return "\n".join(self.transpiler.to_outline(block.model, 0, self.inline))

    def _nested_table_lines(self, block: Table, depth: int) -> List[str]:
        return self.transpiler.to_outline(block.model, depth, self.inline)

    def _separator_after(self, block) -> str:
        # An outline callout body runs until the next blank line
        if isinstance(block, Placeholder) and CALLOUT_SENTINEL_PATTERN.fullmatch(block.sentinel):
            return "\n\n"
        return self.separator

    def _item_prefix(self, block: ListBlock, item: ListItem) -> str:
        number = f"{item.marker} " if block.list_type == ListType.NUMBERED else ""
        task = "" if item.task is None else ("{{[[DONE]]}} " if item.task else "{{[[TODO]]}} ")
        return f"- {number}{task}"


class HtmlRenderer(BlockRenderer):
    """HTML output; the result still holds sentinels and goes through restore and the sanitizer."""

    def _render_heading(self, block: Heading) -> str:
        return f"<h{block.level}>{self.inline(block.content)}</h{block.level}>"

    def _render_rule(self, block: Rule) -> str:
        return "<hr>"

    def _render_quote(self, block: Quote) -> str:
        return "<blockquote>" + "<br>".join(self.inline(line) for line in block.lines) + "</blockquote>"

    def _render_paragraph(self, block: Paragraph) -> str:
        return wrap_paragraph("<br>".join(self.inline(line) for line in block.lines))

    def _render_verbatim(self, block: Verbatim) -> str:
        return wrap_paragraph("<br>".join(self.inline(line) for line in block.lines))

    def _render_table(self, block: Table) -> str:
        return self.transpiler.to_html(block.model, self.inline)

    def _render_list(self, block: ListBlock) -> str:
        tag = block.list_type.value
        items = block.items
        # A blank line between two items ends the earlier one with a break
        rendered = [
            self._render_item(item, gap_after=index + 1 < len(items) and items[index + 1].blank_before)
            for index, item in enumerate(items)
        ]
        return f"<{tag}>" + "".join(rendered) + f"</{tag}>"

    def _render_item(self, item: ListItem, gap_after: bool = False) -> str:
        content = "<br>".join(self.inline(line) for line in item.lines)
        css = ""
        if item.task is not None:
            css = ' class="task-item"'
            checkbox = '<span class="task-checkbox task-done">☑</span>' if item.task else '<span class="task-checkbox">☐</span>'
            content = f"{checkbox} {content}"
        children = "".join(self._render_child(child) for child in item.children)
        gap = "<br>" if gap_after else ""
        return f"<li{css}>{content}{children}{gap}</li>"

    def _render_child(self, child) -> str:
        if isinstance(child, ListBlock):
            return self._render_list(child)
        if isinstance(child, Table):
            return self._render_table(child)
        return child.sentinel
