"""
Tests for block structure parsing.
"""

from outline_bridge.core.blocks import (
    BlockStructureParser,
    Heading,
    ListBlock,
    Paragraph,
    Placeholder,
    Quote,
    Rule,
    Table,
    Verbatim,
)
from outline_bridge.core.types import SENTINEL_CLOSE, SENTINEL_OPEN, ConversionOptions, Dialect, ListType

CODE_SENTINEL = SENTINEL_OPEN + "CODEBLOCK-0" + SENTINEL_CLOSE


def parse(text: str, options: ConversionOptions = None):
    return BlockStructureParser(Dialect.MARKDOWN, options).parse(text)


def parse_outline(text: str, options: ConversionOptions = None):
    return BlockStructureParser(Dialect.OUTLINE, options).parse(text)


class TestMarkdownLists:
    """Test the list frame stack."""

    def test_nested_bullet(self):
        blocks = parse("- item1\n  - item2")
        assert len(blocks) == 1
        outer = blocks[0]
        assert isinstance(outer, ListBlock)
        assert outer.items[0].lines == ["item1"]
        inner = outer.items[0].children[0]
        assert isinstance(inner, ListBlock)
        assert inner.items[0].lines == ["item2"]

    def test_shallower_item_pops_deeper_frames(self):
        """Level 2 then level 1 opens a new level-1 list under the same parent."""
        blocks = parse("- a\n    - b\n  - c")
        parent = blocks[0].items[0]
        assert len(parent.children) == 2
        assert parent.children[0].items[0].lines == ["b"]
        assert parent.children[1].items[0].lines == ["c"]

    def test_type_switch_at_same_level_closes_and_reopens(self):
        blocks = parse("- a\n1. b")
        assert [block.list_type for block in blocks] == [ListType.BULLET, ListType.NUMBERED]

    def test_numbered_markers_kept(self):
        blocks = parse("1. one\n2) two")
        assert [item.marker for item in blocks[0].items] == ["1.", "2)"]

    def test_alternative_bullets(self):
        blocks = parse("* a\n• b\n- c")
        assert len(blocks) == 1
        assert len(blocks[0].items) == 3

    def test_blank_line_is_soft_break(self):
        blocks = parse("- a\n\n- b")
        assert len(blocks) == 1
        assert blocks[0].items[1].blank_before is True

    def test_text_line_closes_lists(self):
        blocks = parse("- a\n  - b\ntext")
        assert isinstance(blocks[0], ListBlock)
        assert isinstance(blocks[1], Paragraph)
        assert blocks[1].lines == ["text"]

    def test_task_items(self):
        blocks = parse("- [ ] todo\n- [x] done\n- plain")
        assert [item.task for item in blocks[0].items] == [False, True, None]
        assert blocks[0].items[0].lines == ["todo"]

    def test_tab_expands_to_tab_width(self):
        blocks = parse("- a\n\t- b")
        assert isinstance(blocks[0].items[0].children[0], ListBlock)

    def test_indentation_rounds_down(self):
        """Three spaces is level 1, one space is level 0."""
        nested = parse("- a\n   - b")
        assert isinstance(nested[0].items[0].children[0], ListBlock)
        flat = parse("- a\n - b")
        assert len(flat[0].items) == 2

    def test_custom_indent_unit(self):
        blocks = parse("- a\n  - b", ConversionOptions(indent_unit=4))
        assert len(blocks[0].items) == 2

    def test_indented_placeholder_attaches_to_item(self):
        blocks = parse("- item\n  " + CODE_SENTINEL + "\n- next")
        assert len(blocks) == 1
        first = blocks[0].items[0]
        assert isinstance(first.children[0], Placeholder)
        assert first.children[0].sentinel == CODE_SENTINEL
        assert blocks[0].items[1].lines == ["next"]

    def test_indented_table_attaches_to_item(self):
        blocks = parse("- parent\n  | A | B |\n  | --- | --- |\n  | 1 | 2 |\n  - after")
        assert len(blocks) == 1
        parent = blocks[0].items[0]
        assert [type(child) for child in parent.children] == [Table, ListBlock]
        assert parent.children[0].model.rows == [["1", "2"]]
        assert parent.children[1].items[0].lines == ["after"]


class TestMarkdownBlocks:
    """Test non-list blocks."""

    def test_headings_map_to_levels(self):
        blocks = parse("# One\n## Two\n### Three")
        assert [block.level for block in blocks] == [2, 2, 3]
        assert blocks[0].content == "One"
        assert isinstance(blocks[0], Heading)

    def test_rules(self):
        blocks = parse("---\n***\n___\n* * *")
        assert all(isinstance(block, Rule) for block in blocks)
        assert len(blocks) == 4

    def test_quote_folds_lines_and_drops_empty(self):
        blocks = parse("> a\n>\n> b")
        assert len(blocks) == 1
        assert isinstance(blocks[0], Quote)
        assert blocks[0].lines == ["a", "b"]

    def test_paragraphs(self):
        blocks = parse("one\ntwo\n\nthree")
        assert [block.lines for block in blocks] == [["one", "two"], ["three"]]

    def test_standalone_placeholder(self):
        blocks = parse("text\n" + CODE_SENTINEL + "\nmore")
        assert isinstance(blocks[1], Placeholder)
        assert len(blocks) == 3

    def test_pipe_table(self):
        blocks = parse("intro\n| A | B |\n| - | - |\n| 1 | 2 |\noutro")
        assert isinstance(blocks[1], Table)
        assert blocks[1].model.header_cells == ["A", "B"]
        assert isinstance(blocks[2], Paragraph)

    def test_malformed_table_passes_through(self):
        blocks = parse("| A | B |\n| 1 | 2 |")
        assert isinstance(blocks[0], Verbatim)
        assert blocks[0].lines == ["| A | B |", "| 1 | 2 |"]


class TestOutlineSource:
    """Test parsing of the outliner's bullet format."""

    def test_bullets_numbers_and_tasks(self):
        blocks = parse_outline("- a\n  - b\n- 1. first\n- {{[[TODO]]}} task")
        assert [block.list_type for block in blocks] == [ListType.BULLET, ListType.NUMBERED, ListType.BULLET]
        assert blocks[0].items[0].children[0].items[0].lines == ["b"]
        assert blocks[1].items[0].marker == "1."
        assert blocks[1].items[0].lines == ["first"]
        assert blocks[2].items[0].task is False
        assert blocks[2].items[0].lines == ["task"]

    def test_indented_plain_line_continues_item(self):
        blocks = parse_outline("- first line\n  second line")
        assert blocks[0].items[0].lines == ["first line", "second line"]

    def test_top_level_lines_are_separate_blocks(self):
        blocks = parse_outline("Intro\nMore\n## Title\n---")
        assert [type(block) for block in blocks] == [Paragraph, Paragraph, Heading, Rule]

    def test_table_block(self):
        blocks = parse_outline("- {{[[table]]}}\n  - **A**\n    - **B**\n  - 1\n    - 2\nAfter")
        assert isinstance(blocks[0], Table)
        assert blocks[0].model.header_cells == ["A", "B"]
        assert blocks[0].model.rows == [["1", "2"]]
        assert blocks[1].lines == ["After"]

    def test_empty_table_passes_through(self):
        blocks = parse_outline("- {{[[table]]}}\nAfter")
        assert isinstance(blocks[0], Verbatim)
        assert blocks[0].lines == ["- {{[[table]]}}"]

    def test_nested_table_block_keeps_siblings(self):
        blocks = parse_outline("- parent\n  - {{[[table]]}}\n    - **A**\n      - **B**\n    - 1\n      - 2\n  - after")
        assert len(blocks) == 1
        parent = blocks[0].items[0]
        assert [type(child) for child in parent.children] == [Table, ListBlock]
        assert parent.children[0].model.header_cells == ["A", "B"]
        assert parent.children[1].items[0].lines == ["after"]
