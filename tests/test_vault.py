"""
Tests for the placeholder vault.
"""

from outline_bridge.core.types import ProtectedSpan, SpanKind
from outline_bridge.core.vault import (
    CODE_FENCE_PATTERN,
    IMAGE_PATTERN,
    INLINE_CODE_PATTERN,
    LINK_PATTERN,
    PlaceholderVault,
    protect,
    restore,
    strip_sentinel_marks,
)


class TestProtect:
    """Test sentinel substitution."""

    def test_match_replaced_by_sentinel(self):
        """A protected span leaves only its sentinel behind."""
        text, spans = protect("a `x` b", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        assert text == "a \ue000INLINECODE-0\ue001 b"
        assert len(spans) == 1
        assert spans[0].original_text == "`x`"
        assert spans[0].rendered_text == "`x`"

    def test_indices_are_counted_per_kind(self):
        """Indices increase within a kind and the shared counters record them."""
        counters = {}
        _, spans = protect("`a` and `b`", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN, counters=counters)
        assert [span.index for span in spans] == [0, 1]
        assert counters[SpanKind.INLINE_CODE] == 2

    def test_indentation_stays_outside_sentinel(self):
        """An indented code fence keeps its indentation so list nesting survives."""
        text = "- item\n  ```py\n  x = 1\n  ```"
        protected, spans = protect(text, SpanKind.CODE_BLOCK, CODE_FENCE_PATTERN)
        assert protected == "- item\n  " + spans[0].sentinel
        assert spans[0].original_text.startswith("```py")

    def test_render_returning_none_leaves_match(self):
        """A renderer can decline a match."""
        protected, spans = protect(
            "`a` `b`",
            SpanKind.INLINE_CODE,
            INLINE_CODE_PATTERN,
            render=lambda match: None if match.group("code") == "a" else "<code>b</code>",
        )
        assert protected == "`a` " + spans[0].sentinel
        assert spans[0].rendered_text == "<code>b</code>"

    def test_no_match_is_unchanged(self):
        """Text without matches passes through."""
        assert protect("plain text", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN) == ("plain text", [])


class TestRestore:
    """Test sentinel restoration."""

    def test_protect_restore_identity(self):
        """Restoring with the default renderer gives back the input."""
        protected, spans = protect("x `a` y `b`", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        assert restore(protected, spans) == "x `a` y `b`"

    def test_link_wrapping_image_restores_both(self):
        """A link protected after the image inside its label restores first."""
        vault = PlaceholderVault()
        source = "[![alt](https://example.com/i.png)](https://example.com)"
        text = vault.protect(source, SpanKind.LINK_OR_IMAGE, IMAGE_PATTERN)
        text = vault.protect(text, SpanKind.LINK_OR_IMAGE, LINK_PATTERN)
        assert text == "\ue000LINK-1\ue001"
        assert vault.restore(text) == source

    def test_unknown_sentinel_left_as_is(self):
        """Sentinels without a span are not touched."""
        assert restore("a \ue000LINK-7\ue001", []) == "a \ue000LINK-7\ue001"

    def test_whole_token_matching(self):
        """Index 1 never matches inside index 11."""
        first = ProtectedSpan(kind=SpanKind.LINK_OR_IMAGE, index=1, original_text="a", rendered_text="A")
        eleventh = ProtectedSpan(kind=SpanKind.LINK_OR_IMAGE, index=11, original_text="b", rendered_text="B")
        assert restore(eleventh.sentinel + first.sentinel, [first, eleventh]) == "BA"


class TestPlaceholderVault:
    """Test the vault wrapper."""

    def test_child_shares_counters(self):
        """Nested vaults never reuse an index."""
        vault = PlaceholderVault()
        vault.protect("`a`", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        child = vault.child()
        child.protect("`b`", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        assert child.spans[0].index == 1
        assert len(vault.spans) == 1

    def test_restore_empties_vault(self):
        vault = PlaceholderVault()
        text = vault.protect("`a`", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        assert vault.restore(text) == "`a`"
        assert vault.spans == []

    def test_counts_by_kind(self):
        vault = PlaceholderVault()
        vault.protect("`a` `b`", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        assert vault.counts_by_kind() == {"INLINECODE": 2}

    def test_strip_sentinel_marks(self):
        """Framing characters are removed from untrusted input."""
        assert strip_sentinel_marks("a\ue000LINK-0\ue001b") == "aLINK-0b"

    def test_resolve_maps_sentinels_to_input(self):
        """Sentinels from child vaults and sentinels nested in a link resolve back to the input text."""
        vault = PlaceholderVault()
        text = vault.protect("[[`a` ![i](https://e.com/i.png)]]", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        text = vault.protect(text, SpanKind.LINK_OR_IMAGE, IMAGE_PATTERN, lambda match: "<img>")
        child = vault.child()
        label = child.protect("[`b`](https://e.com)", SpanKind.INLINE_CODE, INLINE_CODE_PATTERN)
        label = child.protect(label, SpanKind.LINK_OR_IMAGE, LINK_PATTERN)
        assert vault.resolve(text) == "[[`a` ![i](https://e.com/i.png)]]"
        assert vault.resolve(label) == "[`b`](https://e.com)"

    def test_resolve_leaves_unknown_sentinels(self):
        assert PlaceholderVault().resolve("\ue000LINK-7\ue001") == "\ue000LINK-7\ue001"
