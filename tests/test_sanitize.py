"""
Tests for the allow-list HTML sanitizer.
"""

import pytest

from outline_bridge.core.sanitize import Sanitizer, is_safe_uri, sanitize_html


class TestTagsAndContent:
    """Test tag filtering."""

    def test_script_removed_with_content(self):
        assert sanitize_html("<script>alert(1)</script><p>ok</p>") == "<p>ok</p>"

    @pytest.mark.parametrize("tag", ["style", "iframe", "textarea", "noscript"])
    def test_dangerous_containers_removed_with_content(self, tag):
        assert sanitize_html(f"a<{tag}>hidden</{tag}>b") == "ab"

    def test_unknown_tags_unwrapped(self):
        assert sanitize_html("<div>hi <b>there</b></div>") == "hi there"

    def test_comments_removed(self):
        assert sanitize_html("a<!-- note -->b") == "ab"

    def test_allowed_structure_kept(self):
        markup = '<ul><li class="task-item">x</li></ul><table class="markdown-table"><tr><td>1</td></tr></table>'
        assert sanitize_html(markup) == markup

    def test_text_is_escaped(self):
        assert sanitize_html("a < b & c") == "a &lt; b &amp; c"

    def test_escaped_markup_stays_text(self):
        assert sanitize_html("<code>&lt;script&gt;</code>") == "<code>&lt;script&gt;</code>"


class TestBalance:
    """Test tree repair."""

    def test_unclosed_tags_closed_at_end(self):
        assert sanitize_html("<p><strong>x") == "<p><strong>x</strong></p>"

    def test_stray_end_tag_dropped(self):
        assert sanitize_html("x</ul></li>") == "x"

    def test_mismatched_end_closes_inner_tags(self):
        assert sanitize_html("<ul><li>a</ul>") == "<ul><li>a</li></ul>"

    def test_void_tags(self):
        assert sanitize_html("a<br>b<hr>") == "a<br>b<hr>"


class TestAttributes:
    """Test attribute filtering."""

    def test_event_handlers_dropped(self):
        assert sanitize_html('<img src="x.png" onerror="alert(1)">') == '<img src="x.png">'
        assert sanitize_html('<p onclick="x()">t</p>') == "<p>t</p>"

    def test_javascript_uri_dropped(self):
        assert sanitize_html('<a href="javascript:alert(1)">x</a>') == "<a>x</a>"
        assert sanitize_html('<a href=" JaVaScRiPt:alert(1)">x</a>') == "<a>x</a>"

    def test_data_uri_image_dropped(self):
        assert sanitize_html('<img src="data:image/png;base64,AAAA">') == "<img>"

    def test_target_gains_rel(self):
        assert (
            sanitize_html('<a href="https://example.com" target="_blank">x</a>')
            == '<a href="https://example.com" target="_blank" rel="noopener">x</a>'
        )

    def test_data_attributes_kept(self):
        markup = '<a href="#" data-page-title="P" data-page-uid="u" data-block-uid="b">x</a>'
        assert sanitize_html(markup) == markup

    def test_unsafe_style_dropped(self):
        assert sanitize_html('<span style="background: url(evil)">x</span>') == "<span>x</span>"
        assert sanitize_html('<th style="text-align: center">A</th>') == '<th style="text-align: center">A</th>'

    def test_attribute_values_escaped(self):
        assert sanitize_html('<span title="a &quot;b&quot;">x</span>') == '<span title="a &quot;b&quot;">x</span>'


class TestSafeUri:
    """Test URI scheme checks."""

    @pytest.mark.parametrize("uri", ["https://example.com", "http://x", "mailto:a@b.c", "#", "/relative", "page.html"])
    def test_safe(self, uri):
        assert is_safe_uri(uri)

    @pytest.mark.parametrize("uri", ["javascript:alert(1)", "vbscript:x", "data:text/html,x", "java\tscript:x"])
    def test_unsafe(self, uri):
        assert not is_safe_uri(uri)

    def test_custom_allow_list(self):
        sanitizer = Sanitizer(allowed_tags=frozenset({"p"}))
        assert sanitizer.sanitize("<p><strong>x</strong></p>") == "<p>x</p>"
