"""
Unit Tests — HTML Sanitizer
════════════════════════════
Mail bodies are attacker-controlled. These tests pin down what survives
MAIL_POLICY and what strip_tags leaves behind.
"""

from __future__ import annotations

import pytest

from docconvert.conversion.sanitize import MAIL_POLICY, sanitize_html, strip_tags


@pytest.mark.unit
@pytest.mark.conversion
class TestMailPolicy:

    def test_script_removed_with_content(self):
        out = sanitize_html("<p>hi</p><script>alert('x')</script>")
        assert "<script" not in out
        assert "alert" not in out
        assert "<p>hi</p>" in out

    def test_event_handler_attributes_dropped(self):
        out = sanitize_html('<img src="https://example.com/a.png" onerror="alert(1)" alt="a">')
        assert "onerror" not in out
        assert 'src="https://example.com/a.png"' in out
        assert 'alt="a"' in out

    def test_javascript_url_dropped(self):
        out = sanitize_html('<a href="javascript:alert(1)">click</a>')
        assert "javascript" not in out
        assert "click" in out

    @pytest.mark.parametrize(
        "href",
        [
            "java&#9;script:alert(1)",
            "jav&#10;ascript:alert(1)",
            " &#13;javascript:alert(1)",
            "JaVaScRiPt:alert(1)",
        ],
    )
    def test_obfuscated_javascript_url_dropped(self, href):
        out = sanitize_html(f'<a href="{href}">click</a>')
        assert "script:" not in out
        assert "href" not in out
        assert "click" in out

    def test_allowed_link_attributes_kept(self):
        out = sanitize_html('<a href="mailto:bob@example.com" target="_blank" class="x">Bob</a>')
        assert 'href="mailto:bob@example.com"' in out
        assert 'target="_blank"' in out
        assert "class=" not in out

    def test_relative_url_kept(self):
        out = sanitize_html('<a href="/docs/page">docs</a>')
        assert 'href="/docs/page"' in out

    def test_disallowed_tag_unwrapped_text_kept(self):
        out = sanitize_html("<font color='red'>warning</font>")
        assert "<font" not in out
        assert "warning" in out

    def test_iframe_and_form_unwrapped(self):
        out = sanitize_html('<form action="x"><iframe src="https://evil"></iframe>text</form>')
        assert "<form" not in out
        assert "<iframe" not in out
        assert "text" in out

    def test_style_tag_dropped_with_content(self):
        out = sanitize_html("<style>body{display:none}</style><div>body</div>")
        assert "display:none" not in out
        assert "<div>body</div>" in out

    def test_inline_style_filtered(self):
        out = sanitize_html(
            '<p style="color:#ff0000; position:fixed; text-align:center; font-size:12px">x</p>'
        )
        assert "position" not in out
        assert "color:#ff0000" in out
        assert "text-align:center" in out
        assert "font-size:12px" in out

    def test_style_with_nothing_allowed_removed(self):
        out = sanitize_html('<p style="background:url(javascript:x)">x</p>')
        assert "style=" not in out

    def test_comments_removed(self):
        out = sanitize_html("<p>a<!-- secret --></p>")
        assert "secret" not in out

    def test_policy_includes_mail_extras(self):
        for tag in ("img", "p", "div", "br"):
            assert tag in MAIL_POLICY.allowed_tags

    def test_empty_input(self):
        assert sanitize_html("") == ""


@pytest.mark.unit
@pytest.mark.conversion
class TestStripTags:

    def test_all_markup_removed(self):
        out = strip_tags("<div><b>Bold</b> and <i>italic</i></div>")
        assert "<" not in out.replace("&lt;", "")
        assert "Bold and italic" in out

    def test_script_text_not_kept(self):
        out = strip_tags("<p>visible</p><script>var hidden = 1;</script>")
        assert "visible" in out
        assert "hidden" not in out
