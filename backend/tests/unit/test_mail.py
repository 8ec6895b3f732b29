"""
Unit Tests — Mail parsing and mail text/HTML
═════════════════════════════════════════════
Tests for:
  • parse_eml       — headers, bodies, defaults, malformed input
  • parse_msg       — extract_msg mapping (extract_msg.openMsg patched)
  • extract_mail_text — four fixed header lines + body
  • render_mail_html  — escaped headers, sanitized body, body selection
  • html_to_text / text_to_html helpers
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from docconvert.conversion.errors import ExtractionFailure
from docconvert.conversion.extractors import NO_TEXT_CONTENT, extract_mail_text
from docconvert.conversion.mail import (
    MailMessage,
    html_to_text,
    parse_eml,
    parse_msg,
    text_to_html,
    wrap_text,
)
from docconvert.conversion.renderers import render_mail_html, select_mail_body
from tests.conftest import build_eml


# ─────────────────────────────────────────────────────────────────────────────
# EML
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.conversion
class TestParseEml:

    def test_headers_and_text_body(self, sample_eml_bytes):
        message = parse_eml(sample_eml_bytes)

        assert message.subject == "Quarterly report"
        assert message.from_addresses == ["Alice <alice@example.com>"]
        assert message.to_addresses == ["Bob <bob@example.com>"]
        assert message.date == datetime(1994, 11, 15, 8, 12, 31, tzinfo=timezone.utc)
        assert "the numbers are in." in message.text_body
        assert message.html_body is None

    def test_multiple_recipients(self):
        message = parse_eml(build_eml(to="Bob <bob@example.com>, carol@example.com"))
        assert message.to_display == "Bob <bob@example.com>, carol@example.com"

    def test_html_alternative_is_captured(self):
        message = parse_eml(build_eml(text="plain", html="<p>rich</p>"))
        assert message.text_body.strip() == "plain"
        assert "<p>rich</p>" in message.html_body

    def test_missing_headers_use_defaults(self):
        message = parse_eml(build_eml(subject=None, sender=None, to=None, date=None))

        assert message.subject_display == "No Subject"
        assert message.date_display == "No Date"
        assert message.from_display == ""
        assert message.to_display == ""

    def test_date_display_is_gmt(self, sample_eml_bytes):
        message = parse_eml(sample_eml_bytes)
        assert message.date_display == "Tue, 15 Nov 1994 08:12:31 GMT"

    def test_garbage_bytes_do_not_crash(self):
        """The stdlib parser is lenient: junk yields an empty message, not an exception."""
        message = parse_eml(b"\x00\x01\x02 not a mail")
        assert message.subject_display == "No Subject"


# ─────────────────────────────────────────────────────────────────────────────
# MSG
# ─────────────────────────────────────────────────────────────────────────────

def _fake_msg(**overrides):
    msg = MagicMock()
    msg.subject  = overrides.get("subject", "Outlook subject")
    msg.sender   = overrides.get("sender", "Alice <alice@example.com>")
    msg.to       = overrides.get("to", "Bob <bob@example.com>; Carol <carol@example.com>")
    msg.date     = overrides.get("date", datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))
    msg.htmlBody = overrides.get("htmlBody", b"<p>Hi <b>Bob</b></p>")
    msg.body     = overrides.get("body", "Hi Bob")
    return msg


@pytest.mark.unit
@pytest.mark.conversion
class TestParseMsg:

    def test_fields_mapped(self):
        fake = _fake_msg()
        with patch("docconvert.conversion.mail.extract_msg.openMsg", return_value=fake):
            message = parse_msg(b"msg-bytes")

        assert message.subject == "Outlook subject"
        assert message.from_addresses == ["Alice <alice@example.com>"]
        assert message.to_addresses == ["Bob <bob@example.com>", "Carol <carol@example.com>"]
        assert message.html_body == "<p>Hi <b>Bob</b></p>"
        assert message.text_body == "Hi Bob"
        fake.close.assert_called_once()

    def test_string_date_parsed(self):
        fake = _fake_msg(date="Fri, 01 Mar 2024 09:30:00 +0000")
        with patch("docconvert.conversion.mail.extract_msg.openMsg", return_value=fake):
            message = parse_msg(b"msg-bytes")
        assert message.date_display == "Fri, 01 Mar 2024 09:30:00 GMT"

    def test_open_failure_raises_extraction_failure(self):
        with patch(
            "docconvert.conversion.mail.extract_msg.openMsg",
            side_effect=ValueError("not an OLE file"),
        ):
            with pytest.raises(ExtractionFailure):
                parse_msg(b"junk")

    def test_closed_even_when_mapping_fails(self):
        fake = _fake_msg(to=12345)   # not a string → recipient split fails
        with patch("docconvert.conversion.mail.extract_msg.openMsg", return_value=fake):
            with pytest.raises(ExtractionFailure):
                parse_msg(b"msg-bytes")
        fake.close.assert_called_once()


# ─────────────────────────────────────────────────────────────────────────────
# Mail text extraction
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.conversion
class TestExtractMailText:

    def test_four_fixed_header_lines_then_body(self, sample_eml_bytes):
        text = extract_mail_text(parse_eml(sample_eml_bytes))
        lines = text.split("\n")

        assert lines[0] == "Subject: Quarterly report"
        assert lines[1] == "From: Alice <alice@example.com>"
        assert lines[2] == "To: Bob <bob@example.com>"
        assert lines[3] == "Date: Tue, 15 Nov 1994 08:12:31 GMT"
        assert lines[4] == ""
        assert "the numbers are in." in text

    def test_defaults_and_bare_labels(self):
        text = extract_mail_text(MailMessage(text_body="body"))
        assert text.startswith("Subject: No Subject\nFrom:\nTo:\nDate: No Date\n\nbody")

    def test_html_only_body_converted_to_text(self):
        message = MailMessage(html_body="<div><p>Hello <b>there</b></p><script>x()</script></div>")
        text = extract_mail_text(message)
        assert "Hello there" in text
        assert "<" not in text
        assert "x()" not in text

    def test_no_body_placeholder(self):
        assert NO_TEXT_CONTENT in extract_mail_text(MailMessage(subject="empty"))

    def test_html_body_is_wrapped(self):
        long_line = " ".join(["word"] * 100)
        text = extract_mail_text(MailMessage(html_body=f"<p>{long_line}</p>"), wrap_width=40)
        body = text.split("\n\n", 1)[1]
        assert all(len(line) <= 40 for line in body.splitlines())


# ─────────────────────────────────────────────────────────────────────────────
# Mail HTML rendition
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
@pytest.mark.conversion
class TestRenderMailHtml:

    def test_structure_and_escaped_headers(self):
        message = MailMessage(
            subject="<b>Hi</b> & welcome",
            from_addresses=["Alice <alice@example.com>"],
            to_addresses=["bob@example.com"],
            text_body="Body text",
        )
        out = render_mail_html(message)

        assert "<h2>&lt;b&gt;Hi&lt;/b&gt; &amp; welcome</h2>" in out
        assert "<h3>From: Alice &lt;alice@example.com&gt;</h3>" in out
        assert "<h3>To: bob@example.com</h3>" in out
        assert "<h3>Date: No Date</h3>" in out
        assert "Body text" in out

    def test_html_body_sanitized_before_render(self):
        message = MailMessage(
            html_body='<p>ok</p><script>steal()</script><img src="x.png" onerror="steal()">'
        )
        out = render_mail_html(message)
        assert "<script" not in out
        assert "onerror" not in out
        assert "steal()" not in out
        assert "<p>ok</p>" in out

    def test_rtf_text_body_preferred_as_text(self):
        message = MailMessage(
            text_body="{\\rtf1 some rtf}",
            html_body="<p>html version</p>",
        )
        body = select_mail_body(message)
        assert "html version" not in body
        assert body.startswith("<p>")

    def test_html_body_preferred_over_plain_text(self):
        message = MailMessage(text_body="plain", html_body="<p>rich</p>")
        assert select_mail_body(message) == "<p>rich</p>"

    def test_plain_text_body_escaped(self):
        message = MailMessage(text_body="a < b\nnext line\n\nnew paragraph")
        assert select_mail_body(message) == "<p>a &lt; b<br/>next line</p><p>new paragraph</p>"


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.unit
class TestTextHelpers:

    def test_wrap_text_collapses_blank_runs(self):
        assert wrap_text("a\n\n\n\nb") == "a\n\nb"

    def test_html_to_text_keeps_breaks(self):
        assert html_to_text("line one<br>line two") == "line one\nline two"

    def test_html_to_text_block_tags_break_lines(self):
        assert html_to_text("<p>first</p><p>second</p>").splitlines()[0] == "first"

    def test_text_to_html_empty(self):
        assert text_to_html("") == ""
