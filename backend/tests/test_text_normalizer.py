"""
Test suite for text normalization (plain text and HTML email bodies).
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from evidence.utils.text import looks_like_html, normalize, strip_html, unescape_entities


class TestHtmlDetection:

    def test_html_tags_detected(self):
        assert looks_like_html("<p>Total</p>")
        assert looks_like_html("<!DOCTYPE html><html></html>")
        assert looks_like_html("Line one<br>Line two")

    def test_email_address_is_not_html(self):
        assert not looks_like_html("From: Shop <orders@shop.com>\nTotal: $5.00")

    def test_plain_text(self):
        assert not looks_like_html("Total: $5.00")


class TestEntitiesAndTags:

    def test_unescape_amp_last(self):
        assert unescape_entities("&amp;lt;") == "&lt;"
        assert unescape_entities("Ben &amp; Jerry&#39;s") == "Ben & Jerry's"

    def test_strip_html_removes_style_and_script(self):
        html = "<style>p { color: red; }</style><script>var x = 1;</script><p>Hi&nbsp;there</p>"
        assert strip_html(html) == "Hi there"

    def test_normalized_view_collapses_whitespace(self):
        assert normalize("<p>Total:&nbsp;<b>$11.00</b></p>").normalized_text == "Total: $11.00"


class TestNormalize:

    def test_plain_text_keeps_lines(self):
        views = normalize("Line one\n\n\n   Line   two  ")
        assert views.text == "Line one\n\nLine two"
        assert views.normalized_text == "Line one Line two"

    def test_crlf_normalized(self):
        assert normalize("a\r\nb").text == "a\nb"

    def test_html_table_row_on_one_line(self):
        html = "<table><tr><td>Widget</td><td>$5.00</td></tr></table>"
        text = normalize(html).text
        assert "Widget" in text
        assert "$5.00" in text
        assert "|" not in text
        assert "---" not in text

    def test_br_separates_lines(self):
        views = normalize("Date: 6 Jan 2026<br>\nFrom: Acme<br>\n<p>Total: $5.00</p>")
        lines = views.text.split('\n')
        assert "From: Acme" in lines
        assert "Total: $5.00" in lines

    def test_html_entities_decoded_once(self):
        views = normalize("<p>R&amp;amp;D Supplies</p>")
        assert "R&amp;D Supplies" in views.text.split('\n')

    def test_plain_text_entities_decoded(self):
        assert normalize("Ben &amp; Jerry&#39;s").text == "Ben & Jerry's"

    def test_empty_input(self):
        views = normalize('')
        assert views.text == ''
        assert views.normalized_text == ''
