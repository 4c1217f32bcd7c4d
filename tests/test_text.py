# -*- coding: utf-8 -*-
"""
Tests for text primitives.
"""
from newsletter_parser.text import (
    count_words,
    decode_basic_entities,
    decode_extended_entities,
    generate_preview_text,
    html_to_text,
    neutralize_markup,
    normalize_whitespace,
    remove_invisible,
    strip_tags,
    truncate,
)


class TestEntities:
    """Entity decoding."""

    def test_basic_entities_single_pass(self):
        """An escaped entity is decoded only once."""
        assert decode_basic_entities("&amp;lt;b&amp;gt;") == "&lt;b&gt;"

    def test_basic_entities(self):
        assert decode_basic_entities("Tom &amp; Jerry&#39;s &quot;show&quot;") == "Tom & Jerry's \"show\""

    def test_extended_entities(self):
        assert decode_extended_entities("a&mdash;b&#8230;") == "a—b…"

    def test_unknown_entities_untouched(self):
        assert decode_basic_entities("&copy; 2024") == "&copy; 2024"


class TestMarkup:
    """Markup helpers."""

    def test_neutralize_markup(self):
        assert neutralize_markup("<script>x</script> 1 < 2") == "&lt;script>x&lt;/script> 1 < 2"

    def test_strip_tags(self):
        assert strip_tags("<p>one</p><p>two</p>") == "one two"

    def test_html_to_text_tables(self):
        html = "<table><tr><td>A</td><td>B</td></tr><tr><td>C</td></tr></table>"

        assert html_to_text(html) == "A B\n\nC"

    def test_html_to_text_drops_comments_and_head(self):
        html = "<head><title>T</title></head><!-- hidden --><p>Body</p>"

        assert html_to_text(html) == "Body"

    def test_html_to_text_empty(self):
        assert html_to_text("") == ""


class TestWhitespace:
    """Whitespace and invisible characters."""

    def test_normalize_whitespace(self):
        text = "  a \t b  \r\n\n\n\n  c d  "

        assert normalize_whitespace(text) == "a b\n\nc d"

    def test_remove_invisible(self):
        assert remove_invisible("a\u200bb\u00adc&zwj;d&#8203;e\ufeff") == "abcde"


class TestCounting:
    """Word counts and previews."""

    def test_count_words(self):
        assert count_words("<p>one two</p><p>three</p>") == 3

    def test_count_words_empty(self):
        assert count_words("") == 0

    def test_truncate(self):
        assert truncate("abcdef", 3) == "abc..."
        assert truncate("abc", 3) == "abc"

    def test_generate_preview_text(self):
        assert generate_preview_text("word " * 100, 20) == "word word word word..."

    def test_generate_preview_text_short(self):
        assert generate_preview_text("short text", 20) == "short text"
