"""Tests for blog text helpers."""

from masmaa.services.blog_helpers import (
    calculate_reading_time,
    count_words,
    generate_excerpt,
    matches_search,
    normalize_arabic_alef,
    slugify,
    strip_html_tags,
)


class TestExcerpt:
    def test_short_content_returned_as_plain_text(self):
        assert generate_excerpt("<p>Hello <strong>world</strong></p>") == "Hello world"

    def test_long_content_cut_at_word_boundary(self):
        text = "<p>" + " ".join(["word"] * 60) + "</p>"
        excerpt = generate_excerpt(text)
        assert excerpt.endswith("...")
        assert len(excerpt) <= 153
        assert not excerpt[:-3].endswith(" ")

    def test_no_space_truncates_hard(self):
        excerpt = generate_excerpt("x" * 200, max_length=10)
        assert excerpt == "x" * 10 + "..."


class TestWordCount:
    def test_tags_are_not_words(self):
        assert count_words("<p>one <em>two</em></p><p>three</p>") == 3

    def test_empty(self):
        assert count_words(None) == 0
        assert count_words("") == 0

    def test_strip_html_tags(self):
        assert strip_html_tags('<a href="x">link</a> text') == "link text"


class TestReadingTime:
    def test_minimum_one_minute(self):
        assert calculate_reading_time("") == 1
        assert calculate_reading_time("<p>short</p>") == 1

    def test_rounds_up(self):
        assert calculate_reading_time(" ".join(["w"] * 200)) == 1
        assert calculate_reading_time(" ".join(["w"] * 201)) == 2


class TestSlugify:
    def test_latin(self):
        assert slugify("  Hello, World!  ") == "hello-world"

    def test_collapses_dashes(self):
        assert slugify("a -- b") == "a-b"

    def test_arabic_transliterated(self):
        assert slugify("مرحبا بكم") == "mrhba-bkm"

    def test_shadda_and_unknown_marks_dropped(self):
        assert slugify("شّ") == "sh"


class TestSearch:
    def test_alef_variants_fold(self):
        assert normalize_arabic_alef("أحمد إبراهيم آمن") == "احمد ابراهيم امن"

    def test_matches_case_insensitive(self):
        assert matches_search("HELLO", "say hello there")

    def test_matches_arabic_with_hamza_variant(self):
        assert matches_search("احمد", "مقال أحمد")

    def test_blank_query_matches_everything(self):
        assert matches_search("  ", None)

    def test_no_match(self):
        assert not matches_search("absent", "title", None)
