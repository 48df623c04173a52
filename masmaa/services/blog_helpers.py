"""Text helpers for blog posts: excerpts, word counts, slugs, search."""

import math
import re

_TAG_RE = re.compile(r"<[^>]*>")

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 150

ARABIC_TO_LATIN = {
    "ا": "a", "أ": "a", "إ": "i", "آ": "a",
    "ب": "b", "ت": "t", "ث": "th",
    "ج": "j", "ح": "h", "خ": "kh",
    "د": "d", "ذ": "dh", "ر": "r", "ز": "z",
    "س": "s", "ش": "sh", "ص": "s", "ض": "d",
    "ط": "t", "ظ": "z", "ع": "a", "غ": "gh",
    "ف": "f", "ق": "q", "ك": "k", "ل": "l",
    "م": "m", "ن": "n", "ه": "h", "و": "w",
    "ي": "y", "ى": "a", "ة": "h", "ئ": "e",
    "ء": "a", "ؤ": "o",
}  # fmt: skip

_ARABIC_RE = re.compile(r"[\u0600-\u06FF]")
_ALEF_VARIANTS = str.maketrans({"أ": "ا", "إ": "ا", "آ": "ا"})


def strip_html_tags(html: str) -> str:
    return _TAG_RE.sub("", html)


def generate_excerpt(html_content: str, max_length: int = EXCERPT_LENGTH) -> str:
    """Plain-text excerpt, cut back to the last space and ending in ``...``."""
    plain = strip_html_tags(html_content)
    if len(plain) <= max_length:
        return plain
    truncated = plain[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        return truncated[:last_space] + "..."
    return truncated + "..."


def count_words(html_content: str | None) -> int:
    if not html_content:
        return 0
    return len(strip_html_tags(html_content).split())


def calculate_reading_time(html_content: str | None) -> int:
    """Minutes at 200 words per minute, rounded up; never less than one."""
    return max(1, math.ceil(count_words(html_content) / WORDS_PER_MINUTE))


def slugify(text: str) -> str:
    """URL slug; Arabic letters are transliterated to Latin."""
    slug = text.lower().strip()
    slug = _ARABIC_RE.sub(lambda m: ARABIC_TO_LATIN.get(m.group(), m.group()), slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^\w-]+", "", slug, flags=re.ASCII)
    slug = re.sub(r"--+", "-", slug)
    return slug.strip("-")


def normalize_arabic_alef(text: str) -> str:
    """Fold hamza/madda alef variants to bare alef for search matching."""
    if not text:
        return text
    return text.translate(_ALEF_VARIANTS)


def matches_search(query: str, *fields: str | None) -> bool:
    """Case-insensitive substring match with Arabic alef variants folded."""
    needle = normalize_arabic_alef(query.strip().lower())
    if not needle:
        return True
    return any(
        needle in normalize_arabic_alef(field.lower()) for field in fields if field
    )
