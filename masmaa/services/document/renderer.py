"""Render persisted post markup for display.

The markup is trusted (it was written by an admin) and is not validated or
sanitized here. Rendering runs a fixed sequence of passes over the parsed
markup:

1. wrap the content in the prose container carrying the base direction;
2. hydrate HTML embeds from their ``data-embed-code`` payload;
3. rebuild the references block from the footnote markers;
4. re-create every ``<script>`` element, once the structure has settled, so
   the browser executes scripts that arrived through HTML injection.

Each pass only touches its own subtree; a broken embed leaves that embed
empty and the rest of the document renders normally.
"""

import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

REFERENCES_TITLE = {"en": "References", "ar": "المراجع"}

PROSE_CLASSES = ["prose", "prose-lg", "max-w-none"]


@dataclass
class FootnoteEntry:
    number: int
    text: str


@dataclass
class ScriptRecord:
    """A re-created ``<script>`` element."""

    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""
    in_embed: bool = False

    @property
    def src(self) -> str | None:
        return self.attrs.get("src")


@dataclass
class RenderedDocument:
    html: str
    footnotes: list[FootnoteEntry] = field(default_factory=list)
    scripts: list[ScriptRecord] = field(default_factory=list)
    embed_count: int = 0


def _build_wrapper(soup: BeautifulSoup, is_rtl: bool) -> Tag:
    classes = PROSE_CLASSES + (["prose-rtl"] if is_rtl else [])
    wrapper = soup.new_tag("div", attrs={"class": " ".join(classes)})
    wrapper["dir"] = "rtl" if is_rtl else "ltr"

    nodes = list(soup.contents)
    # Re-rendering earlier output: read the previous wrapper's children.
    tags = [n for n in nodes if isinstance(n, Tag)]
    if (
        len(tags) == 1
        and tags[0].name == "div"
        and "prose" in (tags[0].get("class") or [])
    ):
        nodes = list(tags[0].contents)

    for node in nodes:
        wrapper.append(node.extract())
    soup.clear()
    soup.append(wrapper)
    return wrapper


def hydrate_embeds(root: Tag) -> int:
    """Inject each embed's raw payload into its content container.

    Returns the number of embeds hydrated.
    """
    hydrated = 0
    for wrapper in root.select("[data-html-embed]"):
        embed_code = wrapper.get("data-embed-code")
        container = wrapper.select_one(".html-embed-content")
        if not embed_code or container is None:
            continue
        container.clear()
        try:
            fragment = BeautifulSoup(embed_code, "html.parser")
            for node in list(fragment.contents):
                container.append(node.extract())
        except Exception:
            logger.warning("Could not hydrate HTML embed", exc_info=True)
            container.clear()
            continue
        hydrated += 1
    return hydrated


def collect_footnotes(root: Tag) -> list[FootnoteEntry]:
    """Footnote markers carrying both a number and text, ascending by number."""
    entries = []
    for marker in root.select("[data-footnote]"):
        number = marker.get("data-footnote-number")
        text = marker.get("data-footnote-text")
        if not number or not text:
            continue
        try:
            entries.append(FootnoteEntry(number=int(number), text=text))
        except ValueError:
            logger.debug("Skipping footnote with number %r", number)
    entries.sort(key=lambda e: e.number)
    return entries


def rebuild_footnotes(soup: BeautifulSoup, root: Tag, is_rtl: bool) -> list[FootnoteEntry]:
    """Drop any existing references block and append a fresh one."""
    for section in root.select(".footnotes-section"):
        section.decompose()

    entries = collect_footnotes(root)
    if not entries:
        return entries

    section = soup.new_tag("div", attrs={"class": "footnotes-section"})
    title = soup.new_tag("div", attrs={"class": "footnotes-title"})
    title.string = REFERENCES_TITLE["ar" if is_rtl else "en"]
    section.append(title)

    for entry in entries:
        item = soup.new_tag("div", attrs={"id": f"fn-{entry.number}", "class": "footnote-item"})
        number = soup.new_tag("span", attrs={"class": "footnote-number"})
        number.string = f"[{entry.number}]"
        item.append(number)
        item.append(f" {entry.text}")
        section.append(item)

    root.append(section)
    return entries


def _inside_embed(tag: Tag) -> bool:
    return any(
        "html-embed-content" in (parent.get("class") or [])
        for parent in tag.parents
        if isinstance(parent, Tag)
    )


def recreate_scripts(soup: BeautifulSoup, root: Tag) -> list[ScriptRecord]:
    """Replace every script with a fresh copy (attributes and text)."""
    records = []
    for old in root.find_all("script"):
        attrs = {
            name: " ".join(value) if isinstance(value, list) else value
            for name, value in old.attrs.items()
        }
        new = soup.new_tag("script", attrs=attrs)
        text = old.string or ""
        if text:
            new.string = text
        records.append(ScriptRecord(attrs=attrs, text=text, in_embed=_inside_embed(old)))
        old.replace_with(new)
    return records


def render_document(markup: str | None, is_rtl: bool = False) -> RenderedDocument:
    soup = BeautifulSoup(markup or "", "html.parser")
    root = _build_wrapper(soup, is_rtl)
    embed_count = hydrate_embeds(root)
    footnotes = rebuild_footnotes(soup, root, is_rtl)
    scripts = recreate_scripts(soup, root)
    return RenderedDocument(
        html=str(root), footnotes=footnotes, scripts=scripts, embed_count=embed_count
    )
