"""Parse persisted markup back into a document tree.

Markup produced by ``serialize`` parses back to an equal tree. Anything else
is read leniently: legacy tags (``<b>``, ``<i>``, ``<del>``) map to marks,
stray inline content at block level is wrapped in a paragraph, layout
containers are flattened, and images found inside paragraphs are lifted out
after the paragraph.
"""

import logging
import re
from typing import Any

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from masmaa.services.document.nodes import (
    Blockquote,
    BulletList,
    CodeBlock,
    Doc,
    Footnote,
    HardBreak,
    Heading,
    HorizontalRule,
    HtmlEmbed,
    Image,
    ImageWithCaption,
    ListItem,
    Mark,
    OrderedList,
    Paragraph,
    PullQuote,
    Text,
    link_mark,
    normalize_inline,
    sort_marks,
)

logger = logging.getLogger(__name__)

MARK_TAGS = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "u": "underline",
    "s": "strike",
    "del": "strike",
    "strike": "strike",
    "mark": "highlight",
    "code": "code",
}

# Containers whose children are read as blocks of the enclosing level.
FLATTEN_TAGS = {
    "div",
    "section",
    "article",
    "main",
    "header",
    "footer",
    "aside",
    "nav",
    "body",
    "html",
    "center",
}

IGNORED_TAGS = {"script", "style", "head", "title", "meta", "link", "noscript"}

_ALIGN_RE = re.compile(r"text-align\s*:\s*(left|center|right|justify)", re.IGNORECASE)

_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


def _direction(tag: Tag) -> str | None:
    value = (tag.get("dir") or "").strip().lower()
    return value if value in ("ltr", "rtl") else None


def _text_align(tag: Tag) -> str | None:
    match = _ALIGN_RE.search(tag.get("style") or "")
    return match.group(1).lower() if match else None


def _footnote(tag: Tag) -> Footnote:
    raw = tag.get("data-footnote-number") or "1"
    try:
        number = max(int(raw), 1)
    except ValueError:
        logger.debug("Non-numeric footnote number %r, using 1", raw)
        number = 1
    return Footnote(text=tag.get("data-footnote-text") or "", number=number)


def _image(tag: Tag) -> Image:
    return Image(src=tag.get("src") or "", alt=tag.get("alt") or "")


def _with_mark(marks: list[Mark], mark: Mark) -> list[Mark]:
    return sort_marks([*marks, mark])


def _parse_inline(
    nodes: list[Any], marks: list[Mark], lifted: list[Any]
) -> list[Any]:
    """Read inline content; images are appended to ``lifted``."""
    out: list[Any] = []
    for node in nodes:
        if isinstance(node, _SKIPPED_STRINGS):
            continue
        if isinstance(node, NavigableString):
            out.append(Text(text=str(node), marks=list(marks)))
            continue
        if not isinstance(node, Tag):
            continue

        name = node.name
        if name in IGNORED_TAGS:
            continue
        if name == "br":
            out.append(HardBreak())
        elif name == "sup" and node.has_attr("data-footnote"):
            out.append(_footnote(node))
        elif name == "img":
            lifted.append(_image(node))
        elif name in MARK_TAGS:
            out.extend(
                _parse_inline(
                    node.contents, _with_mark(marks, Mark(type=MARK_TAGS[name])), lifted
                )
            )
        elif name == "a":
            mark = link_mark(node.get("href") or "", node.get("target"))
            out.extend(_parse_inline(node.contents, _with_mark(marks, mark), lifted))
        else:
            out.extend(_parse_inline(node.contents, marks, lifted))
    return out


def _inline_block(tag: Tag, factory: Any, **attrs: Any) -> list[Any]:
    lifted: list[Any] = []
    content = normalize_inline(_parse_inline(tag.contents, [], lifted))
    return [factory(content=content, **attrs), *lifted]


def _parse_list_items(tag: Tag) -> list[ListItem]:
    items: list[ListItem] = []
    for child in tag.contents:
        if isinstance(child, Tag) and child.name == "li":
            items.append(ListItem(content=_parse_blocks(child.contents)))
        elif isinstance(child, Tag):
            items.append(ListItem(content=_parse_blocks([child])))
    return items


def _parse_figure(tag: Tag) -> list[Any]:
    img = tag.find("img")
    if img is None:
        return _parse_blocks(tag.contents)
    figcaption = tag.find("figcaption")
    return [
        ImageWithCaption(
            src=img.get("src") or "",
            alt=img.get("alt") or "",
            caption=figcaption.get_text() if figcaption is not None else "",
        )
    ]


def _parse_pull_quote(tag: Tag) -> list[Any]:
    inner = tag.find("p")
    return _inline_block(inner if inner is not None else tag, PullQuote, dir=_direction(tag))


def _parse_block_tag(tag: Tag) -> list[Any] | None:
    """Parse a block-level tag; ``None`` means the tag is inline content."""
    name = tag.name
    if name in IGNORED_TAGS:
        return []
    if name == "p":
        return _inline_block(
            tag, Paragraph, text_align=_text_align(tag), dir=_direction(tag)
        )
    if name in ("h1", "h2", "h3", "h4", "h5", "h6"):
        return _inline_block(
            tag,
            Heading,
            level=min(int(name[1]), 3),
            text_align=_text_align(tag),
            dir=_direction(tag),
        )
    if name == "blockquote":
        return [Blockquote(content=_parse_blocks(tag.contents), dir=_direction(tag))]
    if name == "ul":
        return [BulletList(content=_parse_list_items(tag), dir=_direction(tag))]
    if name == "ol":
        try:
            start = int(tag.get("start") or 1)
        except ValueError:
            start = 1
        return [
            OrderedList(
                content=_parse_list_items(tag), start=max(start, 0), dir=_direction(tag)
            )
        ]
    if name == "pre":
        text = tag.get_text()
        return [CodeBlock(content=[Text(text=text)] if text else [])]
    if name == "hr":
        return [HorizontalRule()]
    if name == "img":
        return [_image(tag)]
    if name == "figure":
        return _parse_figure(tag)
    if name == "div" and tag.has_attr("data-html-embed"):
        return [HtmlEmbed(embed_code=tag.get("data-embed-code") or "")]
    if name == "div" and tag.has_attr("data-pull-quote"):
        return _parse_pull_quote(tag)
    if name == "li":
        return _parse_blocks(tag.contents)
    if name in FLATTEN_TAGS:
        return _parse_blocks(tag.contents)
    return None


def _parse_blocks(nodes: list[Any]) -> list[Any]:
    blocks: list[Any] = []
    pending: list[Any] = []

    def flush() -> None:
        if not pending:
            return
        lifted: list[Any] = []
        content = normalize_inline(_parse_inline(pending, [], lifted))
        if any(not isinstance(n, Text) or n.text.strip() for n in content):
            blocks.append(Paragraph(content=content))
        blocks.extend(lifted)
        pending.clear()

    for node in nodes:
        if isinstance(node, _SKIPPED_STRINGS):
            continue
        if isinstance(node, NavigableString):
            if pending or str(node).strip():
                pending.append(node)
            continue
        if not isinstance(node, Tag):
            continue
        parsed = _parse_block_tag(node)
        if parsed is None:
            pending.append(node)
            continue
        flush()
        blocks.extend(parsed)
    flush()
    return blocks


def parse(markup: str | None) -> Doc:
    """Build a document tree from persisted markup."""
    if not markup or not markup.strip():
        return Doc()
    soup = BeautifulSoup(markup, "html.parser")
    return Doc(content=_parse_blocks(list(soup.contents)))
