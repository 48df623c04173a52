"""Serialize a document tree to the persisted markup string.

The output follows the markup conventions of the web editor so that posts
written in the browser and posts written through this service can be mixed
freely. Only this string is stored; the tree is rebuilt with ``parse``.
"""

from html import escape
from typing import Any

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
)

IMAGE_CLASS = "max-w-full h-auto rounded-lg"
LINK_CLASS = "text-blue-600 hover:text-blue-800"
LINK_REL = "noopener noreferrer"

_MARK_TAGS = {
    "bold": "strong",
    "italic": "em",
    "underline": "u",
    "strike": "s",
    "highlight": "mark",
    "code": "code",
}


def _attr_value(value: str) -> str:
    # CR is written as a character reference so it survives parsers that
    # normalise line endings.
    return escape(value, quote=True).replace("\r", "&#13;")


def _attrs(*pairs: tuple[str, Any]) -> str:
    return "".join(
        f' {name}="{_attr_value(str(value))}"'
        for name, value in pairs
        if value is not None
    )


def _text(value: str) -> str:
    return escape(value, quote=False).replace("\r", "&#13;")


def _open_mark(mark: Mark) -> str:
    if mark.type == "link":
        return (
            "<a"
            + _attrs(
                ("href", mark.href or ""),
                ("target", mark.target),
                ("rel", LINK_REL),
                ("class", LINK_CLASS),
            )
            + ">"
        )
    return f"<{_MARK_TAGS[mark.type]}>"


def _close_mark(mark: Mark) -> str:
    return "</a>" if mark.type == "link" else f"</{_MARK_TAGS[mark.type]}>"


def serialize_inline(content: list[Any]) -> str:
    out: list[str] = []
    for node in content:
        if isinstance(node, Text):
            opening = "".join(_open_mark(m) for m in node.marks)
            closing = "".join(_close_mark(m) for m in reversed(node.marks))
            out.append(f"{opening}{_text(node.text)}{closing}")
        elif isinstance(node, HardBreak):
            out.append("<br>")
        elif isinstance(node, Footnote):
            out.append(
                "<sup"
                + _attrs(
                    ("data-footnote-text", node.text or None),
                    ("data-footnote-number", node.number),
                    ("data-footnote", ""),
                    ("class", "footnote-ref"),
                )
                + f'><a href="#fn-{node.number}" class="footnote-link">'
                f"[{node.number}]</a></sup>"
            )
    return "".join(out)


def _align_style(align: str | None) -> str | None:
    return f"text-align: {align}" if align else None


def serialize_block(node: Any) -> str:
    if isinstance(node, Paragraph):
        attrs = _attrs(("style", _align_style(node.text_align)), ("dir", node.dir))
        return f"<p{attrs}>{serialize_inline(node.content)}</p>"

    if isinstance(node, Heading):
        attrs = _attrs(("style", _align_style(node.text_align)), ("dir", node.dir))
        tag = f"h{node.level}"
        return f"<{tag}{attrs}>{serialize_inline(node.content)}</{tag}>"

    if isinstance(node, PullQuote):
        attrs = _attrs(
            ("data-pull-quote", ""), ("class", "pull-quote"), ("dir", node.dir)
        )
        return (
            f'<div{attrs}><p class="pull-quote-content">'
            f"{serialize_inline(node.content)}</p></div>"
        )

    if isinstance(node, CodeBlock):
        code = "".join(n.text for n in node.content if isinstance(n, Text))
        return f"<pre><code>{_text(code)}</code></pre>"

    if isinstance(node, Blockquote):
        inner = "".join(serialize_block(child) for child in node.content)
        return f"<blockquote{_attrs(('dir', node.dir))}>{inner}</blockquote>"

    if isinstance(node, (BulletList, OrderedList)):
        items = "".join(_serialize_list_item(item) for item in node.content)
        if isinstance(node, OrderedList):
            start = node.start if node.start != 1 else None
            return f"<ol{_attrs(('start', start), ('dir', node.dir))}>{items}</ol>"
        return f"<ul{_attrs(('dir', node.dir))}>{items}</ul>"

    if isinstance(node, HorizontalRule):
        return "<hr>"

    if isinstance(node, Image):
        return (
            "<img"
            + _attrs(("src", node.src), ("alt", node.alt), ("class", IMAGE_CLASS))
            + ">"
        )

    if isinstance(node, ImageWithCaption):
        img = (
            "<img"
            + _attrs(("src", node.src), ("alt", node.alt), ("class", IMAGE_CLASS))
            + ">"
        )
        caption = ""
        if node.caption:
            caption = f'<figcaption class="image-caption">{_text(node.caption)}</figcaption>'
        return (
            '<figure data-image-with-caption="" class="image-with-caption">'
            f"{img}{caption}</figure>"
        )

    if isinstance(node, HtmlEmbed):
        attrs = _attrs(
            ("data-html-embed", ""),
            ("data-embed-code", node.embed_code),
            ("class", "html-embed-wrapper my-6"),
        )
        return f'<div{attrs}><div class="html-embed-content"></div></div>'

    raise TypeError(f"Cannot serialize node of type {type(node).__name__}")


def _serialize_list_item(item: ListItem) -> str:
    return "<li>" + "".join(serialize_block(child) for child in item.content) + "</li>"


def serialize(doc: Doc) -> str:
    """Flatten a document to its persisted markup."""
    return "".join(serialize_block(block) for block in doc.content)
