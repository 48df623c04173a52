"""Document node types for the rich content editor.

Every node kind is a pydantic model tagged by ``type``. The tag values match
the names the web editor uses for its schema, so markup produced here and
markup produced in the browser describe the same tree.

Block nodes live in ``Doc.content`` or inside containers (blockquote, list
items); text blocks (paragraph, heading, pull quote, code block) hold inline
nodes. Atomic nodes have no editable content and occupy a single position.
"""

from collections.abc import Iterable, Iterator
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

Direction = Literal["ltr", "rtl"]
TextAlign = Literal["left", "center", "right", "justify"]
MarkType = Literal[
    "link", "bold", "italic", "underline", "strike", "highlight", "code"
]

# Canonical mark order, outermost first when serialized.
MARK_ORDER: tuple[str, ...] = (
    "link",
    "bold",
    "italic",
    "underline",
    "strike",
    "highlight",
    "code",
)


class Mark(BaseModel):
    """Inline formatting applied to a run of text."""

    type: MarkType
    href: str | None = None
    target: str | None = None


def link_mark(href: str, target: str | None = "_blank") -> Mark:
    return Mark(type="link", href=href, target=target)


def sort_marks(marks: Iterable[Mark]) -> list[Mark]:
    """Return marks in canonical order, one per mark type."""
    by_type: dict[str, Mark] = {}
    for mark in marks:
        by_type[mark.type] = mark
    return [by_type[t] for t in MARK_ORDER if t in by_type]


# -- Inline nodes -----------------------------------------------------------


class Text(BaseModel):
    type: Literal["text"] = "text"
    text: str
    marks: list[Mark] = Field(default_factory=list)

    @field_validator("marks")
    @classmethod
    def canonical_marks(cls, v: list[Mark]) -> list[Mark]:
        return sort_marks(v)

    def has_mark(self, mark_type: str) -> bool:
        return any(m.type == mark_type for m in self.marks)


class HardBreak(BaseModel):
    type: Literal["hardBreak"] = "hardBreak"


class Footnote(BaseModel):
    """Inline footnote reference; ``number`` is fixed when inserted."""

    type: Literal["footnote"] = "footnote"
    text: str = ""
    number: int = Field(default=1, ge=1)


InlineNode = Annotated[Union[Text, HardBreak, Footnote], Field(discriminator="type")]


# -- Block nodes ------------------------------------------------------------


class Paragraph(BaseModel):
    type: Literal["paragraph"] = "paragraph"
    content: list[InlineNode] = Field(default_factory=list)
    text_align: TextAlign | None = None
    dir: Direction | None = None


class Heading(BaseModel):
    type: Literal["heading"] = "heading"
    level: int = Field(default=1, ge=1, le=3)
    content: list[InlineNode] = Field(default_factory=list)
    text_align: TextAlign | None = None
    dir: Direction | None = None


class PullQuote(BaseModel):
    type: Literal["pullQuote"] = "pullQuote"
    content: list[InlineNode] = Field(default_factory=list)
    dir: Direction | None = None


class CodeBlock(BaseModel):
    type: Literal["codeBlock"] = "codeBlock"
    content: list[InlineNode] = Field(default_factory=list)


class Blockquote(BaseModel):
    type: Literal["blockquote"] = "blockquote"
    content: list["BlockNode"] = Field(default_factory=list)
    dir: Direction | None = None


class ListItem(BaseModel):
    type: Literal["listItem"] = "listItem"
    content: list["BlockNode"] = Field(default_factory=list)


class BulletList(BaseModel):
    type: Literal["bulletList"] = "bulletList"
    content: list[ListItem] = Field(default_factory=list)
    dir: Direction | None = None


class OrderedList(BaseModel):
    type: Literal["orderedList"] = "orderedList"
    content: list[ListItem] = Field(default_factory=list)
    start: int = Field(default=1, ge=0)
    dir: Direction | None = None


class HorizontalRule(BaseModel):
    type: Literal["horizontalRule"] = "horizontalRule"


class Image(BaseModel):
    type: Literal["image"] = "image"
    src: str = ""
    alt: str = ""


class ImageWithCaption(BaseModel):
    type: Literal["imageWithCaption"] = "imageWithCaption"
    src: str = ""
    alt: str = ""
    caption: str = ""


class HtmlEmbed(BaseModel):
    """Raw third-party embed markup, stored and re-injected verbatim."""

    type: Literal["htmlEmbed"] = "htmlEmbed"
    embed_code: str = ""


BlockNode = Annotated[
    Union[
        Paragraph,
        Heading,
        PullQuote,
        CodeBlock,
        Blockquote,
        BulletList,
        OrderedList,
        HorizontalRule,
        Image,
        ImageWithCaption,
        HtmlEmbed,
    ],
    Field(discriminator="type"),
]

Blockquote.model_rebuild()
ListItem.model_rebuild()
BulletList.model_rebuild()
OrderedList.model_rebuild()


class Doc(BaseModel):
    """A single-language document."""

    type: Literal["doc"] = "doc"
    content: list[BlockNode] = Field(default_factory=list)


TEXTBLOCK_TYPES = (Paragraph, Heading, PullQuote, CodeBlock)
CONTAINER_TYPES = (Doc, Blockquote, ListItem, BulletList, OrderedList)
ATOMIC_BLOCK_TYPES = (HorizontalRule, Image, ImageWithCaption, HtmlEmbed)


# -- Helpers ----------------------------------------------------------------


def inline_length(node: Any) -> int:
    """Positions occupied by an inline node: one per character, atoms count 1."""
    return len(node.text) if isinstance(node, Text) else 1


def content_size(content: Iterable[Any]) -> int:
    return sum(inline_length(n) for n in content)


def iter_nodes(node: Any) -> Iterator[Any]:
    """Depth-first walk over a node and all of its descendants."""
    yield node
    for child in getattr(node, "content", ()):
        yield from iter_nodes(child)


def count_footnotes(doc: Doc) -> int:
    return sum(1 for n in iter_nodes(doc) if isinstance(n, Footnote))


def normalize_inline(content: Iterable[Any]) -> list[Any]:
    """Merge adjacent text nodes with identical marks; drop empty text."""
    merged: list[Any] = []
    for node in content:
        if isinstance(node, Text):
            if not node.text:
                continue
            prev = merged[-1] if merged else None
            if isinstance(prev, Text) and prev.marks == node.marks:
                merged[-1] = Text(text=prev.text + node.text, marks=list(prev.marks))
                continue
        merged.append(node)
    return merged


def text_content(doc: Doc, block_separator: str = " ", leaf_text: str = " ") -> str:
    """Flatten a document to plain text.

    Text blocks are separated by ``block_separator``; atomic nodes (images,
    embeds, footnotes, breaks) contribute ``leaf_text``.
    """
    parts: list[str] = []

    def walk(node: Any) -> None:
        if isinstance(node, TEXTBLOCK_TYPES):
            if parts:
                parts.append(block_separator)
            for child in node.content:
                parts.append(child.text if isinstance(child, Text) else leaf_text)
        elif isinstance(node, CONTAINER_TYPES):
            for child in node.content:
                walk(child)
        else:
            if parts:
                parts.append(block_separator)
            parts.append(leaf_text)

    walk(doc)
    return "".join(parts)


def word_count(doc: Doc) -> int:
    return len(text_content(doc).split())


def character_count(doc: Doc) -> int:
    return len(text_content(doc, block_separator=""))
