"""Editor commands.

Each command takes an ``EditorState`` (document plus selection) and returns a
new one; the input state is never mutated. Commands that cannot apply (for
example bold with a collapsed selection) return the state unchanged.

The selection addresses a single text block by ``path`` (child indices from
the document root through blockquotes, lists and list items) and an
``anchor``/``head`` pair of offsets inside that block's inline content. Text
counts one position per character; atomic inline nodes count one.
"""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from masmaa.services.document.nodes import (
    CONTAINER_TYPES,
    TEXTBLOCK_TYPES,
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
    content_size,
    count_footnotes,
    inline_length,
    link_mark,
    normalize_inline,
    sort_marks,
)

TOGGLE_MARKS = ("bold", "italic", "underline", "strike", "highlight", "code")
ALIGNMENTS = ("left", "center", "right", "justify")


class SelectionError(ValueError):
    """The selection does not point at a valid text range."""


@dataclass(frozen=True)
class Selection:
    path: tuple[int, ...] = (0,)
    anchor: int = 0
    head: int | None = None

    @property
    def start(self) -> int:
        return min(self.anchor, self.anchor if self.head is None else self.head)

    @property
    def end(self) -> int:
        return max(self.anchor, self.anchor if self.head is None else self.head)

    @property
    def empty(self) -> bool:
        return self.start == self.end

    @classmethod
    def cursor(cls, path: tuple[int, ...], offset: int = 0) -> "Selection":
        return cls(path=tuple(path), anchor=offset, head=offset)


@dataclass(frozen=True)
class EditorState:
    doc: Doc
    selection: Selection = field(default_factory=Selection)


# -- Tree navigation --------------------------------------------------------


def node_at(doc: Doc, path: tuple[int, ...]) -> Any:
    node: Any = doc
    for index in path:
        if not isinstance(node, CONTAINER_TYPES) or not 0 <= index < len(node.content):
            raise SelectionError(f"Invalid selection path {path!r}")
        node = node.content[index]
    return node


def text_block_paths(doc: Doc) -> list[tuple[int, ...]]:
    """Paths of every text block in document order."""
    paths: list[tuple[int, ...]] = []

    def walk(node: Any, path: tuple[int, ...]) -> None:
        for i, child in enumerate(node.content):
            child_path = (*path, i)
            if isinstance(child, TEXTBLOCK_TYPES):
                paths.append(child_path)
            elif isinstance(child, CONTAINER_TYPES):
                walk(child, child_path)

    walk(doc, ())
    return paths


def _resolve(state: EditorState) -> tuple[Doc, Any, Selection]:
    """Copy the document and return the copy, its selected block and the selection."""
    doc = state.doc.model_copy(deep=True)
    sel = state.selection
    block = node_at(doc, sel.path)
    if not isinstance(block, TEXTBLOCK_TYPES):
        raise SelectionError("Selection must be inside a text block")
    size = content_size(block.content)
    if sel.start < 0 or sel.end > size:
        raise SelectionError(
            f"Selection {sel.start}..{sel.end} outside block of size {size}"
        )
    return doc, block, sel


def _replace_child(doc: Doc, path: tuple[int, ...], nodes: list[Any]) -> None:
    parent = node_at(doc, path[:-1])
    index = path[-1]
    parent.content[index : index + 1] = nodes


def select(
    state: EditorState, path: tuple[int, ...], anchor: int, head: int | None = None
) -> EditorState:
    """Move the selection, validating it against the document."""
    candidate = EditorState(state.doc, Selection(tuple(path), anchor, head))
    _resolve(candidate)
    return candidate


# -- Inline helpers ---------------------------------------------------------


def _split(content: list[Any], offset: int) -> tuple[list[Any], list[Any]]:
    left: list[Any] = []
    right: list[Any] = []
    pos = 0
    for node in content:
        length = inline_length(node)
        if pos + length <= offset:
            left.append(node)
        elif pos >= offset:
            right.append(node)
        else:
            cut = offset - pos
            left.append(Text(text=node.text[:cut], marks=list(node.marks)))
            right.append(Text(text=node.text[cut:], marks=list(node.marks)))
        pos += length
    return left, right


def _slice(content: list[Any], start: int, end: int) -> tuple[list[Any], list[Any], list[Any]]:
    left, rest = _split(content, start)
    middle, right = _split(rest, end - start)
    return left, middle, right


def _add_mark(node: Any, mark: Mark) -> Any:
    if not isinstance(node, Text):
        return node
    return Text(text=node.text, marks=sort_marks([*node.marks, mark]))


def _drop_marks(node: Any, mark_type: str | None = None) -> Any:
    if not isinstance(node, Text):
        return node
    marks = [m for m in node.marks if mark_type is not None and m.type != mark_type]
    return Text(text=node.text, marks=marks)


def _marks_before(content: list[Any], offset: int) -> list[Mark]:
    """Marks a newly typed character at ``offset`` inherits (links excluded)."""
    pos = 0
    marks: list[Mark] = []
    for node in content:
        length = inline_length(node)
        if pos < offset <= pos + length:
            marks = list(node.marks) if isinstance(node, Text) else []
        pos += length
    return [m for m in marks if m.type != "link"]


def _map_range(
    state: EditorState, transform: Callable[[list[Any]], list[Any] | None]
) -> EditorState:
    doc, block, sel = _resolve(state)
    if sel.empty or isinstance(block, CodeBlock):
        return state
    left, middle, right = _slice(block.content, sel.start, sel.end)
    new_middle = transform(middle)
    if new_middle is None:
        return state
    block.content = normalize_inline(left + new_middle + right)
    return EditorState(doc, sel)


# -- Marks ------------------------------------------------------------------


def toggle_mark(state: EditorState, mark_type: str) -> EditorState:
    """Add ``mark_type`` to the selection, or remove it if already everywhere."""
    if mark_type not in TOGGLE_MARKS:
        raise ValueError(f"Unknown mark {mark_type!r}")

    def transform(middle: list[Any]) -> list[Any] | None:
        texts = [n for n in middle if isinstance(n, Text)]
        if not texts:
            return None
        if all(t.has_mark(mark_type) for t in texts):
            return [_drop_marks(n, mark_type) for n in middle]
        return [_add_mark(n, Mark(type=mark_type)) for n in middle]

    return _map_range(state, transform)


def normalize_href(url: str) -> str:
    url = url.strip()
    if url and not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def set_link(state: EditorState, href: str) -> EditorState:
    href = normalize_href(href)
    if not href:
        return state
    mark = link_mark(href)
    return _map_range(state, lambda middle: [_add_mark(n, mark) for n in middle])


def _link_span(content: list[Any], offset: int) -> tuple[int, int] | None:
    spans: list[tuple[int, int, Any]] = []
    pos = 0
    for node in content:
        length = inline_length(node)
        spans.append((pos, pos + length, node))
        pos += length

    hit = None
    for i, (start, end, node) in enumerate(spans):
        if isinstance(node, Text) and node.has_mark("link") and start <= offset <= end:
            hit = i
            break
    if hit is None:
        return None

    link = next(m for m in spans[hit][2].marks if m.type == "link")

    def same_link(node: Any) -> bool:
        return isinstance(node, Text) and link in node.marks

    first = last = hit
    while first > 0 and same_link(spans[first - 1][2]):
        first -= 1
    while last + 1 < len(spans) and same_link(spans[last + 1][2]):
        last += 1
    return spans[first][0], spans[last][1]


def unset_link(state: EditorState) -> EditorState:
    """Remove links from the selection; a cursor removes the whole link it sits in."""
    sel = state.selection
    if sel.empty:
        block = node_at(state.doc, sel.path)
        span = _link_span(getattr(block, "content", []), sel.start)
        if span is None:
            return state
        widened = EditorState(state.doc, replace(sel, anchor=span[0], head=span[1]))
        result = _map_range(widened, lambda middle: [_drop_marks(n, "link") for n in middle])
        return EditorState(result.doc, sel)
    return _map_range(state, lambda middle: [_drop_marks(n, "link") for n in middle])


def clear_marks(state: EditorState) -> EditorState:
    return _map_range(state, lambda middle: [_drop_marks(n) for n in middle])


# -- Block types ------------------------------------------------------------


def _plain_text(content: list[Any]) -> str:
    parts = []
    for node in content:
        if isinstance(node, Text):
            parts.append(node.text)
        elif isinstance(node, HardBreak):
            parts.append("\n")
    return "".join(parts)


def _convert(state: EditorState, build: Callable[[Any], Any]) -> EditorState:
    doc, block, sel = _resolve(state)
    new_block = build(block)
    _replace_child(doc, sel.path, [new_block])
    size = content_size(new_block.content)
    head = None if sel.head is None else min(sel.head, size)
    return EditorState(doc, replace(sel, anchor=min(sel.anchor, size), head=head))


def _as_paragraph(block: Any) -> Paragraph:
    if isinstance(block, CodeBlock):
        text = _plain_text(block.content)
        return Paragraph(content=[Text(text=text)] if text else [])
    return Paragraph(
        content=block.content,
        text_align=getattr(block, "text_align", None),
        dir=getattr(block, "dir", None),
    )


def set_paragraph(state: EditorState) -> EditorState:
    return _convert(state, _as_paragraph)


def toggle_heading(state: EditorState, level: int) -> EditorState:
    if level not in (1, 2, 3):
        raise ValueError(f"Heading level must be 1-3, got {level}")

    def build(block: Any) -> Any:
        if isinstance(block, Heading) and block.level == level:
            return _as_paragraph(block)
        paragraph = _as_paragraph(block)
        return Heading(
            level=level,
            content=paragraph.content,
            text_align=paragraph.text_align,
            dir=paragraph.dir,
        )

    return _convert(state, build)


def toggle_pull_quote(state: EditorState) -> EditorState:
    def build(block: Any) -> Any:
        if isinstance(block, PullQuote):
            return _as_paragraph(block)
        paragraph = _as_paragraph(block)
        return PullQuote(content=paragraph.content, dir=paragraph.dir)

    return _convert(state, build)


def toggle_code_block(state: EditorState) -> EditorState:
    def build(block: Any) -> Any:
        if isinstance(block, CodeBlock):
            return _as_paragraph(block)
        text = _plain_text(block.content)
        return CodeBlock(content=[Text(text=text)] if text else [])

    return _convert(state, build)


def set_text_align(state: EditorState, align: str | None) -> EditorState:
    if align is not None and align not in ALIGNMENTS:
        raise ValueError(f"Unknown alignment {align!r}")
    doc, block, sel = _resolve(state)
    if not isinstance(block, (Paragraph, Heading)):
        return state
    block.text_align = align
    return EditorState(doc, sel)


def toggle_direction(state: EditorState, base_dir: str = "ltr") -> EditorState:
    """Flip the current block between ``rtl`` and ``ltr``.

    An unset direction reads as the editor's base direction, so the first
    toggle in an Arabic editor produces ``ltr``.
    """
    doc, block, sel = _resolve(state)
    if not hasattr(block, "dir"):
        return state
    current = block.dir or base_dir
    block.dir = "ltr" if current == "rtl" else "rtl"
    return EditorState(doc, sel)


# -- Wrapping ---------------------------------------------------------------


def _lift_from_blockquote(doc: Doc, path: tuple[int, ...]) -> tuple[int, ...]:
    quote_path = path[:-1]
    quote = node_at(doc, quote_path)
    index = path[-1]
    before = quote.content[:index]
    after = quote.content[index + 1 :]
    replacement: list[Any] = []
    if before:
        replacement.append(quote.model_copy(update={"content": before}))
    replacement.append(quote.content[index])
    if after:
        replacement.append(quote.model_copy(update={"content": after}))
    _replace_child(doc, quote_path, replacement)
    return (*quote_path[:-1], quote_path[-1] + (1 if before else 0))


def _lift_from_list(doc: Doc, path: tuple[int, ...]) -> tuple[int, ...]:
    list_path = path[:-2]
    lst = node_at(doc, list_path)
    item_index = path[-2]
    item = lst.content[item_index]
    before = lst.content[:item_index]
    after = lst.content[item_index + 1 :]
    replacement: list[Any] = []
    if before:
        replacement.append(lst.model_copy(update={"content": before}))
    replacement.extend(item.content)
    if after:
        replacement.append(lst.model_copy(update={"content": after}))
    _replace_child(doc, list_path, replacement)
    return (*list_path[:-1], list_path[-1] + (1 if before else 0) + path[-1])


def toggle_blockquote(state: EditorState) -> EditorState:
    doc, block, sel = _resolve(state)
    parent = node_at(doc, sel.path[:-1])
    if isinstance(parent, Blockquote):
        new_path = _lift_from_blockquote(doc, sel.path)
    else:
        _replace_child(doc, sel.path, [Blockquote(content=[block])])
        new_path = (*sel.path, 0)
    return EditorState(doc, replace(sel, path=new_path))


def _toggle_list(state: EditorState, list_type: type) -> EditorState:
    doc, block, sel = _resolve(state)
    parent = node_at(doc, sel.path[:-1])
    if isinstance(parent, ListItem):
        lst = node_at(doc, sel.path[:-2])
        if isinstance(lst, list_type):
            new_path = _lift_from_list(doc, sel.path)
            return EditorState(doc, replace(sel, path=new_path))
        _replace_child(doc, sel.path[:-2], [list_type(content=lst.content, dir=lst.dir)])
        return EditorState(doc, sel)
    _replace_child(doc, sel.path, [list_type(content=[ListItem(content=[block])])])
    return EditorState(doc, replace(sel, path=(*sel.path, 0, 0)))


def toggle_bullet_list(state: EditorState) -> EditorState:
    return _toggle_list(state, BulletList)


def toggle_ordered_list(state: EditorState) -> EditorState:
    return _toggle_list(state, OrderedList)


# -- Inline insertion -------------------------------------------------------


def _replace_range(state: EditorState, nodes: list[Any]) -> EditorState:
    doc, block, sel = _resolve(state)
    left, _, right = _slice(block.content, sel.start, sel.end)
    block.content = normalize_inline(left + nodes + right)
    offset = sel.start + content_size(nodes)
    return EditorState(doc, Selection.cursor(sel.path, offset))


def insert_text(state: EditorState, text: str) -> EditorState:
    block = node_at(state.doc, state.selection.path)
    if isinstance(block, CodeBlock):
        marks: list[Mark] = []
    else:
        marks = _marks_before(getattr(block, "content", []), state.selection.start)
    return _replace_range(state, [Text(text=text, marks=marks)] if text else [])


def delete_selection(state: EditorState) -> EditorState:
    if state.selection.empty:
        return state
    return _replace_range(state, [])


def insert_hard_break(state: EditorState) -> EditorState:
    if isinstance(node_at(state.doc, state.selection.path), CodeBlock):
        return insert_text(state, "\n")
    return _replace_range(state, [HardBreak()])


def insert_footnote(state: EditorState, text: str) -> EditorState:
    """Insert a footnote numbered one past the footnotes already present.

    Numbers are assigned once; deleting an earlier footnote leaves a gap.
    """
    if isinstance(node_at(state.doc, state.selection.path), CodeBlock):
        return state
    number = count_footnotes(state.doc) + 1
    return _replace_range(state, [Footnote(text=text, number=number)])


# -- Block insertion --------------------------------------------------------


def split_block(state: EditorState) -> EditorState:
    """Split the current block at the selection (the Enter key)."""
    doc, block, sel = _resolve(state)
    if isinstance(block, CodeBlock):
        return insert_text(state, "\n")
    left, _, right = _slice(block.content, sel.start, sel.end)
    first = block.model_copy(update={"content": normalize_inline(left)})
    if isinstance(block, Heading) and not right:
        second: Any = Paragraph(dir=block.dir)
    else:
        second = block.model_copy(update={"content": normalize_inline(right)})
    _replace_child(doc, sel.path, [first, second])
    return EditorState(doc, Selection.cursor((*sel.path[:-1], sel.path[-1] + 1), 0))


def insert_block(state: EditorState, node: Any) -> EditorState:
    """Insert an atomic block at the selection, splitting the text block.

    The cursor lands in the text block after the new node; an empty
    paragraph is created for it when none follows.
    """
    doc, block, sel = _resolve(state)
    left, _, right = _slice(block.content, sel.start, sel.end)
    parent = node_at(doc, sel.path[:-1])
    index = sel.path[-1]

    replacement: list[Any] = []
    if left:
        replacement.append(block.model_copy(update={"content": normalize_inline(left)}))
    replacement.append(node)

    following = parent.content[index + 1] if index + 1 < len(parent.content) else None
    if right:
        replacement.append(block.model_copy(update={"content": normalize_inline(right)}))
    elif not isinstance(following, TEXTBLOCK_TYPES):
        replacement.append(Paragraph(dir=getattr(block, "dir", None)))

    _replace_child(doc, sel.path, replacement)
    if right or not isinstance(following, TEXTBLOCK_TYPES):
        cursor_index = index + len(replacement) - 1
    else:
        cursor_index = index + len(replacement)
    return EditorState(doc, Selection.cursor((*sel.path[:-1], cursor_index), 0))


def insert_horizontal_rule(state: EditorState) -> EditorState:
    return insert_block(state, HorizontalRule())


def insert_image(
    state: EditorState, src: str, alt: str = "", caption: str = ""
) -> EditorState:
    """Insert an uploaded image.

    A captioned figure is used only when alt text or a caption was given;
    otherwise a plain image node.
    """
    if alt or caption:
        node: Any = ImageWithCaption(src=src, alt=alt, caption=caption)
    else:
        node = Image(src=src, alt="")
    return insert_block(state, node)


def insert_html_embed(state: EditorState, embed_code: str) -> EditorState:
    return insert_block(state, HtmlEmbed(embed_code=embed_code))
