"""Rich content documents: node tree, markup codec, editor and renderer."""

from masmaa.services.document.commands import (
    EditorState,
    Selection,
    SelectionError,
)
from masmaa.services.document.editor import DocumentEditor
from masmaa.services.document.nodes import (
    Doc,
    count_footnotes,
    text_content,
    word_count,
)
from masmaa.services.document.parser import parse
from masmaa.services.document.renderer import (
    FootnoteEntry,
    RenderedDocument,
    ScriptRecord,
    render_document,
)
from masmaa.services.document.serializer import serialize

__all__ = [
    "Doc",
    "DocumentEditor",
    "EditorState",
    "FootnoteEntry",
    "RenderedDocument",
    "ScriptRecord",
    "Selection",
    "SelectionError",
    "count_footnotes",
    "parse",
    "render_document",
    "serialize",
    "text_content",
    "word_count",
]
