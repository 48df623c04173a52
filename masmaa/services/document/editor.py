"""Editor session: live document, toolbar commands, undo/redo history."""

import logging
from collections.abc import Callable
from typing import Any

from masmaa.services.document import commands
from masmaa.services.document.commands import EditorState, Selection, text_block_paths
from masmaa.services.document.nodes import Doc, Paragraph, character_count, word_count
from masmaa.services.document.parser import parse
from masmaa.services.document.serializer import serialize

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100


class DocumentEditor:
    """Holds one language's document and applies toolbar commands to it.

    ``on_change`` receives the serialized markup after every command that
    changes the document; selection-only changes do not fire it.
    """

    def __init__(
        self,
        content: str = "",
        on_change: Callable[[str], None] | None = None,
        base_dir: str = "ltr",
        history_limit: int = HISTORY_LIMIT,
    ):
        self.base_dir = base_dir
        self.on_change = on_change
        self.history_limit = history_limit
        self._undo: list[EditorState] = []
        self._redo: list[EditorState] = []
        doc = parse(content)
        self.state = EditorState(doc, self._initial_selection(doc))

    @staticmethod
    def _initial_selection(doc: Doc) -> Selection:
        paths = text_block_paths(doc)
        return Selection.cursor(paths[0] if paths else (0,), 0)

    # -- State ---------------------------------------------------------------

    @property
    def doc(self) -> Doc:
        return self.state.doc

    @property
    def selection(self) -> Selection:
        return self.state.selection

    @property
    def html(self) -> str:
        return serialize(self.state.doc)

    @property
    def word_count(self) -> int:
        return word_count(self.state.doc)

    @property
    def character_count(self) -> int:
        return character_count(self.state.doc)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def set_content(self, content: str) -> None:
        """Replace the whole document (e.g. after loading a post). Clears history."""
        doc = parse(content)
        self.state = EditorState(doc, self._initial_selection(doc))
        self._undo.clear()
        self._redo.clear()

    def select(self, path: tuple[int, ...], anchor: int, head: int | None = None) -> None:
        self.state = commands.select(self.state, path, anchor, head)

    def apply(self, command: Callable[..., EditorState], *args: Any) -> bool:
        """Run a command against the current state.

        Returns True when the document changed.
        """
        before = self.state
        working = _with_text_block(before)
        new_state = command(working, *args)
        if new_state.doc == working.doc:
            if working is before:
                self.state = new_state
            return False

        self._undo.append(before)
        if len(self._undo) > self.history_limit:
            del self._undo[0]
        self._redo.clear()
        self.state = new_state
        self._emit()
        return True

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.state)
        self.state = self._undo.pop()
        self._emit()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.state)
        self.state = self._redo.pop()
        self._emit()
        return True

    def _emit(self) -> None:
        if self.on_change is not None:
            self.on_change(self.html)

    # -- Toolbar -------------------------------------------------------------

    def toggle_bold(self) -> bool:
        return self.apply(commands.toggle_mark, "bold")

    def toggle_italic(self) -> bool:
        return self.apply(commands.toggle_mark, "italic")

    def toggle_underline(self) -> bool:
        return self.apply(commands.toggle_mark, "underline")

    def toggle_strike(self) -> bool:
        return self.apply(commands.toggle_mark, "strike")

    def toggle_highlight(self) -> bool:
        return self.apply(commands.toggle_mark, "highlight")

    def toggle_code(self) -> bool:
        return self.apply(commands.toggle_mark, "code")

    def set_link(self, href: str) -> bool:
        return self.apply(commands.set_link, href)

    def unset_link(self) -> bool:
        return self.apply(commands.unset_link)

    def clear_formatting(self) -> bool:
        return self.apply(_clear_formatting)

    def set_paragraph(self) -> bool:
        return self.apply(commands.set_paragraph)

    def toggle_heading(self, level: int) -> bool:
        return self.apply(commands.toggle_heading, level)

    def toggle_pull_quote(self) -> bool:
        return self.apply(commands.toggle_pull_quote)

    def toggle_code_block(self) -> bool:
        return self.apply(commands.toggle_code_block)

    def toggle_blockquote(self) -> bool:
        return self.apply(commands.toggle_blockquote)

    def toggle_bullet_list(self) -> bool:
        return self.apply(commands.toggle_bullet_list)

    def toggle_ordered_list(self) -> bool:
        return self.apply(commands.toggle_ordered_list)

    def set_text_align(self, align: str | None) -> bool:
        return self.apply(commands.set_text_align, align)

    def toggle_direction(self) -> bool:
        return self.apply(commands.toggle_direction, self.base_dir)

    def insert_text(self, text: str) -> bool:
        return self.apply(commands.insert_text, text)

    def delete_selection(self) -> bool:
        return self.apply(commands.delete_selection)

    def insert_hard_break(self) -> bool:
        return self.apply(commands.insert_hard_break)

    def split_block(self) -> bool:
        return self.apply(commands.split_block)

    def insert_horizontal_rule(self) -> bool:
        return self.apply(commands.insert_horizontal_rule)

    def insert_image(self, src: str, alt: str = "", caption: str = "") -> bool:
        return self.apply(commands.insert_image, src, alt, caption)

    def insert_html_embed(self, embed_code: str) -> bool:
        return self.apply(commands.insert_html_embed, embed_code)

    def insert_footnote(self, text: str) -> bool:
        logger.debug("Inserting footnote at %s", self.state.selection)
        return self.apply(commands.insert_footnote, text)


def _clear_formatting(state: EditorState) -> EditorState:
    return commands.set_paragraph(commands.clear_marks(state))


def _with_text_block(state: EditorState) -> EditorState:
    """Give a document without any text block a trailing paragraph for the cursor.

    Posts made only of images, embeds or rules otherwise leave nowhere to type.
    """
    if text_block_paths(state.doc):
        return state
    doc = Doc(content=[*state.doc.content, Paragraph()])
    return EditorState(doc, Selection.cursor((len(doc.content) - 1,), 0))
