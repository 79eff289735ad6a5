"""Interactive branch selection.

The selector is a small state machine driven one key at a time:

- Browsing: arrows, j/k, Ctrl-N/Ctrl-P move the cursor (wrapping at either
  end), PageUp/PageDown move a page (clamped), Home/End jump, "/" starts a
  filter, Enter confirms, Esc, q or Ctrl-C cancel.
- Filtering: printable keys edit a case-insensitive substring filter on the
  branch name, Backspace deletes, Esc clears the filter and goes back to
  browsing. Movement, Enter and Ctrl-C behave as when browsing.

``run_selection`` renders the state after every key and returns either
:class:`Checkout` or :class:`Cancelled`. It never touches git.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Sequence, Union

from twig.git import BranchRecord
from twig.logger import get_logger

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 18


class Key(Enum):
    """Keys the selector understands."""

    UP = "up"
    DOWN = "down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    ENTER = "enter"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    INTERRUPT = "interrupt"
    CHAR = "char"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class KeyEvent:
    """A decoded key press; ``char`` is set for Key.CHAR."""

    key: Key
    char: str = ""


@dataclass(frozen=True)
class Checkout:
    """The user confirmed a branch."""

    record: BranchRecord


@dataclass(frozen=True)
class Cancelled:
    """The user left without choosing."""


SelectionOutcome = Union[Checkout, Cancelled]


@dataclass
class SelectionState:
    """Cursor, filter and scroll position over an immutable branch list."""

    records: Sequence[BranchRecord]
    cursor: int = 0
    filter: str = ""
    filtering: bool = False
    page_size: int = DEFAULT_PAGE_SIZE
    offset: int = 0
    _visible: list[BranchRecord] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {self.page_size}")
        self._visible = self._apply_filter()
        self.cursor = min(max(self.cursor, 0), max(len(self._visible) - 1, 0))
        self._scroll()

    @classmethod
    def for_records(cls, records: Sequence[BranchRecord], page_size: int = DEFAULT_PAGE_SIZE) -> "SelectionState":
        """Start with the cursor on the checked-out branch, or the first one."""
        cursor = next((i for i, record in enumerate(records) if record.is_current), 0)
        return cls(records=records, cursor=cursor, page_size=page_size)

    @property
    def visible(self) -> list[BranchRecord]:
        return self._visible

    @property
    def current(self) -> Optional[BranchRecord]:
        """The checked-out branch, None on a detached HEAD."""
        return next((record for record in self.records if record.is_current), None)

    def selected(self) -> Optional[BranchRecord]:
        if not self._visible:
            return None
        return self._visible[self.cursor]

    def window(self) -> list[BranchRecord]:
        """The visible records that fit on screen."""
        return self._visible[self.offset : self.offset + self.page_size]

    def _apply_filter(self) -> list[BranchRecord]:
        if not self.filter:
            return list(self.records)
        needle = self.filter.lower()
        return [record for record in self.records if needle in record.name.lower()]

    def _scroll(self) -> None:
        """Move the window just enough to keep the cursor on screen."""
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + self.page_size:
            self.offset = self.cursor - self.page_size + 1
        self.offset = max(0, min(self.offset, max(len(self._visible) - self.page_size, 0)))

    def _move_to(self, index: int) -> None:
        self.cursor = index
        self._scroll()

    def move_down(self) -> None:
        if self._visible:
            self._move_to((self.cursor + 1) % len(self._visible))

    def move_up(self) -> None:
        if self._visible:
            self._move_to((self.cursor - 1) % len(self._visible))

    def page_down(self) -> None:
        if self._visible:
            self._move_to(min(self.cursor + self.page_size, len(self._visible) - 1))

    def page_up(self) -> None:
        if self._visible:
            self._move_to(max(self.cursor - self.page_size, 0))

    def first(self) -> None:
        if self._visible:
            self._move_to(0)

    def last(self) -> None:
        if self._visible:
            self._move_to(len(self._visible) - 1)

    def set_filter(self, text: str) -> None:
        """Narrow the view, keeping the highlighted branch when it still matches."""
        previous = self.selected()
        self.filter = text
        self._visible = self._apply_filter()
        if previous is not None and previous in self._visible:
            self.cursor = self._visible.index(previous)
        else:
            self.cursor = 0
        self._scroll()


def handle_key(state: SelectionState, event: KeyEvent) -> Optional[SelectionOutcome]:
    """Apply one key to the state; return an outcome when the loop should end."""
    if event.key is Key.INTERRUPT:
        return Cancelled()

    if event.key is Key.ENTER:
        record = state.selected()
        if record is None:
            return None
        return Checkout(record)

    if event.key is Key.ESCAPE:
        if state.filtering:
            state.filtering = False
            state.set_filter("")
            return None
        return Cancelled()

    if event.key is Key.DOWN:
        state.move_down()
    elif event.key is Key.UP:
        state.move_up()
    elif event.key is Key.PAGE_DOWN:
        state.page_down()
    elif event.key is Key.PAGE_UP:
        state.page_up()
    elif event.key is Key.HOME:
        state.first()
    elif event.key is Key.END:
        state.last()
    elif event.key is Key.BACKSPACE:
        if state.filtering:
            state.set_filter(state.filter[:-1])
    elif event.key is Key.CHAR:
        if state.filtering:
            state.set_filter(state.filter + event.char)
        elif event.char == "j":
            state.move_down()
        elif event.char == "k":
            state.move_up()
        elif event.char == "/":
            state.filtering = True
        elif event.char == "q":
            return Cancelled()
    return None


class Terminal(Protocol):
    """Render and read-key capability; a context manager owning the terminal."""

    def __enter__(self) -> "Terminal": ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None: ...

    def render(self, state: SelectionState) -> None: ...

    def read_key(self) -> KeyEvent: ...


def run_selection(
    records: Sequence[BranchRecord],
    terminal: Terminal,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> SelectionOutcome:
    """Let the user pick a branch.

    The terminal is entered for the whole loop and released on every exit
    path. Ctrl-C (KeyboardInterrupt) counts as cancelling.
    """
    state = SelectionState.for_records(records, page_size=page_size)
    try:
        with terminal:
            while True:
                terminal.render(state)
                outcome = handle_key(state, terminal.read_key())
                if outcome is not None:
                    break
    except KeyboardInterrupt:
        logger.debug("Interrupted, cancelling selection")
        return Cancelled()

    logger.debug("Selection finished: %s", outcome)
    return outcome
