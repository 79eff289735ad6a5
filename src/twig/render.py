"""Rich rendering of the branch list."""

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.style import Style
from rich.text import Text

from twig.git import BranchRecord
from twig.selector import SelectionState

HIGHLIGHT_SYMBOL = "> "
HIGHLIGHT_STYLE = Style(color="green", reverse=True)
KEY_HINT = "↑↓ move · / filter · enter checkout · esc quit"


def branch_line(record: BranchRecord) -> Text:
    """Format one branch row.

    Branches without an upstream (or whose upstream is gone) are dimmed,
    the others have a bold name.
    """
    stale = not record.has_upstream or record.is_gone
    line = Text(style="dim" if stale and not record.is_remote else "")

    line.append("* " if record.is_current else "  ", style="green")
    if record.is_remote:
        line.append(record.name, style="cyan")
    else:
        line.append(record.name, style="" if stale else "bold")
    if record.pr_number is not None:
        line.append(f" #{record.pr_number}", style="magenta")
    if record.last_commit:
        line.append(" (")
        line.append(record.last_commit, style="yellow")
        line.append(")")
    if record.tracking:
        line.append(" ")
        line.append(record.tracking, style="cyan")
    return line


def branch_list(state: SelectionState) -> RenderableType:
    """Render the visible window with the cursor row highlighted."""
    title = "Branches" if state.current is not None or not state.records else "Branches (HEAD detached)"
    subtitle = f"/{state.filter}" if state.filtering or state.filter else KEY_HINT

    if not state.records:
        body: RenderableType = Text("No git branches found in this directory.")
    elif not state.visible:
        body = Text(f"No branches match {state.filter!r}", style="yellow")
    else:
        selected = state.selected()
        rows = []
        for record in state.window():
            if record == selected:
                row = Text(HIGHLIGHT_SYMBOL) + branch_line(record)
                row.stylize(HIGHLIGHT_STYLE)
            else:
                row = Text(" " * len(HIGHLIGHT_SYMBOL)) + branch_line(record)
            rows.append(row)
        body = Group(*rows)

    return Panel(body, title=title, title_align="left", subtitle=subtitle, subtitle_align="left", expand=True)
