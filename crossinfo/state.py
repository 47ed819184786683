"""Interaction state: screen, tab/line cursor, sort orders and popups.

Input events are interpreted here and nowhere else. The render loop hands
each event over together with a ``ViewContext`` describing what the active
tab currently shows, so selection-dependent keys (kill, info) resolve
against exactly the rows the user is looking at.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Union

from crossinfo.probe import ProcessInfo
from crossinfo.sorting import (
    DEFAULT_COMPONENT_SORT,
    DEFAULT_PROCESS_SORT,
    ComponentField,
    Direction,
    ProcessField,
    SortSpec,
)

logger = logging.getLogger(__name__)


class Tab(Enum):
    """Dashboard tabs, in display order."""

    SYSTEM = "System"
    CPU = "CPU"
    MEMORY = "Memory"
    DISKS = "Disks"
    BATTERIES = "Batteries"
    NETWORK = "Network"
    PROCESSES = "Processes"
    COMPONENTS = "Components"


TABS: list[Tab] = list(Tab)


class Screen(Enum):
    WELCOME = "welcome"
    DASHBOARD = "dashboard"


class Outcome(Enum):
    """What the render loop should do after an event."""

    CONTINUE = "continue"
    DASHBOARD_ENTERED = "dashboard_entered"
    QUIT = "quit"


# ── Input events ───────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class KeyPress:
    """A key: a printable character, or one of up/down/left/right/enter/esc."""

    key: str


@dataclass(slots=True, frozen=True)
class Scroll:
    delta: int  # -1 up, +1 down


InputEvent = Union[KeyPress, Scroll]


# ── Popups ─────────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class ConfirmKill:
    pid: int
    name: str


@dataclass(slots=True, frozen=True)
class MoreInfo:
    title: str
    text: str


@dataclass(slots=True, frozen=True)
class NoSelectionWarning:
    pass


Popup = Union[ConfirmKill, MoreInfo, NoSelectionWarning, None]


# ── Cursor ─────────────────────────────────────────────────────────────────


@dataclass
class Cursor:
    active_tab: int = 0
    selected_line: int = 0

    @property
    def tab(self) -> Tab:
        return TABS[self.active_tab]

    def next_tab(self) -> None:
        self.active_tab = min(self.active_tab + 1, len(TABS) - 1)
        self.selected_line = 0

    def previous_tab(self) -> None:
        self.active_tab = max(self.active_tab - 1, 0)
        self.selected_line = 0

    def line_up(self) -> None:
        self.selected_line = max(self.selected_line - 1, 0)

    def line_down(self, line_count: int) -> None:
        self.selected_line = min(self.selected_line + 1, max(line_count - 1, 0))

    def clamp(self, line_count: int) -> None:
        self.selected_line = min(self.selected_line, max(line_count - 1, 0))


# ── View context ───────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class ViewContext:
    """What the active tab shows right now.

    Attributes:
        line_count: Rows (lists) or text lines (paragraphs) in the active view.
        selected_process: Process under the cursor on the Processes tab.
        info: ``(title, text)`` details for the selected row, if the tab has any.
    """

    line_count: int = 0
    selected_process: ProcessInfo | None = None
    info: tuple[str, str] | None = None


class Killer(Protocol):
    def kill_process(self, pid: int) -> bool: ...


# ── State machine ──────────────────────────────────────────────────────────

_PROCESS_SORT_KEYS: dict[str, ProcessField] = {
    "m": ProcessField.MEMORY,
    "s": ProcessField.SWAP,
    "r": ProcessField.RUNTIME,
}


@dataclass
class InteractionState:
    screen: Screen = Screen.WELCOME
    cursor: Cursor = field(default_factory=Cursor)
    popup: Popup = None
    process_sort: SortSpec = DEFAULT_PROCESS_SORT
    component_sort: SortSpec = DEFAULT_COMPONENT_SORT
    status: str = ""

    def handle(self, event: InputEvent, view: ViewContext, killer: Killer) -> Outcome:
        """Apply one input event. Never raises for unknown keys."""
        if isinstance(event, KeyPress) and event.key in ("q", "esc"):
            return Outcome.QUIT

        if self.screen is Screen.WELCOME:
            if isinstance(event, KeyPress) and event.key == "enter":
                self.screen = Screen.DASHBOARD
                return Outcome.DASHBOARD_ENTERED
            return Outcome.CONTINUE

        if isinstance(event, Scroll):
            if event.delta < 0:
                self.cursor.line_up()
            elif event.delta > 0:
                self.cursor.line_down(view.line_count)
            return Outcome.CONTINUE

        key = event.key
        if key == "up":
            self.cursor.line_up()
        elif key == "down":
            self.cursor.line_down(view.line_count)
        elif key == "left":
            self.cursor.previous_tab()
        elif key == "right":
            self.cursor.next_tab()
        elif key == "k":
            self._trigger_kill(view)
        elif key == "i":
            self._trigger_info(view)
        elif key == "x":
            self.popup = None
        elif key == "y":
            self._confirm_kill(killer)
        elif key == "n":
            if isinstance(self.popup, ConfirmKill):
                self.popup = None
        elif len(key) == 1 and key.isalpha():
            self._select_sort(key)
        return Outcome.CONTINUE

    # ── Popups ────────────────────────────────────────────────────────────

    def _trigger_kill(self, view: ViewContext) -> None:
        if self.popup is not None or self.cursor.tab is not Tab.PROCESSES:
            return
        proc = view.selected_process
        if proc is None:
            self.popup = NoSelectionWarning()
        else:
            self.popup = ConfirmKill(pid=proc.pid, name=proc.name)

    def _trigger_info(self, view: ViewContext) -> None:
        if self.popup is not None or self.cursor.tab not in (Tab.PROCESSES, Tab.NETWORK):
            return
        if view.info is None:
            self.popup = NoSelectionWarning()
        else:
            self.popup = MoreInfo(title=view.info[0], text=view.info[1])

    def _confirm_kill(self, killer: Killer) -> None:
        popup = self.popup
        if not isinstance(popup, ConfirmKill):
            return
        if killer.kill_process(popup.pid):
            self.status = f"Killed {popup.name} ({popup.pid})"
        else:
            self.status = f"Could not kill {popup.name} ({popup.pid})"
        logger.info(self.status)
        self.popup = None

    # ── Sorting ───────────────────────────────────────────────────────────

    def _select_sort(self, key: str) -> None:
        direction = Direction.DESCENDING if key.isupper() else Direction.ASCENDING
        lower = key.lower()
        tab = self.cursor.tab
        if lower == "c":
            if tab is Tab.PROCESSES:
                self.process_sort = SortSpec(ProcessField.CPU, direction)
            elif tab is Tab.COMPONENTS:
                self.component_sort = SortSpec(ComponentField.CRITICAL, direction)
        elif lower in _PROCESS_SORT_KEYS:
            self.process_sort = SortSpec(_PROCESS_SORT_KEYS[lower], direction)
        elif lower == "t":
            self.component_sort = SortSpec(ComponentField.TEMPERATURE, direction)
