"""Tests for crossinfo.state."""

from __future__ import annotations

from conftest import FakeProbe, make_process
from crossinfo.sorting import ComponentField, Direction, ProcessField, SortSpec
from crossinfo.state import (
    TABS,
    ConfirmKill,
    Cursor,
    InteractionState,
    KeyPress,
    MoreInfo,
    NoSelectionWarning,
    Outcome,
    Screen,
    Scroll,
    Tab,
    ViewContext,
)

EDITOR = make_process(42, "editor", cpu=12.0)
PROCESS_VIEW = ViewContext(line_count=2, selected_process=EDITOR, info=("More information", "Name: editor"))


def dashboard_on(tab: Tab) -> InteractionState:
    state = InteractionState(screen=Screen.DASHBOARD)
    state.cursor.active_tab = TABS.index(tab)
    return state


def press(state: InteractionState, key: str, view: ViewContext | None = None,
          probe: FakeProbe | None = None) -> Outcome:
    return state.handle(KeyPress(key), view or ViewContext(), probe or FakeProbe())


# ── Cursor ─────────────────────────────────────────────────────────────────


class TestCursor:
    def test_tabs_saturate(self) -> None:
        cursor = Cursor()
        cursor.previous_tab()
        assert cursor.active_tab == 0
        for _ in range(len(TABS) + 3):
            cursor.next_tab()
        assert cursor.active_tab == len(TABS) - 1
        assert cursor.tab is Tab.COMPONENTS

    def test_tab_change_resets_line(self) -> None:
        cursor = Cursor(active_tab=2, selected_line=5)
        cursor.next_tab()
        assert cursor.selected_line == 0
        cursor.selected_line = 3
        cursor.previous_tab()
        assert cursor.selected_line == 0

    def test_line_bounds(self) -> None:
        cursor = Cursor()
        cursor.line_up()
        assert cursor.selected_line == 0
        for _ in range(10):
            cursor.line_down(3)
        assert cursor.selected_line == 2

    def test_line_down_on_empty_view(self) -> None:
        cursor = Cursor()
        cursor.line_down(0)
        assert cursor.selected_line == 0

    def test_clamp(self) -> None:
        cursor = Cursor(selected_line=9)
        cursor.clamp(4)
        assert cursor.selected_line == 3


# ── Screens ────────────────────────────────────────────────────────────────


class TestScreens:
    def test_starts_on_welcome(self) -> None:
        assert InteractionState().screen is Screen.WELCOME

    def test_enter_leaves_welcome(self) -> None:
        state = InteractionState()
        assert press(state, "enter") is Outcome.DASHBOARD_ENTERED
        assert state.screen is Screen.DASHBOARD

    def test_welcome_ignores_other_keys(self) -> None:
        state = InteractionState()
        assert press(state, "right") is Outcome.CONTINUE
        assert state.handle(Scroll(1), ViewContext(line_count=5), FakeProbe()) is Outcome.CONTINUE
        assert state.screen is Screen.WELCOME
        assert state.cursor == Cursor()

    def test_quit_from_anywhere(self) -> None:
        assert press(InteractionState(), "q") is Outcome.QUIT
        assert press(InteractionState(), "esc") is Outcome.QUIT
        assert press(dashboard_on(Tab.PROCESSES), "q") is Outcome.QUIT

    def test_quit_with_popup_open(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        state.popup = ConfirmKill(42, "editor")
        assert press(state, "q") is Outcome.QUIT

    def test_enter_on_dashboard_is_noop(self) -> None:
        state = dashboard_on(Tab.CPU)
        assert press(state, "enter") is Outcome.CONTINUE


# ── Navigation ─────────────────────────────────────────────────────────────


class TestNavigation:
    def test_arrows_and_scroll(self) -> None:
        state = dashboard_on(Tab.SYSTEM)
        view = ViewContext(line_count=3)
        press(state, "down", view)
        state.handle(Scroll(1), view, FakeProbe())
        state.handle(Scroll(1), view, FakeProbe())
        assert state.cursor.selected_line == 2
        state.handle(Scroll(-1), view, FakeProbe())
        press(state, "up", view)
        press(state, "up", view)
        assert state.cursor.selected_line == 0

    def test_left_right(self) -> None:
        state = dashboard_on(Tab.SYSTEM)
        press(state, "right")
        press(state, "right")
        assert state.cursor.tab is Tab.MEMORY
        press(state, "left")
        assert state.cursor.tab is Tab.CPU

    def test_unknown_keys_ignored(self) -> None:
        state = dashboard_on(Tab.CPU)
        for key in ("z", "7", "?", " "):
            assert press(state, key) is Outcome.CONTINUE
        assert state.cursor.tab is Tab.CPU
        assert state.popup is None


# ── Popups ─────────────────────────────────────────────────────────────────


class TestPopups:
    def test_kill_opens_confirmation(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        press(state, "k", PROCESS_VIEW)
        assert state.popup == ConfirmKill(pid=42, name="editor")

    def test_kill_without_selection_warns(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        press(state, "k", ViewContext())
        assert state.popup == NoSelectionWarning()

    def test_kill_only_on_processes_tab(self) -> None:
        state = dashboard_on(Tab.CPU)
        press(state, "k", PROCESS_VIEW)
        assert state.popup is None

    def test_confirm_kills_and_reports(self) -> None:
        probe = FakeProbe()
        state = dashboard_on(Tab.PROCESSES)
        press(state, "k", PROCESS_VIEW, probe)
        press(state, "y", PROCESS_VIEW, probe)
        assert probe.killed == [42]
        assert state.popup is None
        assert state.status == "Killed editor (42)"

    def test_failed_kill_is_reported(self) -> None:
        probe = FakeProbe()
        probe.kill_result = False
        state = dashboard_on(Tab.PROCESSES)
        press(state, "k", PROCESS_VIEW, probe)
        press(state, "y", PROCESS_VIEW, probe)
        assert probe.killed == [42]
        assert state.status == "Could not kill editor (42)"

    def test_deny_kill(self) -> None:
        probe = FakeProbe()
        state = dashboard_on(Tab.PROCESSES)
        press(state, "k", PROCESS_VIEW, probe)
        press(state, "n", PROCESS_VIEW, probe)
        assert probe.killed == []
        assert state.popup is None

    def test_yes_without_confirmation_does_nothing(self) -> None:
        probe = FakeProbe()
        state = dashboard_on(Tab.PROCESSES)
        press(state, "y", PROCESS_VIEW, probe)
        assert probe.killed == []

    def test_info_popup(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        press(state, "i", PROCESS_VIEW)
        assert state.popup == MoreInfo("More information", "Name: editor")
        press(state, "x", PROCESS_VIEW)
        assert state.popup is None

    def test_info_on_network_without_selection(self) -> None:
        state = dashboard_on(Tab.NETWORK)
        press(state, "i", ViewContext())
        assert state.popup == NoSelectionWarning()

    def test_info_ignored_on_other_tabs(self) -> None:
        state = dashboard_on(Tab.DISKS)
        press(state, "i", PROCESS_VIEW)
        assert state.popup is None

    def test_at_most_one_popup(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        press(state, "i", PROCESS_VIEW)
        press(state, "k", PROCESS_VIEW)
        assert isinstance(state.popup, MoreInfo)

    def test_n_does_not_close_info(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        press(state, "i", PROCESS_VIEW)
        press(state, "n", PROCESS_VIEW)
        assert isinstance(state.popup, MoreInfo)


# ── Sorting ────────────────────────────────────────────────────────────────


class TestSortKeys:
    def test_defaults(self) -> None:
        state = InteractionState()
        assert state.process_sort == SortSpec(ProcessField.CPU, Direction.DESCENDING)
        assert state.component_sort == SortSpec(ComponentField.TEMPERATURE, Direction.DESCENDING)

    def test_case_selects_direction(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        press(state, "m")
        assert state.process_sort == SortSpec(ProcessField.MEMORY, Direction.ASCENDING)
        press(state, "M")
        assert state.process_sort == SortSpec(ProcessField.MEMORY, Direction.DESCENDING)
        press(state, "r")
        assert state.process_sort == SortSpec(ProcessField.RUNTIME, Direction.ASCENDING)
        press(state, "S")
        assert state.process_sort == SortSpec(ProcessField.SWAP, Direction.DESCENDING)

    def test_c_depends_on_tab(self) -> None:
        state = dashboard_on(Tab.PROCESSES)
        press(state, "c")
        assert state.process_sort == SortSpec(ProcessField.CPU, Direction.ASCENDING)

        state = dashboard_on(Tab.COMPONENTS)
        press(state, "C")
        assert state.component_sort == SortSpec(ComponentField.CRITICAL, Direction.DESCENDING)
        assert state.process_sort == SortSpec(ProcessField.CPU, Direction.DESCENDING)

    def test_temperature(self) -> None:
        state = dashboard_on(Tab.COMPONENTS)
        press(state, "t")
        assert state.component_sort == SortSpec(ComponentField.TEMPERATURE, Direction.ASCENDING)
