"""curses backend: draws ``Frame`` descriptions and polls input.

Nothing here knows about telemetry. The renderer receives a finished
frame, lays it out on the current terminal size, and turns raw key codes
into ``KeyPress``/``Scroll`` events without ever waiting for input.
"""

from __future__ import annotations

import curses
import textwrap
from typing import Any

from crossinfo.frame import Chart, Content, Frame, ListView, Overlay, Panes, Paragraph
from crossinfo.state import InputEvent, KeyPress, Scroll

# ── Constants ──────────────────────────────────────────────────────────────

POINT = "•"

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_ELEVATED = 3
C_CRITICAL = 4
C_TITLE = 5
C_DIM = 6
C_LINE_BASE = 10  # chart lines use C_LINE_BASE + index

_LINE_COLORS = (
    curses.COLOR_CYAN,
    curses.COLOR_GREEN,
    curses.COLOR_YELLOW,
    curses.COLOR_BLUE,
    curses.COLOR_MAGENTA,
    curses.COLOR_RED,
    curses.COLOR_WHITE,
)

_KEY_NAMES: dict[int, str] = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_ENTER: "enter",
    10: "enter",
    13: "enter",
    27: "esc",
}

Rect = tuple[int, int, int, int]  # y, x, h, w


# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_ELEVATED, curses.COLOR_MAGENTA, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    for i, color in enumerate(_LINE_COLORS):
        curses.init_pair(C_LINE_BASE + i, color, -1)


def level_color(fraction: float, thresholds: dict[str, Any]) -> int:
    """Colour pair for a load fraction (0.0 - 1.0+)."""
    if fraction >= float(thresholds.get("critical", 0.95)):
        return C_CRITICAL
    if fraction >= float(thresholds.get("elevated", 0.8)):
        return C_ELEVATED
    if fraction >= float(thresholds.get("warning", 0.6)):
        return C_WARNING
    return C_NORMAL


def line_color(index: int) -> int:
    return C_LINE_BASE + index % len(_LINE_COLORS)


# ── Layout helpers ─────────────────────────────────────────────────────────


def split(rect: Rect, weights: list[int], vertical: bool) -> list[Rect]:
    """Divide *rect* by percentage *weights*; the last child takes the remainder."""
    y, x, h, w = rect
    total = h if vertical else w
    out: list[Rect] = []
    offset = 0
    for i, weight in enumerate(weights):
        size = total - offset if i == len(weights) - 1 else total * weight // 100
        if vertical:
            out.append((y + offset, x, size, w))
        else:
            out.append((y, x + offset, h, size))
        offset += size
    return out


def centered(rect: Rect, width_pct: int, height_pct: int) -> Rect:
    y, x, h, w = rect
    ph = max(3, h * height_pct // 100)
    pw = max(4, w * width_pct // 100)
    return (y + (h - ph) // 2, x + (w - pw) // 2, ph, pw)


def wrap_lines(lines: list[str], width: int) -> list[str]:
    out: list[str] = []
    for line in lines:
        if not line:
            out.append("")
            continue
        out.extend(textwrap.wrap(line, width, replace_whitespace=False, drop_whitespace=False) or [""])
    return out


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: Any, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_box(win: Any, rect: Rect, title: str = "", right_title: str = "") -> Rect | None:
    """Draw a bordered box and return the inner rect."""
    y, x, h, w = rect
    max_y, max_x = win.getmaxyx()
    h = min(h, max_y - y)
    w = min(w, max_x - x)
    if h < 3 or w < 4:
        return None
    try:
        sub = win.derwin(h, w, y, x)
        sub.box()
    except curses.error:
        return None
    if title:
        _safe(sub, 0, 2, f" {title} "[: w - 4], curses.color_pair(C_TITLE) | curses.A_BOLD)
    if right_title and len(right_title) + len(title) + 8 < w:
        _safe(sub, 0, w - len(right_title) - 3, f" {right_title} ", curses.color_pair(C_TITLE))
    return (y + 1, x + 1, h - 2, w - 2)


def _clear_rect(win: Any, rect: Rect) -> None:
    y, x, h, w = rect
    for row in range(h):
        _safe(win, y + row, x, " " * w)


# ── Renderer ───────────────────────────────────────────────────────────────


class CursesRenderer:
    """Draws frames on *stdscr* and polls it for input."""

    def __init__(self, stdscr: Any, thresholds: dict[str, Any] | None = None) -> None:
        self._scr = stdscr
        self._thresholds = thresholds or {}

    def setup(self) -> None:
        _init_colors()
        try:
            curses.curs_set(0)
        except curses.error:
            pass  # cursor visibility unsupported by terminal
        try:
            curses.set_escdelay(25)
        except (AttributeError, curses.error):
            pass
        self._scr.nodelay(True)
        self._scr.keypad(True)
        curses.mousemask(curses.ALL_MOUSE_EVENTS | curses.REPORT_MOUSE_POSITION)

    # ── Input ─────────────────────────────────────────────────────────────

    def poll(self) -> InputEvent | None:
        """Return the next pending event, or None without waiting."""
        try:
            ch = self._scr.getch()
        except curses.error:
            return None
        if ch == -1:
            return None
        if ch == curses.KEY_RESIZE:
            self._scr.clear()
            return None
        if ch == curses.KEY_MOUSE:
            return self._mouse_event()
        if ch in _KEY_NAMES:
            return KeyPress(_KEY_NAMES[ch])
        if 32 <= ch < 127:
            return KeyPress(chr(ch))
        return None

    def _mouse_event(self) -> InputEvent | None:
        try:
            _, _, _, _, state = curses.getmouse()
        except curses.error:
            return None
        if state & curses.BUTTON4_PRESSED:
            return Scroll(-1)
        if state & getattr(curses, "BUTTON5_PRESSED", 0):
            return Scroll(1)
        return None

    # ── Output ────────────────────────────────────────────────────────────

    def draw(self, frame: Frame) -> None:
        scr = self._scr
        scr.erase()
        max_y, max_x = scr.getmaxyx()

        if frame.tabs:
            self._draw_tabs(frame, (0, 0, 3, max_x))
            body: Rect = (3, 0, max_y - 4, max_x)
        else:
            body = (0, 0, max_y - 1, max_x)

        self._draw_content(frame.content, body)
        if frame.overlay is not None:
            self._draw_overlay(frame.overlay, body)
        if frame.status:
            _safe(scr, max_y - 1, 1, frame.status[: max_x - 2], curses.color_pair(C_DIM))
        scr.refresh()

    def _draw_tabs(self, frame: Frame, rect: Rect) -> None:
        inner = _draw_box(self._scr, rect)
        if inner is None:
            return
        y, x, _, w = inner
        cx = x + 1
        for i, name in enumerate(frame.tabs):
            if cx >= x + w:
                break
            attr = curses.A_REVERSE | curses.A_BOLD if i == frame.active_tab else curses.A_NORMAL
            _safe(self._scr, y, cx, name[: x + w - cx], attr)
            cx += len(name)
            if i < len(frame.tabs) - 1:
                _safe(self._scr, y, cx, " │ "[: max(0, x + w - cx)], curses.color_pair(C_DIM))
                cx += 3

    def _draw_content(self, content: Content, rect: Rect) -> None:
        if isinstance(content, Panes):
            rects = split(rect, [wgt for wgt, _ in content.children], content.vertical)
            for (_, child), child_rect in zip(content.children, rects):
                self._draw_content(child, child_rect)
        elif isinstance(content, Paragraph):
            self._draw_paragraph(content, rect)
        elif isinstance(content, ListView):
            self._draw_list(content, rect)
        elif isinstance(content, Chart):
            self._draw_chart(content, rect)

    def _draw_paragraph(self, para: Paragraph, rect: Rect) -> None:
        inner = _draw_box(self._scr, rect, para.title)
        if inner is None:
            return
        y, x, h, w = inner
        lines = wrap_lines(para.lines, max(1, w - 2))[para.scroll :]
        for row, line in enumerate(lines[:h]):
            col = x + max(0, (w - len(line)) // 2) if para.centered else x + 1
            _safe(self._scr, y + row, col, line[:w])

    def _draw_list(self, view: ListView, rect: Rect) -> None:
        inner = _draw_box(self._scr, rect, view.title)
        if inner is None:
            return
        y, x, h, w = inner
        selected = view.selected
        pad = len(view.highlight_symbol) if selected is not None else 0
        first = 0
        if selected is not None and selected >= h:
            first = selected - h + 1
        for row, text in enumerate(view.rows[first : first + h]):
            index = first + row
            attr = curses.A_NORMAL
            if view.levels is not None and index < len(view.levels):
                attr = curses.color_pair(level_color(view.levels[index], self._thresholds))
            prefix = " " * pad
            if index == selected:
                attr = curses.A_REVERSE
                prefix = view.highlight_symbol
            _safe(self._scr, y + row, x, (prefix + text)[:w], attr)

    def _draw_chart(self, chart: Chart, rect: Rect) -> None:
        legend = "  ".join(line.name for line in chart.lines)
        inner = _draw_box(self._scr, rect, chart.title, legend)
        if inner is None:
            return
        y, x, h, w = inner
        label_w = max((len(label) for label in chart.y_labels), default=0) + 1
        plot_y, plot_x = y, x + label_w
        plot_h, plot_w = h - 2, w - label_w - 1
        if plot_h < 2 or plot_w < 4:
            return

        # y labels: bottom, middle, top
        for i, label in enumerate(chart.y_labels):
            row = plot_y + plot_h - 1 - (plot_h - 1) * i // max(1, len(chart.y_labels) - 1)
            _safe(self._scr, row, x, label.rjust(label_w - 1), curses.color_pair(C_DIM))
        # x axis and labels
        _safe(self._scr, plot_y + plot_h, plot_x, "─" * plot_w, curses.color_pair(C_DIM))
        for i, label in enumerate(chart.x_labels):
            col = plot_x + (plot_w - len(label)) * i // max(1, len(chart.x_labels) - 1)
            _safe(self._scr, plot_y + plot_h + 1, col, label, curses.color_pair(C_DIM))

        x0, x1 = chart.x_bounds
        y0, y1 = chart.y_bounds
        x_span = (x1 - x0) or 1.0
        y_span = (y1 - y0) or 1.0
        for i, line in enumerate(chart.lines):
            attr = curses.color_pair(line_color(i)) | curses.A_BOLD
            for px, py in line.points:
                col = int((px - x0) / x_span * (plot_w - 1))
                row = int((py - y0) / y_span * (plot_h - 1))
                if 0 <= col < plot_w and 0 <= row < plot_h:
                    _safe(self._scr, plot_y + plot_h - 1 - row, plot_x + col, POINT, attr)

    def _draw_overlay(self, overlay: Overlay, body: Rect) -> None:
        rect = centered(body, overlay.width_pct, overlay.height_pct)
        _clear_rect(self._scr, rect)
        inner = _draw_box(self._scr, rect, overlay.title, "[x]")
        if inner is None:
            return
        y, x, h, w = inner
        lines = wrap_lines(overlay.text.splitlines(), max(1, w - 2))
        for row, line in enumerate(lines[:h]):
            _safe(self._scr, y + row, x + 1, line[: w - 1])
