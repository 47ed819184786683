"""Declarative frame descriptions.

``build_frame`` turns the interaction state plus whatever telemetry is
currently cached into a tree of plain dataclasses. It never queries the
probe; the renderer only ever sees these objects.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Union, assert_never

from crossinfo.cache import SnapshotCache
from crossinfo.network import NetworkSlot
from crossinfo.probe import (
    BatteryInfo,
    Category,
    ComponentInfo,
    CpuInfo,
    DiskInfo,
    MemoryInfo,
    NetworkInfo,
    NetworkInterface,
    ProcessInfo,
    SystemInfo,
)
from crossinfo.series import RAM_KEY, SWAP_KEY, Sample, TimeSeriesRecorder
from crossinfo.sorting import (
    ComponentField,
    ProcessField,
    SortSpec,
    sort_components,
    sort_processes,
)
from crossinfo.state import (
    TABS,
    ConfirmKill,
    InteractionState,
    MoreInfo,
    NoSelectionWarning,
    Popup,
    Screen,
    Tab,
    ViewContext,
)

NO_INFO = "No information available!"
LOADING = "Loading..."

# Categories each tab reads from the snapshot cache (Network reads the worker slot)
TAB_CATEGORIES: dict[Tab, Category] = {
    Tab.SYSTEM: Category.SYSTEM,
    Tab.CPU: Category.CPU,
    Tab.MEMORY: Category.MEMORY,
    Tab.DISKS: Category.DISKS,
    Tab.BATTERIES: Category.BATTERIES,
    Tab.PROCESSES: Category.PROCESSES,
    Tab.COMPONENTS: Category.COMPONENTS,
}

WELCOME_TEXT = """\
Welcome to crossinfo, live information about your system in the terminal!

   ___ _ __ ___  ___ ___(_)_ __  / _| ___
  / __| '__/ _ \\/ __/ __| | '_ \\| |_ / _ \\
 | (__| | | (_) \\__ \\__ \\ | | | |  _| (_) |
  \\___|_|  \\___/|___/___/_|_| |_|_|  \\___/

Press Enter to continue if you already know your way around.

Otherwise, here is how it works.

Tabs are listed along the top of the screen. Move between them with the
left and right arrow keys.

Paragraphs and lists scroll with the up and down arrow keys or the mouse
wheel.

Some lists can be sorted. Their header shows a letter in square brackets
next to each sortable column: press the lower-case letter to sort that
column in ascending order, or the upper-case letter for descending order.

On the Processes tab, [k] asks to kill the selected process and [i] shows
more information about it. [i] also works on the network interface list.
Close a popup with [x]; answer a kill prompt with [y]es or [n]o.

To exit, press 'q' or Esc.
"""


# ── Frame types ────────────────────────────────────────────────────────────


@dataclass(slots=True)
class Paragraph:
    title: str
    lines: list[str]
    scroll: int = 0
    centered: bool = False


@dataclass(slots=True)
class ListView:
    title: str
    rows: list[str]
    selected: int | None = None
    highlight_symbol: str = ">"
    levels: list[float] | None = None  # per-row load fraction, for colouring


@dataclass(slots=True)
class ChartLine:
    name: str
    points: list[Sample]


@dataclass(slots=True)
class Chart:
    title: str
    lines: list[ChartLine]
    x_bounds: tuple[float, float]
    y_bounds: tuple[float, float]
    x_labels: list[str]
    y_labels: list[str]
    x_title: str = "Seconds Elapsed"
    y_title: str = ""


@dataclass(slots=True)
class Panes:
    """Children laid out side by side (``vertical=False``) or stacked, with percentage weights."""

    children: list[tuple[int, Content]]
    vertical: bool = True


Content = Union[Paragraph, ListView, Chart, Panes]


@dataclass(slots=True)
class Overlay:
    title: str
    text: str
    width_pct: int = 50
    height_pct: int = 70


@dataclass(slots=True)
class Frame:
    tabs: list[str]
    active_tab: int
    content: Content
    overlay: Overlay | None = None
    status: str = ""


@dataclass(slots=True)
class Telemetry:
    """Read-only handles the frame is built from."""

    cache: SnapshotCache
    recorder: TimeSeriesRecorder
    network: NetworkSlot
    elapsed: float = 0.0
    ram_scale: float | None = None
    swap_scale: float | None = None


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_size(n: int | float) -> str:
    """Human-readable byte count (decimal prefixes)."""
    v = float(n)
    if abs(v) < 1000:
        return f"{v:.0f} B"
    for unit in ("kB", "MB", "GB", "TB"):
        v /= 1000
        if abs(v) < 1000:
            return f"{v:.2f} {unit}"
    return f"{v / 1000:.2f} PB"


def fmt_duration(seconds: float) -> str:
    """HH:MM:SS; hours are not wrapped into days."""
    s = int(seconds)
    return f"{s // 3600:02d}:{(s // 60) % 60:02d}:{s % 60:02d}"


def or_unknown(value: Any) -> str:
    return "unknown" if value is None else str(value)


# ── Tabs ───────────────────────────────────────────────────────────────────


def _paragraph(title: str, lines: list[str] | None, scroll: int) -> tuple[Content, ViewContext]:
    if lines is None:
        return Paragraph(title, [NO_INFO]), ViewContext(line_count=1)
    return Paragraph(title, lines, scroll=scroll), ViewContext(line_count=len(lines))


def system_lines(info: SystemInfo) -> list[str]:
    lines = [
        f"Operating System: {or_unknown(info.os)}",
        f"Operating System Version: {or_unknown(info.os_version)}",
        f"Kernel Version: {or_unknown(info.kernel_version)}",
        f"Host Name: {or_unknown(info.host_name)}",
        f"Uptime: {fmt_duration(info.uptime_seconds)}",
        "Users:",
    ]
    lines.extend(f"   {user}" for user in info.users)
    return lines


def disk_lines(disks: list[DiskInfo]) -> list[str]:
    lines: list[str] = []
    for disk in disks:
        lines += [
            disk.name,
            f"Used Space: {fmt_size(disk.used)}",
            f"Total Space: {fmt_size(disk.total)}",
            f"Mount Point: {disk.mount_point}",
            f"Filesystem: {or_unknown(disk.file_system)}",
            "",
        ]
    return lines


def battery_lines(batteries: list[BatteryInfo]) -> list[str]:
    lines: list[str] = []
    for battery in batteries:
        left = fmt_duration(battery.seconds_left) if battery.seconds_left is not None else "unknown"
        lines += [
            or_unknown(battery.model),
            f"Manufacturer: {or_unknown(battery.manufacturer)}",
            f"Charge: {int(battery.charge * 100)}%",
            f"Status: {battery.state}",
            f"Time Left: {left}",
            "",
        ]
    return lines


def _time_axis(elapsed: float) -> tuple[tuple[float, float], list[str]]:
    return (0.0, elapsed), ["0", str(int(elapsed / 2)), str(int(elapsed))]


def cpu_content(
    cores: list[CpuInfo] | None, recorder: TimeSeriesRecorder, elapsed: float, line: int
) -> tuple[Content, ViewContext]:
    if not cores:
        return Paragraph("CPU", [NO_INFO]), ViewContext(line_count=1)

    x_bounds, x_labels = _time_axis(elapsed)
    groups = [
        list(group)
        for _, group in itertools.groupby(
            sorted(cores, key=lambda c: c.manufacturer), key=lambda c: c.manufacturer
        )
    ]
    weight = 100 // len(groups)
    lists: list[tuple[int, Content]] = []
    charts: list[tuple[int, Content]] = []
    for group in groups:
        model_w = max(len("Model/Core Nr."), *(len(c.model) for c in group))
        rows = [f"{c.model:{model_w}s}  {c.frequency_ghz:15.2f}  {c.usage:6.2f}%" for c in group]
        header = f"{group[0].manufacturer}  {'Model/Core Nr.':{model_w}s}  Frequency (GHz)   Usage"
        lists.append(
            (weight, ListView(header, rows, selected=line, levels=[c.usage / 100 for c in group]))
        )
        charts.append(
            (
                weight,
                Chart(
                    title="CPU usage",
                    lines=[ChartLine(c.model, recorder.series(c.key)) for c in group],
                    x_bounds=x_bounds,
                    y_bounds=(0.0, 100.0),
                    x_labels=x_labels,
                    y_labels=["0%", "50%", "100%"],
                    y_title="CPU usage",
                ),
            )
        )
    content = Panes(
        [(20, Panes(lists, vertical=False)), (80, Panes(charts, vertical=False))]
    )
    return content, ViewContext(line_count=max(len(g) for g in groups))


def memory_content(tel: Telemetry) -> tuple[Content, ViewContext]:
    info: MemoryInfo | None = tel.cache.peek(Category.MEMORY)
    if info is None or tel.ram_scale is None or tel.swap_scale is None:
        return Paragraph("Memory", ["No memory/SWAP information was able to be obtained!"]), ViewContext(1)

    x_bounds, x_labels = _time_axis(tel.elapsed)
    label_max = max(info.total_memory, info.total_swap)
    chart = Chart(
        title=(
            f"Memory: {fmt_size(info.used_memory)}/{fmt_size(info.total_memory)}, "
            f"SWAP: {fmt_size(info.used_swap)}/{fmt_size(info.total_swap)}"
        ),
        lines=[
            ChartLine("RAM used", tel.recorder.series(RAM_KEY)),
            ChartLine("SWAP used", tel.recorder.series(SWAP_KEY)),
        ],
        x_bounds=x_bounds,
        y_bounds=(0.0, max(tel.ram_scale, tel.swap_scale)),
        x_labels=x_labels,
        y_labels=[fmt_size(0), fmt_size(label_max / 2), fmt_size(label_max)],
        y_title="Used Memory/SWAP",
    )
    return chart, ViewContext(line_count=0)


def interface_info_text(n: NetworkInterface) -> str:
    ips = "\n".join(f"    {ip}" for ip in n.addresses) or "    unknown"
    speed = f"{n.speed_mbps} Mbit/s" if n.speed_mbps else "unknown"
    return "\n".join(
        [
            f"Name: {n.name}",
            f"MAC-Address: {or_unknown(n.mac_address)}",
            f"Index: {or_unknown(n.index)}",
            "IP-addresses:",
            ips,
            f"Is up? {or_unknown(n.is_up)}",
            f"MTU: {or_unknown(n.mtu)}",
            f"Speed: {speed}",
            f"Received: {fmt_size(n.received_total) if n.received_total is not None else 'unknown'}",
            f"Transmitted: {fmt_size(n.transmitted_total) if n.transmitted_total is not None else 'unknown'}",
            f"Packets received: {or_unknown(n.packets_received)}",
            f"Packets transmitted: {or_unknown(n.packets_transmitted)}",
        ]
    )


def network_content(slot: NetworkSlot, line: int) -> tuple[Content, ViewContext]:
    info: NetworkInfo | None = slot.read()
    if info is None:
        text = LOADING if slot.generation == 0 else NO_INFO
        return (
            Panes(
                [
                    (33, Paragraph("Networks", [text])),
                    (33, ListView("WiFi networks", [text])),
                    (34, ListView("Networks/Interfaces", [text])),
                ]
            ),
            ViewContext(line_count=0),
        )

    summary = Paragraph(
        "Networks",
        [
            f"Connected to the internet: {str(info.connected).lower()}",
            f"IP Address (IPv4): {or_unknown(info.ip_address_v4)}",
            f"IP Address (IPv6): {or_unknown(info.ip_address_v6)}",
        ],
    )
    if info.wifis is None:
        wifis = ListView("WiFi networks", ["No WiFi information available!"])
    else:
        wifis = ListView("WiFi networks", [str(w) for w in info.wifis])

    interfaces = info.interfaces
    if interfaces is None:
        iface_view = ListView("Networks/Interfaces", ["No network/interface information available!"])
        return Panes([(33, summary), (33, wifis), (34, iface_view)]), ViewContext(line_count=0)

    name_w = max([len("Name"), *(len(n.name) for n in interfaces)])
    rows = [
        f"{n.name:{name_w}s}  {or_unknown(n.index):5s}  {or_unknown(n.mac_address):17s}  "
        f"{'up' if n.is_up else 'down'}"
        for n in interfaces
    ]
    header = f"{'Name':{name_w}s}  Index  {'MAC Address':17s}  State"
    iface_view = ListView(
        header,
        rows,
        selected=line if interfaces else None,
        highlight_symbol="Display more [i]nformation   ",
    )
    selected = interfaces[line] if line < len(interfaces) else None
    view = ViewContext(
        line_count=len(interfaces),
        info=(f"Interface {selected.name}", interface_info_text(selected)) if selected else None,
    )
    return Panes([(33, summary), (33, wifis), (34, iface_view)]), view


def _sort_marker(spec: SortSpec, field_: Any, letter: str) -> str:
    if spec.field is field_:
        return f"[{letter.upper()}]" if spec.descending else f"[{letter}]"
    return f"[{letter}]"


def process_info_text(proc: ProcessInfo, names: dict[int, str]) -> str:
    if proc.parent is None:
        parent = "No parent"
    else:
        parent = names.get(proc.parent, "unknown")
    return "\n".join(
        [
            f"Name: {proc.name}",
            f"Path: {or_unknown(proc.path)}",
            f"Memory Usage: {fmt_size(proc.memory_usage)}",
            f"SWAP Usage: {fmt_size(proc.swap_usage)}",
            f"CPU Usage: {proc.cpu_usage:.2f}%",
            f"Runtime: {fmt_duration(proc.run_time_seconds)}",
            f"PID: {proc.pid}",
            f"Parent: {parent}",
        ]
    )


def process_content(
    processes: list[ProcessInfo] | None, spec: SortSpec, line: int
) -> tuple[Content, ViewContext]:
    if not processes:
        return ListView("Processes", [NO_INFO]), ViewContext(line_count=0)

    ordered = sort_processes(processes, spec)
    name_w = max(len("Name"), *(len(p.name) for p in ordered))
    cpu_label = f"CPU usage {_sort_marker(spec, ProcessField.CPU, 'c')}"
    mem_label = f"Memory usage {_sort_marker(spec, ProcessField.MEMORY, 'm')}"
    swap_label = f"SWAP usage {_sort_marker(spec, ProcessField.SWAP, 's')}"
    run_label = f"Runtime {_sort_marker(spec, ProcessField.RUNTIME, 'r')}"
    rows = [
        f"{p.name:{name_w}s}  {p.cpu_usage:{len(cpu_label) - 1}.2f}%  "
        f"{fmt_size(p.memory_usage):>{len(mem_label)}s}  "
        f"{fmt_size(p.swap_usage):>{len(swap_label)}s}  "
        f"{fmt_duration(p.run_time_seconds):>{len(run_label)}s}"
        for p in ordered
    ]
    header = f"{'Name':{name_w}s}  {cpu_label}  {mem_label}  {swap_label}  {run_label}"
    line = min(line, len(ordered) - 1)
    selected = ordered[line]
    names = {p.pid: p.name for p in processes}
    view = ViewContext(
        line_count=len(ordered),
        selected_process=selected,
        info=("More information", process_info_text(selected, names)),
    )
    content = ListView(
        header,
        rows,
        selected=line,
        highlight_symbol="Kill [k]   ",
        levels=[p.cpu_usage / 100 for p in ordered],
    )
    return content, view


def component_content(
    components: list[ComponentInfo] | None, spec: SortSpec, line: int
) -> tuple[Content, ViewContext]:
    if not components:
        return ListView("Components", [NO_INFO]), ViewContext(line_count=0)

    ordered = sort_components(components, spec)
    name_w = max(len("Name"), *(len(c.name) for c in ordered))
    temp_label = f"Temperature {_sort_marker(spec, ComponentField.TEMPERATURE, 't')}"
    crit_label = f"Critical Temperature {_sort_marker(spec, ComponentField.CRITICAL, 'c')}"
    rows = []
    levels = []
    for c in ordered:
        crit = f"{c.critical_temperature:.2f}°C" if c.critical_temperature is not None else "None"
        rows.append(f"{c.name:{name_w}s}  {c.temperature:{len(temp_label) - 2}.2f}°C  {crit}")
        levels.append(c.temperature / (c.critical_temperature or 100.0))
    header = f"{'Name':{name_w}s}  {temp_label}  {crit_label}"
    line = min(line, len(ordered) - 1)
    return (
        ListView(header, rows, selected=line, levels=levels),
        ViewContext(line_count=len(ordered)),
    )


def tab_content(state: InteractionState, tel: Telemetry) -> tuple[Content, ViewContext]:
    """Content for the active tab plus the matching view context."""
    tab = state.cursor.tab
    line = state.cursor.selected_line
    cache = tel.cache

    category = TAB_CATEGORIES.get(tab)
    if category is not None and not cache.has_fetched(category):
        return Paragraph(tab.value, [LOADING]), ViewContext(line_count=1)

    if tab is Tab.SYSTEM:
        info = cache.peek(Category.SYSTEM)
        return _paragraph("System", system_lines(info) if info else None, line)
    if tab is Tab.CPU:
        return cpu_content(cache.peek(Category.CPU), tel.recorder, tel.elapsed, line)
    if tab is Tab.MEMORY:
        return memory_content(tel)
    if tab is Tab.DISKS:
        disks = cache.peek(Category.DISKS)
        return _paragraph("Disks", disk_lines(disks) if disks is not None else None, line)
    if tab is Tab.BATTERIES:
        batteries = cache.peek(Category.BATTERIES)
        if batteries is None:
            return Paragraph("Batteries", ["No battery information was able to be obtained!"]), ViewContext(1)
        return _paragraph("Batteries", battery_lines(batteries), line)
    if tab is Tab.NETWORK:
        return network_content(tel.network, line)
    if tab is Tab.PROCESSES:
        return process_content(cache.peek(Category.PROCESSES), state.process_sort, line)
    if tab is Tab.COMPONENTS:
        return component_content(cache.peek(Category.COMPONENTS), state.component_sort, line)
    assert_never(tab)


def popup_overlay(popup: Popup, tab: Tab) -> Overlay | None:
    if popup is None:
        return None
    if isinstance(popup, ConfirmKill):
        return Overlay(
            "Kill process?",
            f'Do you really want to kill the process "{popup.name}"?\n\n[y]es        [n]o',
        )
    if isinstance(popup, MoreInfo):
        return Overlay(popup.title, popup.text)
    if isinstance(popup, NoSelectionWarning):
        what = "network" if tab is Tab.NETWORK else "process"
        return Overlay(f"No {what} selected!", f"You don't have a {what} selected!")
    assert_never(popup)


def welcome_frame() -> Frame:
    return Frame(tabs=[], active_tab=0, content=Paragraph("", WELCOME_TEXT.splitlines(), centered=True))


def build_frame(state: InteractionState, tel: Telemetry) -> tuple[Frame, ViewContext]:
    """Describe the current screen. Pure read: neither the probe nor *state* is modified."""
    if state.screen is Screen.WELCOME:
        return welcome_frame(), ViewContext()

    content, view = tab_content(state, tel)
    frame = Frame(
        tabs=[t.value for t in TABS],
        active_tab=state.cursor.active_tab,
        content=content,
        overlay=popup_overlay(state.popup, state.cursor.tab),
        status=state.status,
    )
    return frame, view
