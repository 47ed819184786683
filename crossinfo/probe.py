"""Platform probe — capability-gated host queries backed by psutil.

Every category is answered by a synchronous query that returns ``None``
when the host cannot provide it at all, and a (possibly empty) value
otherwise. Whether a category is supported is decided once, when the
probe is built, and never changes afterwards.

Transient failures are not handled here: psutil.Error / OSError escape
``query`` and the snapshot cache decides what to show instead.
"""

from __future__ import annotations

import logging
import platform
import socket
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import psutil

from crossinfo.series import MetricKey

logger = logging.getLogger(__name__)


class Category(Enum):
    """One kind of telemetry."""

    SYSTEM = "system"
    CPU = "cpu"
    MEMORY = "memory"
    DISKS = "disks"
    BATTERIES = "batteries"
    NETWORK = "network"
    PROCESSES = "processes"
    COMPONENTS = "components"


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class SystemInfo:
    os: str | None
    os_version: str | None
    kernel_version: str | None
    host_name: str | None
    uptime_seconds: float
    users: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class CpuInfo:
    """One logical core."""

    model: str  # per-core name, e.g. "cpu3"
    manufacturer: str  # brand string
    frequency_ghz: float
    usage: float  # 0.0 - 100.0

    @property
    def key(self) -> MetricKey:
        """Chart identity; independent of the core's position in the list."""
        return MetricKey("cpu", self.model, self.manufacturer)


@dataclass(slots=True, frozen=True)
class MemoryInfo:
    total_memory: int  # Bytes
    used_memory: int
    total_swap: int
    used_swap: int


@dataclass(slots=True, frozen=True)
class DiskInfo:
    name: str
    mount_point: str
    file_system: str | None
    total: int  # Bytes
    used: int


@dataclass(slots=True, frozen=True)
class BatteryInfo:
    model: str | None
    manufacturer: str | None
    charge: float  # 0.0 - 1.0
    state: str  # Charging, Discharging, Full, Unknown
    seconds_left: int | None


@dataclass(slots=True, frozen=True)
class NetworkInterface:
    name: str
    index: int | None
    mac_address: str | None
    addresses: tuple[str, ...]
    is_up: bool | None
    mtu: int | None
    speed_mbps: int | None
    received_total: int | None
    transmitted_total: int | None
    packets_received: int | None
    packets_transmitted: int | None


@dataclass(slots=True, frozen=True)
class NetworkInfo:
    connected: bool
    ip_address_v4: str | None
    ip_address_v6: str | None
    wifis: list[Any] | None  # no portable WiFi scan; always None
    interfaces: list[NetworkInterface] | None


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    pid: int
    name: str
    path: str | None
    cpu_usage: float
    memory_usage: int  # Bytes (RSS)
    swap_usage: int  # Bytes
    run_time_seconds: float
    parent: int | None


@dataclass(slots=True, frozen=True)
class ComponentInfo:
    name: str
    temperature: float  # °C
    critical_temperature: float | None


# ── Helpers ────────────────────────────────────────────────────────────────


def _read_brand() -> str:
    """CPU brand string, from /proc/cpuinfo where available."""
    try:
        with open("/proc/cpuinfo") as f:
            for line in f:
                if line.lower().startswith("model name"):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return platform.processor() or platform.machine() or "unknown"


def _read_vm_swap(pid: int) -> int:
    """Swapped-out bytes of a process from /proc/<pid>/status (0 if unknown)."""
    try:
        with open(f"/proc/{pid}/status") as f:
            for line in f:
                if line.startswith("VmSwap:"):
                    return int(line.split()[1]) * 1024  # reported in kB
    except (OSError, ValueError, IndexError):
        pass
    return 0


def _battery_state(battery: Any) -> str:
    if battery.power_plugged is None:
        return "Unknown"
    if battery.power_plugged:
        return "Full" if battery.percent >= 100 else "Charging"
    return "Discharging"


def _if_index(name: str) -> int | None:
    try:
        return socket.if_nametoindex(name)
    except OSError:
        return None


# ── Probe ──────────────────────────────────────────────────────────────────


class Probe:
    """psutil-backed platform probe.

    Args:
        connectivity: ``{"host", "port", "timeout"}`` for the live
            connectivity check done by network queries.
    """

    def __init__(self, connectivity: dict[str, Any] | None = None) -> None:
        conn = connectivity or {}
        self._conn_host = str(conn.get("host", "1.1.1.1"))
        self._conn_port = int(conn.get("port", 53))
        self._conn_timeout = float(conn.get("timeout", 3.0))
        self._brand = _read_brand()
        self._supported: dict[Category, bool] = {
            Category.SYSTEM: True,
            Category.CPU: True,
            Category.MEMORY: True,
            Category.DISKS: True,
            Category.BATTERIES: hasattr(psutil, "sensors_battery"),
            Category.NETWORK: True,
            Category.PROCESSES: True,
            Category.COMPONENTS: hasattr(psutil, "sensors_temperatures"),
        }
        self._queries = {
            Category.SYSTEM: self.system_information,
            Category.CPU: self.cpu_information,
            Category.MEMORY: self.memory_information,
            Category.DISKS: self.disk_information,
            Category.BATTERIES: self.battery_information,
            Category.NETWORK: self.network_information,
            Category.PROCESSES: self.process_information,
            Category.COMPONENTS: self.component_information,
        }
        # First cpu_percent call returns 0.0; prime the deltas
        psutil.cpu_percent(interval=None, percpu=True)

    def supports(self, category: Category) -> bool:
        return self._supported[category]

    def query(self, category: Category) -> Any:
        """Run the query for *category*; ``None`` if the host lacks it."""
        if not self._supported[category]:
            return None
        return self._queries[category]()

    # ── Per-category queries ──────────────────────────────────────────────

    def system_information(self) -> SystemInfo:
        users = tuple(sorted({u.name for u in psutil.users()}))
        return SystemInfo(
            os=platform.system() or None,
            os_version=platform.version() or None,
            kernel_version=platform.release() or None,
            host_name=platform.node() or None,
            uptime_seconds=max(0.0, time.time() - psutil.boot_time()),
            users=users,
        )

    def cpu_information(self) -> list[CpuInfo]:
        usages = psutil.cpu_percent(interval=None, percpu=True)
        try:
            freqs = psutil.cpu_freq(percpu=True) or []
        except (NotImplementedError, OSError):
            freqs = []
        cores: list[CpuInfo] = []
        for i, usage in enumerate(usages):
            freq = freqs[i].current if i < len(freqs) else 0.0
            cores.append(
                CpuInfo(
                    model=f"cpu{i}",
                    manufacturer=self._brand,
                    frequency_ghz=freq / 1000.0,
                    usage=float(usage),
                )
            )
        return cores

    def memory_information(self) -> MemoryInfo:
        ram = psutil.virtual_memory()
        swap = psutil.swap_memory()
        return MemoryInfo(
            total_memory=ram.total,
            used_memory=ram.used,
            total_swap=swap.total,
            used_swap=swap.used,
        )

    def disk_information(self) -> list[DiskInfo]:
        disks: list[DiskInfo] = []
        for part in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (PermissionError, FileNotFoundError, OSError):
                continue
            disks.append(
                DiskInfo(
                    name=part.device,
                    mount_point=part.mountpoint,
                    file_system=part.fstype or None,
                    total=usage.total,
                    used=usage.used,
                )
            )
        return disks

    def battery_information(self) -> list[BatteryInfo]:
        battery = psutil.sensors_battery()
        if battery is None:
            return []
        secs = battery.secsleft
        if secs in (psutil.POWER_TIME_UNLIMITED, psutil.POWER_TIME_UNKNOWN):
            secs = None
        return [
            BatteryInfo(
                model=None,
                manufacturer=None,
                charge=float(battery.percent) / 100.0,
                state=_battery_state(battery),
                seconds_left=secs,
            )
        ]

    def network_information(self) -> NetworkInfo:
        """Interface table plus a live connectivity check (may block up to the timeout)."""
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
        counters = psutil.net_io_counters(pernic=True)

        interfaces: list[NetworkInterface] = []
        for name, entries in sorted(addrs.items()):
            mac = None
            ips: list[str] = []
            for entry in entries:
                if entry.family == psutil.AF_LINK:
                    mac = entry.address or None
                elif entry.family in (socket.AF_INET, socket.AF_INET6):
                    ips.append(entry.address)
            st = stats.get(name)
            io = counters.get(name)
            interfaces.append(
                NetworkInterface(
                    name=name,
                    index=_if_index(name),
                    mac_address=mac,
                    addresses=tuple(ips),
                    is_up=st.isup if st else None,
                    mtu=st.mtu if st else None,
                    speed_mbps=st.speed if st and st.speed else None,
                    received_total=io.bytes_recv if io else None,
                    transmitted_total=io.bytes_sent if io else None,
                    packets_received=io.packets_recv if io else None,
                    packets_transmitted=io.packets_sent if io else None,
                )
            )

        return NetworkInfo(
            connected=self._check_connectivity(),
            ip_address_v4=self._local_address(socket.AF_INET),
            ip_address_v6=self._local_address(socket.AF_INET6),
            wifis=None,
            interfaces=interfaces,
        )

    def process_information(self) -> list[ProcessInfo]:
        """Snapshot every visible process, skipping ones that vanish mid-scan."""
        now = time.time()
        processes: list[ProcessInfo] = []
        attrs = ["pid", "name", "exe", "cpu_percent", "memory_info", "create_time", "ppid"]
        for proc in psutil.process_iter(attrs=attrs, ad_value=None):
            try:
                info: dict[str, Any] = proc.info
                mem_info = info.get("memory_info")
                created = info.get("create_time")
                pid = info.get("pid", 0)
                processes.append(
                    ProcessInfo(
                        pid=pid,
                        name=info.get("name") or "?",
                        path=info.get("exe") or None,
                        cpu_usage=info.get("cpu_percent") or 0.0,
                        memory_usage=mem_info.rss if mem_info else 0,
                        swap_usage=_read_vm_swap(pid),
                        run_time_seconds=max(0.0, now - created) if created else 0.0,
                        parent=info.get("ppid") or None,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return processes

    def component_information(self) -> list[ComponentInfo]:
        components: list[ComponentInfo] = []
        for chip, entries in psutil.sensors_temperatures().items():
            for i, entry in enumerate(entries):
                label = entry.label or f"{chip} {i}"
                components.append(
                    ComponentInfo(
                        name=f"{chip} {label}" if entry.label else label,
                        temperature=float(entry.current),
                        critical_temperature=float(entry.critical) if entry.critical else None,
                    )
                )
        return components

    # ── Actions ───────────────────────────────────────────────────────────

    def kill_process(self, pid: int) -> bool:
        """Send SIGKILL once. Returns whether the signal was delivered."""
        try:
            psutil.Process(pid).kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.warning("kill of pid %d failed: %s", pid, e)
            return False
        logger.info("killed pid %d", pid)
        return True

    # ── Network helpers ───────────────────────────────────────────────────

    def _check_connectivity(self) -> bool:
        try:
            with socket.create_connection(
                (self._conn_host, self._conn_port), timeout=self._conn_timeout
            ):
                return True
        except OSError:
            return False

    def _local_address(self, family: int) -> str | None:
        """Address the host would use for outbound traffic (no packets sent)."""
        target = self._conn_host if family == socket.AF_INET else "2606:4700:4700::1111"
        try:
            with socket.socket(family, socket.SOCK_DGRAM) as s:
                s.connect((target, self._conn_port))
                return str(s.getsockname()[0])
        except OSError:
            return None


