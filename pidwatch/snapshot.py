"""Point-in-time host snapshot data model.

A :class:`Snapshot` is built once per refresh cycle and replaced wholesale by
the next one; nothing in here is ever mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field

UNKNOWN = "Unknown"
NOT_FOUND = "not_found"


# ── Host identity ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UserAccount:
    name: str
    uid: int
    groups: tuple[str, ...] = ()


@dataclass(frozen=True)
class HostIdentity:
    os: str = UNKNOWN  # name + version, e.g. "Debian GNU/Linux 13"
    hostname: str = ""
    kernel: str = ""
    uptime: float = 0.0  # seconds since boot
    users: tuple[UserAccount, ...] = ()


# ── Usage samples ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CpuSample:
    name: str
    usage: float  # percent, 0-100
    clock_speed: float  # MHz
    vendor: str = UNKNOWN


@dataclass(frozen=True)
class MemorySample:
    used: int = 0
    total: int = 0


@dataclass(frozen=True)
class DiskSample:
    name: str
    mount: str
    total: int
    free: int
    fs_type: str = ""
    is_removable: bool = False

    @property
    def used(self) -> int:
        """Bytes in use, clamped so a provider reporting free > total gives 0."""
        return max(0, max(0, self.total) - max(0, self.free))

    @property
    def percent_used(self) -> float:
        total = max(0, self.total)
        if total == 0:
            return 0.0
        return min(100.0, 100.0 * self.used / total)


@dataclass(frozen=True)
class NetworkSample:
    """Cumulative counters for one interface (since boot or link-up)."""

    name: str
    mac: str
    total_sent: int
    total_recv: int
    total_packets_sent: int = 0
    total_packets_recv: int = 0


@dataclass(frozen=True)
class ProcessSample:
    pid: int
    name: str
    exe: str = NOT_FOUND
    state: str = ""
    ram: int = 0  # resident bytes
    virtual_memory: int = 0
    start_time: float = 0.0  # epoch seconds
    cpu_usage: float = 0.0  # already divided by core count
    total_time: float = 0.0  # seconds running at sample time


# ── Snapshot ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Snapshot:
    """Everything the dashboard shows for one refresh cycle."""

    host: HostIdentity = field(default_factory=HostIdentity)
    cpus: tuple[CpuSample, ...] = ()
    memory: MemorySample = field(default_factory=MemorySample)
    swap: MemorySample = field(default_factory=MemorySample)
    disks: tuple[DiskSample, ...] = ()
    networks: tuple[NetworkSample, ...] = ()
    processes: tuple[ProcessSample, ...] = ()
