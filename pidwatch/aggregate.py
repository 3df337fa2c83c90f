"""Pure transforms from a :class:`Snapshot` to presentation-ready views.

Every function here is total: empty lists and zero totals produce zeros,
never an exception, NaN or infinity.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from pidwatch.snapshot import (
    CpuSample,
    DiskSample,
    MemorySample,
    NetworkSample,
    ProcessSample,
    UserAccount,
)

GIB = 1024**3
HUMAN_UID_THRESHOLD = 1000


# ── View types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CpuSummary:
    usage: float  # mean percent
    clock_speed: float  # mean MHz


@dataclass(frozen=True)
class Uptime:
    days: int
    hours: int
    minutes: int
    seconds: int
    total: int


@dataclass(frozen=True)
class UsageSummary:
    used: int
    total: int

    @property
    def used_gb(self) -> float:
        return self.used / GIB

    @property
    def total_gb(self) -> float:
        return self.total / GIB

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(100.0, 100.0 * self.used / self.total)


@dataclass(frozen=True)
class ProcessRollup:
    """All processes sharing one name; identity fields come from the first seen."""

    pid: int
    name: str
    exe: str
    state: str
    cpu_usage: float
    ram: int
    total_time: float
    count: int = 1


# ── Helpers ────────────────────────────────────────────────────────────────


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return _finite(sum(values) / len(values))


# ── CPU ────────────────────────────────────────────────────────────────────


def cpu_summary(cpus: Sequence[CpuSample]) -> CpuSummary:
    return CpuSummary(
        usage=_mean([_finite(c.usage) for c in cpus]),
        clock_speed=_mean([_finite(c.clock_speed) for c in cpus]),
    )


# ── Host ───────────────────────────────────────────────────────────────────


def uptime_breakdown(seconds: float) -> Uptime:
    """Split uptime into whole days/hours/minutes/seconds, keeping the raw total."""
    total = int(max(0.0, _finite(seconds)))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    return Uptime(days=days, hours=hours, minutes=minutes, seconds=secs, total=total)


def privileged_user_count(
    users: Iterable[UserAccount], threshold: int = HUMAN_UID_THRESHOLD
) -> int:
    """Count accounts with uid above *threshold*.

    On most Linux distributions uids above 1000 belong to regular login
    users rather than system accounts. Other OSes number users differently,
    so treat the figure as an approximation.
    """
    return sum(1 for u in users if u.uid > threshold)


# ── Memory / swap / disk ───────────────────────────────────────────────────


def memory_summary(sample: MemorySample) -> UsageSummary:
    """Used/total for RAM or swap, clamped to non-negative values."""
    return UsageSummary(used=max(0, sample.used), total=max(0, sample.total))


def disk_summary(disks: Iterable[DiskSample]) -> UsageSummary:
    """Used/total summed over every mounted disk."""
    used = 0
    total = 0
    for disk in disks:
        used += disk.used
        total += max(0, disk.total)
    return UsageSummary(used=used, total=total)


# ── Network ────────────────────────────────────────────────────────────────


def network_display_order(networks: Iterable[NetworkSample]) -> tuple[str, ...]:
    """Capture interface names in first-seen order, dropping duplicates."""
    return tuple(dict.fromkeys(n.name for n in networks))


def reorder_networks(
    order: Sequence[str], networks: Iterable[NetworkSample]
) -> list[NetworkSample]:
    """Arrange *networks* to follow *order*.

    Interfaces in *order* that are missing this cycle are skipped; interfaces
    not in *order* are not shown.
    """
    by_name: dict[str, NetworkSample] = {}
    for net in networks:
        by_name.setdefault(net.name, net)
    return [by_name[name] for name in order if name in by_name]


# ── Processes ──────────────────────────────────────────────────────────────


def rollup_processes(processes: Iterable[ProcessSample]) -> list[ProcessRollup]:
    """Group processes by name and rank groups by summed CPU usage.

    Groups with equal usage keep the order in which their first member
    appeared in *processes*.
    """
    groups: dict[str, ProcessRollup] = {}
    for proc in processes:
        existing = groups.get(proc.name)
        if existing is None:
            groups[proc.name] = ProcessRollup(
                pid=proc.pid,
                name=proc.name,
                exe=proc.exe,
                state=proc.state,
                cpu_usage=_finite(proc.cpu_usage),
                ram=proc.ram,
                total_time=_finite(proc.total_time),
            )
        else:
            groups[proc.name] = ProcessRollup(
                pid=existing.pid,
                name=existing.name,
                exe=existing.exe,
                state=existing.state,
                cpu_usage=existing.cpu_usage + _finite(proc.cpu_usage),
                ram=existing.ram + proc.ram,
                total_time=existing.total_time + _finite(proc.total_time),
                count=existing.count + 1,
            )
    # sorted() is stable, including with reverse=True
    return sorted(groups.values(), key=lambda g: g.cpu_usage, reverse=True)
