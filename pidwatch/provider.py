"""Host metrics provider: reads live OS counters via psutil, /proc and /sys.

Every ``read_*`` function is best-effort. A category the OS refuses to report
comes back as its documented default (empty tuple, zero, ``"Unknown"``)
instead of raising, so one bad read never takes the dashboard down.
"""

from __future__ import annotations

import grp
import logging
import os
import platform
import pwd
import re
import time

import psutil

from pidwatch.snapshot import (
    NOT_FOUND,
    UNKNOWN,
    CpuSample,
    DiskSample,
    HostIdentity,
    MemorySample,
    NetworkSample,
    ProcessSample,
    UserAccount,
)

logger = logging.getLogger(__name__)

_PROC_ATTRS = [
    "pid",
    "name",
    "exe",
    "status",
    "memory_info",
    "create_time",
    "cpu_percent",
]

_CPUINFO = "/proc/cpuinfo"
_OS_RELEASE = "/etc/os-release"


# ── Counter priming ────────────────────────────────────────────────────────


def prime_counters() -> None:
    """Take the baseline reading that the next CPU reads are measured against.

    psutil reports CPU usage as the delta since the previous call, both for
    the per-core figures and for each cached ``Process`` object.
    """
    try:
        psutil.cpu_percent(interval=None, percpu=True)
        # process_iter fetches (and so baselines) cpu_percent on each cached Process
        for _ in psutil.process_iter(["cpu_percent"]):
            pass
    except (psutil.Error, OSError) as e:
        logger.debug("cpu baseline failed: %s", e)


# ── CPU ────────────────────────────────────────────────────────────────────


def _cpu_vendor() -> str:
    """Vendor id from /proc/cpuinfo, falling back to platform.processor()."""
    try:
        with open(_CPUINFO, errors="replace") as f:
            for line in f:
                key, _, value = line.partition(":")
                if key.strip() in ("vendor_id", "CPU implementer"):
                    return value.strip() or UNKNOWN
    except OSError:
        pass
    return platform.processor() or UNKNOWN


def _cpu_frequencies(count: int) -> list[float]:
    """Per-core current frequency in MHz, padded with the aggregate value."""
    try:
        per_core = psutil.cpu_freq(percpu=True) or []
    except (psutil.Error, OSError, NotImplementedError) as e:
        logger.debug("per-core cpu_freq failed: %s", e)
        per_core = []
    freqs = [float(f.current) for f in per_core]
    if len(freqs) < count:
        try:
            overall = psutil.cpu_freq()
        except (psutil.Error, OSError, NotImplementedError):
            overall = None
        fill = float(overall.current) if overall else 0.0
        freqs.extend([fill] * (count - len(freqs)))
    return freqs[:count]


def read_cpus() -> tuple[CpuSample, ...]:
    try:
        usages = psutil.cpu_percent(interval=None, percpu=True)
    except (psutil.Error, OSError) as e:
        logger.debug("cpu read failed: %s", e)
        return ()
    freqs = _cpu_frequencies(len(usages))
    vendor = _cpu_vendor()
    return tuple(
        CpuSample(
            name=f"cpu{i}",
            usage=float(usage),
            clock_speed=freqs[i],
            vendor=vendor,
        )
        for i, usage in enumerate(usages)
    )


# ── Memory ─────────────────────────────────────────────────────────────────


def read_memory() -> MemorySample:
    try:
        vm = psutil.virtual_memory()
    except (psutil.Error, OSError) as e:
        logger.debug("memory read failed: %s", e)
        return MemorySample()
    return MemorySample(used=int(vm.used), total=int(vm.total))


def read_swap() -> MemorySample:
    try:
        sw = psutil.swap_memory()
    except (psutil.Error, OSError, RuntimeError) as e:
        logger.debug("swap read failed: %s", e)
        return MemorySample()
    return MemorySample(used=int(sw.used), total=int(sw.total))


# ── Disks ──────────────────────────────────────────────────────────────────


def _is_removable(device: str) -> bool:
    """Check /sys/block/<dev>/removable for the device's parent block device."""
    dev = os.path.basename(device)
    if not dev:
        return False
    # sda1 -> sda, nvme0n1p2 -> nvme0n1, mmcblk0p1 -> mmcblk0
    candidates = [dev, re.sub(r"p?\d+$", "", dev), re.sub(r"p\d+$", "", dev)]
    for name in dict.fromkeys(candidates):
        try:
            with open(f"/sys/block/{name}/removable") as f:
                return f.read().strip() == "1"
        except OSError:
            continue
    return False


def read_disks() -> tuple[DiskSample, ...]:
    try:
        partitions = psutil.disk_partitions(all=False)
    except (psutil.Error, OSError) as e:
        logger.debug("disk list failed: %s", e)
        return ()

    disks: list[DiskSample] = []
    for part in partitions:
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except (psutil.Error, OSError) as e:
            logger.debug("disk usage failed for %s: %s", part.mountpoint, e)
            continue
        disks.append(
            DiskSample(
                name=part.device,
                mount=part.mountpoint,
                total=int(usage.total),
                free=int(usage.free),
                fs_type=part.fstype,
                is_removable=_is_removable(part.device),
            )
        )
    return tuple(disks)


# ── Networks ───────────────────────────────────────────────────────────────


def _mac_addresses() -> dict[str, str]:
    try:
        addrs = psutil.net_if_addrs()
    except (psutil.Error, OSError) as e:
        logger.debug("interface address read failed: %s", e)
        return {}
    macs: dict[str, str] = {}
    for name, entries in addrs.items():
        for entry in entries:
            if entry.family == psutil.AF_LINK:
                macs[name] = entry.address
                break
    return macs


def read_networks() -> tuple[NetworkSample, ...]:
    try:
        counters = psutil.net_io_counters(pernic=True)
    except (psutil.Error, OSError) as e:
        logger.debug("network read failed: %s", e)
        return ()
    macs = _mac_addresses()
    return tuple(
        NetworkSample(
            name=name,
            mac=macs.get(name, "00:00:00:00:00:00"),
            total_sent=int(io.bytes_sent),
            total_recv=int(io.bytes_recv),
            total_packets_sent=int(io.packets_sent),
            total_packets_recv=int(io.packets_recv),
        )
        for name, io in counters.items()
    )


# ── Processes ──────────────────────────────────────────────────────────────


def read_processes(now: float | None = None) -> tuple[ProcessSample, ...]:
    """Sample every visible process; ones that vanish or deny access are skipped."""
    if now is None:
        now = time.time()

    procs: list[ProcessSample] = []
    seen: set[int] = set()
    try:
        ncpu = psutil.cpu_count() or 1
        for proc in psutil.process_iter(_PROC_ATTRS):
            try:
                info = proc.info
                pid = int(info.get("pid", 0))
                if pid in seen:
                    continue
                mem_info = info.get("memory_info")
                start = float(info.get("create_time") or 0.0)
                procs.append(
                    ProcessSample(
                        pid=pid,
                        name=info.get("name") or "",
                        exe=info.get("exe") or NOT_FOUND,
                        state=str(info.get("status") or ""),
                        ram=mem_info.rss if mem_info else 0,
                        virtual_memory=mem_info.vms if mem_info else 0,
                        start_time=start,
                        cpu_usage=(info.get("cpu_percent") or 0.0) / ncpu,
                        total_time=max(0.0, now - start) if start else 0.0,
                    )
                )
                seen.add(pid)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
    except (psutil.Error, OSError) as e:
        logger.debug("process list failed: %s", e)
        return ()
    return tuple(procs)


# ── Host identity ──────────────────────────────────────────────────────────


def _os_name() -> str:
    """``NAME VERSION_ID`` from /etc/os-release, else ``Unknown``."""
    fields: dict[str, str] = {}
    try:
        with open(_OS_RELEASE, errors="replace") as f:
            for line in f:
                key, sep, value = line.strip().partition("=")
                if sep:
                    fields[key] = value.strip().strip('"')
    except OSError:
        pass
    name = fields.get("NAME") or UNKNOWN
    version = fields.get("VERSION_ID", "")
    return f"{name} {version}".strip()


def read_users() -> tuple[UserAccount, ...]:
    """Local accounts from the password database with their group names."""
    try:
        entries = pwd.getpwall()
        groups = grp.getgrall()
    except OSError as e:
        logger.debug("user database read failed: %s", e)
        return ()

    gid_names = {g.gr_gid: g.gr_name for g in groups}
    users: list[UserAccount] = []
    for entry in entries:
        names = [gid_names[entry.pw_gid]] if entry.pw_gid in gid_names else []
        names.extend(
            g.gr_name for g in groups if entry.pw_name in g.gr_mem and g.gr_name not in names
        )
        users.append(
            UserAccount(name=entry.pw_name, uid=entry.pw_uid, groups=tuple(names))
        )
    return tuple(users)


def read_host(now: float | None = None) -> HostIdentity:
    if now is None:
        now = time.time()
    try:
        uptime = max(0.0, now - psutil.boot_time())
    except (psutil.Error, OSError) as e:
        logger.debug("boot time read failed: %s", e)
        uptime = 0.0
    return HostIdentity(
        os=_os_name(),
        hostname=platform.node(),
        kernel=platform.release(),
        uptime=uptime,
        users=read_users(),
    )
