"""Tests for pidwatch.aggregate."""

from __future__ import annotations

import math

import pytest

from pidwatch.aggregate import (
    GIB,
    CpuSummary,
    UsageSummary,
    cpu_summary,
    disk_summary,
    memory_summary,
    network_display_order,
    privileged_user_count,
    reorder_networks,
    rollup_processes,
    uptime_breakdown,
)
from pidwatch.snapshot import (
    CpuSample,
    DiskSample,
    MemorySample,
    NetworkSample,
    ProcessSample,
    UserAccount,
)


def _proc(
    pid: int, name: str, cpu: float, ram: int = 0, total_time: float = 0.0
) -> ProcessSample:
    return ProcessSample(
        pid=pid,
        name=name,
        exe=f"/usr/bin/{name}",
        state="sleeping",
        ram=ram,
        cpu_usage=cpu,
        total_time=total_time,
    )


def _net(name: str) -> NetworkSample:
    return NetworkSample(name=name, mac="00:11:22:33:44:55", total_sent=1, total_recv=2)


# ── cpu_summary ────────────────────────────────────────────────────────────


class TestCpuSummary:
    def test_no_cpus_reports_zero(self) -> None:
        assert cpu_summary([]) == CpuSummary(usage=0.0, clock_speed=0.0)

    def test_means(self) -> None:
        cpus = [
            CpuSample("cpu0", 10.0, 2000.0, "GenuineIntel"),
            CpuSample("cpu1", 30.0, 3000.0, "GenuineIntel"),
        ]
        summary = cpu_summary(cpus)
        assert summary.usage == pytest.approx(20.0)
        assert summary.clock_speed == pytest.approx(2500.0)

    def test_nan_usage_does_not_leak(self) -> None:
        cpus = [CpuSample("cpu0", float("nan"), 2000.0), CpuSample("cpu1", 40.0, 2000.0)]
        summary = cpu_summary(cpus)
        assert math.isfinite(summary.usage)
        assert summary.usage == pytest.approx(20.0)


# ── uptime_breakdown ───────────────────────────────────────────────────────


class TestUptimeBreakdown:
    def test_one_of_each(self) -> None:
        up = uptime_breakdown(90061)
        assert (up.days, up.hours, up.minutes, up.seconds) == (1, 1, 1, 1)
        assert up.total == 90061

    def test_zero(self) -> None:
        up = uptime_breakdown(0)
        assert (up.days, up.hours, up.minutes, up.seconds, up.total) == (0, 0, 0, 0, 0)

    def test_fractional_seconds_floor(self) -> None:
        up = uptime_breakdown(59.9)
        assert up.seconds == 59
        assert up.minutes == 0

    def test_negative_clamped(self) -> None:
        assert uptime_breakdown(-5).total == 0


# ── privileged_user_count ──────────────────────────────────────────────────


class TestPrivilegedUserCount:
    def test_strictly_above_threshold(self) -> None:
        users = [UserAccount(f"u{uid}", uid) for uid in (500, 1000, 1001, 2000)]
        assert privileged_user_count(users) == 2

    def test_custom_threshold(self) -> None:
        users = [UserAccount("a", 10), UserAccount("b", 600)]
        assert privileged_user_count(users, threshold=500) == 1

    def test_no_users(self) -> None:
        assert privileged_user_count([]) == 0


# ── memory / disk summaries ────────────────────────────────────────────────


class TestUsageSummaries:
    def test_memory_gb_conversion(self) -> None:
        summary = memory_summary(MemorySample(used=2 * GIB, total=8 * GIB))
        assert summary.used_gb == pytest.approx(2.0)
        assert summary.total_gb == pytest.approx(8.0)
        assert summary.percent == pytest.approx(25.0)

    def test_zero_total_percent_is_zero(self) -> None:
        assert UsageSummary(used=0, total=0).percent == 0.0

    def test_used_over_total_is_capped(self) -> None:
        assert memory_summary(MemorySample(used=10, total=5)).percent == 100.0

    def test_negative_values_clamped(self) -> None:
        summary = memory_summary(MemorySample(used=-1, total=-1))
        assert (summary.used, summary.total) == (0, 0)

    def test_disks_are_summed(self) -> None:
        disks = [
            DiskSample("/dev/sda1", "/", total=100 * GIB, free=40 * GIB),
            DiskSample("/dev/sdb1", "/data", total=50 * GIB, free=50 * GIB),
        ]
        summary = disk_summary(disks)
        assert summary.used_gb == pytest.approx(60.0)
        assert summary.total_gb == pytest.approx(150.0)

    def test_no_disks(self) -> None:
        assert disk_summary([]) == UsageSummary(used=0, total=0)


class TestDiskSample:
    def test_zero_total_percent_defined(self) -> None:
        disk = DiskSample("tmpfs", "/run", total=0, free=0)
        assert disk.percent_used == 0.0

    def test_free_greater_than_total(self) -> None:
        disk = DiskSample("odd", "/odd", total=10, free=20)
        assert disk.used == 0
        assert disk.percent_used == 0.0

    def test_used_is_total_minus_free(self) -> None:
        disk = DiskSample("/dev/sda1", "/", total=200, free=50)
        assert disk.used == 150
        assert disk.percent_used == pytest.approx(75.0)


# ── network ordering ───────────────────────────────────────────────────────


class TestNetworkOrder:
    def test_display_order_is_first_seen(self) -> None:
        order = network_display_order([_net("wlan0"), _net("eth0"), _net("lo")])
        assert order == ("wlan0", "eth0", "lo")

    def test_reorder_follows_captured_order(self) -> None:
        order = ("eth0", "wlan0")
        result = reorder_networks(order, [_net("wlan0"), _net("eth0")])
        assert [n.name for n in result] == ["eth0", "wlan0"]

    def test_missing_dropped_and_new_ignored(self) -> None:
        order = network_display_order([_net("eth0"), _net("wlan0")])
        result = reorder_networks(order, [_net("wlan0"), _net("eth1")])
        assert [n.name for n in result] == ["wlan0"]

    def test_reappearing_interface_returns_to_its_slot(self) -> None:
        order = ("eth0", "wlan0")
        assert [n.name for n in reorder_networks(order, [_net("wlan0")])] == ["wlan0"]
        result = reorder_networks(order, [_net("wlan0"), _net("eth0")])
        assert [n.name for n in result] == ["eth0", "wlan0"]

    def test_empty_inputs(self) -> None:
        assert reorder_networks((), [_net("eth0")]) == []
        assert reorder_networks(("eth0",), []) == []


# ── rollup_processes ───────────────────────────────────────────────────────


class TestRollupProcesses:
    def test_same_name_summed_into_one_row(self) -> None:
        rollup = rollup_processes(
            [
                _proc(10, "chrome", 2.5, ram=100, total_time=30.0),
                _proc(11, "chrome", 4.0, ram=50, total_time=10.0),
            ]
        )
        assert len(rollup) == 1
        row = rollup[0]
        assert row.cpu_usage == pytest.approx(6.5)
        assert row.ram == 150
        assert row.total_time == pytest.approx(40.0)
        assert row.count == 2

    def test_identity_from_first_encountered(self) -> None:
        rollup = rollup_processes([_proc(10, "chrome", 0.1), _proc(11, "chrome", 9.0)])
        assert rollup[0].pid == 10

    def test_ordered_by_cpu_descending(self) -> None:
        rollup = rollup_processes(
            [_proc(1, "A", 3.0), _proc(2, "B", 9.0), _proc(3, "C", 1.0)]
        )
        assert [r.name for r in rollup] == ["B", "A", "C"]

    def test_ties_keep_encounter_order(self) -> None:
        rollup = rollup_processes(
            [_proc(1, "zsh", 0.0), _proc(2, "bash", 0.0), _proc(3, "agetty", 0.0)]
        )
        assert [r.name for r in rollup] == ["zsh", "bash", "agetty"]

    def test_group_rank_uses_summed_usage(self) -> None:
        rollup = rollup_processes(
            [
                _proc(1, "worker", 2.0),
                _proc(2, "server", 3.0),
                _proc(3, "worker", 2.0),
            ]
        )
        assert [r.name for r in rollup] == ["worker", "server"]

    def test_empty(self) -> None:
        assert rollup_processes([]) == []


# ── purity ─────────────────────────────────────────────────────────────────


def test_aggregation_is_idempotent() -> None:
    procs = (_proc(1, "a", 1.0), _proc(2, "b", 2.0), _proc(3, "a", 5.0))
    nets = (_net("eth0"), _net("wlan0"))
    order = ("wlan0", "eth0")
    assert rollup_processes(procs) == rollup_processes(procs)
    assert reorder_networks(order, nets) == reorder_networks(order, nets)
    cpus = (CpuSample("cpu0", 50.0, 1000.0),)
    assert cpu_summary(cpus) == cpu_summary(cpus)
