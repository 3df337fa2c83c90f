"""Snapshot builder: turns provider reads into one coherent :class:`Snapshot`."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pidwatch import provider
from pidwatch.snapshot import Snapshot

logger = logging.getLogger(__name__)

# CPU usage is a delta between two counter reads; closer together than this
# the OS counters have not advanced and usage reads as 0 or garbage.
MIN_CPU_UPDATE_INTERVAL = 0.2  # seconds


def build_snapshot(sleep: Callable[[float], None] = time.sleep) -> Snapshot:
    """Sample every metric category into a fresh snapshot.

    Takes a CPU baseline, waits :data:`MIN_CPU_UPDATE_INTERVAL`, then reads
    all categories back to back so they describe the same moment. The wait
    dominates the cost of a cycle and so sets the dashboard's refresh rate.
    """
    provider.prime_counters()
    sleep(MIN_CPU_UPDATE_INTERVAL)

    now = time.time()
    cpus = provider.read_cpus()
    processes = provider.read_processes(now)
    snapshot = Snapshot(
        host=provider.read_host(now),
        cpus=cpus,
        memory=provider.read_memory(),
        swap=provider.read_swap(),
        disks=provider.read_disks(),
        networks=provider.read_networks(),
        processes=processes,
    )
    logger.debug(
        "snapshot: %d cpus, %d disks, %d interfaces, %d processes",
        len(snapshot.cpus),
        len(snapshot.disks),
        len(snapshot.networks),
        len(snapshot.processes),
    )
    return snapshot
