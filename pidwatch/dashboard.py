"""Interactive terminal dashboard: pidwatch's full-screen system monitor.

Shows CPU, memory/swap/disk, host specs with network interfaces, and a
per-program process table in a 2x2 grid using curses. Each cycle samples a
fresh snapshot, checks for a quit key, then redraws everything.

Usage:
    pidwatch          (q or Esc to quit)
"""

from __future__ import annotations

import argparse
import curses
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pidwatch.aggregate import (
    cpu_summary,
    disk_summary,
    memory_summary,
    network_display_order,
    privileged_user_count,
    reorder_networks,
    rollup_processes,
    uptime_breakdown,
)
from pidwatch.builder import build_snapshot
from pidwatch.config import load_config
from pidwatch.snapshot import Snapshot

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────────

INPUT_POLL_MS = 16
KEY_ESC = 27
QUIT_KEYS = (ord("q"), KEY_ESC)
PROCESS_COLUMNS = ("PID", "Name", "CPU", "Memory", "Uptime")
MIB = 1024**2

# Curses colour-pair IDs
C_CPU = 1
C_MEMORY = 2
C_SPECS = 3
C_PROCESSES = 4
C_HEADER = 5

_PANEL_PAIRS = {
    "cpu": C_CPU,
    "memory": C_MEMORY,
    "specs": C_SPECS,
    "processes": C_PROCESSES,
}


# ── Frame ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Frame:
    """Already-formatted content for one redraw."""

    title: str
    footer: str
    cpu_summary: tuple[str, ...]
    cpu_cores: tuple[str, ...]
    memory: tuple[str, ...]
    specs: tuple[str, ...]
    network: tuple[str, ...]
    process_header: tuple[str, ...]
    process_rows: tuple[tuple[str, ...], ...]


def fmt_gb(used_gb: float, total_gb: float) -> tuple[str, str]:
    return f"Used: {used_gb:.2f} GB", f"Total: {total_gb:.2f} GB"


def fmt_uptime(seconds: float) -> str:
    up = uptime_breakdown(seconds)
    return f"{up.days}d {up.hours}h {up.minutes}m {up.seconds}s ({up.total}s)"


def build_frame(
    snapshot: Snapshot, order: Sequence[str], config: dict[str, Any]
) -> Frame:
    """Run every aggregation over *snapshot* and format the results as text."""
    host = snapshot.host
    titles = config["titles"]

    cpu = cpu_summary(snapshot.cpus)
    cpu_lines = (
        f"Average Usage: {cpu.usage:.2f}%",
        f"Average Clock Speed: {cpu.clock_speed / 1000:.2f} GHz",
    )
    core_lines = tuple(
        f"{c.name} ({c.usage:.2f}%) at {c.clock_speed / 1000:.2f} GHz ({c.vendor})"
        for c in snapshot.cpus
    )

    memory_lines: list[str] = []
    for label, usage in (
        ("RAM:", memory_summary(snapshot.memory)),
        ("SWAP:", memory_summary(snapshot.swap)),
        ("DISK:", disk_summary(snapshot.disks)),
    ):
        memory_lines.append(label)
        memory_lines.extend(fmt_gb(usage.used_gb, usage.total_gb))
        memory_lines.append("")

    users = privileged_user_count(host.users, int(config["uid_threshold"]))
    spec_lines = (
        f"Hostname: {host.hostname}",
        f"OS: {host.os}",
        f"Kernel: {host.kernel}",
        f"Uptime: {fmt_uptime(host.uptime)}",
        f"Users: {users}",
    )

    net_lines: list[str] = []
    for net in reorder_networks(order, snapshot.networks):
        net_lines.extend(
            [
                f"Name: {net.name}",
                f"MAC: {net.mac}",
                f"Sent/Received: {net.total_sent}B/{net.total_recv}B",
                "",
            ]
        )

    rollups = rollup_processes(snapshot.processes)
    limit = int(config["max_process_rows"])
    if limit > 0:
        rollups = rollups[:limit]
    rows = tuple(
        (
            str(p.pid),
            p.name,
            f"{p.cpu_usage:.2f}%",
            f"{p.ram / MIB:.2f} MB",
            f"{int(p.total_time)}s",
        )
        for p in rollups
    )

    return Frame(
        title=f"{host.os} {host.kernel}".strip(),
        footer=titles["app"],
        cpu_summary=cpu_lines,
        cpu_cores=core_lines,
        memory=tuple(memory_lines),
        specs=spec_lines,
        network=tuple(net_lines),
        process_header=PROCESS_COLUMNS,
        process_rows=rows,
    )


# ── Curses drawing primitives ──────────────────────────────────────────────


def _color(name: str) -> int:
    return getattr(curses, f"COLOR_{name.upper()}", curses.COLOR_WHITE)


def _init_colors(colors: dict[str, str]) -> None:
    curses.start_color()
    curses.use_default_colors()
    for panel, pair in _PANEL_PAIRS.items():
        curses.init_pair(pair, _color(colors.get(panel, "white")), -1)
    curses.init_pair(C_HEADER, curses.COLOR_WHITE, _color(colors.get("header", "red")))


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_box(
    win: curses.window,
    y: int,
    x: int,
    h: int,
    w: int,
    title: str = "",
    pair: int = 0,
) -> curses.window | None:
    """Draw a bordered box in colour *pair* and return it."""
    max_y, max_x = win.getmaxyx()
    h = min(h, max_y - y)
    w = min(w, max_x - x)
    if h < 3 or w < 4:
        return None
    try:
        sub = win.subwin(h, w, y, x)
        sub.attron(curses.color_pair(pair))
        sub.box()
        sub.attroff(curses.color_pair(pair))
        if title and len(title) + 4 < w:
            sub.addstr(0, 2, f" {title} ", curses.color_pair(pair) | curses.A_BOLD)
        return sub
    except curses.error:
        return None


def _draw_rule(win: curses.window, y: int, w: int, title: str) -> None:
    """Full-width horizontal rule with a bold title at its left end."""
    _safe(win, y, 0, "─" * (w - 1))
    _safe(win, y, 0, title[: w - 1], curses.A_BOLD)


def _draw_lines(
    box: curses.window, row: int, lines: Sequence[str], attr: int = 0
) -> int:
    """Write *lines* inside *box* from *row* down; return the next free row."""
    h, w = box.getmaxyx()
    for line in lines:
        if row >= h - 1:
            break
        _safe(box, row, 2, line[: w - 4], attr)
        row += 1
    return row


def _draw_table(
    box: curses.window,
    row: int,
    header: Sequence[str],
    rows: Sequence[Sequence[str]],
) -> None:
    """Equal-width columns; the header row is highlighted."""
    h, w = box.getmaxyx()
    inner = w - 4
    if inner < len(header):
        return
    col_w = inner // len(header)

    def fmt(cells: Sequence[str]) -> str:
        return "".join(c[: col_w - 1].ljust(col_w) for c in cells)

    _safe(box, row, 2, fmt(header)[:inner], curses.color_pair(C_HEADER) | curses.A_BOLD)
    for cells in rows:
        row += 1
        if row >= h - 1:
            break
        _safe(box, row, 2, fmt(cells)[:inner])


# ── Panel renderers ────────────────────────────────────────────────────────


def draw_frame(stdscr: curses.window, frame: Frame, titles: dict[str, str]) -> None:
    max_y, max_x = stdscr.getmaxyx()

    if max_y < 10 or max_x < 40:
        _safe(stdscr, 0, 0, "Terminal too small (need 40x10+)")
        return

    _draw_rule(stdscr, 0, max_x, frame.title)
    _draw_rule(stdscr, max_y - 1, max_x, frame.footer)

    body_h = max_y - 2
    top_h = body_h // 2
    left_w = max_x // 2
    right_w = max_x - left_w

    box = _draw_box(stdscr, 1, 0, top_h, left_w, titles["cpu"], C_CPU)
    if box:
        row = _draw_lines(box, 1, frame.cpu_summary, curses.A_BOLD)
        _draw_lines(box, row + 1, frame.cpu_cores)

    box = _draw_box(
        stdscr, 1 + top_h, 0, body_h - top_h, left_w, titles["memory"], C_MEMORY
    )
    if box:
        _draw_lines(box, 1, frame.memory, curses.A_BOLD)

    box = _draw_box(stdscr, 1, left_w, top_h, right_w, titles["specs"], C_SPECS)
    if box:
        row = _draw_lines(box, 1, frame.specs, curses.A_BOLD)
        _draw_lines(box, row + 1, frame.network, curses.A_BOLD)

    box = _draw_box(
        stdscr,
        1 + top_h,
        left_w,
        body_h - top_h,
        right_w,
        titles["processes"],
        C_PROCESSES,
    )
    if box:
        _draw_table(box, 1, frame.process_header, frame.process_rows)


# ── Render driver ──────────────────────────────────────────────────────────


class RenderDriver(Protocol):
    def poll_key(self, timeout_ms: int) -> int | None: ...

    def clear(self) -> None: ...

    def draw(self, frame: Frame) -> None: ...


class CursesDriver:
    """Owns the terminal while the dashboard runs.

    Entering switches to the alternate screen in cbreak/no-echo mode;
    leaving restores the terminal. A ``curses.error`` while entering is
    raised to the caller.
    """

    def __init__(self, config: dict[str, Any]) -> None:
        self._config = config
        self._stdscr: curses.window | None = None

    def __enter__(self) -> CursesDriver:
        stdscr = curses.initscr()
        try:
            curses.noecho()
            curses.cbreak()
            stdscr.keypad(True)
            curses.set_escdelay(25)
            try:
                _init_colors(self._config["colors"])
            except curses.error:
                pass  # monochrome terminal
            try:
                curses.curs_set(0)
            except curses.error:
                pass
        except curses.error:
            curses.endwin()
            raise
        self._stdscr = stdscr
        return self

    def __exit__(self, *exc: object) -> None:
        stdscr, self._stdscr = self._stdscr, None
        if stdscr is not None:
            stdscr.keypad(False)
        curses.echo()
        curses.nocbreak()
        curses.endwin()

    @property
    def screen(self) -> curses.window:
        if self._stdscr is None:
            raise RuntimeError("terminal not initialised")
        return self._stdscr

    def poll_key(self, timeout_ms: int) -> int | None:
        """Wait up to *timeout_ms* for a key press; None if there was none."""
        self.screen.timeout(timeout_ms)
        key = self.screen.getch()
        return None if key == -1 else key

    def clear(self) -> None:
        self.screen.clear()

    def draw(self, frame: Frame) -> None:
        self.screen.erase()
        draw_frame(self.screen, frame, self._config["titles"])
        self.screen.refresh()


# ── Main loop ──────────────────────────────────────────────────────────────


def run_dashboard(
    driver: RenderDriver,
    order: Sequence[str],
    build: Callable[[], Snapshot] = build_snapshot,
    config: dict[str, Any] | None = None,
) -> int:
    """Sample, check input, redraw; repeat until a quit key. Returns the exit status.

    Input is read before the redraw so a pending quit never waits on a render.
    curses only reports key presses, so any q or Esc counts.
    """
    if config is None:
        config = load_config()
    cycles = 0
    while True:
        snapshot = build()
        key = driver.poll_key(INPUT_POLL_MS)
        if key in QUIT_KEYS:
            logger.debug("quit after %d redraws", cycles)
            return 0
        if key == curses.KEY_RESIZE:
            driver.clear()
        driver.draw(build_frame(snapshot, order, config))
        cycles += 1


# ── CLI entry point ────────────────────────────────────────────────────────


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="pidwatch",
        description="Live terminal dashboard of CPU, memory, disks, network and processes.",
        epilog="Press q or Esc to quit.",
    )
    parser.parse_args()
    logging.basicConfig(
        level=logging.WARNING, format="pidwatch: %(levelname)s: %(message)s"
    )

    config = load_config()
    try:
        first = build_snapshot()
        order = network_display_order(first.networks)
        with CursesDriver(config) as driver:
            return run_dashboard(driver, order, build=build_snapshot, config=config)
    except curses.error as e:
        print(f"pidwatch: cannot initialise terminal: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
