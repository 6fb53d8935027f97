"""System snapshot collection for upstate."""

import time
from dataclasses import dataclass

import psutil

from upstate.logging import get_logger
from upstate.models import ProcessSnapshot

log = get_logger()

# Parent of all Linux kernel threads
KTHREADD_PID = 2


@dataclass(slots=True, frozen=True)
class DiskUsage:
    """Usage of one mounted storage device."""

    device: str
    mountpoint: str
    total: int
    used: int
    free: int


@dataclass(slots=True)
class SystemSnapshot:
    """Snapshot of overall system state."""

    cores: int
    load_avg: tuple[float, float, float]
    uptime_seconds: float
    memory_total: int
    memory_free: int
    memory_used: int
    memory_cache: int
    swap_used: int
    disks: list[DiskUsage]
    processes: list[ProcessSnapshot]


def collect_snapshot() -> SystemSnapshot:
    """Collect a snapshot of the current system state."""
    mem = psutil.virtual_memory()
    swap = psutil.swap_memory()

    # Collect uptime
    boot_time = psutil.boot_time()
    uptime = time.time() - boot_time

    return SystemSnapshot(
        cores=psutil.cpu_count(logical=False) or 1,
        load_avg=psutil.getloadavg(),
        uptime_seconds=uptime,
        memory_total=mem.total,
        memory_free=mem.free,
        memory_used=mem.used,
        memory_cache=max(mem.available - mem.free, 0),
        swap_used=swap.used,
        disks=collect_disks(),
        processes=collect_processes(),
    )


def collect_disks() -> list[DiskUsage]:
    """Collect usage of each physical storage device, once per device."""
    disks: list[DiskUsage] = []
    devices: set[str] = set()
    for part in psutil.disk_partitions(all=False):
        if not part.device or part.device in devices:
            continue
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError as exc:
            log.debug("disk usage unavailable", mountpoint=part.mountpoint, error=str(exc))
            continue
        if usage.total == 0:
            continue
        devices.add(part.device)
        disks.append(
            DiskUsage(
                device=part.device,
                mountpoint=part.mountpoint,
                total=usage.total,
                used=usage.total - usage.free,
                free=usage.free,
            )
        )
    return disks


def collect_processes() -> list[ProcessSnapshot]:
    """
    Collect snapshots of all running processes.

    Uses psutil.process_iter() with oneshot() context manager for efficiency.
    Handles AccessDenied and ZombieProcess errors gracefully.
    """
    processes: list[ProcessSnapshot] = []

    # Attributes to fetch in oneshot
    attrs = [
        "pid",
        "ppid",
        "name",
        "exe",
        "cmdline",
        "cpu_times",
        "memory_info",
        "create_time",
    ]

    for proc in psutil.process_iter(attrs=attrs):
        try:
            with proc.oneshot():
                info = proc.info
                # pid 0 is the scheduler on macOS and Windows
                if not info.get("pid"):
                    continue
                processes.append(_to_snapshot(info))
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            # Processes that exited mid-read or are not ours to inspect
            continue

    log.debug("processes collected", count=len(processes))
    return processes


def _to_snapshot(info: dict) -> ProcessSnapshot:
    """Convert a psutil info dict to a ProcessSnapshot with safe defaults."""
    pid = info.get("pid", 0)
    ppid = info.get("ppid") or None
    if ppid == pid:
        ppid = None

    name = info.get("name") or ""
    cmdline = info.get("cmdline") or []
    command_line = " ".join(cmdline) if cmdline else name

    cpu_times = info.get("cpu_times")
    cpu_time = cpu_times.user + cpu_times.system if cpu_times else 0.0

    mem_info = info.get("memory_info")
    memory_rss = mem_info.rss if mem_info else 0

    kernel_thread = (psutil.LINUX and ppid == KTHREADD_PID) or (
        not cmdline and not info.get("exe") and memory_rss == 0 and pid != 1
    )

    return ProcessSnapshot(
        pid=pid,
        ppid=ppid,
        name=name,
        command_line=command_line,
        cpu_time=cpu_time,
        memory_rss=memory_rss,
        create_time=info.get("create_time") or 0.0,
        kernel_thread=kernel_thread,
    )
