"""Service report building and rendering."""

import json
import time
from collections.abc import Sequence
from enum import Enum

from rich.console import Console
from rich.text import Text

from upstate.config import Config
from upstate.formatting import format_bytes, format_elapsed, join_detail
from upstate.models import ProcessSnapshot, ServiceItem
from upstate.monitor import SystemSnapshot
from upstate.procmap import ProcessMap

UNLISTED = "not listed in config"


class SortKey(Enum):
    """Sort keys for the services list."""

    CPU = "cpu"
    RSS = "rss"
    UPTIME = "uptime"

    @classmethod
    def parse(cls, value: str) -> "SortKey":
        """Parse a sort key, accepting the mem and time aliases."""
        aliases = {"mem": cls.RSS, "time": cls.UPTIME}
        if value in aliases:
            return aliases[value]
        return cls(value)


def build_report(
    config: Config,
    procs: ProcessMap,
    processes: Sequence[ProcessSnapshot],
    complete: bool = True,
    now: float | None = None,
) -> tuple[list[ServiceItem], int]:
    """
    Build the services list from configured and discovered services.

    Configured services come first in config order, each resolved pid listed
    once. With complete, the remaining services follow in pid order as
    warnings.

    Returns:
        The report rows and the number of configured services not running.
    """
    if now is None:
        now = time.time()
    by_pid = {proc.pid: proc for proc in processes}
    found: set[int] = set()
    items: list[ServiceItem] = []
    errors = 0

    # Configured services
    for match in config.all(procs):
        if match.pid == 0:
            items.append(ServiceItem(pid=0, name=match.name, message=match.diagnostic))
            errors += 1
            continue
        if match.pid in found or match.pid not in by_pid:
            continue
        found.add(match.pid)
        items.append(
            _service_item(
                procs,
                by_pid[match.pid],
                match.name,
                now,
                warn=bool(match.diagnostic),
                message=match.diagnostic,
            )
        )

    # Other services
    if complete:
        for pid in sorted(procs.services()):
            if pid in found or pid not in by_pid:
                continue
            proc = by_pid[pid]
            if proc.kernel_thread:
                continue
            items.append(_service_item(procs, proc, proc.name, now, warn=True))

    return items, errors


def _service_item(
    procs: ProcessMap,
    proc: ProcessSnapshot,
    name: str,
    now: float,
    warn: bool,
    message: str = "",
) -> ServiceItem:
    cpu_time, memory_rss = procs.stat(proc.pid)
    return ServiceItem(
        pid=proc.pid,
        name=name,
        cpu_time=cpu_time,
        memory_rss=memory_rss,
        uptime=max(now - proc.create_time, 0.0),
        warn=warn,
        message=message,
    )


def sort_items(
    items: list[ServiceItem],
    sort: SortKey | None = None,
    limit: int | None = None,
) -> list[ServiceItem]:
    """Sort items by descending usage and truncate them to limit."""
    if sort is not None:
        key_func = {
            SortKey.CPU: lambda item: item.cpu_time,
            SortKey.RSS: lambda item: item.memory_rss,
            SortKey.UPTIME: lambda item: item.uptime,
        }
        items = sorted(items, key=key_func[sort], reverse=True)
    if limit is not None:
        items = items[:limit]
    return items


class TextReport:
    """Plain text report with colored status markers."""

    def __init__(self, console: Console) -> None:
        self._console = console

    def summary(self, snapshot: SystemSnapshot) -> None:
        """Print load, memory and storage summary lines."""
        load = ", ".join(f"{value:.2f}" for value in snapshot.load_avg)
        self._summary_line(
            "loadavg:",
            load,
            join_detail(
                f"up {format_elapsed(snapshot.uptime_seconds)}",
                f"{len(snapshot.processes)} processes",
                f"{snapshot.cores} cores",
            ),
        )

        free_pct = 100 * snapshot.memory_free / snapshot.memory_total if snapshot.memory_total else 0.0
        detail = [
            f"{format_bytes(snapshot.memory_used)} rss",
            f"{format_bytes(snapshot.memory_cache)} cache",
            f"{format_bytes(snapshot.memory_total)} total",
        ]
        if snapshot.swap_used > 0:
            detail.insert(2, f"{format_bytes(snapshot.swap_used)} swap")
        self._summary_line(
            "memory:",
            f"{format_bytes(snapshot.memory_free)} ({free_pct:.1f}%) free",
            join_detail(*detail),
        )

        for disk in snapshot.disks:
            free_pct = 100 * disk.free / disk.total
            self._summary_line(
                "storage:",
                f"{format_bytes(disk.free)} ({free_pct:.1f}%) free",
                join_detail(
                    f"{format_bytes(disk.used)} used",
                    f"{format_bytes(disk.total)} total",
                    f"on {disk.mountpoint}",
                ),
            )

    def services(self, items: Sequence[ServiceItem]) -> None:
        """Print one line per service, plus a warning line where needed."""
        for item in items:
            label = f"{item.name} [{item.pid}]"
            if item.is_error:
                self._service_line("■", "red", label, item.message)
                continue
            detail = join_detail(
                f"cpu {format_elapsed(item.cpu_time)}",
                f"up {format_elapsed(item.uptime)}",
                f"{format_bytes(item.memory_rss)} rss",
            )
            if item.warn:
                self._service_line("■", "yellow", label, detail)
                if item.message:
                    self._console.print(Text.assemble("  ", ("Warning:", "yellow"), " ", item.message))
            else:
                self._service_line("●", "green", label, detail)

    def _summary_line(self, key: str, value: str, detail: str) -> None:
        self._console.print(Text(f"{key:<10}{value:<26} {detail}"))

    def _service_line(self, icon: str, style: str, label: str, detail: str) -> None:
        self._console.print(Text.assemble((icon, style), f" {label:<34} {detail}"))


def json_report(
    snapshot: SystemSnapshot | None,
    items: Sequence[ServiceItem] | None,
) -> dict:
    """Build the JSON report document."""
    doc: dict = {}
    if snapshot is not None:
        doc["cores"] = snapshot.cores
        doc["uptime"] = int(snapshot.uptime_seconds)
        doc["loadavg"] = [round(value, 2) for value in snapshot.load_avg]
        doc["processes"] = len(snapshot.processes)
        doc["memory"] = {
            "total": snapshot.memory_total,
            "free": snapshot.memory_free,
            "rss": snapshot.memory_used,
            "cache": snapshot.memory_cache,
            "swap": snapshot.swap_used,
        }
        doc["storage"] = [
            {
                "total": disk.total,
                "used": disk.used,
                "free": disk.free,
                "dev": disk.device,
                "mount": disk.mountpoint,
            }
            for disk in snapshot.disks
        ]
    if items is not None:
        doc["services"] = [_json_item(item) for item in items]
    return doc


def _json_item(item: ServiceItem) -> dict:
    entry: dict = {"pid": item.pid, "name": item.name}
    if item.is_error:
        entry["error"] = item.message
    else:
        entry["cputime"] = int(item.cpu_time)
        entry["uptime"] = int(item.uptime)
        entry["rss"] = item.memory_rss
    if item.warn:
        entry["warning"] = item.message or UNLISTED
    return entry


def render_json(snapshot: SystemSnapshot | None, items: Sequence[ServiceItem] | None) -> str:
    """Render the report as an indented JSON document."""
    return json.dumps(json_report(snapshot, items), indent=2)
