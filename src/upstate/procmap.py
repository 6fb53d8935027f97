"""Process hierarchy and service classification."""

import re
from collections.abc import Iterable

from upstate.logging import get_logger
from upstate.models import ProcessSnapshot

log = get_logger()


class ProcessMap:
    """
    Parent/child index over one frozen snapshot of the process table.

    A service is a top-level process or a direct child of one. Worker
    processes are promoted to their owning service by a single hop up the
    tree, while resource usage is summed over the whole subtree.
    """

    def __init__(self, processes: Iterable[ProcessSnapshot]) -> None:
        """
        Build the index from a flat list of process snapshots.

        Args:
            processes: Process observations. Kernel threads are dropped.
        """
        self.roots: list[int] = []
        self._root_set: set[int] = set()
        self.parents: dict[int, int] = {}
        self.children: dict[int, list[int]] = {}
        self.info: dict[int, ProcessSnapshot] = {}

        for proc in processes:
            if proc.kernel_thread:
                continue
            self.children.setdefault(proc.pid, [])
            self.info[proc.pid] = proc
            if proc.ppid is not None:
                self.parents[proc.pid] = proc.ppid
                self.children.setdefault(proc.ppid, []).append(proc.pid)
            else:
                self.roots.append(proc.pid)

        # A parent missing from the snapshot (e.g. a dropped kernel thread)
        # leaves its children at the top of the hierarchy.
        for pid, ppid in list(self.parents.items()):
            if ppid not in self.info:
                del self.parents[pid]
                self.roots.append(pid)
                self.children.pop(ppid, None)

        self._root_set.update(self.roots)

        log.debug("process map built", processes=len(self.info), roots=len(self.roots))

    def __len__(self) -> int:
        return len(self.info)

    def __contains__(self, pid: int) -> bool:
        return pid in self.info

    def is_service(self, pid: int) -> bool:
        """Check if pid is a top-level process or a direct child of one."""
        ppid = self.parents.get(pid)
        return ppid is None or ppid in self._root_set

    def as_service(self, pid: int) -> int:
        """Return the service pid owning pid, looking one level up only."""
        if self.is_service(pid):
            return pid
        ppid = self.parents[pid]
        if self.is_service(ppid):
            return ppid
        return pid

    def services(self) -> list[int]:
        """Return the direct children of all top-level processes."""
        pids: list[int] = []
        for pid in self.roots:
            pids.extend(self.children[pid])
        return pids

    def service_by_pid(self, pid: int) -> int | None:
        """Return the service pid for a known pid, or None."""
        if pid not in self.info:
            return None
        return self.as_service(pid)

    def services_by_cmd(self, pattern: str) -> list[int]:
        """
        Return the service pids of all processes matching a command pattern.

        The pattern matches as a plain substring or as a case-insensitive
        regular expression. An invalid expression only disables the regex
        match. The result may contain duplicates and is not sorted.
        """
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as exc:
            log.debug("invalid command pattern", pattern=pattern, error=str(exc))
            regex = None

        found: list[int] = []
        for pid, proc in self.info.items():
            cmd = proc.command_line
            if pattern in cmd or (regex is not None and regex.search(cmd)):
                found.append(self.as_service(pid))
        return found

    def stat(self, pid: int) -> tuple[float, int]:
        """Return (cpu seconds, rss bytes) summed over pid and all its descendants."""
        proc = self.info.get(pid)
        if proc is None:
            return (0, 0)
        cpu_time = 0.0
        memory_rss = 0
        stack = [pid]
        while stack:
            proc = self.info[stack.pop()]
            cpu_time += proc.cpu_time
            memory_rss += proc.memory_rss
            stack.extend(self.children[proc.pid])
        return (cpu_time, memory_rss)
