"""Data models for upstate."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process state."""

    pid: int
    ppid: int | None  # None for top-level processes
    name: str
    command_line: str
    cpu_time: float  # Seconds (user + system)
    memory_rss: int  # Bytes
    create_time: float = 0.0  # Epoch seconds
    kernel_thread: bool = False


@dataclass(slots=True, frozen=True)
class ServiceMatch:
    """Outcome of resolving one configured service.

    A pid of 0 means the service is not running.
    """

    name: str
    pid: int
    diagnostic: str = ""


@dataclass(slots=True)
class ServiceItem:
    """One row of the services report."""

    pid: int
    name: str
    cpu_time: float = 0.0
    memory_rss: int = 0
    uptime: float = 0.0
    warn: bool = False
    message: str = ""

    @property
    def is_error(self) -> bool:
        """Check if the row stands for a missing service."""
        return self.pid == 0
