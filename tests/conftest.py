"""Shared test fixtures for upstate."""

import pytest
import structlog

from upstate.models import ProcessSnapshot
from upstate.procmap import ProcessMap


def make_process(
    pid: int,
    ppid: int | None = 1,
    command_line: str = "",
    cpu_time: float = 0.0,
    memory_rss: int = 0,
    name: str | None = None,
    create_time: float = 1000.0,
    kernel_thread: bool = False,
) -> ProcessSnapshot:
    """Create a ProcessSnapshot for testing."""
    return ProcessSnapshot(
        pid=pid,
        ppid=ppid,
        name=name if name is not None else (command_line.split(" ")[0] or f"proc{pid}"),
        command_line=command_line,
        cpu_time=cpu_time,
        memory_rss=memory_rss,
        create_time=create_time,
        kernel_thread=kernel_thread,
    )


@pytest.fixture(autouse=True)
def reset_structlog():
    """Restore the default structlog configuration after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def processes() -> list[ProcessSnapshot]:
    """A small process tree.

    1 init
    ├── 10 nginx: master
    │   ├── 11 nginx: worker
    │   └── 12 nginx: worker
    ├── 20 /usr/bin/redis-supervisor
    │   └── 21 redis-server
    │       └── 22 redis-io-helper
    └── 30 sshd
    """
    return [
        make_process(1, None, "/sbin/init", cpu_time=5.0, memory_rss=1000),
        make_process(10, 1, "nginx: master", cpu_time=1.0, memory_rss=100),
        make_process(11, 10, "nginx: worker", cpu_time=2.0, memory_rss=200),
        make_process(12, 10, "nginx: worker", cpu_time=3.0, memory_rss=300),
        make_process(20, 1, "/usr/bin/redis-supervisor", cpu_time=0.5, memory_rss=50),
        make_process(21, 20, "redis-server *:6379", cpu_time=4.0, memory_rss=400),
        make_process(22, 21, "redis-io-helper", cpu_time=1.5, memory_rss=150),
        make_process(30, 1, "/usr/sbin/sshd -D", cpu_time=0.25, memory_rss=25),
    ]


@pytest.fixture
def procs(processes: list[ProcessSnapshot]) -> ProcessMap:
    """ProcessMap over the small process tree."""
    return ProcessMap(processes)
