"""Service configuration for upstate.

Each non-empty line not starting with ``#`` declares one service::

    <marker><name> [<pidfile or "-"> [<command pattern...>]]

The optional marker on the name selects how the service is checked:

- no marker: required, a single matching process
- ``-``: optional
- ``+``: required, multiple matching processes allowed
- ``*``: optional, multiple matching processes allowed
"""

import os
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from upstate.logging import get_logger
from upstate.models import ServiceMatch
from upstate.procmap import ProcessMap

log = get_logger()

ENV_VAR = "UPSTATE_CONF"
CONFIG_NAMES = ("upstate.conf", "etc/upstate.conf", "upstate.d", "etc/upstate.d")

MARKERS = "-+*"


class ConfigNotFound(FileNotFoundError):
    """No configuration source could be located."""


@dataclass(slots=True, frozen=True)
class ConfigItem:
    """One declared service expectation."""

    name: str
    required: bool = True
    multiple: bool = False
    pidfile: str | None = None
    command: str | None = None

    @classmethod
    def parse(cls, line: str) -> "ConfigItem | None":
        """Parse a config line, returning None for blank and comment lines."""
        parts = line.split()
        if not parts or parts[0].startswith("#"):
            return None
        title = parts[0]
        name = title.lstrip(MARKERS)
        if not name:
            return None
        pidfile = parts[1] if len(parts) > 1 and parts[1] != "-" else None
        command = " ".join(parts[2:]) or None
        return cls(
            name=name,
            required=not title.startswith(("-", "*")),
            multiple=title.startswith(("+", "*")),
            pidfile=pidfile,
            command=command,
        )

    @property
    def pattern(self) -> str:
        """The command pattern, defaulting to the service name."""
        return self.command or self.name

    def read_pidfile(self) -> int | None:
        """Read the configured PID file, returning None if missing or invalid."""
        if self.pidfile is None:
            return None
        try:
            text = Path(self.pidfile).read_text().strip()
        except (OSError, ValueError) as exc:
            log.debug("invalid pid file", service=self.name, pidfile=self.pidfile, error=str(exc))
            return None
        if not (text.isascii() and text.isdigit()):
            log.debug("invalid pid file", service=self.name, pidfile=self.pidfile, error="not a pid")
            return None
        pid = int(text)
        if pid <= 0:
            return None
        return pid

    def matches(self, procs: ProcessMap) -> list[ServiceMatch]:
        """
        Resolve this service against the process map.

        A PID file pointing at a known process always wins. Otherwise the
        command pattern is matched and every match is reported in pid order,
        flagged when the PID file was invalid or when more than one process
        matched a single-process service.
        """
        pid = self.read_pidfile()
        if pid is not None:
            service = procs.service_by_pid(pid)
            if service is not None:
                return [ServiceMatch(self.name, service)]

        found = sorted(procs.services_by_cmd(self.pattern))
        if not found:
            if self.required:
                return [ServiceMatch(self.name, 0, "service not running")]
            return []

        message = ""
        if self.pidfile is not None:
            message = f"invalid PID file {self.pidfile}"
        elif len(found) > 1 and not self.multiple:
            message = "multiple matching processes"
        return [ServiceMatch(self.name, pid, message) for pid in found]


class Config:
    """Ordered list of configured services."""

    def __init__(self, items: Iterable[ConfigItem] = ()) -> None:
        self.items: tuple[ConfigItem, ...] = tuple(items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ConfigItem]:
        return iter(self.items)

    @classmethod
    def empty(cls) -> "Config":
        """Create a config without any services."""
        return cls()

    @classmethod
    def parse(cls, text: str) -> "Config":
        """Create a config from the text of one or more config files."""
        items = []
        for line in text.splitlines():
            item = ConfigItem.parse(line)
            if item is not None:
                items.append(item)
        return cls(items)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load the config from a file or directory.

        Args:
            path: Config file or directory. Located automatically if None.

        Raises:
            ConfigNotFound: If no config could be located.
            OSError: If a config file could not be read.
            UnicodeDecodeError: If a config file is not valid UTF-8.
        """
        if path is None:
            path = locate()
        config = cls.parse(read_source(path))
        log.debug("config loaded", path=str(path), services=len(config))
        return config

    def all(self, procs: ProcessMap) -> list[ServiceMatch]:
        """Resolve all configured services in declaration order."""
        found: list[ServiceMatch] = []
        for item in self.items:
            found.extend(item.matches(procs))
        return found


def read_source(path: Path) -> str:
    """Read a config file, or all files in a config directory in name order."""
    if not path.is_dir():
        return path.read_text()
    texts = []
    for child in sorted(path.iterdir()):
        if child.is_file():
            texts.append(child.read_text())
    return "\n".join(texts)


def locate() -> Path:
    """
    Find the config file or directory.

    The UPSTATE_CONF environment variable takes precedence. Otherwise the
    directories above the executable and the working directory are searched.

    Raises:
        ConfigNotFound: If no config was found.
    """
    env = os.environ.get(ENV_VAR)
    if env:
        path = Path(env)
        if not path.exists():
            raise ConfigNotFound(f"config file not found: {env}")
        return path

    exe_dir = Path(sys.argv[0] or sys.executable).resolve().parent
    cwd = Path.cwd()
    for directory in (exe_dir, *exe_dir.parents, cwd, *cwd.parents):
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.exists():
                return candidate
    raise ConfigNotFound("no upstate.conf file found")
