"""Command line entry point for upstate."""

import sys

import click
from rich.console import Console

from upstate import logging as console_log
from upstate.config import Config
from upstate.monitor import collect_snapshot
from upstate.procmap import ProcessMap
from upstate.report import SortKey, TextReport, build_report, render_json, sort_items

SORT_CHOICES = ["cpu", "rss", "mem", "uptime", "time"]


def load_config() -> Config:
    """Load the service config, falling back to an empty one."""
    try:
        return Config.load()
    except (OSError, UnicodeDecodeError) as exc:
        console_log.warn(exc)
        return Config.empty()


@click.command()
@click.option("--no-summary", is_flag=True, help="Exclude machine status from output.")
@click.option(
    "--no-services", "mode", flag_value="none", help="Exclude services list from output."
)
@click.option(
    "--limited", "mode", flag_value="limited", help="Include machine status and configured services."
)
@click.option(
    "--complete",
    "mode",
    flag_value="complete",
    help="Include machine status and all services (default).",
)
@click.option(
    "--sort",
    type=click.Choice(SORT_CHOICES),
    default=None,
    help="Sort services by cpu, rss, or uptime.",
)
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Limit the number of services shown.")
@click.option("--json", "as_json", is_flag=True, help="Print the report in JSON output format.")
@click.option("--verbose", "-v", is_flag=True, help="Log diagnostic events to stderr.")
@click.version_option(package_name="upstate", message="Upstate %(version)s")
def main(
    no_summary: bool,
    mode: str | None,
    sort: str | None,
    limit: int | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Prints a machine and service status report.

    Returns non-zero if one or more configured services were missing.
    Services are read from /etc/upstate.conf unless UPSTATE_CONF is set.
    """
    console_log.configure(verbose)
    mode = mode or "complete"

    snapshot = collect_snapshot()
    items = None
    errors = 0
    if mode != "none":
        config = load_config()
        procs = ProcessMap(snapshot.processes)
        items, errors = build_report(config, procs, snapshot.processes, complete=mode == "complete")
        items = sort_items(items, SortKey.parse(sort) if sort else None, limit)

    if as_json:
        click.echo(render_json(None if no_summary else snapshot, items))
    else:
        report = TextReport(Console(highlight=False, soft_wrap=True))
        if not no_summary:
            report.summary(snapshot)
        if items is not None:
            report.services(items)

    sys.exit(errors)


if __name__ == "__main__":
    main()
