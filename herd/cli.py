"""herd command-line interface.

Exit codes:
    0  every host succeeded
    1  at least one host failed (mechanism error or non-zero exit)
    2  configuration error (bad flags, unreadable inventory, no hosts)
"""

import asyncio
import logging
from collections.abc import Sequence

import click

from herd import __version__
from herd.config import HostKeyVerifier, Settings, build_credentials, resolve_inventory
from herd.exceptions import ConfigError
from herd.models import Credentials, OutputMode, RunConfig, RunSummary, Target
from herd.modules import default_registry, resolve_command_source
from herd.services import Dispatcher, create_aggregator
from herd.utils import configure_logging, parse_duration

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2


class DurationType(click.ParamType):
    """Click parameter accepting ``30s``, ``5m``, ``1h`` or bare seconds."""

    name = "duration"

    def __init__(self, allow_zero: bool = False) -> None:
        self.allow_zero = allow_zero

    def convert(self, value, param, ctx):
        if isinstance(value, float):
            return value
        try:
            return parse_duration(value, allow_zero=self.allow_zero)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationType()
DELAY = DurationType(allow_zero=True)


def _modules_epilog() -> str:
    registry = default_registry()
    lines = ["\b", "Modules:"]
    for name in registry.names():
        lines.append(f"  {name:<15} {registry.modules[name].get_description()}")
    return "\n".join(lines)


def _parse_fields(fields: str | None) -> frozenset[str] | None:
    if fields is None:
        return None
    return frozenset(f.strip() for f in fields.split(",") if f.strip())


def _output_mode(json_lines: bool, pretty_json: bool) -> OutputMode:
    if json_lines and pretty_json:
        raise ConfigError("--json and --pretty-json are mutually exclusive")
    if json_lines:
        return OutputMode.JSON_STREAM
    if pretty_json:
        return OutputMode.JSON_PRETTY
    return OutputMode.TEXT


async def execute(
    config: RunConfig, credentials: Credentials, targets: Sequence[Target]
) -> RunSummary:
    """Dispatch the command to every target and render the results."""
    dispatcher = Dispatcher(config, credentials)
    aggregator = create_aggregator(
        config.output_mode, field_filter=config.field_filter, order=targets
    )
    return await dispatcher.run(targets, aggregator)


@click.command(
    epilog=_modules_epilog(),
    context_settings={
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    }
)
@click.option("-H", "--hosts", "hosts", multiple=True, help="Comma-separated host[:port] list (repeatable)")
@click.option("-i", "--inventory", type=click.Path(dir_okay=False), default=None, help="Inventory file, one host[:port] per line")
@click.option("-u", "--user", default=None, help="Remote user (default: $HERD_USER or root)")
@click.option("-k", "--private-key", default=None, help="Private key file")
@click.option("-p", "--password", default=None, help="SSH password")
@click.option("--ask-pass", is_flag=True, help="Prompt for the SSH password")
@click.option("--no-agent", is_flag=True, help="Do not offer ssh-agent identities")
@click.option("-c", "--concurrency", type=int, default=None, help="Max hosts in flight (default 10)")
@click.option("--timeout", type=DURATION, default=None, help="Connect and idle I/O timeout, e.g. 30s, 5m")
@click.option("--connect-timeout", type=DURATION, default=None, help="Override the connect timeout")
@click.option("--retries", type=int, default=None, help="Retries for transient failures (default 0)")
@click.option("--retry-delay", type=DELAY, default=None, help="Base pause between retries (0 for none)")
@click.option("--json", "json_lines", is_flag=True, help="Stream one JSON record per host")
@click.option("--pretty-json", is_flag=True, help="Print all results as one indented JSON array")
@click.option("--fields", default=None, help="Comma-separated record fields to keep")
@click.option("--known-hosts", default=None, help="known_hosts file, or 'none' to skip host key checks")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose/debug output")
@click.version_option(__version__, prog_name="herd")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def main(
    ctx, hosts, inventory, user, private_key, password, ask_pass, no_agent,
    concurrency, timeout, connect_timeout, retries, retry_delay, json_lines,
    pretty_json, fields, known_hosts, verbose, command,
):
    """Run MODULE_OR_COMMAND on every host.

    The first word may name a built-in module (collect-facts, os-update,
    reboot-wait, sudo); otherwise all words form a shell command.

    Examples:

        herd -H web1,web2 uptime

        herd -i hosts.txt -c 20 --json --fields hostname,exit_code 'df -h /'
    """
    settings = Settings.from_env()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_colors)

    try:
        targets = resolve_inventory(hosts, inventory)
        remote_command = resolve_command_source(command).build()

        if ask_pass and password is None:
            password = click.prompt("Enter SSH password", hide_input=True, err=True)

        credentials = build_credentials(
            user or settings.user,
            private_key=private_key,
            password=password,
            use_agent=not no_agent,
        )
        verifier = HostKeyVerifier(
            known_hosts or settings.known_hosts,
            strict_checking=settings.strict_host_key_checking,
        )

        io_timeout = timeout or settings.timeout
        config = RunConfig(
            command=remote_command,
            concurrency_limit=concurrency if concurrency is not None else settings.concurrency,
            connect_timeout=connect_timeout or settings.connect_timeout or io_timeout,
            io_timeout=io_timeout,
            max_retries=retries if retries is not None else settings.retries,
            output_mode=_output_mode(json_lines, pretty_json),
            field_filter=_parse_fields(fields),
            retry_delay=retry_delay if retry_delay is not None else settings.retry_delay,
            known_hosts=verifier.get_known_hosts_path(),
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_CONFIG_ERROR)

    logger.debug("Resolved command: %s", config.command)
    summary = asyncio.run(execute(config, credentials, targets))
    ctx.exit(summary.exit_code)
