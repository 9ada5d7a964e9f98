import sys
from pathlib import Path
from typing import List, Optional

import click
import typer
from pydantic import ValidationError

from doctainer.cli.formatter import OutputFormatter
from doctainer.config.loader import ConfigError, load_config
from doctainer.coordination import NotifyPublisher, WaitCoordinator
from doctainer.core.context import DoctainerContext
from doctainer.core.models import DEFAULT_STATUS, NotifyRequest, WaitRequest
from doctainer.core.results import CoordinationResult, Outcome
from doctainer.store.client import StoreClient

USAGE_EXIT_CODE = Outcome.USAGE_ERROR.exit_code
INTERRUPTED_EXIT_CODE = 130

app = typer.Typer(
    name="doctainer",
    help="Container start synchronization through an etcd key space.",
    rich_markup_mode=None,
    add_completion=False,
)


def _open_store(context: DoctainerContext) -> StoreClient:
    return StoreClient.from_settings(context.store)


def _finish(result: CoordinationResult, json_output: bool) -> None:
    if result.diagnostic is not None:
        OutputFormatter.print_diagnostic(result.diagnostic)
    elif result.outcome == Outcome.TIMEOUT:
        OutputFormatter.log(f"timeout: {result.message}", severity="warning")

    if json_output:
        OutputFormatter.print_data(result)

    raise typer.Exit(code=result.exit_code)


@app.callback()
def configure(
    ctx: typer.Context,
    config: Path = typer.Option(
        Path("doctainer.yaml"),
        "--config",
        "-c",
        help="YAML config file with 'store' and 'doctainer' sections. Missing file is ignored.",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print errors."),
):
    """
    Wait for, or announce, service readiness stored under service/<name>.
    """
    try:
        context = DoctainerContext(config_dict=load_config(config))
    except (ConfigError, ValidationError) as exc:
        OutputFormatter.log(f"Invalid configuration: {exc}", severity="error")
        raise typer.Exit(code=USAGE_EXIT_CODE)

    OutputFormatter.configure(context.settings.log_level, quiet=quiet)
    ctx.obj = context


@app.command()
def wait(
    ctx: typer.Context,
    service: Optional[str] = typer.Argument(None, help="The service name."),
    timeout: int = typer.Option(0, "--timeout", "-t", min=0, help="Seconds to wait; 0 waits forever."),
    status: str = typer.Option(DEFAULT_STATUS, "--status", "-s", help="Expected status."),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON on stdout."),
):
    """
    Block until a service reports the expected status.

    Exit codes: 0 success, 1 timeout, 2 status mismatch, 10 store unreachable, 11 usage error.
    """
    context: DoctainerContext = ctx.obj
    request = WaitRequest(service=service or "", expected_status=status, timeout_seconds=timeout)

    try:
        with _open_store(context) as store:
            result = WaitCoordinator(store).run(request)
    except KeyboardInterrupt:
        OutputFormatter.log("interrupted while waiting", severity="warning")
        raise typer.Exit(code=INTERRUPTED_EXIT_CODE)

    _finish(result, json_output)


@app.command()
def notify(
    ctx: typer.Context,
    service: Optional[str] = typer.Argument(None, help="The service name."),
    status: str = typer.Option(DEFAULT_STATUS, "--status", "-s", help="Status to publish."),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON on stdout."),
):
    """
    Publish a service status, releasing everyone waiting for it.

    Exit codes: 0 success, 10 store unreachable, 11 usage error, 12 write failed.
    """
    context: DoctainerContext = ctx.obj
    request = NotifyRequest(service=service or "", status=status)

    with _open_store(context) as store:
        result = NotifyPublisher(store).run(request)

    _finish(result, json_output)


def main(argv: Optional[List[str]] = None) -> None:
    """Console entry point. Command-line usage errors exit with 11 instead of click's 2."""
    args = sys.argv[1:] if argv is None else list(argv)
    command = typer.main.get_command(app)

    if not args:
        with click.Context(command, info_name="doctainer") as help_ctx:
            typer.echo(command.get_help(help_ctx), err=True)
        OutputFormatter.log("usage error: missing command (wait|notify)", severity="error")
        sys.exit(USAGE_EXIT_CODE)

    try:
        exit_code = command.main(args=args, prog_name="doctainer", standalone_mode=False)
    except click.UsageError as exc:
        exc.show()
        OutputFormatter.log(f"usage error: {exc.format_message()}", severity="error")
        sys.exit(USAGE_EXIT_CODE)
    except click.Abort:
        sys.exit(INTERRUPTED_EXIT_CODE)

    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
