"""Command line interface for the trinityamp package."""
from __future__ import annotations

import logging
from typing import List, Optional

import typer

from .logger import setup_logging
from .xdfp.config import load_settings
from .xdfp.errors import ConfigurationError, DeviceNotFound, StepError, XdfpError
from .xdfp.sequencer import ConfigurationSequencer, configure_device
from .xdfp.tables import PowerBudget
from .xdfp.transport import RecordingTransport

logger = logging.getLogger(__name__)

POWER_FLAGS = {
    "--power-500": PowerBudget.MA_500,
    "--power-1500": PowerBudget.MA_1500,
    "--power-3000": PowerBudget.MA_3000,
    "--power-4000": PowerBudget.MA_4000,
}

app = typer.Typer(
    add_completion=False,
    help="Load the EQ table and amplifier plugin into a Trinity audio device.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def print_usage() -> None:
    typer.echo("Available power settings :")
    for flag, budget in POWER_FLAGS.items():
        typer.echo(f"\t{flag}\t{budget.milliamps}mA")


def _select_budget(flags: dict[str, bool]) -> PowerBudget:
    chosen = [POWER_FLAGS[flag] for flag, enabled in flags.items() if enabled]
    if len(chosen) > 1:
        raise typer.BadParameter(
            "Choose exactly one power setting", param_hint="/".join(POWER_FLAGS)
        )
    return chosen[0] if chosen else PowerBudget.NONE


@app.command(
    context_settings={
        "help_option_names": ["-h", "--help"],
        "allow_extra_args": True,
        "ignore_unknown_options": True,
    }
)
def main(
    ctx: typer.Context,
    power_500: bool = typer.Option(False, "--power-500", help="USB source supplies 500mA."),
    power_1500: bool = typer.Option(False, "--power-1500", help="USB source supplies 1500mA."),
    power_3000: bool = typer.Option(False, "--power-3000", help="USB source supplies 3000mA."),
    power_4000: bool = typer.Option(False, "--power-4000", help="USB source supplies 4000mA."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the transfers instead of sending them."),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout-ms", min=1, help="Control transfer timeout in milliseconds (default 100)."
    ),
    override: Optional[List[str]] = typer.Option(
        None,
        "--set",
        help="Override USB settings, e.g. --set product_id=0x1101 --set detach_kernel_driver=true",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every transfer."),
) -> None:
    """Disable the plugin, load the EQ for the power budget, then load and arm the plugin."""

    budget = _select_budget(
        {
            "--power-500": power_500,
            "--power-1500": power_1500,
            "--power-3000": power_3000,
            "--power-4000": power_4000,
        }
    )
    if budget is PowerBudget.NONE:
        print_usage()
        raise typer.Exit()
    typer.echo(f"Audio device set to {budget.milliamps}mA")

    setup_logging(verbose)
    if ctx.args:
        logger.debug("Ignoring extra arguments: %s", " ".join(ctx.args))

    overrides = list(override or [])
    if timeout_ms is not None:
        overrides.append(f"timeout_ms={timeout_ms}")
    try:
        settings = load_settings(overrides)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--set") from exc

    try:
        if dry_run:
            transport = RecordingTransport(timeout_ms=settings.timeout_ms)
            ConfigurationSequencer(transport, budget).run()
            for write in transport.writes:
                typer.echo(f"req={write.request} addr=0x{write.address:04X} data={write.payload.hex(' ')}")
            typer.echo(f"Dry run: {len(transport.writes)} transfers")
        else:
            configure_device(settings, budget)
    except DeviceNotFound as exc:
        typer.echo(f"{exc}, exiting.", err=True)
        raise typer.Exit(code=1) from exc
    except StepError as exc:
        typer.echo(f"Error while {exc.step}: {exc.cause}", err=True)
        raise typer.Exit(code=1) from exc
    except XdfpError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
