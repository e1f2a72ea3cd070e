"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import typer

from monitorswitch.core.errors import MonitorSwitchError
from monitorswitch.core.model import EnhancedMonitor, Monitor
from monitorswitch.core.service import MonitorService

app = typer.Typer(help="Switch monitor inputs and adjust settings over DDC/CI")

MONITOR_OPTION_HELP = "Monitor ID or part of its name"


@dataclass(frozen=True)
class CLIContext:
    verbose: bool = False
    config_path: Path | None = None


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show diagnostic output"),
    config: Path | None = typer.Option(None, "--config", help="Path to a config.yaml to use"),
) -> None:
    """Control monitor settings like input source, brightness and contrast."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CLIContext(verbose=verbose, config_path=config)


def _state(ctx: typer.Context) -> CLIContext:
    return ctx.obj if isinstance(ctx.obj, CLIContext) else CLIContext()


def _build_service(state: CLIContext) -> MonitorService:
    return MonitorService(config_path=state.config_path)


def _describe(monitor: Monitor) -> str:
    current = f" [{monitor.current_input}]" if monitor.current_input else ""
    return f"{monitor.id}: {monitor.name}{current}"


def _echo_validation(monitor: Monitor) -> None:
    if not isinstance(monitor, EnhancedMonitor) or monitor.validation is None:
        return
    validation = monitor.validation
    typer.echo(f"    DDC: {validation.status.value}")
    if validation.validation_error:
        typer.echo(f"    Reason: {validation.validation_error}")
    if validation.recommended_action:
        typer.echo(f"    Hint: {validation.recommended_action}")


def _echo_no_monitors(state: CLIContext, service: MonitorService, errors: tuple[str, ...]) -> None:
    typer.echo("No monitors detected")
    if not state.verbose:
        return
    _, support = service.check_support()
    typer.echo(f"  {support}")
    for error in errors:
        typer.echo(f"  {error}")
    typer.echo("  Check that the monitor has DDC/CI enabled in its on-screen menu.")
    typer.echo("  Laptop panels and some docks or adapters do not pass DDC/CI through.")


@app.command("status")
def status(
    ctx: typer.Context,
    monitor: str | None = typer.Option(None, "--monitor", "-m", help=MONITOR_OPTION_HELP),
) -> None:
    """Show the active input of a monitor."""
    state = _state(ctx)
    try:
        service = _build_service(state)
        if state.verbose:
            typer.echo(service.os_info())
        result = service.status(monitor)
        typer.echo(f"Monitor: {result.monitor.id} ({result.monitor.name})")
        typer.echo(f"Current input: {result.current_input or 'unknown'}")
        if state.verbose:
            typer.echo(f"Tool: {result.tool or 'native'}")
            _echo_validation(result.monitor)
    except MonitorSwitchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("switch")
def switch(
    ctx: typer.Context,
    input_name: str = typer.Argument(..., metavar="INPUT", help="Input name (e.g. HDMI-1) or code"),
    monitor: str | None = typer.Option(None, "--monitor", "-m", help=MONITOR_OPTION_HELP),
) -> None:
    """Switch a monitor to another input."""
    state = _state(ctx)
    try:
        service = _build_service(state)
        result = service.switch_input(input_name, monitor)
        typer.echo(f"Switched {result.monitor.name} to {input_name} (0x{result.value:02X})")
    except MonitorSwitchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("detect")
def detect(ctx: typer.Context) -> None:
    """Detect connected monitors and their current inputs."""
    state = _state(ctx)
    try:
        service = _build_service(state)
        typer.echo(service.os_info())
        _, support = service.check_support()
        typer.echo(support)

        report = service.detect()
        if not report.monitors:
            _echo_no_monitors(state, service, report.errors)
            return

        for found in report.monitors:
            typer.echo(_describe(found))
            if state.verbose:
                inputs = ", ".join(sorted(found.inputs)) or "none reported"
                typer.echo(f"    Inputs: {inputs}")
                _echo_validation(found)
    except MonitorSwitchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("list")
def list_inputs(
    ctx: typer.Context,
    monitor: str | None = typer.Option(None, "--monitor", "-m", help=MONITOR_OPTION_HELP),
) -> None:
    """List the inputs a monitor can be switched to."""
    state = _state(ctx)
    try:
        service = _build_service(state)
        target = service.resolve_monitor(monitor)
        inputs = service.known_inputs(target)
        source = "reported by monitor" if target.inputs else "known to " + (service.tool or "monitorswitch")
        typer.echo(f"Available inputs for {target.name} ({source}):")
        for name, code in sorted(inputs.items(), key=lambda item: (item[1], item[0])):
            marker = " *" if name == target.current_input else ""
            line = f"  {name}{marker}"
            if state.verbose:
                line = f"  {name} (0x{code:02X}){marker}"
            typer.echo(line)
    except MonitorSwitchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("get")
def get_feature(
    ctx: typer.Context,
    feature: str = typer.Argument(..., help="brightness, contrast, input, volume or a VCP code"),
    monitor: str | None = typer.Option(None, "--monitor", "-m", help=MONITOR_OPTION_HELP),
) -> None:
    """Read a feature value from a monitor."""
    state = _state(ctx)
    try:
        service = _build_service(state)
        result = service.get_feature(feature, monitor)
        typer.echo(f"{result.feature}: {result.value}")
    except MonitorSwitchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set")
def set_feature(
    ctx: typer.Context,
    feature: str = typer.Argument(..., help="brightness, contrast, input, volume or a VCP code"),
    value: str = typer.Argument(..., help="Numeric value, or an input name for 'input'"),
    monitor: str | None = typer.Option(None, "--monitor", "-m", help=MONITOR_OPTION_HELP),
) -> None:
    """Write a feature value to a monitor."""
    state = _state(ctx)
    try:
        service = _build_service(state)
        result = service.set_feature(feature, value, monitor)
        typer.echo(f"Set {result.feature}={result.value} on {result.monitor.name}")
    except MonitorSwitchError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
