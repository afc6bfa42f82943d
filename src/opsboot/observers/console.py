# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/observers/console.py
from __future__ import annotations

import typer

from .events import (
    BaseEvent,
    DeployKeyRegistered,
    RegistrarTransition,
    RunSummary,
    StepFailed,
    StepProgress,
    StepSkipped,
    StepStarted,
    StepSucceeded,
    StepWarning,
)


class ConsoleObserver:
    """Operator-facing output: one coloured, marked line per event."""

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, StepStarted):
            typer.secho(f"🔧 {event.message}", fg=typer.colors.YELLOW)
        elif isinstance(event, StepProgress):
            typer.secho(f"   {event.message}", fg=typer.colors.YELLOW)
        elif isinstance(event, StepSucceeded):
            typer.secho(f"✅ {event.message}", fg=typer.colors.GREEN)
        elif isinstance(event, StepSkipped):
            typer.secho(f"⏭  {event.message}", fg=typer.colors.GREEN)
        elif isinstance(event, StepWarning):
            typer.secho(f"⚠️  {event.message}", fg=typer.colors.YELLOW)
        elif isinstance(event, StepFailed):
            typer.secho(f"❌ {event.error}", fg=typer.colors.RED, err=True)
        elif isinstance(event, DeployKeyRegistered):
            typer.secho(
                f"🔑 {event.repository}: deploy key '{event.title}' (HTTP {event.status_code})",
                fg=typer.colors.BLUE,
            )
        elif isinstance(event, RunSummary):
            self._summary(event)
        elif isinstance(event, RegistrarTransition):
            return

    def _summary(self, event: RunSummary) -> None:
        bar = "=" * 40
        ok = event.status == "OK"
        typer.secho(f"\n{bar}", fg=typer.colors.BLUE)
        typer.secho("SETUP COMPLETE" if ok else "SETUP FAILED", fg=typer.colors.BLUE, bold=True)
        typer.secho(f"{bar}\n", fg=typer.colors.BLUE)
        if not ok:
            typer.secho(f"❌ {event.error}", fg=typer.colors.RED, err=True)
        for line in event.lines:
            typer.echo(line)
