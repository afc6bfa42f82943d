# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/registrar/prompts.py

from __future__ import annotations

from typing import Optional, Protocol, Sequence

import typer


class InputProvider(Protocol):
    """Where the registrar gets its answers from (a terminal, or a test)."""

    def show_options(self, title: str, options: Sequence[str]) -> None: ...

    def choose(self, prompt: str) -> str: ...

    def ask(self, prompt: str, default: Optional[str] = None) -> str: ...

    def secret(self, prompt: str) -> str: ...


class TerminalInputProvider:
    def show_options(self, title: str, options: Sequence[str]) -> None:
        typer.secho(f"🔐 {title}", bold=True)
        for i, option in enumerate(options, 1):
            typer.echo(f"{i}) {option}")

    def choose(self, prompt: str) -> str:
        return typer.prompt(prompt, default="", show_default=False)

    def ask(self, prompt: str, default: Optional[str] = None) -> str:
        if default is None:
            return typer.prompt(prompt)
        return typer.prompt(prompt, default=default)

    def secret(self, prompt: str) -> str:
        return typer.prompt(prompt, hide_input=True)
