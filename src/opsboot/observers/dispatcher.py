# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/observers/dispatcher.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from .events import BaseEvent, new_ctx

log = logging.getLogger("opsboot")


class Observer(Protocol):
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    """
    Fans events out to observers. Carries the run context (ts/run_id/host)
    so steps only pass their own fields to ``emit_new``.
    """

    def __init__(self, observers: Optional[List[Observer]] = None, *, host: str = "localhost", run_id: Optional[str] = None):
        self._observers = observers or []
        self._ctx: Dict[str, Any] = new_ctx(host, run_id)

    @property
    def run_id(self) -> str:
        return self._ctx["run_id"]

    @property
    def host(self) -> str:
        return self._ctx["host"]

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as exc:  # observers must not break a run
                log.debug("observer %s failed: %s", type(ob).__name__, exc)

    def emit_new(self, event_cls: type, **fields) -> BaseEvent:
        ctx = dict(self._ctx, ts=new_ctx(self.host)["ts"])
        event = event_cls(**ctx, **fields)
        self.emit(event)
        return event
