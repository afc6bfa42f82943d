# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single invocation
    host: str         # target host ("localhost" or the SSH address)

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(host: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "host": host,
    }


# ---------------------------------------------------------------------
# Step lifecycle (orchestrator and registrar share these)
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StepStarted(BaseEvent):
    step: str
    message: str

@dataclass(frozen=True)
class StepProgress(BaseEvent):
    step: str
    message: str

@dataclass(frozen=True)
class StepSkipped(BaseEvent):
    step: str
    message: str

@dataclass(frozen=True)
class StepSucceeded(BaseEvent):
    step: str
    message: str

@dataclass(frozen=True)
class StepWarning(BaseEvent):
    step: str
    message: str

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    step: str
    error: str


# ---------------------------------------------------------------------
# Registrar
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RegistrarTransition(BaseEvent):
    source: str
    target: str

@dataclass(frozen=True)
class DeployKeyRegistered(BaseEvent):
    repository: str
    title: str
    status_code: int


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunSummary(BaseEvent):
    status: str                     # "OK" | "FAILED"
    lines: List[str]
    error: Optional[str] = None
