# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/opsboot/utils/ssh_config.py

"""
Minimal structured view of an OpenSSH client config (``~/.ssh/config``).

The file is split into a preamble (lines before the first ``Host``/``Match``)
and one block per ``Host``/``Match`` header. Raw lines are kept, so a file
that is parsed and rendered without changes comes back byte-for-byte. Only
blocks that are replaced or appended are re-rendered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

HEADER_KEYWORDS = ("host", "match")
INDENT = "    "

_OPTION_RE = re.compile(r"^(\S+?)(?:\s*=\s*|\s+)(.*)$")


def _split_option(line: str) -> Optional[Tuple[str, str]]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    m = _OPTION_RE.match(stripped)
    if not m:
        return stripped, ""
    return m.group(1), m.group(2).strip()


def _normalize(pattern: str) -> str:
    return " ".join(pattern.split())


@dataclass
class HostStanza:
    keyword: str                                   # "Host" or "Match"
    pattern: str                                   # "github.com", "netsrv*", ...
    options: List[Tuple[str, str]] = field(default_factory=list)
    comment: Optional[str] = None                  # only rendered for new stanzas
    lines: List[str] = field(default_factory=list)  # raw text, header included

    @classmethod
    def host(cls, pattern: str, *options: Tuple[str, str], comment: Optional[str] = None) -> "HostStanza":
        return cls("Host", _normalize(pattern), list(options), comment=comment)

    def option(self, key: str) -> Optional[str]:
        for k, v in self.options:
            if k.lower() == key.lower():
                return v
        return None

    def _option_map(self) -> Dict[str, List[str]]:
        # repeated keys (IdentityFile, LocalForward) keep every value, in order
        seen: Dict[str, List[str]] = {}
        for k, v in self.options:
            seen.setdefault(k.lower(), []).append(v)
        return seen

    def matches(self, pattern: str, keyword: str = "Host") -> bool:
        return self.keyword.lower() == keyword.lower() and self.pattern == _normalize(pattern)

    def same_as(self, other: "HostStanza") -> bool:
        return other.matches(self.pattern, self.keyword) and self._option_map() == other._option_map()

    def rendered_lines(self) -> List[str]:
        out = [f"{self.keyword} {self.pattern}\n"]
        out.extend(f"{INDENT}{k} {v}\n" for k, v in self.options)
        return out

    def trailing_lines(self) -> List[str]:
        """Blank/comment lines after the last option; they belong to what follows."""
        tail: List[str] = []
        for line in reversed(self.lines[1:]):
            if _split_option(line) is not None:
                break
            tail.append(line)
        return list(reversed(tail))


@dataclass
class SSHClientConfig:
    preamble: List[str] = field(default_factory=list)
    stanzas: List[HostStanza] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "SSHClientConfig":
        conf = cls()
        current: Optional[HostStanza] = None
        for line in text.splitlines(keepends=True):
            opt = _split_option(line)
            if opt and opt[0].lower() in HEADER_KEYWORDS:
                current = HostStanza(opt[0], _normalize(opt[1]), lines=[line])
                conf.stanzas.append(current)
                continue
            if current is None:
                conf.preamble.append(line)
                continue
            current.lines.append(line)
            if opt:
                current.options.append(opt)
        return conf

    def render(self) -> str:
        out = list(self.preamble)
        for stanza in self.stanzas:
            out.extend(stanza.lines or stanza.rendered_lines())
        return "".join(out)

    def get(self, pattern: str, keyword: str = "Host") -> Optional[HostStanza]:
        for stanza in self.stanzas:
            if stanza.matches(pattern, keyword):
                return stanza
        return None

    def upsert(self, stanza: HostStanza, *, replace: bool = True) -> bool:
        """
        Append the stanza if its pattern is absent; replace it if present and
        different (unless ``replace`` is False). Returns True if the rendered
        text changed.
        """
        existing = self.get(stanza.pattern, stanza.keyword)
        if existing is None:
            self._append(stanza)
            return True
        if not replace or existing.same_as(stanza):
            return False

        existing.lines = stanza.rendered_lines() + existing.trailing_lines()
        existing.options = list(stanza.options)
        return True

    def _append(self, stanza: HostStanza) -> None:
        tail = self.stanzas[-1].lines if self.stanzas else self.preamble
        if tail:
            if not tail[-1].endswith("\n"):
                tail[-1] += "\n"
            if tail[-1].strip():
                tail.append("\n")
        if stanza.comment:
            tail.append(f"# {stanza.comment}\n")
        stanza.lines = stanza.rendered_lines()
        self.stanzas.append(stanza)
