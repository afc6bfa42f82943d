import posixpath
from typing import Dict, List, Optional, Tuple

import pytest
import requests

from opsboot.config.models import RunConfig
from opsboot.errors import ExternalToolFailure
from opsboot.execution.interface import CommandResult
from opsboot.observers.dispatcher import EventBus

# ----------------- Fake host -----------------

class FakeExecutor:
    """
    In-memory host. Simulates the handful of commands the steps rely on
    (id, useradd, mkdir, chmod, ssh-keygen, git clone); everything else
    succeeds unless scripted in ``results``.
    """

    name = "fakehost"

    def __init__(self, *, privileged=True, users=(), tools=("git", "ssh-keygen", "sudo", "apt-get", "useradd"),
                 interactive=True, user="root"):
        self.privileged = privileged
        self.users = set(users)
        self.tools = set(tools)
        self.supports_interactive = interactive
        self.user = user
        self.files: Dict[str, str] = {}
        self.dirs = set()
        self.modes: Dict[str, int] = {}
        self.owners: Dict[str, Optional[str]] = {}
        self.writes: List[str] = []
        self.calls: List[dict] = []
        self.results: Dict[Tuple[str, ...], Tuple[int, str, str]] = {}
        self.closed = False
        for u in self.users:
            self.dirs.add(f"/home/{u}")

    # helpers for tests
    def add_file(self, path, content="", mode=0o644):
        self.files[path] = content
        self.modes[path] = mode
        self.dirs.add(posixpath.dirname(path))

    def commands(self):
        return [c["cmd"] for c in self.calls]

    def ran(self, *prefix):
        return [c for c in self.calls if tuple(c["cmd"][: len(prefix)]) == prefix]

    # ------------------ HostExecutor ------------------

    def run(self, cmd, *, as_user=None, env=None, check=False, interactive=False):
        cmd = [str(c) for c in cmd]
        self.calls.append({"cmd": cmd, "as_user": as_user, "env": dict(env or {}), "interactive": interactive})

        scripted = None
        for prefix, res in self.results.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                scripted = res
                break
        if scripted is not None:
            rc, out, err = scripted
        else:
            rc, out, err = self._simulate(cmd)

        result = CommandResult(cmd, rc, out, err)
        if check and not result.ok:
            raise ExternalToolFailure(cmd, rc, err)
        return result

    def _simulate(self, cmd):
        prog = cmd[0]
        if prog == "id":
            return (0, "", "") if cmd[1] in self.users else (1, "", f"id: '{cmd[1]}': no such user")
        if prog == "useradd":
            name = cmd[-1]
            self.users.add(name)
            self.dirs.add(f"/home/{name}")
            return 0, "", ""
        if prog == "mkdir":
            self.dirs.add(cmd[-1])
            return 0, "", ""
        if prog == "chmod":
            path = cmd[2]
            if path not in self.files and path not in self.dirs:
                return 1, "", f"chmod: cannot access '{path}'"
            self.modes[path] = int(cmd[1], 8)
            return 0, "", ""
        if prog == "ssh-keygen":
            path = cmd[cmd.index("-f") + 1]
            comment = cmd[cmd.index("-C") + 1]
            self.add_file(path, "PRIVATE KEY\n", 0o600)
            self.add_file(f"{path}.pub", f"ssh-ed25519 AAAAfake {comment}\n")
            return 0, "", ""
        if cmd[:2] == ["git", "clone"]:
            self.dirs.add(posixpath.join(cmd[-1], ".git"))
            return 0, "", ""
        return 0, "", ""

    def which(self, program):
        return program in self.tools

    def is_privileged(self):
        return self.privileged

    def exists(self, path):
        return path in self.files or path in self.dirs

    def read_text(self, path):
        return self.files.get(path)

    def write_text(self, path, content, *, mode, owner=None):
        self.files[path] = content
        self.modes[path] = mode
        self.owners[path] = owner
        self.writes.append(path)

    def list_dir(self, path):
        names = {posixpath.basename(p) for p in list(self.files) + list(self.dirs) if posixpath.dirname(p) == path}
        return sorted(names)

    def home_dir(self, user=None):
        user = user or self.user
        return "/root" if user == "root" else f"/home/{user}"

    def current_user(self):
        return self.user

    def hostname(self):
        return "testhost"

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


# ----------------- Fake terminal -----------------

class FakeInputs:
    def __init__(self, answers=None, choices=(), secret=""):
        self.answers = dict(answers or {})
        self.choices = list(choices)
        self.secret_value = secret
        self.prompts: List[str] = []
        self.shown: List[List[str]] = []

    def show_options(self, title, options):
        self.shown.append(list(options))

    def choose(self, prompt):
        self.prompts.append(prompt)
        return self.choices.pop(0)

    def ask(self, prompt, default=None):
        self.prompts.append(prompt)
        for needle, answer in self.answers.items():
            if needle in prompt:
                return answer
        return default or ""

    def secret(self, prompt):
        self.prompts.append(prompt)
        return self.secret_value


# ----------------- Fake HTTP -----------------

class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    def __init__(self, get=None, post=None):
        self._get = get if get is not None else FakeResponse(200, "#!/bin/bash\necho configure\n")
        self._post = post if post is not None else FakeResponse(201)
        self.gets: List[str] = []
        self.posts: List[dict] = []

    def get(self, url, timeout=None):
        self.gets.append(url)
        if isinstance(self._get, Exception):
            raise self._get
        return self._get

    def post(self, url, headers=None, json=None, timeout=None):
        self.posts.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(self._post, Exception):
            raise self._post
        return self._post


# ----------------- Event capture -----------------

class Capture:
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def of(self, cls):
        return [e for e in self.events if isinstance(e, cls)]


@pytest.fixture
def capture():
    return Capture()


@pytest.fixture
def bus(capture):
    return EventBus([capture], host="fakehost", run_id="run-1")


@pytest.fixture
def run_config():
    return RunConfig(
        ops_user="ops",
        github_org="acme",
        repo_name="tools",
        git_user_name="Ops Bot",
        git_email="ops@example.com",
        github_token="tok",
        packages=("git", "curl"),
    )
