import pytest
import requests

from conftest import FakeExecutor, FakeResponse, FakeSession

from opsboot.bootstrap.accounts import ensure_account, ensure_ssh_dir
from opsboot.bootstrap.docker import configure_docker
from opsboot.bootstrap.fetch import download, fetch_script
from opsboot.bootstrap.git_identity import run_registrar_script, set_global_git_identity
from opsboot.bootstrap.keys import ensure_key_pair
from opsboot.bootstrap.packages import install_packages
from opsboot.bootstrap.privilege import require_privileges, require_tools
from opsboot.bootstrap.ssh_client import ensure_stanzas, stanzas_for
from opsboot.config.models import KeyPair
from opsboot.errors import DownloadFailure, ExternalToolFailure, PreconditionError

# ----------------- privileges -----------------

def test_require_privileges():
    require_privileges(FakeExecutor())
    with pytest.raises(PreconditionError, match="must be run as root"):
        require_privileges(FakeExecutor(privileged=False))


def test_require_tools_lists_missing():
    ex = FakeExecutor(tools=("git",))
    require_tools(ex, ["git"])
    with pytest.raises(PreconditionError, match="^ssh-keygen is required$"):
        require_tools(ex, ["git", "ssh-keygen"])
    with pytest.raises(PreconditionError, match="^curl, jq are required$"):
        require_tools(ex, ["curl", "jq"])

# ----------------- account -----------------

def test_ensure_account_creates_once():
    ex = FakeExecutor()
    assert ensure_account(ex, "ops", admin_group="wheel") is True
    assert ex.ran("useradd") == [{"cmd": ["useradd", "-m", "-s", "/bin/bash", "ops"], "as_user": None, "env": {}, "interactive": False}]
    assert ex.ran("usermod")[0]["cmd"] == ["usermod", "-aG", "wheel", "ops"]

    ex.calls.clear()
    assert ensure_account(ex, "ops") is False
    assert ex.commands() == [["id", "ops"]]


def test_ensure_account_useradd_failure_is_fatal():
    ex = FakeExecutor()
    ex.results[("useradd",)] = (9, "", "useradd: group 'x' does not exist")
    with pytest.raises(ExternalToolFailure) as exc:
        ensure_account(ex, "ops")
    assert exc.value.returncode == 9
    assert "does not exist" in str(exc.value)
    assert not ex.ran("usermod")


def test_ensure_ssh_dir_runs_as_account():
    ex = FakeExecutor(users=["ops"])
    assert ensure_ssh_dir(ex, "ops", "/home/ops/.ssh") is True
    assert ex.modes["/home/ops/.ssh"] == 0o700
    assert {c["as_user"] for c in ex.calls} == {"ops"}
    assert ensure_ssh_dir(ex, "ops", "/home/ops/.ssh") is False

# ----------------- packages -----------------

def test_install_packages_noninteractive():
    ex = FakeExecutor()
    assert install_packages(ex, ["git", "curl"]) == []
    assert ex.commands() == [
        ["apt-get", "update"],
        ["apt-get", "upgrade", "-y"],
        ["apt-get", "install", "-y", "git", "curl"],
    ]
    assert all(c["env"] == {"DEBIAN_FRONTEND": "noninteractive"} for c in ex.calls)


def test_update_failure_is_a_warning_install_failure_is_fatal():
    ex = FakeExecutor()
    ex.results[("apt-get", "update")] = (100, "", "Temporary failure resolving")
    assert install_packages(ex, ["git"]) == ["apt-get update failed (rc=100)"]

    ex.results[("apt-get", "install")] = (100, "", "E: Unable to locate package nope")
    with pytest.raises(ExternalToolFailure, match="Unable to locate package"):
        install_packages(ex, ["nope"])


def test_no_packages_is_a_noop():
    ex = FakeExecutor()
    assert install_packages(ex, []) == []
    assert ex.calls == []

# ----------------- keys -----------------

def test_key_pair_generated_once_and_modes_fixed():
    ex = FakeExecutor(users=["ops"])
    pair = KeyPair("/home/ops/.ssh/id_ed25519", comment="ops@example.com")

    assert ensure_key_pair(ex, "ops", pair) is True
    keygen = ex.ran("ssh-keygen")[0]
    assert keygen["cmd"] == ["ssh-keygen", "-t", "ed25519", "-C", "ops@example.com", "-f", pair.private_path, "-N", ""]
    assert keygen["as_user"] == "ops"
    assert ex.modes[pair.private_path] == 0o600
    assert ex.modes[pair.public_path] == 0o644

    original = ex.files[pair.private_path]
    ex.calls.clear()
    assert ensure_key_pair(ex, "ops", pair) is False
    assert not ex.ran("ssh-keygen")
    assert ex.files[pair.private_path] == original


def test_keygen_failure_is_fatal():
    ex = FakeExecutor(users=["ops"])
    ex.results[("ssh-keygen",)] = (1, "", "Saving key failed: No such file or directory")
    with pytest.raises(ExternalToolFailure):
        ensure_key_pair(ex, "ops", KeyPair("/home/ops/.ssh/id_ed25519", "c"))

# ----------------- ssh client config -----------------

def test_ensure_stanzas_writes_only_on_change(run_config):
    ex = FakeExecutor(users=["ops"])
    path = run_config.ssh_config_path

    assert ensure_stanzas(ex, path, stanzas_for(run_config), owner="ops") is True
    assert ex.modes[path] == 0o600
    assert ex.owners[path] == "ops"
    text = ex.files[path]
    assert "Host github.com\n    HostName github.com\n    IdentityFile /home/ops/.ssh/github_deploy\n" in text
    assert "Host netsrv*\n    IdentityFile /home/ops/.ssh/id_ed25519\n    User ops\n" in text

    assert ensure_stanzas(ex, path, stanzas_for(run_config), owner="ops") is False
    assert ex.writes == [path]


def test_ensure_stanzas_keeps_unrelated_entries(run_config):
    ex = FakeExecutor(users=["ops"])
    path = run_config.ssh_config_path
    ex.add_file(path, "Host jump\n    User me\n", 0o600)
    ensure_stanzas(ex, path, stanzas_for(run_config), owner="ops")
    assert ex.files[path].startswith("Host jump\n    User me\n\n# GitHub configuration\n")


def test_ensure_stanzas_without_replace_leaves_existing_config(run_config):
    ex = FakeExecutor(users=["ops"])
    path = run_config.ssh_config_path
    original = "Host github.com\n    IdentityFile /home/ops/.ssh/old\n"
    ex.add_file(path, original, 0o600)

    assert ensure_stanzas(ex, path, stanzas_for(run_config), owner="ops", replace=False) is False
    assert ex.writes == []
    assert ex.files[path] == original


def test_ensure_stanzas_without_replace_still_creates_missing_config(run_config):
    ex = FakeExecutor(users=["ops"])
    path = run_config.ssh_config_path
    assert ensure_stanzas(ex, path, stanzas_for(run_config), owner="ops", replace=False) is True
    assert "Host netsrv*" in ex.files[path]

# ----------------- fetch -----------------

def test_fetch_script_writes_executable():
    ex = FakeExecutor(users=["ops"])
    session = FakeSession(get=FakeResponse(200, "#!/bin/bash\n"))
    assert fetch_script(ex, "https://raw/x.sh", "/home/ops/x.sh", owner="ops", session=session) is True
    assert ex.files["/home/ops/x.sh"] == "#!/bin/bash\n"
    assert ex.modes["/home/ops/x.sh"] == 0o755
    assert ex.owners["/home/ops/x.sh"] == "ops"


@pytest.mark.parametrize("get", [FakeResponse(404, "Not Found"), requests.ConnectionError("no route")])
def test_fetch_failure_reports_false(get):
    ex = FakeExecutor(users=["ops"])
    assert fetch_script(ex, "https://raw/x.sh", "/home/ops/x.sh", owner="ops", session=FakeSession(get=get)) is False
    assert ex.writes == []


def test_download_raises_download_failure():
    with pytest.raises(DownloadFailure) as exc:
        download("https://raw/x.sh", session=FakeSession(get=FakeResponse(500)))
    assert exc.value.url == "https://raw/x.sh"

# ----------------- docker -----------------

def test_docker_without_systemd_warns():
    ex = FakeExecutor(users=["ops"])
    outcome = configure_docker(ex, "ops")
    assert outcome.service_started is False
    assert any("Systemd not available" in w for w in outcome.warnings)
    assert ex.ran("usermod", "-aG", "docker", "ops")


def test_docker_with_systemd_enables_service():
    ex = FakeExecutor(users=["ops"], tools=("systemctl",))
    outcome = configure_docker(ex, "ops")
    assert outcome.service_started is True
    assert outcome.warnings == []
    assert ex.ran("systemctl", "enable", "docker")
    assert ex.ran("systemctl", "start", "docker")


def test_docker_missing_group_is_only_a_warning():
    ex = FakeExecutor(users=["ops"], tools=("systemctl",))
    ex.results[("usermod",)] = (6, "", "usermod: group 'docker' does not exist")
    outcome = configure_docker(ex, "ops")
    assert outcome.warnings == ["Could not add ops to the docker group (rc=6)"]
    assert outcome.service_started is True

# ----------------- git -----------------

def test_global_git_identity_as_account():
    ex = FakeExecutor(users=["ops"])
    set_global_git_identity(ex, "ops", "Ops Bot", "ops@example.com")
    assert ex.commands() == [
        ["git", "config", "--global", "user.name", "Ops Bot"],
        ["git", "config", "--global", "user.email", "ops@example.com"],
        ["git", "config", "--global", "init.defaultBranch", "main"],
        ["git", "config", "--global", "pull.rebase", "false"],
    ]
    assert {c["as_user"] for c in ex.calls} == {"ops"}


def test_registrar_script_status_is_returned():
    ex = FakeExecutor(users=["ops"])
    ex.results[("bash",)] = (3, "", "")
    assert run_registrar_script(ex, "ops", "/home/ops/configure-git.sh") == 3
    assert ex.calls[0]["interactive"] is True
