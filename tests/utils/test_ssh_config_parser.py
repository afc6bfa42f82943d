import textwrap

from opsboot.bootstrap.ssh_client import github_stanza, netsrv_stanza
from opsboot.utils.ssh_config import HostStanza, SSHClientConfig

MESSY = (
    "# managed by hand\n"
    "Include ~/.ssh/conf.d/*\n"
    "\n"
    "Host bastion\n"
    "  HostName=10.0.0.1\n"
    "\tUser admin   # trailing\n"
    "\n"
    "Match host *.internal exec \"true\"\n"
    "    ProxyJump bastion\n"
    "Host   github.com\n"
    "    IdentityFile ~/.ssh/old_key\n"
    "    User git"
)


def test_roundtrip_is_byte_for_byte():
    conf = SSHClientConfig.parse(MESSY)
    assert conf.render() == MESSY
    assert [s.pattern for s in conf.stanzas] == ["bastion", "host *.internal exec \"true\"", "github.com"]
    assert conf.get("bastion").option("hostname") == "10.0.0.1"


def test_upsert_appends_missing_stanza_with_comment():
    conf = SSHClientConfig.parse("Host a\n    User b")
    assert conf.upsert(netsrv_stanza("/home/ops/.ssh/id_ed25519", "ops")) is True
    assert conf.render() == textwrap.dedent("""\
        Host a
            User b

        # Network servers configuration
        Host netsrv*
            IdentityFile /home/ops/.ssh/id_ed25519
            User ops
    """)


def test_upsert_into_empty_file():
    conf = SSHClientConfig.parse("")
    conf.upsert(github_stanza("/k"))
    assert conf.render().startswith("# GitHub configuration\nHost github.com\n    HostName github.com\n")


def test_upsert_replaces_stale_stanza_only():
    conf = SSHClientConfig.parse(MESSY)
    assert conf.upsert(github_stanza("/home/ops/.ssh/github_deploy")) is True
    text = conf.render()
    assert "old_key" not in text
    assert text.startswith(MESSY.split("Host   github.com")[0])
    assert text.endswith(
        "Host github.com\n"
        "    HostName github.com\n"
        "    IdentityFile /home/ops/.ssh/github_deploy\n"
        "    IdentitiesOnly yes\n"
        "    User git\n"
    )
    # no duplicate stanza
    assert text.count("Host github.com") == 1


def test_upsert_without_replace_keeps_existing():
    conf = SSHClientConfig.parse(MESSY)
    assert conf.upsert(github_stanza("/new"), replace=False) is False
    assert conf.render() == MESSY


def test_equivalent_stanza_is_not_rewritten():
    text = "Host github.com\n  user git\n  IdentitiesOnly=yes\n  IdentityFile /k\n  HostName github.com\n"
    conf = SSHClientConfig.parse(text)
    assert conf.upsert(github_stanza("/k")) is False
    assert conf.render() == text


def test_match_block_is_not_a_host():
    conf = SSHClientConfig.parse("Match host netsrv*\n    User x\n")
    assert conf.get("netsrv*") is None
    assert conf.get("host netsrv*", keyword="Match") is not None


def test_trailing_blank_lines_stay_with_replaced_stanza():
    conf = SSHClientConfig.parse("Host github.com\n    User old\n\n# next\nHost other\n    User me\n")
    conf.upsert(HostStanza.host("github.com", ("User", "git")))
    assert conf.render() == "Host github.com\n    User git\n\n# next\nHost other\n    User me\n"


def test_extra_identity_file_makes_stanza_stale():
    text = (
        "Host github.com\n"
        "    HostName github.com\n"
        "    IdentityFile /home/ops/.ssh/other_repo_key\n"
        "    IdentityFile /home/ops/.ssh/github_deploy\n"
        "    IdentitiesOnly yes\n"
        "    User git\n"
    )
    conf = SSHClientConfig.parse(text)
    assert conf.upsert(github_stanza("/home/ops/.ssh/github_deploy")) is True
    rendered = conf.render()
    assert "other_repo_key" not in rendered
    assert rendered.count("IdentityFile") == 1
