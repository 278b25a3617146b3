import asyncio
import json
import sys

from settings import Settings
from token_extractors import from_hosts_document, from_legacy_yaml_text
from token_probes import (
    FileProbe,
    SettingProbe,
    SubprocessProbe,
    TokenProbe,
    TokenSource,
    default_probes,
)


def _run(probe):
    return asyncio.run(probe.run())


def test_file_probe_reads_json(tmp_path):
    path = tmp_path / "hosts.json"
    path.write_text(json.dumps({"github.com": {"oauth_token": "  gho_json \n"}}))

    probe = FileProbe(TokenSource.COPILOT_HOSTS_JSON, path, from_hosts_document)
    assert _run(probe) == "gho_json"


def test_file_probe_reads_text(tmp_path):
    path = tmp_path / "hosts.yml"
    path.write_text("github.com:\n    oauth_token: gho_yaml\n")

    probe = FileProbe(TokenSource.GH_HOSTS_YAML, path, from_legacy_yaml_text, as_json=False)
    assert _run(probe) == "gho_yaml"


def test_file_probe_missing_file(tmp_path):
    probe = FileProbe(TokenSource.COPILOT_HOSTS_JSON, tmp_path / "nope.json", from_hosts_document)
    assert _run(probe) is None


def test_file_probe_malformed_json(tmp_path):
    path = tmp_path / "hosts.json"
    path.write_text("{not json")

    probe = FileProbe(TokenSource.COPILOT_HOSTS_JSON, path, from_hosts_document)
    assert _run(probe) is None


def test_file_probe_directory_instead_of_file(tmp_path):
    probe = FileProbe(TokenSource.COPILOT_HOSTS_JSON, tmp_path, from_hosts_document)
    assert _run(probe) is None


def test_subprocess_probe_first_line_trimmed():
    argv = [sys.executable, "-c", "print('  gho_cli  '); print('second line')"]
    probe = SubprocessProbe(TokenSource.GH_CLI, argv)
    assert _run(probe) == "gho_cli"


def test_subprocess_probe_missing_executable():
    probe = SubprocessProbe(TokenSource.GH_CLI, ["definitely-not-a-real-gh-binary", "auth", "token"])
    assert _run(probe) is None


def test_subprocess_probe_nonzero_exit():
    argv = [sys.executable, "-c", "import sys; print('gho_partial'); sys.exit(1)"]
    probe = SubprocessProbe(TokenSource.GH_CLI, argv)
    assert _run(probe) is None


def test_subprocess_probe_empty_output():
    probe = SubprocessProbe(TokenSource.GH_CLI, [sys.executable, "-c", "print('   ')"])
    assert _run(probe) is None


def test_subprocess_probe_timeout():
    argv = [sys.executable, "-c", "import time; time.sleep(30)"]
    probe = SubprocessProbe(TokenSource.GH_CLI, argv, timeout=0.5)
    assert _run(probe) is None


def test_setting_probe_trims():
    assert _run(SettingProbe(Settings(github_token="  ghp_manual \n"))) == "ghp_manual"
    assert _run(SettingProbe(Settings(github_token="   "))) is None
    assert _run(SettingProbe(Settings())) is None


def test_run_swallows_unexpected_errors():
    class Exploding(TokenProbe):
        async def probe(self):
            raise RuntimeError("boom")

    assert _run(Exploding(TokenSource.GH_CLI)) is None


def test_default_probes_order(tmp_path):
    probes = default_probes(Settings(github_token="x"), config_dir=tmp_path)

    assert [p.source for p in probes] == list(TokenSource)
    assert isinstance(probes[0], SubprocessProbe)
    assert probes[0].argv == ["gh", "auth", "token"]
    assert probes[1].path == tmp_path / "gh" / "hosts.yml"
    assert probes[1].as_json is False
    assert probes[2].path == tmp_path / "github-copilot" / "hosts.json"
    assert probes[3].path == tmp_path / "github-copilot" / "apps.json"
    assert probes[4].path == tmp_path / "github-copilot" / "oauth.json"
    assert isinstance(probes[5], SettingProbe)
