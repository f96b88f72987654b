from __future__ import annotations

import json
from pathlib import Path

import pytest

from mcpswitch.cli import main as cli_main
from mcpswitch.settings import RuntimeSettings


def _events(settings: RuntimeSettings, event: str) -> list[dict[str, object]]:
    log_file = settings.log_dir / "telemetry.jsonl"
    if not log_file.exists():
        return []
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines() if line.strip()]
    return [record for record in records if record.get("event") == event]


@pytest.fixture()
def populated(live_config) -> Path:
    return live_config(
        {
            "mcpServers": {"filesystem": {"command": "npx"}, "github": {"command": "npx"}},
            "disabledMcpServers": {"brave-search": {"command": "npx"}},
            "globalShortcut": "Ctrl+Space",
        }
    )


def test_status_json(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli_main.main(["status", "--json"])
    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["enabled"] == ["filesystem", "github"]
    assert payload["disabled"] == ["brave-search"]
    assert payload["config_path"] == str(populated)


def test_status_text_lists_buckets(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main.main(["status"]) == 0
    out = capsys.readouterr().out
    assert "1. [ENABLED] filesystem" in out
    assert "3. [DISABLED] brave-search" in out


def test_toggle_records_telemetry(
    populated: Path,
    runtime_settings: RuntimeSettings,
    capsys: pytest.CaptureFixture[str],
) -> None:
    exit_code = cli_main.main(["toggle", "github", "--json"])
    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {"status": "ok", "name": "github", "state": "disabled"}
    payload = json.loads(populated.read_text(encoding="utf-8"))
    assert "github" in payload["disabledMcpServers"]
    assert payload["globalShortcut"] == "Ctrl+Space"

    events = _events(runtime_settings, "config.toggle")
    assert events[0]["status"] == "start"
    assert events[-1]["status"] == "success"


def test_toggle_unknown_name_fails(
    populated: Path,
    runtime_settings: RuntimeSettings,
    capsys: pytest.CaptureFixture[str],
) -> None:
    before = populated.read_bytes()
    exit_code = cli_main.main(["toggle", "ghost"])
    assert exit_code == 1
    assert "unknown MCP server 'ghost'" in capsys.readouterr().err
    assert populated.read_bytes() == before
    assert _events(runtime_settings, "config.toggle")[-1]["level"] == "error"


def test_enable_all(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main.main(["enable-all"]) == 0
    assert "All MCPs enabled (3 total)" in capsys.readouterr().out
    payload = json.loads(populated.read_text(encoding="utf-8"))
    assert payload["disabledMcpServers"] == {}


@pytest.mark.parametrize(
    ("tokens", "enabled"),
    [
        (["all"], ["brave-search", "filesystem", "github"]),
        (["r"], ["filesystem"]),
        (["1,3"], ["brave-search", "github"]),
        (["github"], ["github"]),
    ],
)
def test_select_tokens(populated: Path, capsys: pytest.CaptureFixture[str], tokens: list[str], enabled: list[str]) -> None:
    assert cli_main.main(["select", *tokens, "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert sorted(payload["enabled"]) == enabled


def test_select_warns_about_unknown(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main.main(["select", "github,ghost,9"]) == 0
    captured = capsys.readouterr()
    assert "unknown MCP server 'ghost' ignored" in captured.err
    assert "unknown MCP server '9' ignored" in captured.err
    assert "Enabled 1 MCPs, disabled 2 MCPs" in captured.out


def test_resolve_selection() -> None:
    names = ["a", "b", "c"]
    assert cli_main.resolve_selection(["ALL"], names, []) == names
    assert cli_main.resolve_selection(["r"], names, ["b"]) == ["b"]
    assert cli_main.resolve_selection(["1, 3", "b"], names, []) == ["a", "c", "b"]
    assert cli_main.resolve_selection(["0,4"], names, []) == ["0", "4"]


def test_preset_flow(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main.main(["preset", "save", "work"]) == 0
    assert cli_main.main(["toggle", "filesystem"]) == 0
    assert cli_main.main(["preset", "list", "--json"]) == 0
    capsys.readouterr()

    assert cli_main.main(["preset", "load", "work", "--smart"]) == 0
    out = capsys.readouterr().out
    assert "Smart-loaded preset with 2 enabled and 1 disabled MCPs" in out
    payload = json.loads(populated.read_text(encoding="utf-8"))
    assert sorted(payload["mcpServers"]) == ["filesystem", "github"]

    assert cli_main.main(["preset", "delete", "work"]) == 0
    assert cli_main.main(["preset", "load", "work"]) == 1
    assert "preset 'work' not found" in capsys.readouterr().err


def test_backup_flow(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    original = populated.read_bytes()
    assert cli_main.main(["backup", "create"]) == 0
    assert cli_main.main(["toggle", "github"]) == 0
    capsys.readouterr()

    assert cli_main.main(["backup", "list", "--json"]) == 0
    backups = json.loads(capsys.readouterr().out)["backups"]
    assert len(backups) == 1

    assert cli_main.main(["backup", "restore", "1"]) == 0
    assert populated.read_bytes() == original
    assert "Restored from: " + backups[0] in capsys.readouterr().out

    assert cli_main.main(["backup", "purge"]) == 1
    assert cli_main.main(["backup", "purge", "--yes"]) == 0
    assert "Deleted 1 backups" in capsys.readouterr().out


def test_check_repair(runtime_settings: RuntimeSettings, capsys: pytest.CaptureFixture[str]) -> None:
    path = runtime_settings.config_path
    path.write_text('{"mcpServers": {"a": {"command": "x"},},}', encoding="utf-8")

    assert cli_main.main(["check"]) == 1
    assert "JSON syntax error" in capsys.readouterr().err

    assert cli_main.main(["check", "--repair", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["repair"] == {"status": "repaired"}
    assert payload["report"]["valid_json"] is True
    assert json.loads(path.read_text(encoding="utf-8")) == {"mcpServers": {"a": {"command": "x"}}}


def test_check_fix_structure(live_config, capsys: pytest.CaptureFixture[str]) -> None:
    path = live_config({"disabledMcpServers": "oops"})
    assert cli_main.main(["check", "--fix"]) == 0
    out = capsys.readouterr().out
    assert "Missing mcpServers" in out
    assert "Config fixed" in out
    assert json.loads(path.read_text(encoding="utf-8")) == {"disabledMcpServers": {}, "mcpServers": {}}


def test_parse_failure_prints_diagnostic(runtime_settings: RuntimeSettings, capsys: pytest.CaptureFixture[str]) -> None:
    runtime_settings.config_path.write_text('{"mcpServers": {"a": 1', encoding="utf-8")
    assert cli_main.main(["status"]) == 1
    err = capsys.readouterr().err
    assert "config status failed: config is not valid JSON" in err
    assert "check --repair" in err


def test_explicit_config_flag(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = tmp_path / "other" / "config.json"
    config.parent.mkdir()
    config.write_text(json.dumps({"mcpServers": {"solo": {}}}), encoding="utf-8")
    assert cli_main.main(["--config", str(config), "toggle", "solo"]) == 0
    assert (config.parent / "config-backups" / "config-latest-backup.json").exists()
    assert "Disabled: solo" in capsys.readouterr().out


def test_telemetry_report_and_clear(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cli_main.main(["status"])
    capsys.readouterr()
    assert cli_main.main(["telemetry", "report"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["by_event"]["config.status"] == 2
    assert cli_main.main(["telemetry", "clear"]) == 0
    assert "telemetry log cleared" in capsys.readouterr().out


def test_malformed_preset_reports_preset_text(
    populated: Path,
    runtime_settings: RuntimeSettings,
    capsys: pytest.CaptureFixture[str],
) -> None:
    before = populated.read_bytes()
    runtime_settings.preset_dir.mkdir(parents=True)
    (runtime_settings.preset_dir / "bad.json").write_text('{"mcpServers": {,}}', encoding="utf-8")

    assert cli_main.main(["preset", "load", "bad"]) == 1
    err = capsys.readouterr().err
    assert "preset load failed: preset 'bad' is not valid JSON" in err
    assert '| {"mcpServers": {,}}' in err
    assert "filesystem" not in err
    assert "check --repair" not in err
    assert populated.read_bytes() == before


def test_toggle_refuses_mistyped_bucket(live_config, capsys: pytest.CaptureFixture[str]) -> None:
    path = live_config({"mcpServers": {"a": {}}, "disabledMcpServers": ["keep-me"]})
    before = path.read_bytes()
    assert cli_main.main(["toggle", "a"]) == 1
    assert "check --fix" in capsys.readouterr().err
    assert path.read_bytes() == before


def test_telemetry_report_ignores_non_positive_recent(populated: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_main.main(["status"]) == 0
    capsys.readouterr()
    assert cli_main.main(["telemetry", "report", "--recent", "-2"]) == 0
    assert json.loads(capsys.readouterr().out)["total"] == 2
    assert cli_main.main(["telemetry", "report", "--recent", "1"]) == 0
    assert json.loads(capsys.readouterr().out)["total"] == 1


def test_malformed_settings_file_exits_cleanly(
    populated: Path,
    runtime_settings: RuntimeSettings,
    capsys: pytest.CaptureFixture[str],
) -> None:
    settings_file = runtime_settings.log_dir.parent / "settings.yaml"
    settings_file.write_text("recommended: [unclosed\n", encoding="utf-8")
    assert cli_main.main(["status"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("mcpswitch: invalid settings: ")
    assert len(err.strip().splitlines()) == 1

    settings_file.write_text("- just\n- a list\n", encoding="utf-8")
    assert cli_main.main(["status"]) == 1
    assert "must contain a mapping" in capsys.readouterr().err
