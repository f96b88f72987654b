from __future__ import annotations

import jsonschema
import pytest

from mcpswitch.settings import RuntimeSettings
from mcpswitch.utils import telemetry


def test_records_are_appended_and_summarized(runtime_settings: RuntimeSettings) -> None:
    telemetry.record_structured_event(runtime_settings, "config.toggle", status="start", component="config")
    telemetry.record_structured_event(
        runtime_settings,
        "config.toggle",
        status="success",
        component="config",
        duration_ms=1.5,
        payload={"name": "alpha"},
    )
    events = list(telemetry.iter_events(runtime_settings))
    assert [event["status"] for event in events] == ["start", "success"]
    assert events[1]["durationMs"] == 1.5
    summary = telemetry.summarize(events)
    assert summary == {"total": 2, "by_event": {"config.toggle": 2}, "by_status": {"start": 1, "success": 1}}


def test_iter_events_skips_garbage_lines(runtime_settings: RuntimeSettings) -> None:
    path = telemetry.log_path(runtime_settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('not json\n\n{"event": "x"}\n', encoding="utf-8")
    assert list(telemetry.iter_events(runtime_settings)) == [{"event": "x"}]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"event": " "},
        {"event": "Config Toggle"},
        {"event": "config.toggle", "level": "debug"},
        {"event": "config.toggle", "duration_ms": -1},
        {"event": "config.toggle", "status": "pending"},
        {"event": "config.toggle", "component": "server"},
    ],
)
def test_invalid_records_are_rejected(runtime_settings: RuntimeSettings, kwargs: dict[str, object]) -> None:
    with pytest.raises(jsonschema.ValidationError):
        telemetry.record_structured_event(runtime_settings, **kwargs)  # type: ignore[arg-type]
    assert not telemetry.log_path(runtime_settings).exists()


def test_schema_rejects_wrong_field_types(runtime_settings: RuntimeSettings) -> None:
    with pytest.raises(jsonschema.ValidationError):
        telemetry.record_structured_event(runtime_settings, "x", correlation_id=5)  # type: ignore[arg-type]


def test_disabled_by_environment(runtime_settings: RuntimeSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCPSWITCH_TELEMETRY", "off")
    telemetry.record_structured_event(runtime_settings, "config.status")
    assert not telemetry.log_path(runtime_settings).exists()
    assert telemetry.clear(runtime_settings) is False
