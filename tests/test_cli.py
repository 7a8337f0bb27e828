from __future__ import annotations

import json

import pytest
from pydantic import ValidationError
from typer.testing import CliRunner

import trace_topology.__main__ as cli_main
from trace_topology.__main__ import app, build_call_context
from trace_topology.config import Settings, get_settings
from trace_topology.models.enums import Layer

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SERVICE_NAME_MAX_LENGTH", raising=False)
    monkeypatch.delenv("NAMING_STRICT", raising=False)
    monkeypatch.delenv("DEFAULT_LAYER", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _call_line(**overrides) -> str:
    call = {
        "source_service_name": "frontend",
        "source_service_instance_name": "f-1",
        "source_endpoint_name": "/checkout",
        "dest_service_name": "orders",
        "dest_service_instance_name": "i-1",
        "dest_endpoint_name": "/createOrder",
        "type": "RPC",
        "status": True,
        "latency": 42,
        "time_bucket": 20240101120000,
        "tag_pairs": [{"key": "http.method", "value": "GET"}],
    }
    call.update(overrides)
    return json.dumps(call)


def _records(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def test_build_call_context_applies_default_layer_and_tags():
    ctx = build_call_context(json.loads(_call_line()), Settings(DEFAULT_LAYER=Layer.MESH))
    assert ctx.source_layer is Layer.MESH
    assert ctx.dest_layer is Layer.MESH
    assert ctx.tags == ["http.method:GET"]
    assert ctx.original_tags == {"http.method": "GET"}


def test_project_writes_one_line_per_emitted_record(tmp_path):
    src = tmp_path / "calls.jsonl"
    src.write_text(_call_line() + "\n\n" + _call_line(type="DATABASE") + "\n", encoding="utf-8")
    result = runner.invoke(app, ["project", str(src)])
    assert result.exit_code == 0, result.output
    records = _records(result.output)
    # first call: 8 records (no database access), second call: all 9
    assert len(records) == 17
    scopes = [r["scope"] for r in records]
    assert scopes.count("DATABASE_ACCESS") == 1
    service = next(r for r in records if r["scope"] == "SERVICE")
    assert service["record"]["layer"] == "GENERAL"
    assert service["entity_id"] == "b3JkZXJz.1"
    assert "Projected 2 call(s) into 17 record(s)" in result.output


def test_project_skips_malformed_lines(tmp_path):
    src = tmp_path / "calls.jsonl"
    src.write_text("not json\n" + '{"latency": "fast"}\n' + _call_line() + "\n", encoding="utf-8")
    result = runner.invoke(app, ["project", str(src)])
    assert result.exit_code == 0, result.output
    assert len(_records(result.output)) == 8
    assert "skipped=2" in result.output


def test_project_fail_fast_on_invalid_name(tmp_path, monkeypatch):
    monkeypatch.setenv("NAMING_STRICT", "true")
    monkeypatch.setenv("SERVICE_NAME_MAX_LENGTH", "3")
    src = tmp_path / "calls.jsonl"
    src.write_text(_call_line() + "\n", encoding="utf-8")
    result = runner.invoke(app, ["project", str(src), "--fail-fast"])
    assert result.exit_code == 1
    assert _records(result.output) == []


def test_project_output_file(tmp_path):
    src = tmp_path / "calls.jsonl"
    src.write_text(_call_line(source_service_instance_name="") + "\n", encoding="utf-8")
    out = tmp_path / "records.jsonl"
    result = runner.invoke(app, ["project", str(src), "--output", str(out)])
    assert result.exit_code == 0, result.output
    records = _records(out.read_text(encoding="utf-8"))
    assert len(records) == 7
    assert "SERVICE_INSTANCE_RELATION" not in {r["scope"] for r in records}


def test_build_call_context_rejects_raw_tag_fields():
    raw = json.loads(_call_line(tags=["x:1"], original_tags={"y": "2"}))
    with pytest.raises(ValidationError, match="cannot be set directly"):
        build_call_context(raw, Settings())


def test_project_skips_lines_that_set_tag_fields(tmp_path):
    src = tmp_path / "calls.jsonl"
    src.write_text(
        _call_line(tags=["x:1"]) + "\n" + _call_line(original_tags={"y": "2"}) + "\n",
        encoding="utf-8",
    )
    result = runner.invoke(app, ["project", str(src)])
    assert result.exit_code == 0, result.output
    assert _records(result.output) == []
    assert "skipped=2" in result.output


def test_project_closes_input_when_output_cannot_be_opened(tmp_path, monkeypatch):
    src = tmp_path / "calls.jsonl"
    src.write_text(_call_line() + "\n", encoding="utf-8")
    opened = []
    real_open = open

    def tracking_open(*args, **kwargs):
        handle = real_open(*args, **kwargs)
        opened.append(handle)
        return handle

    monkeypatch.setattr(cli_main, "open", tracking_open, raising=False)
    missing = tmp_path / "missing" / "records.jsonl"
    result = runner.invoke(app, ["project", str(src), "--output", str(missing)])
    assert isinstance(result.exception, FileNotFoundError)
    assert len(opened) == 1
    assert opened[0].closed
