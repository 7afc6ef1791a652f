"""Tests for the ktn-bridge command line."""

import json

import pytest

from ktn_bridge.__main__ import main


LISTENER = "document.addEventListener('DOMContentLoaded', init);\n"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("KTN_BRIDGE_CONFIG", "KTN_BRIDGE_TARGET_MODE", "KTN_BRIDGE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


class TestTransformCommand:
    def test_stdout(self, tmp_path, capsys):
        source = tmp_path / "app.js"
        source.write_text(LISTENER, encoding="utf-8")
        assert main(["transform", str(source)]) == 0
        assert "kintone.events.on('app.record.index.show'" in capsys.readouterr().out

    def test_out_dir_with_source_map(self, tmp_path):
        source = tmp_path / "app.js"
        source.write_text(LISTENER, encoding="utf-8")
        out_dir = tmp_path / "dist"

        assert main(["transform", str(source), "-o", str(out_dir), "--source-map"]) == 0

        code = (out_dir / "app.js").read_text(encoding="utf-8")
        assert code.endswith("//# sourceMappingURL=app.js.map\n")
        source_map = json.loads((out_dir / "app.js.map").read_text(encoding="utf-8"))
        assert source_map["version"] == 3

    def test_development_mode(self, tmp_path):
        source = tmp_path / "app.js"
        source.write_text(LISTENER, encoding="utf-8")
        out_dir = tmp_path / "dist"
        assert main(["transform", str(source), "-o", str(out_dir), "--mode", "development"]) == 0
        assert (out_dir / "app.js").read_text(encoding="utf-8") == LISTENER

    def test_report(self, tmp_path):
        source = tmp_path / "app.js"
        source.write_text(LISTENER, encoding="utf-8")
        report = tmp_path / "report.txt"
        main(["transform", str(source), "-o", str(tmp_path / "dist"), "--report", str(report)])
        assert "Diagnostic Report" in report.read_text(encoding="utf-8")

    def test_parse_failure_exit_code(self, tmp_path):
        broken = tmp_path / "broken.js"
        broken.write_text("function (\n", encoding="utf-8")
        good = tmp_path / "good.js"
        good.write_text(LISTENER, encoding="utf-8")
        out_dir = tmp_path / "dist"

        assert main(["transform", str(broken), str(good), "-o", str(out_dir)]) == 1
        assert (out_dir / "good.js").exists()
        assert not (out_dir / "broken.js").exists()

    def test_missing_file(self, tmp_path):
        assert main(["transform", str(tmp_path / "nope.js")]) == 1


class TestMappingsCommand:
    def test_lists_everything(self, capsys):
        assert main(["mappings"]) == 0
        out = capsys.readouterr().out
        assert "Event mappings:" in out
        assert "app.record.index.show" in out
        assert "API mappings:" in out
        assert "/k/v1/records.json [records.get]" in out

    def test_events_only(self, capsys):
        main(["mappings", "--kind", "events"])
        out = capsys.readouterr().out
        assert "API mappings:" not in out
