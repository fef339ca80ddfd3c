"""
Tests for the command-line interface.
"""

import json
import subprocess
import sys

import pytest

from toolcrib.cli.export import main
from toolcrib.io.loaders import load_aggregate_json
from toolcrib.io.package import read_tools_zip


class TestCLIEntryPoints:
    """Test that the CLI entry point defined in pyproject.toml is importable."""

    def test_entry_point_importable(self):
        """The console script target exists and is callable."""
        from toolcrib.cli.export import main as entry
        assert callable(entry)

    def test_entry_point_via_subprocess(self):
        """Test entry point works when invoked as module."""
        result = subprocess.run(
            [sys.executable, "-m", "toolcrib.cli.export", "--help"],
            capture_output=True,
            text=True
        )
        assert result.returncode == 0
        assert "usage" in result.stdout.lower()


class TestCLIExport:
    """Exporting an aggregate file."""

    def test_writes_tools_file(self, shop_a_file, tmp_path, capsys):
        out = tmp_path / "out"
        assert main([str(shop_a_file), "-o", str(out)]) == 0

        data = read_tools_zip((out / "Shop-A.tools").read_bytes())
        assert len(data["data"]) == 2
        stdout = capsys.readouterr().out
        assert "Tool Library: Shop-A" in stdout
        assert "T200" in stdout and "T100" in stdout

    def test_check_writes_nothing(self, shop_a_file, tmp_path):
        out = tmp_path / "out"
        assert main([str(shop_a_file), "-o", str(out), "--check"]) == 0
        assert not out.exists()

    def test_json_option(self, shop_a_file, tmp_path):
        out = tmp_path / "out"
        assert main([str(shop_a_file), "-o", str(out), "--json"]) == 0
        assert json.loads((out / "Shop-A.json").read_text())["version"] == 36

    def test_report_option(self, shop_a_file, tmp_path):
        report = tmp_path / "report.json"
        assert main([str(shop_a_file), "--check", "--report", str(report)]) == 0

        data = json.loads(report.read_text())
        assert data["library"] == "Shop-A"
        assert data["valid"] is True
        assert data["tool_count"] == 2

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nonexistent.json")]) == 1
        assert "Error loading library" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path):
        invalid_file = tmp_path / "invalid.json"
        invalid_file.write_text("not valid json {")
        assert main([str(invalid_file)]) == 1

    def test_validation_failure_lists_problems(self, shop_a_data, tmp_path, capsys):
        shop_a_data["library"]["library_tools"] = [
            {"tool_id": "em-10", "tool_number": 205},
            {"tool_id": "em-10", "tool_number": 205},
        ]
        shop_a_data["machine"] = None
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(shop_a_data))
        out = tmp_path / "out"

        assert main([str(path), "-o", str(out)]) == 2

        captured = capsys.readouterr()
        assert "NO_MACHINE" not in captured.out
        assert "no machine" in captured.out
        assert "205" in captured.out
        assert "nothing written" in captured.err
        assert not out.exists()

    def test_post_process_unknown_key_rejected(self, shop_a_data, tmp_path):
        shop_a_data["library"]["library_tools"][0]["post_process"] = {"spindle": "ccw"}
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(shop_a_data))
        assert main([str(path)]) == 1


class TestCLILibraryDirectory:
    """Exporting through the file-backed repository."""

    def test_export_records_bookkeeping(self, shop_a_file, tmp_path, capsys):
        out = tmp_path / "out"
        argv = ["--library-dir", str(shop_a_file.parent), "--library-id", "shop-a", "-o", str(out)]

        assert main(argv) == 0
        assert main(argv) == 0

        assert (out / "Shop-A.tools").exists()
        assert load_aggregate_json(shop_a_file).library.export_count == 2
        assert "export #2" in capsys.readouterr().out

    def test_unknown_library_id(self, tmp_path, capsys):
        argv = ["--library-dir", str(tmp_path), "--library-id", "nope"]
        assert main(argv) == 1
        assert "Library not found" in capsys.readouterr().err

    def test_validation_failure(self, shop_a_data, tmp_path, capsys):
        shop_a_data["library"]["library_tools"] = []
        (tmp_path / "shop-a.json").write_text(json.dumps(shop_a_data))

        argv = ["--library-dir", str(tmp_path), "--library-id", "shop-a"]
        assert main(argv) == 2
        assert "Library has no tools" in capsys.readouterr().err

    def test_library_id_requires_dir(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["--library-id", "shop-a"])
        assert excinfo.value.code == 2

    def test_no_input_is_usage_error(self):
        with pytest.raises(SystemExit):
            main([])

    def test_check_records_nothing(self, shop_a_file, tmp_path, capsys):
        out = tmp_path / "out"
        argv = ["--library-dir", str(shop_a_file.parent), "--library-id", "shop-a",
                "-o", str(out), "--check"]

        assert main(argv) == 0

        assert not out.exists()
        assert load_aggregate_json(shop_a_file).library.export_count == 0
        assert "Tool Library: Shop-A" in capsys.readouterr().out

    def test_check_validation_failure(self, shop_a_data, tmp_path, capsys):
        shop_a_data["machine"] = None
        (tmp_path / "shop-a.json").write_text(json.dumps(shop_a_data))

        argv = ["--library-dir", str(tmp_path), "--library-id", "shop-a", "--check"]
        assert main(argv) == 2
        assert "error(s)" in capsys.readouterr().err

    def test_json_and_report_options(self, shop_a_file, tmp_path):
        out = tmp_path / "out"
        report = tmp_path / "report.json"
        argv = ["--library-dir", str(shop_a_file.parent), "--library-id", "shop-a",
                "-o", str(out), "--json", "--report", str(report)]

        assert main(argv) == 0

        tools_json = json.loads((out / "Shop-A.json").read_text())
        assert tools_json == read_tools_zip((out / "Shop-A.tools").read_bytes())
        data = json.loads(report.read_text())
        assert data["library"] == "Shop-A"
        assert data["valid"] is True

    def test_report_written_on_failure(self, shop_a_data, tmp_path):
        shop_a_data["library"]["library_tools"] = []
        (tmp_path / "shop-a.json").write_text(json.dumps(shop_a_data))
        report = tmp_path / "report.json"

        argv = ["--library-dir", str(tmp_path), "--library-id", "shop-a",
                "--report", str(report)]
        assert main(argv) == 2

        data = json.loads(report.read_text())
        assert data["valid"] is False
        assert data["messages"][0]["code"] == "LIBRARY_EMPTY"

    def test_unsafe_library_id(self, shop_a_file, tmp_path, capsys):
        inner = tmp_path / "libraries"
        inner.mkdir()
        argv = ["--library-dir", str(inner), "--library-id", "../shop-a", "-o", str(tmp_path / "out")]

        assert main(argv) == 1
        assert "Invalid library id" in capsys.readouterr().err
        assert load_aggregate_json(shop_a_file).library.export_count == 0

    def test_file_and_directory_conflict(self, shop_a_file, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main([str(shop_a_file), "--library-dir", str(tmp_path), "--library-id", "shop-a"])
        assert excinfo.value.code == 2
