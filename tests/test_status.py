"""Tests for the persisted scan status."""

from __future__ import annotations

import json

from jdowser.scan.status import INDETERMINATE, NOT_SET, ScanState, ScanStatus, StatusStore


def _store(tmp_path):
    return StatusStore(str(tmp_path / "jdowser.status"), str(tmp_path / "jdowser.err"), "host1")


class TestStatusStore:
    def test_new_status(self, tmp_path):
        status = _store(tmp_path).new(["--root", "/"])
        assert status.state is ScanState.UNKNOWN
        assert status.start_time == NOT_SET
        assert status.end_time == NOT_SET
        assert status.args == ["--root", "/"]
        assert status.host == "host1"

    def test_running_round_trip(self, tmp_path):
        store = _store(tmp_path)
        status = store.new()
        store.set_state(status, ScanState.RUNNING)

        restored = _store(tmp_path).read()
        assert restored.state is ScanState.RUNNING
        assert restored.start_time == status.start_time
        assert restored.start_time > 0
        assert restored.end_time == NOT_SET

    def test_finished_sets_end_time(self, tmp_path):
        store = _store(tmp_path)
        status = store.new()
        store.set_state(status, ScanState.RUNNING)
        store.set_state(status, ScanState.FINISHED)
        restored = store.read()
        assert restored.state is ScanState.FINISHED
        assert restored.end_time >= restored.start_time

    def test_terminated_sets_end_time(self, tmp_path):
        store = _store(tmp_path)
        status = store.new()
        store.set_state(status, ScanState.TERMINATED)
        assert store.read().end_time > 0

    def test_unknown_is_indeterminate(self, tmp_path):
        store = _store(tmp_path)
        status = store.new()
        store.set_state(status, ScanState.RUNNING)
        store.set_state(status, ScanState.UNKNOWN)
        assert store.read().end_time == INDETERMINATE

    def test_error_keeps_end_time(self, tmp_path):
        store = _store(tmp_path)
        status = store.new()
        store.set_state(status, ScanState.RUNNING)
        store.set_state(status, ScanState.ERROR)
        restored = store.read()
        assert restored.state is ScanState.ERROR
        assert restored.end_time == NOT_SET

    def test_errors_merged_from_error_file(self, tmp_path):
        store = _store(tmp_path)
        store.set_state(store.new(), ScanState.ERROR)
        (tmp_path / "jdowser.err").write_text("scan root /nope is not a directory\n\n  \n")
        assert store.read().errors == ["scan root /nope is not a directory"]

    def test_errors_not_written_to_status_file(self, tmp_path):
        store = _store(tmp_path)
        (tmp_path / "jdowser.err").write_text("boom\n")
        status = store.read() or store.new()
        status.errors.append("boom")
        store.set_state(status, ScanState.ERROR)
        assert "error" not in json.loads((tmp_path / "jdowser.status").read_text())
        assert store.read().errors == ["boom"]

    def test_missing_file(self, tmp_path):
        assert _store(tmp_path).read() is None

    def test_invalid_file(self, tmp_path):
        (tmp_path / "jdowser.status").write_text("{not json")
        assert _store(tmp_path).read() is None

    def test_non_object_file(self, tmp_path):
        for content in ("[]", "42", '"Running"', "null"):
            (tmp_path / "jdowser.status").write_text(content)
            assert _store(tmp_path).read() is None

    def test_current_without_status_file(self, tmp_path):
        (tmp_path / "jdowser.err").write_text("cannot open scan lock\n")
        status = _store(tmp_path).current()
        assert status.state is ScanState.UNKNOWN
        assert status.host == "host1"
        assert status.errors == ["cannot open scan lock"]

    def test_current_does_not_merge_twice(self, tmp_path):
        store = _store(tmp_path)
        store.set_state(store.new(), ScanState.RUNNING)
        (tmp_path / "jdowser.err").write_text("boom\n")
        assert store.current().errors == ["boom"]

    def test_no_temp_files_left(self, tmp_path):
        store = _store(tmp_path)
        store.set_state(store.new(), ScanState.RUNNING)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["jdowser.status"]


class TestScanStatus:
    def test_to_dict_omits_empty_error(self):
        data = ScanStatus(host="h").to_dict()
        assert "error" not in data
        assert data["state"] == "Unknown"

    def test_from_dict(self):
        status = ScanStatus.from_dict(
            {"host": "h", "state": "Finished", "start_time": 10, "end_time": 20, "args": ["-x"]}
        )
        assert status.state is ScanState.FINISHED
        assert (status.start_time, status.end_time) == (10, 20)
