import json
from datetime import datetime
from types import SimpleNamespace

import pytest

from tasksync import api
from tasksync.errors import TaskSyncError

TEST_USER_ID = "test-user-123"


def _build_request(store_root):
    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(store_path=store_root)),
        state=SimpleNamespace(user_id=TEST_USER_ID),
    )


def _read_activity_entries(store_root):
    log_path = store_root / "users" / "testuser123" / api.ACTIVITY_LOG_FILENAME
    assert log_path.exists()
    return [
        json.loads(line)
        for line in log_path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def _assert_activity_entry(entry, operation, commit_sha, summary):
    assert entry["operation"] == operation
    assert entry["path"] == "notes.json"
    assert entry["commitSha"] == commit_sha
    assert entry["summary"] == summary
    datetime.fromisoformat(entry["timestamp"])


def test_sync_task_appends_activity_entry(tmp_path):
    api.init_task_tree({}, _build_request(tmp_path))
    created = api.create_task({"title": "Log me"}, _build_request(tmp_path))
    note_id = created["data"]["task"]["noteId"]
    api.set_attribute(
        {"noteId": note_id, "name": "tag", "value": "work"}, _build_request(tmp_path)
    )

    entries = _read_activity_entries(tmp_path)

    _assert_activity_entry(
        entries[1], "create_task", created["data"]["commitSha"], f"create task {note_id}"
    )
    assert entries[2]["operation"] == "set_attribute"
    assert entries[2]["summary"] == f"set tag on {note_id}"


def test_read_only_tools_do_not_log(tmp_path):
    api.init_task_tree({}, _build_request(tmp_path))
    api.task_alerts({}, _build_request(tmp_path))
    api.event_alerts({}, _build_request(tmp_path))

    entries = _read_activity_entries(tmp_path)

    assert [entry["operation"] for entry in entries] == ["init_task_tree"]


def test_read_activity_log_applies_limit_and_since(tmp_path):
    api.init_task_tree({}, _build_request(tmp_path))
    api.create_task({"title": "One"}, _build_request(tmp_path))
    api.create_task({"title": "Two"}, _build_request(tmp_path))

    limited = api.read_activity_log({"limit": 1}, _build_request(tmp_path))
    future = api.read_activity_log(
        {"since": "2999-01-01T00:00:00+00:00"}, _build_request(tmp_path)
    )

    assert len(limited["data"]["entries"]) == 1
    assert limited["data"]["entries"][0]["operation"] == "create_task"
    assert future["data"]["entries"] == []


def test_read_activity_log_rejects_bad_limit(tmp_path):
    with pytest.raises(TaskSyncError) as excinfo:
        api.read_activity_log({"limit": 0}, _build_request(tmp_path))

    assert excinfo.value.code == "INVALID_TYPE"
