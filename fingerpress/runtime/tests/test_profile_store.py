import json

from fingerpress.core.profile import ALL_PROFILE_KEYS, SAVED_FLAG_KEY
from fingerpress.runtime.profile_store import ProfileStore


def values(x=1.0):
    return {k: x for k in ALL_PROFILE_KEYS}


def test_missing_file_reads_as_nothing_saved(tmp_path):
    store = ProfileStore(tmp_path / "none" / "profile.json")
    assert store.has_saved() is False
    assert store.read() is None
    store.clear()
    assert not store.path.exists()


def test_write_read(tmp_path):
    store = ProfileStore(tmp_path / "cfg" / "profile.json")
    store.write(values(2.5))
    assert store.has_saved()
    got = store.read()
    assert got == values(2.5)

    raw = json.loads(store.path.read_text())
    assert raw[SAVED_FLAG_KEY] == 1
    assert len(raw) == 53


def test_unrelated_keys_survive_write_and_clear(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps({"Volume": 0.7}))
    store = ProfileStore(path)

    store.write(values())
    store.clear()

    assert json.loads(path.read_text()) == {"Volume": 0.7}
    assert store.read() is None


def test_unflagged_data_is_ignored(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(values()))
    assert ProfileStore(path).read() is None


def test_corrupt_file_is_treated_as_empty(tmp_path, caplog):
    path = tmp_path / "profile.json"
    path.write_text("{not json")
    store = ProfileStore(path)
    assert store.read() is None
    assert "unreadable profile store" in caplog.text

    path.write_text("[1, 2, 3]")
    assert store.has_saved() is False
