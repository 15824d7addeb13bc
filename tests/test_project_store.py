import json

import pytest

from prototype_engine.models import ProjectData
from prototype_engine.storage.kv_store import FileKeyValueStore
from prototype_engine.storage.migrations import CURRENT_DATA_VERSION
from prototype_engine.storage.project_store import ProjectNotFound, ProjectStore


KEY = "big-elephant-projects"


def _data(name="Bakery"):
    return ProjectData(name=name, core_prompt="A bakery site")


def _stored(kv):
    return json.loads(kv.get(KEY))


def test_empty_store_loads_cleanly(kv):
    store = ProjectStore(kv)
    assert store.list() == []
    assert store.load_result.error_occurred is False
    assert store.allow_saving is True


def test_legacy_array_is_migrated_on_load(kv):
    kv.set(KEY, json.dumps([{
        "id": "proj-1",
        "name": "Legacy",
        "last_modified": "1/2/2024",
        "core_prompt": "Old project",
        "generated_code": [{"name": "index.html", "content": "<html></html>"}],
        "chat_history": [{"role": "user", "text": "hi"}],
    }]))

    store = ProjectStore(kv)

    project = store.get("proj-1")
    assert project.tasks == []
    assert project.theme == "Material Design"
    assert project.file_named("index.html") is not None


def test_corrupt_data_is_backed_up_and_not_overwritten(kv):
    kv.set(KEY, "{definitely not json")

    store = ProjectStore(kv)

    assert store.list() == []
    assert store.load_result.error_occurred is True
    backup_key = store.load_result.backup_key
    assert backup_key.startswith(f"{KEY}-backup-")
    assert kv.get(backup_key) == "{definitely not json"
    assert kv.get(KEY) is None

    assert store.allow_saving is False
    assert store.save() is False
    assert kv.get(KEY) is None


def test_invalid_record_is_quarantined(kv):
    kv.set(KEY, json.dumps({"version": 3, "projects": [{"id": "proj-1"}]}))

    store = ProjectStore(kv)

    assert store.load_result.error_occurred is True
    assert store.list_backups() == [store.load_result.backup_key]


def test_newer_data_version_is_quarantined(kv):
    raw = json.dumps({"version": CURRENT_DATA_VERSION + 1, "projects": []})
    kv.set(KEY, raw)

    store = ProjectStore(kv)

    assert store.load_result.error_occurred is True
    assert store.get_backup(store.load_result.backup_key) == raw


def test_create_after_failed_load_reenables_saving(kv):
    kv.set(KEY, "[broken")
    store = ProjectStore(kv)

    project = store.create(_data())

    assert store.allow_saving is True
    stored = _stored(kv)
    assert stored["version"] == CURRENT_DATA_VERSION
    assert [p["id"] for p in stored["projects"]] == [project.id]


def test_create_assigns_unique_ids(kv):
    store = ProjectStore(kv)
    first = store.create(_data("One"))
    second = store.create(_data("Two"))

    assert first.id.startswith("proj-")
    assert first.id != second.id
    assert first.last_modified


def test_rename_trims_and_persists(kv):
    store = ProjectStore(kv)
    project = store.create(_data())

    renamed = store.rename(project.id, "  Patisserie  ")

    assert renamed.name == "Patisserie"
    assert ProjectStore(kv).get(project.id).name == "Patisserie"


def test_rename_rejects_blank_name(kv):
    store = ProjectStore(kv)
    project = store.create(_data())
    with pytest.raises(ValueError):
        store.rename(project.id, "   ")


def test_delete_last_project_after_failed_load_saves_empty_state(kv):
    kv.set(KEY, "[broken")
    store = ProjectStore(kv)
    project = store.create(_data())
    store.allow_saving = False

    store.delete(project.id)

    assert store.allow_saving is True
    assert _stored(kv)["projects"] == []


def test_missing_project_raises(kv):
    store = ProjectStore(kv)
    with pytest.raises(ProjectNotFound):
        store.get("proj-404")
    with pytest.raises(ProjectNotFound):
        store.delete("proj-404")


def test_get_backup_only_reads_backup_keys(kv):
    store = ProjectStore(kv)
    store.create(_data())
    assert store.get_backup(KEY) is None


def test_file_store_round_trip(tmp_path):
    path = tmp_path / "storage.json"
    store = ProjectStore(FileKeyValueStore(str(path)))
    project = store.create(_data())

    reloaded = ProjectStore(FileKeyValueStore(str(path)))

    assert reloaded.get(project.id).core_prompt == "A bakery site"
    assert KEY in json.loads(path.read_text(encoding="utf-8"))


def test_unknown_fields_survive_load_and_save(kv):
    kv.set(KEY, json.dumps([{
        "id": "proj-1",
        "name": "Legacy",
        "last_modified": "1/2/2024",
        "core_prompt": "Old project",
        "generated_code": [],
        "chat_history": [],
        "custom_note": "keep me",
    }]))
    store = ProjectStore(kv)

    store.create(_data())

    saved = {p["id"]: p for p in _stored(kv)["projects"]}
    assert saved["proj-1"]["custom_note"] == "keep me"
    assert saved["proj-1"]["tasks"] == []


def test_rename_keeps_unknown_fields(kv):
    kv.set(KEY, json.dumps({"version": 3, "projects": [{
        "id": "proj-1",
        "name": "Bakery",
        "last_modified": "2024-01-01T00:00:00+00:00",
        "core_prompt": "A bakery site",
        "custom_note": "keep me",
    }]}))

    ProjectStore(kv).rename("proj-1", "Patisserie")

    assert _stored(kv)["projects"][0]["custom_note"] == "keep me"
