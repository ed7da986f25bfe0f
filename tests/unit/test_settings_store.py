"""
Unit tests for ConfigurationStore.
"""

import json
import logging
from unittest.mock import patch

import pytest

from justcall.core.exceptions import (
    DuplicateTargetError,
    PersistenceReadError,
    PersistenceWriteError,
    ValidationError,
)
from justcall.infrastructure.local.settings_store import ConfigurationStore
from justcall.models.enums import TargetType, Theme
from justcall.models.settings import AppSettings, Keybinds, Settings, Target


@pytest.fixture
def settings_path(tmp_path):
    """Path to a settings file inside a not-yet-existing directory."""
    return tmp_path / "JustCall" / "settings.json"


@pytest.fixture
def store(settings_path):
    """Store with defaults bound to a temporary path."""
    return ConfigurationStore.with_defaults(settings_path)


def _primary_ids(store):
    return [t.id for t in store.list_targets() if t.is_primary]


def test_load_missing_file_gives_defaults(settings_path):
    """Test that a missing file is not an error and is not created."""
    store = ConfigurationStore.load(settings_path)

    assert store.settings == Settings.default()
    assert not settings_path.exists()


def test_save_then_load(store, settings_path):
    """Test that a saved document loads back equal."""
    store.add_target(Target.create("Alice"))
    store.update_app_settings(AppSettings(theme=Theme.DARK, autostart=True))

    reloaded = ConfigurationStore.load(settings_path)

    assert reloaded.settings == store.settings
    assert reloaded.settings.app_settings.theme == Theme.DARK


def test_save_leaves_no_temp_files(store, settings_path):
    """Test that the atomic write cleans up after itself."""
    store.save()
    store.save()

    assert [p.name for p in settings_path.parent.iterdir()] == ["settings.json"]
    json.loads(settings_path.read_text(encoding="utf-8"))


def test_load_invalid_json(settings_path):
    """Test that a malformed file raises PersistenceReadError naming the path."""
    settings_path.parent.mkdir(parents=True)
    settings_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceReadError) as exc_info:
        ConfigurationStore.load(settings_path)

    assert str(settings_path) in exc_info.value.message


def test_load_invalid_document_lists_problems(settings_path):
    """Test that schema problems are reported with their location."""
    settings_path.parent.mkdir(parents=True)
    settings_path.write_text(json.dumps({"version": 1, "targets": []}), encoding="utf-8")

    with pytest.raises(PersistenceReadError) as exc_info:
        ConfigurationStore.load(settings_path)

    assert "app_settings" in exc_info.value.message
    assert "keybinds" in exc_info.value.message
    assert exc_info.value.details


def test_load_newer_version_warns(settings_path, caplog):
    """Test that a newer schema version loads with a warning."""
    document = json.loads(Settings.default().to_json())
    document["version"] = 99
    settings_path.parent.mkdir(parents=True)
    settings_path.write_text(json.dumps(document), encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        store = ConfigurationStore.load(settings_path)

    assert store.settings.version == 99
    assert "newer than supported" in caplog.text


def test_load_or_default_preserves_corrupt_file(settings_path):
    """Test the startup fallback: defaults plus a .corrupt copy of the bad file."""
    settings_path.parent.mkdir(parents=True)
    settings_path.write_text("garbage", encoding="utf-8")

    store = ConfigurationStore.load_or_default(settings_path)

    assert store.settings == Settings.default()
    backup = settings_path.with_name("settings.json.corrupt")
    assert backup.read_text(encoding="utf-8") == "garbage"


def test_load_non_utf8_file(settings_path):
    """Test that undecodable bytes raise PersistenceReadError naming the path."""
    settings_path.parent.mkdir(parents=True)
    settings_path.write_bytes(b'{"version": 1, "label": "\xff\xfe"}')

    with pytest.raises(PersistenceReadError) as exc_info:
        ConfigurationStore.load(settings_path)

    assert str(settings_path) in exc_info.value.message
    assert "UTF-8" in exc_info.value.message


def test_load_or_default_survives_non_utf8_file(settings_path):
    """Test that startup falls back to defaults when the file is not UTF-8."""
    settings_path.parent.mkdir(parents=True)
    settings_path.write_bytes(b"\xff\xfe\x00garbage")

    store = ConfigurationStore.load_or_default(settings_path)

    assert store.settings == Settings.default()
    assert settings_path.with_name("settings.json.corrupt").read_bytes() == b"\xff\xfe\x00garbage"


def _write_targets(settings_path, targets):
    document = json.loads(Settings.default().to_json())
    document["targets"] = targets
    settings_path.parent.mkdir(parents=True)
    settings_path.write_text(json.dumps(document), encoding="utf-8")


def _target_entry(label, **overrides):
    entry = Target.create(label).model_dump(mode="json", by_alias=True)
    entry.pop("is_primary")
    entry.update(overrides)
    return entry


def test_load_without_primary_promotes_first(settings_path):
    """Test that a document whose targets lack is_primary gets the first one promoted."""
    alice = _target_entry("Alice")
    bob = _target_entry("Bob")
    _write_targets(settings_path, [alice, bob])

    store = ConfigurationStore.load(settings_path)

    assert _primary_ids(store) == [alice["id"]]
    carol = store.add_target(Target.create("Carol"))
    assert carol.is_primary is False
    assert _primary_ids(store) == [alice["id"]]


def test_load_with_two_primaries_keeps_first(settings_path):
    """Test that a hand-edited document with two primaries is reduced to one."""
    alice = _target_entry("Alice", is_primary=True)
    bob = _target_entry("Bob", is_primary=True)
    _write_targets(settings_path, [alice, bob])

    store = ConfigurationStore.load(settings_path)

    assert _primary_ids(store) == [alice["id"]]
    store.remove_target(alice["id"])
    assert _primary_ids(store) == [bob["id"]]


def test_first_target_becomes_primary(store):
    """Test that the first target is primary even if not requested."""
    added = store.add_target(Target.create("Alice", is_primary=False))

    assert added.is_primary is True
    assert store.get_primary_target().id == added.id


def test_second_target_keeps_existing_primary(store):
    """Test that a non-primary addition leaves the primary alone."""
    alice = store.add_target(Target.create("Alice"))
    store.add_target(Target.create("Bob"))

    assert _primary_ids(store) == [alice.id]


def test_primary_addition_demotes_previous(store):
    """Test that adding a primary target demotes the old one."""
    store.add_target(Target.create("Alice"))
    bob = store.add_target(Target.create("Bob", is_primary=True))

    assert _primary_ids(store) == [bob.id]


def test_duplicate_target_rejected(store):
    """Test that a duplicate id is rejected and nothing changes."""
    alice = store.add_target(Target.create("Alice"))

    with pytest.raises(DuplicateTargetError):
        store.add_target(alice.model_copy(update={"label": "Alice 2"}))

    assert [t.label for t in store.list_targets()] == ["Alice"]


def test_remove_primary_promotes_first_remaining(store):
    """Test removing the primary of A, B, C promotes B."""
    a = store.add_target(Target.create("A"))
    b = store.add_target(Target.create("B"))
    store.add_target(Target.create("C"))

    assert store.remove_target(a.id) is True

    assert _primary_ids(store) == [b.id]
    assert [t.label for t in store.list_targets()] == ["B", "C"]


def test_remove_non_primary_keeps_primary(store):
    """Test removing a non-primary target."""
    a = store.add_target(Target.create("A"))
    b = store.add_target(Target.create("B"))

    store.remove_target(b.id)

    assert _primary_ids(store) == [a.id]


def test_remove_last_target(store):
    """Test that removing the only target leaves no primary."""
    a = store.add_target(Target.create("A"))

    store.remove_target(a.id)

    assert store.list_targets() == []
    assert store.get_primary_target() is None


def test_remove_unknown_target(store, settings_path):
    """Test that removing an unknown id returns False without saving."""
    assert store.remove_target("tg_missing") is False
    assert not settings_path.exists()


def test_remove_drops_target_hotkey(store):
    """Test that a removed target's hotkey binding goes with it."""
    a = store.add_target(Target.create("A"))
    b = store.add_target(Target.create("B"))
    keybinds = store.settings.keybinds
    keybinds.target_hotkeys[b.id] = "Ctrl+Alt+2"
    store.update_keybinds(keybinds)

    store.remove_target(b.id)

    assert store.settings.keybinds.target_hotkeys == {}
    assert store.get_target(a.id) is not None


def test_exactly_one_primary_through_mutations(store):
    """Test the primary invariant over a sequence of adds and removes."""
    ids = [store.add_target(Target.create(f"T{i}", is_primary=i % 2 == 0)).id for i in range(6)]
    for target_id in ids[::2]:
        store.remove_target(target_id)
        assert len(_primary_ids(store)) == 1

    for target_id in ids[1::2]:
        store.remove_target(target_id)
    assert _primary_ids(store) == []


def test_update_target(store, settings_path):
    """Test editing a target's label and defaults."""
    alice = store.add_target(Target.create("Alice"))
    alice.label = "Alice (mobile)"
    alice.call_defaults.start_with_video = False

    assert store.update_target(alice) is True

    reloaded = ConfigurationStore.load(settings_path)
    stored = reloaded.get_target(alice.id)
    assert stored.label == "Alice (mobile)"
    assert stored.call_defaults.start_with_video is False


def test_update_target_code_is_immutable(store):
    """Test that changing the pairing code is rejected."""
    alice = store.add_target(Target.create("Alice"))
    alice.code = "aaaa-aaaa-aaaa-aaaa-aaaa"

    with pytest.raises(ValidationError):
        store.update_target(alice)


def test_update_target_cannot_clear_only_primary(store):
    """Test that un-flagging the primary keeps it primary."""
    alice = store.add_target(Target.create("Alice"))
    alice.is_primary = False

    store.update_target(alice)

    assert store.get_target(alice.id).is_primary is True


def test_update_unknown_target(store):
    """Test that updating an unknown id returns False."""
    assert store.update_target(Target.create("Ghost")) is False


def test_set_primary(store):
    """Test choosing another primary target."""
    store.add_target(Target.create("A"))
    b = store.add_target(Target.create("B"))

    assert store.set_primary(b.id) is True
    assert _primary_ids(store) == [b.id]
    assert store.set_primary("tg_missing") is False


def test_reads_return_copies(store):
    """Test that mutating a returned target does not touch the store."""
    alice = store.add_target(Target.create("Alice"))

    fetched = store.get_target(alice.id)
    fetched.label = "changed"
    store.list_targets()[0].label = "changed too"

    assert store.get_target(alice.id).label == "Alice"


def test_app_settings_accessor(store):
    """Test that app_settings reflects updates and returns a copy."""
    store.update_app_settings(AppSettings(always_on_top=False, theme=Theme.DARK))

    app_settings = store.app_settings
    app_settings.always_on_top = True

    assert store.app_settings.always_on_top is False
    assert store.app_settings.theme == Theme.DARK


def test_update_keybinds(store, settings_path):
    """Test persisting new keybinds."""
    store.update_keybinds(Keybinds(join_primary="Ctrl+Alt+J", hangup="Ctrl+Alt+H"))

    reloaded = ConfigurationStore.load(settings_path)
    assert reloaded.settings.keybinds.join_primary == "Ctrl+Alt+J"


def test_write_failure_keeps_memory_and_disk_apart(store, settings_path):
    """Test that a failed save raises and memory diverges from disk."""
    store.add_target(Target.create("Alice"))

    with patch(
        "justcall.infrastructure.local.settings_store.os.replace",
        side_effect=OSError("disk full"),
    ):
        with pytest.raises(PersistenceWriteError):
            store.add_target(Target.create("Bob", TargetType.GROUP))

    assert [t.label for t in store.list_targets()] == ["Alice", "Bob"]
    on_disk = ConfigurationStore.load(settings_path)
    assert [t.label for t in on_disk.list_targets()] == ["Alice"]
    assert [p.name for p in settings_path.parent.iterdir()] == ["settings.json"]


def test_save_to_unwritable_location(tmp_path):
    """Test that an impossible path raises PersistenceWriteError."""
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = ConfigurationStore.with_defaults(blocker / "settings.json")

    with pytest.raises(PersistenceWriteError):
        store.save()
