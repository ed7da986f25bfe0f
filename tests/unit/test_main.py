"""
Unit tests for the CLI and JustCallApp wiring.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from justcall.core.config import RuntimeConfig, get_config
from justcall.core.pairing import derive_room_id
from justcall.infrastructure.desktop.conference_window import ConferenceWindowBridge
from justcall.infrastructure.local.settings_store import ConfigurationStore
from justcall.interfaces.meeting_launcher import IMeetingLauncher
from justcall.interfaces.shortcut_backend import IShortcutBackend
from justcall.main import JustCallApp, main
from justcall.models.enums import CallState
from justcall.models.settings import Keybinds, Target


class RecordingBackend(IShortcutBackend):
    """Shortcut backend that keeps callbacks so tests can press keys."""

    def __init__(self):
        self.callbacks = {}
        self.shutdown_called = False

    def register(self, hotkey, callback):
        self.callbacks[hotkey.canonical] = callback

    def unregister(self, hotkey):
        self.callbacks.pop(hotkey.canonical, None)

    def shutdown(self):
        self.shutdown_called = True


@pytest.fixture
def settings_path(tmp_path):
    """Settings file location for CLI runs."""
    return tmp_path / "settings.json"


@pytest.fixture
def cli(settings_path):
    """Run the CLI against the temporary settings file."""

    def run(*argv):
        return main(["--settings", str(settings_path), *argv])

    return run


# ===========================================
# CLI
# ===========================================


def test_generate_code(cli, capsys):
    """Test printing a new pairing code."""
    assert cli("generate-code") == 0

    code = capsys.readouterr().out.strip()
    assert len(code) == 24


def test_room_id(cli, capsys):
    """Test printing the room for a code."""
    assert cli("room-id", "abcd-efgh-ijkl-mnop-qrst") == 0

    assert capsys.readouterr().out.strip() == derive_room_id("abcd-efgh-ijkl-mnop-qrst")


def test_add_and_list_targets(cli, capsys, settings_path):
    """Test adding targets and listing them with the primary marked."""
    assert cli("add-target", "Mom", "--code", "ABCD EFGH IJKL MNOP QRST") == 0
    assert cli("add-target", "Family", "--group") == 0
    capsys.readouterr()

    assert cli("targets") == 0
    lines = capsys.readouterr().out.splitlines()

    assert lines[0].startswith("* ")
    assert "Mom" in lines[0]
    assert "abcd-efgh-ijkl-mnop-qrst" in lines[0]
    assert "[group]" in lines[1]
    assert not lines[1].startswith("*")


def test_add_target_with_invalid_code(cli, capsys, settings_path):
    """Test that a malformed partner code is rejected."""
    assert cli("add-target", "Mom", "--code", "not-a-code") == 1

    assert "Not a valid pairing code" in capsys.readouterr().err
    assert not settings_path.exists()


def test_add_target_with_hotkey(cli, settings_path):
    """Test that a per-target hotkey is stored with the target."""
    assert cli("add-target", "Mom", "--hotkey", "Ctrl+Alt+1") == 0

    store = ConfigurationStore.load(settings_path)
    target = store.list_targets()[0]
    assert store.settings.keybinds.target_hotkeys == {target.id: "Ctrl+Alt+1"}


def test_add_target_hotkey_conflict(cli, capsys, settings_path):
    """Test that a combination already in use is refused."""
    assert cli("add-target", "Mom", "--hotkey", "Ctrl+Alt+1") == 0

    assert cli("add-target", "Dad", "--hotkey", "alt+ctrl+1") == 1

    assert "already used" in capsys.readouterr().err
    assert len(ConfigurationStore.load(settings_path).list_targets()) == 1


def test_add_target_invalid_hotkey(cli, capsys):
    """Test that an unparsable hotkey is refused."""
    assert cli("add-target", "Mom", "--hotkey", "Ctrl+") == 1

    assert "Invalid hotkey format" in capsys.readouterr().err


def test_remove_and_set_primary(cli, capsys, settings_path):
    """Test removing the primary and choosing a new one."""
    cli("add-target", "A")
    cli("add-target", "B")
    cli("add-target", "C")
    a, b, c = ConfigurationStore.load(settings_path).list_targets()

    assert cli("remove-target", a.id) == 0
    assert ConfigurationStore.load(settings_path).get_primary_target().id == b.id

    assert cli("set-primary", c.id) == 0
    assert ConfigurationStore.load(settings_path).get_primary_target().id == c.id


def test_unknown_target_commands(cli, capsys):
    """Test that unknown ids exit with an error."""
    assert cli("remove-target", "tg_missing") == 1
    assert cli("set-primary", "tg_missing") == 1

    assert "Target not found: tg_missing" in capsys.readouterr().err


def test_keybinds_lists_actions(cli, capsys, settings_path):
    """Test that every binding is printed with its action JSON."""
    cli("add-target", "Mom", "--hotkey", "Ctrl+Alt+1")
    target = ConfigurationStore.load(settings_path).list_targets()[0]
    capsys.readouterr()

    assert cli("keybinds") == 0
    lines = capsys.readouterr().out.splitlines()

    assert any(line.endswith('{"kind": "join_primary"}') for line in lines)
    assert any(line.endswith('{"kind": "hangup"}') for line in lines)
    assert f'Ctrl+Alt+1  {{"kind": "join_target", "target_id": "{target.id}"}}' in lines


def test_bind_moves_join_key_to_hangup(cli, capsys, settings_path):
    """Test rebinding Ctrl+Shift+J from join_primary to hangup."""
    assert cli("bind", "Ctrl+Shift+J", "join_primary") == 0
    assert cli("bind", "Ctrl+Shift+J", "hangup") == 0

    keybinds = ConfigurationStore.load(settings_path).settings.keybinds
    assert keybinds.hangup == "Ctrl+Shift+J"
    assert keybinds.join_primary == ""
    assert "Removed it from join_primary" in capsys.readouterr().out


def test_bind_accepts_action_json(cli, settings_path):
    """Test binding a per-target hotkey from an action payload."""
    cli("add-target", "Mom")
    target = ConfigurationStore.load(settings_path).list_targets()[0]

    payload = json.dumps({"kind": "join_target", "target_id": target.id})
    assert cli("bind", "Ctrl+Alt+2", payload) == 0

    keybinds = ConfigurationStore.load(settings_path).settings.keybinds
    assert keybinds.target_hotkeys == {target.id: "Ctrl+Alt+2"}


def test_bind_join_target_with_option(cli, settings_path):
    """Test binding join_target through --target."""
    cli("add-target", "Mom")
    target = ConfigurationStore.load(settings_path).list_targets()[0]

    assert cli("bind", "Ctrl+Alt+3", "join_target", "--target", target.id) == 0

    keybinds = ConfigurationStore.load(settings_path).settings.keybinds
    assert keybinds.target_hotkeys == {target.id: "Ctrl+Alt+3"}


@pytest.mark.parametrize(
    "argv, message",
    [
        (("Ctrl+Alt+4", "mute_everyone"), "Invalid shortcut action"),
        (("Ctrl+Alt+4", "join_target"), "Invalid shortcut action"),
        (("Ctrl+Alt+4", "join_target", "--target", "tg_missing"), "Target not found"),
        (("Ctrl+", "hangup"), "Invalid hotkey format"),
    ],
)
def test_bind_rejects_bad_input(cli, capsys, settings_path, argv, message):
    """Test that unknown actions, missing targets and bad hotkeys are refused."""
    assert cli("bind", *argv) == 1

    assert message in capsys.readouterr().err
    assert not settings_path.exists()


@pytest.fixture
def fresh_config():
    """Drop the cached config after the test."""
    yield
    get_config.cache_clear()


def test_main_reads_variables_loaded_from_dotenv(cli, capsys, monkeypatch, fresh_config):
    """Test that variables loaded by load_dotenv reach the config used by commands."""
    monkeypatch.delenv("JUSTCALL_CONFERENCE_HOST", raising=False)
    get_config()

    def load_env_file():
        monkeypatch.setenv("JUSTCALL_CONFERENCE_HOST", "meet.example.org")

    with patch("justcall.main.load_dotenv", side_effect=load_env_file):
        assert cli("room-id", "-v", "abcd-efgh-ijkl-mnop-qrst") == 0

    assert "https://meet.example.org/" in capsys.readouterr().out


def test_corrupt_settings_recovered_by_cli(cli, capsys, settings_path):
    """Test that a corrupt file falls back to defaults and is preserved."""
    settings_path.write_text("{broken", encoding="utf-8")

    assert cli("targets") == 0

    assert "No targets." in capsys.readouterr().out
    assert settings_path.with_name("settings.json.corrupt").exists()


# ===========================================
# JustCallApp
# ===========================================


@pytest.fixture
def store(tmp_path):
    """Store with one target and fixed keybinds."""
    store = ConfigurationStore.with_defaults(tmp_path / "settings.json")
    store.update_keybinds(Keybinds(join_primary="Ctrl+Shift+J", hangup="Ctrl+Shift+H"))
    store.add_target(Target.create("Mom"))
    return store


def test_app_hotkeys_drive_calls(store):
    """Test the whole path from key press to launcher and back."""
    backend = RecordingBackend()
    launcher = MagicMock(spec=IMeetingLauncher)
    app = JustCallApp(RuntimeConfig(), store, backend=backend, launcher=launcher)

    assert app.start() == {}
    backend.callbacks["ctrl+shift+j"]()

    assert app.orchestrator.state == CallState.CONNECTING
    request = launcher.launch.call_args.args[0]
    assert request.target_label == "Mom"

    backend.callbacks["ctrl+shift+j"]()
    assert launcher.launch.call_count == 1

    backend.callbacks["ctrl+shift+h"]()
    assert app.orchestrator.state == CallState.IDLE
    launcher.close.assert_called()


def test_app_reports_unavailable_hotkeys(store):
    """Test that bad keybinds are reported without stopping startup."""
    store.update_keybinds(Keybinds(join_primary="Ctrl+", hangup="Ctrl+Shift+H"))
    launcher = MagicMock(spec=IMeetingLauncher)
    app = JustCallApp(RuntimeConfig(), store, backend=RecordingBackend(), launcher=launcher)

    failures = app.start()

    assert set(failures) == {"join_primary"}
    assert app.registry.is_registered("Ctrl+Shift+H")


def test_app_run_and_shutdown_browser_mode(store):
    """Test that stop ends the run loop and cleans everything up."""
    backend = RecordingBackend()
    launcher = MagicMock(spec=IMeetingLauncher)
    app = JustCallApp(RuntimeConfig(), store, backend=backend, launcher=launcher)
    app.orchestrator.join_primary()

    app.stop()
    app.run()

    assert backend.shutdown_called is True
    assert backend.callbacks == {}
    assert app.orchestrator.state == CallState.IDLE


def test_app_window_mode_uses_conference_window(store):
    """Test that window mode wires the bridge and runs the pywebview loop."""
    config = RuntimeConfig(LAUNCH_MODE="window")
    backend = RecordingBackend()

    with patch("justcall.main.webview") as mock_webview:
        app = JustCallApp(config, store, backend=backend)
        app.run()

    assert isinstance(app._launcher, ConferenceWindowBridge)
    assert mock_webview.create_window.call_args.kwargs["hidden"] is True
    mock_webview.start.assert_called_once()
    assert backend.shutdown_called is True


def test_app_window_mode_events_reach_orchestrator(store):
    """Test that conference events from the bridge change the call state."""
    app = JustCallApp(RuntimeConfig(LAUNCH_MODE="window"), store, backend=RecordingBackend())

    with patch("justcall.infrastructure.desktop.conference_window.webview"):
        app.orchestrator.join_primary()
        app._launcher._emit("remote-joined")

    assert app.orchestrator.state == CallState.IN_CALL
