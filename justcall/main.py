"""
JustCall desktop entry point.

`justcall run` starts the resident app: global hotkeys are registered and
meetings open in the default browser or in an embedded pywebview window.
The other subcommands manage call targets and keybinds in the settings document.
"""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import webview
from dotenv import load_dotenv

from justcall import __version__
from justcall.core.config import RuntimeConfig, get_config
from justcall.core.exceptions import (
    HotkeyConflictError,
    JustCallError,
    TargetNotFoundError,
    ValidationError,
)
from justcall.core.logger import set_log_level, setup_logger
from justcall.core.pairing import (
    build_meeting_url,
    derive_room_id,
    format_pairing_code,
    generate_pairing_code,
    is_valid_pairing_code,
)
from justcall.core.platform import default_settings_path
from justcall.infrastructure.desktop.conference_window import ConferenceWindowBridge
from justcall.infrastructure.desktop.pynput_shortcuts import PynputShortcutBackend
from justcall.infrastructure.local.browser_launcher import ExternalBrowserLauncher
from justcall.infrastructure.local.settings_store import ConfigurationStore
from justcall.interfaces.meeting_launcher import IMeetingLauncher
from justcall.interfaces.shortcut_backend import IShortcutBackend
from justcall.models.enums import CallState, TargetType
from justcall.models.hotkey import Hotkey
from justcall.models.settings import Keybinds, Target
from justcall.models.shortcut import (
    HangupAction,
    JoinPrimaryAction,
    JoinTargetAction,
    ShortcutAction,
    dump_shortcut_action,
    parse_shortcut_action,
)
from justcall.services.call_orchestrator import CallOrchestrator
from justcall.services.call_state_machine import CallStateMachine
from justcall.services.hotkey_registry import HotkeyRegistry

logger = setup_logger(__name__)

_HOST_WINDOW_HTML = "<!doctype html><html><body></body></html>"


class JustCallApp:
    """Resident app: wires the store, hotkeys, state machine and launcher."""

    def __init__(
        self,
        config: RuntimeConfig,
        store: ConfigurationStore,
        *,
        backend: Optional[IShortcutBackend] = None,
        launcher: Optional[IMeetingLauncher] = None,
    ):
        self._config = config
        self._store = store
        self._state_machine = CallStateMachine()
        self._registry = HotkeyRegistry(backend or PynputShortcutBackend())
        self._launcher = launcher or self._create_launcher()
        self._orchestrator = CallOrchestrator(
            store,
            self._state_machine,
            self._launcher,
            conference_host=config.CONFERENCE_HOST,
            display_name=config.DISPLAY_NAME,
        )

        self._stop_event = threading.Event()
        self._shutting_down = False
        self._host_window: Any = None

        if isinstance(self._launcher, ConferenceWindowBridge):
            self._launcher.set_event_handler(self._orchestrator.handle_lifecycle_event)
        self._state_machine.subscribe(self._on_state_changed)
        self._registry.add_listener(self._orchestrator.on_shortcut)

    @property
    def orchestrator(self) -> CallOrchestrator:
        return self._orchestrator

    @property
    def registry(self) -> HotkeyRegistry:
        return self._registry

    def _create_launcher(self) -> IMeetingLauncher:
        if self._config.uses_window:
            return ConferenceWindowBridge(
                self._config.CONFERENCE_HOST,
                width=self._config.WINDOW_WIDTH,
                height=self._config.WINDOW_HEIGHT,
            )
        return ExternalBrowserLauncher()

    # -- Lifecycle

    def start(self) -> dict[str, JustCallError]:
        """Register hotkeys from the stored keybinds. Returns per-binding failures."""
        keybinds = self._store.settings.keybinds
        failures = self._registry.apply_keybinds(keybinds)
        for name, error in failures.items():
            logger.warning(f"Hotkey {name} unavailable: {error.message}")

        primary = self._store.get_primary_target()
        if primary is None:
            logger.info("No call targets yet; add one with `justcall add-target`")
        else:
            logger.info(f"Ready. {keybinds.join_primary} calls {primary.label}")
        return failures

    def run(self) -> None:
        self.start()
        if self._config.uses_window:
            # pywebview needs a window before start(); this one stays hidden
            self._host_window = webview.create_window(
                "JustCall", html=_HOST_WINDOW_HTML, hidden=True
            )
            self._host_window.events.closed += self._shutdown
            try:
                webview.start(debug=self._config.DEBUG)
            finally:
                self._shutdown()
            return

        try:
            while not self._stop_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._shutdown()

    def stop(self) -> None:
        self._stop_event.set()
        if self._host_window is not None:
            try:
                self._host_window.destroy()
            except Exception:
                logger.exception("Failed to close host window")

    # -- Event handlers

    def _on_state_changed(self, state: CallState) -> None:
        target_id = self._orchestrator.active_target_id
        suffix = f" ({target_id})" if target_id else ""
        logger.info(f"Status: {state.description}{suffix}")

    # -- Shutdown

    def _shutdown(self) -> None:
        if self._shutting_down:
            return
        self._shutting_down = True
        self._stop_event.set()

        self._orchestrator.hangup()
        self._registry.close()
        try:
            self._launcher.close()
        except Exception:
            logger.exception("Failed to close launcher")
        logger.info("JustCall stopped")


# ===========================================
# CLI
# ===========================================


def _open_store(args: argparse.Namespace, config: RuntimeConfig) -> ConfigurationStore:
    path = args.settings or config.SETTINGS_PATH or default_settings_path()
    return ConfigurationStore.load_or_default(Path(path))


def _cmd_run(args: argparse.Namespace, config: RuntimeConfig) -> int:
    JustCallApp(config, _open_store(args, config)).run()
    return 0


def _cmd_generate_code(args: argparse.Namespace, config: RuntimeConfig) -> int:
    code = generate_pairing_code()
    room_id = derive_room_id(code)
    print(code)
    if args.verbose:
        print(f"room: {room_id}")
        print(f"url:  {build_meeting_url(room_id, config.CONFERENCE_HOST)}")
    return 0


def _cmd_room_id(args: argparse.Namespace, config: RuntimeConfig) -> int:
    room_id = derive_room_id(args.code)
    print(room_id)
    if args.verbose:
        print(f"url:  {build_meeting_url(room_id, config.CONFERENCE_HOST)}")
    return 0


def _cmd_targets(args: argparse.Namespace, config: RuntimeConfig) -> int:
    store = _open_store(args, config)
    targets = store.list_targets()
    if not targets:
        print("No targets.")
        return 0
    hotkeys = store.settings.keybinds.target_hotkeys
    for target in targets:
        marker = "*" if target.is_primary else " "
        hotkey = hotkeys.get(target.id, "")
        print(
            f"{marker} {target.id}  {target.label}  [{target.target_type.value}]  "
            f"{target.code}  {derive_room_id(target.code)}  {hotkey}".rstrip()
        )
    return 0


def _cmd_add_target(args: argparse.Namespace, config: RuntimeConfig) -> int:
    code = None
    if args.code:
        if not is_valid_pairing_code(args.code):
            raise ValidationError(f"Not a valid pairing code: {args.code}")
        code = format_pairing_code(args.code)

    store = _open_store(args, config)
    keybinds = store.settings.keybinds
    if args.hotkey:
        Hotkey.parse(args.hotkey)
        taken_by = keybinds.find_binding(args.hotkey)
        if taken_by is not None:
            raise HotkeyConflictError(
                f"Hotkey {args.hotkey} is already used by {taken_by}",
                details={"hotkey": args.hotkey, "binding": taken_by},
            )

    target = store.add_target(
        Target.create(
            args.label,
            TargetType.GROUP if args.group else TargetType.PERSON,
            code=code,
            is_primary=args.primary,
        )
    )
    if args.hotkey:
        keybinds.target_hotkeys[target.id] = args.hotkey
        store.update_keybinds(keybinds)

    print(f"Added {target.label} ({target.id}){' as primary' if target.is_primary else ''}")
    print(f"Pairing code: {target.code}")
    if code is None:
        print("Share this code with the other person.")
    return 0


def _cmd_remove_target(args: argparse.Namespace, config: RuntimeConfig) -> int:
    store = _open_store(args, config)
    if not store.remove_target(args.target_id):
        raise TargetNotFoundError(args.target_id)
    print(f"Removed {args.target_id}")
    primary = store.get_primary_target()
    if primary is not None:
        print(f"Primary target: {primary.label} ({primary.id})")
    return 0


def _cmd_set_primary(args: argparse.Namespace, config: RuntimeConfig) -> int:
    store = _open_store(args, config)
    if not store.set_primary(args.target_id):
        raise TargetNotFoundError(args.target_id)
    print(f"Primary target: {args.target_id}")
    return 0


def _bound_actions(keybinds: Keybinds) -> list[tuple[str, ShortcutAction]]:
    bound: list[tuple[str, ShortcutAction]] = [
        (keybinds.join_primary, JoinPrimaryAction()),
        (keybinds.hangup, HangupAction()),
    ]
    bound.extend(
        (hotkey, JoinTargetAction(target_id=target_id))
        for target_id, hotkey in keybinds.target_hotkeys.items()
    )
    return [(hotkey, action) for hotkey, action in bound if hotkey]


def _clear_binding(keybinds: Keybinds, name: str) -> None:
    if name.startswith("target:"):
        keybinds.target_hotkeys.pop(name[len("target:") :], None)
    elif name in ("join_primary", "hangup"):
        setattr(keybinds, name, "")
    else:
        setattr(keybinds, name, None)


def _cmd_keybinds(args: argparse.Namespace, config: RuntimeConfig) -> int:
    store = _open_store(args, config)
    bound = _bound_actions(store.settings.keybinds)
    if not bound:
        print("No keybinds.")
        return 0
    for hotkey, action in bound:
        print(f"{hotkey}  {dump_shortcut_action(action)}")
    return 0


def _cmd_bind(args: argparse.Namespace, config: RuntimeConfig) -> int:
    """Bind a hotkey to an action given as a kind name or as action JSON."""
    hotkey = Hotkey.parse(args.hotkey)
    if args.action.lstrip().startswith("{"):
        action = parse_shortcut_action(args.action)
    else:
        payload: dict[str, Any] = {"kind": args.action}
        if args.target:
            payload["target_id"] = args.target
        action = parse_shortcut_action(payload)

    store = _open_store(args, config)
    if isinstance(action, JoinTargetAction) and store.get_target(action.target_id) is None:
        raise TargetNotFoundError(action.target_id)

    if isinstance(action, JoinTargetAction):
        name = f"target:{action.target_id}"
    else:
        name = action.kind

    keybinds = store.settings.keybinds
    previous = keybinds.find_binding(args.hotkey)
    if previous == name:
        previous = None
    elif previous is not None:
        _clear_binding(keybinds, previous)
    if isinstance(action, JoinTargetAction):
        keybinds.target_hotkeys[action.target_id] = args.hotkey
    else:
        setattr(keybinds, name, args.hotkey)
    store.update_keybinds(keybinds)

    print(f"{hotkey}  {dump_shortcut_action(action)}")
    if previous is not None:
        print(f"Removed it from {previous}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="justcall", description="One-keystroke calls with the people you talk to most."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", help="Settings file (default: per-user config path)")
    parser.set_defaults(handler=_cmd_run)

    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Start the app and listen for hotkeys (default)")
    run.set_defaults(handler=_cmd_run)

    gen = sub.add_parser("generate-code", help="Print a new pairing code")
    gen.add_argument("-v", "--verbose", action="store_true", help="Also print the room and URL")
    gen.set_defaults(handler=_cmd_generate_code)

    room = sub.add_parser("room-id", help="Print the room id for a pairing code")
    room.add_argument("code")
    room.add_argument("-v", "--verbose", action="store_true", help="Also print the URL")
    room.set_defaults(handler=_cmd_room_id)

    targets = sub.add_parser("targets", help="List call targets (* = primary)")
    targets.set_defaults(handler=_cmd_targets)

    add = sub.add_parser("add-target", help="Add a call target")
    add.add_argument("label")
    add.add_argument("--code", help="Pairing code received from the other person")
    add.add_argument("--group", action="store_true", help="Target is a group room")
    add.add_argument("--primary", action="store_true", help="Make it the primary target")
    add.add_argument("--hotkey", help="Hotkey that calls this target, e.g. Ctrl+Alt+1")
    add.set_defaults(handler=_cmd_add_target)

    remove = sub.add_parser("remove-target", help="Remove a call target")
    remove.add_argument("target_id")
    remove.set_defaults(handler=_cmd_remove_target)

    primary = sub.add_parser("set-primary", help="Choose the primary target")
    primary.add_argument("target_id")
    primary.set_defaults(handler=_cmd_set_primary)

    keybinds = sub.add_parser("keybinds", help="List hotkeys and the actions they trigger")
    keybinds.set_defaults(handler=_cmd_keybinds)

    bind = sub.add_parser("bind", help="Bind a hotkey to an action")
    bind.add_argument("hotkey", help="e.g. Ctrl+Shift+J")
    bind.add_argument(
        "action",
        help='join_primary, hangup, join_target (with --target) or action JSON '
        'such as \'{"kind": "hangup"}\'',
    )
    bind.add_argument("--target", help="Target id for join_target")
    bind.set_defaults(handler=_cmd_bind)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    # The logger built the config on import, before .env reached os.environ
    get_config.cache_clear()
    config = get_config()
    set_log_level(config.LOG_LEVEL)

    args = build_parser().parse_args(argv)
    handler: Callable[[argparse.Namespace, RuntimeConfig], int] = args.handler
    try:
        return handler(args, config)
    except JustCallError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
