"""
JSON file settings store.

Single authority for reading and durably writing the settings document.
Every mutation saves immediately; saves are atomic (temp file in the same
directory, then os.replace) so a crash never leaves a truncated file.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from justcall.core.exceptions import (
    DuplicateTargetError,
    PersistenceReadError,
    PersistenceWriteError,
    ValidationError,
)
from justcall.core.logger import setup_logger
from justcall.models.settings import (
    CURRENT_SCHEMA_VERSION,
    AppSettings,
    Keybinds,
    Settings,
    Target,
)

logger = setup_logger(__name__)

PathLike = Union[str, os.PathLike]

CORRUPT_SUFFIX = ".corrupt"


class ConfigurationStore:
    """
    Durable store for Settings.

    Reads return copies; the in-memory document is only changed through the
    methods below. All access is serialized by a reentrant lock.
    """

    def __init__(self, settings: Settings, path: PathLike):
        self._settings = settings
        self._path = Path(path)
        self._lock = threading.RLock()

    # -- Construction

    @classmethod
    def with_defaults(cls, path: PathLike) -> "ConfigurationStore":
        """Create a store holding default settings bound to path (nothing is written)."""
        return cls(Settings.default(), path)

    @classmethod
    def load(cls, path: PathLike) -> "ConfigurationStore":
        """
        Load settings from path.

        A missing file yields default settings and is not an error.

        Raises:
            PersistenceReadError: If the file cannot be read or is not a valid document
        """
        file_path = Path(path)
        if not file_path.exists():
            logger.info(f"No settings file at {file_path}, using defaults")
            return cls.with_defaults(file_path)

        try:
            raw = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceReadError(f"Failed to read settings from {file_path}: {e}") from e
        except UnicodeDecodeError as e:
            raise PersistenceReadError(
                f"Failed to read settings from {file_path}: not valid UTF-8 ({e.reason})"
            ) from e

        try:
            settings = Settings.from_json(raw)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise PersistenceReadError(
                f"Failed to parse settings from {file_path}: {problems}",
                details=e.errors(include_url=False),
            ) from e

        if settings.version > CURRENT_SCHEMA_VERSION:
            logger.warning(
                f"Settings version {settings.version} is newer than supported "
                f"version {CURRENT_SCHEMA_VERSION}; unknown fields will be dropped on save"
            )
        store = cls(settings, file_path)
        store._reconcile_primary()
        logger.info(f"Loaded settings from {file_path} ({len(settings.targets)} targets)")
        return store

    @classmethod
    def load_or_default(cls, path: PathLike) -> "ConfigurationStore":
        """
        Startup policy: load settings, falling back to defaults on a bad file.

        The unreadable file is copied aside as "<name>.corrupt" before the
        defaults can overwrite it on the next save.
        """
        try:
            return cls.load(path)
        except PersistenceReadError as e:
            file_path = Path(path)
            logger.error(f"{e.message}. Falling back to default settings")
            backup = file_path.with_name(file_path.name + CORRUPT_SUFFIX)
            try:
                shutil.copy2(file_path, backup)
                logger.warning(f"Preserved unreadable settings file as {backup}")
            except OSError:
                logger.exception(f"Could not preserve unreadable settings file {file_path}")
            return cls.with_defaults(file_path)

    # -- Persistence

    @property
    def path(self) -> Path:
        return self._path

    def save(self) -> None:
        """
        Write the current settings atomically.

        Raises:
            PersistenceWriteError: If the directory or file cannot be written
        """
        with self._lock:
            payload = self._settings.to_json()
            temp_name: Optional[str] = None
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=self._path.parent,
                    prefix=f".{self._path.name}.",
                    suffix=".tmp",
                    delete=False,
                ) as handle:
                    temp_name = handle.name
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(temp_name, self._path)
            except OSError as e:
                if temp_name is not None:
                    try:
                        os.unlink(temp_name)
                    except OSError:
                        pass
                raise PersistenceWriteError(
                    f"Failed to save settings to {self._path}: {e}"
                ) from e
            logger.info(f"Saved settings to {self._path}")

    # -- Reads

    @property
    def settings(self) -> Settings:
        """Snapshot of the whole document."""
        with self._lock:
            return self._settings.model_copy(deep=True)

    @property
    def app_settings(self) -> AppSettings:
        """Snapshot of the global preferences only."""
        with self._lock:
            return self._settings.app_settings.model_copy()

    def list_targets(self) -> list[Target]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._settings.targets]

    def get_target(self, target_id: str) -> Optional[Target]:
        with self._lock:
            target = self._find(target_id)
            return target.model_copy(deep=True) if target else None

    def get_primary_target(self) -> Optional[Target]:
        with self._lock:
            for target in self._settings.targets:
                if target.is_primary:
                    return target.model_copy(deep=True)
            return None

    # -- Target mutations

    def add_target(self, target: Target) -> Target:
        """
        Append a target and save.

        The first target always becomes primary. Adding a target flagged
        primary demotes the previous primary.

        Returns:
            The stored target (with is_primary reconciled)

        Raises:
            DuplicateTargetError: If the id is already used (nothing is changed)
            PersistenceWriteError: If saving fails (the target stays in memory)
        """
        with self._lock:
            if self._find(target.id) is not None:
                raise DuplicateTargetError(
                    f"Target already exists: {target.id}", details={"target_id": target.id}
                )
            stored = target.model_copy(deep=True)
            if not self._settings.targets:
                stored.is_primary = True
            elif stored.is_primary:
                self._demote_all()
            self._settings.targets.append(stored)
            logger.info(f"Added target {stored.id} ({stored.label}), primary={stored.is_primary}")
            result = stored.model_copy(deep=True)
            self.save()
            return result

    def remove_target(self, target_id: str) -> bool:
        """
        Remove a target by id.

        If the primary was removed, the first remaining target is promoted.
        Saves only if something was removed.
        """
        with self._lock:
            index = self._index(target_id)
            if index is None:
                return False
            self._settings.targets.pop(index)
            self._reconcile_primary()
            self._settings.keybinds.target_hotkeys.pop(target_id, None)
            logger.info(f"Removed target {target_id}")
            self.save()
            return True

    def update_target(self, target: Target) -> bool:
        """
        Replace a target by id and save.

        Returns:
            False if no target has that id

        Raises:
            ValidationError: If the update changes the pairing code
        """
        with self._lock:
            index = self._index(target.id)
            if index is None:
                return False
            existing = self._settings.targets[index]
            if target.code != existing.code:
                raise ValidationError(
                    f"Pairing code of target {target.id} cannot be changed",
                    details={"target_id": target.id},
                )
            updated = target.model_copy(deep=True)
            if updated.is_primary and not existing.is_primary:
                self._demote_all()
            elif existing.is_primary and not updated.is_primary:
                logger.warning(
                    f"Target {target.id} stays primary; use set_primary() to choose another"
                )
                updated.is_primary = True
            self._settings.targets[index] = updated
            self.save()
            return True

    def set_primary(self, target_id: str) -> bool:
        """Make target_id the primary target. Returns False if it does not exist."""
        with self._lock:
            target = self._find(target_id)
            if target is None:
                return False
            if not target.is_primary:
                self._demote_all()
                target.is_primary = True
                logger.info(f"Primary target is now {target_id}")
                self.save()
            return True

    # -- Other mutations

    def update_keybinds(self, keybinds: Keybinds) -> None:
        with self._lock:
            self._settings.keybinds = keybinds.model_copy(deep=True)
            self.save()

    def update_app_settings(self, app_settings: AppSettings) -> None:
        with self._lock:
            self._settings.app_settings = app_settings.model_copy(deep=True)
            self.save()

    # -- Helpers

    def _find(self, target_id: str) -> Optional[Target]:
        for target in self._settings.targets:
            if target.id == target_id:
                return target
        return None

    def _index(self, target_id: str) -> Optional[int]:
        for index, target in enumerate(self._settings.targets):
            if target.id == target_id:
                return index
        return None

    def _demote_all(self) -> None:
        for target in self._settings.targets:
            target.is_primary = False

    def _reconcile_primary(self) -> None:
        # A non-empty target list has exactly one primary: the first flagged one, else the first
        targets = self._settings.targets
        flagged = [t for t in targets if t.is_primary]
        if not targets or len(flagged) == 1:
            return
        keep = flagged[0] if flagged else targets[0]
        for target in targets:
            target.is_primary = target is keep
        if flagged:
            logger.warning(f"Multiple primary targets found, keeping {keep.id}")
        else:
            logger.info(f"Promoted {keep.id} to primary")
