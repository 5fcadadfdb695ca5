# SettingSync Extension Reconciliation
# Snapshot installed extensions into the working tree and converge on the snapshot

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

from settingsync.config.loader import ConfigStore
from settingsync.errors import ExtensionListError, ExtensionOperationError
from settingsync.logger import get_logger
from settingsync.sync.files import EXTENSIONS_FILE
from settingsync.utils.paths import atomic_write

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class ExtensionRecord:
    """One entry of the synced extension list. Identity is the id, case-insensitively."""

    id: str
    version: Optional[str] = None

    @property
    def key(self) -> str:
        return self.id.lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExtensionRecord):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.version is not None:
            data["version"] = self.version
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtensionRecord":
        return cls(id=str(data["id"]), version=data.get("version"))


@dataclass(frozen=True)
class InstalledExtension:
    """An extension as reported by the host."""

    id: str
    version: Optional[str] = None
    builtin: bool = False


class ExtensionHost(Protocol):
    """Capability interface over the editor's extension management."""

    async def list_installed(self) -> list[InstalledExtension]: ...

    async def install(self, extension_id: str) -> None: ...

    async def uninstall(self, extension_id: str) -> None: ...

    def watch_paths(self) -> list[Path]: ...


@dataclass
class ReconcileResult:
    """What a pull changed."""

    installed: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.installed or self.removed)


def write_extension_list(path: Path, records: Sequence[ExtensionRecord]) -> None:
    """Write the extension list as one JSON array, atomically."""
    atomic_write(path, json.dumps([r.to_dict() for r in records], indent=2) + "\n")


def read_extension_list(path: Path) -> Optional[list[ExtensionRecord]]:
    """
    Read the extension list; None if the file doesn't exist.

    Raises:
        ExtensionListError: If the file is not a JSON array of objects with a string id.
    """
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ExtensionListError(path, f"invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise ExtensionListError(path, "expected a JSON array")
    for index, item in enumerate(data):
        if not isinstance(item, dict) or not isinstance(item.get("id"), str) or not item["id"].strip():
            raise ExtensionListError(path, f"entry {index} has no extension id")
    return [ExtensionRecord.from_dict(item) for item in data]


class ExtensionReconciler:
    """Keeps the installed extensions and the synced extension list in step."""

    def __init__(self, config_store: ConfigStore, host: ExtensionHost, working_dir: Path):
        self.config_store = config_store
        self.host = host
        self.list_path = working_dir / EXTENSIONS_FILE

    async def push(self) -> bool:
        """
        Overwrite the synced list with the locally installed extensions.

        A host that cannot list its extensions leaves the previous list in
        place, so settings still sync on machines without the editor CLI.

        Returns:
            True if the list was written, False if extension sync is disabled
            or the installed extensions could not be listed.
        """
        if not self.config_store.get().extensions.sync:
            logger.debug("Extension sync is disabled")
            return False

        try:
            installed = await self.host.list_installed()
        except ExtensionOperationError as e:
            logger.warning("Cannot list installed extensions, keeping the synced list", error=str(e))
            return False
        records = sorted(
            (ExtensionRecord(ext.id, ext.version) for ext in installed if not ext.builtin),
            key=lambda r: r.key,
        )
        write_extension_list(self.list_path, records)
        logger.info("Extensions pushed to sync file", count=len(records))
        return True

    async def pull(self) -> ReconcileResult:
        """
        Install synced extensions that are missing and, with auto-remove,
        uninstall extensions that are not in the synced list.

        Individual install/uninstall failures are logged and skipped.
        """
        result = ReconcileResult()
        extensions = self.config_store.get().extensions
        if not extensions.sync:
            logger.debug("Extension sync is disabled")
            return result

        synced = read_extension_list(self.list_path)
        if synced is None:
            logger.info("No synced extensions found", path=str(self.list_path))
            return result

        try:
            installed = await self.host.list_installed()
        except ExtensionOperationError as e:
            logger.warning("Cannot list installed extensions, skipping reconciliation", error=str(e))
            return result
        installed_keys = {ext.id.lower() for ext in installed}
        synced_keys = {record.key for record in synced}

        missing = list(dict.fromkeys(record for record in synced if record.key not in installed_keys))
        if missing:
            logger.info("Installing missing extensions", ids=[r.id for r in missing])
        for record in missing:
            try:
                await self.host.install(record.id)
            except ExtensionOperationError as e:
                logger.warning("Error installing extension", id=record.id, error=str(e))
                result.failed.append(record.id)
                continue
            logger.info("Installed extension", id=record.id)
            result.installed.append(record.id)

        if not extensions.auto_remove:
            return result

        extra = [ext for ext in installed if not ext.builtin and ext.id.lower() not in synced_keys]
        if extra:
            logger.info("Removing extra extensions", ids=[ext.id for ext in extra])
        for ext in extra:
            try:
                await self.host.uninstall(ext.id)
            except ExtensionOperationError as e:
                logger.warning("Error removing extension", id=ext.id, error=str(e))
                result.failed.append(ext.id)
                continue
            logger.info("Removed extension", id=ext.id)
            result.removed.append(ext.id)

        return result
