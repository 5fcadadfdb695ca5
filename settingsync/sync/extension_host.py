# SettingSync Editor Extension Host
# ExtensionHost implementation driving the editor's command line interface

import asyncio
import shutil
from pathlib import Path
from typing import Optional

from settingsync.errors import ExtensionOperationError
from settingsync.logger import get_logger
from settingsync.sync.extensions import InstalledExtension
from settingsync.utils.platform import get_editor_executable, get_extensions_registry

logger = get_logger(__name__)


class EditorCliHost:
    """
    Lists, installs and removes extensions through ``code``-style CLIs.

    Built-in extensions are never reported by ``--list-extensions``, so
    every listed extension is user-installed.
    """

    def __init__(self, editor: str = "code", executable: Optional[str] = None):
        """
        Initialize the host.

        Args:
            editor: Editor key (code, code-insiders, cursor, codium).
            executable: Explicit path to the CLI, overriding the lookup.
        """
        self.editor = editor
        self.executable = executable or get_editor_executable(editor)

    async def _run(self, *args: str) -> str:
        """Run the editor CLI and return stdout."""
        resolved = shutil.which(self.executable) or self.executable
        try:
            proc = await asyncio.create_subprocess_exec(
                resolved,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RuntimeError(f"Cannot run {self.executable}: {e}") from e

        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise RuntimeError(stderr.decode("utf-8", errors="replace").strip() or f"exit code {proc.returncode}")
        return stdout.decode("utf-8", errors="replace")

    async def list_installed(self) -> list[InstalledExtension]:
        try:
            output = await self._run("--list-extensions", "--show-versions")
        except RuntimeError as e:
            raise ExtensionOperationError(None, "list", str(e)) from e

        extensions: list[InstalledExtension] = []
        for line in output.splitlines():
            line = line.strip()
            if not line:
                continue
            extension_id, _, version = line.partition("@")
            extensions.append(InstalledExtension(id=extension_id, version=version or None))
        logger.debug("Current extensions", count=len(extensions))
        return extensions

    async def install(self, extension_id: str) -> None:
        try:
            await self._run("--install-extension", extension_id)
        except RuntimeError as e:
            raise ExtensionOperationError(extension_id, "install", str(e)) from e

    async def uninstall(self, extension_id: str) -> None:
        try:
            await self._run("--uninstall-extension", extension_id)
        except RuntimeError as e:
            raise ExtensionOperationError(extension_id, "uninstall", str(e)) from e

    def watch_paths(self) -> list[Path]:
        """Files the editor rewrites when the installed set changes."""
        return [get_extensions_registry(self.editor)]
