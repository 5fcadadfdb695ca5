# SettingSync Notifier Protocol
# The user-facing notification surface the sync services report through

from pathlib import Path
from typing import Optional, Protocol


class Notifier(Protocol):
    """
    Notification and prompt surface.

    ``error`` may offer actions; it resolves to the chosen action, or None
    when the user dismissed the message or no choice could be made.
    """

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    async def error(self, message: str, *actions: str) -> Optional[str]: ...

    def open_folder(self, path: Path) -> None: ...
