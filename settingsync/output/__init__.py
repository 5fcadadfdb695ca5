# SettingSync Output Module
# Rich console output and the notifier protocol

from settingsync.output.console import Console, create_console
from settingsync.output.notifier import Notifier

__all__ = [
    "Console",
    "create_console",
    "Notifier",
]
