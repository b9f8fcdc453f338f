from .plugin import PluginRecord

__all__ = [
    "PluginRecord",
]
