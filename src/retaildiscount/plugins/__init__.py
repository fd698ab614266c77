"""Plugin system: pluggy hooks fed by the transactional event outbox."""

from retaildiscount.plugins.hookspecs import hookspec
from retaildiscount.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookspec"]
