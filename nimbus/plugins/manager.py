import pluggy

from nimbus.plugins import hookspecs
from nimbus.providers.registry import load_all_backends


def create_plugin_manager() -> pluggy.PluginManager:
    """Create a plugin manager with nimbus hookspecs and every built-in backend.

    External packages can add telemetry listeners or backends by registering
    hooks under the "nimbus" setuptools entry point group. This should be
    called once, at the outermost composition root.
    """
    pm = pluggy.PluginManager("nimbus")
    pm.add_hookspecs(hookspecs)
    pm.load_setuptools_entrypoints("nimbus")
    load_all_backends(pm)
    return pm
