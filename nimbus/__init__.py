import pluggy

hookimpl = pluggy.HookimplMarker("nimbus")
