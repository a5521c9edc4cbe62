# Lightweight package init: avoid eager imports that can fail at console start.
__all__ = ["Videohub", "DeviceState"]

def __getattr__(name):
    if name == "Videohub":
        from .devices.videohub import Videohub as _Videohub
        return _Videohub
    if name == "DeviceState":
        from .devices.state import DeviceState as _DeviceState
        return _DeviceState
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
