from . import events, roles

__all__ = ["events", "roles"]
