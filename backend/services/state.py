"""Process-Wide Service State

Holds what would otherwise be static fields on the service classes: whether
the schema has been confirmed up to date, and which "no authorization
handler" warnings were already written. One instance is created at start-up
and handed to every service; tests create their own.

No lock is taken. Concurrent first callers may both run the migration check
or both log the warning; either way they converge on the same state.
"""


class ServiceState:
    __slots__ = ("database_is_migrated", "logged_handler_warnings")

    def __init__(self) -> None:
        self.database_is_migrated = False
        self.logged_handler_warnings: set[str] = set()

    def warn_once(self, key: str) -> bool:
        """True the first time ``key`` is seen."""
        if key in self.logged_handler_warnings:
            return False
        self.logged_handler_warnings.add(key)
        return True


_default_state: ServiceState | None = None


def default_state() -> ServiceState:
    global _default_state
    if _default_state is None:
        _default_state = ServiceState()
    return _default_state
