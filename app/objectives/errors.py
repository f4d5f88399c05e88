"""Per-operation failures. None of these leave a partial write behind."""

from __future__ import annotations


class ObjectiveError(Exception):
    """Base for outcomes surfaced to the caller."""


class MissingArguments(ObjectiveError):
    def __init__(self, missing: tuple[str, ...]):
        self.missing = missing
        super().__init__(f"Missing: {', '.join(missing)}")


class InvalidFrequency(ObjectiveError):
    def __init__(self, frequency: str):
        self.frequency = frequency
        super().__init__(f"Unknown frequency: {frequency}")


class ObjectiveNotFound(ObjectiveError):
    def __init__(self, user_id: str, name: str):
        self.user_id = user_id
        self.name = name
        super().__init__(f"Objective {name!r} not found for user {user_id}")


class ObjectiveExists(ObjectiveError):
    def __init__(self, user_id: str, name: str):
        self.user_id = user_id
        self.name = name
        super().__init__(f"Objective {name!r} already exists for user {user_id}")


class CooldownActive(ObjectiveError):
    def __init__(self, name: str, next_allowed: int):
        self.name = name
        self.next_allowed = next_allowed
        super().__init__(f"Objective {name!r} not eligible until {next_allowed}")


class StorageError(Exception):
    """Persistence failure. Fatal for the request that hit it."""


class NotificationError(Exception):
    """A direct message could not be delivered."""
