"""Error types raised by the memory store and puzzle graph.

The core never exits the process; the CLI maps each error to a message on
stderr and its ``exit_code``.
"""

from __future__ import annotations


class EzerError(Exception):
    """Base class for all ezer failures."""

    exit_code = 1


class NotFoundError(EzerError):
    """Referenced id has no entry file."""

    def __init__(self, entry_id: str, kind: str = "entry") -> None:
        super().__init__(f"{kind} {entry_id} not found")
        self.entry_id = entry_id


class WrongTypeError(EzerError):
    """Operation applied to an entry of the wrong type."""

    def __init__(self, entry_id: str, expected: str, actual: str | None = None) -> None:
        message = f"{entry_id} is not a {expected}"
        if actual:
            message += f" (it is a {actual})"
        super().__init__(message)
        self.entry_id = entry_id
        self.expected = expected
        self.actual = actual


class MalformedEntryError(EzerError):
    """Entry file does not follow the header/body layout."""

    def __init__(self, entry_id: str, reason: str) -> None:
        super().__init__(f"Invalid memory file format for {entry_id}: {reason}")
        self.entry_id = entry_id
        self.reason = reason


class HardLimitExceededError(EzerError):
    """Note budget would be exceeded; nothing was written."""

    def __init__(self, total: int, limit: int) -> None:
        super().__init__(
            f"Cannot add note: total would be {total} bytes, "
            f"exceeds hard limit of {limit} bytes"
        )
        self.total = total
        self.limit = limit


class InvalidIdError(EzerError):
    """An id argument is malformed or cannot be used here."""

    exit_code = 2
