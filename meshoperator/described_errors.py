"""Errors that carry a human-readable description for the Istio CR status."""

from __future__ import annotations

import copy
from enum import IntEnum


class Level(IntEnum):
    """Severity of a described error."""

    ERROR = 0
    WARNING = 1


class DescribedError(Exception):
    """An error paired with a description to be shown on the Istio CR status.

    ``str()`` of the error yields the underlying error message, while
    :meth:`description` yields the status text, by default the description
    followed by the underlying message.
    """

    def __init__(self, err: BaseException | str, description: str) -> None:
        super().__init__(err, description)
        self.err = err
        self._description = description
        self.wrap_error = True
        self.level = Level.ERROR

    def disable_error_wrap(self) -> DescribedError:
        """Return a copy whose description omits the underlying message."""
        clone = copy.copy(self)
        clone.wrap_error = False
        return clone

    def set_warning(self) -> DescribedError:
        """Return a copy with warning level."""
        clone = copy.copy(self)
        clone.level = Level.WARNING
        return clone

    def description(self) -> str:
        """Text to be put into the status description."""
        if self.wrap_error:
            return f"{self._description}: {self.err}"
        return self._description

    def __str__(self) -> str:
        return str(self.err)