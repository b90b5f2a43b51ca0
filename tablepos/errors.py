"""Exceptions raised by the order engine and its collaborators."""

from __future__ import annotations


class TablePosError(Exception):
    """Base class; the message is meant to be shown to the operator."""


class ValidationError(TablePosError, ValueError):
    """Input rejected before anything was written."""


class TableBusyError(TablePosError):
    """A table is not Available for the requested operation."""


class SessionLatchedError(TablePosError):
    """The table session observed a settlement and no longer accepts edits."""


class OrderStateError(TablePosError):
    """The bound order is not in a status that allows the operation."""


class PersistenceError(TablePosError):
    """The document store failed to read or write."""
