"""Error taxonomy shared by the search, document and install layers."""

from __future__ import annotations


class StartkitError(Exception):
    """Base class for every error raised by startkit."""


class ValidationError(StartkitError, ValueError):
    """A query, pattern or category name was rejected before any work was done."""


class StructuralParseError(StartkitError, ValueError):
    """A configuration document could not be parsed."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.message = message
        self.line = line
        self.column = column
        if line:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class NotFoundError(StartkitError, LookupError):
    """An update or removal targeted a category block or entry that does not exist."""


class RegistryError(StartkitError, OSError):
    """The module registry could not resolve or fetch a module."""


class InstallError(StartkitError):
    """Installing or updating an asset failed."""
