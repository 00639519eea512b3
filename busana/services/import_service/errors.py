"""Exceptions raised by the import service."""

from typing import Any


class ImportServiceError(Exception):
    """Base class for import failures reported to the caller."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ImportFileError(ImportServiceError):
    """The uploaded file cannot be imported at all. Nothing was written."""


class FileTooLargeError(ImportFileError):
    """The upload exceeds the configured size limit."""


class DuplicateImportError(ImportServiceError):
    """The file is byte-identical to an earlier import of the same type."""


class ImportAbortedError(ImportServiceError):
    """The import started but ended in a failed batch.

    ``details`` carries the batch id and the counts reached before the abort.
    """


class StorageUnavailableError(ImportAbortedError):
    """The database stopped accepting writes part-way through an import."""
