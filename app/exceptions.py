class ThumbnailError(Exception):
    """Base class for failures inside the generation pipeline."""


class GenerationFailure(ThumbnailError):
    """Every image provider in the chain failed."""

    def __init__(self, message: str, attempts: list[str] | None = None):
        super().__init__(message)
        self.attempts = attempts or []


class StorageUploadFailure(ThumbnailError):
    """The asset store rejected or failed the upload."""


class PersistenceFailure(ThumbnailError):
    """The record store could not write a record."""
