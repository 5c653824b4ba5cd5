"""
DocxCleaner Errors

Only ArchiveError is fatal to a run. Everything else is recorded against the
pass (or image, or option) that raised it and the pipeline carries on.
"""


class DocxCleanerError(Exception):
    """Base class for all cleaner errors."""


class ArchiveError(DocxCleanerError):
    """The package itself cannot be opened or written."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ArchiveOpenError(ArchiveError):
    pass


class ArchivePersistError(ArchiveError):
    pass


class MalformedPartError(DocxCleanerError):
    """A part that should hold XML does not parse."""

    def __init__(self, part_name: str, reason: str = ""):
        self.part_name = part_name
        message = f"Malformed XML in '{part_name}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class UnsupportedOperationError(DocxCleanerError):
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Operation not supported: {operation}")


class MissingCapabilityError(DocxCleanerError):
    """The image codec cannot handle a given media part."""

    def __init__(self, part_name: str, reason: str = ""):
        self.part_name = part_name
        message = f"Cannot recompress '{part_name}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidConfigurationError(DocxCleanerError):
    def __init__(self, option: str, value, fallback=None):
        self.option = option
        self.value = value
        self.fallback = fallback
        message = f"Invalid value for '{option}': {value!r}"
        if fallback is not None:
            message += f" (using default {fallback})"
        super().__init__(message)
