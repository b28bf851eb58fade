"""
Unified hierarchy of error types. These inherit from standard errors like
ValueError and NotADirectoryError but are more fine-grained.

Every fallible operation surfaces one of these to the caller with a descriptive
message, so `str(e)` is suitable for passing back across a request boundary.
"""

from typing import Tuple, Type


class PadstoreError(ValueError):
    """Base class for padstore errors."""

    pass


class SelfExplanatoryError(PadstoreError):
    """Common errors that arise from 'normal' problems that are largely self-explanatory,
    i.e., no stack trace should be necessary when reporting to the user."""

    pass


class InvalidInput(SelfExplanatoryError):
    """Raised when the wrong kind of input is given to an operation."""

    pass


class OutsideRoot(InvalidInput):
    """Raised when a path resolves outside of the workspace root."""

    pass


class InvalidRoot(InvalidInput):
    """Raised when the workspace root itself can't be resolved."""

    pass


class InvalidPath(InvalidInput):
    """Raised when a path has no usable parent or file name."""

    pass


class NotADirectory(InvalidInput, NotADirectoryError):
    """Raised when a directory was expected."""

    pass


class NotAFile(InvalidInput):
    """Raised when a regular file was expected."""

    pass


class UnsupportedFileType(InvalidInput):
    """Raised when a file's extension is on the blocked list."""

    pass


class InvalidState(SelfExplanatoryError):
    """Raised when a service is not in a valid state for an operation."""

    pass


class SetupError(SelfExplanatoryError):
    """Raised when something in the environment isn't set up right."""

    pass


class WatcherInitFailure(SetupError):
    """Raised when the native filesystem watcher could not be created."""

    pass


class IoFailure(SelfExplanatoryError, OSError):
    """Raised for permission, missing path, or disk errors mid-operation.
    Wraps the underlying system error text."""

    pass


class MissingPath(IoFailure, FileNotFoundError):
    """Raised when the path an operation needs doesn't exist."""

    pass


def io_failure(message: str, error: OSError) -> IoFailure:
    """
    Wrap an `OSError` as an `IoFailure`, keeping "not found" distinguishable.
    """
    if isinstance(error, FileNotFoundError):
        return MissingPath(message)
    return IoFailure(message)


class SkippableError(SelfExplanatoryError):
    """Errors that are skippable and shouldn't abort the entire operation."""

    pass


class ContentError(SkippableError):
    """Raised when file content is not appropriate for an operation."""

    pass


class ArchiveCorrupt(ContentError):
    """Raised when an archive can't be opened or one of its entries can't be read."""

    pass


class DataNotFound(ContentError):
    """Raised when an archive has none of the recognized body entries."""

    pass


NONFATAL_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    SelfExplanatoryError,
    FileNotFoundError,
    PermissionError,
)
"""Exceptions that are not fatal and usually don't merit a full stack trace."""


def is_fatal(exception: Exception) -> bool:
    for e in NONFATAL_EXCEPTIONS:
        if isinstance(exception, e):
            return False
    return True


## Tests


def test_error_hierarchy():
    assert issubclass(OutsideRoot, InvalidInput)
    assert issubclass(NotADirectory, NotADirectoryError)
    assert issubclass(IoFailure, OSError)
    assert issubclass(MissingPath, FileNotFoundError)
    assert isinstance(io_failure("gone", FileNotFoundError()), MissingPath)
    assert not isinstance(io_failure("denied", PermissionError()), MissingPath)
    assert issubclass(DataNotFound, SkippableError)

    assert not is_fatal(OutsideRoot("path is outside workspace root"))
    assert not is_fatal(FileNotFoundError("gone"))
    assert is_fatal(KeyError("oops"))
