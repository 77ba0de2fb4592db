from __future__ import annotations


class Error(Exception):
    """Base exception for this module."""


class ReadError(Error):
    """Exception that occurs if reading from the underlying file fails.

    Args:
        message: Description of the failed operation.
        errno: The OS error code, ``None`` when the read simply came up short.
    """

    def __init__(self, message: str, errno: int | None = None):
        super().__init__(message if errno is None else f"{message}. Error: {errno}")
        self.errno = errno


class FormatError(Error):
    """Base exception for inconsistencies in the PDB container."""


class InvalidSignatureError(FormatError):
    """Exception that occurs if the magic in the header does not match."""


class UnsupportedVersionError(FormatError):
    """Exception that occurs if the container is a PDB format this module does not decode."""


class TruncatedHeaderError(FormatError):
    """Exception that occurs if the file is too short to contain its header."""


class InvalidPageSizeError(FormatError):
    """Exception that occurs if the page size in the header is not 1024, 2048 or 4096 bytes."""


class InvalidStartPageError(FormatError):
    """Exception that occurs if the start page in the header is not 2, 5 or 9."""


class PageCountMismatchError(FormatError):
    """Exception that occurs if the page count in the header does not match the file size."""


class FreeRootStreamError(FormatError):
    """Exception that occurs if the root stream is marked as free."""


class InvalidRootPageCountError(FormatError):
    """Exception that occurs if the root stream occupies no pages."""


class PageOutOfRangeError(FormatError):
    """Exception that occurs if a page index points beyond the last page of the file."""


class IncompleteStreamError(FormatError):
    """Exception that occurs if the pages of a stream can't supply its declared size."""


class InconsistentDirectorySizeError(FormatError):
    """Exception that occurs if the root directory doesn't fit in the root stream."""


class StreamTooSmallError(FormatError):
    """Exception that occurs if a stream is too small to contain its header."""


class InvalidDBISignatureError(FormatError):
    """Exception that occurs if the signature of the DBI stream header is not 0xFFFFFFFF."""
