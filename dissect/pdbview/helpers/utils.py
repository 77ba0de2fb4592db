import io
import os
from contextlib import contextmanager
from typing import BinaryIO, Generator


@contextmanager
def retain_file_offset(
    fobj: BinaryIO, offset: int = None, whence: int = io.SEEK_SET
) -> Generator[BinaryIO, None, None]:
    """Function to retain the file offset while reading from another location in the binary object.

    Args:
        fobj: The file-like object we're reading from.
        offset: The offset to seek to before yielding, stays at the current position if not given.
        whence: The type of action we perform the seek operation with.

    Yields:
        The file-like object.
    """

    pos = fobj.tell()
    try:
        if offset is not None:
            fobj.seek(offset, whence)
        yield fobj
    finally:
        fobj.seek(pos)


def file_size(fobj: BinaryIO) -> int:
    """Return the size of a file-like object, restoring its position afterwards.

    Args:
        fobj: The file-like object to size.

    Returns:
        The size in bytes.
    """

    try:
        return os.fstat(fobj.fileno()).st_size
    except (AttributeError, OSError):
        # Not backed by a file descriptor, e.g. a BytesIO
        pass

    with retain_file_offset(fobj, 0, io.SEEK_END):
        return fobj.tell()
