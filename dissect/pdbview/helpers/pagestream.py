from __future__ import annotations

from typing import BinaryIO, Sequence

# External imports
from dissect.util.stream import AlignedStream

# Local imports
from dissect.pdbview.exception import IncompleteStreamError, PageOutOfRangeError, ReadError
from dissect.pdbview.helpers.c_pdb import FREE_STREAM_SIZE


def pages(size: int, page_size: int) -> int:
    """Return the number of page slots a stream occupies in the page index table.

    A stream always reserves one slot more than ``size // page_size``, even when its size is an exact multiple of
    the page size. Empty and free streams don't occupy any slots.

    Args:
        size: The size of the stream.
        page_size: The page size of the PDB file.

    Returns:
        The number of pages as an `int` type.
    """

    if size == 0 or size == FREE_STREAM_SIZE:
        return 0

    return size // page_size + 1


class PageStore:
    """Raw access to the pages of a PDB file.

    Args:
        fh: A file handle to a PDB file.
        page_size: Size of a page.
        page_count: The number of pages within the PDB file.
    """

    def __init__(self, fh: BinaryIO, page_size: int, page_count: int):
        self.fh = fh
        self.page_size = page_size
        self.page_count = page_count

    def read_page_span(self, page_index: int, offset: int = 0, length: int | None = None) -> bytes:
        """Read ``length`` bytes from a single page, starting at ``offset`` within that page.

        The file position is left behind the data that was read.

        Args:
            page_index: The index of the page to read from.
            offset: Offset within the page.
            length: Amount of bytes to read, the rest of the page if not given.

        Returns:
            The `bytes` read from the page.
        """

        if page_index >= self.page_count:
            raise PageOutOfRangeError(f"Page {page_index} beyond maximum page {self.page_count - 1}")

        if length is None:
            length = self.page_size - offset

        if offset < 0 or length < 0 or offset + length > self.page_size:
            raise ValueError(f"Span {offset:#x}+{length:#x} does not fit in a page of {self.page_size:#x} bytes")

        position = page_index * self.page_size + offset
        try:
            self.fh.seek(position)
            data = self.fh.read(length)
        except OSError as e:
            raise ReadError(f"Failed to read page {page_index} at {position}", e.errno) from e

        if len(data) != length:
            raise ReadError(f"Short read of page {page_index} at {position}: got {len(data)} of {length} bytes")

        return data


def materialize(store: PageStore, size: int, page_list: Sequence[int]) -> bytes:
    """Reconstruct the contents of a stream from its pages.

    Args:
        store: The `PageStore` of the PDB file.
        size: The declared size of the stream.
        page_list: The page indices of the stream, in order.

    Returns:
        Exactly ``size`` bytes of stream data.
    """

    if not page_list:
        return b""

    chunks = []
    remaining = size

    for page_index in page_list:
        to_read = min(store.page_size, remaining)
        chunks.append(store.read_page_span(page_index, 0, to_read))
        remaining -= to_read

    if remaining != 0:
        raise IncompleteStreamError(f"Stream misses {remaining} of its {size} bytes")

    return b"".join(chunks)


class PageStream(AlignedStream):
    """File-like access to a stream within a PDB file. A PDB file is basically a file that
    contains multiple other files in the form of streams.

    PDB 2.00 layout of the fixed stream indices:

    STREAM 0        = Root copy                   - Copy of the previous root directory
    STREAM 1        = Pdb Header                  - Version information, and information to connect this PDB to the EXE
    STREAM 2        = Tpi (Type Manager)          - All the types used in the executable.
    STREAM 3        = Dbi (Debug Manager)         - Holds section contributions, and the symbol stream indices
    STREAM 5        = FPO                         - Frame pointer omission data

    Args:
        store: The `PageStore` of the PDB file.
        pages: The page indices of the stream.
        size: Size of the stream.
    """

    def __init__(self, store: PageStore, pages: Sequence[int], size: int) -> None:
        super().__init__(size=size, align=store.page_size)
        self.store = store
        self.pages = pages
        self.page_size = store.page_size

    def _read(self, offset: int, length: int) -> bytes:
        result = []

        while length > 0:
            page_num, offset_in_page = divmod(offset, self.page_size)
            if page_num >= len(self.pages):
                break

            read_length = min(self.page_size - offset_in_page, length)
            result.append(self.store.read_page_span(self.pages[page_num], offset_in_page, read_length))

            offset += read_length
            length -= read_length

        return b"".join(result)
