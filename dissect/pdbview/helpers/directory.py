from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

# External imports
from dissect.cstruct import Structure

# Local imports
from dissect.pdbview.exception import (
    IncompleteStreamError,
    InconsistentDirectorySizeError,
    InvalidRootPageCountError,
    ReadError,
)
from dissect.pdbview.helpers.c_pdb import c_pdb
from dissect.pdbview.helpers.pagestream import PageStore, pages
from dissect.pdbview.helpers.utils import retain_file_offset

ROOT_HEADER_SIZE = len(c_pdb.ROOT_STREAM_V2)
DESCRIPTOR_SIZE = len(c_pdb.DATA_STREAM_V2)
PAGE_INDEX_SIZE = len(c_pdb.uint16)


@dataclass
class StreamEntry:
    index: int
    size: int
    pages: list[int]


@dataclass
class RootDirectory:
    count: int
    reserved: int
    streams: list[StreamEntry]

    def __len__(self) -> int:
        return self.count

    def is_valid_index(self, index: int | None) -> bool:
        return index is not None and 0 <= index < self.count


def read_root_stream(fh: BinaryIO, store: PageStore, header: Structure) -> bytes:
    """Read the root stream, whose page indices directly follow the PDB header.

    Every page index is read at the current file position, after which the page itself is read and the file
    position restored so the next index can be read.

    Args:
        fh: A file like object of a PDB file, positioned right after the header.
        store: The `PageStore` of the PDB file.
        header: The validated `PDB2_HEADER`.

    Returns:
        The contents of the root stream.
    """

    root_size = header.root_stream.stream_size
    root_pages = pages(size=root_size, page_size=header.page_size)
    if root_pages == 0:
        raise InvalidRootPageCountError("Invalid number of root pages")

    if root_size > store.page_count * store.page_size:
        raise InvalidRootPageCountError(
            f"Root stream of {root_size} bytes doesn't fit in {store.page_count} pages of {store.page_size:#x} bytes"
        )

    chunks = []
    remaining = root_size

    for page in range(root_pages):
        try:
            raw = fh.read(PAGE_INDEX_SIZE)
        except OSError as e:
            raise ReadError(f"Failed to read root page {page}", e.errno) from e

        if len(raw) != PAGE_INDEX_SIZE:
            raise ReadError(f"Failed to read root page {page}")

        page_index = c_pdb.uint16(raw)
        to_read = min(header.page_size, remaining)

        with retain_file_offset(fh):
            chunks.append(store.read_page_span(page_index, 0, to_read))

        remaining -= to_read

    if remaining != 0:
        raise IncompleteStreamError("Inconsistent root stream read")

    return b"".join(chunks)


def parse_root_directory(data: bytes, page_size: int) -> RootDirectory:
    """Parse the root directory from the contents of the root stream.

    Args:
        data: The contents of the root stream.
        page_size: The page size of the PDB file.

    Returns:
        A `RootDirectory` with the size and page indices of every stream.
    """

    if len(data) < ROOT_HEADER_SIZE:
        raise InconsistentDirectorySizeError("Root stream too small to contain its header")

    root = c_pdb.ROOT_STREAM_V2(data)

    table_offset = ROOT_HEADER_SIZE + root.dStreams * DESCRIPTOR_SIZE
    if table_offset > len(data):
        raise InconsistentDirectorySizeError(
            f"Inconsistent root stream size: {root.dStreams} streams don't fit in {len(data)} bytes"
        )

    descriptors = []
    if root.dStreams:
        descriptors = c_pdb.DATA_STREAM_V2[root.dStreams](data[ROOT_HEADER_SIZE:table_offset])

    streams = []
    offset = table_offset
    for index, descriptor in enumerate(descriptors):
        page_count = pages(size=descriptor.stream_size, page_size=page_size)
        end = offset + page_count * PAGE_INDEX_SIZE
        if end > len(data):
            raise InconsistentDirectorySizeError(f"Page index table too small for stream {index}")

        page_list = list(c_pdb.uint16[page_count](data[offset:end])) if page_count else []
        streams.append(StreamEntry(index=index, size=descriptor.stream_size, pages=page_list))
        offset = end

    return RootDirectory(count=root.dStreams, reserved=root.reserved, streams=streams)


def resolve_root(fh: BinaryIO, store: PageStore, header: Structure) -> RootDirectory:
    """Read and parse the root directory of a PDB 2.00 file.

    Args:
        fh: A file like object of a PDB file, positioned right after the header.
        store: The `PageStore` of the PDB file.
        header: The validated `PDB2_HEADER`.

    Returns:
        The parsed `RootDirectory`.
    """

    return parse_root_directory(read_root_stream(fh, store, header), header.page_size)
