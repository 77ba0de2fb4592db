from __future__ import annotations

from typing import BinaryIO

# External imports
from dissect.cstruct import Structure

# Local imports
from dissect.pdbview.exception import (
    FreeRootStreamError,
    InvalidPageSizeError,
    InvalidSignatureError,
    InvalidStartPageError,
    PageCountMismatchError,
    ReadError,
    TruncatedHeaderError,
    UnsupportedVersionError,
)
from dissect.pdbview.helpers.c_pdb import (
    FREE_STREAM_SIZE,
    PDB2_SIGNATURE,
    PDB7_SIGNATURE,
    VALID_PAGE_SIZES,
    VALID_START_PAGES,
    c_pdb,
)
from dissect.pdbview.helpers.utils import file_size

HEADER_SIZE = len(c_pdb.PDB2_HEADER)

# Only the signature up to and including its first NUL byte is significant
SIGNATURE_CHECK_SIZE = PDB2_SIGNATURE.index(b"\x00") + 1


def _read(fh: BinaryIO, length: int, what: str) -> bytes:
    try:
        data = fh.read(length)
    except OSError as e:
        raise ReadError(f"Failed to read {what}", e.errno) from e

    if len(data) != length:
        raise TruncatedHeaderError(f"Failed to read {what}: got {len(data)} of {length} bytes")

    return data


def validate_header(fh: BinaryIO) -> Structure:
    """Read and validate the header of a PDB 2.00 file.

    The file handle is expected to be positioned at the start of the file and is left right after the header, which
    is where the page indices of the root stream are stored.

    Args:
        fh: A file like object of a PDB file.

    Returns:
        The parsed `PDB2_HEADER` structure.
    """

    try:
        size = file_size(fh)
    except OSError as e:
        raise ReadError("Failed to read attributes", e.errno) from e

    signature = _read(fh, len(PDB2_SIGNATURE), "PDB signature")
    if signature[:SIGNATURE_CHECK_SIZE] != PDB2_SIGNATURE[:SIGNATURE_CHECK_SIZE]:
        if signature.startswith(PDB7_SIGNATURE):
            raise UnsupportedVersionError("MSF 7.00 PDB files are not supported")
        raise InvalidSignatureError("Invalid PDB signature")

    header = c_pdb.PDB2_HEADER(signature + _read(fh, HEADER_SIZE - len(signature), "PDB header"))

    if header.page_size not in VALID_PAGE_SIZES:
        raise InvalidPageSizeError(f"Invalid page size in PDB header: {header.page_size:#x}")

    if header.start_page not in VALID_START_PAGES:
        raise InvalidStartPageError(f"Invalid start page in PDB header: {header.start_page:#x}")

    # The page count is stored as a 16-bit value
    expected_pages = (size // header.page_size) & 0xFFFF
    if header.num_file_pages != expected_pages:
        raise PageCountMismatchError(
            f"Invalid number of pages in PDB header. Got: {header.num_file_pages}, expected: {expected_pages}"
        )

    if header.root_stream.stream_size == FREE_STREAM_SIZE:
        raise FreeRootStreamError("Root stream marked free")

    return header
