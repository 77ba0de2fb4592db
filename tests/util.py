from __future__ import annotations

import struct
from io import BytesIO

from dissect.pdbview.helpers.c_pdb import FREE_STREAM_SIZE, PDB2_SIGNATURE, c_pdb
from dissect.pdbview.helpers.pagestream import pages


def pack_indices(indices: list[int]) -> bytes:
    return struct.pack(f"<{len(indices)}H", *indices)


def build_pdb(
    streams: list[bytes | None],
    page_size: int = 0x400,
    start_page: int = 9,
    *,
    signature: bytes = PDB2_SIGNATURE,
    num_file_pages: int | None = None,
    root_size: int | None = None,
    stream_count: int | None = None,
) -> bytes:
    """Build a PDB 2.00 file in memory.

    Every stream gets its own consecutive pages, ``None`` creates a free stream. Page 0 holds the header followed by
    the page indices of the root stream.
    """

    file_pages = [b""]

    def allocate(data: bytes, size: int) -> list[int]:
        indices = []
        for page in range(pages(size, page_size)):
            indices.append(len(file_pages))
            file_pages.append(data[page * page_size : (page + 1) * page_size])
        return indices

    descriptors = []
    page_table = []
    for data in streams:
        size = FREE_STREAM_SIZE if data is None else len(data)
        page_table.extend(allocate(data or b"", size))
        descriptors.append(c_pdb.DATA_STREAM_V2(stream_size=size, stream_page=[0, 0]).dumps())

    root = c_pdb.ROOT_STREAM_V2(dStreams=len(streams) if stream_count is None else stream_count, reserved=0).dumps()
    root += b"".join(descriptors) + pack_indices(page_table)
    root_pages = allocate(root, len(root))

    header = c_pdb.PDB2_HEADER(
        signature=signature,
        page_size=page_size,
        start_page=start_page,
        num_file_pages=len(file_pages) if num_file_pages is None else num_file_pages,
        root_stream=c_pdb.DATA_STREAM_V2(stream_size=len(root) if root_size is None else root_size, stream_page=[0, 0]),
    )
    file_pages[0] = header.dumps() + pack_indices(root_pages)

    return b"".join(page.ljust(page_size, b"\x00") for page in file_pages)


def build_fh(*args, **kwargs) -> BytesIO:
    return BytesIO(build_pdb(*args, **kwargs))


def pdb_info(version: int, signature: int = 0x3A2B1C0D, age: int = 1, guid: bytes | None = None) -> bytes:
    data = c_pdb.PDB_STREAM_HEADER(version=version, signature=signature, age=age).dumps()
    return data + (guid or b"")


def tpi_header(vers: int = 19961031, cb_hdr: int = 20, ti_min: int = 0x1000, ti_max: int = 0x1000, cb_gprec: int = 0):
    return c_pdb.TPI_HEADER(vers=vers, cbHdr=cb_hdr, tiMin=ti_min, tiMax=ti_max, cbGprec=cb_gprec).dumps()


def dbi_header(
    global_symbols: int, private_symbols: int, symbols: int, signature: int = 0xFFFFFFFF, version: int = 19970606
) -> bytes:
    return c_pdb.DBI_HEADER(
        signature=signature,
        version=version,
        age=1,
        global_symbols_stream=global_symbols,
        dll_version=0,
        private_symbols_stream=private_symbols,
        dll_build_number=0,
        symbols_stream=symbols,
    ).dumps()


def old_dbi_header(global_symbols: int, private_symbols: int, symbols: int) -> bytes:
    return c_pdb.OLD_DBI_HEADER(
        global_symbols_stream=global_symbols,
        private_symbols_stream=private_symbols,
        symbols_stream=symbols,
    ).dumps()
