from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, Union

# External imports
from dissect.cstruct import Structure

# Local imports
from dissect.pdbview.exception import FormatError, InvalidDBISignatureError, StreamTooSmallError
from dissect.pdbview.helpers import versions
from dissect.pdbview.helpers.c_pdb import (
    DBI_SIGNATURE,
    DBI_STREAM_INDEX,
    FPO_STREAM_INDEX,
    PDB_STREAM_INDEX,
    ROOT_STREAM_INDEX,
    TPI_STREAM_INDEX,
    c_pdb,
)
from dissect.pdbview.helpers.diagnostics import Diagnostic, error, info
from dissect.pdbview.helpers.directory import RootDirectory, StreamEntry
from dissect.pdbview.helpers.pagestream import PageStore, materialize


@dataclass(frozen=True)
class ClassifierState:
    """The information gathered from earlier streams that is needed to classify later ones.

    Attributes:
        pdb_version: The version from the PDB info stream, ``None`` while it hasn't been seen.
        global_symbols_stream: Stream index of the global symbols, taken from the DBI stream.
        private_symbols_stream: Stream index of the private symbols, taken from the DBI stream.
        symbols_stream: Stream index of the symbol records, taken from the DBI stream.
    """

    pdb_version: int | None = None
    global_symbols_stream: int | None = None
    private_symbols_stream: int | None = None
    symbols_stream: int | None = None

    @property
    def effective_pdb_version(self) -> int:
        # Files without a PDB info stream are treated as written by VC 2.0
        return versions.PDB_VERSION_VC2 if self.pdb_version is None else self.pdb_version

    @property
    def symbol_streams(self) -> list[tuple[int | None, str]]:
        return [
            (self.global_symbols_stream, "Global symbols"),
            (self.private_symbols_stream, "Private symbols"),
            (self.symbols_stream, "Symbols"),
        ]


@dataclass
class EmptyStream:
    index: int


@dataclass
class InvalidStream:
    index: int
    error: FormatError


@dataclass
class RootStream:
    index: int
    size: int
    matches_header: bool


@dataclass
class PdbInfoStream:
    index: int
    version: int
    signature: int
    age: int
    release: str | None
    guid: Structure | None = None

    @property
    def pdb_id(self) -> str | None:
        if self.guid is None:
            return None

        data4 = "".join(f"{byte:02X}" for byte in self.guid.Data4)
        return f"{self.guid.Data1:08X}{self.guid.Data2:04X}{self.guid.Data3:04X}{data4}{self.age}"


@dataclass
class TypeInfoStream:
    index: int
    version: int
    header_size: int
    min_type_id: int
    max_type_id: int
    payload_size: int
    release: str | None


@dataclass
class DebugInfoStream:
    index: int
    version: int | None
    age: int | None
    global_symbols_stream: int
    private_symbols_stream: int
    symbols_stream: int
    release: str | None = None


@dataclass
class FpoStream:
    index: int


@dataclass
class SymbolStream:
    index: int
    role: str


@dataclass
class UnclassifiedStream:
    index: int


StreamInfo = Union[
    EmptyStream,
    InvalidStream,
    RootStream,
    PdbInfoStream,
    TypeInfoStream,
    DebugInfoStream,
    FpoStream,
    SymbolStream,
    UnclassifiedStream,
]


def _parse_header(struct: type, data: bytes, name: str) -> Structure:
    if len(data) < len(struct):
        raise StreamTooSmallError(f"{name} stream too small to contain its header")
    return struct(data)


def _classify_root(entry: StreamEntry, root_size: int, diagnostics: list[Diagnostic]) -> RootStream:
    matches = entry.size == root_size
    if not matches:
        diagnostics.append(error("Mismatching root stream and copy root stream sizes", entry.index))
    return RootStream(index=entry.index, size=entry.size, matches_header=matches)


def _classify_pdb_info(
    entry: StreamEntry, data: bytes, state: ClassifierState, diagnostics: list[Diagnostic]
) -> tuple[PdbInfoStream, ClassifierState]:
    header = _parse_header(c_pdb.PDB_STREAM_HEADER, data, "PDB header")
    diagnostics.append(info(versions.describe_pdb_version(header.version), entry.index))

    state = replace(state, pdb_version=header.version)
    stream = PdbInfoStream(
        index=entry.index,
        version=header.version,
        signature=header.signature,
        age=header.age,
        release=versions.pdb_release(header.version),
    )

    if header.version > versions.PDB_VERSION_VC7_PREVIEW:
        if len(data) < len(c_pdb.PDB_STREAM_HEADER_EX):
            diagnostics.append(error("PDB header stream too small to contain its extended header", entry.index))
        else:
            stream.guid = c_pdb.PDB_STREAM_HEADER_EX(data).guid
            diagnostics.append(info(f"PDB ID: {stream.pdb_id}", entry.index))

    return stream, state


def _classify_tpi(entry: StreamEntry, data: bytes, diagnostics: list[Diagnostic]) -> TypeInfoStream:
    header = _parse_header(c_pdb.TPI_HEADER, data, "TPI")
    diagnostics.append(info(versions.describe_tpi_version(header.vers), entry.index))

    stream = TypeInfoStream(
        index=entry.index,
        version=header.vers,
        header_size=header.cbHdr,
        min_type_id=header.tiMin,
        max_type_id=header.tiMax,
        payload_size=header.cbGprec,
        release=versions.tpi_release(header.vers),
    )

    if header.cbGprec == 0:
        if header.tiMin != header.tiMax:
            diagnostics.append(
                info("Corrupted header. No types information space whereas there are entries", entry.index)
            )
        else:
            diagnostics.append(info("No types information stored", entry.index))
        return stream

    diagnostics.append(info(f"Min Type Info: {header.tiMin}", entry.index))
    diagnostics.append(info(f"Max Type Info: {header.tiMax}", entry.index))

    if header.cbHdr + header.cbGprec > entry.size:
        diagnostics.append(error("TPI stream isn't big enough to store types information", entry.index))

    return stream


def _classify_dbi(
    entry: StreamEntry, data: bytes, state: ClassifierState, diagnostics: list[Diagnostic]
) -> tuple[DebugInfoStream, ClassifierState]:
    if state.effective_pdb_version > versions.PDB_VERSION_VC4:
        header = _parse_header(c_pdb.DBI_HEADER, data, "DBI")
        if header.signature != DBI_SIGNATURE:
            raise InvalidDBISignatureError(f"Invalid signature for DBI stream: {header.signature:#x}")

        diagnostics.append(info(versions.describe_dbi_version(header.version), entry.index))
        version, age, release = header.version, header.age, versions.dbi_release(header.version)
    else:
        header = _parse_header(c_pdb.OLD_DBI_HEADER, data, "DBI")
        version, age, release = None, None, None

    state = replace(
        state,
        global_symbols_stream=header.global_symbols_stream,
        private_symbols_stream=header.private_symbols_stream,
        symbols_stream=header.symbols_stream,
    )
    stream = DebugInfoStream(
        index=entry.index,
        version=version,
        age=age,
        global_symbols_stream=header.global_symbols_stream,
        private_symbols_stream=header.private_symbols_stream,
        symbols_stream=header.symbols_stream,
        release=release,
    )
    return stream, state


def _is_symbol_stream(directory: RootDirectory, index: int | None) -> bool:
    """A symbol stream index only counts if it is in the directory and past the fixed stream indices."""
    return directory.is_valid_index(index) and index > FPO_STREAM_INDEX


def _classify_other(
    entry: StreamEntry, directory: RootDirectory, state: ClassifierState, diagnostics: list[Diagnostic]
) -> SymbolStream | UnclassifiedStream:
    for stream_index, role in state.symbol_streams:
        if _is_symbol_stream(directory, stream_index) and entry.index == stream_index:
            diagnostics.append(info(f"{role} stream found", entry.index))
            return SymbolStream(index=entry.index, role=role)

    return UnclassifiedStream(index=entry.index)


def classify_stream(
    entry: StreamEntry,
    data: bytes,
    directory: RootDirectory,
    root_size: int,
    state: ClassifierState,
) -> tuple[StreamInfo, ClassifierState, list[Diagnostic]]:
    """Classify and validate a single stream from its materialized contents.

    Args:
        entry: The directory entry of the stream.
        data: The contents of the stream.
        directory: The root directory the entry belongs to.
        root_size: The root stream size from the PDB header.
        state: The state gathered from the streams classified before this one.

    Returns:
        The classified stream, the state to use for the next stream and the diagnostics for this stream.
    """

    diagnostics = []

    try:
        if entry.index == ROOT_STREAM_INDEX:
            result = _classify_root(entry, root_size, diagnostics)
        elif entry.index == PDB_STREAM_INDEX:
            result, state = _classify_pdb_info(entry, data, state, diagnostics)
        elif entry.index == TPI_STREAM_INDEX:
            result = _classify_tpi(entry, data, diagnostics)
        elif entry.index == DBI_STREAM_INDEX:
            result, state = _classify_dbi(entry, data, state, diagnostics)
        elif entry.index == FPO_STREAM_INDEX:
            diagnostics.append(info("Frame pointer omission stream found", entry.index))
            result = FpoStream(index=entry.index)
        else:
            result = _classify_other(entry, directory, state, diagnostics)
    except FormatError as e:
        diagnostics.append(error(str(e), entry.index))
        result = InvalidStream(index=entry.index, error=e)

    return result, state, diagnostics


def classify_streams(
    store: PageStore, header: Structure, directory: RootDirectory
) -> Iterator[tuple[StreamInfo, list[Diagnostic]]]:
    """Materialize and classify every stream in the root directory, in directory order.

    Errors in a single stream are reported as diagnostics of that stream, after which the next stream is processed.
    A `ReadError` aborts the whole iteration.

    Args:
        store: The `PageStore` of the PDB file.
        header: The validated `PDB2_HEADER`.
        directory: The resolved `RootDirectory`.

    Yields:
        The classified stream together with its diagnostics.
    """

    state = ClassifierState()
    root_size = header.root_stream.stream_size

    for entry in directory.streams:
        if not entry.pages:
            yield EmptyStream(index=entry.index), []
            continue

        try:
            data = materialize(store, entry.size, entry.pages)
        except FormatError as e:
            yield InvalidStream(index=entry.index, error=e), [error(f"Stream {entry.index}: {e}", entry.index)]
            continue

        result, state, diagnostics = classify_stream(entry, data, directory, root_size, state)
        yield result, diagnostics


def classify_all(store: PageStore, header: Structure, directory: RootDirectory) -> list[Diagnostic]:
    """Return the diagnostics of all streams in the root directory."""
    return [diagnostic for _, diagnostics in classify_streams(store, header, directory) for diagnostic in diagnostics]
