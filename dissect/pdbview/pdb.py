from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator

# Local imports
from dissect.pdbview.exception import Error, ReadError
from dissect.pdbview.helpers.classifier import StreamInfo, classify_streams
from dissect.pdbview.helpers.diagnostics import Diagnostic, error
from dissect.pdbview.helpers.directory import StreamEntry, resolve_root
from dissect.pdbview.helpers.header import validate_header
from dissect.pdbview.helpers.pagestream import PageStore, PageStream, materialize

log = logging.getLogger(__name__)


class PDB2:
    """Class for parsing PDB 2.00 files.

    The header is validated and the root directory resolved on construction, the streams themselves are only read
    when they are requested or classified.

    Args:
        fh: A file like object of a PDB file, positioned at the start of the file.
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh
        self.header = validate_header(self.fh)
        self.store = PageStore(fh=self.fh, page_size=self.header.page_size, page_count=self.header.num_file_pages)
        self.root = resolve_root(self.fh, self.store, self.header)
        log.debug("Found %d streams with a page size of %#x", self.root.count, self.header.page_size)

    @property
    def streams(self) -> list[StreamEntry]:
        """Return the directory entries of all streams."""
        return self.root.streams

    def read_stream(self, index: int) -> bytes:
        """Return the full contents of the stream at ``index``."""
        entry = self.root.streams[index]
        return materialize(self.store, entry.size, entry.pages)

    def open_stream(self, index: int) -> PageStream:
        """Return a file-like object for the stream at ``index``.

        Free streams are opened as empty streams.
        """

        entry = self.root.streams[index]
        return PageStream(store=self.store, pages=entry.pages, size=entry.size if entry.pages else 0)

    def classify(self) -> Iterator[tuple[StreamInfo, list[Diagnostic]]]:
        """Classify every stream in directory order, see `classify_streams`."""
        return classify_streams(self.store, self.header, self.root)

    def diagnostics(self) -> list[Diagnostic]:
        """Return the diagnostics of all streams."""
        return [diagnostic for _, diagnostics in self.classify() for diagnostic in diagnostics]


class PDB:
    """Base class for parsing PDB files.

    Only the 2.00 container format is supported, other formats are rejected while validating the header.

    Args:
        fh: A file like object of a PDB file.
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh
        self.pdb = PDB2(fh=self.fh)
        self.header = self.pdb.header

    @classmethod
    def open(cls, pdb_file: str) -> PDB:
        """Open and parse the PDB file at the given location.

        The file is closed again if it can't be parsed.
        """

        try:
            fh = open(pdb_file, "rb")
        except OSError as e:
            raise ReadError(f"Cannot open file '{pdb_file}'", e.errno) from e

        try:
            return cls(fh)
        except BaseException:
            fh.close()
            raise

    def close(self) -> None:
        self.fh.close()

    def __enter__(self) -> PDB:
        return self

    def __exit__(self, *args) -> None:
        self.close()


@dataclass
class DecodeResult:
    path: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    error: Error | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode(pdb_file: str) -> DecodeResult:
    """Decode a single PDB file and gather its diagnostics.

    Errors that make the rest of the file unreadable end the decode and are added as the last diagnostic. The file
    is always closed before returning.

    Args:
        pdb_file: The location of the PDB file to decode.

    Returns:
        A `DecodeResult` with the diagnostics and the error that ended the decode, if any.
    """

    result = DecodeResult(path=pdb_file)

    try:
        with PDB.open(pdb_file) as pdb:
            for _, diagnostics in pdb.pdb.classify():
                result.diagnostics.extend(diagnostics)
    except Error as e:
        log.debug("Decoding %s failed", pdb_file, exc_info=True)
        result.error = e
        result.diagnostics.append(error(str(e)))

    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Dump the contents of PDB 2.00 files.")
    parser.add_argument("pdb", nargs="+", help="PDB file(s) to parse.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    args = parser.parse_args(argv)
    # Diagnostics are printed below, the log only adds to that in verbose mode
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.ERROR)

    failed = False
    for pdb_file in args.pdb:
        print(f"Parsing PDB: {pdb_file}")
        result = decode(pdb_file)

        for diagnostic in result.diagnostics:
            if diagnostic.is_error:
                print(f"{pdb_file}: {diagnostic}", file=sys.stderr)
            else:
                print(diagnostic)

        failed |= not result.ok

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
