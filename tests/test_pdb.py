import errno
import logging
from io import BytesIO
from pathlib import Path

import pytest

from dissect.pdbview import PDB, decode
from dissect.pdbview.exception import InvalidSignatureError, ReadError
from dissect.pdbview.helpers.c_pdb import PDB2_SIGNATURE
from dissect.pdbview import pdb as pdb_module
from dissect.pdbview.pdb import main

from .util import build_fh, build_pdb, dbi_header, pdb_info, tpi_header

STREAMS = [
    b"",
    pdb_info(20000404, age=2, guid=bytes(range(16))),
    tpi_header(),
    dbi_header(6, 7, 8, version=19990903),
    b"",
    b"fpo",
    b"g" * 0x500,
    b"p",
    b"s",
]


@pytest.fixture
def pdb_path(tmp_path: Path) -> Path:
    path = tmp_path / "test.pdb"
    path.write_bytes(build_pdb(STREAMS))
    return path


@pytest.fixture
def bad_path(tmp_path: Path) -> Path:
    path = tmp_path / "bad.pdb"
    path.write_bytes(build_pdb(STREAMS, signature=PDB2_SIGNATURE[:41] + b"H" + PDB2_SIGNATURE[42:]))
    return path


def test_pdb_header() -> None:
    pdb_file = PDB(build_fh(STREAMS))
    assert pdb_file.header.signature == PDB2_SIGNATURE
    assert pdb_file.pdb.root.count == len(STREAMS)
    assert len(pdb_file.pdb.streams) == pdb_file.pdb.root.count


def test_pdb_invalid_signature() -> None:
    with pytest.raises(InvalidSignatureError):
        PDB(build_fh(STREAMS, signature=b"\x00" * 44))


def test_pdb_read_stream() -> None:
    pdb = PDB(build_fh(STREAMS)).pdb

    for index, data in enumerate(STREAMS):
        assert pdb.read_stream(index) == data


def test_pdb_open_stream() -> None:
    pdb = PDB(build_fh(STREAMS)).pdb

    stream = pdb.open_stream(6)
    stream.seek(0x3FE)
    assert stream.read(4) == b"gggg"
    assert len(pdb.open_stream(6).read()) == 0x500
    assert pdb.open_stream(0).read() == b""


def test_pdb_open_closes_file(pdb_path: Path) -> None:
    with PDB.open(str(pdb_path)) as pdb_file:
        fh = pdb_file.fh
        assert not fh.closed
    assert fh.closed


def test_decode(pdb_path: Path) -> None:
    result = decode(str(pdb_path))

    assert result.ok
    assert result.error is None
    assert [diagnostic.message for diagnostic in result.diagnostics] == [
        "PDB file from VisualC++ 7.0",
        "PDB ID: 03020100050407060809" + "0A0B0C0D0E0F" + "2",
        "TPI stream from VisualC++ 6.0",
        "No types information stored",
        "DBI stream from VisualC++ 7.0",
        "Frame pointer omission stream found",
        "Global symbols stream found",
        "Private symbols stream found",
        "Symbols stream found",
    ]


def test_decode_empty_directory(tmp_path: Path) -> None:
    path = tmp_path / "empty.pdb"
    path.write_bytes(build_pdb([], page_size=0x1000, start_page=9))

    result = decode(str(path))
    assert result.ok
    assert result.diagnostics == []


def test_decode_invalid_signature(bad_path: Path) -> None:
    result = decode(str(bad_path))

    assert not result.ok
    assert isinstance(result.error, InvalidSignatureError)
    assert [diagnostic.message for diagnostic in result.diagnostics] == ["Invalid PDB signature"]
    assert result.diagnostics[0].is_error


def test_decode_missing_file(tmp_path: Path) -> None:
    result = decode(str(tmp_path / "missing.pdb"))

    assert isinstance(result.error, ReadError)
    assert result.error.errno is not None
    assert len(result.diagnostics) == 1


def test_main(pdb_path: Path, bad_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert main([str(bad_path), str(pdb_path)]) == 1

    out, err = capsys.readouterr()
    assert f"Parsing PDB: {bad_path}" in out
    assert f"Parsing PDB: {pdb_path}" in out
    assert "Frame pointer omission stream found" in out
    assert err.strip() == f"{bad_path}: Invalid PDB signature"


def test_main_success(pdb_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert main([str(pdb_path)]) == 0

    out, err = capsys.readouterr()
    assert "PDB file from VisualC++ 7.0" in out
    assert err == ""


class FailingFile(BytesIO):
    """A file that fails with an I/O error when read at ``fail_offset``."""

    def __init__(self, data: bytes, fail_offset: int):
        super().__init__(data)
        self.fail_offset = fail_offset

    def read(self, size: int = -1) -> bytes:
        if self.tell() == self.fail_offset:
            raise OSError(errno.EIO, "Input/output error")
        return super().read(size)


def test_decode_read_error_keeps_earlier_diagnostics(monkeypatch: pytest.MonkeyPatch) -> None:
    # The FPO stream (index 5) is stored on page 4
    data = build_pdb(STREAMS)
    monkeypatch.setattr(pdb_module, "open", lambda path, mode: FailingFile(data, 4 * 0x400), raising=False)

    result = decode("failing.pdb")

    assert result.ok is False
    assert isinstance(result.error, ReadError)
    assert result.error.errno == errno.EIO
    assert [diagnostic.message for diagnostic in result.diagnostics] == [
        "PDB file from VisualC++ 7.0",
        "PDB ID: 03020100050407060809" + "0A0B0C0D0E0F" + "2",
        "TPI stream from VisualC++ 6.0",
        "No types information stored",
        "DBI stream from VisualC++ 7.0",
        f"Failed to read page 4 at {4 * 0x400}. Error: {errno.EIO}",
    ]
    assert result.diagnostics[-1].is_error
    assert not any(diagnostic.is_error for diagnostic in result.diagnostics[:-1])


def test_main_continues_after_oversized_root(tmp_path: Path, pdb_path: Path, capsys: pytest.CaptureFixture) -> None:
    data = bytearray(build_pdb(STREAMS))
    data[52:56] = (0xFFFFFFF0).to_bytes(4, "little")
    huge_path = tmp_path / "huge_root.pdb"
    huge_path.write_bytes(bytes(data))

    assert main([str(huge_path), str(pdb_path)]) == 1

    out, err = capsys.readouterr()
    assert f"Parsing PDB: {pdb_path}" in out
    assert "Symbols stream found" in out
    assert err.startswith(f"{huge_path}: Root stream of {0xFFFFFFF0} bytes doesn't fit")


def test_decode_logs_fatal_error(bad_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="dissect.pdbview"):
        decode(str(bad_path))

    assert [(record.levelno, record.getMessage()) for record in caplog.records] == [
        (logging.WARNING, "Invalid PDB signature")
    ]
