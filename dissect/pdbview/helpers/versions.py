"""Mapping of the version constants found in PDB stream headers to the Visual C++ release that wrote them."""

from __future__ import annotations

from dissect.pdbview.helpers.c_pdb import c_pdb

PDB_RELEASES = {
    c_pdb.PDBIMPV.vc2.value: "VisualC++ 2.0",
    c_pdb.PDBIMPV.vc4.value: "VisualC++ 4.0",
    c_pdb.PDBIMPV.vc41.value: "VisualC++ 4.0",
    c_pdb.PDBIMPV.vc50.value: "VisualC++ 5.0",
    c_pdb.PDBIMPV.vc98.value: "VisualC++ 6.0",
    c_pdb.PDBIMPV.vc70Dep.value: "VisualC++ 7.0",
    c_pdb.PDBIMPV.vc70.value: "VisualC++ 7.0",
}

TPI_RELEASES = {
    c_pdb.TPIIMPV.impv50.value: "VisualC++ 6.0",
}

DBI_RELEASES = {
    c_pdb.DBIIMPV.vc41.value: "VisualC++ 4.0",
    c_pdb.DBIIMPV.vc50.value: "VisualC++ 5.0",
    c_pdb.DBIIMPV.vc60.value: "VisualC++ 6.0",
    c_pdb.DBIIMPV.vc70.value: "VisualC++ 7.0",
}

# Version thresholds that change the layout of other streams
PDB_VERSION_VC2 = c_pdb.PDBIMPV.vc2.value
PDB_VERSION_VC4 = c_pdb.PDBIMPV.vc4.value
PDB_VERSION_VC7_PREVIEW = c_pdb.PDBIMPV.vc70Dep.value


def pdb_release(version: int) -> str | None:
    return PDB_RELEASES.get(version)


def tpi_release(version: int) -> str | None:
    return TPI_RELEASES.get(version)


def dbi_release(version: int) -> str | None:
    return DBI_RELEASES.get(version)


def _describe(kind: str, release: str | None, version: int) -> str:
    if release is None:
        return f"Unknown VisualC++ release: {version}"
    return f"{kind} from {release}"


def describe_pdb_version(version: int) -> str:
    """Return the line describing the release that wrote the PDB info stream."""
    return _describe("PDB file", pdb_release(version), version)


def describe_tpi_version(version: int) -> str:
    """Return the line describing the release that wrote the TPI stream."""
    return _describe("TPI stream", tpi_release(version), version)


def describe_dbi_version(version: int) -> str:
    """Return the line describing the release that wrote the DBI stream."""
    return _describe("DBI stream", dbi_release(version), version)
