from dissect.pdbview.helpers.diagnostics import Diagnostic
from dissect.pdbview.pdb import PDB, PDB2, DecodeResult, decode

__all__ = [
    "PDB",
    "PDB2",
    "DecodeResult",
    "Diagnostic",
    "decode",
]
