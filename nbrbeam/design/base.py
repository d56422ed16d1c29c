"""
Base class and result conventions shared by the section verifiers.

Every verifier (flexure, shear, fatigue, serviceability) is built once from
a snapshot of section geometry and materials and then answers queries
through plain dictionaries carrying at least 'status' and 'message'.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .nbr_setup import BeamSection, SectionMaterials


class Status(str, Enum):
    """
    Outcome of a verification.

    ERROR: the model does not apply (e.g. no valid stress-block root)
    FAIL: the model applies but the check is not satisfied
    WARNING: valid but suboptimal design
    OK: check satisfied
    """
    OK = "OK"
    WARNING = "WARNING"
    FAIL = "FAIL"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value


def pass_fail(ok: bool) -> Status:
    """Map a boolean check onto OK/FAIL."""
    return Status.OK if ok else Status.FAIL


def utilization(demand: float, capacity: float) -> float:
    """Demand over capacity in percent (inf when capacity vanishes)."""
    if capacity <= 0:
        return float('inf') if demand > 0 else 0.0
    return demand / capacity * 100


def all_ok(results: Iterable[Dict[str, Any]]) -> bool:
    """AND-aggregation of result records: True only when every status is OK."""
    return all(r.get('status') == Status.OK for r in results)


class SectionVerifier:
    """Base for verifiers bound to one cross-section snapshot."""

    code_name = "NBR 6118:2023"
    code_units = "kN, cm, MPa"

    def __init__(self, section: BeamSection, materials: Optional[SectionMaterials] = None):
        self.section = section
        self.materials = materials if materials is not None else SectionMaterials()

    @property
    def bw(self) -> float:
        return self.section.bw

    @property
    def h(self) -> float:
        return self.section.h

    @property
    def d(self) -> float:
        return self.section.d

    @property
    def concrete(self):
        return self.materials.concrete

    @property
    def steel(self):
        return self.materials.steel

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"bw={self.bw}, h={self.h}, d={self.d}, "
            f"fck={self.concrete.fck}, fyk={self.steel.fyk})"
        )
