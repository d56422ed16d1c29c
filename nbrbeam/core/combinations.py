"""
Load combinations of the crane-runway beam.

Fd = γg·(DEAD + TRILHO) + γq·φ·ENV_MOVEL, evaluated on the stations of the
mobile envelope. Permanent values at a repeated support station are matched
by occurrence (first with first, second with second), so the jump at the
support survives the combination.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .loads import ENVELOPE_FIELDS, CriticalSection, LoadEnvelope, StationSide
from .parameters import NBR_PARAMETERS

logger = logging.getLogger(__name__)


class CombinationFactors(BaseModel):
    """Partial factors of one combination."""
    model_config = ConfigDict(frozen=True)

    case_id: str
    label: str
    gamma_g: float = Field(..., ge=0, allow_inf_nan=False)
    gamma_q: float = Field(..., ge=0, allow_inf_nan=False)
    apply_impact: bool = False


def load_combination_factors(params: Optional[Dict] = None) -> Dict[str, CombinationFactors]:
    """Combination factors keyed by case id (ELU, FADIGA, ELS_FREQ, ELS_QP)."""
    table = (params if params is not None else NBR_PARAMETERS)['combinations']
    return {case_id: CombinationFactors(case_id=case_id, **values) for case_id, values in table.items()}


class DynamicCoefficients(BaseModel):
    """
    Impact coefficients applied to the mobile load.

    Attributes:
        civ: Vertical impact coefficient
        cia: Additional impact coefficient
        cnf: Number-of-lanes coefficient
    """
    model_config = ConfigDict(frozen=True)

    civ: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    cia: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    cnf: float = Field(default=1.0, gt=0, allow_inf_nan=False)

    @property
    def factor(self) -> float:
        return self.civ * self.cia * self.cnf


class PinnedSection(BaseModel):
    """User-selected station checked in addition to the global critical sections."""
    model_config = ConfigDict(frozen=True)

    x: float = Field(..., allow_inf_nan=False)
    side: Optional[StationSide] = None
    label: Optional[str] = None


class LoadCombinator:
    """
    Combines permanent and mobile envelopes.

    Example:
        >>> from nbrbeam.core.loads import LoadCaseStore
        >>> store = LoadCaseStore.sample()
        >>> combo = LoadCombinator(store.dead, store.trilho, store.mobile)
        >>> elu = combo.combine('ELU')
        >>> round(elu.value_at(6.0, 0, 'M_min'), 2)
        -132.27
    """

    def __init__(
        self,
        dead: LoadEnvelope,
        trilho: LoadEnvelope,
        mobile: LoadEnvelope,
        factors: Optional[Dict[str, CombinationFactors]] = None,
        dynamic: Optional[DynamicCoefficients] = None
    ):
        if not mobile.is_envelope:
            raise ValueError(f"{mobile.case_id} must be an enveloping case")
        self.dead = dead
        self.trilho = trilho
        self.mobile = mobile
        self.factors = factors if factors is not None else load_combination_factors()
        self.dynamic = dynamic if dynamic is not None else DynamicCoefficients()

    def _factors(self, case_id: str) -> CombinationFactors:
        if case_id not in self.factors:
            raise KeyError(f"Unknown load case: {case_id}. Available: {', '.join(self.factors)}")
        return self.factors[case_id]

    def _permanent(self, quantity: str) -> np.ndarray:
        """DEAD + TRILHO on the mobile stations, matched by occurrence."""
        values = []
        for station in self.mobile.stations:
            occ = station.occurrence
            values.append(
                self.dead.value_at(station.x, occ, quantity)
                + self.trilho.value_at(station.x, occ, quantity)
            )
        return np.array(values, dtype=float)

    def combine(self, case_id: str) -> LoadEnvelope:
        """
        Combined envelope for a combination id.

        Raises:
            KeyError: If case_id has no combination factors
        """
        f = self._factors(case_id)
        phi = self.dynamic.factor if f.apply_impact else 1.0

        M_perm = self._permanent('M')
        V_perm = self._permanent('V')
        perm = {'M': M_perm, 'V': V_perm}

        combined = {
            field: f.gamma_g * perm[field[0]] + f.gamma_q * phi * self.mobile.values(field)
            for field in ENVELOPE_FIELDS
        }
        logger.debug("%s: γg=%.2f γq=%.2f φ=%.3f", case_id, f.gamma_g, f.gamma_q, phi)

        return LoadEnvelope(
            case_id=case_id,
            stations=self.mobile.stations,
            **{k: tuple(float(v) for v in arr) for k, arr in combined.items()},
        )

    def formula(self, case_id: str) -> str:
        """Readable combination, e.g. '1.40·(DEAD + TRILHO) + 1.40·1.250·ENV_MOVEL'."""
        f = self._factors(case_id)
        mobile = f"{f.gamma_q:.2f}·"
        if f.apply_impact and self.dynamic.factor != 1.0:
            mobile += f"{self.dynamic.factor:.3f}·"
        return f"{f.label}: {f.gamma_g:.2f}·(DEAD + TRILHO) + {mobile}ENV_MOVEL"

    @staticmethod
    def _section(env: LoadEnvelope, idx: int, section_id: str, label: str) -> CriticalSection:
        station = env.stations[idx]
        return CriticalSection(
            id=section_id,
            label=label,
            x=station.x,
            side=station.side,
            M_max=env.values('M_max')[idx],
            M_min=env.values('M_min')[idx],
            V_max=env.values('V_max')[idx],
            V_min=env.values('V_min')[idx],
        )

    def find_critical_sections(self, pinned: Sequence[PinnedSection] = ()) -> List[CriticalSection]:
        """
        Global flexure, shear and fatigue sections plus pinned stations.

        Flexure and shear maximise max(|max|, |min|) over the ELU envelope,
        fatigue maximises ||M_max| − |M_min|| over FADIGA. Ties keep the
        first station. Pinned stations take the nearest ELU station.
        """
        elu = self.combine('ELU')
        if len(elu) == 0:
            return []
        fad = self.combine('FADIGA')

        M_max, M_min = elu.bounds('M')
        V_max, V_min = elu.bounds('V')
        idx_flex = int(np.argmax(np.maximum(np.abs(M_max), np.abs(M_min))))
        idx_shear = int(np.argmax(np.maximum(np.abs(V_max), np.abs(V_min))))

        Mf_max, Mf_min = fad.bounds('M')
        idx_fat = int(np.argmax(np.abs(np.abs(Mf_max) - np.abs(Mf_min))))

        sections = [
            self._section(elu, idx_flex, 'global-flex', 'Crítica Global - Flexão'),
            self._section(elu, idx_shear, 'global-shear', 'Crítica Global - Cortante'),
            self._section(fad, idx_fat, 'global-fatigue', 'Crítica Global - Fadiga'),
        ]

        for i, pin in enumerate(pinned, start=1):
            idx = elu.closest_index(pin.x, pin.side)
            label = pin.label or f"Seção x = {elu.stations[idx].x:.2f} m"
            sections.append(self._section(elu, idx, f"pinned-{i}", label))

        for s in sections:
            logger.info("%s at x = %.2f m (%s): Md = %.1f kN·m, Vd = %.1f kN",
                        s.id, s.x, s.side.value, s.design_moment, s.design_shear)
        return sections
