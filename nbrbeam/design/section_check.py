"""
Beam verification run: critical sections of the combined envelopes checked
for flexure, shear and fatigue, plus the serviceability checks per span.

Each critical section produces a card whose status is OK only when every
sub-check is OK.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from ..core.combinations import DynamicCoefficients, PinnedSection
from ..core.loads import CriticalSection, LoadCaseStore, LoadEnvelope
from .base import Status, all_ok, pass_fail
from .nbr_bending import FlexuralDesigner
from .nbr_fatigue import FatigueChecker
from .nbr_setup import BeamSection, SectionMaterials, bar_area
from .nbr_shear import ShearDesigner
from .nbr_sls import ServiceabilityChecker, ServiceabilityOptions

logger = logging.getLogger(__name__)

# Tolerance (m) when matching a critical section to a fatigue station
FATIGUE_STATION_TOL = 0.1


class ReinforcementLayout(BaseModel):
    """
    Provided reinforcement.

    Attributes:
        n_bars: Number of tension bars
        bar_phi: Tension bar diameter (mm)
        stirrup_phi: Stirrup diameter (mm)
        stirrup_spacing: Stirrup spacing (cm)
        stirrup_legs: Legs per stirrup
        As_comp: Compression reinforcement area (cm²)
    """
    model_config = ConfigDict(frozen=True)

    n_bars: int = Field(default=4, gt=0)
    bar_phi: float = Field(default=20.0, gt=0, allow_inf_nan=False)
    stirrup_phi: float = Field(default=8.0, gt=0, allow_inf_nan=False)
    stirrup_spacing: float = Field(default=15.0, gt=0, allow_inf_nan=False)
    stirrup_legs: int = Field(default=2, gt=0)
    As_comp: float = Field(default=0.0, ge=0, allow_inf_nan=False)

    @property
    def As(self) -> float:
        """Tension area (cm²)."""
        return bar_area(self.n_bars, self.bar_phi)

    @property
    def Asw_s(self) -> float:
        """Stirrup area (cm²/m)."""
        return ShearDesigner.stirrup_area(self.stirrup_phi, self.stirrup_spacing, self.stirrup_legs)


class BeamDesignInput(BaseModel):
    """Geometry, materials and reinforcement of the beam section."""
    model_config = ConfigDict(frozen=True)

    bw: float = Field(..., gt=0, allow_inf_nan=False)
    h: float = Field(..., gt=0, allow_inf_nan=False)
    cover: float = Field(default=3.0, gt=0, allow_inf_nan=False)
    fck: float = Field(default=30.0, gt=0, allow_inf_nan=False)
    fyk: float = Field(default=500.0, gt=0, allow_inf_nan=False)
    fywk: float = Field(default=500.0, gt=0, allow_inf_nan=False)
    aggregate: str = 'granite'
    layout: ReinforcementLayout = Field(default_factory=ReinforcementLayout)

    def section(self) -> BeamSection:
        return BeamSection.from_detailing(
            self.bw, self.h, self.cover,
            bar_phi=self.layout.bar_phi,
            stirrup_phi=self.layout.stirrup_phi,
        )

    def materials(self) -> SectionMaterials:
        return SectionMaterials.from_values(self.fck, self.fyk, fywk=self.fywk, aggregate=self.aggregate)


def verify_critical_section(
    section: CriticalSection,
    fatigue_envelope: LoadEnvelope,
    inputs: BeamDesignInput
) -> Dict[str, Any]:
    """
    Flexure, shear, steel/concrete fatigue and stirrup fatigue at one section.

    Fatigue checks are skipped (None) when the fatigue envelope has no
    station within 0.1 m of the section.
    """
    beam = inputs.section()
    mats = inputs.materials()
    layout = inputs.layout
    As = layout.As
    Asw_s = layout.Asw_s

    flexure = FlexuralDesigner(beam, mats).verify_section(section.design_moment, As)
    shear_designer = ShearDesigner(beam, mats)
    shear = shear_designer.verify_stirrups(section.design_shear, Asw_s)

    fatigue = None
    stirrup_fatigue = None
    idx = fatigue_envelope.closest_index(section.x, section.side)
    if abs(fatigue_envelope.xs[idx] - section.x) < FATIGUE_STATION_TOL:
        Mf_max, Mf_min = (float(v[idx]) for v in fatigue_envelope.bounds('M'))
        Vf_max, Vf_min = (float(v[idx]) for v in fatigue_envelope.bounds('V'))
        checker = FatigueChecker(beam, mats, As=As, phi=layout.bar_phi)
        fatigue = checker.verify_all(Mf_max, Mf_min)
        stirrup_fatigue = shear_designer.verify_fatigue_elu(Vf_max, Vf_min, Asw_s)
    else:
        logger.warning("No fatigue station near x = %.2f m; fatigue checks skipped", section.x)

    checks = [r for r in (flexure, shear, fatigue, stirrup_fatigue) if r is not None]
    card_ok = all_ok(checks)

    return {
        'id': section.id,
        'label': section.label,
        'x': section.x,
        'side': section.side.value,
        'Md': section.design_moment,
        'Vd': section.design_shear,
        'flexure': flexure,
        'shear': shear,
        'fatigue': fatigue,
        'stirrup_fatigue': stirrup_fatigue,
        'card_ok': card_ok,
        'status': pass_fail(card_ok),
    }


def run_beam_verification(
    store: LoadCaseStore,
    inputs: BeamDesignInput,
    pinned: Sequence[PinnedSection] = (),
    dynamic: Optional[DynamicCoefficients] = None
) -> List[Dict[str, Any]]:
    """
    Check every critical section of the beam.

    Returns:
        One card per critical section (global flexure, shear, fatigue, then
        pinned stations)
    """
    combinator = store.combinator(dynamic=dynamic)
    sections = combinator.find_critical_sections(pinned)
    fatigue_envelope = combinator.combine('FADIGA')

    cards = [verify_critical_section(s, fatigue_envelope, inputs) for s in sections]
    failed = [c['id'] for c in cards if not c['card_ok']]
    if failed:
        logger.warning("Sections needing attention: %s", ", ".join(failed))
    logger.info("Checked %d sections, %d OK", len(cards), len(cards) - len(failed))
    return cards


def summary_dataframe(cards: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    """One row per card with the status and utilization of each check."""
    rows = []
    for card in cards:
        row = {
            'Section': card['id'],
            'x (m)': card['x'],
            'Side': card['side'],
            'Md (kN·m)': card['Md'],
            'Vd (kN)': card['Vd'],
        }
        for key, name in (('flexure', 'Flexure'), ('shear', 'Shear'),
                          ('fatigue', 'Fatigue'), ('stirrup_fatigue', 'Stirrup fatigue')):
            result = card[key]
            row[f'{name} status'] = str(result['status']) if result is not None else 'N/A'
            row[f'{name} (%)'] = result.get('utilizacao', np.nan) if result is not None else np.nan
        row['Status'] = str(card['status'])
        rows.append(row)
    return pd.DataFrame(rows)


def run_serviceability(
    store: LoadCaseStore,
    inputs: BeamDesignInput,
    span_case: str = 'ELS_QP',
    freq_case: str = 'ELS_FREQ',
    options: Optional[ServiceabilityOptions] = None
) -> Dict[str, Any]:
    """
    Crack width at the largest frequent moment and deflection of every span
    under the quasi-permanent combination.
    """
    layout = inputs.layout
    if options is None:
        options = ServiceabilityOptions(As_comp=layout.As_comp, phi=layout.bar_phi)

    checker = ServiceabilityChecker(inputs.section(), inputs.materials(), As=layout.As, options=options)

    freq = store.get_load_case_data(freq_case)
    M_freq_all = freq.governing('M')
    i_freq = int(np.argmax(np.abs(M_freq_all)))
    crack = checker.verify_crack_width(float(M_freq_all[i_freq]))
    crack['x'] = float(freq.xs[i_freq])

    qp = store.get_load_case_data(span_case)
    deflection = checker.verify_deflection_spans(qp, store.spans)

    ok = crack['status'] == Status.OK and deflection['status'] == Status.OK
    return {
        'status': pass_fail(ok),
        'cracking': crack,
        'deflection': deflection,
        'message': 'Todas verificações de serviço OK' if ok else 'FALHA em verificação de serviço',
    }
