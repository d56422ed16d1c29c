"""
NBR 6118:2023 Serviceability Limit State (ELS) Module

Implements:
- Crack width check (item 17.3.3.2), smaller of the two estimates governs
- Deflection by double integration of the Branson curvature (item 17.3.2.1)
- Time-dependent deflection factor αf (Table 17.1)

Units: section in cm, moments in kN·m, stations in m, deflections in cm,
crack widths in mm.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.integration import CurvatureIntegrator
from ..core.loads import LoadEnvelope
from .base import SectionVerifier, Status, pass_fail, utilization
from .nbr_setup import NBR_PARAMETERS, BeamSection, SectionMaterials, validate_positive

logger = logging.getLogger(__name__)

_SLS = NBR_PARAMETERS['serviceability']
ALPHA_RECT = _SLS['alpha_rect']
DEFLECTION_LIMIT_RATIO = _SLS['deflection_limit_ratio']
CREEP_TIMES = np.array(sorted(float(t) for t in _SLS['creep_xi']))
CREEP_XI = np.array([_SLS['creep_xi'][k] for k in sorted(_SLS['creep_xi'], key=float)], dtype=float)

MomentSeries = Union[LoadEnvelope, pd.DataFrame, Iterable[Dict[str, float]]]


class ServiceabilityOptions(BaseModel):
    """
    Optional parameters of the serviceability checks.

    Attributes:
        As_comp: Compression reinforcement area (cm²)
        d_prime: Compression steel depth (cm); None uses the section value
        phi: Tension bar diameter (mm)
        eta1: Bond coefficient (2.25 for ribbed bars)
        wk_lim: Crack width limit (mm)
        t_months: Age for the long-term deflection (months)
        t0_months: Age at load application (months)
    """
    model_config = ConfigDict(frozen=True)

    As_comp: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    d_prime: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    phi: float = Field(default=20.0, gt=0, allow_inf_nan=False)
    eta1: float = Field(default=_SLS['eta1'], gt=0, allow_inf_nan=False)
    wk_lim: float = Field(default=_SLS['wk_lim'], gt=0, allow_inf_nan=False)
    t_months: float = Field(default=70.0, ge=0, allow_inf_nan=False)
    t0_months: float = Field(default=1.0, ge=0, allow_inf_nan=False)

    @model_validator(mode='after')
    def validate_ages(self) -> 'ServiceabilityOptions':
        """Load application cannot come after the deflection age."""
        if self.t0_months > self.t_months:
            raise ValueError(
                f"t0_months = {self.t0_months} must not exceed t_months = {self.t_months}"
            )
        return self


def creep_coefficient(t_months: float) -> float:
    """ξ(t) from Table 17.1, linear between breakpoints, 2.00 beyond 70 months."""
    return float(np.interp(t_months, CREEP_TIMES, CREEP_XI))


def _moment_series(moments: MomentSeries) -> Tuple[np.ndarray, np.ndarray]:
    """(x, M) arrays from an envelope, a DataFrame with x/M columns or {x, M} records."""
    if isinstance(moments, LoadEnvelope):
        return moments.xs, moments.governing('M')
    if isinstance(moments, pd.DataFrame):
        return moments['x'].to_numpy(dtype=float), moments['M'].to_numpy(dtype=float)
    records = list(moments)
    x = np.array([pt['x'] for pt in records], dtype=float)
    M = np.array([pt['M'] for pt in records], dtype=float)
    return x, M


class ServiceabilityChecker(SectionVerifier):
    """
    Crack width and deflection checks for a reinforced section.

    Gross and Stage II properties are fixed at construction.

    Example:
        >>> sls = ServiceabilityChecker(BeamSection(bw=30, h=60, d=55), As=10.0)
        >>> print(f"Mr = {sls.Mr:.1f} kN·m")
        Mr = 78.2 kN·m
    """

    def __init__(
        self,
        section: BeamSection,
        materials: Optional[SectionMaterials] = None,
        As: float = 0.0,
        options: Optional[ServiceabilityOptions] = None
    ):
        super().__init__(section, materials)
        self.As = validate_positive('As', As)
        self.options = options if options is not None else ServiceabilityOptions()
        self.As_comp = self.options.As_comp
        self.d_prime = self.options.d_prime if self.options.d_prime is not None else section.d_prime
        self.phi = self.options.phi
        self.n = self.materials.modular_ratio
        self.integrator = CurvatureIntegrator()

        # Gross section (Stage I)
        self.Ic = self.bw * self.h ** 3 / 12  # cm⁴
        self.yt = self.h / 2  # cm

        self._calc_stage2_properties()

    def _calc_stage2_properties(self):
        # bw/2·x² + n·(As' + As)·x − n·(As'·d' + As·d) = 0
        n, As, As_c, dp = self.n, self.As, self.As_comp, self.d_prime
        a = self.bw / 2
        b = n * (As_c + As)
        c = -(n * As_c * dp + n * As * self.d)

        self.x_II = (-b + np.sqrt(b ** 2 - 4 * a * c)) / (2 * a)
        self.I_II = (
            self.bw * self.x_II ** 3 / 3
            + n * As_c * (self.x_II - dp) ** 2
            + n * As * (self.d - self.x_II) ** 2
        )

    @property
    def Mr(self) -> float:
        """Cracking moment (kN·m), α = 1.5 for rectangular sections."""
        fctm_kNcm2 = self.concrete.fctm / 10
        return ALPHA_RECT * fctm_kNcm2 * self.Ic / self.yt / 100

    def calc_equivalent_stiffness(self, Ma: float) -> float:
        """
        Branson equivalent stiffness EI (kN·cm²).

        Gross stiffness when |Ma| ≤ Mr, otherwise the cubic interpolation
        between Ecs·Ic and Ecs·I_II.
        """
        Ecs = self.concrete.Ecs / 10  # kN/cm²
        Mr = self.Mr
        if abs(Ma) <= Mr:
            return Ecs * self.Ic

        ratio = (Mr / abs(Ma)) ** 3
        return Ecs * self.Ic * ratio + Ecs * self.I_II * (1 - ratio)

    def calc_steel_stress(self, M_kNm: float) -> float:
        """Stage II tension steel stress (MPa)."""
        M = abs(M_kNm) * 100
        return self.n * M * (self.d - self.x_II) / self.I_II * 10

    def verify_crack_width(self, M_freq: float) -> Dict[str, Any]:
        """
        Characteristic crack width under the frequent combination.

        Returns:
            Dictionary with cracked, sigma_si, wk1, wk2, wk, wk_lim (mm),
            utilizacao and status
        """
        wk_lim = self.options.wk_lim
        if abs(M_freq) <= self.Mr:
            return {
                'status': Status.OK,
                'cracked': False,
                'M_freq': M_freq,
                'Mr': self.Mr,
                'wk': 0.0,
                'wk_lim': wk_lim,
                'utilizacao': 0.0,
                'message': 'Seção não fissurada (Estádio I)',
            }

        sigma_si = self.calc_steel_stress(M_freq)
        Es = self.steel.Es
        fctm = self.concrete.fctm
        eta1 = self.options.eta1

        Acri = self.bw * min(2.5 * (self.h - self.d), self.h / 2)
        rho_ri = self.As / Acri

        coef = (self.phi / (12.5 * eta1)) * (sigma_si / Es)
        wk1 = coef * (3 * sigma_si / fctm)
        wk2 = coef * (4 / rho_ri + 45)
        wk = min(wk1, wk2)

        ok = wk <= wk_lim
        util = utilization(wk, wk_lim)
        if not ok:
            logger.warning("Crack width wk = %.3f mm exceeds %.2f mm", wk, wk_lim)

        return {
            'status': pass_fail(ok),
            'cracked': True,
            'M_freq': M_freq,
            'Mr': self.Mr,
            'sigma_si': sigma_si,
            'Acri': Acri,
            'rho_ri': rho_ri,
            'wk1': wk1,
            'wk2': wk2,
            'wk': wk,
            'wk_lim': wk_lim,
            'utilizacao': util,
            'message': (
                f"Fissuração OK: wk = {wk:.2f} mm ≤ {wk_lim} mm" if ok
                else f"FALHA fissuração: wk = {wk:.2f} mm > {wk_lim} mm"
            ),
        }

    def calc_creep_factor(self) -> float:
        """αf = (ξ(t) − ξ(t0)) / (1 + 50·ρ'), with ρ' = As'/(bw·d)."""
        delta_xi = creep_coefficient(self.options.t_months) - creep_coefficient(self.options.t0_months)
        rho_comp = self.As_comp / (self.bw * self.d)
        return delta_xi / (1 + 50 * rho_comp)

    def _deflection_line(self, x_m: np.ndarray, M: np.ndarray) -> Dict[str, Any]:
        """Immediate deflection line of one span from stations (m) and moments (kN·m)."""
        EI = np.array([self.calc_equivalent_stiffness(m) for m in M])
        kappa = M * 100 / EI  # 1/cm
        line = self.integrator.integrate(x_m * 100, kappa)

        if line['f'].size == 0:
            return {'deflections': [], 'max_deflection': 0.0, 'max_x': 0.0}

        f = line['f']
        x_out = line['x'] / 100
        i_max = int(np.argmax(np.abs(f)))
        return {
            'deflections': [{'x': float(xi), 'f': float(fi)} for xi, fi in zip(x_out, f)],
            'max_deflection': float(f[i_max]),
            'max_x': float(x_out[i_max]),
        }

    def calc_deflection(self, moments: MomentSeries, L: float) -> Dict[str, Any]:
        """
        Immediate deflection along a single span.

        Args:
            moments: {x (m), M (kN·m)} records, a DataFrame or an envelope
            L: Span length (m)

        Returns:
            {'deflections': [{'x', 'f'}], 'max_deflection' (cm), 'max_x' (m)}
        """
        validate_positive('L', L)
        x, M = _moment_series(moments)
        if x.size >= 2 and not np.isclose(x[-1] - x[0], L, rtol=1e-6, atol=1e-9):
            logger.warning(
                "Moment stations cover %.3f m but the span length is %.3f m", x[-1] - x[0], L
            )
        return self._deflection_line(x, M)

    def _deflection_result(self, line: Dict[str, Any], L: float) -> Dict[str, Any]:
        f0 = abs(line['max_deflection'])
        alpha_f = self.calc_creep_factor()
        f_total = f0 * (1 + alpha_f)
        f_lim = L * 100 / DEFLECTION_LIMIT_RATIO

        ok = f_total <= f_lim
        util = utilization(f_total, f_lim)

        return {
            'status': pass_fail(ok),
            'f0': f0,
            'alpha_f': alpha_f,
            'f_total': f_total,
            'f_lim': f_lim,
            'L': L,
            'max_x': line['max_x'],
            'utilizacao': util,
            'deflections': [{'x': pt['x'], 'f': pt['f'] * (1 + alpha_f)} for pt in line['deflections']],
            'message': (
                f"Flecha OK: {f_total:.2f} cm ≤ L/{DEFLECTION_LIMIT_RATIO} = {f_lim:.2f} cm" if ok
                else f"FALHA flecha: {f_total:.2f} cm > L/{DEFLECTION_LIMIT_RATIO} = {f_lim:.2f} cm"
            ),
        }

    def verify_deflection(self, moments: MomentSeries, L: float) -> Dict[str, Any]:
        """Immediate plus long-term deflection of one span against L/250."""
        line = self.calc_deflection(moments, L)
        return self._deflection_result(line, L)

    def verify_deflection_spans(self, moments: MomentSeries, spans: Sequence[Any]) -> Dict[str, Any]:
        """
        Deflection check of a continuous beam, one integration per span.

        Args:
            moments: Quasi-permanent moments over the whole beam; envelopes
                use the larger-magnitude bound at each station
            spans: Objects with name, start_x, end_x and length (m)

        Returns:
            Dictionary with 'spans' (per-span results), governing
            utilizacao and status

        Raises:
            ValueError: If a span holds fewer than two moment stations
        """
        x, M = _moment_series(moments)
        results: List[Dict[str, Any]] = []
        for span in spans:
            idx = CurvatureIntegrator.span_indices(x, span.start_x, span.end_x)
            if idx.size < 2:
                raise ValueError(
                    f"Span {span.name} [{span.start_x}, {span.end_x}] m has {idx.size} moment "
                    f"station(s); at least two are required"
                )
            line = self._deflection_line(x[idx], M[idx])
            result = self._deflection_result(line, span.length)
            result['span'] = span.name
            results.append(result)
            logger.debug("Span %s: f_total=%.3f cm (%s)", span.name, result['f_total'], result['status'])

        ok = all(r['status'] == Status.OK for r in results)
        governing = max((r['utilizacao'] for r in results), default=0.0)
        return {
            'status': pass_fail(ok),
            'spans': results,
            'utilizacao': governing,
            'message': 'Flechas OK em todos os vãos' if ok else 'FALHA de flecha em pelo menos um vão',
        }

    def verify_all(self, M_freq: float, moments_qp: MomentSeries, L: float) -> Dict[str, Any]:
        """Crack width plus deflection of one span."""
        crack = self.verify_crack_width(M_freq)
        deflection = self.verify_deflection(moments_qp, L)
        ok = crack['status'] == Status.OK and deflection['status'] == Status.OK

        return {
            'status': pass_fail(ok),
            'cracking': crack,
            'deflection': deflection,
            'material': {
                'Ecs': self.concrete.Ecs,
                'fctm': self.concrete.fctm,
                'n': self.n,
            },
            'section': {
                'Mr': self.Mr,
                'Ic': self.Ic,
                'I_II': self.I_II,
                'x_II': self.x_II,
            },
            'message': 'Todas verificações de serviço OK' if ok else 'FALHA em verificação de serviço',
        }
