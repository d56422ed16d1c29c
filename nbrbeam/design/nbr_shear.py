"""
NBR 6118:2023 Beam Shear - Model I (θ = 45°), item 17.4.2.2

Truss-analogy stirrup design, strut crushing check, stirrup fatigue
(item 23.5.5, concrete contribution halved) and moment shift length.

Units: section in cm, shears in kN, stirrup areas in cm²/m.
"""

import logging
import math
from typing import Any, Dict, Optional

from .base import SectionVerifier, Status, pass_fail, utilization
from .nbr_setup import NBR_PARAMETERS, BeamSection, SectionMaterials, validate_positive

logger = logging.getLogger(__name__)

_SHEAR = NBR_PARAMETERS['shear']
FYWD_MAX = NBR_PARAMETERS['steel']['fywd_max']  # MPa
STIRRUP_FATIGUE_LIMIT = NBR_PARAMETERS['fatigue']['bent_or_stirrup_limit']  # MPa
FATIGUE_VC_REDUCTION = NBR_PARAMETERS['fatigue']['stirrup_concrete_reduction']


class ShearDesigner(SectionVerifier):
    """
    Stirrup design and verification.

    Example:
        >>> section = BeamSection(bw=30, h=60, d=55)
        >>> shear = ShearDesigner(section, SectionMaterials.from_values(30, 500, fywk=500))
        >>> result = shear.design_stirrups_elu(150)
        >>> print(result['status'], round(result['Asw_final'], 2))
        OK 3.48
    """

    def __init__(self, section: BeamSection, materials: Optional[SectionMaterials] = None):
        super().__init__(section, materials)
        self.fywk = self.materials.fywk
        self.fywd = min(self.fywk / 1.15, FYWD_MAX)

    @property
    def fck(self) -> float:
        return self.concrete.fck

    @property
    def alpha_v2(self) -> float:
        """Strut strength reduction 1 − fck/250."""
        return 1 - self.fck / 250

    @property
    def Vrd2(self) -> float:
        """Compression strut capacity (kN)."""
        fcd_kNcm2 = self.concrete.fcd * 0.1
        return _SHEAR['strut_factor'] * self.alpha_v2 * fcd_kNcm2 * self.bw * self.d

    @property
    def Vc0(self) -> float:
        """Concrete contribution under static loading (kN)."""
        fctd_kNcm2 = self.concrete.fctd * 0.1
        return _SHEAR['vc0_factor'] * fctd_kNcm2 * self.bw * self.d

    @property
    def Vc_fad(self) -> float:
        """Concrete contribution under repeated loading, 50 % of Vc0 (kN)."""
        return FATIGUE_VC_REDUCTION * self.Vc0

    @property
    def rho_sw_min(self) -> float:
        """Minimum transverse reinforcement ratio."""
        return _SHEAR['rho_sw_min_factor'] * self.concrete.fctm / self.fywk

    @property
    def Asw_min(self) -> float:
        """Minimum stirrup area (cm²/m)."""
        return self.rho_sw_min * self.bw * 100

    @staticmethod
    def stirrup_area(phi: float, spacing: float, legs: int = 2) -> float:
        """
        Stirrup area per metre (cm²/m).

        Args:
            phi: Stirrup bar diameter (mm)
            spacing: Stirrup spacing (cm)
            legs: Number of legs
        """
        validate_positive('spacing', spacing)
        area = math.pi * (phi / 20) ** 2
        return legs * area / spacing * 100

    def design_stirrups_elu(self, Vsd: float) -> Dict[str, Any]:
        """
        Required stirrups for a design shear (sign ignored).

        Returns:
            FAIL with the strut ratio when the strut crushes, otherwise OK with
            Vsw, Asw_calc, Asw_min, Asw_final (cm²/m) and sMax (cm)
        """
        Vsd_abs = abs(Vsd)
        Vrd2 = self.Vrd2
        ratio_biela = Vsd_abs / Vrd2

        if ratio_biela > 1.0:
            logger.warning("Strut crushing: Vsd = %.1f kN > Vrd2 = %.1f kN", Vsd_abs, Vrd2)
            return {
                'status': Status.FAIL,
                'message': 'Esmagamento da biela! Aumentar seção.',
                'Vsd': Vsd_abs,
                'Vrd2': Vrd2,
                'ratioBiela': ratio_biela * 100,
                'utilizacao': ratio_biela * 100,
            }

        Vsw = max(0.0, Vsd_abs - self.Vc0)

        fywd_kNcm2 = self.fywd * 0.1
        Asw_calc = Vsw / (0.9 * self.d * fywd_kNcm2) * 100 if Vsw > 0 else 0.0
        Asw_final = max(Asw_calc, self.Asw_min)

        if Vsd_abs <= _SHEAR['s_max_ratio_limit'] * Vrd2:
            s_max = min(0.6 * self.d, 30)
        else:
            s_max = min(0.3 * self.d, 20)

        logger.debug("Vsd=%.2f Vrd2=%.2f Vc0=%.2f Asw=%.3f", Vsd_abs, Vrd2, self.Vc0, Asw_final)

        return {
            'status': Status.OK,
            'message': f"Biela OK ({ratio_biela * 100:.1f}% de utilização)",
            'Vsd': Vsd_abs,
            'Vrd2': Vrd2,
            'ratioBiela': ratio_biela * 100,
            'utilizacao': ratio_biela * 100,
            'Vc0': self.Vc0,
            'Vsw': Vsw,
            'Asw_calc': Asw_calc,
            'Asw_min': self.Asw_min,
            'Asw_final': Asw_final,
            'sMax': s_max,
        }

    def verify_stirrups(self, Vsd: float, Asw_prov: float) -> Dict[str, Any]:
        """
        Check provided stirrups against the ELU design.

        The governing utilization is the larger of the strut ratio and
        Asw_final / Asw_prov.
        """
        validate_positive('Asw_prov', Asw_prov)
        design = self.design_stirrups_elu(Vsd)
        strut_util = design['ratioBiela']
        stirrup_util = design['Asw_final'] / Asw_prov * 100 if 'Asw_final' in design else float('inf')
        governing = max(strut_util, stirrup_util)
        ok = design['status'] == Status.OK and governing <= 100

        return {
            **design,
            'Asw_prov': Asw_prov,
            'utilizacao_estribo': stirrup_util,
            'utilizacao': governing,
            'status': pass_fail(ok),
            'message': design['message'] if design['status'] != Status.OK else (
                f"Estribos OK ({governing:.1f}%)" if ok else f"Estribos insuficientes ({governing:.1f}%)"
            ),
        }

    def verify_fatigue_elu(self, Vmax: float, Vmin: float, Asw_s: float) -> Dict[str, Any]:
        """
        Stirrup fatigue check.

        Args:
            Vmax: Maximum fatigue shear (kN)
            Vmin: Minimum fatigue shear (kN)
            Asw_s: Provided stirrup area (cm²/m)

        Returns:
            Dictionary with deltaV, Vc_fad, deltaVsw, deltaSigma (MPa),
            limite, utilizacao and status
        """
        delta_V = abs(Vmax) - abs(Vmin)
        delta_Vsw = max(0.0, delta_V - self.Vc_fad)

        if delta_Vsw == 0:
            return {
                'status': Status.OK,
                'message': 'Concreto absorve toda variação',
                'deltaV': delta_V,
                'Vc_fad': self.Vc_fad,
                'deltaVsw': 0.0,
                'deltaSigma': 0.0,
                'limite': STIRRUP_FATIGUE_LIMIT,
                'utilizacao': 0.0,
            }

        validate_positive('Asw_s', Asw_s)
        Asw_cm = Asw_s / 100  # cm²/cm
        delta_sigma = delta_Vsw / (0.9 * self.d * Asw_cm) * 10  # MPa

        util = utilization(delta_sigma, STIRRUP_FATIGUE_LIMIT)
        ok = delta_sigma <= STIRRUP_FATIGUE_LIMIT

        return {
            'status': pass_fail(ok),
            'message': f"Fadiga OK ({util:.1f}%)" if ok else f"FALHA por fadiga! ({util:.1f}%)",
            'deltaV': delta_V,
            'Vc_fad': self.Vc_fad,
            'deltaVsw': delta_Vsw,
            'deltaSigma': delta_sigma,
            'limite': STIRRUP_FATIGUE_LIMIT,
            'utilizacao': util,
        }

    def calc_shift_length(self, Vsd: float) -> float:
        """
        Shift of the moment diagram a_l (cm), item 17.4.2.2-c.

        a_l = 0.5·d·|Vsd| / (|Vsd| − Vc0), never below 0.5·d.
        """
        Vsd_abs = abs(Vsd)
        if Vsd_abs <= self.Vc0:
            return 0.5 * self.d

        al = 0.5 * self.d * (Vsd_abs / (Vsd_abs - self.Vc0))
        return max(al, 0.5 * self.d)
