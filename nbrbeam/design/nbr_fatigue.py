"""
NBR 6118:2023 Fatigue Verification (section 23)

Stage II (cracked, tension steel only) stresses under the fatigue
combination, compared with the admissible stress ranges of Table 23.2,
the concrete compression limit 0.45·fcd and the fatigue cracking
threshold 0.30·fctd.
"""

import logging
import math
from typing import Any, Dict, Optional

from .base import SectionVerifier, Status, pass_fail, utilization
from .nbr_setup import BeamSection, SectionMaterials, validate_positive

logger = logging.getLogger(__name__)


class FatigueChecker(SectionVerifier):
    """
    Fatigue checks for a section with known tension reinforcement.

    x_II, I_II and z are computed once at construction.

    Args:
        section: Beam cross-section
        materials: Concrete and steel
        As: Tension reinforcement area (cm²)
        phi: Longitudinal bar diameter (mm)
        bar_type: 'straight', 'bent' or 'stirrup'

    Example:
        >>> checker = FatigueChecker(BeamSection(bw=30, h=60, d=55), As=10.0)
        >>> result = checker.verify_steel_fatigue(120, 120)
        >>> print(result['status'], result['deltaSigma'])
        OK 0.0
    """

    def __init__(
        self,
        section: BeamSection,
        materials: Optional[SectionMaterials] = None,
        As: float = 0.0,
        phi: float = 20,
        bar_type: str = 'straight'
    ):
        super().__init__(section, materials)
        self.As = validate_positive('As', As)
        self.phi = phi
        self.bar_type = bar_type
        self.n = self.materials.modular_ratio
        self._calc_stage2_properties()

    def _calc_stage2_properties(self):
        # bw/2·x² + n·As·x − n·As·d = 0
        a = self.bw / 2
        b = self.n * self.As
        c = -self.n * self.As * self.d

        self.x_II = (-b + math.sqrt(b ** 2 - 4 * a * c)) / (2 * a)
        self.I_II = self.bw * self.x_II ** 3 / 3 + self.n * self.As * (self.d - self.x_II) ** 2
        self.z = self.d - self.x_II / 3

        logger.debug("Stage II: x_II=%.3f cm, I_II=%.1f cm4, n=%.3f", self.x_II, self.I_II, self.n)

    def calc_steel_stress(self, M_kNm: float) -> float:
        """Tension steel stress (MPa) for a moment in kN·m."""
        M = M_kNm * 100
        return self.n * M * (self.d - self.x_II) / self.I_II * 10

    def calc_concrete_stress(self, M_kNm: float) -> float:
        """Extreme fibre concrete compression stress (MPa)."""
        M = M_kNm * 100
        return M * self.x_II / self.I_II * 10

    def verify_steel_fatigue(self, Mmax: float, Mmin: float) -> Dict[str, Any]:
        """
        Stress range in the longitudinal steel against Table 23.2.

        Returns:
            Dictionary with sigmaMax, sigmaMin, deltaSigma, limite (MPa),
            utilizacao (%) and status OK/FAIL
        """
        sigma_max = self.calc_steel_stress(abs(Mmax))
        sigma_min = self.calc_steel_stress(abs(Mmin))
        delta_sigma = abs(sigma_max - sigma_min)

        limite = self.steel.get_delta_sigma_fad(self.phi, self.bar_type)
        util = utilization(delta_sigma, limite)
        ok = delta_sigma <= limite
        if not ok:
            logger.warning("Steel fatigue: Δσ = %.1f MPa > %.0f MPa", delta_sigma, limite)

        return {
            'status': pass_fail(ok),
            'Mmax': Mmax,
            'Mmin': Mmin,
            'sigmaMax': sigma_max,
            'sigmaMin': sigma_min,
            'deltaSigma': delta_sigma,
            'limite': limite,
            'utilizacao': util,
            'message': f"Fadiga do aço OK ({util:.1f}%)" if ok else f"FALHA por fadiga do aço! ({util:.1f}%)",
        }

    def verify_concrete_compression_fatigue(self, Mmax: float) -> Dict[str, Any]:
        """σc(Mmax) ≤ 0.45·fcd, item 23.5.4.1."""
        sigma_c = self.calc_concrete_stress(abs(Mmax))
        limite = self.concrete.fcd_fad
        util = utilization(sigma_c, limite)
        ok = sigma_c <= limite

        return {
            'status': pass_fail(ok),
            'Mmax': Mmax,
            'sigmaC': sigma_c,
            'limite': limite,
            'utilizacao': util,
            'message': (
                f"Fadiga do concreto (compressão) OK ({util:.1f}%)" if ok
                else f"FALHA por fadiga do concreto! ({util:.1f}%)"
            ),
        }

    def check_cracking_fatigue(self, Mmax: float) -> Dict[str, Any]:
        """
        Whether the uncracked section cracks under the fatigue moment.

        σt = 6·M/(bw·h²) compared with fctd,fad = 0.30·fctd. Informational.
        """
        M = abs(Mmax) * 100
        sigma_t = 6 * M / (self.bw * self.h ** 2) * 10
        limite = self.concrete.fctd_fad
        cracked = sigma_t > limite

        return {
            'sigmaTraction': sigma_t,
            'limite': limite,
            'cracked': cracked,
            'stage': 'II' if cracked else 'I',
            'message': 'Seção FISSURADA sob fadiga (Estádio II)' if cracked else 'Seção não-fissurada (Estádio I)',
        }

    def verify_all(self, Mmax: float, Mmin: float) -> Dict[str, Any]:
        """Steel and concrete fatigue; the cracking check does not gate the status."""
        steel = self.verify_steel_fatigue(Mmax, Mmin)
        concrete = self.verify_concrete_compression_fatigue(Mmax)
        cracking = self.check_cracking_fatigue(Mmax)

        ok = steel['status'] == Status.OK and concrete['status'] == Status.OK

        return {
            'status': pass_fail(ok),
            'steel': steel,
            'concrete': concrete,
            'cracking': cracking,
            'utilizacao': max(steel['utilizacao'], concrete['utilizacao']),
            'message': 'Todas verificações de fadiga OK' if ok else 'FALHA em verificação de fadiga',
        }
