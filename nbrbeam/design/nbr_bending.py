"""
NBR 6118:2023 Beam Flexure - Ultimate Limit State (item 17.2.2)

Rectangular stress block design of rectangular sections, with and without
compression reinforcement, and ductility/domain classification.

Units: section in cm, moments in kN·m, areas in cm², stresses in MPa.
Internally the stress block works in kN/cm² and kN·cm.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from .base import SectionVerifier, Status, pass_fail, utilization
from .nbr_setup import NBR_PARAMETERS, BeamSection, SectionMaterials, validate_positive

logger = logging.getLogger(__name__)

_BLOCK = NBR_PARAMETERS['stress_block']
LAMBDA = _BLOCK['lambda']
EPSILON_CU = _BLOCK['epsilon_cu']  # per mil
XI_LIM = _BLOCK['xi_lim']
XI_23 = _BLOCK['xi_23']
RHO_MIN = _BLOCK['rho_min']


def classify_domain(xi: float, xi_lim: float = XI_LIM) -> str:
    """
    Deformation domain for a relative neutral axis depth.

    II up to xi_23 = 0.259, III up to the ductility limit, IV beyond.
    """
    if xi <= XI_23:
        return 'II'
    if xi <= xi_lim:
        return 'III'
    return 'IV'


class FlexuralDesigner(SectionVerifier):
    """
    Flexural design and verification of a rectangular section.

    Example:
        >>> section = BeamSection(bw=30, h=60, d=55)
        >>> designer = FlexuralDesigner(section, SectionMaterials.from_values(30, 500))
        >>> result = designer.design_reinforcement(200)
        >>> print(f"{result['status']}: As = {result['As_final']:.2f} cm²")
        OK: As = 8.94 cm²
    """

    def __init__(self, section: BeamSection, materials: Optional[SectionMaterials] = None):
        super().__init__(section, materials)
        # kN/cm²
        self.sigma_cd_kNcm2 = self.concrete.sigma_cd * 0.1
        self.fyd_kNcm2 = self.steel.fyd * 0.1
        self.Es_kNcm2 = self.steel.Es * 0.1

    @property
    def As_min(self) -> float:
        """Minimum tension reinforcement 0.15 %·bw·h (cm²)."""
        return RHO_MIN * self.bw * self.h

    def calc_neutral_axis(self, Md_kNm: float) -> Tuple[float, bool]:
        """
        Neutral axis depth (cm) for simple bending.

        Solves 0.5·λ²·bw·σcd·x² − λ·bw·σcd·d·x + Md = 0 for the smaller root.

        Returns:
            (x, valid): valid is False when the discriminant is negative or
            the root falls outside (0, d)
        """
        Md = Md_kNm * 100  # kN·cm

        a = 0.5 * LAMBDA ** 2 * self.bw * self.sigma_cd_kNcm2
        b = -LAMBDA * self.bw * self.sigma_cd_kNcm2 * self.d
        c = Md

        delta = b ** 2 - 4 * a * c
        if delta < 0:
            return 0.0, False

        x = (-b - math.sqrt(delta)) / (2 * a)
        return x, 0 < x < self.d

    def design_reinforcement(self, Md_kNm: float) -> Dict[str, Any]:
        """
        Required tension reinforcement for a design moment.

        The sign of Md is ignored.

        Returns:
            Dictionary with status (OK/WARNING/ERROR), x, xi, xi_lim, z,
            As_calc, As_min, As_final, ductility_ok, domain and message
        """
        Md_abs = abs(Md_kNm)
        x, valid = self.calc_neutral_axis(Md_abs)

        if not valid:
            logger.warning("Md = %.2f kN·m exceeds the stress block capacity of %r", Md_abs, self)
            return {
                'status': Status.ERROR,
                'message': 'Momento excessivo para a seção',
                'Md': Md_kNm,
                'As_calc': 0.0,
                'As_min': self.As_min,
                'As_final': 0.0,
                'x': 0.0,
                'xi': 0.0,
                'xi_lim': XI_LIM,
                'domain': 'N/A',
            }

        xi = x / self.d
        z = self.d - 0.5 * LAMBDA * x

        As_calc = Md_abs * 100 / (self.fyd_kNcm2 * z)
        As_final = max(As_calc, self.As_min)

        ductility_ok = xi <= XI_LIM
        if ductility_ok:
            message = f"Seção dúctil (x/d = {xi:.3f})"
        else:
            message = f"ATENÇÃO: x/d = {xi:.3f} > {XI_LIM} (armadura dupla recomendada)"

        logger.debug("Md=%.2f x=%.3f xi=%.4f z=%.3f As=%.3f", Md_abs, x, xi, z, As_final)

        return {
            'status': Status.OK if ductility_ok else Status.WARNING,
            'message': message,
            'Md': Md_kNm,
            'x': x,
            'xi': xi,
            'xi_lim': XI_LIM,
            'z': z,
            'As_calc': As_calc,
            'As_min': self.As_min,
            'As_final': As_final,
            'ductility_ok': ductility_ok,
            'domain': classify_domain(xi),
        }

    def verify_section(self, Md_kNm: float, As_prov: float) -> Dict[str, Any]:
        """
        Verify a section with known tension reinforcement.

        Args:
            Md_kNm: Design moment (kN·m)
            As_prov: Provided tension area (cm²)

        Returns:
            Design dictionary extended with As_prov, utilizacao (%),
            verificado and status (OK/FAIL, or ERROR from the design)
        """
        validate_positive('As_prov', As_prov)
        design = self.design_reinforcement(Md_kNm)

        if design['status'] == Status.ERROR:
            return {
                **design,
                'As_prov': As_prov,
                'utilizacao': float('inf'),
                'verificado': False,
            }

        utilizacao = design['As_final'] / As_prov * 100
        ok = utilizacao <= 100
        status = pass_fail(ok)

        details = f"""
Flexural Check (NBR 6118:2023 item 17.2.2)
---------------------------------------------------
Section: bw×h = {self.bw:.1f}×{self.h:.1f} cm, d = {self.d:.2f} cm
Materials: fck = {self.concrete.fck:.0f} MPa (σcd = {self.concrete.sigma_cd:.2f} MPa), fyd = {self.steel.fyd:.1f} MPa

Applied moment Md = {abs(Md_kNm):.2f} kN·m

  x = {design['x']:.2f} cm, x/d = {design['xi']:.4f} (limit {XI_LIM}), domain {design['domain']}
  z = {design['z']:.2f} cm
  As,calc = {design['As_calc']:.2f} cm², As,min = {design['As_min']:.2f} cm²
  As,final = {design['As_final']:.2f} cm², As,prov = {As_prov:.2f} cm²

Result:
  Utilization = {utilizacao:.1f} %
  Status: {status}
"""

        return {
            **design,
            'As_prov': As_prov,
            'utilizacao': utilizacao,
            'verificado': ok,
            'status': status,
            'details': details.strip(),
        }

    def calc_resistant_moment(self, As: float) -> float:
        """
        Resisting moment (kN·m) of a singly reinforced section.

        Returns 0 when the stress block would exceed d (over-reinforced).
        """
        Rs = As * self.fyd_kNcm2
        x = Rs / (LAMBDA * self.bw * self.sigma_cd_kNcm2)

        if x > self.d:
            return 0.0

        z = self.d - 0.5 * LAMBDA * x
        return Rs * z / 100

    def _compression_steel_stress(self, x: float, d_prime: float) -> float:
        """Stress (kN/cm²) in the compression steel, capped at ±fyd."""
        eps = EPSILON_CU / 1000 * (x - d_prime) / x
        sigma = self.Es_kNcm2 * eps
        return max(min(sigma, self.fyd_kNcm2), -self.fyd_kNcm2)

    def check_double_reinforcement(
        self,
        Md_kNm: float,
        As: float,
        As_comp: float,
        d_prime: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Section with tension and compression reinforcement.

        Neutral axis from λ·bw·σcd·x + As'·σs' = As·fyd, first assuming the
        compression steel yields and otherwise solving with
        σs' = Es·εcu·(x − d')/x. Warnings are advisory: the result is
        always returned.

        Returns:
            Dictionary with x, xi, domain, sigma_s_comp (MPa), Mrd (kN·m),
            warnings, utilizacao and status (OK or WARNING; ERROR with
            Mrd = 0 when x ≥ d)
        """
        validate_positive('As', As)
        if As_comp < 0:
            raise ValueError(f"As_comp must be non-negative, got {As_comp}")
        dp = self.section.d_prime if d_prime is None else d_prime
        if not (0 < dp < self.d):
            raise ValueError(f"d' = {dp} cm must lie inside (0, d = {self.d})")

        k = LAMBDA * self.bw * self.sigma_cd_kNcm2
        eps_yd = self.steel.epsilon_yd / 1000

        x = (As - As_comp) * self.fyd_kNcm2 / k
        yielded = x > 0 and EPSILON_CU / 1000 * (x - dp) / x >= eps_yd
        if not yielded and As_comp > 0:
            b = As_comp * self.Es_kNcm2 * EPSILON_CU / 1000 - As * self.fyd_kNcm2
            c = -As_comp * self.Es_kNcm2 * EPSILON_CU / 1000 * dp
            x = (-b + math.sqrt(b ** 2 - 4 * k * c)) / (2 * k)

        if x >= self.d:
            message = f"x = {x:.2f} cm ≥ d = {self.d} cm: bloco de tensões fora da seção"
            logger.warning("Double reinforcement check: %s", message)
            return {
                'status': Status.ERROR,
                'message': message,
                'Md': Md_kNm,
                'As': As,
                'As_comp': As_comp,
                'd_prime': dp,
                'x': x,
                'xi': x / self.d,
                'xi_lim': XI_LIM,
                'domain': 'N/A',
                'compression_yielded': False,
                'sigma_s_comp': 0.0,
                'Mrd': 0.0,
                'utilizacao': float('inf'),
                'warnings': [message],
            }

        sigma_comp = self._compression_steel_stress(x, dp) if As_comp > 0 else 0.0

        xi = x / self.d
        Mrd = (k * x * (self.d - 0.5 * LAMBDA * x) + As_comp * sigma_comp * (self.d - dp)) / 100
        Md_abs = abs(Md_kNm)

        warnings: List[str] = []
        if xi > XI_LIM:
            warnings.append(f"x/d = {xi:.3f} > {XI_LIM}: ductilidade não atendida")
        if Md_abs > Mrd:
            warnings.append(f"Md = {Md_abs:.1f} kN·m > Mrd = {Mrd:.1f} kN·m")
        for w in warnings:
            logger.warning("Double reinforcement check: %s", w)

        return {
            'status': Status.WARNING if warnings else Status.OK,
            'message': "; ".join(warnings) if warnings else f"Armadura dupla OK (x/d = {xi:.3f})",
            'Md': Md_kNm,
            'As': As,
            'As_comp': As_comp,
            'd_prime': dp,
            'x': x,
            'xi': xi,
            'xi_lim': XI_LIM,
            'domain': classify_domain(xi),
            'compression_yielded': abs(sigma_comp) >= self.fyd_kNcm2,
            'sigma_s_comp': sigma_comp * 10,
            'Mrd': Mrd,
            'utilizacao': utilization(Md_abs, Mrd),
            'warnings': warnings,
        }

    def design_double_reinforcement(
        self,
        Md_kNm: float,
        d_prime: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Tension and compression areas for a moment beyond the ductility limit.

        When the simple design is ductile it is returned unchanged with
        As_comp = 0. Otherwise the neutral axis is fixed at xi_lim·d, the
        concrete takes M_lim and the moment excess ΔM is carried by a
        steel couple with lever arm d − d'.
        """
        single = self.design_reinforcement(Md_kNm)
        if single['status'] == Status.OK:
            return {**single, 'As_comp': 0.0, 'double': False}

        dp = self.section.d_prime if d_prime is None else d_prime
        if not (0 < dp < self.d):
            raise ValueError(f"d' = {dp} cm must lie inside (0, d = {self.d})")

        Md = abs(Md_kNm) * 100  # kN·cm
        x_lim = XI_LIM * self.d
        z_lim = self.d - 0.5 * LAMBDA * x_lim
        M_lim = LAMBDA * self.bw * self.sigma_cd_kNcm2 * x_lim * z_lim
        delta_M = Md - M_lim

        sigma_comp = self._compression_steel_stress(x_lim, dp)
        if sigma_comp <= 0:
            return {
                **single,
                'status': Status.ERROR,
                'message': "Armadura de compressão abaixo da linha neutra (d' muito grande)",
                'As_comp': 0.0,
                'double': True,
            }

        As_comp = delta_M / ((self.d - dp) * sigma_comp)
        As = M_lim / (self.fyd_kNcm2 * z_lim) + delta_M / (self.fyd_kNcm2 * (self.d - dp))

        return {
            'status': Status.OK,
            'message': f"Armadura dupla: As = {As:.2f} cm², As' = {As_comp:.2f} cm²",
            'Md': Md_kNm,
            'x': x_lim,
            'xi': XI_LIM,
            'xi_lim': XI_LIM,
            'z': z_lim,
            'M_lim': M_lim / 100,
            'delta_M': delta_M / 100,
            'sigma_s_comp': sigma_comp * 10,
            'As_calc': As,
            'As_min': self.As_min,
            'As_final': max(As, self.As_min),
            'As_comp': As_comp,
            'd_prime': dp,
            'ductility_ok': True,
            'domain': classify_domain(XI_LIM),
            'double': True,
        }
