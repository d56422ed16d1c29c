"""
NBR 6118:2023 Material Properties and Section Geometry
Brazilian concrete design standard material definitions and setup

Units: fck/fyk in MPa, section dimensions in cm, bar diameters in mm.
"""

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.parameters import NBR_PARAMETERS

logger = logging.getLogger(__name__)

GAMMA_C = NBR_PARAMETERS['safety_factors']['gamma_c']
GAMMA_S = NBR_PARAMETERS['safety_factors']['gamma_s']
ES = NBR_PARAMETERS['steel']['Es']
AGGREGATE_ALPHA_E = dict(NBR_PARAMETERS['aggregate_alpha_e'])
_FATIGUE = NBR_PARAMETERS['fatigue']
STRAIGHT_BAR_FATIGUE_LIMITS = tuple(
    (float(phi_max), float(limit)) for phi_max, limit in _FATIGUE['straight_bars']
)
BENT_BAR_FATIGUE_LIMIT = float(_FATIGUE['bent_or_stirrup_limit'])


class Concrete(BaseModel):
    """
    NBR 6118:2023 concrete properties.

    All derived strengths are read-only properties of fck and the
    aggregate type; the model is frozen.

    Attributes:
        fck: Characteristic compressive strength (MPa)
        aggregate: 'granite', 'basalt', 'limestone' or 'sandstone'

    Example:
        >>> concrete = Concrete(fck=30)
        >>> print(f"fcd = {concrete.fcd:.2f} MPa")
        fcd = 21.43 MPa
    """
    model_config = ConfigDict(frozen=True)

    fck: float = Field(default=30.0, gt=0, allow_inf_nan=False,
                       description="Characteristic compressive strength (MPa)")
    aggregate: str = Field(default='granite', description="Aggregate type")

    @field_validator('aggregate')
    @classmethod
    def normalize_aggregate(cls, v: str) -> str:
        """Aggregate names are matched case-insensitively."""
        return v.strip().lower()

    @property
    def alpha_e(self) -> float:
        """Aggregate coefficient (item 8.2.8). Unknown aggregate → 1.0."""
        return AGGREGATE_ALPHA_E.get(self.aggregate, 1.0)

    @property
    def fcd(self) -> float:
        """Design compressive strength (MPa)."""
        return self.fck / GAMMA_C

    @property
    def fctm(self) -> float:
        """
        Mean tensile strength (MPa) per item 8.2.5.

        fctm = 0.3 · fck^(2/3) for fck ≤ 50 MPa
        fctm = 2.12 · ln(1 + 0.11·fck) for fck > 50 MPa
        """
        if self.fck <= 50:
            return 0.3 * self.fck ** (2 / 3)
        return 2.12 * math.log(1 + 0.11 * self.fck)

    @property
    def fctk_inf(self) -> float:
        """Lower characteristic tensile strength (MPa)."""
        return 0.7 * self.fctm

    @property
    def fctk_sup(self) -> float:
        """Upper characteristic tensile strength (MPa)."""
        return 1.3 * self.fctm

    @property
    def fctd(self) -> float:
        """Design tensile strength (MPa)."""
        return self.fctk_inf / GAMMA_C

    @property
    def Eci(self) -> float:
        """Initial tangent modulus (MPa)."""
        return self.alpha_e * 5600 * math.sqrt(self.fck)

    @property
    def Ecs(self) -> float:
        """Secant modulus (MPa)."""
        alpha_i = 0.8 + 0.2 * self.fck / 80
        return min(alpha_i, 1.0) * self.Eci

    @property
    def sigma_cd(self) -> float:
        """Rectangular stress block intensity 0.85·fcd (MPa)."""
        return 0.85 * self.fcd

    @property
    def fcd_fad(self) -> float:
        """Compressive fatigue strength limit 0.45·fcd (MPa), item 23.5.4.1."""
        return _FATIGUE['concrete_compression_factor'] * self.fcd

    @property
    def fctd_fad(self) -> float:
        """Tensile fatigue strength limit 0.30·fctd (MPa), item 23.5.4.2."""
        return _FATIGUE['concrete_tension_factor'] * self.fctd


class Steel(BaseModel):
    """
    NBR 6118:2023 reinforcing steel properties.

    Attributes:
        fyk: Characteristic yield strength (MPa)
        grade: Designation ('CA-50', 'CA-60', ...)

    Example:
        >>> steel = Steel(fyk=500)
        >>> print(f"fyd = {steel.fyd:.1f} MPa")
        fyd = 434.8 MPa
    """
    model_config = ConfigDict(frozen=True)

    fyk: float = Field(default=500.0, gt=0, allow_inf_nan=False,
                       description="Characteristic yield strength (MPa)")
    grade: str = Field(default='CA-50', description="Steel grade designation")

    @property
    def Es(self) -> float:
        """Modulus of elasticity (MPa)."""
        return ES

    @property
    def fyd(self) -> float:
        """Design yield strength (MPa)."""
        return self.fyk / GAMMA_S

    @property
    def epsilon_yd(self) -> float:
        """Design yield strain (per mil)."""
        return self.fyd / self.Es * 1000

    def get_delta_sigma_fad(self, phi: float = 20, bar_type: str = 'straight') -> float:
        """
        Admissible fatigue stress range (MPa) per Table 23.2.

        Args:
            phi: Bar diameter (mm)
            bar_type: 'straight', 'bent' or 'stirrup'

        Returns:
            Stress range limit in MPa
        """
        if bar_type in ('bent', 'stirrup'):
            return BENT_BAR_FATIGUE_LIMIT
        for phi_max, limit in STRAIGHT_BAR_FATIGUE_LIMITS:
            if phi <= phi_max:
                return limit
        return STRAIGHT_BAR_FATIGUE_LIMITS[-1][1]


class SectionMaterials(BaseModel):
    """
    Concrete plus longitudinal and transverse steel for one section.

    Example:
        >>> mats = SectionMaterials.from_values(fck=30, fyk=500)
        >>> print(mats.get_summary()['steel']['fyd'])
        434.78 MPa
    """
    model_config = ConfigDict(frozen=True)

    concrete: Concrete = Field(default_factory=Concrete)
    steel: Steel = Field(default_factory=Steel)
    stirrup_steel: Steel = Field(default_factory=Steel)

    @classmethod
    def from_values(
        cls,
        fck: float = 30,
        fyk: float = 500,
        fywk: float = 500,
        aggregate: str = 'granite'
    ) -> 'SectionMaterials':
        """Build materials from plain numeric inputs."""
        return cls(
            concrete=Concrete(fck=fck, aggregate=aggregate),
            steel=Steel(fyk=fyk),
            stirrup_steel=Steel(fyk=fywk),
        )

    @property
    def fywk(self) -> float:
        """Stirrup characteristic yield strength (MPa)."""
        return self.stirrup_steel.fyk

    @property
    def modular_ratio(self) -> float:
        """n = Es / Ecs."""
        return self.steel.Es / self.concrete.Ecs

    def get_summary(self) -> Dict[str, Dict[str, Any]]:
        """Formatted key properties for report headers."""
        return {
            'concrete': {
                'fck': self.concrete.fck,
                'fcd': f"{self.concrete.fcd:.2f} MPa",
                'fctm': f"{self.concrete.fctm:.2f} MPa",
                'Ecs': f"{self.concrete.Ecs / 1000:.1f} GPa",
                'fcd_fad': f"{self.concrete.fcd_fad:.2f} MPa",
            },
            'steel': {
                'fyk': self.steel.fyk,
                'fyd': f"{self.steel.fyd:.2f} MPa",
                'Es': f"{self.steel.Es / 1000:.0f} GPa",
                'delta_sigma_fad': f"{self.steel.get_delta_sigma_fad():.0f} MPa",
            },
        }


class BeamSection(BaseModel):
    """
    Rectangular beam cross-section.

    Attributes:
        bw: Web width (cm)
        h: Total height (cm)
        d: Effective depth (cm), defaults to h - 5
        c_nom: Nominal cover (cm)
        d_prime: Depth of the compression steel centroid (cm)

    Example:
        >>> section = BeamSection(bw=30, h=60)
        >>> print(f"Effective depth: {section.d} cm")
        Effective depth: 55.0 cm
    """
    model_config = ConfigDict(frozen=True)

    bw: float = Field(..., gt=0, allow_inf_nan=False, description="Web width (cm)")
    h: float = Field(..., gt=0, allow_inf_nan=False, description="Total height (cm)")
    d: Optional[float] = Field(default=None, allow_inf_nan=False, description="Effective depth (cm)")
    c_nom: float = Field(default=3.0, gt=0, allow_inf_nan=False, description="Nominal cover (cm)")
    d_prime: float = Field(default=5.0, gt=0, allow_inf_nan=False,
                           description="Compression steel depth (cm)")

    @model_validator(mode='before')
    @classmethod
    def default_depth(cls, data: Any) -> Any:
        """Effective depth defaults to h - 5 cm."""
        if isinstance(data, dict) and data.get('d') is None:
            h = data.get('h')
            if isinstance(h, (int, float)):
                data = {**data, 'd': h - 5}
        return data

    @model_validator(mode='after')
    def validate_depth(self) -> 'BeamSection':
        """Enforce 0 < d < h."""
        if self.d is None or not (0 < self.d < self.h):
            raise ValueError(f"Effective depth d = {self.d} cm must satisfy 0 < d < h = {self.h} cm")
        return self

    @classmethod
    def from_detailing(
        cls,
        bw: float,
        h: float,
        cover: float,
        bar_phi: float = 20,
        stirrup_phi: float = 8,
        d_prime: float = 5.0
    ) -> 'BeamSection':
        """
        Section whose effective depth follows from the detailing.

        d = h - cover - φ_stirrup - φ_bar/2, with diameters given in mm.
        """
        d = h - cover - stirrup_phi / 10 - bar_phi / 20
        return cls(bw=bw, h=h, d=d, c_nom=cover, d_prime=d_prime)


def bar_area(n_bars: int, phi: float) -> float:
    """Total area (cm²) of n bars of diameter phi (mm)."""
    return n_bars * np.pi * (phi / 20) ** 2


class MaterialLoader:
    """
    Helper class to load standard NBR 6118 material grades.

    Example:
        >>> concrete = MaterialLoader.get_concrete("C30")
        >>> steel = MaterialLoader.get_steel("CA-50")
        >>> print(f"fck = {concrete.fck}, fyk = {steel.fyk}")
        fck = 30.0, fyk = 500.0
    """

    @staticmethod
    def get_concrete(grade_name: str, aggregate: str = 'granite') -> Concrete:
        """
        Get predefined concrete grade.

        Raises:
            ValueError: If grade_name not found
        """
        grades = NBR_PARAMETERS['concrete_grades']
        if grade_name not in grades:
            available = ", ".join(grades.keys())
            raise ValueError(
                f"Unknown concrete grade: {grade_name}. "
                f"Available grades: {available}"
            )
        logger.debug("Concrete grade %s: fck = %s MPa", grade_name, grades[grade_name])
        return Concrete(fck=grades[grade_name], aggregate=aggregate)

    @staticmethod
    def get_steel(grade_name: str) -> Steel:
        """
        Get predefined steel grade.

        Raises:
            ValueError: If grade_name not found
        """
        grades = NBR_PARAMETERS['steel_grades']
        if grade_name not in grades:
            available = ", ".join(grades.keys())
            raise ValueError(
                f"Unknown steel grade: {grade_name}. "
                f"Available grades: {available}"
            )
        return Steel(fyk=grades[grade_name], grade=grade_name)

    @staticmethod
    def list_concrete_grades() -> List[str]:
        """Get list of available concrete grade names."""
        return list(NBR_PARAMETERS['concrete_grades'].keys())

    @staticmethod
    def list_steel_grades() -> List[str]:
        """Get list of available steel grade names."""
        return list(NBR_PARAMETERS['steel_grades'].keys())


def validate_positive(name: str, value: float) -> float:
    """Reject non-finite or non-positive numeric input (caller bug)."""
    if value is None or not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be a positive finite number, got {value}")
    return value
