"""
NBR 6118:2023 section verification modules for nbrbeam
Flexure, shear, fatigue and serviceability of rectangular RC beams
"""

from .nbr_setup import (
    Concrete,
    Steel,
    SectionMaterials,
    BeamSection,
    MaterialLoader,
    bar_area,
)
from ..core.parameters import load_design_parameters
from .base import Status, SectionVerifier, all_ok
from .nbr_bending import FlexuralDesigner, classify_domain
from .nbr_shear import ShearDesigner
from .nbr_fatigue import FatigueChecker
from .nbr_sls import ServiceabilityChecker, ServiceabilityOptions, creep_coefficient
from .section_check import (
    ReinforcementLayout,
    BeamDesignInput,
    verify_critical_section,
    run_beam_verification,
    run_serviceability,
    summary_dataframe,
)

# ============================================================================
# VERIFIER REGISTRY (Factory Pattern)
# ============================================================================

VERIFIER_REGISTRY = {
    "flexure": FlexuralDesigner,
    "shear": ShearDesigner,
    "fatigue": FatigueChecker,
    "serviceability": ServiceabilityChecker,
}


def get_verifier(name: str, section: BeamSection, materials: SectionMaterials = None, **kwargs) -> SectionVerifier:
    """
    Factory method to build a section verifier.

    Args:
        name: Verifier identifier ("flexure", "shear", "fatigue", "serviceability")
        section: Beam cross-section
        materials: Section materials (defaults to C30 / CA-50)
        **kwargs: Extra constructor arguments (As, phi, options, ...)

    Returns:
        SectionVerifier instance

    Raises:
        ValueError: If name not found in registry
    """
    if name not in VERIFIER_REGISTRY:
        available = ", ".join(VERIFIER_REGISTRY.keys())
        raise ValueError(f"Unknown verifier: {name}. Available: {available}")
    return VERIFIER_REGISTRY[name](section, materials, **kwargs)


__all__ = [
    'Concrete',
    'Steel',
    'SectionMaterials',
    'BeamSection',
    'MaterialLoader',
    'bar_area',
    'load_design_parameters',
    'Status',
    'SectionVerifier',
    'all_ok',
    'FlexuralDesigner',
    'classify_domain',
    'ShearDesigner',
    'FatigueChecker',
    'ServiceabilityChecker',
    'ServiceabilityOptions',
    'creep_coefficient',
    'ReinforcementLayout',
    'BeamDesignInput',
    'verify_critical_section',
    'run_beam_verification',
    'run_serviceability',
    'summary_dataframe',
    'VERIFIER_REGISTRY',
    'get_verifier',
]
