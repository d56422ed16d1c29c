"""
Load envelopes, combinations and deflection integration for nbrbeam
"""

from .parameters import NBR_PARAMETERS, load_design_parameters
from .integration import CurvatureIntegrator
from .loads import (
    StationSide,
    Station,
    Span,
    LoadEnvelope,
    CriticalSection,
    LoadCaseStore,
    tag_stations,
)
from .combinations import (
    CombinationFactors,
    DynamicCoefficients,
    PinnedSection,
    LoadCombinator,
    load_combination_factors,
)

__all__ = [
    'NBR_PARAMETERS',
    'load_design_parameters',
    'CurvatureIntegrator',
    'StationSide',
    'Station',
    'Span',
    'LoadEnvelope',
    'CriticalSection',
    'LoadCaseStore',
    'tag_stations',
    'CombinationFactors',
    'DynamicCoefficients',
    'PinnedSection',
    'LoadCombinator',
    'load_combination_factors',
]
