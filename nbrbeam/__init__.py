"""
nbrbeam - NBR 6118 verification of reinforced concrete beam sections.

Ultimate and service limit-state checks (flexure, shear, fatigue, crack
width, deflection) for rectangular beams, driven by the load envelopes
of a continuous beam.
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a console handler to the package logger (scripts and notebooks)."""
    logger = logging.getLogger(__name__)
    logger.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.NullHandler)
               for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
