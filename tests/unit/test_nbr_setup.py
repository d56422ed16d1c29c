"""
Unit tests for NBR 6118:2023 material properties and section geometry
"""

import math

import numpy as np
import pytest
from pydantic import ValidationError

from nbrbeam.design.nbr_setup import (
    BeamSection,
    Concrete,
    MaterialLoader,
    SectionMaterials,
    Steel,
    bar_area,
    validate_positive,
)
from nbrbeam.core.parameters import load_design_parameters
from nbrbeam.design.base import SectionVerifier


# ============================================================================
# CONCRETE
# ============================================================================

class TestConcrete:
    """Test derived concrete strengths and moduli."""

    @pytest.mark.parametrize("fck", [20, 25, 30, 40, 50, 60, 90])
    def test_design_strengths(self, fck):
        """fcd, fctd and the fatigue limits follow from fck."""
        c = Concrete(fck=fck)

        assert c.fcd == pytest.approx(fck / 1.4)
        assert c.fctd == pytest.approx(0.7 * c.fctm / 1.4)
        assert c.fcd_fad == pytest.approx(0.45 * c.fcd)
        assert c.fctd_fad == pytest.approx(0.30 * c.fctd)
        assert c.sigma_cd == pytest.approx(0.85 * c.fcd)

    def test_fctm_up_to_c50(self):
        """fctm = 0.3·fck^(2/3) for fck ≤ 50 MPa."""
        assert Concrete(fck=30).fctm == pytest.approx(0.3 * 30 ** (2 / 3))
        assert Concrete(fck=50).fctm == pytest.approx(0.3 * 50 ** (2 / 3))

    def test_fctm_above_c50(self):
        """fctm = 2.12·ln(1 + 0.11·fck) for fck > 50 MPa."""
        assert Concrete(fck=60).fctm == pytest.approx(2.12 * math.log(1 + 0.11 * 60))

    def test_characteristic_tensile_bounds(self):
        c = Concrete(fck=30)
        assert c.fctk_inf == pytest.approx(0.7 * c.fctm)
        assert c.fctk_sup == pytest.approx(1.3 * c.fctm)

    def test_moduli_granite(self):
        """Eci = 5600·√fck and Ecs = (0.8 + 0.2·fck/80)·Eci."""
        c = Concrete(fck=30)
        assert c.Eci == pytest.approx(5600 * math.sqrt(30))
        assert c.Ecs == pytest.approx(0.875 * 5600 * math.sqrt(30))

    def test_secant_ratio_capped(self):
        """alpha_i never exceeds 1.0."""
        c = Concrete(fck=90)
        assert c.Ecs == pytest.approx(c.Eci)

    @pytest.mark.parametrize("aggregate,alpha", [
        ('granite', 1.0), ('basalt', 1.2), ('limestone', 0.9), ('sandstone', 0.7),
        ('Basalt', 1.2), ('gneiss', 1.0),
    ])
    def test_aggregate_factor(self, aggregate, alpha):
        """Aggregate coefficient, case-insensitive, unknown → 1.0."""
        c = Concrete(fck=30, aggregate=aggregate)
        assert c.alpha_e == alpha
        assert c.Eci == pytest.approx(alpha * 5600 * math.sqrt(30))

    @pytest.mark.parametrize("fck", [0, -10, float('nan'), float('inf')])
    def test_invalid_fck_rejected(self, fck):
        with pytest.raises(ValueError):
            Concrete(fck=fck)

    def test_frozen(self):
        c = Concrete(fck=30)
        with pytest.raises(ValidationError):
            c.fck = 40


# ============================================================================
# STEEL
# ============================================================================

class TestSteel:
    """Test steel properties and the fatigue stress-range table."""

    def test_design_yield(self):
        s = Steel(fyk=500)
        assert s.fyd == pytest.approx(500 / 1.15)
        assert s.Es == 210000
        assert s.epsilon_yd == pytest.approx(500 / 1.15 / 210000 * 1000)

    @pytest.mark.parametrize("phi,limit", [
        (10, 190), (16, 190), (20, 185), (25, 175), (32, 165), (40, 165),
    ])
    def test_straight_bar_limits(self, phi, limit):
        assert Steel().get_delta_sigma_fad(phi, 'straight') == limit

    @pytest.mark.parametrize("bar_type", ['bent', 'stirrup'])
    def test_bent_and_stirrup_limit(self, bar_type):
        """Flat 85 MPa regardless of diameter."""
        assert Steel().get_delta_sigma_fad(10, bar_type) == 85
        assert Steel().get_delta_sigma_fad(32, bar_type) == 85

    def test_invalid_fyk_rejected(self):
        with pytest.raises(ValueError):
            Steel(fyk=0)


class TestSectionMaterials:
    """Test material bundle."""

    def test_from_values(self):
        mats = SectionMaterials.from_values(fck=35, fyk=500, fywk=600, aggregate='basalt')

        assert mats.concrete.fck == 35
        assert mats.concrete.alpha_e == 1.2
        assert mats.steel.fyk == 500
        assert mats.fywk == 600

    def test_modular_ratio(self):
        mats = SectionMaterials.from_values(30, 500)
        assert mats.modular_ratio == pytest.approx(210000 / mats.concrete.Ecs)

    def test_summary(self):
        summary = SectionMaterials.from_values(30, 500).get_summary()
        assert summary['steel']['fyd'] == "434.78 MPa"
        assert summary['steel']['delta_sigma_fad'] == "185 MPa"
        assert summary['concrete']['fcd'] == "21.43 MPa"


# ============================================================================
# GEOMETRY
# ============================================================================

class TestBeamSection:
    """Test section geometry and its invariant 0 < d < h."""

    def test_default_depth(self):
        assert BeamSection(bw=30, h=60).d == 55

    def test_explicit_depth(self):
        assert BeamSection(bw=30, h=60, d=54).d == 54

    @pytest.mark.parametrize("d", [60, 65, 0, -1])
    def test_depth_outside_section(self, d):
        with pytest.raises(ValueError):
            BeamSection(bw=30, h=60, d=d)

    @pytest.mark.parametrize("bw,h", [(0, 60), (30, -60), (float('nan'), 60)])
    def test_invalid_dimensions(self, bw, h):
        with pytest.raises(ValueError):
            BeamSection(bw=bw, h=h)

    def test_from_detailing(self):
        """d = h − cover − φt − φl/2."""
        section = BeamSection.from_detailing(30, 60, cover=3, bar_phi=20, stirrup_phi=8)
        assert section.d == pytest.approx(55.2)
        assert section.c_nom == 3

    def test_bar_area(self):
        assert bar_area(4, 20) == pytest.approx(4 * np.pi)
        assert bar_area(1, 10) == pytest.approx(0.7854, abs=1e-4)


class TestMaterialLoader:
    """Test named grades from the YAML tables."""

    def test_concrete_grade(self):
        assert MaterialLoader.get_concrete("C30").fck == 30

    def test_steel_grade(self):
        steel = MaterialLoader.get_steel("CA-60")
        assert steel.fyk == 600
        assert steel.grade == "CA-60"

    def test_unknown_grade(self):
        with pytest.raises(ValueError, match="Unknown concrete grade"):
            MaterialLoader.get_concrete("C99")
        with pytest.raises(ValueError, match="Unknown steel grade"):
            MaterialLoader.get_steel("CA-99")

    def test_grade_lists(self):
        assert "C50" in MaterialLoader.list_concrete_grades()
        assert MaterialLoader.list_steel_grades() == ["CA-25", "CA-50", "CA-60"]


class TestParameters:
    """Test constant loading."""

    def test_load_defaults(self):
        params = load_design_parameters()
        assert params['safety_factors']['gamma_c'] == 1.4
        assert params['combinations']['ELU']['gamma_q'] == 1.4
        assert params['serviceability']['creep_xi'][70] == 2.0

    def test_override_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("safety_factors:\n  gamma_c: 1.5\n", encoding='utf-8')
        assert load_design_parameters(path)['safety_factors']['gamma_c'] == 1.5

    def test_design_package_export(self):
        import nbrbeam.design

        assert nbrbeam.design.load_design_parameters is load_design_parameters

    def test_base_verifier(self):
        verifier = SectionVerifier(BeamSection(bw=30, h=60))

        assert verifier.d == 55
        assert verifier.concrete.fck == 30
        assert repr(verifier) == "SectionVerifier(bw=30.0, h=60.0, d=55.0, fck=30.0, fyk=500.0)"

    @pytest.mark.parametrize("value", [0, -1, float('nan'), float('inf')])
    def test_validate_positive(self, value):
        with pytest.raises(ValueError):
            validate_positive('As', value)
