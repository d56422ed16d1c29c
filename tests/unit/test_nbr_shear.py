"""
Unit tests for NBR 6118:2023 shear design (Model I)
"""

import math

import pytest

from nbrbeam.design.base import Status
from nbrbeam.design.nbr_setup import BeamSection, SectionMaterials
from nbrbeam.design.nbr_shear import ShearDesigner


@pytest.fixture
def shear():
    """30×60 cm section, d = 55 cm, C30, stirrups CA-50."""
    section = BeamSection(bw=30, h=60, d=55)
    return ShearDesigner(section, SectionMaterials.from_values(fck=30, fyk=500, fywk=500))


class TestShearCapacities:
    """Test strut capacity, concrete contribution and minimum stirrups."""

    def test_strut_capacity(self, shear):
        expected = 0.27 * (1 - 30 / 250) * (30 / 1.4 * 0.1) * 30 * 55
        assert shear.Vrd2 == pytest.approx(expected)
        assert shear.Vrd2 == pytest.approx(840.1, abs=0.1)

    def test_concrete_contribution(self, shear):
        fctd = shear.concrete.fctd
        assert shear.Vc0 == pytest.approx(0.6 * fctd * 0.1 * 30 * 55)
        assert shear.Vc_fad == pytest.approx(0.5 * shear.Vc0)

    def test_minimum_stirrups(self, shear):
        fctm = shear.concrete.fctm
        assert shear.rho_sw_min == pytest.approx(0.2 * fctm / 500)
        assert shear.Asw_min == pytest.approx(0.2 * fctm / 500 * 30 * 100)
        assert shear.Asw_min == pytest.approx(3.48, abs=0.01)

    def test_fywd_capped(self):
        designer = ShearDesigner(BeamSection(bw=30, h=60), SectionMaterials.from_values(fywk=600))
        assert designer.fywd == 435
        assert ShearDesigner(BeamSection(bw=30, h=60)).fywd == pytest.approx(500 / 1.15)

    def test_stirrup_area(self):
        """φ8 two legs every 15 cm."""
        expected = 2 * math.pi * 0.4 ** 2 / 15 * 100
        assert ShearDesigner.stirrup_area(8, 15) == pytest.approx(expected)
        assert ShearDesigner.stirrup_area(8, 15, legs=4) == pytest.approx(2 * expected)

    def test_stirrup_area_invalid_spacing(self):
        with pytest.raises(ValueError):
            ShearDesigner.stirrup_area(8, 0)


class TestStirrupDesign:
    """Test ELU stirrup design."""

    def test_reference_case(self, shear):
        """Vsd = 150 kN: strut OK, stirrups at least the minimum."""
        result = shear.design_stirrups_elu(150)

        assert shear.Vrd2 > 150
        assert result['status'] == Status.OK
        assert result['Asw_final'] >= shear.Asw_min
        assert result['utilizacao'] == pytest.approx(150 / shear.Vrd2 * 100)

    def test_zero_shear(self, shear):
        result = shear.design_stirrups_elu(0)

        assert result['status'] == Status.OK
        assert result['Asw_final'] == pytest.approx(shear.Asw_min)

    def test_concrete_carries_all(self, shear):
        result = shear.design_stirrups_elu(100)

        assert result['Vsw'] == 0
        assert result['Asw_calc'] == 0
        assert result['Asw_final'] == pytest.approx(shear.Asw_min)

    def test_stirrups_above_minimum(self, shear):
        result = shear.design_stirrups_elu(300)

        Vsw = 300 - shear.Vc0
        expected = Vsw / (0.9 * 55 * (500 / 1.15 * 0.1)) * 100
        assert result['Asw_calc'] == pytest.approx(expected)
        assert result['Asw_final'] == pytest.approx(expected)

    def test_sign_agnostic(self, shear):
        assert shear.design_stirrups_elu(-300)['Asw_final'] == pytest.approx(
            shear.design_stirrups_elu(300)['Asw_final']
        )

    def test_strut_crushing(self, shear):
        result = shear.design_stirrups_elu(900)

        assert result['status'] == Status.FAIL
        assert result['ratioBiela'] > 100
        assert 'Asw_final' not in result

    def test_spacing_limits(self, shear):
        """s_max = min(0.6d, 30) at low shear, min(0.3d, 20) above 0.67·Vrd2."""
        assert shear.design_stirrups_elu(150)['sMax'] == 30
        assert shear.design_stirrups_elu(600)['sMax'] == pytest.approx(16.5)


class TestVerifyStirrups:
    """Test provided stirrups against the design."""

    def test_adequate(self, shear):
        result = shear.verify_stirrups(150, ShearDesigner.stirrup_area(8, 15))

        assert result['status'] == Status.OK
        assert result['utilizacao'] == pytest.approx(
            max(result['ratioBiela'], result['utilizacao_estribo'])
        )

    def test_insufficient(self, shear):
        result = shear.verify_stirrups(300, 3.0)
        assert result['status'] == Status.FAIL
        assert result['utilizacao_estribo'] > 100

    def test_strut_failure(self, shear):
        result = shear.verify_stirrups(900, 20.0)
        assert result['status'] == Status.FAIL
        assert result['utilizacao'] == float('inf')


class TestStirrupFatigue:
    """Test the stirrup stress-range check."""

    def test_concrete_absorbs_variation(self, shear):
        result = shear.verify_fatigue_elu(100, 90, 6.7)

        assert result['status'] == Status.OK
        assert result['deltaVsw'] == 0
        assert result['deltaSigma'] == 0

    def test_stress_range(self, shear):
        result = shear.verify_fatigue_elu(200, 20, 30.0)

        delta_Vsw = 180 - shear.Vc_fad
        expected = delta_Vsw / (0.9 * 55 * 0.30) * 10
        assert result['deltaVsw'] == pytest.approx(delta_Vsw)
        assert result['deltaSigma'] == pytest.approx(expected)
        assert result['limite'] == 85
        assert result['status'] == Status.OK

    def test_fatigue_failure(self, shear):
        result = shear.verify_fatigue_elu(200, 20, 6.7)
        assert result['status'] == Status.FAIL
        assert result['deltaSigma'] > 85


class TestShiftLength:
    """Test the shift of the moment diagram."""

    def test_low_shear(self, shear):
        assert shear.calc_shift_length(100) == pytest.approx(27.5)

    def test_high_shear(self, shear):
        Vc0 = shear.Vc0
        assert shear.calc_shift_length(300) == pytest.approx(27.5 * 300 / (300 - Vc0))

    @pytest.mark.parametrize("Vsd", [0, 50, 143, 144, 200, 500, -400])
    def test_never_below_half_depth(self, shear, Vsd):
        assert shear.calc_shift_length(Vsd) >= 0.5 * 55
