"""
Unit tests for NBR 6118:2023 fatigue verification
"""

import pytest

from nbrbeam.design.base import Status
from nbrbeam.design.nbr_fatigue import FatigueChecker
from nbrbeam.design.nbr_setup import BeamSection, SectionMaterials


@pytest.fixture
def checker():
    """30×60 cm, d = 55 cm, As = 10 cm² of φ20 straight bars, C30 / CA-50."""
    section = BeamSection(bw=30, h=60, d=55)
    return FatigueChecker(section, SectionMaterials.from_values(30, 500), As=10.0, phi=20)


class TestStageII:
    """Test cracked-section properties fixed at construction."""

    def test_neutral_axis_root(self, checker):
        """x_II solves bw/2·x² + n·As·x − n·As·d = 0."""
        n, x = checker.n, checker.x_II
        residual = 30 / 2 * x ** 2 + n * 10 * x - n * 10 * 55
        assert residual == pytest.approx(0, abs=1e-6)
        assert 0 < x < 55
        assert x == pytest.approx(14.53, abs=0.05)

    def test_inertia_and_lever_arm(self, checker):
        n, x = checker.n, checker.x_II
        assert checker.I_II == pytest.approx(30 * x ** 3 / 3 + n * 10 * (55 - x) ** 2)
        assert checker.z == pytest.approx(55 - x / 3)

    def test_invalid_area(self):
        with pytest.raises(ValueError):
            FatigueChecker(BeamSection(bw=30, h=60), As=0)


class TestStresses:
    """Test linear transformed-section stresses."""

    def test_linear_in_moment(self, checker):
        assert checker.calc_steel_stress(200) == pytest.approx(2 * checker.calc_steel_stress(100))
        assert checker.calc_concrete_stress(200) == pytest.approx(2 * checker.calc_concrete_stress(100))

    def test_stress_ratio(self, checker):
        """σs/σc = n·(d − x)/x."""
        ratio = checker.calc_steel_stress(100) / checker.calc_concrete_stress(100)
        assert ratio == pytest.approx(checker.n * (55 - checker.x_II) / checker.x_II)


class TestSteelFatigue:
    """Test the longitudinal steel stress range."""

    def test_constant_moment(self, checker):
        result = checker.verify_steel_fatigue(120, 120)

        assert result['deltaSigma'] == 0
        assert result['status'] == Status.OK

    def test_within_limit(self, checker):
        result = checker.verify_steel_fatigue(60, 40)

        assert result['limite'] == 185
        assert result['deltaSigma'] == pytest.approx(
            checker.calc_steel_stress(60) - checker.calc_steel_stress(40)
        )
        assert result['status'] == Status.OK

    def test_exceeds_limit(self, checker):
        result = checker.verify_steel_fatigue(200, 0)
        assert result['status'] == Status.FAIL
        assert result['utilizacao'] > 100

    def test_range_uses_magnitudes(self, checker):
        assert checker.verify_steel_fatigue(-60, -40)['deltaSigma'] == pytest.approx(
            checker.verify_steel_fatigue(60, 40)['deltaSigma']
        )

    def test_bent_bars_stricter(self):
        section = BeamSection(bw=30, h=60, d=55)
        straight = FatigueChecker(section, As=10.0, phi=20, bar_type='straight')
        bent = FatigueChecker(section, As=10.0, phi=20, bar_type='bent')

        assert straight.verify_steel_fatigue(100, 40)['status'] == Status.OK
        assert bent.verify_steel_fatigue(100, 40)['status'] == Status.FAIL
        assert bent.verify_steel_fatigue(100, 40)['limite'] == 85


class TestConcreteFatigue:
    """Test concrete compression and cracking under fatigue loads."""

    def test_compression_limit(self, checker):
        ok = checker.verify_concrete_compression_fatigue(60)
        fail = checker.verify_concrete_compression_fatigue(200)

        assert ok['limite'] == pytest.approx(0.45 * 30 / 1.4)
        assert ok['status'] == Status.OK
        assert fail['status'] == Status.FAIL

    def test_cracking_threshold(self, checker):
        """σt = 6M/(bw·h²) against 0.30·fctd."""
        cracked = checker.check_cracking_fatigue(10)
        uncracked = checker.check_cracking_fatigue(5)

        assert cracked['sigmaTraction'] == pytest.approx(6 * 1000 / (30 * 60 ** 2) * 10)
        assert cracked['cracked'] is True
        assert cracked['stage'] == 'II'
        assert uncracked['cracked'] is False
        assert uncracked['limite'] == pytest.approx(0.30 * checker.concrete.fctd)


class TestVerifyAll:
    """Test aggregation: steel and concrete gate, cracking is informational."""

    def test_all_ok_even_when_cracked(self, checker):
        result = checker.verify_all(60, 40)

        assert result['cracking']['cracked'] is True
        assert result['status'] == Status.OK

    def test_failure(self, checker):
        result = checker.verify_all(200, 0)

        assert result['status'] == Status.FAIL
        assert result['steel']['status'] == Status.FAIL
        assert result['concrete']['status'] == Status.FAIL
