"""
Integration tests: sample crane-runway beam from load import to section cards
"""

import numpy as np
import pandas as pd
import pytest

from nbrbeam import configure_logging
from nbrbeam.core import DynamicCoefficients, LoadCaseStore, PinnedSection, StationSide
from nbrbeam.design import (
    BeamDesignInput,
    ReinforcementLayout,
    Status,
    get_verifier,
    run_beam_verification,
    run_serviceability,
    summary_dataframe,
)
from nbrbeam.design.nbr_setup import BeamSection, SectionMaterials


@pytest.fixture(scope="module")
def store():
    return LoadCaseStore.sample()


class TestCombinedEnvelopes:
    """Combined envelopes along the two-span beam."""

    def test_hogging_peak_at_support(self, store):
        elu = store.get_load_case_data('ELU')
        i = int(np.argmin(elu.values('M_min')))

        assert elu.xs[i] == 6.0
        assert elu.stations[i].side == StationSide.LEFT
        assert elu.values('M_min')[i] == pytest.approx(-132.272)

    def test_combinations_ordered_by_severity(self, store):
        at_midspan = {
            case: store.get_load_case_data(case).value_at(2.0, 0, 'M_max')
            for case in ('ELU', 'FADIGA', 'ELS_FREQ', 'ELS_QP')
        }
        assert at_midspan['ELU'] > at_midspan['FADIGA'] > at_midspan['ELS_FREQ'] > at_midspan['ELS_QP']

    def test_dynamic_coefficients(self, store):
        plain = store.get_load_case_data('ELU')
        dynamic = store.get_load_case_data('ELU', dynamic=DynamicCoefficients(civ=1.25))
        assert np.all(dynamic.values('M_max') >= plain.values('M_max'))

    def test_round_trip_through_dataframe(self, store):
        """Rows exported per case rebuild the same base envelopes."""
        rows = []
        for span in store.spans:
            for case_id, env in (('DEAD', store.dead), ('TRILHO', store.trilho)):
                part = env.split_spans([span])[0]
                for x, v, m in zip(part.xs, part.values('V'), part.values('M')):
                    rows.append({'frame': span.name, 'station': x, 'case': case_id, 'V': v, 'M': m})
            part = store.mobile.split_spans([span])[0]
            for x, vmax, vmin, mmax, mmin in zip(part.xs, part.values('V_max'), part.values('V_min'),
                                                 part.values('M_max'), part.values('M_min')):
                rows.append({'frame': span.name, 'station': x, 'case': 'ENV_MOVEL', 'V': vmax, 'M': mmax})
                rows.append({'frame': span.name, 'station': x, 'case': 'ENV_MOVEL', 'V': vmin, 'M': mmin})

        rebuilt = LoadCaseStore.from_dataframe(pd.DataFrame(rows))

        np.testing.assert_allclose(rebuilt.dead.xs, store.dead.xs)
        np.testing.assert_allclose(rebuilt.dead.values('V'), store.dead.values('V'))
        np.testing.assert_allclose(rebuilt.mobile.values('M_min'), store.mobile.values('M_min'))
        assert rebuilt.summary() == store.summary()


class TestBeamVerification:
    """Critical sections, section cards and summary table."""

    def test_default_layout(self, store):
        configure_logging()
        inputs = BeamDesignInput(bw=30, h=60)
        cards = run_beam_verification(store, inputs, pinned=[PinnedSection(x=6.0, side=StationSide.RIGHT)])
        df = summary_dataframe(cards)

        assert len(cards) == 4
        assert cards[3]['side'] == 'right'
        assert list(df['Status']) == [str(c['status']) for c in cards]
        for card in cards:
            assert card['fatigue'] is not None
            assert card['status'] == (Status.OK if card['card_ok'] else Status.FAIL)

    def test_heavier_layout_passes(self, store):
        layout = ReinforcementLayout(n_bars=6, bar_phi=20, stirrup_phi=10, stirrup_spacing=10)
        cards = run_beam_verification(store, BeamDesignInput(bw=40, h=80, layout=layout))
        assert all(c['status'] == Status.OK for c in cards)

    def test_serviceability(self, store):
        result = run_serviceability(store, BeamDesignInput(bw=30, h=60))

        assert result['cracking']['x'] == 2.0
        for span in result['deflection']['spans']:
            assert span['deflections'][0]['f'] == 0
            assert span['deflections'][-1]['f'] == 0
            assert span['f_total'] >= span['f0']


class TestVerifierFactory:
    def test_registry(self):
        section = BeamSection(bw=30, h=60, d=55)
        mats = SectionMaterials.from_values(30, 500)

        flexure = get_verifier('flexure', section, mats)
        fatigue = get_verifier('fatigue', section, mats, As=10.0, phi=20)

        assert flexure.design_reinforcement(200)['status'] == Status.OK
        assert fatigue.verify_all(60, 40)['status'] == Status.OK
        assert get_verifier('serviceability', section, As=10.0).Mr == pytest.approx(78.2, abs=0.1)

    def test_unknown_verifier(self):
        with pytest.raises(ValueError, match="torsion"):
            get_verifier('torsion', BeamSection(bw=30, h=60))
