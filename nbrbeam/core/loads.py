"""
Load envelopes along a continuous beam.

A station may appear twice at a support: the first element is the limit
coming from the previous span (LEFT), the second the limit going into the
next span (RIGHT). Repeated stations are never merged.

Stations in m, moments in kN·m, shears in kN.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .integration import CurvatureIntegrator

logger = logging.getLogger(__name__)

SAMPLE_DATA_PATH = Path(__file__).parent.parent / "data" / "sample_crane_beam.yaml"

DETERMINISTIC_FIELDS = ('M', 'V')
ENVELOPE_FIELDS = ('M_max', 'M_min', 'V_max', 'V_min')

BASE_CASES = {
    'DEAD': 'Peso Próprio',
    'TRILHO': 'Trilho',
    'ENV_MOVEL': 'Trem (Carga Móvel)',
}


class StationSide(str, Enum):
    """Which one-sided limit a station represents."""
    CONTINUOUS = "continuous"
    LEFT = "left"
    RIGHT = "right"


class Station(BaseModel):
    """Position along the beam (m) and the side of a discontinuity."""
    model_config = ConfigDict(frozen=True)

    x: float = Field(..., allow_inf_nan=False)
    side: StationSide = StationSide.CONTINUOUS

    @property
    def occurrence(self) -> int:
        """0 for the first element at x, 1 for the right limit of a support."""
        return 1 if self.side == StationSide.RIGHT else 0


class Span(BaseModel):
    """Continuous span between two supports."""
    model_config = ConfigDict(frozen=True)

    name: str
    start_x: float = Field(..., allow_inf_nan=False)
    end_x: float = Field(..., allow_inf_nan=False)

    @model_validator(mode='after')
    def check_extent(self) -> 'Span':
        if self.end_x <= self.start_x:
            raise ValueError(f"Span {self.name}: end_x = {self.end_x} must exceed start_x = {self.start_x}")
        return self

    @property
    def length(self) -> float:
        return self.end_x - self.start_x


def tag_stations(xs: Sequence[float]) -> Tuple[Station, ...]:
    """
    Tag repeated stations LEFT/RIGHT.

    Raises:
        ValueError: If stations decrease or a station appears more than twice
    """
    xs = [float(x) for x in xs]
    sides = [StationSide.CONTINUOUS] * len(xs)
    for i in range(1, len(xs)):
        if xs[i] < xs[i - 1]:
            raise ValueError(f"Stations must be non-decreasing (x = {xs[i]} after {xs[i - 1]})")
        if xs[i] == xs[i - 1]:
            if sides[i - 1] == StationSide.RIGHT:
                raise ValueError(f"Station x = {xs[i]} appears more than twice")
            sides[i - 1] = StationSide.LEFT
            sides[i] = StationSide.RIGHT
    return tuple(Station(x=x, side=side) for x, side in zip(xs, sides))


class LoadEnvelope(BaseModel):
    """
    Internal forces at the stations of one load case.

    Deterministic cases carry M and V; enveloping cases carry
    M_max, M_min, V_max and V_min.

    Example:
        >>> env = LoadEnvelope.from_arrays('DEAD', [0, 3, 6, 6], M=[0, 9.6, -19, -19], V=[-9, 3, 16, -16])
        >>> [s.side.value for s in env.stations]
        ['continuous', 'continuous', 'left', 'right']
    """
    model_config = ConfigDict(frozen=True)

    case_id: str
    stations: Tuple[Station, ...]
    M: Optional[Tuple[float, ...]] = None
    V: Optional[Tuple[float, ...]] = None
    M_max: Optional[Tuple[float, ...]] = None
    M_min: Optional[Tuple[float, ...]] = None
    V_max: Optional[Tuple[float, ...]] = None
    V_min: Optional[Tuple[float, ...]] = None

    @model_validator(mode='after')
    def validate_arrays(self) -> 'LoadEnvelope':
        present = [f for f in DETERMINISTIC_FIELDS + ENVELOPE_FIELDS if getattr(self, f) is not None]
        if set(present) not in (set(DETERMINISTIC_FIELDS), set(ENVELOPE_FIELDS)):
            raise ValueError(
                f"{self.case_id}: expected either {DETERMINISTIC_FIELDS} or {ENVELOPE_FIELDS}, got {present}"
            )

        n = len(self.stations)
        for name in present:
            values = getattr(self, name)
            if len(values) != n:
                raise ValueError(f"{self.case_id}: {name} has {len(values)} values for {n} stations")
            if not np.all(np.isfinite(values)):
                raise ValueError(f"{self.case_id}: {name} contains non-finite values")

        expected = tag_stations([s.x for s in self.stations])
        if tuple(s.side for s in self.stations) != tuple(s.side for s in expected):
            raise ValueError(f"{self.case_id}: repeated stations must be tagged LEFT then RIGHT")
        return self

    @classmethod
    def from_arrays(cls, case_id: str, xs: Sequence[float], **values: Sequence[float]) -> 'LoadEnvelope':
        """Build an envelope from plain station and value arrays."""
        return cls(
            case_id=case_id,
            stations=tag_stations(xs),
            **{k: tuple(float(v) for v in vals) for k, vals in values.items()},
        )

    @classmethod
    def from_records(cls, case_id: str, records: Iterable[Dict[str, float]]) -> 'LoadEnvelope':
        """Build from row records such as {x, V, M} or {x, V_max, V_min, M_max, M_min}."""
        rows = list(records)
        if not rows:
            raise ValueError(f"{case_id}: no rows")
        fields = ENVELOPE_FIELDS if 'M_max' in rows[0] else DETERMINISTIC_FIELDS
        return cls.from_arrays(
            case_id,
            [r['x'] for r in rows],
            **{f: [r.get(f, 0.0) for r in rows] for f in fields},
        )

    @property
    def is_envelope(self) -> bool:
        return self.M_max is not None

    @property
    def xs(self) -> np.ndarray:
        return np.array([s.x for s in self.stations], dtype=float)

    def __len__(self) -> int:
        return len(self.stations)

    def values(self, field: str) -> np.ndarray:
        """
        Values of one field as an array.

        For deterministic cases the bound fields (M_max, M_min, ...) map to
        the single value.
        """
        if field not in DETERMINISTIC_FIELDS + ENVELOPE_FIELDS:
            raise KeyError(f"Unknown field: {field}")
        data = getattr(self, field)
        if data is None:
            data = getattr(self, field.split('_')[0]) if '_' in field else None
        if data is None:
            raise KeyError(f"{self.case_id} has no field {field}")
        return np.array(data, dtype=float)

    def bounds(self, quantity: str = 'M') -> Tuple[np.ndarray, np.ndarray]:
        """(max, min) arrays of 'M' or 'V'."""
        return self.values(f'{quantity}_max'), self.values(f'{quantity}_min')

    def governing(self, quantity: str = 'M') -> np.ndarray:
        """Signed bound with the larger magnitude at each station."""
        vmax, vmin = self.bounds(quantity)
        return np.where(np.abs(vmax) >= np.abs(vmin), vmax, vmin)

    def _indices_at(self, x: float) -> np.ndarray:
        return np.flatnonzero(np.isclose(self.xs, x, rtol=0, atol=1e-9))

    def index_of(self, x: float, side: Optional[StationSide] = None) -> int:
        """
        Index of station x; RIGHT selects the second element at a support.

        Raises:
            KeyError: If x is not a station
        """
        idx = self._indices_at(x)
        if idx.size == 0:
            raise KeyError(f"{self.case_id}: no station at x = {x}")
        occurrence = 1 if side == StationSide.RIGHT else 0
        return int(idx[min(occurrence, idx.size - 1)])

    def value_at(self, x: float, occurrence: int, field: str) -> float:
        """
        Value of field at the n-th element of station x.

        The occurrence is clamped to the elements available; a missing
        station gives 0.0.
        """
        idx = self._indices_at(x)
        if idx.size == 0:
            return 0.0
        return float(self.values(field)[idx[min(occurrence, idx.size - 1)]])

    def closest_index(self, x: float, side: Optional[StationSide] = None) -> int:
        """Index of the station nearest to x (second element at a support when RIGHT)."""
        xs = self.xs
        i = int(np.argmin(np.abs(xs - x)))
        if side == StationSide.RIGHT and i + 1 < xs.size and xs[i + 1] == xs[i]:
            i += 1
        return i

    def subset(self, idx: Sequence[int]) -> 'LoadEnvelope':
        """Envelope restricted to the given station indices (sides re-tagged)."""
        idx = list(idx)
        fields = ENVELOPE_FIELDS if self.is_envelope else DETERMINISTIC_FIELDS
        return LoadEnvelope.from_arrays(
            self.case_id,
            self.xs[idx],
            **{f: self.values(f)[idx] for f in fields},
        )

    def split_spans(self, spans: Sequence[Span]) -> List['LoadEnvelope']:
        """
        One sub-envelope per span.

        The LEFT element of a support goes to the span ending there and
        the RIGHT element to the span starting there.
        """
        xs = self.xs
        return [
            self.subset(CurvatureIntegrator.span_indices(xs, span.start_x, span.end_x))
            for span in spans
        ]

    def to_dataframe(self) -> pd.DataFrame:
        fields = ENVELOPE_FIELDS if self.is_envelope else DETERMINISTIC_FIELDS
        data = {
            'x': self.xs,
            'side': [s.side.value for s in self.stations],
        }
        for f in fields:
            data[f] = self.values(f)
        return pd.DataFrame(data)


class CriticalSection(BaseModel):
    """Internal-force bounds at a governing station."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    x: float
    side: StationSide = StationSide.CONTINUOUS
    M_max: float
    M_min: float
    V_max: float
    V_min: float

    @property
    def design_moment(self) -> float:
        return max(abs(self.M_max), abs(self.M_min))

    @property
    def design_shear(self) -> float:
        return max(abs(self.V_max), abs(self.V_min))

    @property
    def governing_moment(self) -> float:
        """Signed moment bound with the larger magnitude."""
        return self.M_max if abs(self.M_max) >= abs(self.M_min) else self.M_min

    @property
    def moment_range(self) -> float:
        """||M_max| − |M_min||."""
        return abs(abs(self.M_max) - abs(self.M_min))


class LoadCaseStore:
    """
    Immutable snapshot of the base load cases of a beam.

    Holds DEAD, TRILHO and ENV_MOVEL envelopes, the spans and the total
    length. Combination ids are delegated to LoadCombinator.

    Example:
        >>> store = LoadCaseStore.sample()
        >>> store.summary()
        {'total_length': 12.0, 'num_spans': 2}
    """

    def __init__(
        self,
        cases: Dict[str, LoadEnvelope],
        spans: Sequence[Span],
        total_length: Optional[float] = None
    ):
        missing = [c for c in BASE_CASES if c not in cases]
        if missing:
            raise ValueError(f"Missing load cases: {', '.join(missing)}")
        if not cases['ENV_MOVEL'].is_envelope:
            raise ValueError("ENV_MOVEL must be an enveloping case (M_max/M_min/V_max/V_min)")

        self._cases = dict(cases)
        self.spans: Tuple[Span, ...] = tuple(spans)
        if total_length is None:
            total_length = max((s.end_x for s in self.spans), default=float(cases['ENV_MOVEL'].xs.max()))
        self.total_length = float(total_length)

    @property
    def dead(self) -> LoadEnvelope:
        return self._cases['DEAD']

    @property
    def trilho(self) -> LoadEnvelope:
        return self._cases['TRILHO']

    @property
    def mobile(self) -> LoadEnvelope:
        return self._cases['ENV_MOVEL']

    def combinator(self, dynamic: Any = None, factors: Any = None):
        """LoadCombinator over this store's base cases."""
        from .combinations import LoadCombinator
        return LoadCombinator(self.dead, self.trilho, self.mobile, factors=factors, dynamic=dynamic)

    def get_load_case_data(self, case_id: str, dynamic: Any = None) -> LoadEnvelope:
        """
        Envelope for a base case or a combination id.

        Raises:
            KeyError: If case_id is neither a base case nor a known combination
        """
        if case_id in self._cases:
            return self._cases[case_id]
        combinator = self.combinator(dynamic=dynamic)
        return combinator.combine(case_id)

    def available_load_cases(self) -> List[Dict[str, str]]:
        """Case ids with display labels, base cases first."""
        from .combinations import load_combination_factors
        cases = [{'id': k, 'label': v} for k, v in BASE_CASES.items()]
        cases += [{'id': k, 'label': f.label} for k, f in load_combination_factors().items()]
        return cases

    def summary(self) -> Dict[str, Any]:
        return {
            'total_length': self.total_length,
            'num_spans': len(self.spans),
        }

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> 'LoadCaseStore':
        """
        Load a store from YAML with total_length, spans and the three
        base-case tables.
        """
        yaml_path = Path(path) if path is not None else SAMPLE_DATA_PATH
        with open(yaml_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        cases = {case_id: LoadEnvelope.from_records(case_id, data[case_id]) for case_id in BASE_CASES}
        spans = [Span(**s) for s in data.get('spans', [])]
        logger.debug("Loaded load cases from %s (%d spans)", yaml_path, len(spans))
        return cls(cases, spans, data.get('total_length'))

    @classmethod
    def sample(cls) -> 'LoadCaseStore':
        """Bundled two-span 12 m crane-runway beam."""
        return cls.from_yaml(SAMPLE_DATA_PATH)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> 'LoadCaseStore':
        """
        Build a store from normalised rows.

        Required columns: frame, station (m, global), case, V, M. Stations
        are rounded to 0.1 m, frames are ordered numerically and each
        frame's rows sorted by station; ENV_MOVEL rows are reduced to the
        max/min per (frame, station). Spans follow the frame extents.
        """
        required = {'frame', 'station', 'case', 'V', 'M'}
        missing = required - set(df.columns)
        if missing:
            raise ValueError(f"Missing columns: {', '.join(sorted(missing))}")

        rows = df.loc[:, ['frame', 'station', 'case', 'V', 'M']].copy()
        rows['frame'] = rows['frame'].astype(str).str.strip()
        rows['station'] = pd.to_numeric(rows['station'], errors='coerce').round(1)
        rows = rows.dropna(subset=['station'])
        rows = rows[rows['frame'] != '']

        extents = rows.groupby('frame')['station'].agg(['min', 'max'])
        frame_order = sorted(extents.index, key=_frame_sort_key)

        cases: Dict[str, LoadEnvelope] = {}
        for case_id in ('DEAD', 'TRILHO'):
            sub = rows[rows['case'] == case_id].drop_duplicates(subset=['frame', 'station'])
            parts = [sub[sub['frame'] == fr].sort_values('station', kind='stable') for fr in frame_order]
            table = pd.concat(parts) if parts else sub
            cases[case_id] = LoadEnvelope.from_arrays(
                case_id,
                table['station'].to_numpy(),
                M=table['M'].fillna(0.0).to_numpy(),
                V=table['V'].fillna(0.0).to_numpy(),
            )

        mobile = rows[rows['case'] == 'ENV_MOVEL']
        grouped = mobile.groupby(['frame', 'station']).agg(
            V_max=('V', 'max'), V_min=('V', 'min'), M_max=('M', 'max'), M_min=('M', 'min')
        ).fillna(0.0).reset_index()
        parts = [grouped[grouped['frame'] == fr].sort_values('station') for fr in frame_order]
        table = pd.concat(parts) if parts else grouped
        cases['ENV_MOVEL'] = LoadEnvelope.from_arrays(
            'ENV_MOVEL',
            table['station'].to_numpy(),
            **{f: table[f].to_numpy() for f in ENVELOPE_FIELDS},
        )

        spans = [
            Span(name=fr, start_x=extents.loc[fr, 'min'], end_x=extents.loc[fr, 'max'])
            for fr in frame_order
        ]
        total_length = float(extents['max'].max())
        logger.info("Imported %d rows over %d frames (L = %.2f m)", len(rows), len(spans), total_length)
        return cls(cases, spans, total_length)


def _frame_sort_key(name: str) -> Tuple[int, Any]:
    try:
        return (0, float(name))
    except ValueError:
        return (1, name)
