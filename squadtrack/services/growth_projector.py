"""
Growth timeline projection.

Turns a player's chronological snapshot history into chart geometry: six
series (overall plus the five sub-attributes) sharing one x axis, per-point
match labels and month/year timeline labels. Rendering is the client's job;
this module only computes coordinates.

The y scale is fitted to the data with 5 points of headroom either side,
clamped to [0, 100]. Points are spaced evenly with a minimum spacing, so
long histories overflow into a wider, scrollable canvas.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Sequence, Tuple

from squadtrack.utils.timezone import MONTH_ABBREVIATIONS, month_label, to_calendar_date

GRID_VALUES = (0, 25, 50, 75, 100)
VALUE_MARGIN = 5
FLAT_RANGE_FALLBACK = 10

# key, label, colour, stroke width
SERIES_STYLES = (
    ("overall_rating", "Overall", "#1a4d3a", 3),
    ("shooting", "Shooting", "#e74c3c", 2),
    ("passing", "Passing", "#3498db", 2),
    ("dribbling", "Dribbling", "#f39c12", 2),
    ("defense", "Defense", "#9b59b6", 2),
    ("physical", "Physical", "#2ecc71", 2),
)
SERIES_KEYS = tuple(style[0] for style in SERIES_STYLES)


@dataclass(frozen=True)
class ChartDimensions:
    width: float = 360
    height: float = 200
    padding: float = 20
    min_spacing: float = 40
    horizontal_margin: float = 80

    @property
    def available_width(self) -> float:
        return self.width - self.horizontal_margin


@dataclass
class Series:
    key: str
    label: str
    color: str
    stroke_width: int
    points: List[Tuple[float, float]] = field(default_factory=list)


@dataclass
class PointLabel:
    x: float
    opponent: Optional[str]
    match_date: Optional[date]
    text: str


@dataclass
class TimelineLabel:
    x: float
    month: int
    year: int
    text: str


@dataclass
class GridLine:
    value: int
    y: float


@dataclass
class GrowthChart:
    series: List[Series]
    point_labels: List[PointLabel]
    timeline_labels: List[TimelineLabel]
    grid_lines: List[GridLine]
    min_value: float
    max_value: float
    content_width: float
    point_spacing: float

    @property
    def is_empty(self) -> bool:
        return not self.point_labels


def _field(snapshot: Any, name: str) -> Any:
    if isinstance(snapshot, dict):
        return snapshot.get(name)
    return getattr(snapshot, name, None)


def _short_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.day}"


def value_bounds(values: Sequence[float]) -> Tuple[float, float]:
    """(min, max) of the y axis: data range widened by 5, clamped to [0, 100]."""
    return max(0, min(values) - VALUE_MARGIN), min(100, max(values) + VALUE_MARGIN)


def point_spacing(count: int, dimensions: ChartDimensions) -> float:
    return max(dimensions.min_spacing, dimensions.available_width / max(1, count - 1))


def project_growth_timeline(
    snapshots: Sequence[Any],
    dimensions: ChartDimensions = ChartDimensions(),
) -> GrowthChart:
    """
    Project chronologically ordered snapshots onto a shared timeline.

    Snapshots may be ORM rows or dicts carrying the six rating keys plus
    ``match_date`` and ``opponent``. An empty sequence yields an empty chart.
    """
    spacing = point_spacing(len(snapshots), dimensions)
    series = [Series(key=key, label=label, color=color, stroke_width=width)
              for key, label, color, width in SERIES_STYLES]

    if not snapshots:
        return GrowthChart(
            series=series,
            point_labels=[],
            timeline_labels=[],
            grid_lines=[],
            min_value=0,
            max_value=100,
            content_width=dimensions.available_width,
            point_spacing=spacing,
        )

    values = [_field(s, key) for s in snapshots for key in SERIES_KEYS]
    min_value, max_value = value_bounds(values)
    value_range = (max_value - min_value) or FLAT_RANGE_FALLBACK
    height, padding = dimensions.height, dimensions.padding

    def scale_y(value: float) -> float:
        return height - ((value - min_value) / value_range) * (height - 2 * padding) - padding

    point_labels = []
    timeline_labels = []
    seen_months = set()
    for index, snapshot in enumerate(snapshots):
        x = index * spacing + padding
        for line in series:
            line.points.append((x, scale_y(_field(snapshot, line.key))))

        raw_date = _field(snapshot, "match_date")
        match_date = to_calendar_date(raw_date) if raw_date is not None else None
        opponent = _field(snapshot, "opponent")
        point_labels.append(PointLabel(
            x=x,
            opponent=opponent,
            match_date=match_date,
            text=f"vs {opponent}\n{_short_date(match_date)}" if opponent else _short_date(match_date),
        ))

        if match_date is not None and (match_date.month, match_date.year) not in seen_months:
            seen_months.add((match_date.month, match_date.year))
            timeline_labels.append(TimelineLabel(
                x=x, month=match_date.month, year=match_date.year, text=month_label(match_date),
            ))

    grid_lines = [GridLine(value=v, y=scale_y(v)) for v in GRID_VALUES if min_value <= v <= max_value]

    return GrowthChart(
        series=series,
        point_labels=point_labels,
        timeline_labels=timeline_labels,
        grid_lines=grid_lines,
        min_value=min_value,
        max_value=max_value,
        content_width=max(dimensions.available_width, len(snapshots) * spacing + 2 * padding),
        point_spacing=spacing,
    )
