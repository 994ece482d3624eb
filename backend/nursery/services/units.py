"""Length units and the predefined girth/height range options.

Measurements are stored in centimetres; other units are for display only.
"""
import enum
from typing import Dict, List, Optional, Tuple


class LengthUnit(str, enum.Enum):
    CM = "cm"
    MM = "mm"
    INCH = "inch"
    METER = "m"


# Size of one unit in centimetres.
_CM_PER_UNIT = {
    LengthUnit.CM: 1.0,
    LengthUnit.MM: 0.1,
    LengthUnit.INCH: 2.54,
    LengthUnit.METER: 100.0,
}

OPEN_ENDED_MAX = 9999

GIRTH_RANGES: List[Tuple[float, float]] = [
    (0.5, 1.0), (1.0, 1.5), (1.5, 2.0), (2.0, 2.5), (2.5, 3.0),
    (3.0, 4.0), (4.0, 5.0), (5.0, 7.5), (7.5, 10.0), (10.0, OPEN_ENDED_MAX),
]

HEIGHT_RANGES: List[Tuple[float, float]] = [
    (5, 10), (10, 15), (15, 20), (20, 25), (25, 30),
    (30, 40), (40, 50), (50, 75), (75, 100), (100, OPEN_ENDED_MAX),
]


def convert_length(value: float, from_unit: LengthUnit, to_unit: LengthUnit) -> float:
    """Convert between units, rounded to 2 decimals."""
    from_unit, to_unit = LengthUnit(from_unit), LengthUnit(to_unit)
    return round(value * _CM_PER_UNIT[from_unit] / _CM_PER_UNIT[to_unit], 2)


def range_value(low: float, high: float, decimals: int, open_ended: bool = False) -> str:
    if open_ended or high >= OPEN_ENDED_MAX:
        return f"{low:.{decimals}f}+"
    return f"{low:.{decimals}f}-{high:.{decimals}f}"


def parse_range_value(value: str) -> Optional[Tuple[float, float]]:
    """'1.0-1.5' -> (1.0, 1.5); '10.0+' -> (10.0, 9999). None if malformed."""
    value = value.strip()
    try:
        if value.endswith("+"):
            return float(value[:-1]), float(OPEN_ENDED_MAX)
        low, high = value.split("-")
        return float(low), float(high)
    except ValueError:
        return None


def average_of_range(value: str) -> float:
    parsed = parse_range_value(value)
    if parsed is None:
        return 0.0
    low, high = parsed
    if high >= OPEN_ENDED_MAX:
        return low + 5
    return (low + high) / 2


def range_options(ranges: List[Tuple[float, float]], decimals: int, unit: LengthUnit = LengthUnit.CM) -> List[Dict]:
    unit = LengthUnit(unit)
    options = []
    for low, high in ranges:
        open_ended = high >= OPEN_ENDED_MAX
        shown_low = convert_length(low, LengthUnit.CM, unit)
        shown_high = convert_length(high, LengthUnit.CM, unit)
        if unit == LengthUnit.CM:
            label = range_value(low, high, decimals)
        else:
            label = range_value(shown_low, shown_high, 2, open_ended)
        options.append({
            "label": f"{label} {unit.value}",
            "value": range_value(low, high, decimals),
            "min": shown_low,
            "max": shown_high,
        })
    return options


def growth_ranges(unit: LengthUnit = LengthUnit.CM) -> Dict:
    unit = LengthUnit(unit)
    return {
        "unit": unit.value,
        "girth": range_options(GIRTH_RANGES, 1, unit),
        "height": range_options(HEIGHT_RANGES, 0, unit),
    }
