"""
Shape parameter records and CSV parameter files.

Each shape has one frozen parameter record whose defaults are the reference
prototype. Records can be created directly, from a dictionary of (possibly
string) values, or from a row of a parameter CSV file.
"""

import csv
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Tuple, Type, Union

from protoforge.errors import InvalidParameterError
from protoforge.lattice import DEFAULT_LATITUDES, DEFAULT_MERIDIANS, DEFAULT_SAMPLES

logger = logging.getLogger(__name__)

# Columns that describe a row rather than the shape
EXCLUDED_KEYS = {'case_index', 'shape', 'name'}


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidParameterError(message)


@dataclass(frozen=True)
class FusorParameters:
    """Spherical fusor: vacuum chamber with three ports and two grid electrodes."""

    shape: ClassVar[str] = 'fusor'

    chamber_outer_radius: float = 80.0
    chamber_wall_thickness: float = 5.0
    outer_grid_radius: float = 50.0
    outer_grid_beam: float = 1.5
    inner_grid_radius: float = 15.0
    inner_grid_beam: float = 1.0
    port_radius: float = 15.0
    port_length: float = 40.0
    port_wall_thickness: float = 3.0
    # Port tubes start this far below the chamber surface
    port_inset: float = 2.0
    # Port bores start this far below the surface and run this much longer than the tube
    bore_inset: float = 10.0
    bore_extension: float = 20.0
    grid_latitudes: int = DEFAULT_LATITUDES
    grid_meridians: int = DEFAULT_MERIDIANS
    grid_samples: int = DEFAULT_SAMPLES

    def validate(self) -> None:
        _require(self.chamber_outer_radius > 0, "chamber_outer_radius must be positive")
        _require(0 < self.chamber_wall_thickness < self.chamber_outer_radius,
                 "chamber_wall_thickness must be positive and smaller than the chamber radius")
        inner = self.chamber_outer_radius - self.chamber_wall_thickness
        _require(self.outer_grid_beam > 0 and self.inner_grid_beam > 0,
                 "grid beam thickness must be positive")
        _require(0 < self.inner_grid_radius < self.outer_grid_radius,
                 "inner_grid_radius must be positive and smaller than outer_grid_radius")
        _require(self.outer_grid_radius + self.outer_grid_beam < inner,
                 "outer grid must fit inside the chamber cavity")
        _require(0 < self.port_radius < self.chamber_outer_radius,
                 "port_radius must be positive and smaller than the chamber radius")
        _require(self.port_length > 0, "port_length must be positive")
        _require(0 < self.port_wall_thickness < self.port_radius,
                 "port_wall_thickness must be positive and smaller than port_radius")
        _require(self.port_inset >= 0 and self.bore_inset > self.chamber_wall_thickness,
                 "bores must start inside the chamber cavity")
        _require(self.port_inset <= self.bore_inset,
                 "port tubes must not start deeper than their bores")
        _require(self.bore_extension >= 0, "bore_extension must not be negative")
        _require(self.grid_latitudes >= 0 and self.grid_meridians >= 0
                 and self.grid_latitudes + self.grid_meridians > 0,
                 "grids need at least one latitude or meridian")
        _require(self.grid_samples >= 3, "grid_samples must be at least 3")

    @property
    def bore_radius(self) -> float:
        return self.port_radius - self.port_wall_thickness

    @property
    def bore_length(self) -> float:
        return self.port_length + self.bore_extension


@dataclass(frozen=True)
class HabitatParameters:
    """Deployable faceted habitat dome with a doorway."""

    shape: ClassVar[str] = 'habitat'

    stowed_radius: float = 30.0
    deployed_radius: float = 50.0
    stowed_height: float = 5.0
    deployed_height: float = 60.0
    wall_thickness: float = 2.0
    tiers: int = 5
    segments: int = 12
    # 0 = stowed, 1 = deployed; clamped into [0, 1]
    deployment: float = 1.0
    zigzag: bool = True
    # Optional radius factors at evenly spaced heights; empty means linear taper
    taper_control: Tuple[float, ...] = ()
    door_width: float = 15.0
    door_height: float = 25.0
    door_depth: float = 20.0
    door_floor_offset: float = 2.0

    def __post_init__(self):
        object.__setattr__(self, 'deployment', min(max(float(self.deployment), 0.0), 1.0))
        object.__setattr__(self, 'taper_control', tuple(float(v) for v in self.taper_control))

    def validate(self) -> None:
        _require(self.tiers >= 1, f"tiers must be at least 1, got {self.tiers}")
        _require(self.segments >= 3, f"segments must be at least 3, got {self.segments}")
        for name in ('stowed_radius', 'deployed_radius', 'stowed_height', 'deployed_height'):
            _require(getattr(self, name) > 0, f"{name} must be positive")
        _require(self.wall_thickness > 0, "wall_thickness must be positive")
        _require(len(self.taper_control) != 1, "taper_control needs at least 2 values")
        _require(all(v >= 0 for v in self.taper_control), "taper_control values must not be negative")
        for name in ('door_width', 'door_height', 'door_depth'):
            _require(getattr(self, name) > 0, f"{name} must be positive")
        _require(self.door_floor_offset >= 0, "door_floor_offset must not be negative")


@dataclass(frozen=True)
class ChassisParameters:
    """Monocoque chassis tub with a cockpit opening and wheel wells."""

    shape: ClassVar[str] = 'chassis'

    length: float = 4000.0
    width: float = 1800.0
    height: float = 1200.0
    wall_thickness: float = 50.0
    cockpit_length: float = 2500.0
    cockpit_width: float = 1600.0
    cockpit_height: float = 800.0
    cockpit_offset: float = 200.0
    wheel_wells: bool = True
    wheel_radius: float = 350.0
    wheel_width: float = 250.0
    # Distance of the axles from the tub ends
    axle_inset: float = 800.0

    def validate(self) -> None:
        for name in ('length', 'width', 'height', 'cockpit_length', 'cockpit_width',
                     'cockpit_height', 'wheel_radius', 'wheel_width'):
            _require(getattr(self, name) > 0, f"{name} must be positive")
        _require(self.wall_thickness > 0, "wall_thickness must be positive")
        _require(2 * self.wall_thickness < min(self.length, self.width, self.height),
                 "wall_thickness leaves no interior")
        _require(0 <= self.axle_inset <= self.length / 2, "axle_inset must lie within half the length")


ShapeParameters = Union[FusorParameters, HabitatParameters, ChassisParameters]

PARAMETER_TYPES: Dict[str, Type] = {
    cls.shape: cls for cls in (FusorParameters, HabitatParameters, ChassisParameters)
}


@dataclass(frozen=True)
class ShapeRequest:
    """One generation request: which shape, with which parameters, exported under which name."""

    shape: str
    params: Any
    name: str = ''

    def __post_init__(self):
        if not self.name:
            object.__setattr__(self, 'name', self.shape)


def parameters_type(shape: str) -> Type:
    try:
        return PARAMETER_TYPES[shape]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown shape '{shape}' (expected one of: {', '.join(sorted(PARAMETER_TYPES))})"
        ) from None


def _coerce(name: str, kind: Any, value: Any) -> Any:
    if not isinstance(value, str):
        if kind is float:
            return float(value)
        if kind is int:
            return _integral(name, value)
        return value
    text = value.strip()
    try:
        if kind is bool:
            lowered = text.lower()
            if lowered in ('1', 'true', 'yes', 'on'):
                return True
            if lowered in ('0', 'false', 'no', 'off', ''):
                return False
            raise ValueError(text)
        if kind is int:
            return _integral(name, float(text))
        if kind is float:
            return float(text)
        # Tuple of floats, written as "1.0;0.8;0.4"
        return tuple(float(v) for v in text.split(';') if v.strip())
    except ValueError:
        raise InvalidParameterError(f"Parameter '{name}' has invalid value '{value}'") from None


def _integral(name: str, value: Any) -> int:
    number = float(value)
    if not number.is_integer():
        raise InvalidParameterError(f"Parameter '{name}' must be a whole number, got {value}")
    return int(number)


def parameters_from_dict(shape: str, values: Dict[str, Any]) -> ShapeParameters:
    """
    Create a validated parameter record from a dictionary.

    Args:
        shape: Shape name ('fusor', 'habitat' or 'chassis')
        values: Field values; strings are converted to the field types

    Returns:
        Parameter record for the shape
    """
    cls = parameters_type(shape)
    kinds = {f.name: f.type for f in dataclasses.fields(cls)}
    # Empty cells keep the default, so blank columns of other shapes are tolerated
    values = {key: value for key, value in values.items()
              if not (isinstance(value, str) and value.strip() == '')}
    unknown = sorted(set(values) - set(kinds))
    if unknown:
        raise InvalidParameterError(f"Unknown {shape} parameters: {', '.join(unknown)}")

    converted = {}
    for key, value in values.items():
        converted[key] = _coerce(key, kinds[key], value)
    params = cls(**converted)
    params.validate()
    return params


def load_params_from_csv(csv_file: str, row_index: int = 0) -> Dict[str, str]:
    """
    Load one row of shape parameters from a CSV file.

    Args:
        csv_file: Path to the CSV file
        row_index: Index of the row to load (0-based, excluding header)

    Returns:
        Dictionary of raw parameter values, without bookkeeping columns
    """
    rows = _read_rows(csv_file)
    if row_index >= len(rows):
        raise InvalidParameterError(f"Row index {row_index} out of range (file has {len(rows)} rows)")
    row = rows[row_index]
    return {key: value for key, value in row.items() if key not in EXCLUDED_KEYS}


def load_requests_from_csv(csv_file: str, default_shape: str = '') -> List[ShapeRequest]:
    """
    Read every row of a parameter CSV as a generation request.

    The ``shape`` column selects the shape (falling back to ``default_shape``)
    and the ``name`` or ``case_index`` column names the exported file.
    """
    requests = []
    for index, row in enumerate(_read_rows(csv_file)):
        shape = (row.get('shape') or default_shape).strip()
        if not shape:
            raise InvalidParameterError(f"Row {index} of {csv_file} has no shape")
        values = {key: value for key, value in row.items() if key not in EXCLUDED_KEYS}
        name = (row.get('name') or '').strip()
        if not name:
            name = f"{shape}_{(row.get('case_index') or str(index)).strip()}"
        requests.append(ShapeRequest(shape=shape, params=parameters_from_dict(shape, values), name=name))
    logger.info("Loaded %d requests from %s", len(requests), csv_file)
    return requests


def _read_rows(csv_file: str) -> List[Dict[str, str]]:
    with open(csv_file, 'r', encoding='utf-8', newline='') as f:
        return list(csv.DictReader(f))


def parameters_to_row(params: ShapeParameters) -> Dict[str, Any]:
    """Flatten a parameter record into CSV cell values."""
    row = {}
    for f in dataclasses.fields(params):
        value = getattr(params, f.name)
        if isinstance(value, tuple):
            value = ';'.join(repr(v) for v in value)
        row[f.name] = value
    return row
