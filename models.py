from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class BracketType(str, Enum):
    STANDARD = "Standard"
    INVERTED = "Inverted"


class AngleOrientation(str, Enum):
    STANDARD = "Standard"
    INVERTED = "Inverted"


# ---------- errors ----------

class OptimizerError(Exception):
    """Base class for every error raised by the optimiser."""


class InvalidInputs(OptimizerError, ValueError):
    pass


class InfeasibleDesign(OptimizerError):
    """No candidate validated across the whole design space."""


class ManufacturingLimitExceeded(OptimizerError):
    def __init__(self, resulting_height: float, max_height: float):
        self.resulting_height = float(resulting_height)
        self.max_height = float(max_height)
        super().__init__(
            "Angle extension would exceed manufacturing limits. "
            f"Resulting height: {self.resulting_height:g}mm, "
            f"Maximum allowed: {self.max_height:g}mm"
        )


class EvaluationFault(OptimizerError):
    def __init__(self, candidate: "Candidate", cause: BaseException):
        self.candidate = candidate
        self.cause = cause
        super().__init__(f"evaluation failed for {candidate.label()}: {type(cause).__name__}: {cause}")


class SearchCancelled(OptimizerError):
    pass


# ---------- inputs ----------

@dataclass(frozen=True)
class DesignInputs:
    slab_thickness: float
    cavity_width: float
    support_level: float
    characteristic_load: float
    masonry_density: float = 2000.0
    masonry_thickness: float = 102.5
    masonry_height: float = 3.0
    notch_height: float = 0.0
    notch_depth: float = 0.0
    fixing_position: Optional[float] = None
    use_custom_fixing_position: bool = False
    dim_d: Optional[float] = None
    max_allowable_bracket_extension: Optional[float] = None
    enable_angle_extension: bool = False
    allowed_channel_families: Tuple[str, ...] = ()
    run_length: Optional[float] = None
    # steel frame: slab_thickness then holds the section height
    frame_fixing_type: str = "concrete"
    steel_section_type: Optional[str] = None
    steel_section_height: Optional[float] = None
    steel_bolt_size: Optional[str] = None
    steel_fixing_method: Optional[str] = None

    @property
    def bsl_above_slab_bottom(self) -> bool:
        return abs(self.support_level) < self.slab_thickness

    @property
    def uses_steel_frame(self) -> bool:
        return (
            str(self.frame_fixing_type).lower().startswith("steel")
            and self.steel_section_height is not None
        )


# ---------- search space ----------

@dataclass(frozen=True)
class Candidate:
    bracket_centres: int
    bracket_thickness: int
    angle_thickness: int
    vertical_leg: int
    bolt_diameter: int
    bracket_type: BracketType
    angle_orientation: AngleOrientation
    channel_family: str
    fixing_position: float
    dim_d: Optional[float] = None
    # SET_SCREW / BLIND_BOLT on a steel frame, None for a cast-in channel
    fixing_method: Optional[str] = None

    def structural_key(self) -> Tuple[Any, ...]:
        """Identity ignoring the fixing position."""
        return (
            self.bracket_centres,
            self.bracket_thickness,
            self.angle_thickness,
            self.vertical_leg,
            self.bolt_diameter,
            self.bracket_type,
            self.angle_orientation,
            self.channel_family,
            self.dim_d,
            self.fixing_method,
        )

    @property
    def is_steel_fixing(self) -> bool:
        return self.fixing_method is not None

    def at_fixing(self, fixing_position: float) -> "Candidate":
        return replace(self, fixing_position=float(fixing_position))

    def label(self) -> str:
        fixing = self.fixing_method if self.is_steel_fixing else self.channel_family
        return (
            f"{self.bracket_type.value}/{self.angle_orientation.value} "
            f"{fixing} @{self.bracket_centres}mm "
            f"t{self.bracket_thickness}/{self.angle_thickness} M{self.bolt_diameter} "
            f"fix {self.fixing_position:g}"
        )


@dataclass(frozen=True)
class ExtensionOutcome:
    applied: bool
    original_bracket_height: float
    limited_bracket_height: float
    bracket_reduction: float
    original_angle_height: float
    extended_angle_height: float
    angle_extension: float
    max_extension_limit: Optional[float]
    orientation_flipped: bool
    original_orientation: AngleOrientation
    final_orientation: AngleOrientation
    flip_reason: Optional[str] = None

    @classmethod
    def noop(cls, bracket_height: float, angle_height: float,
             orientation: AngleOrientation, limit: Optional[float] = None) -> "ExtensionOutcome":
        return cls(
            applied=False,
            original_bracket_height=bracket_height,
            limited_bracket_height=bracket_height,
            bracket_reduction=0.0,
            original_angle_height=angle_height,
            extended_angle_height=angle_height,
            angle_extension=0.0,
            max_extension_limit=limit,
            orientation_flipped=False,
            original_orientation=orientation,
            final_orientation=orientation,
        )


@dataclass(frozen=True)
class DerivedGeometry:
    bracket_height: float
    bracket_projection: float
    rise_to_bolts: float
    drop_below_slab: float
    angle_height: float
    angle_orientation: AngleOrientation
    top_edge: float
    bottom_edge: float
    characteristic_udl: float
    design_udl: float
    shear_load: float
    bsl_above_slab_bottom: bool
    extension: ExtensionOutcome


@dataclass(frozen=True)
class EvaluatedDesign:
    candidate: Candidate
    geometry: Optional[DerivedGeometry]
    is_valid: bool
    weight: float = math.inf
    detail: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None

    def __post_init__(self):
        # weight only has meaning for valid designs
        if not self.is_valid:
            object.__setattr__(self, "weight", math.inf)

    @property
    def final_orientation(self) -> AngleOrientation:
        if self.geometry is not None:
            return self.geometry.angle_orientation
        return self.candidate.angle_orientation

    @property
    def uses_inverted_component(self) -> bool:
        return (
            self.candidate.bracket_type is BracketType.INVERTED
            or self.final_orientation is AngleOrientation.INVERTED
        )

    @property
    def is_standard_pair(self) -> bool:
        return (
            self.candidate.bracket_type is BracketType.STANDARD
            and self.final_orientation is AngleOrientation.STANDARD
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["weight"] = None if math.isinf(self.weight) else round(self.weight, 6)
        return out


# ---------- results ----------

@dataclass(frozen=True)
class Alternative:
    design: EvaluatedDesign
    weight_delta_pct: float
    key_differences: Tuple[str, ...]


@dataclass(frozen=True)
class AnglePiece:
    length: int
    bracket_count: int
    spacing: float
    start_offset: float
    positions: Tuple[float, ...]
    is_standard: bool


@dataclass(frozen=True)
class RunLayout:
    run_length: int
    bracket_centres: int
    pieces: Tuple[AnglePiece, ...]
    total_brackets: int
    unique_lengths: int
    status: str


@dataclass(frozen=True)
class OptimizationResult:
    selected: EvaluatedDesign
    alternatives: Tuple[Alternative, ...] = ()
    alerts: Tuple[str, ...] = ()
    stats: Dict[str, Any] = field(default_factory=dict)
    run_layout: Optional[RunLayout] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selected": self.selected.to_dict(),
            "alternatives": [
                {
                    "design": alt.design.to_dict(),
                    "weight_delta_pct": round(alt.weight_delta_pct, 2),
                    "key_differences": list(alt.key_differences),
                }
                for alt in self.alternatives
            ],
            "alerts": list(self.alerts),
            "stats": dict(self.stats),
            "run_layout": asdict(self.run_layout) if self.run_layout is not None else None,
        }
