# inputs.py
"""Request payload -> DesignInputs.

Payloads arrive from JSON bodies, HTML forms or query strings, so any value
may be a scalar, a numeric string or a single-element list.  Each input that
has a fallback gets one ``resolve_*`` function stating its precedence.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from channels import CATALOGUE, ChannelCatalogue
from config import CFG
from geometry import (
    DIM_D_MAX,
    DIM_D_MIN,
    DIM_D_STEP,
    FIXING_STEP,
    MIN_FIXING_POSITION,
    max_fixing_position,
    resolve_channel_edges,
    resolve_characteristic_load,
    resolve_fixing_position,
)
from models import DesignInputs, InvalidInputs
from steel_fixings import (
    BLIND_BOLT,
    BOTH_METHODS,
    SECTION_TYPES,
    SET_SCREW,
    STEEL_BOLT_SIZES,
    position_limits,
    section_type_for,
)

_TRUE = {"1", "true", "yes", "on", "y"}

# payload key -> accepted aliases
_ALIASES: Dict[str, Tuple[str, ...]] = {
    "slab_thickness": ("slab_thickness", "slabThickness"),
    "cavity_width": ("cavity_width", "cavity", "cavityWidth"),
    "support_level": ("support_level", "bracket_drop", "supportLevel"),
    "characteristic_load": ("characteristic_load", "load", "characteristicLoad"),
    "masonry_density": ("masonry_density", "masonryDensity"),
    "masonry_thickness": ("masonry_thickness", "masonryThickness"),
    "masonry_height": ("masonry_height", "masonryHeight"),
    "notch_height": ("notch_height", "notchHeight"),
    "notch_depth": ("notch_depth", "notchDepth"),
    "fixing_position": ("fixing_position", "fixingPosition"),
    "use_custom_fixing_position": ("use_custom_fixing_position", "useCustomFixingPosition"),
    "dim_d": ("dim_d", "dimD"),
    "max_allowable_bracket_extension": ("max_allowable_bracket_extension", "maxAllowableBracketExtension"),
    "enable_angle_extension": ("enable_angle_extension", "enableAngleExtension"),
    "allowed_channel_families": ("allowed_channel_families", "channel_families", "allowedChannelTypes"),
    "run_length": ("run_length", "runLength"),
    "bracket_centres": ("bracket_centres", "centres", "bracketCentres"),
    "frame_fixing_type": ("frame_fixing_type", "frameFixingType"),
    "steel_section_type": ("steel_section_type", "steelSectionType"),
    "steel_section_height": ("steel_section_height", "custom_steel_height", "steelSectionHeight"),
    "steel_bolt_size": ("steel_bolt_size", "steelBoltSize"),
    "steel_fixing_method": ("steel_fixing_method", "steelFixingMethod"),
}


# ---------- helpers ----------

def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _raw(payload: Dict[str, Any], name: str) -> Any:
    for key in _ALIASES.get(name, (name,)):
        if key in payload:
            value = _first(payload[key])
            if value is None or (isinstance(value, str) and value.strip() == ""):
                continue
            return value
    return None


def _number(payload: Dict[str, Any], name: str, default: Optional[float] = None,
            required: bool = False) -> Optional[float]:
    value = _raw(payload, name)
    if value is None:
        if required:
            raise InvalidInputs(f"{name} is required")
        return default
    try:
        return float(str(value).replace(",", ".")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise InvalidInputs(f"{name} must be a number, got {value!r}") from None


def _flag(payload: Dict[str, Any], name: str) -> bool:
    value = _raw(payload, name)
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE


def _text(payload: Dict[str, Any], name: str) -> Optional[str]:
    value = _raw(payload, name)
    if value is None:
        return None
    return str(value).strip().upper()


def _on_step(value: float, step: float) -> bool:
    return abs(value / step - round(value / step)) <= 1e-9


def _families(payload: Dict[str, Any]) -> Tuple[str, ...]:
    value = None
    for key in _ALIASES["allowed_channel_families"]:
        if key in payload:
            value = payload[key]
            break
    if value is None:
        return ()
    items: Iterable[Any] = value if isinstance(value, (list, tuple)) else [value]
    out = []
    for item in items:
        for part in str(item).split(","):
            part = part.strip()
            if part and part not in out:
                out.append(part)
    return tuple(out)


# ---------- resolution ----------

def resolve_exclusion_limit(enabled: bool, limit: Optional[float]) -> Optional[float]:
    """The exclusion-zone limit in force: the given limit when the feature is enabled, else None."""
    if not enabled:
        return None
    return limit


def resolve_families(requested: Tuple[str, ...]) -> Tuple[str, ...]:
    """Channel families to search: the request's allow-list, else ``CFG.CHANNEL_FAMILIES``."""
    return tuple(requested) if requested else tuple(CFG.CHANNEL_FAMILIES)


def validate_custom_fixing(fixing: float, slab_thickness: float, families: Tuple[str, ...],
                           catalogue: Optional[ChannelCatalogue] = None) -> None:
    if fixing < MIN_FIXING_POSITION:
        raise InvalidInputs(f"fixing_position must be at least {MIN_FIXING_POSITION:g}mm")
    if not _on_step(fixing, FIXING_STEP):
        raise InvalidInputs(f"fixing_position must be a multiple of {FIXING_STEP:g}mm")
    for family in families:
        _top, bottom = resolve_channel_edges(family, slab_thickness, None, catalogue)
        upper = max_fixing_position(slab_thickness, bottom)
        if fixing > upper:
            raise InvalidInputs(
                f"fixing_position {fixing:g}mm leaves less than {bottom:g}mm "
                f"bottom edge for {family} in a {slab_thickness:g}mm slab"
            )


def validate_steel_fixing(fixing: float, section_height: float) -> None:
    shallowest, deepest = position_limits(section_height)
    if not _on_step(fixing, FIXING_STEP):
        raise InvalidInputs(f"fixing_position must be a multiple of {FIXING_STEP:g}mm")
    if fixing < shallowest or fixing > deepest:
        raise InvalidInputs(
            f"fixing_position {fixing:g}mm must lie between {shallowest:g}mm and "
            f"{deepest:g}mm in a {section_height:g}mm steel section"
        )


def validate_dim_d(dim_d: float, slab_thickness: float, reference_fixing: float) -> None:
    """A custom Dim D must sit on the 30-450mm ladder and fit below the reference fixing."""
    if dim_d < DIM_D_MIN or dim_d > DIM_D_MAX:
        raise InvalidInputs(f"dim_d must be between {DIM_D_MIN:g}mm and {DIM_D_MAX:g}mm")
    if not _on_step(dim_d, DIM_D_STEP):
        raise InvalidInputs(f"dim_d must be a multiple of {DIM_D_STEP:g}mm")
    room = slab_thickness - reference_fixing
    if dim_d > room:
        raise InvalidInputs(
            f"dim_d {dim_d:g}mm exceeds the {room:g}mm between the {reference_fixing:g}mm fixing "
            f"and the slab soffit"
        )


def _steel_frame(payload: Dict[str, Any], frame: str) -> Dict[str, Any]:
    section_type = _text(payload, "steel_section_type") or section_type_for(frame)
    if section_type is not None and section_type not in SECTION_TYPES:
        raise InvalidInputs(f"steel_section_type must be one of {', '.join(SECTION_TYPES)}")
    height = _number(payload, "steel_section_height", required=True)
    if height <= 0:
        raise InvalidInputs("steel_section_height must be positive")
    bolt = _text(payload, "steel_bolt_size")
    if bolt is not None and bolt != "ALL" and bolt not in STEEL_BOLT_SIZES:
        raise InvalidInputs(f"steel_bolt_size must be one of {', '.join(STEEL_BOLT_SIZES)} or all")
    method = _text(payload, "steel_fixing_method")
    if method is not None and method not in (SET_SCREW, BLIND_BOLT, BOTH_METHODS):
        raise InvalidInputs(f"steel_fixing_method must be {SET_SCREW}, {BLIND_BOLT} or both")
    return {
        "steel_section_type": section_type,
        "steel_section_height": height,
        "steel_bolt_size": bolt,
        "steel_fixing_method": method,
    }


def parse_design_inputs(payload: Dict[str, Any], catalogue: Optional[ChannelCatalogue] = None) -> DesignInputs:
    """Build validated :class:`DesignInputs`; raises :class:`InvalidInputs`.

    On a steel frame the section height replaces the slab thickness, which
    may then be omitted.
    """
    if not isinstance(payload, dict):
        raise InvalidInputs("payload must be a mapping")
    if catalogue is None:
        catalogue = CATALOGUE

    frame = str(_raw(payload, "frame_fixing_type") or "concrete").strip().lower()
    steel = _steel_frame(payload, frame) if frame.startswith("steel") else {}

    slab = _number(payload, "slab_thickness", required=not steel)
    cavity = _number(payload, "cavity_width", required=True)
    support = _number(payload, "support_level", required=True)
    if steel:
        slab = steel["steel_section_height"]
    if slab <= 0:
        raise InvalidInputs("slab_thickness must be positive")
    if cavity <= 0:
        raise InvalidInputs("cavity_width must be positive")

    density = _number(payload, "masonry_density", 2000.0)
    thickness = _number(payload, "masonry_thickness", 102.5)
    height = _number(payload, "masonry_height", 3.0)
    load = resolve_characteristic_load(_number(payload, "characteristic_load"), density, height, thickness)
    if load <= 0:
        raise InvalidInputs("characteristic_load must be positive")

    notch_height = _number(payload, "notch_height", 0.0)
    notch_depth = _number(payload, "notch_depth", 0.0)
    if notch_height < 0 or notch_depth < 0:
        raise InvalidInputs("notch dimensions cannot be negative")

    families = _families(payload)
    use_custom = _flag(payload, "use_custom_fixing_position")
    fixing = _number(payload, "fixing_position")
    if use_custom:
        if fixing is None:
            raise InvalidInputs("fixing_position is required when use_custom_fixing_position is set")
        if steel:
            validate_steel_fixing(fixing, slab)
        else:
            validate_custom_fixing(fixing, slab, resolve_families(families), catalogue)

    enabled = _flag(payload, "enable_angle_extension")
    limit = resolve_exclusion_limit(enabled, _number(payload, "max_allowable_bracket_extension"))

    run_length = _number(payload, "run_length")
    if run_length is not None and run_length <= 0:
        raise InvalidInputs("run_length must be positive")

    inputs = DesignInputs(
        slab_thickness=slab,
        cavity_width=cavity,
        support_level=support,
        characteristic_load=load,
        masonry_density=density,
        masonry_thickness=thickness,
        masonry_height=height,
        notch_height=notch_height,
        notch_depth=notch_depth,
        fixing_position=fixing,
        use_custom_fixing_position=use_custom,
        dim_d=_number(payload, "dim_d"),
        max_allowable_bracket_extension=limit,
        enable_angle_extension=enabled,
        allowed_channel_families=families,
        run_length=run_length,
        frame_fixing_type=frame,
        **steel,
    )
    if inputs.dim_d is not None:
        validate_dim_d(inputs.dim_d, inputs.slab_thickness, resolve_fixing_position(inputs))
    return inputs


def parse_run_request(payload: Dict[str, Any]) -> Tuple[float, int]:
    """(run length, bracket centres) for a stand-alone run layout request."""
    if not isinstance(payload, dict):
        raise InvalidInputs("payload must be a mapping")
    run_length = _number(payload, "run_length", required=True)
    centres = _number(payload, "bracket_centres", required=True)
    if centres <= 0 or centres != int(centres):
        raise InvalidInputs("bracket_centres must be a positive whole number of millimetres")
    return run_length, int(centres)


__all__ = [
    "parse_design_inputs",
    "parse_run_request",
    "resolve_exclusion_limit",
    "resolve_families",
    "validate_custom_fixing",
    "validate_dim_d",
    "validate_steel_fixing",
]
