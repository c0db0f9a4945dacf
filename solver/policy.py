# Final selection: standard-angle preference, alternatives and advisory alerts
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from channels import is_rhptiii
from config import CFG
from models import Alternative, EvaluatedDesign, OptimizationResult

NOTCH_ALERT = "A notch may be required if the full bearing of the slab (max rise to bolt) is utilised."


def choose_final(best: EvaluatedDesign, best_standard: Optional[EvaluatedDesign],
                 bsl_above_slab_bottom: bool) -> Tuple[EvaluatedDesign, bool]:
    """(final design, overridden).

    A bearing above the slab bottom prefers the best Standard/Standard design
    over the lightest one whenever such a design validated.
    """
    if bsl_above_slab_bottom and best_standard is not None:
        return best_standard, best_standard is not best
    return best, False


def key_differences(alt: EvaluatedDesign, final: EvaluatedDesign) -> Tuple[str, ...]:
    a, f = alt.candidate, final.candidate
    diffs: List[str] = []
    if a.bracket_type != f.bracket_type:
        diffs.append(f"{a.bracket_type.value} bracket (vs {f.bracket_type.value})")
    if alt.final_orientation != final.final_orientation:
        diffs.append(f"{alt.final_orientation.value} angle (vs {final.final_orientation.value})")
    if a.bracket_centres != f.bracket_centres:
        diffs.append(f"{a.bracket_centres}mm centers (vs {f.bracket_centres}mm)")
    if a.bracket_thickness != f.bracket_thickness:
        diffs.append(f"{a.bracket_thickness}mm bracket (vs {f.bracket_thickness}mm)")
    if a.angle_thickness != f.angle_thickness:
        diffs.append(f"{a.angle_thickness}mm angle (vs {f.angle_thickness}mm)")
    if a.vertical_leg != f.vertical_leg:
        diffs.append(f"{a.vertical_leg}mm vertical leg (vs {f.vertical_leg}mm)")
    if a.bolt_diameter != f.bolt_diameter:
        diffs.append(f"M{a.bolt_diameter} bolts (vs M{f.bolt_diameter})")
    if a.channel_family != f.channel_family:
        diffs.append(f"{a.channel_family} channel (vs {f.channel_family})")
    if a.fixing_method != f.fixing_method and a.fixing_method is not None:
        diffs.append(f"{a.fixing_method} fixing (vs {f.fixing_method or 'channel'})")
    return tuple(diffs)


def weight_delta_pct(alt: EvaluatedDesign, final: EvaluatedDesign) -> float:
    if final.weight == 0:
        return 0.0
    return (alt.weight - final.weight) / final.weight * 100.0


def build_alternatives(final: EvaluatedDesign, ranked: Iterable[EvaluatedDesign],
                       channel_bests: Iterable[EvaluatedDesign], top_n: int) -> Tuple[Alternative, ...]:
    """Ranked designs plus per-channel bests, one per structural identity, lightest first."""
    seen: Dict[tuple, EvaluatedDesign] = {final.candidate.structural_key(): final}
    pool: List[EvaluatedDesign] = []
    for design in list(ranked) + list(channel_bests):
        key = design.candidate.structural_key()
        if key in seen:
            continue
        seen[key] = design
        pool.append(design)
    pool.sort(key=lambda d: d.weight)
    return tuple(
        Alternative(design, weight_delta_pct(design, final), key_differences(design, final))
        for design in pool[:top_n]
    )


def build_alerts(final: EvaluatedDesign, alternatives: Iterable[Alternative]) -> Tuple[str, ...]:
    alerts: List[str] = []
    family = final.candidate.channel_family
    if is_rhptiii(family):
        alerts.append(f"Selected channel: {family} requires engineering review")
    geometry = final.geometry
    if final.uses_inverted_component and geometry is not None and geometry.drop_below_slab > 0:
        alerts.append(NOTCH_ALERT)
    rhptiii_alts = [alt for alt in alternatives if is_rhptiii(alt.design.candidate.channel_family)]
    if rhptiii_alts and not is_rhptiii(family):
        alerts.append(
            f"{len(rhptiii_alts)} R-HPTIII alternative(s) available - consider for high-load applications"
        )
    return tuple(alerts)


def select(best: EvaluatedDesign, best_standard: Optional[EvaluatedDesign],
           ranked: Iterable[EvaluatedDesign] = (), channel_bests: Iterable[EvaluatedDesign] = (),
           *, bsl_above_slab_bottom: Optional[bool] = None, top_n: Optional[int] = None,
           stats: Optional[dict] = None) -> OptimizationResult:
    if bsl_above_slab_bottom is None:
        bsl_above_slab_bottom = bool(best.geometry is not None and best.geometry.bsl_above_slab_bottom)
    final, overridden = choose_final(best, best_standard, bsl_above_slab_bottom)
    alternatives = build_alternatives(final, ranked, channel_bests, int(CFG.TOP_N if top_n is None else top_n))
    out_stats = dict(stats or {})
    out_stats["standard_angle_override"] = overridden
    out_stats["lightest_weight"] = best.weight
    return OptimizationResult(
        selected=final,
        alternatives=alternatives,
        alerts=build_alerts(final, alternatives),
        stats=out_stats,
    )


__all__ = [
    "NOTCH_ALERT",
    "choose_final",
    "key_differences",
    "build_alternatives",
    "build_alerts",
    "select",
]
