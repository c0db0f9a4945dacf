"""Helpers for writing optimisation outputs to disk."""

from __future__ import annotations

import json
import os
from typing import List

from config import CFG
from models import Candidate, OptimizationResult


def _resolve_output_path(base_dir: str, configured_name: str, fallback: str) -> str:
    """Return the absolute path where an output artifact should be written."""

    name = (configured_name or "").strip() or fallback
    if os.path.isabs(name):
        return name
    return os.path.join(base_dir, name)


def write_result_json(result: OptimizationResult, base_dir: str) -> str:
    """Write the full result (selection, alternatives, alerts, layout) as JSON."""

    path = _resolve_output_path(base_dir, CFG.RESULT_JSON, "result.json")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)
    return path


def fixing_text(c: Candidate) -> str:
    if c.is_steel_fixing:
        return f"steel frame {c.fixing_method.lower().replace('_', ' ')}"
    return f"channel {c.channel_family}"


def summary_lines(result: OptimizationResult) -> List[str]:
    sel = result.selected
    c = sel.candidate
    lines = [
        f"Selected: {c.bracket_type.value} bracket / {sel.final_orientation.value} angle",
        f"  {fixing_text(c)}, {c.bracket_centres}mm centres, fixing {c.fixing_position:g}mm",
        f"  bracket {c.bracket_thickness}mm, angle {c.angle_thickness}mm x {c.vertical_leg}mm leg, M{c.bolt_diameter}",
        f"  weight {sel.weight:.3f} kg/m",
    ]
    if sel.geometry is not None:
        g = sel.geometry
        lines.append(
            f"  bracket height {g.bracket_height:g}mm, rise to bolts {g.rise_to_bolts:g}mm, "
            f"drop below slab {g.drop_below_slab:g}mm"
        )
        if g.extension.applied:
            lines.append(
                f"  exclusion zone: bracket -{g.extension.bracket_reduction:g}mm, "
                f"angle leg {g.extension.extended_angle_height:g}mm"
            )
        if g.extension.flip_reason:
            lines.append(f"  {g.extension.flip_reason}")
    if result.alerts:
        lines.append("Alerts:")
        lines.extend(f"  - {a}" for a in result.alerts)
    if result.alternatives:
        lines.append("Alternatives:")
        for alt in result.alternatives:
            diffs = "; ".join(alt.key_differences) or "same structure"
            lines.append(f"  {alt.design.weight:.3f} kg/m ({alt.weight_delta_pct:+.1f}%): {diffs}")
    if result.run_layout is not None:
        run = result.run_layout
        lines.append(
            f"Run layout: {run.run_length}mm in {len(run.pieces)} pieces, "
            f"{run.total_brackets} brackets ({run.status})"
        )
        for piece in run.pieces:
            kind = "standard" if piece.is_standard else "cut"
            lines.append(f"  {piece.length}mm {kind}, {piece.bracket_count} brackets from {piece.start_offset:g}mm")
    return lines


def write_summary(result: OptimizationResult, base_dir: str) -> str:
    """Write a plain-text summary of the result to the configured file."""

    path = _resolve_output_path(base_dir, CFG.SUMMARY_TXT, "summary.txt")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(summary_lines(result)) + "\n")
    return path


__all__ = ["write_result_json", "write_summary", "summary_lines"]
