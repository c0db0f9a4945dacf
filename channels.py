"""Cast-in channel reference data.

Each row is one (family, slab thickness, bracket centres) combination with the
critical edge distances that bound the fixing position and the characteristic
channel capacities.  Lookups fall back to the nearest lower slab thickness
held for the family, then to the thinnest one.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from config import CFG

log = logging.getLogger(__name__)

DEFAULT_TOP_EDGE = 75.0
DEFAULT_BOTTOM_EDGE = 150.0


@dataclass(frozen=True)
class ChannelSpec:
    family: str
    slab_thickness: int
    bracket_centres: int
    top_edge: float
    bottom_edge: float
    max_tension: float  # kN
    max_shear: float    # kN


# family, slab, top, bottom, ((centres, tension, shear), ...)
_BUILTIN_ROWS: Tuple[Tuple[str, int, float, float, Tuple[Tuple[int, float, float], ...]], ...] = (
    ("CPRO38", 200, 75, 125, ((200, 7.75, 7.45), (250, 9.45, 8.55), (300, 10.75, 10.35),
                              (350, 13.00, 11.90), (400, 13.50, 13.50), (450, 13.90, 15.00),
                              (500, 14.25, 16.50))),
    ("CPRO38", 225, 75, 150, ((200, 7.75, 8.60), (250, 9.45, 9.70), (300, 10.75, 11.55),
                              (350, 13.00, 13.20), (400, 13.50, 15.00), (450, 13.90, 16.60),
                              (500, 14.25, 16.60))),
    ("CPRO38", 250, 75, 175, ((200, 7.75, 9.90), (250, 9.45, 10.90), (300, 10.75, 12.60),
                              (350, 13.00, 14.60), (400, 13.50, 16.40), (450, 13.90, 16.60),
                              (500, 14.25, 16.60))),
    ("CPRO50", 200, 75, 125, ((200, 9.60, 7.45), (250, 11.55, 8.55), (300, 13.35, 10.35),
                              (350, 14.75, 11.90), (400, 14.75, 13.50), (450, 14.75, 15.00),
                              (500, 14.75, 16.50))),
    ("CPRO50", 225, 75, 150, ((200, 9.60, 8.60), (250, 11.55, 9.70), (300, 13.35, 11.55),
                              (350, 14.75, 13.20), (400, 14.75, 15.00), (450, 14.75, 16.60),
                              (500, 14.75, 16.60))),
    ("CPRO50", 250, 75, 175, ((200, 9.60, 9.90), (250, 11.55, 10.90), (300, 13.35, 12.60),
                              (350, 14.75, 14.60), (400, 14.75, 16.40), (450, 14.75, 16.60),
                              (500, 14.75, 16.60))),
)


class ChannelCatalogue:
    def __init__(self, specs: Iterable[ChannelSpec] = ()):
        self._specs: Dict[Tuple[str, int, int], ChannelSpec] = {}
        for spec in specs:
            self.add(spec)

    def add(self, spec: ChannelSpec) -> None:
        self._specs[(spec.family, int(spec.slab_thickness), int(spec.bracket_centres))] = spec

    def __len__(self) -> int:
        return len(self._specs)

    def families(self) -> Tuple[str, ...]:
        return tuple(sorted({family for family, _s, _c in self._specs}))

    def _thickness_for(self, family: str, slab_thickness: float) -> Optional[int]:
        held = sorted({s for f, s, _c in self._specs if f == family})
        if not held:
            return None
        chosen = held[0]
        for s in held:
            if s <= slab_thickness:
                chosen = s
        return chosen

    def lookup(self, family: str, slab_thickness: float, bracket_centres: int) -> Optional[ChannelSpec]:
        exact = self._specs.get((family, int(slab_thickness), int(bracket_centres)))
        if exact is not None:
            return exact
        same_centres = sorted(
            (spec for (f, _s, c), spec in self._specs.items() if f == family and c == int(bracket_centres)),
            key=lambda spec: spec.slab_thickness,
        )
        if not same_centres:
            return None
        selected = same_centres[0]
        for spec in same_centres:
            if spec.slab_thickness <= slab_thickness:
                selected = spec
        return selected

    def valid_spacings(self, family: str, slab_thickness: float) -> List[int]:
        thickness = self._thickness_for(family, slab_thickness)
        if thickness is None:
            return []
        if thickness != int(slab_thickness):
            log.debug("channel specs missing for %s at %smm, using %smm data", family, slab_thickness, thickness)
        return sorted(c for f, s, c in self._specs if f == family and s == thickness)

    def edges(self, family: str, slab_thickness: float,
              bracket_centres: Optional[int] = None) -> Tuple[float, float]:
        """Resolve (top, bottom) critical edges.

        Precedence: the exact/nearest-lower spec for ``bracket_centres``; any
        spec held for the family at the resolved thickness; the defaults.
        """
        spec = None
        if bracket_centres is not None:
            spec = self.lookup(family, slab_thickness, bracket_centres)
        if spec is None:
            spacings = self.valid_spacings(family, slab_thickness)
            if spacings:
                spec = self.lookup(family, slab_thickness, spacings[0])
        if spec is None:
            return DEFAULT_TOP_EDGE, DEFAULT_BOTTOM_EDGE
        return float(spec.top_edge), float(spec.bottom_edge)

    def describe(self, family: str, slab_thickness: float, bracket_centres: int) -> Dict[str, object]:
        top, bottom = self.edges(family, slab_thickness, bracket_centres)
        return {
            "top_edge": top,
            "bottom_edge": bottom,
            "valid_spacings": self.valid_spacings(family, slab_thickness),
        }

    def load_csv(self, path: str) -> int:
        """Merge rows from a CSV file; returns the number of rows loaded.

        Columns: ``family, slab_thickness, top_edge, bottom_edge,
        bracket_centres, max_tension, max_shear``.  Blank family, slab or edge
        cells repeat the value from the previous row.
        """
        loaded = 0
        carry: Dict[str, str] = {}
        with open(path, "r", encoding="utf-8", newline="") as fh:
            reader = csv.DictReader(fh)
            for line_no, row in enumerate(reader, start=2):
                for key in ("family", "slab_thickness", "top_edge", "bottom_edge"):
                    value = (row.get(key) or "").strip()
                    if value:
                        carry[key] = value
                    elif key in carry:
                        row[key] = carry[key]
                try:
                    spec = ChannelSpec(
                        family=str(row["family"]).strip(),
                        slab_thickness=int(float(row["slab_thickness"])),
                        bracket_centres=int(float(row["bracket_centres"])),
                        top_edge=float(row["top_edge"]),
                        bottom_edge=float(row["bottom_edge"]),
                        max_tension=float(str(row["max_tension"]).rstrip("%")),
                        max_shear=float(str(row["max_shear"]).rstrip("%")),
                    )
                except (KeyError, TypeError, ValueError) as e:
                    log.warning("channel csv %s line %d skipped: %s", path, line_no, e)
                    continue
                if not spec.family or spec.bracket_centres <= 0 or spec.slab_thickness <= 0:
                    log.warning("channel csv %s line %d skipped: incomplete row", path, line_no)
                    continue
                self.add(spec)
                loaded += 1
        return loaded


def builtin_specs() -> List[ChannelSpec]:
    out: List[ChannelSpec] = []
    for family, slab, top, bottom, rows in _BUILTIN_ROWS:
        for centres, tension, shear in rows:
            out.append(ChannelSpec(family, slab, centres, float(top), float(bottom), tension, shear))
    return out


def default_catalogue() -> ChannelCatalogue:
    catalogue = ChannelCatalogue(builtin_specs())
    if CFG.CHANNEL_CSV:
        try:
            n = catalogue.load_csv(CFG.CHANNEL_CSV)
            log.info("loaded %d channel specs from %s", n, CFG.CHANNEL_CSV)
        except OSError as e:
            log.warning("channel csv %s not readable: %s", CFG.CHANNEL_CSV, e)
    return catalogue


CATALOGUE = default_catalogue()


def is_rhptiii(family: str) -> bool:
    return str(family).upper().startswith("R-HPTIII")


__all__ = ["ChannelSpec", "ChannelCatalogue", "CATALOGUE", "builtin_specs", "default_catalogue", "is_rhptiii"]
