import json
import os
import tempfile
import unittest
from dataclasses import replace

from config import CFG
from geometry import derive_geometry
from io_files import summary_lines, write_result_json, write_summary
from models import (
    Alternative,
    AngleOrientation,
    AnglePiece,
    BracketType,
    Candidate,
    DesignInputs,
    EvaluatedDesign,
    OptimizationResult,
    RunLayout,
)


def _result() -> OptimizationResult:
    inputs = DesignInputs(slab_thickness=225, cavity_width=100, support_level=-300, characteristic_load=4)
    cand = Candidate(
        bracket_centres=500, bracket_thickness=3, angle_thickness=5, vertical_leg=60,
        bolt_diameter=10, bracket_type=BracketType.STANDARD,
        angle_orientation=AngleOrientation.STANDARD, channel_family="CPRO38", fixing_position=75.0,
    )
    alt_cand = Candidate(
        bracket_centres=450, bracket_thickness=3, angle_thickness=5, vertical_leg=60,
        bolt_diameter=10, bracket_type=BracketType.STANDARD,
        angle_orientation=AngleOrientation.STANDARD, channel_family="CPRO38", fixing_position=75.0,
    )
    selected = EvaluatedDesign(cand, derive_geometry(cand, inputs), True, 5.25)
    alt = EvaluatedDesign(alt_cand, derive_geometry(alt_cand, inputs), True, 5.5)
    piece = AnglePiece(980, 2, 500.0, 240.0, (240.0, 740.0), False)
    return OptimizationResult(
        selected=selected,
        alternatives=(Alternative(alt, 4.7619, ("450mm centers (vs 500mm)",)),),
        alerts=("check me",),
        stats={"evaluated": 3},
        run_layout=RunLayout(1000, 500, (piece,), 2, 1, "OPTIMAL"),
    )


class WriteOutputsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self._orig_result = CFG.RESULT_JSON
        self._orig_summary = CFG.SUMMARY_TXT

    def tearDown(self) -> None:
        CFG.RESULT_JSON = self._orig_result
        CFG.SUMMARY_TXT = self._orig_summary

    def test_write_result_json_uses_configured_relative_path(self) -> None:
        CFG.RESULT_JSON = "outputs/custom_result.json"

        path = write_result_json(_result(), self.tmpdir.name)

        expected = os.path.join(self.tmpdir.name, "outputs", "custom_result.json")
        self.assertEqual(path, expected)
        self.assertFalse(os.path.exists(path + ".tmp"))

        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        self.assertEqual(data["selected"]["weight"], 5.25)
        self.assertEqual(data["selected"]["candidate"]["bracket_type"], "Standard")
        self.assertEqual(data["alternatives"][0]["weight_delta_pct"], 4.76)
        self.assertEqual(data["run_layout"]["pieces"][0]["length"], 980)

    def test_write_summary_accepts_absolute_path(self) -> None:
        target = os.path.join(self.tmpdir.name, "txt", "summary.txt")
        CFG.SUMMARY_TXT = target

        path = write_summary(_result(), self.tmpdir.name)

        self.assertEqual(path, target)
        with open(path, "r", encoding="utf-8") as fh:
            contents = fh.read()
        self.assertIn("Selected: Standard bracket / Standard angle", contents)
        self.assertIn("  - check me", contents)
        self.assertIn("980mm cut, 2 brackets from 240mm", contents)

    def test_summary_lines_list_alternatives(self) -> None:
        lines = summary_lines(_result())
        self.assertIn("Alternatives:", lines)
        self.assertIn("  5.500 kg/m (+4.8%): 450mm centers (vs 500mm)", lines)

    def test_summary_names_steel_fixing_method(self) -> None:
        result = _result()
        steel = replace(result.selected.candidate, channel_family="STEEL", fixing_method="BLIND_BOLT")
        lines = summary_lines(replace(result, selected=replace(result.selected, candidate=steel)))
        self.assertIn("  steel frame blind bolt, 500mm centres, fixing 75mm", lines)
        self.assertIn("  channel CPRO38, 500mm centres, fixing 75mm", summary_lines(result))


if __name__ == "__main__":
    unittest.main()
