import asyncio

import pytest

import solver.orchestrator as orch
from models import DesignInputs, EvaluatedDesign, InfeasibleDesign, OptimizerError
from progress import reset, snapshot
from solver.bounds import group_candidates
from solver.combinations import generate_candidates
from solver.search import CancelToken

PAYLOAD = {"slab_thickness": 200, "cavity_width": 100, "support_level": -300, "characteristic_load": 4}


def _inputs(**kw):
    base = dict(slab_thickness=200, cavity_width=100, support_level=-300, characteristic_load=4)
    base.update(kw)
    return DesignInputs(**base)


def test_solve_orchestrator_success_drives_progress():
    reset()
    ok, result, reason, meta = orch.solve_orchestrator(dict(PAYLOAD))
    assert ok is True
    assert reason is None
    assert result.selected.is_valid
    assert result.stats["candidates"] == 140 * 2
    assert result.stats["evaluated"] <= result.stats["candidates"]
    assert meta["stats"]["standard_angle_override"] is False
    snap = snapshot()
    assert snap["status"] == "Solved"
    assert snap["phase"] == "select"
    assert snap["evaluated"] == result.stats["evaluated"]


def test_solve_orchestrator_reports_bad_input():
    ok, result, reason, meta = orch.solve_orchestrator({"slab_thickness": 200})
    assert ok is False
    assert result is None
    assert reason.startswith("Bad input: ")
    assert "cavity_width" in meta["reason"]


def test_solve_orchestrator_reports_infeasible(monkeypatch):
    monkeypatch.setattr(
        orch, "DefaultEvaluator",
        lambda catalogue=None: (lambda cand, inputs: EvaluatedDesign(cand, None, False)),
    )
    ok, result, reason, _meta = orch.solve_orchestrator(dict(PAYLOAD))
    assert ok is False
    assert reason == "No valid design found"


def test_solve_orchestrator_reports_cancel():
    token = CancelToken()
    token.cancel()
    ok, _result, reason, _meta = orch.solve_orchestrator(dict(PAYLOAD), cancel=token)
    assert ok is False
    assert reason == "Cancelled"


def test_pruned_and_exhaustive_runs_agree():
    inputs = _inputs(support_level=-120, slab_thickness=225, characteristic_load=7)
    pruned = orch.run_optimization(inputs, prune=True)
    full = orch.run_optimization(inputs, prune=False)
    assert pruned.selected.candidate.structural_key() == full.selected.candidate.structural_key()
    assert pruned.selected.weight == pytest.approx(full.selected.weight)
    assert pruned.stats["evaluated"] <= full.stats["evaluated"]


def test_run_length_adds_layout():
    result = orch.run_optimization(_inputs(run_length=3010))
    layout = result.run_layout
    assert layout is not None
    assert layout.bracket_centres == result.selected.candidate.bracket_centres
    assert layout.run_length == 3010


def test_layout_failure_becomes_alert(monkeypatch):
    def failing(run_length, centres):
        raise OptimizerError("solver unavailable")

    monkeypatch.setattr(orch, "plan_run", failing)
    result = orch.run_optimization(_inputs(run_length=3010))
    assert result.run_layout is None
    assert "Run layout unavailable: solver unavailable" in result.alerts


def test_async_entry_point():
    sync = orch.run_optimization(_inputs())
    result = asyncio.run(orch.run_optimization_async(_inputs()))
    assert result.selected.candidate == sync.selected.candidate


def test_custom_evaluator_infeasible():
    with pytest.raises(InfeasibleDesign):
        orch.run_optimization(_inputs(), evaluator=lambda cand, inputs: EvaluatedDesign(cand, None, False))


def test_phase_total_counts_structural_groups():
    # a 300mm slab leaves eleven fixing positions per CPRO38 standard group
    payload = dict(PAYLOAD, slab_thickness=300)
    reset()
    ok, result, _reason, _meta = orch.solve_orchestrator(payload)
    assert ok is True
    groups = len(group_candidates(generate_candidates(_inputs(slab_thickness=300))))
    assert snapshot()["phase_total"] == str(groups)
    assert groups * 11 == result.stats["candidates"]


def test_steel_frame_end_to_end():
    payload = {"frame_fixing_type": "steel-ibeam", "steel_section_height": 250, "steel_bolt_size": "M12",
               "cavity_width": 100, "support_level": -300, "characteristic_load": 4}
    ok, result, reason, _meta = orch.solve_orchestrator(payload)
    assert ok is True, reason
    selected = result.selected.candidate
    assert selected.channel_family == "STEEL"
    assert selected.fixing_method == "SET_SCREW"
    assert selected.bolt_diameter == 12
    assert set(result.selected.detail["checks"]) == {"steel_edge_distance", "steel_fixing"}
