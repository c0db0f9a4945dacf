import asyncio
import random

import pytest

from evaluator import DefaultEvaluator
from models import (
    AngleOrientation,
    BracketType,
    Candidate,
    DesignInputs,
    EvaluatedDesign,
    InfeasibleDesign,
    SearchCancelled,
)
from solver.combinations import generate_candidates
from solver.policy import choose_final
from solver.search import (
    CancelToken,
    SearchState,
    fold_design,
    iterate_search,
    run_search,
    run_search_async,
)

S = AngleOrientation.STANDARD
I = AngleOrientation.INVERTED


def _inputs(**kw):
    base = dict(slab_thickness=200, cavity_width=100, support_level=-300, characteristic_load=4)
    base.update(kw)
    return DesignInputs(**base)


def _cand(centres, fixing=75.0, orientation=S, family="CPRO38"):
    return Candidate(
        bracket_centres=centres, bracket_thickness=3, angle_thickness=5, vertical_leg=60,
        bolt_diameter=10, bracket_type=BracketType.STANDARD, angle_orientation=orientation,
        channel_family=family, fixing_position=fixing,
    )


def _by_centres(group, inputs):
    return group.representative.bracket_centres / 100.0


class TableEvaluator:
    """Weight = centres / 100 + 0.5; ``invalid`` and ``broken`` select by centres."""

    def __init__(self, invalid=(), broken=(), on_call=None):
        self.invalid = set(invalid)
        self.broken = set(broken)
        self.on_call = on_call
        self.calls = []

    def __call__(self, candidate, inputs):
        self.calls.append(candidate)
        if self.on_call is not None:
            self.on_call(len(self.calls))
        if candidate.bracket_centres in self.broken:
            raise RuntimeError("boom")
        valid = candidate.bracket_centres not in self.invalid
        return EvaluatedDesign(candidate, None, valid, candidate.bracket_centres / 100.0 + 0.5)


def test_scan_stops_once_bound_reaches_best():
    cands = [_cand(c) for c in (200, 250, 300, 350, 400)]
    ev = TableEvaluator()
    state = run_search(cands, _inputs(), ev, bound=_by_centres, prune=True)
    assert state.best.candidate.bracket_centres == 200
    # bound 2.5 for 250mm reaches the 2.5 best weight
    assert [c.bracket_centres for c in ev.calls] == [200]
    assert state.stopped_early is True
    assert state.pruned == 4


def test_unpruned_scan_visits_every_group():
    cands = [_cand(c) for c in (200, 250, 300)]
    state = run_search(cands, _inputs(), TableEvaluator(), bound=_by_centres, prune=False)
    assert state.evaluated == 3
    assert state.pruned == 0
    assert [d.candidate.bracket_centres for d in state.alternatives] == [200, 250, 300]


def test_fault_skips_candidate_and_search_continues():
    cands = [_cand(c) for c in (200, 250, 300)]
    state = run_search(cands, _inputs(), TableEvaluator(broken={200}), bound=_by_centres)
    assert state.faults == 1
    assert state.best.candidate.bracket_centres == 250


def test_standard_descent_moves_past_a_faulty_fixing():
    class DeepFails:
        def __call__(self, candidate, inputs):
            if candidate.fixing_position == 85.0:
                raise ValueError("bad geometry")
            return EvaluatedDesign(candidate, None, True, 1.0)

    cands = [_cand(300, fixing=p) for p in (75.0, 80.0, 85.0)]
    state = run_search(cands, _inputs(slab_thickness=250), DeepFails(), bound=_by_centres)
    assert state.faults == 1
    assert state.best.candidate.fixing_position == 80.0


def test_no_valid_design_is_infeasible():
    cands = [_cand(c) for c in (200, 250)]
    with pytest.raises(InfeasibleDesign, match="No valid design found"):
        run_search(cands, _inputs(), TableEvaluator(invalid={200, 250}), bound=_by_centres)


def test_cancel_before_start():
    token = CancelToken()
    token.cancel()
    with pytest.raises(SearchCancelled):
        run_search([_cand(200)], _inputs(), TableEvaluator(), bound=_by_centres, cancel=token)


def test_cancel_is_honoured_at_yield_points():
    token = CancelToken()
    ev = TableEvaluator(invalid={200, 250, 300, 350, 400}, on_call=lambda n: token.cancel() if n == 2 else None)
    cands = [_cand(c) for c in (200, 250, 300, 350, 400)]
    with pytest.raises(SearchCancelled):
        run_search(cands, _inputs(), ev, bound=_by_centres, cancel=token, yield_every=1)
    assert len(ev.calls) == 2


def test_generator_yields_every_n_evaluations():
    cands = [_cand(c) for c in (200, 250, 300, 350, 400)]
    seen = []
    steps = iterate_search(cands, _inputs(), TableEvaluator(invalid={200, 250, 300, 350, 400}),
                           bound=_by_centres, yield_every=2, progress=lambda st, total: seen.append(total))
    states = list(steps)
    assert [s.evaluated for s in states] == [2, 4]
    # two yield points plus the final report
    assert seen == [5, 5, 5]


def test_progress_callback_errors_are_contained():
    def broken(state, total):
        raise RuntimeError("ui gone")

    state = run_search([_cand(200)], _inputs(), TableEvaluator(), bound=_by_centres,
                       yield_every=1, progress=broken)
    assert state.best is not None


def test_standard_pairs_scanned_past_lighter_best_when_bearing_in_slab():
    cands = [_cand(200, orientation=I), _cand(300, orientation=S), _cand(400, orientation=I)]
    inputs = _inputs(support_level=-100)
    state = run_search(cands, inputs, TableEvaluator(), bound=_by_centres, prune=True)
    assert state.best.candidate.bracket_centres == 200
    assert state.best_standard.candidate.bracket_centres == 300
    assert state.pruned == 1
    final, overridden = choose_final(state.best, state.best_standard, inputs.bsl_above_slab_bottom)
    assert final.candidate.bracket_centres == 300
    assert overridden is True


def test_fold_keeps_first_of_equal_weights_and_tracks_channels():
    a = EvaluatedDesign(_cand(200), None, True, 2.0)
    b = EvaluatedDesign(_cand(250), None, True, 2.0)
    c = EvaluatedDesign(_cand(300, family="CPRO50"), None, True, 1.5)
    state = SearchState()
    for design in (a, b, c):
        state = fold_design(state, design, top_n=2)
    assert state.best is c
    assert state.channel_best("CPRO38") is a
    assert state.channel_best("CPRO50") is c
    assert [d.weight for d in state.alternatives] == [1.5, 2.0]


def test_async_driver_matches_sync():
    cands = [_cand(c) for c in (200, 250, 300)]
    sync = run_search(cands, _inputs(), TableEvaluator(broken={200}), bound=_by_centres, yield_every=1)
    result = asyncio.run(
        run_search_async(cands, _inputs(), TableEvaluator(broken={200}), bound=_by_centres, yield_every=1)
    )
    assert result.best.candidate == sync.best.candidate
    assert result.evaluated == sync.evaluated


def _random_inputs(rng):
    extension = rng.random() < 0.4
    return _inputs(
        slab_thickness=rng.choice([200, 225, 250]),
        cavity_width=rng.choice([50, 80, 100, 150, 200]),
        support_level=rng.choice([-350, -250, -200, -160, -120, -100, -40, 0, 25]),
        characteristic_load=rng.uniform(1.5, 12),
        enable_angle_extension=extension,
        max_allowable_bracket_extension=rng.choice([-200, -100, 0, 50]) if extension else None,
    )


def _outcome(cands, inputs, evaluator, prune):
    try:
        state = run_search(cands, inputs, evaluator, prune=prune)
    except InfeasibleDesign:
        return None
    final, _ = choose_final(state.best, state.best_standard, inputs.bsl_above_slab_bottom)
    return state.best.weight, final.weight, final.candidate.structural_key()


def test_pruning_never_changes_the_selection():
    rng = random.Random(99)
    evaluator = DefaultEvaluator()
    compared = 0
    for _ in range(20):
        inputs = _random_inputs(rng)
        cands = generate_candidates(inputs)
        with_pruning = _outcome(cands, inputs, evaluator, True)
        without = _outcome(cands, inputs, evaluator, False)
        assert (with_pruning is None) == (without is None)
        if with_pruning is None:
            continue
        assert with_pruning[0] == pytest.approx(without[0])
        assert with_pruning[1] == pytest.approx(without[1])
        assert with_pruning[2] == without[2]
        compared += 1
    assert compared > 0
