import random

import pytest

from stampslot.classification import Triple
from stampslot.engine import (
    CLOSE_POOL_SIZE,
    closeness,
    pick_prefer_close,
    rand_int,
    roll_new_guaranteed,
    roll_random_valid,
)
from stampslot.state import create_initial_state
from tests._index_helpers import ScriptedRandom, index_value, make_index, stamp_all


def test_rand_int_covers_bounds():
    assert rand_int(ScriptedRandom([0.0]), 0, 9) == 0
    assert rand_int(ScriptedRandom([0.999999]), 0, 9) == 9
    assert rand_int(ScriptedRandom([index_value(4, 10)]), 0, 9) == 4


def test_random_valid_draw_only_returns_valid_codes():
    idx = make_index(["000", "123", "307", "913"])
    rng = random.Random(7)
    seen = {roll_random_valid(idx, rng).code for _ in range(300)}
    assert seen == {"000", "123", "307", "913"}


def test_random_valid_draw_on_empty_index_raises():
    with pytest.raises(ValueError):
        roll_random_valid(make_index([]), random.Random(0))


def test_closeness_weights():
    base = Triple.of(5, 5, 5)
    assert closeness(Triple.of(6, 5, 5), base) == 3
    assert closeness(Triple.of(5, 3, 5), base) == 4
    assert closeness(Triple.of(5, 5, 9), base) == 4
    assert closeness(base, base) == 0


def test_pick_prefer_close_single_candidate_skips_randomness():
    rng = ScriptedRandom([])
    only = Triple.of(1, 1, 1)
    assert pick_prefer_close([only], Triple.of(9, 9, 9), rng) is only


def test_pick_prefer_close_stays_within_closest_twelve():
    base = Triple.of(0, 0, 0)
    candidates = [Triple.of(x, y, z) for x in range(10) for y in range(10) for z in range(10)]
    ranked = sorted(candidates, key=lambda c: closeness(c, base))
    worst_allowed = closeness(ranked[CLOSE_POOL_SIZE - 1], base)
    rng = random.Random(3)
    for _ in range(200):
        pick = pick_prefer_close(candidates, base, rng)
        assert closeness(pick, base) <= worst_allowed


def test_pick_prefer_close_uses_all_when_fewer_than_twelve():
    base = Triple.of(0, 0, 0)
    far = [Triple.of(9, 9, 9), Triple.of(0, 0, 1), Triple.of(5, 5, 5)]
    # last slot of a 3-wide pool is the farthest candidate
    assert pick_prefer_close(far, base, ScriptedRandom([0.99])) == Triple.of(9, 9, 9)
    assert pick_prefer_close(far, base, ScriptedRandom([0.0])) == Triple.of(0, 0, 1)


def test_pick_prefer_close_empty_raises():
    with pytest.raises(ValueError):
        pick_prefer_close([], Triple.of(0, 0, 0), random.Random(0))


def test_guaranteed_new_prefers_same_page(full_idx):
    idx = full_idx
    s = create_initial_state()
    stamp_all(s, idx, except_codes=["307", "512", "570"])
    s.last_result_code = "300"
    for seed in range(20):
        assert roll_new_guaranteed(s, idx, random.Random(seed)).code == "307"


def test_guaranteed_new_falls_back_to_same_row_digit_on_any_page(full_idx):
    idx = full_idx
    s = create_initial_state()
    # page 3 is complete; 512 shares the base's row digit (1), 470 does not
    stamp_all(s, idx, except_codes=["512", "470"])
    base = Triple.from_code("315")
    for seed in range(20):
        assert roll_new_guaranteed(s, idx, random.Random(seed), base=base).code == "512"


def test_guaranteed_new_falls_back_to_anything_left(full_idx):
    idx = full_idx
    s = create_initial_state()
    stamp_all(s, idx, except_codes=["987"])
    base = Triple.from_code("315")
    assert roll_new_guaranteed(s, idx, ScriptedRandom([]), base=base).code == "987"


def test_guaranteed_new_uses_last_result_as_base(full_idx):
    idx = full_idx
    s = create_initial_state()
    stamp_all(s, idx, except_codes=["220", "880"])
    s.last_result_code = "881"
    # base page 8 holds 880; no random draw is needed to pick a base
    assert roll_new_guaranteed(s, idx, ScriptedRandom([])).code == "880"


def test_guaranteed_new_draws_random_base_when_last_result_invalid():
    idx = make_index(["100", "200", "201"])
    s = create_initial_state()
    s.last_result_code = "999"  # not in the classification
    s.stamps[2][0][0] = True
    # first draw picks the base (index 0 -> "100"), "100" is unstamped on its own page
    rng = ScriptedRandom([index_value(0, 3)])
    assert roll_new_guaranteed(s, idx, rng).code == "100"
    assert rng.calls == 1


def test_guaranteed_new_on_complete_collection_returns_valid_code():
    idx = make_index(["100", "200"])
    s = create_initial_state()
    stamp_all(s, idx)
    s.last_result_code = "100"
    pick = roll_new_guaranteed(s, idx, ScriptedRandom([index_value(1, 2)]))
    assert pick.code == "200"


def test_guaranteed_new_never_returns_stamped_code():
    idx = make_index([f"{n:03d}" for n in range(0, 1000, 7)])
    rng = random.Random(11)
    for trial in range(30):
        s = create_initial_state()
        stamp_all(s, idx)
        left = idx.valid_all[rng.randrange(len(idx.valid_all))]
        s.stamps[left.x][left.y][left.z] = False
        s.last_result_code = idx.valid_all[rng.randrange(len(idx.valid_all))].code
        pick = roll_new_guaranteed(s, idx, rng)
        assert pick.code == left.code


def test_guaranteed_new_only_returns_valid_codes():
    idx = make_index([f"{n:03d}" for n in range(0, 1000, 3)])
    s = create_initial_state()
    rng = random.Random(5)
    for _ in range(200):
        pick = roll_new_guaranteed(s, idx, rng)
        assert idx.is_valid_code(pick.code)
        assert not s.stamps[pick.x][pick.y][pick.z]
        s.stamps[pick.x][pick.y][pick.z] = True


def test_guaranteed_new_on_fresh_state_draws_random_base():
    idx = make_index(["000", "500", "501"])
    s = create_initial_state()
    # base draw lands on "500", then the closer of the two page-5 codes
    rng = ScriptedRandom([index_value(1, 3), index_value(0, 2)])
    assert roll_new_guaranteed(s, idx, rng).code == "500"
    assert rng.calls == 2
