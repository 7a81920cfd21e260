import random
from datetime import date

import pytest

from stampslot.config import GameConfig
from stampslot.errors import PersistenceError
from stampslot.persistence import MemoryStore, StateStore
from stampslot.rewards import LABEL_NEW, LABEL_STRAIGHT
from stampslot.session import REJECT_IN_PROGRESS, REJECT_INSUFFICIENT, SpinDraw, SpinOutcome, SpinSession
from stampslot.state import create_initial_state
from tests._index_helpers import ScriptedRandom, full_index, index_value, make_index, stamp_all


class FailingStore:
    def __init__(self):
        self.attempts = 0

    def load(self):
        return create_initial_state()

    def save(self, state):
        self.attempts += 1
        raise PersistenceError("quota exceeded")


def test_insufficient_tickets_rejects_without_mutation():
    idx = make_index(["123"])
    state = create_initial_state(start_tickets=5)
    session = SpinSession(idx, GameConfig(cost_per_spin=10), state=state, rng=ScriptedRandom([]))
    before = state.to_dict()
    out = session.spin()
    assert out.accepted is False
    assert out.reason == REJECT_INSUFFICIENT
    assert state.to_dict() == before


def test_fresh_spin_scenario():
    idx = full_index()
    state = create_initial_state(start_tickets=1)
    # first value feeds the pity check (p=0 at streak 0), the second picks "123"
    rng = ScriptedRandom([0.5, index_value(123, 1000)])
    cfg = GameConfig(cost_per_spin=1)
    session = SpinSession(idx, cfg, state=state, rng=rng)
    out = session.spin()
    assert out.accepted is True
    assert out.code == "123"
    assert out.label == "subject 123"
    assert out.is_new is True
    assert [e.label for e in out.breakdown] == [LABEL_NEW, LABEL_STRAIGHT]
    assert state.stamps[1][2][3] is True
    assert state.current_page == 1
    assert state.last_result_code == "123"
    assert state.stats.total_spins == 1 and state.stats.total_new == 1
    assert state.last_outcome.is_new is True
    assert state.last_outcome.ticket_delta == out.ticket_delta
    assert state.bookmark_tickets == 1 - 1 + out.ticket_delta == out.tickets_after
    assert len(state.history) == 1


def test_second_spin_rejected_while_first_is_pending():
    idx = make_index(["123", "456"])
    state = create_initial_state(start_tickets=100)
    session = SpinSession(idx, GameConfig(cost_per_spin=10), state=state, rng=random.Random(1))
    draw = session.begin_spin()
    assert isinstance(draw, SpinDraw)
    assert session.in_progress
    tickets_mid = state.bookmark_tickets
    assert tickets_mid == 90

    blocked = session.spin()
    assert blocked.accepted is False
    assert blocked.reason == REJECT_IN_PROGRESS
    assert state.bookmark_tickets == tickets_mid

    done = session.commit_spin(draw)
    assert done.accepted is True
    assert not session.in_progress
    assert session.spin().accepted is True


def test_commit_requires_matching_draw():
    idx = make_index(["123"])
    session = SpinSession(idx, GameConfig(cost_per_spin=0), rng=random.Random(0))
    stale = SpinDraw(result=idx.valid_all[0], pity_triggered=False, used_free_spin=False, mode="ticket")
    with pytest.raises(ValueError):
        session.commit_spin(stale)


def test_unknown_mode_is_a_programming_error():
    session = SpinSession(make_index(["123"]), rng=random.Random(0))
    with pytest.raises(ValueError):
        session.begin_spin("turbo")


def test_pity_at_streak_seven_forces_new_stamp():
    idx = make_index(["100", "101", "102", "900"])
    state = create_initial_state(start_tickets=10)
    stamp_all(state, idx, except_codes=["102"])
    state.dupe_streak = 7
    state.last_result_code = "100"
    session = SpinSession(idx, GameConfig(cost_per_spin=10), state=state, rng=ScriptedRandom([]))
    out = session.spin()
    assert out.pity_triggered is True
    assert out.code == "102"
    assert out.is_new is True
    assert state.dupe_streak == 0


def test_duplicates_never_exceed_seven_in_a_row():
    idx = make_index([f"{n:03d}" for n in range(0, 1000, 9)])
    cfg = GameConfig(cost_per_spin=0)
    session = SpinSession(idx, cfg, rng=random.Random(2024))
    run = 0
    while session.remaining() > 0:
        out = session.spin()
        assert out.accepted
        run = 0 if out.is_new else run + 1
        assert run <= 7
    assert session.state.stats.total_new == idx.valid_count


def test_persistence_failure_keeps_in_memory_state():
    idx = make_index(["123"])
    store = FailingStore()
    session = SpinSession(idx, GameConfig(cost_per_spin=1), state=create_initial_state(start_tickets=1),
                          rng=random.Random(0), store=store)
    out = session.spin()
    assert out.accepted is True
    assert out.warnings and "quota exceeded" in out.warnings[0]
    assert session.state.stamps[1][2][3] is True
    assert store.attempts == 1
    assert not session.in_progress


def test_each_spin_is_persisted():
    idx = make_index(["123", "456"])
    store = MemoryStore(start_tickets=50)
    session = SpinSession(idx, GameConfig(cost_per_spin=10), rng=random.Random(3), store=store)
    session.spin()
    session.spin()
    assert store.saves == 2
    assert store.payload["stats"]["totalSpins"] == 2
    assert store.load() == session.state


def test_free_spins_refill_daily_and_are_used_in_auto_mode():
    idx = make_index(["123"])
    store = MemoryStore(payload=create_initial_state(start_tickets=0, today=date(2026, 1, 1)).to_dict())
    cfg = GameConfig(cost_per_spin=1000, free_spins_per_day=2)
    session = SpinSession(idx, cfg, rng=random.Random(0), store=store, today=date(2026, 1, 2))
    assert session.state.free_spins_left == 2
    assert store.saves == 1
    assert session.spin("ticket").reason == REJECT_INSUFFICIENT
    assert session.spin("auto").accepted
    assert session.spin("auto").accepted
    assert session.spin("auto").reason == REJECT_INSUFFICIENT


def test_history_is_trimmed_to_limit():
    idx = make_index(["123", "456", "789"])
    session = SpinSession(idx, GameConfig(cost_per_spin=0, history_limit=2), rng=random.Random(9))
    for _ in range(5):
        session.spin()
    assert [h.spins for h in session.state.history] == [4, 5]


def test_reset_and_select_page():
    idx = make_index(["123"])
    store = MemoryStore()
    session = SpinSession(idx, GameConfig(cost_per_spin=1, start_tickets=3), rng=random.Random(0), store=store)
    session.spin()
    session.select_page(12)
    assert session.state.current_page == 9
    session.reset()
    assert session.state.stats.total_spins == 0
    assert session.state.bookmark_tickets == 3
    assert store.payload["bookmarkTickets"] == 3


def test_rejected_outcome_helper():
    out = SpinOutcome.rejected(REJECT_INSUFFICIENT, 4)
    assert out.accepted is False and out.tickets_after == 4 and out.breakdown == []


def test_new_player_from_store_starts_with_free_spins(tmp_path):
    idx = make_index(["123"])
    cfg = GameConfig(cost_per_spin=1000, start_tickets=0, free_spins_per_day=3)
    store = StateStore(tmp_path / "album.json", start_tickets=cfg.start_tickets, free_spins=cfg.free_spins_per_day)
    session = SpinSession(idx, cfg, rng=random.Random(0), store=store)
    assert session.state.free_spins_left == 3
    assert session.spin("auto").accepted
    assert store.load().free_spins_left == 2


def test_corrupt_save_restarts_with_free_spins(tmp_path):
    path = tmp_path / "album.json"
    path.write_text("{broken", encoding="utf-8")
    store = StateStore(path, start_tickets=0, free_spins=2)
    session = SpinSession(make_index(["123"]), GameConfig(free_spins_per_day=2), store=store)
    assert session.state.free_spins_left == 2
