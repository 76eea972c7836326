"""
Tests for the accessibility rule and the engine's read side.
"""

from types import SimpleNamespace

import pytest

from caliquest.core.exceptions import UnitLocked
from caliquest.models import CompletionRecord, Map
from caliquest.services.progression import (
    ProgressionEngine,
    UnitAccess,
    UnitState,
    compute_accessibility
)

from conftest import make_player


def units(*ids):
    return [SimpleNamespace(id=unit_id) for unit_id in ids]


class TestComputeAccessibility:

    def test_empty_siblings(self):
        assert compute_accessibility([], {1, 2}) == {}

    def test_first_unit_always_unlocked(self):
        access = compute_accessibility(units(7, 8, 9), set())
        assert access[7] == UnitAccess(unlocked=True, completed=False)
        assert not access[8].unlocked
        assert not access[9].unlocked

    def test_none_means_nothing_completed(self):
        access = compute_accessibility(units(1, 2), None)
        assert access[1].unlocked
        assert not access[2].unlocked

    def test_unlock_follows_predecessor_completion(self):
        access = compute_accessibility(units(1, 2, 3, 4), {1, 2})
        assert [access[i].unlocked for i in (1, 2, 3, 4)] == [True, True, True, False]
        assert [access[i].completed for i in (1, 2, 3, 4)] == [True, True, False, False]

    def test_out_of_order_completion_does_not_unlock_itself(self):
        access = compute_accessibility(units(1, 2, 3), {2})
        assert access[2].completed
        assert not access[2].unlocked
        assert access[3].unlocked

    def test_unknown_completed_ids_are_ignored(self):
        access = compute_accessibility(units(1, 2), {99})
        assert access == compute_accessibility(units(1, 2), set())

    def test_preserves_sibling_order_and_accepts_any_hashable_id(self):
        access = compute_accessibility(units("c", "a", "b"), ["c"])
        assert list(access) == ["c", "a", "b"]
        assert access["a"].unlocked
        assert not access["b"].unlocked

    @pytest.mark.parametrize("completed, expected", [
        (set(), {"A": (True, False), "B": (False, False), "C": (False, False)}),
        ({"A"}, {"A": (True, True), "B": (True, False), "C": (False, False)}),
        ({"A", "B"}, {"A": (True, True), "B": (True, True), "C": (True, False)}),
    ])
    def test_three_level_walkthrough(self, completed, expected):
        access = compute_accessibility(units("A", "B", "C"), completed)
        assert {k: (v.unlocked, v.completed) for k, v in access.items()} == expected

    def test_predecessor_flip_changes_only_its_successor(self):
        siblings = units(1, 2, 3, 4)
        for i in range(len(siblings) - 1):
            without = compute_accessibility(siblings, {1, 2, 3, 4} - {siblings[i].id})
            with_it = compute_accessibility(siblings, {1, 2, 3, 4})
            changed = [uid for uid in with_it if with_it[uid].unlocked != without[uid].unlocked]
            assert changed == [siblings[i + 1].id]

    def test_more_completions_never_lock_anything(self):
        siblings = units(1, 2, 3, 4)
        ids = [1, 2, 3, 4]
        subsets = [
            {uid for bit, uid in enumerate(ids) if mask & (1 << bit)}
            for mask in range(1 << len(ids))
        ]
        for smaller in subsets:
            for larger in subsets:
                if not smaller <= larger:
                    continue
                before = compute_accessibility(siblings, smaller)
                after = compute_accessibility(siblings, larger)
                assert all(after[uid].unlocked for uid in ids if before[uid].unlocked)

    def test_unit_state(self):
        assert UnitAccess(unlocked=False, completed=False).state == UnitState.LOCKED
        assert UnitAccess(unlocked=True, completed=False).state == UnitState.UNLOCKED
        assert UnitAccess(unlocked=True, completed=True).state == UnitState.COMPLETED


class TestEngineReads:

    def test_fresh_player_sees_only_first_map_and_level(self, db, world, player):
        engine = ProgressionEngine(db)

        maps = engine.map_overview(player.id)
        assert [m.id for m, _ in maps] == [world.forest.id, world.mountain.id]
        assert [a.unlocked for _, a in maps] == [True, False]

        levels = engine.level_overview(player.id, world.forest.id)
        assert [a.unlocked for _, a in levels] == [True, False, False]

    def test_equal_order_index_falls_back_to_creation_order(self, db, player):
        first = Map(name="First", order_index=3)
        db.add(first)
        db.flush()
        second = Map(name="Second", order_index=3)
        db.add(second)
        db.commit()

        overview = ProgressionEngine(db).map_overview(player.id)
        assert [m.name for m, _ in overview] == ["First", "Second"]
        assert [a.unlocked for _, a in overview] == [True, False]

    def test_completions_are_scoped_per_user(self, db, world, player):
        other = make_player(db, email="other@example.com", username="other")
        db.add(CompletionRecord(
            user_id=other.id, unit_kind="level",
            unit_id=world.forest_levels[0].id, parent_id=world.forest.id
        ))
        db.commit()

        engine = ProgressionEngine(db)
        levels = engine.level_overview(player.id, world.forest.id)
        assert [a.completed for _, a in levels] == [False, False, False]

    def test_locked_map_and_level_are_rejected(self, db, world, player):
        engine = ProgressionEngine(db)

        with pytest.raises(UnitLocked):
            engine.ensure_map_accessible(player.id, world.mountain)

        with pytest.raises(UnitLocked):
            engine.ensure_level_accessible(player.id, world.forest_levels[1])

        engine.ensure_level_accessible(player.id, world.forest_levels[0])

    def test_permissive_mode_allows_locked_units(self, db, world, player):
        engine = ProgressionEngine(db, enforce_unlock_order=False)

        engine.ensure_map_accessible(player.id, world.mountain)
        engine.ensure_level_accessible(player.id, world.mountain_levels[1])
