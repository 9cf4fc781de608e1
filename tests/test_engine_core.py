from __future__ import annotations

from dataclasses import dataclass

from arithmetic_defense.config import DefenseConfig
from arithmetic_defense.effects import ComboPulse, GameOverEffect, HitEffect, KeyTick, MissEffect, color_for
from arithmetic_defense.engine import DefenseGame
from arithmetic_defense.entities import Entity, EntityType, Operator, make_entity
from arithmetic_defense.session import SessionState


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _started_game(*, seed: int = 11, lives: int = 3) -> tuple[DefenseGame, FakeClock]:
    clock = FakeClock()
    game = DefenseGame(clock=clock, config=DefenseConfig(seed=seed, starting_lives=lives))
    assert game.start() is True
    # Drop the opening spawn so each test controls exactly what is on screen.
    for e in game.session.live_entities:
        game.session.remove_entity(e.id)
        game.trajectories.release(e.id)
    game.drain_effects()
    return game, clock


def _place(game: DefenseGame, entity: Entity) -> Entity:
    game.session.add_entity(entity)
    game.trajectories.track(entity)
    return entity


def _type(game: DefenseGame, text: str) -> None:
    for d in text:
        assert game.submit_digit(d) is True


def test_initial_state_is_menu_and_input_is_ignored() -> None:
    game = DefenseGame(clock=FakeClock(), config=DefenseConfig(seed=1))
    assert game.state is SessionState.MENU
    assert game.submit_digit("7") is False
    assert game.clear() is False
    assert game.backspace() is False
    assert game.restart() is False
    assert game.on_trajectory_complete(0) is False
    assert game.drain_effects() == []

    snap = game.snapshot()
    assert snap.score == 0
    assert snap.lives == 3
    assert snap.input_buffer == ""
    assert snap.live_entities == ()


def test_start_spawns_one_entity_immediately() -> None:
    clock = FakeClock()
    game = DefenseGame(clock=clock, config=DefenseConfig(seed=3))
    assert game.start() is True
    assert game.state is SessionState.PLAYING
    assert len(game.snapshot().live_entities) == 1
    assert game.spawner.interval_ms == 4000
    assert game.trajectories.pending_count == 1
    assert game.start() is False


def test_spawner_repeats_at_policy_interval() -> None:
    clock = FakeClock()
    game = DefenseGame(clock=clock, config=DefenseConfig(seed=3))
    game.start()
    clock.advance(3.999)
    game.update()
    assert len(game.snapshot().live_entities) == 1
    clock.advance(0.001)
    game.update()
    assert len(game.snapshot().live_entities) == 2
    clock.advance(8.0)
    game.update()
    entities = game.snapshot().live_entities
    assert len(entities) == 4
    assert [e.spawned_at_ms for e in entities] == [0, 4000, 8000, 12000]


def test_hit_scores_and_increments_combo() -> None:
    game, _ = _started_game()
    target = _place(game, make_entity(entity_id=100, a=3, b=4, op=Operator.ADD))

    assert game.snapshot().score == 0
    _type(game, "7")

    snap = game.snapshot()
    assert snap.score == 10
    assert snap.combo == 1
    assert snap.input_buffer == ""
    assert snap.live_entities == ()
    assert not game.trajectories.is_tracking(target.id)

    effects = game.drain_effects()
    assert KeyTick(key="7") in effects
    hits = [e for e in effects if isinstance(e, HitEffect)]
    assert len(hits) == 1
    assert hits[0].entity_id == 100
    assert hits[0].color == color_for(EntityType.NORMAL)
    assert hits[0].points == 10
    assert not any(isinstance(e, ComboPulse) for e in effects)


def test_earliest_spawned_match_wins() -> None:
    game, _ = _started_game()
    first = _place(game, make_entity(entity_id=2, a=2, b=3, op=Operator.ADD))
    second = _place(game, make_entity(entity_id=5, a=9, b=4, op=Operator.SUBTRACT))
    assert first.answer == second.answer == 5

    _type(game, "5")

    live_ids = [e.id for e in game.snapshot().live_entities]
    assert live_ids == [5]


def test_score_increment_includes_combo_bonus() -> None:
    game, _ = _started_game()
    _place(game, make_entity(entity_id=100, a=3, b=4, op=Operator.ADD, entity_type=EntityType.NORMAL))
    _place(game, make_entity(entity_id=101, a=4, b=4, op=Operator.ADD, entity_type=EntityType.FAST))
    _place(game, make_entity(entity_id=102, a=9, b=9, op=Operator.ADD, entity_type=EntityType.BOSS))

    _type(game, "7")
    _type(game, "8")
    _type(game, "18")

    snap = game.snapshot()
    assert snap.score == 10 + 15 + 60
    assert snap.combo == 3
    pulses = [e.combo for e in game.drain_effects() if isinstance(e, ComboPulse)]
    assert pulses == [2, 3]


def test_unmatched_buffer_is_kept() -> None:
    game, _ = _started_game()
    _place(game, make_entity(entity_id=100, a=6, b=6, op=Operator.ADD))
    _type(game, "1")
    assert game.snapshot().input_buffer == "1"
    assert game.snapshot().score == 0
    _type(game, "2")
    assert game.snapshot().score == 10


def test_buffer_overflow_resets_to_new_digit() -> None:
    game, _ = _started_game()
    _type(game, "12")
    _type(game, "3")
    assert game.snapshot().input_buffer == "123"
    _type(game, "4")
    assert game.snapshot().input_buffer == "4"


def test_backspace_rematches_shorter_value() -> None:
    game, _ = _started_game()
    _type(game, "23")
    _place(game, make_entity(entity_id=100, a=1, b=1, op=Operator.ADD))
    assert game.snapshot().score == 0
    assert game.backspace() is True
    assert game.snapshot().score == 10
    assert game.snapshot().input_buffer == ""


def test_clear_empties_buffer_and_keeps_combo() -> None:
    game, _ = _started_game()
    _place(game, make_entity(entity_id=100, a=1, b=2, op=Operator.ADD))
    _type(game, "3")
    _type(game, "99")
    assert game.clear() is True
    assert game.snapshot().input_buffer == ""
    assert game.snapshot().combo == 1
    _type(game, "9999")  # overflow
    assert game.snapshot().combo == 1


def test_miss_by_deadline_costs_a_life_and_resets_combo() -> None:
    game, clock = _started_game()
    _place(game, make_entity(entity_id=100, a=1, b=2, op=Operator.ADD))
    _type(game, "3")
    falling = _place(
        game,
        make_entity(entity_id=101, a=2, b=2, op=Operator.ADD, spawned_at_ms=0, duration_ms=1500),
    )
    assert game.snapshot().combo == 1

    clock.advance(1.499)
    game.update()
    assert game.session.has_entity(falling.id)

    clock.advance(0.001)
    game.update()
    snap = game.snapshot()
    assert not game.session.has_entity(falling.id)
    assert snap.lives == 2
    assert snap.combo == 0
    assert MissEffect(entity_id=101, lives_left=2) in game.drain_effects()


def test_resolution_is_idempotent_per_entity() -> None:
    game, _ = _started_game()
    hit = _place(game, make_entity(entity_id=100, a=5, b=4, op=Operator.ADD))
    _type(game, "9")
    before = game.snapshot()

    assert game.on_trajectory_complete(hit.id) is False
    after = game.snapshot()
    assert (after.score, after.lives, after.combo) == (before.score, before.lives, before.combo)

    missed = _place(game, make_entity(entity_id=101, a=3, b=3, op=Operator.ADD))
    assert game.on_trajectory_complete(missed.id) is True
    assert game.on_trajectory_complete(missed.id) is False
    _type(game, "6")
    snap = game.snapshot()
    assert snap.lives == 2
    assert snap.score == before.score
    assert snap.input_buffer == "6"


def test_unknown_entity_completion_is_noop() -> None:
    game, _ = _started_game()
    assert game.on_trajectory_complete(424242) is False
    assert game.snapshot().lives == 3


def test_last_life_lost_ends_game_and_cancels_schedules() -> None:
    game, clock = _started_game(lives=3)
    doomed = [_place(game, make_entity(entity_id=200 + i, a=i, b=1, op=Operator.ADD)) for i in range(4)]

    assert game.on_trajectory_complete(doomed[0].id) is True
    assert game.on_trajectory_complete(doomed[1].id) is True
    assert game.state is SessionState.PLAYING
    assert game.snapshot().lives == 1

    assert game.on_trajectory_complete(doomed[2].id) is True
    snap = game.snapshot()
    assert snap.lives == 0
    assert snap.combo == 0
    assert game.state is SessionState.GAMEOVER
    assert not game.spawner.active
    assert game.trajectories.pending_count == 0

    effects = game.drain_effects()
    assert GameOverEffect(final_score=0, best_score=0) in effects

    frozen = game.snapshot().live_entities
    clock.advance(120.0)
    game.update()
    assert game.snapshot().live_entities == frozen
    assert game.on_trajectory_complete(doomed[3].id) is False
    assert game.submit_digit("1") is False
    assert game.drain_effects() == []


def test_restart_builds_fresh_session_and_keeps_best_score() -> None:
    game, _ = _started_game(lives=1)
    _place(game, make_entity(entity_id=300, a=2, b=2, op=Operator.ADD))
    doomed = _place(game, make_entity(entity_id=301, a=5, b=5, op=Operator.ADD))
    _type(game, "4")
    old_session = game.session
    game.on_trajectory_complete(doomed.id)
    assert game.state is SessionState.GAMEOVER
    assert game.best_score == 10
    assert game.start() is False

    assert game.restart() is True
    assert game.session is not old_session
    snap = game.snapshot()
    assert snap.state is SessionState.PLAYING
    assert snap.score == 0
    assert snap.lives == 1
    assert snap.combo == 0
    assert snap.input_buffer == ""
    assert snap.best_score == 10
    assert len(snap.live_entities) == 1
    assert snap.live_entities[0].id not in (300, 301)
    assert game.restart() is False


def test_lives_reach_zero_only_with_gameover() -> None:
    game, clock = _started_game(seed=21)
    while game.state is SessionState.PLAYING:
        clock.advance(1.0)
        game.update()
        snap = game.snapshot()
        assert (snap.lives == 0) == (snap.state is SessionState.GAMEOVER)
    assert game.snapshot().lives == 0


def test_seed_comes_from_config() -> None:
    game = DefenseGame(clock=FakeClock(), config=DefenseConfig(seed=77))
    assert game.seed == 77


def test_lives_stay_within_starting_count() -> None:
    game, clock = _started_game(lives=2)
    snap = game.snapshot()
    assert (snap.lives, snap.starting_lives) == (2, 2)
    while game.state is SessionState.PLAYING:
        clock.advance(1.0)
        game.update()
        snap = game.snapshot()
        assert 0 <= snap.lives <= snap.starting_lives <= 3
