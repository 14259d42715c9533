import asyncio

from elite_dashboard.session import SessionGate, SessionPhase
from elite_dashboard.tests.support import FakeScheduler


def _gate(**kwargs):
    scheduler = FakeScheduler()
    phases = []
    gate = SessionGate(schedule=scheduler, on_phase_changed=phases.append, **kwargs)
    return gate, scheduler, phases


def test_full_lifecycle() -> None:
    gate, scheduler, phases = _gate(settle_delay=2.0)
    assert gate.phase is SessionPhase.NOT_IN_GAME

    gate.game_loaded()
    gate.location_observed()
    assert gate.loading
    assert gate.settle_pending
    assert scheduler.timers[0].delay == 2.0

    scheduler.timers[0].fire()
    assert gate.in_game
    assert not gate.settle_pending

    gate.session_ended()
    assert phases == [SessionPhase.LOADING, SessionPhase.IN_GAME, SessionPhase.NOT_IN_GAME]


def test_location_outside_loading_is_ignored() -> None:
    gate, scheduler, _ = _gate()

    gate.location_observed()

    assert scheduler.timers == []
    assert gate.phase is SessionPhase.NOT_IN_GAME


def test_repeated_location_schedules_once() -> None:
    gate, scheduler, _ = _gate()
    gate.game_loaded()

    gate.location_observed()
    gate.location_observed()

    assert len(scheduler.timers) == 1


def test_reload_cancels_pending_settle() -> None:
    gate, scheduler, _ = _gate()
    gate.game_loaded()
    gate.location_observed()

    gate.game_loaded()

    assert scheduler.timers[0].cancelled
    assert gate.loading
    gate.location_observed()
    assert len(scheduler.timers) == 2


def test_session_end_is_idempotent() -> None:
    gate, scheduler, phases = _gate()
    gate.game_loaded()
    gate.location_observed()

    gate.session_ended()
    gate.session_ended()
    scheduler.timers[0].fire()

    assert gate.phase is SessionPhase.NOT_IN_GAME
    assert phases == [SessionPhase.LOADING, SessionPhase.NOT_IN_GAME]


def test_negative_settle_delay_clamps_to_zero() -> None:
    gate, scheduler, _ = _gate(settle_delay=-1)
    gate.game_loaded()
    gate.location_observed()

    assert scheduler.timers[0].delay == 0.0


def test_default_scheduler_settles_at_once_outside_loop() -> None:
    gate = SessionGate()
    gate.game_loaded()

    gate.location_observed()

    assert gate.in_game
    assert not gate.settle_pending


def test_default_scheduler_waits_inside_loop() -> None:
    async def scenario() -> None:
        gate = SessionGate(settle_delay=0.01)
        gate.game_loaded()
        gate.location_observed()
        assert gate.loading
        assert gate.settle_pending
        await asyncio.sleep(0.05)
        assert gate.in_game

    asyncio.run(scenario())
