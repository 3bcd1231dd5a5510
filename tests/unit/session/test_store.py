import asyncio
import logging
import threading

import pytest

from streamchat.server.errors import SessionCollisionError
from streamchat.server.session.models import Message, Persona, PersonaExample
from streamchat.server.session.store import InMemorySessionStore


def _history():
    return [
        Message(role="user", content="hi"),
        Message(role="assistant", content="hello"),
        Message(role="user", content="how are you?"),
    ]


def test_take_returns_session_exactly_once(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    persona = Persona(system="be nice", examples=(PersonaExample(user="a", assistant="b"),))

    session = store.create(_history(), model="foo/bar:free", persona=persona)
    assert session.id
    assert len(store) == 1

    taken = store.take(session.id)
    assert taken is session
    assert taken.history == tuple(_history())
    assert taken.model == "foo/bar:free"
    assert taken.persona == persona

    assert store.take(session.id) is None
    assert len(store) == 0


def test_session_ids_are_unique(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    ids = {store.create(_history()).id for _ in range(50)}
    assert len(ids) == 50


def test_history_is_copied_on_create(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    history = _history()
    session = store.create(history)

    history.append(Message(role="user", content="late"))

    assert len(store.take(session.id).history) == 3


def test_session_expires_after_ttl(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    session = store.create(_history())

    scheduler.advance(19.5)
    assert len(store) == 1

    scheduler.advance(0.5)
    assert len(store) == 0
    assert store.take(session.id) is None


def test_expiry_logs_session_age(scheduler, caplog):
    store = InMemorySessionStore(20, scheduler=scheduler)
    session = store.create(_history())

    with caplog.at_level(logging.INFO, logger="streamchat.server.session.store"):
        scheduler.advance(20)

    assert session.created_at.tzinfo is not None
    assert f"Session {session.id} expired" in caplog.text
    assert "after creation without being streamed" in caplog.text


def test_store_package_exports_store_and_dependency():
    import streamchat.server.session as session_package

    assert session_package.__all__ == ["InMemorySessionStore", "get_session_store"]


def test_take_cancels_expiry_timer(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    session = store.create(_history())

    assert store.take(session.id) is not None
    assert scheduler.timers[0].cancelled is True


def test_late_expiry_after_take_is_noop(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    first = store.create(_history())
    second = store.create(_history())

    store.take(first.id)
    scheduler.timers[0].callback()

    assert len(store) == 1
    assert store.take(second.id) is second


def test_id_collision_fails_loudly(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler, id_factory=lambda: "fixed-id")
    original = store.create(_history(), model="first")

    with pytest.raises(SessionCollisionError):
        store.create([Message(role="user", content="other")], model="second")

    assert len(scheduler.timers) == 1
    assert store.take("fixed-id") is original


def test_concurrent_take_has_single_winner(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    session = store.create(_history())
    barrier = threading.Barrier(8)
    results = []
    results_lock = threading.Lock()

    def worker():
        barrier.wait()
        taken = store.take(session.id)
        with results_lock:
            results.append(taken)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len([result for result in results if result is not None]) == 1


def test_close_discards_sessions_and_timers(scheduler):
    store = InMemorySessionStore(20, scheduler=scheduler)
    session = store.create(_history())

    store.close()

    assert len(store) == 0
    assert store.take(session.id) is None
    assert all(timer.cancelled for timer in scheduler.timers)


def test_scheduler_failure_does_not_leave_session_behind():
    def broken_scheduler(delay, callback):
        raise RuntimeError("no running event loop")

    store = InMemorySessionStore(20, scheduler=broken_scheduler, id_factory=lambda: "sid")

    with pytest.raises(RuntimeError):
        store.create(_history())

    assert store.take("sid") is None


@pytest.mark.asyncio
async def test_default_scheduler_expires_on_event_loop():
    store = InMemorySessionStore(0.01)
    session = store.create(_history())

    await asyncio.sleep(0.05)

    assert store.take(session.id) is None


@pytest.mark.asyncio
async def test_default_scheduler_take_before_expiry():
    store = InMemorySessionStore(5)
    session = store.create(_history())

    assert store.take(session.id) is session
    store.close()
