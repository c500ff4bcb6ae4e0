"""Tests for the debounced invoker and the action dispatcher."""

import asyncio

from src.actions import Action, ActionDispatcher
from src.models import CompletionSuccess, Question
from src.services.debounce import DebouncedInvoker
from src.session import QuizSession, QuizState

CATALOG = [Question(question="Q1"), Question(question="Q2")]


class FakeHandle:
    def __init__(self, when: float, callback) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: callbacks fire only when the test advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def schedule(self, callback, delay: float) -> FakeHandle:
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [h for h in self.handles if not h.cancelled and h.when <= self.now + 1e-9]
        for handle in due:
            self.handles.remove(handle)
            handle.callback()


class EchoCompleter:
    def __init__(self) -> None:
        self.payloads: list[dict] = []

    async def complete(self, payload):
        self.payloads.append(payload)
        text = payload["messages"][0]["content"]
        return CompletionSuccess(
            body={"choices": [{"message": {"role": "assistant", "content": f"echo {text}"}}]},
            request_id="req-1",
        )


def test_burst_collapses_to_one_call_with_last_arguments():
    scheduler = FakeScheduler()
    calls = []
    invoker = DebouncedInvoker(calls.append, delay=0.5, scheduler=scheduler)

    invoker("a")
    scheduler.advance(0.1)
    invoker("b")
    scheduler.advance(0.1)
    invoker("c")
    scheduler.advance(0.4)
    assert calls == []
    assert invoker.pending

    scheduler.advance(0.1)
    assert calls == ["c"]
    assert not invoker.pending


def test_calls_further_apart_than_delay_each_fire():
    scheduler = FakeScheduler()
    calls = []
    invoker = DebouncedInvoker(calls.append, delay=0.5, scheduler=scheduler)

    invoker(1)
    scheduler.advance(0.6)
    invoker(2)
    scheduler.advance(0.6)

    assert calls == [1, 2]


def test_cancel_drops_scheduled_call():
    scheduler = FakeScheduler()
    calls = []
    invoker = DebouncedInvoker(calls.append, delay=0.5, scheduler=scheduler)

    invoker("x")
    invoker.cancel()
    scheduler.advance(1.0)

    assert calls == []


def test_real_loop_scheduler_runs_coroutine_action():
    seen = []

    async def action(value):
        seen.append(value)

    async def scenario():
        invoker = DebouncedInvoker(action, delay=0.01)
        invoker("first")
        invoker("second")
        await invoker.drain()

    asyncio.run(scenario())

    assert seen == ["second"]


def test_submit_triggers_within_delay_send_once_with_latest_input():
    scheduler = FakeScheduler()
    completer = EchoCompleter()
    session = QuizSession(CATALOG, completer)
    session.start()
    dispatcher = ActionDispatcher(session, delay=0.5, scheduler=scheduler)

    async def scenario():
        for text in ("I", "I want", "I want to run"):
            session.set_input(text)
            dispatcher.dispatch(Action.SUBMIT)
            scheduler.advance(0.1)
        scheduler.advance(0.4)
        await dispatcher.drain()

    asyncio.run(scenario())

    assert len(completer.payloads) == 1
    assert completer.payloads[0]["messages"][0]["content"] == "I want to run"
    assert session.archive.get(0).response == "I want to run"


def test_reset_action_cancels_scheduled_send():
    scheduler = FakeScheduler()
    completer = EchoCompleter()
    session = QuizSession(CATALOG, completer)
    session.start()
    dispatcher = ActionDispatcher(session, delay=0.5, scheduler=scheduler)

    session.set_input("answer")
    dispatcher.dispatch(Action.SUBMIT)
    dispatcher.dispatch(Action.RESET)
    scheduler.advance(1.0)

    assert completer.payloads == []
    assert session.state is QuizState.IDLE
    assert session.messages == []


def test_clear_input_action_only_touches_buffer():
    session = QuizSession(CATALOG, EchoCompleter())
    session.start()
    dispatcher = ActionDispatcher(session, scheduler=FakeScheduler())

    session.set_input("draft")
    dispatcher.dispatch(Action.CLEAR_INPUT)

    assert session.input_buffer == ""
    assert len(session.messages) == 1


class HoldingCompleter:
    """Answers only once the test sets `release`."""

    def __init__(self) -> None:
        self.payloads: list[dict] = []
        self.release = asyncio.Event()

    async def complete(self, payload):
        self.payloads.append(payload)
        await self.release.wait()
        return CompletionSuccess(
            body={"choices": [{"message": {"role": "assistant", "content": "noted"}}]},
            request_id="req-2",
        )


def test_debounced_send_while_request_in_flight_is_dropped():
    scheduler = FakeScheduler()
    completer = HoldingCompleter()
    session = QuizSession(CATALOG, completer)
    session.start()
    dispatcher = ActionDispatcher(session, delay=0.5, scheduler=scheduler)

    async def scenario():
        session.set_input("first answer")
        dispatcher.dispatch(Action.SUBMIT)
        scheduler.advance(0.5)
        await asyncio.sleep(0)
        assert session.pending is not None

        session.set_input("second answer")
        dispatcher.dispatch(Action.SUBMIT)
        scheduler.advance(0.5)
        await asyncio.sleep(0)

        assert len(completer.payloads) == 1
        assert [m.content for m in session.messages if m.role == "user"] == ["first answer"]

        completer.release.set()
        await dispatcher.drain()

    asyncio.run(scenario())

    assert len(completer.payloads) == 1
    assert session.archive.get(0).response == "first answer"
    assert session.archive.get(1) is None
