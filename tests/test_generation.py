from __future__ import annotations

import asyncio
import logging

from smartlock.generation import GENERATION_FAILED_MESSAGE, GenerationSession
from smartlock.vhdl_client import GenerationError


class FakeGenerator:
    def __init__(self, result: str = "entity lock is end;", error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0
        self.release = None

    async def generate(self) -> str:
        self.calls += 1
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.result


def test_initial_view_is_idle():
    session = GenerationSession(FakeGenerator())
    assert session.view() == {"status": "idle", "is_generating": False, "code": "", "error": ""}


def test_success_stores_code():
    session = GenerationSession(FakeGenerator("architecture rtl"))
    view = asyncio.run(session.run())
    assert view["status"] == "success"
    assert view["code"] == "architecture rtl"
    assert view["error"] == ""
    assert session.is_generating is False


def test_failure_sets_fixed_message_and_logs(caplog):
    cause = GenerationError("HTTP error 403 from generation service")
    session = GenerationSession(FakeGenerator(error=cause))
    with caplog.at_level(logging.ERROR, logger="SMARTLOCK"):
        view = asyncio.run(session.run())

    assert view["status"] == "error"
    assert view["error"] == GENERATION_FAILED_MESSAGE
    assert view["code"] == ""
    assert "HTTP error 403" in caplog.text


def test_unexpected_exception_is_contained():
    session = GenerationSession(FakeGenerator(error=KeyError("candidates")))
    view = asyncio.run(session.run())
    assert view["status"] == "error"


def test_retry_clears_previous_error():
    gen = FakeGenerator(error=GenerationError("down"))
    session = GenerationSession(gen)
    asyncio.run(session.run())
    gen.error = None
    view = asyncio.run(session.run())
    assert view["status"] == "success"
    assert view["error"] == ""


def test_reentry_suppressed_while_loading():
    gen = FakeGenerator("ok")
    session = GenerationSession(gen)

    async def scenario():
        gen.release = asyncio.Event()
        first = asyncio.create_task(session.run())
        await asyncio.sleep(0)
        assert session.status == "loading"
        second = await session.run()
        assert second["status"] == "loading"
        gen.release.set()
        return await first

    view = asyncio.run(scenario())
    assert gen.calls == 1
    assert view["status"] == "success"
    assert view["code"] == "ok"
