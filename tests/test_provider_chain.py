"""
ProviderChain and the HTTP failure classification.

Verifies:
✔ Providers run strictly in order and stop at the first success
✔ Unconfigured providers are skipped without a call
✔ A 429 puts the provider on cooldown and the next run skips it
✔ `attempt_after` providers only run after the listed failure kinds
✔ request_json maps timeouts / 429 / 5xx / 4xx / network / non-JSON
"""

import httpx
import pytest

from fakes import FakeClock, ScriptedProvider, failing, mock_client
from tourassist.providers.base import (
    AttemptOutcome,
    FailureKind,
    ProviderChain,
    ProviderFailure,
    dig,
    request_json,
    require_text,
)
from tourassist.services.cooldown import CooldownTracker


def make_chain(*providers, clock=None) -> ProviderChain:
    return ProviderChain("test", list(providers), CooldownTracker(clock=clock or FakeClock()))


class TestProviderChainOrder:
    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        first = failing("first", FailureKind.TIMEOUT)
        second = ScriptedProvider("second", result="ok")
        third = ScriptedProvider("third", result="never")

        outcome = await make_chain(first, second, third).run("req")

        assert outcome.succeeded
        assert outcome.value == "ok"
        assert outcome.provider == "second"
        assert third.calls == []
        assert [a.outcome for a in outcome.attempts] == [AttemptOutcome.TIMEOUT, AttemptOutcome.SUCCESS]
        assert [a.position for a in outcome.attempts] == [1, 2]

    @pytest.mark.asyncio
    async def test_exhausted_chain(self):
        outcome = await make_chain(
            failing("a", FailureKind.SERVER_ERROR, 503),
            failing("b", FailureKind.MALFORMED),
        ).run("req")

        assert not outcome.succeeded
        assert outcome.value is None
        assert outcome.attempts[0].status_code == 503
        assert outcome.saw(AttemptOutcome.MALFORMED)

    @pytest.mark.asyncio
    async def test_unconfigured_provider_is_skipped(self):
        keyless = ScriptedProvider("needs-key", result="x", configured=False)
        backup = ScriptedProvider("backup", result="y")

        outcome = await make_chain(keyless, backup).run("req")

        assert keyless.calls == []
        assert outcome.provider == "backup"
        assert outcome.attempts[0].outcome == AttemptOutcome.SKIPPED
        assert outcome.attempts[0].reason == "not_configured"


class TestProviderChainCooldown:
    @pytest.mark.asyncio
    async def test_rate_limited_provider_is_skipped_until_cooldown_ends(self):
        clock = FakeClock()
        overloaded = failing("busy", FailureKind.RATE_LIMITED, 429, cooldown_seconds=2.0)
        backup = ScriptedProvider("backup", result="ok")
        chain = make_chain(overloaded, backup, clock=clock)

        await chain.run("first")
        assert len(overloaded.calls) == 1

        second = await chain.run("second")
        assert len(overloaded.calls) == 1
        assert second.attempts[0].reason == "cooling_down"

        clock.advance(2.5)
        await chain.run("third")
        assert len(overloaded.calls) == 2

    @pytest.mark.asyncio
    async def test_zero_cooldown_never_skips(self):
        overloaded = failing("busy", FailureKind.RATE_LIMITED, 429, cooldown_seconds=0)
        chain = make_chain(overloaded, ScriptedProvider("backup", result="ok"))

        await chain.run("a")
        await chain.run("b")

        assert len(overloaded.calls) == 2


class TestAttemptAfter:
    LAST_RESORT_KINDS = frozenset({FailureKind.RATE_LIMITED, FailureKind.SERVER_ERROR})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [FailureKind.RATE_LIMITED, FailureKind.SERVER_ERROR])
    async def test_runs_after_overload_or_server_error(self, kind):
        last_resort = ScriptedProvider("free", result="free reply", attempt_after=self.LAST_RESORT_KINDS)
        outcome = await make_chain(failing("paid", kind), last_resort).run("req")
        assert outcome.provider == "free"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [FailureKind.TIMEOUT, FailureKind.CLIENT_ERROR, FailureKind.MALFORMED])
    async def test_skipped_after_other_failures(self, kind):
        last_resort = ScriptedProvider("free", result="free reply", attempt_after=self.LAST_RESORT_KINDS)
        outcome = await make_chain(failing("paid", kind), last_resort).run("req")
        assert last_resort.calls == []
        assert outcome.attempts[-1].reason == "precondition_not_met"

    @pytest.mark.asyncio
    async def test_skipped_when_previous_link_was_not_configured(self):
        last_resort = ScriptedProvider("free", result="free reply", attempt_after=self.LAST_RESORT_KINDS)
        outcome = await make_chain(
            failing("primary", FailureKind.SERVER_ERROR),
            ScriptedProvider("secondary", configured=False),
            last_resort,
        ).run("req")
        assert last_resort.calls == []
        assert not outcome.succeeded


def _status_handler(status_code: int, **kwargs):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, **kwargs)
    return handler


def _raising_handler(exc_type):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("boom", request=request)
    return handler


class TestRequestJson:
    @pytest.mark.asyncio
    async def test_success(self):
        async with mock_client(_status_handler(200, json={"ok": True})) as client:
            assert await request_json(client, "GET", "https://example.test", 1.0) == {"ok": True}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,kind", [
        (429, FailureKind.RATE_LIMITED),
        (500, FailureKind.SERVER_ERROR),
        (503, FailureKind.SERVER_ERROR),
        (400, FailureKind.CLIENT_ERROR),
        (403, FailureKind.CLIENT_ERROR),
    ])
    async def test_status_classification(self, status_code, kind):
        async with mock_client(_status_handler(status_code, json={})) as client:
            with pytest.raises(ProviderFailure) as exc_info:
                await request_json(client, "GET", "https://example.test", 1.0)
        assert exc_info.value.kind == kind
        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_timeout(self):
        async with mock_client(_raising_handler(httpx.ReadTimeout)) as client:
            with pytest.raises(ProviderFailure) as exc_info:
                await request_json(client, "GET", "https://example.test", 1.0)
        assert exc_info.value.kind == FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_connection_error(self):
        async with mock_client(_raising_handler(httpx.ConnectError)) as client:
            with pytest.raises(ProviderFailure) as exc_info:
                await request_json(client, "GET", "https://example.test", 1.0)
        assert exc_info.value.kind == FailureKind.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self):
        async with mock_client(_status_handler(200, text="<html>busy</html>")) as client:
            with pytest.raises(ProviderFailure) as exc_info:
                await request_json(client, "GET", "https://example.test", 1.0)
        assert exc_info.value.kind == FailureKind.MALFORMED


def test_dig_and_require_text():
    data = {"choices": [{"message": {"content": "  hi  "}}]}
    assert require_text(dig(data, "choices", 0, "message", "content"), "content") == "hi"
    assert dig(data, "choices", 3, "message") is None
    assert dig(None, "anything") is None
    with pytest.raises(ProviderFailure):
        require_text("   ", "content")
