"""Tests for the completion dispatcher fallback chain."""

import asyncio
import json
import time

import httpx
import pytest

from legion.core.exceptions import AllProvidersExhausted, InvalidRequest, ProviderAttemptFailed
from legion.providers.base import ChatTurn, ProviderReply
from legion.services.dispatcher import (
    OUTCOME_ALL_FAILED,
    OUTCOME_SUCCESS,
    ChatRequest,
    CompletionDispatcher,
    assemble_turns,
    clamp_temperature,
)


class ScriptedClient:
    """Completion client returning scripted replies per provider key."""

    def __init__(self, script):
        self.script = script
        self.calls = []
        self.seen = []

    async def complete(self, provider, turns, model, temperature):
        self.calls.append(provider.key)
        self.seen.append({"turns": list(turns), "model": model, "temperature": temperature})
        action = self.script.get(provider.key)
        if isinstance(action, BaseException):
            raise action
        if callable(action):
            return await action()
        return action


def _dispatcher(provider_table, client, timeout=1.0):
    return CompletionDispatcher(provider_table, client, system_prompt="persona", timeout=timeout)


class TestInputValidation:

    @pytest.mark.asyncio
    async def test_empty_request_raises_without_network(self, make_dispatcher, upstream):
        dispatcher = make_dispatcher()
        with pytest.raises(InvalidRequest):
            await dispatcher.dispatch(ChatRequest())
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_empty_message_and_empty_turns_raise(self, provider_table):
        client = ScriptedClient({})
        with pytest.raises(InvalidRequest):
            await _dispatcher(provider_table, client).dispatch(ChatRequest(message="", messages=[]))
        assert client.calls == []


class TestFallbackOrder:

    @pytest.mark.asyncio
    async def test_first_provider_success_short_circuits(self, provider_table):
        client = ScriptedClient({
            "alpha": ProviderReply("from alpha", "alpha-small"),
            "beta": ProviderReply("from beta"),
        })
        result = await _dispatcher(provider_table, client).dispatch(ChatRequest(message="hi"))

        assert result.outcome == OUTCOME_SUCCESS
        assert result.response == "from alpha"
        assert result.provider == "Alpha"
        assert client.calls == ["alpha"]

    @pytest.mark.asyncio
    async def test_unknown_preferred_provider_keeps_static_order(self, provider_table):
        client = ScriptedClient({})
        for key in ("alpha", "beta", "gamma"):
            client.script[key] = ProviderAttemptFailed(f"{key} down", key)

        result = await _dispatcher(provider_table, client).dispatch(
            ChatRequest(message="hi", provider="nonexistent")
        )

        assert client.calls == ["alpha", "beta", "gamma"]
        assert provider_table.try_order("nonexistent") == list(provider_table)
        assert result.outcome == OUTCOME_ALL_FAILED

    @pytest.mark.asyncio
    async def test_preferred_provider_goes_first(self, provider_table):
        client = ScriptedClient({
            "alpha": ProviderReply("from alpha"),
            "gamma": ProviderReply("from gamma"),
        })
        result = await _dispatcher(provider_table, client).dispatch(
            ChatRequest(message="hi", provider="gamma")
        )

        assert client.calls == ["gamma"]
        assert result.provider == "Gamma"
        assert result.response == "from gamma"

    @pytest.mark.asyncio
    async def test_preferred_provider_failure_falls_back_in_static_order(self, provider_table):
        client = ScriptedClient({
            "beta": ProviderAttemptFailed("beta down", "beta"),
            "alpha": ProviderAttemptFailed("alpha down", "alpha"),
            "gamma": ProviderReply("from gamma"),
        })
        result = await _dispatcher(provider_table, client).dispatch(
            ChatRequest(message="hi", provider="beta")
        )

        assert client.calls == ["beta", "alpha", "gamma"]
        assert result.attempted == ["beta", "alpha", "gamma"]
        assert result.ok

    @pytest.mark.asyncio
    async def test_all_http_500_tries_each_once(self, make_dispatcher, upstream):
        for host in ("alpha.test", "beta.test", "gamma.test"):
            upstream.fail(host, 500, f"{host} exploded")

        result = await make_dispatcher().dispatch(ChatRequest(message="hello"))

        assert upstream.calls == ["alpha.test", "beta.test", "gamma.test"]
        assert result.outcome == OUTCOME_ALL_FAILED
        assert result.error.startswith("Gamma 500")
        assert "gamma.test exploded" in result.error
        assert result.providers == ["alpha", "beta", "gamma"]

    @pytest.mark.asyncio
    async def test_all_failed_raise_for_outcome(self, provider_table):
        client = ScriptedClient({k: ProviderAttemptFailed("nope", k) for k in ("alpha", "beta", "gamma")})
        result = await _dispatcher(provider_table, client).dispatch(ChatRequest(message="hi"))

        with pytest.raises(AllProvidersExhausted) as exc:
            result.raise_for_outcome()
        assert exc.value.status_code == 503
        assert exc.value.providers == ["alpha", "beta", "gamma"]
        assert "nope" in exc.value.last_error


class TestScenarios:

    @pytest.mark.asyncio
    async def test_hello_hi_there(self, make_dispatcher, upstream):
        upstream.reply("alpha.test", "hi there")

        result = await make_dispatcher().dispatch(ChatRequest(message="hello"))

        assert result.response == "hi there"
        assert result.provider == "Alpha"
        assert result.outcome == OUTCOME_SUCCESS
        assert result.model == "alpha-small"

    @pytest.mark.asyncio
    async def test_rate_limited_provider_falls_through(self, make_dispatcher, upstream):
        upstream.fail("alpha.test", 429, "slow down")
        upstream.reply("beta.test", "ok", model="beta-1-2024")

        result = await make_dispatcher().dispatch(ChatRequest(message="hello"))

        assert result.provider == "Beta"
        assert result.response == "ok"
        assert result.model == "beta-1-2024"
        assert upstream.calls.count("alpha.test") == 1
        assert "gamma.test" not in upstream.calls

    @pytest.mark.asyncio
    async def test_empty_content_is_a_failure(self, make_dispatcher, upstream):
        upstream.reply("alpha.test", "")
        upstream.reply("beta.test", "second")

        result = await make_dispatcher().dispatch(ChatRequest(message="hello"))

        assert result.provider == "Beta"
        assert upstream.calls == ["alpha.test", "beta.test"]

    @pytest.mark.asyncio
    async def test_transport_error_is_a_failure(self, make_dispatcher, upstream):
        # alpha has no route: the fake transport raises ConnectError
        upstream.reply("beta.test", "reachable")

        result = await make_dispatcher().dispatch(ChatRequest(message="hello"))

        assert result.provider == "Beta"


class TestTimeouts:

    @pytest.mark.asyncio
    async def test_hanging_provider_is_abandoned(self, make_dispatcher, upstream):
        upstream.hang("alpha.test")
        upstream.reply("beta.test", "after timeout")

        result = await make_dispatcher(timeout=0.1).dispatch(ChatRequest(message="hello"))

        assert result.provider == "Beta"
        assert upstream.calls == ["alpha.test", "beta.test"]

    @pytest.mark.asyncio
    async def test_all_timeout_wall_time_is_bounded(self, provider_table):
        async def never():
            await asyncio.sleep(3600)

        client = ScriptedClient({k: never for k in ("alpha", "beta", "gamma")})
        timeout = 0.1
        started = time.perf_counter()
        result = await _dispatcher(provider_table, client, timeout=timeout).dispatch(
            ChatRequest(message="hello")
        )
        elapsed = time.perf_counter() - started

        assert result.outcome == OUTCOME_ALL_FAILED
        assert client.calls == ["alpha", "beta", "gamma"]
        assert elapsed >= 3 * timeout * 0.9
        assert elapsed < 3 * timeout + 1.0
        assert "timed out" in result.error


class TestTurnAssembly:

    def test_default_persona_prepended(self):
        turns = assemble_turns(ChatRequest(message="hello"), "persona")
        assert turns == [ChatTurn("system", "persona"), ChatTurn("user", "hello")]

    def test_existing_system_turn_kept(self):
        request = ChatRequest(messages=[ChatTurn("system", "custom"), ChatTurn("user", "q")])
        turns = assemble_turns(request, "persona")
        assert [t.content for t in turns] == ["custom", "q"]

    def test_system_prompt_override_never_doubles(self):
        request = ChatRequest(
            messages=[ChatTurn("system", "old"), ChatTurn("user", "q")],
            system_prompt="X",
        )
        turns = assemble_turns(request, "persona")
        system_turns = [t for t in turns if t.role == "system"]
        assert len(system_turns) == 1
        assert turns[0] == ChatTurn("system", "X")

    def test_system_prompt_override_without_leading_system(self):
        request = ChatRequest(messages=[ChatTurn("user", "q")], system_prompt="X")
        turns = assemble_turns(request, "persona")
        assert turns[0] == ChatTurn("system", "X")
        assert [t.role for t in turns].count("system") == 1

    def test_message_appended_after_history(self):
        request = ChatRequest(
            messages=[ChatTurn("user", "first"), ChatTurn("assistant", "reply")],
            message="second",
        )
        turns = assemble_turns(request, "persona")
        assert [t.role for t in turns] == ["system", "user", "assistant", "user"]
        assert turns[-1].content == "second"

    def test_caller_turns_not_mutated(self):
        history = [ChatTurn("user", "q")]
        assemble_turns(ChatRequest(messages=history, message="more"), "persona")
        assert history == [ChatTurn("user", "q")]

    @pytest.mark.asyncio
    async def test_dispatch_sends_assembled_turns(self, provider_table):
        client = ScriptedClient({"alpha": ProviderReply("ok")})
        await _dispatcher(provider_table, client).dispatch(
            ChatRequest(messages=[ChatTurn("user", "q")], system_prompt="X", model="m", temperature=0.2)
        )
        seen = client.seen[0]
        assert seen["turns"][0] == ChatTurn("system", "X")
        assert seen["model"] == "m"
        assert seen["temperature"] == 0.2


def test_clamp_temperature():
    assert clamp_temperature(None) == 0.7
    assert clamp_temperature(0.0) == 0.0
    assert clamp_temperature(5.0) == 2.0
    assert clamp_temperature(-1.0) == 0.0


class TestFailureClassification:

    @pytest.mark.asyncio
    async def test_unwrapped_transport_error_falls_through(self, provider_table):
        client = ScriptedClient({
            "alpha": httpx.ReadError("connection reset"),
            "beta": ProviderReply("from beta"),
        })
        result = await _dispatcher(provider_table, client).dispatch(ChatRequest(message="hi"))

        assert result.provider == "Beta"
        assert client.calls == ["alpha", "beta"]

    @pytest.mark.asyncio
    async def test_local_fault_is_not_reported_as_exhaustion(self, provider_table):
        client = ScriptedClient({k: TypeError("bad payload") for k in ("alpha", "beta", "gamma")})

        with pytest.raises(TypeError):
            await _dispatcher(provider_table, client).dispatch(ChatRequest(message="hi"))
        assert client.calls == ["alpha"]

    @pytest.mark.asyncio
    async def test_lone_surrogate_reaches_first_provider(self, make_dispatcher, upstream):
        for host in ("alpha.test", "beta.test", "gamma.test"):
            upstream.reply(host, "fine")

        result = await make_dispatcher().dispatch(
            ChatRequest(message="\ud800 hi", system_prompt="persona \udfff")
        )

        assert result.outcome == OUTCOME_SUCCESS
        assert result.provider == "Alpha"
        assert upstream.calls == ["alpha.test"]
        messages = json.loads(upstream.requests[0].content)["messages"]
        assert messages[0]["content"] == "persona \ufffd"
        assert messages[-1]["content"] == "\ufffd hi"

    def test_lone_surrogates_replaced_in_turns(self):
        request = ChatRequest(messages=[ChatTurn("user", "a\udc80b")], message="\U0001f600")
        turns = assemble_turns(request, "persona")
        assert turns[1].content == "a\ufffdb"
        assert turns[2].content == "\U0001f600"
