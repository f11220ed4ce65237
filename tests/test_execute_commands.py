from __future__ import annotations

import asyncio

import pytest

from tardis.driver.messages import WAIT_FOR_TIMEOUT

from conftest import wire


def test_execute_queues_two_steps_and_is_chainable(driver) -> None:
    returned = driver.execute("return 1;", [1, 2], "h1")

    assert returned is driver
    assert len(driver.action_queue) == 2


@pytest.mark.asyncio
async def test_execute_emits_parsed_value(driver, client, messages) -> None:
    client.execute_results = [wire({"answer": 42})]

    await driver.execute("return arguments[0];", ["x"], "h1").run()

    assert client.calls == [("execute", {"script": "return arguments[0];", "arguments": ["x"]})]
    assert messages == [{"key": "execute", "value": {"answer": 42}, "uuid": "h1", "hash": "h1"}]


@pytest.mark.asyncio
async def test_execute_async_success_carries_value_only(driver, client, messages) -> None:
    client.execute_async_result = wire("done")

    await driver.execute_async("arguments[0]('done');", [], "h2").run()

    assert messages == [{"key": "executeAsync", "value": "done", "uuid": "h2", "hash": "h2"}]
    assert "errorMessage" not in messages[0]


@pytest.mark.asyncio
async def test_execute_async_error_carries_message_only(driver, client, messages) -> None:
    client.execute_async_result = wire({"message": "script timeout"}, status=28)

    await driver.execute_async("while(true){}", [], "h3").run()

    assert messages == [{"key": "executeAsync", "errorMessage": "script timeout", "uuid": "h3", "hash": "h3"}]
    assert "value" not in messages[0]


@pytest.mark.asyncio
async def test_async_script_timeout(driver, client, messages) -> None:
    await driver.async_script_timeout(500, "h4").run()

    assert client.calls == [("set_async_script_timeout", 500)]
    assert messages == [{"key": "asyncScriptTimeout", "value": "", "uuid": "h4", "hash": "h4"}]


@pytest.mark.asyncio
async def test_wait_for_immediately_true(driver, client, messages) -> None:
    client.execute_results = [wire({"userRet": True})]

    await driver.wait_for("return {userRet: true};", [], 50, "h5").run()
    await asyncio.sleep(0.1)

    assert messages == [{"key": "waitFor", "value": "", "uuid": "h5", "hash": "h5"}]
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_wait_for_polls_until_true(driver, client, messages) -> None:
    client.execute_results = [
        wire({"userRet": False}),
        wire({"userRet": False}),
        wire({"userRet": True}),
    ]

    await driver.wait_for("return {userRet: ready};", [], 1000, "h6").run()
    await asyncio.sleep(0.05)

    assert messages == [{"key": "waitFor", "value": "", "uuid": "h6", "hash": "h6"}]
    assert len(client.calls) == 3


@pytest.mark.asyncio
async def test_wait_for_times_out_once(driver, client, messages) -> None:
    client.execute_results = [wire({"userRet": False})]

    await driver.wait_for("return {userRet: false};", [], 30, "h7").run()
    await asyncio.sleep(0.05)

    assert messages == [{"key": "waitFor", "value": WAIT_FOR_TIMEOUT, "uuid": "h7", "hash": "h7"}]


@pytest.mark.asyncio
async def test_wait_for_ignores_poll_response_after_timeout(driver, client, messages) -> None:
    release = asyncio.Event()

    async def slow_true() -> str:
        await release.wait()
        return wire({"userRet": True})

    client.execute_results = [wire({"userRet": False}), slow_true]

    await driver.wait_for("return {userRet: later};", [], 30, "h8").run()
    release.set()
    await asyncio.sleep(0.05)

    assert messages == [{"key": "waitFor", "value": WAIT_FOR_TIMEOUT, "uuid": "h8", "hash": "h8"}]


@pytest.mark.asyncio
async def test_wait_for_treats_errors_as_not_ready(driver, client, messages) -> None:
    client.execute_results = [wire({"message": "boom"}, status=17), wire({"userRet": True})]

    await driver.wait_for("return check();", [], 1000, "h9").run()

    assert messages == [{"key": "waitFor", "value": "", "uuid": "h9", "hash": "h9"}]


@pytest.mark.asyncio
async def test_wait_for_propagates_transport_failure(driver, client, messages) -> None:
    async def broken() -> str:
        raise ConnectionError("gone")

    client.execute_results = [wire({"userRet": False}), broken]

    with pytest.raises(ConnectionError):
        await driver.wait_for("return check();", [], 1000, "h10").run()
    assert messages == []


@pytest.mark.asyncio
async def test_then_local_waits_for_done(driver, client, messages) -> None:
    order: list[str] = []

    def local(done) -> None:
        order.append("local")
        asyncio.get_running_loop().call_later(0.01, done)

    client.execute_results = [wire(1)]
    driver.then_local(local, "h11").execute("return 1;", [], "h12")
    assert len(driver.action_queue) == 3

    await driver.run()

    assert order == ["local"]
    assert [message["hash"] for message in messages] == ["h12"]


@pytest.mark.asyncio
async def test_then_local_accepts_coroutine_functions(driver) -> None:
    calls: list[str] = []

    async def local(done) -> None:
        await asyncio.sleep(0)
        calls.append("ran")
        done()

    await driver.then_local(local, "h13").run()

    assert calls == ["ran"]


@pytest.mark.asyncio
async def test_steps_run_in_order(driver, client, messages) -> None:
    client.execute_results = [wire("first"), wire("second")]

    await (
        driver.execute("return 'first';", [], "a")
        .async_script_timeout(100, "b")
        .execute("return 'second';", [], "c")
        .run()
    )

    assert [message["hash"] for message in messages] == ["a", "b", "c"]
    assert [call[0] for call in client.calls] == ["execute", "set_async_script_timeout", "execute"]


def test_generates_hash_when_missing(driver) -> None:
    driver.execute("return 1;")

    assert len(driver.action_queue) == 2


@pytest.mark.asyncio
async def test_wait_for_releases_queue_when_handler_fails(driver, client, events, messages) -> None:
    def broken_handler(payload) -> None:
        raise RuntimeError("reporter crashed")

    events.on("driver:message", broken_handler)
    client.execute_results = [wire({"userRet": False})]

    with pytest.raises(RuntimeError, match="reporter crashed"):
        await asyncio.wait_for(driver.wait_for("return {userRet: false};", [], 20, "h14").run(), timeout=1)

    assert messages == [{"key": "waitFor", "value": WAIT_FOR_TIMEOUT, "uuid": "h14", "hash": "h14"}]
    assert len(driver.action_queue) == 0


@pytest.mark.asyncio
async def test_wait_for_ignores_poll_failure_after_timeout(driver, client, messages) -> None:
    async def fails_when_dropped() -> str:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            raise ConnectionError("connection closed") from None
        return wire({"userRet": True})

    client.execute_results = [wire({"userRet": False}), fails_when_dropped]

    await driver.wait_for("return {userRet: later};", [], 20, "h15").run()
    await asyncio.sleep(0.05)

    assert messages == [{"key": "waitFor", "value": WAIT_FOR_TIMEOUT, "uuid": "h15", "hash": "h15"}]
