import anyio
import pytest

from searchapi_mcp.server import LowLevelServer
from searchapi_mcp.transport.channel import ChannelClosed, SessionChannel
from searchapi_mcp.transport.lifecycle import LifecycleSupervisor
from searchapi_mcp.transport.registry import SessionRegistry
from searchapi_mcp.types.json_rpc import JSONRPCRequest

pytestmark = pytest.mark.anyio

INIT = JSONRPCRequest(
    id=1,
    method="initialize",
    params={"protocolVersion": "2025-11-25", "capabilities": {}, "clientInfo": {"name": "test", "version": "1"}},
)


def _registered_channel(tg, registry: SessionRegistry, supervisor: LifecycleSupervisor) -> SessionChannel:
    channel = SessionChannel(
        LowLevelServer(name="test", version="0"),
        tg,
        on_session_initialized=lambda session_id: registry.put(session_id, channel),
    )
    supervisor.bind(channel)
    return channel


async def test_close_removes_session_from_registry() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        channel = _registered_channel(tg, registry, supervisor)
        await channel.handle_post(INIT)
        assert channel.session_id in registry

        await channel.close("client disconnected")

        assert channel.session_id not in registry
        assert len(registry) == 0


async def test_repeated_close_events_are_harmless() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        channel = _registered_channel(tg, registry, supervisor)
        await channel.handle_post(INIT)

        await channel.terminate()
        await channel.close("transport closed")
        await channel.close("shutdown")

        assert len(registry) == 0


async def test_channel_accepts_a_single_close_subscriber() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        channel = _registered_channel(tg, registry, supervisor)

        with pytest.raises(RuntimeError):
            supervisor.bind(channel)
        with pytest.raises(RuntimeError):
            channel.subscribe(lambda event: None)


async def test_close_of_uninitialized_channel_touches_nothing() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        other = _registered_channel(tg, registry, supervisor)
        await other.handle_post(INIT)

        never_initialized = _registered_channel(tg, registry, supervisor)
        await never_initialized.close()

        assert other.session_id in registry


async def test_close_does_not_remove_another_channel_with_the_same_id() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        winner = SessionChannel(LowLevelServer(name="test", version="0"), tg)
        supervisor.bind(winner)
        registry.put("dup", winner)

        loser = SessionChannel(LowLevelServer(name="test", version="0"), tg)
        supervisor.bind(loser)
        loser.session_id = "dup"
        await loser.close("registration failed")

        assert registry.get("dup") is winner


async def test_close_event_carries_id_and_reason() -> None:
    events: list[ChannelClosed] = []
    async with anyio.create_task_group() as tg:
        channel = SessionChannel(LowLevelServer(name="test", version="0"), tg, session_id_generator=lambda: "fixed")
        channel.subscribe(events.append)
        await channel.handle_post(INIT)

        await channel.terminate()
        await channel.close("again")

    assert events == [ChannelClosed("fixed", "terminated"), ChannelClosed("fixed", "again")]


async def test_idle_sweeper_closes_expired_sessions() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        channel = _registered_channel(tg, registry, supervisor)
        await channel.handle_post(INIT)

        tg.start_soon(supervisor.sweep_idle, 0.05)
        with anyio.fail_after(2):
            await channel.closed.wait()

        assert channel.session_id not in registry
        tg.cancel_scope.cancel()


async def test_idle_sweeper_spares_sessions_with_open_push_stream() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        channel = _registered_channel(tg, registry, supervisor)
        await channel.handle_post(INIT)
        stream = channel.open_notification_stream()

        tg.start_soon(supervisor.sweep_idle, 0.05)
        await anyio.sleep(0.3)

        assert not channel.is_closed
        assert channel.session_id in registry
        stream.close()
        tg.cancel_scope.cancel()


async def test_shutdown_closes_all_channels_and_clears_registry() -> None:
    registry = SessionRegistry()
    supervisor = LifecycleSupervisor(registry)
    async with anyio.create_task_group() as tg:
        channels = [_registered_channel(tg, registry, supervisor) for _ in range(3)]
        for channel in channels:
            await channel.handle_post(INIT)
        assert len(registry) == 3

        await supervisor.shutdown()

        assert len(registry) == 0
        assert all(channel.is_closed for channel in channels)
