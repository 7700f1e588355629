import asyncio

from redis.exceptions import ConnectionError as RedisConnectionError

from dispatchlink.services.connection_registry import ConnectionRegistry
from tests.fakes import FakeBus, FakeConnection


def _registry(bus=None):
    registry = ConnectionRegistry()
    registry.initialize_transport((bus or FakeBus()).publish)
    return registry


def test_register_joins_role_room():
    registry = _registry()
    connection = FakeConnection()

    registry.register(1, connection, "Dispatch")

    assert registry.is_online(1)
    assert registry.get_connection(1) is connection
    assert registry.room_members("Dispatch") == {1}
    assert registry.list_online() == [1]


def test_reregister_replaces_connection_and_room():
    registry = _registry()
    first, second = FakeConnection(), FakeConnection()

    registry.register(1, first, "Police")
    registry.register(1, second, "Fire")

    assert registry.get_connection(1) is second
    assert registry.room_members("Police") == set()
    assert registry.room_members("Fire") == {1}


def test_unregister_reports_whether_connected():
    registry = _registry()
    registry.register(7, FakeConnection(), "Nurse")

    assert registry.unregister(7) is True
    assert registry.unregister(7) is False
    assert not registry.is_online(7)
    assert registry.room_members("Nurse") == set()


def test_broadcast_to_role_reaches_only_that_room():
    bus = FakeBus()
    registry = _registry(bus)
    nurse, other_nurse, dispatcher = FakeConnection(), FakeConnection(), FakeConnection()
    registry.register(1, nurse, "Nurse")
    registry.register(2, other_nurse, "Nurse")
    registry.register(3, dispatcher, "Dispatch")

    asyncio.run(registry.broadcast_to_role("Nurse", "incoming-nurse-alert", {"bedId": "b1"}))

    expected = {"type": "incoming-nurse-alert", "data": {"bedId": "b1"}}
    assert nurse.sent == [expected]
    assert other_nurse.sent == [expected]
    assert dispatcher.sent == []
    assert bus.published == [("role:Nurse", expected)]


def test_send_to_user_and_broadcast():
    bus = FakeBus()
    registry = _registry(bus)
    first, second = FakeConnection(), FakeConnection()
    registry.register(1, first, "Dispatch")
    registry.register(2, second, "Police")

    asyncio.run(registry.send_to_user(2, "updateGroups"))
    asyncio.run(registry.broadcast("maintenance", {"at": "noon"}))

    assert first.sent == [{"type": "maintenance", "data": {"at": "noon"}}]
    assert second.sent == [
        {"type": "updateGroups", "data": {}},
        {"type": "maintenance", "data": {"at": "noon"}},
    ]
    assert bus.events("user:2") == ["updateGroups"]
    assert bus.events("broadcast:all") == ["maintenance"]


def test_send_to_offline_user_is_still_published():
    bus = FakeBus()
    registry = _registry(bus)

    asyncio.run(registry.send_to_user(42, "new-message", {"id": 1}))

    assert bus.published == [("user:42", {"type": "new-message", "data": {"id": 1}})]


def test_notifications_are_dropped_without_transport():
    registry = ConnectionRegistry()
    connection = FakeConnection()
    registry.register(1, connection, "Nurse")

    asyncio.run(registry.broadcast_to_role("Nurse", "incoming-nurse-alert"))

    assert connection.sent == []


def test_failing_socket_or_redis_does_not_stop_delivery():
    class BrokenConnection:
        async def send_json(self, message):
            raise RuntimeError("socket closed")

    async def failing_publish(channel, message):
        raise RedisConnectionError("redis down")

    registry = ConnectionRegistry()
    registry.initialize_transport(failing_publish)
    healthy = FakeConnection()
    registry.register(1, BrokenConnection(), "Fire")
    registry.register(2, healthy, "Fire")

    asyncio.run(registry.broadcast_to_role("Fire", "alert"))

    assert healthy.sent == [{"type": "alert", "data": {}}]
