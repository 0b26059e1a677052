import asyncio
import time

import pytest

from cloud_providers.exceptions import MessageStateError
from cloud_providers.interfaces import EnqueueOptions, Priority, ReceiveOptions
from cloud_providers.local import LocalQueueProvider


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    provider = LocalQueueProvider(clock=clock)
    yield provider
    provider.shutdown()


async def test_enqueue_returns_unique_ids(queue):
    first = await queue.enqueue("jobs", {"order": 1})
    second = await queue.enqueue("jobs", {"order": 2})

    assert first.startswith("local-msg-")
    assert first != second
    assert queue.get_queue_length("jobs") == 2


async def test_round_trip_preserves_body(queue):
    body = {"job_id": "abc", "options": {"lang": "en", "pages": [1, 2, 3]}}
    message_id = await queue.enqueue("jobs", body)

    messages = await queue.receive("jobs")

    assert len(messages) == 1
    assert messages[0].id == message_id
    assert messages[0].body == body
    assert messages[0].retry_count == 0
    assert messages[0].receipt_handle
    assert messages[0].attributes["priority"] == "normal"


async def test_body_is_copied_on_enqueue(queue):
    body = {"items": [1]}
    await queue.enqueue("jobs", body)
    body["items"].append(2)

    messages = await queue.receive("jobs")
    assert messages[0].body == {"items": [1]}


async def test_high_priority_inserts_at_head(queue):
    await queue.enqueue("jobs", {"order": 1})
    await queue.enqueue("jobs", {"order": 2}, EnqueueOptions(priority="high"))

    messages = await queue.receive("jobs", ReceiveOptions(max_messages=2))

    assert [m.body for m in messages] == [{"order": 2}, {"order": 1}]


async def test_multiple_high_priority_messages_resolve_last_in_first(queue):
    await queue.enqueue("jobs", {"order": 1})
    await queue.enqueue("jobs", {"order": 2}, EnqueueOptions(priority=Priority.HIGH))
    await queue.enqueue("jobs", {"order": 3}, EnqueueOptions(priority=Priority.HIGH))
    await queue.enqueue("jobs", {"order": 4}, EnqueueOptions(priority=Priority.LOW))

    messages = await queue.receive("jobs")

    assert [m.body["order"] for m in messages] == [3, 2, 1, 4]


async def test_enqueue_records_group_and_deduplication_attributes(queue):
    await queue.enqueue("jobs", {"a": 1}, EnqueueOptions(group_id="user-1", deduplication_id="d-1"))

    messages = await queue.receive("jobs")

    assert messages[0].attributes == {
        "priority": "normal",
        "groupId": "user-1",
        "deduplicationId": "d-1",
    }


async def test_receive_respects_max_messages(queue):
    for i in range(5):
        await queue.enqueue("jobs", {"i": i})

    first = await queue.receive("jobs", ReceiveOptions(max_messages=3))
    second = await queue.receive("jobs", ReceiveOptions(max_messages=3))

    assert len(first) == 3
    assert len(second) == 2
    assert queue.get_in_flight_count() == 5


async def test_receive_rejects_non_positive_max_messages(queue):
    with pytest.raises(ValueError):
        await queue.receive("jobs", ReceiveOptions(max_messages=0))


async def test_receive_empty_queue_returns_empty_list(queue):
    assert await queue.receive("empty") == []


async def test_receive_wait_returns_empty_within_budget(queue):
    start = time.monotonic()
    messages = await queue.receive("empty", ReceiveOptions(wait_time_seconds=1))
    elapsed = time.monotonic() - start

    assert messages == []
    assert 0.9 <= elapsed < 2.0


async def test_receive_wait_wakes_on_enqueue(queue):
    async def produce():
        await asyncio.sleep(0.1)
        await queue.enqueue("jobs", {"late": True})

    start = time.monotonic()
    producer = asyncio.create_task(produce())
    messages = await queue.receive("jobs", ReceiveOptions(wait_time_seconds=5))
    await producer

    assert [m.body for m in messages] == [{"late": True}]
    assert time.monotonic() - start < 2.0


async def test_ack_removes_in_flight_message(queue):
    await queue.enqueue("jobs", {"a": 1})
    [message] = await queue.receive("jobs")

    await queue.ack("jobs", message.receipt_handle)

    assert queue.get_in_flight_count() == 0
    assert await queue.receive("jobs") == []


async def test_ack_twice_raises_message_state_error(queue):
    await queue.enqueue("jobs", {"a": 1})
    [message] = await queue.receive("jobs")
    await queue.ack("jobs", message.receipt_handle)

    with pytest.raises(MessageStateError):
        await queue.ack("jobs", message.receipt_handle)


async def test_ack_unknown_handle_raises(queue):
    with pytest.raises(MessageStateError):
        await queue.ack("jobs", "never-received")


async def test_ack_with_handle_from_other_queue_raises(queue):
    await queue.enqueue("jobs", {"a": 1})
    [message] = await queue.receive("jobs")

    with pytest.raises(MessageStateError):
        await queue.ack("other", message.receipt_handle)
    # the handle is still usable on its own queue
    await queue.ack("jobs", message.receipt_handle)


async def test_nack_without_delay_redelivers_immediately(queue):
    body = {"video": "abc", "steps": ["download", "render"]}
    message_id = await queue.enqueue("jobs", body)
    [message] = await queue.receive("jobs")

    await queue.nack("jobs", message.receipt_handle, 0)
    [redelivered] = await queue.receive("jobs")

    assert redelivered.id == message_id
    assert redelivered.body == body
    assert redelivered.retry_count == 1
    assert redelivered.receipt_handle != message.receipt_handle


async def test_nack_increments_retry_count_each_time(queue):
    await queue.enqueue("jobs", {"a": 1})

    for expected in range(3):
        [message] = await queue.receive("jobs")
        assert message.retry_count == expected
        await queue.nack("jobs", message.receipt_handle)


async def test_nack_returns_message_to_tail(queue):
    await queue.enqueue("jobs", {"order": 1})
    [first] = await queue.receive("jobs")
    await queue.enqueue("jobs", {"order": 2})

    await queue.nack("jobs", first.receipt_handle)
    messages = await queue.receive("jobs")

    assert [m.body["order"] for m in messages] == [2, 1]


async def test_nack_twice_raises(queue):
    await queue.enqueue("jobs", {"a": 1})
    [message] = await queue.receive("jobs")
    await queue.nack("jobs", message.receipt_handle)

    with pytest.raises(MessageStateError):
        await queue.nack("jobs", message.receipt_handle)


async def test_nack_after_ack_raises(queue):
    await queue.enqueue("jobs", {"a": 1})
    [message] = await queue.receive("jobs")
    await queue.ack("jobs", message.receipt_handle)

    with pytest.raises(MessageStateError):
        await queue.nack("jobs", message.receipt_handle)


async def test_nack_with_delay_hides_message_until_due(queue, clock):
    await queue.enqueue("q", {"payload": 1})
    [message] = await queue.receive("q")

    await queue.nack("q", message.receipt_handle, 5)
    assert await queue.receive("q") == []

    clock.advance(4.9)
    assert await queue.receive("q") == []

    clock.advance(0.1)
    [redelivered] = await queue.receive("q")
    assert redelivered.body == {"payload": 1}
    assert redelivered.retry_count == 1


async def test_delayed_enqueue_appends_when_due(queue, clock):
    await queue.enqueue("jobs", {"order": "delayed"}, EnqueueOptions(delay_seconds=10, priority="high"))
    await queue.enqueue("jobs", {"order": "now"})

    assert queue.get_queue_length("jobs") == 1

    clock.advance(10)
    messages = await queue.receive("jobs")

    # delayed messages go to the tail regardless of priority
    assert [m.body["order"] for m in messages] == ["now", "delayed"]


async def test_move_to_dlq_escalates_in_flight_message(queue):
    message_id = await queue.enqueue("jobs", {"a": 1}, EnqueueOptions(priority="high"))
    [message] = await queue.receive("jobs")

    await queue.move_to_dlq("jobs", message)

    assert queue.get_in_flight_count() == 0
    assert queue.get_queue_length("jobs") == 0
    assert queue.get_dlq_length("jobs") == 1

    [dead] = await queue.receive("jobs-dlq")
    assert dead.body == {"a": 1}
    assert dead.id != message_id
    assert dead.attributes["originalQueue"] == "jobs"
    assert dead.attributes["originalMessageId"] == message_id
    assert dead.attributes["failedAt"]
    assert dead.attributes["priority"] == "high"


async def test_move_to_dlq_consumes_receipt_handle(queue):
    await queue.enqueue("jobs", {"a": 1})
    [message] = await queue.receive("jobs")
    await queue.move_to_dlq("jobs", message)

    with pytest.raises(MessageStateError):
        await queue.ack("jobs", message.receipt_handle)
    with pytest.raises(MessageStateError):
        await queue.move_to_dlq("jobs", message)

    assert queue.get_dlq_length("jobs") == 1


async def test_move_to_dlq_never_redelivers_from_origin(queue, clock):
    await queue.enqueue("jobs", {"a": 1})
    [message] = await queue.receive("jobs", ReceiveOptions(visibility_timeout_seconds=1))
    await queue.move_to_dlq("jobs", message)

    clock.advance(3600)
    assert await queue.receive("jobs") == []


async def test_custom_dlq_suffix(clock):
    provider = LocalQueueProvider(dlq_suffix=".dead", clock=clock)
    await provider.enqueue("jobs", {"a": 1})
    [message] = await provider.receive("jobs")

    await provider.move_to_dlq("jobs", message)

    assert provider.get_queue_length("jobs.dead") == 1


async def test_clear_and_clear_queue(queue, clock):
    await queue.enqueue("a", {"x": 1})
    await queue.enqueue("b", {"x": 2})
    await queue.enqueue("b", {"x": 3}, EnqueueOptions(delay_seconds=5))

    queue.clear_queue("b")
    clock.advance(5)
    assert queue.get_queue_length("a") == 1
    assert queue.get_queue_length("b") == 0

    queue.clear()
    assert queue.get_queue_length("a") == 0


async def test_shutdown_drops_delayed_messages_and_releases_pollers(queue, clock):
    await queue.enqueue("jobs", {"x": 1}, EnqueueOptions(delay_seconds=5))

    poller = asyncio.create_task(queue.receive("other", ReceiveOptions(wait_time_seconds=10)))
    await asyncio.sleep(0.05)
    queue.shutdown()

    assert await asyncio.wait_for(poller, timeout=1) == []
    clock.advance(5)
    assert queue.get_queue_length("jobs") == 0
