import asyncio
import time
from datetime import datetime, timezone

import fakeredis
import pytest

from shortlink_app.models import Click, Link
from shortlink_app.queue.factory import QueueBackend, QueueFactory
from shortlink_app.queue.models import ClickEvent
from shortlink_app.queue.strategies import InMemoryQueue, RedisStreamQueue
from shortlink_app.workers.click_worker import ClickWorker


class RecordingQueue(InMemoryQueue):
    """In-memory queue that remembers acknowledged message ids"""

    def __init__(self):
        super().__init__()
        self.acked = []

    async def ack(self, queue_name, message_ids):
        self.acked.extend(message_ids)
        return True


def make_event(link, **overrides):
    data = {"slug": link.slug, "link_id": link.id}
    data.update(overrides)
    return ClickEvent(**data)


class TestInMemoryQueue:

    def test_fifo_batches(self):
        queue = InMemoryQueue()
        for n in range(5):
            asyncio.run(queue.publish("clicks", ClickEvent(slug=f"s{n}", link_id=n)))

        first = asyncio.run(queue.consume("clicks", batch_size=3, block_time=0))
        second = asyncio.run(queue.consume("clicks", batch_size=3, block_time=0))

        assert [e.slug for e in first] == ["s0", "s1", "s2"]
        assert [e.slug for e in second] == ["s3", "s4"]

    def test_full_queue_rejects(self):
        queue = InMemoryQueue(max_size=2)
        event = ClickEvent(slug="abc", link_id=1)

        assert asyncio.run(queue.publish("clicks", event)) is True
        assert asyncio.run(queue.publish("clicks", event)) is True
        assert asyncio.run(queue.publish("clicks", event)) is False
        assert asyncio.run(queue.get_queue_length("clicks")) == 2

    def test_empty_consume_returns_after_block_time(self):
        queue = InMemoryQueue()
        assert asyncio.run(queue.consume("clicks", batch_size=10, block_time=10)) == []

    def test_event_json_excludes_message_id(self):
        event = ClickEvent(slug="abc", link_id=1, message_id="1-0")
        assert "message_id" not in event.model_dump_json()

    def test_factory_memory_backend(self):
        QueueFactory.clear_instance()
        try:
            queue = QueueFactory.create(QueueBackend.MEMORY)
            assert isinstance(queue, InMemoryQueue)
            assert QueueFactory.create(QueueBackend.MEMORY) is queue
        finally:
            QueueFactory.clear_instance()


class TestClickWorker:

    def test_process_batch_writes_clicks(self, db_session, session_factory, make_link):
        link = make_link(slug="wrk123")
        queue = RecordingQueue()
        worker = ClickWorker(queue=queue, db_session_factory=session_factory)
        when = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

        events = [
            make_event(link, timestamp=when, referrer="https://news.example/", message_id="1-0"),
            make_event(link, user_agent="Firefox/121.0", message_id="2-0"),
        ]
        written = asyncio.run(worker.process_batch(events))

        assert written == 2
        assert queue.acked == ["1-0", "2-0"]

        db_session.expire_all()
        clicks = db_session.query(Click).order_by(Click.id).all()
        assert [c.referrer for c in clicks] == ["https://news.example/", None]
        assert clicks[0].timestamp.replace(tzinfo=timezone.utc) == when
        assert db_session.query(Link).one().hit_count == 2

    def test_bad_event_does_not_block_batch(self, db_session, session_factory, make_link):
        link = make_link(slug="wrk456")
        queue = RecordingQueue()
        worker = ClickWorker(queue=queue, db_session_factory=session_factory)

        events = [
            ClickEvent(slug="ghost", link_id=9999, message_id="1-0"),  # no such link
            make_event(link, message_id="2-0"),
        ]
        written = asyncio.run(worker.process_batch(events))

        assert written == 1
        assert worker.failed_count == 1
        # Failed events stay unacknowledged
        assert queue.acked == ["2-0"]

        db_session.expire_all()
        assert db_session.query(Click).count() == 1
        assert db_session.query(Link).one().hit_count == 1

    def test_drain_empties_queue(self, db_session, session_factory, make_link):
        link = make_link(slug="drain1")
        queue = InMemoryQueue()
        for _ in range(5):
            asyncio.run(queue.publish("link_clicks", make_event(link)))

        worker = ClickWorker(queue=queue, db_session_factory=session_factory, batch_size=2)

        assert asyncio.run(worker.drain()) == 5
        assert asyncio.run(queue.get_queue_length("link_clicks")) == 0
        assert worker.processed_count == 5

    def test_start_stops_when_cancelled(self, session_factory):
        queue = InMemoryQueue()
        worker = ClickWorker(queue=queue, db_session_factory=session_factory, block_time=10)

        async def run_briefly():
            task = asyncio.create_task(worker.start())
            await asyncio.sleep(0.05)
            worker.stop()
            await asyncio.wait_for(task, timeout=2)

        asyncio.run(run_briefly())
        assert worker.running is False

    def test_drain_tries_failed_event_once(self, session_factory, make_link):
        link = make_link(slug="drain2")
        queue = RedisStreamQueue(fakeredis.FakeRedis(), reclaim_idle_ms=0)
        asyncio.run(queue.publish("link_clicks", ClickEvent(slug="ghost", link_id=9999)))
        asyncio.run(queue.publish("link_clicks", make_event(link)))

        worker = ClickWorker(queue=queue, db_session_factory=session_factory)

        assert asyncio.run(worker.drain()) == 1
        assert worker.failed_count == 1


class SlowStreamClient:
    """Stands in for redis-py's sync client: XREADGROUP blocks its thread"""

    def __init__(self):
        self.reads = 0

    def xgroup_create(self, **kwargs):
        return True

    def xautoclaim(self, *args, **kwargs):
        return [b"0-0", [], []]

    def xreadgroup(self, block, **kwargs):
        self.reads += 1
        time.sleep(block / 1000)
        return []


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture
def stream_queue(redis_client):
    # Unacknowledged entries can be reclaimed immediately
    return RedisStreamQueue(redis_client, consumer_group="test_workers", reclaim_idle_ms=0)


class TestRedisStreamQueue:

    def test_publish_then_consume(self, stream_queue):
        asyncio.run(stream_queue.publish("clicks", ClickEvent(slug="abc", link_id=1, referrer="https://t.co/")))
        asyncio.run(stream_queue.publish("clicks", ClickEvent(slug="def", link_id=2)))

        events = asyncio.run(stream_queue.consume("clicks", batch_size=10, block_time=1))

        assert [e.slug for e in events] == ["abc", "def"]
        assert events[0].referrer == "https://t.co/"
        assert all(e.message_id for e in events)
        assert asyncio.run(stream_queue.get_queue_length("clicks")) == 2

    def test_worker_acks_only_written_events(self, redis_client, stream_queue, db_session, session_factory, make_link):
        link = make_link(slug="redis1")
        asyncio.run(stream_queue.publish("link_clicks", ClickEvent(slug="ghost", link_id=9999)))
        asyncio.run(stream_queue.publish("link_clicks", make_event(link)))

        worker = ClickWorker(queue=stream_queue, db_session_factory=session_factory, block_time=1)
        assert asyncio.run(worker.run_once()) == 1

        pending = redis_client.xpending("link_clicks", "test_workers")
        assert pending["pending"] == 1

        db_session.expire_all()
        assert db_session.query(Link).one().hit_count == 1

    def test_failed_event_is_reclaimed(self, redis_client, stream_queue, session_factory):
        asyncio.run(stream_queue.publish("link_clicks", ClickEvent(slug="ghost", link_id=9999)))

        worker = ClickWorker(queue=stream_queue, db_session_factory=session_factory, block_time=1)
        assert asyncio.run(worker.run_once()) == 0
        first_id = redis_client.xpending_range("link_clicks", "test_workers", "-", "+", 10)[0]["message_id"]

        # A restarted worker picks the pending entry up again
        restarted = RedisStreamQueue(redis_client, consumer_group="test_workers", reclaim_idle_ms=0)
        events = asyncio.run(restarted.consume("link_clicks", batch_size=10, block_time=1))

        assert [e.slug for e in events] == ["ghost"]
        assert events[0].message_id == first_id.decode()

    def test_polling_leaves_event_loop_free(self, session_factory):
        client = SlowStreamClient()
        queue = RedisStreamQueue(client)
        worker = ClickWorker(queue=queue, db_session_factory=session_factory, block_time=200)

        async def measure_other_coroutine():
            task = asyncio.create_task(worker.start())
            await asyncio.sleep(0.05)
            started = time.monotonic()
            await asyncio.sleep(0.01)
            elapsed = time.monotonic() - started
            worker.stop()
            await asyncio.wait_for(task, timeout=2)
            return elapsed

        elapsed = asyncio.run(measure_other_coroutine())

        assert elapsed < 0.1
        assert client.reads >= 1
