import asyncio
from datetime import datetime

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from conftest import RecordingEmail, RecordingSMS, asgi_client
from fulfillment.common.messages import PaymentNotification
from fulfillment.common.status import OrderStatus
from fulfillment.notification import main as notification_main
from fulfillment.notification.channels import LoggingEmailAdapter, LoggingSMSAdapter
from fulfillment.notification.consumer import NotificationConsumer
from fulfillment.notification.subscriber import ensure_group, process_batch, run_subscriber


def _payload(**overrides) -> str:
    fields = {
        "order_id": 42,
        "user_name": "Ana Lopez",
        "user_email": "ana@example.com",
        "user_address": "12 Harbour Street",
        "user_phone": "+34600000001",
        "order_status": "COMPLETED",
        "order_date": datetime(2026, 3, 1, 10, 30),
        "total_amount": 19.98,
        **overrides,
    }
    return PaymentNotification(**fields).model_dump_json()


@pytest.fixture
def email():
    return RecordingEmail()


@pytest.fixture
def sms():
    return RecordingSMS()


@pytest.fixture
def consumer(email, sms):
    return NotificationConsumer(email, sms)


def test_sends_email_then_sms(consumer, email, sms):
    confirmation = consumer.handle(_payload())

    assert confirmation.order_status is OrderStatus.COMPLETED
    assert email.sent[0]["to"] == "ana@example.com"
    assert email.sent[0]["subject"] == "Your purchase has been successfully completed - Order #42"
    assert "Total Amount Paid: $19.98" in email.sent[0]["body"]
    assert sms.sent == [{
        "to": "+34600000001",
        "body": "Your order #42 has been confirmed! Total: $19.98. Thank you for shopping with us.",
    }]


@pytest.mark.parametrize("phone", [None, "", "  "])
def test_sms_skipped_without_phone(consumer, email, sms, phone):
    consumer.handle(_payload(user_phone=phone))

    assert len(email.sent) == 1
    assert sms.sent == []


def test_email_failure_does_not_block_sms(sms):
    consumer = NotificationConsumer(RecordingEmail(fail=True), sms)

    confirmation = consumer.handle(_payload())

    assert confirmation is not None
    assert len(sms.sent) == 1


def test_sms_failure_is_contained(email):
    consumer = NotificationConsumer(email, RecordingSMS(fail=True))

    assert consumer.handle(_payload()) is not None
    assert len(email.sent) == 1


@pytest.mark.parametrize(
    "raw",
    ['{"user_email": "ana@example.com"}', "not json", '{"order_id": "abc"}', ""],
)
def test_invalid_messages_are_dropped(consumer, email, sms, raw):
    assert consumer.handle(raw) is None
    assert email.sent == []
    assert sms.sent == []


@pytest.mark.parametrize(
    "status, expected",
    [
        ("PROCESSING", OrderStatus.PROCESSING),
        ("COMPLETED", OrderStatus.COMPLETED),
        (None, OrderStatus.COMPLETED),
        ("SHIPPED", OrderStatus.COMPLETED),
        ("OrderResponse$StatusOrder:PENDING", OrderStatus.COMPLETED),
    ],
)
def test_status_decoding(consumer, status, expected):
    assert consumer.handle(_payload(order_status=status)).order_status is expected


def test_missing_fields_get_defaults(consumer, sms):
    confirmation = consumer.handle('{"order_id": 5, "user_phone": "+1555"}')

    assert isinstance(confirmation.order_date, datetime)
    assert confirmation.total_amount == 0.0
    assert sms.sent[0]["body"].startswith("Your order #5 has been confirmed! Total: $0.00.")


def test_logging_adapters_require_recipient():
    with pytest.raises(ValueError):
        LoggingEmailAdapter().send("", "subject", "body")
    with pytest.raises(ValueError):
        LoggingSMSAdapter().send(" ", "body")

    LoggingEmailAdapter().send("ana@example.com", "subject", "body")
    LoggingSMSAdapter().send("+34600000001", "body")


class FakeStreamRedis:
    """サブスクライバのループに必要な分だけの Redis コンシューマグループ"""

    def __init__(self, entries=None, pending=None, read_errors=None, create_errors=None):
        self.new = list(entries or [])
        self.pending = list(pending or [])
        self.acked = []
        self.groups = set()
        self.creates = 0
        self.read_errors = list(read_errors or [])
        self.create_errors = list(create_errors or [])

    async def xgroup_create(self, stream, group, id="$", mkstream=False):
        self.creates += 1
        if self.create_errors:
            raise self.create_errors.pop(0)
        if (stream, group) in self.groups:
            raise ResponseError("BUSYGROUP Consumer Group name already exists")
        self.groups.add((stream, group))

    async def xreadgroup(self, group, name, streams, count=None, block=None):
        stream, last_id = next(iter(streams.items()))
        if last_id == ">" and self.read_errors:
            self.groups.clear()
            raise self.read_errors.pop(0)
        if last_id == "0":
            batch = [e for e in self.pending if e[0] not in self.acked][:count]
            return [[stream, batch]]
        batch, self.new = self.new[:count], self.new[count:]
        self.pending.extend(batch)
        if not batch:
            await asyncio.sleep(0)
            return []
        return [[stream, batch]]

    async def xack(self, stream, group, *ids):
        self.acked.extend(ids)
        return len(ids)


async def test_existing_group_is_reused():
    redis = FakeStreamRedis()

    await ensure_group(redis, "payment-notifications", "notification-service-group")
    await ensure_group(redis, "payment-notifications", "notification-service-group")

    assert redis.groups == {("payment-notifications", "notification-service-group")}


async def test_batch_is_acknowledged_after_handling(consumer, email):
    redis = FakeStreamRedis(entries=[
        ("1-0", {"order_id": "42", "payload": _payload()}),
        ("2-0", {"order_id": "43", "payload": "garbage"}),
    ])

    handled = await process_batch(redis, consumer, "s", "g", "c", ">")

    assert handled == 2
    assert redis.acked == ["1-0", "2-0"]
    assert len(email.sent) == 1


async def test_pending_entries_are_redelivered_on_start(consumer, email):
    redis = FakeStreamRedis(pending=[("7-0", {"order_id": "42", "payload": _payload()})])
    shutdown = asyncio.Event()
    shutdown.set()

    await run_subscriber(redis, consumer, "s", "g", "c", shutdown)

    assert redis.acked == ["7-0"]
    assert len(email.sent) == 1


async def test_subscriber_stops_on_shutdown(consumer, email):
    redis = FakeStreamRedis(entries=[("1-0", {"order_id": "42", "payload": _payload()})])
    shutdown = asyncio.Event()

    task = asyncio.create_task(run_subscriber(redis, consumer, "s", "g", "c", shutdown))
    for _ in range(50):
        if redis.acked:
            break
        await asyncio.sleep(0.01)
    shutdown.set()
    await asyncio.wait_for(task, timeout=1)

    assert redis.acked == ["1-0"]
    assert email.sent[0]["subject"].endswith("#42")


async def test_health(settings):
    app = notification_main.create_app(settings)

    async with asgi_client(app, "http://notification") as client:
        response = await client.get("/health")

    assert response.json() == {"status": "ok", "service": "notification-service"}


async def _consume_until_acked(redis, consumer, count=1):
    shutdown = asyncio.Event()
    task = asyncio.create_task(
        run_subscriber(redis, consumer, "s", "g", "c", shutdown, retry_delay=0)
    )
    for _ in range(100):
        if len(redis.acked) >= count:
            break
        await asyncio.sleep(0.01)
    shutdown.set()
    await asyncio.wait_for(task, timeout=1)


async def test_subscriber_recreates_group_after_nogroup(consumer, email):
    redis = FakeStreamRedis(
        entries=[("1-0", {"order_id": "42", "payload": _payload()})],
        read_errors=[ResponseError("NOGROUP No such key 's' or consumer group 'g'")],
    )

    await _consume_until_acked(redis, consumer)

    assert redis.creates == 2
    assert redis.groups == {("s", "g")}
    assert redis.acked == ["1-0"]
    assert len(email.sent) == 1


async def test_subscriber_retries_group_setup(consumer, email):
    redis = FakeStreamRedis(
        pending=[("7-0", {"order_id": "42", "payload": _payload()})],
        create_errors=[RedisConnectionError("Connection refused")],
    )

    await _consume_until_acked(redis, consumer)

    assert redis.creates == 2
    assert redis.acked == ["7-0"]
