"""
共通フィクスチャ

全サービスをプロセス内で動かす。FastAPI アプリは httpx.ASGITransport 経由で
呼び出し、サービス間クライアントも同じ方式で通信する。各サービスは専用の
SQLite ファイルを持つ。ASGI トランスポートは lifespan を実行しないため、
テーブルはここで作成する。
"""

import httpx
import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from fulfillment.cart import main as cart_main
from fulfillment.cart import tables as cart_tables
from fulfillment.cart.clients import CatalogClient
from fulfillment.catalog import commands as catalog_commands
from fulfillment.catalog import main as catalog_main
from fulfillment.catalog import tables as catalog_tables
from fulfillment.common.config import Settings
from fulfillment.common.db import create_engine, create_tables, make_session_factory
from fulfillment.common.users import UserClient
from fulfillment.notification.channels import EmailPort, SMSPort
from fulfillment.order import main as order_main
from fulfillment.order import tables as order_tables
from fulfillment.order.clients import CartClient
from fulfillment.payment import main as payment_main
from fulfillment.payment import tables as payment_tables
from fulfillment.payment.clients import OrderClient
from fulfillment.payment.producer import NotificationDispatcher

ANA = {
    "id": 1,
    "name": "Ana",
    "lastName": "Lopez",
    "email": "ana@example.com",
    "role": "CLIENT",
    "address": "12 Harbour Street",
    "phone": "+34600000001",
}
BRUNO = {
    "id": 2,
    "name": "Bruno",
    "lastName": "Diaz",
    "email": "bruno@example.com",
    "role": "CLIENT",
    "address": "3 Mill Lane",
    "phone": None,
}
USERS = {user["id"]: user for user in (ANA, BRUNO)}


def identity(user: dict) -> dict:
    return {
        "X-USER-ID": str(user["id"]),
        "X-USER-EMAIL": user["email"],
        "X-USER-ROLE": user["role"],
    }


ANA_HEADERS = identity(ANA)
BRUNO_HEADERS = identity(BRUNO)
UNKNOWN_HEADERS = {"X-USER-ID": "99", "X-USER-EMAIL": "ghost@example.com", "X-USER-ROLE": "CLIENT"}


def asgi_client(app, base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=base_url)


def mock_client(handler, base_url: str = "http://mock") -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)


def envelope(data=None, message="", status="SUCCESS") -> dict:
    return {"status": status, "message": message, "data": data}


def build_user_app() -> FastAPI:
    app = FastAPI(title="User Service (fake)")

    @app.get("/users/client/user/{user_id}")
    async def get_user(user_id: int):
        if user_id not in USERS:
            return JSONResponse(status_code=404, content={"detail": "User not found"})
        return USERS[user_id]

    return app


class RecordingProducer:
    """NotificationProducer の代役。送信されるはずだったメッセージを保持する"""

    def __init__(self):
        self.published = []
        self.fail = False

    async def publish(self, message):
        if self.fail:
            raise ConnectionError("redis is down")
        self.published.append(message)
        return f"{len(self.published)}-0"

    async def aclose(self):
        pass


class RecordingEmail(EmailPort):
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send(self, to, subject, body):
        if self.fail:
            raise RuntimeError("smtp unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})


class RecordingSMS(SMSPort):
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send(self, to, body):
        if self.fail:
            raise RuntimeError("sms gateway unavailable")
        self.sent.append({"to": to, "body": body})


async def _engine(tmp_path, name, metadata):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / name}.db")
    if metadata is not None:
        await create_tables(engine, metadata)
    return engine


@pytest.fixture
def settings():
    return Settings(service_name="test", database_url="sqlite+aiosqlite://")


@pytest.fixture
async def catalog_engine(tmp_path):
    engine = await _engine(tmp_path, "catalog", catalog_tables.metadata)
    yield engine
    await engine.dispose()


@pytest.fixture
async def cart_engine(tmp_path):
    engine = await _engine(tmp_path, "cart", cart_tables.metadata)
    yield engine
    await engine.dispose()


@pytest.fixture
async def order_engine(tmp_path):
    engine = await _engine(tmp_path, "order", order_tables.metadata)
    yield engine
    await engine.dispose()


@pytest.fixture
async def payment_engine(tmp_path):
    engine = await _engine(tmp_path, "payment", payment_tables.metadata)
    yield engine
    await engine.dispose()


@pytest.fixture
async def products(catalog_engine):
    """初期データ投入済みのカタログ (短いラベルをキーにする)"""
    session_factory = make_session_factory(catalog_engine)
    seeded = {}
    async with session_factory() as session:
        seeded["keyboard"] = await catalog_commands.add_product(
            session, "Keyboard", 9.99, 10, description="Mechanical keyboard", category="peripherals"
        )
        seeded["mouse"] = await catalog_commands.add_product(session, "Mouse", 25.5, 5)
        seeded["sticker"] = await catalog_commands.add_product(session, "Sticker", 0.005, 100)
        seeded["pin"] = await catalog_commands.add_product(session, "Pin", 0.005, 100)
        seeded["sold_out"] = await catalog_commands.add_product(session, "Lamp", 40.0, 0)
    return seeded


@pytest.fixture
def catalog_app(settings, catalog_engine, products):
    return catalog_main.create_app(settings, engine=catalog_engine)


@pytest.fixture
async def catalog_http(catalog_app):
    async with asgi_client(catalog_app, "http://catalog") as client:
        yield client


@pytest.fixture
async def users():
    client = UserClient(asgi_client(build_user_app(), "http://users"))
    yield client
    await client.aclose()


@pytest.fixture
async def catalog(catalog_app):
    client = CatalogClient(asgi_client(catalog_app, "http://catalog"))
    yield client
    await client.aclose()


@pytest.fixture
def cart_app(settings, cart_engine, catalog, users):
    return cart_main.create_app(settings, engine=cart_engine, catalog=catalog, users=users)


@pytest.fixture
async def cart_http(cart_app):
    async with asgi_client(cart_app, "http://cart") as client:
        yield client


@pytest.fixture
async def carts(cart_app):
    client = CartClient(asgi_client(cart_app, "http://cart"))
    yield client
    await client.aclose()


@pytest.fixture
def order_app(settings, order_engine, carts, users):
    return order_main.create_app(settings, engine=order_engine, carts=carts, users=users)


@pytest.fixture
async def order_http(order_app):
    async with asgi_client(order_app, "http://order") as client:
        yield client


@pytest.fixture
async def orders(order_app):
    client = OrderClient(asgi_client(order_app, "http://order"))
    yield client
    await client.aclose()


@pytest.fixture
def producer():
    return RecordingProducer()


@pytest.fixture
def dispatcher(producer):
    return NotificationDispatcher(producer)


@pytest.fixture
def payment_app(settings, payment_engine, orders, dispatcher):
    return payment_main.create_app(settings, engine=payment_engine, orders=orders, dispatcher=dispatcher)


@pytest.fixture
async def payment_http(payment_app):
    async with asgi_client(payment_app, "http://payment") as client:
        yield client


async def stock_of(catalog_http: httpx.AsyncClient, product_id: int) -> int:
    response = await catalog_http.get(f"/product/{product_id}")
    return response.json()["data"]["stock"]


async def add_to_cart(cart_http: httpx.AsyncClient, product_id: int, quantity: int, headers=ANA_HEADERS):
    return await cart_http.post(
        "/shopping/add-to-cart",
        json={"product_id": product_id, "quantity": quantity},
        headers=headers,
    )
