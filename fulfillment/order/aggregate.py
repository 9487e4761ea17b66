"""
Order Service — 注文集約

注文は空でないカートから 1 度だけ作られ、その時点の顧客情報のスナップショットを持つ。

状態遷移:
    PENDING → PROCESSING  (bring: 支払いのために注文を取得)
    PROCESSING → COMPLETED  (complete: 支払い完了)

どちらの遷移も現在の状態を確認しない。PENDING の注文を直接 COMPLETED にすることも、
COMPLETED の注文に遷移を繰り返すことも成功する。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from ..common.status import OrderStatus
from ..common.users import UserProfile

CENT = Decimal("0.01")


def round2(value: float) -> float:
    """表記どおりの値で小数第 2 位に四捨五入する (0 から遠い方へ丸める)"""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass
class OrderLine:
    product_id: int
    product_name: str
    quantity: int
    unit_price: float
    total_price: float

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }


@dataclass
class OrderAggregate:
    user_id: int
    name: str = ""
    last_name: str = ""
    email: str | None = None
    address: str | None = None
    phone: str | None = None
    role: str | None = None
    items: list[OrderLine] = field(default_factory=list)
    total_amount: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    order_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: int | None = None

    @classmethod
    def from_cart(cls, user: UserProfile, cart) -> "OrderAggregate":
        """
        カートの明細から PENDING の新規注文を計算する。

        明細ごとの小計と注文合計はそれぞれ独立に丸めるため、
        小計の和と注文合計が 1 セント異なることがある。
        """
        items = [
            OrderLine(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=round2(line.quantity * line.unit_price),
            )
            for line in cart.items
        ]
        return cls(
            user_id=user.id,
            name=user.name,
            last_name=user.last_name,
            email=user.email,
            address=user.address,
            phone=user.phone,
            role=user.role,
            items=items,
            total_amount=round2(cart.total),
            status=OrderStatus.PENDING,
        )

    def bring(self) -> None:
        self.status = OrderStatus.PROCESSING

    def complete(self) -> None:
        self.status = OrderStatus.COMPLETED

    def to_dict(self) -> dict:
        return {
            "order_id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "last_name": self.last_name,
            "email": self.email,
            "address": self.address,
            "phone": self.phone,
            "role": self.role,
            "items": [line.to_dict() for line in self.items],
            "total_amount": self.total_amount,
            "status": self.status.value,
            "order_date": self.order_date.isoformat(),
        }

    def summary(self) -> dict:
        return {
            "order_id": self.id,
            "email": self.email,
            "total_amount": self.total_amount,
            "status": self.status.value,
            "order_date": self.order_date.isoformat(),
        }
