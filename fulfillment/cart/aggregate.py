"""
Cart Service — カート集約

カートはユーザーごとに 1 つ。1 商品につき明細は最大 1 行で、同じ商品を
再度追加すると数量をまとめる。合計は常に現在の明細の 数量 × 単価 の和。
単価は商品が最初にカートへ入ったときのスナップショット。
"""

from dataclasses import dataclass, field


@dataclass
class CartLine:
    product_id: int
    product_name: str
    quantity: int
    unit_price: float

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
        }


@dataclass
class CartAggregate:
    user_id: int
    email: str | None = None
    id: int | None = None
    items: list[CartLine] = field(default_factory=list)
    total: float = 0.0

    def find(self, product_id: int) -> CartLine | None:
        return next((line for line in self.items if line.product_id == product_id), None)

    def add_item(self, product_id: int, product_name: str, quantity: int, unit_price: float) -> CartLine:
        line = self.find(product_id)
        if line is not None:
            line.quantity += quantity
        else:
            line = CartLine(product_id, product_name, quantity, unit_price)
            self.items.append(line)
        self.recalculate_total()
        return line

    def remove_item(self, line: CartLine) -> None:
        self.items.remove(line)
        self.recalculate_total()

    def clear(self) -> list[CartLine]:
        removed, self.items = self.items, []
        self.total = 0.0
        return removed

    def recalculate_total(self) -> float:
        self.total = sum(line.quantity * line.unit_price for line in self.items)
        return self.total

    def to_dict(self) -> dict:
        return {
            "cart_id": self.id,
            "user_id": self.user_id,
            "email": self.email,
            "total": self.total,
            "items": [line.to_dict() for line in self.items],
        }
