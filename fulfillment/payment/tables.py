from sqlalchemy import Column, DateTime, Float, Integer, MetaData, String, Table

metadata = MetaData()

# order_id は Order Service の台帳を参照する (外部キーではない)
payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, nullable=False, index=True),
    Column("total", Float, nullable=False),
    Column("currency", String(10), nullable=False),
    Column("method", String(50), nullable=False),
    Column("description", String(500)),
    Column("status", String(20), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)
