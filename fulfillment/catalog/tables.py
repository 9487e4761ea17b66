from sqlalchemy import Column, Float, Integer, MetaData, String, Table

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("description", String(1000)),
    Column("price", Float, nullable=False),
    Column("category", String(100)),
    Column("stock", Integer, nullable=False, default=0),
)
