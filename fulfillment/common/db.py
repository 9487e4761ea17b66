"""
共通 — データベースヘルパー

Database per Service: 各サービスは専用の DB を持つ。
サービス間で共有するのは async エンジンとセッションファクトリの作り方だけ。
"""

from fastapi import Request
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False)


def make_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine, metadata: MetaData) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


async def get_session(request: Request):
    """リクエストごとに 1 セッション(= 1 ローカルトランザクション)を渡す FastAPI 依存関数"""
    async with request.app.state.session_factory() as session:
        yield session
