from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings


# ORM 基类：所有模型继承它
class Base(DeclarativeBase):
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


# 创建数据库引擎（外部数据库优先，否则使用本地 SQLite）
def _build_engine():
    if settings.database_url:
        url = settings.database_url
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}, "future": True}
            # 内存库需要所有连接共享同一个底层连接
            if _is_memory_sqlite(url):
                kwargs["poolclass"] = StaticPool
            return create_engine(url, **kwargs)
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return create_engine(url, future=True, pool_pre_ping=True)
    settings.ensure_dirs()
    return create_engine(
        f"sqlite:///{settings.sqlite_path}",
        connect_args={"check_same_thread": False},
        future=True,
    )


# 全局数据库引擎
engine = _build_engine()
# 会话工厂
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


# 初始化数据库表
def init_db() -> None:
    from app.models import book, goal  # noqa: F401

    # For PostgreSQL, multiple workers can race on create_all(),
    # causing DDL conflicts (e.g. duplicate pg_type). Use an advisory lock to serialize.
    if engine.dialect.name.startswith("postgres"):
        lock_id = 58120417
        with engine.connect() as conn:
            conn.execute(text("SELECT pg_advisory_lock(:lock_id)"), {"lock_id": lock_id})
            try:
                Base.metadata.create_all(bind=conn)
                # 旧表可能缺少 (user_id, year) 唯一约束，目标写入的 ON CONFLICT 依赖它
                conn.execute(
                    text(
                        "CREATE UNIQUE INDEX IF NOT EXISTS uq_goals_user_year "
                        "ON goals (user_id, year)"
                    )
                )
            finally:
                conn.execute(text("SELECT pg_advisory_unlock(:lock_id)"), {"lock_id": lock_id})
            conn.commit()
    else:
        Base.metadata.create_all(bind=engine)
    if engine.dialect.name != "sqlite":
        return
    # 旧版本数据库缺少的列，按需补齐
    with engine.begin() as conn:
        book_columns = {row[1] for row in conn.execute(text("PRAGMA table_info(books)"))}
        if "cover_image_url" not in book_columns:
            conn.execute(text("ALTER TABLE books ADD COLUMN cover_image_url TEXT"))
        goal_columns = {row[1] for row in conn.execute(text("PRAGMA table_info(goals)"))}
        if "updated_at" not in goal_columns:
            conn.execute(text("ALTER TABLE goals ADD COLUMN updated_at DATETIME"))
        unique_keys = [
            {info[2] for info in conn.execute(text(f'PRAGMA index_info("{row[1]}")'))}
            for row in list(conn.execute(text("PRAGMA index_list(goals)")))
            if row[2]
        ]
        if {"user_id", "year"} not in unique_keys:
            conn.execute(
                text("CREATE UNIQUE INDEX uq_goals_user_year ON goals (user_id, year)")
            )


# FastAPI 依赖：获取数据库会话
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
