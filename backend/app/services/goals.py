from __future__ import annotations

from datetime import datetime

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models import Goal


_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"Goal upsert is not supported on {dialect}") from None


# 写入年度阅读目标：单条 INSERT ... ON CONFLICT 语句，依赖 (user_id, year) 唯一约束
def upsert_goal(db: Session, user_id: str, year: int, target: int) -> bool:
    """Insert or update the caller's goal for ``year``.

    Returns True when a new row was created, False when an existing goal was
    rewritten. ``updated_at`` is only ever set by the conflict branch, so its
    value in the RETURNING row tells the two apart.
    """
    now = datetime.utcnow()
    insert = _insert_for(db)
    stmt = insert(Goal).values(
        user_id=user_id,
        year=year,
        target=target,
        created_at=now,
        updated_at=None,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "year"],
        set_={"target": stmt.excluded.target, "updated_at": now},
    ).returning(Goal.id, Goal.updated_at)
    row = db.execute(stmt).one()
    db.commit()
    return row.updated_at is None


def get_goal(db: Session, user_id: str, year: int) -> Goal | None:
    return (
        db.query(Goal)
        .filter(Goal.user_id == user_id, Goal.year == year)
        .first()
    )
