"""
並發控制工具

兩層保護，確保同一個 Draft 的 read-modify-write 不會互相覆蓋：

1. 悲觀鎖：PostgreSQL 的 SELECT ... FOR UPDATE（SQLite 會忽略，沒有效果）
2. 樂觀鎖：drafts.version 的 compare-and-swap，所有資料庫都有效
"""
from sqlalchemy import update
from sqlalchemy.orm import Session, Query

from models import DraftRow


def with_draft_lock(code: str, db: Session) -> Query:
    """
    鎖定一個 Draft（行級鎖）

    使用場景：
    - join / ready / select 前讀取 Draft
    - 需要確保 Draft 在整個 transaction 期間不被其他請求修改

    範例：
        row = with_draft_lock(code, db).first()
        if not row:
            raise DraftNotFound(code)

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(DraftRow).filter(
        DraftRow.code == code
    ).with_for_update(nowait=False)


def compare_and_swap(code: str, expected_version: int, values: dict, db: Session) -> bool:
    """
    只有在 version 仍為 expected_version 時才更新，並把 version +1

    返回：
        True 如果更新成功；False 表示讀取後已被其他請求寫入
    """
    result = db.execute(
        update(DraftRow)
        .where(DraftRow.code == code, DraftRow.version == expected_version)
        .values(version=expected_version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
