"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

注意：State machine 本身不丟異常，拒絕原因以 Rejection 值回傳；
DraftManager 才把它包成 ActionRejected，與 storage 類異常分開
"""
from models import Rejection


class DraftException(Exception):
    """所有 Draft 異常的基類"""
    pass


# ============ Draft 查詢 ============

class DraftNotFound(DraftException):
    """Draft 不存在或已過期"""
    def __init__(self, draft_id):
        self.draft_id = draft_id
        super().__init__(f"Draft {draft_id} not found")


class DraftCodeExhausted(DraftException):
    """連續多次生成的 Draft code 都已被使用"""
    pass


# ============ 動作被拒絕 ============

class ActionRejected(DraftException):
    """State machine 拒絕了此動作（可恢復，前端重新整理後再試）"""
    def __init__(self, rejection: Rejection):
        self.rejection = rejection
        super().__init__(rejection.message)


# ============ Storage ============

class StorageUnavailable(DraftException):
    """Store 後端無法使用或寫入失敗"""
    pass


class ConcurrentModification(DraftException):
    """Compare-and-swap 失敗：讀取後有其他請求先寫入了"""
    def __init__(self, draft_id, expected_version=None):
        self.draft_id = draft_id
        self.expected_version = expected_version
        super().__init__(
            f"Draft {draft_id} was modified concurrently (expected version {expected_version})"
        )


# ============ Catalog ============

class CatalogUnavailable(DraftException):
    """英雄資料來源無法取得"""
    pass
