"""
命名服務：生成 Draft Code 和玩家預設顯示名稱

純計算邏輯，不涉及狀態轉換
"""
import random
import string

from models import Side

DRAFT_CODE_LENGTH = 6
DRAFT_CODE_ALPHABET = string.ascii_uppercase + string.digits

_rng = random.SystemRandom()


def generate_draft_code() -> str:
    """
    生成隨機的 6 位大寫英數 Draft code

    範例：K3F9QZ, 7ABX2M

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 36^6 ≈ 21 億種可能，碰撞機率極低
    """
    return ''.join(_rng.choices(DRAFT_CODE_ALPHABET, k=DRAFT_CODE_LENGTH))


def normalize_draft_code(code: str) -> str:
    """Draft code 不分大小寫，一律轉成大寫"""
    return code.strip().upper()


def default_display_name(side: Side) -> str:
    """
    玩家沒有提供名稱時的預設顯示名稱

    範例：
        Side.BLUE -> "Blue Player"
        Side.RED  -> "Red Player"
    """
    return f"{side.value.capitalize()} Player"
