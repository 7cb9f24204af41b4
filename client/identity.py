"""
Client 身分：第一次使用時產生一個不透明的 token，之後都從檔案讀回

Server 只做字串比對，不驗證 token
"""
import logging
import uuid
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_PATH = Path.home() / ".champion_draft" / "client_id"


def load_or_create_client_id(path: Optional[Union[str, Path]] = None) -> str:
    """
    讀取已保存的 client id，沒有就產生並寫入

    參數：
        path: 保存 token 的檔案（預設 ~/.champion_draft/client_id）

    返回：
        32 字元的 uuid4 hex 字串

    注意：
        - 檔案存在但內容是空白時，會重新產生
        - 知道這個 token 的人都能以這個 client 的身分操作
    """
    path = Path(path) if path else DEFAULT_IDENTITY_PATH
    if path.exists():
        client_id = path.read_text(encoding="utf-8").strip()
        if client_id:
            return client_id
        logger.warning(f"Empty client id file at {path}, generating a new one")

    client_id = uuid.uuid4().hex
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(client_id, encoding="utf-8")
    logger.info(f"Generated new client id at {path}")
    return client_id
