"""
Client 端

- identity：產生並保存 client id（bearer token）
- draft_client：呼叫 API、短輪詢
"""
from client.draft_client import DraftClient, DraftClientError
from client.identity import load_or_create_client_id

__all__ = ["DraftClient", "DraftClientError", "load_or_create_client_id"]
