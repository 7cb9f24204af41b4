"""
Draft Client：單一參與者的 HTTP client

- 以 client_id 身分送出 create / join / ready / select
- poll() 定期重新抓取 Draft，version 有變才通知
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from client.identity import load_or_create_client_id
from models import DraftStatus
from schemas import Champion, DraftResponse

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class DraftClientError(Exception):
    """
    Draft API 回傳錯誤狀態時丟出

    屬性：
        status_code: HTTP status；request 根本沒送達時為 None
        error: Server 給的拒絕代碼（例如 NOT_YOUR_TURN），沒有則為 None
    """

    def __init__(self, status_code: Optional[int], message: str, error: Optional[str] = None) -> None:
        self.status_code = status_code
        self.error = error
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_rejection(self) -> bool:
        return self.status_code == 409


class DraftClient:
    """
    單一參與者的 client session

    參數：
        base_url: Server 位址，例如 http://localhost:8000
        http: requests.Session，或任何有相同 request() 介面的 client
        client_id: 身分 token；不給則從本機檔案讀取（見 load_or_create_client_id）
        timeout: 每個 request 的 timeout 秒數（None 表示不設）
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http: Optional[Any] = None,
        client_id: Optional[str] = None,
        timeout: Optional[float] = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.client_id = client_id or load_or_create_client_id()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> DraftResponse:
        kwargs: Dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = params
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise DraftClientError(None, f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(response)
        return DraftResponse.model_validate(response.json())

    @staticmethod
    def _error_from_response(response) -> DraftClientError:
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = response.text

        if isinstance(detail, dict):
            return DraftClientError(response.status_code, detail.get("message", ""), detail.get("error"))
        return DraftClientError(response.status_code, str(detail))

    def create(self, display_name: Optional[str] = None) -> DraftResponse:
        return self._request("POST", "/api/drafts", json={
            "host_id": self.client_id,
            "display_name": display_name,
        })

    def join(self, draft_id: str, display_name: Optional[str] = None) -> DraftResponse:
        return self._request("POST", f"/api/drafts/{draft_id.strip().upper()}/join", json={
            "actor_id": self.client_id,
            "display_name": display_name,
        })

    def set_ready(self, draft_id: str, is_ready: bool = True) -> DraftResponse:
        return self._request("POST", f"/api/drafts/{draft_id.strip().upper()}/ready", json={
            "actor_id": self.client_id,
            "is_ready": is_ready,
        })

    def select(self, draft_id: str, champion: Champion, phase_index: Optional[int] = None) -> DraftResponse:
        """
        Ban 或 Pick

        phase_index 給畫面上顯示的那一格；重複按下時第二次會被 INVALID_PHASE 拒絕
        """
        return self._request("POST", f"/api/drafts/{draft_id.strip().upper()}/select", json={
            "actor_id": self.client_id,
            "champion": champion.model_dump(mode="json"),
            "phase_index": phase_index,
        })

    def get_state(self, draft_id: str) -> DraftResponse:
        return self._request("GET", "/api/drafts/state", params={"draft_id": draft_id.strip().upper()})

    def poll(
        self,
        draft_id: str,
        on_update: Callable[[DraftResponse], None],
        interval: float = DEFAULT_POLL_INTERVAL,
        stop: Optional[Callable[[], bool]] = None,
        max_polls: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> DraftResponse:
        """
        每 interval 秒重新抓取一次 Draft

        流程：
        1. GET 目前狀態
        2. version 與上次不同才呼叫 on_update
        3. Draft 完成、stop() 為 True、或已抓 max_polls 次就回傳最後的狀態

        異常：
            DraftClientError: 例如 Draft 已過期（404）
        """
        last_version = None
        polls = 0
        while True:
            state = self.get_state(draft_id)
            polls += 1
            if state.version != last_version:
                last_version = state.version
                on_update(state)

            if state.status == DraftStatus.COMPLETE:
                return state
            if stop is not None and stop():
                return state
            if max_polls is not None and polls >= max_polls:
                return state
            sleep(interval)
