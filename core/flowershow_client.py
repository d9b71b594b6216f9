"""
Flowershow API 客戶端
封裝站點查詢/建立、差異比對、批次發佈/刪除，以及 presigned URL 直傳
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from utils import SyncLogger, LogIcons, retry
from .errors import AuthError, RemoteError, UploadError
from .models import (
    DeleteResult,
    FileRecord,
    Site,
    SiteStatus,
    SyncResponse,
    UploadDirective,
    UserInfo,
)


class FlowershowClient:
    """Flowershow API 客戶端（每個方法一次 HTTP 往返，Bearer token 認證）"""

    def __init__(
        self,
        api_url: str,
        token: str,
        logger: Optional[SyncLogger] = None,
        timeout: int = 30,
        max_attempts: int = 2,
        retry_delay: float = 1.0,
        retry_backoff: float = 2.0
    ):
        """
        初始化客戶端

        Args:
            api_url: API 基礎 URL
            token: Flowershow PAT token
            logger: 日誌記錄器
            timeout: 單次請求逾時（秒）
            max_attempts: 變更類請求的最大嘗試次數（含第一次）
            retry_delay: 第一次重試前的等待秒數
            retry_backoff: 退避係數
        """
        self.api_url = api_url.rstrip('/')
        self.logger = logger
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff

        # API 請求共用連線與認證標頭
        self.session = requests.Session()
        self.session.headers.update({'Authorization': f'Bearer {token}'})

        # presigned URL 不可帶 Authorization
        self.storage_session = requests.Session()

    def _log(self, level: str, icon: str, message: str, exc_info=None):
        """內部日誌方法"""
        if not self.logger:
            return
        if level == 'error':
            self.logger.error(icon, message, exc_info=exc_info)
        elif level == 'warning':
            self.logger.warning(icon, message)
        elif level == 'debug':
            self.logger.debug(message)
        else:
            self.logger.info(icon, message)

    @staticmethod
    def _server_message(resp: requests.Response) -> Optional[str]:
        try:
            body = resp.json()
        except ValueError:
            text = (resp.text or '').strip()
            return text[:500] or None
        if isinstance(body, dict):
            return body.get('message') or body.get('error')
        return None

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        單次 API 請求

        - 401/403：AuthError
        - 其他非 2xx：RemoteError（帶伺服器訊息）
        - 連線失敗/逾時：RemoteError(status_code=None)
        """
        url = f"{self.api_url}{endpoint}"
        self._log('debug', '', f"{method} {url}")

        try:
            resp = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteError(f"{action}失敗: {e}") from e

        code = resp.status_code
        if 200 <= code <= 299:
            return resp

        server_message = self._server_message(resp)
        message = server_message or f"{action}失敗: HTTP {code} {resp.reason or ''}".strip()

        if code in (401, 403):
            raise AuthError(message, status_code=code, server_message=server_message)
        raise RemoteError(message, status_code=code, server_message=server_message)

    def _retrying(self, func, exceptions=(RemoteError,)):
        return retry(
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            backoff=self.retry_backoff,
            exceptions=exceptions,
            should_retry=lambda e: e.retryable,
            logger=self.logger,
        )(func)

    def _mutate(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """變更類請求：暫時性故障（429 / 5xx / 無回應）依重試策略再試"""
        return self._retrying(self._request)(method, endpoint, **kwargs)

    @staticmethod
    def _json(resp: requests.Response, action: str) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteError(f"{action}失敗: 回應不是有效的 JSON") from e
        if not isinstance(data, dict):
            raise RemoteError(f"{action}失敗: 回應格式錯誤")
        return data

    # ── 使用者 / 站點 ─────────────────────────────────────────

    def get_user_info(self) -> UserInfo:
        """取得 token 對應的使用者（任何非 2xx 都視為憑證無效）"""
        action = "取得使用者資訊"
        try:
            resp = self._request("GET", "/api/user", action=action)
        except AuthError:
            raise
        except RemoteError as e:
            if e.status_code is None:
                raise
            raise AuthError(e.message, status_code=e.status_code, server_message=e.server_message) from e
        return UserInfo.from_dict(self._json(resp, action))

    def get_site_by_name(self, owner: str, name: str) -> Optional[Site]:
        """依擁有者與站點名稱查詢，404 回傳 None"""
        action = "查詢站點"
        endpoint = f"/api/sites/{quote(owner, safe='')}/{quote(name, safe='')}"
        try:
            resp = self._request("GET", endpoint, action=action)
        except RemoteError as e:
            if e.status_code == 404:
                return None
            raise
        return Site.from_dict(self._json(resp, action)['site'])

    def create_site(self, name: str, overwrite: bool = False) -> Site:
        """建立站點（伺服器端依名稱冪等）"""
        action = "建立站點"
        resp = self._mutate(
            "POST",
            "/api/sites",
            action=action,
            json={'projectName': name, 'overwrite': overwrite},
        )
        return Site.from_dict(self._json(resp, action)['site'])

    def get_sites(self) -> Tuple[List[Site], int]:
        """列出使用者的所有站點"""
        action = "取得站點清單"
        resp = self._request("GET", "/api/sites", action=action)
        data = self._json(resp, action)
        sites = [Site.from_dict(s) for s in data.get('sites') or []]
        return sites, int(data.get('total', len(sites)))

    def get_site_status(self, site_id: str) -> SiteStatus:
        """站點處理狀態"""
        action = "取得站點狀態"
        resp = self._request(
            "GET",
            f"/api/sites/id/{quote(site_id, safe='')}/status",
            action=action,
        )
        return SiteStatus.from_dict(self._json(resp, action))

    # ── 檔案 ─────────────────────────────────────────────────

    def sync_files(
        self,
        site_id: str,
        files: List[FileRecord],
        dry_run: bool = False
    ) -> SyncResponse:
        """
        以完整的本地檔案集合向伺服器要求差異

        dry_run=True 不會有任何副作用，只用於狀態顯示，因此不套用重試。
        """
        action = "比對檔案"
        endpoint = f"/api/sites/id/{quote(site_id, safe='')}/sync"
        kwargs = dict(
            action=action,
            params={'dryRun': 'true'} if dry_run else None,
            json={'files': [f.to_dict() for f in files]},
        )
        if dry_run:
            resp = self._request("POST", endpoint, **kwargs)
        else:
            resp = self._mutate("POST", endpoint, **kwargs)
        return SyncResponse.from_dict(self._json(resp, action))

    def publish_files(self, site_id: str, files: List[FileRecord]) -> List[UploadDirective]:
        """
        登記要發佈的檔案，回傳需要上傳內容的指令

        只影響列出的檔案；哈希已相同的檔案伺服器可能不回傳指令。
        """
        action = "發佈檔案"
        resp = self._mutate(
            "POST",
            f"/api/sites/id/{quote(site_id, safe='')}/files",
            action=action,
            json={'files': [f.to_dict() for f in files]},
        )
        data = self._json(resp, action)
        return [UploadDirective.from_dict(d) for d in data.get('files') or []]

    def delete_files(self, site_id: str, paths: List[str]) -> DeleteResult:
        """
        批次取消發佈；notFound 不在此處當作錯誤，交給呼叫端判斷

        前一次嘗試沒有拿到回應時，伺服器可能已經刪除；
        此時重試回報的 notFound 視為已刪除。
        """
        action = "刪除檔案"
        paths = list(paths)
        lost_response = []

        def send() -> requests.Response:
            try:
                return self._request(
                    "DELETE",
                    f"/api/sites/id/{quote(site_id, safe='')}/files",
                    action=action,
                    json={'paths': paths},
                )
            except RemoteError as e:
                if e.status_code is None:
                    lost_response.append(e)
                raise

        result = DeleteResult.from_dict(self._json(self._retrying(send)(), action))

        if lost_response and result.not_found:
            requested = set(paths)
            applied = [p for p in result.not_found if p in requested]
            if applied:
                self._log('debug', '', f"前次刪除可能已生效，視為已刪除: {', '.join(applied)}")
                result.deleted.extend(applied)
                result.not_found = [p for p in result.not_found if p not in requested]
        return result

    def upload_to_r2(
        self,
        upload_url: str,
        content: bytes,
        content_type: str,
        path: Optional[str] = None
    ) -> bool:
        """以 PUT 將原始位元組上傳到 presigned URL，失敗拋出 UploadError（僅影響該檔案）"""
        send = self._retrying(self._put_object, exceptions=(UploadError,))
        return send(upload_url, content, content_type, path)

    def _put_object(
        self,
        upload_url: str,
        content: bytes,
        content_type: str,
        path: Optional[str]
    ) -> bool:
        label = path or upload_url.split('?', 1)[0]
        try:
            resp = self.storage_session.put(
                upload_url,
                data=content,
                headers={'Content-Type': content_type},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UploadError(f"上傳失敗 {label}: {e}", path=path) from e

        if not 200 <= resp.status_code <= 299:
            raise UploadError(
                f"上傳失敗 {label}: HTTP {resp.status_code} {resp.reason or ''}".strip(),
                path=path,
                status_code=resp.status_code,
            )

        self._log('debug', LogIcons.UPLOAD, f"已上傳 {label} ({len(content)} bytes)")
        return True
