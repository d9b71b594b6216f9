"""
錯誤類型
發佈流程中所有可預期的失敗都以下列類型之一拋出，呼叫端依類型決定如何呈現
"""

from typing import List, Optional


class PublishError(Exception):
    """發佈系統錯誤基類"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PublishError):
    """請求結構無效（空的批次、缺少必要設定等），不重試"""


class PolicyError(PublishError):
    """檔案本身標記為不發佈（front-matter `publish: false`）"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class RemoteError(PublishError):
    """
    API 回傳非 2xx（或連線失敗）

    status_code 為 None 代表請求根本沒有拿到回應（逾時、連線中斷）。
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message

    @property
    def retryable(self) -> bool:
        """429 / 5xx / 無回應 視為暫時性故障"""
        if self.status_code is None:
            return True
        return self.status_code == 429 or 500 <= self.status_code <= 599


class AuthError(RemoteError):
    """憑證被遠端拒絕"""

    @property
    def retryable(self) -> bool:
        return False


class UploadError(RemoteError):
    """單一檔案的 storage PUT 失敗，不影響同批其他檔案"""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, status_code=status_code)
        self.path = path


class ReconciliationError(PublishError):
    """要求刪除的路徑在遠端不存在（本地與遠端狀態分歧）"""

    def __init__(self, message: str, paths: List[str]):
        super().__init__(message)
        self.paths = list(paths)
