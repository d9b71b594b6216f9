"""
資料模型
本地檔案紀錄、遠端站點、上傳指令，以及各 API 回應的結構化包裝
"""

from typing import Any, Dict, List, Optional, Tuple


def _paths(items: Optional[List[Any]]) -> List[str]:
    """API 清單可能是字串或 {path: ...} 物件，統一取出路徑"""
    result = []
    for item in items or []:
        if isinstance(item, dict):
            path = item.get('path')
            if path:
                result.append(path)
        elif item:
            result.append(str(item))
    return result


class FileRecord:
    """單一本地檔案的指紋紀錄（每次操作即時計算，不跨次快取）"""

    def __init__(self, path: str, size: int, content_hash: str):
        self.path = path
        self.size = size
        self.content_hash = content_hash

    def to_dict(self) -> Dict[str, Any]:
        return {'path': self.path, 'size': self.size, 'sha': self.content_hash}

    def __eq__(self, other):
        if not isinstance(other, FileRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"FileRecord({self.path!r}, size={self.size}, sha={self.content_hash[:8]})"


class Site:
    """遠端發佈站點"""

    def __init__(self, id: str, name: str, url: str = "", owner: str = ""):
        self.id = id
        self.name = name
        self.url = url
        self.owner = owner

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Site':
        return cls(
            id=str(data['id']),
            name=data.get('projectName') or data.get('name', ''),
            url=data.get('url', ''),
            owner=data.get('userId') or data.get('owner', ''),
        )

    def __repr__(self):
        return f"Site(id={self.id!r}, name={self.name!r})"


class UploadDirective:
    """一次性的上傳授權（presigned URL），用完即丟"""

    def __init__(
        self,
        path: str,
        upload_url: str,
        content_type: str = "application/octet-stream"
    ):
        self.path = path
        self.upload_url = upload_url
        self.content_type = content_type

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UploadDirective':
        return cls(
            path=data['path'],
            upload_url=data['uploadUrl'],
            content_type=data.get('contentType') or "application/octet-stream",
        )


class UserInfo:
    """目前 token 對應的使用者"""

    def __init__(self, username: Optional[str] = None, email: Optional[str] = None, id: Optional[str] = None):
        self.username = username
        self.email = email
        self.id = id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserInfo':
        return cls(
            username=data.get('username'),
            email=data.get('email'),
            id=data.get('id'),
        )


class SyncResponse:
    """sync 端點的差異結果（四個互斥的路徑清單）"""

    def __init__(
        self,
        to_upload: List[str],
        to_update: List[str],
        deleted: List[str],
        unchanged: List[str],
        dry_run: bool = False
    ):
        self.to_upload = to_upload
        self.to_update = to_update
        self.deleted = deleted
        self.unchanged = unchanged
        self.dry_run = dry_run

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SyncResponse':
        return cls(
            to_upload=_paths(data.get('toUpload')),
            to_update=_paths(data.get('toUpdate')),
            deleted=_paths(data.get('deleted')),
            unchanged=_paths(data.get('unchanged')),
            dry_run=bool(data.get('dryRun', False)),
        )

    def summary(self) -> str:
        return (
            f"+{len(self.to_upload)} ~{len(self.to_update)} "
            f"-{len(self.deleted)} ={len(self.unchanged)}"
        )


class DeleteResult:
    """批次刪除結果"""

    def __init__(self, deleted: List[str], not_found: List[str]):
        self.deleted = deleted
        self.not_found = not_found

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeleteResult':
        return cls(
            deleted=_paths(data.get('deleted')),
            not_found=_paths(data.get('notFound')),
        )


class SiteStatus:
    """站點處理狀態（每個 blob 的 PENDING / SUCCESS / ERROR）"""

    def __init__(
        self,
        site_id: str,
        status: str,
        files: Dict[str, int],
        blobs: List[Dict[str, Any]]
    ):
        self.site_id = site_id
        self.status = status
        self.files = files
        self.blobs = blobs

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SiteStatus':
        return cls(
            site_id=str(data.get('siteId', '')),
            status=data.get('status', ''),
            files=dict(data.get('files') or {}),
            blobs=list(data.get('blobs') or []),
        )

    def failed_blobs(self) -> List[Tuple[str, str]]:
        return [
            (b.get('path', ''), b.get('syncError', ''))
            for b in self.blobs
            if b.get('syncStatus') == 'ERROR'
        ]


class PublishStatus:
    """
    本地檔案的分類結果

    unchanged / changed / new 為本地（過濾後）檔案的分割，
    deleted 為遠端存在但本地已看不到的路徑。
    """

    def __init__(
        self,
        unchanged_files=None,
        changed_files=None,
        new_files=None,
        deleted_files=None,
        remote_unavailable: bool = False
    ):
        self.unchanged_files = list(unchanged_files or [])
        self.changed_files = list(changed_files or [])
        self.new_files = list(new_files or [])
        self.deleted_files: List[str] = list(deleted_files or [])
        # 遠端查詢失敗時為 True，此時 new_files 涵蓋所有本地檔案
        self.remote_unavailable = remote_unavailable

    def has_changes(self) -> bool:
        return bool(self.changed_files or self.new_files or self.deleted_files)

    def summary(self) -> str:
        return (
            f"+{len(self.new_files)} ~{len(self.changed_files)} "
            f"-{len(self.deleted_files)} ={len(self.unchanged_files)}"
        )


class PublishResult:
    """批次發佈結果"""

    def __init__(
        self,
        site_url: str,
        files_published: int,
        uploaded: int = 0,
        deleted: int = 0,
        failed_uploads: Optional[List[Tuple[str, str]]] = None
    ):
        self.site_url = site_url
        # 實際受影響的檔案數（發佈成功 + 刪除）
        self.files_published = files_published
        self.uploaded = uploaded
        self.deleted = deleted
        self.failed_uploads = list(failed_uploads or [])

    @property
    def partial(self) -> bool:
        return bool(self.failed_uploads)
