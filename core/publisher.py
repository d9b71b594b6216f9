"""
發佈引擎
解析/建立遠端站點、計算本地檔案指紋、向遠端要求差異並分類，
執行批次刪除與上傳，過程中回報進度
"""

import re
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Tuple

from utils import ConfigLoader, SyncLogger, LogIcons
from .errors import (
    PolicyError,
    PublishError,
    ReconciliationError,
    RemoteError,
    UploadError,
    ValidationError,
)
from .flowershow_client import FlowershowClient
from .hash_calculator import HashCalculator
from .models import FileRecord, PublishResult, PublishStatus, Site, UploadDirective
from .path_policy import DEFAULT_EXCLUDE_PATTERNS, PathPolicy
from .progress import ProgressReporter
from .validator import validate_publish_frontmatter, validate_settings
from .vault import BaseVault, VaultFile


# front-matter 中會引用圖片的欄位
FRONTMATTER_IMAGE_FIELDS = ('image', 'avatar')

_WIKILINK_RE = re.compile(r'^\[\[([^\]]+)\]\]$')


class PublishPhase:
    """單次操作的狀態（成功或拋出例外後都停在 DONE）"""
    IDLE = "IDLE"
    SITE_RESOLVING = "SITE_RESOLVING"
    DELETING = "DELETING"
    PUBLISHING = "PUBLISHING"
    FINALIZING = "FINALIZING"
    DONE = "DONE"


class Publisher:
    """
    發佈引擎

    站點與使用者名稱在第一次解析後快取於實例上；設定變更時由宿主
    重建新的 Publisher，快取隨之失效。同一時間只執行一個操作，
    重入保護由呼叫端負責。
    """

    def __init__(
        self,
        config: Dict[str, Any],
        client: FlowershowClient,
        vault: BaseVault,
        logger: SyncLogger,
        progress: Optional[ProgressReporter] = None
    ):
        """
        初始化發佈引擎

        Args:
            config: 完整配置字典
            client: Flowershow 客戶端
            vault: 宿主提供的 vault 能力
            logger: 日誌記錄器
            progress: 進度回報器（省略時自建一個）
        """
        self.config = config
        self.client = client
        self.vault = vault
        self.logger = logger
        self.progress = progress or ProgressReporter()

        # 從配置提取常用參數
        self.token = ConfigLoader.get_nested(config, 'flowershow.token', '')
        self.site_name = ConfigLoader.get_nested(config, 'flowershow.site_name', '')
        self.policy = PathPolicy(
            root_dir=ConfigLoader.get_nested(config, 'vault.root_dir', '') or '',
            exclude_patterns=ConfigLoader.get_nested(
                config, 'vault.exclude_patterns', DEFAULT_EXCLUDE_PATTERNS
            ),
            logger=logger,
        )
        self.max_workers = max(1, int(ConfigLoader.get_nested(config, 'sync.max_workers.upload', 8)))
        self.progress_linger = float(ConfigLoader.get_nested(config, 'sync.progress_linger', 1.0))

        self.phase = PublishPhase.IDLE

        self._site: Optional[Site] = None
        self._username: Optional[str] = None
        self._site_lock = threading.Lock()

    # ─────────────────────────────────────────────────────────────
    # 站點
    # ─────────────────────────────────────────────────────────────

    def _validate(self) -> None:
        validate_settings(self.token, self.site_name)

    def _get_username(self) -> str:
        if self._username is None:
            user = self.client.get_user_info()
            if not user.username:
                raise RemoteError("無法取得使用者名稱，請確認 token 權限")
            self._username = user.username
            self.logger.info(LogIcons.USER, f"已登入: {self._username}")
        return self._username

    def _lookup_site(self) -> Optional[Site]:
        """查詢既有站點（不建立）"""
        with self._site_lock:
            if self._site is None:
                site = self.client.get_site_by_name(self._get_username(), self.site_name)
                if site is not None:
                    self._site = site
            return self._site

    def ensure_site(self) -> Site:
        """取得站點，不存在時建立；並發呼叫只會解析一次"""
        self._validate()

        with self._site_lock:
            if self._site is not None:
                return self._site

            username = self._get_username()
            site = self.client.get_site_by_name(username, self.site_name)

            if site is None:
                self.logger.info(LogIcons.SITE, f"站點不存在，建立新站點: {self.site_name}")
                site = self.client.create_site(self.site_name)
            else:
                self.logger.debug(f"使用既有站點 {site.name} ({site.id})")

            self._site = site
            return site

    def get_site_id(self) -> str:
        return self.ensure_site().id

    def test_connection(self) -> Tuple[bool, str]:
        """檢查設定、token 與站點是否存在（不會拋出）"""
        try:
            self._validate()
            username = self._get_username()
            site = self._lookup_site()
        except PublishError as e:
            return False, f"連線失敗: {e.message}"

        if site is None:
            return True, f"已連線為 {username}；站點 {self.site_name} 尚未建立，首次發佈時會自動建立"
        return True, f"已連線為 {username}；站點 {site.name}: {site.url}"

    # ─────────────────────────────────────────────────────────────
    # 本地檔案
    # ─────────────────────────────────────────────────────────────

    def _publishable_files(self) -> List[VaultFile]:
        files = []
        for file in self.vault.list_files():
            try:
                if self.policy.should_skip(file, self.vault):
                    continue
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(LogIcons.SKIP, f"無法讀取，略過: {file.path} ({e})")
                continue
            files.append(file)
        return files

    def _read_content(self, file: VaultFile) -> bytes:
        """純文字副檔名以文字讀取後轉 UTF-8，其餘讀原始位元組"""
        if HashCalculator.is_plain_text_extension(file.extension):
            return self.vault.read_text(file).encode('utf-8')
        return self.vault.read_binary(file)

    def _file_record(self, file: VaultFile) -> FileRecord:
        content = self._read_content(file)
        return FileRecord(
            path=self.policy.to_remote_path(file.path),
            size=len(content),
            content_hash=HashCalculator.calculate(content),
        )

    def _try_file_record(self, file: VaultFile) -> Tuple[Optional[FileRecord], Optional[str]]:
        try:
            return self._file_record(file), None
        except (OSError, UnicodeDecodeError) as e:
            return None, str(e)

    def _build_records(
        self,
        files: List[VaultFile]
    ) -> Tuple[List[VaultFile], List[FileRecord], List[Tuple[str, str]]]:
        """
        並行計算指紋（結果順序與輸入一致）

        Returns:
            (可讀取的檔案, 對應的紀錄, [(無法讀取的路徑, 錯誤訊息), ...])
        """
        readable: List[VaultFile] = []
        records: List[FileRecord] = []
        unreadable: List[Tuple[str, str]] = []
        if not files:
            return readable, records, unreadable

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(self._try_file_record, files))

        for file, (record, error) in zip(files, results):
            if record is None:
                self.logger.error(LogIcons.ERROR, f"讀取失敗 {file.path}: {error}")
                unreadable.append((file.path, error))
            else:
                readable.append(file)
                records.append(record)
        return readable, records, unreadable

    # ─────────────────────────────────────────────────────────────
    # 狀態
    # ─────────────────────────────────────────────────────────────

    def get_publish_status(self) -> PublishStatus:
        """
        唯讀的差異查詢

        站點尚未建立時全部視為新增且不呼叫 sync；
        查詢過程發生任何錯誤時也全部視為新增（remote_unavailable=True），
        讓狀態顯示在遠端暫時無法連線時仍可使用。
        """
        self._validate()

        self.logger.info(LogIcons.SCAN, "掃描本地檔案...")
        local_files = self._publishable_files()

        try:
            site = self._lookup_site()
            if site is None:
                self.logger.info(LogIcons.SITE, f"站點 {self.site_name} 尚未建立，所有檔案視為新增")
                return PublishStatus(new_files=local_files)

            readable, records, unreadable = self._build_records(local_files)
            response = self.client.sync_files(site.id, records, dry_run=True)
            status = self._classify(readable, records, response.to_update, response.unchanged, response.deleted)

            # 讀不到的檔案仍列為新增，發佈時記在 failed_uploads
            unreadable_paths = {path for path, _ in unreadable}
            status.new_files.extend(f for f in local_files if f.path in unreadable_paths)

        except Exception as e:
            self.logger.warning(
                LogIcons.WARNING,
                f"無法取得遠端狀態，暫時將所有檔案視為新增: {e}"
            )
            return PublishStatus(new_files=local_files, remote_unavailable=True)

        self.logger.info(LogIcons.PROGRESS, f"變更統計: {status.summary()}")
        return status

    def _classify(
        self,
        local_files: List[VaultFile],
        records: List[FileRecord],
        changed_paths: List[str],
        unchanged_paths: List[str],
        remote_deleted: List[str]
    ) -> PublishStatus:
        """
        依遠端回傳的路徑集合分類

        每個本地檔案恰好落入 unchanged / changed / new 其中之一；
        遠端未提及的本地檔案歸為 new。
        """
        changed_set = set(changed_paths)
        unchanged_set = set(unchanged_paths)
        status = PublishStatus()
        seen = set()

        for file, record in zip(local_files, records):
            seen.add(record.path)
            if record.path in changed_set:
                status.changed_files.append(file)
            elif record.path in unchanged_set:
                status.unchanged_files.append(file)
            else:
                status.new_files.append(file)

        for remote_path in remote_deleted:
            if remote_path not in seen:
                status.deleted_files.append(self.policy.to_vault_path(remote_path))

        return status

    # ─────────────────────────────────────────────────────────────
    # 發佈
    # ─────────────────────────────────────────────────────────────

    def publish_single_note_with_embeds(self, file: VaultFile, with_embeds: bool = True) -> PublishResult:
        """
        發佈單一筆記，連同 front-matter 圖片欄位與（可選）內文嵌入的檔案

        Raises:
            PolicyError: 筆記標記為 publish: false（不會發出任何網路請求）
        """
        frontmatter = self.vault.get_frontmatter(file)
        validate_publish_frontmatter(frontmatter, file.path)

        if not self.policy.contains(file.path):
            raise PolicyError(f"筆記不在發佈根目錄 {self.policy.root_dir} 內: {file.path}", path=file.path)
        if self.policy.excludes(file.path):
            raise PolicyError(f"筆記符合排除規則，無法發佈: {file.path}", path=file.path)

        files: List[VaultFile] = [file]
        seen = {file.path}

        def add(link: str, origin: str) -> None:
            target = self.vault.resolve_link(link, file.path)
            if target is None:
                self.logger.debug(f"{origin} 連結無法解析: {link}")
                return
            if target.path in seen:
                return
            seen.add(target.path)
            if self.policy.should_skip(target, self.vault):
                self.logger.info(LogIcons.SKIP, f"略過不發佈的嵌入檔案: {target.path}")
                return
            files.append(target)

        for field in FRONTMATTER_IMAGE_FIELDS:
            value = (frontmatter or {}).get(field)
            if isinstance(value, str):
                match = _WIKILINK_RE.match(value.strip())
                if match:
                    add(match.group(1), field)

        if with_embeds:
            for link in self.vault.get_embeds(file):
                add(link, "embed")

        self.logger.info(LogIcons.NOTE, f"發佈筆記 {file.path}（共 {len(files)} 個檔案）")
        return self.publish_batch(files_to_publish=files)

    def publish_all(self) -> Optional[PublishResult]:
        """發佈所有新增/變更的檔案並取消發佈已刪除的檔案；沒有變更時回傳 None"""
        status = self.get_publish_status()

        if not status.has_changes():
            self.logger.info(LogIcons.COMPLETE, "沒有需要發佈或刪除的檔案")
            return None

        if status.remote_unavailable:
            self.logger.warning(
                LogIcons.WARNING,
                "遠端狀態未知，將重新登記所有檔案（內容相同的檔案不會重新上傳）"
            )

        return self.publish_batch(
            files_to_publish=status.changed_files + status.new_files,
            files_to_delete=status.deleted_files,
        )

    def publish_batch(
        self,
        files_to_publish: Optional[List[VaultFile]] = None,
        files_to_delete: Optional[List[str]] = None
    ) -> PublishResult:
        """
        執行批次刪除與發佈（核心流程）

        Args:
            files_to_publish: 要發佈的檔案
            files_to_delete: 要取消發佈的 vault 路徑

        Returns:
            站點 URL 與實際受影響的檔案數；個別上傳失敗不會中斷整批，
            會記錄在 failed_uploads 並反映在 files_published 上

        Raises:
            ValidationError: 兩個清單都是空的
            ReconciliationError: 要刪除的路徑在遠端不存在
        """
        files_to_publish = self._dedupe(files_to_publish or [])
        files_to_delete = list(dict.fromkeys(files_to_delete or []))

        if not files_to_publish and not files_to_delete:
            raise ValidationError("沒有要發佈或刪除的檔案")

        self._validate()
        self.progress.start(publish_total=len(files_to_publish), delete_total=len(files_to_delete))

        try:
            self.phase = PublishPhase.SITE_RESOLVING
            site = self.ensure_site()

            deleted = 0
            if files_to_delete:
                self.phase = PublishPhase.DELETING
                deleted = self._delete(site, files_to_delete)

            uploaded = 0
            failed: List[Tuple[str, str]] = []
            published = 0
            if files_to_publish:
                self.phase = PublishPhase.PUBLISHING
                published, uploaded, failed = self._publish(site, files_to_publish)

            self.phase = PublishPhase.FINALIZING
            self.progress.finish(self.progress_linger)

        except Exception as e:
            self.progress.finish(self.progress_linger, success=False)
            self.phase = PublishPhase.DONE
            self.logger.error(LogIcons.ERROR, f"發佈失敗: {e}", exc_info=e)
            raise

        self.phase = PublishPhase.DONE

        if failed:
            self.logger.warning(
                LogIcons.WARNING,
                f"發佈部分完成：{len(failed)} 個檔案上傳失敗"
            )
        self.logger.success(
            LogIcons.COMPLETE,
            f"發佈完成：發佈 {published} 個、上傳 {uploaded} 個、刪除 {deleted} 個 → {site.url}"
        )

        return PublishResult(
            site_url=site.url,
            files_published=published + deleted,
            uploaded=uploaded,
            deleted=deleted,
            failed_uploads=failed,
        )

    @staticmethod
    def _dedupe(files: List[VaultFile]) -> List[VaultFile]:
        unique: Dict[str, VaultFile] = {}
        for file in files:
            unique.setdefault(file.path, file)
        return list(unique.values())

    def _delete(self, site: Site, vault_paths: List[str]) -> int:
        """批次取消發佈；遠端回報 notFound 視為整批失敗"""
        paths = [self.policy.to_remote_path(p) for p in vault_paths]
        self.logger.info(LogIcons.DELETE, f"取消發佈 {len(paths)} 個檔案...")

        result = self.client.delete_files(site.id, paths)

        if result.not_found:
            raise ReconciliationError(
                f"遠端找不到要刪除的檔案: {', '.join(result.not_found)}",
                paths=result.not_found,
            )

        for path in result.deleted:
            self.logger.info(LogIcons.DELETE, f"已刪除: {path}")
            self.progress.increment_delete()

        return len(result.deleted)

    def _publish(
        self,
        site: Site,
        files: List[VaultFile]
    ) -> Tuple[int, int, List[Tuple[str, str]]]:
        """
        登記並上傳檔案

        Returns:
            (成功發佈數, 實際上傳數, [(路徑, 錯誤訊息), ...])
        """
        outside = [f for f in files if not self.policy.contains(f.path)]
        for file in outside:
            self.logger.warning(LogIcons.SKIP, f"不在發佈根目錄內，略過: {file.path}")
        files = [f for f in files if self.policy.contains(f.path)]
        if not files:
            return 0, 0, []

        self.logger.info(LogIcons.SCAN, f"計算 {len(files)} 個檔案的指紋...")
        files, records, failed = self._build_records(files)
        read_failed = len(failed)
        # 讀取失敗的檔案不登記，只記在 failed 並推進進度
        for _ in failed:
            self.progress.increment_publish()
        if not records:
            return 0, 0, failed
        by_remote_path = {r.path: f for r, f in zip(records, files)}

        directives = self.client.publish_files(site.id, records)

        # 伺服器省略的檔案內容已一致，視為完成
        pending_paths = {d.path for d in directives}
        for path in by_remote_path:
            if path not in pending_paths:
                self.progress.increment_publish()

        uploads: List[Tuple[UploadDirective, VaultFile]] = []
        for directive in directives:
            file = by_remote_path.get(directive.path)
            if file is None:
                self.logger.debug(f"上傳指令沒有對應的本地檔案，略過: {directive.path}")
                continue
            uploads.append((directive, file))

        if uploads:
            self.logger.info(
                LogIcons.UPLOAD,
                f"上傳中 (執行緒: {self.max_workers})... 目標: {len(uploads)}"
            )

        uploaded = 0

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._upload, directive, file): file
                for directive, file in uploads
            }

            for future in as_completed(futures):
                file = futures[future]
                error = future.result()
                if error is None:
                    uploaded += 1
                    self.logger.success(LogIcons.UPLOAD, f"已上傳: {file.path}")
                else:
                    failed.append((file.path, error))
                self.progress.increment_publish()

        return len(records) - (len(failed) - read_failed), uploaded, failed

    def _upload(self, directive: UploadDirective, file: VaultFile) -> Optional[str]:
        """上傳單一檔案；失敗回傳錯誤訊息（不影響同批其他檔案）"""
        try:
            content = self._read_content(file)
            self.client.upload_to_r2(
                directive.upload_url,
                content,
                directive.content_type,
                path=file.path,
            )
            return None
        except (UploadError, OSError, UnicodeDecodeError) as e:
            self.logger.error(LogIcons.ERROR, f"上傳失敗 {file.path}: {e}")
            return str(e)
