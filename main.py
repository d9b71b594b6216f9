"""
Vault Publish - 主入口
將本地 vault 發佈到 Flowershow，支援狀態查詢、單篇發佈與監聽模式
"""

import sys
import time
import argparse
import threading
from pathlib import Path

from utils import ConfigLoader, SyncLogger, LogIcons
from core import (
    FileMonitor,
    FlowershowClient,
    PolicyError,
    ProgressReporter,
    PublishError,
    Publisher,
)
from vaults.local import LocalVault


# Vault 類型映射
VAULT_TYPES = {
    'local': LocalVault,
}

# dry-run 清單最多顯示的筆數
_PREVIEW_LIMIT = 10


class PublishApplication:
    """發佈應用程式"""

    def __init__(self, config_path: str):
        """
        初始化應用程式

        Args:
            config_path: 配置文件路徑
        """
        self.config_path = config_path
        self.config = ConfigLoader.load(config_path)

        self.logger = SyncLogger(
            self.config['project']['name'],
            log_dir=ConfigLoader.get_nested(self.config, 'logging.dir', 'logs'),
            verbose=bool(ConfigLoader.get_nested(self.config, 'logging.verbose', False)),
        )

        vault_type = ConfigLoader.get_nested(self.config, 'vault.type', 'local')
        vault_class = VAULT_TYPES.get(vault_type)
        if not vault_class:
            raise ValueError(
                f"不支援的 vault 類型: {vault_type}\n"
                f"可用類型: {', '.join(VAULT_TYPES.keys())}"
            )
        self.vault = vault_class(self.config['vault']['path'])

        self.progress = ProgressReporter()
        self.progress.subscribe(self._on_progress)
        self.publisher = self._build_publisher()

        # 發佈鎖（防止監聽模式下重疊發佈）
        self.publish_lock = threading.Lock()

    def _build_publisher(self) -> Publisher:
        """依目前設定建立新的客戶端與引擎（站點快取隨之重置）"""
        retry_cfg = ConfigLoader.get_nested(self.config, 'sync.retry', {}) or {}
        client = FlowershowClient(
            api_url=self.config['flowershow']['api_url'],
            token=self.config['flowershow']['token'],
            logger=self.logger,
            timeout=ConfigLoader.get_nested(self.config, 'sync.timeout', 30),
            max_attempts=retry_cfg.get('max_attempts', 2),
            retry_delay=retry_cfg.get('delay', 1.0),
            retry_backoff=retry_cfg.get('backoff', 2.0),
        )
        return Publisher(
            config=self.config,
            client=client,
            vault=self.vault,
            logger=self.logger,
            progress=self.progress,
        )

    def reload_settings(self) -> None:
        """重新讀取配置並重建引擎"""
        self.config = ConfigLoader.load(self.config_path)
        self.publisher = self._build_publisher()
        self.logger.info(LogIcons.PROGRESS, "設定已重新載入")

    def _on_progress(self, snap) -> None:
        if not snap.active or snap.finished:
            return
        self.logger.debug(
            f"進度: 發佈 {snap.publish_done}/{snap.publish_total}，"
            f"刪除 {snap.delete_done}/{snap.delete_total}"
        )

    # ── 各模式 ───────────────────────────────────────────────

    def run_check(self) -> bool:
        ok, message = self.publisher.test_connection()
        if ok:
            self.logger.success(LogIcons.COMPLETE, message)
        else:
            self.logger.error(LogIcons.ERROR, message)
        return ok

    def run_status(self) -> None:
        status = self.publisher.get_publish_status()
        if status.remote_unavailable:
            self.logger.warning(LogIcons.WARNING, "遠端狀態未知，以下「新增」清單可能包含已發佈的檔案")

        self._print_list(LogIcons.NEW, "新增", [f.path for f in status.new_files], "+")
        self._print_list(LogIcons.UPDATE, "變更", [f.path for f in status.changed_files], "~")
        self._print_list(LogIcons.DELETE, "刪除", status.deleted_files, "-")
        self.logger.info(LogIcons.COMPLETE, f"未變更 {len(status.unchanged_files)} 個檔案")

    def run_publish(self, dry_run: bool = False) -> None:
        if dry_run:
            self.logger.info(LogIcons.WARNING, "Dry-run 模式：僅預覽，不實際執行")
            self.run_status()
            return

        result = self.publisher.publish_all()
        if result is not None:
            self._report(result)

    def run_note(self, note_path: str, with_embeds: bool = True) -> None:
        file = self.vault.get_file(note_path)
        if file is None:
            raise FileNotFoundError(f"找不到筆記: {note_path}")
        if file.extension not in ('md', 'mdx'):
            raise ValueError(f"不是 Markdown 筆記: {note_path}")

        result = self.publisher.publish_single_note_with_embeds(file, with_embeds=with_embeds)
        self._report(result)

    def run_watch(self) -> None:
        """執行監聽模式"""
        self._on_vault_change()

        monitor = FileMonitor(
            watch_path=self.config['vault']['path'],
            callback=self._on_vault_change,
            delay=ConfigLoader.get_nested(self.config, 'sync.watch_delay', 10),
        )

        monitor.start()
        self.logger.info(LogIcons.WATCH, "監控模式已啟動，按 Ctrl+C 停止...")

        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.logger.info(LogIcons.WARNING, "停止監控...")
            monitor.stop()
            self.logger.info(LogIcons.COMPLETE, "已安全退出")

    def _on_vault_change(self) -> None:
        """vault 變更回調"""
        if self.publish_lock.acquire(blocking=False):
            try:
                self.logger.info(LogIcons.PROGRESS, "偵測到檔案變更，開始發佈...")
                self.run_publish()
            except PublishError as e:
                self.logger.error(LogIcons.ERROR, f"發佈失敗: {e}")
            finally:
                self.publish_lock.release()
        else:
            self.logger.warning(LogIcons.WARNING, "上一次發佈尚未完成，跳過此次觸發")

    # ── 輸出 ─────────────────────────────────────────────────

    def _report(self, result) -> None:
        self.logger.success(
            LogIcons.COMPLETE,
            f"已發佈 {result.files_published} 個檔案 → {result.site_url}"
        )
        for path, error in result.failed_uploads:
            self.logger.warning(LogIcons.WARNING, f"  ! {path}: {error}")

    def _print_list(self, icon: str, label: str, paths, sign: str) -> None:
        if not paths:
            return
        self.logger.info(icon, f"待{label} ({len(paths)}):")
        for path in paths[:_PREVIEW_LIMIT]:
            self.logger.info("  ", f"  {sign} {path}")
        if len(paths) > _PREVIEW_LIMIT:
            self.logger.info("  ", f"  ... 還有 {len(paths) - _PREVIEW_LIMIT} 個")


def main():
    """主函數"""
    parser = argparse.ArgumentParser(
        description='Vault Publish - 將本地 vault 發佈到 Flowershow',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
範例:
  # 檢查 token 與站點
  python main.py --config config/blog.yaml --mode check

  # 查看待發佈的變更
  python main.py --config config/blog.yaml --mode status

  # 發佈所有變更
  python main.py --config config/blog.yaml --mode publish

  # 發佈單篇筆記（含嵌入的圖片）
  python main.py --config config/blog.yaml --mode note --note blog/hello.md

  # 監聽模式（持續運行）
  python main.py --config config/blog.yaml --mode watch
        """
    )

    parser.add_argument(
        '--config',
        required=True,
        help='配置文件路徑 (例如: config/blog.yaml)'
    )

    parser.add_argument(
        '--mode',
        choices=['check', 'status', 'publish', 'note', 'watch'],
        default='publish',
        help='運行模式 (預設: publish)'
    )

    parser.add_argument(
        '--note',
        help='note 模式下要發佈的筆記（vault 相對路徑）'
    )

    parser.add_argument(
        '--no-embeds',
        action='store_true',
        help='note 模式下不發佈內文嵌入的檔案'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Dry-run 模式：僅預覽變更，不實際執行（僅在 publish 模式下有效）'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"❌ 錯誤：配置文件不存在: {args.config}")
        sys.exit(1)

    if args.mode == 'note' and not args.note:
        parser.error('note 模式需要 --note')

    try:
        app = PublishApplication(args.config)
    except Exception as e:
        print(f"❌ 初始化失敗: {e}")
        sys.exit(1)

    try:
        if args.mode == 'check':
            sys.exit(0 if app.run_check() else 1)
        elif args.mode == 'status':
            app.run_status()
        elif args.mode == 'publish':
            app.run_publish(dry_run=args.dry_run)
        elif args.mode == 'note':
            app.run_note(args.note, with_embeds=not args.no_embeds)
        else:
            if args.dry_run:
                print("⚠️  警告：Dry-run 模式僅在 publish 模式下有效，已忽略")
            app.run_watch()
    except KeyboardInterrupt:
        app.logger.info(LogIcons.WARNING, "使用者中斷")
        sys.exit(0)
    except PolicyError as e:
        app.logger.info(LogIcons.SKIP, f"無法發佈：{e}")
        sys.exit(0)
    except (PublishError, FileNotFoundError, ValueError) as e:
        app.logger.error(LogIcons.ERROR, f"執行失敗: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
