"""
統一日誌系統
終端輸出精簡訊息，檔案保留完整紀錄；log_dir 為空時只輸出到終端
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


_CONSOLE_FORMAT = ('[%(asctime)s] %(message)s', '%H:%M:%S')
_FILE_FORMAT = ('%(asctime)s - %(name)s - %(levelname)s - %(message)s', '%Y-%m-%d %H:%M:%S')


def _console_handler(verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter(*_CONSOLE_FORMAT))
    return handler


def _file_handler(log_dir: str, project_name: str) -> logging.Handler:
    """每個專案每天一個日誌檔"""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(
        log_path / f"{project_name}_{datetime.now():%Y%m%d}.log",
        encoding='utf-8'
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(*_FILE_FORMAT))
    return handler


class SyncLogger:
    """發佈系統日誌管理器（訊息前綴一個 LogIcons 圖示）"""

    def __init__(self, project_name: str, log_dir: Optional[str] = "logs", verbose: bool = False):
        self.project_name = project_name
        self.logger = logging.getLogger(f"vault_publish.{project_name}")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        # 設定變更時會重建引擎，但 logger 沿用，handler 只加一次
        if self.logger.handlers:
            return

        self.logger.addHandler(_console_handler(verbose))
        if log_dir:
            self.logger.addHandler(_file_handler(log_dir, project_name))

    def info(self, icon, message):
        """資訊級別日誌"""
        self.logger.info(f"{icon} {message}")

    def success(self, icon, message):
        """成功日誌（使用 info 級別）"""
        self.logger.info(f"{icon} {message}")

    def warning(self, icon, message):
        """警告日誌"""
        self.logger.warning(f"{icon} {message}")

    def error(self, icon, message, exc_info=None):
        """錯誤日誌（exc_info 為例外物件時附上 traceback）"""
        self.logger.error(f"{icon} {message}", exc_info=exc_info or None)

    def debug(self, message):
        """調試日誌"""
        self.logger.debug(message)


# 日誌圖示常數
class LogIcons:
    """統一的日誌圖示"""
    START = "🏁"
    CONNECT = "📡"
    SITE = "🌐"
    LAUNCH = "🚀"
    PROGRESS = "🔄"
    SCAN = "🔍"
    SKIP = "⏭️"
    DELETE = "🗑️"
    NEW = "🆕"
    UPDATE = "🔄"
    COMPLETE = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    WATCH = "👁️"
    UPLOAD = "📤"
    NOTE = "📝"
    USER = "👤"
