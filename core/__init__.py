"""
核心模組
"""

from .errors import (
    PublishError,
    ValidationError,
    PolicyError,
    AuthError,
    RemoteError,
    UploadError,
    ReconciliationError,
)
from .models import (
    FileRecord,
    Site,
    UploadDirective,
    UserInfo,
    SyncResponse,
    DeleteResult,
    SiteStatus,
    PublishStatus,
    PublishResult,
)
from .vault import BaseVault, VaultFile
from .path_policy import PathPolicy, DEFAULT_EXCLUDE_PATTERNS
from .hash_calculator import HashCalculator
from .flowershow_client import FlowershowClient
from .progress import ProgressReporter, ProgressSnapshot
from .publisher import Publisher, PublishPhase
from .file_monitor import FileMonitor

__all__ = [
    'PublishError',
    'ValidationError',
    'PolicyError',
    'AuthError',
    'RemoteError',
    'UploadError',
    'ReconciliationError',
    'FileRecord',
    'Site',
    'UploadDirective',
    'UserInfo',
    'SyncResponse',
    'DeleteResult',
    'SiteStatus',
    'PublishStatus',
    'PublishResult',
    'BaseVault',
    'VaultFile',
    'PathPolicy',
    'DEFAULT_EXCLUDE_PATTERNS',
    'HashCalculator',
    'FlowershowClient',
    'ProgressReporter',
    'ProgressSnapshot',
    'Publisher',
    'PublishPhase',
    'FileMonitor',
]
