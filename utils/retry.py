"""
重試裝飾器
提供有上限的自動重試機制，支援指數退避
"""

import time
from functools import wraps
from typing import Callable, Optional, Type, Tuple


def retry(
    max_attempts: int = 2,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    should_retry: Optional[Callable[[Exception], bool]] = None,
    logger=None
) -> Callable:
    """
    重試裝飾器

    Args:
        max_attempts: 最大嘗試次數（含第一次）
        delay: 初始延遲時間（秒）
        backoff: 退避係數（每次重試延遲時間的倍數）
        exceptions: 需要重試的異常類型
        should_retry: 額外判斷；回傳 False 時直接拋出，不再重試
        logger: SyncLogger，提供時記錄每次重試

    Returns:
        裝飾後的函數

    Example:
        @retry(max_attempts=2, delay=1, backoff=2)
        def upload_file(path):
            # 失敗時會再試一次
            pass
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            current_delay = delay

            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    attempt += 1

                    if attempt >= max_attempts:
                        raise
                    if should_retry is not None and not should_retry(e):
                        raise

                    if logger:
                        logger.warning(
                            "⏳",
                            f"{func.__name__} 失敗，{current_delay:.1f}秒後重試 "
                            f"({attempt}/{max_attempts - 1}): {e}"
                        )

                    time.sleep(current_delay)
                    current_delay *= backoff

        return wrapper
    return decorator
