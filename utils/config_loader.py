"""
配置載入器
支援 YAML 配置文件載入、環境變數替換與預設值
"""

import os
import re
import yaml
from pathlib import Path
from typing import Dict, Any, Tuple


DEFAULT_API_URL = "https://cloud.flowershow.app"

# 宿主的繪圖檔（excalidraw）預設不發佈
DEFAULT_EXCLUDE_PATTERNS = [r'\.excalidraw(\.(md|excalidraw))?$']

# 這些欄位是正則字串，`$` 代表行尾，不做環境變數替換
_RAW_PATHS = {('vault', 'exclude_patterns')}

_DEFAULTS: Dict[str, Any] = {
    'flowershow': {
        'api_url': DEFAULT_API_URL,
    },
    'vault': {
        'type': 'local',
        'root_dir': '',
        'exclude_patterns': DEFAULT_EXCLUDE_PATTERNS,
    },
    'sync': {
        'max_workers': {'upload': 8},
        'retry': {'max_attempts': 2, 'delay': 1.0, 'backoff': 2.0},
        'timeout': 30,
        'watch_delay': 10,
        'progress_linger': 1.0,
    },
    'logging': {
        'dir': 'logs',
        'verbose': False,
    },
}


class ConfigLoader:
    """配置載入器"""

    @staticmethod
    def load(config_path: str) -> Dict[str, Any]:
        """
        載入配置文件

        Args:
            config_path: 配置文件路徑

        Returns:
            配置字典（已補上預設值）

        Raises:
            FileNotFoundError: 配置文件不存在
            ValueError: 配置格式錯誤或缺少必要欄位
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ValueError(f"配置文件格式錯誤（頂層必須是 mapping）: {config_path}")

        # 替換環境變數
        config = ConfigLoader._replace_env_vars(config)

        # 驗證必要欄位
        ConfigLoader._validate_config(config)

        return ConfigLoader.with_defaults(config)

    @staticmethod
    def with_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
        """以預設值補齊缺少的欄位（不覆蓋已有值）"""
        def merge(defaults: Dict[str, Any], actual: Dict[str, Any]) -> Dict[str, Any]:
            merged = dict(actual)
            for key, value in defaults.items():
                if key not in merged or merged[key] is None:
                    merged[key] = list(value) if isinstance(value, list) else value
                elif isinstance(value, dict) and isinstance(merged[key], dict):
                    merged[key] = merge(value, merged[key])
            return merged

        return merge(_DEFAULTS, config)

    @staticmethod
    def _replace_env_vars(obj: Any, path: Tuple[str, ...] = ()) -> Any:
        """
        遞迴替換配置中的環境變數
        支援 ${VAR_NAME} 和 $VAR_NAME 格式
        """
        if path in _RAW_PATHS:
            return obj
        if isinstance(obj, dict):
            return {k: ConfigLoader._replace_env_vars(v, path + (str(k),)) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [ConfigLoader._replace_env_vars(item, path) for item in obj]
        elif isinstance(obj, str):
            # 匹配 ${VAR_NAME} 或 $VAR_NAME
            pattern = r'\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)'

            def replacer(match):
                var_name = match.group(1) or match.group(2)
                value = os.getenv(var_name)
                if value is None:
                    raise ValueError(
                        f"環境變數 '{var_name}' 未設定，"
                        f"請執行: export {var_name}='your_value'"
                    )
                return value

            return re.sub(pattern, replacer, obj)
        else:
            return obj

    @staticmethod
    def _validate_config(config: Dict[str, Any]) -> None:
        """
        驗證配置的必要欄位

        token 格式與站點名稱的語意檢查由 core.validator 負責，這裡只看結構。

        Raises:
            ValueError: 配置驗證失敗
        """
        required_fields = [
            ('project', 'name'),
            ('flowershow', 'token'),
            ('flowershow', 'site_name'),
            ('vault', 'path'),
        ]

        for *path, field in required_fields:
            obj = config
            try:
                for key in path:
                    obj = obj[key]
                if field not in obj:
                    raise KeyError
            except (KeyError, TypeError):
                field_path = '.'.join(path + [field])
                raise ValueError(f"配置缺少必要欄位: {field_path}")

        patterns = ConfigLoader.get_nested(config, 'vault.exclude_patterns')
        if patterns is not None and not isinstance(patterns, list):
            raise ValueError("vault.exclude_patterns 必須是字串列表")

    @staticmethod
    def get_nested(config: Dict[str, Any], path: str, default: Any = None) -> Any:
        """
        取得嵌套配置值

        Args:
            config: 配置字典
            path: 點分隔的路徑，如 'sync.max_workers.upload'
            default: 預設值

        Returns:
            配置值或預設值

        Example:
            value = ConfigLoader.get_nested(config, 'sync.max_workers.upload', 8)
        """
        keys = path.split('.')
        obj = config

        try:
            for key in keys:
                obj = obj[key]
            return obj
        except (KeyError, TypeError):
            return default
