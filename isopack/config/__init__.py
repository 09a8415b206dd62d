"""配置和 Schema 模块

提供构建请求模型，以及 YAML 构建配置的加载、验证和保存功能。
"""

from .schema import BuildRequest, FileSystemType, IsoPackConfig
from .loader import (
    ConfigLoader,
    ConfigValidationError,
    ConfigError,
    ValidationResult,
    load_config,
    validate_config,
    validate_config_with_result,
    save_config,
    config_loader
)

__all__ = [
    # 主要类
    "BuildRequest",
    "FileSystemType",
    "IsoPackConfig",
    "ConfigLoader",
    "ValidationResult",

    # 异常类
    "ConfigError",
    "ConfigValidationError",

    # 便捷函数
    "load_config",
    "validate_config",
    "validate_config_with_result",
    "save_config",

    # 单例
    "config_loader",
]
