"""
配置加载器

负责从 YAML 文件加载构建配置并进行验证。
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .schema import IsoPackConfig


class ConfigError(Exception):
    """配置错误基类"""
    pass


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def __init__(self, message: str, errors: List[Dict[str, Any]]):
        super().__init__(message)
        self.errors = errors

    def format_errors(self) -> str:
        """格式化错误信息为人类可读的格式"""
        formatted = []
        for error in self.errors:
            loc = " -> ".join(str(item) for item in error.get('loc', []))
            msg = error.get('msg', '未知错误')
            input_val = error.get('input', '')

            if loc:
                formatted.append(f"字段 '{loc}': {msg}")
                if input_val:
                    formatted.append(f"  输入值: {input_val}")
            else:
                formatted.append(f"根级别: {msg}")

        return "\n".join(formatted)

    def format_errors_json(self) -> str:
        """格式化错误信息为 JSON 格式"""
        return json.dumps(self.errors, ensure_ascii=False, indent=2, default=str)


@dataclass
class ValidationResult:
    """配置验证结果"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    config: Optional[IsoPackConfig] = None


def _pydantic_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    # ctx 中可能包含异常对象，只保留可序列化的字段
    return [
        {'loc': list(err.get('loc', ())), 'msg': err.get('msg', ''), 'type': err.get('type', ''),
         'input': err.get('input', '')}
        for err in exc.errors()
    ]


class ConfigLoader:
    """配置加载器"""

    # 相对于配置文件目录解析的路径字段
    PATH_FIELDS = ('source', 'output', 'exclude_file')

    def __init__(self):
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.width = 4096

    def load_from_file(self, config_path: Union[str, Path]) -> IsoPackConfig:
        """从文件加载配置

        Args:
            config_path: 配置文件路径

        Returns:
            IsoPackConfig: 验证后的配置实例

        Raises:
            ConfigError: 配置加载或验证错误
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigError(f"配置文件不存在: {config_path}")

        if not config_path.is_file():
            raise ConfigError(f"配置路径不是文件: {config_path}")

        if config_path.suffix.lower() not in ['.yaml', '.yml']:
            raise ConfigError(f"配置文件必须是 .yaml 或 .yml 格式: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                raw_data = self.yaml.load(f)
        except YAMLError as e:
            raise ConfigError(f"YAML 解析错误: {e}") from e
        except OSError as e:
            raise ConfigError(f"文件读取错误: {e}") from e

        if raw_data is None:
            raise ConfigError("配置文件为空")

        if not isinstance(raw_data, dict):
            raise ConfigError("配置文件根级别必须是对象/字典格式")

        return self.load_from_dict(dict(raw_data), base_path=config_path.parent)

    def load_from_dict(self, data: Dict[str, Any], base_path: Optional[Path] = None) -> IsoPackConfig:
        """从字典加载配置

        Args:
            data: 配置数据字典
            base_path: 相对路径的基准路径

        Returns:
            IsoPackConfig: 验证后的配置实例

        Raises:
            ConfigValidationError: 配置验证错误
        """
        data = dict(data)
        if base_path:
            self._resolve_relative_paths(data, base_path)

        try:
            return IsoPackConfig.from_dict(data)
        except ValidationError as e:
            raise ConfigValidationError("配置验证失败", _pydantic_errors(e)) from e

    def save_to_file(self, config: IsoPackConfig, output_path: Union[str, Path]) -> None:
        """保存配置到文件

        Raises:
            ConfigError: 保存错误
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                self.yaml.dump(config.to_dict(), f)
        except OSError as e:
            raise ConfigError(f"保存配置文件失败: {e}") from e

    def validate_file(self, config_path: Union[str, Path]) -> List[Dict[str, Any]]:
        """验证配置文件并返回错误列表，空列表表示验证通过"""
        try:
            self.load_from_file(config_path)
            return []
        except ConfigValidationError as e:
            return e.errors
        except ConfigError as e:
            return [{
                'loc': [],
                'msg': str(e),
                'type': 'config_error'
            }]

    def _resolve_relative_paths(self, data: Dict[str, Any], base_path: Path) -> None:
        for key in self.PATH_FIELDS:
            value = data.get(key)
            if isinstance(value, str) and value.strip() and not Path(value).is_absolute():
                data[key] = str((base_path / value).resolve())


# 全局加载器实例
config_loader = ConfigLoader()


def load_config(config_path: Union[str, Path]) -> IsoPackConfig:
    """便捷函数：加载配置文件"""
    return config_loader.load_from_file(config_path)


def validate_config(config_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """便捷函数：验证配置文件"""
    return config_loader.validate_file(config_path)


def validate_config_with_result(config_or_path: Union[IsoPackConfig, str, Path]) -> ValidationResult:
    """验证配置并返回详细结果"""
    if isinstance(config_or_path, IsoPackConfig):
        return ValidationResult(is_valid=True, config=config_or_path)

    try:
        config = load_config(config_or_path)
    except ConfigValidationError as e:
        return ValidationResult(is_valid=False, errors=e.format_errors().splitlines())
    except ConfigError as e:
        return ValidationResult(is_valid=False, errors=[f"配置加载失败: {e}"])

    return ValidationResult(is_valid=True, config=config)


def save_config(config: IsoPackConfig, output_path: Union[str, Path]) -> None:
    """便捷函数：保存配置文件"""
    config_loader.save_to_file(config, output_path)
