"""
配置 Schema 定义

使用 Pydantic 定义构建请求与 YAML 构建配置模型，支持验证和类型检查。
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator


class FileSystemType(str, Enum):
    """镜像文件系统类型枚举"""
    ISO9660 = "iso9660"
    JOLIET = "joliet"
    UDF = "udf"

    @property
    def use_joliet(self) -> bool:
        """Joliet 与 UDF 两种类型都启用 Joliet 长文件名扩展"""
        return self is not FileSystemType.ISO9660

    @property
    def use_udf(self) -> bool:
        return self is FileSystemType.UDF


class BuildRequest(BaseModel):
    """单次构建请求

    由调用方在每次构建前创建，创建后不可修改。
    路径字段保留原始字符串，空白路径交由构建流程报告为验证错误。
    """

    source_dir: str = Field(..., description="源目录")
    output_path: str = Field(..., description="输出镜像路径")
    volume_label: str = Field("", description="卷标（为空时使用源目录名）")
    filesystem: FileSystemType = Field(FileSystemType.JOLIET, description="文件系统类型")
    exclude: Tuple[str, ...] = Field((), description="排除模式列表（glob 格式，按顺序）")

    model_config = {
        "frozen": True,
        "extra": "forbid",
        "str_strip_whitespace": True,
    }

    @field_validator('source_dir', 'output_path', mode='before')
    @classmethod
    def validate_path_field(cls, v: Union[str, Path, None]) -> str:
        """统一把 Path 转换为字符串"""
        if v is None:
            return ""
        if isinstance(v, Path):
            return str(v)
        return v

    @property
    def source_path(self) -> Path:
        return Path(self.source_dir)

    @property
    def output_file(self) -> Path:
        return Path(self.output_path)


class ConfigModel(BaseModel):
    """配置元信息模型"""
    version: int = Field(1, description="配置 schema 版本", ge=1)

    @field_validator('version')
    @classmethod
    def validate_config_version(cls, v: int) -> int:
        """验证配置版本"""
        SUPPORTED_VERSIONS = [1]
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"不支持的配置版本 {v}，支持的版本: {SUPPORTED_VERSIONS}")
        return v


class IsoPackConfig(BaseModel):
    """YAML 构建配置根模型"""

    config: ConfigModel = Field(default_factory=ConfigModel, description="配置元信息")

    source: str = Field(..., description="源目录", min_length=1)
    output: str = Field(..., description="输出镜像路径", min_length=1)
    volume_label: Optional[str] = Field(None, description="卷标", max_length=32)
    filesystem: FileSystemType = Field(FileSystemType.JOLIET, description="文件系统类型")
    exclude: Optional[List[str]] = Field(None, description="排除模式列表（glob 格式）")
    exclude_file: Optional[str] = Field(None, description="排除模式文件，每行一个模式")

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
        "str_strip_whitespace": True,
    }

    @field_validator('exclude')
    @classmethod
    def validate_exclude(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """去除空白模式"""
        if v is None:
            return None
        cleaned = [p.strip() for p in v if p and p.strip()]
        return cleaned or None

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        data = self.model_dump(exclude_none=True)

        def convert_values(obj):
            if isinstance(obj, dict):
                return {k: convert_values(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_values(item) for item in obj]
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        return convert_values(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IsoPackConfig':
        """从字典创建配置实例"""
        return cls.model_validate(data)

    def collect_patterns(self) -> List[str]:
        """合并 exclude 与 exclude_file 中的模式

        Raises:
            OSError: 排除模式文件无法读取
        """
        from ..build.patterns import parse_pattern_text

        patterns = list(self.exclude or [])
        if self.exclude_file:
            text = Path(self.exclude_file).read_text(encoding='utf-8')
            patterns.extend(parse_pattern_text(text))
        return patterns

    def to_request(self) -> BuildRequest:
        """转换为构建请求"""
        return BuildRequest(
            source_dir=self.source,
            output_path=self.output,
            volume_label=self.volume_label or "",
            filesystem=self.filesystem,
            exclude=tuple(self.collect_patterns()),
        )
