"""
配置系统单元测试

测试构建请求模型、YAML 配置验证、加载器和相对路径解析。
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError
from ruamel.yaml import YAML

from isopack.config.loader import (
    ConfigError,
    ConfigLoader,
    ConfigValidationError,
    load_config,
    save_config,
    validate_config,
    validate_config_with_result,
)
from isopack.config.schema import BuildRequest, ConfigModel, FileSystemType, IsoPackConfig


def _write_yaml(path: Path, data) -> Path:
    yaml = YAML()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f)
    return path


class TestFileSystemType:
    """FileSystemType 测试"""

    def test_extension_flags(self):
        """测试各文件系统类型启用的扩展"""
        assert not FileSystemType.ISO9660.use_joliet
        assert not FileSystemType.ISO9660.use_udf
        assert FileSystemType.JOLIET.use_joliet
        assert not FileSystemType.JOLIET.use_udf
        assert FileSystemType.UDF.use_joliet
        assert FileSystemType.UDF.use_udf


class TestBuildRequest:
    """BuildRequest 测试"""

    def test_defaults(self):
        """测试默认值"""
        request = BuildRequest(source_dir="src", output_path="out.iso")
        assert request.volume_label == ""
        assert request.filesystem is FileSystemType.JOLIET
        assert request.exclude == ()

    def test_path_objects_accepted(self, tmp_path):
        """测试接受 Path 对象"""
        request = BuildRequest(source_dir=tmp_path, output_path=tmp_path / "x.iso")
        assert request.source_path == tmp_path
        assert request.output_file == tmp_path / "x.iso"

    def test_immutable(self):
        """测试创建后不可修改"""
        request = BuildRequest(source_dir="src", output_path="out.iso")
        with pytest.raises(ValidationError):
            request.volume_label = "X"

    def test_filesystem_from_string(self):
        """测试从字符串解析文件系统类型"""
        request = BuildRequest(source_dir="src", output_path="out.iso", filesystem="udf")
        assert request.filesystem is FileSystemType.UDF

    def test_unknown_field_rejected(self):
        """测试未知字段"""
        with pytest.raises(ValidationError):
            BuildRequest(source_dir="src", output_path="out.iso", compress=True)


class TestIsoPackConfig:
    """IsoPackConfig 测试"""

    def test_minimal_config(self):
        """测试最小配置"""
        config = IsoPackConfig(source="src", output="out.iso")
        assert config.config.version == 1
        assert config.filesystem is FileSystemType.JOLIET
        assert config.exclude is None

    def test_unsupported_version(self):
        """测试不支持的配置版本"""
        with pytest.raises(ValidationError):
            ConfigModel(version=2)

    def test_volume_label_too_long(self):
        """测试卷标长度限制"""
        with pytest.raises(ValidationError):
            IsoPackConfig(source="src", output="out.iso", volume_label="X" * 33)

    def test_blank_exclude_patterns_removed(self):
        """测试去除空白排除模式"""
        config = IsoPackConfig(source="src", output="out.iso", exclude=["*.log", "  ", ""])
        assert config.exclude == ["*.log"]

    def test_to_dict_serializes_enums(self):
        """测试转字典时枚举转换为字符串"""
        config = IsoPackConfig(source="src", output="out.iso", filesystem=FileSystemType.UDF)
        data = config.to_dict()
        assert data["filesystem"] == "udf"
        assert "volume_label" not in data

    def test_to_request_merges_exclude_file(self, tmp_path):
        """测试 to_request 合并排除模式文件"""
        exclude_file = tmp_path / "exclude.txt"
        exclude_file.write_text("# 注释\n*.tmp\n\nbuild/\n", encoding="utf-8")
        config = IsoPackConfig(
            source="src",
            output="out.iso",
            volume_label="DISC",
            exclude=["*.log"],
            exclude_file=str(exclude_file),
        )

        request = config.to_request()

        assert request.exclude == ("*.log", "*.tmp", "build/")
        assert request.volume_label == "DISC"
        assert request.source_dir == "src"


class TestConfigLoader:
    """ConfigLoader 测试"""

    def test_load_resolves_relative_paths(self, tmp_path):
        """测试相对路径按配置文件所在目录解析"""
        config_path = _write_yaml(tmp_path / "isopack.yaml", {
            "source": "./dist",
            "output": "out/dist.iso",
            "filesystem": "iso9660",
            "exclude": ["*.log"],
        })

        config = load_config(config_path)

        assert Path(config.source) == (tmp_path / "dist").resolve()
        assert Path(config.output) == (tmp_path / "out" / "dist.iso").resolve()
        assert config.filesystem is FileSystemType.ISO9660
        assert config.exclude == ["*.log"]

    def test_absolute_paths_kept(self, tmp_path):
        """测试绝对路径保持不变"""
        source = tmp_path / "abs"
        config = ConfigLoader().load_from_dict({"source": str(source), "output": "x.iso"}, base_path=Path("/elsewhere"))
        assert config.source == str(source)

    def test_missing_file(self, tmp_path):
        """测试配置文件不存在"""
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.yaml")

    def test_wrong_suffix(self, tmp_path):
        """测试非 YAML 后缀"""
        path = tmp_path / "config.json"
        path.write_text("{}")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        """测试空配置文件"""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ConfigError, match="配置文件为空"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        """测试 YAML 语法错误"""
        path = tmp_path / "bad.yaml"
        path.write_text("source: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_root_must_be_mapping(self, tmp_path):
        """测试根级别必须是字典"""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_validation_error_details(self, tmp_path):
        """测试验证错误包含字段位置"""
        path = _write_yaml(tmp_path / "invalid.yaml", {"source": "src", "filesystem": "fat32"})

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)

        locations = {tuple(error["loc"]) for error in exc_info.value.errors}
        assert ("output",) in locations
        assert ("filesystem",) in locations
        assert "output" in exc_info.value.format_errors()
        assert isinstance(json.loads(exc_info.value.format_errors_json()), list)

    def test_validate_config(self, tmp_path):
        """测试 validate_config 返回错误列表"""
        valid = _write_yaml(tmp_path / "valid.yaml", {"source": "src", "output": "out.iso"})
        invalid = _write_yaml(tmp_path / "invalid.yaml", {"source": "src"})

        assert validate_config(valid) == []
        assert len(validate_config(invalid)) == 1
        assert validate_config(tmp_path / "missing.yaml")[0]["type"] == "config_error"

    def test_validate_config_with_result(self, tmp_path):
        """测试 validate_config_with_result"""
        invalid = _write_yaml(tmp_path / "invalid.yaml", {"source": "src"})

        result = validate_config_with_result(invalid)
        assert not result.is_valid
        assert result.errors

        config = IsoPackConfig(source="src", output="out.iso")
        assert validate_config_with_result(config).config is config

    def test_save_and_reload(self, tmp_path):
        """测试保存后重新加载"""
        config = IsoPackConfig(
            source=str(tmp_path / "src"),
            output=str(tmp_path / "out.iso"),
            volume_label="DISC",
            filesystem=FileSystemType.UDF,
            exclude=["*.log", "build/"],
        )
        path = tmp_path / "nested" / "saved.yaml"

        save_config(config, path)
        reloaded = load_config(path)

        assert reloaded.to_dict() == config.to_dict()
