"""
命令行单元测试

通过 typer 的 CliRunner 测试 build / validate / inspect / example 等命令。
"""

import json

import pytest
from ruamel.yaml import YAML
from typer.testing import CliRunner

from isopack import __version__
from isopack.build.inspector import list_image_files
from isopack.cli.main import app
from isopack.config import load_config
from isopack.utils.logging import close_logger

runner = CliRunner()


@pytest.fixture
def source_tree(tmp_path):
    source = tmp_path / "source"
    for relative in ["a.txt", "sub/b.txt", "sub/ignore.log"]:
        path = source / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"content of {relative}")
    return source


def _write_yaml(path, data):
    with open(path, "w", encoding="utf-8") as f:
        YAML().dump(data, f)
    return path


class TestMainApp:
    """主应用测试"""

    def test_version(self):
        """测试 --version"""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"isopack v{__version__}" in result.stdout

    def test_info(self):
        """测试 info 命令"""
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "udf" in result.stdout

    def test_example(self, tmp_path):
        """测试生成示例配置"""
        output = tmp_path / "example.yaml"
        result = runner.invoke(app, ["example", "-o", str(output)])

        assert result.exit_code == 0
        config = load_config(output)
        assert "*.log" in config.exclude


class TestBuildCommand:
    """build 命令测试"""

    def test_build_with_exclude(self, source_tree, tmp_path):
        """测试命令行构建并排除文件"""
        output = tmp_path / "image.iso"
        result = runner.invoke(app, ["build", str(source_tree), "-o", str(output), "--exclude", "*.log"])

        assert result.exit_code == 0, result.stdout
        assert list_image_files(output) == ["a.txt", "sub/b.txt"]

    def test_build_udf_with_exclude_file(self, source_tree, tmp_path):
        """测试 --fs 与 --exclude-file"""
        output = tmp_path / "image.iso"
        exclude_file = tmp_path / "exclude.txt"
        exclude_file.write_text("# logs\n*.log\n", encoding="utf-8")

        result = runner.invoke(app, [
            "build", str(source_tree), "-o", str(output),
            "--fs", "udf", "--exclude-file", str(exclude_file), "--label", "cli disc",
        ])

        assert result.exit_code == 0, result.stdout
        assert list_image_files(output) == ["a.txt", "sub/b.txt"]

    def test_build_from_config(self, source_tree, tmp_path):
        """测试使用配置文件构建，命令行参数覆盖配置"""
        config_path = _write_yaml(tmp_path / "isopack.yaml", {
            "source": "source",
            "output": "from_config.iso",
            "exclude": ["*.log"],
        })
        override = tmp_path / "override.iso"

        result = runner.invoke(app, ["build", "-c", str(config_path), "-o", str(override)])

        assert result.exit_code == 0, result.stdout
        assert override.is_file()
        assert not (tmp_path / "from_config.iso").exists()
        assert list_image_files(override) == ["a.txt", "sub/b.txt"]

    def test_missing_source(self, tmp_path):
        """测试源目录不存在"""
        result = runner.invoke(app, ["build", str(tmp_path / "missing"), "-o", str(tmp_path / "x.iso")])

        assert result.exit_code == 1
        assert "DirectoryNotFoundError" in result.stdout

    def test_missing_output(self, source_tree):
        """测试未指定输出路径"""
        result = runner.invoke(app, ["build", str(source_tree)])
        assert result.exit_code == 1

    def test_existing_output_requires_force(self, source_tree, tmp_path):
        """测试输出文件已存在时需要 --force"""
        output = tmp_path / "image.iso"
        output.write_bytes(b"old")

        result = runner.invoke(app, ["build", str(source_tree), "-o", str(output)])
        assert result.exit_code == 1
        assert output.read_bytes() == b"old"

        result = runner.invoke(app, ["build", str(source_tree), "-o", str(output), "--force"])
        assert result.exit_code == 0, result.stdout
        assert len(list_image_files(output)) == 3

    def test_invalid_pattern(self, source_tree, tmp_path):
        """测试无效的排除模式"""
        output = tmp_path / "image.iso"
        result = runner.invoke(app, ["build", str(source_tree), "-o", str(output), "--exclude", "[bad"])

        assert result.exit_code == 1
        assert "InvalidPatternError" in result.stdout
        assert not output.exists()

    def test_log_file(self, source_tree, tmp_path):
        """测试 --log-file 写入日志"""
        log_file = tmp_path / "logs" / "build.log"
        try:
            result = runner.invoke(app, [
                "build", str(source_tree), "-o", str(tmp_path / "image.iso"), "--log-file", str(log_file),
            ])
        finally:
            close_logger()

        assert result.exit_code == 0, result.stdout
        assert "COLLECT" in log_file.read_text(encoding="utf-8")


class TestValidateCommand:
    """validate 命令测试"""

    def test_valid_config(self, tmp_path):
        """测试有效配置"""
        config_path = _write_yaml(tmp_path / "ok.yaml", {"source": "src", "output": "out.iso"})
        result = runner.invoke(app, ["validate", "-c", str(config_path)])

        assert result.exit_code == 0
        assert "验证通过" in result.stdout

    def test_invalid_config_json(self, tmp_path):
        """测试无效配置的 JSON 输出"""
        config_path = _write_yaml(tmp_path / "bad.yaml", {"source": "src", "filesystem": "fat32"})
        result = runner.invoke(app, ["validate", "-c", str(config_path), "--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["valid"] is False
        assert data["error_count"] == 2

    def test_invalid_pattern_in_config(self, tmp_path):
        """测试配置中的无效排除模式"""
        config_path = _write_yaml(tmp_path / "bad.yaml", {
            "source": "src", "output": "out.iso", "exclude": ["*.log", "[oops"],
        })
        result = runner.invoke(app, ["validate", "-c", str(config_path), "--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["errors"][0]["input"] == "[oops"

    def test_missing_config(self, tmp_path):
        """测试配置文件不存在"""
        result = runner.invoke(app, ["validate", "-c", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1


class TestInspectCommand:
    """inspect 命令测试"""

    def test_inspect_json(self, source_tree, tmp_path):
        """测试以 JSON 输出镜像内容"""
        output = tmp_path / "image.iso"
        assert runner.invoke(app, ["build", str(source_tree), "-o", str(output), "--label", "demo"]).exit_code == 0

        result = runner.invoke(app, ["inspect", str(output), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["volume_label"] == "DEMO"
        assert data["joliet"] is True
        assert data["files"] == ["a.txt", "sub/b.txt", "sub/ignore.log"]

    def test_inspect_table(self, source_tree, tmp_path):
        """测试表格输出"""
        output = tmp_path / "image.iso"
        assert runner.invoke(app, ["build", str(source_tree), "-o", str(output)]).exit_code == 0

        result = runner.invoke(app, ["inspect", str(output)])

        assert result.exit_code == 0
        assert "sub/b.txt" in result.stdout

    def test_inspect_not_an_image(self, tmp_path):
        """测试无效的镜像文件"""
        bogus = tmp_path / "bogus.iso"
        bogus.write_bytes(b"not an image" * 100)

        result = runner.invoke(app, ["inspect", str(bogus)])
        assert result.exit_code == 1

    def test_inspect_missing(self, tmp_path):
        """测试镜像文件不存在"""
        result = runner.invoke(app, ["inspect", str(tmp_path / "missing.iso")])
        assert result.exit_code == 1
