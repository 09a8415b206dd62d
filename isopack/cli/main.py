"""
isopack CLI 主入口

提供命令行接口，支持 build/validate/inspect/example/info 等命令。
"""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..utils import configure_logging
from .commands import build, validate, inspect


# 创建主应用
app = typer.Typer(
    name="isopack",
    help="isopack - 把目录树打包为 ISO 9660 / Joliet / UDF 光盘镜像",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# 控制台输出
console = Console()


# 全局选项
def version_callback(value: bool) -> None:
    """显示版本信息"""
    if value:
        console.print(f"isopack v{__version__}")
        raise typer.Exit()


def verbose_callback(verbose: bool) -> None:
    """配置详细输出"""
    configure_logging(level="DEBUG" if verbose else "INFO")


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="显示版本信息"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        callback=verbose_callback,
        help="启用详细输出"
    )
) -> None:
    """isopack - 把目录树打包为光盘镜像

    使用 --help 查看可用命令的详细信息。
    """
    pass


# 注册子命令
app.command("build", help="构建镜像")(build.build_command)
app.command("validate", help="验证配置文件")(validate.validate_command)
app.command("inspect", help="列出镜像中的文件")(inspect.inspect_command)


@app.command("info")
def info_command() -> None:
    """显示系统信息"""
    from importlib.metadata import PackageNotFoundError, version

    from ..config.schema import FileSystemType

    console.print("[bold]isopack 系统信息[/bold]")
    console.print()

    table = Table(title="版本信息")
    table.add_column("组件", style="cyan")
    table.add_column("版本", style="green")

    table.add_row("isopack", __version__)
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    for package in ("pycdlib", "pydantic", "typer", "rich"):
        try:
            table.add_row(package, version(package))
        except PackageNotFoundError:
            table.add_row(package, "✗ 未安装")

    console.print(table)
    console.print()

    descriptions = {
        FileSystemType.ISO9660: "ISO 9660 交换级别 4",
        FileSystemType.JOLIET: "ISO 9660 + Joliet 长文件名",
        FileSystemType.UDF: "ISO 9660 + Joliet + UDF 2.60",
    }
    fs_table = Table(title="支持的文件系统")
    fs_table.add_column("类型", style="cyan")
    fs_table.add_column("说明", style="green")
    for fs_type, description in descriptions.items():
        fs_table.add_row(fs_type.value, description)

    console.print(fs_table)


@app.command("example")
def example_command(
    output: str = typer.Option(
        "example_config.yaml",
        "--output", "-o",
        help="输出配置文件路径"
    )
) -> None:
    """生成示例配置文件"""
    from ..config import ConfigError, save_config
    from ..config.schema import FileSystemType, IsoPackConfig

    config = IsoPackConfig(
        source="./dist",
        output="./dist.iso",
        volume_label="MY_DISC",
        filesystem=FileSystemType.JOLIET,
        exclude=["*.log", "*.tmp", "__pycache__/", "**/.git/"],
    )

    try:
        save_config(config, output)
        console.print(f"✓ 示例配置文件已生成: [green]{output}[/green]")
        console.print("请根据需要修改配置文件，然后运行:")
        console.print(f"  [cyan]isopack build -c {output}[/cyan]")
    except ConfigError as e:
        console.print(f"[red]生成示例配置失败: {e}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
