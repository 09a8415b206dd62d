"""
Inspect 命令实现

列出镜像中的文件，用于核对构建结果。
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...build.build_context import ImageIOError
from ...build.inspector import describe_image


console = Console()


def inspect_command(
    image: str = typer.Argument(..., help="镜像文件路径"),
    json_output: bool = typer.Option(False, "--json", help="输出 JSON 格式"),
) -> None:
    """列出镜像内容

    优先读取 UDF 目录树，其次 Joliet，最后 ISO 9660。

    示例:
        isopack inspect dist.iso
        isopack inspect dist.iso --json
    """
    image_path = Path(image)

    if not image_path.is_file():
        console.print(f"[red]镜像文件不存在: {image_path}[/red]")
        raise typer.Exit(1)

    try:
        summary = describe_image(image_path)
    except ImageIOError as e:
        console.print(f"[red]读取镜像失败: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(summary, ensure_ascii=False, indent=2))
        return

    console.print(f"[bold]镜像[/bold]: {image_path}")
    console.print(f"[blue]卷标[/blue]: {summary['volume_label']}")
    console.print(f"[blue]Joliet[/blue]: {'是' if summary['joliet'] else '否'}")
    console.print(f"[blue]UDF[/blue]: {'是' if summary['udf'] else '否'}")
    console.print()

    table = Table(title=f"文件列表 ({summary['namespace']}, {summary['file_count']} 个文件)")
    table.add_column("路径", style="cyan")
    for path in summary['files']:
        table.add_row(escape(path))
    console.print(table)
