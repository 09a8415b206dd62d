"""
Build 命令实现

把目录打包为光盘镜像的核心命令。
"""

import traceback
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

from ...build.build_context import BuildStatus
from ...build.worker import BuildHandle
from ...config import load_config, ConfigError, ConfigValidationError
from ...config.schema import BuildRequest, FileSystemType
from ...utils.logging import set_log_level, set_log_file, OutputLevel

# 被取消时的退出码（与 Ctrl+C 中断进程的惯例一致）
EXIT_CANCELLED = 130

console = Console()


def _read_exclude_file(path: str) -> List[str]:
    from ...build.patterns import parse_pattern_text

    try:
        text = Path(path).read_text(encoding='utf-8')
    except OSError as e:
        console.print(f"[red]无法读取排除模式文件 {escape(path)}: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    return parse_pattern_text(text)


def _wait_for_result(handle: BuildHandle):
    """等待后台构建结束，Ctrl+C 请求取消"""
    while True:
        try:
            result = handle.wait(0.2)
        except KeyboardInterrupt:
            if not handle.cancel_token.is_cancelled:
                console.print("[yellow]正在取消构建...[/yellow]")
                handle.cancel()
            continue
        if result is not None:
            return result


def build_command(
    source: Optional[str] = typer.Argument(None, help="源目录"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="输出镜像路径"),
    label: Optional[str] = typer.Option(None, "--label", "-l", help="卷标（默认使用源目录名）"),
    filesystem: Optional[FileSystemType] = typer.Option(
        None, "--fs", case_sensitive=False, help="文件系统类型 (默认 joliet)"
    ),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-e", help="排除模式，可多次指定"),
    exclude_file: Optional[str] = typer.Option(None, "--exclude-file", help="排除模式文件，每行一个模式"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML 构建配置文件"),
    force: bool = typer.Option(False, "--force", "-f", help="强制覆盖已存在的输出文件"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="日志输出文件"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出详细调试日志 (DEBUG 级别)"),
) -> None:
    """构建光盘镜像

    命令行参数会覆盖配置文件中的同名设置。

    示例:
        isopack build ./dist -o dist.iso
        isopack build ./dist -o dist.iso --fs udf --exclude "*.log"
        isopack build -c isopack.yaml
    """
    from ...build.builder import Builder

    # 初始化日志：在任何输出前设置
    set_log_level(OutputLevel.DEBUG if verbose else OutputLevel.INFO)

    if log_file:
        try:
            set_log_file(log_file)
        except OSError:
            console.print(f"[yellow]无法写入日志文件: {log_file}[/yellow]")

    request_data = {}
    if config:
        try:
            console.print(f"[cyan]正在加载配置文件[/cyan]: {config}")
            request_data = load_config(config).to_request().model_dump()
        except ConfigValidationError as e:
            console.print("[red]配置验证失败:[/red]")
            console.print(e.format_errors())
            raise typer.Exit(1)
        except (ConfigError, OSError) as e:
            console.print(f"[red]配置错误[/red]: {escape(str(e))}")
            raise typer.Exit(1)

    if source is not None:
        request_data['source_dir'] = source
    if output is not None:
        request_data['output_path'] = output
    if label is not None:
        request_data['volume_label'] = label
    if filesystem is not None:
        request_data['filesystem'] = filesystem

    patterns = list(request_data.get('exclude', ()))
    patterns.extend(exclude or [])
    if exclude_file:
        patterns.extend(_read_exclude_file(exclude_file))
    request_data['exclude'] = tuple(patterns)

    request_data.setdefault('source_dir', "")
    request_data.setdefault('output_path', "")
    request = BuildRequest(**request_data)

    # 检查输出文件
    output_path = request.output_file
    if request.output_path and output_path.is_file() and not force:
        console.print(f"[red]输出文件已存在: {output_path}[/red]")
        console.print("使用 --force 参数强制覆盖")
        raise typer.Exit(1)

    console.print(f"[cyan]开始构建镜像[/cyan] ({request.filesystem.value})...")
    if verbose:
        console.print("[dim]已启用详细模式 -- 将输出调试级日志[/dim]")

    builder = Builder()
    try:
        with Progress(
            TextColumn("[blue]写入文件[/blue]"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("build", total=1.0)
            handle = builder.start(
                request,
                progress_callback=lambda fraction: progress.update(task, completed=fraction),
            )
            result = _wait_for_result(handle)
    except Exception as e:
        console.print(f"[red]✗ 构建过程中发生意外错误[/red]: {escape(str(e))}")
        if log_file:  # 只有指定了日志文件才显示详细信息
            console.print(f"[yellow]详细错误信息:[/yellow]\n{traceback.format_exc()}")
        raise typer.Exit(1)

    if result.status is BuildStatus.COMPLETED:
        console.print(f"[green]✓ 镜像构建完成[/green]: {result.output_path}")
        console.print(f"[blue]文件数量[/blue]: {result.file_count}")
        if result.output_size is not None:
            size_mb = result.output_size / (1024 * 1024)
            console.print(f"[blue]镜像大小[/blue]: {size_mb:.1f} MB")
        return

    if result.status is BuildStatus.CANCELLED:
        console.print("[yellow]⚠ 构建已取消，未生成镜像文件[/yellow]")
        raise typer.Exit(EXIT_CANCELLED)

    error_type = type(result.exception).__name__ if result.exception else "BuildError"
    console.print(f"[red]✗ 构建失败[/red] ({error_type}): {escape(str(result.error))}")
    if log_file:
        console.print(f"[yellow]请检查日志文件 {log_file} 获取详细信息。[/yellow]")
    raise typer.Exit(1)
