"""
Validate 命令实现

验证 YAML 构建配置文件，包括其中的排除模式。
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...build.build_context import InvalidPatternError
from ...build.patterns import compile_patterns
from ...config import load_config, validate_config, ConfigError


console = Console()


def _pattern_errors(config_path: Path) -> list:
    """编译配置中的排除模式，返回与配置错误相同格式的错误列表"""
    try:
        patterns = load_config(config_path).collect_patterns()
    except OSError as e:
        return [{'loc': ['exclude_file'], 'msg': f"无法读取排除模式文件: {e}", 'type': 'io_error'}]

    errors = []
    for pattern in patterns:
        try:
            compile_patterns([pattern])
        except InvalidPatternError as e:
            errors.append({'loc': ['exclude'], 'msg': e.reason, 'input': pattern, 'type': 'invalid_pattern'})
    return errors


def validate_command(
    config: str = typer.Option(..., "--config", "-c", help="配置文件路径"),
    json_output: bool = typer.Option(False, "--json", help="输出 JSON 格式的错误信息"),
) -> None:
    """验证配置文件

    检查配置文件的语法、字段和排除模式。

    示例:
        isopack validate -c isopack.yaml
        isopack validate -c isopack.yaml --json
    """
    config_path = Path(config)

    if not config_path.exists():
        console.print(f"[red]配置文件不存在: {config_path}[/red]")
        raise typer.Exit(1)

    try:
        errors = validate_config(config_path)
        if not errors:
            errors = _pattern_errors(config_path)
    except ConfigError as e:
        if json_output:
            error_data = {
                "file": str(config_path),
                "error": str(e),
                "error_type": "config_error"
            }
            typer.echo(json.dumps(error_data, ensure_ascii=False, indent=2))
        else:
            console.print(f"[red]配置错误: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not errors:
        if json_output:
            typer.echo(json.dumps({"file": str(config_path), "valid": True, "error_count": 0}, indent=2))
        else:
            console.print(f"正在验证配置文件: [cyan]{config_path}[/cyan]")
            console.print("[green]✓ 配置文件验证通过[/green]")
        return

    if json_output:
        error_data = {
            "file": str(config_path),
            "valid": False,
            "errors": errors,
            "error_count": len(errors)
        }
        typer.echo(json.dumps(error_data, ensure_ascii=False, default=str, indent=2))
    else:
        console.print(f"[red]配置文件验证失败 ({len(errors)} 个错误):[/red]")
        console.print()

        table = Table(title="验证错误")
        table.add_column("位置", style="cyan", no_wrap=True)
        table.add_column("错误信息", style="red")
        table.add_column("输入值", style="yellow")

        for error in errors:
            location = " -> ".join(str(item) for item in error.get('loc', []))
            message = error.get('msg', '未知错误')
            input_value = str(error.get('input', ''))
            if len(input_value) > 47:
                input_value = input_value[:47] + "..."

            table.add_row(escape(location) or "根级别", escape(str(message)), escape(input_value) or "-")

        console.print(table)

    raise typer.Exit(1)
