"""
路径工具

提供路径处理相关的工具函数。
"""

import os
from pathlib import Path, PurePath
from typing import Union


def expand_path(path: Union[str, Path]) -> Path:
    """扩展路径（处理环境变量和用户目录）

    Args:
        path: 原始路径

    Returns:
        Path: 扩展后的绝对路径
    """
    if isinstance(path, str):
        path = os.path.expandvars(path)
        path = os.path.expanduser(path)

    return Path(path).resolve()


def ensure_directory(path: Union[str, Path]) -> Path:
    """确保目录存在

    Args:
        path: 目录路径

    Returns:
        Path: 目录路径
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def to_posix_relative(path: Union[str, PurePath], base: Union[str, PurePath]) -> str:
    """计算相对路径并统一为正斜杠分隔

    Args:
        path: 目标路径
        base: 基准目录

    Returns:
        str: 使用 '/' 分隔的相对路径
    """
    relative = os.path.relpath(os.fspath(path), os.fspath(base))
    return relative.replace(os.sep, '/').replace('\\', '/')


def is_within(path: Union[str, Path], directory: Union[str, Path]) -> bool:
    """判断 path 是否位于 directory 之内（按解析后的绝对路径比较）"""
    try:
        Path(path).resolve().relative_to(Path(directory).resolve())
    except ValueError:
        return False
    return True


def format_size(size_bytes: int) -> str:
    """格式化文件大小

    Args:
        size_bytes: 字节数

    Returns:
        str: 格式化的大小字符串
    """
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    else:
        return f"{size:.1f} {units[unit_index]}"
