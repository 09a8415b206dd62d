"""
文件收集器

递归遍历源目录，应用排除模式，生成按相对路径排序的文件清单。

符号链接策略：不进入指向目录的符号链接（避免循环），
指向普通文件的符号链接按目标文件内容收录；其他特殊文件一律跳过。
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from ..utils.logging import collect_logger
from .build_context import DirectoryNotFoundError, ImageIOError
from .patterns import PatternMatcher, compile_patterns


@dataclass
class FileInfo:
    """文件信息"""
    path: Path  # 绝对路径
    relative_path: str  # 相对于源目录的路径，统一使用正斜杠
    size: int  # 文件大小（字节）
    mtime: float  # 修改时间（时间戳）

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            'path': self.relative_path,
            'size': self.size,
            'mtime': self.mtime,
        }


class FileCollector:
    """文件收集器

    负责扫描和收集需要打包的文件，应用排除规则。
    """

    def __init__(self):
        self.collected_files: List[FileInfo] = []
        self.total_size: int = 0
        self.excluded_count: int = 0
        self.skipped_links: int = 0

    def collect(self, source_dir: Union[str, Path], matcher: Optional[PatternMatcher] = None) -> List[FileInfo]:
        """收集文件

        Args:
            source_dir: 源目录
            matcher: 排除模式匹配器，None 表示不排除

        Returns:
            List[FileInfo]: 按相对路径排序的文件列表

        Raises:
            DirectoryNotFoundError: 源目录不存在，或遍历过程中目录消失
            ImageIOError: 目录无法读取
        """
        self.collected_files = []
        self.total_size = 0
        self.excluded_count = 0
        self.skipped_links = 0

        root = Path(source_dir).absolute()
        if not root.is_dir():
            raise DirectoryNotFoundError(root)

        matcher = matcher or PatternMatcher()
        for file_info in self._walk_directory(root, "", matcher):
            self.collected_files.append(file_info)
            self.total_size += file_info.size

        # 按相对路径排序，确保输出一致性
        self.collected_files.sort(key=lambda f: f.relative_path)
        return self.collected_files

    def get_statistics(self) -> Dict[str, Any]:
        """获取收集统计信息"""
        return {
            'total_files': len(self.collected_files),
            'total_size': self.total_size,
            'total_size_mb': round(self.total_size / (1024 * 1024), 2),
            'excluded': self.excluded_count,
            'skipped_links': self.skipped_links,
        }

    def _scan(self, directory: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda e: e.name)
        except FileNotFoundError as e:
            raise DirectoryNotFoundError(directory, f"遍历过程中目录消失: {directory}") from e
        except NotADirectoryError as e:
            raise DirectoryNotFoundError(directory, f"遍历过程中目录被替换: {directory}") from e
        except OSError as e:
            raise ImageIOError(f"无法读取目录 {directory}: {e}") from e

    def _walk_directory(self, directory: Path, relative_dir: str, matcher: PatternMatcher) -> Iterator[FileInfo]:
        """递归遍历目录

        Args:
            directory: 要遍历的目录
            relative_dir: 该目录相对于源目录的路径（根目录为空字符串）
            matcher: 排除模式匹配器

        Yields:
            FileInfo: 未被排除的普通文件
        """
        for entry in self._scan(directory):
            relative_path = f"{relative_dir}/{entry.name}" if relative_dir else entry.name

            if entry.is_dir(follow_symlinks=False):
                if matcher.excludes_directory(relative_path):
                    collect_logger.debug(f"排除目录: {relative_path}/")
                    self.excluded_count += 1
                    continue
                yield from self._walk_directory(Path(entry.path), relative_path, matcher)
                continue

            if entry.is_symlink() and entry.is_dir():
                collect_logger.debug(f"跳过目录符号链接: {relative_path}")
                self.skipped_links += 1
                continue

            if not entry.is_file():
                collect_logger.debug(f"跳过非普通文件: {relative_path}")
                continue

            if matcher.matches(relative_path):
                collect_logger.debug(f"排除文件: {relative_path}")
                self.excluded_count += 1
                continue

            try:
                stat = entry.stat()
            except FileNotFoundError:
                collect_logger.warning(f"文件在扫描期间被删除，已跳过: {relative_path}")
                continue
            except OSError as e:
                raise ImageIOError(f"无法读取文件信息 {entry.path}: {e}") from e

            yield FileInfo(
                path=Path(entry.path),
                relative_path=relative_path,
                size=stat.st_size,
                mtime=stat.st_mtime,
            )


def collect_files(
    source_dir: Union[str, Path],
    exclude_patterns: Optional[Iterable[str]] = None
) -> List[FileInfo]:
    """便捷函数：收集文件

    Args:
        source_dir: 源目录
        exclude_patterns: 排除模式列表

    Returns:
        List[FileInfo]: 文件信息列表
    """
    collector = FileCollector()
    return collector.collect(source_dir, compile_patterns(exclude_patterns))
