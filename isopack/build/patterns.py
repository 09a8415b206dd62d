"""
排除模式匹配器

把 glob 排除模式编译为针对正斜杠相对路径的匹配器（不区分大小写）。

语法沿用 fnmatch：``*`` ``?`` ``[...]`` ``[!...]``，其中 ``*`` 和 ``?`` 只匹配单个路径段，
不会跨越 ``/``。额外约定：

- ``**/`` 可以匹配零个或多个目录层级；
- 以 ``/`` 结尾的模式表示目录，目录本身及其下所有文件都会被排除；
- 以 ``/`` 开头的模式锚定在源目录根部，其余模式可以从任意层级开始匹配；
- 空行和以 ``#`` 开头的行会被忽略。
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Tuple

from .build_context import InvalidPatternError

# 非锚定模式可以从任意目录层级开始匹配
_ANY_PREFIX = r'(?:.*/)?'


@dataclass(frozen=True)
class GlobPattern:
    """单个已编译的排除模式"""
    pattern: str
    regex: Pattern[str]
    # 能整体排除某个目录的模式（``dir/`` 或 ``dir/**``），用于遍历时剪枝
    dir_regex: Optional[Pattern[str]] = None

    def matches(self, relative_path: str) -> bool:
        return self.regex.fullmatch(relative_path) is not None

    def excludes_directory(self, relative_dir: str) -> bool:
        return self.dir_regex is not None and self.dir_regex.fullmatch(relative_dir) is not None


def _translate_class(text: str, start: int, pattern: str) -> Tuple[str, int]:
    """翻译从 start（'[' 之后）开始的字符类，返回 (正则片段, 结束位置)"""
    i = start
    n = len(text)
    negate = False
    if i < n and text[i] in '!^':
        negate = True
        i += 1
    # 紧跟在 '[' 或 '[!' 之后的 ']' 是普通字符
    body_start = i
    if i < n and text[i] == ']':
        i += 1
    while i < n and text[i] != ']':
        i += 1
    if i >= n:
        raise InvalidPatternError(pattern, "字符类缺少结束的 ']'")

    body = text[body_start:i].replace('\\', '\\\\')
    if body.startswith('^') and not negate:
        body = '\\' + body
    prefix = '^' if negate else ''
    return f'[{prefix}{body}]', i + 1


def _translate_body(pattern: str, body: str) -> str:
    """把 glob 主体翻译为正则表达式"""
    out: List[str] = []
    i = 0
    n = len(body)
    while i < n:
        c = body[i]
        if c == '*':
            if i + 1 < n and body[i + 1] == '*':
                i += 2
                if i < n and body[i] == '/':
                    out.append(r'(?:.*/)?')
                    i += 1
                else:
                    out.append('.*')
                continue
            out.append('[^/]*')
        elif c == '?':
            out.append('[^/]')
        elif c == '[':
            fragment, i = _translate_class(body, i + 1, pattern)
            out.append(fragment)
            continue
        else:
            out.append(re.escape(c))
        i += 1
    return ''.join(out)


def _compile_regex(pattern: str, expression: str) -> Pattern[str]:
    try:
        return re.compile(expression, re.IGNORECASE | re.DOTALL)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e


def compile_pattern(pattern: str) -> GlobPattern:
    """编译单个排除模式

    Raises:
        InvalidPatternError: 模式格式错误
    """
    normalized = pattern.strip().replace('\\', '/')
    anchored = normalized.startswith('/')
    body = normalized.lstrip('/')
    if not body:
        raise InvalidPatternError(pattern, "模式不能只包含 '/'")

    directory_only = body.endswith('/')
    body = body.rstrip('/')
    prefix = '' if anchored else _ANY_PREFIX

    translated = _translate_body(pattern, body)

    dir_regex = None
    if directory_only:
        regex = _compile_regex(pattern, f'{prefix}{translated}(?:/.*)?')
        dir_regex = _compile_regex(pattern, f'{prefix}{translated}')
    else:
        regex = _compile_regex(pattern, f'{prefix}{translated}')
        if body.endswith('/**'):
            dir_regex = _compile_regex(pattern, f'{prefix}{_translate_body(pattern, body[:-3])}')

    return GlobPattern(pattern=pattern, regex=regex, dir_regex=dir_regex)


def _is_comment_or_blank(pattern: str) -> bool:
    stripped = pattern.strip()
    return not stripped or stripped.startswith('#')


class PatternMatcher:
    """排除模式匹配器

    任意一个模式匹配即视为排除；没有模式时不排除任何文件。
    """

    def __init__(self, patterns: Iterable[GlobPattern] = ()):
        self._patterns: List[GlobPattern] = list(patterns)

    @property
    def patterns(self) -> List[str]:
        return [p.pattern for p in self._patterns]

    def __len__(self) -> int:
        return len(self._patterns)

    def matches(self, relative_path: str) -> bool:
        """检查相对路径是否被排除"""
        if not self._patterns:
            return False
        path = relative_path.replace('\\', '/').strip('/')
        return any(p.matches(path) for p in self._patterns)

    def excludes_directory(self, relative_dir: str) -> bool:
        """检查目录下的所有内容是否都会被排除（用于遍历剪枝）"""
        path = relative_dir.replace('\\', '/').strip('/')
        return any(p.excludes_directory(path) for p in self._patterns)


def compile_patterns(patterns: Optional[Iterable[str]]) -> PatternMatcher:
    """编译排除模式列表

    Args:
        patterns: glob 模式序列，空行与 '#' 注释会被忽略

    Returns:
        PatternMatcher: 匹配器

    Raises:
        InvalidPatternError: 任一模式格式错误
    """
    compiled = [compile_pattern(p) for p in (patterns or []) if not _is_comment_or_blank(p)]
    return PatternMatcher(compiled)


def parse_pattern_text(text: str) -> List[str]:
    """把多行文本拆分为排除模式列表，每行一个模式"""
    return [line.strip() for line in text.splitlines() if not _is_comment_or_blank(line)]
