"""
构建步骤基类模块

定义构建步骤的抽象接口。
"""

from abc import ABC, abstractmethod

from isopack.build.build_context import BuildContext


class BuildStep(ABC):
    """构建步骤抽象基类"""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    @abstractmethod
    def execute(self, context: BuildContext) -> None:
        """执行构建步骤，失败时抛出 BuildError 子类"""
        pass
