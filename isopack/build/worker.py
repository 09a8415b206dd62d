"""
后台构建

在独立线程中运行构建，调用方线程可以随时观察进度或请求取消。
进度回调在工作线程中执行。
"""

import threading
from typing import Optional, TYPE_CHECKING

from ..config.schema import BuildRequest
from ..utils.logging import error, LogStage
from .build_context import BuildError, BuildStatus, CancellationToken, ProgressCallback

if TYPE_CHECKING:
    from .builder import Builder, BuildResult


class BuildHandle:
    """后台构建句柄"""

    def __init__(self, cancel_token: CancellationToken):
        self.cancel_token = cancel_token
        self._done = threading.Event()
        self._result: Optional['BuildResult'] = None

    def cancel(self) -> None:
        """请求取消，构建在下一个检查点停止"""
        self.cancel_token.cancel()

    @property
    def is_running(self) -> bool:
        return not self._done.is_set()

    @property
    def result(self) -> Optional['BuildResult']:
        """构建结果，尚未结束时为 None"""
        return self._result

    def wait(self, timeout: Optional[float] = None) -> Optional['BuildResult']:
        """等待构建结束

        Returns:
            构建结果；超时时返回 None
        """
        if not self._done.wait(timeout):
            return None
        return self._result

    def _finish(self, result: 'BuildResult') -> None:
        self._result = result
        self._done.set()


class BuildWorker(threading.Thread):
    """运行单次构建的工作线程"""

    def __init__(
        self,
        builder: 'Builder',
        request: BuildRequest,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        super().__init__(name="isopack-build", daemon=True)
        self.builder = builder
        self.request = request
        self.progress_callback = progress_callback
        self.handle = BuildHandle(CancellationToken())

    def run(self) -> None:
        from .builder import BuildResult

        result = None
        try:
            result = self.builder._run(self.request, self.progress_callback, self.handle.cancel_token)
        except BuildError as e:
            result = BuildResult(status=BuildStatus.FAILED, error=str(e), exception=e)
        except Exception as e:
            # 进度回调等调用方代码抛出的异常
            error(f"构建线程异常: {e}", stage=LogStage.ERROR)
            wrapped = BuildError(f"构建线程异常: {e}")
            wrapped.__cause__ = e
            result = BuildResult(status=BuildStatus.FAILED, error=str(wrapped), exception=wrapped)
        finally:
            # 先释放构建锁再通知等待方，wait() 返回后即可启动下一次构建
            self.builder._release()
            self.handle._finish(result)
