"""单张图像的优化流水线。

按 上传 → 下载 的顺序驱动客户端，产出一个惰性、可取消、只能消费一次的
状态序列。
"""

from collections.abc import Iterator
from contextlib import closing

from ..exceptions import (
    ErrorHandler,
    OptimizerError,
    PipelineReuseError,
    SourceMissingError,
)
from ..models.image_job import ImageJob
from ..models.settings import OptimizeSettings
from ..models.states import ImageState
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .client import CancelToken, CompressionClient, DownloadComplete, Redirect


logger = get_logger()


def _clamp(fraction: float) -> float:
    return min(1.0, max(0.0, fraction))


class ImagePipeline:
    """单次运行的状态机

    状态流转::

        waiting → uploading(p) → downloading(p) → finished(temp) | error

    运行开始即产出 waiting；源文件不存在时直接产出 error，不发起任何网络请求；
    被取消时序列直接结束，不再产出事件。同一个阶段内的进度单调不减。
    """

    def __init__(
        self,
        job: ImageJob,
        client: CompressionClient,
        settings: OptimizeSettings,
        token: CancelToken | None = None,
    ):
        self.job = job
        self.client = client
        self.settings = settings
        self.token = token or CancelToken()
        self._started = False

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> None:
        """取消运行，中止在途的上传和下载（可在任意线程调用）"""
        if not self.token.cancelled:
            logger.info(f"取消处理: {self.job.source_path}")
        self.token.cancel()

    def run(self) -> Iterator[ImageState]:
        """开始运行并返回状态序列

        消费方必须读到终止状态或调用 :meth:`cancel`；提前关闭序列等同于取消。

        Raises:
            PipelineReuseError: 实例已经运行过
        """
        if self._started:
            raise PipelineReuseError(
                "流水线不能重复运行，请为重新处理创建新的实例", self.job.source_path
            )
        self._started = True
        return self._states()

    def _states(self) -> Iterator[ImageState]:
        source = self.job.source_path
        finished = False

        try:
            yield ImageState.waiting()

            if not source.is_file():
                finished = True
                error = SourceMissingError(MessageFormatter.file_not_found(source), source)
                ErrorHandler.log_error("图像优化", source, error, "warning")
                yield ImageState.failed(error)
                return

            try:
                redirect = yield from self._upload()
                if redirect is None:
                    return

                yield ImageState.downloading(0.0)
                location = yield from self._download(redirect)
                if location is None:
                    return
            except OptimizerError as e:
                if self.cancelled:
                    return
                finished = True
                ErrorHandler.log_error("图像优化", source, e, "warning")
                yield ImageState.failed(e)
                return
            except Exception as e:
                if self.cancelled:
                    return
                finished = True
                ErrorHandler.log_error("图像优化", source, e, "error")
                yield ImageState.failed(e)
                return

            finished = True
            yield ImageState.finished(location)
        finally:
            # 未到达终止状态就被关闭，视为取消
            if not finished:
                self.token.cancel()

    def _upload(self):
        last: float | None = None
        events = self.client.upload(self.job.source_path, self.settings.token, self.token)
        with closing(events):
            for event in events:
                if isinstance(event, Redirect):
                    # 空文件没有进度事件，uploading 阶段也不能跳过
                    if last is None:
                        yield ImageState.uploading(1.0)
                    return event
                last = max(last or 0.0, _clamp(event.fraction))
                yield ImageState.uploading(last)
        return None

    def _download(self, redirect: Redirect):
        last = 0.0
        events = self.client.download(
            redirect.location,
            self.settings.token,
            self.token,
            suffix=self.job.source_path.suffix,
        )
        with closing(events):
            for event in events:
                if isinstance(event, DownloadComplete):
                    return event.location
                last = max(last, _clamp(event.fraction))
                yield ImageState.downloading(last)
        return None
