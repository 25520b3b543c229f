"""批量处理器模块。

把一批图像分发给各自独立的流水线并发运行，下载完成后放置结果，
并维护批处理进行中的标记。
"""

import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import closing, contextmanager

from ..core.client import CompressionClient
from ..core.pipeline import ImagePipeline
from ..core.placement import FilePlacer
from ..exceptions import ErrorHandler, PlacementError
from ..models.batch_result import BatchResult
from ..models.image_job import ImageJob
from ..models.settings import OptimizeSettings
from ..models.states import ImageState, StateKind
from ..utils.cleanup_helpers import TempFileManager
from ..utils.logging_helpers import get_logger
from .concurrent_executor import ConcurrentExecutor


logger = get_logger()

StateCallback = Callable[[ImageJob, ImageState], None]


class BatchRunner:
    """批量图像处理器

    每个任务一个线程，互不影响；任何任务的失败都只停留在该任务上。
    可以在已有批次运行时对部分任务再次调用 :meth:`run_batch`（手动重试），
    同一任务的新运行会取代旧运行。
    """

    def __init__(
        self,
        client: CompressionClient,
        placer: FilePlacer | None = None,
        executor: ConcurrentExecutor | None = None,
    ):
        self.client = client
        self.placer = placer or FilePlacer()
        self.executor = executor or ConcurrentExecutor()

        self._lock = threading.Lock()
        self._active_batches = 0
        self._pipelines: dict[ImageJob, ImagePipeline] = {}
        # 任务锁不随运行结束删除，新旧运行必须拿到同一把锁
        self._job_locks: dict[ImageJob, threading.Lock] = {}

    @property
    def is_processing(self) -> bool:
        """是否有批次仍在运行（包括结果放置阶段）"""
        with self._lock:
            return self._active_batches > 0

    def cancel(self, job: ImageJob) -> bool:
        """取消某个任务的在途运行，不影响其他任务

        Returns:
            bool: 是否找到了在途运行
        """
        with self._lock:
            pipeline = self._pipelines.get(job)
        if pipeline is None:
            return False
        pipeline.cancel()
        return True

    def run_batch(
        self,
        jobs: Iterable[ImageJob],
        settings: OptimizeSettings,
        on_state: StateCallback | None = None,
    ) -> BatchResult:
        """运行一批任务，所有任务到达终止状态（或被取消）后返回

        Args:
            jobs: 任务列表，路径相同的任务只运行一次
            settings: 本批次使用的设置
            on_state: 每次状态变化时的回调

        Returns:
            BatchResult: 批量处理结果
        """
        unique_jobs = list(dict.fromkeys(jobs))

        with self._lock:
            self._active_batches += 1
        logger.info(f"开始批处理: {len(unique_jobs)} 个文件")

        try:
            outcomes = self.executor.execute_tasks(
                unique_jobs,
                lambda job: self._run_job(job, settings, on_state),
                lambda job, error: self._crash(job, error, on_state),
            )
        finally:
            with self._lock:
                self._active_batches -= 1

        cancelled = [job for job, state in outcomes if state is None]
        result = BatchResult(jobs=unique_jobs, cancelled=cancelled)
        logger.info(result.get_summary())
        return result

    # ------------------------------------------------------------------
    # 单任务
    # ------------------------------------------------------------------

    def _run_job(
        self,
        job: ImageJob,
        settings: OptimizeSettings,
        on_state: StateCallback | None,
    ) -> ImageState | None:
        """驱动单个任务到终止状态；被取消时返回 None"""
        pipeline = ImagePipeline(job, self.client, settings)
        self._register(job, pipeline)
        outcome: ImageState | None = None

        try:
            with self._ownership(job, pipeline) as owned:
                if not owned:
                    return None
                job.reset()
            self._publish(job, ImageState.none(), on_state)

            with TempFileManager() as temp_files, closing(pipeline.run()) as states:
                for state in states:
                    if state.kind == StateKind.FINISHED:
                        temp_files.register_temp_file(state.location)
                    # 检查和修改任务在同一把锁内，被取代的运行不会再改动任务
                    with self._ownership(job, pipeline) as owned:
                        if not owned or pipeline.cancelled:
                            break
                        if state.kind == StateKind.FINISHED:
                            state = self._place(job, state, settings)
                            if state.kind == StateKind.FINISHED:
                                temp_files.release(state.location)
                        else:
                            job.apply_state(state)
                    if state.is_terminal:
                        outcome = state
                    self._publish(job, state, on_state)

            if outcome is not None:
                return outcome

            # 被取消：只有仍是该任务的当前运行时才复位，避免覆盖新运行的状态
            with self._ownership(job, pipeline) as owned:
                if owned:
                    job.reset()
            if owned:
                self._publish(job, ImageState.none(), on_state)
            return None
        finally:
            self._unregister(job, pipeline)

    def _place(
        self, job: ImageJob, state: ImageState, settings: OptimizeSettings
    ) -> ImageState:
        """放置下载结果；失败时任务进入 error 状态"""
        try:
            final_path = self.placer.place(state.location, job, settings)
            optimized_size = final_path.stat().st_size
        except (PlacementError, OSError) as e:
            ErrorHandler.log_error("文件放置", job.source_path, e, "warning")
            return job.mark_failed(e)

        job.mark_placed(state, final_path, optimized_size)
        logger.info(job.get_summary())
        return state

    def _crash(
        self, job: ImageJob, error: Exception, on_state: StateCallback | None
    ) -> ImageState:
        ErrorHandler.log_error("批处理任务", job.source_path, error, "error")
        state = job.mark_failed(error)
        self._publish(job, state, on_state)
        return state

    @staticmethod
    def _publish(
        job: ImageJob, state: ImageState, on_state: StateCallback | None
    ) -> None:
        if on_state is not None:
            on_state(job, state)

    # ------------------------------------------------------------------
    # 在途运行登记
    # ------------------------------------------------------------------

    def _register(self, job: ImageJob, pipeline: ImagePipeline) -> None:
        with self._lock:
            previous = self._pipelines.get(job)
            self._pipelines[job] = pipeline
        if previous is not None:
            logger.info(f"重新提交，取消之前的运行: {job.source_path}")
            previous.cancel()

    def _unregister(self, job: ImageJob, pipeline: ImagePipeline) -> None:
        with self._lock:
            if self._pipelines.get(job) is pipeline:
                del self._pipelines[job]

    def _owns(self, job: ImageJob, pipeline: ImagePipeline) -> bool:
        with self._lock:
            return self._pipelines.get(job) is pipeline

    @contextmanager
    def _ownership(self, job: ImageJob, pipeline: ImagePipeline) -> Iterator[bool]:
        """持有任务锁并给出该运行是否仍是任务的当前运行"""
        with self._lock:
            job_lock = self._job_locks.setdefault(job, threading.Lock())
        with job_lock:
            yield self._owns(job, pipeline)
