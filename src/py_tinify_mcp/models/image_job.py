"""图像任务模型。

每个提交的文件对应一个任务，由所属批次持有。
"""

import threading
from pathlib import Path
from typing import Any

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .states import ImageState, StateKind


class ImageJob(BaseModel):
    """单张图像的优化任务

    以 ``source_path`` 作为身份标识，路径相同的两个任务视为同一个任务。
    ``optimized_size`` 和 ``final_path`` 只在结果成功放置后才有值。
    """

    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)

    source_path: Path = Field(frozen=True, description="源文件规范路径")
    original_size: int = Field(frozen=True, ge=0, description="提交时的文件大小（字节）")
    optimized_size: int | None = Field(None, ge=0, description="优化后大小（字节）")
    state: ImageState = Field(default_factory=ImageState.none, description="当前状态")
    final_path: Path | None = Field(None, description="最终存放路径")

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageJob":
        """根据文件路径创建任务，文件不存在时大小记为 0"""
        source = Path(path).expanduser().resolve()
        try:
            size = source.stat().st_size
        except OSError:
            size = 0
        return cls(source_path=source, original_size=size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageJob):
            return NotImplemented
        return self.source_path == other.source_path

    def __hash__(self) -> int:
        return hash(self.source_path)

    # ------------------------------------------------------------------
    # 状态变更
    # ------------------------------------------------------------------

    def apply_state(self, state: ImageState) -> None:
        """应用一个非 finished 的状态

        finished 必须伴随放置结果，请使用 :meth:`mark_placed`。
        """
        if state.kind == StateKind.FINISHED:
            raise ValueError("finished 状态需要通过 mark_placed 设置")
        with self._lock:
            self.optimized_size = None
            self.final_path = None
            self.state = state

    def mark_placed(self, state: ImageState, final_path: Path, optimized_size: int):
        """结果已成功放置，记录最终路径和大小"""
        if state.kind != StateKind.FINISHED:
            raise ValueError(f"期望 finished 状态，实际为 {state.kind.value}")
        with self._lock:
            self.optimized_size = optimized_size
            self.final_path = final_path
            self.state = state

    def mark_failed(self, error: BaseException | None) -> ImageState:
        """进入 error 状态并返回该状态"""
        state = ImageState.failed(error)
        self.apply_state(state)
        return state

    def reset(self) -> None:
        """重置为初始状态，以便重新提交"""
        self.apply_state(ImageState.none())

    # ------------------------------------------------------------------
    # 派生属性
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        """文件名"""
        return self.source_path.name

    @property
    def needs_processing(self) -> bool:
        """尚未处理或处理失败的任务需要（重新）处理"""
        return self.state.kind in (StateKind.NONE, StateKind.ERROR)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def optimized_rate(self) -> float:
        """节省的字节比例（0-1），尚无结果时为 0"""
        if not self.optimized_size or self.original_size == 0:
            return 0.0
        return max(0.0, (self.original_size - self.optimized_size) / self.original_size)

    def get_summary(self) -> str:
        """任务摘要"""
        if self.state.kind == StateKind.ERROR:
            return f"{self.name}: 失败 ({self.state.error})"
        if self.optimized_size is None:
            return f"{self.name}: {self.state}"
        return (
            f"{self.name}: {naturalsize(self.original_size, binary=True)} → "
            f"{naturalsize(self.optimized_size, binary=True)} "
            f"({self.optimized_rate:.1%} 压缩)"
        )

    def to_dict(self) -> dict[str, Any]:
        """导出为可序列化的字典"""
        return {
            "source_path": str(self.source_path),
            "state": self.state.kind.value,
            "original_size": self.original_size,
            "optimized_size": self.optimized_size,
            "optimized_rate": self.optimized_rate,
            "final_path": str(self.final_path) if self.final_path else None,
            "error": str(self.state.error) if self.state.error else None,
            "summary": self.get_summary(),
        }
