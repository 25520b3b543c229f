"""协议状态模型。

定义单张图像在上传、下载过程中的状态。
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class StateKind(str, Enum):
    """状态类型枚举"""

    NONE = "none"
    WAITING = "waiting"
    UPLOADING = "uploading"
    DOWNLOADING = "downloading"
    FINISHED = "finished"
    ERROR = "error"

    @property
    def order(self) -> int:
        """状态在流程中的先后顺序"""
        return list(StateKind).index(self)


TERMINAL_KINDS = frozenset({StateKind.FINISHED, StateKind.ERROR})


class ImageState(BaseModel):
    """图像处理状态（带标签的联合类型）

    ``progress`` 只在 uploading/downloading 时有意义，``location`` 只在
    finished 时有值，``error`` 只在 error 时有值。
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: StateKind = Field(description="状态类型")
    progress: float = Field(0.0, ge=0.0, le=1.0, description="当前阶段进度")
    location: Path | None = Field(None, description="下载完成的临时文件位置")
    error: BaseException | None = Field(None, description="错误原因")

    @classmethod
    def none(cls) -> "ImageState":
        return cls(kind=StateKind.NONE)

    @classmethod
    def waiting(cls) -> "ImageState":
        return cls(kind=StateKind.WAITING)

    @classmethod
    def uploading(cls, progress: float) -> "ImageState":
        return cls(kind=StateKind.UPLOADING, progress=progress)

    @classmethod
    def downloading(cls, progress: float) -> "ImageState":
        return cls(kind=StateKind.DOWNLOADING, progress=progress)

    @classmethod
    def finished(cls, location: Path) -> "ImageState":
        return cls(kind=StateKind.FINISHED, progress=1.0, location=location)

    @classmethod
    def failed(cls, error: BaseException | None) -> "ImageState":
        return cls(kind=StateKind.ERROR, error=error)

    @property
    def is_terminal(self) -> bool:
        """是否为终止状态"""
        return self.kind in TERMINAL_KINDS

    def __str__(self) -> str:
        match self.kind:
            case StateKind.UPLOADING | StateKind.DOWNLOADING:
                return f"{self.kind.value}({self.progress:.0%})"
            case StateKind.FINISHED:
                return f"finished({self.location})"
            case StateKind.ERROR:
                return f"error({self.error})"
            case _:
                return self.kind.value
