"""优化设置模型。

显式传入每次流水线和放置调用的配置值，替代隐式的全局设置对象。
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from ..config import AppConfig, get_config


class PlacementPolicy(str, Enum):
    """结果放置策略"""

    OVERRIDE = "override"  # 覆盖原文件（带备份回滚）
    DIRECTORY = "directory"  # 放入指定目录（重名自动编号）


class OptimizeSettings(BaseModel):
    """一次批处理使用的设置"""

    token: str = Field("", description="Tinify API token")
    policy: PlacementPolicy = Field(PlacementPolicy.OVERRIDE, description="放置策略")
    destination_dir: Path | None = Field(None, description="保存目录（目录模式必填）")
    auto_process: bool = Field(True, description="拖入后自动处理（仅供界面层参考）")

    @field_validator("token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        return v.strip()

    @field_validator("destination_dir", mode="before")
    @classmethod
    def empty_dir_to_none(cls, v: str | Path | None) -> Path | None:
        # 空字符串视为未配置，由放置阶段报告配置错误
        if v is None or str(v).strip() == "":
            return None
        return Path(v).expanduser()

    @property
    def override(self) -> bool:
        return self.policy == PlacementPolicy.OVERRIDE

    @classmethod
    def from_config(cls, app_config: AppConfig | None = None, **overrides) -> "OptimizeSettings":
        """从应用配置（环境变量）构建设置，``overrides`` 中非 None 的值优先"""
        app_config = app_config or get_config()
        user = app_config.user
        values = {
            "token": user.API_TOKEN,
            "policy": (
                PlacementPolicy.OVERRIDE
                if user.OVERRIDE_ORIGINAL
                else PlacementPolicy.DIRECTORY
            ),
            "destination_dir": user.DESTINATION_DIR,
            "auto_process": user.AUTO_PROCESS,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
