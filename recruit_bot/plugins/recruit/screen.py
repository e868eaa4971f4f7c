"""设备接口

自动公招只通过 Screen 与设备交互：截图、识别、点击、执行预设的界面任务、上报事件。
具体的截图/OCR/点击实现由使用方提供
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class Rect:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    def empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class TextRect:
    text: str
    rect: Rect = field(default_factory=Rect)


@dataclass
class RecruitScreen:
    """公招选择界面的识别结果"""
    tags: list[TextRect] = field(default_factory=list)
    refresh_rect: Optional[Rect] = None
    # 每个时间调节按钮一个区域，全部点一遍即可拉满到 09:00:00
    set_time_rects: list[Rect] = field(default_factory=list)

    @property
    def has_refresh(self) -> bool:
        return self.refresh_rect is not None and not self.refresh_rect.empty()


class AsstMsg(str, Enum):
    """事件级别"""
    SubTaskError = "SubTaskError"
    SubTaskExtraInfo = "SubTaskExtraInfo"


# ==================== 界面任务 ====================

RECRUIT_BEGIN = "RecruitBegin"
RECRUIT_FLAG = "RecruitFlag"
RECRUIT_NOW = "RecruitNow"
RECRUIT_CHECK_TIME_UNREDUCED = "RecruitCheckTimeUnreduced"
RECRUIT_CHECK_TIME_REDUCED = "RecruitCheckTimeReduced"
RECRUIT_CONFIRM = "RecruitConfirm"
RECRUIT_REFRESH = "RecruitRefresh"

# 各任务的重试次数，None 表示使用 Screen 的默认值
TASK_RETRY_TIMES: dict[str, Optional[int]] = {
    RECRUIT_BEGIN: None,
    RECRUIT_FLAG: 2,
    RECRUIT_NOW: None,
    RECRUIT_CHECK_TIME_UNREDUCED: 1,
    RECRUIT_CHECK_TIME_REDUCED: 2,
    RECRUIT_CONFIRM: 5,
    RECRUIT_REFRESH: None,
}


class Screen(ABC):
    """自动公招依赖的设备接口"""

    @abstractmethod
    def capture(self) -> Any:
        """截图"""

    @abstractmethod
    def recognize_recruit_screen(self, image: Any) -> Optional[RecruitScreen]:
        """识别公招选择界面，识别失败返回 None"""

    @abstractmethod
    def recognize_start_buttons(self, image: Any) -> list[Rect]:
        """识别"开始招募"按钮（StartRecruit），从左到右"""

    @abstractmethod
    def click(self, rect: Rect):
        ...

    @abstractmethod
    def click_return_button(self):
        ...

    @abstractmethod
    def process_task(self, task_name: str, retry_times: Optional[int] = None) -> bool:
        """执行预设的界面任务（点确认、点刷新、检查时间等），成功返回 True"""

    @abstractmethod
    def emit(self, msg: AsstMsg, info: dict):
        """上报事件，info 为 basic_info() 加上 what / why / details"""

    def sleep(self, ms: int):
        if ms > 0:
            time.sleep(ms / 1000)

    def need_exit(self) -> bool:
        return False

    def basic_info(self) -> dict:
        return {"taskchain": "Recruit", "class": "AutoRecruitTask"}
