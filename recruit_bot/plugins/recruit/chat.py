"""聊天截图适配

把用户发来的公招截图包装成 Screen，只用于计算模式：
不能点击、不能执行界面任务，事件全部记录下来供插件回复
"""

from typing import Any, Optional

from nonebot import logger

from .screen import AsstMsg, Rect, RecruitScreen, Screen, TextRect
from .tags import match_ocr_tag


class ChatScreen(Screen):
    """一张截图 + 它的 OCR 结果"""

    def __init__(self, image: bytes, ocr_lines: list[str], valid_tags: list[str]):
        self.image = image
        self.ocr_lines = ocr_lines
        self.valid_tags = valid_tags
        self.events: list[tuple[AsstMsg, dict]] = []

    def capture(self) -> bytes:
        return self.image

    def recognize_recruit_screen(self, image: Any) -> Optional[RecruitScreen]:
        tags: list[TextRect] = []
        for line in self.ocr_lines:
            tag = match_ocr_tag(line, self.valid_tags)
            if tag and all(tr.text != tag for tr in tags):
                tags.append(TextRect(text=tag))
        if not tags:
            return None
        return RecruitScreen(tags=tags)

    def recognize_start_buttons(self, image: Any) -> list[Rect]:
        return []

    def click(self, rect: Rect):
        pass

    def click_return_button(self):
        pass

    def process_task(self, task_name: str, retry_times: Optional[int] = None) -> bool:
        logger.debug(f"截图模式不支持界面任务: {task_name}")
        return False

    def sleep(self, ms: int):
        pass

    def emit(self, msg: AsstMsg, info: dict):
        logger.debug(f"[{msg.value}] {info.get('what')}: {info.get('details')}")
        self.events.append((msg, info))

    def find_event(self, what: str) -> Optional[dict]:
        """最后一次出现的指定事件"""
        for _, info in reversed(self.events):
            if info.get("what") == what:
                return info
        return None
