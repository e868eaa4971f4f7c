"""自动公招任务

逐个处理公招栏位：打开栏位 → 识别标签 → 计算最优组合 → 按策略刷新/跳过/选择 → 确认招募
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional

from nonebot import logger
from pydantic import BaseModel

from .config import Config
from .game_data import RecruitCatalog
from .recruit import apply_time_floor, get_all_combs, sort_combs
from .screen import (
    RECRUIT_BEGIN,
    RECRUIT_CHECK_TIME_REDUCED,
    RECRUIT_CHECK_TIME_UNREDUCED,
    RECRUIT_CONFIRM,
    RECRUIT_FLAG,
    RECRUIT_NOW,
    RECRUIT_REFRESH,
    TASK_RETRY_TIMES,
    AsstMsg,
    Rect,
    Screen,
)
from .tags import CORRECT_NUMBER_OF_TAGS, ROBOT_TAGS, SENIOR_TAGS


SLOT_RETRY_LIMIT = 3
REFRESH_LIMIT = 3
ANALYZE_LIMIT = 5


class RecruitSession(BaseModel):
    """一次自动公招的策略配置"""
    select_level: list[int] = [3, 4, 5, 6]
    confirm_level: list[int] = [3, 4, 5, 6]
    need_refresh: bool = False
    use_expedited: bool = False
    skip_robot: bool = True
    set_time: bool = True
    max_times: int = 4
    task_delay: int = 0
    # 只识别计算，不操作界面
    calc_only: bool = False

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "RecruitSession":
        values = dict(
            select_level=config.recruit_select_level,
            confirm_level=config.recruit_confirm_level,
            need_refresh=config.recruit_need_refresh,
            use_expedited=config.recruit_use_expedited,
            skip_robot=config.recruit_skip_robot,
            set_time=config.recruit_set_time,
            max_times=config.recruit_max_times,
            task_delay=config.recruit_task_delay,
        )
        values.update(overrides)
        return cls(**values)

    def set_select_level(self, select_level: list[int]) -> "RecruitSession":
        self.select_level = list(select_level)
        return self

    def set_confirm_level(self, confirm_level: list[int]) -> "RecruitSession":
        self.confirm_level = list(confirm_level)
        return self

    def set_need_refresh(self, need_refresh: bool) -> "RecruitSession":
        self.need_refresh = need_refresh
        return self

    def set_use_expedited(self, use_or_not: bool) -> "RecruitSession":
        self.use_expedited = use_or_not
        return self

    def set_skip_robot(self, skip_robot: bool) -> "RecruitSession":
        self.skip_robot = skip_robot
        return self

    def set_set_time(self, set_time: bool) -> "RecruitSession":
        self.set_time = set_time
        return self

    def set_max_times(self, max_times: int) -> "RecruitSession":
        self.max_times = max_times
        return self

    def is_calc_only_task(self) -> bool:
        return self.calc_only


@dataclass
class CalcOutcome:
    """recruit_calc_task 的结果"""
    success: bool
    force_skip: bool = False
    selected: int = 0


class AutoRecruitTask:
    """
    自动公招状态机

    所有步骤同步执行，每个阻塞操作前检查 screen.need_exit()，
    需要退出时直接返回 False，不上报错误
    """

    def __init__(self, screen: Screen, catalog: RecruitCatalog, session: RecruitSession):
        self.screen = screen
        self.catalog = catalog
        self.session = session

        self.start_buttons: list[Rect] = []
        self.pending_slots: deque[int] = deque()
        self.slot_fail = 0
        # 按下确认的次数，不是加急许可的使用次数
        self.recruit_times = 0

    # ==================== 主流程 ====================

    def run(self) -> bool:
        if self.session.is_calc_only_task():
            return self.recruit_calc_task().success

        if not self.recruit_begin():
            return False

        if not self.check_recruit_home_page():
            return False

        if not self.session.use_expedited:
            self.analyze_start_buttons()  # 只识别一次

        self.slot_fail = 0
        self.recruit_times = 0
        while (self.session.use_expedited or self.pending_slots) \
                and self.recruit_times < self.session.max_times:
            if self.slot_fail >= SLOT_RETRY_LIMIT:
                logger.info(f"公招栏位连续失败 {self.slot_fail} 次，停止")
                return False

            if self.session.use_expedited:
                logger.info("准备使用加急许可")
                if self.screen.need_exit():
                    return False
                self.recruit_now()
                if not self.check_recruit_home_page():
                    return False
                # 加急后按钮位置可能变化，重新识别
                self.analyze_start_buttons()

            if self.screen.need_exit():
                return False

            if self.recruit_one():
                self.recruit_times += 1
            else:
                self.slot_fail += 1

        return True

    def analyze_start_buttons(self) -> bool:
        image = self.screen.capture()
        self.pending_slots.clear()
        buttons = self.screen.recognize_start_buttons(image)
        if not buttons:
            logger.info("没有找到开始招募按钮")
            self.start_buttons = []
            return False
        self.start_buttons = sorted(buttons, key=lambda r: r.x)
        self.pending_slots.extend(range(len(self.start_buttons)))
        logger.info(f"开始招募按钮数量: {len(self.start_buttons)}")
        return True

    def recruit_one(self) -> bool:
        """
        打开一个待处理的栏位，设置时间和标签后确认，或者什么都不做直接退出

        以下情况返回 False:
          - 识别失败
          - 时间没有被正确设置（标签可能也没点对）
          - 确认失败
        """
        delay = self.session.task_delay

        if not self.pending_slots:
            return False
        index = self.pending_slots[0]
        if index >= len(self.start_buttons):
            logger.info(f"公招栏位 {index} 超出范围")
            self.pending_slots.popleft()
            return False

        logger.info(f"公招栏位: {index}")
        self.screen.click(self.start_buttons[index])
        self.screen.sleep(delay)

        outcome = self.recruit_calc_task()
        self.screen.sleep(delay)

        self.pending_slots.popleft()

        if not outcome.success:
            if self.screen.need_exit():
                return False
            # 识别失败，重新打开这个栏位大概也没用
            self._callback(AsstMsg.SubTaskError, "RecruitError", why="识别错误")
            self.screen.click_return_button()
            return False

        if outcome.force_skip:
            # 当作已处理，留给玩家手动操作
            self.screen.click_return_button()
            return True

        if self.screen.need_exit():
            return False

        if not self.check_time_reduced():
            # 时间没有拉到 09:00:00，标签大概率也没选对，稍后重试
            logger.info(f"公招栏位 {index} 时间未被正确设置，稍后重试")
            self.pending_slots.append(index)
            self.screen.click_return_button()
            return False

        if self.screen.need_exit():
            return False

        if not self.confirm():
            logger.info(f"公招栏位 {index} 确认失败")
            self.pending_slots.append(index)
            self.screen.click_return_button()
            return False

        return True

    # ==================== 识别与决策 ====================

    def recruit_calc_task(self) -> CalcOutcome:
        """识别标签、计算组合，并按策略刷新/跳过/设置时间/选择标签"""
        session = self.session
        refresh_count = 0

        attempt = 0
        while attempt < ANALYZE_LIMIT:
            attempt += 1
            if self.screen.need_exit():
                return CalcOutcome(success=False)

            recognized = self.screen.recognize_recruit_screen(self.screen.capture())
            if recognized is None or len(recognized.tags) != CORRECT_NUMBER_OF_TAGS:
                logger.info(f"公招标签识别失败，第 {attempt} 次")
                continue

            tag_rects = recognized.tags
            tag_names = [tr.text for tr in tag_rects]
            self._callback(AsstMsg.SubTaskExtraInfo, "RecruitTagsDetected", details={"tags": tag_names})

            special_tag = next((t for t in SENIOR_TAGS if t in tag_names), None)
            if special_tag:
                self._callback(AsstMsg.SubTaskExtraInfo, "RecruitSpecialTag", details={"tag": special_tag})

            robot_tag = next((t for t in ROBOT_TAGS if t in tag_names), None)
            if robot_tag:
                self._callback(AsstMsg.SubTaskExtraInfo, "RecruitSpecialTag", details={"tag": robot_tag})

            combs = get_all_combs(tag_names, self.catalog)
            if session.set_time:
                # 时间会被拉到 09:00:00
                combs = apply_time_floor(combs)
            result = sort_combs(combs)
            if not result:
                continue

            final = result[0]
            skip_for_robot = session.skip_robot and robot_tag is not None

            self._callback(AsstMsg.SubTaskExtraInfo, "RecruitResult", details={
                "result": [rc.to_json() for rc in result],
                "level": final.min_level,
                "robot": skip_for_robot,
            })

            if self.screen.need_exit():
                return CalcOutcome(success=False)

            if session.need_refresh and recognized.has_refresh \
                    and special_tag is None \
                    and final.min_level == 3 \
                    and not skip_for_robot:
                if refresh_count > REFRESH_LIMIT:
                    self._callback(
                        AsstMsg.SubTaskError, "RecruitError",
                        why="刷新次数达到上限", details={"refresh_limit": REFRESH_LIMIT},
                    )
                    return CalcOutcome(success=False)

                self.refresh()
                self._callback(AsstMsg.SubTaskExtraInfo, "RecruitTagsRefreshed", details={
                    "count": refresh_count,
                    "refresh_limit": REFRESH_LIMIT,
                })
                logger.debug(f"公招标签已刷新 {refresh_count} 次，重新识别")
                refresh_count += 1
                # 刷新不算识别失败
                attempt -= 1
                continue

            if self.screen.need_exit():
                return CalcOutcome(success=False)

            if not session.is_calc_only_task():
                if final.min_level not in session.confirm_level or skip_for_robot:
                    return CalcOutcome(success=True, force_skip=True)

            if session.set_time:
                for rect in recognized.set_time_rects:
                    self.screen.click(rect)

            if final.min_level not in session.select_level:
                return CalcOutcome(success=True)

            for tag in final.tags:
                tag_rect = next((tr for tr in tag_rects if tr.text == tag), None)
                if tag_rect is not None:
                    self.screen.click(tag_rect.rect)

            self._callback(AsstMsg.SubTaskExtraInfo, "RecruitTagsSelected", details={"tags": list(final.tags)})
            return CalcOutcome(success=True, selected=len(final.tags))

        return CalcOutcome(success=False)

    # ==================== 界面任务 ====================

    def _process(self, task_name: str) -> bool:
        return self.screen.process_task(task_name, TASK_RETRY_TIMES[task_name])

    def recruit_begin(self) -> bool:
        return self._process(RECRUIT_BEGIN)

    def check_recruit_home_page(self) -> bool:
        return self._process(RECRUIT_FLAG)

    def check_time_unreduced(self) -> bool:
        return self._process(RECRUIT_CHECK_TIME_UNREDUCED)

    def check_time_reduced(self) -> bool:
        return self._process(RECRUIT_CHECK_TIME_REDUCED)

    def recruit_now(self) -> bool:
        return self._process(RECRUIT_NOW)

    def confirm(self) -> bool:
        return self._process(RECRUIT_CONFIRM)

    def refresh(self) -> bool:
        return self._process(RECRUIT_REFRESH)

    def _callback(self, msg: AsstMsg, what: str, why: Optional[str] = None, details: Optional[dict] = None):
        info = self.screen.basic_info()
        info["what"] = what
        if why is not None:
            info["why"] = why
        if details is not None:
            info["details"] = details
        self.screen.emit(msg, info)
