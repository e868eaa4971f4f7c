"""公招标签组合计算模块

核心算法：给定抽到的标签，计算所有可能的标签组合（最多 3 个）及其对应干员，
再按保底星级排序选出最优组合
"""

from dataclasses import dataclass, field, replace
from functools import cmp_to_key
from typing import Iterable, Sequence

from .game_data import OperatorInfo, RecruitCatalog
from .tags import TOP_OPERATOR


# 平均星级比较精度
DOUBLE_DIFF = 1e-9

# 九小时招募保底三星
TIME_FLOOR_LEVEL = 3


# ==================== 组合 ====================


@dataclass
class RecruitCombs:
    """一个标签组合及其可能招募到的干员

    tags 和 opers 始终有序（opers 按干员名），两个组合求交时依赖这一点
    """
    tags: list[str] = field(default_factory=list)
    opers: list[OperatorInfo] = field(default_factory=list)
    min_level: int = 0
    max_level: int = 0
    avg_level: float = 0.0

    @classmethod
    def from_opers(cls, tags: Iterable[str], opers: Iterable[OperatorInfo]) -> "RecruitCombs":
        opers = sorted(opers, key=lambda op: op.name)
        tags = sorted(set(tags))
        if not opers:
            return cls(tags=tags)
        levels = [op.level for op in opers]
        return cls(
            tags=tags,
            opers=opers,
            min_level=min(levels),
            max_level=max(levels),
            avg_level=sum(levels) / len(levels),
        )

    def __mul__(self, other: "RecruitCombs") -> "RecruitCombs":
        names = {op.name for op in other.opers}
        return RecruitCombs.from_opers(
            [*self.tags, *other.tags],
            [op for op in self.opers if op.name in names],
        )

    def __bool__(self) -> bool:
        return bool(self.opers)

    def to_json(self) -> dict:
        return {
            "tags": list(self.tags),
            "opers": [{"name": op.name, "level": op.level} for op in self.opers],
            "level": self.min_level,
        }


def _visible(comb: RecruitCombs) -> RecruitCombs:
    """没有选高资时招不到六星"""
    if TOP_OPERATOR in comb.tags:
        return comb
    return RecruitCombs.from_opers(comb.tags, (op for op in comb.opers if op.level < 6))


def get_all_combs(tags: Sequence[str], catalog: RecruitCatalog) -> list[RecruitCombs]:
    """
    计算所有非空的标签组合（1~3 个标签）

    单标签按抽到的顺序输出，双/三标签紧跟在其首个标签之后按 (i, j, k) 字典序输出。
    求交集时保留六星干员，输出时再按是否含高资过滤，
    这样 {高资, 近卫} 也能正确包含六星近卫

    Args:
        tags: 抽到的标签（通常为 5 个）
        catalog: 公招干员表

    Returns:
        组合列表，不含空组合
    """
    singles = [RecruitCombs.from_opers([tag], catalog.opers_with_tag(tag)) for tag in tags]
    result: list[RecruitCombs] = []

    def _emit(comb: RecruitCombs):
        comb = _visible(comb)
        if comb:
            result.append(comb)

    for i, temp1 in enumerate(singles):
        if not temp1:
            continue
        _emit(temp1)

        for j in range(i + 1, len(singles)):
            temp2 = temp1 * singles[j]
            # 两个标签已经没有交集，再加第三个也不会有
            if not temp2:
                continue
            _emit(temp2)

            for k in range(j + 1, len(singles)):
                temp3 = temp2 * singles[k]
                if temp3:
                    _emit(temp3)

    return result


# ==================== 排序 ====================


def compare_combs(lhs: RecruitCombs, rhs: RecruitCombs) -> int:
    """负数表示 lhs 更优"""
    if lhs.min_level != rhs.min_level:
        return rhs.min_level - lhs.min_level  # 保底星级高的在前
    if lhs.max_level != rhs.max_level:
        return rhs.max_level - lhs.max_level  # 最高星级高的在前
    if abs(lhs.avg_level - rhs.avg_level) > DOUBLE_DIFF:
        return -1 if lhs.avg_level > rhs.avg_level else 1  # 平均星级高的在前
    return len(lhs.tags) - len(rhs.tags)  # 标签少的在前，好点


def sort_combs(combs: Iterable[RecruitCombs]) -> list[RecruitCombs]:
    """稳定排序，完全相同的组合保持计算时的顺序"""
    return sorted(combs, key=cmp_to_key(compare_combs))


def apply_time_floor(combs: Iterable[RecruitCombs], floor: int = TIME_FLOOR_LEVEL) -> list[RecruitCombs]:
    """时间设为 09:00:00 时 1★/2★ 会被提升为至少 3★，只在确定要拉满时间时调用"""
    return [replace(rc, min_level=max(rc.min_level, floor)) for rc in combs]


def calc_best_combs(tags: Sequence[str], catalog: RecruitCatalog) -> list[RecruitCombs]:
    """计算 + 保底 + 排序，第一个就是最终选择的组合"""
    return sort_combs(apply_time_floor(get_all_combs(tags, catalog)))


# ==================== 展示 ====================

RARITY_STARS = {level: "★" * level for level in range(1, 7)}


def rarity_display(level: int) -> str:
    """星级显示"""
    return RARITY_STARS.get(level, f"{level}★")


def filter_valuable(combs: Iterable[RecruitCombs]) -> list[RecruitCombs]:
    """只保留值得展示的组合：保底 4★ 及以上，或必出 1★（支援机械）"""
    return [rc for rc in combs if rc.min_level >= 4 or rc.max_level == 1]


def format_results(combs: list[RecruitCombs]) -> str:
    """
    将计算结果格式化为文本

    Args:
        combs: 已排序的组合列表

    Returns:
        格式化的文本消息
    """
    if not combs:
        return "没有找到有价值的标签组合喵~\n（只显示保底 4★ 及以上和必出 1★ 的组合）"

    lines = []
    for i, rc in enumerate(combs):
        tag_str = " + ".join(rc.tags)

        if rc.max_level == 1:
            prefix = "🤖"
        elif rc.min_level >= 5:
            prefix = "🌟"
        elif rc.min_level >= 4:
            prefix = "⭐"
        else:
            prefix = "▪️"

        min_star = 1 if rc.max_level == 1 else rc.min_level
        lines.append(f"{prefix}【{tag_str}】(保底 {min_star}★)")

        for op in sorted(rc.opers, key=lambda op: (-op.level, op.name)):
            lines.append(f"  {rarity_display(op.level)} {op.name}")

        if i < len(combs) - 1:
            lines.append("")

    return "\n".join(lines)
