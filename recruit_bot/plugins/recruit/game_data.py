"""游戏数据管理模块

负责下载、缓存和解析明日方舟游戏数据，构建公招干员表
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

import httpx
from nonebot import logger


DATA_DIR = Path(__file__).parent.parent.parent.parent / "data" / "recruit"
CHAR_TABLE_FILE = DATA_DIR / "character_table.json"
GACHA_TABLE_FILE = DATA_DIR / "gacha_table.json"

# ==================== 职业映射 ====================

PROFESSION_MAP = {
    "PIONEER": "先锋干员",
    "WARRIOR": "近卫干员",
    "SNIPER": "狙击干员",
    "TANK": "重装干员",
    "MEDIC": "医疗干员",
    "SUPPORT": "辅助干员",
    "CASTER": "术师干员",
    "SPECIAL": "特种干员",
}

# 稀有度映射：新版 TIER_X 字符串 → 星级
RARITY_MAP = {
    "TIER_1": 1, "TIER_2": 2, "TIER_3": 3,
    "TIER_4": 4, "TIER_5": 5, "TIER_6": 6,
}

# 星级对应的资质标签
LEVEL_TAGS = {1: "支援机械", 5: "资深干员", 6: "高级资深干员"}


def parse_level(raw_rarity) -> int:
    """将 rarity 字段统一转换为星级 (1★ ~ 6★)，无法识别时返回 -1

    旧版数据是 0-based 数字，新版是 TIER_X 字符串
    """
    if isinstance(raw_rarity, bool):
        return -1
    if isinstance(raw_rarity, int):
        return raw_rarity + 1 if 0 <= raw_rarity <= 5 else -1
    if isinstance(raw_rarity, str):
        if raw_rarity in RARITY_MAP:
            return RARITY_MAP[raw_rarity]
        try:
            return parse_level(int(raw_rarity))
        except ValueError:
            pass
    return -1


# ==================== 干员表 ====================


@dataclass(frozen=True)
class OperatorInfo:
    """可公招干员"""
    name: str
    level: int
    tags: frozenset[str] = field(default_factory=frozenset)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


class EmptyCatalogError(ValueError):
    """干员表为空，通常是游戏数据缺失或解析失败"""


class RecruitCatalog:
    """只读的公招干员表

    加载后不再修改，由调用方注入到计算和自动公招任务中
    """

    def __init__(self, opers: Iterable[OperatorInfo], valid_tags: Iterable[str] = ()):
        self._opers = tuple(opers)
        if not self._opers:
            raise EmptyCatalogError("公招干员表为空")

        names = [op.name for op in self._opers]
        if len(set(names)) != len(names):
            raise ValueError("公招干员表中存在重名干员")

        index: dict[str, list[OperatorInfo]] = {}
        for op in self._opers:
            for tag in op.tags:
                index.setdefault(tag, []).append(op)
        self._by_tag = {tag: tuple(ops) for tag, ops in index.items()}

        self.valid_tags = list(valid_tags) or sorted(self._by_tag)

    def get_all_opers(self) -> tuple[OperatorInfo, ...]:
        return self._opers

    def opers_with_tag(self, tag: str) -> tuple[OperatorInfo, ...]:
        return self._by_tag.get(tag, ())

    def __iter__(self) -> Iterator[OperatorInfo]:
        return iter(self.get_all_opers())

    def __len__(self) -> int:
        return len(self._opers)


# ==================== 数据下载与缓存 ====================


def _ensure_dir():
    DATA_DIR.mkdir(parents=True, exist_ok=True)


async def download_game_data(char_url: str, gacha_url: str, force: bool = False):
    """
    下载游戏数据并缓存到本地

    Args:
        char_url: character_table.json 下载地址
        gacha_url: gacha_table.json 下载地址
        force: 是否强制重新下载
    """
    _ensure_dir()

    headers = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    }

    async with httpx.AsyncClient(timeout=60, headers=headers, follow_redirects=True) as client:
        for url, path in ((char_url, CHAR_TABLE_FILE), (gacha_url, GACHA_TABLE_FILE)):
            if not force and path.exists():
                continue
            logger.info(f"正在下载 {path.name} ...")
            resp = await client.get(url)
            resp.raise_for_status()
            path.write_bytes(resp.content)
            logger.info(f"{path.name} 下载完成 ({len(resp.content)} bytes)")


def is_data_ready() -> bool:
    """检查游戏数据是否已就绪"""
    return CHAR_TABLE_FILE.exists() and GACHA_TABLE_FILE.exists()


# ==================== 数据解析 ====================


def _load_json(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_all_recruit_tags(gacha_table: dict) -> list[str]:
    """从卡池表获取所有合法公招标签名"""
    return [tag["tagName"] for tag in gacha_table.get("gachaTags", [])]


def parse_recruit_pool(gacha_table: dict) -> set[str]:
    """
    从 recruitDetail 解析当前公招可用干员名单

    recruitDetail 格式举例:
      ★\\n干员1/干员2\\n\\n★★\\n干员3/干员4
    """
    recruit_detail = gacha_table.get("recruitDetail", "")
    names = set()
    for line in recruit_detail.replace("\\n", "\n").split("\n"):
        line = re.sub(r"<[^>]+>", "", line).strip()
        if not line or line.startswith("★"):
            continue
        line = line.replace("/", " ").replace("／", " ")
        for name in line.split():
            if name and name != "-":
                names.add(name)
    return names


def build_catalog(char_table: dict, gacha_table: dict) -> RecruitCatalog:
    """
    为每个可招募干员生成完整标签集

    标签 = tagList + 职业 + 位置 + 资质（1★ 支援机械 / 5★ 资深 / 6★ 高资）
    """
    valid_tags = get_all_recruit_tags(gacha_table)
    recruit_pool = parse_recruit_pool(gacha_table)

    opers = []
    seen = set()
    for char_data in char_table.values():
        if not isinstance(char_data, dict):
            continue

        name = char_data.get("name", "")
        if not name or name not in recruit_pool or name in seen:
            continue

        level = parse_level(char_data.get("rarity", 0))
        if level < 0:
            continue

        tags = set(char_data.get("tagList") or [])

        prof_name = PROFESSION_MAP.get(char_data.get("profession", ""))
        if prof_name:
            tags.add(prof_name)

        position = char_data.get("position", "")
        if position == "MELEE":
            tags.add("近战位")
        elif position == "RANGED":
            tags.add("远程位")

        if level in LEVEL_TAGS:
            tags.add(LEVEL_TAGS[level])

        seen.add(name)
        opers.append(OperatorInfo(name=name, level=level, tags=frozenset(tags)))

    return RecruitCatalog(opers, valid_tags)


def build_recruit_data() -> RecruitCatalog:
    """从本地缓存的游戏数据构建公招干员表"""
    return build_catalog(_load_json(CHAR_TABLE_FILE), _load_json(GACHA_TABLE_FILE))
