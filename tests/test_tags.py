from __future__ import annotations

from fakes import OPERATORS
from recruit_bot.plugins.recruit.tags import (
    extract_tags_from_ocr,
    match_ocr_tag,
    normalize_tags,
    resolve_tag,
    smart_split_tags,
)


VALID_TAGS = sorted({tag for _, _, tags in OPERATORS for tag in tags})


def test_smart_split_glued_aliases():
    assert smart_split_tags("高资近卫输出", VALID_TAGS) == ["高资", "近卫", "输出"]


def test_smart_split_separators():
    assert smart_split_tags("狙击干员，爆发 新手", VALID_TAGS) == ["狙击干员", "爆发", "新手"]


def test_normalize_aliases_and_dedup():
    raw = ["高资", "近卫", "近卫干员", "术士", "输"]
    assert normalize_tags(raw, VALID_TAGS) == ["高级资深干员", "近卫干员", "术师干员", "输出"]


def test_normalize_drops_unknown():
    assert normalize_tags(["不存在的标签", ""], VALID_TAGS) == []


def test_match_ocr_tag_prefers_longest():
    assert match_ocr_tag("高级资深干员", VALID_TAGS) == "高级资深干员"
    assert match_ocr_tag(" 资深干员 ", VALID_TAGS) == "资深干员"
    assert match_ocr_tag("公开招募", VALID_TAGS) is None


def test_extract_tags_from_ocr_keeps_screen_order():
    lines = ["公开招募", "招募时限", "09:00:00", "狙击干员", "支援", "新手", "减速", "爆发", "爆发"]
    assert extract_tags_from_ocr(lines, VALID_TAGS) == ["狙击干员", "支援", "新手", "减速", "爆发"]


def test_smart_split_skips_noise_and_keeps_unknown_parts():
    assert smart_split_tags("高资啊近卫  输", VALID_TAGS) == ["高资", "近卫", "输"]
    assert smart_split_tags("高级资深干员", VALID_TAGS) == ["高级资深干员"]


def test_resolve_tag_only_exact_or_alias():
    assert resolve_tag("高资", VALID_TAGS) == "高级资深干员"
    assert resolve_tag(" 爆发 ", VALID_TAGS) == "爆发"
    assert resolve_tag("输", VALID_TAGS) is None
    # 别名指向的标签不在表里时不认
    assert resolve_tag("回费", VALID_TAGS) is None
