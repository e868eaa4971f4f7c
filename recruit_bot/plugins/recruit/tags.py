"""公招标签解析模块

把用户输入或 OCR 文字转换为合法的游戏标签
"""

import re


# ==================== 特殊标签 ====================

TOP_OPERATOR = "高级资深干员"
SENIOR_TAGS = ("高级资深干员", "资深干员")
ROBOT_TAGS = ("支援机械",)

# 公招每次固定给出 5 个标签
CORRECT_NUMBER_OF_TAGS = 5


# ==================== 标签别名/缩写 ====================

TAG_ALIASES = {
    # 资质类
    "高资": "高级资深干员", "高姿": "高级资深干员", "高级": "高级资深干员", "高级资深": "高级资深干员",
    "资深": "资深干员", "资干": "资深干员",
    "机械": "支援机械", "支机": "支援机械",
    # 位置类
    "近战": "近战位", "远程": "远程位",
    # 职业类（缩写 → 全称）
    "近卫": "近卫干员", "狙击": "狙击干员", "重装": "重装干员",
    "医疗": "医疗干员", "辅助": "辅助干员", "术师": "术师干员",
    "术士": "术师干员",  # 常见错字
    "特种": "特种干员", "先锋": "先锋干员",
    # 能力类
    "回费": "费用回复", "费回": "费用回复", "恢复": "费用回复",
    "快活": "快速复活", "复活": "快速复活", "快速": "快速复活",
}


# 标签之间的分隔符
SEPARATORS = re.compile(r"[,，\s]+")


def resolve_tag(word: str, valid_tags: list[str]) -> str | None:
    """全称或别名 → 合法标签，不做模糊匹配"""
    word = word.strip()
    if word in valid_tags:
        return word
    mapped = TAG_ALIASES.get(word)
    if mapped in valid_tags:
        return mapped
    return None


def _keyword_pattern(valid_tags: list[str]) -> re.Pattern | None:
    # 长的在前，正则按顺序尝试，"高级资深干员" 不会被拆成 "高级" + ...
    keywords = sorted(set(TAG_ALIASES) | set(valid_tags), key=len, reverse=True)
    if not keywords:
        return None
    return re.compile("|".join(map(re.escape, keywords)))


def smart_split_tags(text: str, valid_tags: list[str]) -> list[str]:
    """
    把用户输入拆成标签词，支持无空格连写（如"高资近卫输出"）

    每段按分隔符切开后再从左到右找已知的标签和别名，
    一个都找不到的段原样保留，交给 normalize_tags 模糊匹配
    """
    pattern = _keyword_pattern(valid_tags)
    result: list[str] = []
    for part in SEPARATORS.split(text.strip()):
        if not part:
            continue
        found = pattern.findall(part) if pattern else []
        result.extend(found or [part])
    return result


def normalize_tags(raw_tags: list[str], valid_tags: list[str]) -> list[str]:
    """标签词 → 合法标签，去重并保持输入顺序，认不出的丢弃"""
    result: dict[str, None] = {}
    for raw in raw_tags:
        raw = raw.strip()
        if not raw:
            continue
        # 认不出时取第一个包含它的标签，如 "输" → "输出"
        tag = resolve_tag(raw, valid_tags) or next((vt for vt in valid_tags if raw in vt), None)
        if tag:
            result.setdefault(tag)
    return list(result)


def match_ocr_tag(line: str, valid_tags: list[str]) -> str | None:
    """单行 OCR 文字 → 合法标签，识别不出返回 None"""
    line = line.strip()
    if not line:
        return None
    tag = resolve_tag(line, valid_tags)
    if tag:
        return tag
    # 长文本中包含完整标签，优先匹配更长的标签
    return next((vt for vt in sorted(valid_tags, key=len, reverse=True) if vt in line), None)


def extract_tags_from_ocr(ocr_lines: list[str], valid_tags: list[str]) -> list[str]:
    """
    从 OCR 识别结果中提取公招标签（去重，保持截图中的顺序）
    """
    found_tags: list[str] = []
    for line in ocr_lines:
        tag = match_ocr_tag(line, valid_tags)
        if tag and tag not in found_tags:
            found_tags.append(tag)
    return found_tags
