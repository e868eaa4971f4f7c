"""公招结果图片渲染模块

使用 Pillow 把 RecruitResult 中的组合表绘制为图片
"""

import io

from PIL import Image, ImageDraw, ImageFont

from .recruit import rarity_display


BG_COLOR = (30, 30, 35)
CARD_BG = (45, 45, 52)
BORDER_COLOR = (70, 70, 80)

TEXT_WHITE = (240, 240, 240)
TEXT_GRAY = (170, 170, 180)
TEXT_TITLE = (255, 200, 80)
TEXT_FOOTER = (100, 100, 110)

# 星级颜色
LEVEL_COLORS = {
    1: (150, 150, 150),
    2: (200, 200, 200),
    3: (100, 180, 255),
    4: (200, 150, 255),
    5: (255, 200, 60),
    6: (255, 120, 50),
}

PADDING = 30
CARD_PADDING = 16
CARD_GAP = 12
IMG_WIDTH = 520
TITLE_H = 28 + 10
TAG_LINE_H = 22 + 16
CARD_HEAD_H = 24 + 8
OPER_LINE_H = 22
FOOTER_H = 18

_font_cache: dict[int, ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}


def _get_font(size: int):
    """获取字体（带缓存），优先使用微软雅黑"""
    if size not in _font_cache:
        for name in ["msyh.ttc", "msyhbd.ttc", "simhei.ttf", "simsun.ttc"]:
            try:
                _font_cache[size] = ImageFont.truetype(name, size)
                break
            except OSError:
                continue
        else:
            _font_cache[size] = ImageFont.load_default()
    return _font_cache[size]


def _card_height(comb: dict) -> int:
    return CARD_PADDING + CARD_HEAD_H + len(comb["opers"]) * OPER_LINE_H + CARD_PADDING


def _min_star(comb: dict) -> int:
    """必出 1★ 的组合显示为 1★，而不是九小时保底的 3★"""
    if comb["opers"] and all(op["level"] == 1 for op in comb["opers"]):
        return 1
    return comb["level"]


def render_recruit_result(tags: list[str], results: list[dict]) -> bytes:
    """
    将公招结果渲染为 PNG

    Args:
        tags: 识别到的标签
        results: RecruitResult 事件中的 result 列表，已按优先级排好序
    """
    font_title = _get_font(22)
    font_tag = _get_font(18)
    font_body = _get_font(16)
    font_small = _get_font(14)

    height = PADDING + TITLE_H + TAG_LINE_H
    if results:
        height += sum(_card_height(r) + CARD_GAP for r in results)
    else:
        height += 40
    height += FOOTER_H + PADDING

    img = Image.new("RGB", (IMG_WIDTH, height), BG_COLOR)
    draw = ImageDraw.Draw(img)
    content_width = IMG_WIDTH - PADDING * 2

    cy = PADDING
    draw.text((PADDING, cy), "🔍 明日方舟公招分析", fill=TEXT_TITLE, font=font_title)
    cy += TITLE_H

    draw.text((PADDING, cy), "识别标签：" + "、".join(tags), fill=TEXT_GRAY, font=font_tag)
    cy += TAG_LINE_H

    if not results:
        draw.text((PADDING, cy), "没有找到有价值的标签组合喵~", fill=TEXT_GRAY, font=font_body)
        return _to_bytes(img)

    for comb in results:
        min_star = _min_star(comb)
        card_h = _card_height(comb)
        star_color = LEVEL_COLORS.get(min_star, TEXT_WHITE)

        draw.rounded_rectangle(
            (PADDING, cy, PADDING + content_width, cy + card_h),
            radius=8, fill=CARD_BG, outline=BORDER_COLOR,
        )
        draw.rectangle((PADDING, cy + 4, PADDING + 4, cy + card_h - 4), fill=star_color)

        ix = PADDING + CARD_PADDING
        iy = cy + CARD_PADDING

        star_label = f"保底{min_star}★"
        star_bbox = draw.textbbox((0, 0), star_label, font=font_small)
        star_x = PADDING + content_width - CARD_PADDING - (star_bbox[2] - star_bbox[0])
        draw.text((star_x, iy + 2), star_label, fill=star_color, font=font_small)

        draw.text((ix, iy), f"【{' + '.join(comb['tags'])}】", fill=TEXT_WHITE, font=font_tag)
        iy += CARD_HEAD_H

        for op in sorted(comb["opers"], key=lambda o: (-o["level"], o["name"])):
            color = LEVEL_COLORS.get(op["level"], TEXT_WHITE)
            star_text = rarity_display(op["level"])
            draw.text((ix, iy), star_text, fill=color, font=font_body)
            star_text_w = draw.textbbox((0, 0), f"{star_text} ", font=font_body)[2]
            draw.text((ix + star_text_w, iy), op["name"], fill=color, font=font_body)
            iy += OPER_LINE_H

        cy += card_h + CARD_GAP

    footer = "Generated by recruit_bot"
    footer_bbox = draw.textbbox((0, 0), footer, font=font_small)
    draw.text(
        ((IMG_WIDTH - (footer_bbox[2] - footer_bbox[0])) // 2, cy),
        footer, fill=TEXT_FOOTER, font=font_small,
    )

    return _to_bytes(img)


def _to_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
