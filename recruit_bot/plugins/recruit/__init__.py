"""
明日方舟公招插件

功能:
  - 公招 <标签1> <标签2> ... : 根据标签计算最优公招组合
  - 公招 + 图片 : OCR 识别公招截图标签，按自动公招的计算流程给出结果
  - 公招更新 : 更新游戏数据

自动公招本体见 task.AutoRecruitTask，设备侧需实现 screen.Screen
"""

import asyncio

from nonebot import on_command, logger, get_plugin_config
from nonebot.plugin import PluginMetadata
from nonebot.adapters.onebot.v11 import Message, MessageSegment, MessageEvent
from nonebot.params import CommandArg
from nonebot.exception import MatcherException

from .config import Config
from .chat import ChatScreen
from .game_data import (
    EmptyCatalogError,
    RecruitCatalog,
    build_recruit_data,
    download_game_data,
    is_data_ready,
)
from .ocr import BaiduOCR, download_image
from .recruit import calc_best_combs, filter_valuable, format_results
from .render import render_recruit_result
from .tags import CORRECT_NUMBER_OF_TAGS, extract_tags_from_ocr, normalize_tags, smart_split_tags
from .task import AutoRecruitTask, RecruitSession


__plugin_meta__ = PluginMetadata(
    name="明日方舟公招",
    description="根据公招标签计算最优干员组合，支持截图 OCR 识别",
    usage=(
        "公招 <标签1> <标签2> ... - 识别公招标签组合\n"
        "  标签用空格或逗号分隔，支持缩写（如：高资、近卫、远程）\n"
        "  示例：公招 高资 近卫 输出\n"
        "公招 + 图片 - 发送公招截图自动 OCR 识别标签\n"
        "公招更新 - 更新游戏数据"
    ),
    config=Config,
)

plugin_config = get_plugin_config(Config)
baidu_ocr = BaiduOCR(plugin_config.baidu_ocr_api_key, plugin_config.baidu_ocr_secret_key)

# 干员表只在启动/更新时构建，之后只读
_catalog: RecruitCatalog | None = None


def _load_cache():
    """加载/刷新干员表"""
    global _catalog
    _catalog = None
    if not is_data_ready():
        return
    try:
        _catalog = build_recruit_data()
    except EmptyCatalogError as e:
        logger.error(f"公招数据解析失败: {e}")
        return
    logger.info(f"公招数据加载完成：{len(_catalog)} 个可招募干员，{len(_catalog.valid_tags)} 个标签")


# ==================== 命令定义 ====================

recruit_cmd = on_command("/公招", aliases={"/公开招募", "/gk", "/gz"}, priority=10, block=True)
update_cmd = on_command("/公招更新", priority=10, block=True)


# ==================== 辅助函数 ====================


def _extract_image_url(msg: Message) -> str | None:
    for seg in msg:
        if seg.type == "image":
            url = seg.data.get("url") or seg.data.get("file")
            if url:
                return url
    return None


def _reply(tags: list[str], results: list[dict]) -> MessageSegment | str:
    """有结果且开启图片回复时返回图片，否则返回文字"""
    if not results:
        return format_results([])
    if plugin_config.recruit_reply_image:
        return MessageSegment.image(render_recruit_result(tags, results))
    return "\n".join(
        f"【{' + '.join(r['tags'])}】" + " ".join(op["name"] for op in r["opers"])
        for r in results
    )


def _calc_by_tags(tags: list[str]) -> MessageSegment | str:
    combs = filter_valuable(calc_best_combs(tags, _catalog))  # type: ignore[arg-type]
    if not plugin_config.recruit_reply_image:
        return format_results(combs)
    return _reply(tags, [rc.to_json() for rc in combs])


async def _calc_by_screenshot(image: bytes, ocr_lines: list[str]) -> MessageSegment | str:
    """按自动公招的计算流程处理截图，标签数不对时退回直接计算"""
    screen = ChatScreen(image, ocr_lines, _catalog.valid_tags)  # type: ignore[union-attr]
    session = RecruitSession.from_config(plugin_config, calc_only=True, need_refresh=False)
    task = AutoRecruitTask(screen, _catalog, session)  # type: ignore[arg-type]

    if await asyncio.to_thread(task.run):
        detected = screen.find_event("RecruitTagsDetected")
        result = screen.find_event("RecruitResult")
        tags = detected["details"]["tags"] if detected else []
        combs = result["details"]["result"] if result else []
        valuable = [r for r in combs if r["level"] >= 4 or all(op["level"] == 1 for op in r["opers"])]
        return _reply(tags, valuable)

    tags = extract_tags_from_ocr(ocr_lines, _catalog.valid_tags)  # type: ignore[union-attr]
    logger.info(f"截图识别到 {len(tags)} 个标签（应为 {CORRECT_NUMBER_OF_TAGS} 个）: {tags}")
    if not tags:
        return (
            f"未从截图中识别到公招标签喵~\n"
            f"OCR 识别文字：{' | '.join(ocr_lines)}\n"
            f"请确保截图包含完整的公招标签区域"
        )
    return _calc_by_tags(tags[:CORRECT_NUMBER_OF_TAGS])


async def _ensure_data() -> str | None:
    """确保干员表已就绪，返回 None 表示成功，否则返回错误提示"""
    if _catalog is not None:
        return None

    if not is_data_ready():
        await recruit_cmd.send("首次使用，正在下载游戏数据，请稍候喵...")
        try:
            await download_game_data(
                plugin_config.recruit_character_table_url,
                plugin_config.recruit_gacha_table_url,
            )
        except MatcherException:
            raise
        except Exception as e:
            logger.error(f"下载游戏数据失败: {e}")
            return f"下载游戏数据失败喵：{e}"

    _load_cache()
    if _catalog is None:
        return "游戏数据加载失败喵，请尝试「公招更新」"
    return None


# ==================== 公招识别 ====================


@recruit_cmd.handle()
async def handle_recruit(event: MessageEvent, args: Message = CommandArg()):
    text = args.extract_plain_text().strip()
    image_url = _extract_image_url(event.message)

    if not text and not image_url:
        await recruit_cmd.finish(
            "请输入公招标签或发送公招截图喵~\n"
            "用法：公招 <标签1> <标签2> ...\n"
            "示例：公招 高资 近卫 输出\n"
            "支持截图：发送「公招」并附上公招截图\n"
            "支持缩写：高资/资深/近卫/狙击/近战/远程/回费 等"
        )

    error = await _ensure_data()
    if error:
        await recruit_cmd.finish(error)

    # ===== 图片 OCR 模式 =====
    if image_url:
        if not baidu_ocr.configured:
            await recruit_cmd.finish(
                "未配置百度 OCR 喵~\n"
                "请在 .env 中配置 BAIDU_OCR_API_KEY 和 BAIDU_OCR_SECRET_KEY"
            )

        await recruit_cmd.send("正在识别公招截图喵...")

        try:
            img_data = await download_image(image_url)
            ocr_lines = await baidu_ocr.recognize(img_data)
        except MatcherException:
            raise
        except Exception as e:
            logger.error(f"公招截图识别失败: {e}")
            await recruit_cmd.finish(f"截图识别失败喵：{e}")

        if not ocr_lines:
            await recruit_cmd.finish("截图中没有识别到文字喵~")

        logger.info(f"OCR 原始结果: {ocr_lines}")
        result = await _calc_by_screenshot(img_data, ocr_lines)
        await recruit_cmd.finish(Message(result))

    # ===== 文字标签模式 =====
    raw_tags = smart_split_tags(text, _catalog.valid_tags)  # type: ignore[union-attr]

    if not raw_tags:
        await recruit_cmd.finish("没有识别到标签喵~")

    if len(raw_tags) > CORRECT_NUMBER_OF_TAGS:
        await recruit_cmd.finish("公招最多只能选 5 个标签喵~")

    tags = normalize_tags(raw_tags, _catalog.valid_tags)  # type: ignore[union-attr]
    if not tags:
        await recruit_cmd.finish(
            f"未识别到有效标签喵~\n"
            f"你输入的：{' '.join(raw_tags)}\n"
            f"请检查标签是否正确"
        )

    await recruit_cmd.finish(Message(_calc_by_tags(tags)))


# ==================== 数据更新 ====================


@update_cmd.handle()
async def handle_update():
    await update_cmd.send("正在更新游戏数据喵...")
    try:
        await download_game_data(
            plugin_config.recruit_character_table_url,
            plugin_config.recruit_gacha_table_url,
            force=True,
        )
    except MatcherException:
        raise
    except Exception as e:
        logger.exception(f"更新游戏数据失败: {e}")
        await update_cmd.finish(f"更新失败喵：{e}")

    _load_cache()

    if _catalog is not None:
        await update_cmd.finish(
            f"游戏数据更新成功喵！\n"
            f"可招募干员：{len(_catalog)} 个\n"
            f"标签数：{len(_catalog.valid_tags)} 个"
        )
    else:
        await update_cmd.finish("数据下载成功但解析失败喵，请检查日志")
