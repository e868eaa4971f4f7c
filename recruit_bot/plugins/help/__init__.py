from nonebot import on_command
from nonebot.plugin import PluginMetadata

__plugin_meta__ = PluginMetadata(
    name="help",
    description="command list of recruit_bot",
    usage="/help",
)

HELP_TEXT = (
    "指令列表：\n"
    "/公招 <标签1> <标签2> ...：计算最优公招标签组合（支持高资、近卫等缩写）\n"
    "/公招 + 截图：OCR 识别公招截图并计算\n"
    "/公招更新：重新下载游戏数据\n"
)

help = on_command("help", aliases={"帮助"}, priority=10, block=True)


@help.handle()
async def handle_function():
    await help.finish(HELP_TEXT)
