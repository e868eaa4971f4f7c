from pydantic import BaseModel


class Config(BaseModel):
    """明日方舟公招插件配置"""
    # 游戏数据源 URL（使用 jsdelivr CDN 加速，国内可直达）
    recruit_character_table_url: str = (
        "https://cdn.jsdelivr.net/gh/Kengxxiao/ArknightsGameData@master/zh_CN/gamedata/excel/character_table.json"
    )
    recruit_gacha_table_url: str = (
        "https://cdn.jsdelivr.net/gh/Kengxxiao/ArknightsGameData@master/zh_CN/gamedata/excel/gacha_table.json"
    )

    # 百度 OCR 配置（用于公招截图识别）
    # 通过 .env 文件注入，不要在代码中硬编码
    baidu_ocr_api_key: str = ""
    baidu_ocr_secret_key: str = ""

    # 自动公招策略
    # 最优组合保底星级在 select_level 中才点选标签，在 confirm_level 中才确认招募
    recruit_select_level: list[int] = [3, 4, 5, 6]
    recruit_confirm_level: list[int] = [3, 4, 5, 6]
    recruit_need_refresh: bool = False
    recruit_use_expedited: bool = False
    recruit_skip_robot: bool = True
    recruit_set_time: bool = True
    recruit_max_times: int = 4
    # 点击之间的等待时间（毫秒）
    recruit_task_delay: int = 500

    # 回复图片还是文字
    recruit_reply_image: bool = True
