"""百度 OCR 模块

调用百度云通用文字识别 API，从公招截图中提取标签文字
"""

import base64
import time
from typing import Optional

import httpx
from nonebot import logger


TOKEN_URL = "https://aip.baidubce.com/oauth/2.0/token"
GENERAL_BASIC_URL = "https://aip.baidubce.com/rest/2.0/ocr/v1/general_basic"


class BaiduOCR:
    """百度 OCR 客户端，Access Token 有效期 30 天，缓存在实例上"""

    def __init__(self, api_key: str, secret_key: str):
        self.api_key = api_key
        self.secret_key = secret_key
        self._access_token: Optional[str] = None
        self._token_expire_time: float = 0

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.secret_key)

    async def _get_access_token(self) -> str:
        if self._access_token and time.time() < self._token_expire_time:
            return self._access_token

        params = {
            "grant_type": "client_credentials",
            "client_id": self.api_key,
            "client_secret": self.secret_key,
        }
        async with httpx.AsyncClient(timeout=15) as client:
            resp = await client.post(TOKEN_URL, params=params)
            resp.raise_for_status()
            data = resp.json()

        if "access_token" not in data:
            raise ValueError(f"获取百度 OCR Token 失败: {data}")

        self._access_token = data["access_token"]
        # 提前 1 小时过期
        self._token_expire_time = time.time() + data.get("expires_in", 2592000) - 3600
        logger.info("百度 OCR Access Token 获取成功")
        return self._access_token

    async def recognize(self, image_data: bytes) -> list[str]:
        """
        识别图片文字

        Args:
            image_data: 图片二进制数据

        Returns:
            识别到的文字行列表
        """
        token = await self._get_access_token()

        payload = {"image": base64.b64encode(image_data).decode("utf-8")}
        async with httpx.AsyncClient(timeout=20) as client:
            resp = await client.post(
                GENERAL_BASIC_URL,
                params={"access_token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data=payload,
            )
            resp.raise_for_status()
            data = resp.json()

        if "error_code" in data:
            raise ValueError(f"百度 OCR 识别失败: [{data['error_code']}] {data.get('error_msg', '')}")

        result = [item["words"] for item in data.get("words_result", []) if "words" in item]
        logger.debug(f"百度 OCR 识别结果: {result}")
        return result


async def download_image(url: str) -> bytes:
    """下载聊天图片"""
    async with httpx.AsyncClient(timeout=15, follow_redirects=True) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.content
