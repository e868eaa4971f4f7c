from __future__ import annotations

import nonebot
import pytest


def pytest_configure(config):
    nonebot.init(driver="~none")
    nonebot.load_plugin("recruit_bot.plugins.recruit")


@pytest.fixture
def catalog():
    from fakes import build_catalog

    return build_catalog()
