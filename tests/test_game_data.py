from __future__ import annotations

import pytest

from recruit_bot.plugins.recruit.game_data import (
    EmptyCatalogError,
    OperatorInfo,
    RecruitCatalog,
    build_catalog,
    parse_level,
    parse_recruit_pool,
)


GACHA_TABLE = {
    "gachaTags": [{"tagId": 1, "tagName": "近战位"}, {"tagId": 2, "tagName": "远程位"}],
    "recruitDetail": "★\\n<@rc.eml>Lancet-2</>／Castle-3\\n\\n★★★★★★\\n能天使 / -",
}

CHAR_TABLE = {
    "char_103_angel": {
        "name": "能天使", "rarity": "TIER_6", "profession": "SNIPER",
        "position": "RANGED", "tagList": ["输出"],
    },
    "char_285_medic2": {
        "name": "Lancet-2", "rarity": 0, "profession": "MEDIC",
        "position": "RANGED", "tagList": ["治疗"],
    },
    "char_286_cast3": {
        "name": "Castle-3", "rarity": "TIER_1", "profession": "WARRIOR",
        "position": "MELEE", "tagList": None,
    },
    "char_002_amiya": {
        "name": "阿米娅", "rarity": "TIER_5", "profession": "CASTER",
        "position": "RANGED", "tagList": ["输出"],
    },
    "token_10000_silent_healrb": "not a character",
}


@pytest.mark.parametrize(
    "raw, level",
    [("TIER_1", 1), ("TIER_6", 6), (0, 1), (5, 6), ("3", 4), (7, -1), ("TIER_X", -1), (None, -1)],
)
def test_parse_level(raw, level):
    assert parse_level(raw) == level


def test_parse_recruit_pool_strips_markup():
    assert parse_recruit_pool(GACHA_TABLE) == {"Lancet-2", "Castle-3", "能天使"}


def test_build_catalog_adds_derived_tags():
    catalog = build_catalog(CHAR_TABLE, GACHA_TABLE)
    opers = {op.name: op for op in catalog}

    assert set(opers) == {"能天使", "Lancet-2", "Castle-3"}
    assert opers["能天使"] == OperatorInfo(
        "能天使", 6, frozenset({"输出", "狙击干员", "远程位", "高级资深干员"}),
    )
    assert opers["Lancet-2"].level == 1
    assert opers["Lancet-2"].has_tag("支援机械")
    assert opers["Castle-3"].tags == frozenset({"近卫干员", "近战位", "支援机械"})
    assert catalog.valid_tags == ["近战位", "远程位"]


def test_catalog_index_by_tag():
    catalog = build_catalog(CHAR_TABLE, GACHA_TABLE)
    assert {op.name for op in catalog.opers_with_tag("支援机械")} == {"Lancet-2", "Castle-3"}
    assert catalog.opers_with_tag("召唤") == ()
    assert len(catalog) == 3


def test_get_all_opers_keeps_load_order():
    opers = [
        OperatorInfo("能天使", 6, frozenset({"狙击干员"})),
        OperatorInfo("克洛丝", 3, frozenset({"狙击干员"})),
        OperatorInfo("Lancet-2", 1, frozenset({"支援机械"})),
    ]
    catalog = RecruitCatalog(opers)
    assert [op.name for op in catalog.get_all_opers()] == ["能天使", "克洛丝", "Lancet-2"]
    assert list(catalog) == list(catalog.get_all_opers())


def test_empty_catalog_is_rejected():
    with pytest.raises(EmptyCatalogError):
        build_catalog(CHAR_TABLE, {"gachaTags": [], "recruitDetail": ""})


def test_duplicate_names_are_rejected():
    op = OperatorInfo("克洛丝", 3, frozenset({"狙击干员"}))
    with pytest.raises(ValueError):
        RecruitCatalog([op, op])
