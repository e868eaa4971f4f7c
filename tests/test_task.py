from __future__ import annotations

from fakes import (
    BASELINE_TAGS,
    ROBOT_DRAWN_TAGS,
    SENIOR_DRAWN_TAGS,
    STRAIGHT_FOUR_TAGS,
    FakeScreen,
    make_buttons,
    make_screen,
)
from recruit_bot.plugins.recruit.config import Config
from recruit_bot.plugins.recruit.screen import AsstMsg
from recruit_bot.plugins.recruit.task import AutoRecruitTask, RecruitSession


def build_session(**kwargs) -> RecruitSession:
    defaults = dict(
        select_level=[4, 5, 6],
        confirm_level=[3, 4, 5, 6],
        need_refresh=False,
        skip_robot=True,
        set_time=True,
        max_times=4,
    )
    defaults.update(kwargs)
    return RecruitSession(**defaults)


def test_session_from_config_and_fluent_setters():
    session = RecruitSession.from_config(Config(), calc_only=True)
    assert session.is_calc_only_task()
    assert session.max_times == Config().recruit_max_times

    session.set_select_level([5, 6]).set_skip_robot(False).set_max_times(2)
    assert session.select_level == [5, 6]
    assert session.skip_robot is False
    assert session.max_times == 2


def test_straight_four_star_selects_two_tags_and_confirms(catalog):
    screen = FakeScreen(screens=[make_screen(STRAIGHT_FOUR_TAGS)], start_buttons=make_buttons(1))
    task = AutoRecruitTask(screen, catalog, build_session(select_level=[4, 5, 6], confirm_level=[4, 5, 6]))

    assert task.run()

    assert [r.x for r in screen.tag_clicks()] == [400, 0]  # 爆发, 狙击干员
    assert screen.task_names().count("RecruitConfirm") == 1
    assert ("RecruitConfirm", 5) in screen.tasks
    assert screen.details("RecruitTagsSelected") == [{"tags": sorted(["狙击干员", "爆发"])}]
    assert screen.details("RecruitTagsDetected") == [{"tags": STRAIGHT_FOUR_TAGS}]
    assert task.recruit_times == 1
    assert task.slot_fail == 0


def test_recruit_result_payload(catalog):
    screen = FakeScreen(screens=[make_screen(STRAIGHT_FOUR_TAGS)], start_buttons=make_buttons(1))
    AutoRecruitTask(screen, catalog, build_session()).run()

    (result,) = screen.details("RecruitResult")
    assert result["level"] == 4
    assert result["robot"] is False
    top = result["result"][0]
    assert top == {"tags": sorted(["狙击干员", "爆发"]), "opers": [{"name": "守林人", "level": 4}], "level": 4}
    assert all(comb["level"] >= 3 for comb in result["result"])


def test_senior_tag_reported(catalog):
    screen = FakeScreen(screens=[make_screen(SENIOR_DRAWN_TAGS)], start_buttons=make_buttons(1))
    task = AutoRecruitTask(screen, catalog, build_session())

    assert task.run()

    assert {"tag": "高级资深干员"} in screen.details("RecruitSpecialTag")
    assert screen.details("RecruitResult")[0]["level"] == 6
    assert screen.details("RecruitTagsSelected") == [{"tags": ["高级资深干员"]}]


def test_refresh_does_not_use_up_attempts(catalog):
    screens = [make_screen(BASELINE_TAGS, refresh=True), None, None, None, None, make_screen(STRAIGHT_FOUR_TAGS)]
    screen = FakeScreen(screens=screens)
    task = AutoRecruitTask(screen, catalog, build_session(need_refresh=True))

    outcome = task.recruit_calc_task()

    assert outcome.success
    assert outcome.selected == 2
    assert screen.details("RecruitTagsRefreshed") == [{"count": 0, "refresh_limit": 3}]
    assert screen.task_names() == ["RecruitRefresh"]
    assert screen.captures == 6


def test_no_refresh_without_refresh_button(catalog):
    screen = FakeScreen(screens=[make_screen(BASELINE_TAGS, refresh=False)])
    task = AutoRecruitTask(screen, catalog, build_session(need_refresh=True, select_level=[3, 4, 5, 6]))

    outcome = task.recruit_calc_task()

    assert outcome.success
    assert "RecruitTagsRefreshed" not in screen.whats()


def test_refresh_limit_reported(catalog):
    screen = FakeScreen(screens=[make_screen(BASELINE_TAGS, refresh=True)])
    task = AutoRecruitTask(screen, catalog, build_session(need_refresh=True))

    outcome = task.recruit_calc_task()

    assert not outcome.success
    assert [d["count"] for d in screen.details("RecruitTagsRefreshed")] == [0, 1, 2, 3]
    errors = [info for msg, info in screen.events if msg is AsstMsg.SubTaskError]
    assert errors[-1]["why"] == "刷新次数达到上限"
    assert errors[-1]["details"] == {"refresh_limit": 3}


def test_robot_tag_force_skips(catalog):
    screen = FakeScreen(screens=[make_screen(ROBOT_DRAWN_TAGS, refresh=True)], start_buttons=make_buttons(1))
    task = AutoRecruitTask(screen, catalog, build_session(need_refresh=True))

    assert task.run()

    assert {"tag": "支援机械"} in screen.details("RecruitSpecialTag")
    assert screen.details("RecruitResult")[0]["robot"] is True
    assert screen.tag_clicks() == []
    assert "RecruitRefresh" not in screen.task_names()
    assert "RecruitConfirm" not in screen.task_names()
    assert screen.returns == 1
    assert task.recruit_times == 1


def test_low_level_not_in_confirm_level_force_skips(catalog):
    screen = FakeScreen(screens=[make_screen(BASELINE_TAGS, set_time_rects=2)], start_buttons=make_buttons(1))
    task = AutoRecruitTask(screen, catalog, build_session(confirm_level=[4, 5, 6]))

    assert task.run()

    assert screen.clicks == screen.button_clicks()  # 没有设置时间也没有选标签
    assert "RecruitConfirm" not in screen.task_names()


def test_set_time_without_selection(catalog):
    screen = FakeScreen(screens=[make_screen(BASELINE_TAGS, set_time_rects=3)], start_buttons=make_buttons(1))
    task = AutoRecruitTask(screen, catalog, build_session(select_level=[4, 5, 6], confirm_level=[3, 4, 5, 6]))

    outcome = task.recruit_calc_task()

    assert outcome.success and not outcome.force_skip
    assert outcome.selected == 0
    assert len(screen.clicks) == 3
    assert screen.tag_clicks() == []
    assert "RecruitTagsSelected" not in screen.whats()


def test_timer_not_reduced_requeues_slot(catalog):
    screen = FakeScreen(
        screens=[make_screen(STRAIGHT_FOUR_TAGS)],
        start_buttons=make_buttons(2),
        task_results={"RecruitCheckTimeReduced": [False, True]},
    )
    task = AutoRecruitTask(screen, catalog, build_session(max_times=2))

    assert task.run()

    assert [r.x for r in screen.button_clicks()] == [0, 200, 0]
    assert ("RecruitCheckTimeReduced", 2) in screen.tasks
    assert task.slot_fail == 1
    assert task.recruit_times == 2
    assert "RecruitError" not in screen.whats()


def test_confirm_exhaustion_stops_after_three_failures(catalog):
    screen = FakeScreen(
        screens=[make_screen(STRAIGHT_FOUR_TAGS)],
        start_buttons=make_buttons(4),
        task_results={"RecruitConfirm": [False]},
    )
    task = AutoRecruitTask(screen, catalog, build_session(max_times=4))

    assert not task.run()

    assert [r.x for r in screen.button_clicks()] == [0, 200, 400]
    assert task.slot_fail == 3
    assert task.recruit_times == 0
    assert list(task.pending_slots) == [3, 0, 1, 2]


def test_recognition_failure_abandons_slot(catalog):
    screen = FakeScreen(screens=[make_screen(STRAIGHT_FOUR_TAGS[:4])], start_buttons=make_buttons(1))
    task = AutoRecruitTask(screen, catalog, build_session())

    assert task.run()

    assert screen.captures == 1 + 5  # 按钮识别 + 5 次标签识别
    errors = [info for msg, info in screen.events if msg is AsstMsg.SubTaskError]
    assert [e["why"] for e in errors] == ["识别错误"]
    assert screen.returns == 1
    assert not task.pending_slots
    assert task.slot_fail == 1


def test_home_page_missing_fails_session(catalog):
    screen = FakeScreen(start_buttons=make_buttons(4), task_results={"RecruitFlag": [False]})
    task = AutoRecruitTask(screen, catalog, build_session())

    assert not task.run()
    assert screen.tasks == [("RecruitBegin", None), ("RecruitFlag", 2)]


def test_begin_failure_fails_session(catalog):
    screen = FakeScreen(task_results={"RecruitBegin": [False]})
    assert not AutoRecruitTask(screen, catalog, build_session()).run()
    assert screen.task_names() == ["RecruitBegin"]


def test_max_times_bounds_confirmations(catalog):
    screen = FakeScreen(screens=[make_screen(STRAIGHT_FOUR_TAGS)], start_buttons=make_buttons(4))
    task = AutoRecruitTask(screen, catalog, build_session(max_times=2))

    assert task.run()

    assert task.recruit_times == 2
    assert list(task.pending_slots) == [2, 3]


def test_expedited_reanalyzes_buttons_every_round(catalog):
    screen = FakeScreen(screens=[make_screen(STRAIGHT_FOUR_TAGS)], start_buttons=make_buttons(1))
    task = AutoRecruitTask(screen, catalog, build_session(use_expedited=True, max_times=2))

    assert task.run()

    names = screen.task_names()
    assert names.count("RecruitNow") == 2
    assert names.count("RecruitFlag") == 3
    assert task.recruit_times == 2


def test_need_exit_stops_without_error(catalog):
    screen = FakeScreen(screens=[make_screen(STRAIGHT_FOUR_TAGS)], start_buttons=make_buttons(2), exit_now=True)
    task = AutoRecruitTask(screen, catalog, build_session())

    assert not task.run()
    assert screen.events == []
    assert screen.button_clicks() == []


def test_calc_only_does_not_touch_ui_tasks(catalog):
    screen = FakeScreen(screens=[make_screen(BASELINE_TAGS)])
    task = AutoRecruitTask(screen, catalog, build_session(calc_only=True, confirm_level=[6], select_level=[3]))

    assert task.run()

    assert screen.tasks == []
    assert screen.details("RecruitTagsSelected")
    assert screen.button_clicks() == []


def test_default_session_recruits():
    assert RecruitSession().max_times == Config().recruit_max_times


def test_no_time_floor_without_set_time(catalog):
    screen = FakeScreen(screens=[make_screen(BASELINE_TAGS, set_time_rects=3)])
    task = AutoRecruitTask(screen, catalog, build_session(set_time=False, select_level=[4, 5, 6]))

    outcome = task.recruit_calc_task()

    assert outcome.success and not outcome.force_skip
    (result,) = screen.details("RecruitResult")
    assert {"tags": ["新手"], "opers": [{"name": "巡林者", "level": 2}], "level": 2} in result["result"]
    assert min(comb["level"] for comb in result["result"]) < 3
    assert screen.clicks == []  # 不设置时间
