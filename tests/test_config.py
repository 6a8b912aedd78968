from datetime import date, timedelta

from worktime.config import BreakTemplate, RunnerSettings, UserSettings
from worktime.reporting import format_minutes


def test_quota_by_weekday():
    settings = UserSettings()
    assert settings.quota_for(date(2026, 10, 19)) == 480
    assert settings.quota_for(date(2026, 10, 24)) == 0
    assert settings.quota_for(date(2026, 10, 25)) == 0


def test_from_dict_merges_over_defaults():
    settings = UserSettings.from_dict(
        {
            "timeFormat": "hours",
            "dailyWorkHours": {"friday": 240, "monday": "oops"},
            "defaultBreaks": [{"start": "12:00", "end": "12:45", "duration": 45}],
            "plans": {"VOR_ORT": {"name": "Büro", "start": 420, "end": 1080, "max": 540}},
        }
    )
    assert settings.display_format == "hours"
    assert settings.daily_work_minutes["friday"] == 240
    assert settings.daily_work_minutes["monday"] == 480
    assert settings.default_breaks == (BreakTemplate("12:00", "12:45", 45),)
    assert settings.plans["VOR_ORT"].name == "Büro"
    assert settings.plans["HOMEOFFICE"].latest_end == 1200


def test_from_dict_ignores_garbage():
    settings = UserSettings.from_dict({"timeFormat": "fortnights", "plans": {"X": {"name": "x"}}})
    assert settings == UserSettings()


def test_to_dict_round_trip():
    settings = UserSettings(display_format="hours")
    assert UserSettings.from_dict(settings.to_dict()) == settings


def test_runner_settings_from_intervals():
    settings = RunnerSettings.from_intervals(tick_seconds=2)
    assert settings.tick_interval == timedelta(seconds=2)
    assert settings.popup_interval == timedelta(seconds=0.5)


def test_display_formats():
    assert format_minutes(45) == "45m"
    assert format_minutes(125, "hours") == "02:05"
    assert format_minutes(0, "hours") == "00:00"
