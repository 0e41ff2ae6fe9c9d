"""
Tests for supper_config -- YAML loading and schema validation.
"""

import pytest
import yaml

from supper_batch.domain.periods import PeriodGranularity
from supper_batch.domain.plan import DAILY_BUSINESS_STATS, MONTHLY_BUSINESS_STATS
from supper_config import DEFAULT_CONFIG_PATH, get_config
from supper_config.loader import (
    compute_checksum,
    parse_batching,
    parse_config,
    parse_plan,
    parse_schedule,
)

BASE = {"store": {"database_url": "sqlite://"}}


class TestPackagedDefaults:
    def test_defaults_load(self, monkeypatch, captured_logs):
        monkeypatch.delenv("SUPPER_CONFIG", raising=False)
        monkeypatch.delenv("SUPPER_DATABASE_URL", raising=False)

        config = get_config()

        assert config.plan("daily_business_stats").plan == DAILY_BUSINESS_STATS
        assert config.plan("monthly_business_stats").plan == MONTHLY_BUSINESS_STATS
        assert config.plan("daily_business_stats").schedule.cron == "0 0 * * *"
        assert config.store.max_operations_per_commit == 500
        assert config.batching.safety_margin == 10
        loaded = [r for r in captured_logs() if r["message"] == "config_loaded"]
        assert loaded[0]["config_path"] == str(DEFAULT_CONFIG_PATH)

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("SUPPER_DATABASE_URL", "postgresql://supper@db/supper")
        assert get_config(DEFAULT_CONFIG_PATH).store.database_url == "postgresql://supper@db/supper"

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump({**BASE, "plans": []}))
        monkeypatch.setenv("SUPPER_CONFIG", str(path))
        monkeypatch.delenv("SUPPER_DATABASE_URL", raising=False)

        assert get_config().plans == ()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_config(tmp_path / "nope.yaml")


class TestParsePlan:
    def test_preset_with_override(self):
        plan = parse_plan({"preset": "daily_business_stats", "entity_collection": "shops"})
        assert plan.entity_collection == "shops"
        assert plan.rolled_fields == DAILY_BUSINESS_STATS.rolled_fields

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            parse_plan({"preset": "weekly"})

    def test_full_definition(self):
        plan = parse_plan({
            "name": "weekly_tips",
            "granularity": "daily",
            "entity_collection": "drivers",
            "active_field": "onShift",
            "rolled_fields": {"todayTips": "tips"},
            "archive_path": "driver_tips/{entity_id}/days/{period_key}",
            "period_field": "date",
            "reset_timestamp_field": "lastTipReset",
        })
        assert plan.granularity == PeriodGranularity.DAILY
        assert plan.archive_path("d1", "2024-05-01").value == "driver_tips/d1/days/2024-05-01"
        assert plan.carried_fields == {}

    def test_full_definition_missing_key(self):
        with pytest.raises(KeyError):
            parse_plan({"name": "x", "granularity": "daily"})


class TestParseSections:
    def test_schedule_defaults(self):
        schedule = parse_schedule({"cron": "0 0 * * *"})
        assert schedule.timezone == "UTC"
        assert schedule.retry_count == 3

    def test_schedule_rejects_non_utc(self):
        with pytest.raises(ValueError):
            parse_schedule({"cron": "0 0 * * *", "timezone": "Europe/Berlin"})

    def test_schedule_rejects_bad_cron(self):
        with pytest.raises(ValueError):
            parse_schedule({"cron": "every midnight"})

    def test_schedule_rejects_negative_retries(self):
        with pytest.raises(ValueError):
            parse_schedule({"cron": "0 0 * * *", "retry_count": -1})

    def test_batching_margin_floor(self):
        with pytest.raises(ValueError):
            parse_batching({"safety_margin": 1})

    def test_store_section_required(self):
        with pytest.raises(KeyError):
            parse_config({"plans": []})

    def test_duplicate_plan_names(self):
        with pytest.raises(ValueError):
            parse_config({
                **BASE,
                "plans": [{"preset": "daily_business_stats"}, {"preset": "daily_business_stats"}],
            })

    def test_plan_without_schedule(self):
        config = parse_config({**BASE, "plans": [{"preset": "monthly_business_stats"}]})
        assert config.plans[0].schedule is None
        assert config.plans[0].enabled

    def test_unknown_plan_lookup(self):
        with pytest.raises(KeyError):
            parse_config(BASE).plan("daily_business_stats")

    def test_checksum_is_stable(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert parse_config(BASE).checksum == compute_checksum(BASE)
