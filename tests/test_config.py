"""
Tests for YAML configuration loading.
"""

from datetime import time
from pathlib import Path

import pytest

from slotbook.config import AppConfig, BusinessHoursSettings


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestAppConfig:
    def test_load_from_yaml(self, tmp_path):
        path = _write(
            tmp_path,
            """
owner_id: owner-1
timezone: Europe/Istanbul
store_path: data/slotbook.json
business_hours:
  opening: "08:30"
  closing: "17:00"
  slot_interval_minutes: 20
  minimum_notice_minutes: 60
""",
        )

        config = AppConfig.load_from_yaml(path)
        hours = config.get_business_hours()

        assert config.owner_id == "owner-1"
        assert config.store_path == tmp_path / "data" / "slotbook.json"
        assert hours.opening_time == time(8, 30)
        assert hours.closing_time == time(17, 0)
        assert hours.slot_interval_minutes == 20
        assert hours.minimum_notice_minutes == 60
        assert hours.timezone == "Europe/Istanbul"

    def test_defaults(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, "owner_id: owner-1\n"))

        assert config.business_hours == BusinessHoursSettings()
        assert config.get_business_hours().opening_time == time(9, 0)

    def test_absolute_store_path_is_kept(self, tmp_path):
        target = tmp_path / "elsewhere.json"
        config = AppConfig.load_from_yaml(_write(tmp_path, f"owner_id: o\nstore_path: {target}\n"))

        assert config.store_path == target

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(_write(tmp_path, "owner_id: [unclosed\n"))

    def test_root_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(_write(tmp_path, "- a\n- b\n"))

    @pytest.mark.parametrize(
        "text",
        [
            "owner_id: '  '\n",
            "owner_id: o\ntimezone: Mars/Olympus\n",
            "owner_id: o\nbusiness_hours:\n  opening: '18:00'\n  closing: '09:00'\n",
            "owner_id: o\nbusiness_hours:\n  slot_interval_minutes: 0\n",
            "owner_id: o\nbusiness_hours:\n  minimum_notice_minutes: -1\n",
        ],
    )
    def test_invalid_values(self, tmp_path, text):
        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(_write(tmp_path, text))

    def test_example_config_is_valid(self):
        example = Path(__file__).parent.parent / "config.example.yaml"

        config = AppConfig.load_from_yaml(example)

        assert config.business_hours.minimum_notice_minutes == 30
