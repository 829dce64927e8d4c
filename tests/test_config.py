import json
from decimal import Decimal

import pytest

from r2bot.config import (
    DEFAULT_LOOPS, DEFAULT_SETTINGS, load_amounts, load_loop_config,
    load_private_keys, load_settings, parse_amount, validate_settings
)
from r2bot.exceptions import SettingsError


class TestLoopConfig:
    def test_missing_field_uses_default(self, tmp_path):
        path = tmp_path / "loop.json"
        path.write_text(json.dumps({"buy": 5, "sell": 4, "swap": 3, "liquidity": 7}), encoding="utf-8")

        loops = load_loop_config(str(path))

        assert loops == {"buy": 5, "sell": 4, "swap": 3, "stake": 2, "liquidity": 7}

    def test_tab_indented_json_is_read(self, tmp_path):
        path = tmp_path / "loop.json"
        path.write_text(json.dumps({"buy": 5, "sell": 4, "swap": 3, "stake": 6, "liquidity": 7}, indent="\t"),
                        encoding="utf-8")

        assert load_loop_config(str(path)) == {"buy": 5, "sell": 4, "swap": 3, "stake": 6, "liquidity": 7}

    def test_unparsable_source_gives_full_defaults(self, tmp_path):
        path = tmp_path / "loop.json"
        path.write_text('{"buy": 5, "sell": [', encoding="utf-8")

        assert load_loop_config(str(path)) == {"buy": 2, "sell": 3, "swap": 1, "stake": 2, "liquidity": 1}

    def test_non_mapping_source_gives_full_defaults(self, tmp_path):
        path = tmp_path / "loop.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        assert load_loop_config(str(path)) == DEFAULT_LOOPS

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_loop_config(str(tmp_path / "absent.json")) == DEFAULT_LOOPS

    @pytest.mark.parametrize("bad_value", [0, -1, "3", 1.5, True, None])
    def test_invalid_field_value_uses_default(self, tmp_path, bad_value):
        path = tmp_path / "loop.json"
        path.write_text(json.dumps({**DEFAULT_LOOPS, "sell": bad_value, "buy": 9}), encoding="utf-8")

        loops = load_loop_config(str(path))

        assert loops["sell"] == 3
        assert loops["buy"] == 9

    def test_defaults_are_not_shared(self, tmp_path):
        loops = load_loop_config(str(tmp_path / "absent.json"))
        loops["buy"] = 99

        assert DEFAULT_LOOPS["buy"] == 2


class TestAmounts:
    def test_loads_decimal_strings(self, tmp_path):
        path = tmp_path / "amount.json"
        path.write_text(json.dumps({"buyUsdcToR2usd": "1.5", "stakewBtc": 0.01}), encoding="utf-8")

        amounts = load_amounts(str(path))

        assert amounts == {"buyUsdcToR2usd": "1.5", "stakewBtc": "0.01"}

    def test_tab_indented_json_is_read(self, tmp_path):
        path = tmp_path / "amount.json"
        path.write_text(json.dumps({"buyUsdcToR2usd": "1", "addLiquidity": "0.5"}, indent="\t"), encoding="utf-8")

        assert load_amounts(str(path)) == {"buyUsdcToR2usd": "1", "addLiquidity": "0.5"}

    def test_missing_or_malformed_disables_everything(self, tmp_path):
        bad = tmp_path / "amount.json"
        bad.write_text("{not json", encoding="utf-8")

        assert load_amounts(str(tmp_path / "absent.json")) == {}
        assert load_amounts(str(bad)) == {}

    @pytest.mark.parametrize("raw,expected", [
        ("1", Decimal("1")),
        ("0.25", Decimal("0.25")),
        (" 2 ", Decimal("2")),
        ("0", None),
        ("0.0", None),
        ("-1", None),
        ("abc", None),
        ("NaN", None),
        ("", None),
        (None, None),
    ])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected


class TestSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(str(tmp_path / "settings.yaml"))

        assert settings == DEFAULT_SETTINGS
        assert settings is not DEFAULT_SETTINGS

    def test_partial_file_is_merged_over_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "NETWORK:\n"
            "  RPC_URL: https://rpc.example\n"
            "SETTINGS:\n"
            "  ATTEMPTS: 5\n",
            encoding="utf-8",
        )

        settings = load_settings(str(path))

        assert settings["NETWORK"]["RPC_URL"] == "https://rpc.example"
        assert settings["NETWORK"]["CHAIN_ID"] == DEFAULT_SETTINGS["NETWORK"]["CHAIN_ID"]
        assert settings["SETTINGS"]["ATTEMPTS"] == 5
        assert settings["SETTINGS"]["PAUSE_BETWEEN_LOOPS"] == [5, 15]
        assert validate_settings(settings)

    def test_unparsable_file_raises(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("NETWORK: [unclosed\n", encoding="utf-8")

        with pytest.raises(SettingsError):
            load_settings(str(path))

    def test_validate_rejects_bad_pause_range(self, settings):
        settings["SETTINGS"]["PAUSE_BETWEEN_ACCOUNTS"] = [60, 30]

        with pytest.raises(SettingsError):
            validate_settings(settings)

    def test_validate_rejects_missing_section(self, settings):
        del settings["GAS"]

        with pytest.raises(SettingsError):
            validate_settings(settings)


class TestPrivateKeys:
    def test_comma_separated(self, monkeypatch):
        monkeypatch.setenv("PRIVATE_KEY", " 0xaaa, ,0xbbb ,")

        assert load_private_keys() == ["0xaaa", "0xbbb"]

    def test_absent(self, monkeypatch):
        monkeypatch.delenv("PRIVATE_KEY", raising=False)

        assert load_private_keys() == []
