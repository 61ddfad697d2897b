"""Unit tests for config loading and validation."""
from __future__ import annotations

from pathlib import Path

import pytest

from lending import LendingConfig, LendingProtocol, config_from_dict, load_config


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "lending.yaml"
    path.write_text(content)
    return path


class TestConfigFromDict:
    def test_minimal(self) -> None:
        cfg = config_from_dict({"owner": "admin", "allowed_asset": "USDX"})
        assert cfg == LendingConfig(owner="admin", allowed_asset="USDX")
        assert cfg.custody_account == "lending-protocol"
        assert cfg.liquidation_threshold_bps == 8_000

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValueError, match="liquidation_treshold_bps"):
            config_from_dict({
                "owner": "admin",
                "allowed_asset": "USDX",
                "liquidation_treshold_bps": 9_000,
            })

    def test_missing_owner(self) -> None:
        with pytest.raises(ValueError, match="owner"):
            config_from_dict({"allowed_asset": "USDX"})

    def test_missing_asset(self) -> None:
        with pytest.raises(ValueError, match="allowed_asset"):
            config_from_dict({"owner": "admin"})

    def test_custody_must_differ_from_owner(self) -> None:
        with pytest.raises(ValueError, match="custody_account"):
            config_from_dict({
                "owner": "admin", "allowed_asset": "USDX", "custody_account": "admin",
            })

    @pytest.mark.parametrize("key,value", [
        ("interest_rate_bps", 50),
        ("liquidation_threshold_bps", 9_600),
        ("reward_multiplier_bps", 13_000),
        ("max_seize_fraction_bps", 0),
    ])
    def test_out_of_band(self, key: str, value: int) -> None:
        with pytest.raises(ValueError, match=key):
            config_from_dict({"owner": "admin", "allowed_asset": "USDX", key: value})

    def test_log_level_uppercased(self) -> None:
        cfg = config_from_dict({"owner": "admin", "allowed_asset": "USDX", "log_level": "debug"})
        assert cfg.log_level == "DEBUG"

    @pytest.mark.parametrize("key", ["owner", "allowed_asset"])
    def test_null_identity_rejected(self, key: str) -> None:
        raw = {"owner": "admin", "allowed_asset": "USDX", key: None}
        with pytest.raises(ValueError, match=key):
            config_from_dict(raw)

    def test_null_custody_uses_default(self) -> None:
        cfg = config_from_dict({"owner": "admin", "allowed_asset": "USDX", "custody_account": None})
        assert cfg.custody_account == "lending-protocol"

    def test_null_numeric_uses_default(self) -> None:
        cfg = config_from_dict({
            "owner": "admin", "allowed_asset": "USDX", "interest_rate_bps": None,
        })
        assert cfg.interest_rate_bps == 500

    @pytest.mark.parametrize("value", [8000.9, "8000", True])
    def test_non_integral_threshold_rejected(self, value: object) -> None:
        with pytest.raises(ValueError, match="liquidation_threshold_bps must be an integer"):
            config_from_dict({
                "owner": "admin", "allowed_asset": "USDX", "liquidation_threshold_bps": value,
            })

    def test_integral_float_accepted(self) -> None:
        cfg = config_from_dict({
            "owner": "admin", "allowed_asset": "USDX", "liquidation_threshold_bps": 9000.0,
        })
        assert cfg.liquidation_threshold_bps == 9_000
        assert isinstance(cfg.liquidation_threshold_bps, int)


class TestLoadConfig:
    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        path = _write(tmp_path, """\
owner: admin
allowed_asset: USDX
custody_account: vault
liquidation_threshold_bps: 9000
reward_multiplier_bps: 10500
max_seize_fraction_bps: 2500
""")
        cfg = load_config(path)
        assert cfg.owner == "admin"
        assert cfg.custody_account == "vault"
        assert cfg.liquidation_threshold_bps == 9_000
        assert cfg.reward_multiplier_bps == 10_500
        assert cfg.max_seize_fraction_bps == 2_500
        assert cfg.interest_rate_bps == 500

    def test_nested_under_lending_key(self, tmp_path: Path) -> None:
        path = _write(tmp_path, """\
lending:
  owner: admin
  allowed_asset: USDX
  interest_rate_bps: 750
""")
        assert load_config(path).interest_rate_bps == 750

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_default_path_is_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path, "owner: admin\nallowed_asset: USDX\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().allowed_asset == "USDX"

    def test_empty_file_fails_validation(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="owner"):
            load_config(_write(tmp_path, ""))

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="mapping"):
            load_config(_write(tmp_path, "- owner\n- admin\n"))

    def test_protocol_from_config(self, tmp_path: Path) -> None:
        path = _write(tmp_path, """\
owner: admin
allowed_asset: USDX
custody_account: vault
liquidation_threshold_bps: 9000
""")
        protocol = LendingProtocol.from_config(load_config(path))
        snapshot = protocol.get_config_snapshot()
        assert snapshot["owner"] == "admin"
        assert snapshot["custody_account"] == "vault"
        assert snapshot["liquidation_threshold_bps"] == 9_000
