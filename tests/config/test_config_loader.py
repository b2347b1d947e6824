"""
Tests for the configuration loader and get_active_config().

Covers the bundled default set, path resolution (explicit path,
FUELEU_CONFIG, default), malformed values, checksum determinism and the
FUELEU_CONFIG_TRACE log entry.
"""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from fueleu_config import CONFIG_ENV_VAR, get_active_config
from fueleu_config.loader import compute_checksum, load_config, parse_config
from fueleu_kernel.db.engine import Database
from fueleu_kernel.exceptions import ConfigurationError


def _write(tmp_path: Path, data: object, name: str = "config.yaml") -> Path:
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultConfig:
    """The bundled sets/default.yaml."""

    def test_defaults(self):
        config = get_active_config()

        assert config.config_id == "fueleu-default"
        assert config.version == 1
        assert config.default_target_ghg_intensity == Decimal("89.3368")
        assert config.energy_conversion_factor == Decimal("41000")
        assert config.banking.validity_years == 2
        assert config.banking.max_capacity is None
        assert config.database.url == "sqlite://"

    def test_period_targets(self):
        config = get_active_config()

        assert config.target_for("2025") == Decimal("89.3368")
        assert config.target_for("2030") == Decimal("85.6904")
        assert config.target_for("2099") == Decimal("89.3368")
        assert config.target_for(None) == Decimal("89.3368")

    def test_targets_sorted_by_period(self):
        periods = [period for period, _ in get_active_config().targets]
        assert periods == sorted(periods)


class TestResolution:
    """Explicit path, environment variable, bundled default."""

    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path, {"config_id": "explicit", "version": 3})

        config = get_active_config(path)

        assert config.config_id == "explicit"
        assert config.version == 3

    def test_environment_override(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"config_id": "from-env"})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert get_active_config().config_id == "from-env"

    def test_explicit_path_beats_environment(self, tmp_path, monkeypatch):
        env_path = _write(tmp_path, {"config_id": "env"}, "env.yaml")
        explicit = _write(tmp_path, {"config_id": "explicit"}, "explicit.yaml")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(env_path))

        assert get_active_config(explicit).config_id == "explicit"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = load_config(path)

        assert config.config_id == "default"
        assert config.default_target_ghg_intensity == Decimal("89.3368")

    def test_trace_logged(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "FUELEU_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_id"] == "fueleu-default"
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["target_count"] == len(config.targets)


class TestMalformed:
    """Present-but-wrong values raise ConfigurationError naming the key."""

    @pytest.mark.parametrize(
        "data,key",
        [
            ({"compliance": {"energy_conversion_factor": "lots"}},
             "compliance.energy_conversion_factor"),
            ({"compliance": {"default_target_ghg_intensity": "-1"}},
             "compliance.default_target_ghg_intensity"),
            ({"compliance": {"default_target_ghg_intensity": "Infinity"}},
             "compliance.default_target_ghg_intensity"),
            ({"compliance": {"targets": {"2025": True}}}, "targets.2025"),
            ({"compliance": {"targets": ["2025"]}}, "targets"),
            ({"banking": {"validity_years": 0}}, "banking.validity_years"),
            ({"banking": {"validity_years": "2"}}, "banking.validity_years"),
            ({"banking": {"max_capacity": "-5"}}, "banking.max_capacity"),
            ({"database": {"url": ""}}, "database.url"),
            ({"database": {"echo": "yes"}}, "database.echo"),
            ({"version": "one"}, "version"),
            ({"compliance": "flat"}, "compliance"),
        ],
    )
    def test_rejected(self, data, key):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config(data)

        assert exc_info.value.key == key

    def test_non_mapping_document(self, tmp_path):
        path = _write(tmp_path, ["not", "a", "mapping"])

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("compliance: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_config(path)

    def test_capacity_parsed(self):
        config = parse_config({"banking": {"max_capacity": "250.5"}})
        assert config.banking.max_capacity == Decimal("250.5")


class TestChecksum:
    """Deterministic hashing of the parsed document."""

    def test_same_document_same_checksum(self):
        data = {"config_id": "x", "compliance": {"targets": {"2025": "89"}}}
        assert compute_checksum(data) == compute_checksum(dict(reversed(list(data.items()))))

    def test_changed_value_changes_checksum(self):
        a = parse_config({"compliance": {"targets": {"2025": "89"}}})
        b = parse_config({"compliance": {"targets": {"2025": "88"}}})
        assert a.checksum != b.checksum

    def test_checksum_is_sha256_hex(self):
        checksum = get_active_config().checksum
        assert len(checksum) == 64
        int(checksum, 16)


class TestDatabaseSection:
    """The ``database`` section builds the Database handle."""

    def test_default_section_opens_sqlite(self):
        with Database.from_config(get_active_config().database) as db:
            db.create_tables()
            assert db.engine.dialect.name == "sqlite"
            assert db.engine.echo is False
            assert not db.is_postgres

    def test_echo_and_url_carried_over(self, tmp_path):
        path = _write(tmp_path, {"database": {"url": "sqlite://", "echo": True}})

        with Database.from_config(get_active_config(path).database) as db:
            assert db.engine.echo is True
            assert db.engine.url.drivername == "sqlite"
