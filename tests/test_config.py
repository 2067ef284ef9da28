"""
Tests for task configuration loading and resolution.
"""

import json
from pathlib import Path

import pytest

from datasync.config.loader import Config, config_from_data, load_config, task_from_dict
from datasync.config.resolver import resolve_config, unresolved_placeholders
from datasync.exceptions import ConfigurationError
from datasync.sync.types import Direction


def _raw(**overrides):
    raw = {
        "name": "orders",
        "sshHost": "sftp.example.com",
        "sshPort": 2222,
        "user": "ops",
        "password": "secret",
        "localDir": "/data/orders",
        "remoteDir": "/exports/orders",
        "cron": "*/10 * * * *",
        "direction": "pull",
    }
    raw.update(overrides)
    return raw


class TestConfig:
    """Tests for Config class."""

    def test_dot_notation(self):
        cfg = Config({"logging": {"level": "DEBUG"}}, tasks=())
        assert cfg.get("logging.level") == "DEBUG"

    def test_dot_notation_missing_returns_default(self):
        cfg = Config({"a": 1}, tasks=())
        assert cfg.get("a.b.c", "fallback") == "fallback"

    def test_logging_section(self):
        assert Config({"logging": {"level": "INFO"}}, tasks=()).logging == {"level": "INFO"}
        assert Config({"logging": "bad"}, tasks=()).logging == {}
        assert Config({}, tasks=()).logging == {}

    def test_task_lookup(self):
        cfg = config_from_data([_raw(name="a"), _raw(name="b")])

        assert len(cfg.tasks) == 2
        assert cfg.task_names == ["a", "b"]
        assert cfg.task("b").name == "b"
        assert [t.name for t in cfg.tasks] == ["a", "b"]

    def test_unknown_task_raises(self):
        cfg = config_from_data([_raw(name="a")])
        with pytest.raises(ConfigurationError, match="not found"):
            cfg.task("missing")


class TestTaskFromDict:
    """Tests for single task validation."""

    def test_camel_case_fields(self):
        task = task_from_dict(_raw())

        assert task.name == "orders"
        assert task.host == "sftp.example.com"
        assert task.port == 2222
        assert task.user == "ops"
        assert task.password == "secret"
        assert task.local_root == "/data/orders"
        assert task.remote_root == "/exports/orders"
        assert task.cron == "*/10 * * * *"
        assert task.direction is Direction.PULL

    def test_snake_case_fields_and_defaults(self):
        task = task_from_dict(
            {
                "host": "h",
                "local_root": "/l",
                "remote_root": "/r",
                "cron": "@daily",
                "direction": "PUSH",
            },
            index=2,
        )

        assert task.name == "task-3"
        assert task.port == 22
        assert task.user is None
        assert task.password is None
        assert task.direction is Direction.PUSH
        assert task.connect_timeout_s == 15.0

    def test_action_alias_for_direction(self):
        raw = _raw()
        del raw["direction"]
        raw["action"] = "push"
        assert task_from_dict(raw).direction is Direction.PUSH

    def test_password_hidden_from_repr(self):
        assert "secret" not in repr(task_from_dict(_raw()))

    def test_missing_required_field(self):
        raw = _raw()
        del raw["remoteDir"]
        with pytest.raises(ConfigurationError, match="remoteDir"):
            task_from_dict(raw)

    def test_invalid_direction(self):
        with pytest.raises(ConfigurationError, match="Invalid direction"):
            task_from_dict(_raw(direction="sideways"))

    def test_invalid_cron(self):
        with pytest.raises(ConfigurationError, match="invalid cron"):
            task_from_dict(_raw(cron="every tuesday"))

    def test_cron_that_never_fires_is_rejected(self):
        with pytest.raises(ConfigurationError, match="invalid cron"):
            task_from_dict(_raw(cron="0 0 31 2 *"))

    def test_leap_day_cron_is_accepted(self):
        assert task_from_dict(_raw(cron="0 0 29 2 *")).cron == "0 0 29 2 *"

    def test_invalid_timezone(self):
        with pytest.raises(ConfigurationError, match="timezone"):
            task_from_dict(_raw(timezone="Nowhere/City"))

    @pytest.mark.parametrize("port", [0, 70000, "ssh"])
    def test_invalid_port(self, port):
        with pytest.raises(ConfigurationError, match="port"):
            task_from_dict(_raw(sshPort=port))

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            task_from_dict(["not", "a", "task"])


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_json_list(self, tmp_path):
        path = tmp_path / "data_sync_configs.json"
        path.write_text(json.dumps([_raw(), _raw(name="invoices", direction="push")]))

        cfg = load_config(path)

        assert cfg.path == path
        assert cfg.task_names == ["orders", "invoices"]
        assert cfg.task("invoices").direction is Direction.PUSH

    def test_load_yaml_mapping(self, tmp_path):
        (tmp_path / "tasks.yaml").write_text(
            "logging:\n"
            "  level: DEBUG\n"
            "tasks:\n"
            "  - name: orders\n"
            "    host: sftp.example.com\n"
            "    local_root: /data/orders\n"
            "    remote_root: /exports/orders\n"
            "    cron: '0 * * * *'\n"
            "    direction: pull\n"
            "    timezone: Europe/Berlin\n"
        )

        cfg = load_config(tmp_path / "tasks.yaml")

        assert cfg.logging == {"level": "DEBUG"}
        assert cfg.task("orders").timezone == "Europe/Berlin"

    def test_default_path_in_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "data_sync_configs.json").write_text(json.dumps([_raw()]))
        monkeypatch.chdir(tmp_path)

        assert load_config().task_names == ["orders"]

    def test_missing_config_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "nope.json")

    def test_directory_is_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not a file"):
            load_config(tmp_path)

    def test_empty_config_has_no_tasks(self, tmp_path):
        (tmp_path / "tasks.yaml").write_text("")
        assert load_config(tmp_path / "tasks.yaml").tasks == ()

    def test_invalid_json_reports_position(self, tmp_path):
        (tmp_path / "tasks.json").write_text('[{"name": "a",}]')
        with pytest.raises(ConfigurationError, match="line 1, column"):
            load_config(tmp_path / "tasks.json")

    def test_invalid_yaml_raises(self, tmp_path):
        (tmp_path / "tasks.yaml").write_text("tasks: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Error parsing"):
            load_config(tmp_path / "tasks.yaml")

    def test_wrong_top_level_type(self, tmp_path):
        (tmp_path / "tasks.json").write_text('"just a string"')
        with pytest.raises(ConfigurationError, match="list of tasks"):
            load_config(tmp_path / "tasks.json")

    def test_duplicate_task_names(self, tmp_path):
        (tmp_path / "tasks.json").write_text(json.dumps([_raw(), _raw()]))
        with pytest.raises(ConfigurationError, match="Duplicate task name"):
            load_config(tmp_path / "tasks.json")

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SFTP_PASSWORD", "from-env")
        (tmp_path / "tasks.json").write_text(json.dumps([_raw(password="${SFTP_PASSWORD}")]))

        assert load_config(tmp_path / "tasks.json").task("orders").password == "from-env"

    def test_unset_env_var_is_an_error(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DATASYNC_TEST_UNSET", raising=False)
        (tmp_path / "tasks.json").write_text(json.dumps([_raw(password="${DATASYNC_TEST_UNSET}")]))

        with pytest.raises(ConfigurationError, match="DATASYNC_TEST_UNSET"):
            load_config(tmp_path / "tasks.json")


class TestResolver:
    """Tests for ${VAR} resolution."""

    def test_nested_resolution(self, monkeypatch):
        monkeypatch.setenv("HOST", "sftp.internal")
        data = {"tasks": [{"host": "${HOST}", "port": 22, "paths": ["/a/${HOST}"]}]}

        resolved = resolve_config(data)

        assert resolved == {"tasks": [{"host": "sftp.internal", "port": 22, "paths": ["/a/sftp.internal"]}]}

    def test_unresolved_left_in_place(self, monkeypatch):
        monkeypatch.delenv("MISSING_VAR", raising=False)
        value = resolve_config("${MISSING_VAR}")

        assert value == "${MISSING_VAR}"
        assert unresolved_placeholders(value) == ["MISSING_VAR"]
        assert unresolved_placeholders(22) == []


class TestExampleConfigs:
    """The shipped example task files load and validate."""

    EXAMPLES = Path(__file__).resolve().parents[1] / "examples"

    def test_json_example(self, monkeypatch):
        monkeypatch.setenv("ORDERS_SFTP_PASSWORD", "x")
        monkeypatch.setenv("BILLING_SFTP_PASSWORD", "y")

        cfg = load_config(self.EXAMPLES / "data_sync_configs.json")

        assert cfg.task_names == ["daily-orders", "invoice-upload"]
        assert cfg.task("invoice-upload").direction is Direction.PUSH
        assert cfg.task("invoice-upload").port == 2222

    def test_yaml_example(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/datasync")
        monkeypatch.setenv("METRICS_SFTP_PASSWORD", "z")

        cfg = load_config(self.EXAMPLES / "tasks.yaml")

        assert cfg.logging["level"] == "INFO"
        assert cfg.task("daily-orders").private_key_path == "/home/datasync/.ssh/id_ed25519"
        assert cfg.task("metrics-push").connect_timeout_s == 30.0
