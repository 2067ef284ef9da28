"""
Task configuration file loading.

The file is JSON or YAML. Its top level is either a plain list of task
objects (the ``data_sync_configs.json`` layout) or a mapping with a ``tasks``
list and an optional ``logging`` section.
"""

import json
import time
from pathlib import Path
from typing import Any

import yaml

from datasync.config.resolver import resolve_config, unresolved_placeholders
from datasync.exceptions import ConfigurationError, InvalidDirectionError
from datasync.service.cron_parser import CronParseError, CronSchedule
from datasync.sync.types import Direction, TaskDescriptor

DEFAULT_CONFIG_FILE = "data_sync_configs.json"

# Canonical field -> accepted spellings (snake_case and the camelCase keys of older task files)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name",),
    "host": ("host", "sshHost", "ssh_host"),
    "port": ("port", "sshPort", "ssh_port"),
    "user": ("user", "username"),
    "password": ("password",),
    "local_root": ("local_root", "localDir", "local_dir"),
    "remote_root": ("remote_root", "remoteDir", "remote_dir"),
    "cron": ("cron",),
    "direction": ("direction", "action"),
    "timezone": ("timezone",),
    "private_key_path": ("private_key_path", "privateKeyPath"),
    "private_key_passphrase": ("private_key_passphrase", "privateKeyPassphrase"),
    "known_hosts_path": ("known_hosts_path", "knownHostsPath"),
    "connect_timeout_s": ("connect_timeout_s", "connectTimeout"),
}

REQUIRED_FIELDS = ("host", "local_root", "remote_root", "cron", "direction")


class Config:
    """Loaded configuration: the validated tasks plus the raw data for other sections."""

    def __init__(self, data: dict[str, Any], tasks: tuple[TaskDescriptor, ...], path: Path | None = None):
        self.data = data
        self.tasks = tasks
        self.path = path

    @property
    def logging(self) -> dict[str, Any]:
        section = self.data.get("logging") or {}
        return section if isinstance(section, dict) else {}

    @property
    def task_names(self) -> list[str]:
        return [t.name for t in self.tasks]

    def task(self, name: str) -> TaskDescriptor:
        for t in self.tasks:
            if t.name == name:
                return t
        raise ConfigurationError(
            f"Task '{name}' not found\n  Available tasks: {', '.join(self.task_names) or '(none)'}",
            details={"task": name},
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value


def load_config(path: Path | str | None = None) -> Config:
    """
    Load and validate a task configuration file.

    Args:
        path: Config file (default: ``data_sync_configs.json`` in the working directory)

    Raises:
        ConfigurationError: missing/unreadable file, syntax error, or invalid task
    """
    config_path = Path(path) if path is not None else Path.cwd() / DEFAULT_CONFIG_FILE
    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}\n"
            f"  Suggestion: Create {DEFAULT_CONFIG_FILE} or pass --config",
            details={"path": str(config_path)},
        )
    if not config_path.is_file():
        raise ConfigurationError(f"Configuration path is not a file: {config_path}", details={"path": str(config_path)})

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file: {config_path}\n  Error: {e}", details={"path": str(config_path)}
        ) from e

    raw = _parse_text(text, config_path)
    return config_from_data(raw, path=config_path)


def config_from_data(raw: Any, path: Path | None = None) -> Config:
    """Build a :class:`Config` from already-parsed JSON/YAML data."""
    if raw is None:
        raw = []
    if isinstance(raw, list):
        data: dict[str, Any] = {"tasks": raw}
    elif isinstance(raw, dict):
        data = dict(raw)
    else:
        raise ConfigurationError(
            f"Configuration must be a list of tasks or a mapping with 'tasks', got {type(raw).__name__}"
        )

    data = resolve_config(data)
    task_list = data.get("tasks") or []
    if not isinstance(task_list, list):
        raise ConfigurationError(f"Configuration 'tasks' must be a list, got {type(task_list).__name__}")

    return Config(data, parse_tasks(task_list), path=path)


def parse_tasks(task_list: list[Any]) -> tuple[TaskDescriptor, ...]:
    """Validate raw task mappings; names must be unique."""
    tasks: list[TaskDescriptor] = []
    seen: set[str] = set()
    for index, raw in enumerate(task_list):
        task = task_from_dict(raw, index)
        if task.name in seen:
            raise ConfigurationError(f"Duplicate task name '{task.name}'", details={"task": task.name})
        seen.add(task.name)
        tasks.append(task)
    return tuple(tasks)


def task_from_dict(raw: Any, index: int = 0) -> TaskDescriptor:
    """Build one :class:`TaskDescriptor` from a config mapping."""
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Task #{index + 1} must be a mapping, got {type(raw).__name__}")

    values = _canonicalize(raw)
    name = str(values.get("name") or f"task-{index + 1}")
    where = f"Task '{name}'"

    missing = [f for f in REQUIRED_FIELDS if values.get(f) in (None, "")]
    if missing:
        accepted = ", ".join("/".join(FIELD_ALIASES[f]) for f in missing)
        raise ConfigurationError(f"{where}: missing required field(s): {accepted}", details={"task": name})

    for field_name, value in values.items():
        unresolved = unresolved_placeholders(value)
        if unresolved:
            raise ConfigurationError(
                f"{where}: environment variable(s) not set for '{field_name}': {', '.join(unresolved)}",
                details={"task": name},
            )

    try:
        direction = Direction.parse(values["direction"])
    except InvalidDirectionError as e:
        raise ConfigurationError(f"{where}: {e}", details={"task": name}) from e

    port = _as_int(values.get("port", 22), f"{where}: port")
    if not 0 < port < 65536:
        raise ConfigurationError(f"{where}: port out of range: {port}", details={"task": name})

    cron = str(values["cron"])
    timezone = values.get("timezone")
    try:
        # An impossible date such as Feb 31 parses but never fires
        CronSchedule.parse(cron, timezone).next_after(time.time())
    except CronParseError as e:
        raise ConfigurationError(f"{where}: invalid cron {cron!r}: {e}", details={"task": name}) from e

    return TaskDescriptor(
        name=name,
        host=str(values["host"]),
        port=port,
        user=_opt_str(values.get("user")),
        password=_opt_str(values.get("password")),
        local_root=str(values["local_root"]),
        remote_root=str(values["remote_root"]),
        cron=cron,
        direction=direction,
        timezone=_opt_str(timezone),
        private_key_path=_opt_str(values.get("private_key_path")),
        private_key_passphrase=_opt_str(values.get("private_key_passphrase")),
        known_hosts_path=_opt_str(values.get("known_hosts_path")),
        connect_timeout_s=_as_float(values.get("connect_timeout_s", 15.0), f"{where}: connect_timeout_s"),
    )


def _parse_text(text: str, config_path: Path) -> Any:
    if config_path.suffix.lower() in (".yaml", ".yml"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
            raise ConfigurationError(
                f"Error parsing {config_path.name}{where}:\n"
                f"  {e}\n"
                f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes",
                details={"path": str(config_path)},
            ) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Error parsing {config_path.name} at line {e.lineno}, column {e.colno}:\n"
            f"  {e.msg}\n"
            f"  Suggestion: Check JSON syntax (trailing commas, unquoted keys)",
            details={"path": str(config_path)},
        ) from e


def _canonicalize(raw: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for canonical, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            if alias in raw:
                values[canonical] = raw[alias]
                break
    return values


def _opt_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _as_int(value: Any, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{what} must be an integer, got {value!r}") from None


def _as_float(value: Any, what: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{what} must be a number, got {value!r}") from None
