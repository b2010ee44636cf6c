"""Harness configuration management.

Handles the configuration stored in ~/.nightly-harness/config.yaml (or the
file given with ``-c``). Supports environment variable overrides.

The resulting HarnessConfig is passed explicitly to every component; no
component reads the override store location or toolkit commands from
ambient process state.
"""

import os
import shlex
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable

import yaml

from .errors import ConfigError
from .shared import paths

# Toolkit shell functions defined by the activate script
SETUP_FUNCTION = "nctl-assets-setup"
START_FUNCTION = "nctl-start"
TEARDOWN_FUNCTION = "nctl-assets-teardown"
DEFAULT_STATUS_COMMAND: list[str] = []
DEFAULT_CHAIN_COMMAND = ["bash", "-i", "./ci/nctl_upgrade.sh"]

DEFAULT_SETUP_DELAY = 1.0
DEFAULT_SETTLE_DELAY = 10.0
DEFAULT_COOLDOWN_DELAY = 1.0

READINESS_MODES = ("sleep", "probe")

ENV_PREFIX = "HARNESS_"


def _as_path(value: Any) -> Path:
    return Path(str(value)).expanduser()


def _as_command(value: Any) -> list[str]:
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ValueError(f"expected a command string or list, got {type(value).__name__}")


def _as_env(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        raise ValueError(f"expected a mapping, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items()}


def _as_optional_path(value: Any) -> Path | None:
    if value in (None, ""):
        return None
    return _as_path(value)


def toolkit_function_command(activate_script: Path, function: str) -> list[str]:
    """argv running a toolkit shell function after sourcing the activate script.

    Extra arguments appended to the argv reach the function as "$@".
    """
    script = f". {shlex.quote(str(activate_script))} && {function} \"$@\""
    return ["bash", "-c", script, function]


@dataclass
class HarnessConfig:
    """Harness configuration."""

    root_dir: Path = field(default_factory=Path.cwd)
    scenarios_dir: Path | None = None
    overrides_dir: Path | None = None
    assets_dir: Path | None = None
    activate_script: Path | None = None
    shell_rc: Path = field(default_factory=lambda: Path.home() / ".bashrc")

    # Environment control capability
    # Empty commands default to the activated toolkit functions
    setup_command: list[str] = field(default_factory=list)
    start_command: list[str] = field(default_factory=list)
    teardown_command: list[str] = field(default_factory=list)
    status_command: list[str] = field(default_factory=lambda: list(DEFAULT_STATUS_COMMAND))

    # External programs
    chain_command: list[str] = field(default_factory=lambda: list(DEFAULT_CHAIN_COMMAND))
    soundness_command: list[str] = field(default_factory=list)
    prepare_command: list[str] = field(default_factory=list)
    override_activation_command: list[str] = field(default_factory=list)
    scenario_launcher: str = "bash"

    # Liveness waits (seconds)
    setup_delay: float = DEFAULT_SETUP_DELAY
    settle_delay: float = DEFAULT_SETTLE_DELAY
    cooldown_delay: float = DEFAULT_COOLDOWN_DELAY
    readiness_mode: str = "sleep"
    readiness_url: str = "http://localhost:14101/status"
    readiness_attempts: int = 30
    readiness_interval: float = 2.0

    # CI detection
    ci_env_var: str = "DRONE_BRANCH"
    default_client_branch: str = "dev"

    log_dir: Path | None = None
    extra_env: dict[str, str] = field(default_factory=dict)

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.scenarios_dir is None:
            self.scenarios_dir = paths.scenarios_dir(self.root_dir)
        if self.overrides_dir is None:
            self.overrides_dir = paths.overrides_dir(self.root_dir)
        if self.assets_dir is None:
            self.assets_dir = paths.assets_dir(self.root_dir)
        if self.activate_script is None:
            self.activate_script = self.root_dir / paths.ACTIVATE_SCRIPT
        if not self.setup_command:
            self.setup_command = toolkit_function_command(self.activate_script, SETUP_FUNCTION)
        if not self.start_command:
            self.start_command = toolkit_function_command(self.activate_script, START_FUNCTION)
        if not self.teardown_command:
            self.teardown_command = toolkit_function_command(self.activate_script, TEARDOWN_FUNCTION)
        if not self.soundness_command:
            self.soundness_command = [str(self.scenarios_dir / "network_soundness.py")]
        if self.readiness_mode not in READINESS_MODES:
            raise ConfigError(
                f"Invalid readiness_mode '{self.readiness_mode}'. "
                f"Expected one of: {', '.join(READINESS_MODES)}"
            )

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def client_branch(self, environ: dict[str, str] | None = None) -> str:
        """Branch identifier forwarded to chain steps."""
        env = os.environ if environ is None else environ
        return env.get(self.ci_env_var) or self.default_client_branch

    def in_ci(self, environ: dict[str, str] | None = None) -> bool:
        """True when the CI branch variable is present."""
        env = os.environ if environ is None else environ
        return self.ci_env_var in env

    def to_dict(self) -> dict[str, Any]:
        """Plain representation for display."""
        data: dict[str, Any] = {}
        for f in fields(self):
            if f.name.startswith("_"):
                continue
            value = getattr(self, f.name)
            data[f.name] = str(value) if isinstance(value, Path) else value
        return data


# Value converters for keys accepted from the config file and environment
CONVERTERS: dict[str, Callable[[Any], Any]] = {
    "root_dir": _as_path,
    "scenarios_dir": _as_optional_path,
    "overrides_dir": _as_optional_path,
    "assets_dir": _as_optional_path,
    "activate_script": _as_optional_path,
    "shell_rc": _as_path,
    "setup_command": _as_command,
    "start_command": _as_command,
    "teardown_command": _as_command,
    "status_command": _as_command,
    "chain_command": _as_command,
    "soundness_command": _as_command,
    "prepare_command": _as_command,
    "override_activation_command": _as_command,
    "scenario_launcher": str,
    "setup_delay": float,
    "settle_delay": float,
    "cooldown_delay": float,
    "readiness_mode": str,
    "readiness_url": str,
    "readiness_attempts": int,
    "readiness_interval": float,
    "ci_env_var": str,
    "default_client_branch": str,
    "log_dir": _as_optional_path,
    "extra_env": _as_env,
}

# Keys that cannot be set from a single environment variable
FILE_ONLY_KEYS = {"extra_env"}


def get_config_path() -> Path:
    """Get the default harness config file path.

    Returns:
        Path to ~/.nightly-harness/config.yaml
    """
    return paths.CONFIG_FILE


def env_var_for(key: str) -> str:
    """Environment variable overriding a config key."""
    return f"{ENV_PREFIX}{key.upper()}"


def _convert(key: str, value: Any, origin: str) -> Any:
    try:
        return CONVERTERS[key](value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for '{key}' from {origin}: {e}") from e


def load_config(
    config_path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> HarnessConfig:
    """Load harness configuration.

    Precedence (highest to lowest):
    1. Environment variables (HARNESS_<KEY>)
    2. Config file (-c path, else ~/.nightly-harness/config.yaml)
    3. Defaults

    Args:
        config_path: Explicit config file. Must exist when given.
        environ: Environment mapping (defaults to os.environ)

    Returns:
        HarnessConfig with values and sources

    Raises:
        ConfigError: If the file is unreadable or holds invalid values.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    sources: dict[str, str] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
    else:
        path = get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        unknown = sorted(set(file_config) - set(CONVERTERS))
        if unknown:
            raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")

        for key, value in file_config.items():
            values[key] = _convert(key, value, "config file")
            sources[key] = "config file"

    for key in CONVERTERS:
        if key in FILE_ONLY_KEYS:
            continue
        raw = env.get(env_var_for(key))
        if raw:
            values[key] = _convert(key, raw, env_var_for(key))
            sources[key] = "environment"

    config = HarnessConfig(**values)
    config._sources = sources
    return config
