"""Path management for nightly-harness.

Default locations, all relative to the checkout the harness drives unless
overridden in the configuration file.
"""

from pathlib import Path

# Per-user harness directory (config file, harness logs)
HARNESS_DIR = Path.home() / ".nightly-harness"

# Default config file location
CONFIG_FILE = HARNESS_DIR / "config.yaml"

# Layout of the toolkit inside a node checkout
NCTL_SUBDIR = Path("utils") / "nctl"
SCENARIOS_SUBDIR = NCTL_SUBDIR / "sh" / "scenarios"
OVERRIDES_SUBDIR = NCTL_SUBDIR / "overrides"
ASSETS_SUBDIR = NCTL_SUBDIR / "assets"
ACTIVATE_SCRIPT = NCTL_SUBDIR / "activate"


def scenarios_dir(root: Path) -> Path:
    """Directory holding the scenario programs for a checkout."""
    return root / SCENARIOS_SUBDIR


def overrides_dir(root: Path) -> Path:
    """Directory holding per-scenario override files for a checkout."""
    return root / OVERRIDES_SUBDIR


def assets_dir(root: Path) -> Path:
    """Working directory of the provisioned network for a checkout."""
    return root / ASSETS_SUBDIR


def get_log_file(log_dir: Path, label: str) -> Path:
    """Get path to a per-run log file.

    Args:
        log_dir: Directory collecting run logs
        label: Run label (scenario name, chain step)

    Returns:
        Path to the log file
    """
    safe = label.replace("/", "_").replace(" ", "_")
    return log_dir / f"{safe}.log"
