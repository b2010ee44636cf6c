"""Per-scenario override resolution.

A scenario may ship replacement chainspec, accounts or node-config files in
the override store, named after the scenario's base name:

    <overrides_dir>/itst01.chainspec.toml.in
    <overrides_dir>/itst01.accounts.toml
    <overrides_dir>/itst01.config.toml

Only files that exist are passed on to asset setup; everything else falls
back to the toolkit's defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..scenarios.models import ScenarioSpec

# Override kind -> (file suffix, setup argument key)
OVERRIDE_KINDS: dict[str, tuple[str, str]] = {
    "chainspec": ("chainspec.toml.in", "chainspec_path"),
    "accounts": ("accounts.toml", "accounts_path"),
    "config": ("config.toml", "config_path"),
}


@dataclass(frozen=True)
class OverrideBundle:
    """Override files found for one scenario."""

    chainspec: Path | None = None
    accounts: Path | None = None
    config: Path | None = None

    @property
    def is_empty(self) -> bool:
        return self.chainspec is None and self.accounts is None and self.config is None

    def to_setup_args(self) -> list[str]:
        """Setup argument tokens, e.g. ``chainspec_path=/x/itst01.chainspec.toml.in``."""
        args = []
        for kind, (_, key) in OVERRIDE_KINDS.items():
            path = getattr(self, kind)
            if path is not None:
                args.append(f"{key}={path}")
        return args

    def to_dict(self) -> dict[str, str | None]:
        return {kind: str(getattr(self, kind)) if getattr(self, kind) else None for kind in OVERRIDE_KINDS}


class OverrideResolver:
    """Locate override files for a scenario."""

    def __init__(self, overrides_dir: Path):
        """Initialize resolver.

        Args:
            overrides_dir: Root of the override store.
        """
        self.overrides_dir = Path(overrides_dir)

    def path_for(self, base_name: str, kind: str) -> Path:
        """Deterministic override path for a scenario base name and kind."""
        suffix, _ = OVERRIDE_KINDS[kind]
        return self.overrides_dir / f"{base_name}.{suffix}"

    def resolve(self, scenario: str | ScenarioSpec) -> OverrideBundle:
        """Resolve the override bundle for a scenario.

        Args:
            scenario: ScenarioSpec, or a scenario name / invocation line.

        Returns:
            OverrideBundle holding only the override files that exist.
        """
        if not isinstance(scenario, ScenarioSpec):
            scenario = ScenarioSpec.from_invocation(scenario)

        found: dict[str, Path] = {}
        for kind in OVERRIDE_KINDS:
            path = self.path_for(scenario.base_name, kind)
            if path.is_file():
                found[kind] = path

        return OverrideBundle(**found)
