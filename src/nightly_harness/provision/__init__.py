"""Environment provisioning package.

This package drives the lifecycle of the ephemeral network a scenario runs
against:
1. Resolves per-scenario override files
2. Sets up network assets through the external toolkit
3. Starts the nodes and waits for them to settle
4. Tears everything down again
"""

from .environment import EnvironmentHandle, EnvironmentProvisioner, EnvironmentState
from .overrides import OVERRIDE_KINDS, OverrideBundle, OverrideResolver
from .readiness import ReadinessPoller, ReadinessResult, ReadinessWaiter
from .toolkit import Toolkit

__all__ = [
    # Overrides
    "OVERRIDE_KINDS",
    "OverrideBundle",
    "OverrideResolver",
    # Toolkit
    "Toolkit",
    # Readiness
    "ReadinessPoller",
    "ReadinessResult",
    "ReadinessWaiter",
    # Environment lifecycle
    "EnvironmentHandle",
    "EnvironmentProvisioner",
    "EnvironmentState",
]
