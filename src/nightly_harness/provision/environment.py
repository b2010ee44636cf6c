"""Environment lifecycle management.

The provisioner owns the single network environment the harness drives.
Every provision is preceded by an unconditional teardown, so at most one
EnvironmentHandle is live at any time and leftovers from an aborted run are
cleared before new assets are generated.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..errors import ProvisioningError
from ..shared.logging import get_logger
from .overrides import OverrideBundle
from .readiness import ReadinessWaiter
from .toolkit import Toolkit

logger = get_logger(__name__)


class EnvironmentState(Enum):
    """State of a provisioned network environment."""

    PROVISIONED = "provisioned"  # Assets generated, nodes not started
    RUNNING = "running"  # Nodes launched
    TORN_DOWN = "torn_down"  # Resources released


@dataclass
class EnvironmentHandle:
    """A provisioned, possibly running network instance."""

    id: str
    assets_dir: Path
    bundle: OverrideBundle = field(default_factory=OverrideBundle)
    state: EnvironmentState = EnvironmentState.PROVISIONED
    external: bool = False

    @property
    def is_live(self) -> bool:
        return self.state != EnvironmentState.TORN_DOWN

    def environment(self) -> dict[str, str]:
        """Variables pointing child processes at this network."""
        return {
            "HARNESS_NETWORK_ID": self.id,
            "HARNESS_ASSETS_DIR": str(self.assets_dir),
        }


class EnvironmentProvisioner:
    """Provision, start and tear down the network environment."""

    def __init__(
        self,
        toolkit: Toolkit,
        waiter: ReadinessWaiter,
        assets_dir: Path,
    ):
        """Initialize provisioner.

        Args:
            toolkit: External environment control capability.
            waiter: Blocking waits around setup, start and teardown.
            assets_dir: Working directory of the provisioned network.
        """
        self.toolkit = toolkit
        self.waiter = waiter
        self.assets_dir = Path(assets_dir)
        self._handle: EnvironmentHandle | None = None
        self._ids = itertools.count(1)
        self.provision_count = 0

    @property
    def live_handle(self) -> EnvironmentHandle | None:
        if self._handle is not None and self._handle.is_live:
            return self._handle
        return None

    @property
    def is_live(self) -> bool:
        return self.live_handle is not None

    def teardown(self) -> None:
        """Release all environment resources.

        Idempotent and best-effort: safe when nothing is provisioned, and a
        failing toolkit teardown is logged rather than raised.
        """
        handle = self._handle
        success, msg = self.toolkit.teardown()
        if not success:
            logger.warning("teardown failed", detail=msg)
        else:
            logger.debug("teardown complete")

        if handle is not None:
            handle.state = EnvironmentState.TORN_DOWN
        self._handle = None

    def _new_handle(self, bundle: OverrideBundle, external: bool = False) -> EnvironmentHandle:
        self.provision_count += 1
        return EnvironmentHandle(
            id=f"env-{next(self._ids)}",
            assets_dir=self.assets_dir,
            bundle=bundle,
            external=external,
        )

    def provision(self, bundle: OverrideBundle | None = None) -> EnvironmentHandle:
        """Generate network assets, applying override files.

        Args:
            bundle: Override files; omitted entries use toolkit defaults.

        Returns:
            Handle in the PROVISIONED state.

        Raises:
            ProvisioningError: If the previous environment is still active or
                asset setup fails.
        """
        bundle = bundle or OverrideBundle()

        self.teardown()
        if self.toolkit.is_active():
            raise ProvisioningError("Network still active after teardown")

        setup_args = bundle.to_setup_args()
        logger.info("setting up network", setup_args=setup_args)
        success, msg = self.toolkit.setup(setup_args)
        if not success:
            # Leave nothing half-generated behind
            self.teardown()
            raise ProvisioningError(msg)

        self._handle = self._new_handle(bundle)
        self.waiter.after_setup()
        return self._handle

    def start(self, handle: EnvironmentHandle) -> EnvironmentHandle:
        """Launch the network's nodes and wait for them to settle.

        Raises:
            ProvisioningError: If the handle is not the provisioned one or the
                network fails to start or become ready.
        """
        if handle is not self._handle or handle.state != EnvironmentState.PROVISIONED:
            raise ProvisioningError(
                f"Cannot start environment {handle.id} in state {handle.state.value}"
            )

        logger.info("starting network", handle=handle.id)
        success, msg = self.toolkit.start()
        if not success:
            raise ProvisioningError(msg)

        handle.state = EnvironmentState.RUNNING
        self.waiter.after_start()
        return handle

    def adopt(self, label: str) -> EnvironmentHandle:
        """Register an environment materialized by an external program.

        Used by chain steps that run their own setup: the slot is torn down
        first, then a RUNNING handle is recorded so later steps can reuse it.
        """
        self.teardown()
        handle = self._new_handle(OverrideBundle(), external=True)
        handle.state = EnvironmentState.RUNNING
        self._handle = handle
        logger.info("environment established by external program", handle=handle.id, step=label)
        return handle

    def release(self) -> None:
        """Tear down and wait for the cooldown period."""
        self.teardown()
        self.waiter.after_teardown()
