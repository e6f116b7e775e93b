"""
Runs polling cycles for one provider.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..exceptions import PersistenceFailure, TasmotaManagerError
from ..models.provider_data import ProviderDataStore
from ..utils.logging import get_logger
from .tasmota_provider import TasmotaProvider

logger = get_logger(__name__)


@dataclass
class CycleResult:
    """Outcome of one polling cycle"""
    success: bool
    variables: Dict[str, Any] = field(default_factory=dict)
    discovered: bool = False
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class ProviderWorker:
    """
    Sequential polling loop of one device.

    A cycle runs the first-run discovery while the provider is uninitialized
    and then reads the current values. Failures are reported in the cycle
    result and the next cycle simply tries again.
    """

    def __init__(self, provider: TasmotaProvider, store: Optional[ProviderDataStore] = None):
        self.provider = provider
        self.store = store
        self.last_result: Optional[CycleResult] = None
        self._lock = asyncio.Lock()

    async def run_cycle(self) -> CycleResult:
        # One cycle in flight at a time
        async with self._lock:
            name = self.provider.provider_data.name
            discovered = False
            try:
                discovered = await self.provider.do_on_first_run()
                provider_data = self.provider.provider_data
                # Retried every cycle until the store accepts it
                if self.store is not None and provider_data.properties_changed:
                    if not self.store.save(provider_data):
                        raise PersistenceFailure(
                            f"Could not store discovered data of '{name}' in {self.store.data_dir}"
                        )

                variables: Dict[str, Any] = {}
                await self.provider.do_activity_work(variables)
                result = CycleResult(success=True, variables=variables, discovered=discovered)
                logger.debug(f"Cycle for '{name}' produced {len(variables)} variables")
            except TasmotaManagerError as e:
                logger.error(f"Cycle for '{name}' failed: {str(e)}")
                result = CycleResult(success=False, discovered=discovered, error=str(e))

            self.last_result = result
            return result

    async def run_forever(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run cycles at the activity interval until ``stop_event`` is set."""
        stop_event = stop_event or asyncio.Event()
        activity = self.provider.provider_data.activity
        logger.info(
            f"Polling '{self.provider.provider_data.name}' every {activity.interval_seconds} seconds"
        )

        while not stop_event.is_set():
            if activity.is_active():
                try:
                    await self.run_cycle()
                except Exception as e:
                    logger.error(f"Unexpected error while polling: {str(e)}")
            else:
                logger.debug("Outside of the activity window, skipping cycle")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=activity.interval_seconds)
            except asyncio.TimeoutError:
                pass
