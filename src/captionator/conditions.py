"""System resource probes and the vision bypass decision."""

import logging
from typing import Optional, Protocol

import psutil

from .models import SystemConditions, ThermalState

logger = logging.getLogger(__name__)

MIN_PHYSICAL_MEMORY = 1_000_000_000  # Below 1GB, vision is never attempted
LOW_BATTERY_PERCENT = 20
FAIR_MARGIN_CELSIUS = 10.0
FALLBACK_PHYSICAL_MEMORY = 4_000_000_000


class ConditionsProvider(Protocol):
    def current(self) -> SystemConditions:
        ...


def should_bypass_vision(conditions: SystemConditions) -> bool:
    """
    Decide whether vision must be skipped outright.

    Only critical thermal state and very low memory devices force the
    pixel-only path. Low power mode alone never does.
    """
    if conditions.thermal_state == ThermalState.CRITICAL:
        logger.info("Device thermal state critical, using fallback")
        return True

    if conditions.physical_memory < MIN_PHYSICAL_MEMORY:
        logger.info(
            "Extremely low memory device detected (%d MB), using fallback processing",
            conditions.physical_memory // 1_000_000
        )
        return True

    return False


class SystemConditionsProvider:
    """Reads resource pressure from the host with psutil."""

    def current(self) -> SystemConditions:
        physical, available = self._memory()
        return SystemConditions(
            thermal_state=self._thermal_state(),
            physical_memory=physical,
            available_memory=available,
            low_power_mode=self._low_power_mode()
        )

    @staticmethod
    def _memory() -> tuple[int, Optional[int]]:
        try:
            vm = psutil.virtual_memory()
            return vm.total, vm.available
        except (OSError, RuntimeError) as e:
            logger.debug("Memory probe failed: %s", e)
            return FALLBACK_PHYSICAL_MEMORY, None

    @staticmethod
    def _thermal_state() -> ThermalState:
        sensors = getattr(psutil, "sensors_temperatures", None)
        if sensors is None:
            return ThermalState.NOMINAL

        try:
            readings = sensors()
        except (OSError, RuntimeError) as e:
            logger.debug("Thermal probe failed: %s", e)
            return ThermalState.NOMINAL

        state = ThermalState.NOMINAL
        tiers = list(ThermalState)
        for entries in readings.values():
            for entry in entries:
                tier = thermal_tier(entry.current, entry.high, entry.critical)
                if tiers.index(tier) > tiers.index(state):
                    state = tier
        return state

    @staticmethod
    def _low_power_mode() -> bool:
        battery_probe = getattr(psutil, "sensors_battery", None)
        if battery_probe is None:
            return False

        try:
            battery = battery_probe()
        except (OSError, RuntimeError) as e:
            logger.debug("Battery probe failed: %s", e)
            return False

        if battery is None:
            return False
        return not battery.power_plugged and battery.percent <= LOW_BATTERY_PERCENT


class StaticConditionsProvider:
    """Always reports the same conditions."""

    def __init__(self, conditions: Optional[SystemConditions] = None):
        self.conditions = conditions or SystemConditions(physical_memory=FALLBACK_PHYSICAL_MEMORY)

    def current(self) -> SystemConditions:
        return self.conditions


def thermal_tier(current: Optional[float], high: Optional[float], critical: Optional[float]) -> ThermalState:
    """Map one temperature reading onto a thermal tier using its trip points."""
    if current is None:
        return ThermalState.NOMINAL
    if critical and current >= critical:
        return ThermalState.CRITICAL
    if high and current >= high:
        return ThermalState.SERIOUS
    if high and current >= high - FAIR_MARGIN_CELSIUS:
        return ThermalState.FAIR
    return ThermalState.NOMINAL
