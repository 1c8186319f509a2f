"""Pure domain helpers shared by kernel consumers."""

from asset_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "DeterministicClock", "SystemClock"]
