from __future__ import annotations

import time
from dataclasses import dataclass

__all__ = ["SimulatedDelay", "NO_DELAY"]


@dataclass(frozen=True)
class SimulatedDelay:
    """
    Blocking delay standing in for real work (I/O, network, CPU).

    :param seconds: How long `wait` blocks; 0 disables the delay.
    """
    seconds: float = 0.0

    def wait(self) -> None:
        """Blocks the calling thread; not a yield point."""
        if self.seconds > 0:
            time.sleep(self.seconds)


NO_DELAY = SimulatedDelay(0)
