"""Escalating penalty policy for repeat offenders."""

from __future__ import annotations

import math
from dataclasses import dataclass

from homework_api.core.errors import ConfigurationError


@dataclass(frozen=True)
class EscalationPolicy:
    """Geometric lockout growth, capped.

    The Nth consecutive violation locks the client out for
    ``base * min(multiplier ** (N - 1), cap_factor)``.

    Attributes:
        multiplier: Growth factor per consecutive violation (>= 1).
        cap_factor: Ceiling for the growth factor (>= 1).
    """

    multiplier: float = 2.0
    cap_factor: float = 16.0

    def __post_init__(self) -> None:
        if self.multiplier < 1:
            raise ConfigurationError(
                code="invalid_escalation_multiplier",
                message="Escalation multiplier must be >= 1",
            )
        if self.cap_factor < 1:
            raise ConfigurationError(
                code="invalid_escalation_cap",
                message="Escalation cap factor must be >= 1",
            )

    def factor(self, violations: int) -> float:
        if violations <= 1 or self.multiplier == 1:
            return 1.0
        # Compare in log space so large violation counts cannot overflow.
        if (violations - 1) * math.log(self.multiplier) >= math.log(self.cap_factor):
            return self.cap_factor
        return self.multiplier ** (violations - 1)

    def penalty_ms(self, base_window_ms: float, violations: int) -> float:
        """Lockout length for the given consecutive violation count.

        Args:
            base_window_ms: Configured window duration.
            violations: Consecutive violations including the current one.

        Returns:
            Penalty window length in milliseconds.
        """
        return base_window_ms * self.factor(violations)
