"""
Configuration errors, input validation and logging setup

Configuration problems are the only errors the adjusters raise: they
surface when a config dataclass is built or when the factory is asked
for an unknown algorithm. Block processing never raises; malformed gas
series are rejected by the simulation runner before they reach it.
"""

import logging
from functools import wraps
from typing import List

import numpy as np

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when an adjuster configuration is invalid"""
    pass


class UnknownAdjusterTypeError(ConfigurationError):
    """Raised when an adjuster type name is not recognised"""
    pass


def raise_if_errors(errors: List[str]) -> None:
    """
    Raise a single ConfigurationError listing every collected violation.

    Args:
        errors: Violation messages gathered during validation

    Raises:
        ConfigurationError: If errors is non-empty
    """
    if errors:
        raise ConfigurationError("Parameter validation failed:\n" + "\n".join(errors))


def validate_range(value: float, low: float, high: float, name: str, errors: List[str]) -> None:
    """Append an error if value is outside [low, high]"""
    if not (low <= value <= high):
        errors.append(f"{name} must be in [{low}, {high}], got {value}")


def validate_ordered_range(bounds, name: str, errors: List[str]) -> None:
    """Append an error if a (min, max) pair is malformed or reversed"""
    if len(bounds) != 2:
        errors.append(f"{name} must be a (min, max) pair, got {bounds}")
    elif bounds[0] > bounds[1]:
        errors.append(f"{name} min ({bounds[0]}) must be <= max ({bounds[1]})")


# === DECORATORS ===

def validate_gas_series(func):
    """Decorator rejecting empty or negative gas-usage series passed as the first argument"""
    @wraps(func)
    def wrapper(self, gas_series, *args, **kwargs):
        values = np.asarray(gas_series, dtype=float)
        if values.size == 0:
            raise ValueError(f"{func.__name__}: gas series cannot be empty")
        if np.any(values < 0):
            raise ValueError(
                f"{func.__name__}: gas usage must be non-negative, got minimum {values.min():.0f}"
            )
        if not np.all(np.isfinite(values)):
            raise ValueError(f"{func.__name__}: gas series contains non-finite values")

        return func(self, gas_series, *args, **kwargs)

    return wrapper


# === LOGGING SETUP ===

def setup_logging(level=logging.INFO):
    """Setup logging for simulation runs"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
