"""
Device call helpers for swerveio
Bounded retry for one-time configuration and fault-isolated reads for the periodic path
"""

import logging
from typing import Callable, Optional, Tuple

from .interfaces import DeviceStatus

logger = logging.getLogger(__name__)


def _status_ok(status: DeviceStatus) -> bool:
    return status is DeviceStatus.OK


def try_until_ok(
    device,
    max_attempts: int,
    operation: Callable[[], DeviceStatus],
    is_ok: Optional[Callable[[DeviceStatus], bool]] = None,
    description: str = "operation"
) -> bool:
    """
    Call a device operation until it succeeds or attempts run out

    Only for configuration and calibration writes. Never call this from the
    periodic control path.

    Args:
        device: Device handle the operation targets (used for logs)
        max_attempts: Maximum number of calls
        operation: Callable returning the status of one attempt
        is_ok: Success predicate (default: status is DeviceStatus.OK)
        description: What the operation does, for logs

    Returns:
        True if any attempt succeeded
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    if is_ok is None:
        is_ok = _status_ok

    device_name = getattr(device, 'name', repr(device))

    for attempt in range(1, max_attempts + 1):
        status = operation()
        if is_ok(status):
            if attempt > 1:
                logger.info(f"{device_name}: {description} succeeded on attempt {attempt}")
            return True
        logger.debug(f"{device_name}: {description} failed ({status}), attempt {attempt}/{max_attempts}")

    logger.error(f"{device_name}: {description} failed after {max_attempts} attempts")
    return False


def read_if_ok(device, *suppliers: Callable[[], float]) -> Optional[Tuple[float, ...]]:
    """
    Read one or more values from a device, checking its status after each call

    Args:
        device: Device handle exposing last_error()
        *suppliers: Getter callables on that device

    Returns:
        Tuple of values if every read succeeded, None otherwise
    """
    values = []
    for supplier in suppliers:
        value = supplier()
        if device.last_error() is not DeviceStatus.OK:
            return None
        values.append(value)
    return tuple(values)
