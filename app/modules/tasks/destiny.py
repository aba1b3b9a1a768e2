"""Deterministic failure destiny for fault injection.

Whether a task is destined to fail is decided once, when the task is
created, from its id alone: the same id always gets the same decision on
every runtime. The decision uses 64-bit FNV-1a so it can be reproduced
anywhere.
"""

from infrastructure.logging import get_module_logger

logger = get_module_logger()

FNV_OFFSET_BASIS_64 = 0xCBF29CE484222325
FNV_PRIME_64 = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF

FORCE_FAIL_MARKER = "force-fail"
FORCE_SUCCESS_MARKER = "force-success"


def fnv1a_64(value: str) -> int:
    """64-bit FNV-1a hash of the UTF-8 bytes of ``value``."""
    h = FNV_OFFSET_BASIS_64
    for byte in value.encode("utf-8"):
        h ^= byte
        h = (h * FNV_PRIME_64) & _MASK_64
    return h


def deterministic_decision(identifier: str, threshold_per_mille: int) -> bool:
    """True for roughly ``threshold_per_mille`` out of every 1000 identifiers.

    Args:
        identifier: Value to decide for
        threshold_per_mille: Integer in [0, 1000]

    Raises:
        ValueError: If the threshold is out of range.
    """
    if not 0 <= threshold_per_mille <= 1000:
        raise ValueError("threshold_per_mille must be between 0 and 1000")
    return fnv1a_64(identifier) % 1000 < threshold_per_mille


def decide_failure_destiny(task_id: str, threshold_per_mille: int) -> bool:
    """Decide whether every attempt at ``task_id`` will fail.

    Ids containing ``force-fail`` always fail and ids containing
    ``force-success`` never do; otherwise the hash decides.
    """
    if FORCE_FAIL_MARKER in task_id:
        logger.info("task_destiny_forced", task_id=task_id, destined_to_fail=True)
        return True
    if FORCE_SUCCESS_MARKER in task_id:
        logger.info("task_destiny_forced", task_id=task_id, destined_to_fail=False)
        return False
    return deterministic_decision(task_id, threshold_per_mille)
