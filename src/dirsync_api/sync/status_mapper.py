"""Mapping of directory provider statuses to employee statuses."""

from loguru import logger

from dirsync_api.errors import UnrecognizedStatusError
from dirsync_api.sync.enums import EmployeeStatus

STATUS_MAP = {
    "active": EmployeeStatus.ACTIVE,
    "suspended": EmployeeStatus.SUSPENDED,
    "archived": EmployeeStatus.OFFBOARDED,
    "deleted": EmployeeStatus.OFFBOARDED,
}


def map_status(provider_status: str, strict: bool = False) -> EmployeeStatus:
    """
    Map a directory provider status to an employee status.

    active -> active, suspended -> suspended, archived / deleted -> offboarded.
    Any other value maps to active so that a status we do not know yet never
    shows up as an offboarding event. With ``strict=True`` it raises instead.

    Args:
        provider_status: Raw status string reported by the provider
        strict: Raise for unrecognized statuses instead of defaulting to active

    Returns:
        EmployeeStatus

    Raises:
        UnrecognizedStatusError: If strict and the status is not recognized
    """
    mapped = STATUS_MAP.get(provider_status)
    if mapped is not None:
        return mapped

    if strict:
        raise UnrecognizedStatusError(provider_status)

    logger.warning("Unrecognized directory status, defaulting to active", provider_status=provider_status)
    return EmployeeStatus.ACTIVE
