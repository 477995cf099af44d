# Overview: Participant roles, item statuses, and the fixed custody transition tables.

"""
Custody transition rules (authoritative)

================================================================================
ROLES:     Manufacturer, Distributor, Retailer, Customer
STATUSES:  Manufactured -> InTransit -> Delivered -> Sold
================================================================================

A handoff is legal only when BOTH tables allow it:

    ROLE_TRANSITIONS                  STATUS_TRANSITIONS
    Manufacturer -> Distributor       Manufactured -> InTransit
    Distributor  -> Retailer          InTransit    -> Delivered
    Retailer     -> Customer          Delivered    -> Sold

The two tables are checked independently. The same role pair is never
assumed to imply a status value.

RULES:
1. No skipping (Manufacturer -> Retailer, Manufactured -> Delivered are forbidden)
2. No regressions (Sold is terminal, Customer never hands off)
3. No self-transitions
"""

from __future__ import annotations

import enum
from typing import Optional


class Role(str, enum.Enum):
    MANUFACTURER = "Manufacturer"
    DISTRIBUTOR = "Distributor"
    RETAILER = "Retailer"
    CUSTOMER = "Customer"


class ItemStatus(str, enum.Enum):
    MANUFACTURED = "Manufactured"
    IN_TRANSIT = "InTransit"
    DELIVERED = "Delivered"
    SOLD = "Sold"


ROLE_TRANSITIONS: frozenset[tuple[Role, Role]] = frozenset({
    (Role.MANUFACTURER, Role.DISTRIBUTOR),
    (Role.DISTRIBUTOR, Role.RETAILER),
    (Role.RETAILER, Role.CUSTOMER),
})

STATUS_TRANSITIONS: frozenset[tuple[ItemStatus, ItemStatus]] = frozenset({
    (ItemStatus.MANUFACTURED, ItemStatus.IN_TRANSIT),
    (ItemStatus.IN_TRANSIT, ItemStatus.DELIVERED),
    (ItemStatus.DELIVERED, ItemStatus.SOLD),
})

# Numeric codes from the legacy on-chain deployment (0 means "no role")
_ROLE_CODES = {
    1: Role.MANUFACTURER,
    2: Role.DISTRIBUTOR,
    3: Role.RETAILER,
    4: Role.CUSTOMER,
}
_STATUS_CODES = {
    0: ItemStatus.MANUFACTURED,
    1: ItemStatus.IN_TRANSIT,
    2: ItemStatus.DELIVERED,
    3: ItemStatus.SOLD,
}

_NONE_ROLE_NAMES = {"", "none", "null"}


def _normalize(value: str) -> str:
    return value.strip().replace("_", "").replace("-", "").replace(" ", "").lower()


def parse_role(value) -> Optional[Role]:
    """
    Parse a role argument from API/CLI input.

    Accepts enum members, names ("Manufacturer", "MANUFACTURER"), and the
    legacy numeric codes 1-4. Returns None for the "no role" sentinel
    (None, 0, "", "None"); raises ValueError for anything unrecognized.
    """
    if value is None or isinstance(value, Role):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Unknown role: {value!r}")
    if isinstance(value, int):
        if value == 0:
            return None
        if value in _ROLE_CODES:
            return _ROLE_CODES[value]
        raise ValueError(f"Unknown role code: {value}")
    if isinstance(value, str):
        key = _normalize(value)
        if key in _NONE_ROLE_NAMES or key == "0":
            return None
        if key.isdigit():
            return parse_role(int(key))
        for role in Role:
            if _normalize(role.value) == key:
                return role
    raise ValueError(f"Unknown role: {value!r}")


def parse_status(value) -> ItemStatus:
    """Parse an item status from API/CLI input (names or legacy codes 0-3)."""
    if isinstance(value, ItemStatus):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if value in _STATUS_CODES:
            return _STATUS_CODES[value]
        raise ValueError(f"Unknown status code: {value}")
    if isinstance(value, str):
        key = _normalize(value)
        if key.isdigit():
            return parse_status(int(key))
        for status in ItemStatus:
            if _normalize(status.value) == key:
                return status
    raise ValueError(f"Unknown status: {value!r}")


def can_hand_off(from_role: Optional[Role], to_role: Optional[Role]) -> bool:
    """True if a holder with from_role may pass custody to a holder with to_role."""
    if from_role is None or to_role is None:
        return False
    return (from_role, to_role) in ROLE_TRANSITIONS


def can_advance(from_status: ItemStatus, to_status: ItemStatus) -> bool:
    """True if an item may move from from_status to to_status in one handoff."""
    return (from_status, to_status) in STATUS_TRANSITIONS
