"""Domain enumerations and per-action precondition rules."""

import enum


class CoverageKind(str, enum.Enum):
    P2P = "P2P"
    COMMERCIAL = "COMMERCIAL"

    @property
    def other(self) -> "CoverageKind":
        if self is CoverageKind.P2P:
            return CoverageKind.COMMERCIAL
        return CoverageKind.P2P


class CoverageStatus(str, enum.Enum):
    NONE = "NONE"  # no submission yet
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"  # approved but suppressed by the other track
    REJECTED = "REJECTED"


class EarningsTier(str, enum.Enum):
    BASIC = "BASIC"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"


class CoverageAction(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DELETED = "DELETED"
    SWITCHED = "SWITCHED"


class ActivityAction(str, enum.Enum):
    INSURANCE_SUBMITTED = "INSURANCE_SUBMITTED"
    INSURANCE_APPROVED = "INSURANCE_APPROVED"
    INSURANCE_REJECTED = "INSURANCE_REJECTED"
    INSURANCE_DELETED = "INSURANCE_DELETED"
    INSURANCE_SWITCHED = "INSURANCE_SWITCHED"


ACTIVITY_FOR_ACTION: dict[CoverageAction, ActivityAction] = {
    CoverageAction.SUBMITTED: ActivityAction.INSURANCE_SUBMITTED,
    CoverageAction.APPROVED: ActivityAction.INSURANCE_APPROVED,
    CoverageAction.REJECTED: ActivityAction.INSURANCE_REJECTED,
    CoverageAction.DELETED: ActivityAction.INSURANCE_DELETED,
    CoverageAction.SWITCHED: ActivityAction.INSURANCE_SWITCHED,
}


# Statuses the *target* track must be in for each action to apply
ACTION_PRECONDITIONS: dict[CoverageAction, set[CoverageStatus]] = {
    CoverageAction.SUBMITTED: {
        CoverageStatus.NONE,
        CoverageStatus.REJECTED,
        CoverageStatus.PENDING,
    },
    CoverageAction.APPROVED: {CoverageStatus.PENDING},
    CoverageAction.REJECTED: {CoverageStatus.PENDING},
    CoverageAction.DELETED: {
        CoverageStatus.PENDING,
        CoverageStatus.ACTIVE,
        CoverageStatus.INACTIVE,
        CoverageStatus.REJECTED,
    },
    CoverageAction.SWITCHED: {CoverageStatus.INACTIVE},
}
