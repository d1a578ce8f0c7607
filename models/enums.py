from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})


class Frequency(str, Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    EVERY_2_MONTHS = "EVERY_2_MONTHS"
    QUARTERLY = "QUARTERLY"
    EVERY_4_MONTHS = "EVERY_4_MONTHS"
    EVERY_6_MONTHS = "EVERY_6_MONTHS"
    YEARLY = "YEARLY"


# Months between anchors; 0 means the day-by-day walk
FREQUENCY_MONTHS = {
    Frequency.NONE: 0,
    Frequency.DAILY: 0,
    Frequency.WEEKLY: 0,
    Frequency.MONTHLY: 1,
    Frequency.EVERY_2_MONTHS: 2,
    Frequency.QUARTERLY: 3,
    Frequency.EVERY_4_MONTHS: 4,
    Frequency.EVERY_6_MONTHS: 6,
    Frequency.YEARLY: 12,
}


class Ordinal(str, Enum):
    NEXT = "NEXT"
    FIRST = "FIRST"
    SECOND = "SECOND"
    THIRD = "THIRD"
    FOURTH = "FOURTH"
    LAST = "LAST"


ORDINAL_NTH = {
    Ordinal.FIRST: 1,
    Ordinal.SECOND: 2,
    Ordinal.THIRD: 3,
    Ordinal.FOURTH: 4,
}


class ServiceType(str, Enum):
    REGULAR = "REGULAR"
    SPECIAL = "SPECIAL"


class UserRole(str, Enum):
    USER = "USER"
    TRANSPORTATION_TEAM = "TRANSPORTATION_TEAM"
    ADMIN = "ADMIN"
    OWNER = "OWNER"
    PLATFORM_ADMIN = "PLATFORM_ADMIN"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.OWNER})


class UserStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    BANNED = "BANNED"


class NotificationChannel(str, Enum):
    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"


class AppealStatus(str, Enum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


OPEN_APPEAL_STATUSES = frozenset({AppealStatus.PENDING, AppealStatus.UNDER_REVIEW})
