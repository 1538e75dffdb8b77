from enum import Enum

class HouseholdRole(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"

class ChoreStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

class EventCategory(str, Enum):
    CHORE = "CHORE"
    MEETING = "MEETING"
    SOCIAL = "SOCIAL"
    OTHER = "OTHER"

class EventStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

class RecurrenceFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

class NotificationType(str, Enum):
    NEW_MESSAGE = "NEW_MESSAGE"
    CHORE_ASSIGNED = "CHORE_ASSIGNED"
    EXPENSE_UPDATED = "EXPENSE_UPDATED"
    PAYMENT_REMINDER = "PAYMENT_REMINDER"
    EVENT_REMINDER = "EVENT_REMINDER"
    EVENT_UPDATE = "EVENT_UPDATE"
    HOUSEHOLD_INVITE = "HOUSEHOLD_INVITE"
    MENTION = "MENTION"
