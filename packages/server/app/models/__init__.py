# SQLModel definitions, imported here so relationship targets resolve and metadata is complete.
from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin, utcnow  # noqa: F401
from .user import User  # noqa: F401
from .household import Household, HouseholdMember  # noqa: F401
from .notification import Notification, NotificationSettings  # noqa: F401
from .chore import Chore, ChoreAssignment, RecurrenceRule  # noqa: F401
from .event import Event  # noqa: F401
from .expense import Expense, ExpenseSplit, Transaction  # noqa: F401
from .thread import Attachment, Message, Thread  # noqa: F401
