"""Convenience imports for Alembic metadata discovery."""

from helpdesk.models.user import User
from helpdesk.models.department import Category, Department
from helpdesk.models.ticket import Ticket, TicketComment
from helpdesk.models.notification import Notification  # noqa: F401
