from modulyn.models.tenant import SubscriptionPlan, SubscriptionStatus, Tenant
from modulyn.models.user import ADMIN_ROLES, User, UserRole
from modulyn.models.lead import Lead, LeadStatus, OPEN_LEAD_STATUSES
from modulyn.models.property import Property
from modulyn.models.team import Designation, Team, TeamHierarchy, TeamRevenue
from modulyn.models.project import Project, ProjectTeamMember
from modulyn.models.task import OPEN_TASK_STATUSES, Task, TaskComment, TaskPriority, TaskStatus
from modulyn.models.call import Call, CallNote, ColdCall
from modulyn.models.event import Event
from modulyn.models.join_request import JoinRequest, JoinRequestStatus
from modulyn.models.notification import Notification
from modulyn.models.audit import AuditLog

__all__ = [
    "Tenant",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "User",
    "UserRole",
    "ADMIN_ROLES",
    "Lead",
    "LeadStatus",
    "OPEN_LEAD_STATUSES",
    "Property",
    "Designation",
    "Team",
    "TeamHierarchy",
    "TeamRevenue",
    "Project",
    "ProjectTeamMember",
    "Task",
    "TaskComment",
    "TaskStatus",
    "TaskPriority",
    "OPEN_TASK_STATUSES",
    "Call",
    "CallNote",
    "ColdCall",
    "Event",
    "JoinRequest",
    "JoinRequestStatus",
    "Notification",
    "AuditLog",
]
