"""adreview Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .audit import AuditRecord, Notification
from .content import Comment, ExchangeApproval, Version
from .enums import (
    CLOSED_STATES,
    COMPLIANCE_ROLES,
    EXPIRABLE_STATES,
    IN_REVIEW_STATES,
    PRODUCER_ROLES,
    REVIEW_WORKLOAD_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    VERSION_UPLOAD_STATES,
    AuditAction,
    ExchangeApprovalStatus,
    ExchangeName,
    NotificationType,
    TaskStatus,
    TaskType,
    UserRole,
    validate_transition,
)
from .intents import (
    Actor,
    AddCommentIntent,
    AddExchangeApprovalIntent,
    ChangeStatusIntent,
    CreateTaskIntent,
    RecordAbsenceIntent,
    UpdateExchangeApprovalIntent,
    UpdateTaskIntent,
    UploadVersionIntent,
    WorkflowIntent,
)
from .task import Task
from .user import Absence, User

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskType",
    "UserRole",
    "ExchangeName",
    "ExchangeApprovalStatus",
    "NotificationType",
    "AuditAction",
    "PRODUCER_ROLES",
    "COMPLIANCE_ROLES",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "CLOSED_STATES",
    "REVIEW_WORKLOAD_STATES",
    "EXPIRABLE_STATES",
    "VERSION_UPLOAD_STATES",
    "IN_REVIEW_STATES",
    "validate_transition",
    # 实体
    "Task",
    "User",
    "Absence",
    "Version",
    "Comment",
    "ExchangeApproval",
    "AuditRecord",
    "Notification",
    # 意图
    "Actor",
    "ChangeStatusIntent",
    "UploadVersionIntent",
    "AddCommentIntent",
    "WorkflowIntent",
    "CreateTaskIntent",
    "UpdateTaskIntent",
    "RecordAbsenceIntent",
    "AddExchangeApprovalIntent",
    "UpdateExchangeApprovalIntent",
]
