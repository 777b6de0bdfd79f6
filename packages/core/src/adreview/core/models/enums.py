"""枚举定义

包含 TaskStatus 状态机、TaskType、UserRole、交易所审批相关枚举、
NotificationType、AuditAction，以及 VALID_TRANSITIONS 合法流转映射和终态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机"""

    # 活跃状态
    OPEN = "OPEN"
    COMPLIANCE_REVIEW = "COMPLIANCE_REVIEW"
    PRODUCT_REVIEW = "PRODUCT_REVIEW"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"

    # 终态
    CLOSED_INTERNAL = "CLOSED_INTERNAL"
    CLOSED_EXCHANGE = "CLOSED_EXCHANGE"
    EXPIRED = "EXPIRED"


# 合法状态流转（EXPIRED 只能由过期扫描写入，不在此表内）
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.OPEN: {
        TaskStatus.COMPLIANCE_REVIEW,
        TaskStatus.CLOSED_INTERNAL,
        TaskStatus.CLOSED_EXCHANGE,
    },
    TaskStatus.COMPLIANCE_REVIEW: {
        TaskStatus.PRODUCT_REVIEW,
        TaskStatus.APPROVED,
        TaskStatus.CLOSED_INTERNAL,
        TaskStatus.CLOSED_EXCHANGE,
    },
    TaskStatus.PRODUCT_REVIEW: {
        TaskStatus.COMPLIANCE_REVIEW,
        TaskStatus.CLOSED_INTERNAL,
        TaskStatus.CLOSED_EXCHANGE,
    },
    TaskStatus.APPROVED: {
        TaskStatus.PUBLISHED,
        TaskStatus.CLOSED_INTERNAL,
        TaskStatus.CLOSED_EXCHANGE,
    },
    TaskStatus.PUBLISHED: {
        TaskStatus.CLOSED_INTERNAL,
        TaskStatus.CLOSED_EXCHANGE,
    },
    # 终态不可再流转
    TaskStatus.EXPIRED: set(),
    TaskStatus.CLOSED_INTERNAL: set(),
    TaskStatus.CLOSED_EXCHANGE: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.EXPIRED,
    TaskStatus.CLOSED_INTERNAL,
    TaskStatus.CLOSED_EXCHANGE,
}

CLOSED_STATES: set[TaskStatus] = {
    TaskStatus.CLOSED_INTERNAL,
    TaskStatus.CLOSED_EXCHANGE,
}

# 计入审核人工作量、参与缺勤重分配的状态
REVIEW_WORKLOAD_STATES: tuple[TaskStatus, ...] = (
    TaskStatus.OPEN,
    TaskStatus.COMPLIANCE_REVIEW,
)

# 可被过期扫描处理的状态
EXPIRABLE_STATES: tuple[TaskStatus, ...] = (
    TaskStatus.APPROVED,
    TaskStatus.PUBLISHED,
)

# 上传新版本可回到合规审核的状态
VERSION_UPLOAD_STATES: set[TaskStatus] = {
    TaskStatus.OPEN,
    TaskStatus.COMPLIANCE_REVIEW,
    TaskStatus.PRODUCT_REVIEW,
}

# 停滞检查覆盖的状态
IN_REVIEW_STATES: tuple[TaskStatus, ...] = (
    TaskStatus.OPEN,
    TaskStatus.COMPLIANCE_REVIEW,
    TaskStatus.PRODUCT_REVIEW,
)


class TaskType(StrEnum):
    """任务类型"""

    INTERNAL = "INTERNAL"
    EXCHANGE = "EXCHANGE"


class UserRole(StrEnum):
    """用户角色"""

    PRODUCT_USER = "PRODUCT_USER"
    PRODUCT_ADMIN = "PRODUCT_ADMIN"
    COMPLIANCE_USER = "COMPLIANCE_USER"
    COMPLIANCE_ADMIN = "COMPLIANCE_ADMIN"
    SENIOR_MANAGER = "SENIOR_MANAGER"
    ADMIN = "ADMIN"


PRODUCER_ROLES: tuple[UserRole, ...] = (UserRole.PRODUCT_USER, UserRole.PRODUCT_ADMIN)
COMPLIANCE_ROLES: tuple[UserRole, ...] = (
    UserRole.COMPLIANCE_USER,
    UserRole.COMPLIANCE_ADMIN,
)


class ExchangeName(StrEnum):
    """交易所名称"""

    NSE = "NSE"
    BSE = "BSE"
    MCX = "MCX"
    NCDEX = "NCDEX"


class ExchangeApprovalStatus(StrEnum):
    """交易所审批状态"""

    NOT_SENT = "NOT_SENT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class NotificationType(StrEnum):
    """通知类型"""

    TASK_ASSIGNED = "TASK_ASSIGNED"
    COMMENT_ADDED = "COMMENT_ADDED"
    VERSION_UPLOADED = "VERSION_UPLOADED"
    TASK_APPROVED = "TASK_APPROVED"
    TASK_REJECTED = "TASK_REJECTED"
    TASK_PUBLISHED = "TASK_PUBLISHED"
    EXPIRY_WARNING = "EXPIRY_WARNING"
    FOLLOW_UP = "FOLLOW_UP"


class AuditAction(StrEnum):
    """审计动作"""

    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"
    TASK_EXPIRED = "TASK_EXPIRED"
    TASK_REASSIGNED = "TASK_REASSIGNED"
    VERSION_UPLOADED = "VERSION_UPLOADED"
    COMMENT_ADDED = "COMMENT_ADDED"
    EXCHANGE_APPROVAL_ADDED = "EXCHANGE_APPROVAL_ADDED"
    EXCHANGE_APPROVAL_UPDATED = "EXCHANGE_APPROVAL_UPDATED"
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    ABSENCE_CREATED = "ABSENCE_CREATED"
    ABSENCE_DELETED = "ABSENCE_DELETED"
    EXPIRY_WARNING_SENT = "EXPIRY_WARNING_SENT"
    REASSIGNMENT_SKIPPED = "REASSIGNMENT_SKIPPED"
    NOTIFICATION_CLEANUP = "NOTIFICATION_CLEANUP"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
