"""角色能力表

每个角色一条记录：可请求的目标状态、可编辑的任务字段、可执行的动作。
编排层对每个意图只查一次此表，不在各处比较角色字符串。
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from .exceptions import PermissionDenied
from .models.enums import TaskStatus, UserRole
from .models.intents import Actor
from .models.task import Task


class Action(StrEnum):
    """非状态类动作"""

    CREATE_TASK = "create_task"
    UPLOAD_VERSION = "upload_version"
    COMMENT = "comment"
    MANAGE_EXCHANGE_APPROVALS = "manage_exchange_approvals"
    MANAGE_ABSENCES = "manage_absences"
    LIST_USERS = "list_users"
    MANAGE_USERS = "manage_users"
    RUN_SCANS = "run_scans"
    VIEW_ALL_TASKS = "view_all_tasks"
    VIEW_AUDIT = "view_audit"
    VIEW_REPORTS = "view_reports"


class Capability(BaseModel):
    """单个角色的能力集合"""

    model_config = ConfigDict(frozen=True)

    status_targets: frozenset[TaskStatus] = frozenset()
    editable_fields: frozenset[str] = frozenset()
    actions: frozenset[Action] = frozenset()


_PRODUCER = Capability(
    status_targets=frozenset(
        {TaskStatus.COMPLIANCE_REVIEW, TaskStatus.PUBLISHED, TaskStatus.CLOSED_INTERNAL}
    ),
    editable_fields=frozenset(
        {"description", "platform", "category", "remarks", "expected_publish_date"}
    ),
    actions=frozenset({Action.CREATE_TASK, Action.UPLOAD_VERSION, Action.COMMENT}),
)

_COMPLIANCE_STATUS_TARGETS = frozenset(
    {
        TaskStatus.COMPLIANCE_REVIEW,
        TaskStatus.PRODUCT_REVIEW,
        TaskStatus.APPROVED,
        TaskStatus.CLOSED_INTERNAL,
        TaskStatus.CLOSED_EXCHANGE,
    }
)
_COMPLIANCE_FIELDS = frozenset(
    {"title", "description", "task_type", "platform", "category", "remarks"}
)

CAPABILITIES: dict[UserRole, Capability] = {
    UserRole.PRODUCT_USER: _PRODUCER,
    UserRole.PRODUCT_ADMIN: _PRODUCER.model_copy(
        update={"actions": _PRODUCER.actions | {Action.LIST_USERS, Action.VIEW_REPORTS}}
    ),
    UserRole.COMPLIANCE_USER: Capability(
        status_targets=_COMPLIANCE_STATUS_TARGETS,
        editable_fields=_COMPLIANCE_FIELDS,
        actions=frozenset({Action.COMMENT, Action.MANAGE_EXCHANGE_APPROVALS}),
    ),
    UserRole.COMPLIANCE_ADMIN: Capability(
        status_targets=_COMPLIANCE_STATUS_TARGETS,
        editable_fields=_COMPLIANCE_FIELDS,
        actions=frozenset(
            {
                Action.COMMENT,
                Action.MANAGE_EXCHANGE_APPROVALS,
                Action.MANAGE_ABSENCES,
                Action.LIST_USERS,
                Action.RUN_SCANS,
                Action.VIEW_ALL_TASKS,
                Action.VIEW_AUDIT,
                Action.VIEW_REPORTS,
            }
        ),
    ),
    UserRole.SENIOR_MANAGER: Capability(
        actions=frozenset(
            {
                Action.COMMENT,
                Action.LIST_USERS,
                Action.VIEW_ALL_TASKS,
                Action.VIEW_AUDIT,
                Action.VIEW_REPORTS,
            }
        ),
    ),
    UserRole.ADMIN: Capability(
        status_targets=frozenset(TaskStatus) - {TaskStatus.OPEN, TaskStatus.EXPIRED},
        editable_fields=_COMPLIANCE_FIELDS
        | _PRODUCER.editable_fields
        | {"assigned_product_ids"},
        actions=frozenset(Action),
    ),
}

# 系统操作者（定时扫描）拥有全部能力
SYSTEM_CAPABILITY = Capability(
    status_targets=frozenset(TaskStatus),
    editable_fields=CAPABILITIES[UserRole.ADMIN].editable_fields,
    actions=frozenset(Action),
)


def capability_for(actor: Actor) -> Capability:
    """查询操作者的能力集合"""
    if actor.is_system:
        return SYSTEM_CAPABILITY
    return CAPABILITIES[actor.role]


def require_action(actor: Actor, action: Action) -> None:
    """校验动作权限

    Raises:
        PermissionDenied: 角色不具备该动作
    """
    if action not in capability_for(actor).actions:
        raise PermissionDenied(f"Role {actor.role} is not allowed to {action.value}")


def require_status_target(actor: Actor, to_status: TaskStatus) -> None:
    """校验角色是否可请求目标状态"""
    if to_status not in capability_for(actor).status_targets:
        raise PermissionDenied(f"Role {actor.role} cannot move a task to {to_status}")


def require_editable(actor: Actor, fields: set[str]) -> None:
    """校验字段编辑权限，列出全部越权字段"""
    denied = fields - capability_for(actor).editable_fields
    if denied:
        raise PermissionDenied(
            f"Role {actor.role} cannot edit fields: {', '.join(sorted(denied))}"
        )


def can_view_task(actor: Actor, task: Task) -> bool:
    """任务可见性：全局查看权限，或为创建者 / 分配的产品方 / 分配的审核人"""
    if Action.VIEW_ALL_TASKS in capability_for(actor).actions:
        return True
    return (
        actor.id == task.created_by
        or actor.id in task.assigned_product_ids
        or actor.id == task.assigned_compliance_id
    )
