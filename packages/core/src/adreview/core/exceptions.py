"""工作流异常体系

所有领域异常继承 WorkflowError，携带稳定的机器可读 code，
由 gateway 统一映射为 HTTP 状态码。
"""


class WorkflowError(Exception):
    """工作流基础异常"""

    code: str = "WORKFLOW_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(WorkflowError):
    """输入校验失败（写入前拒绝）"""

    code = "VALIDATION_FAILED"


class InvalidTransition(ValidationFailed):
    """状态流转不在流转表内"""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(f"Invalid status transition from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class MissingTransitionData(ValidationFailed):
    """目标状态要求的必填数据缺失或不合法"""

    code = "MISSING_TRANSITION_DATA"

    def __init__(self, to_status: str, fields: list[str], detail: str = "") -> None:
        message = detail or (
            f"{', '.join(fields)} required when moving task to {to_status}"
        )
        super().__init__(message)
        self.to_status = to_status
        self.fields = fields


class OverlappingAbsence(ValidationFailed):
    """同一用户的缺勤区间重叠"""

    code = "OVERLAPPING_ABSENCE"


class NoAvailableReviewer(WorkflowError):
    """没有可分配的合规审核人（创建任务被整体拒绝）"""

    code = "NO_AVAILABLE_REVIEWER"

    def __init__(self) -> None:
        super().__init__("No available compliance reviewer")


class NotFound(WorkflowError):
    """实体不存在"""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity.capitalize()} with id {entity_id} does not exist")
        self.entity = entity
        self.entity_id = entity_id
        self.code = f"{entity.upper()}_NOT_FOUND"


class PermissionDenied(WorkflowError):
    """角色能力表不允许此操作"""

    code = "PERMISSION_DENIED"


class TaskStatusConflictError(WorkflowError):
    """并发冲突：条件写入时任务状态已被其他请求修改"""

    code = "TASK_STATUS_CONFLICT"

    def __init__(self, task_id: str, expected_status: str, actual_status: str | None) -> None:
        super().__init__(
            f"Task {task_id} status changed concurrently: "
            f"expected {expected_status}, found {actual_status}"
        )
        self.task_id = task_id
        self.expected_status = expected_status
        self.actual_status = actual_status


# 对外别名
Conflict = TaskStatusConflictError
