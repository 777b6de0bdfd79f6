"""任务状态机

所有状态变更（显式状态请求、上传版本、评论交接、过期扫描）都从这里规划：
输入当前任务快照和意图，输出 TransitionPlan（或 None 表示状态不变）。
本模块不做 I/O，持久化与副作用由编排层负责。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .config import EXPIRY_CLOSURE_REMARK
from .exceptions import InvalidTransition, MissingTransitionData, TaskStatusConflictError
from .models.enums import (
    CLOSED_STATES,
    COMPLIANCE_ROLES,
    EXPIRABLE_STATES,
    VERSION_UPLOAD_STATES,
    TaskStatus,
    validate_transition,
)
from .models.intents import Actor, AddCommentIntent, ChangeStatusIntent, UploadVersionIntent
from .models.task import Task


class TransitionPlan(BaseModel):
    """一次状态变更的写入计划"""

    task_id: str
    from_status: TaskStatus
    to_status: TaskStatus
    fields: dict[str, Any] = Field(
        default_factory=dict,
        description="随状态一起写入的字段（不含 status 本身）",
    )
    trigger: str = Field(description="status_change | version_upload | comment | expiry_scan")

    def column_updates(self) -> dict[str, Any]:
        """写入 tasks 表的完整列集合"""
        return {"status": self.to_status, **self.fields}


def _check_expected(task: Task, expected: TaskStatus | None) -> None:
    if expected is not None and expected != task.status:
        raise TaskStatusConflictError(
            task_id=task.task_id,
            expected_status=expected.value,
            actual_status=task.status.value,
        )


def _required_fields(intent: ChangeStatusIntent, now: datetime) -> dict[str, Any]:
    """校验目标状态的必填数据，返回需要写入的字段"""
    to_status = intent.to_status

    if to_status == TaskStatus.APPROVED:
        missing = [
            name
            for name, value in (
                ("approval_date", intent.approval_date),
                ("expiry_date", intent.expiry_date),
            )
            if value is None
        ]
        if missing:
            raise MissingTransitionData(
                to_status,
                missing,
                "Approval date and expiry date are required when marking as approved",
            )
        if intent.expiry_date <= intent.approval_date:
            raise MissingTransitionData(
                to_status,
                ["expiry_date"],
                "Expiry date must be after approval date",
            )
        return {"approval_date": intent.approval_date, "expiry_date": intent.expiry_date}

    if to_status == TaskStatus.PUBLISHED:
        if intent.publish_date is None:
            raise MissingTransitionData(
                to_status,
                ["publish_date"],
                "Publish date is required when marking as published",
            )
        return {"publish_date": intent.publish_date}

    if to_status in CLOSED_STATES:
        remarks = (intent.closure_remarks or "").strip()
        if not remarks:
            raise MissingTransitionData(
                to_status,
                ["closure_remarks"],
                "Closure remarks are required when closing task",
            )
        return {"closure_remarks": remarks, "closure_date": now}

    return {}


class TaskStateMachine:
    """任务状态机（无状态，全部为纯函数）"""

    @staticmethod
    def plan_status_change(
        task: Task,
        intent: ChangeStatusIntent,
        now: datetime,
    ) -> TransitionPlan:
        """规划显式状态变更

        Raises:
            TaskStatusConflictError: 调用方看到的状态已过期
            InvalidTransition: 流转不在流转表内（含同状态请求）
            MissingTransitionData: 目标状态必填数据缺失
        """
        _check_expected(task, intent.expected_status)
        if not validate_transition(task.status, intent.to_status):
            raise InvalidTransition(task.status.value, intent.to_status.value)
        return TransitionPlan(
            task_id=task.task_id,
            from_status=task.status,
            to_status=intent.to_status,
            fields=_required_fields(intent, now),
            trigger="status_change",
        )

    @staticmethod
    def plan_version_upload(
        task: Task,
        intent: UploadVersionIntent,
    ) -> TransitionPlan | None:
        """规划上传版本引起的隐式流转

        审核中的任务回到 COMPLIANCE_REVIEW；已在 COMPLIANCE_REVIEW 时状态不变。
        APPROVED / PUBLISHED / 终态不接受新版本。
        """
        if task.status not in VERSION_UPLOAD_STATES:
            raise InvalidTransition(task.status.value, TaskStatus.COMPLIANCE_REVIEW.value)
        if task.status == TaskStatus.COMPLIANCE_REVIEW:
            return None
        return TransitionPlan(
            task_id=task.task_id,
            from_status=task.status,
            to_status=TaskStatus.COMPLIANCE_REVIEW,
            trigger="version_upload",
        )

    @staticmethod
    def plan_comment(
        task: Task,
        actor: Actor,
        intent: AddCommentIntent,
    ) -> TransitionPlan | None:
        """规划评论引起的隐式流转

        合规角色在 COMPLIANCE_REVIEW 阶段评论即交接给产品方；其他角色评论不改变状态。
        """
        if actor.role not in COMPLIANCE_ROLES:
            return None
        if task.status != TaskStatus.COMPLIANCE_REVIEW:
            return None
        return TransitionPlan(
            task_id=task.task_id,
            from_status=task.status,
            to_status=TaskStatus.PRODUCT_REVIEW,
            trigger="comment",
        )

    @staticmethod
    def plan_expiry(task: Task, now: datetime) -> TransitionPlan | None:
        """规划过期扫描的自动终态流转

        仅 APPROVED / PUBLISHED 且到期日早于今天的任务会过期。
        """
        if task.status not in EXPIRABLE_STATES:
            return None
        if task.expiry_date is None or task.expiry_date >= now.date():
            return None
        return TransitionPlan(
            task_id=task.task_id,
            from_status=task.status,
            to_status=TaskStatus.EXPIRED,
            fields={"closure_date": now, "closure_remarks": EXPIRY_CLOSURE_REMARK},
            trigger="expiry_scan",
        )
