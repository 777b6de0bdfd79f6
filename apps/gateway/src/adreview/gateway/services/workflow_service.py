"""WorkflowService -- 工作流编排

HTTP 层与定时扫描共用的唯一写入口：
1. 读取当前任务/缺勤快照
2. 交给状态机 / 分配引擎决策
3. 条件写入 + 审计（同一写事务）
4. 提交后分发通知

同一任务的“读-决策-写”在任务级锁内完成，并以条件写入兜底；
状态已被并发修改时以 TaskStatusConflictError 拒绝，不静默覆盖。
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, date, datetime

import structlog
from adreview.core.assignment import AssignmentEngine
from adreview.core.capabilities import (
    Action,
    can_view_task,
    capability_for,
    require_action,
    require_editable,
    require_status_target,
)
from adreview.core.config import SYSTEM_ACTOR_ID
from adreview.core.exceptions import (
    NoAvailableReviewer,
    NotFound,
    OverlappingAbsence,
    PermissionDenied,
    TaskStatusConflictError,
    ValidationFailed,
)
from adreview.core.ids import new_id
from adreview.core.models import (
    COMPLIANCE_ROLES,
    REVIEW_WORKLOAD_STATES,
    TERMINAL_STATES,
    Absence,
    Actor,
    AddCommentIntent,
    AddExchangeApprovalIntent,
    AuditAction,
    ChangeStatusIntent,
    Comment,
    CreateTaskIntent,
    ExchangeApproval,
    ExchangeApprovalStatus,
    NotificationType,
    RecordAbsenceIntent,
    Task,
    TaskStatus,
    TaskType,
    UpdateExchangeApprovalIntent,
    UpdateTaskIntent,
    UploadVersionIntent,
    User,
    Version,
)
from adreview.core.state_machine import TaskStateMachine, TransitionPlan
from adreview.core.store import StoreGroup, TaskFilter, apply_status_change, reassign_reviewer
from adreview.core.uin import next_uin
from pydantic import BaseModel, Field

from .side_effects import NotificationSpec, SideEffectCoordinator, SideEffectEvent

log = structlog.get_logger()

SYSTEM_ACTOR = Actor(id=SYSTEM_ACTOR_ID, role=None)

# 允许为空的任务字段（其余字段显式传 None 视为未修改）
_NULLABLE_TASK_FIELDS = {"expected_publish_date"}


class WorkflowResult(BaseModel):
    """一次任务写操作的结果"""

    task: Task
    transition: TransitionPlan | None = None
    side_effect_failures: list[str] = Field(default_factory=list)


class ReassignmentOutcome(BaseModel):
    """单个缺勤审核人的重分配结果"""

    absent_user_id: str
    replacement_id: str | None = None
    reassigned_task_ids: list[str] = Field(default_factory=list)
    skipped: bool = False
    reason: str = ""
    failures: list[str] = Field(default_factory=list)


class AbsenceResult(BaseModel):
    """登记缺勤的结果"""

    absence: Absence
    reassignment: ReassignmentOutcome | None = None
    side_effect_failures: list[str] = Field(default_factory=list)


def scope_filter(actor: Actor, flt: TaskFilter) -> TaskFilter:
    """按角色收窄任务查询范围"""
    if Action.VIEW_ALL_TASKS in capability_for(actor).actions:
        return flt
    if actor.role in COMPLIANCE_ROLES:
        return flt.model_copy(update={"assigned_compliance_id": actor.id})
    return flt.model_copy(update={"producer_id": actor.id})


def _producers(task: Task) -> list[str]:
    """产品方接收人：分配的产品方，未分配时回退到创建者"""
    return list(dict.fromkeys(task.assigned_product_ids or [task.created_by]))


def _transition_detail(plan: TransitionPlan) -> str:
    detail = f"Status changed from {plan.from_status.value} to {plan.to_status.value}"
    remarks = plan.fields.get("closure_remarks")
    if remarks:
        detail += f": {remarks}"
    return detail


def _transition_notifications(task: Task, plan: TransitionPlan) -> list[NotificationSpec]:
    """状态变更对应的通知"""
    to_status = plan.to_status
    title = task.title

    if to_status == TaskStatus.PRODUCT_REVIEW:
        if plan.trigger == "comment":
            type_, heading, message = (
                NotificationType.COMMENT_ADDED,
                "Comment Added",
                f'New comment added to task "{title}"; your review is required',
            )
        else:
            type_, heading, message = (
                NotificationType.TASK_ASSIGNED,
                "Task Review Required",
                f'Task "{title}" requires your review',
            )
        return [
            NotificationSpec(
                user_id=uid, type=type_, title=heading, message=message, task_id=task.task_id
            )
            for uid in _producers(task)
        ]

    if to_status == TaskStatus.COMPLIANCE_REVIEW:
        # 上传版本触发时由 VERSION_UPLOADED 通知覆盖
        if plan.trigger == "version_upload":
            return []
        return [
            NotificationSpec(
                user_id=task.assigned_compliance_id,
                type=NotificationType.TASK_ASSIGNED,
                title="Task Ready for Compliance Review",
                message=f'Task "{title}" is back in compliance review',
                task_id=task.task_id,
            )
        ]

    if to_status == TaskStatus.APPROVED:
        return [
            NotificationSpec(
                user_id=uid,
                type=NotificationType.TASK_APPROVED,
                title="Task Approved",
                message=(
                    f'Task "{title}" ({task.uin}) has been approved, '
                    f"valid until {plan.fields['expiry_date']}"
                ),
                task_id=task.task_id,
                via_email=True,
            )
            for uid in _producers(task)
        ]

    if to_status == TaskStatus.PUBLISHED:
        recipients = dict.fromkeys([task.assigned_compliance_id, *_producers(task)])
        return [
            NotificationSpec(
                user_id=uid,
                type=NotificationType.TASK_PUBLISHED,
                title="Task Published",
                message=f'Task "{title}" ({task.uin}) was published on {plan.fields["publish_date"]}',
                task_id=task.task_id,
            )
            for uid in recipients
        ]

    if to_status in (TaskStatus.CLOSED_INTERNAL, TaskStatus.CLOSED_EXCHANGE):
        recipients = dict.fromkeys([*_producers(task), task.assigned_compliance_id])
        return [
            NotificationSpec(
                user_id=uid,
                type=NotificationType.TASK_REJECTED,
                title="Task Closed",
                message=f'Task "{title}" ({task.uin}) was closed: {plan.fields["closure_remarks"]}',
                task_id=task.task_id,
                via_email=True,
            )
            for uid in recipients
        ]

    return []


class WorkflowService:
    """工作流编排服务"""

    _task_locks: dict[str, asyncio.Lock] = {}
    _task_locks_guard = asyncio.Lock()

    def __init__(
        self,
        store_group: StoreGroup,
        side_effects: SideEffectCoordinator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._stores = store_group
        self._effects = side_effects or SideEffectCoordinator(store_group)
        self._engine = AssignmentEngine(
            store_group.user_store,
            store_group.absence_store,
            store_group.task_store,
        )
        self._clock = clock or (lambda: datetime.now(UTC))

    # ---- 查询 ----

    async def get_task(self, actor: Actor, task_id: str) -> Task:
        """查询任务（含可见性校验）"""
        task = await self._stores.task_store.get_task(task_id)
        return self._check_visible(actor, task, task_id)

    async def list_tasks(self, actor: Actor, flt: TaskFilter) -> tuple[list[Task], int]:
        return await self._stores.task_store.list_tasks(scope_filter(actor, flt))

    # ---- 创建 ----

    async def create_task(self, actor: Actor, intent: CreateTaskIntent) -> WorkflowResult:
        """创建任务并分配审核人

        审核人选择、UIN 自增、任务写入、TASK_CREATED 审计在同一写事务内；
        没有可用审核人时整体回滚，不留下任何记录。

        Raises:
            NoAvailableReviewer: 当天无可用审核人
        """
        require_action(actor, Action.CREATE_TASK)
        now = self._clock()
        product_ids = list(dict.fromkeys(intent.assigned_product_ids))

        async with self._stores.transaction():
            await self._validate_producers(product_ids)
            reviewer = await self._engine.select_reviewer(now.date())
            if reviewer is None:
                log.warning("no_available_reviewer", actor_id=actor.id, title=intent.title)
                raise NoAvailableReviewer()

            uin = await next_uin(self._stores.sequence_store, now)
            task = Task(
                task_id=new_id(),
                uin=uin,
                title=intent.title,
                description=intent.description,
                task_type=intent.task_type,
                status=TaskStatus.OPEN,
                created_by=actor.id,
                assigned_product_ids=product_ids,
                assigned_compliance_id=reviewer.user_id,
                platform=intent.platform,
                category=intent.category,
                remarks=intent.remarks,
                expected_publish_date=intent.expected_publish_date,
                created_at=now,
                updated_at=now,
            )
            await self._stores.task_store.create_task(task)

            event = SideEffectEvent(
                actor_id=actor.id,
                action=AuditAction.TASK_CREATED,
                detail=f'Task "{task.title}" created with UIN {uin}, assigned to {reviewer.full_name}',
                task_id=task.task_id,
                notifications=[
                    NotificationSpec(
                        user_id=reviewer.user_id,
                        type=NotificationType.TASK_ASSIGNED,
                        title="New Task Assigned",
                        message=f'You have been assigned task "{task.title}" ({uin})',
                        task_id=task.task_id,
                        via_email=True,
                    )
                ],
            )
            failures = await self._effects.write_audit_in_transaction(event)

        failures.extend(await self._effects.send_notifications(event))
        log.info(
            "task_created",
            task_id=task.task_id,
            uin=uin,
            reviewer_id=reviewer.user_id,
        )
        return WorkflowResult(task=task, side_effect_failures=failures)

    # ---- 状态变更（显式 + 隐式） ----

    async def change_status(
        self,
        actor: Actor,
        task_id: str,
        intent: ChangeStatusIntent,
    ) -> WorkflowResult:
        """显式状态变更

        Raises:
            InvalidTransition / MissingTransitionData / TaskStatusConflictError
        """
        now = self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                task = await self._load_task(actor, task_id)
                require_status_target(actor, intent.to_status)
                plan = TaskStateMachine.plan_status_change(task, intent, now)
                await apply_status_change(
                    self._stores.task_store, task_id, plan.from_status, plan.column_updates(), now
                )
                event = self._transition_event(actor, task, plan)
                failures = await self._effects.write_audit_in_transaction(event)
            failures.extend(await self._effects.send_notifications(event))
            updated = await self._stores.task_store.get_task(task_id)

        if plan.to_status in TERMINAL_STATES:
            await self._cleanup_task_lock(task_id)
        log.info(
            "task_status_changed",
            task_id=task_id,
            from_status=plan.from_status.value,
            to_status=plan.to_status.value,
            actor_id=actor.id,
        )
        return WorkflowResult(task=updated, transition=plan, side_effect_failures=failures)

    async def upload_version(
        self,
        actor: Actor,
        task_id: str,
        intent: UploadVersionIntent,
    ) -> tuple[Version, WorkflowResult]:
        """上传新版本；审核中的任务回到 COMPLIANCE_REVIEW，并通知审核人"""
        require_action(actor, Action.UPLOAD_VERSION)
        now = self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                task = await self._load_task(actor, task_id)
                plan = TaskStateMachine.plan_version_upload(task, intent)

                version = Version(
                    version_id=new_id(),
                    task_id=task_id,
                    version_number=await self._next_version_number(task_id),
                    file_urls=intent.file_urls,
                    remarks=intent.remarks,
                    uploaded_by=actor.id,
                    uploaded_at=now,
                )
                await self._stores.content_store.add_version(version)
                if plan is not None:
                    await apply_status_change(
                        self._stores.task_store,
                        task_id,
                        plan.from_status,
                        plan.column_updates(),
                        now,
                    )
                else:
                    # 状态不变时也刷新 updated_at，供停滞检查使用
                    await self._stores.task_store.update_task_fields(
                        task_id, {}, updated_at=now, expected_status=task.status
                    )

                events = [
                    SideEffectEvent(
                        actor_id=actor.id,
                        action=AuditAction.VERSION_UPLOADED,
                        detail=(
                            f"Version {version.version_number} uploaded "
                            f"with {len(version.file_urls)} files"
                        ),
                        task_id=task_id,
                        notifications=[
                            NotificationSpec(
                                user_id=task.assigned_compliance_id,
                                type=NotificationType.VERSION_UPLOADED,
                                title="New Version Uploaded",
                                message=(
                                    f"Version {version.version_number} uploaded "
                                    f'for task "{task.title}"'
                                ),
                                task_id=task_id,
                                via_email=True,
                            )
                        ],
                    )
                ]
                if plan is not None:
                    events.append(self._transition_event(actor, task, plan))
                failures: list[str] = []
                for event in events:
                    failures.extend(await self._effects.write_audit_in_transaction(event))

            for event in events:
                failures.extend(await self._effects.send_notifications(event))
            updated = await self._stores.task_store.get_task(task_id)

        log.info(
            "version_uploaded",
            task_id=task_id,
            version_number=version.version_number,
            status=updated.status.value,
        )
        return version, WorkflowResult(task=updated, transition=plan, side_effect_failures=failures)

    async def add_comment(
        self,
        actor: Actor,
        task_id: str,
        intent: AddCommentIntent,
    ) -> tuple[Comment, WorkflowResult]:
        """添加评论；合规角色在 COMPLIANCE_REVIEW 阶段评论时交接给产品方"""
        require_action(actor, Action.COMMENT)
        now = self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                task = await self._load_task(actor, task_id)
                version_label = ""
                if intent.version_id:
                    version = await self._stores.content_store.get_version(intent.version_id)
                    if version is None or version.task_id != task_id:
                        raise NotFound("version", intent.version_id)
                    version_label = version.version_number

                plan = TaskStateMachine.plan_comment(task, actor, intent)
                comment = Comment(
                    comment_id=new_id(),
                    task_id=task_id,
                    version_id=intent.version_id,
                    author_id=actor.id,
                    content=intent.content,
                    attachments=intent.attachments,
                    is_global=intent.is_global,
                    created_at=now,
                )
                await self._stores.content_store.add_comment(comment)
                if plan is not None:
                    await apply_status_change(
                        self._stores.task_store,
                        task_id,
                        plan.from_status,
                        plan.column_updates(),
                        now,
                    )

                detail = (
                    f"Comment added to version {version_label}"
                    if version_label
                    else "Comment added as global comment"
                    if intent.is_global
                    else "Comment added"
                )
                events = [
                    SideEffectEvent(
                        actor_id=actor.id,
                        action=AuditAction.COMMENT_ADDED,
                        detail=detail,
                        task_id=task_id,
                    )
                ]
                if plan is not None:
                    events.append(self._transition_event(actor, task, plan))
                failures: list[str] = []
                for event in events:
                    failures.extend(await self._effects.write_audit_in_transaction(event))

            for event in events:
                failures.extend(await self._effects.send_notifications(event))
            updated = await self._stores.task_store.get_task(task_id)

        return comment, WorkflowResult(task=updated, transition=plan, side_effect_failures=failures)

    # ---- 明细编辑 ----

    async def update_task(
        self,
        actor: Actor,
        task_id: str,
        intent: UpdateTaskIntent,
    ) -> WorkflowResult:
        """编辑任务明细字段（按能力表过滤）"""
        fields = {
            k: v
            for k, v in intent.model_dump(exclude_unset=True).items()
            if v is not None or k in _NULLABLE_TASK_FIELDS
        }
        if not fields:
            raise ValidationFailed("No fields to update")
        require_editable(actor, set(fields))

        now = self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                task = await self._load_task(actor, task_id)
                if task.status in TERMINAL_STATES:
                    raise ValidationFailed(f"Cannot edit a task in terminal status {task.status}")
                if "assigned_product_ids" in fields:
                    fields["assigned_product_ids"] = list(
                        dict.fromkeys(fields["assigned_product_ids"])
                    )
                    await self._validate_producers(fields["assigned_product_ids"])
                updated_ok = await self._stores.task_store.update_task_fields(
                    task_id, fields, updated_at=now, expected_status=task.status
                )
                if not updated_ok:
                    current = await self._stores.task_store.get_task(task_id)
                    raise TaskStatusConflictError(
                        task_id, task.status.value, current.status.value if current else None
                    )
                event = SideEffectEvent(
                    actor_id=actor.id,
                    action=AuditAction.TASK_UPDATED,
                    detail=f"Task updated: {', '.join(sorted(fields))}",
                    task_id=task_id,
                )
                failures = await self._effects.write_audit_in_transaction(event)
            updated = await self._stores.task_store.get_task(task_id)

        return WorkflowResult(task=updated, side_effect_failures=failures)

    # ---- 交易所审批 ----

    async def add_exchange_approval(
        self,
        actor: Actor,
        task_id: str,
        intent: AddExchangeApprovalIntent,
    ) -> tuple[ExchangeApproval, list[str]]:
        """新增交易所审批记录（每个任务每个交易所一条）"""
        require_action(actor, Action.MANAGE_EXCHANGE_APPROVALS)
        now = self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                task = await self._load_task(actor, task_id)
                if task.task_type != TaskType.EXCHANGE:
                    raise ValidationFailed("Task must be of type EXCHANGE")
                existing = await self._stores.content_store.get_exchange_approval(
                    task_id, intent.exchange_name
                )
                if existing is not None:
                    raise ValidationFailed(
                        f"Exchange approval for {intent.exchange_name.value} already exists"
                    )
                approval = ExchangeApproval(
                    approval_id=new_id(),
                    task_id=task_id,
                    exchange_name=intent.exchange_name,
                    type_of_content=intent.type_of_content,
                    updated_by=actor.id,
                    created_at=now,
                    updated_at=now,
                )
                await self._stores.content_store.add_exchange_approval(approval)
                failures = await self._effects.write_audit_in_transaction(
                    SideEffectEvent(
                        actor_id=actor.id,
                        action=AuditAction.EXCHANGE_APPROVAL_ADDED,
                        detail=f"Exchange approval added for {intent.exchange_name.value}",
                        task_id=task_id,
                    )
                )
        return approval, failures

    async def update_exchange_approval(
        self,
        actor: Actor,
        task_id: str,
        approval_id: str,
        intent: UpdateExchangeApprovalIntent,
    ) -> tuple[ExchangeApproval, list[str]]:
        """更新交易所审批；标记 APPROVED 时需要批准日期和参考号"""
        require_action(actor, Action.MANAGE_EXCHANGE_APPROVALS)
        fields = {
            k: v
            for k, v in intent.model_dump(exclude_unset=True).items()
            if v is not None or k not in ("type_of_content", "approval_status")
        }
        if not fields:
            raise ValidationFailed("No fields to update")

        now = self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                await self._load_task(actor, task_id)
                approvals = await self._stores.content_store.list_exchange_approvals(task_id)
                current = next((a for a in approvals if a.approval_id == approval_id), None)
                if current is None:
                    raise NotFound("exchange_approval", approval_id)

                merged = current.model_copy(update=fields)
                if merged.approval_status == ExchangeApprovalStatus.APPROVED:
                    missing = [
                        name
                        for name in ("approval_date", "reference_number")
                        if not getattr(merged, name)
                    ]
                    if missing:
                        raise ValidationFailed(
                            f"{', '.join(missing)} required when marking exchange approval as approved"
                        )
                if (
                    merged.approval_date
                    and merged.expiry_date
                    and merged.expiry_date <= merged.approval_date
                ):
                    raise ValidationFailed("Expiry date must be after approval date")

                await self._stores.content_store.update_exchange_approval(
                    approval_id, fields, updated_by=actor.id, updated_at=now
                )
                failures = await self._effects.write_audit_in_transaction(
                    SideEffectEvent(
                        actor_id=actor.id,
                        action=AuditAction.EXCHANGE_APPROVAL_UPDATED,
                        detail=(
                            f"Exchange approval for {current.exchange_name.value} updated: "
                            f"{', '.join(sorted(fields))}"
                        ),
                        task_id=task_id,
                    )
                )
                updated = await self._stores.content_store.get_exchange_approval(
                    task_id, current.exchange_name
                )
        return updated, failures

    # ---- 缺勤与重分配 ----

    async def record_absence(self, actor: Actor, intent: RecordAbsenceIntent) -> AbsenceResult:
        """登记缺勤；覆盖今天时立即为该审核人执行重分配

        Raises:
            OverlappingAbsence: 与同一用户已有缺勤重叠
        """
        require_action(actor, Action.MANAGE_ABSENCES)
        if intent.from_date > intent.to_date:
            raise ValidationFailed("from_date must not be after to_date")

        now = self._clock()
        async with self._stores.transaction():
            user = await self._stores.user_store.get_user(intent.user_id)
            if user is None:
                raise NotFound("user", intent.user_id)
            if not user.is_reviewer:
                raise ValidationFailed("Can only mark compliance users as absent")
            overlapping = await self._stores.absence_store.find_overlapping(
                intent.user_id, intent.from_date, intent.to_date
            )
            if overlapping:
                raise OverlappingAbsence("Overlapping absence period exists")

            absence = Absence(
                absence_id=new_id(),
                user_id=intent.user_id,
                from_date=intent.from_date,
                to_date=intent.to_date,
                reason=intent.reason,
                created_by=actor.id,
                created_at=now,
            )
            await self._stores.absence_store.create_absence(absence)
            failures = await self._effects.write_audit_in_transaction(
                SideEffectEvent(
                    actor_id=actor.id,
                    action=AuditAction.ABSENCE_CREATED,
                    detail=(
                        f"Absence marked for {user.full_name} "
                        f"from {intent.from_date} to {intent.to_date}"
                    ),
                )
            )

        log.info(
            "absence_recorded",
            absence_id=absence.absence_id,
            user_id=user.user_id,
            from_date=str(absence.from_date),
            to_date=str(absence.to_date),
        )
        reassignment = None
        today = now.date()
        if absence.covers(today):
            # 缺勤已提交；重分配失败只上报，由定时扫描补做
            try:
                reassignment = await self.reassign_absent_reviewer(user, today, actor)
            except Exception as e:
                log.error(
                    "absence_reassignment_failed",
                    absent_user_id=user.user_id,
                    absence_id=absence.absence_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                failures.append(f"reassignment: {type(e).__name__}: {e}")
        return AbsenceResult(
            absence=absence,
            reassignment=reassignment,
            side_effect_failures=failures,
        )

    async def delete_absence(self, actor: Actor, absence_id: str) -> list[str]:
        require_action(actor, Action.MANAGE_ABSENCES)
        async with self._stores.transaction():
            absence = await self._stores.absence_store.get_absence(absence_id)
            if absence is None:
                raise NotFound("absence", absence_id)
            user = await self._stores.user_store.get_user(absence.user_id)
            await self._stores.absence_store.delete_absence(absence_id)
            name = user.full_name if user else absence.user_id
            failures = await self._effects.write_audit_in_transaction(
                SideEffectEvent(
                    actor_id=actor.id,
                    action=AuditAction.ABSENCE_DELETED,
                    detail=f"Absence deleted for {name}",
                )
            )
        log.info("absence_deleted", absence_id=absence_id, user_id=absence.user_id)
        return failures

    async def reassign_absent_reviewers(self, today: date | None = None) -> list[ReassignmentOutcome]:
        """为今天缺勤的每个审核人执行重分配（定时扫描入口）

        单个审核人失败只记日志，不影响其他人。
        """
        today = today or self._clock().date()
        absences = await self._stores.absence_store.list_covering(today)
        outcomes: list[ReassignmentOutcome] = []
        for user_id in dict.fromkeys(a.user_id for a in absences):
            user = await self._stores.user_store.get_user(user_id)
            if user is None or not user.is_reviewer:
                continue
            try:
                outcomes.append(await self.reassign_absent_reviewer(user, today, SYSTEM_ACTOR))
            except Exception as e:
                log.error(
                    "absence_reassignment_failed",
                    absent_user_id=user_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                outcomes.append(
                    ReassignmentOutcome(
                        absent_user_id=user_id,
                        failures=[f"{type(e).__name__}: {e}"],
                    )
                )
        return outcomes

    async def reassign_absent_reviewer(
        self,
        absent: User,
        today: date,
        actor: Actor,
    ) -> ReassignmentOutcome:
        """把缺勤审核人名下 OPEN / COMPLIANCE_REVIEW 的任务整体转给一名替补

        没有替补时跳过：任务保留在原审核人名下，记录告警日志和
        REASSIGNMENT_SKIPPED 审计，并在结果中标记 skipped。
        """
        outcome = ReassignmentOutcome(absent_user_id=absent.user_id)
        tasks = await self._stores.task_store.list_for_reviewer(
            absent.user_id, REVIEW_WORKLOAD_STATES
        )
        if not tasks:
            return outcome

        replacement = await self._engine.select_reviewer(today, exclude={absent.user_id})
        if replacement is None:
            outcome.skipped = True
            outcome.reason = "No available replacement reviewer"
            log.warning(
                "reassignment_skipped",
                absent_user_id=absent.user_id,
                task_count=len(tasks),
                reason="no_replacement_available",
            )
            outcome.failures.extend(
                await self._effects.write_audit(
                    SideEffectEvent(
                        actor_id=actor.id,
                        action=AuditAction.REASSIGNMENT_SKIPPED,
                        detail=(
                            f"No replacement reviewer available for {absent.full_name}; "
                            f"{len(tasks)} task(s) remain assigned"
                        ),
                    )
                )
            )
            return outcome

        outcome.replacement_id = replacement.user_id
        for task in tasks:
            try:
                moved, failures = await self._reassign_task(
                    task.task_id, absent, replacement, actor, today
                )
            except Exception as e:
                log.error(
                    "task_reassignment_failed",
                    task_id=task.task_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                outcome.failures.append(f"{task.task_id}: {type(e).__name__}: {e}")
                continue
            if moved:
                outcome.reassigned_task_ids.append(task.task_id)
            outcome.failures.extend(failures)

        log.info(
            "tasks_reassigned",
            absent_user_id=absent.user_id,
            replacement_id=replacement.user_id,
            count=len(outcome.reassigned_task_ids),
        )
        return outcome

    async def _reassign_task(
        self,
        task_id: str,
        absent: User,
        replacement: User,
        actor: Actor,
        today: date,
    ) -> tuple[bool, list[str]]:
        now = self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                # 写入前重新校验替补仍可用
                if not await self._is_available(replacement.user_id, today):
                    log.warning(
                        "replacement_unavailable",
                        task_id=task_id,
                        replacement_id=replacement.user_id,
                    )
                    return False, [f"{task_id}: replacement {replacement.user_id} unavailable"]

                task = await self._stores.task_store.get_task(task_id)
                if (
                    task is None
                    or task.assigned_compliance_id != absent.user_id
                    or task.status not in REVIEW_WORKLOAD_STATES
                ):
                    return False, []
                moved = await reassign_reviewer(
                    self._stores.task_store,
                    task_id,
                    absent.user_id,
                    replacement.user_id,
                    task.status,
                    now,
                )
                if not moved:
                    return False, []
                event = SideEffectEvent(
                    actor_id=actor.id,
                    action=AuditAction.TASK_REASSIGNED,
                    detail=(
                        f"Task reassigned from {absent.full_name} to "
                        f"{replacement.full_name} due to absence"
                    ),
                    task_id=task_id,
                    notifications=[
                        NotificationSpec(
                            user_id=replacement.user_id,
                            type=NotificationType.TASK_ASSIGNED,
                            title="Task Reassigned Due to Absence",
                            message=(
                                f'Task "{task.title}" has been reassigned to you '
                                f"due to {absent.full_name}'s absence"
                            ),
                            task_id=task_id,
                            via_email=True,
                        )
                    ],
                )
                failures = await self._effects.write_audit_in_transaction(event)
            failures.extend(await self._effects.send_notifications(event))
        return True, failures

    # ---- 过期 ----

    async def expire_task(self, task_id: str, now: datetime | None = None) -> bool:
        """过期扫描的单任务处理；不满足过期条件时返回 False

        条件写入保证重复扫描不会二次写入 closure_date。
        """
        now = now or self._clock()
        lock = await self._get_task_lock(task_id)
        async with lock:
            async with self._stores.transaction():
                task = await self._stores.task_store.get_task(task_id)
                if task is None:
                    return False
                plan = TaskStateMachine.plan_expiry(task, now)
                if plan is None:
                    return False
                await apply_status_change(
                    self._stores.task_store, task_id, plan.from_status, plan.column_updates(), now
                )
                await self._effects.write_audit_in_transaction(
                    SideEffectEvent(
                        actor_id=SYSTEM_ACTOR_ID,
                        action=AuditAction.TASK_EXPIRED,
                        detail=(
                            f'Task "{task.title}" expired on {task.expiry_date}; '
                            f"{_transition_detail(plan)}"
                        ),
                        task_id=task_id,
                    )
                )
        await self._cleanup_task_lock(task_id)
        log.info("task_expired", task_id=task_id, uin=task.uin, from_status=plan.from_status.value)
        return True

    # ---- 内部工具 ----

    def _transition_event(self, actor: Actor, task: Task, plan: TransitionPlan) -> SideEffectEvent:
        return SideEffectEvent(
            actor_id=actor.id,
            action=AuditAction.TASK_STATUS_CHANGED,
            detail=_transition_detail(plan),
            task_id=task.task_id,
            notifications=_transition_notifications(task, plan),
        )

    @staticmethod
    def _check_visible(actor: Actor, task: Task | None, task_id: str) -> Task:
        if task is None:
            raise NotFound("task", task_id)
        if not actor.is_system and not can_view_task(actor, task):
            raise PermissionDenied("Access denied to this task")
        return task

    async def _load_task(self, actor: Actor, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        return self._check_visible(actor, task, task_id)

    async def _validate_producers(self, product_ids: list[str]) -> None:
        if not product_ids:
            return
        users = await self._stores.user_store.get_users(product_ids)
        valid = {u.user_id for u in users if u.is_producer and u.is_active}
        invalid = [pid for pid in product_ids if pid not in valid]
        if invalid:
            raise ValidationFailed(
                f"Assigned product users must be active producers: {', '.join(invalid)}"
            )

    async def _is_available(self, user_id: str, day: date) -> bool:
        user = await self._stores.user_store.get_user(user_id)
        if user is None or not user.is_active or not user.is_reviewer:
            return False
        return not await self._stores.absence_store.find_overlapping(user_id, day, day)

    async def _next_version_number(self, task_id: str) -> str:
        """版本号 1.0, 1.1, 1.2, ..."""
        count = await self._stores.content_store.count_versions(task_id)
        return f"1.{count}"

    @classmethod
    async def _get_task_lock(cls, task_id: str) -> asyncio.Lock:
        """获取 task 级别锁，序列化同一任务的读-决策-写。"""
        async with cls._task_locks_guard:
            lock = cls._task_locks.get(task_id)
            if lock is None:
                lock = asyncio.Lock()
                cls._task_locks[task_id] = lock
            return lock

    @classmethod
    async def _cleanup_task_lock(cls, task_id: str) -> None:
        """任务终态后清理 lock，避免全局字典无限增长。"""
        async with cls._task_locks_guard:
            lock = cls._task_locks.get(task_id)
            if lock is not None and not lock.locked():
                cls._task_locks.pop(task_id, None)
