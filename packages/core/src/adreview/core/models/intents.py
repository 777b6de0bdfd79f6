"""工作流意图 -- 所有状态变更统一从状态机入口进入

ChangeStatusIntent 为显式状态请求；
UploadVersionIntent / AddCommentIntent 为可能触发隐式流转的动作。
"""

from datetime import date

from pydantic import BaseModel, Field

from .enums import ExchangeApprovalStatus, ExchangeName, TaskStatus, TaskType, UserRole


class Actor(BaseModel):
    """操作者 -- 由外部认证层提供，核心层信任此输入"""

    id: str
    role: UserRole | None = Field(default=None, description="None 表示系统操作者")

    @property
    def is_system(self) -> bool:
        return self.role is None


class ChangeStatusIntent(BaseModel):
    """直接状态变更请求"""

    to_status: TaskStatus
    approval_date: date | None = None
    expiry_date: date | None = None
    publish_date: date | None = None
    closure_remarks: str | None = None
    expected_status: TaskStatus | None = Field(
        default=None,
        description="调用方看到的状态，不一致时以冲突拒绝",
    )


class UploadVersionIntent(BaseModel):
    """上传新版本"""

    file_urls: list[str] = Field(min_length=1)
    remarks: str = ""


class AddCommentIntent(BaseModel):
    """添加评论"""

    content: str = Field(min_length=1, max_length=2000)
    version_id: str | None = None
    is_global: bool = False
    attachments: list[str] = Field(default_factory=list)


class CreateTaskIntent(BaseModel):
    """创建任务"""

    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=1000)
    task_type: TaskType = TaskType.INTERNAL
    assigned_product_ids: list[str] = Field(default_factory=list)
    expected_publish_date: date | None = None
    platform: str = ""
    category: str = ""
    remarks: str = ""


class UpdateTaskIntent(BaseModel):
    """编辑任务明细字段（不含状态与审核人）"""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    task_type: TaskType | None = None
    platform: str | None = None
    category: str | None = None
    remarks: str | None = None
    expected_publish_date: date | None = None
    assigned_product_ids: list[str] | None = None


class RecordAbsenceIntent(BaseModel):
    """登记缺勤"""

    user_id: str
    from_date: date
    to_date: date
    reason: str = ""


class AddExchangeApprovalIntent(BaseModel):
    """新增交易所审批记录"""

    exchange_name: ExchangeName
    type_of_content: str = Field(min_length=1)


class UpdateExchangeApprovalIntent(BaseModel):
    """更新交易所审批记录"""

    type_of_content: str | None = Field(default=None, min_length=1)
    approval_status: ExchangeApprovalStatus | None = None
    approval_date: date | None = None
    expiry_date: date | None = None
    reference_number: str | None = None
    approval_email_url: str | None = None


# 进入状态机入口的意图
WorkflowIntent = ChangeStatusIntent | UploadVersionIntent | AddCommentIntent
