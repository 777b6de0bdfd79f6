"""Task Domain Model

Task 是版本、评论、交易所审批的聚合根。
status 字段只能通过状态机写入；assigned_compliance_id 只能通过重分配路径修改。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from .enums import TaskStatus, TaskType


class Task(BaseModel):
    """Task 数据模型"""

    task_id: str = Field(description="唯一标识，24 位十六进制")
    uin: str = Field(description="人类可读编号，创建后不可变，按年顺序递增")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    task_type: TaskType = Field(default=TaskType.INTERNAL, description="任务类型")
    status: TaskStatus = Field(default=TaskStatus.OPEN, description="当前状态")
    created_by: str = Field(description="创建者 user_id")
    assigned_product_ids: list[str] = Field(
        default_factory=list, description="分配的产品方 user_id 列表"
    )
    assigned_compliance_id: str = Field(description="分配的合规审核人 user_id")
    platform: str = Field(default="", description="发布平台")
    category: str = Field(default="", description="内容类别")
    remarks: str = Field(default="", description="创建备注")
    expected_publish_date: date | None = Field(default=None, description="预计发布日期")
    approval_date: date | None = Field(default=None, description="批准日期")
    expiry_date: date | None = Field(default=None, description="到期日期")
    publish_date: date | None = Field(default=None, description="发布日期")
    closure_date: datetime | None = Field(default=None, description="关闭时间")
    closure_remarks: str | None = Field(default=None, description="关闭备注")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    def notify_targets(self) -> list[str]:
        """到期/停滞提醒的接收人：创建者 + 产品方 + 审核人（去重保序）"""
        targets = [self.created_by, *self.assigned_product_ids, self.assigned_compliance_id]
        return list(dict.fromkeys(t for t in targets if t))
