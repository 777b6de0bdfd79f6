"""Version / Comment / ExchangeApproval Domain Model

三者都归属于 Task 聚合。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from .enums import ExchangeApprovalStatus, ExchangeName


class Version(BaseModel):
    """内容版本 -- 版本号单调递增（1.0, 1.1, ...）"""

    version_id: str = Field(description="唯一标识")
    task_id: str = Field(description="所属任务")
    version_number: str = Field(description="版本号")
    file_urls: list[str] = Field(default_factory=list, description="文件存储 URL")
    remarks: str = Field(default="", description="上传备注")
    uploaded_by: str = Field(description="上传者 user_id")
    uploaded_at: datetime = Field(description="上传时间")


class Comment(BaseModel):
    """评论 -- 可挂在任务或具体版本上"""

    comment_id: str = Field(description="唯一标识")
    task_id: str = Field(description="所属任务")
    version_id: str | None = Field(default=None, description="关联版本")
    author_id: str = Field(description="作者 user_id")
    content: str = Field(description="评论内容")
    attachments: list[str] = Field(default_factory=list, description="附件 URL")
    is_global: bool = Field(default=False, description="是否为任务级公开评论")
    created_at: datetime = Field(description="创建时间")


class ExchangeApproval(BaseModel):
    """交易所审批子记录 -- 每个任务每个交易所至多一条"""

    approval_id: str = Field(description="唯一标识")
    task_id: str = Field(description="所属任务")
    exchange_name: ExchangeName = Field(description="交易所")
    type_of_content: str = Field(description="内容类型")
    approval_status: ExchangeApprovalStatus = Field(
        default=ExchangeApprovalStatus.NOT_SENT, description="审批状态"
    )
    approval_date: date | None = Field(default=None)
    expiry_date: date | None = Field(default=None)
    reference_number: str | None = Field(default=None)
    approval_email_url: str | None = Field(default=None)
    updated_by: str = Field(description="最后更新者 user_id")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
