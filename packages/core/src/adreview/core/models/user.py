"""User / Absence Domain Model

User 与 Absence 是独立聚合，通过 id 引用。
Absence 是闭区间 [from_date, to_date]，同一用户的记录不得重叠。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from .enums import COMPLIANCE_ROLES, PRODUCER_ROLES, UserRole


class User(BaseModel):
    """用户数据模型"""

    user_id: str = Field(description="唯一标识，24 位十六进制")
    username: str = Field(description="登录名")
    full_name: str = Field(description="显示名")
    email: str = Field(default="", description="邮箱")
    role: UserRole = Field(description="角色")
    is_active: bool = Field(default=True, description="是否启用")
    created_at: datetime = Field(description="创建时间")

    @property
    def is_reviewer(self) -> bool:
        return self.role in COMPLIANCE_ROLES

    @property
    def is_producer(self) -> bool:
        return self.role in PRODUCER_ROLES


class Absence(BaseModel):
    """缺勤记录 -- 按自然日闭区间计算"""

    absence_id: str = Field(description="唯一标识，24 位十六进制")
    user_id: str = Field(description="缺勤用户")
    from_date: date = Field(description="开始日期（含）")
    to_date: date = Field(description="结束日期（含）")
    reason: str = Field(default="", description="原因")
    created_by: str = Field(description="创建者 user_id")
    created_at: datetime = Field(description="创建时间")

    @model_validator(mode="after")
    def _check_range(self) -> "Absence":
        if self.from_date > self.to_date:
            raise ValueError("from_date must not be after to_date")
        return self

    def covers(self, day: date) -> bool:
        """判断某日是否在缺勤区间内"""
        return self.from_date <= day <= self.to_date

    def overlaps(self, from_date: date, to_date: date) -> bool:
        """判断是否与另一区间重叠（闭区间）"""
        return self.from_date <= to_date and from_date <= self.to_date
