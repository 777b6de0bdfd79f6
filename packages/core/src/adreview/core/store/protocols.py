"""Store Protocol 接口定义

审核人分配只依赖以下只读接口，便于单独测试选择逻辑。
"""

from datetime import date
from typing import Protocol

from ..models.enums import TaskStatus, UserRole
from ..models.user import User


class ReviewerDirectory(Protocol):
    """审核人名录"""

    async def list_users(
        self,
        roles: tuple[UserRole, ...] | None = None,
        active_only: bool = False,
    ) -> list[User]:
        """按角色查询用户，顺序稳定"""
        ...


class AbsenceCalendar(Protocol):
    """缺勤日历"""

    async def absent_user_ids(self, day: date) -> set[str]:
        """指定日期缺勤的用户集合"""
        ...


class WorkloadCounter(Protocol):
    """审核人工作量统计"""

    async def count_workload(
        self,
        reviewer_ids: list[str],
        statuses: tuple[TaskStatus, ...],
    ) -> dict[str, int]:
        """每个审核人在指定状态下的任务数"""
        ...
