"""审核人分配引擎

候选集：启用的合规角色用户，且当天没有缺勤记录。
选择规则：在 OPEN / COMPLIANCE_REVIEW 状态下任务最少者；
平局时取候选顺序中最先出现者，候选顺序为 (created_at, user_id) 升序。
"""

from datetime import date

import structlog

from .models.enums import COMPLIANCE_ROLES, REVIEW_WORKLOAD_STATES
from .models.user import User
from .store.protocols import AbsenceCalendar, ReviewerDirectory, WorkloadCounter

log = structlog.get_logger()


def pick_least_loaded(candidates: list[User], workload: dict[str, int]) -> User | None:
    """选出工作量最少的候选人，平局取先出现者"""
    best: User | None = None
    best_count = 0
    for user in candidates:
        count = workload.get(user.user_id, 0)
        # 严格小于：相同工作量时保留先出现的候选人
        if best is None or count < best_count:
            best = user
            best_count = count
    return best


class AssignmentEngine:
    """审核人选择

    只读；调用方需在写事务内调用，使候选集与写入在同一事务里重新校验。
    """

    def __init__(
        self,
        users: ReviewerDirectory,
        absences: AbsenceCalendar,
        workload: WorkloadCounter,
    ) -> None:
        self._users = users
        self._absences = absences
        self._workload = workload

    async def candidates(self, day: date, exclude: set[str] | None = None) -> list[User]:
        """当天可分配的审核人（顺序稳定）"""
        reviewers = await self._users.list_users(roles=COMPLIANCE_ROLES, active_only=True)
        absent = await self._absences.absent_user_ids(day)
        excluded = absent | (exclude or set())
        return [u for u in reviewers if u.user_id not in excluded]

    async def select_reviewer(self, day: date, exclude: set[str] | None = None) -> User | None:
        """选择当天工作量最少的审核人，无候选时返回 None"""
        candidates = await self.candidates(day, exclude)
        if not candidates:
            return None
        workload = await self._workload.count_workload(
            [u.user_id for u in candidates],
            REVIEW_WORKLOAD_STATES,
        )
        chosen = pick_least_loaded(candidates, workload)
        log.debug(
            "reviewer_selected",
            reviewer_id=chosen.user_id if chosen else None,
            candidate_count=len(candidates),
            workload=workload,
        )
        return chosen
