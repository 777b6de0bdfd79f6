"""ScanScheduler -- 进程内周期调度

每个扫描一个独立的 asyncio 后台循环；lifespan 中启动，关闭时取消。
扫描本身幂等，调度器只负责按间隔触发，不保存任何业务状态。
"""

import asyncio

import structlog

from .scan_service import ScanService

log = structlog.get_logger()

DEFAULT_SCANS: tuple[str, ...] = (
    "expiry",
    "absence-reassignment",
    "expiry-warning",
    "stale-tasks",
    "notification-cleanup",
)


class ScanScheduler:
    """按固定间隔运行扫描"""

    def __init__(
        self,
        scan_service: ScanService,
        interval_s: float,
        scans: tuple[str, ...] = DEFAULT_SCANS,
        intervals: dict[str, float] | None = None,
    ) -> None:
        """
        Args:
            scan_service: 扫描服务
            interval_s: 默认间隔（秒）
            scans: 要调度的扫描名称
            intervals: 单个扫描的间隔覆盖
        """
        self._scan_service = scan_service
        self._interval_s = interval_s
        self._scans = scans
        self._intervals = intervals or {}
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())

    def start(self) -> None:
        if self._tasks:
            return
        for name in self._scans:
            interval = self._intervals.get(name, self._interval_s)
            self._tasks[name] = asyncio.create_task(
                self._loop(name, interval), name=f"scan:{name}"
            )
        log.info("scan_scheduler_started", scans=list(self._scans), interval_s=self._interval_s)

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        # 等待循环退出；CancelledError 在 gather 中作为结果返回
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        log.info("scan_scheduler_stopped")

    async def _loop(self, name: str, interval: float) -> None:
        """启动后立即运行一次，之后按间隔运行"""
        while True:
            try:
                summary = await self._scan_service.run(name)
                log.debug(
                    "scheduled_scan_finished",
                    scan=name,
                    processed=summary.processed,
                    failures=len(summary.failures),
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.error(
                    "scheduled_scan_failed",
                    scan=name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
            await asyncio.sleep(interval)
