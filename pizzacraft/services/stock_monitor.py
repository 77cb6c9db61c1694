import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from pizzacraft.core.clock import now as store_now
from pizzacraft.core.config import (
    BUSINESS_HOURS_END,
    BUSINESS_HOURS_START,
    CRITICAL_STOCK_LEVEL,
    DAILY_REPORT_HOUR,
    INITIAL_STOCK_CHECK_DELAY,
    STOCK_ALERT_COOLDOWN_HOURS,
)
from pizzacraft.models.catalog import CatalogItem, IngredientCategory
from pizzacraft.services import inventory_service
from pizzacraft.services.notifications import EmailNotifier

log = logging.getLogger(__name__)

CRITICAL_CHECK_INTERVAL_MINUTES = 15


def next_hourly_run(now: datetime) -> datetime:
    """Next top of the hour strictly after ``now``."""
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def next_daily_run(now: datetime, hour: int = DAILY_REPORT_HOUR) -> datetime:
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def next_business_hours_run(now: datetime, start: int = BUSINESS_HOURS_START, end: int = BUSINESS_HOURS_END,
                            interval: int = CRITICAL_CHECK_INTERVAL_MINUTES) -> datetime:
    """Next ``interval``-minute mark between ``start``:00 and ``end``:45, strictly after ``now``."""
    slot = (now.minute // interval + 1) * interval
    candidate = now.replace(minute=0, second=0, microsecond=0) + timedelta(minutes=slot)
    if candidate.hour < start:
        return candidate.replace(hour=start, minute=0)
    if candidate.hour > end:
        return (candidate + timedelta(days=1)).replace(hour=start, minute=0)
    return candidate


def in_business_hours(now: datetime, start: int = BUSINESS_HOURS_START, end: int = BUSINESS_HOURS_END) -> bool:
    return start <= now.hour <= end


class StockMonitor:
    """
    Periodic inventory sweeps.

    Low-stock alerts are rate limited by ``cooldown``; ``last_alert_sent`` only
    moves when an alert was actually delivered. Critical sweeps run during
    business hours and alert regardless of the cooldown.
    """

    def __init__(self, notifier: EmailNotifier, clock: Callable[[], datetime] = store_now,
                 cooldown: timedelta = timedelta(hours=STOCK_ALERT_COOLDOWN_HOURS),
                 critical_level: int = CRITICAL_STOCK_LEVEL,
                 business_hours: Tuple[int, int] = (BUSINESS_HOURS_START, BUSINESS_HOURS_END),
                 daily_report_hour: int = DAILY_REPORT_HOUR,
                 initial_delay: float = INITIAL_STOCK_CHECK_DELAY):
        self.notifier = notifier
        self.clock = clock
        self.cooldown = cooldown
        self.critical_level = critical_level
        self.business_hours = business_hours
        self.daily_report_hour = daily_report_hour
        self.initial_delay = initial_delay
        self.last_alert_sent: Optional[datetime] = None
        self._tasks: List[asyncio.Task] = []

    def cooldown_active(self, now: datetime) -> bool:
        return self.last_alert_sent is not None and now - self.last_alert_sent < self.cooldown

    async def check_low_stock(self) -> dict:
        log.info("Checking inventory for low stock items...")
        items = await inventory_service.low_stock_items()
        if not items:
            log.info("All inventory items are above threshold levels")
            return {"low_stock_items": 0, "alert_sent": False}

        log.warning(f"Found {len(items)} items below threshold")
        for item in items:
            log.warning(f"  - {item.name}: {item.stock}/{item.threshold} {item.unit}")

        now = self.clock()
        if self.cooldown_active(now):
            log.info(f"Alert cooldown active. Next alert can be sent after {self.last_alert_sent + self.cooldown}")
            return {"low_stock_items": len(items), "alert_sent": False}

        sent = await self.notifier.send_low_stock_alert(items, now)
        if sent:
            self.last_alert_sent = now
            log.info(f"Low stock alert sent for {len(items)} items at {now.isoformat()}")
        else:
            log.error("Failed to send low stock alert email")
        return {"low_stock_items": len(items), "alert_sent": sent}

    async def check_critical_stock(self) -> List[CatalogItem]:
        now = self.clock()
        if not in_business_hours(now, *self.business_hours):
            return []

        items = await inventory_service.critical_stock_items(self.critical_level)
        if items:
            log.critical(f"CRITICAL: {len(items)} items have {self.critical_level} or fewer units remaining!")
            for item in items:
                log.critical(f"  {item.name}: {item.stock} {item.unit} remaining")
            await self.notifier.send_low_stock_alert(items, now)
        return items

    async def daily_report(self) -> Dict[str, List[dict]]:
        items = await inventory_service.list_items(active=True)
        report: Dict[str, List[dict]] = {category.value: [] for category in IngredientCategory}
        for item in items:
            report[item.category.value].append({
                "name": item.name,
                "stock": item.stock,
                "unit": item.unit,
                "status": "LOW" if item.stock <= item.threshold else "OK",
            })

        lines = ["=== DAILY INVENTORY REPORT ==="]
        for category, entries in report.items():
            lines.append(f"{category.upper()}:")
            lines.extend(f"  {e['name']}: {e['stock']} {e['unit']} {e['status']}" for e in entries)
        lines.append("=== END REPORT ===")
        log.info("\n".join(lines))
        return report

    async def stock_summary(self) -> dict:
        items = await inventory_service.list_items(active=True)
        categories: Dict[str, int] = {}
        for item in items:
            categories[item.category.value] = categories.get(item.category.value, 0) + 1
        return {
            "total_items": len(items),
            "low_stock_items": sum(1 for item in items if item.stock <= item.threshold),
            "critical_items": sum(1 for item in items if item.stock <= self.critical_level),
            "out_of_stock_items": sum(1 for item in items if item.stock == 0),
            "categories": categories,
        }

    async def _run_on_schedule(self, name: str, next_run: Callable[[datetime], datetime],
                               job: Callable[[], Awaitable]):
        while True:
            now = self.clock()
            delay = (next_run(now) - now).total_seconds()
            await asyncio.sleep(max(delay, 0))
            await self._run_job(name, job)

    async def _run_job(self, name: str, job: Callable[[], Awaitable]):
        try:
            await job()
        except Exception:
            log.exception(f"Stock monitor job '{name}' failed")

    async def _initial_check(self):
        await asyncio.sleep(self.initial_delay)
        log.info("Running initial stock check...")
        await self._run_job("initial", self.check_low_stock)

    def start(self):
        if self._tasks:
            return
        start, end = self.business_hours
        self._tasks = [
            asyncio.create_task(self._run_on_schedule("hourly", next_hourly_run, self.check_low_stock)),
            asyncio.create_task(self._run_on_schedule(
                "daily_report", lambda now: next_daily_run(now, self.daily_report_hour), self.daily_report
            )),
            asyncio.create_task(self._run_on_schedule(
                "critical", lambda now: next_business_hours_run(now, start, end), self.check_critical_stock
            )),
            asyncio.create_task(self._initial_check()),
        ]
        log.info(
            f"Stock monitoring started: hourly checks, daily report at {self.daily_report_hour}:00, "
            f"critical checks every {CRITICAL_CHECK_INTERVAL_MINUTES} minutes ({start}:00-{end}:45)"
        )

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        log.info("Stock monitoring stopped")
