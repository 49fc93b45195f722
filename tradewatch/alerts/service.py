"""Alert rule lifecycle for a single user."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from tradewatch.config import settings
from tradewatch.errors import ErrorKind, Result, describe_validation_error
from tradewatch.models.alert import AlertNotification, UserAlert
from tradewatch.models.user import User
from tradewatch.schemas.alert import (
    AlertCriteria,
    AlertRequest,
    AlertSummary,
    AlertUpdate,
    PatternCriteria,
    PoliticianCriteria,
    StockCriteria,
)
from tradewatch.storage.alerts import AlertStore
from tradewatch.storage.references import ReferenceStore

logger = logging.getLogger(__name__)

LIVE_STATUSES = ("active", "paused")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertService:
    def __init__(
        self,
        alerts: AlertStore,
        references: ReferenceStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.alerts = alerts
        self.references = references
        self.clock = clock or _utcnow

    @staticmethod
    def quota_for(user: User) -> int:
        if user.has_active_subscription:
            return settings.max_alerts_subscribed
        return settings.max_alerts_free

    async def create_alert(
        self, user_id: int, payload: AlertRequest | dict[str, Any]
    ) -> Result[UserAlert]:
        try:
            request = (
                payload if isinstance(payload, AlertRequest) else AlertRequest.model_validate(payload)
            )
        except ValidationError as e:
            return Result.failure(ErrorKind.VALIDATION, describe_validation_error(e))

        user = await self.alerts.get_user(user_id)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"user {user_id} not found")

        quota = self.quota_for(user)
        if await self.alerts.count_alerts(user_id) >= quota:
            return Result.failure(
                ErrorKind.QUOTA_EXCEEDED, f"alert limit reached: maximum {quota} alerts allowed"
            )

        criteria = request.to_criteria()
        if isinstance(criteria, PoliticianCriteria):
            if await self.references.get_legislator(criteria.politician_id) is None:
                return Result.failure(
                    ErrorKind.NOT_FOUND, f"politician {criteria.politician_id} not found"
                )
        elif isinstance(criteria, StockCriteria):
            if await self.references.get_ticker(criteria.ticker_symbol) is None:
                return Result.failure(
                    ErrorKind.NOT_FOUND, f"ticker {criteria.ticker_symbol} not found"
                )

        if await self._find_duplicate(user_id, criteria) is not None:
            return Result.failure(ErrorKind.DUPLICATE, "an alert with these criteria already exists")

        alert = UserAlert(user_id=user_id, status="active")
        alert.apply_criteria(criteria)
        alert = await self.alerts.add_alert(alert)
        logger.info("User %s created %s alert %s", user_id, alert.alert_type, alert.id)
        return Result.success(alert)

    async def get_alert(self, user_id: int, alert_id: int) -> Result[UserAlert]:
        """Load an alert the user owns. Deleted alerts are not found."""
        alert = await self.alerts.get_alert(alert_id)
        if alert is None or alert.status == "deleted":
            return Result.failure(ErrorKind.NOT_FOUND, f"alert {alert_id} not found")
        if alert.user_id != user_id:
            return Result.failure(ErrorKind.ACCESS_DENIED, f"alert {alert_id} belongs to another user")
        return Result.success(alert)

    async def list_alerts(
        self,
        user_id: int,
        *,
        alert_type: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[UserAlert], int]:
        statuses = (status,) if status else LIVE_STATUSES
        return await self.alerts.list_alerts(
            user_id, alert_type=alert_type, statuses=statuses, limit=limit, offset=offset
        )

    async def update_alert(
        self, user_id: int, alert_id: int, payload: AlertUpdate | dict[str, Any]
    ) -> Result[UserAlert]:
        try:
            update = payload if isinstance(payload, AlertUpdate) else AlertUpdate.model_validate(payload)
        except ValidationError as e:
            return Result.failure(ErrorKind.VALIDATION, describe_validation_error(e))

        loaded = await self.get_alert(user_id, alert_id)
        if not loaded.ok:
            return loaded
        alert = loaded.value

        if update.pattern_config is not None:
            if alert.alert_type != "pattern":
                return Result.failure(
                    ErrorKind.VALIDATION, "pattern_config can only be set on pattern alerts"
                )
            if update.pattern_config.is_empty:
                return Result.failure(
                    ErrorKind.VALIDATION, "pattern_config must set at least one filter"
                )
            criteria = PatternCriteria(pattern=update.pattern_config)
            duplicate = await self._find_duplicate(user_id, criteria)
            if duplicate is not None and duplicate.id != alert.id:
                return Result.failure(
                    ErrorKind.DUPLICATE, "an alert with these criteria already exists"
                )
            alert.apply_criteria(criteria)

        if update.status is not None:
            alert.status = update.status

        return Result.success(await self._save(alert))

    async def toggle_alert(self, user_id: int, alert_id: int) -> Result[UserAlert]:
        loaded = await self.get_alert(user_id, alert_id)
        if not loaded.ok:
            return loaded
        alert = loaded.value
        alert.status = "paused" if alert.status == "active" else "active"
        return Result.success(await self._save(alert))

    async def delete_alert(self, user_id: int, alert_id: int) -> Result[UserAlert]:
        loaded = await self.get_alert(user_id, alert_id)
        if not loaded.ok:
            return loaded
        alert = loaded.value
        alert.status = "deleted"
        logger.info("User %s deleted alert %s", user_id, alert_id)
        return Result.success(await self._save(alert))

    async def list_notifications(
        self, user_id: int, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> tuple[list[AlertNotification], int]:
        return await self.alerts.list_notifications(
            user_id, unread_only=unread_only, limit=limit, offset=offset
        )

    async def mark_notifications_read(self, user_id: int, notification_ids: Sequence[int]) -> int:
        """Mark the user's unread notifications as read. Returns how many changed."""
        return await self.alerts.mark_read(user_id, notification_ids, self.clock())

    async def alert_summary(self, user_id: int) -> AlertSummary:
        alerts, total = await self.alerts.list_alerts(user_id, statuses=LIVE_STATUSES)
        summary = AlertSummary(total_alerts=total)
        for alert in alerts:
            if alert.status == "active":
                summary.active_alerts += 1
            else:
                summary.paused_alerts += 1
            summary.by_type[alert.alert_type] = summary.by_type.get(alert.alert_type, 0) + 1

        now = self.clock()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        summary.triggered_today = await self.alerts.count_notifications_since(user_id, start_of_day)
        summary.triggered_this_week = await self.alerts.count_notifications_since(
            user_id, now - timedelta(days=7)
        )
        return summary

    async def _find_duplicate(self, user_id: int, criteria: AlertCriteria) -> UserAlert | None:
        existing, _ = await self.alerts.list_alerts(
            user_id, alert_type=criteria.alert_type, statuses=LIVE_STATUSES
        )
        for alert in existing:
            if alert.criteria == criteria:
                return alert
        return None

    async def _save(self, alert: UserAlert) -> UserAlert:
        alert.updated_at = self.clock()
        return await self.alerts.save_alert(alert)
