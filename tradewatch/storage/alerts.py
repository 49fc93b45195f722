"""Alert rule and notification persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradewatch.models.alert import AlertNotification, UserAlert
from tradewatch.models.trade import StockTrade
from tradewatch.models.user import User


class AlertStore(ABC):
    # -- users --------------------------------------------------------------

    @abstractmethod
    async def get_user(self, user_id: int) -> User | None: ...

    # -- alert rules --------------------------------------------------------

    @abstractmethod
    async def get_alert(self, alert_id: int) -> UserAlert | None: ...

    @abstractmethod
    async def count_alerts(self, user_id: int) -> int:
        """Number of the user's alerts that are not deleted."""

    @abstractmethod
    async def list_alerts(
        self,
        user_id: int,
        *,
        alert_type: str | None = None,
        statuses: Sequence[str] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[UserAlert], int]: ...

    @abstractmethod
    async def add_alert(self, alert: UserAlert) -> UserAlert: ...

    @abstractmethod
    async def save_alert(self, alert: UserAlert) -> UserAlert: ...

    # -- candidate selection ------------------------------------------------

    @abstractmethod
    async def active_alerts_for_politician(self, politician_id: int) -> list[UserAlert]: ...

    @abstractmethod
    async def active_alerts_for_ticker(self, ticker_symbol: str) -> list[UserAlert]: ...

    @abstractmethod
    async def active_pattern_alerts(self) -> list[UserAlert]: ...

    # -- notifications ------------------------------------------------------

    @abstractmethod
    async def record_trigger(
        self, alert: UserAlert, trade: StockTrade, message: str, triggered_at: datetime
    ) -> AlertNotification | None:
        """Insert the (alert, trade) notification and stamp the alert.

        Returns None without touching the alert when that pair was already
        notified.
        """

    @abstractmethod
    async def list_notifications(
        self, user_id: int, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> tuple[list[AlertNotification], int]: ...

    @abstractmethod
    async def count_notifications_since(self, user_id: int, since: datetime) -> int: ...

    @abstractmethod
    async def mark_read(self, user_id: int, notification_ids: Sequence[int], read_at: datetime) -> int: ...


class SqlAlertStore(AlertStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_user(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            return await session.get(User, user_id)

    async def get_alert(self, alert_id: int) -> UserAlert | None:
        async with self._session_factory() as session:
            return await session.get(UserAlert, alert_id)

    async def count_alerts(self, user_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(UserAlert)
                .where(UserAlert.user_id == user_id, UserAlert.status != "deleted")
            )
            return result.scalar() or 0

    async def list_alerts(
        self,
        user_id: int,
        *,
        alert_type: str | None = None,
        statuses: Sequence[str] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[UserAlert], int]:
        conditions = [UserAlert.user_id == user_id]
        if alert_type:
            conditions.append(UserAlert.alert_type == alert_type)
        if statuses:
            conditions.append(UserAlert.status.in_(list(statuses)))

        async with self._session_factory() as session:
            total = (
                await session.execute(select(func.count()).select_from(UserAlert).where(*conditions))
            ).scalar() or 0
            query = (
                select(UserAlert)
                .where(*conditions)
                .order_by(UserAlert.created_at.desc(), UserAlert.id.desc())
                .offset(offset)
            )
            if limit is not None:
                query = query.limit(limit)
            result = await session.execute(query)
            return list(result.scalars().all()), total

    async def add_alert(self, alert: UserAlert) -> UserAlert:
        async with self._session_factory() as session, session.begin():
            session.add(alert)
        return alert

    async def save_alert(self, alert: UserAlert) -> UserAlert:
        async with self._session_factory() as session, session.begin():
            merged = await session.merge(alert)
        return merged

    async def active_alerts_for_politician(self, politician_id: int) -> list[UserAlert]:
        return await self._active(
            UserAlert.alert_type == "politician", UserAlert.politician_id == politician_id
        )

    async def active_alerts_for_ticker(self, ticker_symbol: str) -> list[UserAlert]:
        return await self._active(
            UserAlert.alert_type == "stock",
            func.upper(UserAlert.ticker_symbol) == ticker_symbol.upper(),
        )

    async def active_pattern_alerts(self) -> list[UserAlert]:
        return await self._active(UserAlert.alert_type == "pattern")

    async def _active(self, *conditions) -> list[UserAlert]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserAlert)
                .where(UserAlert.status == "active", *conditions)
                .order_by(UserAlert.id)
            )
            return list(result.scalars().all())

    async def record_trigger(
        self, alert: UserAlert, trade: StockTrade, message: str, triggered_at: datetime
    ) -> AlertNotification | None:
        async with self._session_factory() as session, session.begin():
            stmt = pg_insert(AlertNotification).values(
                alert_id=alert.id,
                user_id=alert.user_id,
                trade_id=trade.id,
                message=message,
                delivery_status="pending",
                created_at=triggered_at,
            )
            stmt = stmt.on_conflict_do_nothing(constraint="uq_alert_notification_trade")
            stmt = stmt.returning(AlertNotification)
            notification = (await session.scalars(stmt)).first()
            if notification is None:
                return None

            await session.execute(
                update(UserAlert)
                .where(UserAlert.id == alert.id)
                .values(last_triggered_at=triggered_at)
            )
        alert.last_triggered_at = triggered_at
        return notification

    async def list_notifications(
        self, user_id: int, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> tuple[list[AlertNotification], int]:
        conditions = [AlertNotification.user_id == user_id]
        if unread_only:
            conditions.append(AlertNotification.read_at.is_(None))

        async with self._session_factory() as session:
            total = (
                await session.execute(
                    select(func.count()).select_from(AlertNotification).where(*conditions)
                )
            ).scalar() or 0
            result = await session.execute(
                select(AlertNotification)
                .where(*conditions)
                .order_by(AlertNotification.created_at.desc(), AlertNotification.id.desc())
                .limit(limit)
                .offset(offset)
            )
            return list(result.scalars().all()), total

    async def count_notifications_since(self, user_id: int, since: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(AlertNotification)
                .where(
                    AlertNotification.user_id == user_id,
                    AlertNotification.created_at >= since,
                )
            )
            return result.scalar() or 0

    async def mark_read(self, user_id: int, notification_ids: Sequence[int], read_at: datetime) -> int:
        if not notification_ids:
            return 0
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(AlertNotification)
                .where(
                    AlertNotification.user_id == user_id,
                    AlertNotification.id.in_(list(notification_ids)),
                    AlertNotification.read_at.is_(None),
                )
                .values(read_at=read_at)
            )
            return result.rowcount
