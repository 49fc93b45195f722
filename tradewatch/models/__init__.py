from tradewatch.models.member import CorporateInsider, Legislator
from tradewatch.models.ticker import StockTicker
from tradewatch.models.trade import StockTrade
from tradewatch.models.sync import SyncProgress
from tradewatch.models.user import User
from tradewatch.models.alert import AlertNotification, UserAlert

__all__ = [
    "Legislator",
    "CorporateInsider",
    "StockTicker",
    "StockTrade",
    "SyncProgress",
    "User",
    "UserAlert",
    "AlertNotification",
]
