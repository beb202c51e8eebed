"""SQLAlchemy ORM models used by the API layer."""

from .user import UserModel
from .auth_session import AuthSessionModel
from .seatalk_session import SeatalkSessionModel
from .rate_limit import SessionRateLimitModel
from .dispatch_report import DispatchReportModel
from .dispatch_sheet_row import DispatchSheetRowModel
from .outbound_map import OutboundMapModel
from .kpi import KpiIntradayModel, KpiMdtModel, KpiProductivityModel, KpiWorkstationModel

__all__ = [
    "UserModel",
    "AuthSessionModel",
    "SeatalkSessionModel",
    "SessionRateLimitModel",
    "DispatchReportModel",
    "DispatchSheetRowModel",
    "OutboundMapModel",
    "KpiMdtModel",
    "KpiWorkstationModel",
    "KpiProductivityModel",
    "KpiIntradayModel",
]
