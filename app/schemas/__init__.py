from app.schemas.circle import CircleCreateIn, CircleInviteIn, CircleJoinIn, CircleMemberIn
from app.schemas.progress import ProgressSyncIn, ProgressSyncOut
from app.schemas.user import UserBootstrapIn, UserFullOut

__all__ = [
    "CircleCreateIn",
    "CircleInviteIn",
    "CircleJoinIn",
    "CircleMemberIn",
    "ProgressSyncIn",
    "ProgressSyncOut",
    "UserBootstrapIn",
    "UserFullOut",
]
