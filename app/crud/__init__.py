from app.crud.circles import (
    CircleAccessError,
    CircleError,
    CircleNotFoundError,
    accept_invite,
    create_circle,
    decline_invite,
    delete_circle,
    get_circle_details,
    get_user_circles,
    invite_to_circle,
    join_by_code,
    leave_circle,
    remove_member,
)
from app.crud.gateway import ConcurrentUpdateError, UserNotFoundError, update_user_atomically
from app.crud.leaderboard import get_friends_leaderboard, get_global_leaderboard, get_user_rank
from app.crud.onboarding import save_location, save_phone, set_onboarding_step
from app.crud.payments import (
    activate_demo,
    approve_payment,
    get_pending_payments,
    get_user_access,
    reject_payment,
    submit_receipt,
)
from app.crud.progress import SyncOutcome, sync_progress
from app.crud.referrals import (
    check_promo_code,
    create_referral,
    on_referred_user_payment_approved,
    on_referred_user_registered,
    redeem_promo_code,
    reward_referral_payment,
    reward_referral_registration,
)
from app.crud.reminders import get_expiring_demo_users, get_progress_reminder_targets, mark_demo_expiry_notified
from app.crud.user import get_or_create_user, get_user_by_promo_code, get_user_by_tg_id

__all__ = [
    "ConcurrentUpdateError",
    "UserNotFoundError",
    "update_user_atomically",
    "get_or_create_user",
    "get_user_by_tg_id",
    "get_user_by_promo_code",
    "set_onboarding_step",
    "save_phone",
    "save_location",
    "SyncOutcome",
    "sync_progress",
    "create_referral",
    "check_promo_code",
    "redeem_promo_code",
    "on_referred_user_registered",
    "on_referred_user_payment_approved",
    "reward_referral_registration",
    "reward_referral_payment",
    "submit_receipt",
    "approve_payment",
    "reject_payment",
    "activate_demo",
    "get_pending_payments",
    "get_user_access",
    "get_global_leaderboard",
    "get_friends_leaderboard",
    "get_user_rank",
    "CircleError",
    "CircleNotFoundError",
    "CircleAccessError",
    "create_circle",
    "get_user_circles",
    "get_circle_details",
    "invite_to_circle",
    "accept_invite",
    "decline_invite",
    "join_by_code",
    "leave_circle",
    "remove_member",
    "delete_circle",
    "get_progress_reminder_targets",
    "get_expiring_demo_users",
    "mark_demo_expiry_notified",
]
