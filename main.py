import logging
from datetime import datetime
from datetime import time as dtime

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
    Update,
    WebAppInfo,
)
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters

from app.config import settings
from app.crud import (
    UserNotFoundError,
    activate_demo,
    approve_payment,
    create_referral,
    get_expiring_demo_users,
    get_global_leaderboard,
    get_or_create_user,
    get_progress_reminder_targets,
    get_user_by_promo_code,
    get_user_access,
    get_user_by_tg_id,
    mark_demo_expiry_notified,
    redeem_promo_code,
    reject_payment,
    reward_referral_registration,
    save_location,
    save_phone,
    set_onboarding_step,
    submit_receipt,
)
from app.crud.referrals import get_referral
from app.db import SessionLocal
from app.engine.dates import CampaignCalendar, today_in_timezone, zone_or_utc
from app.engine.referral_xp import ReferralAward
from app.models import User

logger = logging.getLogger(__name__)

BTN_DEMO = "🎁 24h free trial"
BTN_PAY = "💳 Pay"
BTN_PROMO = "🎟️ I have a promo code"

PROMO_ERRORS = {
    "not_found": "❌ Promo code not found. Check it and send it again.",
    "own_code": "❌ You cannot use your own promo code.",
    "already_used": "❌ This promo code has already been used.",
    "owner_not_paid": "❌ This promo code is not active yet.",
}


def _calendar() -> CampaignCalendar:
    return CampaignCalendar.from_settings(settings)


def _is_admin(user_id: int) -> bool:
    return user_id in settings.admin_ids


def _user_label(user: User) -> str:
    name = (user.name or "").strip() or (user.first_name or "").strip() or (user.username or "").strip()
    if user.username:
        return f"{name} (@{user.username}) [{user.tg_user_id}]"
    return f"{name} [{user.tg_user_id}]"


def miniapp_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("🌙 Open ImanTap", web_app=WebAppInfo(url=settings.MINIAPP_URL))]]
    )


def phone_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        [[KeyboardButton("📱 Share phone number", request_contact=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def location_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        [[KeyboardButton("📍 Share location", request_location=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def promo_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup([[BTN_DEMO], [BTN_PAY], [BTN_PROMO]], resize_keyboard=True, one_time_keyboard=True)


def review_keyboard(tg_user_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("✅ Approve", callback_data=f"pay:approve:{tg_user_id}"),
                InlineKeyboardButton("❌ Reject", callback_data=f"pay:reject:{tg_user_id}"),
            ]
        ]
    )


async def _notify(context: ContextTypes.DEFAULT_TYPE, chat_id: int, text: str, **kwargs) -> None:
    try:
        await context.bot.send_message(chat_id=chat_id, text=text, **kwargs)
    except Exception as e:
        logger.warning("Could not message %s: %s", chat_id, e)


async def _announce_referral(
    context: ContextTypes.DEFAULT_TYPE, referrer_id: int, award: ReferralAward, what: str
) -> None:
    if not award.success:
        return
    text = f"🎉 {what}\n+{award.xp_awarded} XP"
    if award.multiplier > 1:
        text += f" (x{award.multiplier:g} bonus, {award.daily_count} invites today)"
    await _notify(context, referrer_id, text)


def _step_prompt(user: User) -> tuple[str, object]:
    step = user.onboarding_step
    if step == "phone":
        return "1/3 · Share your phone number to continue.", phone_keyboard()
    if step == "location":
        return "2/3 · Share your location so prayer times match your city.", location_keyboard()
    if step in ("promo", "promo_code"):
        return (
            f"3/3 · Full access for the whole Ramadan: {settings.PRICE_FULL}₸ "
            f"({settings.PRICE_DISCOUNT}₸ with a friend's promo code).\n"
            f"Or try everything free for {settings.DEMO_HOURS} hours.",
            promo_keyboard(),
        )
    if step == "payment":
        price = settings.PRICE_DISCOUNT if user.has_discount else settings.PRICE_FULL
        text = f"💳 Amount: {price}₸\n"
        if settings.PAYMENT_LINK:
            text += f"Pay here: {settings.PAYMENT_LINK}\n"
        text += "\nThen send a screenshot or PDF of the receipt to this chat."
        return text, ReplyKeyboardRemove()
    if step == "review":
        return "⏳ Your receipt is being checked. We will message you as soon as it is approved.", None
    return "🌙 Assalamu alaikum! Your Ramadan tracker is ready.", miniapp_menu()


async def _reply_step(update: Update, user: User) -> None:
    text, markup = _step_prompt(user)
    await update.effective_message.reply_text(text, reply_markup=markup)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    tg_user = update.effective_user
    ref_code = context.args[0] if context.args else ""

    with SessionLocal() as db:
        user = get_or_create_user(db, tg_user.id, tg_user.username, tg_user.first_name)
        if ref_code.startswith("ref_") and not user.onboarding_completed:
            owner = get_user_by_promo_code(db, ref_code.replace("ref_", "", 1))
            if owner and create_referral(db, owner.tg_user_id, tg_user.id):
                logger.info("User %s invited by %s", tg_user.id, owner.tg_user_id)
            user = get_user_by_tg_id(db, tg_user.id)

        if user.onboarding_completed or get_user_access(user)["has_access"]:
            await update.message.reply_text(
                "🌙 Assalamu alaikum! Open ImanTap to track your Ramadan.", reply_markup=miniapp_menu()
            )
            return
        await _reply_step(update, user)


async def on_contact(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    contact = update.message.contact
    if contact.user_id and contact.user_id != update.effective_user.id:
        await update.message.reply_text("Please share your own number.", reply_markup=phone_keyboard())
        return

    with SessionLocal() as db:
        get_or_create_user(db, update.effective_user.id, update.effective_user.username, update.effective_user.first_name)
        user = save_phone(db, update.effective_user.id, contact.phone_number)
        await _reply_step(update, user)


async def on_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    loc = update.message.location
    with SessionLocal() as db:
        user = get_user_by_tg_id(db, update.effective_user.id)
        if not user or user.onboarding_step != "location":
            return
        user = save_location(db, user.tg_user_id, loc.latitude, loc.longitude, settings.APP_TIMEZONE)
        await _reply_step(update, user)


async def _enter_payment(update: Update, context: ContextTypes.DEFAULT_TYPE, tg_user_id: int) -> None:
    with SessionLocal() as db:
        user = set_onboarding_step(db, tg_user_id, "payment")
        referral = get_referral(db, tg_user_id)
        award = reward_referral_registration(
            db, tg_user_id, today_in_timezone(settings.APP_TIMEZONE), _calendar()
        )
        await _reply_step(update, user)

    if referral and award is not None:
        await _announce_referral(context, referral.referrer_tg_user_id, award, "A friend joined with your invite!")


async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    tg_id = update.effective_user.id
    text = (update.message.text or "").strip()

    with SessionLocal() as db:
        user = get_user_by_tg_id(db, tg_id)
        if not user:
            await update.message.reply_text("Press /start to begin.")
            return
        step = user.onboarding_step

        if step == "promo":
            if text == BTN_DEMO:
                demo_user = activate_demo(db, tg_id)
                if demo_user is None:
                    await update.message.reply_text("The free trial has already been used.", reply_markup=promo_keyboard())
                    return
                expires = demo_user.demo_expires_at.strftime("%Y-%m-%d %H:%M")
                await update.message.reply_text(
                    f"🎁 Trial active until {expires} UTC.", reply_markup=miniapp_menu()
                )
                return
            if text == BTN_PROMO:
                set_onboarding_step(db, tg_id, "promo_code")
                await update.message.reply_text("Send the promo code:", reply_markup=ReplyKeyboardRemove())
                return
            if text != BTN_PAY:
                await _reply_step(update, user)
                return
        elif step == "promo_code":
            if text in (BTN_PAY, BTN_DEMO):
                set_onboarding_step(db, tg_id, "promo")
                await _reply_step(update, get_user_by_tg_id(db, tg_id))
                return
            result = redeem_promo_code(db, text, user)
            if not result["valid"]:
                await update.message.reply_text(
                    PROMO_ERRORS.get(result["reason"], "❌ Invalid promo code."), reply_markup=promo_keyboard()
                )
                return
            await update.message.reply_text(f"✅ Promo code applied, your price is {settings.PRICE_DISCOUNT}₸.")
        else:
            await _reply_step(update, user)
            return

    await _enter_payment(update, context, tg_id)


async def on_receipt(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    msg = update.message
    tg_id = update.effective_user.id

    if msg.photo:
        file_id = msg.photo[-1].file_id
    elif msg.document:
        file_id = msg.document.file_id
    else:
        return

    with SessionLocal() as db:
        user = get_user_by_tg_id(db, tg_id)
        if not user or user.onboarding_step not in ("payment", "review"):
            return
        user = submit_receipt(db, tg_id, file_id)
        caption = (
            "🧾 New receipt\n"
            f"{_user_label(user)}\n"
            f"Phone: {user.phone_number or '-'}\n"
            f"Amount: {user.paid_amount}₸" + (" (promo)" if user.has_discount else "")
        )

    await msg.reply_text("✅ Receipt received. We will check it shortly.")

    for admin_id in settings.admin_ids:
        try:
            if msg.photo:
                await context.bot.send_photo(admin_id, file_id, caption=caption, reply_markup=review_keyboard(tg_id))
            else:
                await context.bot.send_document(admin_id, file_id, caption=caption, reply_markup=review_keyboard(tg_id))
        except Exception as e:
            logger.warning("Could not forward receipt of %s to admin %s: %s", tg_id, admin_id, e)


async def on_payment_review(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    q = update.callback_query
    if not _is_admin(q.from_user.id):
        await q.answer("Admins only", show_alert=True)
        return
    await q.answer()

    _, action, raw_id = q.data.split(":", 2)
    tg_id = int(raw_id)
    referrer_id = None
    award = None

    with SessionLocal() as db:
        try:
            if action == "approve":
                user, award = approve_payment(
                    db, tg_id, today_in_timezone(settings.APP_TIMEZONE), _calendar()
                )
                referral = get_referral(db, tg_id)
                referrer_id = referral.referrer_tg_user_id if referral else None
                verdict = "✅ Approved"
            else:
                user = reject_payment(db, tg_id)
                verdict = "❌ Rejected"
        except UserNotFoundError:
            await q.edit_message_caption(caption="User not found")
            return
        label = _user_label(user)

    await q.edit_message_caption(caption=f"{verdict} by {q.from_user.id}\n{label}")
    logger.info("Admin %s: payment of %s %s", q.from_user.id, tg_id, action)

    if action == "approve":
        await _notify(
            context,
            tg_id,
            "✅ Payment confirmed! Full access is open for the whole Ramadan.",
            reply_markup=miniapp_menu(),
        )
        if referrer_id and award is not None:
            await _announce_referral(context, referrer_id, award, "Your friend paid for full access!")
    else:
        await _notify(
            context,
            tg_id,
            f"❌ We could not confirm the payment. You have {settings.DEMO_HOURS}h of free access, "
            "send a new receipt any time.",
        )


async def my_code(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    with SessionLocal() as db:
        user = get_user_by_tg_id(db, update.effective_user.id)
        if not user:
            await update.message.reply_text("Press /start to begin.")
            return
        code, invited = user.promo_code, user.invited_count or 0

    link = f"https://t.me/{context.bot.username}?start=ref_{code}"
    await update.message.reply_text(
        f"🎟️ Your promo code: {code}\n"
        f"Friends invited: {invited}\n\n"
        f"Invite link: {link}\n"
        f"A friend gets {settings.PRICE_DISCOUNT}₸ instead of {settings.PRICE_FULL}₸, you get XP."
    )


async def leaderboard(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    with SessionLocal() as db:
        rows = get_global_leaderboard(db, 10)
    if not rows:
        await update.message.reply_text("The leaderboard is empty so far.")
        return
    lines = [f"{r['rank']}. {r['name'] or r['username'] or r['tg_user_id']}: {r['xp']} XP" for r in rows]
    await update.message.reply_text("🏆 Top 10\n\n" + "\n".join(lines))


async def stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    with SessionLocal() as db:
        user = get_user_by_tg_id(db, update.effective_user.id)
        if not user:
            await update.message.reply_text("Press /start to begin.")
            return
        joined = user.created_at.strftime("%d.%m.%Y") if user.created_at else "-"
        text = (
            "📊 Your stats\n\n"
            f"ID: {user.tg_user_id}\n"
            f"Promo code: {user.promo_code}\n"
            f"Friends invited: {user.invited_count or 0}\n"
            f"XP: {user.xp or 0}\n"
            f"Streak: {user.current_streak or 0} days\n"
            f"Joined: {joined}"
        )
    await update.message.reply_text(text)


async def progress_reminder_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    # hourly; each user is picked in the hour their own clock shows 20:00
    with SessionLocal() as db:
        chat_ids = [u.tg_user_id for u in get_progress_reminder_targets(db)]

    sent = 0
    for chat_id in chat_ids:
        try:
            await context.bot.send_message(
                chat_id=chat_id,
                text="🌙 Nothing is marked for today yet. Open ImanTap and note what you have done!",
                reply_markup=miniapp_menu(),
            )
            sent += 1
        except Exception as e:
            logger.warning("Progress reminder to %s failed: %s", chat_id, e)
    if chat_ids:
        logger.info("Progress reminders sent: %d/%d", sent, len(chat_ids))


async def demo_expiry_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    with SessionLocal() as db:
        targets = [(u.tg_user_id, u.demo_expires_at) for u in get_expiring_demo_users(db)]

    for chat_id, expires_at in targets:
        hours_left = max(1, int((expires_at - datetime.utcnow()).total_seconds() // 3600))
        try:
            await context.bot.send_message(
                chat_id=chat_id,
                text=(
                    f"⏳ Your free trial ends in about {hours_left}h.\n"
                    f"Pay {settings.PRICE_FULL}₸ to keep your progress going, "
                    "or use a friend's promo code for a discount."
                ),
            )
        except Exception as e:
            logger.warning("Demo expiry warning to %s failed: %s", chat_id, e)
            continue
        with SessionLocal() as db:
            mark_demo_expiry_notified(db, chat_id)


def _seconds_to_next_hour() -> int:
    now = datetime.utcnow()
    return 3600 - (now.minute * 60 + now.second)


def run() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    if not settings.BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is not set")

    app = Application.builder().token(settings.BOT_TOKEN).build()

    app.add_handler(CommandHandler("start", start))
    app.add_handler(CommandHandler("mycode", my_code))
    app.add_handler(CommandHandler("stats", stats))
    app.add_handler(CommandHandler("leaderboard", leaderboard))
    app.add_handler(CallbackQueryHandler(on_payment_review, pattern=r"^pay:(approve|reject):\d+$"))
    app.add_handler(MessageHandler(filters.CONTACT, on_contact))
    app.add_handler(MessageHandler(filters.LOCATION, on_location))
    app.add_handler(MessageHandler(filters.PHOTO | filters.Document.ALL, on_receipt))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, on_text))

    if app.job_queue:
        app.job_queue.run_repeating(
            progress_reminder_job,
            interval=3600,
            first=_seconds_to_next_hour(),
            name="progress-reminder",
        )
        app.job_queue.run_daily(
            demo_expiry_job,
            time=dtime(hour=10, minute=0, tzinfo=zone_or_utc(settings.APP_TIMEZONE)),
            name="demo-expiry",
            data={"kind": "demo-expiry"},
        )

    logger.info("Bot started")
    app.run_polling()


if __name__ == "__main__":
    run()
