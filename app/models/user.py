from datetime import date, datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    tg_user_id: Mapped[int] = mapped_column(BigInteger, unique=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    language: Mapped[str] = mapped_column(String(8), default="kk")

    # onboarding
    onboarding_step: Mapped[str] = mapped_column(String(32), default="phone")
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # referrals
    promo_code: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    invited_count: Mapped[int] = mapped_column(Integer, default=0)
    daily_referrals_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # payment and access
    payment_status: Mapped[str] = mapped_column(String(32), default="unpaid", index=True)
    paid_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    has_discount: Mapped[bool] = mapped_column(Boolean, default=False)
    receipt_file_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    access_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    demo_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    demo_expiry_notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # progress snapshot
    progress_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    preparation_progress_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    basic_progress_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    memorized_names_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    earned_tasks_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extras_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # gamification
    xp: Mapped[int] = mapped_column(Integer, default=0, index=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_active_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    unlocked_badges_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # a concurrent commit on the same row raises StaleDataError instead of overwriting
    __mapper_args__ = {"version_id_col": version}
