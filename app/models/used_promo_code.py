from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class UsedPromoCode(Base):
    __tablename__ = "used_promo_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    promo_code: Mapped[str] = mapped_column(String(16), unique=True, index=True)
    used_by_tg_user_id: Mapped[int] = mapped_column(BigInteger, index=True)
    used_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
