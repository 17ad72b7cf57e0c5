from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, JSON, DateTime, Index
from coupon_app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    # Plain string so rows written with an unknown kind can still be loaded
    type = Column(String(32), nullable=False, index=True)
    details = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_coupons_active_type", "is_active", "type"),
    )
