from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timedelta, timezone

from coupon_app.exceptions import CouponNotFoundError
from coupon_app.logger import get_logger
from coupon_app.models.coupon import Coupon
from coupon_app.schemas.coupon import CouponCreate, CouponUpdate, CouponType, as_utc, stringify_details

logger = get_logger("catalog")


def _now(now: Optional[datetime] = None) -> datetime:
    return as_utc(now) if now is not None else datetime.now(timezone.utc)


def _not_expired(now: datetime):
    return or_(Coupon.expires_at.is_(None), Coupon.expires_at > now)


class CouponService:
    """Service class for CRUD operations on coupons.

    Details are stored as given (stringified) and only checked when a cart is
    evaluated against the coupon.
    """

    @staticmethod
    def create_coupon(db: Session, coupon_data: CouponCreate) -> Coupon:
        coupon_type = CouponType.from_label(coupon_data.type)
        logger.info("Creating coupon of type: %s", coupon_type.value)
        now = _now()
        db_coupon = Coupon(
            type=coupon_type.value,
            details=stringify_details(coupon_data.details),
            is_active=True if coupon_data.is_active is None else coupon_data.is_active,
            expires_at=as_utc(coupon_data.expires_at),
            created_at=now,
            updated_at=now,
        )
        db.add(db_coupon)
        db.commit()
        db.refresh(db_coupon)
        return db_coupon

    @staticmethod
    def get_coupon(db: Session, coupon_id: int) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.id == coupon_id).first()

    @staticmethod
    def get_active_coupon(db: Session, coupon_id: int) -> Coupon:
        coupon = db.query(Coupon).filter(Coupon.id == coupon_id, Coupon.is_active.is_(True)).first()
        if not coupon:
            raise CouponNotFoundError(f"Active coupon not found with id: {coupon_id}")
        return coupon

    @staticmethod
    def get_coupons(db: Session, skip: int = 0, limit: int = 100,
                    coupon_type: Optional[str] = None, is_active: Optional[bool] = None,
                    include_expired: bool = True, now: Optional[datetime] = None) -> List[Coupon]:
        limit = min(max(limit, 1), 500)
        q = db.query(Coupon)
        if coupon_type is not None:
            q = q.filter(Coupon.type == CouponType.from_label(coupon_type).value)
        if is_active is not None:
            q = q.filter(Coupon.is_active.is_(is_active))
        if not include_expired:
            q = q.filter(_not_expired(_now(now)))
        return q.order_by(Coupon.id).offset(max(skip, 0)).limit(limit).all()

    @staticmethod
    def get_active_coupons(db: Session, now: Optional[datetime] = None) -> List[Coupon]:
        q = db.query(Coupon).filter(Coupon.is_active.is_(True), _not_expired(_now(now)))
        return q.order_by(Coupon.id).all()

    @staticmethod
    def get_active_coupons_by_type(db: Session, coupon_type: str,
                                   now: Optional[datetime] = None) -> List[Coupon]:
        kind = CouponType.from_label(coupon_type)
        q = db.query(Coupon).filter(
            Coupon.type == kind.value, Coupon.is_active.is_(True), _not_expired(_now(now))
        )
        return q.order_by(Coupon.id).all()

    @staticmethod
    def get_coupons_expiring_within(db: Session, days: int, now: Optional[datetime] = None) -> List[Coupon]:
        start = _now(now)
        end = start + timedelta(days=days)
        q = db.query(Coupon).filter(Coupon.is_active.is_(True), Coupon.expires_at.isnot(None),
                                    Coupon.expires_at >= start, Coupon.expires_at <= end)
        return q.order_by(Coupon.expires_at).all()

    @staticmethod
    def update_coupon(db: Session, coupon_id: int, coupon_data: CouponUpdate) -> Coupon:
        logger.info("Updating coupon with id: %s", coupon_id)
        db_coupon = CouponService.get_coupon(db, coupon_id)
        if not db_coupon:
            raise CouponNotFoundError(f"Coupon not found with id: {coupon_id}")

        # Only provided fields overwrite
        if coupon_data.type is not None:
            db_coupon.type = CouponType.from_label(coupon_data.type).value
        if coupon_data.details is not None:
            db_coupon.details = stringify_details(coupon_data.details)
        if coupon_data.is_active is not None:
            db_coupon.is_active = coupon_data.is_active
        if coupon_data.expires_at is not None:
            db_coupon.expires_at = as_utc(coupon_data.expires_at)
        db_coupon.updated_at = _now()

        db.commit()
        db.refresh(db_coupon)
        return db_coupon

    @staticmethod
    def delete_coupon(db: Session, coupon_id: int) -> None:
        logger.info("Deleting coupon with id: %s", coupon_id)
        db_coupon = CouponService.get_coupon(db, coupon_id)
        if not db_coupon:
            raise CouponNotFoundError(f"Coupon not found with id: {coupon_id}")
        db.delete(db_coupon)
        db.commit()
