from fastapi import APIRouter, Depends, Body, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import List, Dict, Optional
from coupon_app.database import get_db
from coupon_app.exceptions import CouponNotFoundError
from coupon_app.logger import get_logger
from coupon_app.schemas.cart import Cart, CartRequest
from coupon_app.schemas.coupon import (
    CouponCreate, CouponUpdate, CouponResponse, ApplicableCouponsResponse,
    ApplyCouponResponse, UpdatedCart, CartItemWithDiscount
)
from coupon_app.services.coupon_engine import CouponEngine
from coupon_app.services.coupon_service import CouponService

router = APIRouter(prefix="", tags=["coupons"])
logger = get_logger("api")

engine = CouponEngine()


def _to_updated_cart(cart: Cart) -> UpdatedCart:
    return UpdatedCart(
        items=[
            CartItemWithDiscount(
                product_id=item.product_id,
                quantity=item.quantity,
                price=float(item.price),
                total_discount=float(item.total_discount),
            )
            for item in cart.items
        ],
        total_price=float(cart.total_price),
        total_discount=float(cart.total_discount),
        final_price=float(cart.final_price),
    )


@router.post("/coupons", response_model=CouponResponse, status_code=201)
def create_coupon(coupon: CouponCreate, db: Session = Depends(get_db)):
    return CouponService.create_coupon(db, coupon)


@router.get("/coupons", response_model=List[CouponResponse])
def list_coupons(skip: int = 0, limit: int = 100,
                 type: Optional[str] = None,
                 is_active: Optional[bool] = None,
                 include_expired: bool = True,
                 db: Session = Depends(get_db)):
    return CouponService.get_coupons(db, skip, limit, coupon_type=type,
                                     is_active=is_active, include_expired=include_expired)


@router.get("/coupons/expiring", response_model=List[CouponResponse])
def list_expiring_coupons(days: int = Query(7, ge=0, le=3650), db: Session = Depends(get_db)):
    return CouponService.get_coupons_expiring_within(db, days)


@router.get("/coupons/{coupon_id}", response_model=CouponResponse)
def get_coupon(coupon_id: int, db: Session = Depends(get_db)):
    c = CouponService.get_coupon(db, coupon_id)
    if not c:
        raise CouponNotFoundError(f"Coupon not found with id: {coupon_id}")
    return c


@router.put("/coupons/{coupon_id}", response_model=CouponResponse)
def update_coupon(coupon_id: int, payload: CouponUpdate, db: Session = Depends(get_db)):
    return CouponService.update_coupon(db, coupon_id, payload)


@router.delete("/coupons/{coupon_id}", status_code=204)
def delete_coupon(coupon_id: int, db: Session = Depends(get_db)):
    CouponService.delete_coupon(db, coupon_id)
    return


@router.post("/applicable-coupons", response_model=ApplicableCouponsResponse)
def get_applicable_coupons(body: Dict = Body(...), type: Optional[str] = None,
                           db: Session = Depends(get_db)):
    cart_data = body.get("cart", body)
    try:
        cart = CartRequest.model_validate(cart_data).to_cart()
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
    logger.info("Finding applicable coupons for cart with %d items", len(cart.items))

    if type is not None:
        candidates = CouponService.get_active_coupons_by_type(db, type)
    else:
        candidates = CouponService.get_active_coupons(db)
    coupons = [CouponResponse.model_validate(c) for c in candidates]
    return ApplicableCouponsResponse(applicable_coupons=engine.list_applicable(cart, coupons))


@router.post("/apply-coupon/{coupon_id}", response_model=ApplyCouponResponse)
def apply_coupon(coupon_id: int, cart: CartRequest, db: Session = Depends(get_db)):
    c = CouponService.get_active_coupon(db, coupon_id)
    updated = engine.apply_single(cart.to_cart(), CouponResponse.model_validate(c))
    return ApplyCouponResponse(updated_cart=_to_updated_cart(updated))
