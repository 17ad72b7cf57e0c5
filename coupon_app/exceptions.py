"""Domain errors raised by the coupon engine and catalog."""


class CouponError(Exception):
    """Base class for recoverable, client-facing coupon errors."""

    status_code = 400
    title = "Coupon Error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class CouponNotFoundError(CouponError):
    status_code = 404
    title = "Coupon Not Found"


class CouponExpiredError(CouponError):
    title = "Coupon Expired"


class CouponNotApplicableError(CouponError):
    title = "Coupon Not Applicable"


class InsufficientCartValueError(CouponNotApplicableError):
    title = "Insufficient Cart Value"


class ConfigurationError(CouponError):
    """Stored coupon configuration is missing, malformed or of an unknown kind."""

    title = "Invalid Coupon"


class UnsupportedCouponTypeError(ConfigurationError):
    def __init__(self, coupon_type):
        super().__init__(f"Unsupported coupon type: {coupon_type}")
        self.coupon_type = coupon_type
