"""Coupon aggregate — the lookup source for a checkout discount policy.

Coupons are keyed by their upper-cased code. A coupon is redeemable while it
is active, inside its validity window, and below its usage limit.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.pricing.discount import DiscountPolicy

UNLIMITED = -1


def _naive_utc(value):
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def normalize_code(code):
    return (code or "").strip().upper()


@marketplace.event(part_of="Coupon")
class CouponCreated:
    __version__ = 1

    code = String(required=True)
    percent_off = Float(required=True)
    minimum_cart_value = Float(required=True)


@marketplace.event(part_of="Coupon")
class CouponRedeemed:
    __version__ = 1

    code = String(required=True)
    used_count = Integer(required=True)


@marketplace.event(part_of="Coupon")
class CouponDeactivated:
    __version__ = 1

    code = String(required=True)


@marketplace.aggregate
class Coupon:
    code = String(identifier=True, max_length=50)
    percent_off = Float(required=True, min_value=1.0, max_value=100.0)
    minimum_cart_value = Float(required=True, min_value=0.0)
    valid_from = DateTime(required=True)
    valid_to = DateTime(required=True)
    is_active = Boolean(default=True)
    usage_limit = Integer(default=UNLIMITED)
    used_count = Integer(default=0, min_value=0)

    @classmethod
    def create(cls, code, percent_off, minimum_cart_value, valid_from, valid_to, usage_limit=UNLIMITED):
        code = normalize_code(code)
        if not code:
            raise ValidationError({"code": ["Coupon code is required"]})
        if _naive_utc(valid_from) > _naive_utc(valid_to):
            raise ValidationError({"valid_to": ["Coupon validity must end after it starts"]})
        if usage_limit is not None and usage_limit < UNLIMITED:
            raise ValidationError({"usage_limit": ["Usage limit must be -1 (unlimited) or a positive count"]})

        coupon = cls(
            code=code,
            percent_off=percent_off,
            minimum_cart_value=minimum_cart_value,
            valid_from=valid_from,
            valid_to=valid_to,
            usage_limit=UNLIMITED if usage_limit is None else usage_limit,
            is_active=True,
            used_count=0,
        )
        coupon.raise_(
            CouponCreated(
                code=code,
                percent_off=percent_off,
                minimum_cart_value=minimum_cart_value,
            )
        )
        return coupon

    def policy(self) -> DiscountPolicy:
        return DiscountPolicy(minimum_cart_value=self.minimum_cart_value, percent_off=self.percent_off)

    def assert_redeemable(self, now=None):
        now = _naive_utc(now or datetime.now(UTC))
        if not self.is_active:
            raise ValidationError({"coupon_code": ["Coupon is not active"]})
        if now < _naive_utc(self.valid_from) or now > _naive_utc(self.valid_to):
            raise ValidationError({"coupon_code": ["Coupon is not valid"]})
        if self.usage_limit != UNLIMITED and self.used_count >= self.usage_limit:
            raise ValidationError({"coupon_code": ["Coupon usage limit reached"]})

    def record_redemption(self):
        self.assert_redeemable()
        self.used_count = (self.used_count or 0) + 1
        self.raise_(CouponRedeemed(code=self.code, used_count=self.used_count))

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"coupon_code": ["Coupon is already inactive"]})
        self.is_active = False
        self.raise_(CouponDeactivated(code=self.code))


def find_redeemable_coupon(coupon_code, now=None):
    """Return the redeemable coupon for a code, or raise ValidationError."""
    code = normalize_code(coupon_code)
    try:
        coupon = current_domain.repository_for(Coupon).get(code)
    except ObjectNotFoundError:
        raise ValidationError({"coupon_code": ["Invalid coupon code"]})
    coupon.assert_redeemable(now)
    return coupon


def resolve_discount_policy(coupon_code, now=None) -> DiscountPolicy:
    if not normalize_code(coupon_code):
        return DiscountPolicy.none()
    return find_redeemable_coupon(coupon_code, now).policy()


@marketplace.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    percent_off = Float(required=True)
    minimum_cart_value = Float(required=True)
    valid_from = DateTime(required=True)
    valid_to = DateTime(required=True)
    usage_limit = Integer(default=UNLIMITED)


@marketplace.command(part_of="Coupon")
class DeactivateCoupon:
    code = String(required=True, max_length=50)


@marketplace.command_handler(part_of=Coupon)
class CouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        coupon = Coupon.create(
            code=command.code,
            percent_off=command.percent_off,
            minimum_cart_value=command.minimum_cart_value,
            valid_from=command.valid_from,
            valid_to=command.valid_to,
            usage_limit=command.usage_limit,
        )
        current_domain.repository_for(Coupon).add(coupon)
        return coupon.code

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(normalize_code(command.code))
        coupon.deactivate()
        repo.add(coupon)
