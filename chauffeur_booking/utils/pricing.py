from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from chauffeur_booking.models.enums import BookingType

CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    net_total: Decimal
    platform_customer_service_fee_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    platform_fleet_owner_commission_amount: Decimal
    fleet_owner_payout_amount_net: Decimal

    def as_columns(self):
        return {
            "net_total": self.net_total,
            "platform_customer_service_fee_amount": self.platform_customer_service_fee_amount,
            "vat_amount": self.vat_amount,
            "total_amount": self.total_amount,
            "platform_fleet_owner_commission_amount": self.platform_fleet_owner_commission_amount,
            "fleet_owner_payout_amount_net": self.fleet_owner_payout_amount_net,
        }


def price_from_net(net_total: Decimal, rates) -> PriceBreakdown:
    """Customer fee and VAT stack on top of net; commission comes out of net."""
    net_total = Decimal(net_total)

    service_fee = net_total * rates.platform_fee_rate_percent / 100
    subtotal = net_total + service_fee
    vat = subtotal * rates.vat_rate_percent / 100
    total = subtotal + vat

    commission = net_total * rates.commission_rate_percent / 100
    payout = net_total - commission

    return PriceBreakdown(
        net_total=_money(net_total),
        platform_customer_service_fee_amount=_money(service_fee),
        vat_amount=_money(vat),
        total_amount=_money(total),
        platform_fleet_owner_commission_amount=_money(commission),
        fleet_owner_payout_amount_net=_money(payout),
    )


def calculate_extension_price(car, hours: int, rates) -> PriceBreakdown:
    return price_from_net(Decimal(car.hourly_rate) * hours, rates)


def rate_for_booking_type(car, booking_type: BookingType) -> Decimal:
    if booking_type == BookingType.DAY:
        return Decimal(car.day_rate)
    if booking_type == BookingType.NIGHT:
        return Decimal(car.night_rate)
    return Decimal(car.airport_pickup_rate)


def calculate_booking_price(car, booking_type: BookingType, number_of_legs: int, rates) -> PriceBreakdown:
    # flat rate per leg
    return price_from_net(rate_for_booking_type(car, booking_type) * number_of_legs, rates)
