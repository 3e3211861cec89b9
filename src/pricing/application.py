"""
Прикладной слой контекста ценообразования.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from shared_kernel import ILogger, StructuredLogger

from .domain import PointsRedemption, PriceBreakdown, PriceCalculator

# DTO для входящих данных


class CalculatePriceRequest(BaseModel):
    """Запрос на расчет стоимости."""

    base_price: Decimal = Field(..., ge=0)
    nights: int = Field(1, ge=1)
    rooms: int = Field(1, ge=1)
    discount: Optional[Decimal] = None
    member_discount: Optional[Decimal] = None
    coupon_amount: Decimal = Field(Decimal("0"), ge=0)


class PointsDiscountRequest(BaseModel):
    """Запрос на расчет списания баллов."""

    points: int = Field(..., ge=0)
    total_amount: Decimal = Field(..., ge=0)


# Сервисы приложения


class PricingApplicationService:
    """Сервис приложения для расчета цен."""

    def __init__(self, logger: Optional[ILogger] = None):
        self._logger = logger or StructuredLogger("hotel_booking.pricing")

    def calculate_price(self, request: CalculatePriceRequest) -> PriceBreakdown:
        """Рассчитывает стоимость проживания."""
        breakdown = PriceCalculator.calculate_total(
            request.base_price,
            nights=request.nights,
            rooms=request.rooms,
            discount=request.discount,
            member_discount=request.member_discount,
            coupon_amount=request.coupon_amount,
        )
        self._logger.debug(
            "Price calculated",
            original_total=breakdown.original_total,
            final_total=breakdown.final_total,
        )
        return breakdown

    def calculate_points_discount(
        self, request: PointsDiscountRequest
    ) -> PointsRedemption:
        """Рассчитывает возможное списание баллов."""
        return PriceCalculator.calculate_points_discount(
            request.points, request.total_amount
        )
