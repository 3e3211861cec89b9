"""
Доменная модель контекста ценообразования.

Расчет стоимости проживания: базовая цена, последовательное применение
скидок (акция отеля -> скидка участника программы лояльности -> купон)
и списание баллов.
"""

from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from shared_kernel import CENT, Amount, ValidationError, round_money, to_decimal


class MemberLevel(str, Enum):
    """Уровни участника программы лояльности (по возрастанию)."""

    ORDINARY = "ordinary"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"

    @property
    def rank(self) -> int:
        return list(MemberLevel).index(self)


class DiscountType(str, Enum):
    """Типы скидок в порядке применения."""

    PROMOTION = "promotion"  # Акция отеля
    MEMBER = "member"  # Скидка участника
    COUPON = "coupon"  # Купон на фиксированную сумму


class AppliedDiscount(BaseModel):
    """Примененная скидка и сэкономленная сумма."""

    type: DiscountType
    rate: Optional[Decimal] = None
    face_value: Optional[Decimal] = None
    saved: Decimal


class PriceBreakdown(BaseModel):
    """Результат расчета стоимости."""

    original_total: Decimal
    final_total: Decimal
    total_discount: Decimal
    applied_discounts: List[AppliedDiscount] = Field(default_factory=list)
    nights: int
    rooms: int
    average_per_night: Decimal


class PointsRedemption(BaseModel):
    """Информация о возможном списании баллов."""

    can_use_points: bool
    max_deductible_points: int
    max_deductible_amount: Decimal
    actual_deductible_amount: Decimal
    used_points: int
    remaining_points: int


class PriceCalculator:
    """Калькулятор стоимости проживания."""

    MEMBER_DISCOUNTS: Dict[MemberLevel, Decimal] = {
        MemberLevel.ORDINARY: Decimal("1"),
        MemberLevel.SILVER: Decimal("0.98"),
        MemberLevel.GOLD: Decimal("0.95"),
        MemberLevel.PLATINUM: Decimal("0.92"),
        MemberLevel.DIAMOND: Decimal("0.88"),
    }
    POINTS_PER_UNIT = 100  # 100 баллов = 1 денежная единица
    MIN_REDEEMABLE_POINTS = 100
    MAX_POINTS_RATIO = Decimal("0.3")  # Не более 30% суммы заказа

    @classmethod
    def calculate_total(
        cls,
        base_price: Amount,
        nights: int = 1,
        rooms: int = 1,
        discount: Optional[Amount] = None,
        member_discount: Optional[Amount] = None,
        coupon_amount: Amount = 0,
    ) -> PriceBreakdown:
        """Рассчитывает итоговую стоимость с учетом скидок.

        Скидки применяются строго в порядке: акция -> участник -> купон.
        Сэкономленная сумма каждой скидки считается от промежуточного итога
        перед этим шагом.
        """
        price = to_decimal(base_price)
        coupon = to_decimal(coupon_amount or 0)
        if price < 0:
            raise ValidationError("Цена не может быть отрицательной")
        if nights < 1 or rooms < 1:
            raise ValidationError("Количество ночей и номеров должно быть не меньше 1")
        if coupon < 0:
            raise ValidationError("Сумма купона не может быть отрицательной")

        original_total = price * nights * rooms
        running = original_total
        applied: List[AppliedDiscount] = []

        rate = cls._valid_rate(discount)
        if rate is not None:
            before = running
            running = running * rate
            applied.append(
                AppliedDiscount(
                    type=DiscountType.PROMOTION,
                    rate=rate,
                    saved=round_money(before - running),
                )
            )

        rate = cls._valid_rate(member_discount)
        if rate is not None:
            before = running
            running = running * rate
            applied.append(
                AppliedDiscount(
                    type=DiscountType.MEMBER,
                    rate=rate,
                    saved=round_money(before - running),
                )
            )

        if coupon > 0:
            before = running
            running = max(Decimal("0"), running - coupon)
            applied.append(
                AppliedDiscount(
                    type=DiscountType.COUPON,
                    face_value=round_money(coupon),
                    saved=round_money(before - running),
                )
            )

        original = round_money(original_total)
        final = round_money(running)
        return PriceBreakdown(
            original_total=original,
            final_total=final,
            # Разность округленных сумм: итог + скидка всегда равны исходной цене
            total_discount=original - final,
            applied_discounts=applied,
            nights=nights,
            rooms=rooms,
            average_per_night=round_money(running / nights),
        )

    @classmethod
    def get_member_discount(cls, level: Union[MemberLevel, str, None]) -> Decimal:
        """Возвращает множитель скидки для уровня участника (1 для неизвестного)."""
        try:
            member_level = MemberLevel(level)
        except ValueError:
            return Decimal("1")
        return cls.MEMBER_DISCOUNTS.get(member_level, Decimal("1"))

    @classmethod
    def calculate_points_discount(
        cls, points: int, total_amount: Amount
    ) -> PointsRedemption:
        """Рассчитывает, сколько можно списать баллами."""
        total = to_decimal(total_amount)
        if points < 0:
            raise ValidationError("Количество баллов не может быть отрицательным")
        if total < 0:
            raise ValidationError("Сумма заказа не может быть отрицательной")

        max_units = points // cls.POINTS_PER_UNIT
        # Предел в 30% усекается до копеек, чтобы не превысить его при округлении
        allowed = (total * cls.MAX_POINTS_RATIO).quantize(CENT, rounding=ROUND_DOWN)
        actual = min(Decimal(max_units), allowed)
        used_points = int(actual * cls.POINTS_PER_UNIT)

        return PointsRedemption(
            can_use_points=points >= cls.MIN_REDEEMABLE_POINTS,
            max_deductible_points=max_units * cls.POINTS_PER_UNIT,
            max_deductible_amount=Decimal(max_units),
            actual_deductible_amount=round_money(actual),
            used_points=used_points,
            remaining_points=points - used_points,
        )

    @staticmethod
    def _valid_rate(rate: Optional[Amount]) -> Optional[Decimal]:
        if rate is None:
            return None
        value = to_decimal(rate)
        if Decimal("0") < value < Decimal("1"):
            return value
        return None
