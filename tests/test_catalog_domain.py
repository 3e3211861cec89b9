"""
Тесты доменной модели каталога отелей.
"""

from decimal import Decimal
from uuid import uuid4

import pydantic
import pytest

from catalog.domain import (
    APPROVED,
    PENDING,
    PUBLISHED,
    REJECTED,
    Hotel,
    HotelAction,
    HotelApproved,
    HotelContent,
    HotelDeleted,
    HotelPolicy,
    HotelRejected,
    HotelSubmitted,
    HotelUpdate,
    PublishStatus,
    ReviewStatus,
    next_hotel_state,
)
from shared_kernel import PolicyViolationError, StateConflictError, ValidationError


def make_hotel() -> Hotel:
    content = HotelContent(
        name="Морской бриз",
        address="Санья, Бэй-роуд, 8",
        star=5,
        price=Decimal("500"),
    )
    hotel = Hotel.create(merchant_id=uuid4(), content=content)
    hotel.clear_events()
    return hotel


def approved_hotel() -> Hotel:
    hotel = make_hotel()
    hotel.approve()
    hotel.clear_events()
    return hotel


def published_hotel() -> Hotel:
    hotel = approved_hotel()
    hotel.publish()
    hotel.clear_events()
    return hotel


class TestHotelTransitions:
    """Тесты таблицы переходов."""

    def test_create_starts_pending(self):
        content = HotelContent(name="Отель", address="Адрес", star=3, price=100)
        hotel = Hotel.create(merchant_id=uuid4(), content=content)

        assert hotel.state == PENDING
        assert not hotel.is_bookable
        events = hotel.pull_domain_events()
        assert len(events) == 1
        assert isinstance(events[0], HotelSubmitted)
        assert events[0].resubmitted is False

    def test_approve_keeps_hotel_unpublished(self):
        hotel = make_hotel()

        hotel.approve()

        assert hotel.state == APPROVED
        assert isinstance(hotel.domain_events[0], HotelApproved)

    def test_publish_requires_approval(self):
        hotel = make_hotel()
        version = hotel.version

        with pytest.raises(StateConflictError):
            hotel.publish()

        assert hotel.state == PENDING
        assert hotel.version == version
        assert hotel.domain_events == []

    def test_publish_and_unpublish(self):
        hotel = approved_hotel()

        hotel.publish()
        assert hotel.state == PUBLISHED
        assert hotel.is_bookable

        hotel.unpublish()
        assert hotel.state == APPROVED

    def test_unpublish_requires_published(self):
        hotel = approved_hotel()

        with pytest.raises(StateConflictError):
            hotel.unpublish()

    def test_approve_only_from_pending(self):
        hotel = approved_hotel()

        with pytest.raises(StateConflictError):
            hotel.approve()

    def test_reject_requires_reason(self):
        hotel = make_hotel()

        with pytest.raises(PolicyViolationError):
            hotel.reject("   ")

        assert hotel.state == PENDING
        assert hotel.reject_reason is None

    def test_reject_stores_reason(self):
        hotel = make_hotel()

        hotel.reject("Нет фотографий номеров")

        assert hotel.state == REJECTED
        assert hotel.reject_reason == "Нет фотографий номеров"
        event = hotel.domain_events[0]
        assert isinstance(event, HotelRejected)
        assert event.reason == "Нет фотографий номеров"

    def test_reject_from_wrong_state_is_conflict(self):
        hotel = published_hotel()

        with pytest.raises(StateConflictError):
            hotel.reject("поздно")

    @pytest.mark.parametrize(
        "state, action",
        [
            (PENDING, HotelAction.UNPUBLISH),
            (REJECTED, HotelAction.PUBLISH),
            (REJECTED, HotelAction.APPROVE),
            (PUBLISHED, HotelAction.PUBLISH),
        ],
    )
    def test_missing_transitions_raise(self, state, action):
        with pytest.raises(StateConflictError):
            next_hotel_state(state, action)

    def test_published_requires_approved(self):
        with pytest.raises(pydantic.ValidationError):
            Hotel(
                merchant_id=uuid4(),
                name="Отель",
                address="Адрес",
                star=3,
                price=100,
                review_status=ReviewStatus.PENDING,
                publish_status=PublishStatus.PUBLISHED,
            )


class TestHotelEdit:
    """Тесты редактирования отеля."""

    def test_merchant_edit_of_published_hotel_resubmits(self):
        hotel = published_hotel()

        resubmitted = hotel.edit(HotelUpdate(price=Decimal("600")), resubmit=True)

        assert resubmitted is True
        assert hotel.state == PENDING
        assert hotel.price == Decimal("600")
        event = hotel.domain_events[0]
        assert isinstance(event, HotelSubmitted)
        assert event.resubmitted is True

    def test_merchant_edit_of_rejected_hotel_clears_reason(self):
        hotel = make_hotel()
        hotel.reject("Неверный адрес")

        hotel.edit(HotelUpdate(address="Санья, Бэй-роуд, 10"), resubmit=True)

        assert hotel.state == PENDING
        assert hotel.reject_reason is None

    def test_edit_of_pending_hotel_stays_pending(self):
        hotel = make_hotel()

        resubmitted = hotel.edit(HotelUpdate(star=4), resubmit=True)

        assert resubmitted is False
        assert hotel.state == PENDING
        assert hotel.star == 4

    def test_admin_edit_keeps_statuses(self):
        hotel = published_hotel()

        resubmitted = hotel.edit(HotelUpdate(tags=["пляж"]), resubmit=False)

        assert resubmitted is False
        assert hotel.state == PUBLISHED
        assert hotel.tags == ["пляж"]

    def test_update_rejects_status_fields(self):
        with pytest.raises(pydantic.ValidationError):
            HotelUpdate.model_validate({"review_status": "approved"})

        with pytest.raises(pydantic.ValidationError):
            HotelUpdate.model_validate({"merchant_id": str(uuid4())})

    def test_required_field_cannot_be_cleared(self):
        hotel = make_hotel()

        with pytest.raises(ValidationError):
            hotel.edit(HotelUpdate(name=None), resubmit=True)

    def test_only_passed_fields_change(self):
        update = HotelUpdate(name="Новое имя")

        assert update.changes() == {"name": "Новое имя"}


class TestHotelDeletion:
    """Тесты удаления отеля."""

    def test_withdraw_unpublishes(self):
        hotel = published_hotel()

        hotel.withdraw()

        assert hotel.state == APPROVED
        events = hotel.domain_events
        assert isinstance(events[-1], HotelDeleted)
        assert events[-1].hard is False

    def test_withdraw_unpublished_hotel_is_noop(self):
        hotel = make_hotel()

        hotel.withdraw()

        assert hotel.state == PENDING


class TestHotelPolicy:
    """Тесты правил оформления карточки."""

    def test_too_many_images(self):
        policy = HotelPolicy(max_images=10)

        with pytest.raises(ValidationError):
            policy.validate_images([f"/uploads/{i}.jpg" for i in range(11)])

    def test_image_prefix(self):
        policy = HotelPolicy()

        with pytest.raises(ValidationError):
            policy.validate_images(["http://example.com/a.jpg"])

    def test_valid_images(self):
        HotelPolicy().validate_images(["/uploads/a.jpg", "/uploads/b.jpg"])
        HotelPolicy().validate_images(None)
