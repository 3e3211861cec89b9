"""
Тесты сервиса приложения каталога отелей.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from catalog.application import (
    CatalogApplicationService,
    ListHotelsRequest,
    PublishAction,
    ReviewAction,
    ReviewHotelRequest,
    TogglePublishRequest,
)
from catalog.domain import (
    PENDING,
    Hotel,
    HotelApproved,
    HotelUpdate,
    PublishStatus,
    ReviewStatus,
)
from catalog.infrastructure import CatalogUnitOfWork, InMemoryHotelRepository
from shared_kernel import (
    AuthorizationError,
    ConcurrencyError,
    NotFoundError,
    PolicyViolationError,
    StateConflictError,
    ValidationError,
)

from conftest import hotel_request


@pytest.fixture
def uow():
    return CatalogUnitOfWork()


@pytest.fixture
def service(uow, settings):
    return CatalogApplicationService(uow, settings=settings)


APPROVE = ReviewHotelRequest(action=ReviewAction.APPROVE)
PUBLISH = TogglePublishRequest(action=PublishAction.PUBLISH)
UNPUBLISH = TogglePublishRequest(action=PublishAction.UNPUBLISH)


class TestCreateHotel:
    """Тесты создания отеля."""

    def test_merchant_creates_pending_hotel(self, service, uow, merchant):
        hotel = service.create_hotel(merchant, hotel_request())

        assert hotel.merchant_id == merchant.user_id
        assert hotel.review_status == ReviewStatus.PENDING
        assert hotel.publish_status == PublishStatus.UNPUBLISHED
        assert uow.hotels.get_by_id(hotel.id) is not None

    @pytest.mark.parametrize("role_fixture", ["admin", "end_user"])
    def test_only_merchant_can_create(self, service, request, role_fixture):
        identity = request.getfixturevalue(role_fixture)

        with pytest.raises(AuthorizationError):
            service.create_hotel(identity, hotel_request())

    def test_images_are_validated(self, service, merchant):
        with pytest.raises(ValidationError):
            service.create_hotel(merchant, hotel_request(images=["/tmp/x.jpg"]))


class TestReviewAndPublish:
    """Тесты модерации и публикации."""

    def test_full_lifecycle(self, service, merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())

        approved = service.review_hotel(admin, hotel.id, APPROVE)
        assert approved.review_status == ReviewStatus.APPROVED
        assert approved.publish_status == PublishStatus.UNPUBLISHED

        published = service.toggle_publish(merchant, hotel.id, PUBLISH)
        assert published.publish_status == PublishStatus.PUBLISHED

        unpublished = service.toggle_publish(admin, hotel.id, UNPUBLISH)
        assert unpublished.publish_status == PublishStatus.UNPUBLISHED

    def test_publish_pending_hotel_conflicts(self, service, uow, merchant):
        hotel = service.create_hotel(merchant, hotel_request())

        with pytest.raises(StateConflictError):
            service.toggle_publish(merchant, hotel.id, PUBLISH)

        assert uow.hotels.get_by_id(hotel.id).state == PENDING

    def test_merchant_cannot_review(self, service, merchant):
        hotel = service.create_hotel(merchant, hotel_request())

        with pytest.raises(AuthorizationError):
            service.review_hotel(merchant, hotel.id, APPROVE)

    def test_reject_without_reason(self, service, uow, merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())

        with pytest.raises(PolicyViolationError):
            service.review_hotel(
                admin, hotel.id, ReviewHotelRequest(action=ReviewAction.REJECT)
            )

        assert uow.hotels.get_by_id(hotel.id).state == PENDING

    def test_reject_with_reason(self, service, merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())

        rejected = service.review_hotel(
            admin,
            hotel.id,
            ReviewHotelRequest(action=ReviewAction.REJECT, reject_reason="Мало фото"),
        )

        assert rejected.review_status == ReviewStatus.REJECTED
        assert rejected.reject_reason == "Мало фото"

    def test_foreign_merchant_cannot_publish(self, service, merchant, other_merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())
        service.review_hotel(admin, hotel.id, APPROVE)

        with pytest.raises(AuthorizationError):
            service.toggle_publish(other_merchant, hotel.id, PUBLISH)

    def test_unknown_hotel(self, service, admin):
        with pytest.raises(NotFoundError):
            service.review_hotel(admin, uuid4(), APPROVE)

    def test_events_published_after_commit(self, service, uow, merchant, admin):
        received = []
        uow.event_bus.subscribe(HotelApproved, received.append)
        hotel = service.create_hotel(merchant, hotel_request())

        service.review_hotel(admin, hotel.id, APPROVE)

        assert len(received) == 1
        assert received[0].hotel_id == hotel.id

    def test_failed_transition_publishes_nothing(self, service, uow, merchant, admin):
        received = []
        uow.event_bus.subscribe(HotelApproved, received.append)
        hotel = service.create_hotel(merchant, hotel_request())
        service.review_hotel(admin, hotel.id, APPROVE)

        with pytest.raises(StateConflictError):
            service.review_hotel(admin, hotel.id, APPROVE)

        assert len(received) == 1


class TestEditHotel:
    """Тесты редактирования отеля."""

    def test_merchant_edit_resubmits_published_hotel(self, service, merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())
        service.review_hotel(admin, hotel.id, APPROVE)
        service.toggle_publish(merchant, hotel.id, PUBLISH)

        result = service.edit_hotel(merchant, hotel.id, {"price": "650"})

        assert result.resubmitted is True
        assert result.hotel.price == Decimal("650")
        assert result.hotel.review_status == ReviewStatus.PENDING
        assert result.hotel.publish_status == PublishStatus.UNPUBLISHED

    def test_admin_edit_keeps_statuses(self, service, merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())
        service.review_hotel(admin, hotel.id, APPROVE)

        result = service.edit_hotel(admin, hotel.id, HotelUpdate(star=5))

        assert result.resubmitted is False
        assert result.hotel.star == 5
        assert result.hotel.review_status == ReviewStatus.APPROVED

    def test_status_fields_are_not_editable(self, service, merchant):
        hotel = service.create_hotel(merchant, hotel_request())

        with pytest.raises(ValidationError):
            service.edit_hotel(merchant, hotel.id, {"review_status": "approved"})

    def test_foreign_merchant_cannot_edit(self, service, merchant, other_merchant):
        hotel = service.create_hotel(merchant, hotel_request())

        with pytest.raises(AuthorizationError):
            service.edit_hotel(other_merchant, hotel.id, {"name": "Чужой"})


class TestDeleteHotel:
    """Тесты удаления отеля."""

    def test_merchant_soft_delete(self, service, uow, merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())
        service.review_hotel(admin, hotel.id, APPROVE)
        service.toggle_publish(merchant, hotel.id, PUBLISH)

        result = service.delete_hotel(merchant, hotel.id)

        assert result.hard_deleted is False
        assert result.publish_status == PublishStatus.UNPUBLISHED
        stored = uow.hotels.get_by_id(hotel.id)
        assert stored is not None
        assert stored.publish_status == PublishStatus.UNPUBLISHED

    def test_merchant_soft_delete_is_idempotent(self, service, merchant):
        hotel = service.create_hotel(merchant, hotel_request())

        service.delete_hotel(merchant, hotel.id)
        result = service.delete_hotel(merchant, hotel.id)

        assert result.publish_status == PublishStatus.UNPUBLISHED

    def test_admin_hard_delete(self, service, uow, merchant, admin):
        hotel = service.create_hotel(merchant, hotel_request())

        result = service.delete_hotel(admin, hotel.id)

        assert result.hard_deleted is True
        assert uow.hotels.get_by_id(hotel.id) is None
        with pytest.raises(NotFoundError):
            service.get_hotel(admin, hotel.id)


class TestQueries:
    """Тесты списков и статистики."""

    def test_merchant_sees_only_own_hotels(self, service, merchant, other_merchant, admin):
        service.create_hotel(merchant, hotel_request(name="Первый"))
        service.create_hotel(other_merchant, hotel_request(name="Второй"))

        own = service.list_hotels(
            merchant, ListHotelsRequest(merchant_id=other_merchant.user_id)
        )
        everything = service.list_hotels(admin, ListHotelsRequest())

        assert [hotel.name for hotel in own.items] == ["Первый"]
        assert everything.pagination.total == 2

    def test_filter_by_status(self, service, merchant, admin):
        first = service.create_hotel(merchant, hotel_request(name="Первый"))
        service.create_hotel(merchant, hotel_request(name="Второй"))
        service.review_hotel(admin, first.id, APPROVE)

        page = service.list_hotels(
            admin, ListHotelsRequest(review_status=ReviewStatus.APPROVED)
        )

        assert [hotel.id for hotel in page.items] == [first.id]

    def test_page_size_is_clamped(self, service, admin):
        page = service.list_hotels(admin, ListHotelsRequest(page_size=500))

        assert page.pagination.page_size == 50
        assert page.pagination.total_pages == 0

    def test_statistics(self, service, merchant, other_merchant, admin):
        first = service.create_hotel(merchant, hotel_request())
        service.create_hotel(other_merchant, hotel_request())
        service.review_hotel(admin, first.id, APPROVE)
        service.toggle_publish(admin, first.id, PUBLISH)

        stats = service.get_statistics(admin)

        assert stats.total_hotels == 2
        assert stats.review_stats == {"pending": 1, "approved": 1, "rejected": 0}
        assert stats.publish_stats == {"unpublished": 1, "published": 1}
        assert stats.total_merchants == 2

    def test_statistics_for_admin_only(self, service, merchant):
        with pytest.raises(AuthorizationError):
            service.get_statistics(merchant)


class TestHotelRepository:
    """Тесты репозитория в памяти."""

    def test_stale_state_is_rejected(self, merchant):
        repo = InMemoryHotelRepository()
        hotel = Hotel.create(merchant.user_id, hotel_request())
        repo.add(hotel)

        first = repo.get_by_id(hotel.id)
        second = repo.get_by_id(hotel.id)
        first.approve()
        repo.save(first, expected_state=PENDING)

        second.reject("Дубликат")
        with pytest.raises(ConcurrencyError):
            repo.save(second, expected_state=PENDING)

        assert repo.get_by_id(hotel.id).review_status == ReviewStatus.APPROVED

    def test_stale_version_is_rejected(self, merchant):
        repo = InMemoryHotelRepository()
        hotel = Hotel.create(merchant.user_id, hotel_request())
        repo.add(hotel)

        edited = repo.get_by_id(hotel.id)
        stale = repo.get_by_id(hotel.id)
        edited.edit(HotelUpdate(price=Decimal("999")), resubmit=True)
        repo.save(edited, expected_state=PENDING, expected_version=1)

        stale.approve()
        with pytest.raises(ConcurrencyError):
            repo.save(stale, expected_state=PENDING, expected_version=1)

        stored = repo.get_by_id(hotel.id)
        assert stored.price == Decimal("999")
        assert stored.review_status == ReviewStatus.PENDING
        assert stored.version == 2

    def test_approve_from_stale_copy_fails_in_service(
        self, service, uow, merchant, admin, monkeypatch
    ):
        hotel = service.create_hotel(merchant, hotel_request())
        stale = uow.hotels.get_by_id(hotel.id)
        service.edit_hotel(merchant, hotel.id, {"price": "999"})

        with monkeypatch.context() as patch:
            patch.setattr(uow.hotels, "get_by_id", lambda hotel_id: stale)
            with pytest.raises(ConcurrencyError):
                service.review_hotel(admin, hotel.id, APPROVE)

        stored = uow.hotels.get_by_id(hotel.id)
        assert stored.price == Decimal("999")
        assert stored.review_status == ReviewStatus.PENDING

    def test_returns_copies(self, merchant):
        repo = InMemoryHotelRepository()
        hotel = Hotel.create(merchant.user_id, hotel_request())
        repo.add(hotel)

        loaded = repo.get_by_id(hotel.id)
        loaded.name = "Изменено без сохранения"

        assert repo.get_by_id(hotel.id).name == hotel.name
        assert loaded.domain_events == []
