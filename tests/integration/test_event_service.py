"""
Integration tests for EventService on SQLite.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from hatch_api.domain.events import EventCreate, EventStatus, EventUpdate
from hatch_api.domain.tiers import Tier
from hatch_api.infrastructure.exceptions import ForbiddenError, NotFoundError, UnknownTierError
from hatch_api.infrastructure.services.event_service import EventService


@pytest.fixture
def service(session):
    return EventService(session)


@pytest.fixture
async def catalog(event_factory, now):
    return {
        "free": await event_factory(now + timedelta(days=3), title="Open Hack Night"),
        "explorer": await event_factory(now + timedelta(days=1), Tier.EXPLORER, title="Explorer Workshop"),
        "professional": await event_factory(now + timedelta(days=2), Tier.PROFESSIONAL, title="Pro Summit"),
        "draft": await event_factory(now + timedelta(days=4), status=EventStatus.DRAFT, title="Draft Meetup"),
        "past": await event_factory(now - timedelta(days=1), title="Last Week Meetup"),
    }


class TestListVisible:

    async def test_free_user_listing(self, service, catalog, now):
        events = await service.list_visible("free", now=now)
        assert [e.title for e in events] == ["Last Week Meetup", "Open Hack Night"]

    async def test_professional_listing_upcoming(self, service, catalog, now):
        events = await service.list_visible("professional", upcoming_only=True, now=now)
        assert [e.title for e in events] == ["Explorer Workshop", "Pro Summit", "Open Hack Night"]

    async def test_search_and_limit(self, service, catalog, now):
        events = await service.list_visible("professional", search="summit", now=now)
        assert [e.title for e in events] == ["Pro Summit"]
        assert len(await service.list_visible("professional", limit=2, now=now)) == 2

    async def test_admin_sees_drafts(self, service, catalog, now):
        events = await service.list_visible("free", is_admin=True, now=now)
        assert "Draft Meetup" in [e.title for e in events]

    async def test_unknown_tier_filter(self, service, catalog, now):
        with pytest.raises(UnknownTierError):
            await service.list_visible("free", tier_filter="gold", now=now)


class TestGetVisible:

    async def test_accessible_event(self, service, catalog):
        event = await service.get_visible(catalog["explorer"].id, "professional")
        assert event.title == "Explorer Workshop"

    async def test_higher_tier_forbidden(self, service, catalog):
        with pytest.raises(ForbiddenError) as exc_info:
            await service.get_visible(catalog["professional"].id, "free")
        assert exc_info.value.details["upgrade_needed"] == "professional"

    async def test_draft_hidden_from_users(self, service, catalog):
        with pytest.raises(NotFoundError):
            await service.get_visible(catalog["draft"].id, "professional")

    async def test_draft_visible_to_admin(self, service, catalog):
        event = await service.get_visible(catalog["draft"].id, "free", is_admin=True)
        assert event.status == EventStatus.DRAFT.value

    async def test_missing_event(self, service):
        with pytest.raises(NotFoundError):
            await service.get_visible(uuid4(), "professional")


class TestAdminCrud:

    async def test_create_normalizes_tier(self, service, now):
        data = EventCreate(
            title="  Founders Breakfast ",
            required_tier="premium_149",
            event_date=now + timedelta(days=5),
            registration_link="https://example.com/rsvp",
            tags=["startups"],
        )

        event = await service.create(data, admin_id=uuid4())

        assert event.title == "Founders Breakfast"
        assert event.required_tier == "professional"
        assert event.status == EventStatus.DRAFT.value
        assert event.registration_link == "https://example.com/rsvp"

    async def test_update_and_publish(self, service, event_factory, now):
        event = await event_factory(now + timedelta(days=1), status=EventStatus.DRAFT)

        updated = await service.update(
            event.id,
            EventUpdate(status=EventStatus.PUBLISHED, required_tier="explorer"),
            admin_id=uuid4(),
        )

        assert updated.status == EventStatus.PUBLISHED.value
        assert updated.required_tier == Tier.EXPLORER.value

    @pytest.mark.parametrize("field", ["title", "event_date", "status", "required_tier"])
    def test_update_rejects_null_for_required_columns(self, field):
        with pytest.raises(PydanticValidationError):
            EventUpdate(**{field: None})

    async def test_update_can_clear_optional_fields(self, service, event_factory, now):
        event = await event_factory(now + timedelta(days=1), location="Hall A", title="Demo Day")

        updated = await service.update(event.id, EventUpdate(location=None), admin_id=uuid4())

        assert updated.location is None
        assert updated.title == "Demo Day"

    async def test_update_missing(self, service):
        with pytest.raises(NotFoundError):
            await service.update(uuid4(), EventUpdate(title="Anything"), admin_id=uuid4())

    async def test_delete(self, service, event_factory, now):
        event = await event_factory(now + timedelta(days=1))
        await service.delete(event.id, admin_id=uuid4())

        with pytest.raises(NotFoundError):
            await service.delete(event.id, admin_id=uuid4())

    async def test_list_all_newest_first(self, service, event_factory, now):
        older = await event_factory(now + timedelta(days=1), created_at=now - timedelta(days=2), title="Older")
        newer = await event_factory(now + timedelta(days=9), created_at=now, title="Newer")

        events = await service.list_all()

        assert [e.id for e in events] == [newer.id, older.id]
