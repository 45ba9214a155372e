import importlib
import os
import sys
from datetime import datetime

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from marketplace.errors import (
    MarketplaceConflictError,
    MarketplaceNotFoundError,
    MarketplaceValidationError,
)
from marketplace.models import (
    AcceptQuoteForService,
    CreateQuote,
    CreateSupplyOffer,
    DeleteQuote,
    OfferItem,
    Quote,
    ServiceQuery,
    SetServiceStatus,
    SupplyOffer,
    UpdateQuote,
    UpdateSupplyOffer,
)
from marketplace.services.state_store import MarketplaceStore, create_store
from marketplace.services.views import filter_services


def _quote(quote_id: str, service_id: str, provider_id: str) -> Quote:
    return Quote(
        id=quote_id,
        service_id=service_id,
        provider_id=provider_id,
        total_price=1500,
        duration_days=2,
        created_at=datetime(2024, 2, 1),
    )


def _by_id(items, item_id):
    return next(item for item in items if item.id == item_id)


def test_dispatch_publishes_and_notifies_listeners():
    store = create_store(strict=False)
    seen = []
    unsubscribe = store.subscribe(seen.append)

    updated = store.dispatch(SetServiceStatus(service_id="1", status="UNDER_REVIEW"))

    assert store.state is updated
    assert _by_id(store.state.services, "1").status == "UNDER_REVIEW"
    assert seen == [updated]

    unsubscribe()
    store.dispatch(SetServiceStatus(service_id="1", status="PUBLISHED"))
    assert len(seen) == 1


def test_permissive_store_allows_duplicate_quotes():
    store = create_store(strict=False)

    store.dispatch(CreateQuote(quote=_quote("dup", "1", "2")))

    assert [q.id for q in store.state.quotes if q.service_id == "1" and q.provider_id == "2"] == ["1", "dup"]


def test_strict_store_rejects_second_quote_from_same_provider():
    store = create_store(strict=True)
    before = store.state

    with pytest.raises(MarketplaceConflictError):
        store.dispatch(CreateQuote(quote=_quote("dup", "1", "2")))

    assert store.state is before


def test_strict_store_accepts_valid_quote():
    store = create_store(strict=True)

    store.dispatch(CreateQuote(quote=_quote("new", "4", "2")))

    assert "new" in _by_id(store.state.services, "4").quote_ids


def test_strict_store_rejects_quote_on_closed_or_own_service():
    store = create_store(strict=True)

    with pytest.raises(MarketplaceConflictError):
        store.dispatch(CreateQuote(quote=_quote("late", "3", "2")))
    with pytest.raises(MarketplaceValidationError):
        store.dispatch(CreateQuote(quote=_quote("bad", "missing", "2")))
    with pytest.raises(MarketplaceValidationError):
        store.dispatch(CreateQuote(quote=_quote("bad", "4", "1")))


def test_strict_store_rejects_inconsistent_accept():
    store = create_store(strict=True)
    before = store.state

    with pytest.raises(MarketplaceValidationError):
        store.dispatch(AcceptQuoteForService(service_id="1", quote_id="3"))
    with pytest.raises(MarketplaceNotFoundError):
        store.dispatch(AcceptQuoteForService(service_id="1", quote_id="missing"))
    with pytest.raises(MarketplaceConflictError):
        store.dispatch(AcceptQuoteForService(service_id="3", quote_id="5"))

    assert store.state is before


def test_strict_store_locks_quotes_on_assigned_services():
    store = create_store(strict=True)

    with pytest.raises(MarketplaceConflictError):
        store.dispatch(DeleteQuote(quote_id="5"))
    with pytest.raises(MarketplaceConflictError):
        store.dispatch(UpdateQuote(id="4", total_price=1))
    with pytest.raises(MarketplaceNotFoundError):
        store.dispatch(UpdateQuote(id="missing", notes="x"))
    with pytest.raises(MarketplaceValidationError):
        store.dispatch(UpdateQuote(id="1", status="ACCEPTED"))


def test_strict_store_guards_assigned_status():
    store = create_store(strict=True)

    with pytest.raises(MarketplaceConflictError):
        store.dispatch(SetServiceStatus(service_id="1", status="ASSIGNED"))
    with pytest.raises(MarketplaceConflictError):
        store.dispatch(SetServiceStatus(service_id="3", status="PUBLISHED"))

    store.dispatch(SetServiceStatus(service_id="3", status="COMPLETED"))
    service = _by_id(store.state.services, "3")
    assert service.status == "COMPLETED"
    assert service.selected_quote_id == "4"


def test_strict_store_validates_packs():
    store = create_store(strict=True)
    offer = SupplyOffer(
        id="P9",
        name="Unknown pack",
        provider_id="3",
        total_price=100,
        items=[OfferItem(supply_id="404", quantity=1)],
        created_at=datetime(2024, 2, 1),
    )

    with pytest.raises(MarketplaceValidationError):
        store.dispatch(CreateSupplyOffer(offer=offer))
    with pytest.raises(MarketplaceValidationError):
        store.dispatch(CreateSupplyOffer(offer=offer.model_copy(update={"items": [], "id": "P10"})))
    twice = [OfferItem(supply_id="1", quantity=1), OfferItem(supply_id="1", quantity=2)]
    with pytest.raises(MarketplaceValidationError):
        store.dispatch(CreateSupplyOffer(offer=offer.model_copy(update={"items": twice, "id": "P11"})))
    with pytest.raises(MarketplaceValidationError):
        store.dispatch(UpdateSupplyOffer(id="1", items=twice))

    good = offer.model_copy(update={"items": [OfferItem(supply_id="1", quantity=2)]})
    store.dispatch(CreateSupplyOffer(offer=good))
    assert _by_id(store.state.supply_offers, "P9").items[0].supply_id == "1"


def test_accept_through_store_keeps_invariant():
    store = create_store(strict=True)

    store.dispatch(AcceptQuoteForService(service_id="1", quote_id="2"))

    service = _by_id(store.state.services, "1")
    assert (service.status, service.selected_quote_id) == ("ASSIGNED", "2")
    assert _by_id(store.state.quotes, "1").status == "REJECTED"
    assert _by_id(store.state.quotes, "2").status == "ACCEPTED"


def test_dispatch_raw_ignores_unknown_kinds():
    store = create_store()
    before = store.state

    assert store.dispatch_raw({"kind": "launch_rocket", "payload": 1}) is before
    assert store.dispatch_raw({}) is before


def test_dispatch_raw_parses_known_kinds():
    store = create_store()

    store.dispatch_raw({"kind": "set_service_status", "service_id": "1", "status": "UNDER_REVIEW"})
    assert _by_id(store.state.services, "1").status == "UNDER_REVIEW"

    with pytest.raises(ValidationError):
        store.dispatch_raw({"kind": "create_quote", "quote": {"id": "x"}})


def test_login_and_logout():
    store = create_store()

    user = store.login("provider@test.com", "123456")
    assert store.state.current_user == user

    store.logout()
    assert store.state.current_user is None

    with pytest.raises(MarketplaceNotFoundError):
        store.login("provider@test.com", "nope")

    assert store.login_as("SUPPLY_PROVIDER", email="supplies2@test.com").id == "4"


def test_empty_store_starts_without_data():
    store = MarketplaceStore()
    assert store.state.services == []
    assert store.state.current_user is None


def test_strict_mode_env_flag(monkeypatch):
    monkeypatch.setenv("MARKETPLACE_STRICT_ACTIONS", "yes")
    sys.modules.pop("marketplace.services.state_store", None)
    state_store = importlib.import_module("marketplace.services.state_store")
    assert state_store.STRICT_ACTIONS is True
    assert state_store.MarketplaceStore().strict is True
    assert state_store.MarketplaceStore(strict=False).strict is False


def test_recent_limit_invalid_env_falls_back(monkeypatch):
    monkeypatch.setenv("MARKETPLACE_RECENT_LIMIT", "not-a-number")
    sys.modules.pop("marketplace.services.views", None)
    views = importlib.import_module("marketplace.services.views")
    assert views.RECENT_SERVICES_LIMIT == 3

    monkeypatch.setenv("MARKETPLACE_RECENT_LIMIT", "0")
    sys.modules.pop("marketplace.services.views", None)
    views = importlib.import_module("marketplace.services.views")
    assert views.RECENT_SERVICES_LIMIT == 3


def test_dispatch_raw_rejects_cleared_title_and_keeps_views_working():
    store = create_store(strict=True)
    before = store.state

    with pytest.raises(ValidationError):
        store.dispatch_raw({"kind": "update_service", "id": "1", "title": None})

    assert store.state is before
    assert "1" in [service.id for service in filter_services(store.state.services, ServiceQuery(text="house"))]
