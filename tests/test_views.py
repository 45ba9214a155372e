import os
import sys
from datetime import date, datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from marketplace.data.fixtures import initial_state
from marketplace.models import CatalogReference, FreeformLine, Quote, Service, ServiceQuery, User
from marketplace.services import views


def _user(user_id: str, role: str) -> User:
    return User(id=user_id, name=user_id, email=f"{user_id}@test.com", password="x", role=role)


def _service(service_id: str, requester_id: str, status: str = "PUBLISHED", **extra) -> Service:
    fields = {
        "title": f"Service {service_id}",
        "description": "Some work",
        "category": "Plumbing",
        "address": "Main St 1",
        "city": "Montevideo",
        "preferred_date": date(2024, 3, 1),
    }
    fields.update(extra)
    return Service(id=service_id, status=status, requester_id=requester_id, **fields)


def _quote(quote_id: str, service_id: str, provider_id: str, status: str = "PENDING", total: float = 100, days: int = 1) -> Quote:
    return Quote(
        id=quote_id,
        service_id=service_id,
        provider_id=provider_id,
        total_price=total,
        duration_days=days,
        status=status,
        created_at=datetime(2024, 1, 1),
    )


def _ids(items):
    return [item.id for item in items]


def _entry_ids(entries):
    return [entry.quote.id for entry in entries]


def test_provider_does_not_see_own_postings():
    provider = _user("p1", "SERVICE_PROVIDER")
    services = [_service("S1", requester_id="p1"), _service("S2", requester_id="r1")]

    assert _ids(views.role_scoped_services(services, provider)) == ["S2"]


def test_provider_only_sees_open_services():
    provider = _user("p1", "SERVICE_PROVIDER")
    services = [
        _service("S1", "r1", status="PUBLISHED"),
        _service("S2", "r1", status="UNDER_REVIEW"),
        _service("S3", "r1", status="ASSIGNED"),
        _service("S4", "r1", status="COMPLETED"),
    ]

    assert _ids(views.role_scoped_services(services, provider)) == ["S1", "S2"]


def test_requester_sees_all_own_services_only():
    requester = _user("r1", "REQUESTER")
    services = [
        _service("S1", "r1", status="COMPLETED"),
        _service("S2", "r2"),
        _service("S3", "r1", status="ASSIGNED"),
    ]

    assert _ids(views.role_scoped_services(services, requester)) == ["S1", "S3"]


def test_other_roles_see_no_services():
    services = initial_state().services
    assert views.role_scoped_services(services, _user("s1", "SUPPLY_PROVIDER")) == []
    assert views.role_scoped_services(services, None) == []


def test_category_filter_is_exact_match():
    services = initial_state().services
    assert len(services) == 10

    result = views.filter_services(services, ServiceQuery(category="Plumbing"))

    assert _ids(result) == ["5", "6"]
    assert views.filter_services(services, ServiceQuery(category="plumbing")) == []


def test_text_filter_matches_title_or_description_case_insensitive():
    services = initial_state().services

    assert _ids(views.filter_services(services, ServiceQuery(text="PIPE"))) == ["6"]
    assert _ids(views.filter_services(services, ServiceQuery(text="irrigation"))) == ["7"]
    assert views.filter_services(services, ServiceQuery(text="   ")) == []


def test_filters_are_combined():
    services = initial_state().services

    assert _ids(views.filter_services(services, ServiceQuery(city="Punta del Este"))) == ["6", "7", "8"]
    result = views.filter_services(services, ServiceQuery(category="Plumbing", city="Montevideo"))
    assert _ids(result) == ["5"]
    assert views.filter_services(services, ServiceQuery()) == services


def test_min_date_filter_includes_the_boundary_day():
    services = initial_state().services

    result = views.filter_services(services, ServiceQuery(min_date=date(2024, 3, 10)))

    assert _ids(result) == ["6", "7", "8", "10"]


def test_quote_counts():
    state = initial_state()

    assert views.quote_count_for_service(state.quotes, "1") == 2
    assert views.quote_count_for_service(state.quotes, "4") == 0
    cards = views.list_service_cards(state.services[:3], state.quotes)
    assert [(card.service.id, card.quote_count) for card in cards] == [("1", 2), ("2", 1), ("3", 2)]


def test_service_quotes_and_provider_quote_lookup():
    state = initial_state()

    assert _ids(views.service_quotes(state.quotes, "3")) == ["4", "5"]
    assert views.find_provider_quote(state.quotes, "1", "5").id == "2"
    assert views.find_provider_quote(state.quotes, "4", "5") is None


def test_accepted_quotes_are_grouped_under_review():
    services = [_service("S1", "r1", status="UNDER_REVIEW"), _service("S2", "r1", status="ASSIGNED")]
    quotes = [_quote("Q1", "S1", "p1"), _quote("Q2", "S2", "p1", status="ACCEPTED")]

    view = views.my_quotes_view(quotes, services, "p1")

    assert _entry_ids(view.under_review) == ["Q1", "Q2"]
    assert view.published == []


def test_my_quotes_view_over_fixtures():
    state = initial_state()

    view = views.my_quotes_view(state.quotes, state.services, "2")

    assert _entry_ids(view.published) == ["1", "7"]
    assert _entry_ids(view.under_review) == ["3", "8"]


def test_my_quotes_view_search_by_title_or_city():
    state = initial_state()

    by_city = views.my_quotes_view(state.quotes, state.services, "2", search="punta")
    assert _entry_ids(by_city.published) == ["7"]
    assert by_city.under_review == []

    by_title = views.my_quotes_view(state.quotes, state.services, "2", search="ROOF")
    assert _entry_ids(by_title.under_review) == ["3"]


def test_quotes_with_missing_service_are_dropped():
    services = [_service("S1", "r1")]
    quotes = [_quote("Q1", "S1", "p1"), _quote("Q2", "gone", "p1")]

    view = views.my_quotes_view(quotes, services, "p1")
    stats = views.quote_stats(quotes, services, "p1")

    assert _entry_ids(view.published) == ["Q1"]
    assert stats.total == 1


def test_quote_stats_counts_accepted_and_completed_independently():
    state = initial_state()

    stats = views.quote_stats(state.quotes, state.services, "2")
    assert (stats.total, stats.pending, stats.accepted, stats.completed) == (5, 3, 1, 1)

    other = views.quote_stats(state.quotes, state.services, "5")
    assert (other.total, other.pending, other.accepted, other.completed) == (3, 2, 1, 0)


def test_sort_quotes():
    quotes = [
        _quote("A", "S1", "p1", total=300, days=4),
        _quote("B", "S1", "p2", total=100, days=2),
        _quote("C", "S1", "p3", total=200, days=2),
    ]

    assert _ids(views.sort_quotes(quotes, "price_asc")) == ["B", "C", "A"]
    assert _ids(views.sort_quotes(quotes, "price_desc")) == ["A", "C", "B"]
    assert _ids(views.sort_quotes(quotes, "duration_asc")) == ["B", "C", "A"]
    assert _ids(views.sort_quotes(quotes, "rating")) == ["A", "B", "C"]
    assert _ids(quotes) == ["A", "B", "C"]


def test_resolve_required_supplies_over_fixtures():
    state = initial_state()
    service = next(s for s in state.services if s.id == "1")

    resolved = views.resolve_required_supplies(service, state.supplies)

    assert [(r.name, r.quantity, r.unit) for r in resolved] == [
        ("Electrical cable 2.5mm", 500, "metre"),
        ("Main electrical panel", 1, "unit"),
        ("Wall sockets", 20, "unit"),
    ]


def test_resolve_required_supplies_sentinels():
    service = _service(
        "S1",
        "r1",
        required_supplies=[
            CatalogReference(supply_id="99", quantity=4),
            FreeformLine(name="", quantity=1, unit="litre"),
            {"quantity": 2},
        ],
    )

    resolved = views.resolve_required_supplies(service, initial_state().supplies)

    assert [(r.name, r.quantity, r.unit) for r in resolved] == [
        (views.SUPPLY_NOT_FOUND, 4, ""),
        (views.UNNAMED_SUPPLY, 1, "litre"),
        (views.UNNAMED_SUPPLY, 2, ""),
    ]


def test_resolve_offer_items():
    state = initial_state()
    offer = next(o for o in state.supply_offers if o.id == "3")

    items = views.resolve_offer_items(offer, state.supplies)
    assert [(i.name, i.unit) for i in items] == [("Electrical cable 2.5mm", "metre"), ("Main electrical panel", "unit")]

    broken = offer.model_copy(update={"items": [offer.items[0].model_copy(update={"supply_id": "404"})]})
    assert views.resolve_offer_items(broken, state.supplies)[0].name == views.SUPPLY_NOT_FOUND


def test_supply_provider_stats():
    state = initial_state()

    stats = views.supply_provider_stats(state.supplies, state.supply_offers, "3")
    assert (stats.catalog_count, stats.total_stock, stats.offer_count) == (6, 480, 2)

    other = views.supply_provider_stats(state.supplies, state.supply_offers, "4")
    assert (other.catalog_count, other.total_stock, other.offer_count) == (2, 1015, 1)


def test_filter_supplies_by_owner_name_and_category():
    supplies = initial_state().supplies

    assert _ids(views.filter_supplies(supplies, "3", search="LIQ")) == ["2"]
    assert _ids(views.filter_supplies(supplies, "3", category="Pools")) == ["1", "2", "3"]
    assert views.filter_supplies(supplies, "3", category="Electricity") == []
    assert views.supply_categories(supplies)[:2] == ["Cleaning", "Electricity"]


def test_dashboard_stats():
    state = initial_state()

    requester = views.requester_dashboard_stats(state.services, state.quotes, "1")
    assert (requester.service_count, requester.quotes_received, requester.under_review) == (5, 5, 1)

    provider = views.provider_dashboard_stats(state.services, state.quotes, "2")
    assert (provider.available_services, provider.quotes_sent, provider.quotes_accepted) == (8, 5, 1)


def test_recent_services_newest_first_with_counts():
    state = initial_state()
    requester = next(u for u in state.users if u.id == "1")

    cards = views.recent_services(state.services, state.quotes, requester)

    assert [(card.service.id, card.quote_count) for card in cards] == [("8", 1), ("5", 0), ("2", 1)]
    assert len(views.recent_services(state.services, state.quotes, requester, limit=5)) == 5
    assert views.recent_services(state.services, state.quotes, requester, limit=0) == []


def test_filter_options():
    services = initial_state().services

    assert views.category_options(services) == [
        "Cleaning",
        "Climate control",
        "Construction",
        "Electricity",
        "Gardening",
        "Painting",
        "Plumbing",
        "Pools",
    ]
    assert views.city_options(services) == ["Colonia", "Montevideo", "Punta del Este"]


def test_packs_linked_to_a_service():
    offers = initial_state().supply_offers

    assert _ids(views.service_supply_offers(offers, "8")) == ["1"]
    assert _ids(views.service_supply_offers(offers, "1")) == ["3"]
    assert views.service_supply_offers(offers, "2") == []


def test_recent_supplies_highest_id_first():
    supplies = initial_state().supplies

    assert _ids(views.recent_supplies(supplies, "3")) == ["6", "5", "4", "3"]
    assert _ids(views.recent_supplies(supplies, "4", limit=1)) == ["8"]
    assert views.recent_supplies(supplies, "1") == []
