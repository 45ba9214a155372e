import os
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from marketplace.models import (
    CatalogReference,
    MyQuotesView,
    ProviderDashboardStats,
    Quote,
    QuoteStats,
    QuoteWithService,
    RequesterDashboardStats,
    ResolvedOfferItem,
    ResolvedSupply,
    Service,
    ServiceCard,
    ServiceQuery,
    Supply,
    SupplyOffer,
    SupplyProviderStats,
    User,
)


def _positive_int_env(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        return default
    return value if value > 0 else default


RECENT_SERVICES_LIMIT = _positive_int_env("MARKETPLACE_RECENT_LIMIT", 3)

OPEN_SERVICE_STATUSES = {"PUBLISHED", "UNDER_REVIEW"}

SUPPLY_NOT_FOUND = "Supply not found"
UNNAMED_SUPPLY = "Unnamed supply"


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _supply_index(supplies: Iterable[Supply]) -> Dict[str, Supply]:
    index: Dict[str, Supply] = {}
    for supply in supplies:
        index.setdefault(supply.id, supply)
    return index


def role_scoped_services(services: List[Service], user: Optional[User]) -> List[Service]:
    """Services a user may browse.

    Requesters see only their own postings. Service providers see open
    postings (published or under review) from everybody else. Anyone else,
    including a missing user, sees nothing.
    """
    if user is None:
        return []
    if user.role == "REQUESTER":
        return [service for service in services if service.requester_id == user.id]
    if user.role == "SERVICE_PROVIDER":
        return [
            service
            for service in services
            if service.status in OPEN_SERVICE_STATUSES and service.requester_id != user.id
        ]
    return []


def filter_services(services: List[Service], query: ServiceQuery) -> List[Service]:
    text = query.text.lower()
    min_date = _as_date(query.min_date) if query.min_date else None
    result: List[Service] = []
    for service in services:
        if text and text not in service.title.lower() and text not in service.description.lower():
            continue
        if query.category and service.category != query.category:
            continue
        if query.city and service.city != query.city:
            continue
        if min_date and _as_date(service.preferred_date) < min_date:
            continue
        result.append(service)
    return result


def quote_count_for_service(quotes: List[Quote], service_id: str) -> int:
    return sum(1 for quote in quotes if quote.service_id == service_id)


def service_quotes(quotes: List[Quote], service_id: str) -> List[Quote]:
    return [quote for quote in quotes if quote.service_id == service_id]


def find_provider_quote(quotes: List[Quote], service_id: str, provider_id: str) -> Optional[Quote]:
    for quote in quotes:
        if quote.service_id == service_id and quote.provider_id == provider_id:
            return quote
    return None


def list_service_cards(services: List[Service], quotes: List[Quote]) -> List[ServiceCard]:
    counts: Dict[str, int] = {}
    for quote in quotes:
        counts[quote.service_id] = counts.get(quote.service_id, 0) + 1
    return [ServiceCard(service=service, quote_count=counts.get(service.id, 0)) for service in services]


def category_options(services: List[Service]) -> List[str]:
    return sorted({service.category for service in services if service.category})


def city_options(services: List[Service]) -> List[str]:
    return sorted({service.city for service in services if service.city})


def _join_provider_quotes(quotes: List[Quote], services: List[Service], provider_id: str) -> List[QuoteWithService]:
    by_id = {service.id: service for service in services}
    joined: List[QuoteWithService] = []
    for quote in quotes:
        if quote.provider_id != provider_id:
            continue
        service = by_id.get(quote.service_id)
        if service is None:
            continue
        joined.append(QuoteWithService(quote=quote, service=service))
    return joined


def my_quotes_view(
    quotes: List[Quote],
    services: List[Service],
    provider_id: str,
    search: Optional[str] = None,
) -> MyQuotesView:
    """Group a provider's quotes for the "my quotes" screen.

    Pending quotes land in the bucket named after their service's status
    (published or under review). Accepted quotes always go to the under
    review bucket, whatever the service status. Everything else is left out.
    """
    term = (search or "").strip().lower()
    view = MyQuotesView()
    for entry in _join_provider_quotes(quotes, services, provider_id):
        if term and term not in entry.service.title.lower() and term not in entry.service.city.lower():
            continue
        if entry.quote.status == "PENDING":
            if entry.service.status == "PUBLISHED":
                view.published.append(entry)
            elif entry.service.status == "UNDER_REVIEW":
                view.under_review.append(entry)
        elif entry.quote.status == "ACCEPTED":
            view.under_review.append(entry)
    return view


def quote_stats(quotes: List[Quote], services: List[Service], provider_id: str) -> QuoteStats:
    stats = QuoteStats()
    for entry in _join_provider_quotes(quotes, services, provider_id):
        stats.total += 1
        if entry.quote.status == "PENDING":
            stats.pending += 1
        if entry.quote.status == "ACCEPTED":
            stats.accepted += 1
        if entry.service.status == "COMPLETED":
            stats.completed += 1
    return stats


def sort_quotes(quotes: List[Quote], order: Optional[str]) -> List[Quote]:
    if order == "price_asc":
        return sorted(quotes, key=lambda quote: quote.total_price)
    if order == "price_desc":
        return sorted(quotes, key=lambda quote: quote.total_price, reverse=True)
    if order == "duration_asc":
        return sorted(quotes, key=lambda quote: quote.duration_days)
    return list(quotes)


def resolve_required_supplies(service: Service, supplies: List[Supply]) -> List[ResolvedSupply]:
    catalog = _supply_index(supplies)
    resolved: List[ResolvedSupply] = []
    for line in service.required_supplies:
        if isinstance(line, CatalogReference) and line.supply_id:
            supply = catalog.get(line.supply_id)
            resolved.append(
                ResolvedSupply(
                    name=supply.name if supply else SUPPLY_NOT_FOUND,
                    quantity=line.quantity,
                    unit=line.unit or (supply.unit if supply else ""),
                )
            )
        elif not isinstance(line, CatalogReference) and line.name:
            resolved.append(ResolvedSupply(name=line.name, quantity=line.quantity, unit=line.unit))
        else:
            resolved.append(ResolvedSupply(name=UNNAMED_SUPPLY, quantity=line.quantity or 0, unit=line.unit or ""))
    return resolved


def resolve_offer_items(offer: SupplyOffer, supplies: List[Supply]) -> List[ResolvedOfferItem]:
    catalog = _supply_index(supplies)
    items: List[ResolvedOfferItem] = []
    for item in offer.items:
        supply = catalog.get(item.supply_id)
        items.append(
            ResolvedOfferItem(
                supply_id=item.supply_id,
                name=supply.name if supply else SUPPLY_NOT_FOUND,
                quantity=item.quantity,
                unit=supply.unit if supply else "",
            )
        )
    return items


def service_supply_offers(offers: List[SupplyOffer], service_id: str) -> List[SupplyOffer]:
    return [offer for offer in offers if offer.service_id == service_id]


def supply_provider_stats(supplies: List[Supply], offers: List[SupplyOffer], provider_id: str) -> SupplyProviderStats:
    own = [supply for supply in supplies if supply.provider_id == provider_id]
    return SupplyProviderStats(
        catalog_count=len(own),
        total_stock=sum(supply.stock or 0 for supply in own),
        offer_count=sum(1 for offer in offers if offer.provider_id == provider_id),
    )


def filter_supplies(supplies: List[Supply], provider_id: str, search: str = "", category: str = "") -> List[Supply]:
    term = search.strip().lower()
    return [
        supply
        for supply in supplies
        if supply.provider_id == provider_id
        and (not term or term in supply.name.lower())
        and (not category or supply.category == category)
    ]


def supply_categories(supplies: List[Supply]) -> List[str]:
    return sorted({supply.category for supply in supplies if supply.category})


def requester_dashboard_stats(services: List[Service], quotes: List[Quote], requester_id: str) -> RequesterDashboardStats:
    own = [service for service in services if service.requester_id == requester_id]
    own_ids = {service.id for service in own}
    return RequesterDashboardStats(
        service_count=len(own),
        quotes_received=sum(1 for quote in quotes if quote.service_id in own_ids),
        under_review=sum(1 for service in own if service.status == "UNDER_REVIEW"),
    )


def provider_dashboard_stats(services: List[Service], quotes: List[Quote], provider_id: str) -> ProviderDashboardStats:
    mine = [quote for quote in quotes if quote.provider_id == provider_id]
    return ProviderDashboardStats(
        available_services=sum(
            1
            for service in services
            if service.status in OPEN_SERVICE_STATUSES and service.requester_id != provider_id
        ),
        quotes_sent=len(mine),
        quotes_accepted=sum(1 for quote in mine if quote.status == "ACCEPTED"),
    )


def recent_services(
    services: List[Service],
    quotes: List[Quote],
    user: Optional[User],
    limit: Optional[int] = None,
) -> List[ServiceCard]:
    visible = sorted(
        role_scoped_services(services, user),
        key=lambda service: service.preferred_date,
        reverse=True,
    )
    return list_service_cards(visible[: limit if limit is not None else RECENT_SERVICES_LIMIT], quotes)


def _id_sort_key(supply: Supply):
    # Numeric ids rank above free-form ones; higher ids are newer.
    if supply.id.isdigit():
        return (1, int(supply.id), supply.id)
    return (0, 0, supply.id)


def recent_supplies(supplies: List[Supply], provider_id: str, limit: int = 4) -> List[Supply]:
    """A supply provider's newest catalog entries, highest id first."""
    own = [supply for supply in supplies if supply.provider_id == provider_id]
    return sorted(own, key=_id_sort_key, reverse=True)[:limit]
