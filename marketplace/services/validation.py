import logging
from typing import Any, Callable, Dict, Iterable, Optional

from marketplace.errors import (
    MarketplaceConflictError,
    MarketplaceNotFoundError,
    MarketplaceValidationError,
)
from marketplace.models import (
    AcceptQuoteForService,
    CreateQuote,
    CreateService,
    CreateSupply,
    CreateSupplyOffer,
    DeleteQuote,
    DeleteSupplyOffer,
    MarketplaceState,
    OfferItem,
    Quote,
    Role,
    Service,
    SetCurrentUser,
    SetServiceStatus,
    UpdateQuote,
    UpdateService,
    UpdateSupply,
    UpdateSupplyOffer,
    User,
)

logger = logging.getLogger(__name__)

# Statuses a service may not leave once a quote has been awarded.
REOPENED_STATUSES = {"PUBLISHED", "UNDER_REVIEW"}
QUOTABLE_STATUSES = {"PUBLISHED", "UNDER_REVIEW"}


def _find(items: Iterable[Any], target_id: Optional[str]) -> Optional[Any]:
    for item in items:
        if item.id == target_id:
            return item
    return None


def _require_service(state: MarketplaceState, service_id: str) -> Service:
    service = _find(state.services, service_id)
    if service is None:
        raise MarketplaceNotFoundError(f"Service {service_id} not found")
    return service


def _require_quote(state: MarketplaceState, quote_id: str) -> Quote:
    quote = _find(state.quotes, quote_id)
    if quote is None:
        raise MarketplaceNotFoundError(f"Quote {quote_id} not found")
    return quote


def _require_user_with_role(state: MarketplaceState, user_id: str, role: Role) -> User:
    user = _find(state.users, user_id)
    if user is None:
        raise MarketplaceValidationError(f"User {user_id} does not exist")
    if user.role != role:
        raise MarketplaceValidationError(f"User {user_id} is not a {role}")
    return user


def _ensure_new_id(items: Iterable[Any], new_id: str, label: str) -> None:
    if _find(items, new_id) is not None:
        raise MarketplaceConflictError(f"{label} {new_id} already exists")


def _check_status_move(service: Service, status: str) -> None:
    if status == service.status:
        return
    if status == "ASSIGNED":
        raise MarketplaceConflictError("A service is assigned by accepting one of its quotes")
    if service.status == "ASSIGNED" and status in REOPENED_STATUSES:
        raise MarketplaceConflictError(f"Service {service.id} is already assigned")


def _check_quote_unlocked(state: MarketplaceState, quote: Quote) -> None:
    service = _find(state.services, quote.service_id)
    if service is not None and service.status == "ASSIGNED":
        raise MarketplaceConflictError("Quotes on an assigned service cannot be changed")


def _check_offer_items(state: MarketplaceState, items: list[OfferItem]) -> None:
    if not items:
        raise MarketplaceValidationError("A pack needs at least one supply")
    seen = set()
    for item in items:
        if item.supply_id in seen:
            raise MarketplaceValidationError(f"Supply {item.supply_id} is listed twice in the pack")
        seen.add(item.supply_id)
        if item.quantity <= 0:
            raise MarketplaceValidationError("Pack quantities must be greater than 0")
        if _find(state.supplies, item.supply_id) is None:
            raise MarketplaceValidationError(f"Supply {item.supply_id} does not exist")


def _check_offer_service(state: MarketplaceState, service_id: Optional[str]) -> None:
    if service_id is not None and _find(state.services, service_id) is None:
        raise MarketplaceValidationError(f"Service {service_id} does not exist")


def _validate_set_current_user(state: MarketplaceState, action: SetCurrentUser) -> None:
    if _find(state.users, action.user.id) is None:
        raise MarketplaceNotFoundError(f"User {action.user.id} not found")


def _validate_create_service(state: MarketplaceState, action: CreateService) -> None:
    service = action.service
    _ensure_new_id(state.services, service.id, "Service")
    _require_user_with_role(state, service.requester_id, "REQUESTER")
    if service.status != "PUBLISHED" or service.quote_ids or service.selected_quote_id is not None:
        raise MarketplaceValidationError("New services start published, without quotes")


def _validate_update_service(state: MarketplaceState, action: UpdateService) -> None:
    service = _require_service(state, action.id)
    if "status" in action.model_fields_set and action.status is not None:
        _check_status_move(service, action.status)


def _validate_set_service_status(state: MarketplaceState, action: SetServiceStatus) -> None:
    _check_status_move(_require_service(state, action.service_id), action.status)


def _validate_create_quote(state: MarketplaceState, action: CreateQuote) -> None:
    quote = action.quote
    _ensure_new_id(state.quotes, quote.id, "Quote")
    service = _find(state.services, quote.service_id)
    if service is None:
        raise MarketplaceValidationError(f"Service {quote.service_id} does not exist")
    _require_user_with_role(state, quote.provider_id, "SERVICE_PROVIDER")
    if quote.status != "PENDING":
        raise MarketplaceValidationError("New quotes start pending")
    if service.status not in QUOTABLE_STATUSES:
        raise MarketplaceConflictError(f"Service {service.id} is no longer taking quotes")
    if service.requester_id == quote.provider_id:
        raise MarketplaceConflictError("Providers cannot quote their own services")
    for existing in state.quotes:
        if existing.service_id == quote.service_id and existing.provider_id == quote.provider_id:
            raise MarketplaceConflictError("Provider already quoted this service")


def _validate_update_quote(state: MarketplaceState, action: UpdateQuote) -> None:
    quote = _require_quote(state, action.id)
    _check_quote_unlocked(state, quote)
    if action.status == "ACCEPTED":
        raise MarketplaceValidationError("Quotes are accepted through their service")


def _validate_delete_quote(state: MarketplaceState, action: DeleteQuote) -> None:
    _check_quote_unlocked(state, _require_quote(state, action.quote_id))


def _validate_create_supply(state: MarketplaceState, action: CreateSupply) -> None:
    supply = action.supply
    _ensure_new_id(state.supplies, supply.id, "Supply")
    _require_user_with_role(state, supply.provider_id, "SUPPLY_PROVIDER")
    if supply.unit_price < 0 or supply.stock < 0:
        raise MarketplaceValidationError("Price and stock cannot be negative")


def _validate_update_supply(state: MarketplaceState, action: UpdateSupply) -> None:
    if _find(state.supplies, action.id) is None:
        raise MarketplaceNotFoundError(f"Supply {action.id} not found")
    if (action.unit_price is not None and action.unit_price < 0) or (action.stock is not None and action.stock < 0):
        raise MarketplaceValidationError("Price and stock cannot be negative")


def _validate_create_supply_offer(state: MarketplaceState, action: CreateSupplyOffer) -> None:
    offer = action.offer
    _ensure_new_id(state.supply_offers, offer.id, "Pack")
    _require_user_with_role(state, offer.provider_id, "SUPPLY_PROVIDER")
    if offer.total_price <= 0:
        raise MarketplaceValidationError("Pack price must be greater than 0")
    _check_offer_items(state, offer.items)
    _check_offer_service(state, offer.service_id)


def _validate_update_supply_offer(state: MarketplaceState, action: UpdateSupplyOffer) -> None:
    if _find(state.supply_offers, action.id) is None:
        raise MarketplaceNotFoundError(f"Pack {action.id} not found")
    fields = action.model_fields_set
    if "total_price" in fields and (action.total_price is None or action.total_price <= 0):
        raise MarketplaceValidationError("Pack price must be greater than 0")
    if "items" in fields:
        _check_offer_items(state, action.items or [])
    if "service_id" in fields:
        _check_offer_service(state, action.service_id)


def _validate_delete_supply_offer(state: MarketplaceState, action: DeleteSupplyOffer) -> None:
    if _find(state.supply_offers, action.offer_id) is None:
        raise MarketplaceNotFoundError(f"Pack {action.offer_id} not found")


def _validate_accept_quote(state: MarketplaceState, action: AcceptQuoteForService) -> None:
    service = _require_service(state, action.service_id)
    quote = _require_quote(state, action.quote_id)
    if quote.service_id != service.id:
        raise MarketplaceValidationError(f"Quote {quote.id} does not belong to service {service.id}")
    if service.status not in QUOTABLE_STATUSES:
        raise MarketplaceConflictError(f"Service {service.id} is already {service.status.lower()}")


_VALIDATORS: Dict[type, Callable[[MarketplaceState, Any], None]] = {
    SetCurrentUser: _validate_set_current_user,
    CreateService: _validate_create_service,
    UpdateService: _validate_update_service,
    SetServiceStatus: _validate_set_service_status,
    CreateQuote: _validate_create_quote,
    UpdateQuote: _validate_update_quote,
    DeleteQuote: _validate_delete_quote,
    CreateSupply: _validate_create_supply,
    UpdateSupply: _validate_update_supply,
    CreateSupplyOffer: _validate_create_supply_offer,
    UpdateSupplyOffer: _validate_update_supply_offer,
    DeleteSupplyOffer: _validate_delete_supply_offer,
    AcceptQuoteForService: _validate_accept_quote,
}


def validate_action(state: MarketplaceState, action: Any) -> None:
    """Raise a MarketplaceError if ``action`` would leave ``state`` inconsistent.

    Actions without checks (clearing the session, unknown objects) pass.
    """
    validator = _VALIDATORS.get(type(action))
    if validator is None:
        return
    validator(state, action)
    logger.debug("action validated kind=%s", getattr(action, "kind", type(action).__name__))
