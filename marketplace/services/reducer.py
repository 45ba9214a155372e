from typing import Any, Callable, Dict, List, Optional, TypeVar

from pydantic import BaseModel

from marketplace.models import (
    AcceptQuoteForService,
    ClearCurrentUser,
    CreateQuote,
    CreateService,
    CreateSupply,
    CreateSupplyOffer,
    DeleteQuote,
    DeleteSupplyOffer,
    MarketplaceState,
    Quote,
    Service,
    SetCurrentUser,
    SetServiceStatus,
    UpdateQuote,
    UpdateService,
    UpdateSupply,
    UpdateSupplyOffer,
    patch_fields,
)

Entity = TypeVar("Entity", bound=BaseModel)


def _merge_by_id(items: List[Entity], target_id: str, changes: Dict[str, Any]) -> List[Entity]:
    if not changes:
        return items
    return [item.model_copy(update=changes) if item.id == target_id else item for item in items]  # type: ignore[attr-defined]


def _link_quote(services: List[Service], quote: Quote) -> List[Service]:
    return [
        service.model_copy(update={"quote_ids": [*service.quote_ids, quote.id]})
        if service.id == quote.service_id
        else service
        for service in services
    ]


def _unlink_quote(services: List[Service], quote_id: str) -> List[Service]:
    # Any service may still list the id if an earlier payload was inconsistent.
    return [
        service.model_copy(update={"quote_ids": [qid for qid in service.quote_ids if qid != quote_id]})
        if quote_id in service.quote_ids
        else service
        for service in services
    ]


def _set_current_user(state: MarketplaceState, action: SetCurrentUser) -> MarketplaceState:
    return state.model_copy(update={"current_user": action.user})


def _clear_current_user(state: MarketplaceState, action: ClearCurrentUser) -> MarketplaceState:
    return state.model_copy(update={"current_user": None})


def _create_service(state: MarketplaceState, action: CreateService) -> MarketplaceState:
    return state.model_copy(update={"services": [*state.services, action.service]})


def _update_service(state: MarketplaceState, action: UpdateService) -> MarketplaceState:
    services = _merge_by_id(state.services, action.id, patch_fields(action))
    return state.model_copy(update={"services": services})


def _set_service_status(state: MarketplaceState, action: SetServiceStatus) -> MarketplaceState:
    services = _merge_by_id(state.services, action.service_id, {"status": action.status})
    return state.model_copy(update={"services": services})


def _create_quote(state: MarketplaceState, action: CreateQuote) -> MarketplaceState:
    return state.model_copy(
        update={
            "quotes": [*state.quotes, action.quote],
            "services": _link_quote(state.services, action.quote),
        }
    )


def _update_quote(state: MarketplaceState, action: UpdateQuote) -> MarketplaceState:
    quotes = _merge_by_id(state.quotes, action.id, patch_fields(action))
    return state.model_copy(update={"quotes": quotes})


def _delete_quote(state: MarketplaceState, action: DeleteQuote) -> MarketplaceState:
    return state.model_copy(
        update={
            "quotes": [quote for quote in state.quotes if quote.id != action.quote_id],
            "services": _unlink_quote(state.services, action.quote_id),
        }
    )


def _create_supply(state: MarketplaceState, action: CreateSupply) -> MarketplaceState:
    return state.model_copy(update={"supplies": [*state.supplies, action.supply]})


def _update_supply(state: MarketplaceState, action: UpdateSupply) -> MarketplaceState:
    supplies = _merge_by_id(state.supplies, action.id, patch_fields(action))
    return state.model_copy(update={"supplies": supplies})


def _create_supply_offer(state: MarketplaceState, action: CreateSupplyOffer) -> MarketplaceState:
    return state.model_copy(update={"supply_offers": [*state.supply_offers, action.offer]})


def _update_supply_offer(state: MarketplaceState, action: UpdateSupplyOffer) -> MarketplaceState:
    offers = _merge_by_id(state.supply_offers, action.id, patch_fields(action))
    return state.model_copy(update={"supply_offers": offers})


def _delete_supply_offer(state: MarketplaceState, action: DeleteSupplyOffer) -> MarketplaceState:
    offers = [offer for offer in state.supply_offers if offer.id != action.offer_id]
    return state.model_copy(update={"supply_offers": offers})


def _accept_quote_for_service(state: MarketplaceState, action: AcceptQuoteForService) -> MarketplaceState:
    services = _merge_by_id(
        state.services,
        action.service_id,
        {"status": "ASSIGNED", "selected_quote_id": action.quote_id},
    )
    quotes: List[Quote] = []
    for quote in state.quotes:
        if quote.id == action.quote_id:
            quote = quote.model_copy(update={"status": "ACCEPTED"})
        elif quote.service_id == action.service_id:
            quote = quote.model_copy(update={"status": "REJECTED"})
        quotes.append(quote)
    return state.model_copy(update={"services": services, "quotes": quotes})


_HANDLERS: Dict[type, Callable[[MarketplaceState, Any], MarketplaceState]] = {
    SetCurrentUser: _set_current_user,
    ClearCurrentUser: _clear_current_user,
    CreateService: _create_service,
    UpdateService: _update_service,
    SetServiceStatus: _set_service_status,
    CreateQuote: _create_quote,
    UpdateQuote: _update_quote,
    DeleteQuote: _delete_quote,
    CreateSupply: _create_supply,
    UpdateSupply: _update_supply,
    CreateSupplyOffer: _create_supply_offer,
    UpdateSupplyOffer: _update_supply_offer,
    DeleteSupplyOffer: _delete_supply_offer,
    AcceptQuoteForService: _accept_quote_for_service,
}


def reduce(state: MarketplaceState, action: Any) -> MarketplaceState:
    """Apply one action and return the next snapshot.

    The input snapshot is never modified; collections the action does not
    touch are shared with the result. Payloads are not validated here, and an
    object that is not a known action returns ``state`` itself.
    """
    handler: Optional[Callable[[MarketplaceState, Any], MarketplaceState]] = _HANDLERS.get(type(action))
    if handler is None:
        return state
    return handler(state, action)
