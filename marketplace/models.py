from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator


Role = Literal["REQUESTER", "SERVICE_PROVIDER", "SUPPLY_PROVIDER"]
ServiceStatus = Literal["PUBLISHED", "UNDER_REVIEW", "ASSIGNED", "COMPLETED"]
QuoteStatus = Literal["PENDING", "ACCEPTED", "REJECTED"]
QuoteSortOrder = Literal["price_asc", "price_desc", "duration_asc"]


class User(BaseModel):
    id: str
    name: str
    email: str
    # Plaintext, seed-only accounts.
    password: str
    role: Role
    rating: Optional[float] = None


class CatalogReference(BaseModel):
    kind: Literal["catalog"] = "catalog"
    supply_id: str
    quantity: float = 0
    unit: Optional[str] = None


class FreeformLine(BaseModel):
    kind: Literal["freeform"] = "freeform"
    name: str
    quantity: float = 0
    unit: str = ""


RequiredSupply = Annotated[Union[CatalogReference, FreeformLine], Field(discriminator="kind")]


def _coerce_requirement(raw: Any) -> Any:
    if not isinstance(raw, dict) or "kind" in raw:
        return raw
    if raw.get("name"):
        return {"kind": "freeform", **raw}
    if raw.get("supply_id"):
        return {"kind": "catalog", **raw}
    return {"kind": "freeform", **raw, "name": ""}


class Service(BaseModel):
    id: str
    title: str
    description: str
    category: str
    address: str
    city: str
    preferred_date: date
    status: ServiceStatus = "PUBLISHED"
    requester_id: str
    required_supplies: list[RequiredSupply] = Field(default_factory=list)
    quote_ids: list[str] = Field(default_factory=list)
    selected_quote_id: Optional[str] = None

    @field_validator("required_supplies", mode="before")
    @classmethod
    def _legacy_requirements(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_coerce_requirement(item) for item in value]
        return value


class Quote(BaseModel):
    id: str
    service_id: str
    provider_id: str
    total_price: float = Field(gt=0)
    duration_days: int = Field(gt=0)
    notes: Optional[str] = None
    status: QuoteStatus = "PENDING"
    created_at: datetime


class Supply(BaseModel):
    id: str
    name: str
    category: str
    unit: str
    unit_price: float
    stock: int = 0
    provider_id: str


class OfferItem(BaseModel):
    supply_id: str
    quantity: float


class SupplyOffer(BaseModel):
    id: str
    name: str
    service_id: Optional[str] = None
    provider_id: str
    total_price: float
    items: list[OfferItem] = Field(default_factory=list)
    created_at: datetime
    notes: Optional[str] = None


class MarketplaceState(BaseModel):
    current_user: Optional[User] = None
    users: list[User] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)
    quotes: list[Quote] = Field(default_factory=list)
    supplies: list[Supply] = Field(default_factory=list)
    supply_offers: list[SupplyOffer] = Field(default_factory=list)


# Actions. Update variants carry the target id plus the fields to overwrite;
# only explicitly supplied fields take part in the merge.


class _PatchAction(BaseModel):
    # Fields that may be explicitly cleared with None; every other patch field
    # maps onto a required entity field.
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_explicit_none(self):
        cleared = sorted(
            name
            for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable_fields
        )
        if cleared:
            raise ValueError(f"Fields cannot be cleared: {', '.join(cleared)}")
        return self


class SetCurrentUser(BaseModel):
    kind: Literal["set_current_user"] = "set_current_user"
    user: User


class ClearCurrentUser(BaseModel):
    kind: Literal["clear_current_user"] = "clear_current_user"


class CreateService(BaseModel):
    kind: Literal["create_service"] = "create_service"
    service: Service


class UpdateService(_PatchAction):
    kind: Literal["update_service"] = "update_service"
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    preferred_date: Optional[date] = None
    status: Optional[ServiceStatus] = None
    required_supplies: Optional[list[RequiredSupply]] = None

    @field_validator("required_supplies", mode="before")
    @classmethod
    def _legacy_requirements(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_coerce_requirement(item) for item in value]
        return value


class SetServiceStatus(BaseModel):
    kind: Literal["set_service_status"] = "set_service_status"
    service_id: str
    status: ServiceStatus


class CreateQuote(BaseModel):
    kind: Literal["create_quote"] = "create_quote"
    quote: Quote


class UpdateQuote(_PatchAction):
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"notes"})

    kind: Literal["update_quote"] = "update_quote"
    id: str
    total_price: Optional[float] = Field(default=None, gt=0)
    duration_days: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    status: Optional[QuoteStatus] = None


class DeleteQuote(BaseModel):
    kind: Literal["delete_quote"] = "delete_quote"
    quote_id: str


class CreateSupply(BaseModel):
    kind: Literal["create_supply"] = "create_supply"
    supply: Supply


class UpdateSupply(_PatchAction):
    kind: Literal["update_supply"] = "update_supply"
    id: str
    name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    stock: Optional[int] = None


class CreateSupplyOffer(BaseModel):
    kind: Literal["create_supply_offer"] = "create_supply_offer"
    offer: SupplyOffer


class UpdateSupplyOffer(_PatchAction):
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"service_id", "notes"})

    kind: Literal["update_supply_offer"] = "update_supply_offer"
    id: str
    name: Optional[str] = None
    service_id: Optional[str] = None
    total_price: Optional[float] = None
    items: Optional[list[OfferItem]] = None
    notes: Optional[str] = None


class DeleteSupplyOffer(BaseModel):
    kind: Literal["delete_supply_offer"] = "delete_supply_offer"
    offer_id: str


class AcceptQuoteForService(BaseModel):
    kind: Literal["accept_quote_for_service"] = "accept_quote_for_service"
    service_id: str
    quote_id: str


Action = Annotated[
    Union[
        SetCurrentUser,
        ClearCurrentUser,
        CreateService,
        UpdateService,
        SetServiceStatus,
        CreateQuote,
        UpdateQuote,
        DeleteQuote,
        CreateSupply,
        UpdateSupply,
        CreateSupplyOffer,
        UpdateSupplyOffer,
        DeleteSupplyOffer,
        AcceptQuoteForService,
    ],
    Field(discriminator="kind"),
]

_action_adapter: TypeAdapter = TypeAdapter(Action)

ACTION_KINDS = frozenset(
    model.model_fields["kind"].default
    for model in (
        SetCurrentUser,
        ClearCurrentUser,
        CreateService,
        UpdateService,
        SetServiceStatus,
        CreateQuote,
        UpdateQuote,
        DeleteQuote,
        CreateSupply,
        UpdateSupply,
        CreateSupplyOffer,
        UpdateSupplyOffer,
        DeleteSupplyOffer,
        AcceptQuoteForService,
    )
)


def parse_action(payload: Dict[str, Any]) -> Action:
    """Build a typed action from a plain mapping such as a JSON log line."""
    return _action_adapter.validate_python(payload)


def patch_fields(action: BaseModel) -> Dict[str, Any]:
    """Fields an update action explicitly sets, excluding its tag and target id."""
    return {
        name: getattr(action, name)
        for name in action.model_fields_set
        if name not in {"kind", "id"}
    }


# View results


class ServiceQuery(BaseModel):
    text: str = ""
    category: str = ""
    city: str = ""
    min_date: Optional[date] = None


class ServiceCard(BaseModel):
    service: Service
    quote_count: int


class QuoteWithService(BaseModel):
    quote: Quote
    service: Service


class MyQuotesView(BaseModel):
    published: list[QuoteWithService] = Field(default_factory=list)
    under_review: list[QuoteWithService] = Field(default_factory=list)


class QuoteStats(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    completed: int = 0


class ResolvedSupply(BaseModel):
    name: str
    quantity: float
    unit: str


class ResolvedOfferItem(BaseModel):
    supply_id: str
    name: str
    quantity: float
    unit: str


class SupplyProviderStats(BaseModel):
    catalog_count: int = 0
    total_stock: int = 0
    offer_count: int = 0


class RequesterDashboardStats(BaseModel):
    service_count: int = 0
    quotes_received: int = 0
    under_review: int = 0


class ProviderDashboardStats(BaseModel):
    available_services: int = 0
    quotes_sent: int = 0
    quotes_accepted: int = 0
