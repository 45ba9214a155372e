from typing import Any, Dict, List

from marketplace.models import MarketplaceState, Quote, Service, Supply, SupplyOffer, User


USERS_SEED: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Juan Pérez",
        "email": "requester@test.com",
        "password": "123456",
        "role": "REQUESTER",
    },
    {
        "id": "2",
        "name": "María García",
        "email": "provider@test.com",
        "password": "123456",
        "role": "SERVICE_PROVIDER",
        "rating": 4.8,
    },
    {
        "id": "3",
        "name": "Carlos Rodríguez",
        "email": "supplies@test.com",
        "password": "123456",
        "role": "SUPPLY_PROVIDER",
    },
    {
        "id": "4",
        "name": "Ana Martínez",
        "email": "supplies2@test.com",
        "password": "123456",
        "role": "SUPPLY_PROVIDER",
    },
    {
        "id": "5",
        "name": "Luis Fernández",
        "email": "provider2@test.com",
        "password": "123456",
        "role": "SERVICE_PROVIDER",
        "rating": 4.5,
    },
    {
        "id": "6",
        "name": "Sofía López",
        "email": "requester2@test.com",
        "password": "123456",
        "role": "REQUESTER",
    },
]

# Requirement lines mix the legacy catalog shape (supply_id) with freeform
# names typed by the requester.
SERVICES_SEED: List[Dict[str, Any]] = [
    {
        "id": "1",
        "title": "Electrical installation for a new house",
        "description": "Full electrical install for a 120m² house: wiring, main panel, sockets and lights.",
        "category": "Electricity",
        "address": "Av. 18 de Julio 1234",
        "city": "Montevideo",
        "preferred_date": "2024-02-15",
        "status": "PUBLISHED",
        "requester_id": "1",
        "required_supplies": [
            {"supply_id": "7", "quantity": 500, "unit": "metre"},
            {"supply_id": "8", "quantity": 1},
            {"name": "Wall sockets", "quantity": 20, "unit": "unit"},
        ],
        "quote_ids": ["1", "2"],
    },
    {
        "id": "2",
        "title": "Leaking roof repair",
        "description": "Roof with several leaks that needs a complete repair. Roughly 80m².",
        "category": "Construction",
        "address": "Calle Rivera 567",
        "city": "Montevideo",
        "preferred_date": "2024-02-20",
        "status": "UNDER_REVIEW",
        "requester_id": "1",
        "required_supplies": [
            {"name": "Zinc sheets", "quantity": 50, "unit": "m²"},
            {"name": "Waterproofing paint", "quantity": 2, "unit": "litre"},
        ],
        "quote_ids": ["3"],
    },
    {
        "id": "3",
        "title": "Full apartment painting",
        "description": "Interior and exterior painting of a two bedroom apartment, surface prep included.",
        "category": "Painting",
        "address": "Bvar. Artigas 890",
        "city": "Montevideo",
        "preferred_date": "2024-02-25",
        "status": "ASSIGNED",
        "requester_id": "6",
        "required_supplies": [
            {"name": "Paint cans", "quantity": 30, "unit": "unit"},
            {"name": "Rollers", "quantity": 5, "unit": "unit"},
        ],
        "quote_ids": ["4", "5"],
        "selected_quote_id": "4",
    },
    {
        "id": "4",
        "title": "Air conditioning installation",
        "description": "Install two split air conditioning units in an office.",
        "category": "Climate control",
        "address": "Av. Libertador 234",
        "city": "Montevideo",
        "preferred_date": "2024-03-01",
        "status": "PUBLISHED",
        "requester_id": "6",
        "required_supplies": [
            {"name": "Split AC unit", "quantity": 2, "unit": "unit"},
            {"supply_id": "7", "quantity": 100, "unit": "metre"},
        ],
    },
    {
        "id": "5",
        "title": "Kitchen sink leak",
        "description": "The kitchen sink drips under the cabinet, probably a worn seal.",
        "category": "Plumbing",
        "address": "Canelones 1450",
        "city": "Montevideo",
        "preferred_date": "2024-03-05",
        "status": "PUBLISHED",
        "requester_id": "1",
    },
    {
        "id": "6",
        "title": "Bathroom pipe replacement",
        "description": "Replace the old iron pipes in a bathroom with PPR.",
        "category": "Plumbing",
        "address": "Calle 20 y 27",
        "city": "Punta del Este",
        "preferred_date": "2024-03-10",
        "status": "UNDER_REVIEW",
        "requester_id": "6",
        "required_supplies": [{"name": "PPR pipe", "quantity": 12, "unit": "metre"}],
        "quote_ids": ["6"],
    },
    {
        "id": "7",
        "title": "Garden maintenance",
        "description": "Lawn mowing, hedge trimming and fertilising. Irrigation plumbing is already done.",
        "category": "Gardening",
        "address": "Rambla Williman 300",
        "city": "Punta del Este",
        "preferred_date": "2024-03-12",
        "status": "PUBLISHED",
        "requester_id": "6",
        "required_supplies": [
            {"supply_id": "4", "quantity": 5},
            {"supply_id": "5", "quantity": 10, "unit": "unit"},
        ],
    },
    {
        "id": "8",
        "title": "Pool cleaning and water treatment",
        "description": "Weekly cleaning of a 30m³ pool, chlorine and pH balancing.",
        "category": "Pools",
        "address": "Av. Roosevelt 2100",
        "city": "Punta del Este",
        "preferred_date": "2024-03-15",
        "status": "PUBLISHED",
        "requester_id": "1",
        "required_supplies": [
            {"supply_id": "1", "quantity": 2, "unit": "kg"},
            {"supply_id": "2", "quantity": 1},
            {"quantity": 1, "unit": "litre"},
        ],
        "quote_ids": ["7"],
    },
    {
        "id": "9",
        "title": "Office deep cleaning",
        "description": "End of lease deep cleaning for a 200m² office.",
        "category": "Cleaning",
        "address": "Plaza Independencia 800",
        "city": "Montevideo",
        "preferred_date": "2024-01-30",
        "status": "COMPLETED",
        "requester_id": "1",
        "required_supplies": [{"supply_id": "6", "quantity": 10, "unit": "litre"}],
        "quote_ids": ["8"],
        "selected_quote_id": "8",
    },
    {
        "id": "10",
        "title": "Water heater wiring",
        "description": "Run a dedicated circuit for a new electric water heater.",
        "category": "Electricity",
        "address": "Gral. Flores 410",
        "city": "Colonia",
        "preferred_date": "2024-04-02",
        "status": "PUBLISHED",
        "requester_id": "6",
        "required_supplies": [{"supply_id": "7", "quantity": 15}],
    },
]

QUOTES_SEED: List[Dict[str, Any]] = [
    {
        "id": "1",
        "service_id": "1",
        "provider_id": "2",
        "total_price": 45000,
        "duration_days": 7,
        "notes": "Guaranteed work. Basic materials included.",
        "status": "PENDING",
        "created_at": "2024-01-15T10:00:00",
    },
    {
        "id": "2",
        "service_id": "1",
        "provider_id": "5",
        "total_price": 42000,
        "duration_days": 5,
        "notes": "Competitive price. Available right away.",
        "status": "PENDING",
        "created_at": "2024-01-16T10:00:00",
    },
    {
        "id": "3",
        "service_id": "2",
        "provider_id": "2",
        "total_price": 35000,
        "duration_days": 10,
        "notes": "Labour and materials included. One year warranty.",
        "status": "PENDING",
        "created_at": "2024-01-18T10:00:00",
    },
    {
        "id": "4",
        "service_id": "3",
        "provider_id": "5",
        "total_price": 28000,
        "duration_days": 6,
        "notes": "Premium paint. Surface prep included.",
        "status": "ACCEPTED",
        "created_at": "2024-01-20T10:00:00",
    },
    {
        "id": "5",
        "service_id": "3",
        "provider_id": "2",
        "total_price": 32000,
        "duration_days": 8,
        "notes": "Two coats and sealing included.",
        "status": "REJECTED",
        "created_at": "2024-01-21T10:00:00",
    },
    {
        "id": "6",
        "service_id": "6",
        "provider_id": "5",
        "total_price": 12000,
        "duration_days": 3,
        "status": "PENDING",
        "created_at": "2024-02-01T09:30:00",
    },
    {
        "id": "7",
        "service_id": "8",
        "provider_id": "2",
        "total_price": 6000,
        "duration_days": 2,
        "notes": "Chemicals billed separately.",
        "status": "PENDING",
        "created_at": "2024-02-05T16:00:00",
    },
    {
        "id": "8",
        "service_id": "9",
        "provider_id": "2",
        "total_price": 9000,
        "duration_days": 1,
        "status": "ACCEPTED",
        "created_at": "2024-01-10T08:00:00",
    },
]

SUPPLIES_SEED: List[Dict[str, Any]] = [
    {"id": "1", "name": "Chlorine powder", "category": "Pools", "unit": "kg", "unit_price": 850, "stock": 50, "provider_id": "3"},
    {"id": "2", "name": "pH+ liquid", "category": "Pools", "unit": "litre", "unit_price": 450, "stock": 30, "provider_id": "3"},
    {"id": "3", "name": "Algaecide", "category": "Pools", "unit": "litre", "unit_price": 650, "stock": 25, "provider_id": "3"},
    {"id": "4", "name": "Organic fertiliser", "category": "Gardening", "unit": "kg", "unit_price": 320, "stock": 100, "provider_id": "3"},
    {"id": "5", "name": "Waste bags 100L", "category": "General", "unit": "unit", "unit_price": 150, "stock": 200, "provider_id": "3"},
    {"id": "6", "name": "Multi-purpose detergent", "category": "Cleaning", "unit": "litre", "unit_price": 280, "stock": 75, "provider_id": "3"},
    {"id": "7", "name": "Electrical cable 2.5mm", "category": "Electricity", "unit": "metre", "unit_price": 150, "stock": 1000, "provider_id": "4"},
    {"id": "8", "name": "Main electrical panel", "category": "Electricity", "unit": "unit", "unit_price": 8500, "stock": 15, "provider_id": "4"},
]

SUPPLY_OFFERS_SEED: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Basic pool maintenance pack",
        "service_id": "8",
        "provider_id": "3",
        "total_price": 1800,
        "items": [
            {"supply_id": "1", "quantity": 2},
            {"supply_id": "2", "quantity": 1},
            {"supply_id": "3", "quantity": 1},
        ],
        "created_at": "2024-01-15T12:00:00",
    },
    {
        "id": "2",
        "name": "Premium gardening pack",
        "service_id": "7",
        "provider_id": "3",
        "total_price": 2500,
        "items": [
            {"supply_id": "4", "quantity": 5},
            {"supply_id": "5", "quantity": 10},
        ],
        "created_at": "2024-01-18T12:00:00",
    },
    {
        "id": "3",
        "name": "Complete electrical installation pack",
        "service_id": "1",
        "provider_id": "4",
        "total_price": 18000,
        "items": [
            {"supply_id": "7", "quantity": 500},
            {"supply_id": "8", "quantity": 1},
        ],
        "created_at": "2024-01-20T12:00:00",
        "notes": "Delivery to site included.",
    },
]


def initial_state() -> MarketplaceState:
    """Fresh snapshot built from the seed collections, with nobody logged in."""
    return MarketplaceState(
        users=[User.model_validate(row) for row in USERS_SEED],
        services=[Service.model_validate(row) for row in SERVICES_SEED],
        quotes=[Quote.model_validate(row) for row in QUOTES_SEED],
        supplies=[Supply.model_validate(row) for row in SUPPLIES_SEED],
        supply_offers=[SupplyOffer.model_validate(row) for row in SUPPLY_OFFERS_SEED],
    )
