from typing import Dict, FrozenSet, List, Optional

from marketplace.errors import MarketplacePermissionError
from marketplace.models import MarketplaceState, Role, Service, User

ALL_ROLES: FrozenSet[str] = frozenset({"REQUESTER", "SERVICE_PROVIDER", "SUPPLY_PROVIDER"})

SECTION_ROLES: Dict[str, FrozenSet[str]] = {
    "dashboard": ALL_ROLES,
    "services": ALL_ROLES,
    "service_detail": ALL_ROLES,
    "profile": ALL_ROLES,
    "publish": frozenset({"REQUESTER"}),
    "quotes": frozenset({"SERVICE_PROVIDER"}),
    "supplies": frozenset({"SUPPLY_PROVIDER"}),
}


def find_login_user(users: List[User], role: Role, email: Optional[str] = None) -> Optional[User]:
    email = (email or "").strip()
    for user in users:
        if user.role != role:
            continue
        if email and user.email != email:
            continue
        return user
    return None


def authenticate(users: List[User], email: str, password: str) -> Optional[User]:
    email = email.strip()
    for user in users:
        if user.email == email and user.password == password:
            return user
    return None


def has_role(state: MarketplaceState, *roles: str) -> bool:
    user = state.current_user
    return user is not None and user.role in roles


def require_role(state: MarketplaceState, *roles: str) -> User:
    user = state.current_user
    if user is None:
        raise MarketplacePermissionError("No user is logged in")
    if user.role not in roles:
        raise MarketplacePermissionError(f"Role {user.role} cannot do this")
    return user


def can_view_service(user: Optional[User], service: Service) -> bool:
    if user is None:
        return False
    if user.role == "REQUESTER":
        return service.requester_id == user.id
    if user.role == "SERVICE_PROVIDER":
        return service.requester_id != user.id
    return True


def can_access(user: Optional[User], section: str) -> bool:
    if user is None:
        return False
    return user.role in SECTION_ROLES.get(section, frozenset())


def allowed_sections(user: Optional[User]) -> List[str]:
    return [section for section in SECTION_ROLES if can_access(user, section)]
