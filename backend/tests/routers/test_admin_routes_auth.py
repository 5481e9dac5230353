from fastapi import APIRouter
from fastapi.routing import APIRoute
from tourbook.deps import get_current_admin
from tourbook.routers import checkin, history, reservations, slots

ADMIN_ROUTERS = [slots.admin_router, reservations.admin_router, checkin.router, history.router]


def _requires_admin(router: APIRouter) -> bool:
    return any(dep.dependency == get_current_admin for dep in router.dependencies)


def test_admin_routers_require_bearer_token() -> None:
    for router in ADMIN_ROUTERS:
        # Router-level dependency must include Bearer token verification
        assert _requires_admin(router)

        # Each route should inherit the auth dependency
        for route in router.routes:
            if not isinstance(route, APIRoute):
                continue
            assert any(dep.call == get_current_admin for dep in route.dependant.dependencies)


def test_visitor_routers_are_public() -> None:
    assert not _requires_admin(slots.router)
    assert not _requires_admin(reservations.router)
    for router in (slots.router, reservations.router):
        for route in router.routes:
            if isinstance(route, APIRoute):
                assert not route.path.startswith("/admin")
