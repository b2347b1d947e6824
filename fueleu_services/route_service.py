"""
fueleu_services.route_service -- The route registry.

Responsibility:
    Register, look up, edit and remove the port-to-port routes that
    compliance records name in ``route_id``.

Architecture position:
    Services -- stateful orchestration over kernel ports.
    Uses a RouteRepository only; no engine is involved.  Never commits.

Invariants enforced:
    - Port names are trimmed and never blank.
    - Distance is a finite, non-negative Decimal (nautical miles).
    - ``route_type`` is one of RouteType; unknown values raise
      ValidationError, never a bare ValueError.

Failure modes:
    - RouteNotFoundError for an unknown route id on get / update / delete.
    - ValidationError on blank ports, a negative or non-numeric distance, or
      an unknown route type.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID, uuid4

from fueleu_kernel.domain.clock import Clock, SystemClock
from fueleu_kernel.domain.dtos import RouteInfo, RouteType
from fueleu_kernel.domain.ports import RouteRepository
from fueleu_kernel.domain.values import Numeric, require_non_negative, to_enum
from fueleu_kernel.exceptions import RouteNotFoundError, ValidationError
from fueleu_kernel.logging_config import get_logger

logger = get_logger("services.routes")


def _require_port(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, value, "must not be empty")
    return value.strip()


class RouteService:
    """
    CRUD over the route registry.

    Contract:
        Receives a RouteRepository by constructor injection.  Timestamps
        come from the injected Clock.
    Non-goals:
        - Does NOT check whether compliance records still refer to a route
          before deleting it.
        - Does NOT commit; the caller owns the transaction.
    """

    def __init__(self, repository: RouteRepository, clock: Clock | None = None):
        self._repository = repository
        self._clock = clock or SystemClock()

    def create_route(
        self,
        origin_port: str,
        destination_port: str,
        distance: Numeric,
        route_type: RouteType,
    ) -> RouteInfo:
        """
        Register a new route.

        Raises:
            ValidationError: Blank ports, negative or non-finite distance, or
                an unknown route type.
        """
        now = self._clock.now()
        route = RouteInfo(
            id=uuid4(),
            origin_port=_require_port(origin_port, "origin_port"),
            destination_port=_require_port(destination_port, "destination_port"),
            distance=require_non_negative(distance, "distance"),
            route_type=to_enum(RouteType, route_type, "route_type"),
            created_at=now,
            updated_at=now,
        )
        route = self._repository.create(route)

        logger.info("route_created", extra={
            "route_id": str(route.id),
            "origin_port": route.origin_port,
            "destination_port": route.destination_port,
            "route_type": route.route_type.value,
        })
        return route

    def get_route(self, route_id: UUID) -> RouteInfo:
        route = self._repository.find_by_id(route_id)
        if route is None:
            raise RouteNotFoundError(str(route_id))
        return route

    def list_routes(self) -> list[RouteInfo]:
        """All routes, newest first."""
        return self._repository.list_routes()

    def list_by_ports(self, origin_port: str, destination_port: str) -> list[RouteInfo]:
        """Routes from ``origin_port`` to ``destination_port``, newest first."""
        return self._repository.find_by_ports(
            _require_port(origin_port, "origin_port"),
            _require_port(destination_port, "destination_port"),
        )

    def update_route(
        self,
        route_id: UUID,
        *,
        origin_port: str | None = None,
        destination_port: str | None = None,
        distance: Numeric | None = None,
        route_type: RouteType | None = None,
    ) -> RouteInfo:
        """Change any subset of a route's fields; None leaves a field as is."""
        route = self.get_route(route_id)
        changes: dict[str, object] = {}
        if origin_port is not None:
            changes["origin_port"] = _require_port(origin_port, "origin_port")
        if destination_port is not None:
            changes["destination_port"] = _require_port(destination_port, "destination_port")
        if distance is not None:
            changes["distance"] = require_non_negative(distance, "distance")
        if route_type is not None:
            changes["route_type"] = to_enum(RouteType, route_type, "route_type")

        updated = self._repository.update(
            replace(route, updated_at=self._clock.now(), **changes)
        )
        logger.info("route_updated", extra={
            "route_id": str(route_id),
            "changed_fields": sorted(changes),
        })
        return updated

    def delete_route(self, route_id: UUID) -> None:
        self._repository.delete(route_id)
        logger.info("route_deleted", extra={"route_id": str(route_id)})

    def route_exists(self, route_id: UUID) -> bool:
        return self._repository.exists(route_id)
