"""
Azure implementation of the route table gateway.

Uses the Azure SDK for Python (azure-mgmt-network). Routes are staged on
the fetched RouteTable model and the whole model is written back with one
create_or_update call, which replaces the table's route list as a unit.
"""

import logging
from typing import Any, List, Optional, Union

from azure.core.exceptions import AzureError, HttpResponseError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.network.models import Route as AzureRoute

from ..clouds import CloudEnvironment, endpoints_for
from ..errors import ConfigError, RouteTableNotFound, RouteTableUnavailable
from .gateway import RouteTableGateway, RouteTableHandle
from .models import Route, RouteTableRef, RouteTableSnapshot

logger = logging.getLogger(__name__)


def _enum_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _from_azure(route: Any) -> Route:
    return Route(
        name=route.name,
        address_prefix=route.address_prefix,
        next_hop_type=_enum_text(route.next_hop_type),
        next_hop_ip_address=route.next_hop_ip_address,
    )


def _to_azure(route: Route) -> AzureRoute:
    return AzureRoute(
        name=route.name,
        address_prefix=route.address_prefix,
        next_hop_type=route.next_hop_type,
        next_hop_ip_address=route.next_hop_ip_address,
    )


class AzureRouteTableHandle(RouteTableHandle):
    """A fetched Azure RouteTable model plus locally staged route edits."""

    def __init__(self, client: NetworkManagementClient, ref: RouteTableRef, table: Any):
        self._client = client
        self.ref = ref
        self._table = table
        self._staged = 0

    def _routes(self) -> List[Any]:
        if self._table is None:
            raise RuntimeError(f"Route table {self.ref} was discarded; read it again")
        if self._table.routes is None:
            self._table.routes = []
        return self._table.routes

    def snapshot(self) -> RouteTableSnapshot:
        return RouteTableSnapshot.from_routes(_from_azure(r) for r in self._routes())

    def remove_route(self, name: str) -> None:
        routes = self._routes()
        remaining = [r for r in routes if r.name != name]
        if len(remaining) == len(routes):
            raise KeyError(f"Route {name} not present in {self.ref}")
        self._table.routes = remaining
        self._staged += 1
        logger.debug(f"Staged removal of route {name} from {self.ref}")

    def add_route(self, route: Route) -> None:
        routes = self._routes()
        if any(r.name == route.name for r in routes):
            raise ValueError(f"Route {route.name} already present in {self.ref}")
        routes.append(_to_azure(route))
        self._staged += 1
        logger.debug(f"Staged route {route.name} -> {route.address_prefix} in {self.ref}")

    def commit(self) -> None:
        self._routes()
        logger.info(f"Committing {self._staged} staged route changes to {self.ref}")
        poller = self._client.route_tables.begin_create_or_update(
            self.ref.resource_group, self.ref.name, self._table
        )
        self._table = poller.result()
        self._staged = 0

    def discard(self) -> None:
        self._table = None
        self._staged = 0


class AzureRouteTableGateway(RouteTableGateway):
    """
    Opens route tables through the Azure network management API.

    The credential defaults to DefaultAzureCredential bound to the cloud's
    authority host, so the usual az login, managed identity and environment
    credentials all work without studr handling secrets itself.
    """

    def __init__(
        self,
        subscription_id: str,
        cloud: Union[str, CloudEnvironment] = CloudEnvironment.PUBLIC,
        credential: Any = None,
        client: Optional[NetworkManagementClient] = None,
    ):
        if client is None and not subscription_id:
            raise ConfigError("An Azure subscription id is required to manage route tables")

        self.subscription_id = subscription_id
        self.cloud = CloudEnvironment.parse(cloud)

        if client is None:
            endpoints = endpoints_for(self.cloud)
            if credential is None:
                credential = DefaultAzureCredential(authority=endpoints.authority_host)
            client = NetworkManagementClient(
                credential=credential,
                subscription_id=subscription_id,
                base_url=endpoints.resource_manager,
                credential_scopes=[endpoints.credential_scope],
            )
        self._client = client

    def open(self, ref: RouteTableRef) -> AzureRouteTableHandle:
        try:
            table = self._client.route_tables.get(ref.resource_group, ref.name)
        except ResourceNotFoundError as exc:
            raise RouteTableNotFound(ref.table_id) from exc
        except HttpResponseError as exc:
            if exc.status_code == 404:
                raise RouteTableNotFound(ref.table_id, detail=exc.message) from exc
            raise RouteTableUnavailable(f"Failed to read route table {ref}: {exc.message}") from exc
        except AzureError as exc:
            raise RouteTableUnavailable(f"Failed to read route table {ref}: {exc}") from exc

        handle = AzureRouteTableHandle(self._client, ref, table)
        logger.info(f"Read route table {ref} with {len(handle.snapshot())} routes")
        return handle
