"""
Route table collaborator interface.

The reconciler never talks to a cloud API. It reads a RouteTableSnapshot
from a handle and the apply step pushes a plan back through the same handle.
"""

from abc import ABC, abstractmethod

from .models import Route, RouteTableRef, RouteTableSnapshot


class RouteTableHandle(ABC):
    """An opened route table with locally staged changes."""

    ref: RouteTableRef

    @abstractmethod
    def snapshot(self) -> RouteTableSnapshot:
        """Return the table contents as last read, including staged changes."""
        pass

    @abstractmethod
    def remove_route(self, name: str) -> None:
        """Stage removal of a route by name."""
        pass

    @abstractmethod
    def add_route(self, route: Route) -> None:
        """Stage addition of a route."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Write all staged changes back in one whole-table update."""
        pass

    @abstractmethod
    def discard(self) -> None:
        """Drop staged changes; the remote table must be read again before reuse."""
        pass


class RouteTableGateway(ABC):
    """Opens route tables for reading and staged modification."""

    @abstractmethod
    def open(self, ref: RouteTableRef) -> RouteTableHandle:
        """
        Read a route table.

        Args:
            ref: Resource group and table name

        Returns:
            Handle over the table's current contents

        Raises:
            RouteTableNotFound: If the table does not exist
        """
        pass
