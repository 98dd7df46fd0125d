"""
Route table models and the collaborators that read and write them.
"""

from .models import NextHopType, Route, RouteTableRef, RouteTableSnapshot
from .gateway import RouteTableGateway, RouteTableHandle

__all__ = [
    "NextHopType",
    "Route",
    "RouteTableRef",
    "RouteTableSnapshot",
    "RouteTableGateway",
    "RouteTableHandle",
]
