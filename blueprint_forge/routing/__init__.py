"""Category routing: where each generated file ends up."""

from blueprint_forge.routing.categories import (
    BACKEND_MARKER,
    FRONTEND_MARKER,
    PathCategory,
    PathRoutingTable,
    RoutingRule,
    default_routing_table,
)
from blueprint_forge.routing.resolver import (
    PathCategoryResolver,
    glob_matches,
    match_category,
    normalize_relative,
)

__all__ = [
    "BACKEND_MARKER",
    "FRONTEND_MARKER",
    "PathCategory",
    "PathCategoryResolver",
    "PathRoutingTable",
    "RoutingRule",
    "default_routing_table",
    "glob_matches",
    "match_category",
    "normalize_relative",
]
