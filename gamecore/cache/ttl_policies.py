"""
TTL configuration per lookup category.
"""
from typing import Any, Dict, Tuple
from enum import Enum


class LookupCategory(Enum):
    """Categories of cached lookups with different freshness needs."""
    IDENTITY = "identity"            # Player handles / server ids, change on rejoin
    POSITION = "position"            # Coordinates, distances, nearby entities
    INVENTORY = "inventory"          # Item counts, equipped weapon
    ENVIRONMENT = "environment"      # Vehicle, seat, weather, zone
    STATIC_CONFIG = "static_config"  # Item/config tables, rarely change


# TTL configuration by category (in seconds)
TTL_CONFIG: Dict[LookupCategory, Dict[str, Any]] = {
    LookupCategory.IDENTITY: {
        "ttl": 5.0,
        "retry": 1.0,             # Back off 1s after a failed lookup
    },
    LookupCategory.POSITION: {
        "ttl": 0.5,
        "ttl_combat": 0.1,        # Tighter while fighting
        "retry": 0.0,             # Always retry, value goes stale fast
    },
    LookupCategory.INVENTORY: {
        "ttl": 2.0,
        "ttl_combat": 0.5,
        "retry": 0.5,
    },
    LookupCategory.ENVIRONMENT: {
        "ttl": 1.0,
        "retry": 0.5,
    },
    LookupCategory.STATIC_CONFIG: {
        "ttl": 300.0,             # 5 minutes
        "retry": 30.0,
    },
}


def get_ttl_for_category(
    category: LookupCategory,
    in_combat: bool = False,
) -> Tuple[float, float]:
    """
    Get TTL configuration for a lookup category.

    Args:
        category: The lookup category
        in_combat: True while the owning player is in combat

    Returns:
        (ttl, retry_interval)
    """
    config = TTL_CONFIG.get(category, TTL_CONFIG[LookupCategory.ENVIRONMENT])

    if in_combat:
        ttl = config.get("ttl_combat", config["ttl"])
    else:
        ttl = config["ttl"]

    return ttl, config.get("retry", 0.0)
