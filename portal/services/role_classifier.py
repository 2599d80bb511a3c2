# portal/services/role_classifier.py
from collections.abc import Iterable
from dataclasses import dataclass

from portal.core.config import Settings

# Precedence order, highest first
TIER_LABELS = (
    ("QUEUE_PRIORITY_PLATINUM_ID", "Platinum Priority"),
    ("QUEUE_PRIORITY_GOLD_ID", "Gold Priority"),
    ("QUEUE_PRIORITY_SILVER_ID", "Silver Priority"),
    ("QUEUE_PRIORITY_BRONZE_ID", "Bronze Priority"),
)


@dataclass(frozen=True)
class RoleConfig:
    """
    Role ids the portal cares about, fixed at startup.

    priority_tiers holds (role_id, label) pairs in precedence order;
    tiers whose role id is not configured are left out.
    """

    whitelist_role_id: str | None = None
    priority_tiers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoleConfig":
        tiers: list[tuple[str, str]] = []
        for setting_name, label in TIER_LABELS:
            role_id = getattr(settings, setting_name)
            if role_id:
                tiers.append((role_id, label))

        return cls(
            whitelist_role_id=settings.WHITELIST_ROLE_ID or None,
            priority_tiers=tuple(tiers),
        )


@dataclass(frozen=True)
class RoleClassification:
    is_whitelisted: bool = False
    tier: str | None = None


def classify_roles(roles: Iterable[str] | None, config: RoleConfig) -> RoleClassification:
    """
    Map a member's role ids to (whitelisted?, priority tier).

    A member holding several tier roles gets only the highest one.
    `roles=None` (unknown membership) classifies like an empty set.
    """
    held = set(roles or ())

    is_whitelisted = config.whitelist_role_id is not None and config.whitelist_role_id in held

    tier = None
    for role_id, label in config.priority_tiers:
        if role_id in held:
            tier = label
            break

    return RoleClassification(is_whitelisted=is_whitelisted, tier=tier)
