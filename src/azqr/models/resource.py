"""Resource models and helpers for taking apart ARM resource ids."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Resource:
    """A resource discovered through Resource Graph."""

    id: str
    subscription_id: str = ""
    resource_group: str = ""
    type: str = ""
    location: str = ""
    name: str = ""
    sku_name: str = ""
    sku_tier: str = ""
    kind: str = ""
    sla: str = ""


@dataclass(slots=True)
class ResourceTypeCount:
    """Number of resources of one type in one subscription."""

    subscription: str
    resource_type: str
    count: float
    available_in_aprl: str = "No"
    custom1: str = ""
    custom2: str = ""
    custom3: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "Subscription": self.subscription,
            "Resource Type": self.resource_type,
            "Number of Resources": self.count,
            "Available In APRL?": self.available_in_aprl,
            "Custom1": self.custom1,
            "Custom2": self.custom2,
            "Custom3": self.custom3,
        }


def get_subscription_from_resource_id(resource_id: str) -> str:
    parts = resource_id.split("/")
    return parts[2] if len(parts) >= 3 else ""


def get_resource_group_from_resource_id(resource_id: str) -> str:
    parts = resource_id.split("/")
    return parts[4] if len(parts) >= 5 else ""


def get_resource_group_id_from_resource_id(resource_id: str) -> str:
    parts = resource_id.split("/")
    return "/".join(parts[:5]) if len(parts) >= 5 else ""


def get_resource_type_from_resource_id(resource_id: str) -> str:
    """Return ``namespace/type`` of a top-level resource id."""

    parts = resource_id.split("/")
    return f"{parts[6]}/{parts[7]}" if len(parts) >= 8 else ""


def get_resource_name_from_resource_id(resource_id: str) -> str:
    parts = resource_id.split("/")
    return parts[-1] if len(parts) >= 9 else ""


def parse_location(location: str) -> str:
    return location.replace(" ", "").lower()


__all__ = [
    "Resource",
    "ResourceTypeCount",
    "get_resource_group_from_resource_id",
    "get_resource_group_id_from_resource_id",
    "get_resource_name_from_resource_id",
    "get_resource_type_from_resource_id",
    "get_subscription_from_resource_id",
    "parse_location",
]
