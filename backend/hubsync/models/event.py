"""
OutboundEvent - the unit handed to the downstream event sink.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from hubsync.utils.timestamps import to_epoch_ms


def filter_null_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drops keys whose value is absent.

    Empty strings and zero are kept; only None is treated as absent.

    Examples:
        >>> filter_null_values({"a": 1, "b": None, "c": ""})
        {'a': 1, 'c': ''}
    """
    return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class OutboundEvent:
    """
    One action for the sink, e.g. "Contact Created".

    The property bag is stored under its payload key (userProperties,
    companyProperties or meetingProperties) and is null-filtered on
    construction.
    """
    action_name: str
    action_date: datetime
    properties_key: str
    properties: Dict[str, Any] = field(default_factory=dict)
    identity: Optional[str] = None
    include_in_analytics: int = 0

    def __post_init__(self):
        object.__setattr__(self, "properties", filter_null_values(self.properties))

    def to_dict(self) -> Dict[str, Any]:
        """Renders the sink payload."""
        payload: Dict[str, Any] = {
            "actionName": self.action_name,
            "actionDate": to_epoch_ms(self.action_date),
            "includeInAnalytics": self.include_in_analytics,
            self.properties_key: dict(self.properties),
        }
        if self.identity is not None:
            payload["identity"] = self.identity
        return payload
