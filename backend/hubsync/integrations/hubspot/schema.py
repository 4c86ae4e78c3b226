"""
HubSpot Schema Configuration.

Per entity type: the search object type, the modification timestamp
property used for incremental filtering and the properties requested from
the search API.
"""

from typing import Any, Dict, List

SCHEMA_MAPPING: Dict[str, Dict[str, Any]] = {
    "contacts": {
        "object_type": "contacts",
        "filter_property": "lastmodifieddate",
        "properties": [
            "firstname",
            "lastname",
            "jobtitle",
            "email",
            "hubspotscore",
            "hs_lead_status",
            "hs_analytics_source",
            "hs_latest_source",
        ],
    },
    "companies": {
        "object_type": "companies",
        "filter_property": "hs_lastmodifieddate",
        "properties": [
            "name",
            "domain",
            "country",
            "industry",
            "description",
            "annualrevenue",
            "numberofemployees",
            "hs_lead_status",
        ],
    },
    "meetings": {
        "object_type": "meetings",
        "filter_property": "hs_lastmodifieddate",
        "properties": [
            "hs_meeting_title",
            "hs_timestamp",
        ],
    },
}

# Sync order within one account
ENTITY_ORDER: List[str] = ["contacts", "companies", "meetings"]


def get_schema_config(entity_type: str) -> Dict[str, Any]:
    """
    Gets schema configuration for an entity type.

    Raises:
        KeyError: If entity type is not configured
    """
    return SCHEMA_MAPPING[entity_type]
