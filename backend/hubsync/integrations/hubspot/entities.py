"""
HubSpot Entity Definitions.

One EntityDefinition per synced object type, registered in sync order.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List

from hubsync.core.interfaces.entity import EntityDefinition
from hubsync.integrations.hubspot.client import HubSpotClient
from hubsync.integrations.hubspot.processors import (
    project_company,
    project_contact,
    project_meeting,
)
from hubsync.integrations.hubspot.schema import ENTITY_ORDER, get_schema_config

logger = logging.getLogger(__name__)


class HubSpotEntity(EntityDefinition):
    """Reads name, object type, filter property and properties from the schema."""

    def __init__(self, name: str):
        config = get_schema_config(name)
        self.name = name
        self.object_type = config["object_type"]
        self.filter_property = config["filter_property"]
        self.properties = list(config["properties"])


class ContactEntity(HubSpotEntity):
    """Contacts, with their first associated company spliced in."""

    def __init__(self):
        super().__init__("contacts")

    async def prepare(self, client: HubSpotClient, page: List[Dict[str, Any]]) -> Dict[str, Any]:
        contact_ids = [str(record["id"]) for record in page if record.get("id")]
        associations = await client.read_company_associations(contact_ids)
        logger.debug(f"Resolved {len(associations)}/{len(contact_ids)} contact company associations")
        return {"company_ids": associations}

    def project(self, record, watermark, context):
        company_id = context.get("company_ids", {}).get(str(record.get("id")))
        return project_contact(record, watermark, company_id=company_id)


class CompanyEntity(HubSpotEntity):
    """Companies; action dates are shifted back by the configured offset."""

    def __init__(self, action_date_offset: timedelta):
        super().__init__("companies")
        self.action_date_offset = action_date_offset

    def project(self, record, watermark, context):
        return project_company(record, watermark, offset=self.action_date_offset)


class MeetingEntity(HubSpotEntity):
    """Meetings, shifted back by the same offset as companies."""

    def __init__(self, action_date_offset: timedelta):
        super().__init__("meetings")
        self.action_date_offset = action_date_offset

    def project(self, record, watermark, context):
        return project_meeting(record, watermark, offset=self.action_date_offset)


def build_entity_registry(action_date_offset_ms: int = 2000) -> Dict[str, EntityDefinition]:
    """
    Builds the entity registry in sync order.

    Args:
        action_date_offset_ms: Shift applied to company and meeting action dates

    Returns:
        Ordered dict: entity name -> definition
    """
    offset = timedelta(milliseconds=action_date_offset_ms)
    definitions = {
        "contacts": ContactEntity(),
        "companies": CompanyEntity(offset),
        "meetings": MeetingEntity(offset),
    }
    return {name: definitions[name] for name in ENTITY_ORDER}

