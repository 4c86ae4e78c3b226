"""
Record Projection for HubSpot.

Turns raw search results into outbound events. A projection returns None
for records that lack what the event needs; those are skipped, not erred.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from hubsync.models.event import OutboundEvent
from hubsync.utils.timestamps import parse_timestamp

logger = logging.getLogger(__name__)


def classify(
    record: Dict[str, Any],
    watermark: Optional[datetime],
) -> Optional[Tuple[bool, datetime]]:
    """
    Decides whether a record was created or updated since the watermark.

    Args:
        record: Raw search result
        watermark: Last synced timestamp, None on the first run

    Returns:
        (is_created, action_date) or None if the needed timestamp is missing
    """
    created_at = parse_timestamp(record.get("createdAt"))
    is_created = watermark is None or (created_at is not None and created_at > watermark)

    action_date = created_at if is_created else parse_timestamp(record.get("updatedAt"))
    if action_date is None:
        return None
    return is_created, action_date


def _parse_score(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def project_contact(
    record: Dict[str, Any],
    watermark: Optional[datetime],
    company_id: Optional[str] = None,
) -> Optional[OutboundEvent]:
    """
    Projects a contact. Contacts without an email are skipped.

    Args:
        record: Raw contact
        watermark: Contacts watermark
        company_id: Associated company, if any

    Returns:
        "Contact Created" / "Contact Updated" event, or None
    """
    properties = record.get("properties")
    if not properties or not properties.get("email"):
        return None

    classified = classify(record, watermark)
    if classified is None:
        logger.debug(f"Skipping contact {record.get('id')}: no timestamp for action date")
        return None
    is_created, action_date = classified

    name = f"{properties.get('firstname') or ''} {properties.get('lastname') or ''}".strip()

    return OutboundEvent(
        action_name="Contact Created" if is_created else "Contact Updated",
        action_date=action_date,
        identity=properties["email"],
        properties_key="userProperties",
        properties={
            "company_id": company_id,
            "contact_name": name,
            "contact_title": properties.get("jobtitle"),
            "contact_source": properties.get("hs_analytics_source"),
            "contact_status": properties.get("hs_lead_status"),
            "contact_score": _parse_score(properties.get("hubspotscore")),
        },
    )


def project_company(
    record: Dict[str, Any],
    watermark: Optional[datetime],
    offset: timedelta = timedelta(milliseconds=2000),
) -> Optional[OutboundEvent]:
    """Projects a company; the action date is shifted back by offset."""
    properties = record.get("properties")
    if not properties:
        return None

    classified = classify(record, watermark)
    if classified is None:
        logger.debug(f"Skipping company {record.get('id')}: no timestamp for action date")
        return None
    is_created, action_date = classified

    return OutboundEvent(
        action_name="Company Created" if is_created else "Company Updated",
        action_date=action_date - offset,
        properties_key="companyProperties",
        properties={
            "company_id": record.get("id"),
            "company_domain": properties.get("domain"),
            "company_industry": properties.get("industry"),
        },
    )


def project_meeting(
    record: Dict[str, Any],
    watermark: Optional[datetime],
    offset: timedelta = timedelta(milliseconds=2000),
) -> Optional[OutboundEvent]:
    """Projects a meeting; identity is the meeting ID."""
    properties = record.get("properties")
    if not properties or not record.get("id"):
        return None

    classified = classify(record, watermark)
    if classified is None:
        logger.debug(f"Skipping meeting {record.get('id')}: no timestamp for action date")
        return None
    is_created, action_date = classified

    return OutboundEvent(
        action_name="Meeting Created" if is_created else "Meeting Updated",
        action_date=action_date - offset,
        identity=str(record["id"]),
        properties_key="meetingProperties",
        properties={
            "meeting_title": properties.get("hs_meeting_title"),
            "meeting_timestamp": properties.get("hs_timestamp"),
        },
    )
