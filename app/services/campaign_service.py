"""
WhatsApp campaign builder

Messages are never sent from the server. Each dispatch is a wa.me deep
link carrying a personalized text; the agent opens it in their own
WhatsApp session and presses send.
"""
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Callable, Awaitable
from urllib.parse import quote
import asyncio
import logging
import re
from app.services.matching_service import Match, matches_for_prospect

logger = logging.getLogger(__name__)

WHATSAPP_BASE_URL = "https://wa.me"

MESSAGE_TEMPLATES: List[Dict[str, str]] = [
    {
        "id": "property_match",
        "name": "Property Match",
        "message": """Hello {{prospectName}},

I found a perfect property that matches your preferences:

🏡 {{propertyTitle}}
📍 {{propertyLocation}}
💰 {{propertyPrice}}
🛏️ {{bedrooms}} bedrooms, 🚿 {{bathrooms}} bathrooms
📐 {{area}} m²

This property fits your budget and preferences. Would you like to schedule a viewing?

Best regards,
Your Real Estate Agent""",
    },
    {
        "id": "bulk_update",
        "name": "Bulk Property Update",
        "message": """Hello {{prospectName}},

🏠 NEW PROPERTIES ALERT!

We have {{propertyCount}} new properties that match your criteria:
• Budget range: {{budgetRange}}
• Preferred locations: {{locations}}
• Property types: {{propertyTypes}}

Reply "YES" to receive the full list with photos and details.

Best regards,
Your Real Estate Agent""",
    },
    {
        "id": "market_update",
        "name": "Market Update",
        "message": """Hello {{prospectName}},

📈 MARKET UPDATE

Current real estate trends in your preferred areas:
• Average prices are stable
• New inventory available
• Best time to buy/invest

We have properties matching your {{budgetRange}} budget in {{locations}}.

Contact us for personalized recommendations!

Best regards,
Your Real Estate Agent""",
    },
]


@dataclass
class Dispatch:
    prospect_id: str
    prospect_name: str
    phone: str
    template_id: str
    message: str
    link: str
    match_count: int
    property_ids: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prospect_id": self.prospect_id,
            "prospect_name": self.prospect_name,
            "phone": self.phone,
            "template_id": self.template_id,
            "message": self.message,
            "link": self.link,
            "match_count": self.match_count,
            "property_ids": self.property_ids,
        }


def get_template(template_id: str) -> Optional[Dict[str, str]]:
    for template in MESSAGE_TEMPLATES:
        if template["id"] == template_id:
            return template
    return None


def format_price(price) -> str:
    """1234567 -> '1,234,567 DH'"""
    value = float(price or 0)
    if value.is_integer():
        return f"{int(value):,} DH"
    return f"{value:,.3f}".rstrip("0").rstrip(".") + " DH"


def _format_number(value) -> str:
    value = value or 0
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _fill(template: str, values: Dict[str, str]) -> str:
    for token, value in values.items():
        template = template.replace("{{" + token + "}}", value)
    return template


def personalize_individual(template: str, match: Match) -> str:
    """Fill prospect and single-property tokens from one match"""
    prospect, prop = match.prospect, match.property
    return _fill(template, {
        "prospectName": prospect.get("name", ""),
        "propertyTitle": prop.get("title", ""),
        "propertyLocation": prop.get("location", ""),
        "propertyPrice": format_price(prop.get("price")),
        "bedrooms": _format_number(prop.get("bedrooms")),
        "bathrooms": _format_number(prop.get("bathrooms")),
        "area": _format_number(prop.get("area")),
    })


def personalize_bulk(template: str, prospect: Dict[str, Any], matches: List[Match]) -> str:
    """Fill prospect-level tokens (budget, locations, types, match count)"""
    prefs = prospect.get("preferences") or {}
    budget = prefs.get("budget") or {}
    return _fill(template, {
        "prospectName": prospect.get("name", ""),
        "propertyCount": str(len(matches)),
        "budgetRange": f"{format_price(budget.get('min') or 0)} - {format_price(budget.get('max') or 0)}",
        "locations": ", ".join(prefs.get("locations") or []) or "Various locations",
        "propertyTypes": ", ".join(prefs.get("property_types") or []) or "All types",
    })


def build_whatsapp_link(phone: str, text: str) -> str:
    """wa.me deep link; the phone keeps digits only"""
    digits = re.sub(r"\D", "", phone or "")
    return f"{WHATSAPP_BASE_URL}/{digits}?text={quote(text, safe='')}"


def build_campaign(
    prospects: List[Dict[str, Any]],
    matches: List[Match],
    template_id: str,
    prospect_ids: Optional[List[str]] = None
) -> List[Dispatch]:
    """
    One dispatch per prospect that has at least one match, in prospect order.
    property_match messages describe the best match; other templates use the
    prospect-level summary.
    """
    template = get_template(template_id)
    if not template:
        raise ValueError(f"Unknown template: {template_id}")

    selected = set(prospect_ids) if prospect_ids else None
    dispatches = []

    for prospect in prospects:
        if selected is not None and prospect["id"] not in selected:
            continue

        own_matches = matches_for_prospect(matches, prospect["id"])
        if not own_matches:
            continue

        if template_id == "property_match":
            message = personalize_individual(template["message"], own_matches[0])
        else:
            message = personalize_bulk(template["message"], prospect, own_matches)

        dispatches.append(Dispatch(
            prospect_id=prospect["id"],
            prospect_name=prospect.get("name", ""),
            phone=prospect.get("phone", ""),
            template_id=template_id,
            message=message,
            link=build_whatsapp_link(prospect.get("phone", ""), message),
            match_count=len(own_matches),
            property_ids=[m.property["id"] for m in own_matches],
        ))

    logger.info(f"📣 Campaign '{template_id}': {len(dispatches)} dispatch(es) for {len(prospects)} prospect(s)")
    return dispatches


async def dispatch_links(
    dispatches: List[Dispatch],
    open_link: Callable[[str], Awaitable[None]],
    delay: float = 1.0
) -> int:
    """
    Hand each link to open_link in order, sleeping delay seconds between
    dispatches. Returns how many links were opened.
    """
    opened = 0
    for index, dispatch in enumerate(dispatches):
        if index:
            await asyncio.sleep(delay)
        await open_link(dispatch.link)
        opened += 1
    return opened
