"""Prompt construction for the estimate search model."""
from __future__ import annotations

from typing import Dict, List

from app.schemas import TripParameters

# key -> (display name, default share of a trip budget in percent)
EXPENSE_CATEGORIES: Dict[str, tuple] = {
    "flight": ("Flight", 25),
    "accommodation": ("Accommodation", 25),
    "localTransportation": ("Local Transportation", 10),
    "carRental": ("Car Rental", 10),
    "food": ("Food", 10),
    "activities": ("Activities", 8),
    "culturalEvents": ("Cultural Events", 7),
    "shopping": ("Shopping", 5),
}

JSON_ONLY_INSTRUCTION = "Return ONLY the JSON object, no additional text."

GENERAL_PROMPT_TEMPLATE = """Search for current daily costs in {country} for {travelers} travelers.
Return a JSON object with estimates for these categories: {category_list}

For each category, provide real prices from {country} cities and tourist areas.
Include specific examples from major {country} destinations.
All costs must be in {currency}.

Use this exact JSON structure for each category:
{{
  "category_name": {{
    "searchDetails": {{
      "location": "{country}",
      "travelers": {travelers},
      "currency": "{currency}"
    }},
    "budget": {{
      "min": number,
      "max": number,
      "average": number,
      "confidence": number (between 0-1),
      "source": "string",
      "references": [
        {{
          "provider": "string (actual provider name)",
          "details": "string (specific details)",
          "price": number,
          "link": "string (optional URL)"
        }}
      ]
    }},
    "medium": {{ same structure }},
    "premium": {{ same structure }}
  }}
}}

{json_only}"""

FLIGHT_PROMPT_TEMPLATE = """Search for current flight prices from {origin} to {country}.
Return a JSON object with flight estimates.

Consider these details:
- Departure: {origin}
- Destination: {country}
- Type: {flight_type} flight
- Dates: {dates}
- Travelers: {travelers}
- Currency: {currency}

Use this exact JSON structure:
{{
  "flight": {{
    "searchDetails": {{
      "from": "{origin}",
      "to": "{country}",
      "type": "{flight_type}",
      "dates": {{
        "outbound": "{outbound}",
        "inbound": "{inbound}"
      }},
      "travelers": {travelers}
    }},
    "budget": {{
      "min": number,
      "max": number,
      "average": number,
      "confidence": number (between 0-1),
      "source": "string",
      "references": [
        {{
          "airline": "string",
          "route": "string",
          "price": number,
          "outbound": "string",
          "inbound": "string",
          "outboundDate": "string",
          "inboundDate": "string",
          "duration": "string",
          "layovers": number,
          "link": "string (optional URL)"
        }}
      ]
    }},
    "medium": {{ same structure }},
    "premium": {{ same structure }}
  }}
}}

{json_only}"""


def build_prompt(category: str, params: TripParameters) -> str:
    """Return the search prompt for ``category``.

    Flights get a route-specific prompt when a departure location is known;
    everything else (including flights without an origin) shares the general
    prompt covering ``params.selected_categories``.
    """
    if category == "flight" and params.departure_location is not None:
        return build_flight_prompt(params)
    categories = params.selected_categories or [category]
    return build_general_prompt(categories, params)


def build_general_prompt(categories: List[str], params: TripParameters) -> str:
    return GENERAL_PROMPT_TEMPLATE.format(
        country=params.country,
        travelers=params.travelers,
        currency=params.currency,
        category_list=", ".join(_describe_category(key) for key in categories),
        json_only=JSON_ONLY_INSTRUCTION,
    )


def build_flight_prompt(params: TripParameters) -> str:
    departure = params.departure_location
    if departure is None:
        raise ValueError("flight prompt requires a departure location")

    flight_type = "round-trip" if departure.is_round_trip else "one-way"
    date_bits: List[str] = []
    if departure.outbound_date:
        date_bits.append(f"Outbound on {departure.outbound_date}")
    if departure.is_round_trip and departure.inbound_date:
        date_bits.append(f"Inbound on {departure.inbound_date}")

    return FLIGHT_PROMPT_TEMPLATE.format(
        origin=departure.name,
        country=params.country,
        flight_type=flight_type,
        dates=", ".join(date_bits) if date_bits else "Flexible",
        travelers=params.travelers,
        currency=params.currency,
        outbound=departure.outbound_date or "flexible",
        inbound=(departure.inbound_date if departure.is_round_trip else None) or "N/A",
        json_only=JSON_ONLY_INSTRUCTION,
    )


def _describe_category(key: str) -> str:
    entry = EXPENSE_CATEGORIES.get(key)
    if entry is None:
        return f'"{key}"'
    return f'"{key}" ({entry[0]})'
