"""Constants, taxonomy and prompt templates used by the intelligence pipeline."""

from __future__ import annotations

from typing import Final

# Transcript budget for LLM submission
MAX_TRANSCRIPT_CHARS: Final[int] = 8000
TRUNCATION_MARKER: Final[str] = "\n\n[Transcript truncated for analysis...]"

# Action items
MAX_TASK_TITLE_CHARS: Final[int] = 80
DEFAULT_DUE_DAYS: Final[int] = 2
PRIORITIES: Final[tuple[str, ...]] = ("low", "medium", "high")
DEFAULT_PRIORITY: Final[str] = "medium"
UNASSIGNED: Final[str] = "Unassigned"

UNTITLED_MEETING: Final[str] = "Untitled Meeting"
UNKNOWN_LEAD: Final[str] = "Unknown"

# Consumer mail providers never map to an organization
COMMON_EMAIL_DOMAINS: Final[frozenset[str]] = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "icloud.com",
        "protonmail.com",
    }
)

SECTORS: Final[tuple[str, ...]] = (
    "OTC Brokerage & Execution",
    "Bitcoin & Digital Assets",
    "Stablecoin Liquidity",
    "Commodities (Gold, Oil, Energy)",
    "Real Estate Capital",
    "Payment Rails",
    "Technology",
    "AI",
    "Compliance",
    "General",
)

JURISDICTIONS: Final[tuple[str, ...]] = (
    "USA",
    "UAE (Dubai/ADGM)",
    "GCC",
    "Europe",
    "Asia",
    "Pakistan",
    "Global",
)

MEETING_TYPES: Final[tuple[str, ...]] = (
    "New Client",
    "Follow-Up",
    "Internal",
    "Deal Review",
    "Partnership",
    "General",
)

FALLBACK_SECTORS: Final[tuple[str, ...]] = ("General",)
FALLBACK_MEETING_TYPE: Final[str] = "General"

SYSTEM_PROMPT: Final[str] = """You are an intelligence analyst for OmniScope, a sovereign-grade financial infrastructure platform operating across OTC Brokerage, Bitcoin & Digital Asset OTC, Stablecoin Liquidity, Commodities, Real Estate Capital, and Payment Rails.

Your job is to analyze meeting transcripts and extract structured intelligence data. Be precise, institutional, and compliance-aware.

<action_item_rules>
1. SPLIT compound action items into separate, atomic tasks. Example: "Create group chat w/ Hassan & Jake; prompt Hassan for deck + visuals" becomes TWO tasks: one for creating the group chat, one for requesting the deck.
2. Each task gets a CLEAN, SHORT title (max {max_title} chars). The title is just the action, with no assignee info.
3. Put detailed context in the description field.
4. ASSIGN tasks to the person who should do the work, not who recorded the meeting and not the assignee suggested in the raw action items. Read the transcript to determine who volunteered or was asked to do each task.
5. If a specific date or deadline is mentioned in the meeting, use it as the due date. If no date is mentioned, use "{default_due_date}".
6. Set priority ("low", "medium" or "high") based on urgency discussed in the meeting.
</action_item_rules>

<meeting_type_rules>
- "New Client" = first meeting with a new contact/company, introductory call, getting-to-know-you
- "Follow-Up" = continuing a previous conversation or deal
- "Internal" = team-only meeting, no external participants
- "Deal Review" = reviewing terms, contracts, or transaction details
- "Partnership" = exploring or formalizing a partnership
- "General" = doesn't fit other categories
</meeting_type_rules>

<sector_rules>
- Only tag sectors that are ACTUALLY discussed in the meeting content
- If the meeting is about AI, technology, or software, use "Technology" or "AI"
- For a new client intro where no specific OmniScope vertical is discussed, use the sector most relevant to what was discussed
- Do NOT default to "OTC Brokerage & Execution" unless OTC trading is explicitly discussed
</sector_rules>

OmniScope's core verticals: {sectors}.

Relevant jurisdictions: {jurisdictions}."""

USER_PROMPT: Final[str] = """Analyze this meeting and extract intelligence data:

**Meeting Title:** {title}
**Participants:** {participants}

**Vendor Summary:**
{summary}

**Raw Action Items (may need splitting/reassignment):**
- {raw_action_items}

**Transcript:**
{transcript}

Return a JSON object with these fields:
- executiveSummary: A 2-4 sentence institutional-grade summary of the meeting's key outcomes and significance
- strategicHighlights: Array of 3-5 key strategic points discussed (empty array if none)
- opportunities: Array of business opportunities identified (empty array if none)
- risks: Array of risks, red flags, or compliance concerns (empty array if none)
- keyQuotes: Array of notable direct quotes from participants (empty array if none)
- sectors: Array of relevant sectors from the list above, based on actual content discussed
- jurisdictions: Array of jurisdictions discussed or relevant
- meetingType: One of {meeting_types}
- actionItems: Array of structured action items, each with:
  - title: Short, clean task title (max {max_title} chars, NO assignee info)
  - description: Detailed context about what needs to be done
  - assignedTo: Name of the person who should do this task (from participants list)
  - priority: "low", "medium", or "high"
  - dueDate: ISO date string (YYYY-MM-DD) if a deadline was mentioned, or "{default_due_date}" if not"""


def get_system_prompt(default_due_date: str) -> str:
    """Get the analyst system prompt with the default due date injected."""
    return SYSTEM_PROMPT.format(
        max_title=MAX_TASK_TITLE_CHARS,
        default_due_date=default_due_date,
        sectors=", ".join(SECTORS),
        jurisdictions=", ".join(JURISDICTIONS),
    )


MEETING_INTELLIGENCE_SCHEMA_NAME: Final[str] = "meeting_intelligence"

_STRING_LIST: Final[dict] = {"type": "array", "items": {"type": "string"}}

MEETING_INTELLIGENCE_SCHEMA: Final[dict] = {
    "type": "object",
    "properties": {
        "executiveSummary": {"type": "string", "description": "2-4 sentence institutional summary"},
        "strategicHighlights": {**_STRING_LIST, "description": "Key strategic points"},
        "opportunities": {**_STRING_LIST, "description": "Business opportunities"},
        "risks": {**_STRING_LIST, "description": "Risks and red flags"},
        "keyQuotes": {**_STRING_LIST, "description": "Notable direct quotes"},
        "sectors": {**_STRING_LIST, "description": "Relevant sectors"},
        "jurisdictions": {**_STRING_LIST, "description": "Relevant jurisdictions"},
        "meetingType": {"type": "string", "enum": list(MEETING_TYPES), "description": "Type of meeting"},
        "actionItems": {
            "type": "array",
            "description": "Structured action items",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Short clean task title"},
                    "description": {"type": "string", "description": "Detailed task description"},
                    "assignedTo": {"type": "string", "description": "Person responsible"},
                    "priority": {"type": "string", "description": "low, medium, or high"},
                    "dueDate": {"type": ["string", "null"], "description": "ISO date or null"},
                },
                "required": ["title", "description", "assignedTo", "priority", "dueDate"],
                "additionalProperties": False,
            },
        },
    },
    "required": [
        "executiveSummary",
        "strategicHighlights",
        "opportunities",
        "risks",
        "keyQuotes",
        "sectors",
        "jurisdictions",
        "meetingType",
        "actionItems",
    ],
    "additionalProperties": False,
}
