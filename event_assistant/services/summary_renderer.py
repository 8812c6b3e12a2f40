"""Markdown rendering for assistant replies.

Renders the extraction summary shown after a draft is produced, the edit
proposal shown before changes are applied, and clarification questions.
"""

from typing import Any, Final

from event_assistant.domain.extraction_constants import DEFAULT_PRICE
from event_assistant.domain.models import EditProposal, EventDraft, ProposedChange
from event_assistant.services.date_resolver import format_12h, format_long_date

EXTRACTION_INTRO: Final[str] = "I've extracted the following event details:"
EXTRACTION_OUTRO: Final[str] = (
    "You can review and edit these details before creating the event."
)
PROPOSAL_OUTRO: Final[str] = "Reply to apply these changes, or describe what to adjust."

IMPACT_LABELS: Final[tuple[tuple[str, str], ...]] = (
    ("reschedule_required", "Reschedule required"),
    ("venue_change", "Venue change"),
    ("cost_implication", "Cost implication"),
    ("attendee_notification", "Attendees should be notified"),
)


def format_money(amount: float) -> str:
    """Render 500.0 as "$500" and 49.5 as "$49.50"."""
    return f"${int(amount)}" if float(amount).is_integer() else f"${amount:.2f}"


def render_extraction_message(draft: EventDraft) -> str:
    """Render the summary shown with an extracted draft.

    Title, Event Type, Date, Time, Location and Expected Guests are always
    present, in that order; Category, Organizer, Price, Budget, Notes and
    Schedule follow only when set.
    """
    location = draft.location
    if draft.address:
        location = f"{location} - {draft.address}"
    guests = str(draft.expected_guests)
    if draft.max_attendees > 0:
        guests = f"{guests} (maximum: {draft.max_attendees})"

    lines = [
        EXTRACTION_INTRO,
        "",
        f"📌 **Title:** {draft.title}",
        f"🎉 **Event Type:** {draft.type}",
        f"📆 **Date:** {format_long_date(draft.date)}",
        f"⏰ **Time:** {format_12h(draft.time)} to {format_12h(draft.end_time)}",
        f"📍 **Location:** {location}",
        f"👥 **Expected Guests:** {guests}",
    ]
    if draft.category:
        lines.append(f"🏷️ **Category:** {draft.category}")
    if draft.organizer.name:
        lines.append(f"🙋 **Organizer:** {draft.organizer.name}")
    if draft.price and draft.price != DEFAULT_PRICE:
        lines.append(f"🎟️ **Price:** {draft.price}")
    if draft.budget is not None:
        lines.append(f"💰 **Budget:** {format_money(draft.budget)}")
    if draft.notes:
        lines.append(f"📝 **Notes:** {draft.notes}")
    if draft.schedule:
        lines.extend(["", "🗓️ **Schedule:**"])
        for day in draft.schedule:
            lines.append(f"{day.day}:")
            lines.extend(f"- {item.time}: {item.title}" for item in day.items)

    lines.extend(["", EXTRACTION_OUTRO])
    return "\n".join(lines)


def _display_value(value: Any) -> str:
    if value is None or value == "":
        return "(none)"
    if isinstance(value, list):
        items = [
            f"{item['time']} {item['title']}"
            for day in value
            for item in day.get("items", [])
        ]
        return ", ".join(items) if items else "(empty)"
    if isinstance(value, float):
        return format_money(value)
    return str(value)


def render_change(change: ProposedChange) -> list[str]:
    lines = [
        f"- **{change.field.value}:** {_display_value(change.current_value)} → "
        f"{_display_value(change.proposed_value)}",
        f"  - Reason: {change.reasoning}",
    ]
    lines.extend(f"  - ⚠️ {warning}" for warning in change.validation.warnings)
    return lines


def render_edit_proposal(proposal: EditProposal) -> str:
    """Render a proposal as Markdown: changes, impact, recommendations, risks."""
    lines = [f"**Proposed changes:** {proposal.summary}", ""]
    for change in proposal.changes:
        lines.extend(render_change(change))

    impact = proposal.overall_impact
    flagged = [label for attr, label in IMPACT_LABELS if getattr(impact, attr)]
    lines.extend(["", f"**Impact** (urgency: {impact.urgency.value}):"])
    if flagged:
        lines.extend(f"- {label}" for label in flagged)
    else:
        lines.append("- No downstream impact")

    if proposal.recommendations:
        lines.extend(["", "**Recommendations:**"])
        lines.extend(f"- {item}" for item in proposal.recommendations)
    if proposal.risks:
        lines.extend(["", "**Risks:**"])
        lines.extend(f"- {item}" for item in proposal.risks)

    lines.extend(["", PROPOSAL_OUTRO])
    return "\n".join(lines)


def render_clarification(question: str) -> str:
    return f"🤔 {question}"
