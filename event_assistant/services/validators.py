"""Change validation service.

Produces non-fatal warnings for proposed event changes. Warnings are attached
to the change they concern and never block a proposal.
"""

from datetime import date

from event_assistant.domain.models import EditField
from event_assistant.services.date_resolver import format_12h, to_minutes


class ChangeValidator:
    """Validates proposed field values against the event and venue rules."""

    def __init__(
        self,
        venue_open_time: str | None = None,
        venue_close_time: str | None = None,
    ) -> None:
        """Initialize validator.

        Args:
            venue_open_time: Earliest allowed start ("HH:MM"), unchecked if None
            venue_close_time: Latest allowed end ("HH:MM"), unchecked if None
        """
        self.venue_open_time = venue_open_time
        self.venue_close_time = venue_close_time

    def validate_date(self, proposed: str, today: date) -> list[str]:
        """Warn when the new date is already in the past."""
        if date.fromisoformat(proposed) < today:
            return [f"The new date {proposed} is in the past."]
        return []

    def validate_venue_hours(self, field: EditField, proposed: str) -> list[str]:
        """Warn when a start or end time falls outside venue hours.

        Example:
            >>> ChangeValidator("09:00", "22:00").validate_venue_hours(
            ...     EditField.END_TIME, "23:00"
            ... )
            ['11:00 PM is outside venue hours (9:00 AM - 10:00 PM).']
        """
        if self.venue_open_time is None or self.venue_close_time is None:
            return []

        minutes = to_minutes(proposed)
        too_early = minutes < to_minutes(self.venue_open_time)
        too_late = minutes > to_minutes(self.venue_close_time)
        if field is EditField.TIME:
            # a start at closing time leaves no time at the venue
            too_late = minutes >= to_minutes(self.venue_close_time)

        if too_early or too_late:
            return [
                f"{format_12h(proposed)} is outside venue hours "
                f"({format_12h(self.venue_open_time)} - "
                f"{format_12h(self.venue_close_time)})."
            ]
        return []

    def validate_location(self, proposed: str, new_address: str | None) -> list[str]:
        """Warn when the location is cleared and no new address is given."""
        if proposed.strip() or new_address:
            return []
        return ["The location is being cleared without a replacement address."]
