"""Calendar event model."""

from typing import Literal, Optional

from icalendar import Event as ICalEvent
from icalendar import vText

EventField = Literal["summary", "description", "location"]

EVENT_FIELDS: tuple[str, ...] = ("summary", "description", "location")

_PROPERTY_NAMES = {
    "summary": "SUMMARY",
    "description": "DESCRIPTION",
    "location": "LOCATION",
}


class Event:
    """A single VEVENT flowing through the processing pipeline.

    Wraps an ``icalendar.Event`` component and exposes the handful of fields
    the pipeline reads and rewrites. Everything else on the component (dates,
    recurrence rules, attendees, ...) is carried through untouched and ends
    up in the serialized output.

    Text fields are read as whole values and written back as whole values;
    no caller ever holds a reference into the component's property storage.

    Args:
        component: The underlying icalendar event component.
    """

    def __init__(self, component: ICalEvent):
        self.component = component

    @classmethod
    def create(
        cls,
        summary: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> "Event":
        """Build an event from plain values.

        Args:
            summary: Event title.
            description: Event description.
            location: Event location.
            uid: Stable identifier used for deduplication.

        Returns:
            New Event wrapping a fresh component.
        """
        component = ICalEvent()
        if uid is not None:
            component.add("uid", uid)
        event = cls(component)
        if summary is not None:
            event.set_field("summary", summary)
        if description is not None:
            event.set_field("description", description)
        if location is not None:
            event.set_field("location", location)
        return event

    def get_field(self, field: str) -> Optional[str]:
        """Return the text of a field, or None if the event doesn't have it."""
        value = self.component.get(_PROPERTY_NAMES[field])
        if value is None:
            return None
        if isinstance(value, list):
            # Repeated property; the first occurrence is authoritative.
            value = value[0]
        return str(value)

    def set_field(self, field: str, text: str) -> None:
        """Replace the text of a field, keeping any property parameters."""
        name = _PROPERTY_NAMES[field]
        new_value = vText(text)
        old_value = self.component.get(name)
        if isinstance(old_value, list):
            old_value = old_value[0]
        if old_value is not None and getattr(old_value, "params", None):
            new_value.params = old_value.params
        self.component[name] = new_value

    @property
    def summary(self) -> Optional[str]:
        return self.get_field("summary")

    @summary.setter
    def summary(self, text: str) -> None:
        self.set_field("summary", text)

    @property
    def description(self) -> Optional[str]:
        return self.get_field("description")

    @description.setter
    def description(self, text: str) -> None:
        self.set_field("description", text)

    @property
    def location(self) -> Optional[str]:
        return self.get_field("location")

    @location.setter
    def location(self, text: str) -> None:
        self.set_field("location", text)

    @property
    def uid(self) -> Optional[str]:
        """Stable identifier, or None when the feed didn't provide one."""
        value = self.component.get("UID")
        if value is None:
            return None
        return str(value).strip() or None

    @property
    def has_reminder(self) -> bool:
        """Whether the event carries at least one VALARM."""
        return any(sub.name == "VALARM" for sub in self.component.subcomponents)

    def strip_reminders(self) -> None:
        """Remove all VALARM subcomponents."""
        self.component.subcomponents = [
            sub for sub in self.component.subcomponents if sub.name != "VALARM"
        ]

    def get_summary(self) -> str:
        """Return a one-line human-readable description for CLI output and logs."""
        parts = [self.summary or "(no summary)"]
        if self.location:
            parts.append(f"@ {self.location}")
        if self.uid:
            parts.append(f"[{self.uid}]")
        return " ".join(parts)

    def __repr__(self) -> str:
        return f"Event(uid={self.uid!r}, summary={self.summary!r})"
