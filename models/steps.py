"""Step pipeline: compiled filter and transform rules applied to events.

Declarative steps from ``models.config`` are compiled once, at configuration
load time, into rule objects holding their compiled regular expressions.
``apply_steps`` runs rules strictly in order and stops at the first
allow/deny rule that rejects the event; later rules never see it.

Compilation is the only place that can fail. Applying a compiled rule to an
event always succeeds.
"""

import re
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence, Union

from models.config import (
    AllowStep,
    CaseStep,
    DenyStep,
    ReplaceStep,
    StripStep,
)
from models.event import Event
from models.exceptions import ConfigError


class StepOutcome(str, Enum):
    """Result of running one step or a whole pipeline on an event."""

    KEEP = "keep"
    REJECT = "reject"


# Matches the group references accepted in replacement text:
# $$, ${name}, $name, \g<name>, \N and an escaped backslash.
_REPLACEMENT_TOKEN = re.compile(
    r"\$\$|\$\{(?P<braced>[^}]*)\}|\$(?P<bare>\w+)|\\g<(?P<python>[^>]*)>|\\(?P<digit>\d+)|\\\\"
)


class CompiledReplacement:
    """Replacement text split into literal and group-reference parts.

    References to groups that don't exist in the pattern, or that didn't
    participate in a match, expand to the empty string.

    Args:
        template: Replacement text as written in the configuration.
        regex: The compiled pattern the replacement belongs to.
    """

    def __init__(self, template: str, regex: re.Pattern):
        self.template = template
        self._parts: list[Union[str, int]] = []

        position = 0
        for match in _REPLACEMENT_TOKEN.finditer(template):
            if match.start() > position:
                self._parts.append(template[position : match.start()])
            position = match.end()

            token = match.group(0)
            if token == "$$":
                self._parts.append("$")
                continue
            if token == "\\\\":
                self._parts.append("\\")
                continue

            name = next(
                value
                for value in match.group("braced", "bare", "python", "digit")
                if value is not None
            )
            group = self._resolve_group(name, regex)
            if group is not None:
                self._parts.append(group)

        if position < len(template):
            self._parts.append(template[position:])

    @staticmethod
    def _resolve_group(name: str, regex: re.Pattern) -> Optional[int]:
        if name.isdigit():
            index = int(name)
            return index if index <= regex.groups else None
        return regex.groupindex.get(name)

    def expand(self, match: re.Match) -> str:
        pieces = []
        for part in self._parts:
            if isinstance(part, int):
                pieces.append(match.group(part) or "")
            else:
                pieces.append(part)
        return "".join(pieces)


class FieldPattern:
    """One compiled pattern searched across a set of event fields."""

    def __init__(self, regex: re.Pattern, fields: Sequence[str]):
        self.regex = regex
        self.fields = tuple(fields)

    def matches(self, event: Event) -> bool:
        """True if the pattern matches the text of at least one present field."""
        for field in self.fields:
            text = event.get_field(field)
            if text is not None and self.regex.search(text):
                return True
        return False


class _PatternRule:
    """Shared matching logic of allow and deny rules."""

    def __init__(self, patterns: Sequence[FieldPattern], mode: str):
        self.patterns = tuple(patterns)
        self.mode = mode

    def matches(self, event: Event) -> bool:
        if self.mode == "all":
            return all(pattern.matches(event) for pattern in self.patterns)
        return any(pattern.matches(event) for pattern in self.patterns)


class AllowRule(_PatternRule):
    """Keeps the event only if the patterns match."""

    def apply(self, event: Event) -> StepOutcome:
        return StepOutcome.KEEP if self.matches(event) else StepOutcome.REJECT


class DenyRule(_PatternRule):
    """Rejects the event if the patterns match."""

    def apply(self, event: Event) -> StepOutcome:
        return StepOutcome.REJECT if self.matches(event) else StepOutcome.KEEP


class ReplaceRule:
    """Rewrites every match of a pattern in one field."""

    def __init__(self, regex: re.Pattern, replacement: CompiledReplacement, field: str):
        self.regex = regex
        self.replacement = replacement
        self.field = field

    def apply(self, event: Event) -> StepOutcome:
        text = event.get_field(self.field)
        if text is not None:
            event.set_field(self.field, self.regex.sub(self.replacement.expand, text))
        return StepOutcome.KEEP


def _capitalize_word(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


_CASE_TRANSFORMS: dict[str, Callable[[str], str]] = {
    "lower": str.lower,
    "upper": str.upper,
    "sentence": _capitalize_word,
    "title": lambda text: re.sub(r"\S+", lambda m: _capitalize_word(m.group(0)), text),
}


class CaseRule:
    """Changes the letter case of one field."""

    def __init__(self, transform: str, field: str):
        self.transform = transform
        self.field = field
        self._convert = _CASE_TRANSFORMS[transform]

    def apply(self, event: Event) -> StepOutcome:
        text = event.get_field(self.field)
        if text is not None:
            event.set_field(self.field, self._convert(text))
        return StepOutcome.KEEP


class StripRule:
    """Removes a sub-component (reminders) from the event."""

    def __init__(self, component: str):
        self.component = component

    def apply(self, event: Event) -> StepOutcome:
        if self.component == "reminder":
            event.strip_reminders()
        return StepOutcome.KEEP


CompiledStep = Union[AllowRule, DenyRule, ReplaceRule, CaseRule, StripRule]


def _compile_regex(pattern: str, context: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigError(f"{context} has invalid pattern '{pattern}': {exc}") from exc


def compile_step(step, context: str = "step") -> CompiledStep:
    """Compile one declarative step.

    Args:
        step: A step model from ``models.config``.
        context: Location of the step, used in error messages.

    Returns:
        The executable rule.

    Raises:
        ConfigError: If a pattern is not a valid regular expression or the
            step type is unknown.
    """
    if isinstance(step, (AllowStep, DenyStep)):
        patterns = [
            FieldPattern(_compile_regex(pattern, context), step.fields)
            for pattern in step.patterns
        ]
        rule_cls = AllowRule if isinstance(step, AllowStep) else DenyRule
        return rule_cls(patterns, step.mode)

    if isinstance(step, ReplaceStep):
        regex = _compile_regex(step.pattern, context)
        return ReplaceRule(regex, CompiledReplacement(step.replacement, regex), step.field)

    if isinstance(step, CaseStep):
        return CaseRule(step.transform, step.field)

    if isinstance(step, StripStep):
        return StripRule(step.field)

    raise ConfigError(f"{context} has unsupported type {type(step).__name__}")


def compile_steps(steps: Iterable, context: str = "") -> tuple[CompiledStep, ...]:
    """Compile an ordered list of steps, numbering them in error messages."""
    prefix = f"{context} " if context else ""
    return tuple(
        compile_step(step, f"{prefix}step {index}") for index, step in enumerate(steps)
    )


def apply_steps(event: Event, steps: Sequence[CompiledStep]) -> StepOutcome:
    """Run the pipeline on one event, stopping at the first rejection.

    Args:
        event: The event to process; kept events are modified in place.
        steps: Compiled rules in configuration order.

    Returns:
        KEEP if every rule kept the event, REJECT otherwise.
    """
    for step in steps:
        if step.apply(event) is StepOutcome.REJECT:
            return StepOutcome.REJECT
    return StepOutcome.KEEP


def process_events(events: Iterable[Event], steps: Sequence[CompiledStep]) -> list[Event]:
    """Run the pipeline on a list of events, dropping rejected ones."""
    if not steps:
        return list(events)
    return [event for event in events if apply_steps(event, steps) is StepOutcome.KEEP]
