"""Group free-form review feedback into its four numbered categories."""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass
class FeedbackSection:
    id: str
    title: str
    content: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.content)


def _category(cat_id: str, title: str, number: int, phrase: str) -> tuple[str, str, re.Pattern, re.Pattern]:
    heading = re.compile(rf"^(?:{number}\.|(?={phrase}))", re.IGNORECASE)
    return cat_id, title, heading, re.compile(phrase, re.IGNORECASE)


# (id, title, heading pattern, title phrase). Headings are matched after
# leading markdown ("#", "*", "-") has been removed from the line.
FEEDBACK_CATEGORIES = [
    _category("bugs", "Syntax Errors, Bugs & Exceptions", 1, r"syntax errors|bugs\b"),
    _category("style", "Readability & Maintainability", 2, r"best practices|readability"),
    _category("security", "Security Risks", 3, r"highlight any security|security risks?\b"),
    _category("optimizations", "Optimizations", 4, r"suggest optimizations|optimizations?\b"),
]

_MARKDOWN_PREFIX_RE = re.compile(r"^[#*\-\s]+")


def parse_feedback_sections(feedback: str | None) -> list[FeedbackSection]:
    """Split feedback into non-empty sections, in category order.

    Text that appears before any heading is kept in the first section so
    nothing the reviewer wrote is dropped. A heading's own title is dropped,
    but anything after its colon is kept ("1. Bugs: off by one" → "off by one").
    """
    if not feedback:
        return []

    sections = {cat_id: FeedbackSection(id=cat_id, title=title) for cat_id, title, _, _ in FEEDBACK_CATEGORIES}
    first = sections[FEEDBACK_CATEGORIES[0][0]]
    current: FeedbackSection | None = None
    current_rank = -1

    for line in feedback.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        heading = _MARKDOWN_PREFIX_RE.sub("", stripped)
        for rank, (cat_id, _, pattern, phrase) in enumerate(FEEDBACK_CATEGORIES):
            match = pattern.match(heading)
            # Categories only move forward, so a numbered list inside a
            # section ("1. Use parameterized queries") stays in that section.
            if match and rank > current_rank:
                current, current_rank = sections[cat_id], rank
                rest = heading[match.end() :].strip(" *:-")
                if phrase.match(rest):
                    rest = rest.partition(":")[2].strip(" *")
                if rest:
                    current.content.append(rest)
                break
        else:
            (current or first).content.append(stripped)

    return [s for s in sections.values() if s.content]


def find_section(feedback: str | None, section_id: str) -> FeedbackSection | None:
    for section in parse_feedback_sections(feedback):
        if section.id == section_id:
            return section
    return None
