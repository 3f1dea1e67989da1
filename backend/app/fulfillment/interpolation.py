"""Template token interpolation."""

import re
from datetime import date
from typing import Iterable, Mapping

# {{ name }} with optional whitespace inside the braces
TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")


def interpolate_template(content: str, variables: Mapping[str, str | None]) -> str:
    """Replace ``{{ name }}`` tokens with their values.

    Names match case-insensitively. Tokens for names not in ``variables``
    are left as they are, and a None value becomes the empty string. The
    scan is a single pass over ``content``, so substituted values are never
    re-expanded and the result does not depend on key order.

    Example:
        >>> interpolate_template("Dear {{ Student_Name }}", {"student_name": "Ada"})
        'Dear Ada'
    """
    lookup: dict[str, str] = {}
    for key in sorted(variables):
        lookup.setdefault(key.lower(), variables[key] or "")

    def _replace(match: re.Match) -> str:
        name = match.group(1).lower()
        if name in lookup:
            return lookup[name]
        return match.group(0)

    return TOKEN_PATTERN.sub(_replace, content)


def find_tokens(content: str) -> list[str]:
    """Distinct lower-cased token names in order of first appearance."""
    seen: dict[str, None] = {}
    for match in TOKEN_PATTERN.finditer(content):
        seen.setdefault(match.group(1).lower(), None)
    return list(seen)


def missing_variables(declared: Iterable[str], variables: Mapping[str, str | None]) -> list[str]:
    """Declared variable names that have no non-empty supplied value."""
    supplied = {key.lower() for key, value in variables.items() if value}
    return [name for name in declared if name.lower() not in supplied]


SYSTEM_VARIABLES: list[dict[str, str]] = [
    {"name": "student_name", "description": "Student full name", "category": "Student"},
    {"name": "student_first_name", "description": "Student first name", "category": "Student"},
    {"name": "student_email", "description": "Student email", "category": "Student"},
    {"name": "student_phone", "description": "Student phone", "category": "Student"},
    {"name": "program", "description": "Program applying to", "category": "Application"},
    {"name": "institution", "description": "Institution applying to", "category": "Application"},
    {"name": "degree_type", "description": "Degree type (MS, PhD, etc.)", "category": "Application"},
    {"name": "course_taken", "description": "Course taken with professor", "category": "Academic"},
    {"name": "grade", "description": "Grade in course", "category": "Academic"},
    {"name": "semester_year", "description": "Semester and year", "category": "Academic"},
    {"name": "professor_name", "description": "Professor name", "category": "Professor"},
    {"name": "professor_title", "description": "Professor title", "category": "Professor"},
    {"name": "department", "description": "Department name", "category": "Professor"},
    {"name": "professor_institution", "description": "Professor institution", "category": "Professor"},
    {"name": "date", "description": "Current date", "category": "System"},
]


def format_letter_date(day: date) -> str:
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def sample_variables(today: date | None = None) -> dict[str, str]:
    """Placeholder values used to preview a template."""
    return {
        "student_name": "Jane Smith",
        "student_first_name": "Jane",
        "student_email": "jane.smith@example.com",
        "student_phone": "(555) 123-4567",
        "program": "Master of Science in Computer Science",
        "institution": "Stanford University",
        "degree_type": "MS",
        "course_taken": "CS 101 - Introduction to Programming",
        "grade": "A",
        "semester_year": "Fall 2024",
        "professor_name": "Dr. John Doe",
        "professor_title": "Associate Professor",
        "department": "Computer Science",
        "professor_institution": "State University",
        "date": format_letter_date(today or date.today()),
    }
