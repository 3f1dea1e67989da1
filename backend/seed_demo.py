#!/usr/bin/env python3
"""
Seed script for a Recommate demo environment.

This script sets up:
- A professor profile used for letterheads and outgoing mail
- A default letter template
- One open request whose access code is printed for the student walkthrough
- No PII - all data is synthetic for demo purposes
"""

from datetime import datetime, timedelta, timezone
from sqlmodel import Session

from app.core.db import engine, init_db
from app.fulfillment.profile import get_professor, save_professor
from app.fulfillment.requests import create_request
from app.fulfillment.schemas import ProfessorUpdate, RequestCreate, TemplateCreate, TemplateVariable
from app.fulfillment.templates import create_template, get_default_template


DEMO_PROFESSOR = ProfessorUpdate(
    email="professor@recommate.example.com",
    name="Dr. Avery Quinn",
    title="Associate Professor",
    department="Computer Science",
    institution="State University",
)

DEMO_TEMPLATE_CONTENT = """{{ date }}

Dear Admissions Committee,

It is my pleasure to recommend {{ student_name }} for the {{ program }} at {{ institution }}. {{ student_first_name }} took {{ course_taken }} with me in {{ semester_year }} and earned a grade of {{ grade }}.

{{ student_first_name }} stood out for careful reasoning and steady effort throughout the course. I am confident {{ student_first_name }} will do excellent work in your program.

Sincerely,

{{ professor_name }}
{{ professor_title }}, {{ department }}
{{ professor_institution }}"""

DEMO_TEMPLATE_VARIABLES = [
    "date", "student_name", "student_first_name", "program", "institution",
    "course_taken", "semester_year", "grade", "professor_name", "professor_title",
    "department", "professor_institution",
]


def seed_demo_data():
    """Seed the database with demo data for a quick walkthrough."""

    print("🌱 Starting demo data seeding...")

    print("📊 Initializing database schema...")
    init_db()

    with Session(engine) as session:
        # 1. Professor profile
        if get_professor(session):
            print("   ⚠️  Professor profile already exists, updating...")
        professor = save_professor(session, DEMO_PROFESSOR)
        print(f"   ✅ Professor: {professor.name}")

        # 2. Default template
        template = get_default_template(session)
        if template:
            print(f"   ⚠️  Default template '{template.name}' already exists, skipping...")
        else:
            template = create_template(
                session,
                TemplateCreate(
                    name="Graduate Program Recommendation",
                    description="General-purpose letter for graduate admissions",
                    content=DEMO_TEMPLATE_CONTENT,
                    variables=[TemplateVariable(name=name) for name in DEMO_TEMPLATE_VARIABLES],
                    category="graduate",
                    is_default=True,
                ),
            )
            print(f"   ✅ Created default template: {template.name}")

        # 3. Open request
        request = create_request(
            session,
            RequestCreate(
                deadline=datetime.now(timezone.utc) + timedelta(days=10),
                professor_notes="Demo request - student from CS 101",
            ),
        )

    print("\n✨ Demo data seeding complete!")
    print(f"\n📋 Summary:")
    print(f"   - Professor: {DEMO_PROFESSOR.email}")
    print(f"   - Template: {template.name}")
    print(f"   - Student access code: {request.access_code}")
    print(f"\n🚀 You're ready to demo! Open the student page and enter the code above.")


def main():
    """Run the seeding process."""
    seed_demo_data()


if __name__ == "__main__":
    main()
