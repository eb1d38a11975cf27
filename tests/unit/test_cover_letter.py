from datetime import date

from autoapply.core.cover_letter import DEFAULT_COVER_LETTER_TEMPLATE, render_cover_letter
from autoapply.types import JobListing

JOB = JobListing(
    external_id="42",
    title="Développeur React",
    company="TechCorp",
    location="Lyon",
    url="https://www.hellowork.com/fr-fr/emplois/42.html",
)


def test_custom_template_placeholders_are_filled() -> None:
    text = render_cover_letter(
        "{{USER_NAME}} -> {{JOB_TITLE}} @ {{COMPANY_NAME}} ({{LOCATION}}, {{DATE}}): {{SKILLS}}",
        JOB,
        user_name="Alex Martin",
        skills=["React", "Node"],
        today=date(2024, 3, 5),
    )

    assert text == "Alex Martin -> Développeur React @ TechCorp (Lyon, 05/03/2024): React, Node"


def test_blank_template_falls_back_to_default_with_defaults() -> None:
    text = render_cover_letter("   ", JOB)

    assert DEFAULT_COVER_LETTER_TEMPLATE.startswith("Madame, Monsieur,")
    assert "poste de Développeur React au sein de TechCorp" in text
    assert "Avec 5 ans d'expérience" in text
    assert text.rstrip().endswith("Candidat")
    assert "{{" not in text
