from __future__ import annotations

from datetime import date

from autoapply.types import JobListing

DEFAULT_COVER_LETTER_TEMPLATE = """Madame, Monsieur,

Je vous écris pour exprimer mon intérêt pour le poste de {{JOB_TITLE}} au sein de {{COMPANY_NAME}}.

Avec {{USER_EXPERIENCE}} d'expérience dans le développement logiciel et une expertise en {{SKILLS}}, je suis convaincu de pouvoir contribuer efficacement à vos projets.

Mes compétences techniques et ma passion pour l'innovation font de moi un candidat idéal pour rejoindre votre équipe.

Je serais ravi de discuter de ma candidature lors d'un entretien.

Cordialement,
{{USER_NAME}}"""

DEFAULT_USER_NAME = "Candidat"
DEFAULT_EXPERIENCE = "5 ans"


def render_cover_letter(
    template: str | None,
    job: JobListing,
    *,
    user_name: str = "",
    experience: str = "",
    skills: list[str] | None = None,
    today: date | None = None,
) -> str:
    text = template if template and template.strip() else DEFAULT_COVER_LETTER_TEMPLATE
    replacements = {
        "{{COMPANY_NAME}}": job.company,
        "{{JOB_TITLE}}": job.title,
        "{{USER_NAME}}": user_name or DEFAULT_USER_NAME,
        "{{USER_EXPERIENCE}}": experience or DEFAULT_EXPERIENCE,
        "{{SKILLS}}": ", ".join(skills or []),
        "{{LOCATION}}": job.location,
        "{{DATE}}": (today or date.today()).strftime("%d/%m/%Y"),
    }
    for placeholder, value in replacements.items():
        text = text.replace(placeholder, value)
    return text
