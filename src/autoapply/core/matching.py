from __future__ import annotations

import logging
import re
from functools import lru_cache

from autoapply.types import BlacklistResult, MatchResult, SkillMatchDetail

logger = logging.getLogger(__name__)

SKILL_SYNONYMS: dict[str, list[str]] = {
    "JavaScript": ["JS", "javascript", "ECMAScript", "ES6", "ES2015", "ES2020"],
    "Laravel": ["laravel"],
    "Symfony": ["symfony"],
    "TypeScript": ["TS", "typescript"],
    "React": ["ReactJS", "React.js", "react"],
    "React Native": ["ReactNative", "react-native"],
    "Vue": ["VueJS", "Vue.js", "vue"],
    "Angular": ["AngularJS", "Angular.js", "angular"],
    "Node": ["NodeJS", "Node.js", "node"],
    "Express": ["ExpressJS", "Express.js", "express"],
    "Next": ["NextJS", "Next.js"],
    "Nuxt": ["NuxtJS", "Nuxt.js"],
    "MongoDB": ["Mongo", "mongodb"],
    "PostgreSQL": ["Postgres", "PSQL"],
    "MySQL": ["My SQL"],
    "SQL Server": ["MSSQL", "MS SQL", "SQLServer", "sql-server"],
    "HTML": ["HTML5"],
    "CSS": ["CSS3"],
    "SASS": ["SCSS"],
    "Docker": ["docker-compose", "dockerfile"],
    "Kubernetes": ["K8s", "kube"],
    "AWS": ["Amazon Web Services", "amazon-web-services"],
    "Azure": ["Microsoft Azure", "MS Azure"],
    "GCP": ["Google Cloud", "Google Cloud Platform"],
    "Git": ["github", "gitlab", "bitbucket"],
    "CI/CD": ["CICD", "Continuous Integration", "Continuous Deployment", "ci-cd"],
    "REST": ["REST API", "RESTful", "rest-api"],
    "GraphQL": ["graph-ql", "gql"],
    "Python": ["py"],
    # Java deliberately has no JavaScript variant
    "Java": [],
    "C++": ["cpp", "c plus plus", "cplusplus"],
    "C#": ["csharp", "c sharp", ".NET", "dotnet"],
    "PHP": [],
    "Ruby": ["Ruby on Rails", "RoR", "rails"],
    "Go": ["Golang"],
    "Rust": [],
    "Swift": [],
    "Kotlin": [],
    "TDD": ["Test Driven Development", "test-driven"],
    "Agile": ["Scrum", "kanban"],
    "Redux": ["Redux Toolkit"],
    "Tailwind": ["TailwindCSS", "Tailwind CSS"],
    "Bootstrap": [],
    "Material-UI": ["MUI", "Material UI"],
    "Jest": [],
    "Cypress": [],
    "Selenium": [],
    "Webpack": [],
    "Vite": [],
    "Babel": [],
    "ESLint": ["ES Lint"],
    "Prettier": [],
    "Flutter": [],
    "Dart": [],
    "FullStack": ["full stack", "full-stack"],
    "Backend": ["back end", "back-end"],
    "Frontend": ["front end", "front-end"],
}

# When the skill on the left is checked, any of the terms on the right being
# present in the job text means the posting is about the other technology.
CONFLICTING_SKILLS: dict[str, list[str]] = {
    "java": ["JavaScript", "JS", "TypeScript", "TS", "Node", "Node.js"],
    "javascript": ["Java"],
    "typescript": ["Java"],
    "node": ["Java"],
    "node.js": ["Java"],
}

CONFLICTING_KEYWORDS: dict[str, list[str]] = {
    "java": ["JavaScript", "JS", "TypeScript", "TS", "Node", "Node.js"],
    "javascript": ["Java"],
    "typescript": ["Java"],
    "js": ["Java"],
    "node": ["Java"],
    "node.js": ["Java"],
    "c": ["C++", "C#", "Objective-C"],
    "c++": ["C#"],
    "python": ["TypeScript"],
}

SHORT_TOKEN_MAX_LEN = 2


def normalize_text(text: str) -> str:
    return " ".join(text.lower().split())


@lru_cache(maxsize=1024)
def _term_pattern(term: str) -> re.Pattern[str]:
    # A term is a whole token when it is not glued to word characters, "+" or "#",
    # and not followed by ".<word>" ("node" must not match inside "node.js").
    escaped = re.escape(normalize_text(term))
    return re.compile(rf"(?<![\w+#.]){escaped}(?![\w+#]|\.\w)", re.IGNORECASE)


def contains_term(text: str, term: str) -> bool:
    if not term.strip():
        return False
    return _term_pattern(term).search(text) is not None


def _find_conflict(text: str, term: str, table: dict[str, list[str]]) -> str | None:
    for conflicting in table.get(normalize_text(term), []):
        if contains_term(text, conflicting):
            return conflicting
    return None


def _synonym_variations(skill: str) -> list[str]:
    normalized = normalize_text(skill)
    variations: list[str] = []
    for canonical, synonyms in SKILL_SYNONYMS.items():
        group = [normalize_text(item) for item in [canonical, *synonyms]]
        if normalized in group:
            variations.extend(item for item in group if item not in variations)
    return variations


def find_skill(skill: str, text: str) -> SkillMatchDetail:
    conflict = _find_conflict(text, skill, CONFLICTING_SKILLS)
    if conflict is not None:
        return SkillMatchDetail(skill=skill, match_type="none")

    if contains_term(text, skill):
        return SkillMatchDetail(skill=skill, match_type="exact", found_as=skill)

    normalized = normalize_text(skill)
    for variation in _synonym_variations(skill):
        if variation == normalized:
            continue
        if contains_term(text, variation):
            return SkillMatchDetail(skill=skill, match_type="synonym", found_as=variation)

    return SkillMatchDetail(skill=skill, match_type="none")


def calculate_skill_match(skills: list[str], title: str, description: str) -> MatchResult:
    if not skills:
        return MatchResult()

    text = normalize_text(f"{title} {description}")
    details = [find_skill(skill, text) for skill in skills]
    matched = [item.skill for item in details if item.match_type != "none"]
    missing = [item.skill for item in details if item.match_type == "none"]

    return MatchResult(
        percentage=round(100 * len(matched) / len(skills)),
        matched_skills=matched,
        missing_skills=missing,
        details=details,
    )


def meets_threshold(result: MatchResult, threshold: int) -> bool:
    return result.percentage >= threshold


def check_blacklist(title: str, description: str, keywords: list[str]) -> BlacklistResult:
    if not keywords:
        return BlacklistResult()

    text = normalize_text(f"{title} {description}")
    matched: list[str] = []
    for keyword in keywords:
        normalized = normalize_text(keyword)
        if not normalized:
            continue

        conflict = _find_conflict(text, keyword, CONFLICTING_KEYWORDS)
        if conflict is not None:
            logger.debug("blacklist keyword %r skipped: conflicting term %r present", keyword, conflict)
            continue

        if not contains_term(text, normalized):
            continue

        if len(normalized) <= SHORT_TOKEN_MAX_LEN and re.search(
            rf"(?<![\w+#.]){re.escape(normalized)}[+#]", text
        ):
            continue

        matched.append(keyword)

    return BlacklistResult(is_blacklisted=bool(matched), matched_keywords=matched)


def format_match_result(result: MatchResult) -> str:
    if not result.details:
        return "no skills configured"
    lines = [f"skill match {result.percentage}% ({len(result.matched_skills)}/{len(result.details)})"]
    for item in result.details:
        if item.match_type == "none":
            lines.append(f"  - {item.skill}: missing")
        elif item.match_type == "synonym":
            lines.append(f"  - {item.skill}: synonym ({item.found_as})")
        else:
            lines.append(f"  - {item.skill}: exact")
    return "\n".join(lines)


def format_blacklist_result(result: BlacklistResult) -> str:
    if not result.is_blacklisted:
        return "no blacklisted keywords found"
    return f"blacklisted: {', '.join(result.matched_keywords)}"
