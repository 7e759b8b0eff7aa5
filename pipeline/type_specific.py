"""Per-output-type defaults, recommendations, and validators.

Each output type registers a validator with ``@type_validator("<type>")``.
A validator sees only the spec's ``type_specific`` variant and returns a
list of warnings; none of these checks block validity.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from schemas.prompt_spec import (
    CodeTypeSpecific,
    CommsTypeSpecific,
    CopyTypeSpecific,
    DataTypeSpecific,
    DeckTypeSpecific,
    DocTypeSpecific,
    PromptSpec,
)

logger = logging.getLogger(__name__)

TypeValidator = Callable[[object], list[str]]

TYPE_VALIDATORS: dict[str, TypeValidator] = {}


def type_validator(output_type: str):
    """Register the decorated function as the validator for ``output_type``."""

    def decorator(fn: TypeValidator) -> TypeValidator:
        TYPE_VALIDATORS[output_type] = fn
        return fn

    return decorator


# ---------------------------------------------------------------------------
# Reference tables
# ---------------------------------------------------------------------------

LANGUAGES = (
    "javascript", "typescript", "python", "java", "go", "rust", "csharp",
    "ruby", "php", "swift", "kotlin", "cpp", "c", "scala", "sql", "bash",
)

FRAMEWORKS: dict[str, tuple[str, ...]] = {
    "javascript": ("react", "vue", "angular", "express", "nextjs", "node"),
    "typescript": ("react", "vue", "angular", "express", "nextjs", "nestjs"),
    "python": ("django", "flask", "fastapi", "pytorch", "tensorflow"),
    "java": ("spring", "springboot", "quarkus", "micronaut"),
    "go": ("gin", "echo", "fiber", "chi"),
    "rust": ("actix", "rocket", "axum", "tokio"),
    "csharp": ("aspnet", "blazor", "maui", "unity"),
    "ruby": ("rails", "sinatra", "hanami"),
    "php": ("laravel", "symfony", "codeigniter"),
    "swift": ("swiftui", "uikit", "vapor"),
    "kotlin": ("ktor", "springboot", "android"),
}

SECTION_STRUCTURES: dict[str, list[str]] = {
    "report": ["introduction", "methodology", "findings", "analysis", "conclusion", "recommendations"],
    "proposal": ["executive_summary", "problem_statement", "proposed_solution", "timeline", "budget", "conclusion"],
    "guide": ["introduction", "prerequisites", "steps", "troubleshooting", "faq"],
    "analysis": ["overview", "data_sources", "methodology", "findings", "implications"],
    "whitepaper": ["abstract", "introduction", "background", "solution", "benefits", "conclusion"],
    "memo": ["purpose", "background", "discussion", "action_items"],
    "requirements": [
        "executive_summary", "stakeholders", "functional_requirements",
        "non_functional_requirements", "user_stories", "acceptance_criteria",
        "constraints", "assumptions", "dependencies", "glossary",
    ],
    "agenda": ["meeting_info", "attendees", "objectives", "agenda_items", "discussion_topics", "action_items", "next_steps"],
}

AGENDA_STRUCTURES: dict[str, list[str]] = {
    "call": ["call_info", "attendees", "purpose", "talking_points", "questions", "next_steps"],
    "meeting": ["meeting_info", "attendees", "objectives", "agenda_items", "discussion_topics", "action_items", "next_steps"],
    "workshop": ["workshop_info", "facilitator", "participants", "objectives", "materials_needed", "activities", "wrap_up", "deliverables"],
    "standup": ["date_time", "attendees", "yesterday_updates", "today_plans", "blockers", "announcements"],
    "review": ["meeting_info", "attendees", "review_scope", "accomplishments", "demos", "feedback", "action_items"],
    "planning": ["meeting_info", "attendees", "goals", "backlog_review", "capacity", "commitments", "risks", "action_items"],
    "kickoff": ["project_overview", "stakeholders", "objectives", "scope", "timeline", "roles_responsibilities", "risks", "next_steps"],
    "one_on_one": ["meeting_info", "wins", "challenges", "priorities", "feedback", "career_development", "action_items"],
}

CHANNEL_TRAITS: dict[str, dict] = {
    "email": {"max_length": 500, "supports_formatting": True, "async": True},
    "slack": {"max_length": 300, "supports_formatting": True, "async": False},
    "memo": {"max_length": 800, "supports_formatting": True, "async": True},
    "letter": {"max_length": 1000, "supports_formatting": False, "async": True},
    "sms": {"max_length": 160, "supports_formatting": False, "async": False},
    "chat": {"max_length": 200, "supports_formatting": False, "async": False},
}

CTA_SUGGESTIONS: dict[str, list[str]] = {
    "ad": ["Shop Now", "Learn More", "Get Started", "Try Free"],
    "landing": ["Sign Up", "Get Started", "Request Demo", "Download Now"],
    "email": ["Read More", "Shop Now", "Claim Offer", "Book Now"],
    "social": ["Link in Bio", "Swipe Up", "Comment Below", "Share"],
    "press": ["Contact Us", "Learn More", "Read Full Release"],
    "product": ["Add to Cart", "Buy Now", "Pre-Order", "Subscribe"],
}


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def recommend_visual_style(deck_type: str | None) -> str:
    if deck_type in ("investor", "sales"):
        return "image-rich"
    if deck_type in ("board", "training"):
        return "data-heavy"
    return "minimal"


def infer_language_from_framework(framework: str | None) -> str | None:
    """First language whose framework list contains ``framework`` (case-insensitive)."""
    if not framework:
        return None
    lowered = framework.lower()
    for language, frameworks in FRAMEWORKS.items():
        if lowered in frameworks:
            return language
    return None


def recommend_error_handling(is_production: bool, has_tests: bool) -> str:
    if is_production:
        return "comprehensive"
    if has_tests:
        return "standard"
    return "minimal"


def recommend_sections(document_type: str | None, agenda_type: str | None = None) -> list[str]:
    if document_type == "agenda" and agenda_type in AGENDA_STRUCTURES:
        return list(AGENDA_STRUCTURES[agenda_type])
    return list(SECTION_STRUCTURES.get(document_type or "", SECTION_STRUCTURES["report"]))


def should_include_executive_summary(length: str | None, expertise_level: str | None) -> bool:
    if length == "short":
        return False
    if expertise_level == "expert" and length == "medium":
        return False
    return length == "long" or expertise_level == "novice"


def recommend_output_format(use_case: str | None) -> str:
    return {
        "analysis": "table",
        "export": "csv",
        "api": "json",
        "display": "table",
        "config": "yaml",
    }.get(use_case or "", "table")


def recommend_formality(relationship: str | None) -> str:
    return {
        "subordinate": "professional",
        "peer": "casual",
        "superior": "formal",
        "customer": "professional",
        "public": "formal",
    }.get(relationship or "", "professional")


def get_channel_traits(channel: str | None) -> dict:
    return CHANNEL_TRAITS.get(channel or "", CHANNEL_TRAITS["email"])


def get_cta_suggestions(copy_type: str | None) -> list[str]:
    return CTA_SUGGESTIONS.get(copy_type or "", CTA_SUGGESTIONS["landing"])


def fill_type_specific_gaps(spec: PromptSpec, provided: dict | None = None) -> dict:
    """Return type_specific updates that fill blanks the caller (or a model) left.

    ``provided`` is the raw suggestion dict; keys present there are never
    overridden.
    """
    provided = provided or {}
    ts = spec.type_specific
    updates: dict = {}

    if isinstance(ts, DeckTypeSpecific) and "visual_style" not in provided:
        updates["visual_style"] = recommend_visual_style(ts.deck_type)
    elif isinstance(ts, CodeTypeSpecific) and not ts.language:
        language = infer_language_from_framework(ts.framework)
        if language:
            updates["language"] = language
    elif isinstance(ts, DocTypeSpecific):
        if not ts.section_structure:
            updates["section_structure"] = recommend_sections(ts.document_type, provided.get("agenda_type"))
        if "include_executive_summary" not in provided:
            updates["include_executive_summary"] = should_include_executive_summary(
                spec.constraints.length, spec.audience.expertise_level
            )
    elif isinstance(ts, CommsTypeSpecific) and "formality_level" not in provided:
        updates["formality_level"] = recommend_formality(spec.audience.relationship)

    if updates:
        logger.debug("Filled type_specific gaps for %s: %s", spec.output_type, sorted(updates))
    return updates


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

@type_validator("deck")
def validate_deck(ts: DeckTypeSpecific) -> list[str]:
    warnings: list[str] = []
    if ts.slide_count is not None:
        if ts.slide_count < 1:
            warnings.append("Slide count must be at least 1")
        if ts.slide_count > 100:
            warnings.append("Slide count over 100 may be too long for most presentations")
        if ts.slide_count > 50:
            warnings.append("Consider breaking into multiple presentations")
    return warnings


@type_validator("code")
def validate_code(ts: CodeTypeSpecific) -> list[str]:
    warnings: list[str] = []
    language = (ts.language or "").lower()
    if not language:
        warnings.append("No language specified - will attempt to infer from context")
    elif language not in LANGUAGES:
        warnings.append(f'Language "{ts.language}" is not in common list - ensure it\'s valid')

    if ts.framework and language:
        known = FRAMEWORKS.get(language)
        if known and ts.framework.lower() not in known:
            warnings.append(f'Framework "{ts.framework}" may not be common for {ts.language}')

    if ts.error_handling == "minimal" and ts.include_tests:
        warnings.append("Minimal error handling with tests may lead to poor test coverage")
    return warnings


@type_validator("doc")
def validate_doc(ts: DocTypeSpecific) -> list[str]:
    warnings: list[str] = []
    if ts.include_toc and len(ts.section_structure) < 3:
        warnings.append("Table of contents may not be useful with fewer than 3 sections")
    if ts.citation_style and ts.document_type == "memo":
        warnings.append("Memos typically do not require formal citations")
    if ts.include_executive_summary and ts.document_type == "memo":
        warnings.append("Memos typically do not include executive summaries")
    return warnings


@type_validator("data")
def validate_data(ts: DataTypeSpecific) -> list[str]:
    warnings: list[str] = []
    if ts.output_format == "csv" and ts.relationships:
        warnings.append("CSV format may not represent relationships well - consider JSON")
    if ts.output_format == "table" and len(ts.aggregations) > 5:
        warnings.append("Many aggregations may be hard to display in a single table")
    if ts.output_format == "csv" and not ts.include_headers:
        warnings.append("CSV without headers may be difficult to interpret")
    return warnings


@type_validator("copy")
def validate_copy(ts: CopyTypeSpecific) -> list[str]:
    warnings: list[str] = []
    if ts.copy_type == "social" and not ts.platform:
        warnings.append("Social copy benefits from knowing the target platform")
    if ts.copy_type == "social" and ts.emotional_appeal == "fear":
        warnings.append("Fear-based appeals may perform poorly on social platforms")
    return warnings


@type_validator("comms")
def validate_comms(ts: CommsTypeSpecific) -> list[str]:
    warnings: list[str] = []
    if ts.channel == "sms" and len(ts.action_items) > 1:
        warnings.append("SMS with multiple action items may be too long")
    if ts.channel == "slack" and ts.formality_level == "formal":
        warnings.append("Formal tone may feel out of place in Slack")
    if ts.channel == "letter" and not ts.include_signature:
        warnings.append("Letters typically include a signature")
    if ts.channel == "letter" and ts.response_urgency == "asap":
        warnings.append("Letters are not suitable for urgent communications")
    if ts.thread_context and ts.include_greeting:
        warnings.append("Replies in a thread may not need a full greeting")
    return warnings
