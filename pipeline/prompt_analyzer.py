"""Lightweight pattern-based inference over raw brief text.

Priority when combining with caller choices:
  1. explicit selections (always win)
  2. values inferred here
  3. defaults
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


def _patterns(*rows: tuple[str, str]) -> tuple[tuple[re.Pattern, str], ...]:
    return tuple((re.compile(rf"\b({body})\b", re.IGNORECASE), value) for body, value in rows)


TYPE_PATTERNS: dict[str, tuple[tuple[re.Pattern, str], ...]] = {
    "output_type": _patterns(
        (r"presentation|slides?|deck|pitch", "deck"),
        (r"api|schema|database|data\s*dictionary|dashboard|analytics\s*report", "data"),
        (r"code|function|class|module|bug\s*fix|refactor|migration|endpoint", "code"),
        (r"press\s*release|ad\s*copy|landing\s*page|tagline|product\s*description|email\s*campaign|social\s*media\s*post", "copy"),
        (r"email|memo|announcement|update|brief|feedback|1:1|one-on-one", "comms"),
        (r"document|doc|spec|specification|report|guide|manual|proposal", "doc"),
    ),
    "deck_type": _patterns(
        (r"investor|pitch|funding|series\s*[a-z]|seed|venture|vc", "investor"),
        (r"sales|prospect|client|customer\s*pitch|deal", "sales"),
        (r"board|quarterly|q[1-4]|directors|governance", "board"),
        (r"internal|team\s*meeting|stakeholder|decision", "internal"),
        (r"training|workshop|onboarding|learning|course", "training"),
    ),
    "data_type": _patterns(
        (r"api|rest|graphql|endpoint|swagger|openapi", "api"),
        (r"schema|database|table|entity|erd|sql|nosql|postgres|mysql|mongo", "schema"),
        (r"data\s*dictionary|field\s*definition|column\s*definition|metadata", "dictionary"),
        (r"analytics|report|findings|metrics|kpi|analysis", "analytics"),
        (r"dashboard|visualization|tableau|looker|powerbi|chart", "dashboard"),
    ),
    "code_type": _patterns(
        (r"feature|user\s*story|requirement|spec|specification|functional|prd", "feature"),
        (r"bug|fix|issue|defect|error|broken|regression", "bugfix"),
        (r"refactor|cleanup|technical\s*debt|modernize|restructure", "refactor"),
        (r"api|endpoint|route|controller|service\s*layer", "api"),
        (r"migration|migrate|upgrade|schema\s*change|data\s*migration", "migration"),
    ),
    "copy_type": _patterns(
        (r"press\s*release|pr|media\s*release|news\s*release", "press"),
        (r"email|newsletter|drip|campaign|nurture", "email"),
        (r"ad|advertisement|paid|ppc|facebook\s*ad|google\s*ad|linkedin\s*ad", "ad"),
        (r"landing\s*page|lp|conversion|signup|lead\s*gen", "landing"),
        (r"social|twitter|linkedin\s*post|instagram|facebook\s*post|thread", "social"),
        (r"product\s*description|pdp|listing|amazon|shopify|ecommerce", "product"),
        (r"tagline|slogan|headline|hook|catchphrase", "tagline"),
    ),
    "comms_type": _patterns(
        (r"(?:exec|executive|leadership|c-suite|vp|director)\s*(?:update|report|summary)", "exec_update"),
        (r"all[\s-]?hands|town\s*hall|company[\s-]?wide|org[\s-]?wide", "allhands"),
        (r"1:1|one[\s-]?on[\s-]?one|1-on-1|check[\s-]?in|direct\s*report", "oneone"),
        (r"stakeholder|brief|decision\s*maker|sponsor|executive\s*brief", "stakeholder"),
        (r"announce|announcement|news|launch|rollout|introduce", "announcement"),
        (r"feedback|performance|review|constructive|improvement", "feedback"),
    ),
    "emotional_appeal": _patterns(
        (r"fear|fomo|miss\s*out|urgent|scarcity|limited|deadline", "fear"),
        (r"aspiration|dream|achieve|success|potential|transform", "aspiration"),
        (r"trust|credibility|proof|testimonial|case\s*study|evidence", "trust"),
        (r"belong|community|tribe|together|join|part\s*of", "belonging"),
        (r"curiosity|discover|secret|reveal|learn|find\s*out", "curiosity"),
    ),
    "cta_type": _patterns(
        (r"buy|purchase|order|checkout|shop", "purchase"),
        (r"sign[\s-]?up|register|subscribe|join", "signup"),
        (r"learn\s*more|read\s*more|discover|explore", "learn"),
        (r"contact|get\s*in\s*touch|reach\s*out|talk\s*to", "contact"),
        (r"download|get\s*the|free|ebook|whitepaper|guide", "download"),
        (r"book|schedule|demo|consultation|call", "book"),
    ),
}

# Which inferred attributes feed type_specific for each output type.
TYPE_INFERENCE_KEYS: dict[str, tuple[str, ...]] = {
    "deck": ("deck_type",),
    "data": ("data_type",),
    "code": ("code_type",),
    "copy": ("copy_type", "emotional_appeal", "cta_type"),
    "comms": ("comms_type",),
    "doc": (),
}

DEFAULT_OUTPUT_TYPE = "doc"


@dataclass
class PromptAnalysis:
    inferred: dict[str, str] = field(default_factory=dict)
    confidence: dict[str, float] = field(default_factory=dict)


@dataclass
class MergedValues:
    values: dict[str, Any] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)


def analyze_prompt(prompt_text: str | None) -> PromptAnalysis:
    """Best-scoring value per attribute: earlier first match and more matches score higher."""
    if not prompt_text or not isinstance(prompt_text, str):
        return PromptAnalysis()

    text = prompt_text.lower()
    result = PromptAnalysis()
    for key, patterns in TYPE_PATTERNS.items():
        best_value, best_score = None, 0.0
        for pattern, value in patterns:
            match = pattern.search(text)
            if not match:
                continue
            position_score = max(0.0, 1 - match.start() / len(text))
            score = position_score + len(pattern.findall(text)) * 0.2
            if score > best_score:
                best_value, best_score = value, score
        if best_value:
            result.inferred[key] = best_value
            result.confidence[key] = min(1.0, best_score)
    return result


def merge_with_inferred(explicit: dict | None = None, inferred: dict | None = None) -> MergedValues:
    """Explicit values override inferred ones; None and "" count as not chosen."""
    merged = MergedValues(values=dict(inferred or {}))
    merged.sources = {key: "inferred" for key in merged.values}
    for key, value in (explicit or {}).items():
        if value is None or value == "":
            continue
        merged.values[key] = value
        merged.sources[key] = "explicit"
    return merged


def generate_inference_report(sources: dict[str, str], confidence: dict[str, float] | None = None) -> str:
    confidence = confidence or {}
    lines = []
    for key, source in sources.items():
        if source != "inferred":
            continue
        conf = f" ({round(confidence[key] * 100)}% confidence)" if confidence.get(key) else ""
        lines.append(f"  - {key}: auto-detected{conf}")
    if not lines:
        return ""
    return "\n[AUTO-DETECTED SETTINGS - override these by making UI selections]\n" + "\n".join(lines)


def infer_output_type(prompt_text: str | None, explicit_output_type: str | None = None) -> tuple[str, str]:
    """Return ``(output_type, source)`` where source is explicit / inferred / default."""
    if explicit_output_type:
        return explicit_output_type, "explicit"
    analysis = analyze_prompt(prompt_text)
    if "output_type" in analysis.inferred:
        return analysis.inferred["output_type"], "inferred"
    return DEFAULT_OUTPUT_TYPE, "default"
