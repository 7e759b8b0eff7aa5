"""Tone / length / format / output-type control catalog.

Loaded once into ``DEFAULT_CONTROLS`` and handed to the assembler and the
matrix runner; the catalog is frozen, so tests swap in their own instead
of patching shared tables.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ControlOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    prompt: str = ""


class OutputTypeOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    context: str = ""


class ControlCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    tones: tuple[ControlOption, ...]
    lengths: tuple[ControlOption, ...]
    formats: tuple[ControlOption, ...]
    output_types: tuple[OutputTypeOption, ...]

    @staticmethod
    def _find(options, option_id, fallback_index):
        for option in options:
            if option.id == option_id:
                return option
        return options[min(fallback_index, len(options) - 1)]

    # Unknown ids fall back to a fixed default per axis.
    def tone(self, tone_id: str | None) -> ControlOption:
        return self._find(self.tones, tone_id, 0)

    def length(self, length_id: str | None) -> ControlOption:
        return self._find(self.lengths, length_id, 1)

    def format(self, format_id: str | None) -> ControlOption:
        return self._find(self.formats, format_id, 0)

    def output_type(self, type_id: str | None) -> OutputTypeOption:
        return self._find(self.output_types, type_id, 1)


def _options(rows) -> tuple[ControlOption, ...]:
    return tuple(ControlOption(id=i, label=label, prompt=prompt) for i, label, prompt in rows)


DEFAULT_CONTROLS = ControlCatalog(
    tones=_options([
        ("professional", "Professional", "formal, objective, and expert"),
        ("creative", "Creative", "imaginative, evocative, and storytelling"),
        ("academic", "Academic", "rigorous, citation-focused, and analytical"),
        ("casual", "Casual", "friendly, conversational, and accessible"),
        ("instructive", "Instructive", "didactic, step-by-step teacher"),
        ("persuasive", "Persuasive", "compelling, benefit-led, and action-oriented"),
        ("empathetic", "Empathetic", "warm, understanding, and supportive"),
        ("urgent", "Urgent", "direct, time-sensitive, and decisive"),
        ("witty", "Witty", "clever, playful, and light-hearted"),
    ]),
    lengths=_options([
        ("short", "Concise", "Concise and high-level"),
        ("medium", "Balanced", "Balanced detail"),
        ("long", "Exhaustive", "Exhaustive and detailed"),
    ]),
    formats=_options([
        ("paragraph", "Paragraph", "Flowing, cohesive narrative"),
        ("bullets", "Bullet Points", "Concise bulleted list"),
        ("numbered", "Numbered List", "Sequential numbered list"),
        ("steps", "Step-by-Step", "Clear, actionable steps"),
        ("sections", "Structured Sections", "Clear, hierarchical sections with headings"),
        ("email", "Email", "Professional email format"),
        ("table", "Table", "Structured table with headers"),
        ("qa", "Q&A", "Question and Answer session"),
    ]),
    output_types=(
        OutputTypeOption(id="deck", label="Deck", context="Slide Deck Outline (Titles, Visuals, Notes)"),
        OutputTypeOption(id="doc", label="Doc", context="Comprehensive Written Document"),
        OutputTypeOption(id="data", label="Data", context="Structured Data / Tables"),
        OutputTypeOption(id="code", label="Code", context="Production-Ready Code"),
        OutputTypeOption(id="copy", label="Copy", context="Marketing Copy / Creative Writing"),
        OutputTypeOption(id="comms", label="Comms", context="Email / Communication"),
    ),
)
