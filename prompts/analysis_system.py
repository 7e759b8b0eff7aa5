"""Intent Analyzer — System Prompt and per-type hints."""

SYSTEM_PROMPT = (
    "You are an expert prompt analyst. Your job is to deeply understand user requests "
    "and recommend optimal settings for prompt generation. Always return valid JSON."
)

# Indented to sit under item 5 of the analysis task list.
TYPE_HINTS = {
    "deck": """- deck_type: investor|sales|board|internal|training
   - slide_count: Recommended number of slides
   - duration_minutes: Suggested presentation length
   - include_speaker_notes: boolean
   - include_visual_suggestions: boolean""",
    "code": """- code_type: feature|bugfix|refactor|api|migration
   - language: Programming language to use
   - framework: Framework if applicable
   - include_tests: boolean
   - error_handling: minimal|standard|comprehensive""",
    "doc": """- document_type: report|proposal|guide|analysis|whitepaper|memo
   - section_structure: Array of recommended sections
   - include_executive_summary: boolean
   - include_toc: boolean""",
    "data": """- data_type: api|schema|dictionary|analytics|dashboard
   - output_format: table|json|csv|yaml
   - include_headers: boolean
   - include_descriptions: boolean""",
    "copy": """- copy_type: ad|landing|email|social|press|tagline|product
   - emotional_appeal: fear|aspiration|urgency|trust|curiosity|belonging
   - cta_type: Suggested call to action
   - word_count: Target word count""",
    "comms": """- channel: email|slack|memo|letter|sms
   - formality_level: casual|professional|formal
   - response_urgency: low|normal|high|asap
   - action_items: Array of explicit asks""",
}

ANALYSIS_TEMPLATE = """You are analyzing a user's request to understand their true intent and recommend optimal settings.

## User Input
"{user_input}"

{notes_block}## Selected Output Type
{output_label}: {output_context}

## Your Task
Analyze this request deeply and return a JSON object with:

1. **intent**: What the user really wants
   - primary_goal: The core objective (be specific)
   - success_criteria: Array of 2-3 ways to measure success
   - action_desired: What should the reader do after consuming this?
   - urgency: low|normal|high|critical

2. **audience**: Who will consume this
   - primary: Description of main audience
   - expertise_level: novice|general|expert|mixed
   - relationship: subordinate|peer|superior|customer|public
   - expectations: Array of 2-3 things they expect

3. **context**: Situational information
   - setting: Where/when this will be used
   - prior_knowledge: Array of what audience already knows

4. **recommended_settings**: Your recommendations with reasoning
   - tone: The recommended tone (professional|creative|academic|casual|instructive|persuasive|empathetic|urgent|witty)
   - format: The recommended format (paragraph|bullets|numbered|steps|sections|email|table|qa)
   - length: short|medium|long
   - reasoning: Object with keys tone, format, length explaining WHY each choice

5. **type_specific_suggestions**: Suggestions specific to {output_id}
   {type_hints}

Return ONLY valid JSON, no markdown formatting."""
