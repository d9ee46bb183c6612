"""
Prompt text and output schemas for the language model calls.
"""

FLASHCARD_SYSTEM_PROMPT = (
    "You are a skilled educator. Generate high-quality multiple-choice questions (MCQ) "
    "from the provided text in valid JSON format."
)

REPORT_SYSTEM_PROMPT = (
    "You are a skilled technical writer. Create comprehensive, well-structured reports "
    "that synthesize information from multiple sources."
)

DIFFICULTY_GUIDES = {
    'easy': (
        "Focus on basic recall and comprehension. Use straightforward questions "
        "with clearly distinct answer choices."
    ),
    'medium': (
        "Test understanding and application. Use plausible distractors that "
        "require careful consideration."
    ),
    'hard': (
        "Challenge with analysis and evaluation. Use subtle distractors that "
        "test deep understanding."
    ),
}

FLASHCARD_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "question": {"type": "string"},
            "options": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": 4,
                "maxItems": 4,
            },
            "answer": {"type": "integer", "minimum": 0, "maximum": 3},
            "explanation": {"type": "string"},
        },
        "required": ["question", "options", "answer", "explanation"],
    },
}

SOURCE_SEPARATOR = "\n\n---\n\n"


def build_flashcard_prompt(text: str, count: int, difficulty: str) -> str:
    """
    Build the per-chunk flashcard request.

    Raises:
        ValueError: If difficulty is not easy, medium or hard
    """
    if difficulty not in DIFFICULTY_GUIDES:
        raise ValueError(f"Unknown difficulty: {difficulty!r}")

    return f"""Generate {count} multiple-choice questions from the following text.

Difficulty level: {difficulty}
{DIFFICULTY_GUIDES[difficulty]}

Requirements:
- Each question should test understanding of key concepts
- All four options should be plausible; avoid obvious distractors
- Provide a brief explanation for the correct answer
- Ensure questions are clear and unambiguous

IMPORTANT: The "answer" field must be an index from 0 to 3 (0=first option, 1=second, 2=third, 3=fourth).

Text:
{text}"""


def build_report_prompt(sources: list[tuple[str, str]], custom_instructions: str = "") -> str:
    """
    Build the report synthesis prompt.

    Args:
        sources: (title, condensed text) per source, in input order
        custom_instructions: Optional extra guidance from the user

    Returns:
        Prompt text. It asks the model NOT to write a references section.
    """
    sources_text = SOURCE_SEPARATOR.join(
        f"[Source {i}: {title}]\n{text}" for i, (title, text) in enumerate(sources, start=1)
    )

    prompt = f"""Create a comprehensive report synthesizing the following {len(sources)} source(s).

Requirements:
- Write a cohesive, well-structured report that integrates information from all sources
- Use clear headings and sections to organize the content
- Maintain an informative and professional tone
- Connect related concepts across different sources
- Do NOT include a references section (it will be added separately)
- Focus on synthesizing and connecting the information, not just summarizing each source"""

    if custom_instructions and custom_instructions.strip():
        prompt += f"\n\nAdditional Instructions:\n{custom_instructions.strip()}"

    prompt += f"\n\nSources:\n{sources_text}\n\nWrite the report now:"
    return prompt
