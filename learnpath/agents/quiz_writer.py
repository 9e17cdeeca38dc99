import logging

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.llm.client import get_llm_client
from learnpath.agents.parsing import clean_text
from learnpath.agents.schemas import QuizQuestion

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 3000

SYSTEM_QUIZ_WRITER = """You write quiz questions for learning material.
Write ONE multiple-choice question based ONLY on the material you are given.

RULES:
1. The question MUST be based on information in the material
2. The correct answer MUST be in the material; do not invent information
3. Give 4 answer options
4. Exactly ONE option is correct
5. Wrong options must be plausible but clearly wrong according to the material

Answer ONLY with valid JSON:
{
  "question": "Question based on the material",
  "options": ["Option A", "Option B", "Option C", "Option D"],
  "correct_answer": 0
}

correct_answer is the index (0-3) of the correct option in the options array.
"""


def default_quiz(page_number: int) -> QuizQuestion:
    return QuizQuestion(
        question=f"What did you learn from page {page_number} of this material?",
        options=[
            "I understand the basic concepts explained",
            "I have not read the material carefully yet",
            "This material is too hard to understand",
            "I need to read this material again",
        ],
        correct_answer=0,
    )


def generate_quiz_from_content(content: str, page_number: int,
llm: LLMClient | None = None) -> QuizQuestion:
    cleaned = clean_text(content, limit=MAX_CONTENT_CHARS)
    try:
        llm = llm or get_llm_client()
        quiz = llm.generate_structured(
            QuizQuestion,
            system=SYSTEM_QUIZ_WRITER,
            user=f"Write 1 multiple-choice question for page {page_number} based on this material:\n\n{cleaned}",
            temperature=0.3,
            max_tokens=500,
        )
        if quiz is None:
            return default_quiz(page_number)
        return quiz
    except Exception:
        # Schema violations (wrong option count, index out of range) land here too.
        logger.exception("Quiz generation error for page %s", page_number)
        return default_quiz(page_number)
