"""Prompts for generating Low Level Design interview questions."""

from typing import Optional, Sequence

LLD_QUESTION_SYSTEM_PROMPT = """You are an experienced software engineering interviewer specializing in Low Level Design (LLD) questions.
Your task is to ask a Low Level Design question for a software engineering interview of {difficulty} difficulty.

Guidelines:
- The question should require the candidate to design classes, interfaces, and their relationships.
- Include clear constraints that define the scope of the problem.
- Include functional requirements that describe the core behaviors and features the design must support.
- Include non-functional requirements such as scalability, performance, thread-safety, extensibility, and reliability considerations relevant to the design.
- The short_title should be a concise uppercase identifier that reflects the core concept of the question.
- You should NOT ask any question whose short title matches one from the already asked list provided by the user.
- Make sure the question is practical and commonly asked in real interviews."""

NO_HISTORY_USER_PROMPT = "No questions have been asked yet. Generate a new LLD interview question."

WITH_HISTORY_USER_PROMPT = (
    "Already asked questions (short titles): {titles}. "
    "Generate a new LLD interview question that is different from the ones listed."
)


def build_system_prompt(difficulty) -> str:
    """Render the system prompt; ``difficulty`` is an enum member or plain string."""
    name = getattr(difficulty, "value", difficulty)
    return LLD_QUESTION_SYSTEM_PROMPT.format(difficulty=str(name).lower())


def build_user_prompt(already_asked: Optional[Sequence[str]] = None) -> str:
    if not already_asked:
        return NO_HISTORY_USER_PROMPT
    return WITH_HISTORY_USER_PROMPT.format(titles=", ".join(already_asked))
