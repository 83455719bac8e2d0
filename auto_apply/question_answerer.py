"""
LLM answers for platform-specific application questions.

A single question is answered directly.  Several questions are batched
into one completion returning a JSON array of ``{question, answer}``
pairs so the answers stay consistent with each other; if that reply
cannot be parsed every question is answered individually, and any
question the batch reply skipped gets a final individual pass.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from auto_apply.description_parser import parse_json_reply
from auto_apply.models import CustomQuestion, JobData, Profile

logger = logging.getLogger(__name__)

__all__ = ["TextGenerator", "QuestionAnswerer", "MAX_EXAMPLES"]

MAX_EXAMPLES: int = 5

_SINGLE_SYSTEM_PROMPT = (
    "You answer job application questions on behalf of a candidate, in a "
    "natural first-person voice grounded in their real experience. Keep "
    "answers brief. For questions with listed options, reply with exactly "
    "one of the options and nothing else. For checkbox questions reply "
    "with the matching options separated by commas."
)

_BATCH_SYSTEM_PROMPT = (
    "You answer job application questions on behalf of a candidate. "
    "Return ONLY a JSON array of objects with \"question\" and \"answer\" "
    "fields, no markdown fences. Answers to questions with options must be "
    "exactly one of those options. Keep answers consistent with each other."
)


class TextGenerator(Protocol):
    """The narrow text-generation contract consumed by the engine."""

    async def generate_text(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        ...

    async def is_available(self) -> bool:
        ...


def _candidate_summary(profile: Profile, max_roles: int) -> str:
    roles = "; ".join(
        f"{e.title} at {e.company}"
        + (f": {e.description or ', '.join(e.highlights[:2])}" if (e.description or e.highlights) else "")
        for e in profile.experience[:max_roles]
    )
    return (
        f"Name: {profile.name}\n"
        f"Skills: {', '.join(profile.skills)}\n"
        f"Experience: {roles or 'n/a'}"
    )


class QuestionAnswerer:
    """Answers :class:`CustomQuestion` objects with a :class:`TextGenerator`."""

    def __init__(self, llm: TextGenerator) -> None:
        self.llm = llm
        self.logger = logging.getLogger(f"{__name__}.QuestionAnswerer")

    async def answer_question(
        self,
        profile: Profile,
        job: JobData,
        question: str,
        question_type: str = "text",
        options: Optional[list[str]] = None,
    ) -> str:
        """Answer one question directly.

        Args:
            profile: Candidate profile.
            job: Scraped job posting (context).
            question: Question text.
            question_type: Control type (text, select, radio, ...).
            options: Choices for select/radio/checkbox questions.

        Returns:
            The stripped answer text.
        """
        detail = f'"{question}" (type: {question_type})'
        if options:
            detail += (
                f"\nAvailable options: {', '.join(options)}"
                "\nYour answer must be exactly one of the above options."
            )
        prompt = (
            f"## Question\n{detail}\n\n"
            f"## Candidate\n{_candidate_summary(profile, 2)}\n\n"
            f"## Job\n{job.title} at {job.company}\n{job.description[:500]}"
        )
        answer = await self.llm.generate_text(prompt, _SINGLE_SYSTEM_PROMPT)
        return answer.strip().strip('"')

    async def _answer_individually(
        self,
        profile: Profile,
        job: JobData,
        question: CustomQuestion,
    ) -> str:
        return await self.answer_question(
            profile,
            job,
            question.question,
            getattr(question.type, "value", str(question.type)),
            question.options or None,
        )

    def _batch_prompt(
        self,
        profile: Profile,
        job: JobData,
        questions: list[CustomQuestion],
        previous_answers: Optional[list[dict[str, Any]]],
    ) -> str:
        lines = []
        for index, q in enumerate(questions, start=1):
            q_type = getattr(q.type, "value", str(q.type))
            block = f'{index}. "{q.question}" (type: {q_type})'
            if q.options:
                block += f"\n   Options: {', '.join(q.options)}"
            lines.append(block)

        examples = ""
        if previous_answers:
            shots = "\n\n".join(
                f'Q: "{a.get("question", "")}"\nA: "{a.get("answer", "")}"'
                for a in previous_answers[:MAX_EXAMPLES]
            )
            examples = f"\n## How this candidate answered before\n{shots}\n"

        return (
            f"## Candidate\n{_candidate_summary(profile, 3)}\n{examples}\n"
            f"## Job\n{job.title} at {job.company}\n{job.description[:1000]}\n\n"
            f"## Questions\n" + "\n".join(lines) + "\n\n"
            'Return JSON array: [{"question": "...", "answer": "..."}, ...]'
        )

    async def answer_all_questions(
        self,
        profile: Profile,
        job: JobData,
        questions: list[CustomQuestion],
        previous_answers: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, str]:
        """Answer every question, batching when there is more than one.

        Args:
            profile: Candidate profile.
            job: Scraped job posting.
            questions: Questions to answer.
            previous_answers: Past ``{question, answer}`` pairs used as
                few-shot examples (at most ``MAX_EXAMPLES``).

        Returns:
            Mapping of question text to answer.  Every input question has
            an entry unless the provider raised.
        """
        if not questions:
            return {}

        if len(questions) == 1:
            q = questions[0]
            return {q.question: await self._answer_individually(profile, job, q)}

        results: dict[str, str] = {}
        reply = await self.llm.generate_text(
            self._batch_prompt(profile, job, questions, previous_answers),
            _BATCH_SYSTEM_PROMPT,
        )
        parsed = parse_json_reply(reply, expect=list)

        if parsed is None:
            self.logger.warning(
                "Batch answer reply unparseable; answering %d questions individually",
                len(questions),
            )
            for q in questions:
                results[q.question] = await self._answer_individually(profile, job, q)
        else:
            for item in parsed:
                if isinstance(item, dict) and item.get("question") and item.get("answer"):
                    results[str(item["question"])] = str(item["answer"]).strip()

        for q in questions:
            if q.question not in results:
                results[q.question] = await self._answer_individually(profile, job, q)

        return results

    async def answer_job_questions(
        self,
        profile: Profile,
        job: JobData,
        previous_answers: Optional[list[dict[str, Any]]] = None,
    ) -> int:
        """Fill ``answer`` on every still-unanswered question of ``job``.

        Returns:
            Number of questions that received an answer.
        """
        pending = [q for q in job.custom_questions if not q.answer]
        if not pending:
            return 0
        answers = await self.answer_all_questions(profile, job, pending, previous_answers)
        answered = 0
        for q in pending:
            answer = answers.get(q.question)
            if answer:
                q.answer = answer
                answered += 1
        return answered
