"""OpenAI-backed AI gateway: embeddings, note analysis, question generation, answer review."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from openai import OpenAI, OpenAIError

from studymind.core import embeddings
from studymind.core.config import settings
from studymind.models.note.question_model import Difficulty, QuestionType
from studymind.services.review_errors import GatewayError
from studymind.utils.json_utils import safe_json_loads

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a study assistant for students. "
    "You only answer with valid JSON matching the requested shape."
)

ANALYZE_PROMPT = """Analyse the following study note titled "{title}".
Return a JSON object with the keys:
  "tags": up to 6 short topic tags,
  "summary": a 2-3 sentence summary,
  "concepts": the key concepts as short noun phrases,
  "relationships": a list of {{"source": str, "target": str, "type": str}}.

Note:
{content}"""

QUESTIONS_PROMPT = """Write {count} {difficulty} {question_type} review questions for the study note titled "{title}".
Return a JSON object {{"questions": [...]}} where each item has:
  "question", "hint", "connects" (related concepts), "mastery_context"
  (what a good answer demonstrates) and "answer" (a short reference answer).

Note:
{content}"""

REVIEW_PROMPT = """Evaluate a student's answer using the study note as ground truth.
Return a JSON object {{"feedback": str, "isCorrect": true | false | null}}.
Use null when the answer is partially correct. Keep the feedback short and encouraging.

Note content:
{content}

Question: {question}
{reference}Student answer: {answer}"""


@dataclass
class ContentAnalysis:
    tags: List[str] = field(default_factory=list)
    summary: Optional[str] = None
    concepts: List[str] = field(default_factory=list)
    relationships: List[dict] = field(default_factory=list)


@dataclass
class AnswerReview:
    feedback: str
    is_correct: Optional[bool] = None


class AIGateway:
    """Thin wrapper over the OpenAI client.

    Every remote failure is raised as ``GatewayError``. Without an API key the
    gateway still produces hashed embeddings but refuses completion calls.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        chat_model: str | None = None,
        embedding_model: str | None = None,
        use_remote_embeddings: bool | None = None,
        note_context_max_chars: int | None = None,
    ):
        self.client = client
        self.chat_model = chat_model or settings.OPENAI_CHAT_MODEL
        self.embedding_model = embedding_model or settings.OPENAI_EMBEDDING_MODEL
        self.use_remote_embeddings = (
            settings.USE_REMOTE_EMBEDDINGS if use_remote_embeddings is None else use_remote_embeddings
        )
        self.note_context_max_chars = note_context_max_chars or settings.NOTE_CONTEXT_MAX_CHARS

    @classmethod
    def from_settings(cls) -> "AIGateway":
        client = None
        if settings.OPENAI_API_KEY:
            client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.AI_REQUEST_TIMEOUT_SECONDS)
            logger.info("OpenAI client configured (model=%s).", settings.OPENAI_CHAT_MODEL)
        else:
            logger.warning("OPENAI_API_KEY is not set; AI features other than embeddings are disabled.")
        return cls(client)

    @property
    def is_available(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def generate_embedding(self, text: str, title: str = "") -> list[float]:
        source = f"{title}\n\n{text}".strip() if title else (text or "").strip()
        if not source:
            return [0.0] * embeddings.EMBEDDING_DIMENSION

        if self.use_remote_embeddings and self.client is not None:
            try:
                response = self.client.embeddings.create(model=self.embedding_model, input=source)
                data = response.data[0].embedding
                if data:
                    return embeddings.normalize(embeddings.project_dimension(data))
            except OpenAIError as exc:
                logger.warning("Falling back to hashed embedding (OpenAI error: %s)", exc)

        return embeddings.hashed_embedding(source)

    def analyze_content(self, text: str, title: str) -> ContentAnalysis:
        payload = self._complete_json(
            "analyze_content",
            ANALYZE_PROMPT.format(title=title, content=self._clip(text)),
        )
        if not isinstance(payload, dict):
            raise GatewayError("ai_invalid_response", "The AI returned an unexpected analysis.")

        return ContentAnalysis(
            tags=_string_list(payload.get("tags")),
            summary=(payload.get("summary") or None),
            concepts=_string_list(payload.get("concepts")),
            relationships=[item for item in payload.get("relationships") or [] if isinstance(item, dict)],
        )

    def generate_questions(
        self,
        *,
        title: str,
        content: str,
        difficulty: Difficulty,
        question_type: QuestionType,
        count: int = 5,
    ) -> list[dict]:
        payload = self._complete_json(
            "generate_questions",
            QUESTIONS_PROMPT.format(
                count=count,
                difficulty=Difficulty(difficulty).value,
                question_type=QuestionType(question_type).value,
                title=title,
                content=self._clip(content),
            ),
        )
        items = payload.get("questions") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise GatewayError("ai_invalid_response", "The AI returned no questions.")

        questions = []
        for item in items:
            if not isinstance(item, dict) or not str(item.get("question") or "").strip():
                continue
            questions.append(
                {
                    "question": str(item["question"]).strip(),
                    "hint": item.get("hint") or None,
                    "connects": _string_list(item.get("connects")),
                    "mastery_context": item.get("mastery_context") or None,
                    "answer": item.get("answer") or None,
                    "difficulty": Difficulty(difficulty),
                }
            )
        if not questions:
            raise GatewayError("ai_invalid_response", "The AI returned no usable questions.")
        return questions

    def review_answer(
        self,
        *,
        question: str,
        answer: str,
        note_content: str,
        reference_answer: str | None = None,
    ) -> AnswerReview:
        reference = f"Reference answer: {reference_answer}\n" if reference_answer else ""
        payload = self._complete_json(
            "review_answer",
            REVIEW_PROMPT.format(
                content=self._clip(note_content),
                question=question,
                reference=reference,
                answer=answer,
            ),
        )
        if isinstance(payload, list):
            payload = payload[0] if payload else {}
        if not isinstance(payload, dict):
            raise GatewayError("ai_invalid_response", "The AI returned an unexpected review.")

        feedback = str(payload.get("feedback") or "").strip()
        if not feedback:
            raise GatewayError("ai_invalid_response", "The AI returned an empty review.")

        is_correct = payload.get("isCorrect", payload.get("is_correct"))
        return AnswerReview(feedback=feedback, is_correct=is_correct if isinstance(is_correct, bool) else None)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _clip(self, text: str | None) -> str:
        return (text or "")[: self.note_context_max_chars]

    def _complete_json(self, action: str, prompt: str) -> Any:
        if self.client is None:
            raise GatewayError("ai_unavailable", "AI features are not configured on this server.")

        logger.info("AI gateway call '%s' (model=%s)", action, self.chat_model)
        try:
            response = self.client.chat.completions.create(
                model=self.chat_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            logger.error("AI gateway call '%s' failed: %s", action, exc)
            raise GatewayError("ai_request_failed", "The AI service is unavailable. Please try again.") from exc

        raw = response.choices[0].message.content
        try:
            return safe_json_loads(raw)
        except (ValueError, json.JSONDecodeError) as exc:
            logger.error("AI gateway call '%s' returned invalid JSON: %r", action, raw)
            raise GatewayError("ai_invalid_response", "The AI returned an unreadable response.") from exc


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


__all__ = ["AIGateway", "AnswerReview", "ContentAnalysis"]
