"""Answer payload shapes per exercise type.

Submitted answers are checked against these models before scoring so a
wrongly typed payload is rejected as 400 VALIDATION_ERROR instead of
reaching a scorer.
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, ValidationError

from glit.errors import SubmissionValidationError
from glit.exercises.types import ExerciseType
from glit.schemas import CamelModel


class _Answers(CamelModel):
    model_config = ConfigDict(extra="allow")


class KeyedAnswers(_Answers):
    """Answers keyed by clue or question id (crossword, quizzes, claims)."""


class PositionalAnswers(_Answers):
    responses: list[Any] | None = None


class WordSearchAnswers(_Answers):
    found_words: list[str] | None = None


class MatchingAnswers(_Answers):
    matches: dict[str, Any] | None = None


class TimelineAnswers(_Answers):
    order: list[str | int] | None = None


class ConceptLink(CamelModel):
    from_concept_id: str | int
    to_concept_id: str | int
    label: str | None = None


class ConceptMapAnswers(_Answers):
    relationships: list[ConceptLink] | None = None


class PressCollageAnswers(_Answers):
    completed: bool = False


ANSWER_MODELS: dict[ExerciseType, type[_Answers]] = {
    ExerciseType.CROSSWORD: KeyedAnswers,
    ExerciseType.WORD_SEARCH: WordSearchAnswers,
    ExerciseType.MATCHING: MatchingAnswers,
    ExerciseType.TIMELINE: TimelineAnswers,
    ExerciseType.TRUE_FALSE: PositionalAnswers,
    ExerciseType.FILL_IN_THE_BLANKS: PositionalAnswers,
    ExerciseType.SHORT_VIDEO_QUIZ: PositionalAnswers,
    ExerciseType.LISTENING_COMPREHENSION: KeyedAnswers,
    ExerciseType.HYPERTEXT_NAVIGATION: KeyedAnswers,
    ExerciseType.MEME_ANALYSIS: KeyedAnswers,
    ExerciseType.CALL_TO_ACTION: KeyedAnswers,
    ExerciseType.MOVING_TEXT: KeyedAnswers,
    ExerciseType.FAKE_NEWS_CHECKER: KeyedAnswers,
    ExerciseType.CONCEPT_MAP: ConceptMapAnswers,
    ExerciseType.PRESS_COLLAGE: PressCollageAnswers,
}


def validate_answers(exercise_type: ExerciseType, answers: Any) -> None:  # noqa: ANN401
    """Raise SubmissionValidationError if ``answers`` does not fit the type's shape.

    Manual-review types accept any object.
    """
    if not isinstance(answers, dict):
        raise SubmissionValidationError("Answers must be an object", field="answers")
    model = ANSWER_MODELS.get(exercise_type)
    if model is None:
        return
    try:
        model.model_validate(answers)
    except ValidationError as exc:
        errors = [
            {
                "loc": ["answers", *(str(part) for part in err["loc"])],
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        raise SubmissionValidationError(
            f"Malformed answers for {exercise_type.value}",
            field=".".join(errors[0]["loc"]),
            errors=errors,
        ) from None
