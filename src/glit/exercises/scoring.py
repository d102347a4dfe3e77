"""Raw exercise scoring.

Pure functions: (exercise type, content, submitted answers) -> percentage in
[0, 100]. No I/O. Every ``ExerciseType`` is either in ``AUTO_SCORERS`` or in
``MANUAL_REVIEW_TYPES``; manual types score 0 and are flagged for teacher
review so they are never auto-credited.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from glit.exercises.types import ExerciseType

Content = Mapping[str, Any]
Answers = Mapping[str, Any]


@dataclass(frozen=True)
class ScoreOutcome:
    raw_score: float
    correct: int
    total: int
    requires_manual_review: bool = False


def _outcome(correct: int, total: int) -> ScoreOutcome:
    # Zero gradable items scores 0, never NaN
    raw = (correct / total) * 100 if total > 0 else 0.0
    return ScoreOutcome(raw_score=min(100.0, max(0.0, raw)), correct=correct, total=total)


def _norm(value: Any) -> str:  # noqa: ANN401
    if value is None:
        return ""
    return str(value).strip().lower()


def _response_at(answers: Answers, index: int) -> Any:  # noqa: ANN401
    """Positional answer from ``responses`` list, falling back to a string-indexed key."""
    responses = answers.get("responses")
    if isinstance(responses, list):
        return responses[index] if index < len(responses) else None
    return answers.get(str(index))


# ---------------------------------------------------------------------------
# Per-type rules
# ---------------------------------------------------------------------------


def score_crossword(content: Content, answers: Answers) -> ScoreOutcome:
    """Case-insensitive match of ``across_<n>`` / ``down_<n>`` answers."""
    clues = content.get("clues") or {}
    correct = total = 0
    for direction in ("across", "down"):
        for clue in clues.get(direction) or []:
            total += 1
            submitted = answers.get(f"{direction}_{clue.get('number')}")
            if submitted is not None and _norm(submitted) == _norm(clue.get("answer")):
                correct += 1
    return _outcome(correct, total)


def score_word_search(content: Content, answers: Answers) -> ScoreOutcome:
    words = {_norm(w) for w in content.get("words") or []}
    found = {_norm(w) for w in answers.get("foundWords") or []}
    return _outcome(len(words & found), len(words))


def score_matching(content: Content, answers: Answers) -> ScoreOutcome:
    pairs = content.get("correctPairs") or {}
    matches = answers.get("matches") or {}
    correct = sum(1 for key, value in pairs.items() if key in matches and matches[key] == value)
    return _outcome(correct, len(pairs))


def score_timeline(content: Content, answers: Answers) -> ScoreOutcome:
    """Events are compared position by position against chronological order."""
    events = content.get("events") or []
    expected = [e.get("id") for e in sorted(events, key=lambda e: e.get("year", 0))]
    order = answers.get("order") or []
    correct = sum(1 for i, event_id in enumerate(expected) if i < len(order) and order[i] == event_id)
    return _outcome(correct, len(expected))


def score_true_false(content: Content, answers: Answers) -> ScoreOutcome:
    statements = content.get("statements") or []
    correct = 0
    for i, statement in enumerate(statements):
        expected = statement.get("correctAnswer", statement.get("isTrue"))
        submitted = _response_at(answers, i)
        if submitted is not None and submitted == expected:
            correct += 1
    return _outcome(correct, len(statements))


def score_fill_in_the_blanks(content: Content, answers: Answers) -> ScoreOutcome:
    """Trimmed, case-insensitive match against the answer or any accepted alternative."""
    blanks = content.get("blanks") or []
    correct = 0
    for i, blank in enumerate(blanks):
        submitted = _norm(_response_at(answers, i))
        if not submitted:
            continue
        accepted = {_norm(blank.get("correctAnswer"))}
        accepted.update(_norm(a) for a in blank.get("acceptedAnswers") or [])
        if submitted in accepted:
            correct += 1
    return _outcome(correct, len(blanks))


def score_short_video_quiz(content: Content, answers: Answers) -> ScoreOutcome:
    questions = content.get("questions") or []
    correct = sum(
        1
        for i, question in enumerate(questions)
        if _response_at(answers, i) is not None and _response_at(answers, i) == question.get("correctAnswer")
    )
    return _outcome(correct, len(questions))


def score_multiple_choice(content: Content, answers: Answers) -> ScoreOutcome:
    """Answers keyed by question id."""
    questions = content.get("questions") or []
    correct = sum(
        1
        for q in questions
        if q.get("id") is not None
        and answers.get(str(q["id"])) is not None
        and answers.get(str(q["id"])) == q.get("correctAnswer")
    )
    return _outcome(correct, len(questions))


def score_fake_news_checker(content: Content, answers: Answers) -> ScoreOutcome:
    claims = content.get("claims") or []
    correct = sum(
        1
        for claim in claims
        if answers.get(str(claim.get("id"))) is not None and answers.get(str(claim.get("id"))) == claim.get("veracity")
    )
    return _outcome(correct, len(claims))


def score_concept_map(content: Content, answers: Answers) -> ScoreOutcome:
    """Each expected relationship must appear with the same endpoints and label."""
    expected = content.get("relationships") or []
    submitted = {
        (r.get("fromConceptId"), r.get("toConceptId")): _norm(r.get("label"))
        for r in answers.get("relationships") or []
    }
    correct = sum(
        1
        for rel in expected
        if submitted.get((rel.get("fromConceptId"), rel.get("toConceptId"))) == _norm(rel.get("label"))
    )
    return _outcome(correct, len(expected))


PRESS_COLLAGE_COMPLETION_SCORE = 80.0


def score_press_collage(content: Content, answers: Answers) -> ScoreOutcome:  # noqa: ARG001
    """Free-form: a completed collage earns a fixed base score."""
    if answers.get("completed"):
        return ScoreOutcome(raw_score=PRESS_COLLAGE_COMPLETION_SCORE, correct=1, total=1)
    return ScoreOutcome(raw_score=0.0, correct=0, total=1)


AUTO_SCORERS: dict[ExerciseType, Callable[[Content, Answers], ScoreOutcome]] = {
    ExerciseType.CROSSWORD: score_crossword,
    ExerciseType.WORD_SEARCH: score_word_search,
    ExerciseType.MATCHING: score_matching,
    ExerciseType.TIMELINE: score_timeline,
    ExerciseType.TRUE_FALSE: score_true_false,
    ExerciseType.FILL_IN_THE_BLANKS: score_fill_in_the_blanks,
    ExerciseType.SHORT_VIDEO_QUIZ: score_short_video_quiz,
    ExerciseType.LISTENING_COMPREHENSION: score_multiple_choice,
    ExerciseType.HYPERTEXT_NAVIGATION: score_multiple_choice,
    ExerciseType.MEME_ANALYSIS: score_multiple_choice,
    ExerciseType.CALL_TO_ACTION: score_multiple_choice,
    ExerciseType.MOVING_TEXT: score_multiple_choice,
    ExerciseType.FAKE_NEWS_CHECKER: score_fake_news_checker,
    ExerciseType.CONCEPT_MAP: score_concept_map,
    ExerciseType.PRESS_COLLAGE: score_press_collage,
}

MANUAL_REVIEW_TYPES: frozenset[ExerciseType] = frozenset({
    ExerciseType.TEXT_DETECTIVE,
    ExerciseType.HYPOTHESIS_BUILDING,
    ExerciseType.NARRATIVE_PREDICTION,
    ExerciseType.CONTEXT_PUZZLE,
    ExerciseType.INFERENCE_WHEEL,
    ExerciseType.OPINION_TRIBUNAL,
    ExerciseType.DIGITAL_DEBATE,
    ExerciseType.SOURCE_ANALYSIS,
    ExerciseType.ARGUMENT_PODCAST,
    ExerciseType.PERSPECTIVE_MATRIX,
    ExerciseType.INTERACTIVE_INFOGRAPHIC,
    ExerciseType.MULTIMEDIA_JOURNAL,
    ExerciseType.DIGITAL_COMIC,
    ExerciseType.VIDEO_LETTER,
})

_unclassified = set(ExerciseType) - set(AUTO_SCORERS) - MANUAL_REVIEW_TYPES
if _unclassified:
    raise RuntimeError(f"Exercise types without a scoring rule: {sorted(t.value for t in _unclassified)}")


def score(exercise_type: ExerciseType, content: Content, answers: Answers) -> ScoreOutcome:
    """Compute the raw percentage score for one submission."""
    if exercise_type in MANUAL_REVIEW_TYPES:
        return ScoreOutcome(raw_score=0.0, correct=0, total=0, requires_manual_review=True)
    return AUTO_SCORERS[exercise_type](content, answers)


def feedback_for(final_score: int) -> str:
    if final_score >= 90:
        return "Excellent work! You have mastered this topic."
    if final_score >= 70:
        return "Good job! You are on the right track."
    if final_score >= 50:
        return "Not bad, but there is room to improve. Keep practising."
    return "You need more practice. Review the material and try again."
