"""Exercise type, difficulty and power-up enums."""

from __future__ import annotations

from enum import Enum


class ExerciseType(str, Enum):
    """Every exercise type the content service can serve."""

    # Module 1: literal comprehension
    CROSSWORD = "crucigrama"
    TIMELINE = "linea_tiempo"
    WORD_SEARCH = "sopa_letras"
    CONCEPT_MAP = "mapa_conceptual"
    MATCHING = "emparejamiento"
    # Module 2: inferential comprehension
    TEXT_DETECTIVE = "detective_textual"
    HYPOTHESIS_BUILDING = "construccion_hipotesis"
    NARRATIVE_PREDICTION = "prediccion_narrativa"
    CONTEXT_PUZZLE = "puzzle_contexto"
    INFERENCE_WHEEL = "rueda_inferencias"
    # Module 3: critical comprehension
    OPINION_TRIBUNAL = "tribunal_opiniones"
    DIGITAL_DEBATE = "debate_digital"
    SOURCE_ANALYSIS = "analisis_fuentes"
    ARGUMENT_PODCAST = "podcast_argumentativo"
    PERSPECTIVE_MATRIX = "matriz_perspectivas"
    # Module 4: digital texts
    FAKE_NEWS_CHECKER = "verificador_fake_news"
    INTERACTIVE_INFOGRAPHIC = "infografia_interactiva"
    SHORT_VIDEO_QUIZ = "quiz_tiktok"
    HYPERTEXT_NAVIGATION = "navegacion_hipertextual"
    MEME_ANALYSIS = "analisis_memes"
    # Module 5: creative production
    MULTIMEDIA_JOURNAL = "diario_multimedia"
    DIGITAL_COMIC = "comic_digital"
    VIDEO_LETTER = "video_carta"
    # Auxiliary
    LISTENING_COMPREHENSION = "comprension_auditiva"
    PRESS_COLLAGE = "collage_prensa"
    MOVING_TEXT = "texto_movimiento"
    CALL_TO_ACTION = "call_to_action"
    TRUE_FALSE = "verdadero_falso"
    FILL_IN_THE_BLANKS = "completar_espacios"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value: str | None) -> Difficulty:
        """Accept both easy/medium/hard and the content service's beginner/intermediate/advanced."""
        if not value:
            return cls.EASY
        value = value.lower()
        return _DIFFICULTY_ALIASES.get(value) or cls(value)


_DIFFICULTY_ALIASES = {
    "beginner": Difficulty.EASY,
    "intermediate": Difficulty.MEDIUM,
    "advanced": Difficulty.HARD,
}


class PowerUp(str, Enum):
    HINT = "pistas"
    READING_LENS = "vision_lectora"
    SECOND_CHANCE = "segunda_oportunidad"
