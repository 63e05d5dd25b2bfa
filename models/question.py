# models/question.py
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from typing import Annotated, List, Literal, Union

# Types a teacher can pick in the editor. google_embed is produced by the
# backend for Google-link worksheets and is never authored by hand.
QUESTION_TYPES = ["multiple_choice", "fill_blank", "matching", "true_false", "short_answer"]
TRUE_FALSE_ANSWERS = ("true", "false")
DEFAULT_POINTS = 10
DEFAULT_OPTION_COUNT = 4


class QuestionBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    prompt: str = Field("", alias="question")
    points: int = DEFAULT_POINTS
    explanation: str = ""


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: List[str] = Field(default_factory=lambda: [""] * DEFAULT_OPTION_COUNT)
    correctAnswer: str = ""


class FillBlankQuestion(QuestionBase):
    type: Literal["fill_blank"] = "fill_blank"
    correctAnswer: str = ""


class ShortAnswerQuestion(QuestionBase):
    type: Literal["short_answer"] = "short_answer"
    correctAnswer: str = ""


class TrueFalseQuestion(QuestionBase):
    type: Literal["true_false"] = "true_false"
    correctAnswer: str = ""  # "true" or "false" once valid


class MatchingPair(BaseModel):
    left: str = ""
    right: str = ""


class MatchingQuestion(QuestionBase):
    type: Literal["matching"] = "matching"
    pairs: List[MatchingPair] = []


class GoogleEmbedQuestion(QuestionBase):
    type: Literal["google_embed"] = "google_embed"
    url: str = ""


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        FillBlankQuestion,
        ShortAnswerQuestion,
        TrueFalseQuestion,
        MatchingQuestion,
        GoogleEmbedQuestion,
    ],
    Field(discriminator="type"),
]

question_adapter = TypeAdapter(Question)


def parse_question(data: dict):
    return question_adapter.validate_python(data)


def question_to_wire(question) -> dict:
    return question.model_dump(by_alias=True, mode="json")
