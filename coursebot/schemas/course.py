"""
Course content schemas for CourseBot.

Defines Pydantic models for the immutable course catalog:
- Knowledge blocks (text, optional media)
- Quiz blocks (single question with options)
- The catalog itself (course sequence + final test sequence)
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Annotated, Literal, Optional, Union


# -----------------------------------------------------------------------------
# Block types
# -----------------------------------------------------------------------------

class BlockBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    kind: str


class KnowledgeBlock(BlockBase):
    kind: Literal["knowledge"] = "knowledge"
    content: str
    media: Optional[str] = None    # file reference, resolved by the transport
    caption: Optional[str] = None  # shown under the media


class QuizBlock(BlockBase):
    """
    One multiple-choice question.
    correct_option is a 0-based index into options.
    """
    kind: Literal["quiz"] = "quiz"
    question: str
    options: list[str] = Field(..., min_length=2)
    correct_option: int = Field(..., ge=0)
    explanation: str = ""

    @model_validator(mode="after")
    def correct_option_in_range(self):
        if self.correct_option >= len(self.options):
            raise ValueError(
                f"correct_option {self.correct_option} out of range for {len(self.options)} options"
            )
        return self

    def is_correct(self, option_index: int) -> bool:
        return option_index == self.correct_option


Block = Annotated[
    Union[KnowledgeBlock, QuizBlock],
    Field(discriminator="kind"),
]


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------

def _check_unique_ids(blocks: list, label: str):
    seen = set()
    for block in blocks:
        if block.id in seen:
            raise ValueError(f"Duplicate block id in {label}: {block.id}")
        seen.add(block.id)


class CourseCatalog(BaseModel):
    """Ordered course blocks plus the final test. Shared by all sessions."""
    model_config = ConfigDict(frozen=True)

    title: str = ""
    introduction: str = ""
    blocks: list[Block] = Field(..., min_length=1)
    final_test: list[QuizBlock] = Field(..., min_length=1)

    @model_validator(mode="after")
    def ids_unique(self):
        _check_unique_ids(self.blocks, "course")
        _check_unique_ids(self.final_test, "final test")
        return self

    @property
    def total_blocks(self) -> int:
        return len(self.blocks)

    @property
    def total_final_questions(self) -> int:
        return len(self.final_test)

    @property
    def quiz_blocks(self) -> list[QuizBlock]:
        return [b for b in self.blocks if isinstance(b, QuizBlock)]
