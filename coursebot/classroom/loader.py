"""
Catalog loader - Load the course catalog from a YAML or JSON file.

Supports two layouts:
- Flat: a `blocks` list (and optional `final_test` list) of block dicts
- Sectioned: a `sections` list of knowledge sections (with `steps`) and
  quiz sections (with `questions`), flattened in order

The catalog is loaded once at startup. Any problem with the file is a
CatalogError, which the entry point treats as fatal.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from coursebot.errors import CatalogError
from coursebot.schemas import CourseCatalog


logger = logging.getLogger(__name__)

DEFAULT_FINAL_TEST_LENGTH = 5


def read_catalog_file(path: str | Path) -> dict[str, Any]:
    """
    Read the raw catalog mapping from disk.

    Args:
        path: Path to a .yaml/.yml or .json file

    Returns:
        Parsed top-level mapping

    Raises:
        CatalogError: If the file is missing, unparseable or not a mapping
    """
    file_path = Path(path)
    if not file_path.exists():
        raise CatalogError(f"Course catalog not found: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            if file_path.suffix.lower() == ".json":
                raw = json.load(f)
            else:
                raw = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogError(f"Could not read course catalog {file_path}: {e}") from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise CatalogError(f"Could not parse course catalog {file_path}: {e}") from e

    if not isinstance(raw, dict):
        raise CatalogError(f"Course catalog root must be a mapping: {file_path}")
    return raw


def _mapping_list(value: Any, where: str) -> list[dict]:
    """Check that `value` is a list of mappings, as every catalog collection must be."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise CatalogError(f"{where} must be a list, got {type(value).__name__}")
    for idx, item in enumerate(value):
        if not isinstance(item, dict):
            raise CatalogError(f"{where}[{idx}] must be a mapping, got {type(item).__name__}")
    return value


# -----------------------------------------------------------------------------
# Sectioned layout
# -----------------------------------------------------------------------------

def _knowledge_step(section_id: str, index: int, step: dict) -> dict:
    block = {
        "id": str(step.get("id", f"{section_id}_{index + 1}")),
        "kind": "knowledge",
        "content": step.get("message") or step.get("content") or "",
    }
    if step.get("type") == "audio" or step.get("file"):
        block["media"] = step.get("file")
        block["caption"] = step.get("caption")
    return block


def _quiz_questions(section: dict) -> list[dict]:
    section_id = str(section.get("id", "quiz"))
    blocks = []

    # Section header becomes its own knowledge block ahead of the questions
    title = section.get("title")
    description = section.get("description")
    if title or description:
        header = "\n\n".join(part for part in (f"*{title}*" if title else None, description) if part)
        blocks.append({"id": f"{section_id}_intro", "kind": "knowledge", "content": header})

    for idx, question in enumerate(_mapping_list(section.get("questions"), f"{section_id}.questions")):
        blocks.append({
            "id": str(question.get("id", f"{section_id}_q{idx + 1}")),
            "kind": "quiz",
            "question": question.get("question", ""),
            "options": question.get("options", []),
            "correct_option": question.get("correct", question.get("correct_option")),
            "explanation": question.get("explanation", ""),
        })
    return blocks


def flatten_sections(sections: list[dict]) -> list[dict]:
    """Flatten sectioned course content into an ordered list of block dicts."""
    blocks = []
    for section in _mapping_list(sections, "sections"):
        section_type = section.get("type")
        section_id = str(section.get("id", f"section_{len(blocks)}"))
        if section_type == "knowledge":
            for idx, step in enumerate(_mapping_list(section.get("steps"), f"{section_id}.steps")):
                blocks.append(_knowledge_step(section_id, idx, step))
        elif section_type == "quiz":
            blocks.extend(_quiz_questions(section))
        else:
            raise CatalogError(f"Unknown section type {section_type!r} in section {section_id}")
    return blocks


# -----------------------------------------------------------------------------
# Final test
# -----------------------------------------------------------------------------

def derive_final_test(blocks: list[dict], length: int) -> list[dict]:
    """Take the first `length` quiz blocks of the course as the final test."""
    quizzes = [b for b in blocks if b.get("kind") == "quiz"]
    return quizzes[:length]


def load_catalog(path: str | Path, final_test_length: int = DEFAULT_FINAL_TEST_LENGTH) -> CourseCatalog:
    """
    Load and validate the course catalog.

    Args:
        path: Catalog file path
        final_test_length: Number of course quizzes reused as the final test
            when the file does not define `final_test`

    Returns:
        Validated, immutable CourseCatalog

    Raises:
        CatalogError: On any missing, malformed or empty content
    """
    raw = read_catalog_file(path)

    if "blocks" in raw:
        blocks = _mapping_list(raw.get("blocks"), "blocks")
    elif "sections" in raw:
        blocks = flatten_sections(raw.get("sections"))
    else:
        raise CatalogError(f"Course catalog has neither 'blocks' nor 'sections': {path}")

    final_test = _mapping_list(raw.get("final_test"), "final_test")
    if not final_test:
        final_test = derive_final_test(blocks, final_test_length)
        logger.info(f"Derived final test from {len(final_test)} course quizzes")

    presentation = raw.get("presentation") or {}
    if not isinstance(presentation, dict):
        raise CatalogError(f"presentation must be a mapping, got {type(presentation).__name__}")
    try:
        catalog = CourseCatalog(
            title=raw.get("title", ""),
            introduction=raw.get("introduction") or presentation.get("text", ""),
            blocks=blocks,
            final_test=final_test,
        )
    except ValidationError as e:
        raise CatalogError(f"Invalid course catalog {path}: {e}") from e

    logger.info(
        f"Loaded course catalog: {catalog.total_blocks} blocks, "
        f"{catalog.total_final_questions} final test questions"
    )
    return catalog
