from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.question import Question
from .errors import StorageError

logger = logging.getLogger(__name__)

# Practice problems every installation ships with
BUILT_IN_QUESTIONS = [
    {
        "id": "sum-1-to-n",
        "title": "Sum from 1 to n",
        "difficulty": "easy",
        "tags": ["math", "loops"],
        "description": (
            "Write a program that reads an integer n and prints the sum 1+2+...+n. "
            "If n is negative, print 0. Example: input 5 gives output 15."
        ),
    },
    {
        "id": "reverse-string",
        "title": "Reverse a String",
        "difficulty": "easy",
        "tags": ["strings"],
        "description": "Read a line of text and print it reversed. Example: hello gives olleh.",
    },
    {
        "id": "count-vowels",
        "title": "Count Vowels",
        "difficulty": "medium",
        "tags": ["strings"],
        "description": "Read a string and print the number of vowels (a, e, i, o, u). Case-insensitive.",
    },
    {
        "id": "max-in-list",
        "title": "Maximum in List",
        "difficulty": "medium",
        "tags": ["lists", "loops"],
        "description": "Read an integer n, then read n integers. Print the maximum value.",
    },
    {
        "id": "prime-check",
        "title": "Prime Check",
        "difficulty": "hard",
        "tags": ["math", "loops"],
        "description": "Read an integer and print YES if it is prime, otherwise NO.",
    },
]


def seed_questions() -> dict:
    """Insert built-in questions that are missing; existing ids are skipped.

    Admin edits to a seeded question are never overwritten.
    """
    created = 0
    try:
        existing = {q.id for q in Question.query.with_entities(Question.id).all()}
        for item in BUILT_IN_QUESTIONS:
            if item["id"] in existing:
                continue
            db.session.add(Question(
                id=item["id"],
                title=item["title"],
                description=item["description"],
                difficulty=item["difficulty"],
                tags=list(item["tags"]),
                is_active=True,
                is_built_in=True,
            ))
            created += 1
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Question seeding failed: %s", e)
        raise StorageError("Question seeding failed") from e

    skipped = len(BUILT_IN_QUESTIONS) - created
    logger.info("Question seeding done: %d created, %d already present", created, skipped)
    return {"total": len(BUILT_IN_QUESTIONS), "created": created, "skipped": skipped}
