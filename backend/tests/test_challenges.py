from blockhunt.core.challenges import BUILT_IN_QUESTIONS, seed_questions
from blockhunt.extensions import db
from blockhunt.models.question import Question


def test_seed_creates_built_in_questions(app):
    stats = seed_questions()

    assert stats == {"total": len(BUILT_IN_QUESTIONS), "created": len(BUILT_IN_QUESTIONS), "skipped": 0}
    prime = db.session.get(Question, "prime-check")
    assert prime.is_built_in is True
    assert prime.is_active is True
    assert prime.tags == ["math", "loops"]


def test_seed_is_idempotent_and_keeps_edits(app):
    seed_questions()
    row = db.session.get(Question, "reverse-string")
    row.title = "Backwards text"
    db.session.commit()

    stats = seed_questions()

    assert stats["created"] == 0
    assert stats["skipped"] == len(BUILT_IN_QUESTIONS)
    assert db.session.get(Question, "reverse-string").title == "Backwards text"
    assert Question.query.count() == len(BUILT_IN_QUESTIONS)


def test_questions_seed_command(app):
    result = app.test_cli_runner().invoke(args=["questions", "seed"])

    assert result.exit_code == 0
    assert f"{len(BUILT_IN_QUESTIONS)} created" in result.output


def test_seeded_questions_are_listed(app, client, student, auth_headers):
    seed_questions()
    listed = client.get("/api/v1/questions", headers=auth_headers(student)).get_json()["questions"]

    by_id = {q["id"]: q for q in listed}
    assert set(by_id) == {q["id"] for q in BUILT_IN_QUESTIONS}
    assert by_id["count-vowels"]["isBuiltIn"] is True
    assert by_id["count-vowels"]["tags"] == ["strings"]
