import random

import pytest
from fastapi.testclient import TestClient

from app.apis.deps import (
    get_game_manager,
    get_more_generator,
    get_session_generator,
    get_store,
)
from app.core.scheduler import ManualScheduler
from app.core.store import InMemoryKeyValueBackend, SessionStore
from app.modules.games.state import GameManager
from app.modules.study.generator import (
    MoreContentBatch,
    merge_more_content,
    stamp_session,
)
from app.modules.study.models import (
    ExamQuestions,
    Flashcard,
    MCQQuestion,
    ShortQuestion,
    StudyMaterial,
    StudyNote,
)


@pytest.fixture
def notes():
    return [
        StudyNote(
            heading="Cell Biology",
            points=[
                "Mitochondria: powerhouse of the cell",
                "Ribosome - builds proteins from amino acids",
                "Cells are small",
            ],
        ),
        StudyNote(
            heading="Genetics",
            points=[
                "DNA — carries genetic instructions",
                "Gene: a unit of heredity in DNA",
            ],
        ),
    ]


@pytest.fixture
def flashcards():
    return [Flashcard(front="Osmosis", back="Diffusion of water across a membrane")]


@pytest.fixture
def exam():
    return ExamQuestions(
        mcq=[
            MCQQuestion(
                question="Which organelle makes most of the cell's ATP?",
                options=["Mitochondria", "Ribosome", "Nucleus"],
                correct_answer="Mitochondria",
            ),
            MCQQuestion(
                question="What builds proteins?",
                options=["Golgi body", "Ribosome"],
                correct_answer="Ribosome",
            ),
        ],
        short=[
            ShortQuestion(
                question="Define osmosis.",
                answer="Diffusion of water across a semi-permeable membrane.",
            ),
            ShortQuestion(question="What is a gene?", answer="A unit of heredity."),
        ],
    )


@pytest.fixture
def material(notes, flashcards, exam):
    return StudyMaterial(
        title="Cells and Genes",
        clean_notes=notes,
        flashcards=flashcards,
        exam_questions=exam,
    )


@pytest.fixture
def study_session(material):
    return stamp_session(material)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store():
    return SessionStore(InMemoryKeyValueBackend(), daily_limit=2)


@pytest.fixture
def manager(scheduler):
    return GameManager(scheduler=scheduler, rng=random.Random(99))


@pytest.fixture
def extra_batch():
    return MoreContentBatch(
        exam_questions=ExamQuestions(
            mcq=[
                MCQQuestion(
                    question="Where is DNA stored?",
                    options=["Nucleus", "Cell wall"],
                    correct_answer="Nucleus",
                )
            ]
        )
    )


@pytest.fixture
def client(store, manager, material, extra_batch):
    from main import create_app

    app = create_app(with_lifespan=False)

    async def fake_generate(text):
        return stamp_session(material)

    async def fake_more(session, kind, source_text=None):
        return merge_more_content(session, kind, extra_batch)

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_game_manager] = lambda: manager
    app.dependency_overrides[get_session_generator] = lambda: fake_generate
    app.dependency_overrides[get_more_generator] = lambda: fake_more

    with TestClient(app) as c:
        yield c
