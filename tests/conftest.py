"""
Shared fixtures for the lesson planner integration tests.

Uses a throwaway database (TEST_DATABASE_URL, a local SQLite file through
aiosqlite by default; point it at PostgreSQL to run against the real driver).
Each test gets a freshly created schema that is dropped afterwards.

Outbound HTTP is never real: template downloads go through an
``httpx.MockTransport`` serving .docx templates built with python-docx, and
the Gemini client is replaced by ``FakeLessonGenerator``.
"""
from __future__ import annotations

import os
from io import BytesIO
from typing import AsyncGenerator, Dict, List, Optional

import httpx
import pytest_asyncio
from docx import Document
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override settings *before* any planner module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///./planner_test.db",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["WORD_TEMPLATE_URL"] = "http://templates.test/plan_hebdomadaire.docx"
os.environ["AI_LESSON_TEMPLATE_URL"] = "http://templates.test/plan_de_lecon.docx"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("WEEK_DATES_FILE", None)

from planner.database import Base, get_db  # noqa: E402
from planner.main import app  # noqa: E402
from planner.models import database_models  # noqa: E402,F401
from planner.services.ai_lesson import get_lesson_generator  # noqa: E402
from planner.services.word_renderer import TemplateFetcher, get_template_fetcher  # noqa: E402

WORD_TEMPLATE_URL = os.environ["WORD_TEMPLATE_URL"]
AI_TEMPLATE_URL = os.environ["AI_LESSON_TEMPLATE_URL"]


# ---------------------------------------------------------------------------
# Template documents
# ---------------------------------------------------------------------------

def build_docx(paragraphs: List[str]) -> bytes:
    """A .docx whose body is one paragraph per string (one run each)."""
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    out = BytesIO()
    doc.save(out)
    return out.getvalue()


def docx_paragraphs(content: bytes) -> List[str]:
    return [p.text for p in Document(BytesIO(content)).paragraphs]


WEEK_TEMPLATE = build_docx([
    "Semaine {{ semaine }} - {{ classe }}",
    "{{ plageSemaine }}",
    "{%p for jour in jours %}",
    "JOUR: {{ jour.jourDateComplete }}",
    "{%p for m in jour.matieres %}",
    "{{ m.matiere }} | {{ m.Lecon }} | {{ m.travailDeClasse }} | {{ m.Support }} | {{ m.devoirs }}",
    "{%p endfor %}",
    "{%p endfor %}",
    "NOTES: {{ notes }}",
])

AI_TEMPLATE = build_docx([
    "ENSEIGNANT: {{ enseignant }}",
    "DATE: {{ date }}",
    "{{ semaine }} / {{ classe }} / {{ matiere }} / {{ seance }}",
    "UNITE: {{ unite }}",
    "METHODES: {{ methodes }}",
    "OBJECTIFS: {{ objectifs }}",
    "DIFF_TOUS: {{ diff_tous }}",
])

TEMPLATES: Dict[str, bytes] = {
    WORD_TEMPLATE_URL: WEEK_TEMPLATE,
    AI_TEMPLATE_URL: AI_TEMPLATE,
}


def template_transport(templates: Dict[str, bytes]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        content = templates.get(str(request.url))
        if content is None:
            return httpx.Response(404, text="no such template")
        return httpx.Response(200, content=content)

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# AI stand-in
# ---------------------------------------------------------------------------

AI_ANSWER = """\
Voici le plan demandé.
### METHODES: Exposé dialogué
Travail de groupe
### OUTILS: Manuel page 12
### OBJECTIFS: Comprendre les fractions
### MINUTAGE: Accueil (5 min)
### CONTENU: Étapes de la leçon
### RESSOURCES: Tableau
### DEVOIRS: Exercice 3
### DIFF_LENTS: Exemples guidés
### DIFF_PERFORMANTS: Problème ouvert
### DIFF_TOUS: Reformulation
"""


class FakeLessonGenerator:
    """Records prompts and returns a canned answer."""

    def __init__(self, answer: str = AI_ANSWER) -> None:
        self.answer = answer
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test on a freshly created schema; all
    tables are dropped after the test so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def lesson_generator() -> FakeLessonGenerator:
    return FakeLessonGenerator()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    lesson_generator: FakeLessonGenerator,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB session, the
    template fetcher and the AI generator overridden.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_template_fetcher] = lambda: TemplateFetcher(
        transport=template_transport(TEMPLATES)
    )
    app.dependency_overrides[get_lesson_generator] = lambda: lesson_generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_row(
    jour: str = "Lundi",
    periode: str = "1",
    matiere: str = "Maths",
    classe: str = "6A",
    enseignant: str = "Zine",
    **content: Optional[str],
) -> Dict[str, Optional[str]]:
    row = {
        "Enseignant": enseignant,
        "Classe": classe,
        "Jour": jour,
        "Période": periode,
        "Matière": matiere,
    }
    row.update(content)
    return row


async def save_plan(client: AsyncClient, week: int, rows: list) -> None:
    resp = await client.post("/save-plan", json={"week": week, "data": rows})
    assert resp.status_code == 200, resp.text
