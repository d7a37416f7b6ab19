"""
AI lesson-plan drafts via the Gemini ``generateContent`` REST endpoint.

The prompt asks for ten ``### NAME:`` sections; ``parse_ai_sections`` reads
them back and fills any missing section with a placeholder so a partially
malformed answer still produces a document.

Public API
----------
build_prompt(lesson, subject, classe)                    -> str
GeminiLessonService.generate(prompt)                      -> str
parse_ai_sections(text)                                   -> Dict[str, str]
build_ai_lesson_context(week, row, sections, calendar)    -> Dict[str, Any]
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from planner.config import settings
from planner.errors import UpstreamUnavailable
from planner.services.school_calendar import SchoolCalendar, format_long_date
from planner.utils.helpers import get_value

logger = logging.getLogger(__name__)

AI_SECTIONS: Tuple[str, ...] = (
    "METHODES",
    "OUTILS",
    "OBJECTIFS",
    "MINUTAGE",
    "CONTENU",
    "RESSOURCES",
    "DEVOIRS",
    "DIFF_LENTS",
    "DIFF_PERFORMANTS",
    "DIFF_TOUS",
)
MISSING_SECTION = "(Non généré)"
NOT_SPECIFIED = "Non spécifié"


# ---------------------------------------------------------------------------
# Prompt template
# ---------------------------------------------------------------------------

_LESSON_PROMPT = """\
Génère le contenu pour un plan de leçon basé sur les informations suivantes. \
Réponds de manière concise pour chaque section.
- Leçon: {lesson}
- Matière: {subject}
- Classe: {classe}

Structure ta réponse EXACTEMENT comme suit, en utilisant "###" comme séparateur \
AVANT chaque nom de section.

### METHODES:
[Décris ici les méthodes pédagogiques (ex: exposé dialogué, travail de groupe, etc.)]

### OUTILS:
[Liste ici les outils et supports didactiques (ex: manuel scolaire page X, TBI, etc.)]

### OBJECTIFS:
[Liste ici les objectifs d'apprentissage clairs (ex: - Comprendre le concept de... \
- Être capable d'appliquer...)]

### MINUTAGE:
[Propose un découpage temporel (ex: - Accueil (5 min) - Activité (20 min) - Synthèse (10 min))]

### CONTENU:
[Décris ici les étapes clés de la leçon de manière détaillée.]

### RESSOURCES:
[Récapitule le matériel spécifique nécessaire.]

### DEVOIRS:
[Indique clairement les devoirs à faire.]

### DIFF_LENTS:
[Propose des stratégies pour les élèves en difficulté.]

### DIFF_PERFORMANTS:
[Propose des défis pour les élèves avancés.]

### DIFF_TOUS:
[Propose des stratégies générales pour tous les élèves.]
"""


def build_prompt(lesson: Any, subject: Any, classe: Any) -> str:
    return _LESSON_PROMPT.format(
        lesson=lesson or NOT_SPECIFIED,
        subject=subject or NOT_SPECIFIED,
        classe=classe or NOT_SPECIFIED,
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def parse_ai_sections(text: str) -> Dict[str, str]:
    """
    Split a model answer on ``### NAME:`` markers.

    Text on the marker line after the colon belongs to the section.  Lines
    before the first marker are ignored.  Missing or empty sections read
    MISSING_SECTION.
    """
    sections: Dict[str, str] = {}
    current: Optional[str] = None
    content: List[str] = []

    for line in (text or "").split("\n"):
        stripped = line.strip()
        header = next((s for s in AI_SECTIONS if stripped.startswith(f"### {s}:")), None)
        if header is not None:
            if current:
                sections[current] = "\n".join(content).strip()
            current = header
            content = [stripped[len(f"### {header}:"):].strip()]
        elif current:
            content.append(line)
    if current:
        sections[current] = "\n".join(content).strip()

    for name in AI_SECTIONS:
        if not sections.get(name):
            logger.warning("parse_ai_sections: section %r missing", name)
            sections[name] = MISSING_SECTION
    return sections


# ---------------------------------------------------------------------------
# Gemini client
# ---------------------------------------------------------------------------

class GeminiLessonService:
    """
    Text generation through Gemini's REST API.

    One request per call, no retries: any failure surfaces as UpstreamUnavailable.
    """

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self.timeout = httpx.Timeout(timeout or settings.GEMINI_TIMEOUT, connect=10.0)
        self.transport = transport

    async def generate(self, prompt: str) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    url,
                    headers={"x-goog-api-key": self.api_key},
                    json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
                )
        except httpx.TimeoutException as exc:
            logger.error("GeminiLessonService.generate: request timed out")
            raise UpstreamUnavailable("Le service IA n'a pas répondu à temps.") from exc
        except httpx.HTTPError as exc:
            logger.error("GeminiLessonService.generate: connection error: %s", exc)
            raise UpstreamUnavailable(f"Service IA injoignable: {exc}") from exc

        if resp.status_code != 200:
            logger.error(
                "GeminiLessonService.generate: HTTP %d: %s", resp.status_code, resp.text[:300]
            )
            raise UpstreamUnavailable(f"Erreur du service IA ({resp.status_code}).")

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.error("GeminiLessonService.generate: non-JSON response: %s", resp.text[:300])
            raise UpstreamUnavailable("Réponse invalide du service IA.") from exc

        text = self._extract_text(payload)
        if not text:
            logger.error("GeminiLessonService.generate: response without text")
            raise UpstreamUnavailable("Réponse vide du service IA.")
        logger.info("GeminiLessonService.generate: %d chars received", len(text))
        return text

    @staticmethod
    def _extract_text(payload: Any) -> str:
        try:
            parts = payload["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return ""
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


def get_lesson_generator() -> Optional[GeminiLessonService]:
    """FastAPI dependency; None when no API key is configured."""
    if not settings.GEMINI_API_KEY:
        return None
    return GeminiLessonService(api_key=settings.GEMINI_API_KEY)


# ---------------------------------------------------------------------------
# Template context
# ---------------------------------------------------------------------------

def build_ai_lesson_context(
    week: int,
    row: Mapping[str, Any],
    sections: Mapping[str, str],
    calendar: SchoolCalendar,
) -> Dict[str, Any]:
    """Field values for the AI lesson-plan template."""
    jour = get_value(row, "Jour")
    lecon = get_value(row, "Leçon")
    lesson_date = calendar.date_of(week, jour) if jour else None

    context: Dict[str, Any] = {
        "enseignant": get_value(row, "Enseignant"),
        "date": format_long_date(lesson_date) if lesson_date else jour,
        "semaine": f"Semaine {week}",
        "matiere": get_value(row, "Matière"),
        "classe": get_value(row, "Classe"),
        "seance": get_value(row, "Période"),
        "jour": jour,
        "unite": get_value(row, "Titre de l'unité", lecon),
        "lecon": lecon,
    }
    for name in AI_SECTIONS:
        context[name.lower()] = sections.get(name, MISSING_SECTION)
    return context
