"""
Word output: download a .docx template over HTTP and fill it with docxtpl.

Templates use Jinja tags, e.g. ``{{ classe }}`` and paragraph loops
``{%p for jour in jours %}`` ... ``{%p endfor %}``.  Undefined tags render as
empty text; strings containing newlines keep their line breaks.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, Dict, Optional

import httpx
from docxtpl import DocxTemplate, Listing
from jinja2 import TemplateError

from planner.config import settings
from planner.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class TemplateFetcher:
    """Downloads template documents.  ``transport`` lets tests swap the network out."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = httpx.Timeout(timeout or settings.HTTP_TIMEOUT, connect=10.0)
        self.transport = transport

    async def fetch(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport, follow_redirects=True
            ) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.error("TemplateFetcher.fetch: %s failed: %s", url, exc)
            raise UpstreamUnavailable("Erreur récup modèle Word.") from exc

        if resp.status_code != 200:
            logger.error("TemplateFetcher.fetch: %s returned HTTP %d", url, resp.status_code)
            raise UpstreamUnavailable(f"Échec modèle Word ({resp.status_code})")

        logger.info("TemplateFetcher.fetch: %s OK (%d bytes)", url, len(resp.content))
        return resp.content


def get_template_fetcher() -> TemplateFetcher:
    """FastAPI dependency."""
    return TemplateFetcher()


def _keep_line_breaks(value: Any) -> Any:
    if isinstance(value, str) and "\n" in value:
        return Listing(value)
    if isinstance(value, dict):
        return {k: _keep_line_breaks(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_keep_line_breaks(v) for v in value]
    return value


def render_docx(template: bytes, context: Dict[str, Any]) -> bytes:
    """
    Fill ``template`` with ``context`` and return the resulting .docx bytes.

    Raises:
        UpstreamUnavailable: the template is not a valid .docx or its tags don't render
    """
    try:
        doc = DocxTemplate(BytesIO(template))
        doc.render(_keep_line_breaks(context), autoescape=True)
    except TemplateError as exc:
        logger.error("render_docx: template error: %s", exc)
        raise UpstreamUnavailable(f"Erreur template: {exc}") from exc
    except Exception as exc:
        logger.error("render_docx: could not render template: %s", exc)
        raise UpstreamUnavailable(f"Erreur rendu: {exc}") from exc

    out = BytesIO()
    doc.save(out)
    return out.getvalue()
