from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from agri_resolver.config.models import NarrativeSettings
from agri_resolver.http.client import HttpClient
from agri_resolver.narrative.mocks import DEFAULT_MOCK_NARRATIVES
from agri_resolver.narrative.models import NARRATIVE_KINDS, CropData, NarrativeKind
from agri_resolver.narrative.prompts import PROMPT_BUILDERS
from agri_resolver.resolver.errors import ConfigurationError, MalformedResponse
from agri_resolver.resolver.models import ResolutionPlan, ResolutionResult, SourceDescriptor
from agri_resolver.resolver.orchestrator import FallbackOrchestrator

logger = logging.getLogger(__name__)

NarrativeRequest = Tuple[NarrativeKind, CropData]

# kind -> (endpoint path, response field) on the narrative API
_API_ROUTES: Dict[str, Tuple[str, str]] = {
    "cropStory": ("crop-story", "story"),
    "environmentalImpact": ("environmental-impact", "narrative"),
    "cookingSuggestions": ("cooking-suggestions", "suggestions"),
}


def _non_empty_text(source: str, raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedResponse(source, "narrative text is missing or empty")
    return raw.strip()


class NarrativeService:
    """
    AI-generated crop narratives.

    The marketplace narrative API is asked first; when an LLM key is
    configured, a direct chat-completions call is the second source.
    """

    api_source_name = "narrative_api"
    llm_source_name = "llm"

    def __init__(self, *, settings: NarrativeSettings, orchestrator: FallbackOrchestrator, http: HttpClient) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self._http = http
        self._mocks = self._validate_mocks(settings.mock_narratives or DEFAULT_MOCK_NARRATIVES)
        self._plan: ResolutionPlan[str] = ResolutionPlan(
            sources=[
                SourceDescriptor(
                    name=self.api_source_name,
                    priority=0,
                    timeout_ms=settings.api_timeout_ms,
                    fetch=self._fetch_from_api,
                ),
                SourceDescriptor(
                    name=self.llm_source_name,
                    priority=1,
                    timeout_ms=settings.llm.timeout_ms,
                    fetch=self._fetch_from_llm,
                    precondition=self.has_llm_key,
                ),
            ],
            ttl_ms=settings.cache_ttl_ms,
        )
        if not self.has_llm_key():
            logger.info("No LLM API key configured; narratives rely on the narrative API only.")

    @staticmethod
    def _validate_mocks(mocks: Dict[str, Dict[str, str]]) -> Dict[str, Dict[str, str]]:
        normalized: Dict[str, Dict[str, str]] = {}
        for kind in NARRATIVE_KINDS:
            table = mocks.get(kind)
            if not table or not table.get("default"):
                raise ConfigurationError(f"Mock narratives need a 'default' entry. kind={kind}")
            normalized[kind] = {crop.lower(): text for crop, text in table.items()}
        return normalized

    def has_llm_key(self) -> bool:
        return bool(self._settings.llm.api_key.strip())

    @staticmethod
    def cache_key(kind: NarrativeKind, crop: CropData) -> str:
        location = (crop.farm_location or "unknown").strip() or "unknown"
        return f"narrative:{kind}:{crop.crop_type.strip().lower()}:{location}"

    def mock_narrative(self, kind: NarrativeKind, crop_type: str) -> str:
        table = self._mocks[kind]
        return table.get(crop_type.strip().lower(), table["default"])

    async def _fetch_from_api(self, request: NarrativeRequest) -> str:
        kind, crop = request
        path, field = _API_ROUTES[kind]
        url = f"{self._settings.api_base_url.rstrip('/')}/{path}"
        data = await self._http.post_json(self.api_source_name, url, payload=crop.to_payload())
        if not isinstance(data, dict):
            raise MalformedResponse(self.api_source_name, "response is not an object")
        return _non_empty_text(self.api_source_name, data.get(field))

    async def _fetch_from_llm(self, request: NarrativeRequest) -> str:
        kind, crop = request
        prompt = PROMPT_BUILDERS[kind](crop)
        llm = self._settings.llm
        url = f"{llm.base_url.rstrip('/')}/chat/completions"
        payload = {
            "model": llm.model,
            "messages": [
                {"role": "system", "content": prompt.system_prompt},
                {"role": "user", "content": prompt.user_prompt},
            ],
            "max_tokens": prompt.max_tokens,
            "temperature": prompt.temperature,
        }
        data = await self._http.post_json(
            self.llm_source_name,
            url,
            payload=payload,
            headers={"Authorization": f"Bearer {llm.api_key}"},
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponse(self.llm_source_name, "no message content in completion") from e
        return _non_empty_text(self.llm_source_name, content)

    async def generate(self, kind: NarrativeKind, crop: CropData) -> ResolutionResult[str]:
        if kind not in _API_ROUTES:
            raise ValueError(f"Unknown narrative kind: {kind}")
        return await self._orchestrator.resolve_plan(
            self.cache_key(kind, crop),
            self._plan,
            self.mock_narrative(kind, crop.crop_type),
            params=(kind, crop),
        )

    async def generate_crop_story(self, crop: CropData) -> ResolutionResult[str]:
        return await self.generate("cropStory", crop)

    async def generate_environmental_impact(self, crop: CropData) -> ResolutionResult[str]:
        return await self.generate("environmentalImpact", crop)

    async def generate_cooking_suggestions(self, crop: CropData) -> ResolutionResult[str]:
        return await self.generate("cookingSuggestions", crop)
