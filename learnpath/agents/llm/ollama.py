import logging

import httpx
from learnpath.agents.llm.base import LLMClient

logger = logging.getLogger(__name__)

class OllamaOpenAIClient(LLMClient):
    """Local models through Ollama's OpenAI-compatible endpoint."""

    def __init__(self, base_url: str, model: str, timeout: float = 120.0,
    http_client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._http = http_client

    def _post(self, url: str, payload: dict, headers: dict) -> httpx.Response:
        if self._http is not None:
            return self._http.post(url, json=payload, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(url, json=payload, headers=headers)

    def generate_text(self, * , system: str, user: str, temperature: float = 0.2,
    max_tokens: int | None = None) -> str:
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        # Ollama ignores the key but OpenAI-style clients always send one
        headers = {"Content-Type": "application/json", "Authorization": "Bearer ollama"}

        r = self._post(url, payload, headers)
        if r.status_code >= 400:
            logger.error("Ollama request failed (%d) for model %s", r.status_code, self.model)
        r.raise_for_status()
        data = r.json()

        return (data["choices"][0]["message"]["content"] or "").strip()
