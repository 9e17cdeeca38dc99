import httpx
from openai import OpenAI
from .base import LLMClient

class GroqOpenAIClient(LLMClient):
    """Hosted models on Groq through the OpenAI SDK."""

    def __init__(self, * , api_key: str | None, base_url: str, model: str,
    timeout: float = 60.0, http_client: httpx.Client | None = None):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self._http = http_client
        self._client: OpenAI | None = None

    @property
    def client(self) -> OpenAI:
        # OpenAI() refuses a missing key at construction; build it on first
        # use so a missing key shows up as a failed request instead.
        if self._client is None:
            kwargs = {"http_client": self._http} if self._http is not None else {}
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url,
            timeout=self.timeout, max_retries=0, **kwargs)
        return self._client

    def generate_text(self, *, system: str, user: str, temperature: float = 0.2,
    max_tokens: int | None = None) -> str:
        kwargs = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        resp = self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            **kwargs,
        )
        return (resp.choices[0].message.content or "").strip()
