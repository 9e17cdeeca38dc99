## Base LLM Client Interface
from abc import ABC, abstractmethod
from typing import Type
from pydantic import BaseModel

from learnpath.agents.parsing import extract_first_json_object

class LLMClient(ABC):
    @abstractmethod
    def generate_text(self, * , system: str, user: str, temperature: float = 0.2,
    max_tokens: int | None = None) -> str:
        raise NotImplementedError

    def generate_structured(self, schema: Type[BaseModel], * ,
    system: str, user: str, temperature: float = 0.2,
    max_tokens: int | None = None) -> BaseModel | None:
        """
        Ask the model for JSON, then validate the first embedded object with
        Pydantic. Models tend to wrap the object in prose, so the whole reply
        is never parsed strictly.
        Returns None when the reply holds no JSON object at all.
        """

        text = self.generate_text(system=system, user=user,
        temperature=temperature, max_tokens=max_tokens)
        raw = extract_first_json_object(text)
        if raw is None:
            return None
        return schema.model_validate_json(raw)
