from typing import Protocol


class ModelError(RuntimeError):
    def __init__(self, message: str, *, code: str = "llm_unavailable"):
        super().__init__(message)
        self.code = code


class ModelAdapter(Protocol):
    def generate(self, prompt: str) -> str: ...
