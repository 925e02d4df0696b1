from fastapi import HTTPException


class ProviderError(Exception):
    """An LLM provider call failed: non-2xx response, transport error, or unreadable reply."""


class UnknownProviderError(ValueError):
    def __init__(self, name: str):
        super().__init__(f"Unknown provider: {name}")
        self.name = name


class UnknownProviderException(HTTPException):
    def __init__(self, name: str):
        super().__init__(status_code=400, detail=f"Unknown provider: {name}")


class CrossOriginException(HTTPException):
    def __init__(self, origin: str):
        super().__init__(status_code=403, detail=f"Cross-origin request refused: {origin}")
