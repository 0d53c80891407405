from typing import Optional


class ApiError(Exception):
    """Non-2xx answer or transport failure from the records backend."""

    def __init__(self, status: Optional[int], body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"HTTP error! status: {status} - {body}")


class TerminologyError(Exception):
    """Code-search service answered with a non-2xx status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"terminology search failed: {status} - {body}")
