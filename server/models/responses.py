from pydantic import BaseModel


class QueryResponse(BaseModel):
    question: str
    chunking_strategy: str
    answer: str


class HealthResponse(BaseModel):
    status: str
    version: str
    graph_enabled: bool
    document_count: int
