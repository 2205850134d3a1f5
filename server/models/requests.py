from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    question: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=100)
    chunking_strategy: str | None = None


class IndexTextRequest(BaseModel):
    texts: list[str]
    chunking_strategy: str | None = None
    source: str = "text"


class IndexGraphRequest(BaseModel):
    chunking_strategy: str | None = None


class IndexOntologyRequest(BaseModel):
    path: str
    chunking_strategy: str | None = None
