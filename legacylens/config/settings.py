
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_collection: str = "legacylens"

    llm_base_url: str = "http://localhost:11434/v1"
    llm_api_key: str = "ollama"
    llm_model: str = "qwen2.5:7b"
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.2
    rerank_temperature: float = 0.0

    embedding_model: str = "intfloat/multilingual-e5-base"
    embedding_query_prefix: str = "query: "
    embedding_passage_prefix: str = "passage: "

    codebase_path: str = "./target-codebase"
    max_file_bytes: int = 1_000_000

    # Chunking
    chunk_size: int = 1500
    chunk_overlap_lines: int = 3

    # Ingestion batches
    embed_batch_size: int = 100
    upsert_batch_size: int = 100
    metadata_content_limit: int = 10_000

    rag_fetch_factor: int = 2
    rerank_preview_chars: int = 200
    gate_rerank_threshold: int = 3
    gate_vector_threshold: float = 0.3
    file_context_limit: int = 200

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
