"""Configuration for the retrieval core.

Values are resolved in three layers: built-in defaults, an optional JSON
file, then environment variables.  :func:`load_config` applies all three and
validates the result.  JSON files written by PowerShell 5.1 carry a UTF-8
BOM, so files are read with ``utf-8-sig``.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import ConfigError

EMBEDDING_PROVIDERS = ("local", "openai")


@dataclass
class OpenAIConfig:
    api_key: str = ""
    model: str = "text-embedding-3-small"
    dim: int = 1536
    base_url: str = "https://api.openai.com"


@dataclass
class LocalEmbeddingConfig:
    dim: int = 300


@dataclass
class EmbeddingConfig:
    provider: str = "local"
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    local: LocalEmbeddingConfig = field(default_factory=LocalEmbeddingConfig)


@dataclass
class QdrantConfig:
    url: str = "http://localhost:6333"
    collection: str = "mcp_rag"


@dataclass
class FileTypesConfig:
    documentation: List[str] = field(
        default_factory=lambda: [".md", ".txt", ".rst", ".adoc"]
    )
    code: List[str] = field(
        default_factory=lambda: [
            ".go", ".py", ".js", ".ts", ".java", ".cpp", ".c", ".h", ".cs",
            ".php", ".rb", ".rs", ".scala", ".kt", ".swift", ".dart", ".r",
            ".m", ".sh", ".bat", ".ps1",
        ]
    )
    config: List[str] = field(
        default_factory=lambda: [".json", ".yaml", ".yml", ".xml", ".toml", ".ini", ".cfg", ".conf"]
    )
    database: List[str] = field(default_factory=lambda: [".sql", ".ddl", ".dml"])
    web: List[str] = field(
        default_factory=lambda: [
            ".html", ".css", ".scss", ".less", ".jsx", ".tsx", ".vue", ".svelte",
        ]
    )


@dataclass
class IndexingConfig:
    docs_dir: str = "./docs"
    chunk_size: int = 800
    chunk_overlap: int = 100
    batch_size: int = 10
    include_code: bool = False
    follow_symlinks: bool = False
    max_file_kb: int = 1024
    exclude_dirs: List[str] = field(
        default_factory=lambda: [
            ".git", "node_modules", "vendor", "__pycache__", ".venv", "dist", "build",
        ]
    )
    file_types: FileTypesConfig = field(default_factory=FileTypesConfig)


@dataclass
class LoggingConfig:
    level: str = "info"


@dataclass
class RagConfig:
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    qdrant: QdrantConfig = field(default_factory=QdrantConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Raise :class:`ConfigError` when the configuration is unusable."""
        provider = self.embedding.provider
        if provider not in EMBEDDING_PROVIDERS:
            raise ConfigError(
                f"embedding provider must be one of {', '.join(EMBEDDING_PROVIDERS)}: {provider!r}"
            )
        if provider == "openai" and not self.embedding.openai.api_key:
            raise ConfigError("OpenAI API key is required when using the openai provider")
        if self.embedding.local.dim <= 0:
            raise ConfigError("local embedding dim must be positive")
        if self.indexing.batch_size <= 0:
            raise ConfigError("batch size must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # -- file categories ------------------------------------------------

    def is_documentation_file(self, ext: str) -> bool:
        return _ext_in(ext, self.indexing.file_types.documentation)

    def is_code_file(self, ext: str) -> bool:
        return _ext_in(ext, self.indexing.file_types.code)

    def file_type(self, path: Union[str, Path]) -> str:
        """Return the category name of *path* based on its extension."""
        ext = Path(path).suffix
        types = self.indexing.file_types
        if _ext_in(ext, types.documentation):
            return "documentation"
        if _ext_in(ext, types.code):
            return "code"
        if _ext_in(ext, types.config):
            return "config"
        if _ext_in(ext, types.database):
            return "database"
        if _ext_in(ext, types.web):
            return "web"
        return "other"


def _ext_in(ext: str, extensions: List[str]) -> bool:
    ext = ext.lower()
    return any(ext == candidate.lower() for candidate in extensions)


def _merge(target: Any, data: Mapping[str, Any], where: str) -> None:
    """Recursively copy *data* onto dataclass *target*, ignoring unknown keys."""
    if not isinstance(data, Mapping):
        raise ConfigError(f"{where or 'config'} must be a JSON object")
    known = {f.name for f in fields(target)}
    for key, value in data.items():
        if key not in known:
            continue
        current = getattr(target, key)
        path = f"{where}.{key}" if where else key
        if is_dataclass(current):
            _merge(current, value, path)
        else:
            setattr(target, key, value)


def load_json_from_path(path: Union[str, Path]) -> dict:
    """Load a JSON object from *path*, accepting a UTF-8 BOM."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise ConfigError(f"config file not found: {p}") from exc

    try:
        result = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file is not valid JSON ({p}): {exc}") from exc

    if not isinstance(result, dict):
        raise ConfigError(
            f"config file must contain a JSON object, got {type(result).__name__}: {p}"
        )
    return result


def apply_env(config: RagConfig, env: Optional[Mapping[str, str]] = None) -> RagConfig:
    """Override *config* in place from environment variables."""
    env = os.environ if env is None else env

    if env.get("EMBEDDING_PROVIDER"):
        config.embedding.provider = env["EMBEDDING_PROVIDER"]
    if env.get("OPENAI_API_KEY"):
        config.embedding.openai.api_key = env["OPENAI_API_KEY"]
    if env.get("OPENAI_EMBED_MODEL"):
        config.embedding.openai.model = env["OPENAI_EMBED_MODEL"]
    if env.get("QDRANT_URL"):
        config.qdrant.url = env["QDRANT_URL"]
    if env.get("QDRANT_COLLECTION"):
        config.qdrant.collection = env["QDRANT_COLLECTION"]
    if env.get("DOCS_DIR"):
        config.indexing.docs_dir = env["DOCS_DIR"]
    if env.get("LOG_LEVEL"):
        config.logging.level = env["LOG_LEVEL"]
    return config


def load_config(
    path: Union[str, Path, None] = None,
    env: Optional[Mapping[str, str]] = None,
) -> RagConfig:
    """Build a validated :class:`RagConfig` from defaults, *path* and *env*."""
    config = RagConfig()
    if path is not None:
        _merge(config, load_json_from_path(path), "")
    apply_env(config, env)
    config.validate()
    return config
