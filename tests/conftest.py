from __future__ import annotations

import os
import shutil
import sys
import uuid
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parent.parent
for _path in (_REPO_ROOT, _REPO_ROOT / "packages"):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

# Environment variables read by ragcore.config.apply_env.
_ISOLATED_ENV_VARS = (
    "EMBEDDING_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_EMBED_MODEL",
    "QDRANT_URL",
    "QDRANT_COLLECTION",
    "DOCS_DIR",
    "LOG_LEVEL",
)

_PREVIOUS_CWD: Path | None = None
_PREVIOUS_ENV: dict[str, str | None] = {}
_WORKSPACE_ROOT: Path | None = None


def pytest_configure(config: pytest.Config) -> None:
    """Run every test from a scratch workspace with a clean ragcore environment."""
    global _PREVIOUS_CWD, _PREVIOUS_ENV, _WORKSPACE_ROOT
    workspace_root = _REPO_ROOT / ".tmp" / "test-workspaces" / uuid.uuid4().hex
    workspace_root.mkdir(parents=True, exist_ok=True)

    _PREVIOUS_CWD = Path.cwd()
    _PREVIOUS_ENV = {key: os.environ.get(key) for key in _ISOLATED_ENV_VARS}
    _WORKSPACE_ROOT = workspace_root

    for key in _ISOLATED_ENV_VARS:
        os.environ.pop(key, None)
    os.chdir(workspace_root)


def pytest_unconfigure(config: pytest.Config) -> None:
    global _PREVIOUS_CWD, _PREVIOUS_ENV, _WORKSPACE_ROOT
    if _PREVIOUS_CWD is not None:
        os.chdir(_PREVIOUS_CWD)
    for key, value in _PREVIOUS_ENV.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
    if _WORKSPACE_ROOT is not None:
        shutil.rmtree(_WORKSPACE_ROOT, ignore_errors=True)
