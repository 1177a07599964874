"""Fixed protocol prompts, loaded once from the markdown files in this directory."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).resolve().parent

_FILES = {
    "discovery": "discovery.md",
    "opportunities": "opportunities.md",
    "guidance_prompt_generator": "guidance_prompt_generator.md",
    "implementation_consultant": "implementation_consultant.md",
}


@dataclass(frozen=True)
class PromptSet:
    """Immutable system prompts injected into the dialogue and generation flows."""

    discovery: str
    opportunities: str
    guidance_prompt_generator: str
    implementation_consultant: str


def load_prompts(prompts_dir: Path | None = None) -> PromptSet:
    """Read every prompt file from ``prompts_dir`` (defaults to the packaged copies)."""
    base = prompts_dir or PROMPTS_DIR
    texts: dict[str, str] = {}
    for field_name, filename in _FILES.items():
        path = base / filename
        if not path.exists():
            raise FileNotFoundError(f"Prompt file missing: {path}")
        # Files end with a newline the protocol text itself does not have.
        texts[field_name] = path.read_text(encoding="utf-8").rstrip("\n")
    return PromptSet(**texts)


@lru_cache()
def get_prompts() -> PromptSet:
    """Get the cached packaged prompt set."""
    return load_prompts()
