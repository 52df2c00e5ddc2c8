"""Structured, reusable prompt templates for LLM interactions.

Every text-generation call goes through a named :class:`PromptTemplate`, so
prompt wording lives in one place. The name shows up in degrade logs.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PromptTemplate:
    """A reusable prompt template with named placeholders.

    Usage::

        tpl = PromptTemplate(
            name="keywords",
            system="Return search keywords.",
            user="{prompt}",
        )
        messages = tpl.render(prompt="a cozy fantasy novel")
    """

    name: str
    system: str
    user: str
    max_tokens: int = 256
    temperature: float = 0.2

    def render(self, **kwargs: Any) -> list[dict[str, str]]:
        """Return an OpenAI-style messages list with placeholders filled."""
        return [
            {"role": "system", "content": self.system.format(**kwargs)},
            {"role": "user", "content": self.user.format(**kwargs)},
        ]


# =========================================================================
# Prompts used by the catalog search adapter and the Smart pipeline
# =========================================================================

KEYWORD_EXTRACTION_PROMPT = PromptTemplate(
    name="catalog_keywords",
    max_tokens=40,
    temperature=0.2,
    system=(
        "Convert natural language book requests into optimal Google Books API "
        "search terms. Extract genres, themes, keywords, authors. "
        "Return only search keywords."
    ),
    user="{prompt}",
)

THEME_EXTRACTION_PROMPT = PromptTemplate(
    name="prompt_themes",
    max_tokens=32,
    temperature=0.2,
    system=(
        "Extract the main themes or topics from the user prompt as a short "
        "comma-separated list. Do not include the prompt itself."
    ),
    user="{prompt}",
)

