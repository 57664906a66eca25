"""Jinja2 template utilities for LLM prompts."""

from functools import lru_cache
from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape


def create_jinja_env() -> Environment:
    """Create Jinja2 environment for LLM templates.

    Creates a configured Jinja2 environment that loads templates from
    the parley.infrastructure.llm.templates package.

    Returns:
        Configured Jinja2 environment.
    """
    return Environment(
        loader=PackageLoader("parley.infrastructure.llm", "templates"),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
    )


@lru_cache(maxsize=1)
def _default_env() -> Environment:
    return create_jinja_env()


def render_prompt(name: str, **context: Any) -> str:
    """Render a prompt template.

    Args:
        name: Template file name without the ``.j2`` suffix.
        **context: Template variables.

    Returns:
        Rendered prompt with surrounding whitespace removed.
    """
    template = _default_env().get_template(f"{name}.j2")
    return template.render(**context).strip()
