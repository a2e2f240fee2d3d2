from __future__ import annotations

from pathlib import Path
from typing import Callable

from jinja2 import Environment, StrictUndefined, meta

DEFAULT_PROMPT = (
    "Extract user information from the following text and return it as JSON "
    'that matches the provided schema.\n\nText: "{content}"'
)

JINJA_SUFFIXES = {".j2", ".jinja", ".jinja2"}


def default_template(content: str) -> str:
    return DEFAULT_PROMPT.format_map({"content": content})


def load_template(path: Path) -> Callable[[str], str]:
    """Load a prompt file that embeds the test case text as ``content``.

    Jinja syntax (or a jinja suffix) selects jinja rendering, anything else is a
    ``str.format`` template. A template that never references ``content`` is
    rejected, since it would send the same prompt for every case.
    """
    source = path.read_text()
    if path.suffix.lower() in JINJA_SUFFIXES or "{{" in source or "{%" in source:
        env = Environment(autoescape=False, undefined=StrictUndefined)
        if "content" not in meta.find_undeclared_variables(env.parse(source)):
            raise ValueError(f"Template {path} does not use the 'content' variable.")
        template = env.from_string(source)
        return lambda text: template.render(content=text)

    if "{content}" not in source:
        raise ValueError(f"Template {path} does not contain a {{content}} placeholder.")
    return lambda text: source.format_map({"content": text})
