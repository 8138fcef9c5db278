"""Default Markdown renderer for notebooks.

Each highlight and review line ends with a ``^blockId`` anchor; daily notes
embed those blocks with ``![[file#^blockId]]``.
"""

from __future__ import annotations

from itertools import groupby

from jinja2 import BaseLoader, Environment

from .models import Notebook

NOTEBOOK_TEMPLATE = """\
# {{ metadata.title }}

{% if metadata.author %}
**Author:** {{ metadata.author }}

{% endif %}
{% if metadata.cover %}
![cover]({{ metadata.cover }})

{% endif %}
{% if chapters %}
## Highlights

{% for chapter, highlights in chapters %}
{% if chapter %}
### {{ chapter }}

{% endif %}
{% for highlight in highlights %}
- {{ highlight.text | oneline }} ^{{ highlight.block_id }}
{% if highlight.note %}
    - 💭 {{ highlight.note | oneline }}
{% endif %}
{% endfor %}

{% endfor %}
{% endif %}
{% if reviews %}
## Reviews

{% for review in reviews %}
{% if review.abstract %}
> {{ review.abstract | oneline }}

{% endif %}
{{ review.content | oneline }} ^{{ review.block_id }}

{% endfor %}
{% endif %}
"""


def _oneline(value: str) -> str:
    """Collapse a multi-line annotation so its block anchor stays on one line."""
    return " ".join(line.strip() for line in str(value).splitlines() if line.strip())


def _create_environment() -> Environment:
    env = Environment(
        loader=BaseLoader(),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["oneline"] = _oneline
    return env


_env = _create_environment()
_template = _env.from_string(NOTEBOOK_TEMPLATE)


def render(notebook: Notebook) -> str:
    """Render a notebook's annotations as a Markdown body."""
    highlights = sorted(notebook.highlights, key=lambda h: h.created)
    # Chapters keep the order of their first highlight
    order: dict[str, int] = {}
    for highlight in highlights:
        order.setdefault(highlight.chapter, len(order))
    by_chapter = sorted(highlights, key=lambda h: order[h.chapter])
    chapters = [(chapter, list(items)) for chapter, items in groupby(by_chapter, key=lambda h: h.chapter)]

    return _template.render(
        metadata=notebook.metadata,
        chapters=chapters,
        reviews=sorted(notebook.reviews, key=lambda r: r.created),
    )
