from datetime import datetime
from pathlib import Path

from fastapi.templating import Jinja2Templates
from markupsafe import Markup


TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["now"] = datetime.utcnow


def render_fragment(template_name: str, **context) -> Markup:
    """Render a template to an HTML string outside of a page response."""
    template = templates.get_template(template_name)
    return Markup(template.render(**context))
