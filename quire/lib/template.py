import os
from pathlib import Path
from typing import Any

import jinja2
from litestar.contrib.jinja import JinjaTemplateEngine
from litestar.exceptions import TemplateNotFoundException
from litestar.template import TemplateConfig

PACKAGE_TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


class Template:
    """Template resolver with fallback support.

    Resolves templates in order of specificity:
    - Template("public/page", "about") → tries public/page-about.html, falls back to public/page.html

    Templates are searched in ./templates/ (working directory, for per-install
    overrides) before the package's own templates.
    """

    def __init__(self, template_type: str, *slugs: str, context: dict[str, Any] | None = None):
        self.template_type = template_type
        self.slugs = [s for s in slugs if s]
        self.context = context or {}

    def _candidates(self) -> list[str]:
        """Build list of template names to try, from most to least specific."""
        candidates = []
        for i in range(len(self.slugs), 0, -1):
            slug_part = "-".join(self.slugs[:i])
            candidates.append(f"{self.template_type}-{slug_part}.html")
        candidates.append(f"{self.template_type}.html")
        return candidates

    def try_render(self, template_engine: JinjaTemplateEngine, **extra_context: Any) -> str | None:
        """Render the most specific existing template, or return None if none exists."""
        context = {**self.context, **extra_context}
        for candidate in self._candidates():
            try:
                template = template_engine.get_template(candidate)
            except (jinja2.TemplateNotFound, TemplateNotFoundException):
                continue
            return template.render(**context)
        return None

    def __repr__(self) -> str:
        return f"Template({self.template_type!r}, {', '.join(repr(s) for s in self.slugs)})"


def get_template_directories() -> list[Path]:
    return [Path(os.getcwd()) / "templates", PACKAGE_TEMPLATE_DIR]


def get_template_config() -> TemplateConfig:
    return TemplateConfig(
        directory=get_template_directories(),
        engine=JinjaTemplateEngine,
    )
