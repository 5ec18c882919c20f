import jinja2

from quire.lib.template import PACKAGE_TEMPLATE_DIR, Template, get_template_directories


class MockTemplateEngine:
    def __init__(self, templates: dict[str, str]):
        self._env = jinja2.Environment(loader=jinja2.DictLoader(templates))

    def get_template(self, name: str):
        return self._env.get_template(name)


# --- _candidates() tests ---


def test_candidates_no_slugs():
    t = Template("public/page")
    assert t._candidates() == ["public/page.html"]


def test_candidates_one_slug():
    t = Template("public/page", "about")
    assert t._candidates() == ["public/page-about.html", "public/page.html"]


def test_candidates_skip_empty_slugs():
    # The home page slug "/" strips to ""
    t = Template("public/page", "")
    assert t._candidates() == ["public/page.html"]


# --- try_render() tests ---


def test_try_render_uses_most_specific_template_first():
    engine = MockTemplateEngine(
        {
            "public/page-about.html": "About {{ page }}",
            "public/page.html": "Generic {{ page }}",
        }
    )
    assert Template("public/page", "about").try_render(engine, page="x") == "About x"
    assert Template("public/page", "pricing").try_render(engine, page="y") == "Generic y"


def test_try_render_returns_none_when_no_template_exists():
    engine = MockTemplateEngine({})
    assert Template("public/page", "about").try_render(engine) is None


def test_try_render_merges_context():
    engine = MockTemplateEngine({"public/page.html": "{{ a }}-{{ b }}"})
    t = Template("public/page", context={"a": "1", "b": "x"})
    assert t.try_render(engine, b="2") == "1-2"


def test_project_templates_override_package_templates():
    directories = get_template_directories()
    assert directories[-1] == PACKAGE_TEMPLATE_DIR
    assert (PACKAGE_TEMPLATE_DIR / "public" / "page.html").exists()
