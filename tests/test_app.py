"""End-to-end tests through the dispatcher: editor API and public site."""

from uuid import uuid4

import pytest
from litestar.testing import TestClient

from quire.asgi import create_app
from quire.config import DatabaseConfig, PlatformConfig, Settings
from quire.lib.hooks import PUBLIC_RENDER_CONTEXT, hooks

API_HOST = "testserver.local"


@pytest.fixture
def workspace_headers():
    return {"X-Workspace-ID": str(uuid4()), "X-User-ID": "editor-1"}


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        db=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path}/quire.db", create_all=True),
        platform=PlatformConfig(domain="quire.site", app_hosts=[API_HOST]),
    )
    with TestClient(app=create_app(settings)) as client:
        yield client


def _create_site(client, headers, slug="acme"):
    response = client.post("/api/sites", json={"name": slug.title(), "slug": slug}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _create_page(client, headers, site_id, slug="home", title="Home", content=None):
    body = {"siteId": site_id, "slug": slug, "title": title}
    if content is not None:
        body["content"] = content
    response = client.post("/api/pages", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestEditorApi:
    """Test the editor API surface."""

    def test_workspace_header_required(self, client):
        response = client.get("/api/pages")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert response.headers["cache-control"] == "no-store"

    def test_responses_are_not_cached(self, client, workspace_headers):
        response = client.get("/api/sites", headers=workspace_headers)

        assert response.status_code == 200
        assert response.json() == []
        assert response.headers["cache-control"] == "no-store"

    def test_page_lifecycle(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        created = _create_page(client, workspace_headers, site["id"], content={"body": "v1"})
        page_id = created["unit"]["id"]

        assert created["unit"]["status"] == "DRAFT"
        assert created["revision"]["version"] == 1
        assert created["revision"]["authorId"] == "editor-1"

        saved = client.patch(
            f"/api/pages/{page_id}",
            json={"title": "Welcome", "content": {"body": "v2"}, "note": "Reword"},
            headers=workspace_headers,
        ).json()
        assert saved["unit"]["title"] == "Welcome"
        assert saved["revision"]["note"] == "Reword"

        published = client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)
        assert published.status_code == 200
        assert published.json()["unit"]["status"] == "PUBLISHED"
        assert published.json()["revision"]["content"] == {"body": "v2"}

        revisions = client.get(f"/api/pages/{page_id}/revisions", headers=workspace_headers).json()
        assert [r["version"] for r in revisions] == [3, 2, 1]

        rolled_back = client.post(
            f"/api/pages/{page_id}/rollback/{revisions[-1]['id']}", headers=workspace_headers
        ).json()
        assert rolled_back["revision"]["content"] == {"body": "v1"}
        assert rolled_back["revision"]["version"] == 4

        fetched = client.get(f"/api/pages/{page_id}", headers=workspace_headers).json()
        assert fetched["revision"]["version"] == 4

        assert client.delete(f"/api/pages/{page_id}", headers=workspace_headers).status_code == 204
        assert client.get(f"/api/pages/{page_id}", headers=workspace_headers).status_code == 404

    def test_pages_are_workspace_scoped(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        page_id = _create_page(client, workspace_headers, site["id"])["unit"]["id"]

        response = client.get(f"/api/pages/{page_id}", headers={"X-Workspace-ID": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_duplicate_slug_conflicts(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        _create_page(client, workspace_headers, site["id"])

        response = client.post(
            "/api/pages", json={"siteId": site["id"], "slug": "home", "title": "Again"}, headers=workspace_headers
        )

        assert response.status_code == 409

    def test_invalid_body_is_validation_error(self, client, workspace_headers):
        response = client.post("/api/pages", json={"slug": "x"}, headers=workspace_headers)

        assert response.status_code == 400
        assert response.json()["error"]["details"]

    def test_collections_and_items(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        collection = client.post(
            "/api/collections",
            json={"siteId": site["id"], "name": "Team", "slug": "team", "schema": [{"name": "role"}]},
            headers=workspace_headers,
        ).json()
        assert collection["schema"] == [{"name": "role"}]

        item = client.post(
            "/api/collection-items",
            json={"collectionId": collection["id"], "content": {"role": "CEO"}},
            headers=workspace_headers,
        ).json()
        items = client.get(
            f"/api/collection-items?collection={collection['id']}", headers=workspace_headers
        ).json()
        assert [i["id"] for i in items] == [item["unit"]["id"]]

        fetched = client.get(f"/api/collections/{collection['id']}", headers=workspace_headers).json()
        assert fetched["itemCount"] == 1

        response = client.delete(f"/api/collections/{collection['id']}", headers=workspace_headers)
        assert response.status_code == 409
        assert response.json()["error"]["details"] == {"itemCount": 1}

    def test_menu_reorder(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        menu = client.post(
            "/api/menus", json={"siteId": site["id"], "name": "Main", "slot": "header"}, headers=workspace_headers
        ).json()
        ids = {}
        for label in ("A", "B", "C"):
            item = client.post(
                f"/api/menus/{menu['id']}/items", json={"label": label, "target": "/"}, headers=workspace_headers
            ).json()
            ids[label] = item["id"]

        response = client.put(
            f"/api/menus/{menu['id']}/reorder",
            json=[
                {"id": ids["A"], "parentId": None, "sortOrder": 0},
                {"id": ids["B"], "parentId": ids["A"], "sortOrder": 0},
                {"id": ids["C"], "parentId": None, "sortOrder": 1},
            ],
            headers=workspace_headers,
        )
        assert response.status_code == 200
        assert [i["label"] for i in response.json()] == ["A", "B", "C"]

        tree = client.get(f"/api/menus/{menu['id']}", headers=workspace_headers).json()["items"]
        assert [n["label"] for n in tree] == ["A", "C"]
        assert [n["label"] for n in tree[0]["children"]] == ["B"]

        cycle = client.put(
            f"/api/menus/{menu['id']}/reorder",
            json=[{"id": ids["A"], "parentId": ids["B"], "sortOrder": 0}],
            headers=workspace_headers,
        )
        assert cycle.status_code == 400


class TestPublicSite:
    """Test the public render path on tenant hostnames."""

    def test_publish_then_render_home(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        page_id = _create_page(client, workspace_headers, site["id"], content={"body": "v1"})["unit"]["id"]
        client.patch(f"/api/pages/{page_id}", json={"content": {"body": "v2"}}, headers=workspace_headers)
        client.patch(f"/api/pages/{page_id}", json={"content": {"body": "v3"}}, headers=workspace_headers)
        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)

        response = client.get("/", headers={"Host": "acme.quire.site"})

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == {"body": "v3"}
        assert body["page"]["status"] == "PUBLISHED"
        assert body["site"]["slug"] == "acme"
        assert response.headers["cache-control"].startswith("public, max-age=")

    def test_draft_saved_after_publish_stays_private(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        page_id = _create_page(client, workspace_headers, site["id"], content={"body": "live"})["unit"]["id"]
        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)
        client.patch(f"/api/pages/{page_id}", json={"content": {"body": "draft"}}, headers=workspace_headers)

        response = client.get("/home", headers={"Host": "acme.quire.site"})

        assert response.json()["content"] == {"body": "live"}

    def test_published_content_outlives_revision_history(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        page_id = _create_page(client, workspace_headers, site["id"], content={"body": "live"})["unit"]["id"]
        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)
        for n in range(1, 12):
            client.patch(
                f"/api/pages/{page_id}", json={"content": {"body": f"draft-{n}"}}, headers=workspace_headers
            )
        revisions = client.get(f"/api/pages/{page_id}/revisions", headers=workspace_headers).json()
        assert not any(r["isPublish"] for r in revisions)

        response = client.get("/home", headers={"Host": "acme.quire.site"})

        assert response.status_code == 200
        assert response.json()["content"] == {"body": "live"}

    def test_rollback_is_not_public_until_published(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        page = _create_page(client, workspace_headers, site["id"], content={"body": "first"})
        page_id = page["unit"]["id"]
        client.patch(f"/api/pages/{page_id}", json={"content": {"body": "second"}}, headers=workspace_headers)
        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)

        client.post(f"/api/pages/{page_id}/rollback/{page['revision']['id']}", headers=workspace_headers)
        assert client.get("/home", headers={"Host": "acme.quire.site"}).json()["content"] == {"body": "second"}

        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)
        assert client.get("/home", headers={"Host": "acme.quire.site"}).json()["content"] == {"body": "first"}

    def test_render_context_filter_applies(self, client, workspace_headers, clean_hooks):
        hooks.add_filter(PUBLIC_RENDER_CONTEXT, lambda context, request: {**context, "content": {"body": "filtered"}})
        site = _create_site(client, workspace_headers)
        page_id = _create_page(client, workspace_headers, site["id"])["unit"]["id"]
        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)

        response = client.get("/", headers={"Host": "acme.quire.site"})

        assert response.status_code == 200
        assert response.json()["content"] == {"body": "filtered"}

    def test_draft_pages_are_not_served(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        _create_page(client, workspace_headers, site["id"], slug="about", title="About")

        response = client.get("/about", headers={"Host": "acme.quire.site"})

        assert response.status_code == 404
        assert response.headers["cache-control"] == "no-store"

    def test_renders_html_for_browsers(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        page_id = _create_page(
            client,
            workspace_headers,
            site["id"],
            slug="about",
            title="About Acme",
            content={"blocks": [{"text": "We make anvils."}]},
        )["unit"]["id"]
        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)

        response = client.get("/about", headers={"Host": "acme.quire.site", "Accept": "text/html"})

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "We make anvils." in response.text
        assert "About Acme" in response.text

    def test_custom_domain_serves_site(self, client, workspace_headers):
        site = _create_site(client, workspace_headers)
        client.post(f"/api/sites/{site['id']}/domains", json={"hostname": "www.acme.com"}, headers=workspace_headers)
        page_id = _create_page(client, workspace_headers, site["id"])["unit"]["id"]
        client.post(f"/api/pages/{page_id}/publish", headers=workspace_headers)

        response = client.get("/home", headers={"Host": "www.acme.com"})

        assert response.status_code == 200
        assert response.json()["site"]["id"] == site["id"]

    def test_unknown_host_falls_through_to_api(self, client):
        response = client.get("/", headers={"Host": "nobody.quire.site"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_404"
