"""
Integration tests for characters, world settings and timelines.

These records hang off a project and are linked to plot elements.
"""

import pytest

pytestmark = pytest.mark.integration


@pytest.fixture
def make_timeline(api_client):
    async def _create(project_id: str, name: str = "Main", time_type: str = "absolute", **fields) -> dict:
        response = await api_client.post(
            "/api/timelines",
            json={"projectId": project_id, "name": name, "timeType": time_type, **fields},
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create


class TestCharacters:

    @pytest.mark.asyncio
    async def test_list_ordered_by_importance(self, api_client, make_project, make_character):
        project = await make_project()
        await make_character(project["id"], "Minor", "minor", importance=2)
        await make_character(project["id"], "Lead", "protagonist", importance=9)

        response = await api_client.get(f"/api/characters/{project['id']}")

        assert [c["name"] for c in response.json()] == ["Lead", "Minor"]

    @pytest.mark.asyncio
    async def test_required_fields(self, api_client, make_project):
        project = await make_project()

        response = await api_client.post(
            "/api/characters", json={"projectId": project["id"], "name": "Nobody"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: projectId, name, role"

    @pytest.mark.asyncio
    async def test_unknown_project(self, api_client):
        response = await api_client.post(
            "/api/characters", json={"projectId": "missing", "name": "A", "role": "minor"}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_detail_lists_appearances(self, api_client, make_project, make_element, make_character):
        project = await make_project()
        chapter = await make_element(project["id"], "Ch", "chapter")
        alice = await make_character(project["id"])
        await api_client.post(
            f"/api/plot-elements/{chapter['id']}/characters",
            json={"characterId": alice["id"], "importance": 8},
        )

        detail = (await api_client.get(f"/api/characters/detail/{alice['id']}")).json()

        assert detail["plotElements"][0]["importance"] == 8
        assert detail["plotElements"][0]["plotElement"]["id"] == chapter["id"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, api_client, make_project, make_character):
        project = await make_project()
        alice = await make_character(project["id"])

        updated = await api_client.put(f"/api/characters/{alice['id']}", json={"role": "antagonist"})
        deleted = await api_client.delete(f"/api/characters/{alice['id']}")
        missing = await api_client.get(f"/api/characters/detail/{alice['id']}")

        assert updated.json()["role"] == "antagonist"
        assert updated.json()["name"] == "Alice"
        assert deleted.status_code == 204
        assert missing.status_code == 404


class TestWorldSettings:

    @pytest.mark.asyncio
    async def test_create_requires_content(self, api_client, make_project):
        project = await make_project()

        response = await api_client.post(
            "/api/world-settings",
            json={"projectId": project["id"], "category": "magic", "title": "Runes"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: projectId, category, title, content"

    @pytest.mark.asyncio
    async def test_crud(self, api_client, make_project):
        project = await make_project()
        created = await api_client.post(
            "/api/world-settings",
            json={"projectId": project["id"], "category": "magic", "title": "Runes", "content": " Old "},
        )
        assert created.status_code == 201
        setting = created.json()
        assert setting["content"] == "Old"

        listed = await api_client.get(f"/api/world-settings/{project['id']}")
        updated = await api_client.put(f"/api/world-settings/{setting['id']}", json={"title": "Glyphs"})
        deleted = await api_client.delete(f"/api/world-settings/{setting['id']}")

        assert [s["id"] for s in listed.json()] == [setting["id"]]
        assert updated.json()["title"] == "Glyphs"
        assert deleted.status_code == 204


class TestTimelines:

    @pytest.mark.asyncio
    async def test_chron_order_defaults_to_next(self, api_client, make_project, make_timeline):
        project = await make_project()
        first = await make_timeline(project["id"], "Past")
        second = await make_timeline(project["id"], "Present")
        early = await make_timeline(project["id"], "Prologue", chronOrder=0)

        listed = await api_client.get(f"/api/timelines/{project['id']}")

        assert (first["chronOrder"], second["chronOrder"]) == (1, 2)
        assert [t["id"] for t in listed.json()] == [early["id"], first["id"], second["id"]]

    @pytest.mark.asyncio
    async def test_required_fields(self, api_client, make_project):
        project = await make_project()

        response = await api_client.post(
            "/api/timelines", json={"projectId": project["id"], "name": "Main"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: projectId, name, timeType"

    @pytest.mark.asyncio
    async def test_link_lifecycle(self, api_client, make_project, make_element, make_timeline):
        project = await make_project()
        scene = await make_element(project["id"], "Sc", "scene", content="abc")
        timeline = await make_timeline(project["id"])
        url = f"/api/timelines/{timeline['id']}/plot-elements"

        linked = await api_client.post(url, json={"plotElementId": scene["id"], "relationship": "main"})
        duplicate = await api_client.post(url, json={"plotElementId": scene["id"], "relationship": "main"})

        assert linked.status_code == 201
        assert linked.json()["plotElement"]["wordCount"] == 3
        assert duplicate.status_code == 409

        changed = await api_client.put(f"{url}/{scene['id']}", json={"relationship": "flashback"})
        assert changed.json()["relationship"] == "flashback"

        element = (await api_client.get(f"/api/plot-elements/detail/{scene['id']}")).json()
        assert element["timelines"][0]["relationship"] == "flashback"
        assert element["timelines"][0]["timeline"]["name"] == "Main"

        assert (await api_client.delete(f"{url}/{scene['id']}")).status_code == 204
        assert (await api_client.delete(f"{url}/{scene['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_link_validation(self, api_client, make_project, make_element, make_timeline):
        project = await make_project()
        scene = await make_element(project["id"], "Sc", "scene")
        timeline = await make_timeline(project["id"])

        missing = await api_client.post(
            f"/api/timelines/{timeline['id']}/plot-elements", json={"plotElementId": scene["id"]}
        )
        unknown_timeline = await api_client.post(
            "/api/timelines/missing/plot-elements",
            json={"plotElementId": scene["id"], "relationship": "main"},
        )
        unknown_element = await api_client.post(
            f"/api/timelines/{timeline['id']}/plot-elements",
            json={"plotElementId": "missing", "relationship": "main"},
        )

        assert missing.status_code == 400
        assert missing.json()["error"] == "Missing required fields: plotElementId, relationship"
        assert unknown_timeline.status_code == 404
        assert unknown_element.status_code == 404

    @pytest.mark.asyncio
    async def test_detail_orders_links_by_outline(self, api_client, make_project, make_element, make_timeline):
        project = await make_project()
        late = await make_element(project["id"], "Late", "scene", order=2)
        early = await make_element(project["id"], "Early", "scene", order=1)
        timeline = await make_timeline(project["id"])
        url = f"/api/timelines/{timeline['id']}/plot-elements"
        await api_client.post(url, json={"plotElementId": late["id"], "relationship": "main"})
        await api_client.post(url, json={"plotElementId": early["id"], "relationship": "parallel"})

        detail = (await api_client.get(f"/api/timelines/detail/{timeline['id']}")).json()

        assert [link["plotElementId"] for link in detail["plotElements"]] == [early["id"], late["id"]]
