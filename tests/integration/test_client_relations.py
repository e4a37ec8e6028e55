"""
Integration tests for the relation calls on PlotlineClient.

Covers character, world setting and timeline links end to end, including
server errors surfacing as PlotlineClientError status codes.
"""

import pytest
import pytest_asyncio

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def chapter(plotline_client):
    from plotline.models.plot_element import PlotElementCreate
    from plotline.models.project import ProjectCreate

    project = await plotline_client.create_project(ProjectCreate(title="Linked"))
    return await plotline_client.create_plot_element(
        PlotElementCreate(project_id=project.id, title="Ch1", type="chapter")
    )


@pytest_asyncio.fixture
async def setting(api_client, chapter):
    response = await api_client.post(
        "/api/world-settings",
        json={"projectId": chapter.project_id, "category": "magic", "title": "Runes", "content": "Carved"},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def timeline(api_client, chapter):
    response = await api_client.post(
        "/api/timelines",
        json={"projectId": chapter.project_id, "name": "Main", "timeType": "absolute"},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestCharacterLinks:

    @pytest.mark.asyncio
    async def test_unlink_character(self, plotline_client, api_client, chapter):
        from plotline.client import PlotlineClientError
        from plotline.models.plot_element import CharacterLinkCreate

        alice = (await api_client.post(
            "/api/characters",
            json={"projectId": chapter.project_id, "name": "Alice", "role": "protagonist"},
        )).json()
        await plotline_client.link_character(chapter.id, CharacterLinkCreate(character_id=alice["id"]))

        await plotline_client.unlink_character(chapter.id, alice["id"])

        assert (await plotline_client.get_plot_element(chapter.id)).characters == []
        with pytest.raises(PlotlineClientError) as exc_info:
            await plotline_client.unlink_character(chapter.id, alice["id"])
        assert exc_info.value.status_code == 404


class TestSettingLinks:

    @pytest.mark.asyncio
    async def test_link_setting(self, plotline_client, chapter, setting):
        from plotline.models.plot_element import SettingLinkCreate

        link = await plotline_client.link_setting(
            chapter.id, SettingLinkCreate(setting_id=setting["id"], relevance="backdrop")
        )

        assert link.setting_id == setting["id"]
        assert link.relevance == "backdrop"
        assert link.setting.title == "Runes"
        detail = await plotline_client.get_plot_element(chapter.id)
        assert [row.setting_id for row in detail.settings] == [setting["id"]]

    @pytest.mark.asyncio
    async def test_duplicate_setting_link(self, plotline_client, chapter, setting):
        from plotline.client import PlotlineClientError
        from plotline.models.plot_element import SettingLinkCreate

        await plotline_client.link_setting(chapter.id, SettingLinkCreate(setting_id=setting["id"]))

        with pytest.raises(PlotlineClientError) as exc_info:
            await plotline_client.link_setting(chapter.id, SettingLinkCreate(setting_id=setting["id"]))

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_unlink_setting(self, plotline_client, chapter, setting):
        from plotline.client import PlotlineClientError
        from plotline.models.plot_element import SettingLinkCreate

        await plotline_client.link_setting(chapter.id, SettingLinkCreate(setting_id=setting["id"]))

        await plotline_client.unlink_setting(chapter.id, setting["id"])

        assert (await plotline_client.get_plot_element(chapter.id)).settings == []
        with pytest.raises(PlotlineClientError) as exc_info:
            await plotline_client.unlink_setting(chapter.id, setting["id"])
        assert exc_info.value.status_code == 404


class TestTimelineLinks:

    @pytest.mark.asyncio
    async def test_link_update_unlink(self, plotline_client, chapter, timeline):
        from plotline.client import PlotlineClientError
        from plotline.models.timeline import TimelineLinkCreate, TimelineLinkUpdate

        link = await plotline_client.link_timeline(
            timeline["id"], TimelineLinkCreate(plot_element_id=chapter.id, relationship="main")
        )
        assert link.timeline_id == timeline["id"]
        assert link.relationship.value == "main"
        assert link.plot_element.title == "Ch1"

        updated = await plotline_client.update_timeline_relation(
            timeline["id"], chapter.id, TimelineLinkUpdate(relationship="flashback", description="Years earlier")
        )
        assert updated.relationship.value == "flashback"
        assert updated.description == "Years earlier"

        await plotline_client.unlink_timeline(timeline["id"], chapter.id)

        with pytest.raises(PlotlineClientError) as exc_info:
            await plotline_client.unlink_timeline(timeline["id"], chapter.id)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_duplicate_timeline_link(self, plotline_client, chapter, timeline):
        from plotline.client import PlotlineClientError
        from plotline.models.timeline import TimelineLinkCreate

        payload = TimelineLinkCreate(plot_element_id=chapter.id, relationship="main")
        await plotline_client.link_timeline(timeline["id"], payload)

        with pytest.raises(PlotlineClientError) as exc_info:
            await plotline_client.link_timeline(timeline["id"], payload)

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_update_missing_relation(self, plotline_client, chapter, timeline):
        from plotline.client import PlotlineClientError
        from plotline.models.timeline import TimelineLinkUpdate

        with pytest.raises(PlotlineClientError) as exc_info:
            await plotline_client.update_timeline_relation(
                timeline["id"], chapter.id, TimelineLinkUpdate(description="Nowhere")
            )

        assert exc_info.value.status_code == 404
