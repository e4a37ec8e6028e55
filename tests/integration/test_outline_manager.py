"""
Integration tests for OutlineManager against the in-process API.

Failures are injected at the transport so the server never sees the
failed request.
"""

import pytest
import pytest_asyncio

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def outline(plotline_client):
    """A project with the default book/part/chapter chain, loaded into a manager."""
    from plotline.client import OutlineManager
    from plotline.models.project import ProjectCreate

    project = await plotline_client.create_project(
        ProjectCreate(title="Managed", create_default_structure=True)
    )
    manager = OutlineManager(plotline_client, project.id)
    await manager.load()
    return manager


def _node(manager, element_type):
    return next(node for node in manager.state.nodes() if node.type.value == element_type)


async def _server_orders(client, project_id):
    return {element.id: element.order for element in await client.list_plot_elements(project_id)}


class TestLoad:

    @pytest.mark.asyncio
    async def test_load_uses_project_settings(self, outline):
        assert len(outline.state) == 3
        assert outline.view_mode.value == "simplified"

        roots = outline.hierarchy()
        assert [node.type.value for node in roots] == ["chapter"]
        assert roots[0].label == "Chapter"

        complete = outline.hierarchy("complete")
        assert [node.type.value for node in complete] == ["book"]


class TestCreate:

    @pytest.mark.asyncio
    async def test_created_node_gets_server_id(self, outline, plotline_client):
        from plotline.client.mutations import is_temporary
        from plotline.models.plot_element import PlotElementCreate

        chapter = _node(outline, "chapter")

        result = await outline.create(
            PlotElementCreate(title="Opening", type="scene", parent_id=chapter.id, content="abc")
        )

        assert result.ok
        assert not any(is_temporary(node.id) for node in outline.state.nodes())
        created = outline.state.get(result.result.id)
        assert created.order == 1
        assert created.word_count == 3
        assert chapter.id in outline.state.expanded
        assert (await plotline_client.get_plot_element(created.id)).title == "Opening"

    @pytest.mark.asyncio
    async def test_failed_create_rolls_back(self, outline, plotline_client, failing_transport):
        from plotline.client.mutations import is_temporary
        from plotline.models.plot_element import PlotElementCreate

        failing_transport.fail_when = lambda request: request.method == "POST"
        before = [node.id for node in outline.state.nodes()]

        result = await outline.create(PlotElementCreate(title="Lost", type="chapter"))

        assert result.rolled_back
        assert [node.id for node in outline.state.nodes()] == before
        assert not any(is_temporary(node.id) for node in outline.state.nodes())
        assert outline.errors == ["create: Simulated failure"]

        failing_transport.fail_when = None
        assert len(await plotline_client.list_plot_elements(outline.project_id)) == 3

    @pytest.mark.asyncio
    async def test_auto_created_child_is_loaded(self, outline):
        from plotline.models.plot_element import PlotElementCreate

        result = await outline.create(
            PlotElementCreate(title="Second Book", type="book", auto_create_children=True)
        )

        assert result.ok
        children = outline.state.children_of(result.result.id)
        assert [child.type.value for child in children] == ["part"]
        assert children[0].title == "Default Title"

    @pytest.mark.asyncio
    async def test_missing_fields_never_sent(self, outline, failing_transport):
        from plotline.models.plot_element import PlotElementCreate
        from plotline.services.errors import ValidationError

        failing_transport.fail_when = lambda request: request.method == "POST"

        with pytest.raises(ValidationError, match="Missing required fields: projectId, title, type"):
            await outline.create(PlotElementCreate(title="  ", type="scene"))

        assert failing_transport.failed == []
        assert len(outline.state) == 3


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_subtree_cascades(self, outline, plotline_client):
        part = _node(outline, "part")

        result = await outline.delete(part.id)

        assert result.ok
        assert [node.type.value for node in outline.state.nodes()] == ["book"]
        assert list(await _server_orders(plotline_client, outline.project_id)) == [
            _node(outline, "book").id
        ]

    @pytest.mark.asyncio
    async def test_failed_delete_restores(self, outline, failing_transport):
        part = _node(outline, "part")
        outline.state.expanded.add(part.id)
        failing_transport.fail_when = lambda request: request.method == "DELETE"
        before = outline.state.nodes()

        result = await outline.delete(part.id)

        assert result.rolled_back
        assert outline.state.nodes() == before
        assert part.id in outline.state.expanded


class TestReorder:

    @pytest_asyncio.fixture
    async def chapters(self, outline):
        from plotline.models.plot_element import PlotElementCreate

        part = _node(outline, "part")
        for title in ("Second", "Third"):
            await outline.create(PlotElementCreate(title=title, type="chapter", parent_id=part.id))
        return [node.id for node in outline.state.children_of(part.id)]

    @pytest.mark.asyncio
    async def test_drop_ignored_outside_drag_mode(self, outline, chapters):
        assert await outline.drop(chapters[2], chapters[0]) is None

    @pytest.mark.asyncio
    async def test_drop_persists_changed_orders(self, outline, plotline_client, failing_transport, chapters):
        sent = []

        def record(request):
            if request.method == "PUT":
                sent.append(request.url.path.rsplit("/", 1)[-1])
            return False

        failing_transport.fail_when = record
        outline.toggle_drag_mode()

        result = await outline.drop(chapters[1], chapters[0])

        assert result.ok
        assert sorted(sent) == sorted(chapters[:2])
        orders = await _server_orders(plotline_client, outline.project_id)
        assert [orders[chapter_id] for chapter_id in chapters] == [2, 1, 3]
        part = _node(outline, "part")
        assert [node.id for node in outline.state.children_of(part.id)] == [
            chapters[1], chapters[0], chapters[2]
        ]

    @pytest.mark.asyncio
    async def test_partial_failure_resyncs(self, outline, plotline_client, failing_transport, chapters):
        failing_id = chapters[0]
        failing_transport.fail_when = (
            lambda request: request.method == "PUT" and request.url.path.endswith(failing_id)
        )
        outline.toggle_drag_mode()

        result = await outline.drop(chapters[2], chapters[0])

        assert result.resynced
        failing_transport.fail_when = None
        server = await _server_orders(plotline_client, outline.project_id)
        assert {node.id: node.order for node in outline.state.nodes()} == server
        assert server[failing_id] == 1


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update_uses_server_word_count(self, outline):
        from plotline.models.plot_element import PlotElementUpdate

        chapter = _node(outline, "chapter")

        result = await outline.update(chapter.id, PlotElementUpdate(content="ab cd", status="drafted"))

        assert result.ok
        assert outline.state.get(chapter.id).word_count == 5
        assert outline.state.get(chapter.id).status.value == "drafted"

    @pytest.mark.asyncio
    async def test_stale_node_resyncs(self, outline, api_client):
        from plotline.models.plot_element import PlotElementUpdate

        chapter = _node(outline, "chapter")
        await api_client.delete(f"/api/plot-elements/{chapter.id}")

        result = await outline.update(chapter.id, PlotElementUpdate(title="Gone"))

        assert result.resynced
        assert chapter.id not in outline.state
        assert len(outline.state) == 2
