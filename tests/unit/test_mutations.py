"""
Unit tests for the optimistic mutation dispatcher and its commands.

The API client is mocked; integration tests cover the real round trip.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

pytestmark = pytest.mark.unit


@pytest.fixture
def state(make_node):
    from plotline.client.tree_state import OutlineTreeState

    tree = OutlineTreeState("p1")
    tree.load([
        make_node("pt", "part", 1),
        make_node("c1", "chapter", 1, "pt"),
        make_node("c2", "chapter", 2, "pt"),
        make_node("c3", "chapter", 3, "pt"),
        make_node("s1", "scene", 1, "c1"),
    ])
    return tree


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def reload():
    return AsyncMock()


@pytest.fixture
def dispatcher(state, reload):
    from plotline.client.mutations import MutationDispatcher

    return MutationDispatcher(state, reload)


def _error(status_code=500):
    from plotline.client.api_client import PlotlineClientError

    return PlotlineClientError("Simulated failure", status_code)


class TestDispatcher:

    @pytest.mark.asyncio
    async def test_success_runs_on_success(self, state, dispatcher):
        from plotline.client.mutations import Mutation

        seen = []
        mutation = Mutation(
            name="noop",
            apply=lambda s: seen.append("apply"),
            remote=AsyncMock(return_value="done"),
            on_success=lambda s, result: seen.append(result),
        )

        result = await dispatcher.dispatch(mutation)

        assert result.ok and result.result == "done"
        assert seen == ["apply", "done"]
        assert dispatcher.errors == []

    @pytest.mark.asyncio
    async def test_undo_policy(self, dispatcher, reload):
        from plotline.client.mutations import FailurePolicy, Mutation

        undone = []
        mutation = Mutation(
            name="edit",
            apply=lambda s: None,
            remote=AsyncMock(side_effect=_error(400)),
            undo=lambda s: undone.append(True),
            policy=FailurePolicy.UNDO,
        )

        result = await dispatcher.dispatch(mutation)

        assert not result.ok
        assert result.rolled_back and not result.resynced
        assert undone == [True]
        reload.assert_not_awaited()
        assert dispatcher.last_error == "edit: Simulated failure"

    @pytest.mark.asyncio
    async def test_not_found_forces_resync(self, dispatcher, reload):
        from plotline.client.mutations import FailurePolicy, Mutation

        undone = []
        mutation = Mutation(
            name="edit",
            apply=lambda s: None,
            remote=AsyncMock(side_effect=_error(404)),
            undo=lambda s: undone.append(True),
            policy=FailurePolicy.UNDO,
        )

        result = await dispatcher.dispatch(mutation)

        assert result.resynced
        assert undone == []
        reload.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_resync_falls_back_to_undo(self, dispatcher, reload):
        from plotline.client.mutations import Mutation

        reload.side_effect = _error(503)
        undone = []
        mutation = Mutation(
            name="edit",
            apply=lambda s: None,
            remote=AsyncMock(side_effect=_error(404)),
            undo=lambda s: undone.append(True),
        )

        result = await dispatcher.dispatch(mutation)

        assert result.rolled_back
        assert undone == [True]
        assert len(dispatcher.errors) == 2


class TestCreateCommand:

    @pytest.mark.asyncio
    async def test_temp_node_replaced_on_success(self, state, dispatcher, client, make_node):
        from plotline.client import mutations
        from plotline.models.plot_element import PlotElementCreate

        client.create_plot_element = AsyncMock(return_value=make_node("s2", "scene", 2, "c1"))
        payload = PlotElementCreate(project_id="p1", title=" New scene ", type="scene", parent_id="c1")
        mutation = mutations.create_element(client, payload)

        mutation.apply(state)
        temp = [node for node in state.children_of("c1") if mutations.is_temporary(node.id)]
        assert len(temp) == 1
        assert temp[0].order == 2
        assert temp[0].title == "New scene"
        assert temp[0].children == []
        assert "c1" in state.expanded

        state.remove([temp[0].id])
        result = await dispatcher.dispatch(mutations.create_element(client, payload))

        assert result.ok
        assert [node.id for node in state.children_of("c1")] == ["s1", "s2"]
        assert not any(mutations.is_temporary(node.id) for node in state.nodes())

    @pytest.mark.asyncio
    async def test_server_node_added_when_temp_removed_in_flight(self, state, dispatcher, client, make_node):
        from plotline.client import mutations
        from plotline.models.plot_element import PlotElementCreate

        async def create(payload):
            state.remove([node.id for node in state.nodes() if mutations.is_temporary(node.id)])
            return make_node("s2", "scene", 2, "c1")

        client.create_plot_element = AsyncMock(side_effect=create)

        result = await dispatcher.dispatch(mutations.create_element(
            client, PlotElementCreate(project_id="p1", title="Late", type="scene", parent_id="c1")
        ))

        assert result.ok
        assert [node.id for node in state.children_of("c1")] == ["s1", "s2"]

    @pytest.mark.asyncio
    async def test_server_node_dropped_when_parent_removed_in_flight(self, state, dispatcher, client, make_node):
        from plotline.client import mutations
        from plotline.models.plot_element import PlotElementCreate

        async def create(payload):
            state.remove(["c1", *state.descendants("c1")])
            return make_node("s2", "scene", 2, "c1")

        client.create_plot_element = AsyncMock(side_effect=create)

        result = await dispatcher.dispatch(mutations.create_element(
            client, PlotElementCreate(project_id="p1", title="Late", type="scene", parent_id="c1")
        ))

        assert result.ok
        assert "s2" not in state
        assert "c1" not in state

    @pytest.mark.asyncio
    async def test_failure_leaves_no_temp_node(self, state, dispatcher, client):
        from plotline.client import mutations
        from plotline.models.plot_element import PlotElementCreate

        client.create_plot_element = AsyncMock(side_effect=_error(500))
        before = state.snapshot()

        result = await dispatcher.dispatch(mutations.create_element(
            client, PlotElementCreate(project_id="p1", title="X", type="scene", parent_id="c1")
        ))

        assert result.rolled_back
        assert not any(mutations.is_temporary(node.id) for node in state.nodes())
        assert state.nodes() == list(before.nodes.values())


class TestDeleteCommand:

    @pytest.mark.asyncio
    async def test_subtree_removed_and_cascade_requested(self, state, dispatcher, client):
        from plotline.client import mutations

        client.delete_plot_element = AsyncMock(return_value=None)

        result = await dispatcher.dispatch(mutations.delete_element(client, "c1"))

        assert result.ok
        assert "c1" not in state and "s1" not in state
        client.delete_plot_element.assert_awaited_once_with("c1", cascade=True)

    @pytest.mark.asyncio
    async def test_leaf_delete_does_not_cascade(self, dispatcher, client):
        from plotline.client import mutations

        client.delete_plot_element = AsyncMock(return_value=None)

        await dispatcher.dispatch(mutations.delete_element(client, "c2"))

        client.delete_plot_element.assert_awaited_once_with("c2", cascade=False)

    @pytest.mark.asyncio
    async def test_failure_restores_snapshot(self, state, dispatcher, client):
        from plotline.client import mutations

        client.delete_plot_element = AsyncMock(side_effect=_error(400))
        state.expanded.add("c1")
        before = state.nodes()

        result = await dispatcher.dispatch(mutations.delete_element(client, "pt"))

        assert result.rolled_back
        assert state.nodes() == before
        assert "c1" in state.expanded


class TestReorderCommand:

    @pytest.mark.asyncio
    async def test_only_changed_orders_sent(self, state, dispatcher, client):
        from plotline.client import mutations
        from plotline.client.drag import resolve_drag

        client.update_plot_element = AsyncMock(return_value=None)
        plan = resolve_drag(state, "c2", "c1")

        result = await dispatcher.dispatch(mutations.reorder_siblings(client, plan))

        assert result.ok
        assert [node.id for node in state.children_of("pt")] == ["c2", "c1", "c3"]
        assert [node.order for node in state.children_of("pt")] == [1, 2, 3]
        sent = {call.args[0]: call.args[1].order for call in client.update_plot_element.await_args_list}
        assert sent == {"c2": 1, "c1": 2}

    @pytest.mark.asyncio
    async def test_any_failure_resyncs(self, state, dispatcher, client, reload):
        from plotline.client import mutations
        from plotline.client.drag import resolve_drag

        async def update(node_id, payload):
            if node_id == "c1":
                raise _error(500)

        client.update_plot_element = AsyncMock(side_effect=update)
        plan = resolve_drag(state, "c3", "c1")

        result = await dispatcher.dispatch(mutations.reorder_siblings(client, plan))

        assert result.resynced
        assert client.update_plot_element.await_count == 3
        reload.assert_awaited_once()


class TestUpdateCommand:

    @pytest.mark.asyncio
    async def test_live_word_count_then_server_value(self, state, dispatcher, client, make_node):
        from plotline.client import mutations
        from plotline.models.plot_element import PlotElementUpdate

        server_node = make_node("s1", "scene", 1, "c1", content="a b c", word_count=5)
        captured = {}

        async def update(node_id, payload):
            captured["word_count"] = state.get("s1").word_count
            return server_node

        client.update_plot_element = AsyncMock(side_effect=update)

        result = await dispatcher.dispatch(
            mutations.update_element(client, "s1", PlotElementUpdate(content="a b c"))
        )

        assert result.ok
        assert captured["word_count"] == 3
        assert state.get("s1").word_count == 5

    @pytest.mark.asyncio
    async def test_failure_restores_previous_node(self, state, dispatcher, client):
        from plotline.client import mutations
        from plotline.models.plot_element import PlotElementUpdate

        client.update_plot_element = AsyncMock(side_effect=_error(400))
        before = state.get("c2")

        result = await dispatcher.dispatch(
            mutations.update_element(client, "c2", PlotElementUpdate(title="Renamed", parent_id="c1"))
        )

        assert result.rolled_back
        assert state.get("c2") == before
        assert [node.id for node in state.children_of("pt")] == ["c1", "c2", "c3"]
