import asyncio

from conftest import FakeFetchService, FakePersistence, make_record
from shipdesk.appctx import build_context
from shipdesk.application.services.subscription_manager import SubscriptionState
from shipdesk.errors.handler import DiagnosticsHandler
from shipdesk.infrastructure import InMemoryStreamingTransport
from shipdesk.settings import SettingsManager


def test_build_context_uses_settings(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(
        '{"stream": {"channel": "/data/Custom__ChangeEvent", "replay_from": -2},'
        ' "statuses": {"assigned": "Queued", "in_review": "Checking"}}',
        encoding="utf-8",
    )
    settings = SettingsManager(path)
    settings.load()
    fetch = FakeFetchService([make_record("a01000000000000001", "Queued")])
    persistence = FakePersistence()

    context = build_context(
        fetch_service=fetch,
        persistence=persistence,
        transport=InMemoryStreamingTransport(),
        settings=settings,
    )

    assert context.subscription.channel == "/data/Custom__ChangeEvent"
    assert context.subscription.state is SubscriptionState.UNSUBSCRIBED
    assert isinstance(context.diagnostics, DiagnosticsHandler)
    assert context.controller.cache is context.cache


def test_configured_statuses_drive_row_actions(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{"statuses": {"assigned": "Queued", "in_review": "Checking"}}', encoding="utf-8")
    settings = SettingsManager(path)
    settings.load()
    persistence = FakePersistence()
    context = build_context(
        fetch_service=FakeFetchService([make_record("a01000000000000001", "Queued")]),
        persistence=persistence,
        transport=InMemoryStreamingTransport(),
        settings=settings,
    )

    async def scenario():
        await context.viewmodel.attach()
        await context.viewmodel.handle_row_action("view", "a01000000000000001")
        await context.controller.wait_idle()
        await context.viewmodel.detach()

    asyncio.run(scenario())

    assert persistence.calls == [("a01000000000000001", {"Status__c": "Checking"})]
    assert context.navigation.current_target.record_id == "a01000000000000001"
