"""
Tests for result ownership and transient URL lifetimes (core/resources.py).
"""

import pytest

from mp3stego_client.core.resources import (
    ObjectURLRegistry,
    ResourceLifecycleManager,
    SlotKind,
)
from mp3stego_client.models.results import Blob


@pytest.fixture
def registry() -> ObjectURLRegistry:
    return ObjectURLRegistry()


@pytest.fixture
def manager(registry) -> ResourceLifecycleManager:
    return ResourceLifecycleManager(registry)


@pytest.mark.unit
class TestObjectURLRegistry:
    def test_urls_are_unique_and_resolvable(self, registry):
        blob = Blob(b"abc", "text/plain")
        first = registry.create_object_url(blob)
        second = registry.create_object_url(blob)
        assert first != second
        assert first.startswith(ObjectURLRegistry.SCHEME)
        assert registry.is_live(first) and registry.is_live(second)
        assert registry.live_count == 2

    def test_revoke_is_idempotent(self, registry):
        url = registry.create_object_url(Blob(b"abc"))
        registry.revoke_object_url(url)
        registry.revoke_object_url(url)
        registry.revoke_object_url("blob:mp3stego/unknown")
        assert not registry.is_live(url)
        assert registry.live_count == 0


@pytest.mark.unit
class TestResourceLifecycleManager:
    def test_replacing_a_result_revokes_the_previous_url(self, manager, registry):
        old_url = manager.set_result(SlotKind.STEGO, Blob(b"one", "audio/mpeg"))
        new_url = manager.set_result(SlotKind.STEGO, Blob(b"two", "audio/mpeg"))

        assert not registry.is_live(old_url)
        assert registry.is_live(new_url)
        assert manager.live_url_count(SlotKind.STEGO) == 1
        assert registry.live_count == 1

    def test_at_most_one_url_per_slot_across_many_results(self, manager, registry):
        for i in range(20):
            manager.set_result(SlotKind.EXTRACT, Blob(bytes([i])))
            manager.set_result(SlotKind.STEGO, Blob(bytes([i])))
            assert manager.live_url_count(SlotKind.EXTRACT) <= 1
            assert manager.live_url_count(SlotKind.STEGO) <= 1
        assert registry.live_count == 2

    def test_clear_all_leaves_no_live_urls(self, manager, registry):
        manager.set_result(SlotKind.STEGO, Blob(b"audio"))
        manager.set_result(SlotKind.EXTRACT, Blob(b"secret"))
        manager.clear_all()

        assert manager.live_url_count() == 0
        assert registry.live_count == 0
        assert manager.current(SlotKind.STEGO) is None
        assert manager.current(SlotKind.EXTRACT) is None

    def test_clear_all_on_empty_manager(self, manager):
        manager.clear_all()
        assert manager.live_url_count() == 0

    def test_clear_releases_only_one_slot(self, manager):
        manager.set_result(SlotKind.STEGO, Blob(b"audio"))
        extract_url = manager.set_result(SlotKind.EXTRACT, Blob(b"secret"))
        manager.clear(SlotKind.STEGO)

        assert manager.current(SlotKind.STEGO) is None
        assert manager.current(SlotKind.EXTRACT).url == extract_url

    def test_current_keeps_metadata(self, manager):
        manager.set_result(SlotKind.STEGO, Blob(b"audio"), metadata="song.mp3")
        held = manager.current(SlotKind.STEGO)
        assert held.metadata == "song.mp3"
        assert manager.registry.is_live(held.url)

    def test_context_manager_releases_everything(self, registry):
        with ResourceLifecycleManager(registry) as manager:
            manager.set_result(SlotKind.STEGO, Blob(b"audio"))
        assert registry.live_count == 0

    def test_events_are_reported(self, registry):
        class Recorder:
            def __init__(self):
                self.events = []

            def registered(self, slot, url, size_bytes):
                self.events.append(("registered", slot, size_bytes))

            def released(self, slot, url):
                self.events.append(("released", slot))

        recorder = Recorder()
        manager = ResourceLifecycleManager(registry, resource_logger=recorder)
        manager.set_result(SlotKind.STEGO, Blob(b"1234"))
        manager.set_result(SlotKind.STEGO, Blob(b"12"))

        assert recorder.events == [
            ("registered", "stego", 4),
            ("released", "stego"),
            ("registered", "stego", 2),
        ]
