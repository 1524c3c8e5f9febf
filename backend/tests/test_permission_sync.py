"""Tests for blob-store access reconciliation."""
from attachvault.errors import SyncWarning
from attachvault.services.permission_sync import DISABLE, ENABLE
from tests.fakes import PREVIEW_SIZE


def _paths(attachment, *suffixes):
    return [f"/attachments/{attachment.id}-{attachment.name}{s}" for s in suffixes]


class TestBlobPaths:
    async def test_raster_image_paths(self, services, make_attachment):
        attachment = await make_attachment(crops=[{"top": 5, "left": 10, "width": 200, "height": 100}])
        paths = [p for _, p in services.synchronizer.blob_paths(attachment)]
        assert paths == _paths(
            attachment,
            ".full.jpg", ".one-half.jpg", ".one-sixth.jpg", ".jpg",
            ".10.5.200.100.full.jpg", ".10.5.200.100.one-half.jpg",
            ".10.5.200.100.one-sixth.jpg", ".10.5.200.100.jpg",
        )

    async def test_non_raster_has_original_only(self, services, make_attachment):
        attachment = await make_attachment(group="office", extension="pdf")
        assert list(services.synchronizer.blob_paths(attachment)) == [
            ("original", f"/attachments/{attachment.id}-{attachment.name}.pdf")
        ]


class TestReconcile:
    async def test_hide_keeps_preview_enabled(self, services, store, make_attachment):
        attachment = await make_attachment(utilized=True, trash=False)

        report = await services.synchronizer.reconcile()

        assert report.hidden == [attachment.id]
        assert report.warnings == []
        preview = _paths(attachment, f".{PREVIEW_SIZE}.jpg")[0]
        for method, path in store.calls_for(ENABLE, DISABLE):
            assert method == (ENABLE if path == preview else DISABLE)
        assert len(store.calls_for(ENABLE, DISABLE)) == 4
        assert store.disabled == set(_paths(attachment, ".full.jpg", ".one-half.jpg", ".jpg"))
        assert (await services.repository.find_by_id(attachment.id)).trash is True

    async def test_show_enables_everything(self, services, store, make_attachment):
        attachment = await make_attachment(utilized=True, trash=True)
        await services.repository.apply_doc_references("docD", [attachment.id], trash=False)

        report = await services.synchronizer.reconcile()

        assert report.shown == [attachment.id]
        assert {m for m, _ in store.calls_for(ENABLE, DISABLE)} == {ENABLE}
        assert (await services.repository.find_by_id(attachment.id)).trash is False

    async def test_first_utilization_touches_no_blobs(self, services, store, make_attachment):
        attachment = await make_attachment()
        await services.repository.apply_doc_references("docD", [attachment.id], trash=False)

        report = await services.synchronizer.reconcile()

        assert report.attachments[0].skipped is True
        assert store.calls_for(ENABLE, DISABLE) == []
        assert (await services.repository.find_by_id(attachment.id)).trash is False

    async def test_path_failures_become_warnings(self, services, store, make_attachment):
        attachment = await make_attachment(utilized=True, trash=False)
        missing = _paths(attachment, ".one-half.jpg")[0]
        store.fail_paths.add(missing)

        report = await services.synchronizer.reconcile()

        assert report.warnings == [SyncWarning(path=missing, action=DISABLE, error=f"simulated disable failure for {missing}")]
        assert len(store.calls_for(ENABLE, DISABLE)) == 4
        assert (await services.repository.find_by_id(attachment.id)).trash is True

    async def test_unutilized_and_settled_attachments_are_left_alone(self, services, store, make_attachment):
        await make_attachment()
        await make_attachment(utilized=True, trash=True)
        report = await services.synchronizer.reconcile()
        assert report.attachments == []
        assert store.calls == []

    async def test_reconcile_converges(self, services, store, make_attachment):
        await make_attachment(utilized=True, trash=False)
        await services.synchronizer.reconcile()
        store.reset_calls()
        report = await services.synchronizer.reconcile()
        assert report.attachments == []
        assert store.calls == []

    async def test_document_pdf_hide(self, services, store, make_attachment):
        attachment = await make_attachment(group="office", extension="pdf", utilized=True, trash=False)
        await services.synchronizer.reconcile()
        assert store.calls_for(ENABLE, DISABLE) == [(DISABLE, _paths(attachment, ".pdf")[0])]


class TestMalformedCrops:
    async def test_malformed_crop_entries_are_skipped(self, services, store, make_attachment):
        attachment = await make_attachment(
            utilized=True,
            trash=False,
            crops=[{"top": 1, "left": 2}, "junk", {"top": 5, "left": 10, "width": 200, "height": 100}],
        )

        report = await services.synchronizer.reconcile()

        assert report.hidden == [attachment.id]
        paths = [p for _, p in store.calls_for(ENABLE, DISABLE)]
        assert len(paths) == 8
        assert _paths(attachment, ".10.5.200.100.full.jpg")[0] in paths
        assert (await services.repository.find_by_id(attachment.id)).trash is True

    async def test_crop_list_ignores_malformed_entries(self, make_attachment):
        attachment = await make_attachment(crops=[None, {"width": "x"}, {"top": 0, "left": 0, "width": 5, "height": 5}])
        assert [c.to_dict() for c in attachment.crop_list()] == [{"top": 0, "left": 0, "width": 5, "height": 5}]
