"""Tests for the AnnotationSyncGateway."""

import httpx
import pytest
from fastapi.testclient import TestClient

from labelcanvas.errors import SyncFailure
from labelcanvas.models.annotations import BoundingBox, ImageRecord
from labelcanvas.services.sync_gateway import AnnotationSyncGateway

BOX = BoundingBox(x=10, y=10, width=50, height=40)


@pytest.fixture
def gateway(store_client: TestClient) -> AnnotationSyncGateway:
    """Gateway talking to a fresh reference store."""
    return AnnotationSyncGateway(store_client)


@pytest.fixture
def image(store_client: TestClient, sample_image: bytes) -> ImageRecord:
    """An image uploaded to the store."""
    response = store_client.post(
        "/api/images", files={"file": ("page.png", sample_image, "image/png")}
    )
    assert response.status_code == 200
    return ImageRecord.model_validate(response.json())


def unreachable_gateway() -> AnnotationSyncGateway:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(
        base_url="http://store", transport=httpx.MockTransport(handler)
    )
    return AnnotationSyncGateway(client)


class TestCreate:
    """Tests for create."""

    def test_returns_store_assigned_annotation(
        self, gateway: AnnotationSyncGateway, image: ImageRecord
    ) -> None:
        label = gateway.create_label("product")
        annotation = gateway.create(image.id, label.id, BOX)
        assert annotation.id >= 1
        assert annotation.image_id == image.id
        assert annotation.label_id == label.id
        assert annotation.bounding_box == BOX

    def test_ids_are_distinct(
        self, gateway: AnnotationSyncGateway, image: ImageRecord
    ) -> None:
        label = gateway.create_label("product")
        first = gateway.create(image.id, label.id, BOX)
        second = gateway.create(image.id, label.id, BOX)
        assert first.id != second.id

    def test_unknown_label_is_rejected_with_detail(
        self, gateway: AnnotationSyncGateway, image: ImageRecord
    ) -> None:
        """Test that the store's detail message reaches the caller."""
        with pytest.raises(SyncFailure) as exc_info:
            gateway.create(image.id, 99, BOX)
        err = exc_info.value
        assert err.reason == "rejected"
        assert err.status_code == 400
        assert err.operation == "create"
        assert "Label not found" in err.detail

    def test_unknown_image_is_rejected(self, gateway: AnnotationSyncGateway) -> None:
        gateway.create_label("product")
        with pytest.raises(SyncFailure) as exc_info:
            gateway.create(42, 1, BOX)
        assert exc_info.value.status_code == 404

    def test_network_error_is_unreachable(self) -> None:
        with pytest.raises(SyncFailure) as exc_info:
            unreachable_gateway().create(1, 1, BOX)
        assert exc_info.value.reason == "unreachable"
        assert exc_info.value.status_code is None

    def test_error_without_json_body(self) -> None:
        client = httpx.Client(
            base_url="http://store",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(502, text="Bad Gateway")
            ),
        )
        with pytest.raises(SyncFailure) as exc_info:
            AnnotationSyncGateway(client).create(1, 1, BOX)
        assert exc_info.value.detail == "Request failed with status 502"

    def test_malformed_success_response(self) -> None:
        client = httpx.Client(
            base_url="http://store",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"id": "x"})
            ),
        )
        with pytest.raises(SyncFailure):
            AnnotationSyncGateway(client).create(1, 1, BOX)


class TestDelete:
    """Tests for delete."""

    def test_removes_annotation(
        self, gateway: AnnotationSyncGateway, image: ImageRecord
    ) -> None:
        label = gateway.create_label("product")
        annotation = gateway.create(image.id, label.id, BOX)
        gateway.delete(annotation.id)
        assert gateway.list_annotations(image.id) == []

    def test_already_deleted_is_not_an_error(
        self, gateway: AnnotationSyncGateway, image: ImageRecord
    ) -> None:
        """Test that a second delete of the same id is a no-op."""
        label = gateway.create_label("product")
        annotation = gateway.create(image.id, label.id, BOX)
        gateway.delete(annotation.id)
        gateway.delete(annotation.id)

    def test_server_error_raises(self) -> None:
        client = httpx.Client(
            base_url="http://store",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(500, json={"detail": "disk full"})
            ),
        )
        with pytest.raises(SyncFailure) as exc_info:
            AnnotationSyncGateway(client).delete(1)
        assert exc_info.value.detail == "disk full"

    def test_network_error_raises(self) -> None:
        with pytest.raises(SyncFailure) as exc_info:
            unreachable_gateway().delete(1)
        assert exc_info.value.reason == "unreachable"

    def test_undecodable_response_is_unreachable(self) -> None:
        """Test that a corrupt response body maps to SyncFailure."""
        client = httpx.Client(
            base_url="http://store",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(
                    200, headers={"content-encoding": "gzip"}, content=b"not gzip"
                )
            ),
        )
        with pytest.raises(SyncFailure) as exc_info:
            AnnotationSyncGateway(client).delete(1)
        assert exc_info.value.reason == "unreachable"


class TestRoundTrip:
    """Create followed by delete restores the original list."""

    def test_create_then_delete(
        self, gateway: AnnotationSyncGateway, image: ImageRecord
    ) -> None:
        for name in ("a", "b", "c"):
            gateway.create_label(name)
        before = gateway.list_annotations(image.id)

        annotation = gateway.create(image.id, 3, BOX)
        assert len(gateway.list_annotations(image.id)) == len(before) + 1
        gateway.delete(annotation.id)

        assert gateway.list_annotations(image.id) == before


class TestReads:
    """Tests for list and label operations."""

    def test_list_images(
        self, gateway: AnnotationSyncGateway, image: ImageRecord
    ) -> None:
        images = gateway.list_images()
        assert [img.id for img in images] == [image.id]
        assert images[0].original_filename == "page.png"

    def test_labels(self, gateway: AnnotationSyncGateway) -> None:
        assert gateway.list_labels() == []
        label = gateway.create_label("shelf")
        assert gateway.list_labels() == [label]

    def test_duplicate_label_rejected(self, gateway: AnnotationSyncGateway) -> None:
        gateway.create_label("shelf")
        with pytest.raises(SyncFailure) as exc_info:
            gateway.create_label("shelf")
        assert exc_info.value.status_code == 409
