"""
ObjectStorage tests against a stubbed boto3 S3 client, plus the
compensating-delete helper.
"""

import pytest
from botocore.stub import ANY, Stubber

from marketplace.core.exceptions import UploadError
from marketplace.services.storage_service import ObjectStorage, discard_uploads


@pytest.fixture()
def s3_storage():
    storage = ObjectStorage(
        bucket="marketplace-test",
        region="us-east-1",
        access_key_id="test-key",
        secret_access_key="test-secret",
    )
    with Stubber(storage.client) as stubber:
        yield storage, stubber
        stubber.assert_no_pending_responses()


class TestObjectStorage:
    def test_upload_returns_url_and_key(self, s3_storage):
        storage, stubber = s3_storage
        stubber.add_response(
            "put_object",
            {"ETag": '"abc"'},
            {"Bucket": "marketplace-test", "Key": ANY, "Body": b"data", "ContentType": "image/png"},
        )
        stored = storage.upload(b"data", "specialists/s1", "Photo.PNG", "image/png")
        assert stored["public_id"].startswith("specialists/s1/")
        assert stored["public_id"].endswith(".png")
        assert stored["url"] == (
            f"https://marketplace-test.s3.us-east-1.amazonaws.com/{stored['public_id']}"
        )

    def test_upload_failure_raises_upload_error(self, s3_storage):
        storage, stubber = s3_storage
        stubber.add_client_error("put_object", service_error_code="AccessDenied",
                                 http_status_code=403)
        with pytest.raises(UploadError) as exc:
            storage.upload(b"data", "media", "a.png", "image/png")
        assert exc.value.status_code == 502

    def test_delete(self, s3_storage):
        storage, stubber = s3_storage
        stubber.add_response("delete_object", {}, {"Bucket": "marketplace-test", "Key": "media/a.png"})
        storage.delete("media/a.png")

    def test_public_base_url_wins(self):
        storage = ObjectStorage(bucket="b", endpoint_url="http://minio:9000",
                                public_base_url="https://cdn.example.com/")
        assert storage.public_url("k/1.png") == "https://cdn.example.com/k/1.png"
        storage.public_base_url = None
        assert storage.public_url("k/1.png") == "http://minio:9000/b/k/1.png"


class TestDiscardUploads:
    def test_cleanup_errors_are_swallowed(self, storage, monkeypatch):
        calls = []

        def failing_delete(public_id):
            calls.append(public_id)
            raise UploadError("File delete failed")

        monkeypatch.setattr(storage, "delete", failing_delete)
        discard_uploads(["a", None, "b"])
        assert calls == ["a", "b"]
