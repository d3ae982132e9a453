import unittest
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
from google.api_core import exceptions as google_exceptions

from cms.storage import (
    FirebaseStorageClient,
    InMemoryStorageClient,
    S3StorageClient,
    StorageError,
    build_object_path,
)


class ObjectPathTests(unittest.TestCase):
    def test_path_shape(self):
        path = build_object_path("onboarding_sliders", "jpg", name_prefix="before", now=12.5)
        folder, name = path.split("/")
        self.assertEqual(folder, "onboarding_sliders")
        self.assertTrue(name.startswith("before_12500_"))
        self.assertTrue(name.endswith(".jpg"))

    def test_paths_are_unique(self):
        self.assertNotEqual(
            build_object_path("filters", "png", now=1.0),
            build_object_path("filters", "png", now=1.0),
        )


class InMemoryStorageClientTests(unittest.TestCase):
    def test_upload(self):
        storage = InMemoryStorageClient()
        url = storage.upload_bytes("filters/a.jpg", b"data", "image/jpeg")
        self.assertEqual(url, "https://example.test/storage/filters/a.jpg")
        self.assertEqual(storage.stored_objects["filters/a.jpg"], (b"data", "image/jpeg"))


class FirebaseStorageClientTests(unittest.TestCase):
    def test_upload_makes_blob_public(self):
        bucket = MagicMock()
        blob = bucket.blob.return_value
        blob.public_url = "https://storage.googleapis.com/b/filters/a.jpg"

        url = FirebaseStorageClient(bucket=bucket).upload_bytes(
            "filters/a.jpg", b"data", "image/jpeg"
        )

        bucket.blob.assert_called_once_with("filters/a.jpg")
        blob.upload_from_string.assert_called_once_with(b"data", content_type="image/jpeg")
        blob.make_public.assert_called_once_with()
        self.assertEqual(url, blob.public_url)

    def test_upload_failure(self):
        bucket = MagicMock()
        bucket.blob.return_value.upload_from_string.side_effect = (
            google_exceptions.Forbidden("denied")
        )
        with self.assertRaises(StorageError):
            FirebaseStorageClient(bucket=bucket).upload_bytes("a.jpg", b"x", "image/jpeg")


class S3StorageClientTests(unittest.TestCase):
    def _client(self, **kwargs):
        return S3StorageClient(
            bucket="cms-assets",
            region="ap-guangzhou",
            endpoint="https://cos.ap-guangzhou.myqcloud.com",
            access_key_id="key",
            secret_access_key="secret",
            **kwargs,
        )

    @patch("cms.storage.boto3.client")
    def test_upload_uses_public_base_url(self, mock_boto_client):
        storage = self._client(public_base_url="https://cdn.test/")
        url = storage.upload_bytes("filters/a.png", b"data", "image/png")

        mock_boto_client.return_value.put_object.assert_called_once_with(
            Bucket="cms-assets", Key="filters/a.png", Body=b"data", ContentType="image/png"
        )
        self.assertEqual(url, "https://cdn.test/filters/a.png")

    @patch("cms.storage.boto3.client")
    def test_upload_falls_back_to_presigned_url(self, mock_boto_client):
        mock_boto_client.return_value.generate_presigned_url.return_value = "https://signed"
        storage = self._client()
        self.assertEqual(storage.upload_bytes("a.png", b"data", "image/png"), "https://signed")

    @patch("cms.storage.boto3.client")
    def test_client_errors_are_wrapped(self, mock_boto_client):
        mock_boto_client.return_value.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "no"}}, "PutObject"
        )
        with self.assertRaises(StorageError):
            self._client().upload_bytes("a.png", b"data", "image/png")


if __name__ == "__main__":
    unittest.main()
