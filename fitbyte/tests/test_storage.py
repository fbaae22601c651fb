import unittest
from unittest.mock import MagicMock

import boto3
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from fitbyte.storage import InMemoryStorageClient, S3StorageClient


class InMemoryStorageClientTests(unittest.TestCase):
    def test_upload_and_read_back(self):
        storage = InMemoryStorageClient(base_url="https://cdn.test")
        uri = storage.upload_bytes("a.png", b"data", "image/png")
        self.assertEqual(uri, "https://cdn.test/a.png")
        self.assertEqual(storage.get_bytes("a.png"), b"data")
        with self.assertRaises(FileNotFoundError):
            storage.get_bytes("missing.png")

    def test_presign_get(self):
        storage = InMemoryStorageClient(base_url="https://cdn.test")
        self.assertEqual(
            storage.presign_get("a.png", expires_in=60),
            "https://cdn.test/a.png?op=get&expires=60",
        )


class S3StorageClientTests(unittest.TestCase):
    def setUp(self):
        self.s3 = boto3.client(
            "s3",
            region_name="ap-southeast-1",
            aws_access_key_id="test",
            aws_secret_access_key="test",
        )
        self.stubber = Stubber(self.s3)
        self.storage = S3StorageClient(
            bucket="fitbyte-uploads",
            region="ap-southeast-1",
            access_key_id="test",
            secret_access_key="test",
            client=self.s3,
        )

    def test_upload_bytes_puts_object(self):
        self.stubber.add_response("put_object", {"ETag": '"abc"'})
        with self.stubber:
            uri = self.storage.upload_bytes("photo.jpg", b"jpeg-bytes", "image/jpeg")
        self.stubber.assert_no_pending_responses()
        self.assertEqual(
            uri,
            "https://fitbyte-uploads.s3.ap-southeast-1.amazonaws.com/photo.jpg",
        )

    def test_upload_bytes_request_parameters(self):
        client = MagicMock()
        storage = S3StorageClient(
            bucket="fitbyte-uploads",
            region="ap-southeast-1",
            access_key_id="test",
            secret_access_key="test",
            client=client,
        )
        storage.upload_bytes("photo.jpg", b"jpeg-bytes", "image/jpeg")
        client.put_object.assert_called_once_with(
            Bucket="fitbyte-uploads",
            Key="photo.jpg",
            Body=b"jpeg-bytes",
            ContentType="image/jpeg",
        )

    def test_upload_errors_propagate(self):
        self.stubber.add_client_error("put_object", service_error_code="AccessDenied")
        with self.stubber:
            with self.assertRaises(ClientError):
                self.storage.upload_bytes("photo.jpg", b"x", "image/jpeg")

    def test_presign_get_signs_object_url(self):
        url = self.storage.presign_get("photo.jpg", expires_in=120)
        self.assertIn("fitbyte-uploads", url)
        self.assertIn("photo.jpg", url)
        self.assertIn("Expires", url)

    def test_public_url_with_custom_endpoint(self):
        storage = S3StorageClient(
            bucket="uploads",
            region="",
            access_key_id="",
            secret_access_key="",
            endpoint="http://localhost:9000/",
            client=self.s3,
        )
        self.assertEqual(
            storage.public_url("a.png"), "http://localhost:9000/uploads/a.png"
        )


if __name__ == "__main__":
    unittest.main()
