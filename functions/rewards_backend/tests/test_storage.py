import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from rewards_backend.errors import StorageError, ValidationError
from rewards_backend.storage import (
    CosImageStorage,
    InlineImageStorage,
    LocalDiskImageStorage,
    check_upload_size,
    resolve_image_type,
)


class UploadValidationTests(unittest.TestCase):
    def test_resolve_image_type(self):
        self.assertEqual(resolve_image_type("image/PNG", "x"), "image/png")
        self.assertEqual(resolve_image_type(None, "photo.jpeg"), "image/jpeg")
        self.assertEqual(
            resolve_image_type("application/octet-stream", "a.gif"), "image/gif"
        )
        with self.assertRaises(ValidationError):
            resolve_image_type("application/pdf", "doc.pdf")
        with self.assertRaises(ValidationError):
            resolve_image_type(None, None)

    def test_check_upload_size(self):
        check_upload_size(b"x" * 10, 10)
        with self.assertRaises(ValidationError):
            check_upload_size(b"x" * 11, 10)
        with self.assertRaises(ValidationError):
            check_upload_size(b"", 10)


class InlineImageStorageTests(unittest.TestCase):
    def test_store_returns_data_url(self):
        storage = InlineImageStorage()
        self.assertEqual(storage.store_image(b"abc", "image/gif"), "data:image/gif;base64,YWJj")
        self.assertEqual(storage.reference_prefixes(), ())


class LocalDiskImageStorageTests(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.directory, ignore_errors=True)

    def test_store_writes_file_under_prefix(self):
        storage = LocalDiskImageStorage(self.directory, "uploads/")
        url = storage.store_image(b"png-bytes", "image/png")
        self.assertTrue(url.startswith("/uploads/"))
        self.assertTrue(url.endswith(".png"))
        name = url.rsplit("/", 1)[1]
        self.assertEqual((Path(self.directory) / name).read_bytes(), b"png-bytes")
        self.assertEqual(storage.reference_prefixes(), ("/uploads/",))

    def test_write_failure_is_storage_error(self):
        storage = LocalDiskImageStorage(self.directory)
        with patch.object(Path, "write_bytes", side_effect=OSError("disk full")):
            with self.assertRaises(StorageError):
                storage.store_image(b"x", "image/png")


class CosImageStorageTests(unittest.TestCase):
    @patch("rewards_backend.storage.boto3.client")
    def test_store_puts_object_and_returns_public_url(self, mock_client_factory):
        client = MagicMock()
        mock_client_factory.return_value = client
        storage = CosImageStorage(
            bucket="bucket",
            region="ap-guangzhou",
            endpoint="https://cos.example.test",
            access_key_id="id",
            secret_access_key="key",
            public_base_url="https://cdn.example.test/",
        )
        url = storage.store_image(b"jpeg", "image/jpeg")

        self.assertTrue(url.startswith("https://cdn.example.test/images/"))
        kwargs = client.put_object.call_args.kwargs
        self.assertEqual(kwargs["Bucket"], "bucket")
        self.assertEqual(kwargs["ContentType"], "image/jpeg")
        self.assertEqual(kwargs["Body"], b"jpeg")
        self.assertEqual(url, f"https://cdn.example.test/{kwargs['Key']}")
        self.assertEqual(storage.reference_prefixes(), ("https://cdn.example.test/",))

    @patch("rewards_backend.storage.boto3.client")
    def test_upload_failure_is_storage_error(self, mock_client_factory):
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "500", "Message": "boom"}}, "PutObject"
        )
        mock_client_factory.return_value = client
        storage = CosImageStorage(
            bucket="bucket",
            region="r",
            endpoint="https://cos.example.test",
            access_key_id="id",
            secret_access_key="key",
            public_base_url="https://cdn.example.test",
        )
        with self.assertRaises(StorageError):
            storage.store_image(b"jpeg", "image/jpeg")


if __name__ == "__main__":
    unittest.main()
