import io
from datetime import datetime, timezone
import pytest
from PIL import Image
from botocore.exceptions import ClientError

from app.image_service import service
from app.image_service.models import PublicUrl, StorageKey, parse_reference
from app.settings import Settings
from app.storage.s3 import ObjectExistsError
from app.storage.upload_buffer import UploadedFile
from app.exceptions import ImageNotFoundException, MetadataStoreException, StorageException


def make_png_bytes():
    """Generate a simple valid PNG in-memory."""
    img = Image.new("RGB", (10, 10), color="red")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def client_error():
    return ClientError({"Error": {"Code": "500", "Message": "boom"}}, "Op")


@pytest.fixture
def mock_s3(mocker):
    s3 = mocker.Mock()
    s3.config = Settings()
    s3.get_public_url.side_effect = lambda bucket, key: f"https://public/{bucket}/{key}"
    s3.generate_presigned_url.side_effect = lambda bucket, key, expires_in=None: f"https://signed/{bucket}/{key}?e={expires_in}"
    return s3


@pytest.fixture
def mock_db(mocker):
    db = mocker.Mock()
    db.config = Settings()
    return db


@pytest.fixture
def uploaded(tmp_path):
    path = tmp_path / "upload_x"
    data = make_png_bytes()
    path.write_bytes(data)
    return UploadedFile(path=str(path), filename="leaf.png", content_type="image/png", size=len(data))


# ------------------------------
# references
# ------------------------------

def test_parse_reference_variants():
    assert isinstance(parse_reference("https://x/y.png"), PublicUrl)
    assert isinstance(parse_reference("http://x/y.png"), PublicUrl)
    assert isinstance(parse_reference("images/1_y.png"), StorageKey)


def test_resolve_public_url_unchanged(mock_s3):
    url = service.resolve_image_url(mock_s3, "imagens", "https://cdn/x.png")
    assert url == "https://cdn/x.png"
    mock_s3.generate_presigned_url.assert_not_called()


def test_resolve_key_is_signed_for_an_hour(mock_s3):
    url = service.resolve_image_url(mock_s3, "imagens", "images/1_x.png")
    assert url == "https://signed/imagens/images/1_x.png?e=3600"


def test_resolve_key_falls_back_to_public(mock_s3):
    mock_s3.generate_presigned_url.side_effect = client_error()
    url = service.resolve_image_url(mock_s3, "imagens", "images/1_x.png")
    assert url == "https://public/imagens/images/1_x.png"


# ------------------------------
# helpers
# ------------------------------

def test_build_image_key():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert service.build_image_key("a.png", now) == "images/1704067200000_a.png"
    assert service.build_image_key(None, now) == "images/1704067200000_image.jpg"


@pytest.mark.parametrize("raw,expected", [
    ("12.5", 12.5),
    ("-0.25", -0.25),
    ("0", 0.0),
    (None, None),
    ("", None),
    ("abc", None),
    ("nan", None),
    ("inf", None),
])
def test_parse_coordinate(raw, expected):
    assert service.parse_coordinate(raw) == expected


def test_resolve_content_type():
    assert service.resolve_content_type(b"x", "image/webp") == "image/webp"
    assert service.resolve_content_type(make_png_bytes(), "application/octet-stream") == "image/png"
    assert service.resolve_content_type(b"notanimage", None) == "image/jpeg"


# ------------------------------
# fetch_images
# ------------------------------

def test_fetch_images_sorted_and_defaulted(mock_db, mock_s3):
    mock_db.select.return_value = [
        {"id": "1", "user_id": "u", "url": "images/a.png", "created_at": "2024-01-01T00:00:00"},
        {"id": "2", "user_id": "u", "url": "http://x/b.png", "created_at": "2024-02-01T00:00:00"},
    ]
    images = service.fetch_images(mock_db, mock_s3)
    assert [i.id for i in images] == ["2", "1"]
    assert images[0].url == "http://x/b.png"
    assert images[1].url.startswith("https://signed/imagens/")
    assert images[1].latitude is None
    assert images[1].analysis is None


def test_fetch_images_db_error(mock_db, mock_s3):
    mock_db.select.side_effect = client_error()
    with pytest.raises(MetadataStoreException):
        service.fetch_images(mock_db, mock_s3)


# ------------------------------
# save_image_and_meta
# ------------------------------

def test_save_image_and_meta_success(mock_db, mock_s3, uploaded):
    result = service.save_image_and_meta(
        db=mock_db,
        s3=mock_s3,
        uploaded=uploaded,
        user_id="user1",
        latitude="10.5",
        longitude=None,
        analysis="ok",
    )

    bucket, key, body = mock_s3.upload.call_args.args
    assert bucket == "imagens"
    assert key.startswith("images/") and key.endswith("_leaf.png")
    assert body == make_png_bytes()
    assert mock_s3.upload.call_args.kwargs["overwrite"] is False

    table, item = mock_db.insert.call_args.args
    assert table == "images"
    assert item["url"] == key
    assert item["user_id"] == "user1"
    assert result.image_id == item["id"]
    assert result.image_url == f"https://public/imagens/{key}"
    assert result.latitude == 10.5
    assert result.longitude is None


def test_save_image_and_meta_s3_error(mock_db, mock_s3, uploaded):
    mock_s3.upload.side_effect = client_error()
    with pytest.raises(StorageException):
        service.save_image_and_meta(db=mock_db, s3=mock_s3, uploaded=uploaded, user_id="u")
    mock_db.insert.assert_not_called()


def test_save_image_and_meta_key_conflict(mock_db, mock_s3, uploaded):
    mock_s3.upload.side_effect = ObjectExistsError("imagens", "images/1_leaf.png")
    with pytest.raises(StorageException):
        service.save_image_and_meta(db=mock_db, s3=mock_s3, uploaded=uploaded, user_id="u")


def test_save_image_and_meta_db_error(mock_db, mock_s3, uploaded):
    mock_db.insert.side_effect = client_error()
    with pytest.raises(MetadataStoreException):
        service.save_image_and_meta(db=mock_db, s3=mock_s3, uploaded=uploaded, user_id="u")


# ------------------------------
# remove_image
# ------------------------------

def test_remove_image_success(mock_db, mock_s3):
    mock_db.get.return_value = {"id": "1", "url": "images/k.png"}
    assert service.remove_image(mock_db, mock_s3, "1") is True
    mock_s3.delete.assert_called_once_with("imagens", "images/k.png")
    mock_db.delete.assert_called_once_with("images", {"id": "1"})
    mock_db.delete_where.assert_called_once_with("images_metadata", "file_path", "images/k.png")


def test_remove_image_best_effort_failures(mock_db, mock_s3):
    mock_db.get.return_value = {"id": "1", "url": "images/k.png"}
    mock_s3.delete.side_effect = client_error()
    mock_db.delete_where.side_effect = client_error()
    assert service.remove_image(mock_db, mock_s3, "1") is True
    mock_db.delete.assert_called_once()


def test_remove_image_not_found(mock_db, mock_s3):
    mock_db.get.return_value = None
    with pytest.raises(ImageNotFoundException):
        service.remove_image(mock_db, mock_s3, "doesnotexist")
    mock_s3.delete.assert_not_called()


def test_delete_stored_object_outcome(mock_s3):
    mock_s3.delete.side_effect = client_error()
    outcome = service.delete_stored_object(mock_s3, "images/k.png")
    assert outcome.ok is False
    assert "boom" in outcome.error


def test_delete_stored_object_skips_external_url(mock_s3):
    outcome = service.delete_stored_object(mock_s3, "https://cdn.example.org/a.png")
    assert outcome.ok is False
    mock_s3.delete.assert_not_called()


def test_remove_image_with_url_reference(mock_db, mock_s3):
    mock_db.get.return_value = {"id": "1", "url": "https://cdn.example.org/a.png"}
    assert service.remove_image(mock_db, mock_s3, "1") is True
    mock_s3.delete.assert_not_called()
    mock_db.delete.assert_called_once_with("images", {"id": "1"})
