"""
Tests for Object Storage Helpers

Key layout, URL/key mapping, thumbnails and upload validation.
"""

import io

import pytest
from PIL import Image

from kinnect.utils.file_storage import (
    StorageNotConfigured, UnsupportedFileError, build_object_key, delete_files,
    generate_thumbnail, get_file_type_category, object_url, s3_client, url_to_key, validate_upload,
)
from tests.conftest import png_bytes


class TestKeysAndUrls:

    def test_file_type_category(self):
        assert get_file_type_category('image/png') == 'image'
        assert get_file_type_category('video/mp4') == 'video'
        assert get_file_type_category('audio/mpeg') == 'audio'
        assert get_file_type_category('application/pdf') == 'document'
        assert get_file_type_category(None) == 'document'

    def test_object_key_layout(self):
        assert build_object_key('u1', 'image', 'a.png', 1700) == 'u1/image/1700-a.png'
        assert build_object_key('u1', 'image', 'a.png', 1700, thumbnail=True) == 'u1/image/thumbs/1700-a.png'
        assert build_object_key('u1', 'document', '../../etc/passwd', 5) == 'u1/document/5-passwd'
        assert build_object_key('u1', 'document', '', 5) == 'u1/document/5-file'

    def test_url_round_trip(self, app_context):
        url = object_url('u1/image/1700-a.png')
        assert url == 'https://kinnect-test.s3.us-east-1.amazonaws.com/u1/image/1700-a.png'
        assert url_to_key(url) == 'u1/image/1700-a.png'

    def test_foreign_urls_have_no_key(self):
        assert url_to_key('https://cdn.example.com/a.png') is None
        assert url_to_key(None) is None


class TestThumbnails:

    def test_fits_in_box_and_is_jpeg(self):
        thumbnail = generate_thumbnail(png_bytes(size=(1200, 600)))
        with Image.open(io.BytesIO(thumbnail)) as image:
            assert image.format == 'JPEG'
            assert image.size == (300, 150)

    def test_rgba_is_converted(self):
        buffer = io.BytesIO()
        Image.new('RGBA', (50, 50), (0, 0, 0, 0)).save(buffer, format='PNG')
        with Image.open(io.BytesIO(generate_thumbnail(buffer.getvalue()))) as image:
            assert image.mode == 'RGB'


class TestValidation:

    def test_rejects_unknown_mime(self, app_context):
        with pytest.raises(UnsupportedFileError):
            validate_upload('text/x-shellscript', 10)

    def test_rejects_oversize(self, app, app_context):
        app.config['MAX_UPLOAD_SIZE'] = 100
        with pytest.raises(UnsupportedFileError, match='maximum size'):
            validate_upload('image/png', 101)

    def test_missing_bucket(self, app, app_context):
        app.config['AWS_S3_BUCKET'] = ''
        with pytest.raises(StorageNotConfigured):
            s3_client()

    def test_delete_skips_foreign_urls(self, app_context, s3_mock):
        assert delete_files(['https://cdn.example.com/a.png', None]) == []
        s3_mock.delete_object.assert_not_called()
