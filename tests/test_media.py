"""
KINNECT - Media Route Tests

Uploads to (mocked) S3 with thumbnailing, family sharing posts, listings
and deletion. The boto3 client is replaced by the s3_mock fixture.
"""

import io
import json
from unittest.mock import patch

import pytest
from PIL import Image

from kinnect.models import db, Media, Post, PostFamily
from tests.conftest import auth_headers, png_bytes


pytestmark = pytest.mark.timeout(30)

BUCKET_URL = 'https://kinnect-test.s3.us-east-1.amazonaws.com/'


def upload(client, user, data, filename, mime_type, **form):
    payload = {'file': (io.BytesIO(data), filename, mime_type), **form}
    return client.post(
        '/api/media/upload', data=payload, content_type='multipart/form-data', headers=auth_headers(user),
    )


def put_keys(s3_mock):
    return [call.kwargs['Key'] for call in s3_mock.put_object.call_args_list]


class TestUpload:

    def test_image_upload_creates_thumbnail(self, client, test_user, s3_mock):
        response = upload(client, test_user, png_bytes(), 'beach day.png', 'image/png')

        assert response.status_code == 201
        media = response.get_json()['media']
        assert media['type'] == 'image'
        assert media['url'].startswith(f'{BUCKET_URL}{test_user.id}/image/')
        assert media['url'].endswith('-beach_day.png')
        assert '/image/thumbs/' in media['thumbUrl']
        assert 'post' not in response.get_json()

        keys = put_keys(s3_mock)
        assert len(keys) == 2
        thumb_call = s3_mock.put_object.call_args_list[1]
        assert thumb_call.kwargs['ContentType'] == 'image/jpeg'
        assert Media.query.filter_by(uploaded_by_id=test_user.id).count() == 1

    def test_document_upload_has_no_thumbnail(self, client, test_user, s3_mock):
        response = upload(client, test_user, b'%PDF-1.4 minutes', 'minutes.pdf', 'application/pdf')

        assert response.status_code == 201
        media = response.get_json()['media']
        assert media['type'] == 'document'
        assert media['thumbUrl'] is None
        assert s3_mock.put_object.call_count == 1

    def test_corrupt_image_still_uploads(self, client, test_user, s3_mock):
        response = upload(client, test_user, b'not really a png', 'broken.png', 'image/png')

        assert response.status_code == 201
        assert response.get_json()['media']['thumbUrl'] is None

    def test_image_too_large_to_decode_still_uploads(self, client, test_user, s3_mock):
        # 10000 pixels is over twice the lowered limit, so Pillow refuses to decode
        with patch.object(Image, 'MAX_IMAGE_PIXELS', 1000):
            response = upload(client, test_user, png_bytes(size=(100, 100)), 'huge.png', 'image/png')

        assert response.status_code == 201
        assert response.get_json()['media']['thumbUrl'] is None
        assert s3_mock.put_object.call_count == 1

    def test_family_upload_creates_post(self, client, test_user, family, s3_mock):
        response = upload(
            client, test_user, png_bytes(), 'cake.png', 'image/png',
            familyId=family.id, metadata=json.dumps({'tags': ['birthday']}),
        )

        assert response.status_code == 201
        body = response.get_json()
        assert body['post']['content'] == 'Tess shared image'
        assert body['post']['mediaUrls'] == [body['media']['url']]
        assert body['post']['tags'] == ['birthday']
        assert body['media']['metadata'] == {'tags': ['birthday']}
        assert PostFamily.query.filter_by(post_id=body['post']['id'], family_id=family.id).count() == 1

    def test_upload_to_foreign_family(self, client, outsider, family, s3_mock):
        response = upload(client, outsider, png_bytes(), 'x.png', 'image/png', familyId=family.id)
        assert response.status_code == 403
        s3_mock.put_object.assert_not_called()

    def test_missing_file(self, client, test_user):
        response = client.post('/api/media/upload', data={}, headers=auth_headers(test_user))
        assert response.status_code == 400
        assert response.get_json()['message'] == 'No file uploaded'

    def test_unsupported_type(self, client, test_user, s3_mock):
        response = upload(client, test_user, b'MZ', 'tool.exe', 'application/x-msdownload')
        assert response.status_code == 400
        s3_mock.put_object.assert_not_called()

    def test_bad_metadata(self, client, test_user, s3_mock):
        response = upload(client, test_user, b'%PDF', 'a.pdf', 'application/pdf', metadata='{oops')
        assert response.status_code == 400

    def test_storage_not_configured(self, client, app, test_user):
        app.config['AWS_S3_BUCKET'] = None
        response = upload(client, test_user, png_bytes(), 'a.png', 'image/png')
        assert response.status_code == 503
        assert response.get_json()['message'] == 'Media storage is not configured'
        assert Media.query.count() == 0


class TestListAndDelete:

    def test_list_own_media_by_type(self, client, test_user, s3_mock):
        upload(client, test_user, png_bytes(), 'a.png', 'image/png')
        upload(client, test_user, b'%PDF', 'b.pdf', 'application/pdf')

        response = client.get('/api/media?type=image', headers=auth_headers(test_user))
        body = response.get_json()
        assert body['count'] == 1
        assert body['media'][0]['type'] == 'image'
        assert body['currentPage'] == 1

    def test_family_media(self, client, test_user, other_user, outsider, family, s3_mock):
        upload(client, test_user, png_bytes(), 'shared.png', 'image/png', familyId=family.id)
        upload(client, test_user, png_bytes(), 'private.png', 'image/png')

        body = client.get(f'/api/families/{family.id}/media', headers=auth_headers(other_user)).get_json()
        assert body['count'] == 1
        assert body['media'][0]['name'] == 'shared.png'

        assert client.get(f'/api/families/{family.id}/media', headers=auth_headers(outsider)).status_code == 403

    def test_delete_removes_objects_and_post_references(self, client, test_user, family, s3_mock):
        body = upload(client, test_user, png_bytes(), 'a.png', 'image/png', familyId=family.id).get_json()
        media_id, post_id = body['media']['id'], body['post']['id']

        response = client.delete(f'/api/media/{media_id}', headers=auth_headers(test_user))

        assert response.status_code == 200
        deleted = [call.kwargs['Key'] for call in s3_mock.delete_object.call_args_list]
        assert deleted == put_keys(s3_mock)
        assert db.session.get(Media, media_id) is None
        assert db.session.get(Post, post_id).media_urls == []

    def test_delete_survives_storage_failure(self, client, test_user, s3_mock):
        from botocore.exceptions import ClientError

        media_id = upload(client, test_user, b'%PDF', 'a.pdf', 'application/pdf').get_json()['media']['id']
        s3_mock.delete_object.side_effect = ClientError({'Error': {'Code': '500', 'Message': 'boom'}}, 'DeleteObject')

        response = client.delete(f'/api/media/{media_id}', headers=auth_headers(test_user))

        assert response.status_code == 200
        assert db.session.get(Media, media_id) is None

    def test_only_uploader_deletes(self, client, test_user, other_user, s3_mock):
        media_id = upload(client, test_user, b'%PDF', 'a.pdf', 'application/pdf').get_json()['media']['id']
        response = client.delete(f'/api/media/{media_id}', headers=auth_headers(other_user))
        assert response.status_code == 403
        s3_mock.delete_object.assert_not_called()
