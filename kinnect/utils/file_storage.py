"""
Object Storage for Media

FLOW OVERVIEW
- s3_client()
  • Builds a boto3 S3 client from app config; raises StorageNotConfigured when the bucket is unset.
- upload_file(data, mime_type, user_id, filename)
  • Validates type/size, stores the original under {userId}/{fileType}/{ts}-{name},
    best-effort JPEG thumbnail (max 300x300) for images under .../thumbs/.
  • Returns {url, thumbUrl, type, name, size, mimeType}.
- delete_files(urls)
  • Parses each URL back into a key and deletes it; unparsable URLs are skipped,
    S3 errors raise StorageError.
"""

import io
import logging
import os
import time

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset([
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
    'video/mp4',
    'video/quicktime',
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
])

THUMBNAIL_SIZE = (300, 300)
THUMBNAIL_QUALITY = 80
URL_KEY_SEPARATOR = '.amazonaws.com/'


class StorageNotConfigured(RuntimeError):
    """Raised when required storage configuration is missing."""

    pass


class StorageError(RuntimeError):
    """Raised when the object store rejects an upload or delete."""

    pass


class UnsupportedFileError(ValueError):
    """Raised for uploads with a disallowed MIME type or size."""

    pass


def s3_client():
    bucket = current_app.config.get('AWS_S3_BUCKET')
    if not bucket:
        raise StorageNotConfigured("Missing S3 configuration: AWS_S3_BUCKET")

    return boto3.client(
        "s3",
        region_name=current_app.config.get('AWS_REGION', 'us-east-1'),
        aws_access_key_id=current_app.config.get('AWS_ACCESS_KEY_ID'),
        aws_secret_access_key=current_app.config.get('AWS_SECRET_ACCESS_KEY'),
        config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "virtual"}),
    )


def get_file_type_category(mime_type):
    """Map a MIME type to image/video/audio/document"""
    mime_type = mime_type or ''
    for prefix in ('image', 'video', 'audio'):
        if mime_type.startswith(prefix + '/'):
            return prefix
    return 'document'


def build_object_key(user_id, file_type, filename, timestamp_ms=None, thumbnail=False):
    """Storage key for an upload: {userId}/{fileType}/[thumbs/]{ts}-{basename}"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    basename = secure_filename(os.path.basename(filename or '')) or 'file'
    folder = f"{user_id}/{file_type}/thumbs" if thumbnail else f"{user_id}/{file_type}"
    return f"{folder}/{timestamp_ms}-{basename}"


def object_url(key):
    bucket = current_app.config['AWS_S3_BUCKET']
    region = current_app.config.get('AWS_REGION', 'us-east-1')
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def url_to_key(url):
    """Inverse of object_url; None when the URL is not one of ours"""
    if not url or URL_KEY_SEPARATOR not in url:
        return None
    key = url.split(URL_KEY_SEPARATOR, 1)[1]
    return key or None


def generate_thumbnail(data):
    """
    Render a JPEG thumbnail that fits inside 300x300.

    Args:
        data: original image bytes

    Returns:
        JPEG bytes
    """
    with Image.open(io.BytesIO(data)) as image:
        image.thumbnail(THUMBNAIL_SIZE)
        if image.mode not in ('RGB', 'L'):
            image = image.convert('RGB')
        output = io.BytesIO()
        image.save(output, format='JPEG', quality=THUMBNAIL_QUALITY)
        return output.getvalue()


def _put_object(client, key, body, content_type):
    try:
        client.put_object(
            Bucket=current_app.config['AWS_S3_BUCKET'],
            Key=key,
            Body=body,
            ContentType=content_type,
        )
    except (ClientError, BotoCoreError) as e:
        raise StorageError(f"Upload of {key} failed: {e}") from e
    return object_url(key)


def validate_upload(mime_type, size):
    if mime_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedFileError(f"File type {mime_type} is not supported")
    max_size = current_app.config.get('MAX_UPLOAD_SIZE', 10 * 1024 * 1024)
    if size > max_size:
        raise UnsupportedFileError(f"File exceeds the maximum size of {max_size // (1024 * 1024)}MB")


def upload_file(data, mime_type, user_id, filename):
    """
    Store an uploaded file (and a thumbnail for images).

    Args:
        data: file bytes
        mime_type: client-declared MIME type
        user_id: uploader id, used as key prefix
        filename: original client filename

    Returns:
        Dict with url, thumbUrl (None when no thumbnail), type, name, size, mimeType
    """
    validate_upload(mime_type, len(data))
    client = s3_client()
    file_type = get_file_type_category(mime_type)
    timestamp_ms = int(time.time() * 1000)

    key = build_object_key(user_id, file_type, filename, timestamp_ms)
    url = _put_object(client, key, data, mime_type)

    thumb_url = None
    if file_type == 'image':
        try:
            thumbnail = generate_thumbnail(data)
            thumb_key = build_object_key(user_id, file_type, filename, timestamp_ms, thumbnail=True)
            thumb_url = _put_object(client, thumb_key, thumbnail, 'image/jpeg')
        except (OSError, ValueError, UnidentifiedImageError, Image.DecompressionBombError, StorageError) as e:
            logger.warning(f"Thumbnail generation failed for {key}: {e}")
            thumb_url = None

    return {
        'url': url,
        'thumbUrl': thumb_url,
        'type': file_type,
        'name': filename,
        'size': len(data),
        'mimeType': mime_type,
    }


def delete_files(urls):
    """
    Delete stored objects by URL.

    Raises:
        StorageError: when the object store reports a failure
    """
    keys = [key for key in (url_to_key(url) for url in urls) if key]
    if not keys:
        return []

    client = s3_client()
    bucket = current_app.config['AWS_S3_BUCKET']
    for key in keys:
        try:
            client.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Delete of {key} failed: {e}") from e
        logger.info(f"Deleted storage object {key}")
    return keys
