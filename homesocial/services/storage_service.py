import asyncio
import io
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Literal

from fastapi import UploadFile
from google.cloud import storage  # type: ignore
from google.cloud.exceptions import GoogleCloudError
from PIL import Image, UnidentifiedImageError

from homesocial.errors import BackendError, ListingValidationError

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MediaType = Literal["photo", "video"]

PHOTO_BUCKET = os.getenv("HOMESOCIAL_PHOTO_BUCKET", "listing-photos")
VIDEO_BUCKET = os.getenv("HOMESOCIAL_VIDEO_BUCKET", "listing-videos")
PUBLIC_BASE = os.getenv("HOMESOCIAL_STORAGE_PUBLIC_BASE", "https://storage.googleapis.com")

MAX_PHOTO_BYTES = 10_000_000  # 10MB
MAX_VIDEO_BYTES = 200_000_000  # 200MB
UPLOAD_TIMEOUT = 30

PHOTO_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


def optimize_image(image_file, max_width=1600, quality=85):
    """
    Smart image optimization:
    - PNG with transparency → optimized PNG
    - PNG without transparency → JPEG (smaller)
    - WebP → optimized WebP
    - Other formats → JPEG
    """
    img = Image.open(image_file)
    original_format = img.format

    # Resize if too large
    if img.width > max_width:
        ratio = max_width / img.width
        new_height = int(img.height * ratio)
        img = img.resize((max_width, new_height), Image.LANCZOS)

    output = io.BytesIO()

    if original_format == "PNG":
        has_transparency = img.mode in ("RGBA", "LA") or (
            img.mode == "P" and "transparency" in img.info
        )

        if has_transparency:
            if img.mode == "P":
                img = img.convert("RGBA")
            img.save(output, format="PNG", optimize=True)
            output.seek(0)
            return output, "image/png"

        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGB")
        img.save(output, format="JPEG", quality=quality, optimize=True)
        output.seek(0)
        return output, "image/jpeg"

    if original_format == "WEBP":
        img.save(output, format="WEBP", quality=quality)
        output.seek(0)
        return output, "image/webp"

    # JPEG or other formats → convert to JPEG
    if img.mode != "RGB":
        if img.mode in ("RGBA", "LA"):
            # Create white background for transparency
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        else:
            img = img.convert("RGB")

    img.save(output, format="JPEG", quality=quality, optimize=True)
    output.seek(0)
    return output, "image/jpeg"


def build_storage_path(path_prefix: str, filename: str | None, extension: str | None = None) -> str:
    """
    Collision-resistant object path: <prefix>/<uuid4>.<ext>

    The extension comes from the re-encoded content when known, else from the
    uploaded filename, else "bin".
    """
    if extension is None:
        extension = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else "bin"
    return f"{path_prefix.strip('/')}/{uuid.uuid4()}.{extension}"


@dataclass(frozen=True)
class StoredMedia:
    type: MediaType
    bucket: str
    path: str
    content_type: str


class GCSMediaStorage:
    """
    Google Cloud Storage backed media store.

    Google Cloud client libraries use Application Default Credentials
    (GOOGLE_APPLICATION_CREDENTIALS locally, the service account on Cloud Run).
    All blocking SDK and Pillow work runs in the default thread pool.
    """

    def __init__(
        self,
        photo_bucket: str = PHOTO_BUCKET,
        video_bucket: str = VIDEO_BUCKET,
        public_base: str = PUBLIC_BASE,
    ):
        self.photo_bucket = photo_bucket
        self.video_bucket = video_bucket
        self.public_base = public_base.rstrip("/")
        self._client = None

    def _get_client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def bucket_for(self, media_type: MediaType) -> str:
        return self.video_bucket if media_type == "video" else self.photo_bucket

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base}/{bucket}/{path}"

    async def upload(self, upload: UploadFile, media_type: MediaType, path_prefix: str) -> StoredMedia:
        """Validate, (for photos) re-encode, and store one uploaded file."""
        content_type = upload.content_type or ""
        if media_type == "photo" and not content_type.startswith("image/"):
            raise ListingValidationError(
                f"{upload.filename}: only image files are allowed for photos", {"photos": "Only image files are allowed"}
            )
        if media_type == "video" and not content_type.startswith("video/"):
            raise ListingValidationError(
                f"{upload.filename}: only video files are allowed for video", {"video": "Only video files are allowed"}
            )

        limit = MAX_VIDEO_BYTES if media_type == "video" else MAX_PHOTO_BYTES
        if upload.size and upload.size > limit:
            raise ListingValidationError(
                f"{upload.filename}: file too large (max {limit // 1_000_000}MB)",
                {media_type: "File too large"},
            )

        await upload.seek(0)
        file_content = await upload.read()
        bucket_name = self.bucket_for(media_type)

        def _blocking_upload():
            body = io.BytesIO(file_content)
            stored_type = content_type
            extension = None
            if media_type == "photo":
                body, stored_type = optimize_image(body)
                extension = PHOTO_EXTENSIONS[stored_type]

            blob_name = build_storage_path(path_prefix, upload.filename, extension)
            blob = self._get_client().bucket(bucket_name).blob(blob_name)
            blob.cache_control = "public, max-age=3600"
            blob.upload_from_file(body, content_type=stored_type, timeout=UPLOAD_TIMEOUT)
            return blob_name, stored_type

        try:
            loop = asyncio.get_running_loop()
            blob_name, stored_type = await loop.run_in_executor(None, _blocking_upload)
        except UnidentifiedImageError:
            raise ListingValidationError(
                f"{upload.filename}: not a readable image", {"photos": "Not a readable image"}
            )
        except GoogleCloudError as e:
            logger.error(f"Google Cloud Storage error: {e}", exc_info=True)
            raise BackendError(f"Failed to upload {upload.filename}: {e}") from e

        logger.info(f"Uploaded {media_type} to {bucket_name}/{blob_name}")
        return StoredMedia(type=media_type, bucket=bucket_name, path=blob_name, content_type=stored_type)

    async def delete(self, bucket: str, path: str) -> bool:
        """Delete one object. Failures are logged, not raised: callers are cleaning up."""

        def _blocking_delete():
            self._get_client().bucket(bucket).blob(path).delete(timeout=UPLOAD_TIMEOUT)

        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, _blocking_delete)
            logger.info(f"Deleted {bucket}/{path}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete {bucket}/{path} from storage: {e}")
            return False
