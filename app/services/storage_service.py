import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor

from flask import current_app
from werkzeug.utils import secure_filename

from app.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'webp'}
MAX_IMAGES = 5
PUBLIC_PATH = "storage/v1/object/public"


def public_prefix():
    return f"{current_app.config['STORAGE_BASE_URL']}/{PUBLIC_PATH}/"


def owner_prefix(bucket, user_id):
    """URL prefix under which every object owned by `user_id` in `bucket` lives."""
    return f"{public_prefix()}{bucket}/{user_id}/"


def is_owned_url(url, user_id):
    """True when `url` points into some bucket's folder for `user_id`."""
    prefix = public_prefix()
    if not url.startswith(prefix):
        return False
    parts = url[len(prefix):].split("/")
    if len(parts) < 3 or ".." in parts or "" in parts:
        return False
    return parts[1] == str(user_id)


def _extension(filename):
    if '.' not in filename:
        return None
    return filename.rsplit('.', 1)[1].lower()


def _write(file, path):
    file.save(path)
    return path


def save_images(user_id, bucket, files):
    """
    Store 1-5 uploaded images for a user, writing them in parallel, and
    return their public URLs. If any write fails, every file this call
    wrote is removed and the error propagates.
    """
    if not files:
        raise ValidationError("No image file provided")
    if len(files) > MAX_IMAGES:
        raise ValidationError(f"At most {MAX_IMAGES} images can be uploaded at once")

    bucket = secure_filename(bucket)
    if not bucket:
        raise ValidationError("Invalid storage bucket")

    names = []
    for file in files:
        ext = _extension(file.filename or '')
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError("Invalid file type. Allowed: PNG, JPG, JPEG, WEBP")
        names.append(f"{uuid.uuid4().hex}.{ext}")

    target_dir = os.path.join(current_app.config['UPLOAD_FOLDER'], bucket, str(user_id))
    os.makedirs(target_dir, exist_ok=True)
    paths = [os.path.join(target_dir, name) for name in names]

    with ThreadPoolExecutor(max_workers=len(files)) as executor:
        futures = [executor.submit(_write, file, path) for file, path in zip(files, paths)]
        errors = [future.exception() for future in futures]

    failed = [error for error in errors if error is not None]
    if failed:
        for path in paths:
            if os.path.exists(path):
                os.remove(path)
        logger.error("Image upload failed for user %s: %s", user_id, failed[0])
        raise failed[0]

    logger.info("Stored %d image(s) in %s for user %s", len(paths), bucket, user_id)
    return [f"{owner_prefix(bucket, user_id)}{name}" for name in names]
