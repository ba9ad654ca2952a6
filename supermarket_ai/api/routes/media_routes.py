# supermarket_ai/api/routes/media_routes.py
from flask import Blueprint, request

from supermarket_ai.api.utils.responses import handle_error, ok
from supermarket_ai.services import storage

api_media = Blueprint("api_media", __name__, url_prefix="/api/media")


@api_media.post("/upload")
def upload_image():
    try:
        url = storage.save_image(request.files.get("file") or request.files.get("image"))
    except Exception as e:
        return handle_error(e)
    return ok(201, message="Image uploaded successfully!", url=url)
