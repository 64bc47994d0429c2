import logging

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse

from storefront.exceptions import AppException
from storefront.services.image_service import is_image

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])


@router.post("/upload")
async def upload_image(request: Request, image: UploadFile | None = File(None)):
    """Store an uploaded image (multipart field `image`) and return its URL."""
    if image is None:
        return JSONResponse(status_code=400, content={"message": "No file uploaded"})

    if not is_image(image.content_type):
        return JSONResponse(status_code=400, content={"message": "Only image files are allowed"})

    data = await image.read()
    try:
        image_url = await request.app.state.images.save_bytes(data, image.content_type)
    except (AppException, OSError) as e:
        logger.error(f"Error saving upload {image.filename}: {e}")
        return JSONResponse(status_code=500, content={"message": "Failed to save the image."})

    logger.info(f"Uploaded {image.filename} as {image_url}")
    return {"message": "File uploaded successfully", "imageUrl": image_url}
