"""
照片 API - 上传与视觉分析
"""
from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from comico.api.errors import to_http_exception
from comico.core import get_logger
from comico.models.comic_content import RawPhoto
from comico.services.photo_service import get_photo_service
from comico.services.storage_service import PhotoIngestService

logger = get_logger(__name__)

router = APIRouter(prefix="/photos", tags=["照片"])


class AnalyzePhotoRequest(BaseModel):
    """照片分析请求"""
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(alias="imageUrl")


@router.post("/analyze")
def analyze_photo(request: AnalyzePhotoRequest):
    """
    分析单张照片

    直接代理视觉模型，失败返回对应错误码
    """
    if not request.image_url.strip():
        raise HTTPException(status_code=400, detail="图片地址不能为空")

    try:
        description = get_photo_service().describe_one(request.image_url)
    except Exception as e:
        logger.error(f"照片分析失败: {e}", exc_info=True)
        raise to_http_exception(e)

    return {"description": description}


@router.post("/upload")
async def upload_photo(
    user_id: str = Form(...),
    comic_id: str = Form(...),
    file: UploadFile = File(...),
):
    """上传照片，存储不可用时返回 data URL"""
    if not file.filename:
        raise HTTPException(status_code=400, detail="未选择文件")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="文件内容为空")

    photo = RawPhoto(data=data, filename=file.filename, content_type=file.content_type or "")
    resolved = PhotoIngestService().resolve_one(0, photo, user_id=user_id, comic_id=comic_id)
    if resolved is None:
        raise HTTPException(status_code=500, detail="照片保存失败")

    return {"url": resolved.url, "source": resolved.source}
