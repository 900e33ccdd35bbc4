"""
漫画 API - 创建、生成（SSE）、查询、删除、单格重绘
"""
import json
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from comico.api.errors import SSE_HEADERS, sse_event, to_http_exception, user_message
from comico.core import get_logger
from comico.models.comic_content import ArtStyle, RawPhoto, photo_input_from_value
from comico.models.comic_record import ComicRecord
from comico.services.comic_service import get_comic_service
from comico.services.panel_service import get_panel_service
from comico.services.storage_service import PhotoIngestService
from comico.services.workflow_service import get_workflow_service

logger = get_logger(__name__)

router = APIRouter(prefix="/comics", tags=["漫画"])


class RegeneratePanelRequest(BaseModel):
    """单格重绘请求"""
    description: Optional[str] = None  # 不传则沿用原字幕


def _comic_to_response(record: ComicRecord) -> dict:
    """将 ComicRecord 转换为响应字典"""
    generated = None
    if record.generated_comic_data:
        generated = json.loads(record.generated_comic_data)
    return {
        "id": record.id,
        "user_id": record.user_id,
        "title": record.title,
        "story": record.story,
        "photos": record.photo_urls,
        "selected_plan": record.selected_plan,
        "art_style": record.art_style,
        "requested_panels": record.requested_panels,
        "generated_comic": generated,
        "status": record.status,
        "error_message": record.error_message,
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


@router.post("")
async def create_comic(
    user_id: str = Form(...),
    story: str = Form(...),
    selected_plan: str = Form("Pro Comic"),
    art_style: ArtStyle = Form(ArtStyle.COMIC),
    num_panels: Optional[int] = Form(None),
    photo_urls: list[str] = Form(default=[]),
    files: list[UploadFile] = File(default=[]),
):
    """
    创建漫画草稿

    上传的文件先存对象存储（失败转 data URL），链接写入记录
    """
    if not story.strip():
        raise HTTPException(status_code=400, detail="请输入故事内容")
    if num_panels is not None and num_panels < 1:
        raise HTTPException(status_code=400, detail="分格数必须是正整数")

    try:
        inputs = [photo_input_from_value(url) for url in photo_urls if url]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    for upload in files:
        data = await upload.read()
        if upload.filename and data:
            inputs.append(RawPhoto(data=data, filename=upload.filename, content_type=upload.content_type or ""))

    comic_service = get_comic_service()
    record = comic_service.create_comic(
        user_id=user_id,
        story=story,
        selected_plan=selected_plan,
        art_style=art_style.value,
        requested_panels=num_panels,
    )

    if inputs:
        resolved = PhotoIngestService().resolve(inputs, user_id=user_id, comic_id=record.id)
        record = comic_service.update_comic(record.id, photos=[p.url for p in resolved])

    return _comic_to_response(record)


def _generation_events(comic_id: str, stream):
    """生成进度事件流（同步生成器，由线程池驱动）"""
    yield sse_event({"type": "start", "comic_id": comic_id, "message": "开始生成漫画..."})
    try:
        for event in stream:
            node = event["node"]
            progress = event.get("progress")
            if progress is not None:
                # 节点执行中逐张 / 逐格推送
                if node == "describe_photos":
                    yield sse_event({
                        "type": "photo",
                        "photo_index": progress.photo_index,
                        "ok": progress.ok,
                    })
                elif node == "synthesize_panels":
                    yield sse_event({
                        "type": "panel",
                        **progress.panel.model_dump(mode="json", by_alias=True, exclude_none=True),
                    })
                continue

            state = event["state"]
            if node == "prepare_photos":
                yield sse_event({
                    "type": "photos",
                    "count": len(state["resolved_photos"]),
                    "num_panels": state["num_panels"],
                })
            elif node == "describe_photos":
                yield sse_event({
                    "type": "descriptions",
                    "succeeded": len(state["descriptions"]),
                    "total": len(state["photo_analyses"]),
                })
            elif node == "synthesize_story":
                yield sse_event({"type": "story", **state["story"].model_dump(by_alias=True)})
            elif node == "assemble":
                comic = state["comic"]
                yield sse_event({
                    "type": "done",
                    "comic_id": comic_id,
                    "outcome": comic.outcome.value,
                    "comic": comic.model_dump(mode="json", by_alias=True, exclude_none=True),
                })
    except Exception as e:
        logger.error(f"漫画生成失败: {e}", exc_info=True)
        yield sse_event({"type": "error", "message": user_message(e)})
    finally:
        # 客户端断开时关闭工作流，记录会被置为 failed
        stream.close()


@router.post("/{comic_id}/generate")
def generate_comic(comic_id: str):
    """
    生成漫画

    返回响应前就把记录置为 generating，使用SSE流式返回生成进度
    """
    if not get_comic_service().get_comic(comic_id):
        raise HTTPException(status_code=404, detail="漫画不存在")

    try:
        stream = get_workflow_service().generate_for_record_stream(comic_id)
    except (LookupError, ValueError) as e:
        raise to_http_exception(e)

    return StreamingResponse(
        _generation_events(comic_id, stream),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("")
def list_comics(user_id: str):
    """获取用户的漫画历史"""
    records = get_comic_service().list_by_user(user_id)
    return {
        "items": [_comic_to_response(r) for r in records],
        "total": len(records),
    }


@router.get("/{comic_id}")
def get_comic(comic_id: str):
    """获取漫画详情"""
    record = get_comic_service().get_comic(comic_id)
    if not record:
        raise HTTPException(status_code=404, detail="漫画不存在")
    return _comic_to_response(record)


@router.delete("/{comic_id}")
def delete_comic(comic_id: str):
    """删除漫画及其照片"""
    if not get_comic_service().delete_comic(comic_id):
        raise HTTPException(status_code=404, detail="漫画不存在")
    return {"message": "删除成功"}


@router.post("/{comic_id}/panels/{panel_number}/regenerate")
def regenerate_panel(comic_id: str, panel_number: int, request: RegeneratePanelRequest):
    """重新生成某一格，成功后替换原分格"""
    comic_service = get_comic_service()
    record = comic_service.get_comic(comic_id)
    if not record:
        raise HTTPException(status_code=404, detail="漫画不存在")
    generated = comic_service.load_generated_comic(record)
    if generated is None:
        raise HTTPException(status_code=400, detail="漫画尚未生成")

    current = next((p for p in generated.panels if p.panel_number == panel_number), None)
    if current is None:
        raise HTTPException(status_code=404, detail="分格不存在")

    description = (request.description or "").strip() or current.description
    result = get_panel_service().regenerate_panel(
        panel_number,
        description,
        total_panels=len(generated.panels),
        art_style=generated.style,
    )
    if not result.ok:
        raise to_http_exception(result.error)

    updated = comic_service.replace_panel(comic_id, result.panel)
    return {
        "panel": result.panel.model_dump(mode="json", by_alias=True, exclude_none=True),
        "comic": updated.model_dump(mode="json", by_alias=True, exclude_none=True),
    }
