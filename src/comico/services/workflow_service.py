"""
LangGraph 工作流编排 - 照片入库 → 照片分析 → 故事合成 → 分格生图 → 组装
"""
from typing import Any, Generator, Iterator, Optional, TypedDict

from langgraph.config import get_stream_writer
from langgraph.graph import StateGraph, END

from comico.core import get_settings, get_logger
from comico.core.exceptions import GenerationInProgressError, ProviderAuthError
from comico.models.comic_content import (
    ArtStyle,
    GeneratedComic,
    PhotoDescription,
    PhotoInput,
    ResolvedPhoto,
    StoryContent,
    photo_input_from_value,
)
from comico.services.comic_service import ComicService, get_comic_service
from comico.services.panel_service import PanelResult, PanelService
from comico.services.photo_service import (
    PhotoAnalysis,
    PhotoService,
    descriptions_of,
    get_photo_service,
)
from comico.services.storage_service import PhotoIngestService
from comico.services.story_service import (
    StoryService,
    get_story_service,
    parse_requested_panel_count,
    resolve_panel_count,
)

logger = get_logger(__name__)


# ============ 状态定义 ============

class ComicState(TypedDict, total=False):
    """漫画生成工作流状态"""

    # 输入
    story_text: str                         # 用户故事
    photos: list[PhotoInput]                # 用户照片（原始顺序）
    requested_panel_count: Optional[int]    # 用户指定分格数
    art_style: ArtStyle                     # 画风
    user_id: str                            # 用户ID（存储路径用）
    comic_id: str                           # 漫画ID（存储路径用）

    # 中间状态
    num_panels: int                         # 最终分格数
    resolved_photos: list[ResolvedPhoto]    # 可访问的照片地址
    photo_analyses: list[PhotoAnalysis]     # 每张照片的分析结果
    descriptions: list[PhotoDescription]    # 成功的照片描述
    story: StoryContent                     # 故事
    panel_results: list[PanelResult]        # 每格结果

    # 输出
    comic: GeneratedComic
    current_step: str


# ============ 构建图 ============

class ComicWorkflowService:
    """
    漫画生成工作流

    各阶段严格串行：全部照片处理完才合成故事，故事完成才开始生图
    """

    def __init__(
        self,
        photo_service: Optional[PhotoService] = None,
        story_service: Optional[StoryService] = None,
        panel_service: Optional[PanelService] = None,
        ingest_service: Optional[PhotoIngestService] = None,
        comic_service: Optional[ComicService] = None,
    ):
        self.settings = get_settings()
        self.photo_service = photo_service or get_photo_service()
        self.story_service = story_service or get_story_service()
        self._panel_service = panel_service
        self.ingest_service = ingest_service or PhotoIngestService()
        self.comic_service = comic_service or get_comic_service()
        self.graph = self.create_workflow().compile()
        logger.info("LangGraph 漫画工作流初始化完成")

    @property
    def panel_service(self) -> PanelService:
        # 每次生成使用独立的限流器，不同请求之间互不阻塞
        return self._panel_service or PanelService()

    # ---------- 节点 ----------

    def node_prepare_photos(self, state: ComicState) -> dict:
        photos = state.get("photos", [])
        num_panels = resolve_panel_count(
            state["story_text"],
            len(photos),
            state.get("requested_panel_count"),
        )
        logger.info(f"[LangGraph] 照片入库: {len(photos)} 张，分格数: {num_panels}")
        resolved = self.ingest_service.resolve(
            photos,
            user_id=state.get("user_id", "anonymous"),
            comic_id=state.get("comic_id", "draft"),
        )
        return {
            "num_panels": num_panels,
            "resolved_photos": resolved,
            "current_step": "prepare_photos",
        }

    def node_describe_photos(self, state: ComicState) -> dict:
        logger.info("[LangGraph] 照片分析")
        writer = get_stream_writer()
        analyses = self.photo_service.describe_photos(
            state.get("resolved_photos", []),
            on_result=lambda result: writer({"node": "describe_photos", "result": result}),
        )
        return {
            "photo_analyses": analyses,
            "descriptions": descriptions_of(analyses),
            "current_step": "describe_photos",
        }

    def node_synthesize_story(self, state: ComicState) -> dict:
        logger.info("[LangGraph] 故事合成")
        story = self.story_service.synthesize(
            state["story_text"],
            state["num_panels"],
            state.get("descriptions", []),
        )
        return {"story": story, "current_step": "synthesize_story"}

    def node_synthesize_panels(self, state: ComicState) -> dict:
        logger.info("[LangGraph] 分格生图")
        writer = get_stream_writer()
        results = self.panel_service.synthesize_panels(
            state["story"].panel_captions,
            art_style=state.get("art_style", ArtStyle.COMIC),
            descriptions=state.get("descriptions", []),
            on_panel=lambda result: writer({"node": "synthesize_panels", "result": result}),
        )
        return {"panel_results": results, "current_step": "synthesize_panels"}

    def node_assemble(self, state: ComicState) -> dict:
        comic = GeneratedComic.assemble(
            state["story"],
            [r.panel for r in state["panel_results"]],
            panels_per_page=self.settings.panels_per_page,
            style=state.get("art_style", ArtStyle.COMIC),
            generated_with=f"{self.settings.openai_chat_model} + {self.settings.openai_image_model}",
        )
        logger.info(
            f"[LangGraph] 组装完成: {comic.title}，{len(comic.panels)} 格，结果: {comic.outcome.value}"
        )
        return {"comic": comic, "current_step": "assemble"}

    def create_workflow(self) -> StateGraph:
        """创建工作流图（线性）"""
        workflow = StateGraph(ComicState)

        workflow.add_node("prepare_photos", self.node_prepare_photos)
        workflow.add_node("describe_photos", self.node_describe_photos)
        workflow.add_node("synthesize_story", self.node_synthesize_story)
        workflow.add_node("synthesize_panels", self.node_synthesize_panels)
        workflow.add_node("assemble", self.node_assemble)

        workflow.set_entry_point("prepare_photos")
        workflow.add_edge("prepare_photos", "describe_photos")
        workflow.add_edge("describe_photos", "synthesize_story")
        workflow.add_edge("synthesize_story", "synthesize_panels")
        workflow.add_edge("synthesize_panels", "assemble")
        workflow.add_edge("assemble", END)

        return workflow

    # ---------- 执行入口 ----------

    def _create_initial_state(
        self,
        story_text: str,
        photos: Optional[list[PhotoInput]],
        requested_panel_count: Optional[int],
        art_style: ArtStyle | str,
        user_id: str,
        comic_id: str,
    ) -> ComicState:
        """创建初始状态，入参校验在这里完成"""
        if not story_text or not story_text.strip():
            raise ValueError("故事内容不能为空")
        if requested_panel_count is not None and requested_panel_count < 1:
            raise ValueError("分格数必须是正整数")
        if not self.settings.openai_api_key:
            raise ProviderAuthError("OPENAI_API_KEY 未配置")

        if requested_panel_count is None:
            requested_panel_count = parse_requested_panel_count(story_text)

        return {
            "story_text": story_text,
            "photos": list(photos or []),
            "requested_panel_count": requested_panel_count,
            "art_style": ArtStyle(art_style),
            "user_id": user_id,
            "comic_id": comic_id,
            "current_step": "",
        }

    def run_stream(
        self,
        story_text: str,
        photos: Optional[list[PhotoInput]] = None,
        requested_panel_count: Optional[int] = None,
        art_style: ArtStyle | str = ArtStyle.COMIC,
        user_id: str = "anonymous",
        comic_id: str = "draft",
    ) -> Iterator[dict[str, Any]]:
        """
        流式执行工作流

        每个节点完成后产出 {"node": 节点名, "state": 节点更新}；
        节点执行过程中每分析完一张照片、每生成完一格，
        立即产出 {"node": 节点名, "progress": PhotoAnalysis / PanelResult}
        """
        initial_state = self._create_initial_state(
            story_text, photos, requested_panel_count, art_style, user_id, comic_id
        )
        for mode, chunk in self.graph.stream(initial_state, stream_mode=["updates", "custom"]):
            if mode == "custom":
                yield {"node": chunk["node"], "progress": chunk["result"]}
                continue
            for node_name, node_state in chunk.items():
                yield {"node": node_name, "state": node_state}

    def run(
        self,
        story_text: str,
        photos: Optional[list[PhotoInput]] = None,
        requested_panel_count: Optional[int] = None,
        art_style: ArtStyle | str = ArtStyle.COMIC,
        user_id: str = "anonymous",
        comic_id: str = "draft",
    ) -> GeneratedComic:
        """执行完整工作流，故事合成失败时抛出 StoryGenerationError"""
        initial_state = self._create_initial_state(
            story_text, photos, requested_panel_count, art_style, user_id, comic_id
        )
        final_state = self.graph.invoke(initial_state)
        return final_state["comic"]

    def generate_for_record_stream(self, comic_id: str) -> Iterator[dict[str, Any]]:
        """
        为已保存的漫画记录生成内容

        记录校验和 generating 状态的抢占在调用时立即完成，返回的迭代器才真正执行工作流。
        状态流转: generating → generated / partial；
        故事失败或迭代器被提前关闭（客户端断开）时置为 failed
        """
        record = self.comic_service.get_comic(comic_id)
        if not record:
            raise LookupError(f"漫画不存在: {comic_id}")
        photos = [photo_input_from_value(url) for url in record.photo_urls]
        if not self.comic_service.claim_generation(comic_id):
            raise GenerationInProgressError("该漫画正在生成中")

        stream = self.run_stream(
            story_text=record.story,
            photos=photos,
            requested_panel_count=record.requested_panels,
            art_style=record.art_style,
            user_id=record.user_id,
            comic_id=record.id,
        )
        return self._record_events(comic_id, stream)

    def _record_events(
        self,
        comic_id: str,
        stream: Generator[dict[str, Any], None, None],
    ) -> Iterator[dict[str, Any]]:
        saved = False
        try:
            for event in stream:
                if event["node"] == "assemble" and "state" in event:
                    self.comic_service.save_generated_comic(comic_id, event["state"]["comic"])
                    saved = True
                yield event
        except Exception as e:
            logger.error(f"漫画生成失败: comic_id={comic_id}, {e}", exc_info=True)
            self.comic_service.update_comic(comic_id, status="failed", error_message=str(e))
            saved = True
            raise
        finally:
            stream.close()
            if not saved:
                logger.warning(f"漫画生成被中断: comic_id={comic_id}")
                self.comic_service.update_comic(comic_id, status="failed", error_message="生成被中断，请重新生成")

    def generate_for_record(self, comic_id: str) -> GeneratedComic:
        comic = None
        for event in self.generate_for_record_stream(comic_id):
            if event["node"] == "assemble" and "state" in event:
                comic = event["state"]["comic"]
        return comic


# 全局单例
_workflow_service: Optional[ComicWorkflowService] = None


def get_workflow_service() -> ComicWorkflowService:
    """获取工作流服务单例"""
    global _workflow_service
    if _workflow_service is None:
        _workflow_service = ComicWorkflowService()
    return _workflow_service
