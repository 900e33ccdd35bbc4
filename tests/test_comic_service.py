"""
漫画记录服务测试
"""
import pytest

from comico.models.comic_content import ComicPanel, GeneratedComic, PanelStatus, StoryContent
from comico.services.comic_service import ComicService


def _generated(statuses) -> GeneratedComic:
    story = StoryContent(
        title="The Key",
        narrative="A dog finds a key.",
        panel_captions=[f"caption {i}" for i in range(len(statuses))],
    )
    panels = [
        ComicPanel(panel_number=i + 1, description=f"caption {i}", image_url=f"https://img/{i}.png", status=s)
        for i, s in enumerate(statuses)
    ]
    return GeneratedComic.assemble(story, panels)


class TestComicService:
    """ComicService 测试"""

    def test_create_and_get(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "A dog finds a key.", ["https://example.com/a.jpg"])

        loaded = service.get_comic(record.id)
        assert loaded.status == "draft"
        assert loaded.photo_urls == ["https://example.com/a.jpg"]
        assert loaded.selected_plan == "Pro Comic"

    def test_create_requires_story(self, test_db):
        with pytest.raises(ValueError):
            ComicService().create_comic("user-1", "   ")

    def test_list_by_user(self, test_db):
        service = ComicService()
        service.create_comic("user-1", "first")
        service.create_comic("user-1", "second")
        service.create_comic("user-2", "other")

        stories = {r.story for r in service.list_by_user("user-1")}
        assert stories == {"first", "second"}

    def test_update_rejects_unknown_status_and_fields(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "story")
        with pytest.raises(ValueError):
            service.update_comic(record.id, status="printing")
        with pytest.raises(ValueError):
            service.update_comic(record.id, user_id="someone-else")

    def test_update_missing_returns_none(self, test_db):
        assert ComicService().update_comic("missing", status="failed") is None

    def test_claim_generation_only_once(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "story")

        assert service.claim_generation(record.id) is True
        assert service.claim_generation(record.id) is False
        assert service.get_comic(record.id).status == "generating"

        service.update_comic(record.id, status="failed", error_message="boom")
        assert service.claim_generation(record.id) is True
        assert service.get_comic(record.id).error_message is None

    def test_claim_generation_missing(self, test_db):
        assert ComicService().claim_generation("missing") is False

    def test_save_generated_sets_status(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "story")

        saved = service.save_generated_comic(record.id, _generated([PanelStatus.GENERATED] * 4))
        assert saved.status == "generated"
        assert saved.title == "The Key"

        saved = service.save_generated_comic(
            record.id, _generated([PanelStatus.GENERATED, PanelStatus.ERROR, PanelStatus.GENERATED, PanelStatus.GENERATED])
        )
        assert saved.status == "partial"
        assert service.load_generated_comic(saved).error_count == 1

    def test_replace_panel(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "story")
        service.save_generated_comic(
            record.id, _generated([PanelStatus.GENERATED, PanelStatus.ERROR, PanelStatus.GENERATED, PanelStatus.GENERATED])
        )

        updated = service.replace_panel(
            record.id,
            ComicPanel(panel_number=2, description="retry", image_url="https://img/new.png", status=PanelStatus.GENERATED),
        )

        assert updated.panels[1].image_url == "https://img/new.png"
        assert [p.panel_number for p in updated.panels] == [1, 2, 3, 4]
        assert service.get_comic(record.id).status == "generated"

    def test_replace_panel_keeps_ordered_status(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "story")
        service.save_generated_comic(record.id, _generated([PanelStatus.GENERATED] * 4))
        service.update_comic(record.id, status="ordered")

        service.replace_panel(record.id, ComicPanel(panel_number=1, description="x", image_url="https://img/x.png", status=PanelStatus.GENERATED))

        assert service.get_comic(record.id).status == "ordered"

    def test_replace_panel_before_generation(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "story")
        with pytest.raises(ValueError):
            service.replace_panel(record.id, ComicPanel(panel_number=1, description="x"))

    def test_delete(self, test_db):
        service = ComicService()
        record = service.create_comic("user-1", "story", ["https://example.com/a.jpg"])
        assert service.delete_comic(record.id) is True
        assert service.get_comic(record.id) is None
        assert service.delete_comic(record.id) is False
