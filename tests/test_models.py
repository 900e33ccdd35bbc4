"""
内容模型测试
"""
import json

import pytest

from comico.models.comic_content import (
    ArtStyle,
    ComicPanel,
    GeneratedComic,
    GenerationOutcome,
    InlinePhoto,
    PanelStatus,
    RawPhoto,
    RemotePhoto,
    StoryContent,
    photo_input_from_value,
)
from comico.models.comic_record import ComicRecord


def _story(count: int) -> StoryContent:
    return StoryContent(
        title="The Key",
        narrative="A dog finds a key.",
        panel_captions=[f"caption {i}" for i in range(count)],
    )


def _panels(statuses: list[PanelStatus]) -> list[ComicPanel]:
    return [
        ComicPanel(
            panel_number=i + 1,
            description=f"caption {i}",
            image_url="" if status == PanelStatus.ERROR else f"https://img/{i}.png",
            status=status,
        )
        for i, status in enumerate(statuses)
    ]


class TestGeneratedComic:
    """GeneratedComic 测试"""

    @pytest.mark.parametrize("count,pages", [(4, 2), (5, 3), (8, 4)])
    def test_total_pages(self, count, pages):
        comic = GeneratedComic.assemble(_story(count), _panels([PanelStatus.GENERATED] * count))
        assert comic.total_pages == pages
        assert comic.title == "The Key"

    def test_outcome(self):
        ok = GeneratedComic.assemble(_story(2), _panels([PanelStatus.GENERATED] * 2))
        partial = GeneratedComic.assemble(_story(2), _panels([PanelStatus.GENERATED, PanelStatus.ERROR]))
        failed = GeneratedComic.assemble(_story(2), _panels([PanelStatus.ERROR] * 2))
        assert ok.outcome == GenerationOutcome.SUCCESS
        assert partial.outcome == GenerationOutcome.PARTIAL
        assert partial.error_count == 1
        assert failed.outcome == GenerationOutcome.FAILED

    def test_json_uses_camel_case(self):
        comic = GeneratedComic.assemble(
            _story(4),
            _panels([PanelStatus.GENERATED] * 4),
            style=ArtStyle.MANGA,
            generated_with="gpt-4-turbo-preview + dall-e-3",
        )
        data = json.loads(comic.to_json())
        assert data["totalPages"] == 2
        assert data["story"]["panelCaptions"][0] == "caption 0"
        assert data["panels"][0]["panelNumber"] == 1
        assert data["panels"][0]["imageUrl"] == "https://img/0.png"
        assert data["style"] == "manga"
        assert "error" not in data["panels"][0]

        restored = GeneratedComic.from_json(comic.to_json())
        assert restored.panels[3].panel_number == 4
        assert restored.style == ArtStyle.MANGA

    def test_panel_number_starts_at_one(self):
        with pytest.raises(ValueError):
            ComicPanel(panel_number=0, description="x")


class TestPhotoInputs:
    """照片输入变体"""

    def test_from_value(self):
        assert isinstance(photo_input_from_value("https://example.com/a.jpg"), RemotePhoto)
        assert isinstance(photo_input_from_value("data:image/png;base64,AAAA"), InlinePhoto)
        with pytest.raises(ValueError):
            photo_input_from_value("ftp://example.com/a.jpg")

    def test_raw_photo_data_url(self):
        photo = RawPhoto(data=b"abc", filename="cat.png")
        assert photo.mime_type == "image/png"
        assert photo.to_data_url() == "data:image/png;base64,YWJj"

    def test_raw_photo_extension(self):
        assert RawPhoto(data=b"abc", filename="Dog.PNG").extension == "png"
        assert RawPhoto(data=b"abc", filename="blob").extension == "jpg"
        assert RawPhoto(data=b"abc", filename="trailing.").extension == "jpg"

    def test_raw_photo_content_type_wins(self):
        assert RawPhoto(data=b"abc", filename="blob", content_type="image/webp").mime_type == "image/webp"

    def test_empty_raw_photo(self):
        with pytest.raises(ValueError):
            RawPhoto(data=b"", filename="empty.jpg").to_data_url()


class TestComicRecord:
    """记录模型"""

    def test_photo_urls(self):
        record = ComicRecord(user_id="u", story="s", photos='["https://a", 3]')
        assert record.photo_urls == ["https://a"]

    def test_bad_photo_json(self):
        assert ComicRecord(user_id="u", story="s", photos="not json").photo_urls == []
