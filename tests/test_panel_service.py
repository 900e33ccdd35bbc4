"""
分格生图与限流测试
"""
from unittest.mock import Mock

import pytest

from comico.core.exceptions import ProviderBillingError, ProviderError
from comico.models.comic_content import ArtStyle, PanelStatus, PhotoDescription
from comico.services.panel_service import (
    NO_TEXT_INSTRUCTION,
    SUBJECT_SECTION_HEADER,
    PanelService,
    build_panel_prompt,
)
from comico.services.rate_limiter import IntervalRateLimiter


CAPTIONS = ["Dawn breaks.", "The dog digs.", "A key appears!", "The door opens."]


class TestBuildPanelPrompt:
    """生图 Prompt 构建"""

    def test_framing_by_position(self):
        prompts = [build_panel_prompt(c, i, 4) for i, c in enumerate(CAPTIONS)]
        assert prompts[0].startswith("Establishing shot")
        assert "Opening scene: Dawn breaks." in prompts[0]
        assert prompts[1].startswith("Action panel")
        assert prompts[2].startswith("Action panel")
        assert prompts[3].startswith("Final resolution panel")
        assert "Climactic scene: The door opens." in prompts[3]

    def test_style_descriptor_and_no_text(self):
        prompt = build_panel_prompt("A cat naps.", 1, 4, art_style=ArtStyle.WATERCOLOR)
        assert "watercolor illustration style" in prompt
        assert NO_TEXT_INSTRUCTION in prompt

    def test_no_subject_section_without_descriptions(self):
        prompt = build_panel_prompt("A cat naps.", 0, 4, descriptions=[])
        assert SUBJECT_SECTION_HEADER not in prompt

    def test_subject_section_condenses_descriptions(self):
        long_text = "A golden retriever dog " + "with fluffy fur " * 40
        prompt = build_panel_prompt(
            "A cat naps.",
            0,
            4,
            descriptions=[PhotoDescription(photo_index=1, text=long_text)],
        )
        assert SUBJECT_SECTION_HEADER in prompt
        assert "Reference Photo 2: A golden retriever dog" in prompt
        assert long_text not in prompt

    def test_truncated_to_max_chars(self):
        prompt = build_panel_prompt("x" * 5000, 0, 4, max_chars=3900)
        assert len(prompt) == 3900


class TestIntervalRateLimiter:
    """固定间隔限流器"""

    def test_first_wait_is_free(self, fake_clock):
        limiter = IntervalRateLimiter(1.5, clock=fake_clock.time, sleep=fake_clock.sleep)
        assert limiter.wait() == 0.0
        assert fake_clock.sleeps == []

    def test_waits_remaining_interval(self, fake_clock):
        limiter = IntervalRateLimiter(1.5, clock=fake_clock.time, sleep=fake_clock.sleep)
        limiter.mark()
        fake_clock.now += 0.5
        assert limiter.wait() == pytest.approx(1.0)
        assert fake_clock.sleeps == [pytest.approx(1.0)]

    def test_no_wait_after_interval_elapsed(self, fake_clock):
        limiter = IntervalRateLimiter(1.5, clock=fake_clock.time, sleep=fake_clock.sleep)
        limiter.mark()
        fake_clock.now += 2.0
        assert limiter.wait() == 0.0

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            IntervalRateLimiter(-1)


class TestPanelService:
    """PanelService 测试"""

    def _service(self, image_service, fake_clock):
        limiter = IntervalRateLimiter(1.5, clock=fake_clock.time, sleep=fake_clock.sleep)
        return PanelService(image_service=image_service, rate_limiter=limiter)

    def test_all_panels_generated_in_order(self, fake_clock):
        image_service = Mock()
        image_service.generate.side_effect = [f"https://img/{i}.png" for i in range(1, 5)]

        results = self._service(image_service, fake_clock).synthesize_panels(CAPTIONS)

        assert [r.panel.panel_number for r in results] == [1, 2, 3, 4]
        assert all(r.panel.status == PanelStatus.GENERATED for r in results)
        assert results[2].panel.image_url == "https://img/3.png"
        assert results[2].panel.description == "A key appears!"
        # 每两次调用之间停顿一次，最后一次之后不再停顿
        assert fake_clock.sleeps == [pytest.approx(1.5)] * 3

    def test_failed_panel_does_not_abort(self, fake_clock):
        image_service = Mock()
        image_service.generate.side_effect = [
            "https://img/1.png",
            ProviderError("boom"),
            "https://img/3.png",
            "https://img/4.png",
        ]
        seen = []

        results = self._service(image_service, fake_clock).synthesize_panels(
            CAPTIONS, on_panel=seen.append
        )

        assert len(results) == 4
        assert image_service.generate.call_count == 4
        failed = results[1]
        assert failed.panel.status == PanelStatus.ERROR
        assert failed.panel.image_url == ""
        assert failed.panel.panel_number == 2
        assert not failed.ok
        assert [r.panel.panel_number for r in seen] == [1, 2, 3, 4]

    def test_billing_failure_is_classified(self, fake_clock):
        image_service = Mock()
        image_service.generate.side_effect = ProviderBillingError()

        results = self._service(image_service, fake_clock).synthesize_panels(CAPTIONS[:1])

        assert isinstance(results[0].error, ProviderBillingError)

    def test_regenerate_panel_uses_position_framing(self, fake_clock):
        image_service = Mock()
        image_service.generate.return_value = "https://img/new.png"

        result = self._service(image_service, fake_clock).regenerate_panel(
            4, "The door opens.", total_panels=4
        )

        assert result.ok
        assert result.panel.panel_number == 4
        assert image_service.generate.call_args.args[0].startswith("Final resolution panel")

    def test_regenerate_panel_out_of_range(self, fake_clock):
        with pytest.raises(ValueError):
            self._service(Mock(), fake_clock).regenerate_panel(5, "x", total_panels=4)
